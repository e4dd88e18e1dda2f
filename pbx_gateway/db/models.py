"""
Database schema for the call log store

The same SQLite-dialect schema is used by the SQLite and Turso (libSQL)
adapters.
"""

CALL_LOG_COLUMNS = (
    "id",
    "company_id",
    "employee_id",
    "call_type",
    "phone_number",
    "customer_name",
    "customer_id",
    "duration_seconds",
    "call_status",
    "recording_url",
    "notes",
    "start_time",
    "end_time",
    "created_at",
)

CALL_LOGS_SCHEMA = """
-- Call Logs Table
CREATE TABLE IF NOT EXISTS call_logs (
    id TEXT PRIMARY KEY,
    company_id TEXT NOT NULL,
    employee_id TEXT NOT NULL,
    call_type TEXT NOT NULL,
    phone_number TEXT NOT NULL,
    customer_name TEXT,
    customer_id TEXT,
    duration_seconds INTEGER NOT NULL DEFAULT 0,
    call_status TEXT NOT NULL DEFAULT 'completed',
    recording_url TEXT,
    notes TEXT,
    start_time TEXT NOT NULL,
    end_time TEXT,
    created_at TEXT NOT NULL
);

-- Indexes for the list and stats filters
CREATE INDEX IF NOT EXISTS idx_call_logs_company_id ON call_logs(company_id);
CREATE INDEX IF NOT EXISTS idx_call_logs_employee_id ON call_logs(employee_id);
CREATE INDEX IF NOT EXISTS idx_call_logs_start_time ON call_logs(start_time);
"""
