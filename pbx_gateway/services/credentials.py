"""
Credential Resolver
Builds per-call PBX connection parameters from company and employee settings
"""

from pbx_gateway.core.exceptions import MissingParameterError
from pbx_gateway.core.logging import get_logger
from pbx_gateway.models.pbx import CompanyPbxSettings, ConnectionParams, EmployeeSipSettings

logger = get_logger(__name__)


def resolve_connection_params(
    company: CompanyPbxSettings,
    employee: EmployeeSipSettings
) -> ConnectionParams:
    """
    Resolve connection parameters for one call

    The caller extension is the employee's extension, falling back to
    their SIP username. Nothing is cached; settings are read fresh per call.

    Raises:
        MissingParameterError: the company has no complete PBX API settings
    """
    missing = [
        name for name in ("api_endpoint", "santral_id", "api_key")
        if not (getattr(company, name) or "").strip()
    ]
    if missing:
        logger.warning(f"Company PBX settings incomplete, missing: {missing}")
        raise MissingParameterError(missing)

    return ConnectionParams(
        endpoint_base_url=company.api_endpoint.strip(),
        tenant_id=company.santral_id.strip(),
        api_key=company.api_key.strip(),
        extension=employee.extension or employee.sip_username or None,
    )
