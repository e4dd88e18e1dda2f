"""
PBX endpoint catalogs

Ordered candidate request shapes for each call intent. The prober tries them
top to bottom and stops at the first success, so the most PBX-specific forms
come first and the generic ones last. Extend these tuples to support a new
deployment; the probing algorithm does not change.

Render values: ``base`` (endpoint without trailing slash), ``tenant_id``,
``extension``, ``destination`` (start only) and ``call_id`` (end only).
"""

from typing import Dict, Tuple

from pbx_gateway.models.pbx import CallIntent, ProbeTemplate

# Every field name observed for the same logical value is sent at once
START_BODY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("santral_id", "tenant_id"),
    ("extension", "extension"),
    ("phone_number", "destination"),
    ("destination", "destination"),
    ("caller_id", "extension"),
    ("phone", "destination"),
    ("number", "destination"),
    ("to", "destination"),
    ("from", "extension"),
)

END_BODY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("call_id", "call_id"),
    ("santral_id", "tenant_id"),
)

START_CALL_CATALOG: Tuple[ProbeTemplate, ...] = (
    # Query parameter form (GET)
    ProbeTemplate(
        "{base}/api/call/start?santral_id={tenant_id}&extension={extension}&phone_number={destination}"
    ),
    # Tenant in path
    ProbeTemplate("{base}/api/call/{tenant_id}/start", START_BODY_FIELDS),
    ProbeTemplate("{base}/api/{tenant_id}/call/start", START_BODY_FIELDS),
    ProbeTemplate("{base}/v1/call/{tenant_id}/start", START_BODY_FIELDS),
    # Generic POST forms
    ProbeTemplate("{base}/api/outbound/call", START_BODY_FIELDS),
    ProbeTemplate("{base}/api/outbound/start", START_BODY_FIELDS),
    ProbeTemplate("{base}/api/call/start", START_BODY_FIELDS),
    ProbeTemplate("{base}/call/start", START_BODY_FIELDS),
    ProbeTemplate("{base}/api/v1/call/start", START_BODY_FIELDS),
    ProbeTemplate("{base}/v1/call/start", START_BODY_FIELDS),
    ProbeTemplate("{base}/api/call", START_BODY_FIELDS),
    ProbeTemplate("{base}/call/outbound/start", START_BODY_FIELDS),
)

END_CALL_CATALOG: Tuple[ProbeTemplate, ...] = (
    # Tenant and call id in body
    ProbeTemplate("{base}/api/call/end", END_BODY_FIELDS),
    ProbeTemplate("{base}/call/end", END_BODY_FIELDS),
    ProbeTemplate("{base}/api/v1/call/end", END_BODY_FIELDS),
    # Identifiers in path
    ProbeTemplate("{base}/api/call/{call_id}/end", END_BODY_FIELDS),
    ProbeTemplate("{base}/api/call/{tenant_id}/end", END_BODY_FIELDS),
    ProbeTemplate("{base}/v1/call/{tenant_id}/end", END_BODY_FIELDS),
)

CATALOGS: Dict[CallIntent, Tuple[ProbeTemplate, ...]] = {
    CallIntent.START: START_CALL_CATALOG,
    CallIntent.END: END_CALL_CATALOG,
}
