"""PBX call-control integration"""

from .catalog import START_CALL_CATALOG, END_CALL_CATALOG, CATALOGS
from .prober import DialectProber
from .gateway import CallGateway, get_call_gateway

__all__ = [
    "START_CALL_CATALOG",
    "END_CALL_CATALOG",
    "CATALOGS",
    "DialectProber",
    "CallGateway",
    "get_call_gateway"
]
