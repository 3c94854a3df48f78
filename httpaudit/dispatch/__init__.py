"""
Audit Dispatch
==============
Routes finished audit records to the configured sinks.
"""

from .dump import dump_request
from .engine import AuditDispatcher, ROUTE_CONSOLE, ROUTE_RAW_DUMP

__all__ = [
    "AuditDispatcher",
    "ROUTE_CONSOLE",
    "ROUTE_RAW_DUMP",
    "dump_request",
]
