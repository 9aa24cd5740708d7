"""
Query specification and protocol.

The in-memory Query filters, orders and pages entity sequences and
describes the same selection to remote sources as request parameters.
"""

from .query import RESERVED_PARAMS, Predicate, Query, QueryProtocol

__all__ = [
    "Predicate",
    "Query",
    "QueryProtocol",
    "RESERVED_PARAMS",
]
