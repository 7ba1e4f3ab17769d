"""
Dual-store persistence: adapters, write coordination, identity correlation
and read merging.
"""

from .results import StoreResult, DualWriteResult
from .adapters import DocumentStoreAdapter, RelationalStoreAdapter, ISOLATION_POLICY
from .coordinator import DualWriteCoordinator
from .identity import Principal, Owner, resolve_relational_user_id, resolve_document_user_id, resolve_owner
from .correlator import IdentityCorrelator, CorrelatedEntity, CorrelatedIds, CorrelatedChild, classify_id
from .merger import ReadMerger, Pagination
from .container import DataStores, get_stores

__all__ = [
    "StoreResult",
    "DualWriteResult",
    "DocumentStoreAdapter",
    "RelationalStoreAdapter",
    "ISOLATION_POLICY",
    "DualWriteCoordinator",
    "Principal",
    "Owner",
    "resolve_relational_user_id",
    "resolve_document_user_id",
    "resolve_owner",
    "IdentityCorrelator",
    "CorrelatedEntity",
    "CorrelatedIds",
    "CorrelatedChild",
    "classify_id",
    "ReadMerger",
    "Pagination",
    "DataStores",
    "get_stores",
]
