"""Drafts module"""

from .models import DraftType, InvoiceDraft
from .schemas import Draft, DraftItem, MigrationOutcome, MigrationResult, StorageMode
from .local_store import LocalDraftStore
from .remote_store import RemoteDraftStore
from .probe import TableProbe
from .migration import DraftMigrator
from .facade import DraftFacade, FacadeRegistry
from .router import router, admin_router

__all__ = [
    "DraftType",
    "InvoiceDraft",
    "Draft",
    "DraftItem",
    "MigrationOutcome",
    "MigrationResult",
    "StorageMode",
    "LocalDraftStore",
    "RemoteDraftStore",
    "TableProbe",
    "DraftMigrator",
    "DraftFacade",
    "FacadeRegistry",
    "router",
    "admin_router",
]
