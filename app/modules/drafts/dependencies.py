"""
Wiring of the draft stores for the web process, exposed as FastAPI dependencies.
"""

from typing import Optional

from fastapi import Depends

from app.core.config import config
from app.core.retry import RetryPolicy
from app.modules.users.auth import TokenData, get_optional_user
from .facade import DraftFacade, FacadeRegistry
from .local_store import LocalDraftStore
from .migration import DraftMigrator
from .notifications import LoggingNotifier
from .probe import TableProbe
from .remote_store import RemoteDraftStore


class DraftStores:
    """Process-wide store instances shared by every user's facade."""

    def __init__(self, local_dir: Optional[str] = None) -> None:
        self.probe = TableProbe()
        self.local = LocalDraftStore(
            local_dir or config.local_drafts_dir, config.local_drafts_key_prefix
        )
        self.remote = RemoteDraftStore(self.probe)
        self.retry_policy = RetryPolicy(
            max_attempts=config.drafts_retry_attempts,
            base_delay=config.drafts_retry_base_delay,
            multiplier=config.drafts_retry_multiplier,
        )
        self.registry = FacadeRegistry(self.build_facade, max_size=config.drafts_max_sessions)

    def build_facade(self, user_id: Optional[str]) -> DraftFacade:
        return DraftFacade(
            session=lambda: user_id,
            local=self.local,
            remote=self.remote,
            probe=self.probe,
            notifier=LoggingNotifier(),
            retry_policy=self.retry_policy,
            list_timeout=config.drafts_list_timeout,
        )

    def migrator(self) -> DraftMigrator:
        return DraftMigrator(self.local, self.remote, self.probe)


draft_stores = DraftStores()


def get_draft_stores() -> DraftStores:
    return draft_stores


def get_draft_facade(
    current_user: Optional[TokenData] = Depends(get_optional_user),
    stores: DraftStores = Depends(get_draft_stores),
) -> DraftFacade:
    """
    The caller's facade. Anonymous callers get a throwaway facade whose
    operations all fail with AuthRequiredError.
    """
    if current_user is None:
        return stores.build_facade(None)
    return stores.registry.for_user(current_user.user_id)
