"""
DraftFacade - the one entry point application code uses for drafts.

The facade picks its backing store once (on first use, from the table
probe) and keeps it until refresh_capability() is called explicitly:

    uninitialized --probe false--> local_only --refresh, probe true--> remote_capable
    uninitialized --probe true---> remote_capable

There is no way back from remote_capable to local_only.
"""

import logging
import uuid
from collections import OrderedDict
from typing import Callable, List, Optional, Union

from app.core.exceptions import (
    AuthRequiredError,
    LocalStorageError,
    RemoteFailureError,
    StoreUnavailableError,
)
from app.core.requests import LatestRequestGate
from app.core.retry import NO_RETRY, RetryPolicy, retry_async
from .local_store import LocalDraftStore
from .models import DraftType
from .notifications import LoggingNotifier, Notifier
from .probe import TableProbe
from .remote_store import RemoteDraftStore
from .schemas import Draft, StorageMode

logger = logging.getLogger(__name__)

DraftStore = Union[LocalDraftStore, RemoteDraftStore]

# Returns the signed-in user's id, or None when there is no session
SessionProvider = Callable[[], Optional[str]]


def _newest_first(drafts: List[Draft]) -> List[Draft]:
    return sorted(
        drafts,
        key=lambda d: d.updated_at.timestamp() if d.updated_at else 0,
        reverse=True,
    )


class DraftFacade:
    def __init__(
        self,
        session: SessionProvider,
        local: LocalDraftStore,
        remote: RemoteDraftStore,
        probe: Optional[TableProbe] = None,
        notifier: Optional[Notifier] = None,
        retry_policy: Optional[RetryPolicy] = None,
        list_timeout: float = 12.0,
    ) -> None:
        self.session = session
        self.local = local
        self.remote = remote
        self.probe = probe or remote.probe
        self.notifier = notifier or LoggingNotifier()
        self.retry_policy = retry_policy or NO_RETRY
        self.list_timeout = list_timeout
        self._mode = StorageMode.UNINITIALIZED
        self._gate = LatestRequestGate()

    # ---------------- capability ---------------- #

    @property
    def mode(self) -> StorageMode:
        return self._mode

    async def _ensure_mode(self) -> StorageMode:
        if self._mode == StorageMode.UNINITIALIZED:
            available = await self.probe.exists()
            self._mode = StorageMode.REMOTE_CAPABLE if available else StorageMode.LOCAL_ONLY
            logger.info(f"Draft storage mode selected: {self._mode.value}")
        return self._mode

    async def refresh_capability(self) -> StorageMode:
        """
        Re-probe the remote table. Only ever upgrades local_only to
        remote_capable; a remote_capable facade is left as is.
        """
        if self._mode == StorageMode.REMOTE_CAPABLE:
            return self._mode
        available = await self.probe.exists()
        previous = self._mode
        self._mode = StorageMode.REMOTE_CAPABLE if available else StorageMode.LOCAL_ONLY
        if previous != self._mode:
            logger.info(f"Draft storage mode changed: {previous.value} -> {self._mode.value}")
        return self._mode

    async def current_mode(self) -> StorageMode:
        """Storage mode for the signed-in user, probing on first use."""
        self.require_user()
        return await self._ensure_mode()

    async def _store(self) -> DraftStore:
        mode = await self._ensure_mode()
        return self.remote if mode == StorageMode.REMOTE_CAPABLE else self.local

    def require_user(self) -> str:
        user_id = self.session()
        if not user_id:
            raise AuthRequiredError("You must be signed in to work with drafts")
        return user_id

    # ---------------- operations ---------------- #

    async def save(self, draft: Draft) -> Draft:
        """
        Create or fully replace a draft. A new draft gets its id here, before
        the store is chosen. Not retried.

        Raises:
            AuthRequiredError, StoreUnavailableError, RemoteFailureError, LocalStorageError
        """
        user_id = self.require_user()
        if draft.id is None:
            draft = draft.model_copy(update={"id": str(uuid.uuid4())})

        try:
            store = await self._store()
            saved = await store.upsert(user_id, draft)
            if saved is None:
                raise LocalStorageError("Could not save your draft on this device")
        except (StoreUnavailableError, RemoteFailureError, LocalStorageError):
            self.notifier.notify(
                "Error saving draft", "Could not save your draft. Please try again.", "destructive"
            )
            raise

        where = "to the database" if store is self.remote else "on this device"
        self.notifier.notify("Draft saved", f"Your draft has been saved {where}.")
        return saved

    async def get(self, draft_id: str) -> Draft:
        """
        Raises:
            AuthRequiredError, NotFoundError, StoreUnavailableError, RemoteFailureError
        """
        user_id = self.require_user()
        store = await self._store()
        return await store.get(user_id, draft_id)

    async def list(self, draft_type: Optional[DraftType] = None) -> List[Draft]:
        """
        All drafts of the signed-in user, newest first.

        Retried with backoff on RemoteFailureError. A newer list() call
        supersedes one still in flight (the older caller gets
        RequestSupersededError); a call that runs past list_timeout raises
        RemoteTimeoutError.
        """
        user_id = self.require_user()

        async def _fetch() -> List[Draft]:
            store = await self._store()
            if store is self.remote:
                drafts = await self.remote.list(user_id, draft_type)
            else:
                drafts = await self.local.list(user_id)
                if draft_type:
                    drafts = [d for d in drafts if d.type == DraftType(draft_type)]
            return _newest_first(drafts)

        return await self._gate.run(
            ("list", user_id, draft_type),
            lambda: retry_async(_fetch, self.retry_policy),
            timeout=self.list_timeout,
        )

    async def delete(self, draft_id: str) -> bool:
        """
        Whether a draft was removed; False (not an error) for an unknown id.
        Not retried.
        """
        user_id = self.require_user()
        try:
            store = await self._store()
            deleted = await store.delete(user_id, draft_id)
        except (StoreUnavailableError, RemoteFailureError):
            self.notifier.notify(
                "Error deleting draft", "Could not delete your draft. Please try again.", "destructive"
            )
            raise

        if deleted:
            self.notifier.notify("Draft deleted", "Your draft has been deleted successfully.")
        else:
            self.notifier.notify("Draft not found", "There was no draft to delete.")
        return deleted


class FacadeRegistry:
    """
    One facade per recently active user, so the storage mode chosen for a
    user's session is not re-derived on every request. At most `max_size`
    facades are kept; the least recently used one is dropped first and is
    simply rebuilt (and re-probed) on that user's next request.
    """

    def __init__(self, factory: Callable[[str], DraftFacade], max_size: int = 1000) -> None:
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self._factory = factory
        self.max_size = max_size
        self._facades: "OrderedDict[str, DraftFacade]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._facades)

    def for_user(self, user_id: str) -> DraftFacade:
        facade = self._facades.get(user_id)
        if facade is None:
            facade = self._factory(user_id)
            self._facades[user_id] = facade
            while len(self._facades) > self.max_size:
                evicted, _ = self._facades.popitem(last=False)
                logger.debug(f"Dropped draft facade for user {evicted}")
        else:
            self._facades.move_to_end(user_id)
        return facade

    def discard(self, user_id: str) -> None:
        self._facades.pop(user_id, None)

    def clear(self) -> None:
        self._facades.clear()
