"""
DraftMigrator - copies a user's device-local drafts into the remote table.

Copy, not move: local drafts are left in place, so a remote failure halfway
through never loses data. Drafts are sent one at a time and each failure is
counted and skipped over. Re-running is safe: ids are preserved, and a draft
whose remote copy is as new or newer than the local one is skipped instead
of overwritten.
"""

import logging
from typing import Optional

from app.core.exceptions import NotFoundError, RemoteFailureError, StoreUnavailableError
from .local_store import LocalDraftStore
from .notifications import LoggingNotifier, Notifier
from .probe import TableProbe
from .remote_store import RemoteDraftStore
from .schemas import Draft, MigrationOutcome, MigrationResult, MigrationStatus

logger = logging.getLogger(__name__)


class DraftMigrator:
    def __init__(
        self,
        local: LocalDraftStore,
        remote: RemoteDraftStore,
        probe: Optional[TableProbe] = None,
        notifier: Optional[Notifier] = None,
    ) -> None:
        self.local = local
        self.remote = remote
        self.probe = probe or remote.probe
        self.notifier = notifier or LoggingNotifier()

    async def status(self, user_id: str) -> MigrationStatus:
        """Whether the table exists and how many local drafts are waiting."""
        return MigrationStatus(
            table_exists=await self.probe.exists(),
            local_drafts=await self.local.count(user_id),
        )

    async def _remote_is_newer(self, user_id: str, draft: Draft) -> bool:
        try:
            remote_copy = await self.remote.get(user_id, draft.id)
        except NotFoundError:
            return False
        if remote_copy.updated_at is None or draft.updated_at is None:
            return False
        return remote_copy.updated_at >= draft.updated_at

    async def _migrate_one(self, user_id: str, draft: Draft) -> bool:
        """True if written, False if skipped. Raises on failure."""
        if draft.id and await self._remote_is_newer(user_id, draft):
            logger.info(f"Skipping draft {draft.id}: remote copy is up to date")
            return False
        await self.remote.upsert(user_id, draft, preserve_timestamps=True)
        return True

    async def migrate(self, user_id: str) -> MigrationResult:
        """
        Copy every local draft of the user to the remote table.

        Returns:
            MigrationResult with migrated/failed/skipped counts and an outcome:
            success (nothing failed), partial (some failed), failed (all
            failed) or unavailable (table missing, nothing attempted)
        """
        if not await self.probe.exists():
            result = MigrationResult(
                outcome=MigrationOutcome.UNAVAILABLE,
                message="Remote draft storage is unavailable: the invoice_drafts table does not exist.",
            )
            self.notifier.notify("Table missing", result.message, "destructive")
            return result

        drafts = await self.local.list(user_id)
        if not drafts:
            result = MigrationResult(
                outcome=MigrationOutcome.SUCCESS,
                message="There are no local drafts to migrate.",
            )
            self.notifier.notify("No drafts to migrate", result.message)
            return result

        migrated = failed = skipped = 0
        for draft in drafts:
            try:
                if await self._migrate_one(user_id, draft):
                    migrated += 1
                else:
                    skipped += 1
            except (RemoteFailureError, StoreUnavailableError) as e:
                failed += 1
                logger.error(f"Error migrating draft {draft.id}: {e.detail}")

        result = self._summarize(migrated, failed, skipped)
        if result.outcome == MigrationOutcome.SUCCESS:
            self.notifier.notify("Migration successful", result.message)
        elif result.outcome == MigrationOutcome.PARTIAL:
            self.notifier.notify("Migration partially successful", result.message, "destructive")
        else:
            self.notifier.notify("Migration failed", result.message, "destructive")
        logger.info(
            f"Draft migration for user {user_id}: migrated={migrated} failed={failed} skipped={skipped}"
        )
        return result

    @staticmethod
    def _summarize(migrated: int, failed: int, skipped: int) -> MigrationResult:
        skipped_note = f" {skipped} already up to date." if skipped else ""
        if failed == 0:
            outcome = MigrationOutcome.SUCCESS
            message = f"Successfully migrated {migrated} drafts to the database.{skipped_note}"
        elif migrated > 0:
            outcome = MigrationOutcome.PARTIAL
            message = f"Migrated {migrated} drafts, but {failed} drafts failed to migrate.{skipped_note}"
        else:
            outcome = MigrationOutcome.FAILED
            message = f"Failed to migrate {failed} drafts.{skipped_note}"
        return MigrationResult(
            migrated=migrated,
            failed=failed,
            skipped=skipped,
            outcome=outcome,
            message=message,
        )
