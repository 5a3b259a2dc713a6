"""
RemoteDraftStore - shared, cross-device draft storage in the invoice_drafts table.
"""

import logging
import uuid
from typing import Callable, List, Optional, TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.db.engine import run_db
from app.core.exceptions import NotFoundError, RemoteFailureError, StoreUnavailableError
from .local_store import stamp_after, utcnow
from .mapping import apply_row, draft_to_row, row_to_draft
from .models import DraftType, InvoiceDraft
from .probe import TableProbe
from .schemas import Draft, as_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RemoteDraftStore:
    """
    Same surface as LocalDraftStore, backed by the relational backend.

    Every call probes the table first, so a missing table surfaces as
    StoreUnavailableError rather than as a missing row. Backend errors are
    reported as RemoteFailureError. Rows are always filtered by user_id.
    """

    def __init__(self, probe: Optional[TableProbe] = None) -> None:
        self.probe = probe or TableProbe()

    async def _run(self, fn: Callable[[Session], T], action: str) -> T:
        if not await self.probe.exists():
            raise StoreUnavailableError(InvoiceDraft.__tablename__)
        try:
            return await run_db(fn)
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Remote draft {action} failed: {e}")
            raise RemoteFailureError(f"Remote draft {action} failed")
        except PydanticValidationError as e:
            logger.error(f"Remote draft {action} read an invalid row: {e.error_count()} error(s)")
            raise RemoteFailureError(f"Remote draft {action} failed: stored draft is invalid")

    @staticmethod
    def _owned(db: Session, user_id: str, draft_id: str) -> Optional[InvoiceDraft]:
        query = select(InvoiceDraft).where(
            InvoiceDraft.id == draft_id,
            InvoiceDraft.user_id == user_id,
        )
        return db.execute(query).scalar_one_or_none()

    async def list(self, user_id: str, draft_type: Optional[DraftType] = None) -> List[Draft]:
        """
        Get all drafts of a user, newest first.

        Args:
            user_id: Owner of the drafts
            draft_type: Optional filter (invoice or offer)
        """
        def _list(db: Session) -> List[Draft]:
            query = select(InvoiceDraft).where(InvoiceDraft.user_id == user_id)
            if draft_type:
                query = query.where(InvoiceDraft.type == DraftType(draft_type).value)
            query = query.order_by(desc(InvoiceDraft.updated_at))
            drafts = []
            for row in db.execute(query).scalars().all():
                try:
                    drafts.append(row_to_draft(row))
                except PydanticValidationError as e:
                    logger.warning(f"Skipping unreadable remote draft {row.id!r}: {e.error_count()} error(s)")
            return drafts

        return await self._run(_list, "list")

    async def get(self, user_id: str, draft_id: str) -> Draft:
        """
        Raises:
            NotFoundError: If the draft does not exist or belongs to another user
        """
        def _get(db: Session) -> Draft:
            row = self._owned(db, user_id, draft_id)
            if not row:
                raise NotFoundError("Draft", draft_id)
            return row_to_draft(row)

        return await self._run(_get, "get")

    async def upsert(self, user_id: str, draft: Draft, preserve_timestamps: bool = False) -> Draft:
        """
        INSERT when the draft has no id (or its id is new for this user),
        otherwise UPDATE the row matching (id, user_id) as a full replace.

        Args:
            user_id: Owner the row is written for
            draft: Draft to persist
            preserve_timestamps: Keep the draft's createdAt/updatedAt as-is
                (used when copying drafts over from device storage)
        """
        def _upsert(db: Session) -> Draft:
            existing = self._owned(db, user_id, draft.id) if draft.id else None
            draft_id = draft.id or str(uuid.uuid4())
            now = utcnow()

            if preserve_timestamps:
                created_at = draft.created_at or now
                updated_at = draft.updated_at or created_at
            elif existing is not None:
                created_at = as_utc(existing.created_at)
                updated_at = stamp_after(as_utc(existing.updated_at))
            else:
                created_at = updated_at = now

            row = draft_to_row(
                draft.model_copy(update={
                    "id": draft_id,
                    "created_at": created_at,
                    "updated_at": updated_at,
                }),
                user_id,
            )
            if existing is not None:
                apply_row(existing, row)
            else:
                db.add(InvoiceDraft(**row))
            db.flush()
            return row_to_draft(row)

        return await self._run(_upsert, "save")

    async def delete(self, user_id: str, draft_id: str) -> bool:
        """Whether a row was actually removed."""
        def _delete(db: Session) -> bool:
            result = db.execute(
                delete(InvoiceDraft).where(
                    InvoiceDraft.id == draft_id,
                    InvoiceDraft.user_id == user_id,
                )
            )
            return (result.rowcount or 0) > 0

        return await self._run(_delete, "delete")
