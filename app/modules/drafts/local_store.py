"""
LocalDraftStore - device-local draft storage.

One JSON file per user (`<prefix>_<user_id>.json`) holding a camelCase array
of drafts. Every write rewrites the whole file. Storage problems never reach
the caller as exceptions: reads degrade to empty results, writes report
None/False, and a warning is logged.
"""

import json
import logging
import os
import re
import shutil
import tempfile
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError

from app.core.exceptions import NotFoundError
from .schemas import Draft

logger = logging.getLogger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def stamp_after(previous: Optional[datetime]) -> datetime:
    """Current time, but never earlier than a previously stored timestamp."""
    now = utcnow()
    if previous is not None and previous > now:
        return previous
    return now


class LocalDraftStore:
    """
    Usage:
        store = LocalDraftStore("data/local_drafts")
        draft = await store.upsert(user_id, Draft(business_id="b1"))
    """

    def __init__(
        self,
        directory: Union[str, Path],
        key_prefix: str = "invoice_drafts_local",
    ) -> None:
        self.directory = Path(directory)
        self.key_prefix = key_prefix
        self._lock = threading.Lock()

    # ---------------- file I/O ---------------- #

    def path_for(self, user_id: str) -> Path:
        safe_user = _UNSAFE_KEY_CHARS.sub("_", str(user_id))
        return self.directory / f"{self.key_prefix}_{safe_user}.json"

    def _read_records(self, user_id: str) -> Tuple[List[Dict[str, Any]], bool]:
        """
        Returns (records, readable). `readable` is False when the file exists
        but could not be read, in which case it must not be overwritten.
        """
        path = self.path_for(user_id)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return [], True
        except (json.JSONDecodeError, UnicodeDecodeError):
            # Corrupt or undecodable file: set it aside and start over with an empty list
            corrupt = path.with_suffix(".corrupt.json")
            logger.warning(f"Local drafts file {path} is corrupt; moved to {corrupt}")
            try:
                shutil.move(str(path), str(corrupt))
            except OSError as e:
                logger.warning(f"Could not set aside corrupt drafts file {path}: {e}")
                return [], False
            return [], True
        except OSError as e:
            logger.warning(f"Could not read local drafts for user {user_id}: {e}")
            return [], False

        if not isinstance(data, list):
            logger.warning(f"Local drafts file {path} does not hold a list; ignoring it")
            return [], True
        return [r for r in data if isinstance(r, dict)], True

    def _write_records(self, user_id: str, records: List[Dict[str, Any]]) -> None:
        """Atomic replace of the user's file. Raises OSError on failure."""
        path = self.path_for(user_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(records, ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, path)
        except OSError:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise

    @staticmethod
    def _parse(record: Dict[str, Any]) -> Optional[Draft]:
        try:
            return Draft.model_validate(record)
        except PydanticValidationError as e:
            logger.warning(f"Skipping unreadable local draft {record.get('id')!r}: {e.error_count()} error(s)")
            return None

    @staticmethod
    def _index_of(records: List[Dict[str, Any]], draft_id: str) -> Optional[int]:
        for idx, record in enumerate(records):
            if str(record.get("id")) == str(draft_id):
                return idx
        return None

    # ---------------- sync operations ---------------- #

    def _list_sync(self, user_id: str) -> List[Draft]:
        records, _ = self._read_records(user_id)
        drafts = []
        for record in records:
            draft = self._parse(record)
            if draft is not None:
                drafts.append(draft)
        return drafts

    def _upsert_sync(self, user_id: str, draft: Draft) -> Optional[Draft]:
        with self._lock:
            records, readable = self._read_records(user_id)
            if not readable:
                logger.warning(f"Local draft save skipped for user {user_id}: storage unreadable")
                return None

            if draft.id is None:
                now = utcnow()
                saved = draft.model_copy(update={
                    "id": str(uuid.uuid4()),
                    "user_id": user_id,
                    "created_at": now,
                    "updated_at": now,
                })
                records.insert(0, saved.to_storage())
            else:
                idx = self._index_of(records, draft.id)
                existing = self._parse(records[idx]) if idx is not None else None
                if existing is not None:
                    created_at = existing.created_at or utcnow()
                    updated_at = stamp_after(existing.updated_at)
                else:
                    # Nothing stored yet: client-supplied timestamps are not trusted
                    created_at = updated_at = utcnow()
                saved = draft.model_copy(update={
                    "user_id": user_id,
                    "created_at": created_at,
                    "updated_at": updated_at,
                })
                if idx is not None:
                    records[idx] = saved.to_storage()
                else:
                    # Unknown id: keep the draft rather than reject it
                    records.insert(0, saved.to_storage())

            try:
                self._write_records(user_id, records)
            except OSError as e:
                logger.warning(f"Could not save local draft for user {user_id}: {e}")
                return None
            return saved

    def _delete_sync(self, user_id: str, draft_id: str) -> bool:
        with self._lock:
            records, readable = self._read_records(user_id)
            if not readable:
                return False
            remaining = [r for r in records if str(r.get("id")) != str(draft_id)]
            if len(remaining) == len(records):
                return False
            try:
                self._write_records(user_id, remaining)
            except OSError as e:
                logger.warning(f"Could not delete local draft {draft_id} for user {user_id}: {e}")
                return False
            return True

    # ---------------- async API ---------------- #

    async def list(self, user_id: str) -> List[Draft]:
        """All drafts of the user, in storage order."""
        return await run_in_threadpool(self._list_sync, user_id)

    async def get(self, user_id: str, draft_id: str) -> Draft:
        """
        Raises:
            NotFoundError: If the user has no draft with this id
        """
        for draft in await self.list(user_id):
            if draft.id == draft_id:
                return draft
        raise NotFoundError("Draft", draft_id)

    async def upsert(self, user_id: str, draft: Draft) -> Optional[Draft]:
        """
        Insert (no id: a new id and both timestamps are generated) or replace
        by id (updatedAt refreshed, createdAt kept). Returns None when the
        draft could not be persisted.
        """
        return await run_in_threadpool(self._upsert_sync, user_id, draft)

    async def delete(self, user_id: str, draft_id: str) -> bool:
        """Whether a draft was actually removed."""
        return await run_in_threadpool(self._delete_sync, user_id, draft_id)

    async def count(self, user_id: str) -> int:
        records, _ = await run_in_threadpool(self._read_records, user_id)
        return len(records)
