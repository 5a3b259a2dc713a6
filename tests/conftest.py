import os
from datetime import datetime, timezone

import pytest
import pytest_asyncio

# Test configuration must be in place before the application is imported
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DRAFTS_RETRY_BASE_DELAY", "0")
os.environ.setdefault("DRAFTS_LIST_TIMEOUT", "5")

from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.core.db import engine as db_engine
from app.main import app
from app.modules.drafts.dependencies import DraftStores, get_draft_stores
from app.modules.drafts.local_store import LocalDraftStore
from app.modules.drafts.models import InvoiceDraft
from app.modules.drafts.notifications import RecordingNotifier
from app.modules.drafts.probe import TableProbe
from app.modules.drafts.remote_store import RemoteDraftStore
from app.modules.drafts.schemas import Draft, DraftItem
from app.modules.users.auth import AuthService


@pytest.fixture(scope='function')
def database(tmp_path):
    """Bind the engine to a fresh SQLite file for each test (no tables yet)."""
    url = f"sqlite+aiosqlite:///{tmp_path / 'drafts.db'}"
    db_engine.configure_engine(url)
    yield url


@pytest_asyncio.fixture(scope='function')
async def provisioned(database):
    """Database with the invoice_drafts table created."""
    await TableProbe().create_table()
    yield database
    await db_engine.dispose_engine()


@pytest.fixture(scope='function')
def local_store(tmp_path):
    return LocalDraftStore(tmp_path / "local_drafts")


@pytest.fixture(scope='function')
def probe():
    return TableProbe()


@pytest.fixture(scope='function')
def remote_store(probe):
    return RemoteDraftStore(probe)


@pytest.fixture(scope='function')
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope='function')
def make_draft():
    """Factory for unsaved drafts with sensible defaults."""
    def _make(**overrides) -> Draft:
        values = {
            "business_id": "b1",
            "type": "invoice",
            "invoice_number": "INV-001",
            "client_id": "c1",
            "issue_date": "2026-10-01",
            "due_date": "2026-10-31",
            "currency": "EUR",
            "tax_rate": 19.0,
            "notes": "Thanks for your business",
            "template_id": "classic",
            "items": [DraftItem(description="Design", quantity=2, price=50)],
        }
        values.update(overrides)
        return Draft(**values)

    return _make


@pytest.fixture(scope='function')
def seed_invalid_row():
    """Write an invoice_drafts row that no longer passes draft validation."""
    async def _seed(user_id: str, draft_id: str) -> None:
        def _insert(db: Session) -> None:
            stamp = datetime(2026, 1, 1, tzinfo=timezone.utc)
            db.add(InvoiceDraft(
                id=draft_id,
                user_id=user_id,
                business_id="b1",
                type="invoice",
                currency="us",
                items=[],
                created_at=stamp,
                updated_at=stamp,
            ))

        await db_engine.run_db(_insert)

    return _seed


def auth_headers(user_id: str, role: str = "STAFF") -> dict:
    token = AuthService.create_access_token(
        {"sub": f"user-{user_id}", "user_id": user_id, "role": role}
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope='function')
def stores(tmp_path, database):
    """Fresh process-wide stores, bound to a temp directory and database."""
    test_stores = DraftStores(local_dir=str(tmp_path / "device"))
    app.dependency_overrides[get_draft_stores] = lambda: test_stores
    yield test_stores
    app.dependency_overrides.clear()


@pytest.fixture(scope='function')
def client(stores):
    """Create test client."""
    return TestClient(app)


@pytest.fixture(scope='function')
def headers():
    """Build Authorization headers for a user id (and optional role)."""
    return auth_headers
