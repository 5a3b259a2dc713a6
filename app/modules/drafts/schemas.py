"""
Drafts DTOs (Data Transfer Objects)

Drafts travel in camelCase (API payloads and device-local storage) while
Python code uses snake_case attributes; the alias generator bridges the two.
"""

import enum
import uuid
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from .models import DraftType


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class DraftItem(BaseModel):
    """Single line item of a draft"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    description: str = ""
    quantity: float = Field(0, ge=0)
    price: float = Field(0, ge=0)

    @property
    def total(self) -> float:
        return self.quantity * self.price

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class Draft(BaseModel):
    """
    An unsent invoice or offer.

    `id` is None until the first save; after that it never changes.
    Timestamps are stamped by whichever store performs the write.
    """
    id: Optional[str] = Field(None, max_length=36)
    user_id: Optional[str] = None
    business_id: str = Field(..., min_length=1, max_length=64)
    type: DraftType = DraftType.INVOICE
    client_id: Optional[str] = None
    invoice_number: Optional[str] = Field(None, max_length=100)
    issue_date: Optional[str] = None
    due_date: Optional[str] = None
    currency: Optional[str] = None
    tax_rate: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None
    template_id: Optional[str] = None
    signature: Optional[str] = None
    items: List[DraftItem] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("issue_date", "due_date")
    @classmethod
    def check_iso_date(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        try:
            date.fromisoformat(value[:10])
        except ValueError:
            raise ValueError(f"'{value}' is not an ISO calendar date (YYYY-MM-DD)")
        return value[:10]

    @field_validator("currency")
    @classmethod
    def check_currency(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, ""):
            return None
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError(f"'{value}' is not a 3-letter currency code")
        return value

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @property
    def subtotal(self) -> float:
        return sum(item.total for item in self.items)

    @property
    def tax_amount(self) -> float:
        return self.subtotal * (self.tax_rate or 0) / 100

    @property
    def total(self) -> float:
        return self.subtotal + self.tax_amount

    def content(self) -> Dict[str, Any]:
        """Everything except identity, ownership and timestamps."""
        return self.model_dump(
            mode="json", exclude={"id", "user_id", "created_at", "updated_at"}
        )

    def to_storage(self) -> Dict[str, Any]:
        """camelCase JSON-ready dict, as kept in device-local storage."""
        return self.model_dump(mode="json", by_alias=True)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class StorageMode(str, enum.Enum):
    """Where the draft facade currently sends reads and writes"""
    UNINITIALIZED = "uninitialized"
    LOCAL_ONLY = "local_only"
    REMOTE_CAPABLE = "remote_capable"


class StorageModeResponse(BaseModel):
    mode: StorageMode


class DeleteDraftResponse(BaseModel):
    deleted: bool
    message: str


class MigrationOutcome(str, enum.Enum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"
    UNAVAILABLE = "unavailable"


class MigrationResult(BaseModel):
    """Tally of a local-to-remote draft migration"""
    migrated: int = 0
    failed: int = 0
    skipped: int = 0
    outcome: MigrationOutcome
    message: str


class MigrationStatus(BaseModel):
    """What the admin panel shows before migrating"""
    table_exists: bool
    local_drafts: int


class ProvisionTableResponse(BaseModel):
    table_exists: bool
    created: bool
    message: str
