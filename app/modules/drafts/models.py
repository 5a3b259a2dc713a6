"""
Invoice Draft Model - remote, cross-device storage for unfinished invoices and offers
"""

import enum
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import CheckConstraint, DateTime, Float, Index, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.config import config
from app.core.db.base import Base


class DraftType(str, enum.Enum):
    """Type of draft document"""
    INVOICE = "invoice"
    OFFER = "offer"


class InvoiceDraft(Base):
    """
    One row per draft. The primary key is the client-minted draft id, so a
    draft keeps its identity when it is copied over from device storage.
    """

    __tablename__ = config.drafts_table_name
    __table_args__ = (
        CheckConstraint("type IN ('invoice', 'offer')", name="ck_invoice_drafts_type"),
        CheckConstraint("tax_rate IS NULL OR tax_rate >= 0", name="ck_invoice_drafts_tax_rate"),
        Index("ix_invoice_drafts_user_updated", "user_id", "updated_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    # Owner in the hosted auth provider (auth.users); not a local table
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    business_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default=DraftType.INVOICE.value)

    client_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    invoice_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    issue_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    due_date: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    currency: Mapped[Optional[str]] = mapped_column(String(3), nullable=True)
    tax_rate: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    template_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    signature: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    items: Mapped[List[Any]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<InvoiceDraft(id='{self.id}', user_id='{self.user_id}', type={self.type})>"
