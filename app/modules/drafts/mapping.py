"""
Translation between in-memory drafts and invoice_drafts rows.

Both directions are total: every Draft field has exactly one column and
every column maps back, so a draft survives a round trip unchanged.
"""

from typing import Any, Dict, Mapping, Optional, Union

from .models import InvoiceDraft
from .schemas import Draft

FIELD_TO_COLUMN: Dict[str, str] = {
    "id": "id",
    "userId": "user_id",
    "businessId": "business_id",
    "type": "type",
    "clientId": "client_id",
    "invoiceNumber": "invoice_number",
    "issueDate": "issue_date",
    "dueDate": "due_date",
    "currency": "currency",
    "taxRate": "tax_rate",
    "notes": "notes",
    "templateId": "template_id",
    "signature": "signature",
    "items": "items",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
}

COLUMN_TO_FIELD: Dict[str, str] = {column: field for field, column in FIELD_TO_COLUMN.items()}


def draft_to_row(draft: Draft, user_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Draft -> column dict. `user_id` overrides whatever the draft carries,
    so rows are always owned by the caller doing the write.
    """
    row = {
        "id": draft.id,
        "user_id": user_id if user_id is not None else draft.user_id,
        "business_id": draft.business_id,
        "type": draft.type.value,
        "client_id": draft.client_id,
        "invoice_number": draft.invoice_number,
        "issue_date": draft.issue_date,
        "due_date": draft.due_date,
        "currency": draft.currency,
        "tax_rate": draft.tax_rate,
        "notes": draft.notes,
        "template_id": draft.template_id,
        "signature": draft.signature,
        "items": [item.model_dump(mode="json") for item in draft.items],
        "created_at": draft.created_at,
        "updated_at": draft.updated_at,
    }
    return row


def row_to_draft(row: Union[InvoiceDraft, Mapping[str, Any]]) -> Draft:
    """Column dict or ORM row -> Draft. Naive timestamps are read as UTC."""
    if isinstance(row, InvoiceDraft):
        values = {column: getattr(row, column) for column in COLUMN_TO_FIELD}
    else:
        values = dict(row)

    unknown = set(values) - set(COLUMN_TO_FIELD)
    if unknown:
        raise KeyError(f"Unmapped invoice_drafts column(s): {', '.join(sorted(unknown))}")

    return Draft.model_validate(
        {COLUMN_TO_FIELD[column]: value for column, value in values.items()}
    )


def apply_row(target: InvoiceDraft, row: Mapping[str, Any]) -> InvoiceDraft:
    """Copy a column dict onto an ORM instance (full replace, not a patch)."""
    for column, value in row.items():
        setattr(target, column, value)
    return target
