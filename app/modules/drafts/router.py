"""
Drafts Router - API endpoints for invoice and offer drafts
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query

from app.modules.users.auth import TokenData, require_admin
from .dependencies import DraftStores, get_draft_facade, get_draft_stores
from .facade import DraftFacade
from .models import DraftType
from .schemas import (
    DeleteDraftResponse,
    Draft,
    MigrationResult,
    MigrationStatus,
    ProvisionTableResponse,
    StorageModeResponse,
)

router = APIRouter(prefix="/drafts", tags=["drafts"])
admin_router = APIRouter(prefix="/admin/drafts", tags=["drafts-admin"])


@router.get("", response_model=List[Draft])
async def get_all_drafts(
    type: Optional[DraftType] = Query(None, description="Filter by draft type (invoice or offer)"),
    facade: DraftFacade = Depends(get_draft_facade),
):
    """
    Get all drafts for the current user, newest first.
    """
    return await facade.list(type)


@router.get("/storage", response_model=StorageModeResponse)
async def get_storage_mode(facade: DraftFacade = Depends(get_draft_facade)):
    """
    Where drafts are currently kept: on this device or in the database.
    """
    return StorageModeResponse(mode=await facade.current_mode())


@router.post("/storage/refresh", response_model=StorageModeResponse)
async def refresh_storage_mode(facade: DraftFacade = Depends(get_draft_facade)):
    """
    Check again whether the database table has been created since the
    session started, and switch to it if so.
    """
    facade.require_user()
    return StorageModeResponse(mode=await facade.refresh_capability())


@router.get("/{draft_id}", response_model=Draft)
async def get_draft(
    draft_id: str,
    facade: DraftFacade = Depends(get_draft_facade),
):
    """
    Get a specific draft by ID.
    """
    return await facade.get(draft_id)


@router.post("", response_model=Draft)
async def save_draft(
    draft: Draft,
    facade: DraftFacade = Depends(get_draft_facade),
):
    """
    Save a draft. Without an id a new draft is created; with an id the
    stored draft is replaced as a whole.
    """
    return await facade.save(draft)


@router.delete("/{draft_id}", response_model=DeleteDraftResponse)
async def delete_draft(
    draft_id: str,
    facade: DraftFacade = Depends(get_draft_facade),
):
    """
    Delete a draft. Deleting an unknown id is not an error.
    """
    deleted = await facade.delete(draft_id)
    message = "Draft deleted successfully" if deleted else "Draft not found"
    return DeleteDraftResponse(deleted=deleted, message=message)


@admin_router.get("/status", response_model=MigrationStatus)
async def get_migration_status(
    current_user: TokenData = Depends(require_admin),
    stores: DraftStores = Depends(get_draft_stores),
):
    """
    Check whether the drafts table exists and how many local drafts the
    current user has waiting to be migrated. (Admin only)
    """
    return await stores.migrator().status(current_user.user_id)


@admin_router.post("/table", response_model=ProvisionTableResponse)
async def create_drafts_table(
    current_user: TokenData = Depends(require_admin),
    stores: DraftStores = Depends(get_draft_stores),
):
    """
    Create the drafts table if it does not exist yet. (Admin only)
    """
    if await stores.probe.exists():
        return ProvisionTableResponse(
            table_exists=True, created=False, message="The invoice_drafts table already exists."
        )
    await stores.probe.create_table()
    return ProvisionTableResponse(
        table_exists=True, created=True, message="The invoice_drafts table has been created successfully."
    )


@admin_router.post("/migrate", response_model=MigrationResult)
async def migrate_drafts(
    current_user: TokenData = Depends(require_admin),
    stores: DraftStores = Depends(get_draft_stores),
):
    """
    Copy the current user's local drafts into the drafts table. Local
    copies are kept. (Admin only)
    """
    result = await stores.migrator().migrate(current_user.user_id)
    # The user's facade may still be local-only from before the table existed
    await stores.registry.for_user(current_user.user_id).refresh_capability()
    return result
