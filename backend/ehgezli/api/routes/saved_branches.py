"""
Saved (favourite) branch endpoints for customers.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.db.session import get_db
from ehgezli.schemas.branch import BranchListItem
from ehgezli.services.saved_branch_service import (
    list_saved_branch_ids, list_saved_branches, save_branch, unsave_branch,
)
from ehgezli.core.security import get_current_user_id

router = APIRouter(prefix="/saved-branch", tags=["Saved branches"])


@router.get("", response_model=list[BranchListItem])
async def list_saved(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await list_saved_branches(db, user_id)


@router.get("/ids", response_model=list[int])
async def list_saved_ids(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await list_saved_branch_ids(db, user_id)


@router.post("/{branch_id}", status_code=status.HTTP_201_CREATED)
async def save(
    branch_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Save a branch. Saving an already saved branch is a no-op."""
    saved = await save_branch(db, user_id, branch_id)
    return {"branch_id": saved.branch_id, "saved": True}


@router.delete("/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unsave(
    branch_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    await unsave_branch(db, user_id, branch_id)
