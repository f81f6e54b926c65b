"""
Customer favourites.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ehgezli.models.branch import RestaurantBranch
from ehgezli.models.saved_branch import SavedBranch
from ehgezli.services.availability_service import get_branch_or_404
from ehgezli.services.branch_service import list_item, listing_query, saved_branch_ids
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)


async def list_saved_branches(db: AsyncSession, user_id: int) -> list[dict]:
    """Saved branches as list items, most recently saved first."""
    result = await db.execute(
        listing_query()
        .join(SavedBranch, SavedBranch.branch_id == RestaurantBranch.id)
        .where(SavedBranch.user_id == user_id)
        .order_by(SavedBranch.created_at.desc(), SavedBranch.id.desc())
    )
    items = [list_item(*row) for row in result.all()]
    for item in items:
        item["is_saved"] = True
    return items


async def list_saved_branch_ids(db: AsyncSession, user_id: int) -> list[int]:
    return sorted(await saved_branch_ids(db, user_id))


async def save_branch(db: AsyncSession, user_id: int, branch_id: int) -> SavedBranch:
    """Save a branch. Saving twice returns the existing row."""
    await get_branch_or_404(db, branch_id)

    result = await db.execute(
        select(SavedBranch).where(SavedBranch.user_id == user_id, SavedBranch.branch_id == branch_id)
    )
    saved = result.scalar_one_or_none()
    if saved is not None:
        return saved

    saved = SavedBranch(user_id=user_id, branch_id=branch_id)
    db.add(saved)
    await db.flush()
    await db.refresh(saved)
    logger.info("branch_saved", user_id=user_id, branch_id=branch_id)
    return saved


async def unsave_branch(db: AsyncSession, user_id: int, branch_id: int) -> None:
    result = await db.execute(
        delete(SavedBranch).where(SavedBranch.user_id == user_id, SavedBranch.branch_id == branch_id)
    )
    if result.rowcount == 0:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Branch is not in your saved list",
        )
    logger.info("branch_unsaved", user_id=user_id, branch_id=branch_id)
