"""
Branch endpoints: operator CRUD, the cached public listing, per-date
availability and search.
"""

from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.db.session import get_db
from ehgezli.schemas.booking import BranchAvailabilityResponse
from ehgezli.schemas.branch import (
    BranchCreate, BranchDetailResponse, BranchListItem, BranchResponse, BranchSearchFilter, BranchUpdate,
)
from ehgezli.services.availability_service import get_branch_availability
from ehgezli.services.branch_service import (
    create_branch, delete_branch, get_branch_detail, list_all_branches,
    list_restaurant_branches, search_branches, update_branch,
)
from ehgezli.services.cache_service import (
    commit_and_invalidate, get_cached_branches, set_cached_branches,
)
from ehgezli.services.slots import parse_hhmm
from ehgezli.core.security import Principal, get_current_restaurant_id, get_optional_principal
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["Branches"])


@router.post("/branch", response_model=BranchResponse, status_code=status.HTTP_201_CREATED)
async def create_branch_endpoint(
    data: BranchCreate,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    """Create a branch. Booking settings default from its hours and capacity."""
    branch = await create_branch(db, restaurant_id, data)
    await commit_and_invalidate(db)
    return branch


@router.get("/branch", response_model=list[BranchResponse])
async def list_own_branches(
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await list_restaurant_branches(db, restaurant_id)


@router.get("/branches/all", response_model=list[BranchListItem])
async def list_all_branches_endpoint(db: AsyncSession = Depends(get_db)):
    """
    Every branch with its restaurant's listing fields.
    Cached in Redis; invalidated whenever a branch or profile changes.
    """
    cached = await get_cached_branches()
    if cached is not None:
        logger.info("branches_list_cache_hit", count=len(cached))
        return cached

    items = await list_all_branches(db)
    await set_cached_branches(items)
    return items


@router.post("/branch/search", response_model=list[BranchListItem])
async def search_branches_endpoint(
    filters: BranchSearchFilter,
    principal: Optional[Principal] = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Filter and rank branches. Logged-in customers also get their saved
    branches flagged and, with permission, distance from their last location.
    """
    user_id = principal.id if principal is not None and principal.is_user else None
    return await search_branches(db, filters, user_id)


@router.get("/branch/{branch_id}", response_model=BranchDetailResponse)
async def read_branch(branch_id: int, db: AsyncSession = Depends(get_db)):
    return await get_branch_detail(db, branch_id)


@router.put("/branch/{branch_id}", response_model=BranchResponse)
async def update_branch_endpoint(
    branch_id: int,
    data: BranchUpdate,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    branch = await update_branch(db, branch_id, restaurant_id, data)
    await commit_and_invalidate(db)
    return branch


@router.delete("/branch/{branch_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_branch_endpoint(
    branch_id: int,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a branch and everything booked against it."""
    await delete_branch(db, branch_id, restaurant_id)
    await commit_and_invalidate(db)


@router.get("/branch/{branch_id}/availability/{day}", response_model=BranchAvailabilityResponse)
async def branch_availability(
    branch_id: int,
    day: date,
    party_size: int = Query(1, ge=1, le=50),
    time: Optional[str] = Query(None, description="HH:MM, picks the closest available slot"),
    db: AsyncSession = Depends(get_db),
):
    """Slots of one date with remaining seats and tables, not cached."""
    at = None
    if time is not None:
        try:
            at = datetime.combine(day, parse_hhmm(time))
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=str(exc),
            ) from exc
    return await get_branch_availability(db, branch_id, day, party_size, at)
