"""
Customer account endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.db.session import get_db
from ehgezli.schemas.user import (
    LocationPermissionResponse, LocationPermissionUpdate, UserResponse, UserUpdate,
)
from ehgezli.services.user_service import delete_user, get_user, set_location_permission, update_user
from ehgezli.core.security import get_current_user_id

router = APIRouter(prefix="/user", tags=["Users"])


@router.get("", response_model=UserResponse)
async def read_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, user_id)


@router.put("", response_model=UserResponse)
async def update_current_user(
    data: UserUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await update_user(db, user_id, data)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete the account. Past bookings remain with the restaurants as guest bookings."""
    await delete_user(db, user_id)


@router.get("/location-permission", response_model=LocationPermissionResponse)
async def read_location_permission(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_user(db, user_id)


@router.put("/location-permission", response_model=LocationPermissionResponse)
async def update_location_permission(
    data: LocationPermissionUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await set_location_permission(db, user_id, data)
