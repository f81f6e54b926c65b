"""
Restaurant accounts and profiles: public listing, detail and self-service edits.
"""

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from fastapi import HTTPException, status

from ehgezli.models.booking import Booking
from ehgezli.models.branch import RestaurantBranch
from ehgezli.models.password_reset import PasswordResetToken
from ehgezli.models.restaurant import RestaurantProfile, RestaurantUser
from ehgezli.schemas.restaurant import RestaurantProfileUpdate, RestaurantUserUpdate
from ehgezli.services.branch_service import purge_branch
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)


async def list_restaurants(db: AsyncSession) -> list[RestaurantUser]:
    result = await db.execute(
        select(RestaurantUser)
        .options(selectinload(RestaurantUser.profile))
        .order_by(RestaurantUser.name, RestaurantUser.id)
    )
    return list(result.scalars().all())


async def get_restaurant_detail(db: AsyncSession, restaurant_id: int) -> RestaurantUser:
    """Restaurant with its profile and branches eagerly loaded."""
    result = await db.execute(
        select(RestaurantUser)
        .where(RestaurantUser.id == restaurant_id)
        .options(selectinload(RestaurantUser.profile), selectinload(RestaurantUser.branches))
        .execution_options(populate_existing=True)
    )
    restaurant = result.scalar_one_or_none()
    if restaurant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Restaurant {restaurant_id} not found",
        )
    return restaurant


async def get_restaurant_user(db: AsyncSession, restaurant_id: int) -> RestaurantUser:
    restaurant = await db.get(RestaurantUser, restaurant_id)
    if restaurant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")
    return restaurant


async def update_restaurant_user(
    db: AsyncSession, restaurant_id: int, data: RestaurantUserUpdate
) -> RestaurantUser:
    restaurant = await get_restaurant_user(db, restaurant_id)
    restaurant.name = data.name
    await db.flush()
    await db.refresh(restaurant)
    logger.info("restaurant_user_updated", restaurant_id=restaurant_id)
    return restaurant


async def delete_restaurant_user(db: AsyncSession, restaurant_id: int) -> None:
    """
    Delete an operator account with its profile and every branch, including
    the branches' slots, overrides, settings, bookings and saves.
    """
    await get_restaurant_user(db, restaurant_id)

    result = await db.execute(
        select(RestaurantBranch.id).where(RestaurantBranch.restaurant_id == restaurant_id)
    )
    branch_ids = list(result.scalars().all())
    for branch_id in branch_ids:
        await purge_branch(db, branch_id)

    await db.execute(
        update(Booking)
        .where(Booking.restaurant_user_id == restaurant_id)
        .values(restaurant_user_id=None)
    )
    await db.execute(
        delete(PasswordResetToken).where(
            PasswordResetToken.account_type == "restaurant",
            PasswordResetToken.account_id == restaurant_id,
        )
    )
    await db.execute(delete(RestaurantProfile).where(RestaurantProfile.restaurant_id == restaurant_id))
    await db.execute(delete(RestaurantUser).where(RestaurantUser.id == restaurant_id))
    await db.flush()

    logger.info("restaurant_user_deleted", restaurant_id=restaurant_id, branches=len(branch_ids))


async def get_profile(db: AsyncSession, restaurant_id: int) -> RestaurantProfile:
    result = await db.execute(
        select(RestaurantProfile).where(RestaurantProfile.restaurant_id == restaurant_id)
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Restaurant profile not found",
        )
    return profile


async def update_profile(
    db: AsyncSession, restaurant_id: int, data: RestaurantProfileUpdate
) -> RestaurantProfile:
    """Apply the given profile fields and mark the profile complete."""
    profile = await get_profile(db, restaurant_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(profile, field, value)
    profile.is_profile_complete = bool(
        profile.about and profile.description and profile.cuisine and profile.price_range
    )
    await db.flush()
    await db.refresh(profile)
    logger.info("restaurant_profile_updated", restaurant_id=restaurant_id, fields=sorted(changes))
    return profile
