"""
Restaurant endpoints: the public directory and the operator's own
account and profile.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.db.session import get_db
from ehgezli.schemas.restaurant import (
    RestaurantDetailResponse, RestaurantProfileResponse, RestaurantProfileUpdate, RestaurantResponse,
    RestaurantUserResponse, RestaurantUserUpdate,
)
from ehgezli.services.restaurant_service import (
    delete_restaurant_user, get_profile, get_restaurant_detail, get_restaurant_user, list_restaurants,
    update_profile, update_restaurant_user,
)
from ehgezli.services.cache_service import commit_and_invalidate
from ehgezli.core.security import get_current_restaurant_id

router = APIRouter(tags=["Restaurants"])


@router.get("/restaurants", response_model=list[RestaurantResponse])
async def list_restaurants_endpoint(db: AsyncSession = Depends(get_db)):
    return await list_restaurants(db)


@router.get("/restaurant/detailed/{restaurant_id}", response_model=RestaurantDetailResponse)
async def restaurant_detail(restaurant_id: int, db: AsyncSession = Depends(get_db)):
    """Public restaurant page: profile plus every branch."""
    return await get_restaurant_detail(db, restaurant_id)


@router.get("/restaurant", response_model=RestaurantProfileResponse)
async def read_own_profile(
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_profile(db, restaurant_id)


@router.put("/restaurant", response_model=RestaurantProfileResponse)
async def update_own_profile(
    data: RestaurantProfileUpdate,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    """Update the public profile. Cached branch listings carry profile fields."""
    profile = await update_profile(db, restaurant_id, data)
    await commit_and_invalidate(db)
    return profile


@router.get("/restaurant-user", response_model=RestaurantUserResponse)
async def read_restaurant_user(
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_restaurant_user(db, restaurant_id)


@router.put("/restaurant-user", response_model=RestaurantUserResponse)
async def update_restaurant_user_endpoint(
    data: RestaurantUserUpdate,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    restaurant = await update_restaurant_user(db, restaurant_id, data)
    await commit_and_invalidate(db)
    return restaurant


@router.delete("/restaurant-user", status_code=status.HTTP_204_NO_CONTENT)
async def delete_restaurant_user_endpoint(
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete the operator account, its profile and all of its branches."""
    await delete_restaurant_user(db, restaurant_id)
    await commit_and_invalidate(db)
