"""
Branch CRUD, the public branch listing and branch search.

Search pipeline
===============
  1. SQL filters: city, cuisine, price range, free text (restaurant name,
     cuisine or address)
  2. distance from the caller (explicit coordinates, else the customer's
     stored location when they granted permission)
  3. availability on the requested date, counting slots that start within
     SEARCH_WINDOW_MINUTES of the requested time and fit the party
  4. saved flag for authenticated customers
  5. ranking (see services.ranking)
"""

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ehgezli.models.booking import Booking, BookingOverride, BookingSettings, TimeSlot
from ehgezli.models.branch import RestaurantBranch
from ehgezli.models.restaurant import RestaurantProfile, RestaurantUser
from ehgezli.models.saved_branch import SavedBranch
from ehgezli.models.user import User
from ehgezli.schemas.branch import (
    BookingSettingsResponse, BranchCreate, BranchSearchFilter, BranchUpdate,
)
from ehgezli.services.availability_service import get_branch_or_404, slot_availability
from ehgezli.services.ranking import count_available_slots, haversine_km, rank_branches
from ehgezli.services.slots import parse_hhmm
from ehgezli.core.config import get_settings
from ehgezli.core.metrics import record_search
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


async def create_branch(db: AsyncSession, restaurant_id: int, data: BranchCreate) -> RestaurantBranch:
    """Create a branch and its booking settings (seeded from the branch unless given)."""
    if await db.get(RestaurantUser, restaurant_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Restaurant not found")

    branch = RestaurantBranch(
        restaurant_id=restaurant_id,
        **data.model_dump(exclude={"booking_settings"}),
    )
    db.add(branch)
    await db.flush()

    if data.booking_settings is not None:
        seeded = data.booking_settings.model_dump()
    else:
        seeded = {
            "open_time": data.opening_time,
            "close_time": data.closing_time,
            "interval": data.reservation_duration,
            "max_seats_per_slot": data.seats_count,
            "max_tables_per_slot": data.tables_count,
        }
    db.add(BookingSettings(branch_id=branch.id, **seeded))
    await db.flush()
    await db.refresh(branch)

    logger.info("branch_created", branch_id=branch.id, restaurant_id=restaurant_id, city=branch.city)
    return branch


async def list_restaurant_branches(db: AsyncSession, restaurant_id: int) -> list[RestaurantBranch]:
    result = await db.execute(
        select(RestaurantBranch)
        .where(RestaurantBranch.restaurant_id == restaurant_id)
        .order_by(RestaurantBranch.id)
    )
    return list(result.scalars().all())


async def get_owned_branch(db: AsyncSession, branch_id: int, restaurant_id: int) -> RestaurantBranch:
    """404 if the branch is missing, 403 if it belongs to another restaurant."""
    branch = await get_branch_or_404(db, branch_id)
    if branch.restaurant_id != restaurant_id:
        logger.warning(
            "branch_access_denied", branch_id=branch_id, restaurant_id=restaurant_id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not own this branch",
        )
    return branch


async def update_branch(
    db: AsyncSession, branch_id: int, restaurant_id: int, data: BranchUpdate
) -> RestaurantBranch:
    branch = await get_owned_branch(db, branch_id, restaurant_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(branch, field, value)
    await db.flush()
    await db.refresh(branch)
    logger.info("branch_updated", branch_id=branch.id, fields=sorted(changes))
    return branch


async def purge_branch(db: AsyncSession, branch_id: int) -> None:
    """Remove a branch with its settings, overrides, slots, bookings and saves."""
    slot_ids = select(TimeSlot.id).where(TimeSlot.branch_id == branch_id)
    await db.execute(delete(Booking).where(Booking.time_slot_id.in_(slot_ids)))
    await db.execute(delete(TimeSlot).where(TimeSlot.branch_id == branch_id))
    await db.execute(delete(BookingOverride).where(BookingOverride.branch_id == branch_id))
    await db.execute(delete(BookingSettings).where(BookingSettings.branch_id == branch_id))
    await db.execute(delete(SavedBranch).where(SavedBranch.branch_id == branch_id))
    await db.execute(delete(RestaurantBranch).where(RestaurantBranch.id == branch_id))


async def delete_branch(db: AsyncSession, branch_id: int, restaurant_id: int) -> None:
    await get_owned_branch(db, branch_id, restaurant_id)
    await purge_branch(db, branch_id)
    await db.flush()

    logger.info(
        "branch_deleted",
        branch_id=branch_id,
        restaurant_id=restaurant_id,
    )


def listing_query():
    return (
        select(RestaurantBranch, RestaurantUser.name, RestaurantProfile)
        .join(RestaurantUser, RestaurantBranch.restaurant_id == RestaurantUser.id)
        .outerjoin(RestaurantProfile, RestaurantProfile.restaurant_id == RestaurantUser.id)
    )


def list_item(branch: RestaurantBranch, restaurant_name: str, profile: Optional[RestaurantProfile]) -> dict:
    return {
        "branch_id": branch.id,
        "restaurant_id": branch.restaurant_id,
        "restaurant_name": restaurant_name,
        "address": branch.address,
        "city": branch.city,
        "latitude": branch.latitude,
        "longitude": branch.longitude,
        "cuisine": profile.cuisine if profile else "",
        "price_range": profile.price_range if profile else "",
        "logo": profile.logo if profile else "",
        "distance": None,
        "available_slots": None,
        "is_saved": False,
    }


async def get_branch_detail(db: AsyncSession, branch_id: int) -> dict:
    """Public branch details: the branch, its restaurant profile and booking settings."""
    result = await db.execute(listing_query().where(RestaurantBranch.id == branch_id))
    row = result.first()
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Branch {branch_id} not found",
        )
    branch, restaurant_name, profile = row

    booking_settings = await db.execute(
        select(BookingSettings).where(BookingSettings.branch_id == branch_id)
    )
    booking_settings = booking_settings.scalar_one_or_none()

    return {
        "id": branch.id,
        "restaurant_id": branch.restaurant_id,
        "address": branch.address,
        "city": branch.city,
        "latitude": branch.latitude,
        "longitude": branch.longitude,
        "phone": branch.phone,
        "seats_count": branch.seats_count,
        "tables_count": branch.tables_count,
        "opening_time": branch.opening_time,
        "closing_time": branch.closing_time,
        "reservation_duration": branch.reservation_duration,
        "restaurant_name": restaurant_name,
        "about": profile.about if profile else "",
        "description": profile.description if profile else "",
        "cuisine": profile.cuisine if profile else "",
        "price_range": profile.price_range if profile else "",
        "logo": profile.logo if profile else "",
        "settings": (
            BookingSettingsResponse.model_validate(booking_settings) if booking_settings else None
        ),
    }


async def list_all_branches(db: AsyncSession) -> list[dict]:
    """Every branch as a list item, in creation order."""
    result = await db.execute(listing_query().order_by(RestaurantBranch.id))
    return [list_item(*row) for row in result.all()]


async def saved_branch_ids(db: AsyncSession, user_id: int) -> set[int]:
    result = await db.execute(select(SavedBranch.branch_id).where(SavedBranch.user_id == user_id))
    return set(result.scalars().all())


async def _caller_location(
    db: AsyncSession, filters: BranchSearchFilter, user_id: Optional[int]
) -> tuple[Optional[float], Optional[float]]:
    if filters.user_latitude is not None and filters.user_longitude is not None:
        return filters.user_latitude, filters.user_longitude
    if user_id is None:
        return None, None
    user = await db.get(User, user_id)
    if user is None or not user.location_permission_granted:
        return None, None
    return user.last_latitude, user.last_longitude


def _escape_like(text: str) -> str:
    """Make % and _ in user input match themselves."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


async def search_branches(
    db: AsyncSession, filters: BranchSearchFilter, user_id: Optional[int] = None
) -> list[dict]:
    """Filter, annotate and rank branches. `user_id` is set for customer callers."""
    query = listing_query()
    if filters.city:
        query = query.where(func.lower(RestaurantBranch.city) == filters.city.strip().lower())
    if filters.cuisine:
        query = query.where(func.lower(RestaurantProfile.cuisine) == filters.cuisine.strip().lower())
    if filters.price_range:
        query = query.where(RestaurantProfile.price_range == filters.price_range)
    if filters.search and filters.search.strip():
        pattern = f"%{_escape_like(filters.search.strip())}%"
        query = query.where(or_(
            RestaurantUser.name.ilike(pattern, escape="\\"),
            RestaurantProfile.cuisine.ilike(pattern, escape="\\"),
            RestaurantBranch.address.ilike(pattern, escape="\\"),
        ))

    result = await db.execute(query.order_by(RestaurantBranch.id))
    items = [list_item(*row) for row in result.all()]

    latitude, longitude = await _caller_location(db, filters, user_id)
    with_location = latitude is not None and longitude is not None
    record_search(with_location)

    saved = await saved_branch_ids(db, user_id) if user_id is not None else set()
    party_size = filters.party_size or 1

    target = None
    if filters.date is not None and filters.time is not None:
        target = datetime.combine(filters.date, parse_hhmm(filters.time))
    window = timedelta(minutes=settings.SEARCH_WINDOW_MINUTES)

    for item in items:
        if with_location:
            item["distance"] = haversine_km(latitude, longitude, item["latitude"], item["longitude"])
        item["is_saved"] = item["branch_id"] in saved
        if filters.date is not None:
            slots = await slot_availability(db, item["branch_id"], filters.date, party_size)
            if target is not None:
                slots = [s for s in slots if abs(s["start_time"] - target) <= window]
            item["available_slots"] = count_available_slots(slots, party_size)

    if filters.available_only and filters.date is not None:
        items = [item for item in items if item["available_slots"]]

    logger.info(
        "branch_search",
        results=len(items),
        city=filters.city,
        cuisine=filters.cuisine,
        date=filters.date.isoformat() if filters.date else None,
        with_location=with_location,
    )
    return rank_branches(items)
