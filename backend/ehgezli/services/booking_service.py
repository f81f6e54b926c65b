"""
Booking service: capacity-safe table reservations and the booking lifecycle.

CONCURRENCY STRATEGY: pessimistic slot lock
===========================================

Problem:
  Two parties try to book the last table of a slot at the same moment.
  Both read "1 table left", both insert, the slot is overbooked.

Solution:
  The TimeSlot row is read with SELECT ... FOR UPDATE before capacity is
  checked, and the booking is inserted in the same transaction. A second
  request for the same slot blocks on the lock until the first commits,
  then re-reads the booked totals and sees the table is gone.

  The lock is per slot, so bookings for different slots (or branches)
  never wait on each other. SQLite ignores FOR UPDATE; it serialises
  writers on its own.

Lifecycle
=========
  pending   -> confirmed | cancelled
  confirmed -> arrived | cancelled
  arrived   -> completed
  cancelled, completed: terminal

  Customers may only cancel. Operators may apply any of the above to
  bookings at their own branches. arrived_at / completed_at are stamped
  on entry to arrived / completed.
"""

from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ehgezli.models.booking import ACTIVE_STATUSES, Booking, BookingOverride, BookingSettings, TimeSlot
from ehgezli.models.branch import RestaurantBranch
from ehgezli.models.restaurant import RestaurantUser
from ehgezli.models.user import User
from ehgezli.schemas.booking import (
    BookingCreate, BookingOverrideCreate, BookingOverrideUpdate, BookingResponse, BookingUpdate,
)
from ehgezli.schemas.branch import BookingSettingsUpdate
from ehgezli.services.availability_service import find_slot, lock_slot, used_capacity
from ehgezli.services.branch_service import get_owned_branch
from ehgezli.services.slots import SlotCaps, can_seat, generate_slot_times
from ehgezli.core.config import get_settings
from ehgezli.core.metrics import record_booking_attempt, record_transition
from ehgezli.core.security import Principal
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

TRANSITIONS = {
    "pending": ("confirmed", "cancelled"),
    "confirmed": ("arrived", "cancelled"),
    "arrived": ("completed",),
    "cancelled": (),
    "completed": (),
}


# Slot resolution and capacity
# ============================


async def _resolve_slot(
    db: AsyncSession,
    branch_id: Optional[int],
    time_slot_id: Optional[int],
    start_time: Optional[datetime],
) -> TimeSlot:
    """Find and lock the slot named by id, or by branch + start time."""
    if time_slot_id is None:
        slot = await find_slot(db, branch_id, start_time)
        if slot is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No time slot starts at that time for this branch",
            )
        time_slot_id = slot.id

    slot = await lock_slot(db, time_slot_id)
    if branch_id is not None and slot.branch_id != branch_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Time slot does not belong to this branch",
        )
    return slot


async def _check_capacity(
    db: AsyncSession,
    slot: TimeSlot,
    party_size: int,
    exclude_booking_id: Optional[int] = None,
) -> None:
    """409 unless the locked slot is open and fits the party."""
    caps = SlotCaps(max_seats=slot.max_seats, max_tables=slot.max_tables, is_closed=slot.is_closed)
    if caps.is_closed:
        record_booking_attempt("closed")
        logger.warning("booking_failed_slot_closed", slot_id=slot.id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This time slot is closed for bookings",
        )

    booked_seats, booked_tables = await used_capacity(db, slot.id, exclude_booking_id)
    if not can_seat(party_size, caps, booked_seats, booked_tables):
        record_booking_attempt("full")
        logger.warning(
            "booking_failed_no_capacity",
            slot_id=slot.id,
            requested=party_size,
            seats_left=max(0, slot.max_seats - booked_seats),
            tables_left=max(0, slot.max_tables - booked_tables),
        )
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=(
                f"Not enough capacity. Requested: {party_size} seats, "
                f"available: {max(0, slot.max_seats - booked_seats)} seats, "
                f"{max(0, slot.max_tables - booked_tables)} tables"
            ),
        )


async def _check_not_duplicate(
    db: AsyncSession, user_id: int, slot_id: int, exclude_booking_id: Optional[int] = None
) -> None:
    """409 if the customer already holds an active booking in the slot."""
    query = select(Booking.id).where(
        Booking.user_id == user_id,
        Booking.time_slot_id == slot_id,
        Booking.status.in_(ACTIVE_STATUSES),
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    existing = await db.execute(query)
    if existing.first() is not None:
        record_booking_attempt("duplicate")
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already have a booking for this time slot",
        )


async def _branch_of(db: AsyncSession, slot: TimeSlot) -> RestaurantBranch:
    return await db.get(RestaurantBranch, slot.branch_id)


# Create / read
# =============


async def create_booking(db: AsyncSession, principal: Principal, data: BookingCreate) -> Booking:
    """
    Book a slot. Customers book for themselves; operators book guests at
    their own branches. The slot stays locked until the request commits.
    """
    if principal.is_user and data.is_guest_booking:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only restaurant accounts can create guest bookings",
        )
    if principal.is_restaurant and not (data.guest_name and data.guest_phone):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="guest_name and guest_phone are required for guest bookings",
        )

    slot = await _resolve_slot(db, data.branch_id, data.time_slot_id, data.start_time)

    if principal.is_restaurant:
        branch = await _branch_of(db, slot)
        if branch.restaurant_id != principal.id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only book guests at your own branches",
            )
    else:
        await _check_not_duplicate(db, principal.id, slot.id)

    await _check_capacity(db, slot, data.party_size)

    booking = Booking(
        user_id=principal.id if principal.is_user else None,
        restaurant_user_id=principal.id if principal.is_restaurant else None,
        time_slot_id=slot.id,
        party_size=data.party_size,
        status="confirmed" if settings.BOOKING_AUTO_CONFIRM else "pending",
        guest_name=data.guest_name,
        guest_phone=data.guest_phone,
        guest_email=data.guest_email,
        special_requests=data.special_requests,
    )
    db.add(booking)
    await db.flush()
    await db.refresh(booking)

    record_booking_attempt("success")
    logger.info(
        "booking_created",
        booking_id=booking.id,
        slot_id=slot.id,
        branch_id=slot.branch_id,
        party_size=booking.party_size,
        status=booking.status,
        guest=principal.is_restaurant,
    )
    return booking


def _detail_query():
    return (
        select(Booking, TimeSlot, RestaurantBranch, RestaurantUser.name, User)
        .join(TimeSlot, Booking.time_slot_id == TimeSlot.id)
        .join(RestaurantBranch, TimeSlot.branch_id == RestaurantBranch.id)
        .join(RestaurantUser, RestaurantBranch.restaurant_id == RestaurantUser.id)
        .outerjoin(User, Booking.user_id == User.id)
    )


def _detail(row) -> dict:
    booking, slot, branch, restaurant_name, user = row
    detail = BookingResponse.model_validate(booking).model_dump()
    detail["time_slot"] = {
        "date": slot.date,
        "start_time": slot.start_time,
        "end_time": slot.end_time,
    }
    detail["branch"] = {
        "id": branch.id,
        "address": branch.address,
        "city": branch.city,
        "restaurant_id": branch.restaurant_id,
        "restaurant_name": restaurant_name,
    }
    detail["user"] = (
        {"first_name": user.first_name, "last_name": user.last_name} if user is not None else None
    )
    return detail


async def list_bookings_for(db: AsyncSession, principal: Principal) -> list[dict]:
    """A customer's own bookings, or every booking at an operator's branches."""
    query = _detail_query()
    if principal.is_user:
        query = query.where(Booking.user_id == principal.id)
    else:
        query = query.where(RestaurantBranch.restaurant_id == principal.id)
    result = await db.execute(query.order_by(TimeSlot.start_time.desc(), Booking.id.desc()))
    return [_detail(row) for row in result.all()]


async def list_branch_bookings(
    db: AsyncSession, branch_id: int, restaurant_id: int, day: Optional[date] = None
) -> list[dict]:
    """Bookings of one branch, optionally for one date, in service order."""
    await get_owned_branch(db, branch_id, restaurant_id)
    query = _detail_query().where(RestaurantBranch.id == branch_id)
    if day is not None:
        query = query.where(TimeSlot.date == day)
    result = await db.execute(query.order_by(TimeSlot.start_time, Booking.id))
    return [_detail(row) for row in result.all()]


async def _authorized_booking(db: AsyncSession, booking_id: int, principal: Principal) -> Booking:
    """Load a booking the caller may see: 404 if missing, 403 if not theirs."""
    booking = await db.get(Booking, booking_id)
    if booking is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking not found",
        )

    if principal.is_user:
        allowed = booking.user_id == principal.id
    else:
        owner = await db.execute(
            select(RestaurantBranch.restaurant_id)
            .join(TimeSlot, TimeSlot.branch_id == RestaurantBranch.id)
            .where(TimeSlot.id == booking.time_slot_id)
        )
        allowed = owner.scalar_one_or_none() == principal.id

    if not allowed:
        logger.warning(
            "booking_access_denied",
            booking_id=booking_id,
            account_type=principal.type,
            account_id=principal.id,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have access to this booking",
        )
    return booking


async def get_booking_detail(db: AsyncSession, booking_id: int, principal: Principal) -> dict:
    await _authorized_booking(db, booking_id, principal)
    result = await db.execute(_detail_query().where(Booking.id == booking_id))
    return _detail(result.one())


# Modify
# ======


async def update_booking(
    db: AsyncSession, booking_id: int, principal: Principal, data: BookingUpdate
) -> Booking:
    """
    Change party size, special requests or move to another slot of the same
    branch. Capacity is re-checked against the (locked) target slot, not
    counting this booking's current seats.
    """
    booking = await _authorized_booking(db, booking_id, principal)
    if booking.status not in ("pending", "confirmed"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"A {booking.status} booking can no longer be changed",
        )

    current = await db.get(TimeSlot, booking.time_slot_id)
    target = current
    if data.time_slot_id is not None or data.start_time is not None:
        target = await _resolve_slot(db, current.branch_id, data.time_slot_id, data.start_time)
        if target.id != current.id and booking.user_id is not None:
            await _check_not_duplicate(db, booking.user_id, target.id, exclude_booking_id=booking.id)

    party_size = data.party_size if data.party_size is not None else booking.party_size
    if target.id != current.id or party_size > booking.party_size:
        if target.id == current.id:
            target = await lock_slot(db, current.id)
        await _check_capacity(db, target, party_size, exclude_booking_id=booking.id)

    changes = []
    if target.id != booking.time_slot_id:
        booking.time_slot_id = target.id
        changes.append("time_slot_id")
    if party_size != booking.party_size:
        booking.party_size = party_size
        changes.append("party_size")
    if data.special_requests is not None:
        booking.special_requests = data.special_requests
        changes.append("special_requests")

    await db.flush()
    await db.refresh(booking)
    logger.info("booking_updated", booking_id=booking.id, fields=changes)
    return booking


async def change_booking_status(
    db: AsyncSession, booking_id: int, principal: Principal, new_status: str
) -> tuple[Booking, str]:
    """Apply one lifecycle transition. Returns (booking, previous status)."""
    booking = await _authorized_booking(db, booking_id, principal)
    previous = booking.status

    if principal.is_user and new_status != "cancelled":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Customers can only cancel their bookings",
        )
    if new_status not in TRANSITIONS.get(previous, ()):
        logger.warning(
            "booking_transition_rejected",
            booking_id=booking.id,
            from_status=previous,
            to_status=new_status,
        )
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot change booking status from {previous} to {new_status}",
        )

    now = datetime.now(timezone.utc)
    booking.status = new_status
    if new_status == "arrived":
        booking.arrived_at = now
    elif new_status == "completed":
        booking.completed_at = now

    await db.flush()
    await db.refresh(booking)

    record_transition(previous, new_status)
    logger.info(
        "booking_status_changed",
        booking_id=booking.id,
        from_status=previous,
        to_status=new_status,
        by=principal.type,
    )
    return booking, previous


async def cancel_booking(db: AsyncSession, booking_id: int, principal: Principal) -> Booking:
    """Cancel a booking. The row is kept; its seats are freed."""
    booking = await _authorized_booking(db, booking_id, principal)
    if booking.status == "cancelled":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Booking is already cancelled",
        )
    booking, _ = await change_booking_status(db, booking_id, principal, "cancelled")
    return booking


# Booking settings
# ================


async def get_booking_settings(db: AsyncSession, branch_id: int, restaurant_id: int) -> BookingSettings:
    await get_owned_branch(db, branch_id, restaurant_id)
    result = await db.execute(select(BookingSettings).where(BookingSettings.branch_id == branch_id))
    booking_settings = result.scalar_one_or_none()
    if booking_settings is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking settings not found for this branch",
        )
    return booking_settings


async def update_booking_settings(
    db: AsyncSession, branch_id: int, restaurant_id: int, data: BookingSettingsUpdate
) -> BookingSettings:
    """
    Update the slot grid. Existing slots pick up the new caps the next time
    their date is read; bookings already made are never moved.
    """
    booking_settings = await get_booking_settings(db, branch_id, restaurant_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    merged = {
        "open_time": booking_settings.open_time,
        "close_time": booking_settings.close_time,
        "interval": booking_settings.interval,
        **changes,
    }
    if not generate_slot_times(date.today(), merged["open_time"], merged["close_time"], merged["interval"]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Opening hours are shorter than one booking interval",
        )

    for field, value in changes.items():
        setattr(booking_settings, field, value)
    await db.flush()
    await db.refresh(booking_settings)

    logger.info("booking_settings_updated", branch_id=branch_id, fields=sorted(changes))
    return booking_settings


# Overrides
# =========


async def list_overrides(
    db: AsyncSession, branch_id: int, restaurant_id: int, day: Optional[date] = None
) -> list[BookingOverride]:
    await get_owned_branch(db, branch_id, restaurant_id)
    query = select(BookingOverride).where(BookingOverride.branch_id == branch_id)
    if day is not None:
        query = query.where(BookingOverride.date == day)
    result = await db.execute(query.order_by(BookingOverride.start_time, BookingOverride.id))
    return list(result.scalars().all())


async def create_override(
    db: AsyncSession, branch_id: int, restaurant_id: int, data: BookingOverrideCreate
) -> BookingOverride:
    await get_owned_branch(db, branch_id, restaurant_id)
    override = BookingOverride(branch_id=branch_id, **data.model_dump())
    db.add(override)
    await db.flush()
    await db.refresh(override)

    logger.info(
        "booking_override_created",
        override_id=override.id,
        branch_id=branch_id,
        override_type=override.override_type,
        date=override.date.isoformat(),
    )
    return override


async def get_override(db: AsyncSession, override_id: int, restaurant_id: int) -> BookingOverride:
    override = await db.get(BookingOverride, override_id)
    if override is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking override not found",
        )
    await get_owned_branch(db, override.branch_id, restaurant_id)
    return override


async def update_override(
    db: AsyncSession, override_id: int, restaurant_id: int, data: BookingOverrideUpdate
) -> BookingOverride:
    override = await get_override(db, override_id, restaurant_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)

    start = changes.get("start_time", override.start_time)
    end = changes.get("end_time", override.end_time)
    if end <= start:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_time must be after start_time",
        )

    for field, value in changes.items():
        setattr(override, field, value)
    await db.flush()
    await db.refresh(override)

    logger.info("booking_override_updated", override_id=override.id, fields=sorted(changes))
    return override


async def delete_override(db: AsyncSession, override_id: int, restaurant_id: int) -> None:
    override = await get_override(db, override_id, restaurant_id)
    branch_id = override.branch_id
    await db.execute(delete(BookingOverride).where(BookingOverride.id == override_id))
    await db.flush()
    logger.info("booking_override_deleted", override_id=override_id, branch_id=branch_id)
