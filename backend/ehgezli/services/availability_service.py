"""
Slot materialisation and availability for a branch on a given date.

Slots are stored rows so bookings can reference them and so a slot can be
locked while it is being booked. They are (re)built lazily: every read of a
date first calls ensure_time_slots(), which creates missing slots from the
branch's BookingSettings and refreshes the caps of existing ones from the
settings and the date's overrides.

Capacity only counts active bookings (pending, confirmed, arrived). Each
booking takes one table.
"""

import time as _time
from datetime import date, datetime, timedelta
from typing import Optional

from sqlalchemy import delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ehgezli.models.booking import ACTIVE_STATUSES, Booking, BookingOverride, BookingSettings, TimeSlot
from ehgezli.models.branch import RestaurantBranch
from ehgezli.services.slots import (
    apply_overrides, closest_slot_index, format_hhmm, generate_slot_times, remaining_capacity,
)
from ehgezli.core.metrics import availability_latency
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)


async def get_branch_or_404(db: AsyncSession, branch_id: int) -> RestaurantBranch:
    branch = await db.get(RestaurantBranch, branch_id)
    if branch is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Branch {branch_id} not found",
        )
    return branch


async def get_settings_for_branch(db: AsyncSession, branch_id: int) -> Optional[BookingSettings]:
    result = await db.execute(select(BookingSettings).where(BookingSettings.branch_id == branch_id))
    return result.scalar_one_or_none()


async def _overrides_for(db: AsyncSession, branch_id: int, start: datetime, end: datetime):
    # Overrides are matched on their window, not on their date column, so a
    # window crossing midnight still reaches the next day's slots.
    result = await db.execute(
        select(BookingOverride).where(
            BookingOverride.branch_id == branch_id,
            BookingOverride.start_time < end,
            BookingOverride.end_time > start,
        )
    )
    return list(result.scalars().all())


async def booked_counts(db: AsyncSession, slot_ids: list[int]) -> dict[int, tuple[int, int]]:
    """Map slot id -> (booked seats, booked tables) over active bookings."""
    if not slot_ids:
        return {}
    result = await db.execute(
        select(
            Booking.time_slot_id,
            func.coalesce(func.sum(Booking.party_size), 0),
            func.count(Booking.id),
        )
        .where(Booking.time_slot_id.in_(slot_ids), Booking.status.in_(ACTIVE_STATUSES))
        .group_by(Booking.time_slot_id)
    )
    return {slot_id: (int(seats), int(tables)) for slot_id, seats, tables in result.all()}


def _insert_for(db: AsyncSession):
    if db.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


async def ensure_time_slots(db: AsyncSession, branch_id: int, day: date) -> list[TimeSlot]:
    """
    Bring the stored slots for `day` in line with the branch's settings and
    overrides and return them ordered by start time.

    A branch without BookingSettings has no slots. Slots that no longer sit
    on the grid are deleted when nobody booked them and closed otherwise.
    """
    settings = await get_settings_for_branch(db, branch_id)

    grid = []
    if settings is not None:
        grid = generate_slot_times(day, settings.open_time, settings.close_time, settings.interval)

    # Slots of this date, plus any slot of a neighbouring date that sits on
    # this date's grid (left behind by an earlier overnight configuration).
    scope = TimeSlot.date == day
    if grid:
        scope = scope | TimeSlot.start_time.between(grid[0][0], grid[-1][0])
    result = await db.execute(
        select(TimeSlot).where(TimeSlot.branch_id == branch_id, scope).order_by(TimeSlot.start_time)
    )
    existing = {slot.start_time: slot for slot in result.scalars().all()}

    overrides = []
    if grid:
        overrides = await _overrides_for(db, branch_id, grid[0][0], grid[-1][1])

    new_rows = []
    for start, end in grid:
        caps = apply_overrides(
            start, end, settings.max_seats_per_slot, settings.max_tables_per_slot, overrides
        )
        slot = existing.pop(start, None)
        if slot is not None and slot.date != day:
            slot.date = day
        if slot is None:
            new_rows.append({
                "branch_id": branch_id,
                "date": day,
                "start_time": start,
                "end_time": end,
                "max_seats": caps.max_seats,
                "max_tables": caps.max_tables,
                "is_closed": caps.is_closed,
            })
        elif (slot.end_time, slot.max_seats, slot.max_tables, slot.is_closed) != (
            end, caps.max_seats, caps.max_tables, caps.is_closed
        ):
            slot.end_time = end
            slot.max_seats = caps.max_seats
            slot.max_tables = caps.max_tables
            slot.is_closed = caps.is_closed

    # Whatever is left fell off the grid
    stale = [slot for slot in existing.values() if slot.date == day]
    if stale:
        referenced = await db.execute(
            select(Booking.time_slot_id)
            .where(Booking.time_slot_id.in_([slot.id for slot in stale]))
            .distinct()
        )
        referenced = set(referenced.scalars().all())
        orphan_ids = [slot.id for slot in stale if slot.id not in referenced]
        for slot in stale:
            if slot.id in referenced and not slot.is_closed:
                slot.is_closed = True
        if orphan_ids:
            await db.execute(delete(TimeSlot).where(TimeSlot.id.in_(orphan_ids)))
        logger.info(
            "time_slots_retired",
            branch_id=branch_id,
            date=day.isoformat(),
            deleted=len(orphan_ids),
            closed=len(stale) - len(orphan_ids),
        )

    await db.flush()
    if new_rows:
        # A concurrent read of the same date may have created some of these
        await db.execute(
            _insert_for(db)(TimeSlot)
            .values(new_rows)
            .on_conflict_do_nothing(index_elements=["branch_id", "start_time"])
        )
        logger.debug("time_slots_created", branch_id=branch_id, date=day.isoformat(), count=len(new_rows))

    result = await db.execute(
        select(TimeSlot)
        .where(TimeSlot.branch_id == branch_id, TimeSlot.date == day)
        .order_by(TimeSlot.start_time)
    )
    return list(result.scalars().all())


def _slot_view(slot: TimeSlot, booked_seats: int, booked_tables: int, party_size: int) -> dict:
    seats_left, tables_left = remaining_capacity(
        slot.max_seats, slot.max_tables, booked_seats, booked_tables
    )
    return {
        "id": slot.id,
        "time": format_hhmm(slot.start_time),
        "start_time": slot.start_time,
        "end_time": slot.end_time,
        "available_seats": seats_left,
        "available_tables": tables_left,
        "booked_seats": booked_seats,
        "booked_tables": booked_tables,
        "is_available": not slot.is_closed and seats_left >= party_size and tables_left >= 1,
    }


async def slot_availability(
    db: AsyncSession, branch_id: int, day: date, party_size: int = 1
) -> list[dict]:
    """Per-slot availability rows for one date, in start order."""
    slots = await ensure_time_slots(db, branch_id, day)
    counts = await booked_counts(db, [slot.id for slot in slots])
    return [_slot_view(slot, *counts.get(slot.id, (0, 0)), party_size) for slot in slots]


async def get_branch_availability(
    db: AsyncSession,
    branch_id: int,
    day: date,
    party_size: int = 1,
    at: Optional[datetime] = None,
) -> dict:
    """
    Availability of a branch on `day` for a party of `party_size`.
    `at` picks the closest available slot; without it the first one wins.
    """
    await get_branch_or_404(db, branch_id)

    started = _time.perf_counter()
    slots = await slot_availability(db, branch_id, day, party_size)
    availability_latency.observe(_time.perf_counter() - started)

    available = [slot for slot in slots if slot["is_available"]]
    index = closest_slot_index([slot["start_time"] for slot in available], at)
    closest = available[index] if index is not None else None

    logger.debug(
        "availability_computed",
        branch_id=branch_id,
        date=day.isoformat(),
        party_size=party_size,
        slots=len(slots),
        available=len(available),
    )
    return {
        "branch_id": branch_id,
        "date": day,
        "available_slots": slots,
        "has_availability": bool(available),
        "closest_available_slot": closest,
    }


async def find_slot(
    db: AsyncSession, branch_id: int, start_time: datetime
) -> Optional[TimeSlot]:
    """Slot of `branch_id` starting at `start_time`, materialising its date first."""
    # A slot after midnight belongs to the previous day's grid when the
    # branch closes late, so both dates are materialised.
    for day in (start_time.date(), start_time.date() - timedelta(days=1)):
        await ensure_time_slots(db, branch_id, day)
    result = await db.execute(
        select(TimeSlot).where(TimeSlot.branch_id == branch_id, TimeSlot.start_time == start_time)
    )
    return result.scalar_one_or_none()


async def lock_slot(db: AsyncSession, slot_id: int) -> TimeSlot:
    """
    Re-read a slot with its caps refreshed and hold a row lock on it until
    the transaction ends. 404 if it does not exist.
    """
    slot = await db.get(TimeSlot, slot_id)
    if slot is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Time slot {slot_id} not found",
        )
    await ensure_time_slots(db, slot.branch_id, slot.date)

    result = await db.execute(
        select(TimeSlot)
        .where(TimeSlot.id == slot_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    locked = result.scalar_one_or_none()
    if locked is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Time slot {slot_id} not found",
        )
    return locked


async def used_capacity(
    db: AsyncSession, slot_id: int, exclude_booking_id: Optional[int] = None
) -> tuple[int, int]:
    """(booked seats, booked tables) of a slot, optionally ignoring one booking."""
    query = select(func.coalesce(func.sum(Booking.party_size), 0), func.count(Booking.id)).where(
        Booking.time_slot_id == slot_id,
        Booking.status.in_(ACTIVE_STATUSES),
    )
    if exclude_booking_id is not None:
        query = query.where(Booking.id != exclude_booking_id)
    seats, tables = (await db.execute(query)).one()
    return int(seats), int(tables)
