"""
Time-slot arithmetic shared by availability and booking.

Pure functions only: nothing here touches the database, so the slot grid and
override rules can be tested without a session.

Slot grid
=========
A branch's BookingSettings define open_time, close_time and an interval.
Slots start at open_time and step by `interval` minutes; each slot lasts
`interval` minutes and must end no later than close_time. A close_time at or
before open_time means the branch closes after midnight.

Overrides
=========
A BookingOverride applies to every slot whose [start, end) window overlaps
the override's [start_time, end_time) window.
  closed            -> slot closed
  capacity, custom  -> caps replaced by new_max_seats / new_max_tables
Any matching `closed` override wins. Among capacity overrides the most
recent one (highest id) wins. A zero seat cap closes the slot.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional, Protocol, Union


class OverrideLike(Protocol):
    id: int
    override_type: str
    start_time: datetime
    end_time: datetime
    new_max_seats: int
    new_max_tables: int


@dataclass(frozen=True)
class SlotCaps:
    max_seats: int
    max_tables: int
    is_closed: bool


def parse_hhmm(value: str) -> time:
    """Parse "HH:MM" (24-hour). Raises ValueError for anything else."""
    if not isinstance(value, str):
        raise ValueError(f"Invalid time: {value!r}")
    parts = value.strip().split(":")
    if len(parts) != 2 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid time: {value!r}, expected HH:MM")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid time: {value!r}, expected HH:MM")
    return time(hours, minutes)


def format_hhmm(value: Union[datetime, time]) -> str:
    return f"{value.hour:02d}:{value.minute:02d}"


def generate_slot_times(
    day: date,
    open_time: str,
    close_time: str,
    interval: int,
) -> list[tuple[datetime, datetime]]:
    """Return the (start, end) pairs of the slot grid for one day."""
    if interval <= 0:
        raise ValueError("interval must be positive")

    opens = datetime.combine(day, parse_hhmm(open_time))
    closes = datetime.combine(day, parse_hhmm(close_time))
    if closes <= opens:
        closes += timedelta(days=1)

    step = timedelta(minutes=interval)
    slots = []
    start = opens
    while start + step <= closes:
        slots.append((start, start + step))
        start += step
    return slots


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and end_a > start_b


def apply_overrides(
    start: datetime,
    end: datetime,
    max_seats: int,
    max_tables: int,
    overrides: Iterable[OverrideLike],
) -> SlotCaps:
    """Effective caps for one slot after applying the matching overrides."""
    matching = sorted(
        (o for o in overrides if overlaps(start, end, o.start_time, o.end_time)),
        key=lambda o: o.id or 0,
    )

    is_closed = False
    for override in matching:
        if override.override_type == "closed":
            is_closed = True
        else:
            max_seats = override.new_max_seats
            max_tables = override.new_max_tables

    if max_seats <= 0:
        is_closed = True
    return SlotCaps(max_seats=max(max_seats, 0), max_tables=max(max_tables, 0), is_closed=is_closed)


def remaining_capacity(
    max_seats: int,
    max_tables: int,
    booked_seats: int,
    booked_tables: int,
) -> tuple[int, int]:
    return max(0, max_seats - booked_seats), max(0, max_tables - booked_tables)


def can_seat(
    party_size: int,
    caps: SlotCaps,
    booked_seats: int,
    booked_tables: int,
) -> bool:
    """True when a party fits: open slot, enough seats, one free table."""
    if caps.is_closed:
        return False
    seats_left, tables_left = remaining_capacity(
        caps.max_seats, caps.max_tables, booked_seats, booked_tables
    )
    return seats_left >= party_size and tables_left >= 1


def closest_slot_index(starts: list[datetime], target: Optional[datetime]) -> Optional[int]:
    """Index of the start nearest to target; the earliest start wins ties."""
    if not starts:
        return None
    if target is None:
        return 0
    return min(range(len(starts)), key=lambda i: (abs(starts[i] - target), starts[i]))
