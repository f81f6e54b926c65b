"""
Unit tests for slot grid arithmetic and override resolution.
"""

from dataclasses import dataclass
from datetime import date, datetime, time

import pytest

from ehgezli.services.slots import (
    SlotCaps, apply_overrides, can_seat, closest_slot_index, format_hhmm, generate_slot_times,
    parse_hhmm,
)

DAY = date(2026, 11, 5)


@dataclass
class Override:
    id: int
    override_type: str
    start_time: datetime
    end_time: datetime
    new_max_seats: int = 0
    new_max_tables: int = 0


def at(hhmm: str, day: date = DAY) -> datetime:
    return datetime.combine(day, parse_hhmm(hhmm))


def test_parse_hhmm():
    assert parse_hhmm("09:30") == time(9, 30)
    assert parse_hhmm(" 23:59 ") == time(23, 59)
    assert format_hhmm(time(7, 5)) == "07:05"


@pytest.mark.parametrize("value", ["24:00", "12:60", "1230", "noon", "", "12:3a"])
def test_parse_hhmm_rejects(value):
    with pytest.raises(ValueError):
        parse_hhmm(value)


def test_grid_steps_by_interval_and_ends_by_close():
    slots = generate_slot_times(DAY, "12:00", "15:00", 90)
    assert slots == [
        (at("12:00"), at("13:30")),
        (at("13:30"), at("15:00")),
    ]


def test_grid_drops_partial_last_slot():
    slots = generate_slot_times(DAY, "12:00", "14:00", 90)
    assert [start for start, _ in slots] == [at("12:00")]


def test_grid_crosses_midnight():
    slots = generate_slot_times(DAY, "22:00", "01:00", 60)
    next_day = date(2026, 11, 6)
    assert [start for start, _ in slots] == [at("22:00"), at("23:00"), at("00:00", next_day)]
    assert slots[-1][1] == at("01:00", next_day)


def test_grid_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        generate_slot_times(DAY, "12:00", "14:00", 0)


def test_no_overrides_keeps_caps():
    caps = apply_overrides(at("12:00"), at("13:00"), 20, 5, [])
    assert caps == SlotCaps(max_seats=20, max_tables=5, is_closed=False)


def test_closed_override_closes_overlapping_slot():
    overrides = [Override(1, "closed", at("12:30"), at("14:00"))]
    assert apply_overrides(at("12:00"), at("13:00"), 20, 5, overrides).is_closed
    # Touching at the boundary is not overlapping
    assert not apply_overrides(at("14:00"), at("15:00"), 20, 5, overrides).is_closed


def test_capacity_override_replaces_caps():
    overrides = [Override(1, "capacity", at("12:00"), at("13:00"), new_max_seats=6, new_max_tables=2)]
    caps = apply_overrides(at("12:00"), at("13:00"), 20, 5, overrides)
    assert caps == SlotCaps(max_seats=6, max_tables=2, is_closed=False)


def test_latest_capacity_override_wins():
    overrides = [
        Override(7, "custom", at("12:00"), at("13:00"), new_max_seats=4, new_max_tables=1),
        Override(3, "capacity", at("12:00"), at("13:00"), new_max_seats=12, new_max_tables=3),
    ]
    caps = apply_overrides(at("12:00"), at("13:00"), 20, 5, overrides)
    assert (caps.max_seats, caps.max_tables) == (4, 1)


def test_closed_override_wins_over_capacity():
    overrides = [
        Override(1, "closed", at("12:00"), at("13:00")),
        Override(2, "capacity", at("12:00"), at("13:00"), new_max_seats=12, new_max_tables=3),
    ]
    assert apply_overrides(at("12:00"), at("13:00"), 20, 5, overrides).is_closed


def test_zero_seat_override_closes_slot():
    overrides = [Override(1, "capacity", at("12:00"), at("13:00"), new_max_seats=0, new_max_tables=3)]
    assert apply_overrides(at("12:00"), at("13:00"), 20, 5, overrides).is_closed


def test_can_seat_needs_seats_and_a_table():
    caps = SlotCaps(max_seats=10, max_tables=2, is_closed=False)
    assert can_seat(4, caps, booked_seats=6, booked_tables=1)
    assert not can_seat(5, caps, booked_seats=6, booked_tables=1)
    assert not can_seat(1, caps, booked_seats=2, booked_tables=2)
    assert not can_seat(1, SlotCaps(10, 2, True), 0, 0)


def test_closest_slot_index():
    starts = [at("12:00"), at("13:00"), at("14:00")]
    assert closest_slot_index(starts, at("13:20")) == 1
    assert closest_slot_index(starts, None) == 0
    assert closest_slot_index([], at("13:00")) is None
    # Equal distance picks the earlier slot
    assert closest_slot_index(starts, at("13:30")) == 1
