"""
Branch ranking: distance, availability and the multi-key sort used by
branch search.

Sort order
==========
  1. distance ascending (branches without a usable distance go last)
  2. available slot count descending (unknown counts go last)
  3. saved branches before unsaved ones
  4. cuisine, alphabetical and case-insensitive

Python's sort is stable, so branches that tie on every key keep the order
the query returned them in.
"""

import math
from typing import Any, Iterable, Optional

EARTH_RADIUS_KM = 6371.0


def _valid_coordinate(value: Any, limit: float) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(number) and -limit <= number <= limit


def haversine_km(
    lat1: Optional[float],
    lon1: Optional[float],
    lat2: Optional[float],
    lon2: Optional[float],
) -> Optional[float]:
    """Great-circle distance in km, or None if any coordinate is unusable."""
    if not (
        _valid_coordinate(lat1, 90) and _valid_coordinate(lat2, 90)
        and _valid_coordinate(lon1, 180) and _valid_coordinate(lon2, 180)
    ):
        return None

    lat1, lon1, lat2, lon2 = float(lat1), float(lon1), float(lat2), float(lon2)
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def count_available_slots(slots: Iterable[Any], party_size: int = 1) -> int:
    """
    Count slots that can still take a party of `party_size`.
    Slots are objects or dicts exposing is_available, available_seats
    and available_tables.
    """
    count = 0
    for slot in slots:
        get = slot.get if isinstance(slot, dict) else lambda key, s=slot: getattr(s, key)
        if not get("is_available"):
            continue
        if get("available_seats") >= party_size and get("available_tables") >= 1:
            count += 1
    return count


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def ranking_key(item: Any) -> tuple:
    distance = _field(item, "distance")
    available = _field(item, "available_slots")
    cuisine = _field(item, "cuisine") or ""
    return (
        distance is None,
        distance if distance is not None else 0.0,
        available is None,
        -(available or 0),
        not bool(_field(item, "is_saved")),
        cuisine.casefold(),
    )


def rank_branches(items: Iterable[Any]) -> list:
    """Return the items ordered for display; the input is not modified."""
    return sorted(items, key=ranking_key)
