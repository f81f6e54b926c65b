"""
Pydantic schemas for branches, booking settings and branch search.
"""

import datetime as dt
from datetime import datetime
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel, Field

from ehgezli.services.slots import format_hhmm, parse_hhmm


def _normalise_hhmm(value: str) -> str:
    return format_hhmm(parse_hhmm(value))


ClockTime = Annotated[str, AfterValidator(_normalise_hhmm)]


class BookingSettingsCreate(BaseModel):
    open_time: ClockTime
    close_time: ClockTime
    interval: int = Field(90, ge=1, le=24 * 60)
    max_seats_per_slot: int = Field(25, ge=1)
    max_tables_per_slot: int = Field(10, ge=1)


class BookingSettingsUpdate(BaseModel):
    open_time: Optional[ClockTime] = None
    close_time: Optional[ClockTime] = None
    interval: Optional[int] = Field(None, ge=1, le=24 * 60)
    max_seats_per_slot: Optional[int] = Field(None, ge=1)
    max_tables_per_slot: Optional[int] = Field(None, ge=1)


class BookingSettingsResponse(BaseModel):
    id: int
    branch_id: int
    open_time: str
    close_time: str
    interval: int
    max_seats_per_slot: int
    max_tables_per_slot: int
    updated_at: datetime

    model_config = {"from_attributes": True}


class BranchCreate(BaseModel):
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = Field(None, max_length=50)
    seats_count: int = Field(25, gt=0)
    tables_count: int = Field(10, gt=0)
    opening_time: ClockTime = "12:00"
    closing_time: ClockTime = "23:00"
    reservation_duration: int = Field(90, ge=1, le=24 * 60)
    booking_settings: Optional[BookingSettingsCreate] = None


class BranchUpdate(BaseModel):
    address: Optional[str] = Field(None, min_length=1, max_length=500)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    phone: Optional[str] = Field(None, max_length=50)
    seats_count: Optional[int] = Field(None, gt=0)
    tables_count: Optional[int] = Field(None, gt=0)
    opening_time: Optional[ClockTime] = None
    closing_time: Optional[ClockTime] = None
    reservation_duration: Optional[int] = Field(None, ge=1, le=24 * 60)


class BranchResponse(BaseModel):
    id: int
    restaurant_id: int
    address: str
    city: str
    latitude: Optional[float]
    longitude: Optional[float]
    phone: Optional[str]
    seats_count: int
    tables_count: int
    opening_time: str
    closing_time: str
    reservation_duration: int

    model_config = {"from_attributes": True}


class BranchDetailResponse(BranchResponse):
    restaurant_name: str
    about: str = ""
    description: str = ""
    cuisine: str = ""
    price_range: str = ""
    logo: str = ""
    settings: Optional[BookingSettingsResponse] = None


class BranchListItem(BaseModel):
    branch_id: int
    restaurant_id: int
    restaurant_name: str
    address: str
    city: str
    latitude: Optional[float]
    longitude: Optional[float]
    cuisine: str = ""
    price_range: str = ""
    logo: str = ""
    distance: Optional[float] = None
    available_slots: Optional[int] = None
    is_saved: bool = False


class BranchSearchFilter(BaseModel):
    city: Optional[str] = None
    cuisine: Optional[str] = None
    price_range: Optional[str] = None
    search: Optional[str] = Field(None, max_length=200)
    date: Optional[dt.date] = None
    time: Optional[ClockTime] = None
    party_size: Optional[int] = Field(None, ge=1, le=50)
    user_latitude: Optional[float] = Field(None, ge=-90, le=90)
    user_longitude: Optional[float] = Field(None, ge=-180, le=180)
    available_only: bool = False
