"""
Pydantic schemas for booking-related request/response validation.
"""

import datetime as dt
from datetime import datetime
from typing import Annotated, Literal, Optional
from pydantic import AfterValidator, BaseModel, EmailStr, Field, computed_field, model_validator

BookingStatus = Literal["pending", "confirmed", "arrived", "cancelled", "completed"]
OverrideType = Literal["closed", "capacity", "custom"]


def _wall_clock(value: datetime) -> datetime:
    # Slot times are restaurant-local; an explicit offset is dropped, not converted.
    return value.replace(tzinfo=None)


WallClock = Annotated[datetime, AfterValidator(_wall_clock)]


class BookingCreate(BaseModel):
    """
    Identify the slot either by time_slot_id, or by branch_id + start_time
    (the slot's start on the branch's grid).
    """

    time_slot_id: Optional[int] = None
    branch_id: Optional[int] = None
    start_time: Optional[WallClock] = None
    party_size: int = Field(..., ge=1, le=50)
    guest_name: Optional[str] = Field(None, min_length=1, max_length=200)
    guest_phone: Optional[str] = Field(None, min_length=3, max_length=50)
    guest_email: Optional[EmailStr] = None
    special_requests: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _slot_reference(self):
        if self.time_slot_id is None and (self.branch_id is None or self.start_time is None):
            raise ValueError("Provide time_slot_id, or branch_id together with start_time")
        return self

    @property
    def is_guest_booking(self) -> bool:
        return bool(self.guest_name or self.guest_phone or self.guest_email)


class BookingUpdate(BaseModel):
    party_size: Optional[int] = Field(None, ge=1, le=50)
    time_slot_id: Optional[int] = None
    start_time: Optional[WallClock] = None
    special_requests: Optional[str] = Field(None, max_length=1000)


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    id: int
    user_id: Optional[int]
    restaurant_user_id: Optional[int]
    time_slot_id: int
    party_size: int
    status: str
    guest_name: Optional[str]
    guest_phone: Optional[str]
    guest_email: Optional[str]
    special_requests: Optional[str]
    arrived_at: Optional[datetime]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    # Legacy lifecycle flags, derived from status
    @computed_field
    @property
    def confirmed(self) -> bool:
        return self.status in ("confirmed", "arrived", "completed")

    @computed_field
    @property
    def arrived(self) -> bool:
        return self.status in ("arrived", "completed")

    @computed_field
    @property
    def completed(self) -> bool:
        return self.status == "completed"


class TimeSlotSummary(BaseModel):
    date: dt.date
    start_time: datetime
    end_time: datetime


class BookingBranchSummary(BaseModel):
    id: int
    address: str
    city: str
    restaurant_id: int
    restaurant_name: str


class BookingUserSummary(BaseModel):
    first_name: str
    last_name: str


class BookingDetailResponse(BookingResponse):
    time_slot: TimeSlotSummary
    branch: BookingBranchSummary
    user: Optional[BookingUserSummary] = None


class BookingCancelResponse(BaseModel):
    message: str
    booking_id: int
    status: str


class BookingStatusChangeResponse(BaseModel):
    message: str
    booking_id: int
    previous_status: str
    status: str
    arrived_at: Optional[datetime]
    completed_at: Optional[datetime]


class TimeSlotAvailability(BaseModel):
    id: int
    time: str
    start_time: datetime
    end_time: datetime
    available_seats: int
    available_tables: int
    booked_seats: int
    booked_tables: int
    is_available: bool


class BranchAvailabilityResponse(BaseModel):
    branch_id: int
    date: dt.date
    available_slots: list[TimeSlotAvailability]
    has_availability: bool
    closest_available_slot: Optional[TimeSlotAvailability] = None


class BookingOverrideCreate(BaseModel):
    date: dt.date
    start_time: WallClock
    end_time: WallClock
    override_type: OverrideType
    new_max_seats: int = Field(0, ge=0)
    new_max_tables: int = Field(0, ge=0)
    note: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _window(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class BookingOverrideUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[WallClock] = None
    end_time: Optional[WallClock] = None
    override_type: Optional[OverrideType] = None
    new_max_seats: Optional[int] = Field(None, ge=0)
    new_max_tables: Optional[int] = Field(None, ge=0)
    note: Optional[str] = Field(None, max_length=500)


class BookingOverrideResponse(BaseModel):
    id: int
    branch_id: int
    date: dt.date
    start_time: datetime
    end_time: datetime
    override_type: str
    new_max_seats: int
    new_max_tables: int
    note: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}
