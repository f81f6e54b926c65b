"""
Booking endpoints: capacity-safe reservations, the booking lifecycle, and
the operator's booking settings and calendar overrides.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.db.session import get_db
from ehgezli.schemas.booking import (
    BookingCancelResponse, BookingCreate, BookingDetailResponse, BookingOverrideCreate,
    BookingOverrideResponse, BookingOverrideUpdate, BookingResponse, BookingStatusChangeResponse,
    BookingStatusUpdate, BookingUpdate,
)
from ehgezli.schemas.branch import BookingSettingsResponse, BookingSettingsUpdate
from ehgezli.services.booking_service import (
    cancel_booking, change_booking_status, create_booking, create_override, delete_override,
    get_booking_detail, get_booking_settings, get_override, list_bookings_for, list_branch_bookings,
    list_overrides, update_booking, update_booking_settings, update_override,
)
from ehgezli.core.security import Principal, get_current_principal, get_current_restaurant_id

router = APIRouter(prefix="/booking", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking_endpoint(
    booking_data: BookingCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Book a time slot.

    The slot row is locked while capacity is checked, so concurrent
    requests for the last table cannot both succeed; the loser gets 409.
    Restaurant accounts book on behalf of a guest (guest_name and
    guest_phone required).
    """
    return await create_booking(db, principal, booking_data)


@router.get("", response_model=list[BookingDetailResponse])
async def list_bookings(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """The caller's bookings (customers) or their branches' bookings (operators)."""
    return await list_bookings_for(db, principal)


@router.get("/branch/{branch_id}", response_model=list[BookingDetailResponse])
async def list_branch_bookings_endpoint(
    branch_id: int,
    day: Optional[date] = Query(None, alias="date"),
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await list_branch_bookings(db, branch_id, restaurant_id, day)


@router.post("/change-status/{booking_id}", response_model=BookingStatusChangeResponse)
async def change_status_endpoint(
    booking_id: int,
    data: BookingStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    booking, previous = await change_booking_status(db, booking_id, principal, data.status)
    return BookingStatusChangeResponse(
        message=f"Booking status changed to {booking.status}",
        booking_id=booking.id,
        previous_status=previous,
        status=booking.status,
        arrived_at=booking.arrived_at,
        completed_at=booking.completed_at,
    )


# Booking settings
@router.get("/settings/{branch_id}", response_model=BookingSettingsResponse)
async def read_booking_settings(
    branch_id: int,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking_settings(db, branch_id, restaurant_id)


@router.put("/settings/{branch_id}", response_model=BookingSettingsResponse)
async def update_booking_settings_endpoint(
    branch_id: int,
    data: BookingSettingsUpdate,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await update_booking_settings(db, branch_id, restaurant_id, data)


# Overrides
@router.get("/overrides/{branch_id}", response_model=list[BookingOverrideResponse])
async def list_overrides_endpoint(
    branch_id: int,
    day: Optional[date] = Query(None, alias="date"),
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await list_overrides(db, branch_id, restaurant_id, day)


@router.post(
    "/overrides/{branch_id}",
    response_model=BookingOverrideResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_override_endpoint(
    branch_id: int,
    data: BookingOverrideCreate,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    """Close or re-cap the slots overlapping a time window."""
    return await create_override(db, branch_id, restaurant_id, data)


@router.get("/override/{override_id}", response_model=BookingOverrideResponse)
async def read_override(
    override_id: int,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await get_override(db, override_id, restaurant_id)


@router.put("/override/{override_id}", response_model=BookingOverrideResponse)
async def update_override_endpoint(
    override_id: int,
    data: BookingOverrideUpdate,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    return await update_override(db, override_id, restaurant_id, data)


@router.delete("/override/{override_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_override_endpoint(
    override_id: int,
    restaurant_id: int = Depends(get_current_restaurant_id),
    db: AsyncSession = Depends(get_db),
):
    await delete_override(db, override_id, restaurant_id)


# Single booking
@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def read_booking(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await get_booking_detail(db, booking_id, principal)


@router.put("/{booking_id}", response_model=BookingResponse)
async def update_booking_endpoint(
    booking_id: int,
    data: BookingUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Change party size or special requests, or move to another slot of the same branch."""
    return await update_booking(db, booking_id, principal, data)


@router.delete("/{booking_id}", response_model=BookingCancelResponse)
async def cancel_booking_endpoint(
    booking_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a booking and release its table. The booking itself is kept."""
    booking = await cancel_booking(db, booking_id, principal)
    return BookingCancelResponse(
        message="Booking cancelled successfully",
        booking_id=booking.id,
        status=booking.status,
    )
