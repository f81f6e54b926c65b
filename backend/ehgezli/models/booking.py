"""
Booking and the slot model it is allocated against.

Key design decisions:
- A Booking always points at one TimeSlot; date and times live on the slot
- TimeSlot caps (max_seats/max_tables/is_closed) are refreshed from
  BookingSettings and BookingOverride rows whenever a date is read or booked
- Slot times are naive restaurant-local wall-clock datetimes
- Bookings are never deleted by customers; cancellation is a status
- Each booking occupies exactly one table
"""

from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Text,
    ForeignKey, UniqueConstraint, CheckConstraint, Index,
)
from sqlalchemy.orm import relationship

from ehgezli.db.base import Base, TimestampMixin

BOOKING_STATUSES = ("pending", "confirmed", "arrived", "cancelled", "completed")
ACTIVE_STATUSES = ("pending", "confirmed", "arrived")
OVERRIDE_TYPES = ("closed", "capacity", "custom")


class BookingSettings(Base, TimestampMixin):
    __tablename__ = "booking_settings"

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), unique=True, nullable=False)
    open_time = Column(String(5), nullable=False)
    close_time = Column(String(5), nullable=False)
    interval = Column(Integer, nullable=False, default=90)  # minutes
    max_seats_per_slot = Column(Integer, nullable=False, default=25)
    max_tables_per_slot = Column(Integer, nullable=False, default=10)

    branch = relationship("RestaurantBranch", back_populates="settings")

    __table_args__ = (
        CheckConstraint("interval > 0", name="check_settings_interval_positive"),
        CheckConstraint("max_seats_per_slot > 0", name="check_settings_seats_positive"),
        CheckConstraint("max_tables_per_slot > 0", name="check_settings_tables_positive"),
    )


class TimeSlot(Base, TimestampMixin):
    __tablename__ = "time_slots"

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    max_seats = Column(Integer, nullable=False)
    max_tables = Column(Integer, nullable=False)
    is_closed = Column(Boolean, nullable=False, default=False)

    branch = relationship("RestaurantBranch", back_populates="time_slots")
    bookings = relationship("Booking", back_populates="time_slot", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("branch_id", "start_time", name="uq_time_slot_branch_start"),
        CheckConstraint("max_seats >= 0", name="check_slot_seats_non_negative"),
        CheckConstraint("max_tables >= 0", name="check_slot_tables_non_negative"),
        CheckConstraint("end_time > start_time", name="check_slot_end_after_start"),
        # Availability is always read per branch per date
        Index("ix_time_slots_branch_date", "branch_id", "date"),
    )

    def __repr__(self) -> str:
        return f"<TimeSlot(id={self.id}, branch={self.branch_id}, start={self.start_time})>"


class BookingOverride(Base, TimestampMixin):
    __tablename__ = "booking_overrides"

    id = Column(Integer, primary_key=True, index=True)
    branch_id = Column(Integer, ForeignKey("restaurant_branches.id"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    override_type = Column(String(20), nullable=False)
    new_max_seats = Column(Integer, nullable=False, default=0)
    new_max_tables = Column(Integer, nullable=False, default=0)
    note = Column(Text, nullable=True)

    branch = relationship("RestaurantBranch", back_populates="overrides")

    __table_args__ = (
        CheckConstraint("override_type IN ('closed', 'capacity', 'custom')", name="check_override_type"),
        CheckConstraint("end_time > start_time", name="check_override_end_after_start"),
        CheckConstraint("new_max_seats >= 0", name="check_override_seats_non_negative"),
        CheckConstraint("new_max_tables >= 0", name="check_override_tables_non_negative"),
        Index("ix_booking_overrides_branch_date", "branch_id", "date"),
    )


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    restaurant_user_id = Column(Integer, ForeignKey("restaurant_users.id"), nullable=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False, index=True)
    party_size = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="confirmed")

    guest_name = Column(String(200), nullable=True)
    guest_phone = Column(String(50), nullable=True)
    guest_email = Column(String(255), nullable=True)
    special_requests = Column(Text, nullable=True)

    arrived_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    user = relationship("User", back_populates="bookings", foreign_keys=[user_id])
    time_slot = relationship("TimeSlot", back_populates="bookings")

    __table_args__ = (
        CheckConstraint("party_size > 0", name="check_booking_party_size_positive"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'arrived', 'cancelled', 'completed')",
            name="check_booking_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, user={self.user_id}, slot={self.time_slot_id}, status={self.status})>"
