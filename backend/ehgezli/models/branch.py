"""
Restaurant branch: one physical location of a restaurant account.

Key design decisions:
- Coordinates are nullable; branches without them sort last by distance
- seats/tables/hours on the branch seed its BookingSettings on creation
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship

from ehgezli.db.base import Base, TimestampMixin


class RestaurantBranch(Base, TimestampMixin):
    __tablename__ = "restaurant_branches"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurant_users.id"), nullable=False, index=True)
    address = Column(String(500), nullable=False)
    city = Column(String(100), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    phone = Column(String(50), nullable=True)
    seats_count = Column(Integer, nullable=False, default=25)
    tables_count = Column(Integer, nullable=False, default=10)
    opening_time = Column(String(5), nullable=False, default="12:00")
    closing_time = Column(String(5), nullable=False, default="23:00")
    reservation_duration = Column(Integer, nullable=False, default=90)  # minutes

    # Relationships
    restaurant = relationship("RestaurantUser", back_populates="branches")
    settings = relationship(
        "BookingSettings", back_populates="branch", uselist=False, cascade="all, delete-orphan"
    )
    time_slots = relationship("TimeSlot", back_populates="branch", cascade="all, delete-orphan")
    overrides = relationship("BookingOverride", back_populates="branch", cascade="all, delete-orphan")
    saved_by = relationship("SavedBranch", back_populates="branch", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("seats_count > 0", name="check_branch_seats_positive"),
        CheckConstraint("tables_count > 0", name="check_branch_tables_positive"),
        CheckConstraint("reservation_duration > 0", name="check_branch_duration_positive"),
        # Search filters by city far more often than anything else
        Index("ix_restaurant_branches_city", "city"),
    )

    def __repr__(self) -> str:
        return f"<RestaurantBranch(id={self.id}, restaurant={self.restaurant_id}, city={self.city})>"
