"""
Customer account with profile and last known location.
"""

from sqlalchemy import Column, Integer, String, Boolean, Date, DateTime, Float, JSON
from sqlalchemy.orm import relationship

from ehgezli.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    gender = Column(String(20), nullable=False)
    birthday = Column(Date, nullable=False)
    nationality = Column(String(100), nullable=False)
    city = Column(String(100), nullable=False)
    favorite_cuisines = Column(JSON, nullable=False, default=list)

    last_latitude = Column(Float, nullable=True)
    last_longitude = Column(Float, nullable=True)
    location_updated_at = Column(DateTime(timezone=True), nullable=True)
    location_permission_granted = Column(Boolean, nullable=False, default=False)

    # Relationships
    bookings = relationship("Booking", back_populates="user", foreign_keys="Booking.user_id")
    saved_branches = relationship("SavedBranch", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
