"""
Restaurant operator account and its public profile (one-to-one).
"""

from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship

from ehgezli.db.base import Base, TimestampMixin

PRICE_RANGES = ("$", "$$", "$$$", "$$$$")


class RestaurantUser(Base, TimestampMixin):
    __tablename__ = "restaurant_users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    name = Column(String(255), nullable=False)
    verified = Column(Boolean, nullable=False, default=False)

    # Relationships
    profile = relationship(
        "RestaurantProfile", back_populates="restaurant", uselist=False, cascade="all, delete-orphan"
    )
    branches = relationship("RestaurantBranch", back_populates="restaurant", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<RestaurantUser(id={self.id}, name={self.name})>"


class RestaurantProfile(Base, TimestampMixin):
    __tablename__ = "restaurant_profiles"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurant_users.id"), unique=True, nullable=False)
    about = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False)
    cuisine = Column(String(100), nullable=False, index=True)
    price_range = Column(String(4), nullable=False)
    logo = Column(Text, nullable=False, default="")
    is_profile_complete = Column(Boolean, nullable=False, default=False)

    restaurant = relationship("RestaurantUser", back_populates="profile")

    __table_args__ = (
        CheckConstraint("price_range IN ('$', '$$', '$$$', '$$$$')", name="check_profile_price_range"),
    )

    def __repr__(self) -> str:
        return f"<RestaurantProfile(restaurant={self.restaurant_id}, cuisine={self.cuisine})>"
