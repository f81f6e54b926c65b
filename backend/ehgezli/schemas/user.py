"""
Pydantic schemas for customer accounts.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    gender: str = Field(..., min_length=1, max_length=20)
    birthday: date
    nationality: str = Field(..., min_length=1, max_length=100)
    city: str = Field(..., min_length=1, max_length=100)
    favorite_cuisines: list[str] = Field(..., min_length=1, max_length=3)


class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    gender: Optional[str] = Field(None, min_length=1, max_length=20)
    nationality: Optional[str] = Field(None, min_length=1, max_length=100)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    favorite_cuisines: Optional[list[str]] = Field(None, min_length=1, max_length=3)


class UserResponse(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str
    gender: str
    birthday: date
    nationality: str
    city: str
    favorite_cuisines: list[str]
    created_at: datetime

    model_config = {"from_attributes": True}


class LocationPermissionUpdate(BaseModel):
    granted: bool
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class LocationPermissionResponse(BaseModel):
    location_permission_granted: bool
    last_latitude: Optional[float]
    last_longitude: Optional[float]
    location_updated_at: Optional[datetime]

    model_config = {"from_attributes": True}
