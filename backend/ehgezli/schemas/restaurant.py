"""
Pydantic schemas for restaurant accounts and profiles.
"""

from datetime import datetime
from typing import Annotated, Literal, Optional
from pydantic import AfterValidator, BaseModel, EmailStr, Field

from ehgezli.schemas.branch import BranchResponse

PriceRange = Literal["$", "$$", "$$$", "$$$$"]
MAX_PROFILE_WORDS = 50


def _limit_words(value: str) -> str:
    if len(value.split()) > MAX_PROFILE_WORDS:
        raise ValueError(f"must not exceed {MAX_PROFILE_WORDS} words")
    return value


ProfileText = Annotated[str, Field(min_length=1), AfterValidator(_limit_words)]


class RestaurantCreate(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    name: str = Field(..., min_length=1, max_length=255)
    about: ProfileText
    description: ProfileText
    cuisine: str = Field(..., min_length=1, max_length=100)
    price_range: PriceRange
    logo: str = ""


class RestaurantProfileUpdate(BaseModel):
    about: Optional[ProfileText] = None
    description: Optional[ProfileText] = None
    cuisine: Optional[str] = Field(None, min_length=1, max_length=100)
    price_range: Optional[PriceRange] = None
    logo: Optional[str] = None


class RestaurantProfileResponse(BaseModel):
    id: int
    restaurant_id: int
    about: str
    description: str
    cuisine: str
    price_range: str
    logo: str
    is_profile_complete: bool
    updated_at: datetime

    model_config = {"from_attributes": True}


class RestaurantUserResponse(BaseModel):
    id: int
    email: str
    name: str
    verified: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class RestaurantUserUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)


class RestaurantResponse(BaseModel):
    id: int
    name: str
    profile: Optional[RestaurantProfileResponse]

    model_config = {"from_attributes": True}


class RestaurantDetailResponse(RestaurantResponse):
    branches: list[BranchResponse]
