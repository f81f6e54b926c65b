"""
Pydantic schemas for login, tokens and password reset.
"""

from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field

from ehgezli.schemas.restaurant import RestaurantUserResponse
from ehgezli.schemas.user import UserResponse

AccountType = Literal["user", "restaurant"]


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account_type: AccountType
    user: Optional[UserResponse] = None
    restaurant: Optional[RestaurantUserResponse] = None


class PrincipalResponse(BaseModel):
    id: int
    type: AccountType


class PasswordResetRequest(BaseModel):
    email: EmailStr
    account_type: AccountType = "user"


class PasswordResetRequested(BaseModel):
    message: str
    # Only populated outside production, where no mail is delivered
    reset_token: Optional[str] = None


class PasswordResetValidate(BaseModel):
    token: str = Field(..., min_length=1)


class PasswordResetValidation(BaseModel):
    valid: bool
    account_type: Optional[AccountType] = None


class PasswordResetConfirm(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=6, max_length=128)


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6, max_length=128)


class MessageResponse(BaseModel):
    message: str
