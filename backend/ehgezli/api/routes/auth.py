"""
Authentication endpoints: registration and login for customers and
restaurant accounts, token verification and password reset.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.db.session import get_db
from ehgezli.schemas.auth import (
    LoginRequest, MessageResponse, PasswordChange, PasswordResetConfirm, PasswordResetRequest,
    PasswordResetRequested, PasswordResetValidate, PasswordResetValidation, PrincipalResponse, Token,
)
from ehgezli.schemas.restaurant import RestaurantCreate, RestaurantUserResponse
from ehgezli.schemas.user import UserCreate, UserResponse
from ehgezli.services.auth_service import (
    authenticate_restaurant, authenticate_user, change_password,
    register_restaurant, register_user, request_password_reset, reset_password, validate_reset_token,
)
from ehgezli.core.config import get_settings
from ehgezli.core.security import RESTAURANT, USER, Principal, get_current_principal

settings = get_settings()
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new customer account."""
    return await register_user(db, user_data)


@router.post(
    "/restaurant-register",
    response_model=RestaurantUserResponse,
    status_code=status.HTTP_201_CREATED,
)
async def restaurant_register(data: RestaurantCreate, db: AsyncSession = Depends(get_db)):
    """Register a restaurant account together with its public profile."""
    return await register_restaurant(db, data)


@router.post("/login", response_model=Token)
async def login(login_data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate a customer and receive a JWT access token."""
    user, token = await authenticate_user(db, login_data)
    return Token(access_token=token, account_type=USER, user=UserResponse.model_validate(user))


@router.post("/restaurant-login", response_model=Token)
async def restaurant_login(login_data: LoginRequest, db: AsyncSession = Depends(get_db)):
    """Authenticate a restaurant account and receive a JWT access token."""
    restaurant, token = await authenticate_restaurant(db, login_data)
    return Token(
        access_token=token,
        account_type=RESTAURANT,
        restaurant=RestaurantUserResponse.model_validate(restaurant),
    )


@router.get("/verify-token", response_model=PrincipalResponse)
async def verify_token(principal: Principal = Depends(get_current_principal)):
    """Return the account behind the bearer token. 401 means: log in again."""
    return PrincipalResponse(id=principal.id, type=principal.type)


@router.post("/password-reset", response_model=PasswordResetRequested)
async def password_reset_request(data: PasswordResetRequest, db: AsyncSession = Depends(get_db)):
    """
    Start a password reset. The response is the same whether or not the
    email belongs to an account.
    """
    token = await request_password_reset(db, data.email, data.account_type)
    return PasswordResetRequested(
        message="If an account exists for that email, a reset link has been sent",
        reset_token=token if settings.ENVIRONMENT != "production" else None,
    )


@router.post("/password-reset/validate", response_model=PasswordResetValidation)
async def password_reset_validate(data: PasswordResetValidate, db: AsyncSession = Depends(get_db)):
    reset = await validate_reset_token(db, data.token)
    if reset is None:
        return PasswordResetValidation(valid=False)
    return PasswordResetValidation(valid=True, account_type=reset.account_type)


@router.post("/password-reset/confirm", response_model=MessageResponse)
async def password_reset_confirm(data: PasswordResetConfirm, db: AsyncSession = Depends(get_db)):
    await reset_password(db, data.token, data.password)
    return MessageResponse(message="Password has been reset")


@router.post("/change-password", response_model=MessageResponse)
async def change_password_endpoint(
    data: PasswordChange,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await change_password(db, principal, data.current_password, data.new_password)
    return MessageResponse(message="Password changed")
