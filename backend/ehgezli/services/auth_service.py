"""
Authentication service: registration and login for both account types,
plus the password reset flow.
"""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ehgezli.models.user import User
from ehgezli.models.restaurant import RestaurantUser, RestaurantProfile
from ehgezli.models.password_reset import PasswordResetToken
from ehgezli.schemas.user import UserCreate
from ehgezli.schemas.restaurant import RestaurantCreate
from ehgezli.schemas.auth import LoginRequest
from ehgezli.core.config import get_settings
from ehgezli.core.metrics import record_login
from ehgezli.core.security import (
    RESTAURANT, USER, Principal, create_token_for, hash_password, verify_password,
)
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()

_ACCOUNT_MODELS = {USER: User, RESTAURANT: RestaurantUser}


def _normalise_email(email: str) -> str:
    return email.strip().lower()


async def _email_taken(db: AsyncSession, model, email: str) -> bool:
    result = await db.execute(select(model.id).where(model.email == email))
    return result.scalar_one_or_none() is not None


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new customer with hashed password.
    Raises 409 if the email already exists.
    """
    email = _normalise_email(user_data.email)
    if await _email_taken(db, User, email):
        logger.warning("registration_failed", reason="email_exists", email=email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    user = User(
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        email=email,
        hashed_password=hash_password(user_data.password),
        gender=user_data.gender,
        birthday=user_data.birthday,
        nationality=user_data.nationality,
        city=user_data.city,
        favorite_cuisines=list(user_data.favorite_cuisines),
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def register_restaurant(db: AsyncSession, data: RestaurantCreate) -> RestaurantUser:
    """
    Create a restaurant account and its profile in one transaction.
    Raises 409 if the email already exists.
    """
    email = _normalise_email(data.email)
    if await _email_taken(db, RestaurantUser, email):
        logger.warning("restaurant_registration_failed", reason="email_exists", email=email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    restaurant = RestaurantUser(
        email=email,
        hashed_password=hash_password(data.password),
        name=data.name,
    )
    db.add(restaurant)
    await db.flush()

    profile = RestaurantProfile(
        restaurant_id=restaurant.id,
        about=data.about,
        description=data.description,
        cuisine=data.cuisine,
        price_range=data.price_range,
        logo=data.logo,
        is_profile_complete=True,
    )
    db.add(profile)
    await db.flush()
    await db.refresh(restaurant)

    logger.info("restaurant_registered", restaurant_id=restaurant.id, email=restaurant.email)
    return restaurant


async def _authenticate(db: AsyncSession, account_type: str, login_data: LoginRequest):
    model = _ACCOUNT_MODELS[account_type]
    email = _normalise_email(login_data.email)
    result = await db.execute(select(model).where(model.email == email))
    account = result.scalar_one_or_none()

    if not account or not verify_password(login_data.password, account.hashed_password):
        record_login(account_type, success=False)
        logger.warning("login_failed", account_type=account_type, email=email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    record_login(account_type, success=True)
    logger.info("logged_in", account_type=account_type, account_id=account.id)
    return account, create_token_for(account.id, account_type)


async def authenticate_user(db: AsyncSession, login_data: LoginRequest) -> tuple[User, str]:
    """Authenticate a customer and return (user, JWT). Raises 401 on bad credentials."""
    return await _authenticate(db, USER, login_data)


async def authenticate_restaurant(
    db: AsyncSession, login_data: LoginRequest
) -> tuple[RestaurantUser, str]:
    """Authenticate a restaurant operator and return (account, JWT)."""
    return await _authenticate(db, RESTAURANT, login_data)


# Password reset
# ==============
# Tokens are random, single-use and expire after PASSWORD_RESET_TOKEN_TTL_MINUTES.
# Requesting a reset for an unknown email looks exactly like a known one.


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def request_password_reset(
    db: AsyncSession, email: str, account_type: str
) -> Optional[str]:
    """Issue a reset token. Returns None when no account has that email."""
    model = _ACCOUNT_MODELS[account_type]
    email = _normalise_email(email)
    result = await db.execute(select(model).where(model.email == email))
    account = result.scalar_one_or_none()
    if account is None:
        logger.info("password_reset_unknown_email", account_type=account_type)
        return None

    token = secrets.token_hex(32)
    db.add(PasswordResetToken(
        account_type=account_type,
        account_id=account.id,
        token=token,
        expires_at=datetime.now(timezone.utc)
        + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_TTL_MINUTES),
    ))
    await db.flush()

    logger.info(
        "password_reset_requested",
        account_type=account_type,
        account_id=account.id,
        reset_url=f"{settings.FRONTEND_URL}/auth/reset-password?token={token}",
    )
    return token


async def validate_reset_token(db: AsyncSession, token: str) -> Optional[PasswordResetToken]:
    """Return the token row if it is unused and unexpired, else None."""
    result = await db.execute(select(PasswordResetToken).where(PasswordResetToken.token == token))
    reset = result.scalar_one_or_none()
    if reset is None or reset.used:
        return None
    if _as_utc(reset.expires_at) <= datetime.now(timezone.utc):
        return None
    return reset


async def reset_password(db: AsyncSession, token: str, new_password: str) -> None:
    """Set a new password from a reset token and burn the token. 400 if invalid."""
    reset = await validate_reset_token(db, token)
    if reset is None:
        logger.warning("password_reset_rejected")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid or expired reset token",
        )

    model = _ACCOUNT_MODELS[reset.account_type]
    await db.execute(
        update(model)
        .where(model.id == reset.account_id)
        .values(hashed_password=hash_password(new_password))
    )
    reset.used = True
    await db.flush()
    logger.info("password_reset_completed", account_type=reset.account_type, account_id=reset.account_id)


async def change_password(
    db: AsyncSession, principal: Principal, current_password: str, new_password: str
) -> None:
    model = _ACCOUNT_MODELS[principal.type]
    account = await db.get(model, principal.id)
    if account is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    if not verify_password(current_password, account.hashed_password):
        logger.warning("password_change_rejected", account_type=principal.type, account_id=principal.id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )
    account.hashed_password = hash_password(new_password)
    await db.flush()
    logger.info("password_changed", account_type=principal.type, account_id=principal.id)
