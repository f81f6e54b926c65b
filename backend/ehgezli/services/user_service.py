"""
Customer profile, location permission and account deletion.
"""

from datetime import datetime, timezone

from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from ehgezli.models.booking import ACTIVE_STATUSES, Booking
from ehgezli.models.password_reset import PasswordResetToken
from ehgezli.models.saved_branch import SavedBranch
from ehgezli.models.user import User
from ehgezli.schemas.user import LocationPermissionUpdate, UserUpdate
from ehgezli.core.logging import get_logger

logger = get_logger(__name__)


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


async def update_user(db: AsyncSession, user_id: int, data: UserUpdate) -> User:
    user = await get_user(db, user_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(user, field, value)
    await db.flush()
    await db.refresh(user)
    logger.info("user_updated", user_id=user_id, fields=sorted(changes))
    return user


async def set_location_permission(
    db: AsyncSession, user_id: int, data: LocationPermissionUpdate
) -> User:
    """
    Record the permission answer. Coordinates are stored only while
    permission is granted; revoking clears them.
    """
    user = await get_user(db, user_id)
    user.location_permission_granted = data.granted
    if not data.granted:
        user.last_latitude = None
        user.last_longitude = None
    elif data.latitude is not None and data.longitude is not None:
        user.last_latitude = data.latitude
        user.last_longitude = data.longitude
    user.location_updated_at = datetime.now(timezone.utc)

    await db.flush()
    await db.refresh(user)
    logger.info("location_permission_updated", user_id=user_id, granted=data.granted)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Delete a customer account. Their bookings stay with the restaurant as
    guest bookings under the customer's name; active ones are cancelled.
    """
    user = await get_user(db, user_id)
    guest_name = f"{user.first_name} {user.last_name}"

    await db.execute(
        update(Booking)
        .where(Booking.user_id == user_id, Booking.status.in_(ACTIVE_STATUSES))
        .values(status="cancelled")
    )
    await db.execute(
        update(Booking)
        .where(Booking.user_id == user_id)
        .values(user_id=None, guest_name=guest_name, guest_email=user.email)
    )
    await db.execute(delete(SavedBranch).where(SavedBranch.user_id == user_id))
    await db.execute(
        delete(PasswordResetToken).where(
            PasswordResetToken.account_type == "user",
            PasswordResetToken.account_id == user_id,
        )
    )
    await db.execute(delete(User).where(User.id == user_id))
    await db.flush()

    logger.info("user_deleted", user_id=user_id)
