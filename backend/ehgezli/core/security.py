"""
Password hashing, JWT issuing and the FastAPI dependencies that turn a
bearer token into an authenticated principal.

Tokens carry two claims besides expiry:
  sub  - account id (string)
  type - "user" for customers, "restaurant" for restaurant operators
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ehgezli.core.config import get_settings
from ehgezli.db.session import get_db
from ehgezli.models.restaurant import RestaurantUser
from ehgezli.models.user import User

settings = get_settings()

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme = HTTPBearer(auto_error=False)

USER = "user"
RESTAURANT = "restaurant"
ACCOUNT_TYPES = (USER, RESTAURANT)
_ACCOUNT_MODELS = {USER: User, RESTAURANT: RestaurantUser}


@dataclass(frozen=True)
class Principal:
    id: int
    type: str

    @property
    def is_user(self) -> bool:
        return self.type == USER

    @property
    def is_restaurant(self) -> bool:
        return self.type == RESTAURANT


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token from payload data."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_token_for(account_id: int, account_type: str) -> str:
    return create_access_token(data={"sub": str(account_id), "type": account_type})


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_token(token: str) -> Principal:
    """Decode a bearer token into a Principal. Raises 401 on any problem."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError as exc:
        raise _unauthorized("Could not validate credentials") from exc

    account_type = payload.get("type")
    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError) as exc:
        raise _unauthorized("Invalid authentication token") from exc

    if account_type not in ACCOUNT_TYPES:
        raise _unauthorized("Invalid authentication token")
    return Principal(id=account_id, type=account_type)


async def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> Optional[Principal]:
    """
    Principal for endpoints that work anonymously but personalise when logged in.
    A token whose account has since been deleted is rejected with 401.
    """
    if credentials is None:
        return None
    principal = decode_token(credentials.credentials)
    model = _ACCOUNT_MODELS[principal.type]
    found = await db.execute(select(model.id).where(model.id == principal.id))
    if found.scalar_one_or_none() is None:
        raise _unauthorized("Account no longer exists")
    structlog.contextvars.bind_contextvars(principal=f"{principal.type}:{principal.id}")
    return principal


async def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    if principal is None:
        raise _unauthorized("Not authenticated")
    return principal


async def get_current_user_id(principal: Principal = Depends(get_current_principal)) -> int:
    """Customer id of the caller. Restaurant tokens are rejected with 403."""
    if not principal.is_user:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This endpoint is only available to customers",
        )
    return principal.id


async def get_current_restaurant_id(principal: Principal = Depends(get_current_principal)) -> int:
    """Restaurant account id of the caller. Customer tokens are rejected with 403."""
    if not principal.is_restaurant:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This endpoint is only available to restaurant accounts",
        )
    return principal.id
