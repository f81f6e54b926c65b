"""
Pytest fixtures for test database, client, and authentication.

Every test gets its own in-memory SQLite database (aiosqlite), so tests
need neither PostgreSQL nor Redis and never see each other's rows.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from datetime import date, datetime, timedelta
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ehgezli.main import app
from ehgezli.db.base import Base
from ehgezli.db.session import get_db
from ehgezli.core.security import RESTAURANT, USER, create_token_for, hash_password
from ehgezli.models import (
    BookingSettings, RestaurantBranch, RestaurantProfile, RestaurantUser, User,
)

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
PASSWORD = "testpassword123"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Fresh schema per test, dropped afterwards."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def booking_day() -> date:
    """A date a week ahead, so slots are never in the past."""
    return date.today() + timedelta(days=7)


def slot_start(day: date, hhmm: str) -> str:
    hours, minutes = hhmm.split(":")
    return datetime.combine(day, datetime.min.time()).replace(
        hour=int(hours), minute=int(minutes)
    ).isoformat()


async def _make_user(db_session: AsyncSession, email: str, first_name: str = "Test") -> User:
    user = User(
        first_name=first_name,
        last_name="Customer",
        email=email,
        hashed_password=hash_password(PASSWORD),
        gender="female",
        birthday=date(1990, 5, 17),
        nationality="Egyptian",
        city="Cairo",
        favorite_cuisines=["Italian", "Egyptian"],
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


async def _make_restaurant(
    db_session: AsyncSession, email: str, name: str, cuisine: str = "Italian", price_range: str = "$$"
) -> RestaurantUser:
    restaurant = RestaurantUser(email=email, hashed_password=hash_password(PASSWORD), name=name)
    db_session.add(restaurant)
    await db_session.flush()
    db_session.add(RestaurantProfile(
        restaurant_id=restaurant.id,
        about=f"{name} serves {cuisine} food.",
        description="Family recipes, fresh ingredients.",
        cuisine=cuisine,
        price_range=price_range,
        is_profile_complete=True,
    ))
    await db_session.commit()
    await db_session.refresh(restaurant)
    return restaurant


async def make_branch(
    db_session: AsyncSession,
    restaurant: RestaurantUser,
    city: str = "Cairo",
    latitude=30.0444,
    longitude=31.2357,
    max_seats: int = 10,
    max_tables: int = 2,
) -> RestaurantBranch:
    """Branch open 12:00-18:00 with one-hour slots."""
    branch = RestaurantBranch(
        restaurant_id=restaurant.id,
        address=f"{restaurant.name} Street 1",
        city=city,
        latitude=latitude,
        longitude=longitude,
        seats_count=max_seats,
        tables_count=max_tables,
        opening_time="12:00",
        closing_time="18:00",
        reservation_duration=60,
    )
    db_session.add(branch)
    await db_session.flush()
    db_session.add(BookingSettings(
        branch_id=branch.id,
        open_time="12:00",
        close_time="18:00",
        interval=60,
        max_seats_per_slot=max_seats,
        max_tables_per_slot=max_tables,
    ))
    await db_session.commit()
    await db_session.refresh(branch)
    return branch


@pytest_asyncio.fixture
async def customer(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "customer@example.com")


@pytest_asyncio.fixture
async def other_customer(db_session: AsyncSession) -> User:
    return await _make_user(db_session, "other@example.com", first_name="Other")


@pytest_asyncio.fixture
async def customer_headers(customer: User) -> dict:
    return {"Authorization": f"Bearer {create_token_for(customer.id, USER)}"}


@pytest_asyncio.fixture
async def other_customer_headers(other_customer: User) -> dict:
    return {"Authorization": f"Bearer {create_token_for(other_customer.id, USER)}"}


@pytest_asyncio.fixture
async def restaurant(db_session: AsyncSession) -> RestaurantUser:
    return await _make_restaurant(db_session, "owner@example.com", "Trattoria")


@pytest_asyncio.fixture
async def other_restaurant(db_session: AsyncSession) -> RestaurantUser:
    return await _make_restaurant(db_session, "rival@example.com", "Koshary House", cuisine="Egyptian", price_range="$")


@pytest_asyncio.fixture
async def restaurant_headers(restaurant: RestaurantUser) -> dict:
    return {"Authorization": f"Bearer {create_token_for(restaurant.id, RESTAURANT)}"}


@pytest_asyncio.fixture
async def other_restaurant_headers(other_restaurant: RestaurantUser) -> dict:
    return {"Authorization": f"Bearer {create_token_for(other_restaurant.id, RESTAURANT)}"}


@pytest_asyncio.fixture
async def branch(db_session: AsyncSession, restaurant: RestaurantUser) -> RestaurantBranch:
    return await make_branch(db_session, restaurant)
