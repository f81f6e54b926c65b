"""
Tests for authentication endpoints: registration, login, token
verification and password reset.
"""

import pytest
from httpx import AsyncClient

from conftest import PASSWORD

NEW_USER = {
    "first_name": "Nour",
    "last_name": "Hassan",
    "email": "nour@example.com",
    "password": "securepassword123",
    "gender": "female",
    "birthday": "1994-03-02",
    "nationality": "Egyptian",
    "city": "Alexandria",
    "favorite_cuisines": ["Seafood", "Italian"],
}

NEW_RESTAURANT = {
    "email": "pizzeria@example.com",
    "password": "securepassword123",
    "name": "Pizzeria Roma",
    "about": "Wood-fired pizza since 1998.",
    "description": "Neapolitan dough, imported flour and local toppings.",
    "cuisine": "Italian",
    "price_range": "$$",
}


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """Successful registration returns the profile, never the hash."""
    response = await client.post("/api/auth/register", json=NEW_USER)
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "nour@example.com"
    assert data["favorite_cuisines"] == ["Seafood", "Italian"]
    assert "hashed_password" not in data
    assert "password" not in data


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, customer):
    """Duplicate email returns 409, whatever its case."""
    response = await client.post(
        "/api/auth/register", json={**NEW_USER, "email": "Customer@Example.com"}
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_register_weak_password(client: AsyncClient):
    response = await client.post("/api/auth/register", json={**NEW_USER, "password": "short"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_register_too_many_cuisines(client: AsyncClient):
    response = await client.post(
        "/api/auth/register",
        json={**NEW_USER, "favorite_cuisines": ["A", "B", "C", "D"]},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, customer):
    response = await client.post("/api/auth/login", json={
        "email": "customer@example.com",
        "password": PASSWORD,
    })
    assert response.status_code == 200
    data = response.json()
    assert data["token_type"] == "bearer"
    assert data["account_type"] == "user"
    assert data["user"]["id"] == customer.id
    assert len(data["access_token"]) > 20


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, customer):
    response = await client.post("/api/auth/login", json={
        "email": "customer@example.com",
        "password": "wrongpassword",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_unknown_email(client: AsyncClient):
    response = await client.post("/api/auth/login", json={
        "email": "nobody@example.com",
        "password": "whatever123",
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_customer_cannot_use_restaurant_login(client: AsyncClient, customer):
    response = await client.post("/api/auth/restaurant-login", json={
        "email": "customer@example.com",
        "password": PASSWORD,
    })
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_restaurant_register_and_login(client: AsyncClient):
    response = await client.post("/api/auth/restaurant-register", json=NEW_RESTAURANT)
    assert response.status_code == 201
    assert response.json()["name"] == "Pizzeria Roma"

    response = await client.post("/api/auth/restaurant-login", json={
        "email": "pizzeria@example.com",
        "password": "securepassword123",
    })
    assert response.status_code == 200
    data = response.json()
    assert data["account_type"] == "restaurant"
    assert data["restaurant"]["email"] == "pizzeria@example.com"

    # The profile was created alongside the account
    headers = {"Authorization": f"Bearer {data['access_token']}"}
    profile = await client.get("/api/restaurant", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["price_range"] == "$$"


@pytest.mark.asyncio
async def test_restaurant_register_rejects_long_about(client: AsyncClient):
    about = " ".join(["word"] * 51)
    response = await client.post("/api/auth/restaurant-register", json={**NEW_RESTAURANT, "about": about})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_restaurant_register_rejects_bad_price_range(client: AsyncClient):
    response = await client.post(
        "/api/auth/restaurant-register", json={**NEW_RESTAURANT, "price_range": "$$$$$"}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_verify_token(client: AsyncClient, customer, customer_headers):
    response = await client.get("/api/auth/verify-token", headers=customer_headers)
    assert response.status_code == 200
    assert response.json() == {"id": customer.id, "type": "user"}


@pytest.mark.asyncio
async def test_verify_token_missing(client: AsyncClient):
    response = await client.get("/api/auth/verify-token")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_verify_token_garbage(client: AsyncClient):
    response = await client.get(
        "/api/auth/verify-token", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_password_reset_flow(client: AsyncClient, customer):
    response = await client.post("/api/auth/password-reset", json={
        "email": "customer@example.com",
        "account_type": "user",
    })
    assert response.status_code == 200
    token = response.json()["reset_token"]
    assert token

    check = await client.post("/api/auth/password-reset/validate", json={"token": token})
    assert check.json() == {"valid": True, "account_type": "user"}

    confirm = await client.post("/api/auth/password-reset/confirm", json={
        "token": token,
        "password": "brandnewpassword",
    })
    assert confirm.status_code == 200

    login = await client.post("/api/auth/login", json={
        "email": "customer@example.com",
        "password": "brandnewpassword",
    })
    assert login.status_code == 200

    # Tokens are single-use
    reuse = await client.post("/api/auth/password-reset/confirm", json={
        "token": token,
        "password": "anotherpassword",
    })
    assert reuse.status_code == 400


@pytest.mark.asyncio
async def test_password_reset_unknown_email_looks_the_same(client: AsyncClient):
    response = await client.post("/api/auth/password-reset", json={
        "email": "nobody@example.com",
        "account_type": "user",
    })
    assert response.status_code == 200
    assert response.json()["reset_token"] is None
    assert "If an account exists" in response.json()["message"]


@pytest.mark.asyncio
async def test_password_reset_invalid_token(client: AsyncClient):
    check = await client.post("/api/auth/password-reset/validate", json={"token": "nope"})
    assert check.json()["valid"] is False


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, customer, customer_headers):
    wrong = await client.post(
        "/api/auth/change-password",
        json={"current_password": "incorrect", "new_password": "newpassword1"},
        headers=customer_headers,
    )
    assert wrong.status_code == 400

    response = await client.post(
        "/api/auth/change-password",
        json={"current_password": PASSWORD, "new_password": "newpassword1"},
        headers=customer_headers,
    )
    assert response.status_code == 200

    login = await client.post("/api/auth/login", json={
        "email": "customer@example.com",
        "password": "newpassword1",
    })
    assert login.status_code == 200
