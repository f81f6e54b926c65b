"""
Tests for customers' saved branches.
"""

import pytest
from httpx import AsyncClient

from conftest import make_branch


@pytest.mark.asyncio
async def test_save_and_list(client: AsyncClient, db_session, branch, other_restaurant, customer_headers):
    second = await make_branch(db_session, other_restaurant, city="Giza")

    for branch_id in (branch.id, second.id):
        response = await client.post(f"/api/saved-branch/{branch_id}", headers=customer_headers)
        assert response.status_code == 201
        assert response.json() == {"branch_id": branch_id, "saved": True}

    ids = await client.get("/api/saved-branch/ids", headers=customer_headers)
    assert ids.json() == sorted([branch.id, second.id])

    listed = await client.get("/api/saved-branch", headers=customer_headers)
    items = listed.json()
    assert {item["branch_id"] for item in items} == {branch.id, second.id}
    assert all(item["is_saved"] for item in items)
    assert {item["restaurant_name"] for item in items} == {"Trattoria", "Koshary House"}


@pytest.mark.asyncio
async def test_save_is_idempotent(client: AsyncClient, branch, customer_headers):
    await client.post(f"/api/saved-branch/{branch.id}", headers=customer_headers)
    again = await client.post(f"/api/saved-branch/{branch.id}", headers=customer_headers)
    assert again.status_code == 201

    ids = await client.get("/api/saved-branch/ids", headers=customer_headers)
    assert ids.json() == [branch.id]


@pytest.mark.asyncio
async def test_saved_lists_are_per_customer(
    client: AsyncClient, branch, customer_headers, other_customer_headers
):
    await client.post(f"/api/saved-branch/{branch.id}", headers=customer_headers)
    ids = await client.get("/api/saved-branch/ids", headers=other_customer_headers)
    assert ids.json() == []


@pytest.mark.asyncio
async def test_save_missing_branch(client: AsyncClient, customer_headers):
    response = await client.post("/api/saved-branch/9999", headers=customer_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_unsave(client: AsyncClient, branch, customer_headers):
    await client.post(f"/api/saved-branch/{branch.id}", headers=customer_headers)

    response = await client.delete(f"/api/saved-branch/{branch.id}", headers=customer_headers)
    assert response.status_code == 204
    assert (await client.get("/api/saved-branch/ids", headers=customer_headers)).json() == []

    again = await client.delete(f"/api/saved-branch/{branch.id}", headers=customer_headers)
    assert again.status_code == 404


@pytest.mark.asyncio
async def test_saved_branches_are_customer_only(client: AsyncClient, branch, restaurant_headers):
    response = await client.post(f"/api/saved-branch/{branch.id}", headers=restaurant_headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_saved_branches_require_login(client: AsyncClient):
    response = await client.get("/api/saved-branch")
    assert response.status_code == 401
