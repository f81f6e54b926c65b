"""
Tests for booking endpoints: capacity, guest bookings, access control and
the booking lifecycle.
"""

import pytest
from httpx import AsyncClient

from ehgezli.services import booking_service
from conftest import slot_start


async def book(client: AsyncClient, headers, branch_id, day, hhmm="12:00", party_size=2, **extra):
    return await client.post("/api/booking", json={
        "branch_id": branch_id,
        "start_time": slot_start(day, hhmm),
        "party_size": party_size,
        **extra,
    }, headers=headers)


@pytest.mark.asyncio
async def test_create_booking(client: AsyncClient, customer, customer_headers, branch, booking_day):
    response = await book(client, customer_headers, branch.id, booking_day, special_requests="Window seat")
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] == customer.id
    assert data["party_size"] == 2
    assert data["status"] == "confirmed"
    assert data["confirmed"] is True
    assert data["arrived"] is False
    assert data["completed"] is False
    assert data["special_requests"] == "Window seat"


@pytest.mark.asyncio
async def test_create_booking_by_slot_id(client: AsyncClient, customer_headers, branch, booking_day):
    availability = await client.get(f"/api/branch/{branch.id}/availability/{booking_day.isoformat()}")
    slot_id = availability.json()["available_slots"][2]["id"]

    response = await client.post(
        "/api/booking", json={"time_slot_id": slot_id, "party_size": 4}, headers=customer_headers
    )
    assert response.status_code == 201
    assert response.json()["time_slot_id"] == slot_id


@pytest.mark.asyncio
async def test_create_booking_pending_without_auto_confirm(
    client: AsyncClient, customer_headers, branch, booking_day, monkeypatch
):
    monkeypatch.setattr(booking_service.settings, "BOOKING_AUTO_CONFIRM", False)
    response = await book(client, customer_headers, branch.id, booking_day)
    assert response.status_code == 201
    assert response.json()["status"] == "pending"
    assert response.json()["confirmed"] is False


@pytest.mark.asyncio
async def test_create_booking_unauthenticated(client: AsyncClient, branch, booking_day):
    response = await book(client, {}, branch.id, booking_day)
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_create_booking_needs_slot_reference(client: AsyncClient, customer_headers, branch):
    response = await client.post(
        "/api/booking", json={"branch_id": branch.id, "party_size": 2}, headers=customer_headers
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_booking_off_grid_time(client: AsyncClient, customer_headers, branch, booking_day):
    response = await book(client, customer_headers, branch.id, booking_day, hhmm="12:30")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_party_larger_than_slot(client: AsyncClient, customer_headers, branch, booking_day):
    response = await book(client, customer_headers, branch.id, booking_day, party_size=11)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_slot_runs_out_of_tables(
    client: AsyncClient, customer_headers, other_customer_headers, restaurant_headers,
    branch, booking_day,
):
    assert (await book(client, customer_headers, branch.id, booking_day)).status_code == 201
    assert (await book(client, other_customer_headers, branch.id, booking_day)).status_code == 201

    # Two tables, two bookings: a third party is turned away even with seats left
    response = await book(
        client, restaurant_headers, branch.id, booking_day, party_size=1,
        guest_name="Walk In", guest_phone="0100000000",
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_cancelled_booking_frees_capacity(
    client: AsyncClient, customer_headers, other_customer_headers, restaurant_headers, branch, booking_day
):
    first = await book(client, customer_headers, branch.id, booking_day)
    await book(client, other_customer_headers, branch.id, booking_day)

    cancel = await client.delete(f"/api/booking/{first.json()['id']}", headers=customer_headers)
    assert cancel.status_code == 200
    assert cancel.json()["status"] == "cancelled"

    response = await book(
        client, restaurant_headers, branch.id, booking_day,
        guest_name="Walk In", guest_phone="0100000000",
    )
    assert response.status_code == 201


@pytest.mark.asyncio
async def test_duplicate_booking(client: AsyncClient, customer_headers, branch, booking_day):
    """Same customer booking the same slot twice returns 409."""
    assert (await book(client, customer_headers, branch.id, booking_day)).status_code == 201
    assert (await book(client, customer_headers, branch.id, booking_day)).status_code == 409


@pytest.mark.asyncio
async def test_moving_booking_onto_own_slot_is_duplicate(
    client: AsyncClient, customer_headers, branch, booking_day
):
    first = (await book(client, customer_headers, branch.id, booking_day, "12:00")).json()
    second = (await book(client, customer_headers, branch.id, booking_day, "13:00")).json()

    response = await client.put(f"/api/booking/{second['id']}", json={
        "start_time": slot_start(booking_day, "12:00"),
    }, headers=customer_headers)
    assert response.status_code == 409
    assert response.json()["detail"] == "You already have a booking for this time slot"

    bookings = (await client.get("/api/booking", headers=customer_headers)).json()
    slots = {item["id"]: item["time_slot"]["start_time"] for item in bookings}
    assert slots == {
        first["id"]: slot_start(booking_day, "12:00"),
        second["id"]: slot_start(booking_day, "13:00"),
    }

    # Re-sending the booking's own slot is not a duplicate
    same = await client.put(f"/api/booking/{second['id']}", json={
        "start_time": slot_start(booking_day, "13:00"),
        "party_size": 3,
    }, headers=customer_headers)
    assert same.status_code == 200


@pytest.mark.asyncio
async def test_closed_slot(client: AsyncClient, customer_headers, restaurant_headers, branch, booking_day):
    override = await client.post(f"/api/booking/overrides/{branch.id}", json={
        "date": booking_day.isoformat(),
        "start_time": slot_start(booking_day, "12:00"),
        "end_time": slot_start(booking_day, "13:00"),
        "override_type": "closed",
    }, headers=restaurant_headers)
    assert override.status_code == 201

    response = await book(client, customer_headers, branch.id, booking_day)
    assert response.status_code == 409
    assert "closed" in response.json()["detail"]


@pytest.mark.asyncio
async def test_guest_booking_by_restaurant(client: AsyncClient, restaurant, restaurant_headers, branch, booking_day):
    response = await book(
        client, restaurant_headers, branch.id, booking_day, party_size=5,
        guest_name="Omar Farouk", guest_phone="01001234567", guest_email="omar@example.com",
    )
    assert response.status_code == 201
    data = response.json()
    assert data["user_id"] is None
    assert data["restaurant_user_id"] == restaurant.id
    assert data["guest_name"] == "Omar Farouk"


@pytest.mark.asyncio
async def test_guest_booking_requires_phone(client: AsyncClient, restaurant_headers, branch, booking_day):
    response = await book(client, restaurant_headers, branch.id, booking_day, guest_name="No Phone")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_customer_cannot_create_guest_booking(client: AsyncClient, customer_headers, branch, booking_day):
    response = await book(
        client, customer_headers, branch.id, booking_day,
        guest_name="Friend", guest_phone="0100000000",
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_restaurant_cannot_book_other_restaurants_branch(
    client: AsyncClient, other_restaurant_headers, branch, booking_day
):
    response = await book(
        client, other_restaurant_headers, branch.id, booking_day,
        guest_name="Guest", guest_phone="0100000000",
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_bookings_with_details(client: AsyncClient, customer_headers, branch, booking_day):
    await book(client, customer_headers, branch.id, booking_day, hhmm="12:00")
    await book(client, customer_headers, branch.id, booking_day, hhmm="15:00")

    response = await client.get("/api/booking", headers=customer_headers)
    assert response.status_code == 200
    bookings = response.json()
    assert len(bookings) == 2
    # Latest slot first
    assert bookings[0]["time_slot"]["start_time"] == slot_start(booking_day, "15:00")
    assert bookings[0]["branch"]["restaurant_name"] == "Trattoria"
    assert bookings[0]["branch"]["city"] == "Cairo"
    assert bookings[0]["user"]["first_name"] == "Test"


@pytest.mark.asyncio
async def test_restaurant_lists_its_bookings(
    client: AsyncClient, customer_headers, restaurant_headers, other_restaurant_headers, branch, booking_day
):
    await book(client, customer_headers, branch.id, booking_day)

    own = await client.get("/api/booking", headers=restaurant_headers)
    assert len(own.json()) == 1

    other = await client.get("/api/booking", headers=other_restaurant_headers)
    assert other.json() == []


@pytest.mark.asyncio
async def test_branch_bookings_by_date(
    client: AsyncClient, customer_headers, restaurant_headers, other_restaurant_headers, branch, booking_day
):
    await book(client, customer_headers, branch.id, booking_day)

    same_day = await client.get(
        f"/api/booking/branch/{branch.id}", params={"date": booking_day.isoformat()},
        headers=restaurant_headers,
    )
    assert len(same_day.json()) == 1

    other_day = await client.get(
        f"/api/booking/branch/{branch.id}", params={"date": "2000-01-01"}, headers=restaurant_headers,
    )
    assert other_day.json() == []

    forbidden = await client.get(f"/api/booking/branch/{branch.id}", headers=other_restaurant_headers)
    assert forbidden.status_code == 403


@pytest.mark.asyncio
async def test_get_booking_access(
    client: AsyncClient, customer_headers, other_customer_headers, restaurant_headers,
    other_restaurant_headers, branch, booking_day,
):
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]

    assert (await client.get(f"/api/booking/{booking_id}", headers=customer_headers)).status_code == 200
    assert (await client.get(f"/api/booking/{booking_id}", headers=restaurant_headers)).status_code == 200
    assert (await client.get(f"/api/booking/{booking_id}", headers=other_customer_headers)).status_code == 403
    assert (await client.get(f"/api/booking/{booking_id}", headers=other_restaurant_headers)).status_code == 403
    assert (await client.get("/api/booking/9999", headers=customer_headers)).status_code == 404


@pytest.mark.asyncio
async def test_update_booking_party_size_and_slot(client: AsyncClient, customer_headers, branch, booking_day):
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]

    response = await client.put(f"/api/booking/{booking_id}", json={
        "party_size": 6,
        "start_time": slot_start(booking_day, "16:00"),
        "special_requests": "Birthday cake",
    }, headers=customer_headers)
    assert response.status_code == 200

    detail = await client.get(f"/api/booking/{booking_id}", headers=customer_headers)
    data = detail.json()
    assert data["party_size"] == 6
    assert data["time_slot"]["start_time"] == slot_start(booking_day, "16:00")
    assert data["special_requests"] == "Birthday cake"


@pytest.mark.asyncio
async def test_update_booking_over_capacity(
    client: AsyncClient, customer_headers, other_customer_headers, branch, booking_day
):
    await book(client, other_customer_headers, branch.id, booking_day, party_size=6)
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]

    # 6 + 5 > 10 seats; the booking's own 2 seats do not count against it
    response = await client.put(
        f"/api/booking/{booking_id}", json={"party_size": 5}, headers=customer_headers
    )
    assert response.status_code == 409

    response = await client.put(
        f"/api/booking/{booking_id}", json={"party_size": 4}, headers=customer_headers
    )
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_lifecycle_by_restaurant(
    client: AsyncClient, customer_headers, restaurant_headers, branch, booking_day, monkeypatch
):
    monkeypatch.setattr(booking_service.settings, "BOOKING_AUTO_CONFIRM", False)
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]

    for previous, new in (("pending", "confirmed"), ("confirmed", "arrived"), ("arrived", "completed")):
        response = await client.post(
            f"/api/booking/change-status/{booking_id}", json={"status": new}, headers=restaurant_headers
        )
        assert response.status_code == 200
        assert response.json()["previous_status"] == previous
        assert response.json()["status"] == new

    data = response.json()
    assert data["arrived_at"] is not None
    assert data["completed_at"] is not None

    detail = (await client.get(f"/api/booking/{booking_id}", headers=customer_headers)).json()
    assert (detail["confirmed"], detail["arrived"], detail["completed"]) == (True, True, True)


@pytest.mark.asyncio
async def test_invalid_transition(client: AsyncClient, customer_headers, restaurant_headers, branch, booking_day):
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]

    skip = await client.post(
        f"/api/booking/change-status/{booking_id}", json={"status": "completed"}, headers=restaurant_headers
    )
    assert skip.status_code == 400

    unknown = await client.post(
        f"/api/booking/change-status/{booking_id}", json={"status": "eaten"}, headers=restaurant_headers
    )
    assert unknown.status_code == 422


@pytest.mark.asyncio
async def test_terminal_states(client: AsyncClient, customer_headers, restaurant_headers, branch, booking_day):
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]
    assert (await client.delete(f"/api/booking/{booking_id}", headers=customer_headers)).status_code == 200

    again = await client.delete(f"/api/booking/{booking_id}", headers=customer_headers)
    assert again.status_code == 400

    revive = await client.post(
        f"/api/booking/change-status/{booking_id}", json={"status": "confirmed"}, headers=restaurant_headers
    )
    assert revive.status_code == 400


@pytest.mark.asyncio
async def test_customer_can_only_cancel(client: AsyncClient, customer_headers, branch, booking_day):
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]

    arrive = await client.post(
        f"/api/booking/change-status/{booking_id}", json={"status": "arrived"}, headers=customer_headers
    )
    assert arrive.status_code == 403

    cancel = await client.post(
        f"/api/booking/change-status/{booking_id}", json={"status": "cancelled"}, headers=customer_headers
    )
    assert cancel.status_code == 200
    assert cancel.json()["status"] == "cancelled"


@pytest.mark.asyncio
async def test_arrived_booking_cannot_be_cancelled_or_edited(
    client: AsyncClient, customer_headers, restaurant_headers, branch, booking_day
):
    booking_id = (await book(client, customer_headers, branch.id, booking_day)).json()["id"]
    await client.post(
        f"/api/booking/change-status/{booking_id}", json={"status": "arrived"}, headers=restaurant_headers
    )

    assert (await client.delete(f"/api/booking/{booking_id}", headers=customer_headers)).status_code == 400
    edit = await client.put(f"/api/booking/{booking_id}", json={"party_size": 3}, headers=customer_headers)
    assert edit.status_code == 400
