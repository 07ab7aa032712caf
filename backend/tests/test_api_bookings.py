"""
Tests for the HTTP endpoints: booking lifecycle, slots and error mapping.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import AsyncClient

CONFIRM_BODY = {
    "details": {"unit_price": "100.00", "quantity": 2, "tax_total": "10.00", "grand_total": "210.00"},
    "payment": {"amount": "210.00", "processor_id": "pi_3Nx7", "status": "succeeded"},
}


async def _create(client: AsyncClient, service, slots, customer_id="cust-1"):
    return await client.post(
        "/api/v1/bookings/",
        json={
            "customer_id": customer_id,
            "service_id": service.id,
            "slot_ids": [s.id for s in slots],
            "scheduled_date": slots[0].start_time.isoformat(),
        },
    )


@pytest.mark.asyncio
async def test_booking_lifecycle(client: AsyncClient, clock, service, slots):
    """Create, confirm, then complete once the scheduled time has passed."""
    response = await _create(client, service, slots[:1])
    assert response.status_code == 201
    data = response.json()
    assert data["status"] == "PENDING"
    assert [s["id"] for s in data["slots"]] == [slots[0].id]
    assert data["slots"][0]["status"] == "BOOKED"
    booking_id = data["id"]

    response = await client.post(f"/api/v1/bookings/{booking_id}/confirm", json=CONFIRM_BODY)
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ACTIVE"
    assert Decimal(data["details"]["grand_total"]) == Decimal("210")
    assert data["details"]["service_snapshot"]["title"] == "Deep Tissue Massage"
    assert data["payment"]["processor_id"] == "pi_3Nx7"

    clock.advance(days=2)
    response = await client.post(f"/api/v1/bookings/{booking_id}/complete")
    assert response.status_code == 200
    assert response.json()["status"] == "COMPLETED"

    response = await client.get(f"/api/v1/bookings/{booking_id}")
    assert response.status_code == 200
    assert response.json()["completed_at"] is not None


@pytest.mark.asyncio
async def test_taken_slot_returns_409(client: AsyncClient, service, slots):
    assert (await _create(client, service, slots[:1])).status_code == 201

    response = await _create(client, service, slots[:1], customer_id="cust-2")
    assert response.status_code == 409
    data = response.json()
    assert data["code"] == "slot_conflict"
    assert data["slot_ids"] == [slots[0].id]
    assert data["retryable"] is True


@pytest.mark.asyncio
async def test_confirm_with_bad_total_returns_400(client: AsyncClient, service, slots):
    booking_id = (await _create(client, service, slots[:1])).json()["id"]
    body = {
        "details": {**CONFIRM_BODY["details"], "grand_total": "200.00"},
        "payment": {**CONFIRM_BODY["payment"], "amount": "200.00"},
    }

    response = await client.post(f"/api/v1/bookings/{booking_id}/confirm", json=body)
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_amount"

    response = await client.get(f"/api/v1/bookings/{booking_id}")
    assert response.json()["status"] == "PENDING"
    assert response.json()["payment"] is None


@pytest.mark.asyncio
async def test_unknown_booking_returns_404(client: AsyncClient):
    response = await client.get("/api/v1/bookings/missing")
    assert response.status_code == 404
    assert response.json()["code"] == "not_found"

    response = await client.post("/api/v1/bookings/missing/cancel")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_cancel_twice_returns_200(client: AsyncClient, service, slots, refund_sink):
    booking_id = (await _create(client, service, slots[:1])).json()["id"]
    await client.post(f"/api/v1/bookings/{booking_id}/confirm", json=CONFIRM_BODY)

    first = await client.post(f"/api/v1/bookings/{booking_id}/cancel", json={"reason": "plans changed"})
    second = await client.post(f"/api/v1/bookings/{booking_id}/cancel")

    assert first.status_code == second.status_code == 200
    assert second.json()["status"] == "CANCELLED"
    assert second.json()["cancellation_reason"] == "plans changed"
    assert second.json()["slots"] == []
    assert second.json()["payment"]["refund_requested_at"] is not None
    assert len(refund_sink.intents) == 1


@pytest.mark.asyncio
async def test_complete_cancelled_returns_terminal_state(client: AsyncClient, clock, service, slots):
    booking_id = (await _create(client, service, slots[:1])).json()["id"]
    await client.post(f"/api/v1/bookings/{booking_id}/cancel")
    clock.advance(days=2)

    response = await client.post(f"/api/v1/bookings/{booking_id}/complete")
    assert response.status_code == 400
    assert response.json()["code"] == "terminal_state"


@pytest.mark.asyncio
async def test_complete_future_booking_returns_400(client: AsyncClient, service, slots):
    booking_id = (await _create(client, service, slots[:1])).json()["id"]
    await client.post(f"/api/v1/bookings/{booking_id}/confirm", json=CONFIRM_BODY)

    response = await client.post(f"/api/v1/bookings/{booking_id}/complete")
    assert response.status_code == 400
    assert response.json()["code"] == "invalid_transition"


@pytest.mark.asyncio
async def test_empty_slot_list_returns_422(client: AsyncClient, service, slots):
    response = await client.post(
        "/api/v1/bookings/",
        json={
            "customer_id": "cust-1",
            "service_id": service.id,
            "slot_ids": [],
            "scheduled_date": slots[0].start_time.isoformat(),
        },
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_list_bookings_by_customer(client: AsyncClient, service, slots):
    await _create(client, service, slots[:1], customer_id="cust-1")
    await _create(client, service, slots[1:2], customer_id="cust-2")

    response = await client.get("/api/v1/bookings/", params={"customer_id": "cust-2"})
    assert response.status_code == 200
    assert [b["customer_id"] for b in response.json()] == ["cust-2"]

    response = await client.get("/api/v1/bookings/", params={"status": "ACTIVE"})
    assert response.json() == []


@pytest.mark.asyncio
async def test_availability_endpoint(client: AsyncClient, service, slots):
    await _create(client, service, slots[:1])
    params = {
        "start": slots[0].start_time.isoformat(),
        "end": (slots[-1].end_time + timedelta(hours=1)).isoformat(),
    }

    response = await client.get(f"/api/v1/services/{service.id}/availability", params=params)
    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == [slots[1].id, slots[2].id]

    response = await client.get(f"/api/v1/services/{service.id}/availability")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_availability_accepts_mixed_offsets(client: AsyncClient, service, slots):
    url = f"/api/v1/services/{service.id}/availability"

    response = await client.get(url, params={"start": "2026-10-20T00:00:00", "end": "2026-10-21T00:00:00Z"})
    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == [s.id for s in slots]

    # 14:00+02:00 to 15:00+02:00 is the first slot in UTC
    response = await client.get(url, params={"start": "2026-10-20T14:00:00+02:00", "end": "2026-10-20T15:00:00+02:00"})
    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == [slots[0].id]


@pytest.mark.asyncio
async def test_slot_endpoints(client: AsyncClient, service, slots):
    start = slots[-1].end_time
    response = await client.post(
        "/api/v1/slots/",
        json={
            "service_id": service.id,
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(hours=1)).isoformat(),
        },
    )
    assert response.status_code == 201
    slot_id = response.json()["id"]

    overlap = await client.post(
        "/api/v1/slots/",
        json={
            "service_id": service.id,
            "start_time": start.isoformat(),
            "end_time": (start + timedelta(minutes=30)).isoformat(),
        },
    )
    assert overlap.status_code == 409
    assert overlap.json()["code"] == "slot_overlap"

    response = await client.post(f"/api/v1/slots/{slot_id}/block")
    assert response.json()["status"] == "BLOCKED"
    response = await client.post(f"/api/v1/slots/{slot_id}/unblock")
    assert response.json()["status"] == "AVAILABLE"

    moved_start = start + timedelta(hours=2)
    response = await client.patch(
        f"/api/v1/slots/{slot_id}",
        json={"start_time": moved_start.isoformat(), "end_time": (moved_start + timedelta(hours=1)).isoformat()},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "AVAILABLE"
    assert response.json()["booking_id"] is None

    response = await client.delete(f"/api/v1/slots/{slot_id}")
    assert response.status_code == 204
    assert (await client.get(f"/api/v1/slots/{slot_id}")).status_code == 404


@pytest.mark.asyncio
async def test_service_endpoints(client: AsyncClient, service):
    response = await client.post(
        "/api/v1/services/",
        json={
            "vendor_id": "vendor-9",
            "category_id": "category-1",
            "unit_id": "unit-hour",
            "title": "Dog Walking",
            "base_price": "25.00",
        },
    )
    assert response.status_code == 201
    created = response.json()

    response = await client.get("/api/v1/services/", params={"vendor_id": "vendor-9"})
    assert [s["id"] for s in response.json()] == [created["id"]]

    response = await client.patch(
        f"/api/v1/services/{created['id']}", json={"title": "Dog Walking Plus", "category_id": "category-7"}
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Dog Walking Plus"
    response = await client.get("/api/v1/services/", params={"category_id": "category-7"})
    assert [s["id"] for s in response.json()] == [created["id"]]

    response = await client.patch(f"/api/v1/services/{created['id']}", json={"title": None})
    assert response.status_code == 422
    assert (await client.patch("/api/v1/services/missing", json={"title": "Nope"})).status_code == 404

    response = await client.post(f"/api/v1/services/{created['id']}/deactivate")
    assert response.status_code == 200
    assert response.json()["is_active"] is False


@pytest.mark.asyncio
async def test_health_check(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient):
    response = await client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"

    response = await client.get("/health")
    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_metrics_endpoint(client: AsyncClient, service, slots):
    await _create(client, service, slots[:1])

    response = await client.get("/metrics")
    assert response.status_code == 200
    assert "marketplace_booking_operations_total" in response.text


@pytest.mark.asyncio
async def test_booked_slot_reschedule_returns_409(client: AsyncClient, service, slots):
    await _create(client, service, slots[:1])
    start = slots[-1].end_time + timedelta(hours=4)

    response = await client.patch(
        f"/api/v1/slots/{slots[0].id}",
        json={"start_time": start.isoformat(), "end_time": (start + timedelta(hours=1)).isoformat()},
    )
    assert response.status_code == 409
    assert response.json()["code"] == "slot_conflict"
