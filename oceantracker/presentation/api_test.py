from http import HTTPStatus
from typing import Callable
from unittest.mock import ANY

import pytest
from httpx import AsyncClient

from oceantracker.core.models import Actor, ShipmentStatusEnum
from oceantracker.presentation.api import ShipmentSendRequest


@pytest.fixture
def send_payload(recipient: Actor) -> dict:
    req = ShipmentSendRequest(
        item_types=["Documents"],
        recipient_id=recipient.user_id,
        recipient_name=recipient.name,
        branch="Colombo",
    )
    return req.model_dump(mode="json", by_alias=True)


@pytest.mark.asyncio
async def test_send_shipment(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    send_payload: dict,
    sender: Actor,
):
    # When
    response = await test_async_client.post(
        "/api/shipments/send", json=send_payload, headers=auth_headers(sender)
    )

    # Then
    assert response.status_code == HTTPStatus.CREATED
    data = response.json()
    assert data["id"] is not None
    assert data["trackingNumber"].startswith("OCT")
    assert data["status"] == ShipmentStatusEnum.PENDING
    assert data["senderId"] == sender.user_id
    assert data["itemTypes"] == ["Documents"]
    assert data["trackingHistory"] == [
        {"status": "Shipment Requested", "location": "Sender Location", "timestamp": ANY}
    ]


@pytest.mark.asyncio
async def test_send_shipment_without_token(
    test_async_client: AsyncClient, send_payload: dict
):
    response = await test_async_client.post("/api/shipments/send", json=send_payload)

    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert response.json() == {"message": "No token, authorization denied"}


@pytest.mark.asyncio
async def test_send_shipment_with_bad_token(
    test_async_client: AsyncClient, send_payload: dict
):
    response = await test_async_client.post(
        "/api/shipments/send",
        json=send_payload,
        headers={"x-auth-token": "garbage"},
    )

    assert response.status_code == HTTPStatus.UNAUTHORIZED
    assert response.json() == {"message": "Token is not valid"}


@pytest.mark.asyncio
async def test_send_shipment_validation_error(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    send_payload: dict,
    sender: Actor,
):
    # Given
    send_payload["itemTypes"] = []

    # When
    response = await test_async_client.post(
        "/api/shipments/send", json=send_payload, headers=auth_headers(sender)
    )

    # Then
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"message": "Please select at least one item type"}


@pytest.mark.asyncio
async def test_send_shipment_is_idempotent(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    send_payload: dict,
    sender: Actor,
):
    # Given
    headers = {**auth_headers(sender), "Idempotency-Key": "wizard-submit-1"}

    # When
    first = await test_async_client.post(
        "/api/shipments/send", json=send_payload, headers=headers
    )
    second = await test_async_client.post(
        "/api/shipments/send", json=send_payload, headers=headers
    )
    listed = await test_async_client.get(
        "/api/shipments/user", headers=auth_headers(sender)
    )

    # Then
    assert first.status_code == second.status_code == HTTPStatus.CREATED
    assert second.json()["id"] == first.json()["id"]
    assert len(listed.json()) == 1


@pytest.mark.asyncio
async def test_track_shipment(
    test_async_client: AsyncClient, shipment_factory
):
    # Given
    shipment = await shipment_factory()

    # When
    response = await test_async_client.get(
        f"/api/shipments/track/{shipment.tracking_number}"
    )

    # Then
    assert response.status_code == HTTPStatus.OK
    assert response.json()["id"] == shipment.id


@pytest.mark.asyncio
async def test_track_unknown_shipment(test_async_client: AsyncClient):
    response = await test_async_client.get("/api/shipments/track/OCT00000000NONE")

    assert response.status_code == HTTPStatus.NOT_FOUND
    assert response.json() == {"message": "Shipment not found"}


@pytest.mark.asyncio
async def test_admin_endpoints_require_admin(
    test_async_client: AsyncClient, auth_headers: Callable, sender: Actor
):
    for path in ["/api/shipments/admin", "/api/shipments/admin/stats"]:
        response = await test_async_client.get(path, headers=auth_headers(sender))
        assert response.status_code == HTTPStatus.FORBIDDEN


@pytest.mark.asyncio
async def test_admin_stats(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    shipment_factory,
    admin: Actor,
):
    # Given
    await shipment_factory()

    # When
    response = await test_async_client.get(
        "/api/shipments/admin/stats", headers=auth_headers(admin)
    )

    # Then
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data["total"] == 1
    assert data["pending"] == 1
    assert data["activeShipments"] == 1
    assert len(data["recentShipments"]) == 1
    assert len(data["monthlyShipments"]) == 6


@pytest.mark.asyncio
async def test_admin_set_status_rejects_unknown_status(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    shipment_factory,
    admin: Actor,
):
    # Given
    shipment = await shipment_factory()

    # When
    response = await test_async_client.put(
        f"/api/shipments/admin/{shipment.id}/status",
        json={"status": "Teleported", "location": "Colombo"},
        headers=auth_headers(admin),
    )

    # Then
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"message": "Invalid status: Teleported"}


@pytest.mark.asyncio
async def test_full_lifecycle(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    send_payload: dict,
    admin: Actor,
    sender: Actor,
    recipient: Actor,
    driver: Actor,
):
    # Given - a sender requests a shipment
    response = await test_async_client.post(
        "/api/shipments/send", json=send_payload, headers=auth_headers(sender)
    )
    shipment_id = response.json()["id"]

    # When - admin assigns a driver
    response = await test_async_client.put(
        f"/api/shipments/admin/{shipment_id}/assign-driver",
        json={"driverId": "D1", "driverName": "Jane Doe"},
        headers=auth_headers(admin),
    )

    # Then
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data["status"] == "In Transit"
    assert data["driverName"] == "Jane Doe"
    assert [e["status"] for e in data["trackingHistory"]] == [
        "Shipment Requested",
        "Driver Assigned",
    ]

    # When - the driver sees it and requests pickup, the sender confirms
    listed = await test_async_client.get(
        "/api/shipments/driver", headers=auth_headers(driver)
    )
    assert [s["id"] for s in listed.json()] == [shipment_id]

    await test_async_client.put(
        f"/api/shipments/driver/{shipment_id}/request-pickup",
        headers=auth_headers(driver),
    )
    response = await test_async_client.put(
        f"/api/shipments/user/{shipment_id}/confirm-pickup",
        headers=auth_headers(sender),
    )

    # Then
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data["status"] == "Picked Up"
    assert data["pickupConfirmed"] is True
    assert [e["status"] for e in data["trackingHistory"][-2:]] == [
        "Pickup Requested",
        "Picked Up",
    ]

    # When - admin delivers, the recipient confirms with a note
    await test_async_client.put(
        f"/api/shipments/admin/{shipment_id}/deliver", headers=auth_headers(admin)
    )
    incoming = await test_async_client.get(
        "/api/shipments/incoming", headers=auth_headers(recipient)
    )
    assert [s["id"] for s in incoming.json()] == [shipment_id]

    response = await test_async_client.put(
        f"/api/shipments/recipient/{shipment_id}/confirm-delivery",
        json={"note": "Received in good condition"},
        headers=auth_headers(recipient),
    )

    # Then
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data["status"] == "Delivery Completed"
    assert data["recipientConfirmed"] is True
    assert data["recipientConfirmationNote"] == "Received in good condition"
    assert len(data["trackingHistory"]) == 6

    incoming = await test_async_client.get(
        "/api/shipments/incoming", headers=auth_headers(recipient)
    )
    assert incoming.json() == []


@pytest.mark.asyncio
async def test_confirm_pickup_before_request_conflicts(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    shipment_factory,
    sender: Actor,
):
    # Given
    shipment = await shipment_factory()

    # When
    response = await test_async_client.put(
        f"/api/shipments/user/{shipment.id}/confirm-pickup",
        headers=auth_headers(sender),
    )

    # Then
    assert response.status_code == HTTPStatus.CONFLICT
    assert response.json() == {"message": "Pickup has not been requested"}


@pytest.mark.asyncio
async def test_pickup_alias_route(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    shipment_factory,
    admin: Actor,
    driver: Actor,
):
    # Given
    shipment = await shipment_factory()
    await test_async_client.put(
        f"/api/shipments/admin/{shipment.id}/assign-driver",
        json={"driverId": driver.user_id, "driverName": driver.name},
        headers=auth_headers(admin),
    )

    # When
    response = await test_async_client.put(
        f"/api/shipments/driver/{shipment.id}/pickup", headers=auth_headers(driver)
    )

    # Then
    assert response.status_code == HTTPStatus.OK
    assert response.json()["status"] == "Pickup Requested"


@pytest.mark.asyncio
async def test_health(test_async_client: AsyncClient):
    response = await test_async_client.get("/health")

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_malformed_body_returns_message(
    test_async_client: AsyncClient,
    auth_headers: Callable,
    shipment_factory,
    admin: Actor,
):
    # Given
    shipment = await shipment_factory()

    # When
    response = await test_async_client.put(
        f"/api/shipments/admin/{shipment.id}/status",
        json={"location": "Colombo"},
        headers=auth_headers(admin),
    )

    # Then
    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert response.json() == {"message": "status: Field required"}
