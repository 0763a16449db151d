"""Role-gated status transitions for shipments.

Every action loads the shipment, checks the caller's role or ownership, checks
the workflow precondition and then applies one versioned update together with
exactly one tracking event. A failed check leaves the shipment untouched.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from pydantic import BaseModel

from oceantracker.application.errors import (
    ConcurrentModification,
    Forbidden,
    InvalidStatus,
    NotFound,
    PreconditionFailed,
    ValidationError,
)
from oceantracker.core.models import Actor, Shipment, ShipmentStatusEnum, TrackingEvent
from oceantracker.infrastructure.repositories import (
    DoesNotExist,
    ShipmentRepository,
    StaleRecord,
)
from oceantracker.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

DRIVER_ASSIGNABLE_STATUSES = frozenset(
    {ShipmentStatusEnum.PENDING, ShipmentStatusEnum.IN_TRANSIT}
)

DRIVER_ASSIGNED = "Driver Assigned"
PICKUP_REQUESTED = "Pickup Requested"
PICKED_UP = "Picked Up"
HANDOVER_REQUESTED = "Handover Requested"
HANDOVER_CONFIRMED = "Handover Confirmed"
DELIVERED_TO_RECIPIENT = "Delivered To Recipient"
DELIVERY_COMPLETED = "Delivery Completed"


class Transition(BaseModel):
    status: ShipmentStatusEnum
    event: str
    location: str
    changes: dict[str, Any] = {}


def _require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise Forbidden("Access denied. Admin privileges required.")


def _require_assigned_driver(actor: Actor, shipment: Shipment) -> None:
    if not actor.has_driver_access or shipment.driver_id != actor.user_id:
        raise Forbidden("This shipment is not assigned to you")


def _handover_location(shipment: Shipment) -> str:
    return shipment.branch or shipment.destination


def parse_status(value: str) -> ShipmentStatusEnum:
    try:
        return ShipmentStatusEnum(value)
    except ValueError as e:
        raise InvalidStatus(f"Invalid status: {value}") from e


class UpdateShipmentStatusUseCase:
    def __init__(self, unit_of_work: UnitOfWork):
        self._unit_of_work = unit_of_work

    async def _apply(
        self,
        shipment_id: str,
        actor: Actor,
        decide: Callable[[Shipment, datetime], Transition],
    ) -> Shipment:
        async with self._unit_of_work() as uow:
            try:
                shipment = await uow.shipments.get_by_id(shipment_id)
            except DoesNotExist as e:
                raise NotFound("Shipment not found") from e

            now = datetime.now(timezone.utc)
            transition = decide(shipment, now)

            try:
                await uow.shipments.apply_transition(
                    shipment_id,
                    expected_version=shipment.version,
                    transition=ShipmentRepository.TransitionDTO(
                        status=transition.status,
                        changes=transition.changes,
                        event=TrackingEvent(
                            status=transition.event,
                            location=transition.location,
                            timestamp=now,
                        ),
                    ),
                )
            except StaleRecord as e:
                raise ConcurrentModification(
                    "Shipment was modified by another request, please retry"
                ) from e

            await uow.commit()
            updated = await uow.shipments.get_by_id(shipment_id)

        logger.info(
            f"Shipment {updated.tracking_number}: {shipment.status} -> {updated.status} "
            f"({transition.event}) by {actor.role} {actor.user_id}"
        )
        return updated

    async def assign_driver(
        self, shipment_id: str, actor: Actor, driver_id: str, driver_name: str
    ) -> Shipment:
        _require_admin(actor)
        if not driver_id or not driver_name:
            raise ValidationError("Driver ID and name are required")

        def decide(shipment: Shipment, now: datetime) -> Transition:
            if shipment.status not in DRIVER_ASSIGNABLE_STATUSES:
                raise PreconditionFailed(
                    f"Cannot assign a driver to a shipment that is {shipment.status}"
                )
            return Transition(
                status=ShipmentStatusEnum.IN_TRANSIT,
                event=DRIVER_ASSIGNED,
                location=shipment.origin,
                changes={"driver_id": driver_id, "driver_name": driver_name},
            )

        return await self._apply(shipment_id, actor, decide)

    async def set_status(
        self,
        shipment_id: str,
        actor: Actor,
        status: str,
        location: str | None,
        driver_id: str | None = None,
        driver_name: str | None = None,
        notes: str | None = None,
    ) -> Shipment:
        """Admin override. Any status may follow any other status."""
        _require_admin(actor)
        new_status = parse_status(status)
        if not location or not location.strip():
            raise ValidationError("Location is required")

        changes: dict[str, Any] = {}
        if driver_id:
            changes["driver_id"] = driver_id
        if driver_name:
            changes["driver_name"] = driver_name
        if notes is not None:
            changes["notes"] = notes

        def decide(shipment: Shipment, now: datetime) -> Transition:
            return Transition(
                status=new_status,
                event=new_status,
                location=location.strip(),
                changes=changes,
            )

        return await self._apply(shipment_id, actor, decide)

    async def request_pickup(self, shipment_id: str, actor: Actor) -> Shipment:
        def decide(shipment: Shipment, now: datetime) -> Transition:
            _require_assigned_driver(actor, shipment)
            return Transition(
                status=ShipmentStatusEnum.PICKUP_REQUESTED,
                event=PICKUP_REQUESTED,
                location=shipment.origin,
                changes={"pickup_requested": True, "pickup_requested_at": now},
            )

        return await self._apply(shipment_id, actor, decide)

    async def confirm_pickup(self, shipment_id: str, actor: Actor) -> Shipment:
        def decide(shipment: Shipment, now: datetime) -> Transition:
            if shipment.sender_id != actor.user_id:
                raise Forbidden("Only the sender can confirm this pickup")
            if not shipment.pickup_requested:
                raise PreconditionFailed("Pickup has not been requested")
            if shipment.pickup_confirmed:
                raise PreconditionFailed("Pickup has already been confirmed")
            return Transition(
                status=ShipmentStatusEnum.PICKED_UP,
                event=PICKED_UP,
                location=shipment.origin,
                changes={"pickup_confirmed": True, "pickup_confirmed_at": now},
            )

        return await self._apply(shipment_id, actor, decide)

    async def request_handover(
        self, shipment_id: str, actor: Actor, note: str | None = None
    ) -> Shipment:
        def decide(shipment: Shipment, now: datetime) -> Transition:
            _require_assigned_driver(actor, shipment)
            return Transition(
                status=ShipmentStatusEnum.HANDOVER_REQUESTED,
                event=HANDOVER_REQUESTED,
                location=_handover_location(shipment),
                changes={
                    "handover_requested": True,
                    "handover_requested_at": now,
                    "handover_note": note,
                    "handover_confirmed": False,
                    "handover_confirmed_at": None,
                },
            )

        return await self._apply(shipment_id, actor, decide)

    async def confirm_handover(
        self, shipment_id: str, actor: Actor, admin_note: str | None = None
    ) -> Shipment:
        _require_admin(actor)

        def decide(shipment: Shipment, now: datetime) -> Transition:
            if not shipment.handover_requested:
                raise PreconditionFailed("Handover has not been requested")
            if shipment.handover_confirmed:
                raise PreconditionFailed("Handover has already been confirmed")
            return Transition(
                status=ShipmentStatusEnum.IN_TRANSIT,
                event=HANDOVER_CONFIRMED,
                location=_handover_location(shipment),
                changes={
                    "handover_confirmed": True,
                    "handover_confirmed_at": now,
                    "admin_handover_note": admin_note,
                },
            )

        return await self._apply(shipment_id, actor, decide)

    async def mark_delivered_to_recipient(
        self, shipment_id: str, actor: Actor
    ) -> Shipment:
        _require_admin(actor)

        def decide(shipment: Shipment, now: datetime) -> Transition:
            return Transition(
                status=ShipmentStatusEnum.DELIVERED_TO_RECIPIENT,
                event=DELIVERED_TO_RECIPIENT,
                location=shipment.destination,
                changes={
                    "delivered_to_recipient": True,
                    "delivered_to_recipient_at": now,
                },
            )

        return await self._apply(shipment_id, actor, decide)

    async def confirm_delivery(
        self, shipment_id: str, actor: Actor, note: str | None = None
    ) -> Shipment:
        def decide(shipment: Shipment, now: datetime) -> Transition:
            if shipment.recipient_id != actor.user_id:
                raise Forbidden("Only the recipient can confirm this delivery")
            if not shipment.delivered_to_recipient:
                raise PreconditionFailed("Shipment has not been delivered yet")
            if shipment.recipient_confirmed:
                raise PreconditionFailed("Delivery has already been confirmed")
            return Transition(
                status=ShipmentStatusEnum.DELIVERY_COMPLETED,
                event=DELIVERY_COMPLETED,
                location=shipment.destination,
                changes={
                    "recipient_confirmed": True,
                    "recipient_confirmed_at": now,
                    "recipient_confirmation_note": note,
                },
            )

        return await self._apply(shipment_id, actor, decide)
