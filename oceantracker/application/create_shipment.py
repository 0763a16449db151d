import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from oceantracker.application.errors import (
    DuplicateTrackingNumber,
    Forbidden,
    ValidationError,
)
from oceantracker.core.models import (
    Actor,
    CamelModel,
    Shipment,
    ShipmentStatusEnum,
    ShipmentTypeEnum,
    TrackingEvent,
)
from oceantracker.core.tracking_number import generate_tracking_number
from oceantracker.infrastructure.repositories import (
    DuplicateKey,
    IdempotencyKeyRepository,
    ShipmentRepository,
)
from oceantracker.infrastructure.unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

ESTIMATED_DELIVERY = timedelta(days=3)
DEFAULT_ORIGIN = "Sender Location"
SHIPMENT_REQUESTED = "Shipment Requested"


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


class SendShipmentDTO(CamelModel):
    item_types: list[str] = []
    recipient_id: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    recipient_address: str | None = None
    recipient_phone: str | None = None
    branch: str | None = None
    notes: str | None = None
    origin: str | None = None
    requested_date: datetime | None = None


class InsertShipmentDTO(CamelModel):
    tracking_number: str | None = None
    status: ShipmentStatusEnum = ShipmentStatusEnum.PENDING
    origin: str
    destination: str
    estimated_delivery: datetime | None = None
    shipment_type: ShipmentTypeEnum = ShipmentTypeEnum.REGULAR
    sender_id: str | None = None
    sender_name: str | None = None
    recipient_id: str | None = None
    recipient_name: str | None = None
    recipient_email: str | None = None
    recipient_address: str | None = None
    recipient_phone: str | None = None
    item_types: list[str] = []
    branch: str | None = None
    notes: str | None = None
    driver_id: str | None = None
    driver_name: str | None = None
    tracking_history: list[TrackingEvent] = []


class CreateShipmentUseCase:
    def __init__(
        self,
        unit_of_work: UnitOfWork,
        tracking_number_factory: Callable[[], str] = generate_tracking_number,
    ):
        self._unit_of_work = unit_of_work
        self._tracking_number_factory = tracking_number_factory

    async def __call__(
        self,
        actor: Actor,
        shipment: SendShipmentDTO,
        idempotency_key: str | None = None,
    ) -> Shipment:
        """Create a shipment from the sender's send wizard."""
        item_types = list(dict.fromkeys(t.strip() for t in shipment.item_types if t.strip()))
        recipient_id = _clean(shipment.recipient_id)
        recipient_name = _clean(shipment.recipient_name)
        branch = _clean(shipment.branch)

        if not item_types:
            raise ValidationError("Please select at least one item type")
        if not recipient_id or not recipient_name:
            raise ValidationError("Please select a recipient")
        if recipient_id == actor.user_id:
            raise ValidationError("You cannot send a shipment to yourself")
        if not branch:
            raise ValidationError("Please select a branch")

        now = datetime.now(timezone.utc)
        origin = _clean(shipment.origin) or DEFAULT_ORIGIN

        async with self._unit_of_work() as uow:
            if idempotency_key:
                existing_id = await uow.idempotency_keys.get_shipment_id(
                    actor.user_id, idempotency_key
                )
                if existing_id is not None:
                    logger.info(
                        f"Replaying shipment {existing_id} for idempotency key {idempotency_key}"
                    )
                    return await uow.shipments.get_by_id(existing_id)

            try:
                created = await uow.shipments.create(
                    ShipmentRepository.CreateDTO(
                        tracking_number=self._tracking_number_factory(),
                        status=ShipmentStatusEnum.PENDING,
                        origin=origin,
                        destination=branch,
                        estimated_delivery=now + ESTIMATED_DELIVERY,
                        shipment_type=ShipmentTypeEnum.SEND,
                        sender_id=actor.user_id,
                        sender_name=actor.name,
                        recipient_id=recipient_id,
                        recipient_name=recipient_name,
                        recipient_email=_clean(shipment.recipient_email),
                        recipient_address=_clean(shipment.recipient_address),
                        recipient_phone=_clean(shipment.recipient_phone),
                        item_types=item_types,
                        branch=branch,
                        notes=_clean(shipment.notes),
                        requested_date=shipment.requested_date or now,
                        tracking_history=[
                            TrackingEvent(
                                status=SHIPMENT_REQUESTED, location=origin, timestamp=now
                            )
                        ],
                        created_at=now,
                    )
                )
            except DuplicateKey as e:
                raise DuplicateTrackingNumber(str(e)) from e

            if idempotency_key:
                try:
                    await uow.idempotency_keys.create(
                        IdempotencyKeyRepository.CreateDTO(
                            owner_id=actor.user_id,
                            key=idempotency_key,
                            shipment_id=created.id,
                        )
                    )
                except DuplicateKey:
                    # A concurrent request with the same key committed first
                    created = None

            if created is not None:
                await uow.commit()

        if created is None:
            return await self._replay(actor, idempotency_key)

        logger.info(
            f"Shipment {created.tracking_number} requested by {actor.user_id} for {recipient_id}"
        )
        return created

    async def _replay(self, actor: Actor, idempotency_key: str) -> Shipment:
        async with self._unit_of_work() as uow:
            existing_id = await uow.idempotency_keys.get_shipment_id(
                actor.user_id, idempotency_key
            )
            if existing_id is None:
                raise DuplicateTrackingNumber(
                    f"Idempotency key {idempotency_key} is already in use"
                )
            logger.info(
                f"Replaying shipment {existing_id} for idempotency key {idempotency_key}"
            )
            return await uow.shipments.get_by_id(existing_id)

    async def insert(self, actor: Actor, shipment: InsertShipmentDTO) -> Shipment:
        """Direct insert used by admins and the seed script."""
        if not actor.is_admin:
            raise Forbidden("Access denied. Admin privileges required.")

        origin = _clean(shipment.origin)
        destination = _clean(shipment.destination)
        if not origin or not destination:
            raise ValidationError("Origin and destination are required")

        now = datetime.now(timezone.utc)
        history = shipment.tracking_history or [
            TrackingEvent(status=shipment.status, location=origin, timestamp=now)
        ]

        async with self._unit_of_work() as uow:
            try:
                created = await uow.shipments.create(
                    ShipmentRepository.CreateDTO(
                        **shipment.model_dump(
                            exclude={
                                "tracking_number",
                                "origin",
                                "destination",
                                "estimated_delivery",
                                "tracking_history",
                            }
                        ),
                        tracking_number=_clean(shipment.tracking_number)
                        or self._tracking_number_factory(),
                        origin=origin,
                        destination=destination,
                        estimated_delivery=shipment.estimated_delivery
                        or now + ESTIMATED_DELIVERY,
                        tracking_history=history,
                        created_at=now,
                    )
                )
            except DuplicateKey as e:
                raise DuplicateTrackingNumber(str(e)) from e

            await uow.commit()

        logger.info(f"Shipment {created.tracking_number} inserted by {actor.user_id}")
        return created
