import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

from pydantic import BaseModel
from sqlalchemy import Row, and_, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from oceantracker.core.models import (
    Shipment,
    ShipmentStatusEnum,
    ShipmentTypeEnum,
    TrackingEvent,
)
from oceantracker.infrastructure.db_schema import (
    idempotency_keys_tbl,
    shipments_tbl,
    tracking_events_tbl,
)


class DoesNotExist(Exception):
    pass


class StaleRecord(Exception):
    """The row changed since it was loaded (version mismatch)."""


class DuplicateKey(Exception):
    pass


def _parse_id(value: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError as e:
        raise DoesNotExist from e


class ShipmentRepository:
    class CreateDTO(BaseModel):
        tracking_number: str
        status: ShipmentStatusEnum
        origin: str
        destination: str
        estimated_delivery: datetime
        shipment_type: ShipmentTypeEnum
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
        requested_date: datetime | None = None
        driver_id: str | None = None
        driver_name: str | None = None
        tracking_history: list[TrackingEvent]
        created_at: datetime

    class ListDTO(BaseModel):
        sender_id: str | None = None
        include_confirmed_received: bool = False
        recipient_id: str | None = None
        driver_id: str | None = None
        statuses: list[str] | None = None
        exclude_statuses: list[str] | None = None
        search: str | None = None
        limit: int | None = None

    class TransitionDTO(BaseModel):
        status: ShipmentStatusEnum
        changes: dict[str, Any] = {}
        event: TrackingEvent

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _construct(row: Row | None, history: list[TrackingEvent]) -> Shipment:
        if row is None:
            raise DoesNotExist

        data = dict(row._mapping)
        data["id"] = str(data["id"])
        return Shipment(**data, tracking_history=history)

    async def _with_history(self, rows: Sequence[Row]) -> list[Shipment]:
        if not rows:
            return []

        ids = [row.id for row in rows]
        stmt = (
            select(tracking_events_tbl)
            .where(tracking_events_tbl.c.shipment_id.in_(ids))
            .order_by(tracking_events_tbl.c.id)
        )
        result = await self._session.execute(stmt)

        history: dict[uuid.UUID, list[TrackingEvent]] = {id_: [] for id_ in ids}
        for event in result.fetchall():
            history[event.shipment_id].append(
                TrackingEvent(
                    status=event.status,
                    location=event.location,
                    timestamp=event.timestamp,
                )
            )

        return [self._construct(row, history[row.id]) for row in rows]

    async def _get_one(self, stmt) -> Shipment:
        result = await self._session.execute(stmt)
        row = result.fetchone()

        if row is None:
            raise DoesNotExist

        shipments = await self._with_history([row])
        return shipments[0]

    async def create(self, shipment: CreateDTO) -> Shipment:
        shipment_id = uuid.uuid4()
        values = shipment.model_dump(exclude={"tracking_history"})
        stmt = insert(shipments_tbl).values(
            {
                **values,
                "id": shipment_id,
                "version": 1,
                "updated_at": shipment.created_at,
            }
        )
        try:
            await self._session.execute(stmt)
        except IntegrityError as e:
            raise DuplicateKey(
                f"Tracking number {shipment.tracking_number} already exists"
            ) from e

        if shipment.tracking_history:
            await self._session.execute(
                insert(tracking_events_tbl),
                [
                    {
                        "shipment_id": shipment_id,
                        "status": event.status,
                        "location": event.location,
                        "timestamp": event.timestamp,
                    }
                    for event in shipment.tracking_history
                ],
            )

        return await self.get_by_id(str(shipment_id))

    async def get_by_id(self, shipment_id: str) -> Shipment:
        stmt = select(shipments_tbl).where(shipments_tbl.c.id == _parse_id(shipment_id))
        return await self._get_one(stmt)

    async def get_by_tracking_number(self, tracking_number: str) -> Shipment:
        stmt = select(shipments_tbl).where(
            shipments_tbl.c.tracking_number == tracking_number
        )
        return await self._get_one(stmt)

    async def find(self, query: ListDTO) -> list[Shipment]:
        c = shipments_tbl.c
        conditions = []

        if query.sender_id is not None:
            own = c.sender_id == query.sender_id
            if query.include_confirmed_received:
                own = or_(
                    own,
                    and_(
                        c.recipient_id == query.sender_id,
                        c.recipient_confirmed.is_(True),
                    ),
                )
            conditions.append(own)
        if query.recipient_id is not None:
            conditions.append(c.recipient_id == query.recipient_id)
        if query.driver_id is not None:
            conditions.append(c.driver_id == query.driver_id)
        if query.statuses:
            conditions.append(c.status.in_(query.statuses))
        if query.exclude_statuses:
            conditions.append(c.status.not_in(query.exclude_statuses))
        if query.search:
            conditions.append(
                or_(
                    c.tracking_number.icontains(query.search, autoescape=True),
                    c.sender_name.icontains(query.search, autoescape=True),
                    c.recipient_name.icontains(query.search, autoescape=True),
                )
            )

        stmt = select(shipments_tbl)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(c.created_at.desc()).limit(query.limit)

        result = await self._session.execute(stmt)
        return await self._with_history(result.fetchall())

    async def apply_transition(
        self, shipment_id: str, expected_version: int, transition: TransitionDTO
    ) -> None:
        """Versioned update of the record plus one tracking event."""
        pk = _parse_id(shipment_id)
        stmt = (
            update(shipments_tbl)
            .where(
                shipments_tbl.c.id == pk,
                shipments_tbl.c.version == expected_version,
            )
            .values(
                {
                    **transition.changes,
                    "status": transition.status,
                    "version": expected_version + 1,
                    "updated_at": transition.event.timestamp,
                }
            )
        )
        result = await self._session.execute(stmt)
        if result.rowcount != 1:
            raise StaleRecord(
                f"Shipment {shipment_id} is no longer at version {expected_version}"
            )

        await self._session.execute(
            insert(tracking_events_tbl).values(
                {
                    "shipment_id": pk,
                    "status": transition.event.status,
                    "location": transition.event.location,
                    "timestamp": transition.event.timestamp,
                }
            )
        )

    async def count_by_status(self) -> dict[str, int]:
        stmt = select(shipments_tbl.c.status, func.count()).group_by(
            shipments_tbl.c.status
        )
        result = await self._session.execute(stmt)
        return {status: count for status, count in result.all()}

    async def count_created_between(self, start: datetime, end: datetime) -> int:
        stmt = (
            select(func.count())
            .select_from(shipments_tbl)
            .where(
                shipments_tbl.c.created_at >= start,
                shipments_tbl.c.created_at < end,
            )
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()


class IdempotencyKeyRepository:
    class CreateDTO(BaseModel):
        owner_id: str
        key: str
        shipment_id: str

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_shipment_id(self, owner_id: str, key: str) -> str | None:
        stmt = select(idempotency_keys_tbl.c.shipment_id).where(
            idempotency_keys_tbl.c.owner_id == owner_id,
            idempotency_keys_tbl.c.key == key,
        )
        result = await self._session.execute(stmt)
        row = result.fetchone()

        if row is None:
            return None

        return str(row.shipment_id)

    async def create(self, entry: CreateDTO) -> None:
        stmt = insert(idempotency_keys_tbl).values(
            {
                "owner_id": entry.owner_id,
                "key": entry.key,
                "shipment_id": _parse_id(entry.shipment_id),
                "created_at": datetime.now(timezone.utc),
            }
        )
        try:
            await self._session.execute(stmt)
        except IntegrityError as e:
            raise DuplicateKey(
                f"Idempotency key {entry.key} already used by {entry.owner_id}"
            ) from e
