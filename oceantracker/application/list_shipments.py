from oceantracker.application.errors import Forbidden, NotFound
from oceantracker.core.models import Actor, Shipment, ShipmentStatusEnum
from oceantracker.infrastructure.repositories import DoesNotExist, ShipmentRepository
from oceantracker.infrastructure.unit_of_work import UnitOfWork

DRIVER_ACTIVE_STATUSES = [ShipmentStatusEnum.IN_TRANSIT, ShipmentStatusEnum.PICKED_UP]


def parse_status_list(value: str | None) -> list[str] | None:
    """Split a comma-separated status allow-list, ignoring blanks."""
    if not value:
        return None
    statuses = [s.strip() for s in value.split(",") if s.strip()]
    return statuses or None


class ListShipmentsUseCase:
    """Role-scoped views over the shipment store, newest first."""

    def __init__(self, unit_of_work: UnitOfWork):
        self._unit_of_work = unit_of_work

    async def _find(self, query: ShipmentRepository.ListDTO) -> list[Shipment]:
        async with self._unit_of_work() as uow:
            return await uow.shipments.find(query)

    async def for_admin(
        self, actor: Actor, status: str | None = None, search: str | None = None
    ) -> list[Shipment]:
        if not actor.is_admin:
            raise Forbidden("Access denied. Admin privileges required.")

        return await self._find(
            ShipmentRepository.ListDTO(
                statuses=[status] if status else None,
                search=search.strip() if search and search.strip() else None,
            )
        )

    async def for_sender(
        self, actor: Actor, statuses: list[str] | None = None
    ) -> list[Shipment]:
        return await self._find(
            ShipmentRepository.ListDTO(
                sender_id=actor.user_id,
                include_confirmed_received=True,
                statuses=statuses,
            )
        )

    async def incoming(self, actor: Actor) -> list[Shipment]:
        return await self._find(
            ShipmentRepository.ListDTO(
                recipient_id=actor.user_id,
                exclude_statuses=[ShipmentStatusEnum.DELIVERY_COMPLETED],
            )
        )

    async def for_driver(self, actor: Actor) -> list[Shipment]:
        if not actor.has_driver_access:
            raise Forbidden("Access denied. Driver privileges required.")

        return await self._find(
            ShipmentRepository.ListDTO(
                driver_id=actor.user_id,
                statuses=DRIVER_ACTIVE_STATUSES,
            )
        )

    async def track(self, tracking_number: str) -> Shipment:
        async with self._unit_of_work() as uow:
            try:
                return await uow.shipments.get_by_tracking_number(tracking_number)
            except DoesNotExist as e:
                raise NotFound("Shipment not found") from e

    async def get(self, actor: Actor, shipment_id: str) -> Shipment:
        if not actor.is_admin:
            raise Forbidden("Access denied. Admin privileges required.")

        async with self._unit_of_work() as uow:
            try:
                return await uow.shipments.get_by_id(shipment_id)
            except DoesNotExist as e:
                raise NotFound("Shipment not found") from e
