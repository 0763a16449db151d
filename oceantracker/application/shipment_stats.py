from datetime import datetime, timezone

from oceantracker.application.errors import Forbidden
from oceantracker.core.models import (
    Actor,
    MonthlyCount,
    ShipmentStats,
    ShipmentStatusEnum,
)
from oceantracker.infrastructure.repositories import ShipmentRepository
from oceantracker.infrastructure.unit_of_work import UnitOfWork

RECENT_LIMIT = 5
MONTHS = 6


def _shift_month(start: datetime, months: int) -> datetime:
    index = start.year * 12 + start.month - 1 + months
    return start.replace(year=index // 12, month=index % 12 + 1, day=1)


def month_windows(now: datetime, months: int = MONTHS) -> list[tuple[datetime, datetime]]:
    """[start, end) of the last `months` calendar months, oldest first."""
    current = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    first = _shift_month(current, -(months - 1))
    return [
        (_shift_month(first, i), _shift_month(first, i + 1)) for i in range(months)
    ]


class GetShipmentStatsUseCase:
    def __init__(self, unit_of_work: UnitOfWork):
        self._unit_of_work = unit_of_work

    async def __call__(self, actor: Actor, now: datetime | None = None) -> ShipmentStats:
        if not actor.is_admin:
            raise Forbidden("Unauthorized. Admin privileges required.")

        now = now or datetime.now(timezone.utc)

        async with self._unit_of_work() as uow:
            by_status = await uow.shipments.count_by_status()
            recent = await uow.shipments.find(
                ShipmentRepository.ListDTO(limit=RECENT_LIMIT)
            )
            monthly = [
                MonthlyCount(
                    month=start.strftime("%b"),
                    count=await uow.shipments.count_created_between(start, end),
                )
                for start, end in month_windows(now)
            ]

        pending = by_status.get(ShipmentStatusEnum.PENDING, 0)
        in_transit = by_status.get(ShipmentStatusEnum.IN_TRANSIT, 0)
        delayed = by_status.get(ShipmentStatusEnum.DELAYED, 0)
        delivered = by_status.get(ShipmentStatusEnum.DELIVERED, 0) + by_status.get(
            ShipmentStatusEnum.DELIVERY_COMPLETED, 0
        )

        return ShipmentStats(
            total=sum(by_status.values()),
            pending=pending,
            in_transit=in_transit,
            delivered=delivered,
            delayed=delayed,
            cancelled=by_status.get(ShipmentStatusEnum.CANCELLED, 0),
            active_shipments=pending + in_transit + delayed,
            completed_shipments=delivered,
            recent_shipments=recent,
            monthly_shipments=monthly,
        )
