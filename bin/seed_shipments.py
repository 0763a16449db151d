import asyncio
import logging
from datetime import datetime, timedelta, timezone

from oceantracker.application.container import ApplicationContainer
from oceantracker.application.create_shipment import InsertShipmentDTO
from oceantracker.application.errors import DuplicateTrackingNumber
from oceantracker.core.models import Actor, RoleEnum, ShipmentStatusEnum, TrackingEvent
from oceantracker.infrastructure.db_schema import metadata

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SEED_ACTOR = Actor(id="seed", user_id="0000", role=RoleEnum.SUPER_ADMIN, name="Seed")


def sample_shipments(now: datetime) -> list[InsertShipmentDTO]:
    def days(n: int) -> datetime:
        return now + timedelta(days=n)

    def event(status: str, location: str, day: int) -> TrackingEvent:
        return TrackingEvent(status=status, location=location, timestamp=days(day))

    return [
        InsertShipmentDTO(
            tracking_number="OCT12345678",
            status=ShipmentStatusEnum.IN_TRANSIT,
            origin="Shanghai, China",
            destination="Los Angeles, USA",
            estimated_delivery=days(7),
            tracking_history=[
                event("Order Placed", "Shanghai, China", -10),
                event("Shipment Prepared", "Shanghai, China", -8),
                event("Departed Port", "Shanghai, China", -5),
                event("In Transit", "Pacific Ocean", -2),
            ],
        ),
        InsertShipmentDTO(
            tracking_number="OCT87654321",
            status=ShipmentStatusEnum.DELIVERED,
            origin="Rotterdam, Netherlands",
            destination="New York, USA",
            estimated_delivery=days(-2),
            tracking_history=[
                event("Order Placed", "Rotterdam, Netherlands", -15),
                event("Shipment Prepared", "Rotterdam, Netherlands", -14),
                event("Departed Port", "Rotterdam, Netherlands", -12),
                event("In Transit", "Atlantic Ocean", -8),
                event("Arrived at Port", "New York, USA", -4),
                event("Customs Clearance", "New York, USA", -3),
                event("Delivered", "New York, USA", -1),
            ],
        ),
        InsertShipmentDTO(
            tracking_number="OCT55667788",
            status=ShipmentStatusEnum.PENDING,
            origin="Singapore",
            destination="Sydney, Australia",
            estimated_delivery=days(10),
            tracking_history=[
                event("Order Placed", "Singapore", -2),
                event("Pending", "Singapore", -1),
            ],
        ),
    ]


async def main():
    container = ApplicationContainer()
    container.config.from_yaml("oceantracker/config.yaml", required=True)

    engine = container.infrastructure_container.async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    create_shipment_use_case = container.create_shipment_use_case()
    for shipment in sample_shipments(datetime.now(timezone.utc)):
        try:
            created = await create_shipment_use_case.insert(SEED_ACTOR, shipment)
        except DuplicateTrackingNumber:
            logger.info(f"Skipping {shipment.tracking_number}: already seeded")
            continue
        logger.info(
            f"- {created.tracking_number}: {created.status} "
            f"({created.origin} -> {created.destination})"
        )

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
