from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShipmentStatusEnum(StrEnum):
    PENDING = "Pending"
    PICKUP_REQUESTED = "Pickup Requested"
    PICKED_UP = "Picked Up"
    IN_TRANSIT = "In Transit"
    HANDOVER_REQUESTED = "Handover Requested"
    DELAYED = "Delayed"
    DELIVERED = "Delivered"
    DELIVERED_TO_RECIPIENT = "Delivered To Recipient"
    DELIVERY_COMPLETED = "Delivery Completed"
    CANCELLED = "Cancelled"


class ShipmentTypeEnum(StrEnum):
    REGULAR = "regular"
    SEND = "send"
    RECEIVE = "receive"


class RoleEnum(StrEnum):
    USER = "user"
    DRIVER = "driver"
    ADMIN = "admin"
    SUPER_ADMIN = "superAdmin"


ADMIN_ROLES = frozenset({RoleEnum.ADMIN, RoleEnum.SUPER_ADMIN})
DRIVER_ACCESS_ROLES = frozenset({RoleEnum.DRIVER, RoleEnum.ADMIN, RoleEnum.SUPER_ADMIN})


class Actor(BaseModel):
    """Authenticated caller, taken from the token claims."""

    id: str
    user_id: str
    role: str
    name: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def has_driver_access(self) -> bool:
        return self.role in DRIVER_ACCESS_ROLES


class TrackingEvent(CamelModel):
    status: str
    location: str
    timestamp: datetime


class Shipment(CamelModel):
    id: str
    tracking_number: str
    status: ShipmentStatusEnum
    origin: str
    destination: str
    estimated_delivery: datetime
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
    requested_date: datetime | None = None

    driver_id: str | None = None
    driver_name: str | None = None

    pickup_requested: bool = False
    pickup_requested_at: datetime | None = None
    pickup_confirmed: bool = False
    pickup_confirmed_at: datetime | None = None

    handover_requested: bool = False
    handover_requested_at: datetime | None = None
    handover_note: str | None = None
    handover_confirmed: bool = False
    handover_confirmed_at: datetime | None = None
    admin_handover_note: str | None = None

    delivered_to_recipient: bool = False
    delivered_to_recipient_at: datetime | None = None
    recipient_confirmed: bool = False
    recipient_confirmed_at: datetime | None = None
    recipient_confirmation_note: str | None = None

    tracking_history: list[TrackingEvent]
    version: int
    created_at: datetime
    updated_at: datetime


class MonthlyCount(CamelModel):
    month: str
    count: int


class ShipmentStats(CamelModel):
    total: int
    pending: int
    in_transit: int
    delivered: int
    delayed: int
    cancelled: int
    active_shipments: int
    completed_shipments: int
    recent_shipments: list[Shipment]
    monthly_shipments: list[MonthlyCount]
