import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)

metadata = MetaData()

shipments_tbl = Table(
    "shipments",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    Column("tracking_number", Text, nullable=False, unique=True, index=True),
    Column("status", Text, nullable=False, index=True),
    Column("origin", Text, nullable=False),
    Column("destination", Text, nullable=False),
    Column("estimated_delivery", DateTime(timezone=True), nullable=False),
    Column("shipment_type", Text, nullable=False),
    Column("sender_id", Text, index=True),
    Column("sender_name", Text),
    Column("recipient_id", Text, index=True),
    Column("recipient_name", Text),
    Column("recipient_email", Text),
    Column("recipient_address", Text),
    Column("recipient_phone", Text),
    Column("item_types", JSON, nullable=False),
    Column("branch", Text),
    Column("notes", Text),
    Column("requested_date", DateTime(timezone=True)),
    Column("driver_id", Text, index=True),
    Column("driver_name", Text),
    Column("pickup_requested", Boolean, nullable=False, default=False),
    Column("pickup_requested_at", DateTime(timezone=True)),
    Column("pickup_confirmed", Boolean, nullable=False, default=False),
    Column("pickup_confirmed_at", DateTime(timezone=True)),
    Column("handover_requested", Boolean, nullable=False, default=False),
    Column("handover_requested_at", DateTime(timezone=True)),
    Column("handover_note", Text),
    Column("handover_confirmed", Boolean, nullable=False, default=False),
    Column("handover_confirmed_at", DateTime(timezone=True)),
    Column("admin_handover_note", Text),
    Column("delivered_to_recipient", Boolean, nullable=False, default=False),
    Column("delivered_to_recipient_at", DateTime(timezone=True)),
    Column("recipient_confirmed", Boolean, nullable=False, default=False),
    Column("recipient_confirmed_at", DateTime(timezone=True)),
    Column("recipient_confirmation_note", Text),
    Column("version", Integer, nullable=False, default=1),
    Column("created_at", DateTime(timezone=True), nullable=False, index=True),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

# Append-only; the autoincrement id fixes insertion order.
tracking_events_tbl = Table(
    "tracking_events",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "shipment_id",
        Uuid(as_uuid=True),
        ForeignKey("shipments.id"),
        nullable=False,
        index=True,
    ),
    Column("status", Text, nullable=False),
    Column("location", Text, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
)

idempotency_keys_tbl = Table(
    "idempotency_keys",
    metadata,
    Column("id", Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4),
    Column("owner_id", Text, nullable=False),
    Column("key", Text, nullable=False),
    Column("shipment_id", Uuid(as_uuid=True), ForeignKey("shipments.id"), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint("owner_id", "key"),
)
