import logging
from http import HTTPStatus

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from oceantracker.application.container import ApplicationContainer
from oceantracker.application.create_shipment import (
    CreateShipmentUseCase,
    InsertShipmentDTO,
    SendShipmentDTO,
)
from oceantracker.application.errors import ShipmentServiceError
from oceantracker.application.list_shipments import (
    ListShipmentsUseCase,
    parse_status_list,
)
from oceantracker.application.shipment_stats import GetShipmentStatsUseCase
from oceantracker.application.update_shipment_status import (
    UpdateShipmentStatusUseCase,
)
from oceantracker.core.models import Actor, CamelModel, Shipment, ShipmentStats
from oceantracker.presentation.auth import get_actor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/shipments")


class ShipmentSendRequest(SendShipmentDTO):
    pass


class ShipmentInsertRequest(InsertShipmentDTO):
    pass


class StatusUpdateRequest(CamelModel):
    status: str
    location: str | None = None
    driver_id: str | None = None
    driver_name: str | None = None
    notes: str | None = None


class AssignDriverRequest(CamelModel):
    driver_id: str | None = None
    driver_name: str | None = None


class HandoverRequest(CamelModel):
    note: str | None = None


class ConfirmHandoverRequest(CamelModel):
    admin_note: str | None = None


class ConfirmDeliveryRequest(CamelModel):
    note: str | None = None


class ShipmentResponseModel(Shipment):
    pass


class ShipmentStatsResponseModel(ShipmentStats):
    pass


def _server_error(e: Exception) -> JSONResponse:
    return JSONResponse(
        content={"message": "Server error", "error": str(e)},
        status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
    )


@router.post(
    "/send",
    status_code=HTTPStatus.CREATED,
    response_model=ShipmentResponseModel,
)
@inject
async def send_shipment(
    shipment: ShipmentSendRequest,
    idempotency_key: str | None = Header(None, alias="Idempotency-Key"),
    actor: Actor = Depends(get_actor),
    create_shipment_use_case: CreateShipmentUseCase = Depends(
        Provide[ApplicationContainer.create_shipment_use_case]
    ),
):
    try:
        return await create_shipment_use_case(
            actor=actor, shipment=shipment, idempotency_key=idempotency_key
        )
    except ShipmentServiceError:
        raise
    except Exception as e:
        logger.error(f"Error creating shipment: {e}", exc_info=True)
        return _server_error(e)


@router.post(
    "",
    status_code=HTTPStatus.CREATED,
    response_model=ShipmentResponseModel,
)
@inject
async def insert_shipment(
    shipment: ShipmentInsertRequest,
    actor: Actor = Depends(get_actor),
    create_shipment_use_case: CreateShipmentUseCase = Depends(
        Provide[ApplicationContainer.create_shipment_use_case]
    ),
):
    return await create_shipment_use_case.insert(actor=actor, shipment=shipment)


@router.get(
    "/track/{tracking_number}",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def track_shipment(
    tracking_number: str,
    list_shipments_use_case: ListShipmentsUseCase = Depends(
        Provide[ApplicationContainer.list_shipments_use_case]
    ),
):
    try:
        return await list_shipments_use_case.track(tracking_number)
    except ShipmentServiceError:
        raise
    except Exception as e:
        logger.error(f"Error tracking shipment: {e}", exc_info=True)
        return _server_error(e)


@router.get(
    "/admin",
    status_code=HTTPStatus.OK,
    response_model=list[ShipmentResponseModel],
)
@inject
async def list_all_shipments(
    status: str | None = None,
    search: str | None = None,
    actor: Actor = Depends(get_actor),
    list_shipments_use_case: ListShipmentsUseCase = Depends(
        Provide[ApplicationContainer.list_shipments_use_case]
    ),
):
    return await list_shipments_use_case.for_admin(actor, status=status, search=search)


@router.get(
    "/admin/stats",
    status_code=HTTPStatus.OK,
    response_model=ShipmentStatsResponseModel,
)
@inject
async def get_shipment_stats(
    actor: Actor = Depends(get_actor),
    get_shipment_stats_use_case: GetShipmentStatsUseCase = Depends(
        Provide[ApplicationContainer.get_shipment_stats_use_case]
    ),
):
    return await get_shipment_stats_use_case(actor)


@router.get(
    "/admin/{shipment_id}",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def get_shipment(
    shipment_id: str,
    actor: Actor = Depends(get_actor),
    list_shipments_use_case: ListShipmentsUseCase = Depends(
        Provide[ApplicationContainer.list_shipments_use_case]
    ),
):
    return await list_shipments_use_case.get(actor, shipment_id)


@router.put(
    "/admin/{shipment_id}/status",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def update_status(
    shipment_id: str,
    request: StatusUpdateRequest,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.set_status(
        shipment_id,
        actor,
        status=request.status,
        location=request.location,
        driver_id=request.driver_id,
        driver_name=request.driver_name,
        notes=request.notes,
    )


@router.put(
    "/admin/{shipment_id}/assign-driver",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def assign_driver(
    shipment_id: str,
    request: AssignDriverRequest,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.assign_driver(
        shipment_id,
        actor,
        driver_id=request.driver_id,
        driver_name=request.driver_name,
    )


@router.put(
    "/admin/{shipment_id}/confirm-handover",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def confirm_handover(
    shipment_id: str,
    request: ConfirmHandoverRequest | None = None,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.confirm_handover(
        shipment_id, actor, admin_note=request.admin_note if request else None
    )


@router.put(
    "/admin/{shipment_id}/deliver",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def mark_delivered(
    shipment_id: str,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.mark_delivered_to_recipient(shipment_id, actor)


@router.get(
    "/user",
    status_code=HTTPStatus.OK,
    response_model=list[ShipmentResponseModel],
)
@inject
async def list_user_shipments(
    status: str | None = None,
    actor: Actor = Depends(get_actor),
    list_shipments_use_case: ListShipmentsUseCase = Depends(
        Provide[ApplicationContainer.list_shipments_use_case]
    ),
):
    return await list_shipments_use_case.for_sender(
        actor, statuses=parse_status_list(status)
    )


@router.put(
    "/user/{shipment_id}/confirm-pickup",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def confirm_pickup(
    shipment_id: str,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.confirm_pickup(shipment_id, actor)


@router.get(
    "/incoming",
    status_code=HTTPStatus.OK,
    response_model=list[ShipmentResponseModel],
)
@inject
async def list_incoming_shipments(
    actor: Actor = Depends(get_actor),
    list_shipments_use_case: ListShipmentsUseCase = Depends(
        Provide[ApplicationContainer.list_shipments_use_case]
    ),
):
    return await list_shipments_use_case.incoming(actor)


@router.put(
    "/recipient/{shipment_id}/confirm-delivery",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def confirm_delivery(
    shipment_id: str,
    request: ConfirmDeliveryRequest | None = None,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.confirm_delivery(
        shipment_id, actor, note=request.note if request else None
    )


@router.get(
    "/driver",
    status_code=HTTPStatus.OK,
    response_model=list[ShipmentResponseModel],
)
@inject
async def list_driver_shipments(
    actor: Actor = Depends(get_actor),
    list_shipments_use_case: ListShipmentsUseCase = Depends(
        Provide[ApplicationContainer.list_shipments_use_case]
    ),
):
    return await list_shipments_use_case.for_driver(actor)


@router.put(
    "/driver/{shipment_id}/request-pickup",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@router.put(
    "/driver/{shipment_id}/pickup",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def request_pickup(
    shipment_id: str,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.request_pickup(shipment_id, actor)


@router.put(
    "/driver/{shipment_id}/handover",
    status_code=HTTPStatus.OK,
    response_model=ShipmentResponseModel,
)
@inject
async def request_handover(
    shipment_id: str,
    request: HandoverRequest | None = None,
    actor: Actor = Depends(get_actor),
    update_status_use_case: UpdateShipmentStatusUseCase = Depends(
        Provide[ApplicationContainer.update_shipment_status_use_case]
    ),
):
    return await update_status_use_case.request_handover(
        shipment_id, actor, note=request.note if request else None
    )
