import logging
from http import HTTPStatus

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from oceantracker.application.container import ApplicationContainer
from oceantracker.application.errors import (
    ConcurrentModification,
    DuplicateTrackingNumber,
    Forbidden,
    NotFound,
    PreconditionFailed,
    ShipmentServiceError,
    Unauthorized,
    ValidationError,
)
from oceantracker.presentation import api, auth

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES: dict[type[ShipmentServiceError], HTTPStatus] = {
    Unauthorized: HTTPStatus.UNAUTHORIZED,
    Forbidden: HTTPStatus.FORBIDDEN,
    NotFound: HTTPStatus.NOT_FOUND,
    ValidationError: HTTPStatus.BAD_REQUEST,
    PreconditionFailed: HTTPStatus.CONFLICT,
    DuplicateTrackingNumber: HTTPStatus.CONFLICT,
    ConcurrentModification: HTTPStatus.CONFLICT,
}


async def shipment_error_handler(
    request: Request, exc: ShipmentServiceError
) -> JSONResponse:
    status_code = next(
        (
            code
            for error_type, code in ERROR_STATUS_CODES.items()
            if isinstance(exc, error_type)
        ),
        HTTPStatus.INTERNAL_SERVER_ERROR,
    )
    logger.info(
        f"{request.method} {request.url.path} -> {status_code.value}: {exc.message}"
    )
    return JSONResponse(content={"message": exc.message}, status_code=status_code)


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    if not errors:
        message = "Invalid request"
    else:
        first = errors[0]
        field = ".".join(str(part) for part in first["loc"] if part != "body")
        message = f"{field}: {first['msg']}" if field else first["msg"]
    logger.info(f"{request.method} {request.url.path} -> 400: {message}")
    return JSONResponse(
        content={"message": message}, status_code=HTTPStatus.BAD_REQUEST
    )


def build_api(
    container: ApplicationContainer, cors_origins: list[str] | None = None
) -> FastAPI:
    app = FastAPI(title="OceanTracker API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(api.router)
    app.add_exception_handler(ShipmentServiceError, shipment_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    container.wire(modules=[api, auth])
    app.container = container
    return app
