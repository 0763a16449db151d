class ShipmentServiceError(Exception):
    """Base class for errors reported to the API caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthorized(ShipmentServiceError):
    pass


class Forbidden(ShipmentServiceError):
    pass


class NotFound(ShipmentServiceError):
    pass


class ValidationError(ShipmentServiceError):
    pass


class InvalidStatus(ValidationError):
    pass


class PreconditionFailed(ShipmentServiceError):
    pass


class DuplicateTrackingNumber(ShipmentServiceError):
    pass


class ConcurrentModification(ShipmentServiceError):
    pass
