"""
Error hierarchy for the reservation service.

Each error knows the HTTP status it is reported with; the application's
exception handlers turn them into the ``{"status": "error", "message": ...}``
envelope.
"""


class LabReservationError(Exception):
    """Base class for all application-level errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(LabReservationError):
    """Raised when request input is missing or malformed."""

    status_code = 400

    def __init__(self, field: str, reason: str):
        super().__init__(reason)
        self.field = field
        self.reason = reason


class ConflictError(LabReservationError):
    """Raised when a slot overlaps an active booking."""

    status_code = 409

    def __init__(self, message: str = "Laboratory is not available for the selected time range"):
        super().__init__(message)
        self.reason = "overlap"


class NotFoundError(LabReservationError):
    """Raised when a booking (or laboratory) does not exist or is no longer active."""

    status_code = 404

    def __init__(self, message: str = "Booking not found or already cancelled",
                 reason: str = "not_found_or_already_cancelled"):
        super().__init__(message)
        self.reason = reason


class StoreError(LabReservationError):
    """Raised when the database cannot be reached or a statement fails."""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)
