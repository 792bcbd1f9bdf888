class BookingError(Exception):
    """Base for errors the HTTP layer turns into `{"error": ...}` responses."""
    status_code = 400

    def __init__(self, message, **payload):
        super().__init__(message)
        self.message = message
        self.payload = payload


class ValidationError(BookingError):
    status_code = 400


class ConfigurationError(BookingError):
    status_code = 400


class NotFoundError(BookingError):
    status_code = 404


class PermissionDeniedError(BookingError):
    status_code = 403


class CancellationNotAllowedError(BookingError):
    status_code = 400


class InvalidTransitionError(BookingError):
    status_code = 400


class VenueUnavailableError(BookingError):
    """Raised when a full-venue request cannot reserve every court; nothing was written."""
    status_code = 409

    def __init__(self, conflicts):
        names = ", ".join(f"{c['court_name']} ({c['court_type']})" for c in conflicts)
        super().__init__(f"Time conflict: {names}", conflicts=conflicts)
        self.conflicts = conflicts
