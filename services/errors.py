class BookingError(Exception):
    """Base class for failures raised by the booking engine.

    Each kind carries the HTTP status the API layer answers with; the
    engine itself never looks at it.
    """

    status_code = 400

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotFoundError(BookingError):
    status_code = 404


class ValidationError(BookingError):
    status_code = 400


class ConflictError(BookingError):
    status_code = 409


class ForbiddenError(BookingError):
    status_code = 403
