"""Error taxonomy shared by the scheduling core and the web layer.

Only ``ServiceUnavailable`` may be retried, and only by the caller with
backoff. ``SlotUnavailable`` means the user has to pick another slot; every
other error is final for the request.
"""


class BookingError(Exception):
    """Base exception for scheduling errors."""

    code = 'booking_error'
    http_status = 400
    retryable = False

    def __init__(self, message, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self):
        payload = {'error': self.code, 'message': self.message}
        payload.update(self.context)
        return payload


class BookingValidationError(BookingError):
    """Raised when booking input references missing or incompatible records."""

    code = 'invalid_request'


class InvalidClient(BookingError):
    """Raised when the selected client cannot receive the booking."""

    code = 'invalid_client'


class PermissionDenied(BookingError):
    code = 'permission_denied'
    http_status = 403


class RecordNotFound(BookingError):
    code = 'not_found'
    http_status = 404


class AppointmentNotFound(RecordNotFound):
    code = 'appointment_not_found'


class SlotUnavailable(BookingError):
    """Raised when the staff member is no longer free for the requested window."""

    code = 'slot_unavailable'
    http_status = 409


class AppointmentFinalized(BookingError):
    """Raised on any mutation of a completed, cancelled or no-show appointment."""

    code = 'appointment_finalized'
    http_status = 409


class InvalidTransition(BookingError):
    code = 'invalid_transition'
    http_status = 409


class CancellationWindowExpired(BookingError):
    """Raised when the appointment starts within the cancellation notice period."""

    code = 'cancellation_window_expired'
    http_status = 422


class ServiceUnavailable(BookingError):
    """Transient storage failure or timeout. Safe to retry with backoff."""

    code = 'service_unavailable'
    http_status = 503
    retryable = True

    def __init__(self, message, retry_after=1, **context):
        super().__init__(message, **context)
        self.retry_after = retry_after
