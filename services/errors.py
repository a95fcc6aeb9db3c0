# services/errors.py


class BookingError(Exception):
    """Base for errors surfaced to API callers."""
    status_code = 500
    error_code = 'BookingError'
    retryable = False

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        body = {
            'success': False,
            'error': self.error_code,
            'message': self.message,
            'retryable': self.retryable,
        }
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(BookingError):
    status_code = 400
    error_code = 'ValidationError'


class NotFoundError(BookingError):
    status_code = 404
    error_code = 'NotFound'


class NoValidDatesError(BookingError):
    status_code = 409
    error_code = 'NoValidDates'


class TransientStoreError(BookingError):
    status_code = 503
    error_code = 'TransientStoreError'
    retryable = True
