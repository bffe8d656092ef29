"""
Error taxonomy for the booking API.

Services raise these; ``app.create_app`` registers a handler that renders
them as ``{"error": ..., "details": ...}`` with the matching status code.
"""

from datetime import date, datetime


class APIError(Exception):
    status_code = 500

    def __init__(self, message, status_code=None, details=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self):
        body = {'error': self.message}
        if self.details:
            body['details'] = self.details
        return body


class ValidationError(APIError):
    """Missing or malformed input"""
    status_code = 400


class InvalidCredentials(APIError):
    status_code = 401


class Unauthorized(APIError):
    status_code = 401


class Forbidden(APIError):
    status_code = 403


class NotFoundError(APIError):
    status_code = 404


class ConflictError(APIError):
    """Duplicate email, already-booked room"""
    status_code = 409


class PersistenceError(APIError):
    """Database or transaction failure; the driver message goes in details"""
    status_code = 500


def require_fields(data, *fields):
    """Raise ValidationError unless every field is present and non-empty"""
    missing = [f for f in fields if data.get(f) in (None, '')]
    if missing:
        raise ValidationError('Missing required fields', details=', '.join(missing))


def require_strings(data, *fields):
    """Raise ValidationError unless every present field is a string"""
    wrong = [f for f in fields if data.get(f) is not None and not isinstance(data[f], str)]
    if wrong:
        raise ValidationError('Fields must be strings', details=', '.join(wrong))


def parse_id(value, field):
    """Accept an int or a string of digits; bools and floats are rejected"""
    if isinstance(value, bool):
        raise ValidationError(f'Invalid {field}')
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdecimal():
        return int(value.strip())
    raise ValidationError(f'Invalid {field}')


def parse_date(value, field):
    """Parse a YYYY-MM-DD string; date objects pass through"""
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except ValueError:
        raise ValidationError(f'Invalid {field}, expected YYYY-MM-DD')


def db_error_details(exc):
    """Driver-level message of a SQLAlchemy error, when there is one"""
    return str(getattr(exc, 'orig', None) or exc)
