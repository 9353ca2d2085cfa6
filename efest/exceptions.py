# exceptions.py
"""
Typed failures raised by the services.

Each carries the HTTP status it maps to, a stable error code and any
structured detail a client needs to render actionable feedback.
"""


class EfestError(Exception):
    status_code = 500
    error_code = 'internal_error'
    default_message = 'Internal Server Error'

    def __init__(self, message=None, **details):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        result = {'message': self.message, 'error': self.error_code}
        result.update(self.details)
        return result


class ValidationError(EfestError):
    status_code = 400
    error_code = 'validation_error'
    default_message = 'Invalid request data'


class ApplicationNotFound(EfestError):
    status_code = 404
    error_code = 'application_not_found'
    default_message = 'Application not found'


class ModuleNotFound(EfestError):
    status_code = 404
    error_code = 'module_not_found'
    default_message = 'Module not found'


class ParticipantNotFound(EfestError):
    status_code = 404
    error_code = 'participant_not_found'
    default_message = 'Participant not found'


class CapacityExceeded(EfestError):
    status_code = 400
    error_code = 'capacity_exceeded'

    def __init__(self, cap, attempted, message=None):
        super().__init__(
            message or f'Cannot accept application. Cap of {cap} exceeded.',
            cap=cap,
            attempted=attempted
        )
        self.cap = cap
        self.attempted = attempted


class IncompleteParticipantData(EfestError):
    status_code = 400
    error_code = 'incomplete_participant_data'
    default_message = 'Missing required participant fields'

    def __init__(self, missing, message=None):
        super().__init__(message, details=missing)
        self.missing = missing


class DuplicateKeyConflict(EfestError):
    status_code = 409
    error_code = 'duplicate_key'
    default_message = 'Duplicate key error while saving participants'


class InvalidStatusTransition(EfestError):
    status_code = 409
    error_code = 'invalid_status_transition'

    def __init__(self, current, requested):
        super().__init__(
            f'Application is already {current} and cannot become {requested}.',
            currentStatus=current,
            requestedStatus=requested
        )
        self.current = current
        self.requested = requested


class ConcurrentModification(EfestError):
    status_code = 409
    error_code = 'concurrent_modification'
    default_message = 'The record was modified by another request. Reload and retry.'


class PermissionDenied(EfestError):
    status_code = 403
    error_code = 'permission_denied'
    default_message = 'Access forbidden'
