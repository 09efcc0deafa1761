from fastapi import HTTPException, status


class LedgerError(HTTPException):
    """Business error with a stable code the UI can map to a message."""

    code = 'ledger_error'
    status_code = status.HTTP_400_BAD_REQUEST
    message = 'The operation could not be completed'

    def __init__(self, message: str = None):
        super().__init__(
            self.status_code,
            {'code': self.code, 'message': message or self.message},
            None,
        )


class InvalidTransition(LedgerError):
    code = 'invalid_transition'
    status_code = status.HTTP_409_CONFLICT
    message = 'The event cannot move to the requested status'


class EventFull(LedgerError):
    code = 'event_full'
    status_code = status.HTTP_409_CONFLICT
    message = 'Event is full'


class DuplicateRegistration(LedgerError):
    code = 'duplicate_registration'
    status_code = status.HTTP_409_CONFLICT
    message = 'You are already registered for this event'


class NotRegistered(LedgerError):
    code = 'not_registered'
    status_code = status.HTTP_404_NOT_FOUND
    message = 'You are not registered for this event'


class RegistrationClosed(LedgerError):
    code = 'registration_closed'
    status_code = status.HTTP_409_CONFLICT
    message = 'Event is not open for registration'


class AlreadyCheckedIn(LedgerError):
    code = 'already_checked_in'
    status_code = status.HTTP_409_CONFLICT
    message = 'You are already checked in'


class NoActiveSession(LedgerError):
    code = 'no_active_session'
    status_code = status.HTTP_404_NOT_FOUND
    message = 'No active check-in found'


class EventNotInProgress(LedgerError):
    code = 'event_not_in_progress'
    status_code = status.HTTP_409_CONFLICT
    message = 'Event has not started or has already ended'


class EventNotFound(LedgerError):
    code = 'event_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    message = 'Event not found'


class NotAuthorized(LedgerError):
    code = 'not_authorized'
    status_code = status.HTTP_403_FORBIDDEN
    message = 'Only organization administrators can do this'


class ConstraintViolation(LedgerError):
    code = 'constraint_violation'
    status_code = status.HTTP_409_CONFLICT
    message = 'Integrity error'


class PersistenceUnavailable(LedgerError):
    code = 'persistence_unavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = 'The database is temporarily unavailable, please retry'
