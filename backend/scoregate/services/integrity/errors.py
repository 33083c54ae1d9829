class ScoreGateError(Exception):
    """Base error for the score-integrity services.

    Every subclass maps to one HTTP status so the app can render any of them
    with a single error handler.
    """

    status_code = 500
    default_message = 'Internal error'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message}


class InputError(ScoreGateError):
    """Malformed request; the caller must fix it before resending."""

    status_code = 400
    default_message = 'Missing required fields'


class SessionInvalid(ScoreGateError):
    """Token unknown, expired, or already consumed."""

    status_code = 401
    default_message = 'Invalid or expired session token'


class IdentityMismatch(ScoreGateError):
    status_code = 403
    default_message = 'Player identity does not match session'


class SeedMismatch(ScoreGateError):
    status_code = 403
    default_message = 'Game seed does not match session'


class ValidationFailed(ScoreGateError):
    """An anti-cheat rule rejected the submission."""

    status_code = 400
    default_message = 'Score validation failed'

    def __init__(self, reason):
        super().__init__()
        self.reason = reason

    def to_dict(self):
        return {'error': self.message, 'reason': self.reason}


class StorageError(ScoreGateError):
    """Backing store failed; the whole operation may be retried."""

    status_code = 500
    default_message = 'Storage failure'
