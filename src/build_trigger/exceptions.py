class TriggerError(Exception):
    """Base class for all errors raised while triggering a build."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TriggerError):
    """Raised when a repository, user or commit cannot be resolved."""

    status_code = 404


class UnauthorizedError(TriggerError):
    """Raised when a request carries no resolvable caller."""

    status_code = 401


class ConversionError(TriggerError):
    """Raised when a configuration document cannot be evaluated."""

    status_code = 422


class SchedulerError(TriggerError):
    """Raised when the scheduler rejects or fails a trigger."""

    pass
