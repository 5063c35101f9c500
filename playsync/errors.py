"""
Error classes for playsync.

Failures are split by where they originate:
- ValidationError: bad caller input, detected before any store call
- RemoteError: anything a ConfigStore or DocumentStore reported or raised

RemoteError is further classified for retry decisions:
- TransientError: Safe to retry (rate limits, timeouts, 5xx)
- PermanentError: Do not retry (bad request, missing resource, bad payload)

Error handling contract:
- Store clients return Err(RemoteError) or raise; both are normalised
- Orchestrator helpers raise PlaysyncError subclasses
- Public orchestrator operations catch at their boundary and return the
  error object as a value
"""


class PlaysyncError(Exception):
    """Base exception for playsync."""
    pass


class ConfigError(PlaysyncError):
    """Configuration validation error."""
    pass


class ValidationError(PlaysyncError):
    """
    Caller input rejected before any network call.

    Examples:
    - Play name containing a path separator
    - Document payload without a play id
    """
    pass


class RemoteError(PlaysyncError):
    """
    Failure reported by a backing store.

    Attributes:
        operation: Store operation that failed (e.g. "config.create")
        status: HTTP status code when the failure came from a response
    """

    def __init__(self, message: str, operation: str = "", status: int | None = None):
        super().__init__(message)
        self.operation = operation
        self.status = status


class TransientError(RemoteError):
    """
    Transient error - safe to retry.

    Examples:
    - Rate limit exceeded (429)
    - Network timeout or connection reset
    - Service temporarily unavailable (5xx)
    """
    pass


class PermanentError(RemoteError):
    """
    Permanent error - do not retry.

    Examples:
    - Invalid properties (400)
    - Authorization failed (403)
    - Definition already exists (409)
    - Response body that is not valid JSON
    """
    pass


class NotFoundError(PermanentError):
    """The named definition or keyed document does not exist."""
    pass


def classify_exception(exc: Exception, operation: str) -> RemoteError:
    """
    Normalise an exception raised by a store client into a RemoteError.

    - RemoteError: Already classified, returned unchanged
    - TimeoutError / ConnectionError: Builtin network failures are transient
    - Exception: Unknown = permanent (fail fast)
    """
    if isinstance(exc, RemoteError):
        return exc
    if isinstance(exc, (TimeoutError, ConnectionError)):
        error: RemoteError = TransientError(str(exc), operation=operation)
    else:
        error = PermanentError(f"{type(exc).__name__}: {exc}", operation=operation)
    error.__cause__ = exc
    return error
