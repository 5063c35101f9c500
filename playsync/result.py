"""
StoreResult - Discriminated return type from all store clients.

Every ConfigStore and DocumentStore call returns exactly one of:

    Ok(value)    the call succeeded; value is the decoded payload
    Err(error)   the call failed; error is a RemoteError

Callers branch on the variant with isinstance() instead of inferring
success from the truthiness of whatever the transport handed back, so an
empty list or a False delete flag is never mistaken for a failure.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

from playsync.errors import RemoteError, classify_exception

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful store call."""
    value: T

    @property
    def ok(self) -> bool:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err:
    """Failed store call."""
    error: RemoteError

    @property
    def ok(self) -> bool:
        return False

    def unwrap(self):
        """Raise the carried error."""
        raise self.error


StoreResult = Union[Ok[T], Err]


def capture(operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> "StoreResult[Any]":
    """
    Call a store client method and normalise its outcome to a StoreResult.

    Clients are allowed to either return Ok/Err or raise. A raised exception
    is classified and wrapped in Err; a bare (non-result) return value is
    wrapped in Ok so third-party clients that return raw payloads still fit.

    Args:
        operation: Name recorded on the error (e.g. "config.create")
        func: Bound client method
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Ok or Err
    """
    try:
        result = func(*args, **kwargs)
    except Exception as e:
        return Err(classify_exception(e, operation))

    if isinstance(result, (Ok, Err)):
        return result
    return Ok(result)
