"""Tests for playsync error classes.

Tests cover:
- Error hierarchy
- RemoteError attributes
- classify_exception normalisation
"""

import pytest
from playsync.errors import (
    ConfigError,
    NotFoundError,
    PermanentError,
    PlaysyncError,
    RemoteError,
    TransientError,
    ValidationError,
    classify_exception,
)


class TestHierarchy:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize(
        "error_cls",
        [ConfigError, ValidationError, RemoteError, TransientError, PermanentError, NotFoundError],
    )
    def test_is_playsync_error(self, error_cls):
        """Every playsync error can be caught as PlaysyncError."""
        assert issubclass(error_cls, PlaysyncError)

    def test_remote_errors(self):
        """Transient and permanent errors are remote errors."""
        assert issubclass(TransientError, RemoteError)
        assert issubclass(PermanentError, RemoteError)
        assert issubclass(NotFoundError, PermanentError)

    def test_validation_error_is_not_remote(self):
        """ValidationError is raised before any store call."""
        assert not issubclass(ValidationError, RemoteError)

    def test_can_be_caught_as_playsync_error(self):
        with pytest.raises(PlaysyncError):
            raise NotFoundError("missing")


class TestRemoteError:
    """Tests for RemoteError attributes."""

    def test_has_message(self):
        error = RemoteError("boom")
        assert str(error) == "boom"

    def test_defaults(self):
        error = TransientError("slow")
        assert error.operation == ""
        assert error.status is None

    def test_operation_and_status(self):
        error = PermanentError("forbidden", operation="config.set_acl", status=403)
        assert error.operation == "config.set_acl"
        assert error.status == 403


class TestClassifyException:
    """Tests for classify_exception."""

    def test_remote_error_unchanged(self):
        error = NotFoundError("gone", operation="config.get")
        assert classify_exception(error, "other") is error

    def test_timeout_is_transient(self):
        error = classify_exception(TimeoutError("timed out"), "config.list")
        assert isinstance(error, TransientError)
        assert error.operation == "config.list"

    def test_connection_error_is_transient(self):
        error = classify_exception(ConnectionResetError("reset"), "documents.query")
        assert isinstance(error, TransientError)

    def test_unknown_is_permanent(self):
        cause = KeyError("entry")
        error = classify_exception(cause, "config.get")
        assert isinstance(error, PermanentError)
        assert "KeyError" in str(error)
        assert error.__cause__ is cause
