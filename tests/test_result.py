"""Tests for the Ok/Err store result.

Tests cover:
- Variant behaviour
- capture() normalisation of returns and raises
"""

import pytest
from playsync.errors import NotFoundError, PermanentError, TransientError
from playsync.result import Err, Ok, capture


class TestVariants:
    """Tests for Ok and Err."""

    def test_ok(self):
        result = Ok([])
        assert result.ok is True
        assert result.unwrap() == []

    def test_falsy_value_is_still_ok(self):
        """An empty list or False is a successful result, not a failure."""
        assert Ok(False).ok is True
        assert isinstance(Ok([]), Ok)

    def test_err(self):
        error = NotFoundError("gone")
        result = Err(error)
        assert result.ok is False
        with pytest.raises(NotFoundError):
            result.unwrap()

    def test_equality(self):
        assert Ok(1) == Ok(1)
        assert Ok(1) != Ok(2)


class TestCapture:
    """Tests for capture()."""

    def test_passes_through_ok(self):
        assert capture("op", lambda: Ok("k1")) == Ok("k1")

    def test_passes_through_err(self):
        error = TransientError("slow")
        result = capture("op", lambda: Err(error))
        assert isinstance(result, Err)
        assert result.error is error

    def test_wraps_bare_value(self):
        assert capture("op", lambda: {"sid": "1"}) == Ok({"sid": "1"})

    def test_passes_arguments(self):
        result = capture("op", lambda a, b=0: Ok(a + b), 1, b=2)
        assert result == Ok(3)

    def test_wraps_raised_exception(self):
        def _raise():
            raise ValueError("bad payload")

        result = capture("documents.upsert", _raise)
        assert isinstance(result, Err)
        assert isinstance(result.error, PermanentError)
        assert result.error.operation == "documents.upsert"

    def test_wraps_timeout_as_transient(self):
        def _raise():
            raise TimeoutError()

        result = capture("config.list", _raise)
        assert isinstance(result.error, TransientError)
