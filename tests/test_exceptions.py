"""
Tests for the custom exceptions
"""

# Third Party
import pytest

# Local
from myapp_operator.exceptions import (
    MyAppError,
    StoreConflictError,
    StoreError,
    ValidationError,
    assert_store,
    assert_valid,
)


def test_assert_store():
    """Make sure assert_store raises a StoreError only on failure"""
    assert_store(True)
    with pytest.raises(StoreError, match="oops"):
        assert_store(False, "oops")


def test_assert_valid():
    """Make sure assert_valid raises a ValidationError only on failure"""
    assert_valid(True)
    with pytest.raises(ValidationError):
        assert_valid(False)


def test_hierarchy():
    """Make sure every error is a retryable MyAppError and conflicts are store
    errors
    """
    assert issubclass(StoreConflictError, StoreError)
    assert issubclass(ValidationError, MyAppError)
    assert StoreConflictError.kind == "store_error"
