"""
This module implements custom exceptions
"""

# Local
from . import constants

## Base Error ##################################################################


class MyAppError(Exception):
    """Base class for all reconciliation failures. Every failure is retryable,
    so none of these ever signal a fatal state for the process.
    """

    # The label used to count this failure in the error metrics
    kind = constants.UNEXPECTED_ERROR


## Store Errors ################################################################


class StoreError(MyAppError):
    """A call against the object store failed"""

    kind = constants.STORE_ERROR


class StoreConflictError(StoreError):
    """A write was rejected because the resourceVersion it was based on is no
    longer current
    """


## Reconcile Errors ############################################################


class ValidationError(MyAppError):
    """The spec of an object violates an invariant at reconcile time even
    though it passed admission
    """

    kind = constants.VALIDATION_ERROR


class FinalizerError(MyAppError):
    """Adding or removing the finalizer, or cleaning up the children guarded by
    it, did not complete
    """

    kind = constants.FINALIZER_ERROR


## Assertions ##################################################################


def assert_store(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a StoreError. This should be
    used when a store operation returns an unexpected result.
    """
    if not condition:
        raise StoreError(message)


def assert_valid(condition: bool, message: str = ""):
    """Replacement for assert() which will throw a ValidationError. This should
    be used when checking spec invariants during a reconcile.
    """
    if not condition:
        raise ValidationError(message)
