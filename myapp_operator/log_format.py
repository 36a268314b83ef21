"""
Custom logging formats that add the identity of the reconciled MyApp to json
logs
"""

# Standard
from contextlib import contextmanager
from typing import Optional
import base64
import threading
import uuid

# First Party
from alog import AlogJsonFormatter
import alog

log = alog.use_channel("LOGFM")

# Workers reconcile different objects at the same time, so the current
# reconcile is tracked per thread
_reconcile_context = threading.local()


def generate_id() -> str:
    """Generates a unique human readable id for a reconciliation

    Returns:
        id: str
            A unique base32 encoded id
    """
    base32_str = base64.b32encode(uuid.uuid4().bytes).decode("utf-8")
    return base32_str[:22]


@contextmanager
def reconcile_context(resource: Optional[dict], reconciliation_id: str):
    """Attach a resource and reconciliation id to every record logged by the
    current thread inside the context
    """
    previous = getattr(_reconcile_context, "value", None)
    _reconcile_context.value = (resource, reconciliation_id)
    try:
        yield
    finally:
        _reconcile_context.value = previous


class MyAppJsonFormatter(AlogJsonFormatter):
    """Custom Log Format that extends AlogJsonFormatter to add the identifiers
    of the resource being reconciled, the reconciliationId and thread
    information
    """

    _FIELDS_TO_PRINT = AlogJsonFormatter._FIELDS_TO_PRINT + [
        "process",
        "thread",
        "threadName",
        "kind",
        "apiVersion",
        "resourceVersion",
        "resourceName",
        "resourceNamespace",
        "reconciliationId",
    ]

    def format(self, record):
        resource, reconciliation_id = getattr(
            _reconcile_context, "value", None
        ) or (None, None)
        resource = getattr(record, "resource", resource)
        reconciliation_id = getattr(record, "reconciliationId", reconciliation_id)

        if reconciliation_id:
            record.reconciliationId = reconciliation_id

        if resource:
            record.kind = resource.get("kind")
            record.apiVersion = resource.get("apiVersion")

            metadata = resource.get("metadata", {})
            record.resourceVersion = metadata.get("resourceVersion")
            record.resourceName = metadata.get("name")
            record.resourceNamespace = metadata.get("namespace")

        return super().format(record)
