"""
Tests for the reconcile aware json log format
"""

# Standard
from unittest import mock
import logging
import threading

# First Party
from alog import AlogJsonFormatter

# Local
from myapp_operator.log_format import (
    MyAppJsonFormatter,
    generate_id,
    reconcile_context,
)
from myapp_operator.test_helpers.helpers import setup_cr

## Helpers #####################################################################


def make_record() -> logging.LogRecord:
    return logging.LogRecord("TEST", logging.INFO, __file__, 1, "hello", None, None)


def format_record(record: logging.LogRecord) -> logging.LogRecord:
    """Run the formatter with the base formatting mocked out"""
    with mock.patch.object(AlogJsonFormatter, "format", return_value="{}"):
        MyAppJsonFormatter().format(record)
    return record


## generate_id #################################################################


def test_generate_id():
    """Make sure ids are short and unique"""
    ids = {generate_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(reconcile_id) == 22 for reconcile_id in ids)


## MyAppJsonFormatter ##########################################################


def test_formatter_adds_resource_fields():
    """Make sure records logged in a reconcile carry the resource identity"""
    cr = setup_cr()
    cr["metadata"]["resourceVersion"] = "12"
    with reconcile_context(cr, "abc"):
        record = format_record(make_record())
    assert record.reconciliationId == "abc"
    assert record.kind == "MyApp"
    assert record.apiVersion == "example.com/v1"
    assert record.resourceVersion == "12"
    assert record.resourceName == "demo"
    assert record.resourceNamespace == "ns1"


def test_formatter_outside_context():
    """Make sure records outside a reconcile are left alone"""
    record = format_record(make_record())
    assert not hasattr(record, "reconciliationId")
    assert not hasattr(record, "resourceName")


def test_context_is_per_thread():
    """Make sure another thread does not see the current reconcile"""
    seen = []

    def log_in_thread():
        seen.append(format_record(make_record()))

    with reconcile_context(setup_cr(), "abc"):
        thread = threading.Thread(target=log_in_thread)
        thread.start()
        thread.join()
    assert not hasattr(seen[0], "reconciliationId")


def test_context_restores_previous():
    """Make sure nested contexts unwind to the outer one"""
    with reconcile_context(setup_cr(), "outer"):
        with reconcile_context(setup_cr(name="inner"), "inner"):
            assert format_record(make_record()).reconciliationId == "inner"
        assert format_record(make_record()).reconciliationId == "outer"
