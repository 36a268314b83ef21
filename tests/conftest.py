"""
Shared test config
"""
# Standard
from unittest import mock

# Third Party
import pytest

# Local
from myapp_operator.metrics import PrometheusMetrics
from myapp_operator.test_helpers.helpers import (
    MockObjectStore,
    RecordingMetrics,
    configure_logging,
)

configure_logging()


@pytest.fixture(autouse=True)
def no_local_kubeconfig():
    """This fixture makes sure the tests run as if KUBECONFIG is not exported in
    the environment, even if it is
    """
    with mock.patch(
        "kubernetes.config.new_client_from_config", side_effect=RuntimeError
    ):
        yield


@pytest.fixture
def store():
    """An empty failable in-memory store"""
    return MockObjectStore()


@pytest.fixture
def recording_metrics():
    return RecordingMetrics()


@pytest.fixture
def prometheus_metrics():
    """A prometheus sink with its own registry"""
    return PrometheusMetrics(version="1.2.3")
