"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import List, Optional, Tuple
from unittest import mock
import copy
import inspect
import os

# First Party
import alog

# Local
from myapp_operator import constants
from myapp_operator.config import library_config as config_detail_dict
from myapp_operator.exceptions import StoreError
from myapp_operator.metrics import MetricsSinkBase
from myapp_operator.store import DryRunObjectStore, Subresource

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_INSTANCE_NAME = "demo"
TEST_NAMESPACE = "ns1"
TEST_IMAGE = "nginx:1.25"


def setup_cr(
    name=TEST_INSTANCE_NAME,
    namespace=TEST_NAMESPACE,
    replicas=3,
    image=TEST_IMAGE,
    **spec,
) -> dict:
    """Make a MyApp manifest as a user would write it"""
    cr_dict = {
        "apiVersion": constants.API_VERSION,
        "kind": constants.KIND,
        "metadata": {"name": name, "namespace": namespace},
        "spec": {"replicas": replicas, "image": image},
    }
    cr_dict["spec"].update(copy.deepcopy(spec))
    return cr_dict


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        if key in config_detail_dict:
            old_vals[key] = config_detail_dict[key]
        config_detail_dict[key] = val

    # Yield to the context
    try:
        yield

    # Revert to the old values
    finally:
        for key in config_overrides:
            if key in old_vals:
                config_detail_dict[key] = old_vals[key]
            else:
                del config_detail_dict[key]


def get_failable_method(fail_flag, method):
    """Wrap a store method so that it fails according to the flag

    The flag may be an exception (class or instance) to raise, a callable run
    before the real method which may raise, or True to raise a StoreError.
    """
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            fail_flag()
        elif fail_flag:
            raise StoreError(f"You told me to fail {method}!")
        return method(*args, **kwargs)

    return failable_method


class FailOnce:
    """Helper callable that will fail once on the N'th call"""

    def __init__(self, fail_val=StoreError, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            raise self.fail_val("Raising!")
        log.debug("Not failing on call %d", self.call_count)


class MockObjectStore(DryRunObjectStore):
    """The MockObjectStore wraps a standard DryRunObjectStore and adds
    configuration options to simulate failures in each of its operations. Every
    operation is a mock.Mock so calls can be inspected.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        resources: Optional[List[dict]] = None,
        get_fail=False,
        create_fail=False,
        patch_fail=False,
        status_patch_fail=False,
        delete_fail=False,
        list_fail=False,
    ):
        super().__init__(resources)
        self.get_fail = get_fail
        self.create_fail = create_fail
        self.patch_fail = patch_fail
        self.status_patch_fail = status_patch_fail
        self.delete_fail = delete_fail
        self.list_fail = list_fail
        self.enable_mocks()

    #######################
    ## Helpers for Tests ##
    #######################

    def enable_mocks(self):
        """Turn the mocks on"""
        self.get = mock.Mock(
            side_effect=get_failable_method(self.get_fail, super().get)
        )
        self.create = mock.Mock(
            side_effect=get_failable_method(self.create_fail, super().create)
        )
        self.delete = mock.Mock(
            side_effect=get_failable_method(self.delete_fail, super().delete)
        )
        self.list_objects = mock.Mock(
            side_effect=get_failable_method(self.list_fail, super().list_objects)
        )
        main_patch = get_failable_method(self.patch_fail, super().merge_patch)
        status_patch = get_failable_method(self.status_patch_fail, super().merge_patch)

        def merge_patch(ref, patch, subresource=None):
            if subresource is None:
                return main_patch(ref, patch, subresource)
            return status_patch(ref, patch, subresource)

        self.merge_patch = mock.Mock(side_effect=merge_patch)

    def status_patches(self) -> List[dict]:
        """Every patch body sent to the status subresource"""
        return [
            call.args[1]
            for call in self.merge_patch.call_args_list
            if call.kwargs.get("subresource") == Subresource.STATUS
        ]


class RecordingMetrics(MetricsSinkBase):
    """Metrics sink that keeps every call for inspection"""

    def __init__(self):
        self.calls: List[Tuple] = []

    def reconcile_started(self, namespace):
        self.calls.append(("reconcile_started", namespace))

    def reconcile_finished(self, namespace, name, result, duration):
        self.calls.append(("reconcile_finished", namespace, name, result))

    def managed_resources(self, resource_type, namespace, count):
        self.calls.append(("managed_resources", resource_type, namespace, count))

    def error(self, error_type, namespace):
        self.calls.append(("error", error_type, namespace))

    def webhook_request(self, webhook_type, result, duration):
        self.calls.append(("webhook_request", webhook_type, result))

    def named(self, name: str) -> List[Tuple]:
        """All calls of the given method, without the method name"""
        return [call[1:] for call in self.calls if call[0] == name]
