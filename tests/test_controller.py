"""
End to end tests of the controller running against the in-memory store
"""

# Standard
import time

# Third Party
import pytest
import yaml

# Local
from myapp_operator import MyAppController, constants
from myapp_operator.children import child_refs
from myapp_operator.cmd.run_controller_cmd import RunControllerCmd
from myapp_operator.resource import MyAppResource
from myapp_operator.store import DryRunObjectStore, ObjectRef
from myapp_operator.test_helpers.helpers import RecordingMetrics, setup_cr

## Helpers #####################################################################


def wait_for(predicate, timeout=10):
    end_time = time.time() + timeout
    while time.time() < end_time:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


def state_of(store, ref):
    current = store.get(ref)
    return MyAppResource(current).state if current else None


@pytest.fixture
def running_controller():
    store = DryRunObjectStore()
    metrics = RecordingMetrics()
    controller = MyAppController(store, metrics=metrics, max_workers=2)
    controller.start()
    yield controller
    controller.stop()


## Tests #######################################################################


def test_create_and_delete(running_controller):
    """Make sure an object converges to Running and is released on delete"""
    store = running_controller.store
    cr = setup_cr()
    store.create(cr)
    ref = ObjectRef.from_manifest(cr)

    assert wait_for(lambda: state_of(store, ref) == "Running")
    assert running_controller.is_ready()
    resource = MyAppResource(store.get(ref))
    assert resource.finalizers.to_list() == [constants.FINALIZER]
    assert resource.observed_generation == 1
    children = child_refs(resource)
    assert all(store.get(child) is not None for child in children)

    store.delete(ref)
    assert wait_for(lambda: store.get(ref) is None)
    assert all(store.get(child) is None for child in children)


def test_many_objects(running_controller):
    """Make sure distinct objects all converge"""
    store = running_controller.store
    refs = []
    for i in range(5):
        cr = setup_cr(name=f"app{i}")
        store.create(cr)
        refs.append(ObjectRef.from_manifest(cr))
    assert wait_for(lambda: all(state_of(store, ref) == "Running" for ref in refs))
    assert len(store.list_objects("apps/v1", "Deployment")) == 5


def test_stop(running_controller):
    """Make sure a stopped controller reports not ready"""
    running_controller.stop()
    assert not running_controller.is_ready()


@pytest.mark.parametrize(
    ["spec", "state"],
    [({}, "Running"), ({"replicas": 0}, "Failed")],
)
def test_apply_cr(running_controller, tmp_path, spec, state):
    """Make sure a dry run CR file is applied and settles"""
    cr = setup_cr(**spec)
    del cr["metadata"]["namespace"]
    cr_file = tmp_path / "cr.yaml"
    cr_file.write_text(yaml.safe_dump(cr), encoding="utf-8")

    resource = RunControllerCmd._apply_cr(  # pylint: disable=protected-access
        running_controller.store, str(cr_file), timeout=10
    )
    assert resource is not None
    assert resource.namespace == "default"
    assert resource.state == state


def test_apply_cr_timeout(tmp_path):
    """Make sure nothing is returned when no controller picks the CR up"""
    cr_file = tmp_path / "cr.yaml"
    cr_file.write_text(yaml.safe_dump(setup_cr()), encoding="utf-8")
    assert (
        RunControllerCmd._apply_cr(  # pylint: disable=protected-access
            DryRunObjectStore(), str(cr_file), timeout=0.2
        )
        is None
    )
