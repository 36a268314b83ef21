"""
Tests for the DryRunObjectStore
"""

# Standard
import copy

# Third Party
import pytest

# Local
from myapp_operator import constants
from myapp_operator.exceptions import StoreConflictError, StoreError
from myapp_operator.store import (
    DryRunObjectStore,
    KubeEventType,
    ObjectRef,
    Subresource,
)
from myapp_operator.test_helpers.helpers import TEST_NAMESPACE, setup_cr

REF = ObjectRef(constants.API_VERSION, constants.KIND, TEST_NAMESPACE, "demo")

## Helpers #####################################################################


def watched_store(*resources):
    store = DryRunObjectStore(list(resources))
    events = []
    store.register_watch(constants.API_VERSION, constants.KIND, events.append)
    return store, events


## create / get ################################################################


def test_create_assigns_metadata():
    """Make sure creation assigns the server owned metadata"""
    store = DryRunObjectStore()
    assert store.create(setup_cr())
    current = store.get(REF)
    assert current["metadata"]["uid"]
    assert current["metadata"]["creationTimestamp"]
    assert current["metadata"]["generation"] == 1
    assert current["metadata"]["resourceVersion"] == "1"


def test_create_existing():
    """Make sure creating an existing object reports already exists"""
    store = DryRunObjectStore([setup_cr()])
    assert not store.create(setup_cr(replicas=5))
    assert store.get(REF)["spec"]["replicas"] == 3


def test_create_drops_status():
    """Make sure status can not be set on create"""
    cr = setup_cr()
    cr["status"] = {"state": "Running"}
    store = DryRunObjectStore()
    store.create(cr)
    assert "status" not in store.get(REF)


def test_seeded_status_kept():
    """Make sure seeded objects keep their status"""
    cr = setup_cr()
    cr["status"] = {"state": "Running"}
    assert DryRunObjectStore([cr]).get(REF)["status"] == {"state": "Running"}


def test_get_returns_copy():
    """Make sure modifying a fetched object does not modify the store"""
    store = DryRunObjectStore([setup_cr()])
    store.get(REF)["spec"]["replicas"] = 10
    assert store.get(REF)["spec"]["replicas"] == 3


def test_get_missing():
    assert DryRunObjectStore().get(REF) is None


## merge_patch #################################################################


def test_merge_patch_spec_bumps_generation():
    """Make sure only spec changes bump the generation"""
    store = DryRunObjectStore([setup_cr()])
    store.merge_patch(REF, {"metadata": {"labels": {"a": "b"}}})
    assert store.get(REF)["metadata"]["generation"] == 1
    updated = store.merge_patch(REF, {"spec": {"replicas": 4}})
    assert updated["metadata"]["generation"] == 2
    assert updated["spec"] == {"replicas": 4, "image": "nginx:1.25"}


def test_merge_patch_resource_version():
    """Make sure a stale resourceVersion is a conflict and a current one works"""
    store = DryRunObjectStore([setup_cr()])
    version = store.get(REF)["metadata"]["resourceVersion"]
    updated = store.merge_patch(
        REF, {"metadata": {"resourceVersion": version, "labels": {"a": "b"}}}
    )
    assert updated["metadata"]["resourceVersion"] != version
    with pytest.raises(StoreConflictError):
        store.merge_patch(
            REF, {"metadata": {"resourceVersion": version, "labels": {"c": "d"}}}
        )
    assert store.get(REF)["metadata"]["labels"] == {"a": "b"}


def test_merge_patch_status_subresource():
    """Make sure status patches only touch status and main patches never do"""
    store = DryRunObjectStore([setup_cr()])
    store.merge_patch(
        REF,
        {"spec": {"replicas": 9}, "status": {"state": "Running"}},
        subresource=Subresource.STATUS,
    )
    current = store.get(REF)
    assert current["status"] == {"state": "Running"}
    assert current["spec"]["replicas"] == 3
    assert current["metadata"]["generation"] == 1

    store.merge_patch(REF, {"status": {"state": "Failed"}})
    assert store.get(REF)["status"] == {"state": "Running"}


def test_merge_patch_immutable_metadata():
    """Make sure server owned metadata can not be patched"""
    store = DryRunObjectStore([setup_cr()])
    uid = store.get(REF)["metadata"]["uid"]
    store.merge_patch(REF, {"metadata": {"uid": "new", "deletionTimestamp": "now"}})
    current = store.get(REF)
    assert current["metadata"]["uid"] == uid
    assert "deletionTimestamp" not in current["metadata"]


def test_merge_patch_missing():
    """Make sure patching a missing object reports not found"""
    assert DryRunObjectStore().merge_patch(REF, {"spec": {}}) is None


def test_merge_patch_unknown_subresource():
    store = DryRunObjectStore([setup_cr()])
    with pytest.raises(StoreError):
        store.merge_patch(REF, {}, subresource="scale")


## delete ######################################################################


def test_delete_without_finalizers():
    """Make sure an object without finalizers is removed right away"""
    store, events = watched_store(setup_cr())
    assert store.delete(REF)
    assert store.get(REF) is None
    assert not store.delete(REF)
    assert [event.type for event in events] == [KubeEventType.DELETED]


def test_delete_with_finalizers():
    """Make sure finalizers hold the object until they are cleared"""
    cr = setup_cr()
    cr["metadata"]["finalizers"] = ["a", "b"]
    store, events = watched_store(cr)
    assert store.delete(REF)
    terminating = store.get(REF)
    assert terminating["metadata"]["deletionTimestamp"]

    # Deleting again changes nothing
    assert store.delete(REF)
    assert store.get(REF) == terminating

    store.merge_patch(REF, {"metadata": {"finalizers": ["b"]}})
    assert store.get(REF)["metadata"]["deletionTimestamp"] == (
        terminating["metadata"]["deletionTimestamp"]
    )
    store.merge_patch(REF, {"metadata": {"finalizers": []}})
    assert store.get(REF) is None
    assert [event.type for event in events] == [
        KubeEventType.MODIFIED,
        KubeEventType.MODIFIED,
        KubeEventType.DELETED,
    ]


## list / watch ################################################################


def names(objs):
    return sorted(obj["metadata"]["name"] for obj in objs)


def test_list_objects():
    """Make sure listing filters by kind and namespace"""
    store = DryRunObjectStore(
        [
            setup_cr(name="a"),
            setup_cr(name="b", namespace="other"),
            {"apiVersion": "v1", "kind": "Service", "metadata": {"name": "s"}},
        ]
    )
    assert names(store.list_objects(constants.API_VERSION, constants.KIND)) == [
        "a",
        "b",
    ]
    assert names(
        store.list_objects(constants.API_VERSION, constants.KIND, "other")
    ) == ["b"]


def test_register_watch_namespace():
    """Make sure namespaced watches only see their namespace"""
    store = DryRunObjectStore()
    events = []
    store.register_watch(
        constants.API_VERSION, constants.KIND, events.append, namespace="other"
    )
    store.create(setup_cr(name="a"))
    store.create(setup_cr(name="b", namespace="other"))
    assert [event.ref.name for event in events] == ["b"]
    assert events[0].type == KubeEventType.ADDED


def test_watch_events_are_copies():
    """Make sure watchers can not modify stored objects"""
    store, events = watched_store()
    store.create(setup_cr())
    events[0].resource["spec"]["replicas"] = 50
    assert store.get(REF)["spec"]["replicas"] == 3


def test_watch_objects():
    """Make sure watch_objects yields current objects then changes"""
    store = DryRunObjectStore([setup_cr(name="a")])
    stream = store.watch_objects(constants.API_VERSION, constants.KIND, timeout=5)
    first = next(stream)
    assert (first.type, first.ref.name) == (KubeEventType.ADDED, "a")
    store.create(setup_cr(name="b"))
    second = next(stream)
    assert (second.type, second.ref.name) == (KubeEventType.ADDED, "b")
