"""
The DryRunObjectStore implements the ObjectStore interface but does not
actually interact with the cluster and instead holds the state of the cluster in
a local map. It emulates the parts of the api server the controller relies on:
resourceVersion conflicts, generation bumps on spec changes, the status
subresource and deletion gated by finalizers.
"""

# Standard
from datetime import datetime, timedelta
from queue import Empty, Queue
from threading import RLock
from typing import Callable, Dict, Iterator, List, Optional, Tuple
import copy
import uuid

# First Party
import alog

# Local
from ..exceptions import StoreConflictError, assert_store
from ..utils import apply_merge_patch, nested_get
from .base import ObjectRef, ObjectStoreBase, Subresource
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("DRY-RUN")

# Metadata fields owned by the store which a patch can never change
_IMMUTABLE_METADATA = (
    "name",
    "namespace",
    "uid",
    "creationTimestamp",
    "deletionTimestamp",
)


def _k8s_timestamp() -> str:
    return datetime.now().strftime("%Y-%m-%dT%H:%M:%SZ")


class DryRunObjectStore(ObjectStoreBase):
    """
    Object store which doesn't actually talk to a cluster!
    """

    def __init__(self, resources: Optional[List[dict]] = None):
        """Construct with an optional list of objects that are present in the
        cluster from the start
        """
        self._lock = RLock()
        self._cluster_content: Dict[ObjectRef, dict] = {}
        self._resource_version = 0

        # Registered watch callbacks keyed by api_version:kind:namespace
        self._watches: Dict[str, List[Callable[[KubeWatchEvent], None]]] = {}

        for resource in resources or []:
            self._create(resource, call_watches=False)

    ## Interface ###############################################################

    def get(self, ref: ObjectRef) -> Optional[dict]:
        log.debug2("DRY RUN get [%s]", ref)
        with self._lock:
            current = self._cluster_content.get(ref)
            return copy.deepcopy(current) if current is not None else None

    def create(self, resource_definition: dict) -> bool:
        log.debug("DRY RUN create [%s]", ObjectRef.from_manifest(resource_definition))
        return self._create(resource_definition)

    def merge_patch(
        self,
        ref: ObjectRef,
        patch: dict,
        subresource: Optional[str] = None,
    ) -> Optional[dict]:
        log.debug("DRY RUN merge_patch [%s/%s]: %s", ref, subresource, patch)
        assert_store(
            subresource in [None, Subresource.STATUS],
            f"Unknown subresource {subresource}",
        )

        with self._lock:
            current = self._cluster_content.get(ref)
            if current is None:
                log.debug2("Did not find [%s]", ref)
                return None

            patch = copy.deepcopy(patch)
            expected_version = nested_get(patch, "metadata.resourceVersion")
            current_version = nested_get(current, "metadata.resourceVersion")
            if expected_version is not None and expected_version != current_version:
                raise StoreConflictError(
                    f"Conflict patching {ref}: resourceVersion {expected_version} "
                    f"is not current ({current_version})"
                )
            if expected_version is not None:
                del patch["metadata"]["resourceVersion"]
                if not patch["metadata"]:
                    del patch["metadata"]

            # The status subresource only sees status, the main resource never
            # sees it
            if subresource == Subresource.STATUS:
                patch = {"status": patch["status"]} if "status" in patch else {}
            else:
                patch.pop("status", None)

            updated = apply_merge_patch(current, patch)
            for key in _IMMUTABLE_METADATA:
                if key in current["metadata"]:
                    updated["metadata"][key] = current["metadata"][key]
                else:
                    updated["metadata"].pop(key, None)
            if updated.get("spec") != current.get("spec"):
                updated["metadata"]["generation"] = (
                    current["metadata"].get("generation", 0) + 1
                )
            updated["metadata"]["resourceVersion"] = self._next_resource_version()

            # Once terminating, clearing the last finalizer completes the delete
            if updated["metadata"].get("deletionTimestamp") and not updated[
                "metadata"
            ].get("finalizers"):
                log.debug2("Last finalizer removed from [%s]", ref)
                del self._cluster_content[ref]
                event_type = KubeEventType.DELETED
            else:
                self._cluster_content[ref] = updated
                event_type = KubeEventType.MODIFIED

        self._call_watches(event_type, updated)
        return copy.deepcopy(updated)

    def delete(self, ref: ObjectRef) -> bool:
        log.debug("DRY RUN delete [%s]", ref)
        with self._lock:
            current = self._cluster_content.get(ref)
            if current is None:
                return False

            if current["metadata"].get("finalizers"):
                if current["metadata"].get("deletionTimestamp"):
                    log.debug2("[%s] is already terminating", ref)
                    return True
                current["metadata"]["deletionTimestamp"] = _k8s_timestamp()
                current["metadata"]["deletionGracePeriodSeconds"] = 0
                current["metadata"]["resourceVersion"] = self._next_resource_version()
                event_type = KubeEventType.MODIFIED
            else:
                del self._cluster_content[ref]
                event_type = KubeEventType.DELETED
            manifest = copy.deepcopy(current)

        self._call_watches(event_type, manifest)
        return True

    def list_objects(
        self,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
    ) -> List[dict]:
        log.debug2("DRY RUN list [%s.%s] in [%s]", api_version, kind, namespace)
        with self._lock:
            return [
                copy.deepcopy(content)
                for ref, content in self._cluster_content.items()
                if ref.api_version == api_version
                and ref.kind == kind
                and (namespace is None or ref.namespace == namespace)
            ]

    def watch_objects(
        self,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> Iterator[KubeWatchEvent]:
        """Watch the store for changes. The current objects are yielded first
        as ADDED events followed by every change made after the call.
        """
        event_queue = Queue()
        self.register_watch(
            api_version=api_version,
            kind=kind,
            namespace=namespace,
            callback=event_queue.put,
        )
        for manifest in self.list_objects(api_version, kind, namespace):
            event = KubeWatchEvent(type=KubeEventType.ADDED, resource=manifest)
            log.debug2("Yielding initial event %s", event)
            yield event

        end_time = datetime.max
        if timeout:
            end_time = datetime.now() + timedelta(seconds=timeout)

        while datetime.now() < end_time:
            sec_till_end = max((end_time - datetime.now()).total_seconds(), 0.1)
            try:
                event = event_queue.get(timeout=min(sec_till_end, 1))
                log.debug2("Yielding event %s", event)
                yield event
            except Empty:
                pass

    ## Dry Run Methods #########################################################

    def register_watch(
        self,
        api_version: str,
        kind: str,
        callback: Callable[[KubeWatchEvent], None],
        namespace: Optional[str] = None,
    ):
        """Register a callback to be invoked with a KubeWatchEvent for every
        change to objects of the given api_version/kind
        """
        watch_key = self._watch_key(api_version, kind, namespace)
        log.debug("Registering watch for %s", watch_key)
        with self._lock:
            self._watches.setdefault(watch_key, []).append(callback)

    ## Implementation Details ##################################################

    @staticmethod
    def _watch_key(api_version: str, kind: str, namespace: Optional[str] = None):
        return ":".join([api_version or "", kind or "", namespace or ""])

    def _next_resource_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def _create(self, resource_definition: dict, call_watches: bool = True) -> bool:
        ref = ObjectRef.from_manifest(resource_definition)
        with self._lock:
            if ref in self._cluster_content:
                log.debug2("[%s] already exists", ref)
                return False

            manifest = copy.deepcopy(resource_definition)

            # Objects seeded at construction may carry a status, objects created
            # through the api never do
            if call_watches:
                manifest.pop("status", None)
            metadata = manifest.setdefault("metadata", {})
            metadata.setdefault("uid", str(uuid.uuid4()))
            metadata.setdefault("creationTimestamp", _k8s_timestamp())
            metadata["generation"] = 1
            metadata["resourceVersion"] = self._next_resource_version()
            self._cluster_content[ref] = manifest
            manifest = copy.deepcopy(manifest)

        if call_watches:
            self._call_watches(KubeEventType.ADDED, manifest)
        return True

    def _get_registered_watches(self, ref: ObjectRef) -> List[Tuple[str, Callable]]:
        keys = [self._watch_key(ref.api_version, ref.kind)]
        if ref.namespace:
            keys.append(self._watch_key(ref.api_version, ref.kind, ref.namespace))
        with self._lock:
            return [
                (key, callback)
                for key in keys
                for callback in self._watches.get(key, [])
            ]

    def _call_watches(self, event_type: KubeEventType, manifest: dict):
        ref = ObjectRef.from_manifest(manifest)
        for key, callback in self._get_registered_watches(ref):
            log.debug2("Calling registered watch [%s] for [%s]", callback, key)
            callback(KubeWatchEvent(type=event_type, resource=copy.deepcopy(manifest)))
