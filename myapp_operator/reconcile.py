"""
The ReconcileManager runs individual reconciles of MyApp objects. Each
reconcile re-reads the object from the store, classifies it and performs the
idempotent actions for that state. It never holds a lock across store calls;
concurrent writers are detected through resourceVersion conflicts.
"""

# Standard
from enum import Enum
from typing import Optional
import time

# First Party
import alog

# Local
from . import config, constants
from .admission import validate_spec
from .backoff import ErrorPolicyBase, FixedDelayErrorPolicy
from .children import build_children, child_refs
from .exceptions import FinalizerError, StoreError, assert_valid
from .log_format import generate_id, reconcile_context
from .metrics import RESULT_ERROR, RESULT_SUCCESS, MetricsSinkBase, NoOpMetrics
from .resource import MyAppResource
from .result import ReconciliationResult, RequeueParams
from .status import make_failed_status, make_running_status, status_changed
from .store.base import ObjectRef, ObjectStoreBase, Subresource
from .utils import nested_get

log = alog.use_channel("RECONCILE")

# Re-exported so callers only need this module for the scheduling directive
__all__ = [
    "ReconcileManager",
    "ReconcileState",
    "ReconciliationResult",
    "RequeueParams",
    "classify",
]


## Classification ##############################################################


class ReconcileState(Enum):
    """The control state of an object, derived fresh on every reconcile"""

    # Not terminating and the finalizer is missing
    NEEDS_FINALIZER = "NeedsFinalizer"

    # Not terminating and the finalizer is present
    ACTIVE = "Active"

    # Terminating and the finalizer is still present
    CLEANUP = "Cleanup"

    # Terminating and the finalizer is gone
    DONE = "Done"


def classify(
    resource: MyAppResource, finalizer: str = constants.FINALIZER
) -> ReconcileState:
    """Derive the control state from deletionTimestamp and finalizer membership"""
    has_finalizer = finalizer in resource.finalizers
    if resource.is_terminating:
        return ReconcileState.CLEANUP if has_finalizer else ReconcileState.DONE
    return ReconcileState.ACTIVE if has_finalizer else ReconcileState.NEEDS_FINALIZER


## ReconcileManager ############################################################


class ReconcileManager:
    """This class runs reconciles of MyApp objects against an object store"""

    def __init__(
        self,
        store: ObjectStoreBase,
        metrics: Optional[MetricsSinkBase] = None,
        error_policy: Optional[ErrorPolicyBase] = None,
        controller_name: Optional[str] = None,
        finalizer: str = constants.FINALIZER,
    ):
        """
        Args:
            store:  ObjectStoreBase
                The store holding the MyApp objects and their children
            metrics:  Optional[MetricsSinkBase]
                Sink for reconcile metrics. Defaults to a no-op sink.
            error_policy:  Optional[ErrorPolicyBase]
                Policy mapping failures to requeues. Defaults to a
                FixedDelayErrorPolicy reporting to the same sink.
            controller_name:  Optional[str]
                Identity written into the children's managed-by label.
                Defaults to the configured controller_name.
            finalizer:  str
                The finalizer token owned by this controller
        """
        self.store = store
        self.metrics = metrics or NoOpMetrics()
        self.error_policy = error_policy or FixedDelayErrorPolicy(self.metrics)
        self.controller_name = controller_name or config.controller_name
        self.finalizer = finalizer

    ## Reconciliation ##########################################################

    @alog.logged_function(log.debug)
    @alog.timed_function(log.debug, "Reconcile finished in: ")
    def reconcile(self, ref: ObjectRef) -> ReconciliationResult:
        """This is the main entrypoint for reconciliations. The current state
        of the object is always read from the store, so stale or repeated
        events are harmless.

        Args:
            ref:  ObjectRef
                The identity of the MyApp to reconcile

        Returns:
            reconcile_result:  ReconciliationResult
                The scheduling directive for the object

        Raises:
            MyAppError: the reconcile failed and should be retried
        """
        current = self.store.get(ref)
        if current is None:
            log.debug("%s no longer exists", ref)
            return ReconciliationResult.await_next_event()

        resource = MyAppResource(current)
        state = classify(resource, self.finalizer)
        log.debug2("%s is in state %s", resource, state.value)

        if state == ReconcileState.NEEDS_FINALIZER:
            return self._add_finalizer(resource)
        if state == ReconcileState.ACTIVE:
            return self._reconcile_active(resource)
        if state == ReconcileState.CLEANUP:
            return self._cleanup(resource)
        log.debug("%s is terminating without our finalizer", resource)
        return ReconciliationResult.await_next_event()

    def safe_reconcile(self, ref: ObjectRef) -> ReconciliationResult:
        """
        This function calls out to reconcile but catches any errors thrown and
        hands them to the error policy. It guarantees a result, which the work
        queue relies on, and records the reconcile metrics.

        Args:
            ref:  ObjectRef
                The identity of the MyApp to reconcile

        Returns:
            reconcile_result:  ReconciliationResult
                The result of the reconcile
        """
        namespace = ref.namespace or ""
        identity = {
            "apiVersion": ref.api_version,
            "kind": ref.kind,
            "metadata": {"name": ref.name, "namespace": ref.namespace},
        }
        result_label = RESULT_SUCCESS
        self.metrics.reconcile_started(namespace)
        start = time.time()
        with reconcile_context(identity, generate_id()):
            try:
                return self.reconcile(ref)

            # Capture all errors. Every failure is retryable.
            except Exception as exc:  # pylint: disable=broad-except
                log.debug("Handling caught error in reconcile: %s", exc, exc_info=True)
                result_label = RESULT_ERROR
                return self.error_policy.handle(ref, exc)

            finally:
                self.metrics.reconcile_finished(
                    namespace, ref.name, result_label, time.time() - start
                )

    ## State Handlers ##########################################################

    def _add_finalizer(self, resource: MyAppResource) -> ReconciliationResult:
        """Insert the finalizer and come back shortly to run the active pass"""
        finalizers = resource.finalizers
        finalizers.add(self.finalizer)
        log.info("Adding finalizer to %s", resource)
        try:
            updated = self.store.merge_patch(
                resource.ref,
                {
                    "metadata": {
                        "finalizers": finalizers.to_list(),
                        "resourceVersion": resource.resource_version,
                    }
                },
            )
        except StoreError as err:
            raise FinalizerError(
                f"Failed to add finalizer to {resource}: {err}"
            ) from err

        if updated is None:
            log.debug("%s was removed before the finalizer was added", resource)
            return ReconciliationResult.await_next_event()
        return ReconciliationResult.requeue_after(config.finalizer_requeue_seconds)

    def _reconcile_active(self, resource: MyAppResource) -> ReconciliationResult:
        """Validate the spec, create missing children and report Running"""
        reason = validate_spec(resource.spec)
        if reason is not None:
            log.warning("Spec of %s is invalid: %s", resource, reason)
            self._write_failed_status(resource, reason)
        assert_valid(reason is None, reason)

        for child in build_children(resource, self.controller_name):
            if self.store.create(child):
                log.info(
                    "Created %s/%s for %s",
                    child["kind"],
                    child["metadata"]["name"],
                    resource,
                )
            else:
                log.debug2(
                    "%s/%s already exists", child["kind"], child["metadata"]["name"]
                )
        self._observe_managed_resources(resource)

        new_status = make_running_status(resource.status, resource.generation)
        if status_changed(resource.status, new_status):
            log.debug("Updating status of %s", resource)
            updated = self.store.merge_patch(
                resource.ref,
                {
                    "metadata": {"resourceVersion": resource.resource_version},
                    "status": new_status,
                },
                subresource=Subresource.STATUS,
            )
            if updated is None:
                log.debug("%s was removed before its status was written", resource)
                return ReconciliationResult.await_next_event()
        else:
            log.debug2("Status of %s is unchanged", resource)

        return ReconciliationResult.requeue_after(config.resync_interval_seconds)

    def _cleanup(self, resource: MyAppResource) -> ReconciliationResult:
        """Delete every child, then release the object by removing the
        finalizer
        """
        for ref in child_refs(resource):
            try:
                deleted = self.store.delete(ref)
            except StoreError as err:
                raise FinalizerError(
                    f"Failed to delete {ref} while finalizing {resource}: {err}"
                ) from err
            if deleted:
                log.info("Deleted %s for %s", ref, resource)
        self._observe_managed_resources(resource)

        finalizers = resource.finalizers
        finalizers.remove(self.finalizer)
        log.info("Removing finalizer from %s", resource)
        try:
            self.store.merge_patch(
                resource.ref,
                {
                    "metadata": {
                        "finalizers": finalizers.to_list(),
                        "resourceVersion": resource.resource_version,
                    }
                },
            )
        except StoreError as err:
            raise FinalizerError(
                f"Failed to remove finalizer from {resource}: {err}"
            ) from err
        return ReconciliationResult.await_next_event()

    ## Implementation Details ##################################################

    def _write_failed_status(self, resource: MyAppResource, reason: str):
        """Best-effort status write for a spec that failed local validation.
        A failure here is logged since the ValidationError is what gets
        reported.
        """
        new_status = make_failed_status(resource.status, reason)
        if not status_changed(resource.status, new_status):
            log.debug2("Failure of %s is already recorded", resource)
            return
        try:
            self.store.merge_patch(
                resource.ref,
                {
                    "metadata": {"resourceVersion": resource.resource_version},
                    "status": new_status,
                },
                subresource=Subresource.STATUS,
            )
        except StoreError as err:
            log.warning("Failed to record validation failure on %s: %s", resource, err)

    def _observe_managed_resources(self, resource: MyAppResource):
        """Set the managed resource gauge from the children that exist in the
        object's namespace. Children of every MyApp there are counted and the
        ones already being deleted are not.
        """
        namespace = resource.namespace or ""
        for ref in child_refs(resource):
            try:
                children = self.store.list_objects(
                    ref.api_version, ref.kind, resource.namespace
                )
            except StoreError as err:
                log.warning("Failed to count %s in %s: %s", ref.kind, namespace, err)
                continue
            count = sum(
                1
                for child in children
                if (nested_get(child, "metadata.labels") or {}).get(
                    constants.MANAGED_BY_LABEL
                )
                == self.controller_name
                and not nested_get(child, "metadata.deletionTimestamp")
            )
            log.debug3("Found %d managed %s in %s", count, ref.kind, namespace)
            self.metrics.managed_resources(ref.kind, namespace, count)
