"""
Helper object to give typed access to a MyApp object read from the store
"""

# Standard
from typing import Any, Dict, Optional

# Local
from . import constants
from .finalizers import FinalizerSet
from .status import ResourceState
from .store.base import ObjectRef
from .utils import nested_get


class MyAppResource:  # pylint: disable=too-many-public-methods
    """Read-only view over the manifest of a single MyApp. Every property is
    computed from the manifest so the view never goes stale relative to it.
    """

    def __init__(self, definition: dict):
        self.definition = definition
        self.metadata = definition.get("metadata") or {}
        self.spec = definition.get("spec") or {}
        assert self.name is not None, "No name found"

    ## Identity ################################################################

    @property
    def api_version(self) -> str:
        return self.definition.get("apiVersion", constants.API_VERSION)

    @property
    def kind(self) -> str:
        return self.definition.get("kind", constants.KIND)

    @property
    def name(self) -> Optional[str]:
        return self.metadata.get("name")

    @property
    def namespace(self) -> Optional[str]:
        return self.metadata.get("namespace")

    @property
    def uid(self) -> Optional[str]:
        return self.metadata.get("uid")

    @property
    def generation(self) -> Optional[int]:
        return self.metadata.get("generation")

    @property
    def resource_version(self) -> Optional[str]:
        return self.metadata.get("resourceVersion")

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(self.api_version, self.kind, self.namespace, self.name)

    ## Lifecycle ###############################################################

    @property
    def deletion_timestamp(self) -> Optional[str]:
        return self.metadata.get("deletionTimestamp")

    @property
    def is_terminating(self) -> bool:
        return self.deletion_timestamp is not None

    @property
    def finalizers(self) -> FinalizerSet:
        """A fresh set each call so callers can mutate it and patch it back"""
        return FinalizerSet(self.metadata.get("finalizers"))

    ## Spec ####################################################################

    @property
    def replicas(self) -> Any:
        return self.spec.get("replicas")

    @property
    def image(self) -> Any:
        return self.spec.get("image")

    @property
    def env_vars(self) -> Dict[str, str]:
        return self.spec.get("envVars") or {}

    @property
    def resources(self) -> Optional[Dict[str, str]]:
        return self.spec.get("resources")

    @property
    def scheduling(self) -> Dict[str, Any]:
        return self.spec.get("scheduling") or {}

    ## Status ##################################################################

    @property
    def status(self) -> dict:
        return self.definition.get("status") or {}

    @property
    def state(self) -> str:
        """The current state. No status is written while terminating, so that
        state is derived from the deletionTimestamp.
        """
        if self.is_terminating:
            return ResourceState.TERMINATING.value
        return self.status.get("state") or ResourceState.PENDING.value

    @property
    def observed_generation(self) -> Optional[int]:
        return nested_get(self.definition, "status.observedGeneration")

    @property
    def needs_reconciliation(self) -> bool:
        """An observedGeneration that lags the generation means the latest spec
        has not been processed yet
        """
        return self.observed_generation != self.generation

    ## Dunders #################################################################

    def get(self, *args, **kwargs):
        """Pass get calls to the objects definition"""
        return self.definition.get(*args, **kwargs)

    def __str__(self):
        return str(self.ref)

    def __repr__(self):
        return f"MyAppResource({self})"
