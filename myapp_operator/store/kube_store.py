"""
The KubeObjectStore uses the openshift DynamicClient to read and write objects
in a real cluster
"""

# Standard
from typing import Iterator, List, Optional

# Third Party
from kubernetes import client
from kubernetes.watch import Watch
from openshift.dynamic import DynamicClient
from openshift.dynamic.exceptions import (
    ConflictError,
    DynamicApiError,
    NotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from openshift.dynamic.resource import Resource
import kubernetes
import urllib3

# First Party
import alog

# Local
from ..exceptions import StoreConflictError, StoreError, assert_store
from .base import ObjectRef, ObjectStoreBase, Subresource
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("KSTOR")

# See this document for value reasonings
# https://github.com/kubernetes-client/python/blob/master/examples/watch/timeout-settings.md
SERVER_WATCH_TIMEOUT = 3600
CLIENT_WATCH_TIMEOUT = 30

MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"


class KubeObjectStore(ObjectStoreBase):
    """This ObjectStore uses the openshift DynamicClient to interact with the
    cluster
    """

    def __init__(self, dynamic_client: Optional[DynamicClient] = None):
        """
        Args:
            dynamic_client:  Optional[DynamicClient]
                A preconfigured client. If not given, one is created lazily from
                the in-cluster or local kube config.
        """
        self._client = dynamic_client

    @property
    def client(self) -> DynamicClient:
        """Lazy property access to the client"""
        if self._client is None:
            log.debug("Initializing openshift client")
            self._client = self._setup_client()
        return self._client

    ## Interface ###############################################################

    def get(self, ref: ObjectRef) -> Optional[dict]:
        resource_handle = self._get_resource_handle(ref.api_version, ref.kind)
        try:
            resource = resource_handle.get(name=ref.name, namespace=ref.namespace)
        except NotFoundError:
            log.debug2("No object [%s] found", ref)
            return None
        except (DynamicApiError, urllib3.exceptions.HTTPError) as err:
            raise StoreError(f"Failed to get {ref}: {err}") from err
        return resource.to_dict()

    def create(self, resource_definition: dict) -> bool:
        ref = ObjectRef.from_manifest(resource_definition)
        resource_handle = self._get_resource_handle(ref.api_version, ref.kind)
        log.debug2("Creating [%s]", ref)
        try:
            resource_handle.create(body=resource_definition, namespace=ref.namespace)
        except ConflictError:
            log.debug2("[%s] already exists", ref)
            return False
        except (DynamicApiError, urllib3.exceptions.HTTPError) as err:
            raise StoreError(f"Failed to create {ref}: {err}") from err
        return True

    def merge_patch(
        self,
        ref: ObjectRef,
        patch: dict,
        subresource: Optional[str] = None,
    ) -> Optional[dict]:
        assert_store(
            subresource in [None, Subresource.STATUS],
            f"Unknown subresource {subresource}",
        )
        resource_handle = self._get_resource_handle(ref.api_version, ref.kind)
        if subresource == Subresource.STATUS:
            resource_handle = resource_handle.status

        log.debug2("Patching [%s/%s]", ref, subresource)
        try:
            resource = resource_handle.patch(
                body=patch,
                name=ref.name,
                namespace=ref.namespace,
                content_type=MERGE_PATCH_CONTENT_TYPE,
            )
        except NotFoundError:
            log.debug2("No object [%s] found to patch", ref)
            return None
        except ConflictError as err:
            raise StoreConflictError(f"Conflict patching {ref}: {err}") from err
        except (DynamicApiError, urllib3.exceptions.HTTPError) as err:
            raise StoreError(f"Failed to patch {ref}: {err}") from err
        return resource.to_dict()

    def delete(self, ref: ObjectRef) -> bool:
        resource_handle = self._get_resource_handle(ref.api_version, ref.kind)
        log.debug2("Deleting [%s]", ref)
        try:
            resource_handle.delete(name=ref.name, namespace=ref.namespace)
        except NotFoundError:
            log.debug2("[%s] already absent", ref)
            return False
        except (DynamicApiError, urllib3.exceptions.HTTPError) as err:
            raise StoreError(f"Failed to delete {ref}: {err}") from err
        return True

    def list_objects(
        self,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
    ) -> List[dict]:
        resource_handle = self._get_resource_handle(api_version, kind)
        try:
            resource_list = resource_handle.get(namespace=namespace)
        except (DynamicApiError, urllib3.exceptions.HTTPError) as err:
            raise StoreError(f"Failed to list {api_version}.{kind}: {err}") from err
        return resource_list.to_dict().get("items", [])

    def watch_objects(
        self,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
        resource_version: Optional[str] = None,
        watch_manager: Optional[Watch] = None,
    ) -> Iterator[KubeWatchEvent]:
        """Stream watch events for every object of the given kind. The watch is
        restarted transparently when the server closes it.
        """
        watch_manager = watch_manager if watch_manager else Watch()
        resource_handle = self._get_resource_handle(api_version, kind)

        while True:
            try:
                for event_obj in watch_manager.stream(
                    resource_handle.get,
                    resource_version=resource_version,
                    namespace=namespace,
                    serialize=False,
                    timeout_seconds=SERVER_WATCH_TIMEOUT,
                    _request_timeout=CLIENT_WATCH_TIMEOUT,
                ):
                    event = KubeWatchEvent(
                        KubeEventType(event_obj["type"]), event_obj["object"]
                    )
                    resource_version = event.resource.get("metadata", {}).get(
                        "resourceVersion", resource_version
                    )
                    yield event
            except client.exceptions.ApiException as exception:
                if exception.status == 410:
                    log.debug2("Resource age expired, restarting watch %s", kind)
                    resource_version = None
                else:
                    log.info("Unknown ApiException received, re-raising")
                    raise StoreError(f"Watch of {kind} failed: {exception}") from exception
            except urllib3.exceptions.ReadTimeoutError:
                log.debug4("Watch Socket closed, restarting watch %s", kind)
            except urllib3.exceptions.ProtocolError:
                log.debug2("Invalid Chunk from server, restarting watch %s", kind)

            # This is hidden attribute so probably not best to check
            if watch_manager._stop:  # pylint: disable=protected-access
                log.debug("Internal watch stopped for %s/%s", api_version, kind)
                return

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client() -> DynamicClient:
        """Create a DynamicClient that will work based on where the operator is
        running
        """
        # Try in-cluster config
        try:
            log.debug2("Running with in-cluster config")
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)
            return DynamicClient(kubernetes.client.ApiClient(kube_config))

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(self, api_version: str, kind: str) -> Resource:
        """Get the openshift resource handle for a specified kind and api_version"""
        try:
            return self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError) as err:
            raise StoreError(
                f"No unique resource type found for {api_version}.{kind}"
            ) from err
