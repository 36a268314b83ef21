"""
This defines the base class for all object store types along with the identity
used to address objects in them
"""

# Standard
from dataclasses import dataclass
from typing import List, Optional
import abc


class Subresource:
    """Names of the subresources that can be written independently"""

    STATUS = "status"


@dataclass(frozen=True)
class ObjectRef:
    """The identity of a single object in the store"""

    api_version: str
    kind: str
    namespace: Optional[str]
    name: str

    @classmethod
    def from_manifest(cls, manifest: dict) -> "ObjectRef":
        metadata = manifest.get("metadata") or {}
        return cls(
            api_version=manifest.get("apiVersion"),
            kind=manifest.get("kind"),
            namespace=metadata.get("namespace"),
            name=metadata.get("name"),
        )

    def __str__(self):
        return f"{self.namespace}/{self.api_version}.{self.kind}/{self.name}"


class ObjectStoreBase(abc.ABC):
    """
    Base class for object stores. Every method either returns one of its
    documented outcomes or raises a StoreError. Races with other writers
    ("already exists", "already absent") are outcomes, not errors.
    """

    @abc.abstractmethod
    def get(self, ref: ObjectRef) -> Optional[dict]:
        """Fetch the current state of an object

        Args:
            ref:  ObjectRef
                The identity of the object to fetch

        Returns:
            current_state:  Optional[dict]
                The dict representation of the object or None if not present
        """

    @abc.abstractmethod
    def create(self, resource_definition: dict) -> bool:
        """Create an object if it does not exist yet

        Args:
            resource_definition:  dict
                The full manifest of the object to create

        Returns:
            created:  bool
                True if the object was created, False if an object with the
                same identity already existed
        """

    @abc.abstractmethod
    def merge_patch(
        self,
        ref: ObjectRef,
        patch: dict,
        subresource: Optional[str] = None,
    ) -> Optional[dict]:
        """Apply a JSON merge patch to an object. When the patch carries
        metadata.resourceVersion, the write only succeeds if that version is
        still current.

        Args:
            ref:  ObjectRef
                The identity of the object to patch
            patch:  dict
                The merge patch body
            subresource:  Optional[str]
                If given, the patch is confined to that subresource (e.g.
                "status") and never touches the rest of the object

        Returns:
            updated:  Optional[dict]
                The updated object or None if the object does not exist

        Raises:
            StoreConflictError: the resourceVersion in the patch is stale
        """

    @abc.abstractmethod
    def delete(self, ref: ObjectRef) -> bool:
        """Request deletion of an object

        Args:
            ref:  ObjectRef
                The identity of the object to delete

        Returns:
            deleted:  bool
                True if a delete was issued, False if the object was already
                absent
        """

    @abc.abstractmethod
    def list_objects(
        self,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
    ) -> List[dict]:
        """List all objects of a kind, optionally scoped to a namespace"""
