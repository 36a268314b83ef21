"""
The object store is the abstraction in charge of reading and writing objects in
the cluster. It is the only shared mutable resource of the controller.
"""

# Local
from .base import ObjectRef, ObjectStoreBase, Subresource
from .dry_run_store import DryRunObjectStore
from .kube_event import KubeEventType, KubeWatchEvent
from .kube_store import KubeObjectStore
