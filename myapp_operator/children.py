"""
The child builder maps a MyApp onto the objects it owns. Everything here is a
pure function of the MyApp so that the children can be recomputed on every
reconcile and looked up by their derived identity.
"""

# Standard
from typing import Dict, List, Optional

# First Party
import alog

# Local
from . import config, constants
from .owner_references import make_owner_reference
from .resource import MyAppResource
from .store.base import ObjectRef

log = alog.use_channel("CHILD")

# Scheduling keys passed through to the pod spec, keyed by their name in the
# MyApp spec
SCHEDULING_FIELDS = {
    "nodeSelector": "nodeSelector",
    "priorityClass": "priorityClassName",
    "schedulerName": "schedulerName",
}

## Identity ####################################################################


def child_name(parent_name: str, suffix: str) -> str:
    """Deterministic name of a child derived from its parent"""
    return f"{parent_name}-{suffix}"


def child_labels(resource: MyAppResource, controller_name: Optional[str] = None) -> Dict[str, str]:
    """The label set carried by every child and used as its pod selector"""
    return {
        constants.APP_LABEL: resource.name,
        constants.MANAGED_BY_LABEL: controller_name or config.controller_name,
    }


def child_refs(resource: MyAppResource) -> List[ObjectRef]:
    """The identities of every child of the given MyApp, in creation order"""
    return [
        ObjectRef(
            constants.DEPLOYMENT_API_VERSION,
            constants.DEPLOYMENT_KIND,
            resource.namespace,
            child_name(resource.name, constants.DEPLOYMENT_SUFFIX),
        ),
        ObjectRef(
            constants.SERVICE_API_VERSION,
            constants.SERVICE_KIND,
            resource.namespace,
            child_name(resource.name, constants.SERVICE_SUFFIX),
        ),
    ]


## Builders ####################################################################


def build_deployment(resource: MyAppResource, controller_name: Optional[str] = None) -> dict:
    """Build the Deployment which runs the MyApp workload

    Args:
        resource:  MyAppResource
            The owning MyApp
        controller_name:  Optional[str]
            Value of the managed-by label. Defaults to the configured
            controller name.

    Returns:
        deployment:  dict
            The full Deployment manifest
    """
    labels = child_labels(resource, controller_name)
    container = {
        "name": constants.CONTAINER_NAME,
        "image": resource.image,
        "ports": [
            {
                "name": constants.CONTAINER_PORT_NAME,
                "containerPort": constants.SERVICE_PORT,
            }
        ],
    }
    if resource.env_vars:
        container["env"] = [
            {"name": key, "value": value}
            for key, value in sorted(resource.env_vars.items())
        ]
    if resource.resources:
        container["resources"] = {"requests": dict(resource.resources)}

    pod_spec = {"containers": [container]}
    for spec_key, pod_key in SCHEDULING_FIELDS.items():
        if resource.scheduling.get(spec_key) is not None:
            pod_spec[pod_key] = resource.scheduling[spec_key]

    return {
        "apiVersion": constants.DEPLOYMENT_API_VERSION,
        "kind": constants.DEPLOYMENT_KIND,
        "metadata": _child_metadata(resource, constants.DEPLOYMENT_SUFFIX, labels),
        "spec": {
            "replicas": resource.replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": pod_spec,
            },
        },
    }


def build_service(resource: MyAppResource, controller_name: Optional[str] = None) -> dict:
    """Build the Service which exposes the MyApp workload on a fixed port"""
    labels = child_labels(resource, controller_name)
    return {
        "apiVersion": constants.SERVICE_API_VERSION,
        "kind": constants.SERVICE_KIND,
        "metadata": _child_metadata(resource, constants.SERVICE_SUFFIX, labels),
        "spec": {
            "selector": dict(labels),
            "ports": [
                {
                    "name": constants.CONTAINER_PORT_NAME,
                    "protocol": "TCP",
                    "port": constants.SERVICE_PORT,
                    "targetPort": constants.SERVICE_PORT,
                }
            ],
        },
    }


def build_children(resource: MyAppResource, controller_name: Optional[str] = None) -> List[dict]:
    """Build every child of the MyApp in the same order as child_refs"""
    log.debug2("Building children for %s", resource)
    return [
        build_deployment(resource, controller_name),
        build_service(resource, controller_name),
    ]


## Implementation Details ######################################################


def _child_metadata(resource: MyAppResource, suffix: str, labels: Dict[str, str]) -> dict:
    return {
        "name": child_name(resource.name, suffix),
        "namespace": resource.namespace,
        "labels": dict(labels),
        "ownerReferences": [make_owner_reference(resource)],
    }
