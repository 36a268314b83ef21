"""
The CustomResourceDefinition for MyApp. The openAPI schema mirrors the
admission rules so the api server rejects malformed objects before they reach
the webhook.
"""

# Standard
from typing import Optional

# Third Party
import yaml

# First Party
import alog

# Local
from . import constants
from .admission import MAX_REPLICAS, MIN_REPLICAS

log = alog.use_channel("CRD")

# Same shape as the tag rule of the admission pipeline, written as a pattern
IMAGE_PATTERN = r"^[^\s]+:[^:/\s]+$"


def _spec_schema() -> dict:
    return {
        "type": "object",
        "required": ["replicas", "image"],
        "properties": {
            "replicas": {
                "type": "integer",
                "minimum": MIN_REPLICAS,
                "maximum": MAX_REPLICAS,
            },
            "image": {"type": "string", "pattern": IMAGE_PATTERN},
            "envVars": {
                "type": "object",
                "additionalProperties": {"type": "string"},
            },
            "resources": {
                "type": "object",
                "required": ["cpu", "memory"],
                "properties": {
                    "cpu": {"type": "string"},
                    "memory": {"type": "string"},
                },
            },
            "scheduling": {
                "type": "object",
                "x-kubernetes-preserve-unknown-fields": True,
            },
        },
    }


def _status_schema() -> dict:
    return {
        "type": "object",
        "properties": {
            "state": {
                "type": "string",
                "enum": ["Pending", "Running", "Terminating", "Failed"],
            },
            "observedGeneration": {"type": "integer", "format": "int64"},
            "conditions": {
                "type": "array",
                "items": {
                    "type": "object",
                    "required": ["type", "status"],
                    "properties": {
                        "type": {"type": "string"},
                        "status": {"type": "string"},
                        "reason": {"type": "string"},
                        "message": {"type": "string"},
                        "lastTransitionTime": {"type": "string"},
                    },
                },
            },
            "lastUpdated": {"type": "string"},
        },
    }


def make_crd() -> dict:
    """Build the CustomResourceDefinition manifest for MyApp"""
    return {
        "apiVersion": "apiextensions.k8s.io/v1",
        "kind": "CustomResourceDefinition",
        "metadata": {"name": f"{constants.PLURAL}.{constants.GROUP}"},
        "spec": {
            "group": constants.GROUP,
            "scope": "Namespaced",
            "names": {
                "kind": constants.KIND,
                "plural": constants.PLURAL,
                "singular": constants.SINGULAR,
                "shortNames": list(constants.SHORT_NAMES),
            },
            "versions": [
                {
                    "name": constants.VERSION,
                    "served": True,
                    "storage": True,
                    "subresources": {"status": {}},
                    "schema": {
                        "openAPIV3Schema": {
                            "type": "object",
                            "properties": {
                                "spec": _spec_schema(),
                                "status": _status_schema(),
                            },
                        }
                    },
                    "additionalPrinterColumns": [
                        {
                            "name": "State",
                            "type": "string",
                            "jsonPath": ".status.state",
                        },
                        {
                            "name": "Age",
                            "type": "date",
                            "jsonPath": ".metadata.creationTimestamp",
                        },
                    ],
                }
            ],
        },
    }


def render_crd(output: Optional[str] = None) -> str:
    """Render the CRD as YAML, writing it to the given path if one is given

    Args:
        output:  Optional[str]
            File to write to

    Returns:
        crd_yaml:  str
            The rendered document
    """
    crd_yaml = yaml.safe_dump(make_crd(), sort_keys=False)
    if output:
        log.info("Writing CRD to %s", output)
        with open(output, "w", encoding="utf-8") as handle:
            handle.write(crd_yaml)
    return crd_yaml
