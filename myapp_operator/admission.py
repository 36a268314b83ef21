"""
The admission pipeline validates and mutates MyApp objects before they are
stored. Both halves are stateless functions over a single object so they can
be shared by the webhook server and by the reconciliation engine.
"""

# Standard
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

# Third Party
from jsonpointer import JsonPointer
import jsonpatch

# First Party
import alog

# Local
from . import config, constants

log = alog.use_channel("ADMIT")

# Tag value that is never accepted since it does not pin an image
LATEST_TAG = "latest"

MIN_REPLICAS = 1
MAX_REPLICAS = 100

## Validate ####################################################################


@dataclass
class AdmissionVerdict:
    """The outcome of validating a single object"""

    allowed: bool
    reason: Optional[str] = None


def image_tag(image: str) -> Optional[str]:
    """Get the tag of an image reference. The tag is the text after the last
    ':' provided it holds no '/', which would make the ':' a registry port.
    """
    name, sep, tag = image.rpartition(":")
    if not sep or not name or not tag or "/" in tag:
        return None
    return tag


def validate_spec(spec: Dict[str, Any]) -> Optional[str]:
    """Run the validation rules over a MyApp spec

    Args:
        spec:  Dict[str, Any]
            The spec section of the object

    Returns:
        reason:  Optional[str]
            The reason for the first failed rule or None if the spec is valid
    """
    if spec is None:
        spec = {}
    if not isinstance(spec, dict):
        return "spec must be an object"

    replicas = spec.get("replicas")
    if not isinstance(replicas, int) or isinstance(replicas, bool):
        return "replicas must be an integer"
    if not MIN_REPLICAS <= replicas <= MAX_REPLICAS:
        return f"replicas must be between {MIN_REPLICAS} and {MAX_REPLICAS}"

    image = spec.get("image")
    if not isinstance(image, str) or not image:
        return "image cannot be empty"
    tag = image_tag(image)
    if tag is None:
        return "image must be of the form name:tag"
    if tag == LATEST_TAG:
        return f"Image tag '{LATEST_TAG}' is not allowed"

    env_vars = spec.get("envVars")
    if env_vars is not None and not (
        isinstance(env_vars, dict)
        and all(
            isinstance(key, str) and isinstance(val, str)
            for key, val in env_vars.items()
        )
    ):
        return "envVars must map strings to strings"

    resources = spec.get("resources")
    if resources is not None and not (
        isinstance(resources, dict)
        and isinstance(resources.get("cpu"), str)
        and isinstance(resources.get("memory"), str)
    ):
        return "resources must specify cpu and memory"

    return None


def shape_error(obj: dict) -> Optional[str]:
    """Check that the metadata, labels and spec sections, when present, are
    objects. Neither half of the pipeline can work on anything else.
    """
    for section in ("metadata", "spec"):
        value = obj.get(section)
        if value is not None and not isinstance(value, dict):
            return f"{section} must be an object"
    labels = (obj.get("metadata") or {}).get("labels")
    if labels is not None and not isinstance(labels, dict):
        return "metadata.labels must be an object"
    return None


def validate(obj: dict) -> AdmissionVerdict:
    """Validate a full MyApp object"""
    reason = shape_error(obj) or validate_spec(obj.get("spec"))
    if reason is not None:
        log.debug("Rejecting %s: %s", _describe(obj), reason)
        return AdmissionVerdict(allowed=False, reason=reason)
    log.debug2("Accepting %s", _describe(obj))
    return AdmissionVerdict(allowed=True)


## Mutate ######################################################################


def mutate(
    obj: dict,
    controller_name: Optional[str] = None,
    default_resources: Optional[Dict[str, str]] = None,
) -> List[dict]:
    """Compute the JSON patch which fills in defaults on a MyApp. The patch
    only holds add operations and never drops a user set value other than the
    managed-by label which is always forced.

    Args:
        obj:  dict
            The object under review
        controller_name:  Optional[str]
            Value for the managed-by label. Defaults to the configured
            controller name.
        default_resources:  Optional[Dict[str, str]]
            Resources to fill in when none are given. Defaults to the
            configured default_resources.

    Returns:
        patch:  List[dict]
            The ordered RFC 6902 operations

    Raises:
        ValueError: the object is not shaped like a MyApp so no patch applies
    """
    reason = shape_error(obj)
    if reason is not None:
        raise ValueError(reason)
    controller_name = controller_name or config.controller_name
    if default_resources is None:
        default_resources = dict(config.default_resources)

    operations = []
    metadata = obj.get("metadata") or {}
    if metadata.get("labels") is None:
        operations.append(
            {"op": "add", "path": _pointer("metadata", "labels"), "value": {}}
        )
    operations.append(
        {
            "op": "add",
            "path": _pointer(
                "metadata", "labels", constants.ADMISSION_MANAGED_BY_LABEL
            ),
            "value": controller_name,
        }
    )
    if (obj.get("spec") or {}).get("resources") is None:
        operations.append(
            {
                "op": "add",
                "path": _pointer("spec", "resources"),
                "value": {
                    "cpu": default_resources["cpu"],
                    "memory": default_resources["memory"],
                },
            }
        )

    log.debug2("Mutation for %s: %s", _describe(obj), operations)
    return jsonpatch.JsonPatch(operations).patch


def serialize_patch(operations: List[dict]) -> str:
    """Render a list of patch operations as a JSON document"""
    return jsonpatch.JsonPatch(operations).to_string()


def apply_mutation(obj: dict, **kwargs) -> dict:
    """Apply the mutation of the given object to a copy of it"""
    return jsonpatch.apply_patch(obj, mutate(obj, **kwargs), in_place=False)


## Implementation Details ######################################################


def _pointer(*parts: str) -> str:
    return JsonPointer.from_parts(parts).path


def _describe(obj: dict) -> str:
    metadata = obj.get("metadata")
    if not isinstance(metadata, dict):
        metadata = {}
    return f"{metadata.get('namespace')}/{metadata.get('name')}"
