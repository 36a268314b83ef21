"""
Common utilities shared across components in the operator
"""

# Standard
from datetime import datetime, timezone
from typing import Any
import copy

# First Party
import alog

# Local
from . import constants

log = alog.use_channel("OPUTL")

# Sentinel for missing dict values
__MISSING__ = "__MISSING__"

## Dicts #######################################################################


def apply_merge_patch(base: dict, patch: dict) -> dict:
    """Apply a JSON merge patch (RFC 7386) to a copy of base

    The semantics are those of a deep merge, except that a None value in the
    patch removes the key from the target and that lists are always replaced
    wholesale rather than merged.

    Args:
        base:  dict
            The document being patched. It is not modified.
        patch:  dict
            The merge patch

    Returns:
        patched:  dict
            A new document with the patch applied
    """
    result = copy.deepcopy(base) if isinstance(base, dict) else {}
    for key, value in patch.items():
        if value is None:
            result.pop(key, None)
        elif isinstance(value, dict):
            result[key] = apply_merge_patch(result.get(key, {}), value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def nested_get(dct: dict, key: str, dflt=None) -> Any:
    """Helper to get values from a dict using 'foo.bar' key notation

    Args:
        dct:  dict
            The dict to read from
        key:  str
            Key that may contain '.' notation indicating dict nesting

    Returns:
        val:  Any
            Whatever is found at the given key or dflt if the key is not found.
            This includes missing intermediate dicts.
    """
    parts = key.split(constants.NESTED_DICT_DELIM)
    for i, part in enumerate(parts[:-1]):
        dct = dct.get(part, __MISSING__)
        if dct is __MISSING__ or dct is None:
            return dflt
        if not isinstance(dct, dict):
            raise TypeError(
                f"Intermediate key {constants.NESTED_DICT_DELIM.join(parts[:i + 1])} is not a dict"
            )
    return dct.get(parts[-1], dflt)


## Time ########################################################################


def timestamp_now() -> str:
    """RFC 3339 timestamp for the current time in UTC"""
    return datetime.now(timezone.utc).isoformat()
