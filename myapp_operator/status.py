"""
This module holds the common functionality used to represent the status of a
MyApp

The status subresource has the following schema:
{
    "state": "Pending" | "Running" | "Terminating" | "Failed",
    "observedGeneration": <last generation that was fully reconciled>,
    "conditions": [
        {
            "type": <condition type>,
            "status": "True" | "False",
            "reason": <CamelCase reason>,
            "message": <human readable message>,
            "lastTransitionTime": <when status last flipped>,
        }
    ],
    "lastUpdated": <time of the last status write>,
}

Conditions behave as a map keyed by type. Writing a condition replaces the
entry of the same type in place and appends new types at the end, so
conditions owned by other actors are preserved.
"""

# Standard
from enum import Enum
from typing import List, Optional
import copy

# Third Party
from deepdiff import DeepDiff

# First Party
import alog

# Local
from . import constants
from .utils import timestamp_now

log = alog.use_channel("STTUS")

## Public ######################################################################

# The keys holding timestamps which never count as a meaningful change
TRANSITION_TIME_KEY = "lastTransitionTime"
LAST_UPDATED_KEY = "lastUpdated"
TIMESTAMP_KEYS = [TRANSITION_TIME_KEY, LAST_UPDATED_KEY]


class ResourceState(Enum):
    """The top level state reported in status"""

    PENDING = "Pending"
    RUNNING = "Running"
    TERMINATING = "Terminating"
    FAILED = "Failed"


def make_condition(
    condition_type: str,
    status: bool,
    reason: str,
    message: str = "",
    timestamp: Optional[str] = None,
) -> dict:
    """Create a single condition record

    Args:
        condition_type:  str
            The type key of the condition
        status:  bool
            Whether the condition holds
        reason:  str
            CamelCase machine readable reason
        message:  str
            Plain-text message explaining the condition value
        timestamp:  Optional[str]
            Transition time to use. Defaults to now.

    Returns:
        condition:  dict
            The dict representation of the condition
    """
    return {
        "type": condition_type,
        "status": str(bool(status)),
        "reason": reason,
        "message": message,
        TRANSITION_TIME_KEY: timestamp or timestamp_now(),
    }


def merge_conditions(current_conditions: List[dict], *new_conditions: dict) -> List[dict]:
    """Merge new conditions into the current list with last-write-wins per type

    The position of existing types is kept and new types are appended. When a
    condition's status does not change, the previous transition time is
    carried over.

    Args:
        current_conditions:  List[dict]
            The conditions currently in status
        *new_conditions:  dict
            The conditions to write

    Returns:
        merged_conditions:  List[dict]
            A new list with the merged conditions
    """
    merged = {}
    for condition in current_conditions or []:
        merged[condition.get("type")] = copy.deepcopy(condition)

    for condition in new_conditions:
        condition = copy.deepcopy(condition)
        previous = merged.get(condition["type"])
        if previous is not None and previous.get("status") == condition.get("status"):
            log.debug4("Keeping transition time for [%s]", condition["type"])
            condition[TRANSITION_TIME_KEY] = previous.get(
                TRANSITION_TIME_KEY, condition[TRANSITION_TIME_KEY]
            )
        # Updating an existing key keeps its position in the dict
        merged[condition["type"]] = condition

    return list(merged.values())


def make_running_status(
    current_status: dict,
    generation: int,
    timestamp: Optional[str] = None,
) -> dict:
    """Create the status for a fully reconciled MyApp

    Args:
        current_status:  dict
            The status currently on the object. Keys owned by other actors are
            preserved.
        generation:  int
            The generation that was reconciled
        timestamp:  Optional[str]
            The time of the write. Defaults to now.

    Returns:
        status:  dict
            The complete updated status
    """
    timestamp = timestamp or timestamp_now()
    status = copy.deepcopy(current_status or {})
    status["state"] = ResourceState.RUNNING.value
    status["observedGeneration"] = generation
    status["conditions"] = merge_conditions(
        status.get("conditions", []),
        make_condition(
            constants.READY_CONDITION,
            True,
            constants.RECONCILE_SUCCESS_REASON,
            constants.RECONCILE_SUCCESS_MESSAGE,
            timestamp,
        ),
    )
    status[LAST_UPDATED_KEY] = timestamp
    return status


def make_failed_status(
    current_status: dict,
    message: str,
    timestamp: Optional[str] = None,
) -> dict:
    """Create the status for a MyApp whose spec failed local validation. The
    observedGeneration is left as it is since the generation was not processed.
    """
    timestamp = timestamp or timestamp_now()
    status = copy.deepcopy(current_status or {})
    status["state"] = ResourceState.FAILED.value
    status["conditions"] = merge_conditions(
        status.get("conditions", []),
        make_condition(
            constants.READY_CONDITION,
            False,
            constants.VALIDATION_FAILED_REASON,
            message,
            timestamp,
        ),
    )
    status[LAST_UPDATED_KEY] = timestamp
    return status


def status_changed(current_status: dict, new_status: dict) -> bool:
    """Compare two status objects to determine if there is a meaningful change
    between the current status and the proposed new status. A meaningful change
    is defined as any change besides a timestamp.

    Args:
        current_status:  dict
            The raw status dict from the current object
        new_status:  dict
            The proposed new status

    Returns:
        status_changed:  bool
            True if there is a meaningful change between the current status and
            the new status
    """
    # Status objects must be dicts
    if not isinstance(current_status, dict) or not isinstance(new_status, dict):
        return True

    # Perform a deep diff, excluding timestamps
    return bool(
        DeepDiff(
            current_status,
            new_status,
            exclude_obj_callback=lambda _, path: any(
                path.endswith(f"['{key}']") for key in TIMESTAMP_KEYS
            ),
        )
    )


def get_condition(type_name: str, current_status: dict) -> dict:
    """Extract the given condition type from a status object

    Args:
        type_name:  str
            The condition type to fetch
        current_status:  dict
            The dict representation of the status for a given MyApp

    Returns:
        condition:  dict
            The condition object if found, empty dict otherwise
    """
    cond = [
        cond
        for cond in (current_status or {}).get("conditions", [])
        if cond.get("type") == type_name
    ]
    if cond:
        assert len(cond) == 1, f"Found multiple condition entries for {type_name}"
        return cond[0]
    return {}
