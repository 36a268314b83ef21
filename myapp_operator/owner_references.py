"""
This module holds the functionality used to link child objects back to the
MyApp that owns them so the store's garbage collector can clean them up
"""

# First Party
import alog

# Local
from .resource import MyAppResource

log = alog.use_channel("OWNRF")


def make_owner_reference(owner: MyAppResource) -> dict:
    """Make an owner reference for the given owner which marks it as the
    controller of the child

    Args:
        owner:  MyAppResource
            The object that owns the child. It must have been persisted, since
            the reference is keyed by its uid.

    Returns:
        owner_reference:  dict
            The ownerReferences entry to embed in the child's metadata
    """
    assert owner.uid is not None, f"Cannot reference {owner} without a uid"
    log.debug3("Making owner reference to %s", owner)
    return {
        "apiVersion": owner.api_version,
        "kind": owner.kind,
        "name": owner.name,
        "uid": owner.uid,
        "controller": True,
        "blockOwnerDeletion": True,
    }


def is_owned_by(child: dict, owner: MyAppResource) -> bool:
    """Check whether a child object carries a reference to the given owner"""
    return any(
        ref.get("uid") == owner.uid
        for ref in (child.get("metadata") or {}).get("ownerReferences", [])
    )
