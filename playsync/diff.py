"""
Change detection between requested and current play state.

Both helpers compare by value so that an update carrying the state the
stores already hold issues no writes.
"""

from typing import Any, Optional

from playsync.errors import ValidationError
from playsync.models import AccessControl


def _first(principals: list[str]) -> Optional[str]:
    return principals[0] if principals else None


def comparable_perms(acl_payload: dict[str, Any]) -> dict[str, Optional[str]]:
    """
    Reduce an ACL payload to the first read and write principal.

    Only the leading principal takes part in the comparison; the ACL endpoint
    lists the caller's primary role first.

    Raises:
        ValidationError: If the payload is not a mapping or names an
            unknown sharing scope
    """
    if not isinstance(acl_payload, dict):
        raise ValidationError(f"ACL payload must be a mapping, got {type(acl_payload).__name__}")
    try:
        acl = AccessControl.from_payload(acl_payload)
    except (ValueError, TypeError, AttributeError) as e:
        raise ValidationError(f"Invalid ACL payload: {e}") from e
    return {"read": _first(acl.read), "write": _first(acl.write)}


def perms_changed(acl_payload: Optional[dict[str, Any]], current: Optional[AccessControl]) -> bool:
    """
    Whether applying acl_payload would change the current ACL.

    A missing payload never requests a change. A missing current ACL (the
    definition is not in the cache) always differs from a payload.
    """
    if not acl_payload:
        return False
    requested = comparable_perms(acl_payload)
    if current is None:
        return True
    return requested != {"read": _first(current.read), "write": _first(current.write)}


def property_changes(requested: dict[str, Any], current: dict[str, Any]) -> dict[str, Any]:
    """
    Properties in requested whose value differs from current.

    The name is never part of a property edit; renames go through the
    copy-then-delete path.

    Args:
        requested: Properties the caller wants the definition to have
        current: Properties currently cached for the definition

    Returns:
        Subset of requested (without "name") that needs writing; empty when
        nothing changed
    """
    changes = {}
    for key, value in requested.items():
        if key == "name":
            continue
        if key not in current or current[key] != value:
            changes[key] = value
    return changes

