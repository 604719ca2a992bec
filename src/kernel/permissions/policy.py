"""
Authorization policy: (role, resource kind, action, ownership) -> decision.

Pure and table-driven. Every fact (the caller's role, whether the caller
authored the resource) is passed in; nothing here touches the database.
Anything the table does not cover is denied.
"""

from enum import Enum
from typing import Dict, FrozenSet, Optional, Set, Tuple, Union

from src.kernel.errors import ValidationError
from src.kernel.models.project import ProjectRole


class ResourceKind(str, Enum):
    """Kinds of resource an action can target."""
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"
    FILE = "file"
    GROUP = "group"
    MEMBERSHIP = "membership"


class PolicyAction(str, Enum):
    """Actions subject to authorization."""
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    MANAGE_MEMBERS = "manage_members"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


class Capability(str, Enum):
    """Columns of the role matrix."""
    READ = "read"
    CREATE_CHILD = "create_child"
    UPDATE_OWN = "update_own"
    UPDATE_OTHERS = "update_others"
    DELETE_OWN = "delete_own"
    DELETE_OTHERS = "delete_others"
    MANAGE_MEMBERS = "manage_members"
    DELETE_PROJECT = "delete_project"


# Role matrix. Each role's set contains the next lower role's set.
ROLE_CAPABILITIES: Dict[ProjectRole, FrozenSet[Capability]] = {
    ProjectRole.VIEWER: frozenset({
        Capability.READ,
    }),
    ProjectRole.MEMBER: frozenset({
        Capability.READ,
        Capability.CREATE_CHILD,
        Capability.UPDATE_OWN,
        Capability.DELETE_OWN,
    }),
    ProjectRole.ADMIN: frozenset({
        Capability.READ,
        Capability.CREATE_CHILD,
        Capability.UPDATE_OWN,
        Capability.UPDATE_OTHERS,
        Capability.DELETE_OWN,
        Capability.DELETE_OTHERS,
        Capability.MANAGE_MEMBERS,
    }),
    ProjectRole.OWNER: frozenset(Capability),
}

# Things that live inside a project and are created by its members
_CHILD_KINDS: Set[ResourceKind] = {
    ResourceKind.TASK,
    ResourceKind.COMMENT,
    ResourceKind.FILE,
    ResourceKind.GROUP,
}

_EDITABLE_KINDS: Set[ResourceKind] = _CHILD_KINDS | {ResourceKind.PROJECT}

_MEMBER_MANAGED_KINDS: Set[ResourceKind] = {
    ResourceKind.PROJECT,
    ResourceKind.GROUP,
    ResourceKind.MEMBERSHIP,
}

# Only the author may do these, whatever their role
_AUTHOR_ONLY: Set[Tuple[ResourceKind, PolicyAction]] = {
    (ResourceKind.COMMENT, PolicyAction.UPDATE),
}


def parse_role(value: Union[str, ProjectRole]) -> ProjectRole:
    """Turn a stored or submitted role name into a ProjectRole."""
    if isinstance(value, ProjectRole):
        return value
    try:
        return ProjectRole(value)
    except ValueError:
        raise ValidationError(f"Invalid role: {value!r}")


def required_capability(
    kind: ResourceKind,
    action: PolicyAction,
    is_owner: bool,
) -> Optional[Capability]:
    """Matrix column governing (kind, action), or None if nothing allows it."""
    if action == PolicyAction.READ:
        return Capability.READ

    if action == PolicyAction.CREATE and kind in _CHILD_KINDS:
        return Capability.CREATE_CHILD

    if action == PolicyAction.UPDATE and kind in _EDITABLE_KINDS:
        return Capability.UPDATE_OWN if is_owner else Capability.UPDATE_OTHERS

    if action == PolicyAction.DELETE:
        if kind == ResourceKind.PROJECT:
            return Capability.DELETE_PROJECT
        if kind in _CHILD_KINDS:
            return Capability.DELETE_OWN if is_owner else Capability.DELETE_OTHERS

    if action == PolicyAction.MANAGE_MEMBERS and kind in _MEMBER_MANAGED_KINDS:
        return Capability.MANAGE_MEMBERS

    return None


def authorize(
    role: Optional[Union[str, ProjectRole]],
    kind: ResourceKind,
    action: PolicyAction,
    is_owner: bool = False,
) -> Decision:
    """
    Decide whether a member with ``role`` may perform ``action`` on a
    resource of ``kind``.

    Args:
        role: The caller's project role, or None when they have no membership
        kind: Kind of the target resource
        action: Requested action
        is_owner: Whether the caller authored/uploaded/created the resource

    Returns:
        Decision.ALLOW or Decision.DENY

    Raises:
        ValidationError: If ``role`` is not a known role name
    """
    if role is None:
        return Decision.DENY
    role = parse_role(role)

    if (kind, action) in _AUTHOR_ONLY and not is_owner:
        return Decision.DENY

    capability = required_capability(kind, action, is_owner)
    if capability is None:
        return Decision.DENY

    if capability in ROLE_CAPABILITIES[role]:
        return Decision.ALLOW
    return Decision.DENY


def can(
    role: Optional[Union[str, ProjectRole]],
    kind: ResourceKind,
    action: PolicyAction,
    is_owner: bool = False,
) -> bool:
    """Boolean shorthand for ``authorize``."""
    return authorize(role, kind, action, is_owner).allowed
