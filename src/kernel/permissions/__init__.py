"""
Permission Core - project membership resolution and role-based policy.
"""

from src.kernel.permissions.policy import (
    Capability,
    Decision,
    PolicyAction,
    ResourceKind,
    ROLE_CAPABILITIES,
    authorize,
    can,
    parse_role,
)
from src.kernel.permissions.membership import MembershipResolver
from src.kernel.permissions.guard import AccessGuard

__all__ = [
    "Capability",
    "Decision",
    "PolicyAction",
    "ResourceKind",
    "ROLE_CAPABILITIES",
    "authorize",
    "can",
    "parse_role",
    "MembershipResolver",
    "AccessGuard",
]
