"""
Access guard: membership resolution + policy in one call.

Every outcome other than ALLOW becomes a ForbiddenError with the same
generic message, so non-members cannot tell an unknown resource from one
they may not see. The real reason goes to the access log.
"""

import uuid
from typing import Awaitable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.errors import ForbiddenError, NotFoundError
from src.kernel.models.project import ProjectRole
from src.kernel.permissions.membership import MembershipResolver
from src.kernel.permissions.policy import PolicyAction, ResourceKind, authorize
from src.logging_config import get_access_logger

logger = get_access_logger()

# Denial reasons, as logged
UNKNOWN_RESOURCE = "unknown_resource"
NO_MEMBERSHIP = "no_membership"
POLICY_DENIED = "policy_denied"


class AccessGuard:
    """
    Usage:
        guard = AccessGuard(session)
        role = await guard.require(
            user_id, project_id, ResourceKind.COMMENT, PolicyAction.DELETE,
            is_owner=comment.user_id == user_id,
        )
    """

    def __init__(self, session: AsyncSession):
        self.resolver = MembershipResolver(session)

    def deny(
        self,
        reason: str,
        user_id: uuid.UUID,
        kind: ResourceKind,
        resource_id: Optional[uuid.UUID] = None,
        action: Optional[PolicyAction] = None,
        role: Optional[ProjectRole] = None,
    ) -> ForbiddenError:
        """Log a denial and build the error to raise."""
        logger.info(
            "Access denied",
            extra={
                "reason": reason,
                "user_id": str(user_id),
                "resource_kind": kind.value,
                "resource_id": str(resource_id) if resource_id else None,
                "action": action.value if action else None,
                "role": role.value if role else None,
            },
        )
        return ForbiddenError()

    async def locate(
        self,
        lookup: Awaitable[uuid.UUID],
        user_id: uuid.UUID,
        kind: ResourceKind,
        resource_id: uuid.UUID,
    ) -> uuid.UUID:
        """Await a resolver lookup of a project id; unknown resources become Forbidden."""
        try:
            return await lookup
        except NotFoundError:
            raise self.deny(UNKNOWN_RESOURCE, user_id, kind, resource_id)

    async def require(
        self,
        user_id: uuid.UUID,
        project_id: uuid.UUID,
        kind: ResourceKind,
        action: PolicyAction,
        is_owner: bool = False,
        resource_id: Optional[uuid.UUID] = None,
    ) -> ProjectRole:
        """
        Require that the user may perform ``action`` in the project.

        Returns:
            The caller's role (for follow-up checks by the service)

        Raises:
            ForbiddenError: Unknown project, no membership, or policy denial
        """
        target_id = resource_id or project_id
        try:
            role = await self.resolver.resolve_role(user_id, project_id)
        except NotFoundError:
            raise self.deny(UNKNOWN_RESOURCE, user_id, kind, target_id, action)

        if role is None:
            raise self.deny(NO_MEMBERSHIP, user_id, kind, target_id, action)

        if not authorize(role, kind, action, is_owner).allowed:
            raise self.deny(POLICY_DENIED, user_id, kind, target_id, action, role)

        logger.debug(
            "Access granted",
            extra={
                "user_id": str(user_id),
                "resource_kind": kind.value,
                "resource_id": str(target_id),
                "action": action.value,
                "role": role.value,
            },
        )
        return role

    async def require_member(self, user_id: uuid.UUID, project_id: uuid.UUID) -> ProjectRole:
        """Any membership (viewer included) grants read access."""
        return await self.require(user_id, project_id, ResourceKind.PROJECT, PolicyAction.READ)
