"""
Identity service: read-only user lookups.

Accounts are created and authenticated elsewhere; the core only needs to
resolve the caller and find invitees by email.
"""

import uuid
from typing import Optional

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.models.user import User


def normalize_email(email: str) -> str:
    return email.lower().strip()


class IdentityService:
    """Looks up users by id or email."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get an active user by ID."""
        result = await self.session.execute(
            select(User).where(
                and_(
                    User.id == user_id,
                    User.is_active == True,  # noqa: E712
                )
            )
        )
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get an active user by email (case-insensitive)."""
        result = await self.session.execute(
            select(User).where(
                and_(
                    User.email == normalize_email(email),
                    User.is_active == True,  # noqa: E712
                )
            )
        )
        return result.scalar_one_or_none()
