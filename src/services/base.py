"""
Shared plumbing for domain services.

A service holds only its injected dependencies (session factory and clock).
Each operation opens its own unit of work, and everything it does (the
access check, the mutation and the activity entry) commits or rolls back
together.
"""

import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, AsyncIterator, Callable, Collection, Dict, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.database import SessionFactory, unit_of_work
from src.kernel.errors import ValidationError
from src.kernel.events.activity_recorder import ActivityRecorder
from src.kernel.models.base import utcnow
from src.kernel.permissions.guard import AccessGuard


@dataclass
class Unit:
    """Per-operation helpers bound to one session."""
    session: AsyncSession
    guard: AccessGuard
    recorder: ActivityRecorder
    now: datetime


class DomainService:
    """Base class for services that run resolve -> authorize -> mutate + record."""

    def __init__(
        self,
        session_factory: SessionFactory,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.session_factory = session_factory
        self.clock = clock

    @asynccontextmanager
    async def unit(self) -> AsyncIterator[Unit]:
        async with unit_of_work(self.session_factory) as session:
            yield Unit(
                session=session,
                guard=AccessGuard(session),
                recorder=ActivityRecorder(session, self.clock),
                now=self.clock(),
            )


def check_updates(updates: Mapping[str, Any], allowed: Collection[str]) -> Dict[str, Any]:
    """Reject empty updates and fields that cannot be changed."""
    if not updates:
        raise ValidationError("No fields to update")
    unknown = sorted(set(updates) - set(allowed))
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}")
    return dict(updates)


def check_date_range(start: Optional[date], end: Optional[date]) -> None:
    if start is not None and end is not None and start > end:
        raise ValidationError("Start date cannot be after end date")


def require_text(value: Optional[str], field: str, max_length: int) -> str:
    """Strip and length-check a required text field."""
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def enum_value(enum_cls, value: Any, field: str) -> str:
    """Validate ``value`` against ``enum_cls`` and return the stored string."""
    try:
        return enum_cls(value).value
    except ValueError:
        raise ValidationError(f"Invalid {field}: {value!r}")


def same_user(a: Optional[uuid.UUID], b: uuid.UUID) -> bool:
    return a is not None and a == b
