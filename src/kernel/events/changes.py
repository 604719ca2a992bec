"""
Typed change payloads for activity entries.

Each entry's ``changes`` column holds exactly one of these, serialized with
its ``kind`` tag, which always equals the entry's action.
"""

import uuid
from typing import Annotated, Any, Dict, Iterable, Literal, Mapping, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from src.kernel.models.activity_log import ActivityAction


class BaseChange(BaseModel):
    """Common base for all change payloads."""

    model_config = ConfigDict(frozen=True)

    kind: str

    @property
    def action(self) -> ActivityAction:
        return ActivityAction(self.kind)

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict for storage."""
        return self.model_dump(mode="json")


class Created(BaseChange):
    """Full snapshot of a new entity."""
    kind: Literal["created"] = "created"
    snapshot: Dict[str, Any] = Field(..., min_length=1)


class Updated(BaseChange):
    """Field-level diff; ``before`` and ``after`` carry the same keys."""
    kind: Literal["updated"] = "updated"
    before: Dict[str, Any] = Field(..., min_length=1)
    after: Dict[str, Any] = Field(..., min_length=1)


class Deleted(BaseChange):
    """Last snapshot of a removed entity."""
    kind: Literal["deleted"] = "deleted"
    snapshot: Dict[str, Any] = Field(..., min_length=1)


class Commented(BaseChange):
    kind: Literal["commented"] = "commented"
    task_id: uuid.UUID
    excerpt: str


class Uploaded(BaseChange):
    kind: Literal["uploaded"] = "uploaded"
    task_id: uuid.UUID
    file_name: str
    file_size: int
    mime_type: str


class MemberAdded(BaseChange):
    kind: Literal["member_added"] = "member_added"
    user_id: uuid.UUID
    role: str


class MemberRemoved(BaseChange):
    kind: Literal["member_removed"] = "member_removed"
    user_id: uuid.UUID
    role: str


class RoleChanged(BaseChange):
    kind: Literal["role_changed"] = "role_changed"
    user_id: uuid.UUID
    before: str
    after: str


Change = Annotated[
    Union[Created, Updated, Deleted, Commented, Uploaded, MemberAdded, MemberRemoved, RoleChanged],
    Field(discriminator="kind"),
]

_change_adapter: TypeAdapter[Change] = TypeAdapter(Change)

EXCERPT_LENGTH = 100


def parse_change(payload: Mapping[str, Any]) -> BaseChange:
    """Rebuild the typed change from a stored payload."""
    return _change_adapter.validate_python(dict(payload))


def snapshot(entity: Any, fields: Iterable[str]) -> Dict[str, Any]:
    """Pick ``fields`` off an ORM object."""
    return {name: getattr(entity, name) for name in fields}


def diff(entity: Any, updates: Mapping[str, Any]) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """
    Compare proposed values with the entity's current ones.

    Returns:
        (before, after) restricted to the fields whose value actually changes
    """
    before: Dict[str, Any] = {}
    after: Dict[str, Any] = {}
    for name, value in updates.items():
        current = getattr(entity, name)
        if current != value:
            before[name] = current
            after[name] = value
    return before, after


def excerpt(text: str, length: int = EXCERPT_LENGTH) -> str:
    return text if len(text) <= length else text[:length]
