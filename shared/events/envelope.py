"""Event envelope wire model shared by the research backend and the viewer.

An envelope describes one state transition of one logical event. The backend
emits many envelopes per event id (pending, progress, terminal); the viewer
folds them back into a single materialized event.

Wire format (JSON):

    {
        "id": "tool-3f2a...",
        "eventType": "/supervisor/tool_call",
        "status": "running",
        "parentId": "supervisor-9c1e...",      # optional
        "seq": 1,                              # optional, per-id emission order
        "secondaryKey": "call_abc",            # optional, tool call id
        "content": {"contentType": "text", "data": ..., "aggregateRule": "concat"}
    }
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Literal, NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Who emitted the event."""

    CLARIFIER = "clarifier"
    BRIEF_WRITER = "brief_writer"
    SUPERVISOR = "supervisor"
    RESEARCHER = "researcher"
    TOOL = "tool"
    HUMAN = "human"
    UNKNOWN = "unknown"


class Subtype(str, Enum):
    """What kind of content the event carries."""

    QA = "qa"
    GROUP = "group"
    TOOL_CALL = "tool_call"
    TEXT = "text"
    UNKNOWN = "unknown"


class EventStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    FINISHED = "finished"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (EventStatus.FINISHED, EventStatus.ERROR)

    @property
    def rank(self) -> int:
        """Position in the lifecycle; both terminal states share the last rank."""
        return _STATUS_RANK[self]


_STATUS_RANK = {
    EventStatus.PENDING: 0,
    EventStatus.RUNNING: 1,
    EventStatus.FINISHED: 2,
    EventStatus.ERROR: 2,
}


class MergeRule(str, Enum):
    REPLACE = "replace"
    CONCAT = "concat"


class Classification(NamedTuple):
    """Hierarchical event tag: role x subtype."""

    role: Role
    subtype: Subtype

    @property
    def event_type(self) -> str:
        return f"/{self.role.value}/{self.subtype.value}"

    @property
    def is_known(self) -> bool:
        return self.role is not Role.UNKNOWN and self.subtype is not Subtype.UNKNOWN

    @classmethod
    def parse(cls, event_type: str) -> "Classification":
        """Parse a wire event type. Never raises; unknown tags map to UNKNOWN."""
        if event_type in LEGACY_EVENT_TYPES:
            return LEGACY_EVENT_TYPES[event_type]

        parts = [part for part in (event_type or "").split("/") if part]
        if len(parts) != 2:
            return UNKNOWN_CLASSIFICATION

        role = _enum_or_unknown(Role, parts[0], Role.UNKNOWN)
        subtype = _enum_or_unknown(Subtype, parts[1], Subtype.UNKNOWN)
        return cls(role, subtype)


def _enum_or_unknown(enum_cls, value: str, unknown):
    try:
        return enum_cls(value)
    except ValueError:
        return unknown


UNKNOWN_CLASSIFICATION = Classification(Role.UNKNOWN, Subtype.UNKNOWN)

# Event types used by earlier clients of the stream.
LEGACY_EVENT_TYPES: Dict[str, Classification] = {
    "/ai/clarify": Classification(Role.CLARIFIER, Subtype.QA),
    "/ai/brief": Classification(Role.BRIEF_WRITER, Subtype.TEXT),
    "/human/chat": Classification(Role.HUMAN, Subtype.TEXT),
}

HUMAN_TEXT = Classification(Role.HUMAN, Subtype.TEXT)
CLARIFIER_QA = Classification(Role.CLARIFIER, Subtype.QA)
BRIEF_WRITER_TEXT = Classification(Role.BRIEF_WRITER, Subtype.TEXT)
SUPERVISOR_GROUP = Classification(Role.SUPERVISOR, Subtype.GROUP)
SUPERVISOR_TOOL_CALL = Classification(Role.SUPERVISOR, Subtype.TOOL_CALL)
RESEARCHER_GROUP = Classification(Role.RESEARCHER, Subtype.GROUP)


class EventContent(BaseModel):
    """Envelope payload plus the rule used to merge it into earlier payloads."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    content_type: Literal["text"] = Field(default="text", alias="contentType")
    data: Any = None
    merge_rule: MergeRule = Field(default=MergeRule.REPLACE, alias="aggregateRule")


class EventEnvelope(BaseModel):
    """One emission of one logical event."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(min_length=1)
    event_type: str = Field(alias="eventType")
    status: EventStatus = EventStatus.PENDING
    parent_id: Optional[str] = Field(default=None, alias="parentId")
    seq: Optional[int] = Field(default=None, ge=0)
    secondary_key: Optional[str] = Field(default=None, alias="secondaryKey")
    content: EventContent = Field(default_factory=EventContent)

    @property
    def classification(self) -> Classification:
        return Classification.parse(self.event_type)

    @property
    def merge_rule(self) -> MergeRule:
        return self.content.merge_rule

    @property
    def data(self) -> Any:
        return self.content.data

    def to_wire(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        # content.data may legitimately be null (group boundaries)
        payload["content"]["data"] = self.content.data
        return payload

    @classmethod
    def from_wire(cls, payload: Dict[str, Any]) -> "EventEnvelope":
        return cls.model_validate(payload)


__all__ = [
    "Role",
    "Subtype",
    "EventStatus",
    "MergeRule",
    "Classification",
    "UNKNOWN_CLASSIFICATION",
    "LEGACY_EVENT_TYPES",
    "HUMAN_TEXT",
    "CLARIFIER_QA",
    "BRIEF_WRITER_TEXT",
    "SUPERVISOR_GROUP",
    "SUPERVISOR_TOOL_CALL",
    "RESEARCHER_GROUP",
    "EventContent",
    "EventEnvelope",
]
