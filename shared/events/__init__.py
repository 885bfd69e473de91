"""Event envelope model shared by researchAgent (emitter) and researchViewer (client)."""

from .envelope import (
    BRIEF_WRITER_TEXT,
    CLARIFIER_QA,
    Classification,
    EventContent,
    EventEnvelope,
    EventStatus,
    HUMAN_TEXT,
    LEGACY_EVENT_TYPES,
    MergeRule,
    RESEARCHER_GROUP,
    Role,
    SUPERVISOR_GROUP,
    SUPERVISOR_TOOL_CALL,
    Subtype,
    UNKNOWN_CLASSIFICATION,
)

__all__ = [
    "BRIEF_WRITER_TEXT",
    "CLARIFIER_QA",
    "Classification",
    "EventContent",
    "EventEnvelope",
    "EventStatus",
    "HUMAN_TEXT",
    "LEGACY_EVENT_TYPES",
    "MergeRule",
    "RESEARCHER_GROUP",
    "Role",
    "SUPERVISOR_GROUP",
    "SUPERVISOR_TOOL_CALL",
    "Subtype",
    "UNKNOWN_CLASSIFICATION",
]
