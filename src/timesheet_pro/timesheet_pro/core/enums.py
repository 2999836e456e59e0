from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Role of a user inside one organization."""

    MEMBER = "member"
    ADMIN = "admin"


class TimesheetStatus(str, Enum):
    """Workflow status persisted on a daily timesheet.

    Informational only: whether a user is clocked in is always derived
    from the entries, never from this field.
    """

    OPEN = "open"
    CLOSED = "closed"
    ABSENT = "absent"
    APPROVED = "approved"


class EntryType(str, Enum):
    """Direction of a single clock event."""

    IN = "in"
    OUT = "out"
