from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class TicketStatus(str, Enum):
    """States of the ticket lifecycle; ``closed`` is terminal."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    CLOSED = "closed"


class TicketPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(slots=True, frozen=True)
class CategoryRef:
    id: int
    name: str


@dataclass(slots=True, frozen=True)
class DepartmentRef:
    id: int
    name: str


@dataclass(slots=True, frozen=True)
class UserRef:
    """Nested user reference embedded in ticket and history records."""

    id: int
    first_name: str
    last_name: str
    email: str | None = None


@dataclass(slots=True, frozen=True)
class TicketOwnership:
    """The facts access decisions about a ticket are based on."""

    department_id: int
    created_by: int
    assigned_to: int | None


@dataclass(slots=True)
class Ticket:
    """Ticket record with its references resolved."""

    id: int
    title: str
    description: str | None
    priority: TicketPriority
    status: TicketStatus
    category: CategoryRef
    department: DepartmentRef
    created_by: UserRef
    assigned_to: UserRef | None
    version: int
    created_at: datetime
    updated_at: datetime

    @property
    def ownership(self) -> TicketOwnership:
        return TicketOwnership(
            department_id=self.department.id,
            created_by=self.created_by.id,
            assigned_to=self.assigned_to.id if self.assigned_to is not None else None,
        )


@dataclass(slots=True, frozen=True)
class TicketHistoryEntry:
    """Immutable audit row describing one changed field."""

    id: int
    ticket_id: int
    field_changed: str
    old_value: str | None
    new_value: str | None
    changed_by: UserRef
    created_at: datetime


@dataclass(slots=True, frozen=True)
class FieldChange:
    """A history row that has been computed but not yet persisted."""

    ticket_id: int
    changed_by: int
    field_changed: str
    old_value: str | None
    new_value: str | None


@dataclass(slots=True, frozen=True)
class TicketScope:
    """Visibility filter handed to the repository when listing tickets.

    The default scope matches nothing; use the constructors below.
    """

    all_tickets: bool = False
    department_id: int | None = None
    user_id: int | None = None

    @classmethod
    def everything(cls) -> "TicketScope":
        return cls(all_tickets=True)

    @classmethod
    def department(cls, department_id: int | None) -> "TicketScope":
        return cls(department_id=department_id)

    @classmethod
    def participant(cls, user_id: int) -> "TicketScope":
        """Tickets created by or assigned to ``user_id``."""

        return cls(user_id=user_id)
