from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

from .models import FieldChange, Ticket


@dataclass(slots=True, frozen=True)
class AuditableField:
    """Maps a logical field name to its history label and current value."""

    name: str
    label: str
    read: Callable[[Ticket], Any]


# Order matters: history rows of one mutation are written in this order.
AUDITABLE_FIELDS: Sequence[AuditableField] = (
    AuditableField("title", "title", lambda ticket: ticket.title),
    AuditableField("description", "description", lambda ticket: ticket.description),
    AuditableField("priority", "priority", lambda ticket: ticket.priority),
    AuditableField("status", "status", lambda ticket: ticket.status),
    AuditableField("category_id", "category_id", lambda ticket: ticket.category.id),
    AuditableField(
        "assigned_to",
        "assigned_to",
        lambda ticket: ticket.assigned_to.id if ticket.assigned_to is not None else None,
    ),
)


def stringify(value: Any) -> str | None:
    """Normalise a field value into its textual history form."""

    if value is None:
        return None
    if isinstance(value, Enum):
        value = value.value
    text = str(value)
    return text if text != "" else None


class ChangeAuditor:
    """Compute field-level history rows for a proposed ticket update."""

    def __init__(self, fields: Sequence[AuditableField] = AUDITABLE_FIELDS) -> None:
        self._fields = tuple(fields)

    def diff(self, ticket: Ticket, updates: Mapping[str, Any], *, actor_id: int) -> list[FieldChange]:
        changes: list[FieldChange] = []
        for field in self._fields:
            if field.name not in updates:
                continue
            old_value = stringify(field.read(ticket))
            new_value = stringify(updates[field.name])
            if old_value == new_value:
                continue
            changes.append(
                FieldChange(
                    ticket_id=ticket.id,
                    changed_by=actor_id,
                    field_changed=field.label,
                    old_value=old_value,
                    new_value=new_value,
                )
            )
        return changes
