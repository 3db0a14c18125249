"""Pure access predicates for tickets.

Read and write access currently share one rule set but are exposed as two
predicates so that either can change without touching the other's callers.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from apps.helpdesk.core.errors import ForbiddenError
from apps.helpdesk.identity.models import Actor, RoleName

from .models import TicketOwnership, TicketScope


class TicketAction(str, Enum):
    """Operations carrying role restrictions on top of write access."""

    SET_PRIORITY = "set_priority"
    CLOSE = "close"
    ASSIGN = "assign"


ROLE_RESTRICTIONS: Mapping[TicketAction, tuple[frozenset[str], str]] = {
    TicketAction.SET_PRIORITY: (frozenset({RoleName.WORKER.value}), "Workers cannot change ticket priority"),
    TicketAction.CLOSE: (frozenset({RoleName.WORKER.value}), "Workers cannot close tickets"),
    TicketAction.ASSIGN: (frozenset({RoleName.WORKER.value}), "Workers cannot assign tickets"),
}


def _role_value(actor: Actor) -> str:
    role = actor.role
    return role.value if isinstance(role, Enum) else str(role)


def _participates(ticket: TicketOwnership, actor: Actor) -> bool:
    if actor.is_admin:
        return True
    if actor.is_manager:
        return ticket.department_id == actor.department_id
    if actor.is_worker:
        return actor.id == ticket.created_by or actor.id == ticket.assigned_to
    return False


def can_read_ticket(ticket: TicketOwnership, actor: Actor) -> bool:
    return _participates(ticket, actor)


def can_write_ticket(ticket: TicketOwnership, actor: Actor) -> bool:
    return _participates(ticket, actor)


def can_assign_ticket(ticket: TicketOwnership, actor: Actor) -> bool:
    """Assignment ignores the creator/assignee rule and requires the department."""

    if actor.is_admin:
        return True
    if actor.is_manager:
        return ticket.department_id == actor.department_id
    return False


def is_restricted(action: TicketAction, actor: Actor) -> bool:
    denied_roles, _ = ROLE_RESTRICTIONS[action]
    return _role_value(actor) in denied_roles


def ensure_permitted(action: TicketAction, actor: Actor) -> None:
    if is_restricted(action, actor):
        _, message = ROLE_RESTRICTIONS[action]
        raise ForbiddenError(message)


def visibility_scope(actor: Actor) -> TicketScope:
    """Translate the read rule into a repository-side filter."""

    if actor.is_admin:
        return TicketScope.everything()
    if actor.is_manager:
        return TicketScope.department(actor.department_id)
    if actor.is_worker:
        return TicketScope.participant(actor.id)
    return TicketScope()
