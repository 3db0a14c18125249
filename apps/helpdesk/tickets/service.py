from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from apps.helpdesk.core.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from apps.helpdesk.identity.models import Actor, Category
from apps.helpdesk.identity.provider import ReferenceDataProvider
from apps.helpdesk.users.repository import UserRepository

from .access import (
    TicketAction,
    can_assign_ticket,
    can_read_ticket,
    can_write_ticket,
    ensure_permitted,
    visibility_scope,
)
from .audit import ChangeAuditor
from .models import Ticket, TicketHistoryEntry, TicketPriority
from .repository import TicketRepository
from .state import TicketStateMachine

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 255
MAX_DESCRIPTION_LENGTH = 2000
UPDATABLE_FIELDS = ("title", "description", "category_id", "priority")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def _clean_title(value: Any, *, empty_message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(empty_message)
    title = value.strip()
    if len(title) > MAX_TITLE_LENGTH:
        raise ValidationError(f"Title must be {MAX_TITLE_LENGTH} characters or fewer")
    return title


def _clean_description(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Description must be text")
    description = value.strip()
    if len(description) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description must be {MAX_DESCRIPTION_LENGTH} characters or fewer")
    return description or None


def _clean_priority(value: Any) -> TicketPriority:
    try:
        return TicketPriority(value)
    except ValueError:
        allowed = ", ".join(priority.value for priority in TicketPriority)
        raise ValidationError(f"Priority must be one of: {allowed}") from None


def _coerce_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class TicketService:
    """Ticket workflow engine.

    Every mutation runs access check, business validation, audit diff and
    persistence in that order, and returns the ticket as stored afterwards.
    Nothing is written unless every check passed.
    """

    def __init__(
        self,
        repository: TicketRepository,
        reference: ReferenceDataProvider,
        users: UserRepository,
        *,
        state_machine: TicketStateMachine | None = None,
        auditor: ChangeAuditor | None = None,
    ) -> None:
        self._repository = repository
        self._reference = reference
        self._users = users
        self._state_machine = state_machine or TicketStateMachine()
        self._auditor = auditor or ChangeAuditor()

    async def get_all(self, actor: Actor) -> Sequence[Ticket]:
        return await self._repository.list_tickets(visibility_scope(actor))

    async def get_by_id(self, ticket_id: int, actor: Actor) -> Ticket:
        ticket = await self._load(ticket_id)
        if not can_read_ticket(ticket.ownership, actor):
            raise ForbiddenError("You do not have access to this ticket")
        return ticket

    async def create(self, fields: Mapping[str, Any], actor: Actor) -> Ticket:
        title = _clean_title(fields.get("title"), empty_message="Title is required")
        description = _clean_description(fields.get("description"))

        raw_category = fields.get("category_id")
        if raw_category is None or raw_category == 0:
            raise ValidationError("Category is required")
        priority = _clean_priority(fields.get("priority"))

        category = await self._resolve_category(raw_category)
        if category is None or not category.is_active:
            raise ValidationError("Invalid or inactive category selected")

        ticket_id = await self._repository.create_ticket(
            title=title,
            description=description,
            priority=priority,
            status=self._state_machine.initial_state(),
            category_id=category.id,
            department_id=category.department_id,
            created_by=actor.id,
        )
        logger.info("Ticket %s created by user %s in department %s", ticket_id, actor.id, category.department_id)
        return await self._load(ticket_id)

    async def update(self, ticket_id: int, fields: Mapping[str, Any], actor: Actor) -> Ticket:
        ticket = await self._load(ticket_id)
        if not can_write_ticket(ticket.ownership, actor):
            raise ForbiddenError("You do not have permission to modify this ticket")
        if "priority" in fields:
            ensure_permitted(TicketAction.SET_PRIORITY, actor)

        for name in fields:
            if name not in UPDATABLE_FIELDS:
                raise ValidationError(f"Field '{name}' cannot be updated")

        values: dict[str, Any] = {}
        if "title" in fields:
            values["title"] = _clean_title(fields["title"], empty_message="Title cannot be empty")
        if "description" in fields:
            values["description"] = _clean_description(fields["description"])
        if "category_id" in fields:
            category = await self._resolve_category(fields["category_id"])
            if category is None:
                raise ValidationError("Invalid category selected")
            values["category_id"] = category.id
            values["department_id"] = category.department_id
        if "priority" in fields:
            values["priority"] = _clean_priority(fields["priority"])

        if not values:
            raise ValidationError("No fields to update")

        updated = await self._persist(ticket, values, actor)
        logger.info("Ticket %s updated by user %s", ticket_id, actor.id)
        return updated

    async def change_status(self, ticket_id: int, status: Any, actor: Actor) -> Ticket:
        ticket = await self._load(ticket_id)
        target = self._state_machine.transition(ticket, status, actor)
        updated = await self._persist(ticket, {"status": target}, actor)
        logger.info(
            "Ticket %s status changed from %s to %s by user %s",
            ticket_id,
            ticket.status.value,
            target.value,
            actor.id,
        )
        return updated

    async def assign(self, ticket_id: int, assigned_to: Any = MISSING, *, actor: Actor) -> Ticket:
        """Assign the ticket to ``assigned_to``; ``None`` unassigns it.

        Leaving ``assigned_to`` out entirely is a validation error.
        """

        ticket = await self._load(ticket_id)
        ensure_permitted(TicketAction.ASSIGN, actor)
        if not can_assign_ticket(ticket.ownership, actor):
            raise ForbiddenError("You can only assign tickets within your department")
        if assigned_to is MISSING:
            raise ValidationError("assigned_to is required (use null to unassign)")

        assignee_id: int | None = None
        if assigned_to is not None:
            assignee_id = _coerce_id(assigned_to)
            assignee = await self._users.get_user(assignee_id) if assignee_id is not None else None
            if assignee is None or not assignee.is_active:
                raise ValidationError("Assignee user not found or is inactive")

        updated = await self._persist(ticket, {"assigned_to": assignee_id}, actor)
        logger.info("Ticket %s assigned to %s by user %s", ticket_id, assignee_id, actor.id)
        return updated

    async def get_history(self, ticket_id: int, actor: Actor) -> Sequence[TicketHistoryEntry]:
        ticket = await self._load(ticket_id)
        if not can_read_ticket(ticket.ownership, actor):
            raise ForbiddenError("You do not have access to this ticket")
        return await self._repository.list_history(ticket_id)

    async def _load(self, ticket_id: int) -> Ticket:
        ticket = await self._repository.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket not found")
        return ticket

    async def _resolve_category(self, raw: Any) -> Category | None:
        category_id = _coerce_id(raw)
        if category_id is None:
            return None
        return await self._reference.get_category(category_id)

    async def _persist(self, ticket: Ticket, values: Mapping[str, Any], actor: Actor) -> Ticket:
        history = self._auditor.diff(ticket, values, actor_id=actor.id)
        applied = await self._repository.apply_changes(
            ticket.id,
            expected_version=ticket.version,
            values=values,
            history=history,
        )
        if not applied:
            logger.warning("Concurrent modification detected on ticket %s", ticket.id)
            raise ConflictError("Ticket was modified by another request; reload and try again")
        return await self._load(ticket.id)
