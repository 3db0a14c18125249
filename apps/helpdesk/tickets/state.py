from __future__ import annotations

from typing import Any, Mapping, Sequence

from apps.helpdesk.core.errors import ForbiddenError, ValidationError
from apps.helpdesk.identity.models import Actor

from .access import TicketAction, can_write_ticket, ensure_permitted
from .models import Ticket, TicketStatus


class TicketStateMachine:
    """Validate ticket status transitions."""

    _DEFAULT_TRANSITIONS: Mapping[TicketStatus, Sequence[TicketStatus]] = {
        TicketStatus.OPEN: (TicketStatus.IN_PROGRESS, TicketStatus.CLOSED),
        TicketStatus.IN_PROGRESS: (TicketStatus.ON_HOLD, TicketStatus.CLOSED),
        TicketStatus.ON_HOLD: (TicketStatus.IN_PROGRESS,),
        TicketStatus.CLOSED: (),
    }

    def __init__(self, transitions: Mapping[TicketStatus, Sequence[TicketStatus]] | None = None) -> None:
        self._transitions = transitions or self._DEFAULT_TRANSITIONS

    @staticmethod
    def initial_state() -> TicketStatus:
        return TicketStatus.OPEN

    @staticmethod
    def parse_status(value: Any) -> TicketStatus:
        try:
            return TicketStatus(value)
        except ValueError:
            allowed = ", ".join(status.value for status in TicketStatus)
            raise ValidationError(f"Status must be one of: {allowed}") from None

    def allowed_targets(self, current: TicketStatus) -> Sequence[TicketStatus]:
        return tuple(self._transitions.get(current, ()))

    def can_transition(self, current: TicketStatus, target: TicketStatus) -> bool:
        return target in self.allowed_targets(current)

    def assert_transition(self, current: TicketStatus, target: TicketStatus) -> None:
        if not self.can_transition(current, target):
            allowed = ", ".join(status.value for status in self.allowed_targets(current)) or "none"
            raise ValidationError(
                f"Cannot transition from '{current.value}' to '{target.value}'. Allowed: {allowed}"
            )

    def transition(self, ticket: Ticket, requested: Any, actor: Actor) -> TicketStatus:
        """Check that ``actor`` may move ``ticket`` to ``requested`` and return the target.

        The caller is responsible for auditing and persisting the change.
        """

        target = self.parse_status(requested)
        if not can_write_ticket(ticket.ownership, actor):
            raise ForbiddenError("You do not have permission to change this ticket status")
        if target is TicketStatus.CLOSED:
            ensure_permitted(TicketAction.CLOSE, actor)
        self.assert_transition(ticket.status, target)
        return target
