from datetime import datetime, timezone

import pytest

from apps.helpdesk.core.errors import ForbiddenError, ValidationError
from apps.helpdesk.identity.models import Actor
from apps.helpdesk.tickets.models import (
    CategoryRef,
    DepartmentRef,
    Ticket,
    TicketPriority,
    TicketStatus,
    UserRef,
)
from apps.helpdesk.tickets.state import TicketStateMachine

EDGES = {
    TicketStatus.OPEN: {TicketStatus.IN_PROGRESS, TicketStatus.CLOSED},
    TicketStatus.IN_PROGRESS: {TicketStatus.ON_HOLD, TicketStatus.CLOSED},
    TicketStatus.ON_HOLD: {TicketStatus.IN_PROGRESS},
    TicketStatus.CLOSED: set(),
}


def _ticket(status: TicketStatus, *, created_by: int = 10) -> Ticket:
    now = datetime.now(timezone.utc)
    return Ticket(
        id=1,
        title="Printer down",
        description=None,
        priority=TicketPriority.HIGH,
        status=status,
        category=CategoryRef(id=7, name="Hardware"),
        department=DepartmentRef(id=3, name="Facilities"),
        created_by=UserRef(id=created_by, first_name="Wendy", last_name="Worker"),
        assigned_to=None,
        version=1,
        created_at=now,
        updated_at=now,
    )


@pytest.mark.parametrize("current", list(TicketStatus))
@pytest.mark.parametrize("target", list(TicketStatus))
@pytest.mark.parametrize("role", ["admin", "worker"])
def test_transition_succeeds_only_along_table_edges(current, target, role):
    machine = TicketStateMachine()
    actor = Actor(id=10, role=role, department_id=3)
    legal = target in EDGES[current] and not (role == "worker" and target is TicketStatus.CLOSED)

    if legal:
        assert machine.transition(_ticket(current), target.value, actor) is target
    else:
        with pytest.raises((ValidationError, ForbiddenError)):
            machine.transition(_ticket(current), target.value, actor)


def test_closed_is_terminal_and_message_lists_none():
    machine = TicketStateMachine()
    with pytest.raises(ValidationError) as exc:
        machine.transition(_ticket(TicketStatus.CLOSED), "open", Actor(id=1, role="admin"))
    assert exc.value.message == "Cannot transition from 'closed' to 'open'. Allowed: none"


def test_illegal_edge_message_lists_allowed_targets():
    machine = TicketStateMachine()
    with pytest.raises(ValidationError) as exc:
        machine.assert_transition(TicketStatus.OPEN, TicketStatus.ON_HOLD)
    assert str(exc.value) == "Cannot transition from 'open' to 'on_hold'. Allowed: in_progress, closed"


def test_unknown_status_is_rejected_before_access_checks():
    machine = TicketStateMachine()
    stranger = Actor(id=99, role="worker", department_id=1)
    with pytest.raises(ValidationError, match="Status must be one of: open, in_progress, on_hold, closed"):
        machine.transition(_ticket(TicketStatus.OPEN), "resolved", stranger)


def test_worker_cannot_close_even_on_legal_edge():
    machine = TicketStateMachine()
    with pytest.raises(ForbiddenError, match="Workers cannot close tickets"):
        machine.transition(_ticket(TicketStatus.IN_PROGRESS), "closed", Actor(id=10, role="worker"))


def test_actor_without_write_access_is_forbidden():
    machine = TicketStateMachine()
    with pytest.raises(ForbiddenError):
        machine.transition(_ticket(TicketStatus.OPEN), "in_progress", Actor(id=2, role="manager", department_id=1))


def test_initial_state_is_open():
    assert TicketStateMachine.initial_state() is TicketStatus.OPEN
