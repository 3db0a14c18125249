import pytest

from apps.helpdesk.core.errors import ForbiddenError
from apps.helpdesk.identity.models import Actor, RoleName
from apps.helpdesk.tickets.access import (
    TicketAction,
    can_assign_ticket,
    can_read_ticket,
    can_write_ticket,
    ensure_permitted,
    is_restricted,
    visibility_scope,
)
from apps.helpdesk.tickets.models import TicketOwnership, TicketScope

TICKET = TicketOwnership(department_id=3, created_by=10, assigned_to=11)


@pytest.mark.parametrize(
    ("actor", "expected"),
    [
        (Actor(id=99, role="admin", department_id=None), True),
        (Actor(id=99, role="manager", department_id=3), True),
        (Actor(id=99, role="manager", department_id=4), False),
        (Actor(id=99, role="manager", department_id=None), False),
        (Actor(id=10, role="worker", department_id=4), True),
        (Actor(id=11, role="worker", department_id=4), True),
        (Actor(id=12, role="worker", department_id=3), False),
        (Actor(id=10, role="auditor", department_id=3), False),
    ],
)
def test_read_and_write_access_follow_role_rules(actor, expected):
    assert can_read_ticket(TICKET, actor) is expected
    assert can_write_ticket(TICKET, actor) is expected


def test_unassigned_ticket_only_grants_worker_access_to_creator():
    ticket = TicketOwnership(department_id=3, created_by=10, assigned_to=None)
    assert can_write_ticket(ticket, Actor(id=10, role=RoleName.WORKER))
    assert not can_write_ticket(ticket, Actor(id=11, role=RoleName.WORKER))


def test_assignment_requires_department_for_managers_and_excludes_workers():
    assert can_assign_ticket(TICKET, Actor(id=1, role="admin"))
    assert can_assign_ticket(TICKET, Actor(id=2, role="manager", department_id=3))
    assert not can_assign_ticket(TICKET, Actor(id=2, role="manager", department_id=1))
    # creator/assignee bypass does not apply to assignment
    assert not can_assign_ticket(TICKET, Actor(id=10, role="worker", department_id=3))
    assert not can_assign_ticket(TICKET, Actor(id=10, role="manager", department_id=1))


@pytest.mark.parametrize("action", list(TicketAction))
def test_workers_are_restricted_for_every_listed_action(action):
    assert is_restricted(action, Actor(id=1, role="worker"))
    assert not is_restricted(action, Actor(id=1, role="manager"))
    assert not is_restricted(action, Actor(id=1, role=RoleName.ADMIN))


def test_ensure_permitted_reports_action_specific_message():
    with pytest.raises(ForbiddenError, match="Workers cannot close tickets"):
        ensure_permitted(TicketAction.CLOSE, Actor(id=1, role="worker"))
    ensure_permitted(TicketAction.CLOSE, Actor(id=1, role="manager"))


def test_visibility_scope_per_role():
    assert visibility_scope(Actor(id=1, role="admin")) == TicketScope.everything()
    assert visibility_scope(Actor(id=2, role="manager", department_id=3)) == TicketScope.department(3)
    assert visibility_scope(Actor(id=4, role="worker", department_id=3)) == TicketScope.participant(4)
    assert visibility_scope(Actor(id=5, role="guest")) == TicketScope()
