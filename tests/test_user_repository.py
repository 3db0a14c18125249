from __future__ import annotations

import pytest
from sqlalchemy import event

from apps.helpdesk.core.errors import ValidationError


def _record_statements(engine):
    statements: list[str] = []

    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        statements.append(" ".join(statement.split()))

    event.listen(engine.sync_engine, "before_cursor_execute", before_cursor_execute)
    return statements


def _first_index(statements, predicate):
    return next(index for index, statement in enumerate(statements) if predicate(statement))


def _admin_count(statement: str) -> bool:
    return "JOIN roles" in statement and "ORDER BY users.id" in statement


def _target_row(statement: str) -> bool:
    return statement.startswith("SELECT users.id, users.email") and "WHERE users.id =" in statement


@pytest.mark.asyncio
async def test_toggle_locks_admin_set_before_target_row(engine, user_repository, staff):
    statements = _record_statements(engine)
    seen: list[tuple[int, int]] = []

    user = await user_repository.toggle_active(
        staff.worker.id, guard=lambda current, admins: seen.append((current.id, admins))
    )

    assert user.is_active is False
    assert seen == [(staff.worker.id, 1)]
    assert _first_index(statements, _admin_count) < _first_index(statements, _target_row)


@pytest.mark.asyncio
async def test_guarded_update_uses_same_lock_order_and_aborts_on_raise(engine, user_repository, staff):
    statements = _record_statements(engine)

    def refuse(current, admins):
        raise ValidationError("refused")

    with pytest.raises(ValidationError):
        await user_repository.update_user(staff.admin.id, {"role_id": 2}, guard=refuse)

    assert _first_index(statements, _admin_count) < _first_index(statements, _target_row)
    admin = await user_repository.get_user(staff.admin.id)
    assert admin.role == "admin"


@pytest.mark.asyncio
async def test_toggle_unknown_user_returns_none(user_repository, staff):
    assert await user_repository.toggle_active(999, guard=lambda current, admins: None) is None
