from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased
from sqlmodel import select

from packages.db.models import CategoryTable, DepartmentTable, TicketHistoryTable, TicketTable, UserTable
from packages.db.session import ensure_datetime

from .models import (
    CategoryRef,
    DepartmentRef,
    FieldChange,
    Ticket,
    TicketHistoryEntry,
    TicketPriority,
    TicketScope,
    TicketStatus,
    UserRef,
)

_Creator = aliased(UserTable, name="creator")
_Assignee = aliased(UserTable, name="assignee")

# Columns the workflow engine is allowed to write through ``apply_changes``.
WRITABLE_COLUMNS = frozenset(
    {"title", "description", "priority", "status", "category_id", "department_id", "assigned_to"}
)


class _StaleTicketError(Exception):
    """Internal signal used to roll back a write whose version check failed."""


class TicketRepository:
    """Persistence helper wrapping ``tickets`` and ``ticket_history``."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _base_select():
        return (
            select(TicketTable, CategoryTable, DepartmentTable, _Creator, _Assignee)
            .join(CategoryTable, TicketTable.category_id == CategoryTable.id)
            .join(DepartmentTable, TicketTable.department_id == DepartmentTable.id)
            .join(_Creator, TicketTable.created_by == _Creator.id)
            .outerjoin(_Assignee, TicketTable.assigned_to == _Assignee.id)
        )

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        async with self._session_factory() as session:
            result = await session.execute(self._base_select().where(TicketTable.id == ticket_id))
            row = result.first()
        if row is None:
            return None
        return self._row_to_ticket(row)

    async def list_tickets(self, scope: TicketScope) -> Sequence[Ticket]:
        statement = self._base_select()
        if scope.all_tickets:
            pass
        elif scope.user_id is not None:
            statement = statement.where(
                or_(TicketTable.created_by == scope.user_id, TicketTable.assigned_to == scope.user_id)
            )
        else:
            statement = statement.where(TicketTable.department_id == scope.department_id)

        async with self._session_factory() as session:
            result = await session.execute(
                statement.order_by(TicketTable.updated_at.desc(), TicketTable.id.desc())
            )
            rows = result.all()
        return [self._row_to_ticket(row) for row in rows]

    async def create_ticket(
        self,
        *,
        title: str,
        description: str | None,
        priority: TicketPriority,
        status: TicketStatus,
        category_id: int,
        department_id: int,
        created_by: int,
    ) -> int:
        now = datetime.now(timezone.utc)
        row = TicketTable(
            title=title,
            description=description,
            priority=priority.value,
            status=status.value,
            category_id=category_id,
            department_id=department_id,
            created_by=created_by,
            assigned_to=None,
            version=1,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            async with session.begin():
                session.add(row)
                await session.flush()
                ticket_id = row.id
        return int(ticket_id)

    async def apply_changes(
        self,
        ticket_id: int,
        *,
        expected_version: int,
        values: Mapping[str, Any],
        history: Sequence[FieldChange],
    ) -> bool:
        """Write ``values`` and ``history`` atomically.

        The update only applies while the stored version still equals
        ``expected_version``; returns ``False`` and writes nothing otherwise.
        """

        unknown = set(values) - WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported ticket columns: {sorted(unknown)}")

        now = datetime.now(timezone.utc)
        columns = {
            key: value.value if isinstance(value, (TicketStatus, TicketPriority)) else value
            for key, value in values.items()
        }
        statement = (
            update(TicketTable)
            .where(TicketTable.id == ticket_id, TicketTable.version == expected_version)
            .values(**columns, version=TicketTable.version + 1, updated_at=now)
            .execution_options(synchronize_session=False)
        )

        async with self._session_factory() as session:
            try:
                async with session.begin():
                    result = await session.execute(statement)
                    if result.rowcount != 1:
                        raise _StaleTicketError()
                    session.add_all(
                        TicketHistoryTable(
                            ticket_id=change.ticket_id,
                            changed_by=change.changed_by,
                            field_changed=change.field_changed,
                            old_value=change.old_value,
                            new_value=change.new_value,
                            created_at=now,
                        )
                        for change in history
                    )
            except _StaleTicketError:
                return False
        return True

    async def list_history(self, ticket_id: int) -> Sequence[TicketHistoryEntry]:
        statement = (
            select(TicketHistoryTable, UserTable)
            .join(UserTable, TicketHistoryTable.changed_by == UserTable.id)
            .where(TicketHistoryTable.ticket_id == ticket_id)
            .order_by(TicketHistoryTable.created_at.desc(), TicketHistoryTable.id.desc())
        )
        async with self._session_factory() as session:
            result = await session.execute(statement)
            rows = result.all()
        return [self._row_to_history(entry, user) for entry, user in rows]

    @staticmethod
    def _row_to_ticket(row: Any) -> Ticket:
        ticket, category, department, creator, assignee = row
        return Ticket(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            priority=TicketPriority(ticket.priority),
            status=TicketStatus(ticket.status),
            category=CategoryRef(id=category.id, name=category.name),
            department=DepartmentRef(id=department.id, name=department.name),
            created_by=_to_user_ref(creator),
            assigned_to=_to_user_ref(assignee) if assignee is not None else None,
            version=ticket.version,
            created_at=ensure_datetime(ticket.created_at),
            updated_at=ensure_datetime(ticket.updated_at),
        )

    @staticmethod
    def _row_to_history(entry: TicketHistoryTable, user: UserTable) -> TicketHistoryEntry:
        return TicketHistoryEntry(
            id=entry.id,
            ticket_id=entry.ticket_id,
            field_changed=entry.field_changed,
            old_value=entry.old_value,
            new_value=entry.new_value,
            changed_by=UserRef(id=user.id, first_name=user.first_name, last_name=user.last_name),
            created_at=ensure_datetime(entry.created_at),
        )


def _to_user_ref(row: UserTable) -> UserRef:
    return UserRef(id=row.id, first_name=row.first_name, last_name=row.last_name, email=row.email)
