from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from apps.helpdesk.identity.models import RoleName
from packages.db.models import DepartmentTable, RoleTable, UserTable
from packages.db.session import ensure_datetime

from .models import User

WRITABLE_COLUMNS = frozenset({"email", "password_hash", "first_name", "last_name", "role_id", "department_id"})

# Called with the current user and the number of active admins; raises to abort the write.
AdminFloorGuard = Callable[[User, int], None]


class DuplicateEmailError(RuntimeError):
    """Raised when the unique constraint on ``users.email`` rejects a write."""


def _is_email_conflict(exc: IntegrityError) -> bool:
    return "email" in str(exc.orig).lower()


class UserRepository:
    """Persistence helper for ``users``; email uniqueness is enforced by the schema."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _base_select():
        return (
            select(UserTable, RoleTable, DepartmentTable)
            .join(RoleTable, UserTable.role_id == RoleTable.id)
            .outerjoin(DepartmentTable, UserTable.department_id == DepartmentTable.id)
        )

    async def get_user(self, user_id: int) -> User | None:
        async with self._session_factory() as session:
            result = await session.execute(self._base_select().where(UserTable.id == user_id))
            row = result.first()
        if row is None:
            return None
        return self._row_to_user(*row)

    async def list_users(self) -> Sequence[User]:
        async with self._session_factory() as session:
            result = await session.execute(
                self._base_select().order_by(UserTable.created_at.desc(), UserTable.id.desc())
            )
            rows = result.all()
        return [self._row_to_user(*row) for row in rows]

    async def email_exists(self, email: str, *, exclude_id: int | None = None) -> bool:
        statement = select(UserTable.id).where(UserTable.email == email)
        if exclude_id is not None:
            statement = statement.where(UserTable.id != exclude_id)
        async with self._session_factory() as session:
            result = await session.execute(statement.limit(1))
            return result.first() is not None

    async def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        first_name: str,
        last_name: str,
        role_id: int,
        department_id: int | None,
    ) -> int:
        now = datetime.now(timezone.utc)
        row = UserTable(
            email=email,
            password_hash=password_hash,
            first_name=first_name,
            last_name=last_name,
            role_id=role_id,
            department_id=department_id,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    session.add(row)
                    await session.flush()
                    user_id = row.id
            except IntegrityError as exc:
                if _is_email_conflict(exc):
                    raise DuplicateEmailError(email) from exc
                raise
        return int(user_id)

    async def update_user(
        self,
        user_id: int,
        values: Mapping[str, Any],
        *,
        guard: AdminFloorGuard | None = None,
    ) -> bool:
        """Apply ``values`` to ``user_id``; ``guard`` runs against the locked admin count first."""

        unknown = set(values) - WRITABLE_COLUMNS
        if unknown:
            raise ValueError(f"Unsupported user columns: {sorted(unknown)}")

        async with self._session_factory() as session:
            try:
                async with session.begin():
                    if guard is None:
                        row = await session.get(UserTable, user_id)
                    else:
                        row = await self._guarded_row(session, user_id, guard)
                    if row is None:
                        return False
                    for key, value in values.items():
                        setattr(row, key, value)
                    row.updated_at = datetime.now(timezone.utc)
            except IntegrityError as exc:
                if _is_email_conflict(exc):
                    raise DuplicateEmailError(values.get("email")) from exc
                raise
        return True

    async def toggle_active(self, user_id: int, *, guard: AdminFloorGuard) -> User | None:
        """Flip the active flag of ``user_id`` inside a single transaction.

        ``guard`` receives the current user and the number of active admins and
        may raise to abort; the admin rows stay locked until the flip commits.
        """

        async with self._session_factory() as session:
            async with session.begin():
                row = await self._guarded_row(session, user_id, guard)
                if row is None:
                    return None
                row.is_active = not row.is_active
                row.updated_at = datetime.now(timezone.utc)
        return await self.get_user(user_id)

    async def _guarded_row(self, session: AsyncSession, user_id: int, guard: AdminFloorGuard) -> UserTable | None:
        # Admin rows are locked in id order before the target row so that
        # concurrent guarded writes always acquire locks in the same order.
        admins = await session.execute(
            select(UserTable.id)
            .join(RoleTable, UserTable.role_id == RoleTable.id)
            .where(RoleTable.name == RoleName.ADMIN.value, UserTable.is_active == True)  # noqa: E712
            .order_by(UserTable.id)
            .with_for_update(of=UserTable)
        )
        active_admins = len(admins.scalars().all())

        row = await session.get(UserTable, user_id, with_for_update=True)
        if row is None:
            return None
        role = await session.get(RoleTable, row.role_id)
        department = (
            await session.get(DepartmentTable, row.department_id) if row.department_id is not None else None
        )
        guard(self._row_to_user(row, role, department), active_admins)
        return row

    @staticmethod
    def _row_to_user(row: UserTable, role: RoleTable, department: DepartmentTable | None) -> User:
        return User(
            id=row.id,
            email=row.email,
            first_name=row.first_name,
            last_name=row.last_name,
            role_id=row.role_id,
            role=role.name,
            department_id=row.department_id,
            department=department.name if department is not None else None,
            is_active=bool(row.is_active),
            created_at=ensure_datetime(row.created_at),
            updated_at=ensure_datetime(row.updated_at),
        )
