from __future__ import annotations

from typing import Iterable, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlmodel import select

from packages.db.models import CategoryTable, DepartmentTable, RoleTable

from .models import DEFAULT_ROLES, Category, Department, Role


class ReferenceRepository:
    """Read access to roles, departments and categories."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_roles(self) -> Sequence[Role]:
        async with self._session_factory() as session:
            result = await session.execute(select(RoleTable).order_by(RoleTable.id))
            return [self._table_to_role(row) for row in result.scalars().all()]

    async def list_departments(self) -> Sequence[Department]:
        async with self._session_factory() as session:
            result = await session.execute(select(DepartmentTable).order_by(DepartmentTable.name))
            return [self._table_to_department(row) for row in result.scalars().all()]

    async def get_category(self, category_id: int) -> Category | None:
        async with self._session_factory() as session:
            row = await session.get(CategoryTable, category_id)
            if row is None:
                return None
            return self._table_to_category(row)

    async def list_categories(self, *, active_only: bool = False) -> Sequence[Category]:
        statement = select(CategoryTable)
        if active_only:
            statement = statement.where(CategoryTable.is_active == True)  # noqa: E712
        async with self._session_factory() as session:
            result = await session.execute(statement.order_by(CategoryTable.name))
            return [self._table_to_category(row) for row in result.scalars().all()]

    async def seed_roles(self, roles: Iterable[Role] = DEFAULT_ROLES) -> int:
        """Insert the given roles when no role with the same name exists yet."""

        inserted = 0
        async with self._session_factory() as session:
            async with session.begin():
                result = await session.execute(select(RoleTable.name))
                existing = set(result.scalars().all())
                for role in roles:
                    if role.name in existing:
                        continue
                    session.add(RoleTable(id=role.id, name=role.name, description=role.description))
                    inserted += 1
        return inserted

    @staticmethod
    def _table_to_role(row: RoleTable) -> Role:
        return Role(id=row.id, name=row.name, description=row.description)

    @staticmethod
    def _table_to_department(row: DepartmentTable) -> Department:
        return Department(id=row.id, name=row.name, description=row.description)

    @staticmethod
    def _table_to_category(row: CategoryTable) -> Category:
        return Category(
            id=row.id,
            name=row.name,
            department_id=row.department_id,
            is_active=bool(row.is_active),
        )
