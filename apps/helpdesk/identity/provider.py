from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Sequence

from .models import Category, Department, Role
from .repository import ReferenceRepository

logger = logging.getLogger(__name__)


class ReferenceDataProvider:
    """Process-wide, read-only cache of role and department lookup tables.

    Tables are loaded lazily on first use and only refreshed by :meth:`reload`.
    Categories are not cached since their ``is_active`` flag is mutable.
    """

    def __init__(self, repository: ReferenceRepository) -> None:
        self._repository = repository
        self._roles: Mapping[int, Role] | None = None
        self._departments: Mapping[int, Department] | None = None
        self._lock = asyncio.Lock()

    async def reload(self) -> None:
        async with self._lock:
            roles = await self._repository.list_roles()
            departments = await self._repository.list_departments()
            self._roles = {role.id: role for role in roles}
            self._departments = {department.id: department for department in departments}
        logger.info("Reference data loaded: %d roles, %d departments", len(roles), len(departments))

    async def _ensure_loaded(self) -> None:
        if self._roles is None or self._departments is None:
            await self.reload()

    async def roles(self) -> Sequence[Role]:
        await self._ensure_loaded()
        return sorted(self._roles.values(), key=lambda role: role.id)

    async def departments(self) -> Sequence[Department]:
        await self._ensure_loaded()
        return sorted(self._departments.values(), key=lambda department: department.name)

    async def get_role(self, role_id: int) -> Role | None:
        await self._ensure_loaded()
        return self._roles.get(role_id)

    async def get_department(self, department_id: int) -> Department | None:
        await self._ensure_loaded()
        return self._departments.get(department_id)

    async def get_category(self, category_id: int) -> Category | None:
        return await self._repository.get_category(category_id)

    async def categories(self, *, active_only: bool = True) -> Sequence[Category]:
        return await self._repository.list_categories(active_only=active_only)
