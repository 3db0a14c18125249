from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class RoleName(str, Enum):
    """The three tiers of the role model."""

    ADMIN = "admin"
    MANAGER = "manager"
    WORKER = "worker"


@dataclass(slots=True, frozen=True)
class Role:
    """Immutable role reference record."""

    id: int
    name: str
    description: str | None = None


@dataclass(slots=True, frozen=True)
class Department:
    """Organisational department reference record."""

    id: int
    name: str
    description: str | None = None


@dataclass(slots=True, frozen=True)
class Category:
    """Ticket category; decides which department a ticket lands in."""

    id: int
    name: str
    department_id: int
    is_active: bool = True


@dataclass(slots=True, frozen=True)
class Actor:
    """Authenticated identity performing an operation.

    ``role`` is kept as a plain string so that identities carrying a role the
    service does not know about are simply denied by the access predicates.
    """

    id: int
    role: str
    department_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == RoleName.ADMIN

    @property
    def is_manager(self) -> bool:
        return self.role == RoleName.MANAGER

    @property
    def is_worker(self) -> bool:
        return self.role == RoleName.WORKER


DEFAULT_ROLES: tuple[Role, ...] = (
    Role(id=1, name=RoleName.ADMIN.value, description="Full access to every ticket and user"),
    Role(id=2, name=RoleName.MANAGER.value, description="Manages tickets of their own department"),
    Role(id=3, name=RoleName.WORKER.value, description="Works on tickets they created or are assigned to"),
)
