"""SQLModel table definitions for the helpdesk data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class RoleTable(SQLModel, table=True):
    """Static role reference data (admin, manager, worker)."""

    __tablename__ = "roles"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(50), nullable=False, unique=True))
    description: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))


class DepartmentTable(SQLModel, table=True):
    """Organisational departments tickets and categories belong to."""

    __tablename__ = "departments"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(100), nullable=False, unique=True))
    description: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))


class CategoryTable(SQLModel, table=True):
    """Ticket categories; each one is owned by exactly one department."""

    __tablename__ = "categories"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(100), nullable=False))
    department_id: int = Field(
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=False)
    )
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))


class UserTable(SQLModel, table=True):
    """Application user accounts."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    email: str = Field(sa_column=Column(String(255), nullable=False, unique=True))
    password_hash: str = Field(sa_column=Column(String(255), nullable=False))
    first_name: str = Field(sa_column=Column(String(100), nullable=False))
    last_name: str = Field(sa_column=Column(String(100), nullable=False))
    role_id: int = Field(sa_column=Column(Integer, ForeignKey("roles.id"), nullable=False))
    department_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("departments.id"), nullable=True)
    )
    is_active: bool = Field(default=True, sa_column=Column(Boolean, nullable=False, default=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketTable(SQLModel, table=True):
    """Support tickets."""

    __tablename__ = "tickets"

    id: int | None = Field(default=None, primary_key=True)
    title: str = Field(sa_column=Column(String(255), nullable=False))
    description: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    priority: str = Field(sa_column=Column(String(20), nullable=False))
    status: str = Field(sa_column=Column(String(20), nullable=False))
    category_id: int = Field(sa_column=Column(Integer, ForeignKey("categories.id"), nullable=False))
    department_id: int = Field(
        sa_column=Column(Integer, ForeignKey("departments.id"), nullable=False)
    )
    created_by: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    assigned_to: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("users.id"), nullable=True)
    )
    version: int = Field(default=1, sa_column=Column(Integer, nullable=False, default=1))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketHistoryTable(SQLModel, table=True):
    """Append-only field level change log for tickets."""

    __tablename__ = "ticket_history"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    changed_by: int = Field(sa_column=Column(Integer, ForeignKey("users.id"), nullable=False))
    field_changed: str = Field(sa_column=Column(String(50), nullable=False))
    old_value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    new_value: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
