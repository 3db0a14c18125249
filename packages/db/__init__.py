"""Database models and utilities."""

from .models import (
    CategoryTable,
    DepartmentTable,
    RoleTable,
    TicketHistoryTable,
    TicketTable,
    UserTable,
)
from .session import create_engine, create_session_factory, ensure_datetime, ensure_schema, to_asyncpg_dsn

__all__ = [
    "CategoryTable",
    "DepartmentTable",
    "RoleTable",
    "TicketHistoryTable",
    "TicketTable",
    "UserTable",
    "create_engine",
    "create_session_factory",
    "ensure_datetime",
    "ensure_schema",
    "to_asyncpg_dsn",
]
