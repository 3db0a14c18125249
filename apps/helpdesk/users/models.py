from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class User:
    """User account as exposed to callers; the password hash never leaves the repository."""

    id: int
    email: str
    first_name: str
    last_name: str
    role_id: int
    role: str
    department_id: int | None
    department: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime
