"""Identity and role model: reference data and the acting identity."""

from .models import DEFAULT_ROLES, Actor, Category, Department, Role, RoleName
from .provider import ReferenceDataProvider
from .repository import ReferenceRepository

__all__ = [
    "DEFAULT_ROLES",
    "Actor",
    "Category",
    "Department",
    "ReferenceDataProvider",
    "ReferenceRepository",
    "Role",
    "RoleName",
]
