from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Sequence

from apps.helpdesk.core.errors import NotFoundError, ValidationError
from apps.helpdesk.identity.models import Department, Role, RoleName
from apps.helpdesk.identity.provider import ReferenceDataProvider

from .models import User
from .passwords import PasswordHasher, password_policy_violation
from .repository import DuplicateEmailError, UserRepository

logger = logging.getLogger(__name__)

MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 100
DUPLICATE_EMAIL_MESSAGE = "A user with this email already exists"

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _clean_email(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError("Invalid email format")
    email = normalize_email(value)
    if len(email) > MAX_EMAIL_LENGTH:
        raise ValidationError(f"Email must be {MAX_EMAIL_LENGTH} characters or fewer")
    if not _EMAIL_RE.match(email):
        raise ValidationError("Invalid email format")
    return email


def _clean_name(value: Any, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{label} cannot be empty")
    name = value.strip()
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"{label} must be {MAX_NAME_LENGTH} characters or fewer")
    return name


def _check_password(value: Any) -> str:
    if not isinstance(value, str):
        raise ValidationError("Password must be text")
    violation = password_policy_violation(value)
    if violation:
        raise ValidationError(violation)
    return value


class UserService:
    """Account lifecycle operations guarding the user invariants.

    Emails are unique after normalisation, passwords follow the composition
    policy, and at least one active admin always remains.
    """

    def __init__(
        self,
        repository: UserRepository,
        reference: ReferenceDataProvider,
        *,
        hasher: PasswordHasher | None = None,
    ) -> None:
        self._repository = repository
        self._reference = reference
        self._hasher = hasher or PasswordHasher()

    async def get_all(self) -> Sequence[User]:
        return await self._repository.list_users()

    async def get_by_id(self, user_id: int) -> User:
        user = await self._repository.get_user(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_roles(self) -> Sequence[Role]:
        return await self._reference.roles()

    async def get_departments(self) -> Sequence[Department]:
        return await self._reference.departments()

    async def create(self, fields: Mapping[str, Any]) -> User:
        required = ("email", "password", "first_name", "last_name", "role_id")
        if any(not fields.get(name) for name in required):
            raise ValidationError("Email, password, first name, last name, and role are required")

        email = _clean_email(fields["email"])
        password = _check_password(fields["password"])
        first_name = _clean_name(fields["first_name"], "First name")
        last_name = _clean_name(fields["last_name"], "Last name")
        role_id = await self._validate_role(fields["role_id"])
        department_id = await self._validate_department(fields.get("department_id"))

        if await self._repository.email_exists(email):
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE)

        try:
            user_id = await self._repository.create_user(
                email=email,
                password_hash=self._hasher.hash(password),
                first_name=first_name,
                last_name=last_name,
                role_id=role_id,
                department_id=department_id,
            )
        except DuplicateEmailError:
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE) from None

        logger.info("User %s created with role %s", user_id, role_id)
        return await self.get_by_id(user_id)

    async def update(self, user_id: int, fields: Mapping[str, Any]) -> User:
        await self.get_by_id(user_id)

        values: dict[str, Any] = {}
        if "email" in fields:
            email = _clean_email(fields["email"])
            if await self._repository.email_exists(email, exclude_id=user_id):
                raise ValidationError(DUPLICATE_EMAIL_MESSAGE)
            values["email"] = email

        password = fields.get("password")
        if password not in (None, ""):
            values["password_hash"] = self._hasher.hash(_check_password(password))

        if "first_name" in fields:
            values["first_name"] = _clean_name(fields["first_name"], "First name")
        if "last_name" in fields:
            values["last_name"] = _clean_name(fields["last_name"], "Last name")
        if "role_id" in fields:
            values["role_id"] = await self._validate_role(fields["role_id"])
        if "department_id" in fields:
            values["department_id"] = await self._validate_department(fields["department_id"])

        if not values:
            raise ValidationError("No fields to update")

        guard = None
        if "role_id" in values:
            new_role = await self._reference.get_role(values["role_id"])
            if new_role is not None and new_role.name != RoleName.ADMIN:
                guard = self._guard_admin_demotion

        try:
            updated = await self._repository.update_user(user_id, values, guard=guard)
        except DuplicateEmailError:
            raise ValidationError(DUPLICATE_EMAIL_MESSAGE) from None
        if not updated:
            raise NotFoundError("User not found")

        logger.info("User %s updated (%s)", user_id, ", ".join(sorted(values)))
        return await self.get_by_id(user_id)

    async def toggle_active(self, user_id: int, acting_user_id: int) -> User:
        if user_id == acting_user_id:
            raise ValidationError("You cannot deactivate your own account")

        user = await self._repository.toggle_active(user_id, guard=self._guard_admin_floor)
        if user is None:
            raise NotFoundError("User not found")

        logger.info("User %s active flag set to %s by user %s", user_id, user.is_active, acting_user_id)
        return user

    @staticmethod
    def _guard_admin_floor(user: User, active_admins: int) -> None:
        if user.is_active and user.role == RoleName.ADMIN and active_admins <= 1:
            raise ValidationError("Cannot deactivate the last active admin account")

    @staticmethod
    def _guard_admin_demotion(user: User, active_admins: int) -> None:
        if user.is_active and user.role == RoleName.ADMIN and active_admins <= 1:
            raise ValidationError("Cannot demote the last active admin account")

    async def _validate_role(self, raw: Any) -> int:
        if isinstance(raw, bool) or not isinstance(raw, int) or await self._reference.get_role(raw) is None:
            raise ValidationError("Invalid role selected")
        return raw

    async def _validate_department(self, raw: Any) -> int | None:
        if raw is None or raw == 0:
            return None
        if isinstance(raw, bool) or not isinstance(raw, int) or await self._reference.get_department(raw) is None:
            raise ValidationError("Invalid department selected")
        return raw
