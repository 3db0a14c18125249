from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict

from apps.helpdesk.dependencies.auth import AdminActor, StaffActor
from apps.helpdesk.dependencies.services import UserServiceDep
from apps.helpdesk.users.models import User

router = APIRouter(prefix="/users", tags=["users"])


class UserModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    role_id: int
    department: str | None
    department_id: int | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class RoleModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None


class DepartmentModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None = None


class UserCreateRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role_id: int | None = None
    department_id: int | None = None


class UserUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str | None = None
    password: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    role_id: int | None = None
    department_id: int | None = None


def _to_model(user: User) -> UserModel:
    return UserModel.model_validate(user)


@router.get("", response_model=list[UserModel])
async def list_users(service: UserServiceDep, _: StaffActor) -> list[UserModel]:
    users = await service.get_all()
    return [_to_model(user) for user in users]


@router.get("/roles", response_model=list[RoleModel])
async def list_roles(service: UserServiceDep, _: AdminActor) -> list[RoleModel]:
    roles = await service.get_roles()
    return [RoleModel.model_validate(role) for role in roles]


@router.get("/departments", response_model=list[DepartmentModel])
async def list_departments(service: UserServiceDep, _: AdminActor) -> list[DepartmentModel]:
    departments = await service.get_departments()
    return [DepartmentModel.model_validate(department) for department in departments]


@router.get("/{user_id}", response_model=UserModel)
async def get_user(user_id: int, service: UserServiceDep, _: StaffActor) -> UserModel:
    return _to_model(await service.get_by_id(user_id))


@router.post("", response_model=UserModel, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreateRequest, service: UserServiceDep, _: AdminActor) -> UserModel:
    user = await service.create(payload.model_dump())
    return _to_model(user)


@router.put("/{user_id}", response_model=UserModel)
async def update_user(
    user_id: int,
    payload: UserUpdateRequest,
    service: UserServiceDep,
    _: AdminActor,
) -> UserModel:
    user = await service.update(user_id, payload.model_dump(exclude_unset=True))
    return _to_model(user)


@router.delete("/{user_id}", response_model=UserModel, summary="Toggle the active flag of a user")
async def toggle_user_active(user_id: int, service: UserServiceDep, actor: AdminActor) -> UserModel:
    user = await service.toggle_active(user_id, actor.id)
    return _to_model(user)
