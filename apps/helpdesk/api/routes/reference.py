from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from apps.helpdesk.dependencies.auth import AdminActor, CurrentActor
from apps.helpdesk.dependencies.services import ReferenceProviderDep

router = APIRouter(tags=["reference"])


class CategoryModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    department_id: int
    is_active: bool


@router.get("/categories", response_model=list[CategoryModel], summary="List active ticket categories")
async def list_categories(provider: ReferenceProviderDep, _: CurrentActor) -> list[CategoryModel]:
    categories = await provider.categories(active_only=True)
    return [CategoryModel.model_validate(category) for category in categories]


@router.post("/reference/reload", summary="Refresh cached roles and departments")
async def reload_reference_data(provider: ReferenceProviderDep, _: AdminActor) -> dict[str, int]:
    await provider.reload()
    roles = await provider.roles()
    departments = await provider.departments()
    return {"roles": len(roles), "departments": len(departments)}
