from fastapi import APIRouter

from apps.helpdesk.dependencies.auth import CurrentActor

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/whoami", summary="Echo the resolved acting identity")
async def whoami(actor: CurrentActor) -> dict[str, object]:
    return {"id": actor.id, "role": getattr(actor.role, "value", actor.role), "department_id": actor.department_id}
