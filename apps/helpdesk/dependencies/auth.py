from collections.abc import Callable, Mapping
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from apps.helpdesk.core.config import get_settings
from apps.helpdesk.core.errors import NotFoundError
from apps.helpdesk.dependencies.services import get_user_service
from apps.helpdesk.identity.models import Actor, RoleName
from apps.helpdesk.users.service import UserService

bearer_scheme = HTTPBearer(auto_error=False)


async def resolve_actor(token: str | None, tokens: Mapping[str, int], users: UserService) -> Actor:
    """Return the acting identity associated with the provided bearer token.

    Tokens are issued upstream and mapped to user ids through configuration;
    the user record supplies the role and department.
    """

    if token is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    user_id = tokens.get(token)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    try:
        user = await users.get_by_id(user_id)
    except NotFoundError:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials") from None
    if not user.is_active:
        raise HTTPException(status_code=401, detail="Account is deactivated")

    return Actor(id=user.id, role=user.role, department_id=user.department_id)


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
    users: Annotated[UserService, Depends(get_user_service)],
) -> Actor:
    cached = getattr(request.state, "actor", None)
    if isinstance(cached, Actor):
        return cached

    token = credentials.credentials if credentials is not None else None
    actor = await resolve_actor(token, get_settings().api_tokens, users)
    request.state.actor = actor
    return actor


def role_required(*roles: RoleName) -> Callable[[Actor], Actor]:
    """Dependency factory ensuring the current actor holds one of ``roles``."""

    allowed = {role.value for role in roles}

    async def dependency(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
        if str(getattr(actor.role, "value", actor.role)) not in allowed:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return actor

    return dependency


require_admin = role_required(RoleName.ADMIN)
require_staff = role_required(RoleName.ADMIN, RoleName.MANAGER)

CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AdminActor = Annotated[Actor, Depends(require_admin)]
StaffActor = Annotated[Actor, Depends(require_staff)]
