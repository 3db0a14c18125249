from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from apps.helpdesk.identity.provider import ReferenceDataProvider
from apps.helpdesk.tickets.service import TicketService
from apps.helpdesk.users.service import UserService


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


async def get_user_service(request: Request) -> UserService:
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="User service is not configured")
    return service


async def get_reference_provider(request: Request) -> ReferenceDataProvider:
    provider = getattr(request.app.state, "reference_provider", None)
    if provider is None:
        raise HTTPException(status_code=503, detail="Reference data is not configured")
    return provider


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
ReferenceProviderDep = Annotated[ReferenceDataProvider, Depends(get_reference_provider)]
