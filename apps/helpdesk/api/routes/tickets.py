from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, status
from pydantic import BaseModel, ConfigDict

from apps.helpdesk.dependencies.auth import CurrentActor, StaffActor
from apps.helpdesk.dependencies.services import TicketServiceDep
from apps.helpdesk.tickets.models import Ticket, TicketHistoryEntry, TicketPriority, TicketStatus, UserRef
from apps.helpdesk.tickets.service import MISSING

router = APIRouter(prefix="/tickets", tags=["tickets"])


class ReferenceModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class UserRefModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    email: str | None = None


class TicketModel(BaseModel):
    id: int
    title: str
    description: str | None
    priority: TicketPriority
    status: TicketStatus
    category: ReferenceModel
    department: ReferenceModel
    created_by: UserRefModel
    assigned_to: UserRefModel | None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, ticket: Ticket) -> "TicketModel":
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            priority=ticket.priority,
            status=ticket.status,
            category=ReferenceModel.model_validate(ticket.category),
            department=ReferenceModel.model_validate(ticket.department),
            created_by=_user_ref(ticket.created_by),
            assigned_to=_user_ref(ticket.assigned_to) if ticket.assigned_to is not None else None,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
        )


class TicketHistoryModel(BaseModel):
    id: int
    field_changed: str
    old_value: str | None
    new_value: str | None
    changed_by: UserRefModel
    created_at: datetime

    @classmethod
    def from_entity(cls, entry: TicketHistoryEntry) -> "TicketHistoryModel":
        return cls(
            id=entry.id,
            field_changed=entry.field_changed,
            old_value=entry.old_value,
            new_value=entry.new_value,
            changed_by=_user_ref(entry.changed_by),
            created_at=entry.created_at,
        )


class TicketCreateRequest(BaseModel):
    title: str | None = None
    description: str | None = None
    category_id: int | None = None
    priority: str | None = None


class TicketUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = None
    description: str | None = None
    category_id: int | None = None
    priority: str | None = None


class TicketStatusChangeRequest(BaseModel):
    status: str | None = None


class TicketAssignRequest(BaseModel):
    assigned_to: int | None = None

    def target(self) -> Any:
        if "assigned_to" not in self.model_fields_set:
            return MISSING
        return self.assigned_to


def _user_ref(ref: UserRef) -> UserRefModel:
    return UserRefModel.model_validate(ref)


@router.get("", response_model=list[TicketModel], summary="List tickets visible to the caller")
async def list_tickets(service: TicketServiceDep, actor: CurrentActor) -> list[TicketModel]:
    tickets = await service.get_all(actor)
    return [TicketModel.from_entity(ticket) for ticket in tickets]


@router.post("", response_model=TicketModel, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep, actor: CurrentActor) -> TicketModel:
    ticket = await service.create(payload.model_dump(), actor)
    return TicketModel.from_entity(ticket)


@router.get("/{ticket_id}", response_model=TicketModel)
async def get_ticket(ticket_id: int, service: TicketServiceDep, actor: CurrentActor) -> TicketModel:
    ticket = await service.get_by_id(ticket_id, actor)
    return TicketModel.from_entity(ticket)


@router.get("/{ticket_id}/history", response_model=list[TicketHistoryModel])
async def get_ticket_history(
    ticket_id: int, service: TicketServiceDep, actor: CurrentActor
) -> list[TicketHistoryModel]:
    entries = await service.get_history(ticket_id, actor)
    return [TicketHistoryModel.from_entity(entry) for entry in entries]


@router.put("/{ticket_id}", response_model=TicketModel)
async def update_ticket(
    ticket_id: int,
    payload: TicketUpdateRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketModel:
    ticket = await service.update(ticket_id, payload.model_dump(exclude_unset=True), actor)
    return TicketModel.from_entity(ticket)


@router.put("/{ticket_id}/status", response_model=TicketModel)
async def change_ticket_status(
    ticket_id: int,
    payload: TicketStatusChangeRequest,
    service: TicketServiceDep,
    actor: CurrentActor,
) -> TicketModel:
    ticket = await service.change_status(ticket_id, payload.status, actor)
    return TicketModel.from_entity(ticket)


@router.put("/{ticket_id}/assign", response_model=TicketModel)
async def assign_ticket(
    ticket_id: int,
    payload: TicketAssignRequest,
    service: TicketServiceDep,
    actor: StaffActor,
) -> TicketModel:
    ticket = await service.assign(ticket_id, payload.target(), actor=actor)
    return TicketModel.from_entity(ticket)
