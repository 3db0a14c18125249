"""Ticket workflow engine: access rules, state machine, auditing and persistence."""

from .access import TicketAction, can_assign_ticket, can_read_ticket, can_write_ticket
from .audit import AUDITABLE_FIELDS, ChangeAuditor
from .models import Ticket, TicketHistoryEntry, TicketPriority, TicketScope, TicketStatus
from .repository import TicketRepository
from .service import MISSING, TicketService
from .state import TicketStateMachine

__all__ = [
    "AUDITABLE_FIELDS",
    "MISSING",
    "ChangeAuditor",
    "Ticket",
    "TicketAction",
    "TicketHistoryEntry",
    "TicketPriority",
    "TicketRepository",
    "TicketScope",
    "TicketService",
    "TicketStateMachine",
    "TicketStatus",
    "can_assign_ticket",
    "can_read_ticket",
    "can_write_ticket",
]
