"""
Domínio de Tickets - Ciclo de vida event-sourced.

Este módulo contém toda a lógica de negócio relacionada a tickets
de suporte, incluindo:
- Agregado (Ticket, TicketStatus, TicketPriority)
- Domain Events (TicketCreated, TicketResolved) e registro de decoders
- Use Cases (CreateTicket, ResolveTicket, GetTicket, ListTickets, Rebuild)
- DTOs (commands, documento do read model, saída)
- Ports (event store, read model, invalidação de cache)
- Projeção (fold puro do read model)

Características do Domínio:
- Estado do agregado é o fold do seu histórico
- Dois estados (open, resolved) e três prioridades
- Read model eventualmente consistente e reconstruível
"""

from .entities import Ticket, TicketStatus, TicketPriority
from .events import (
    TicketCreated,
    TicketResolved,
    EVENT_DECODERS,
    decode_event,
    event_from_dict,
)
from .dtos import (
    CreateTicketCommand,
    ResolveTicketCommand,
    ListTicketsQuery,
    TicketReadModel,
    TicketOutputDTO,
)
from .ports import TicketEventStore, TicketReadRepository, ListCacheInvalidator
from .projections import apply_event_to_read_model, build_read_model
from .use_cases import (
    CreateTicketService,
    ResolveTicketService,
    GetTicketService,
    ListTicketsService,
    RebuildTicketReadModelService,
)

__all__ = [
    # Entities
    "Ticket",
    "TicketStatus",
    "TicketPriority",
    # Events
    "TicketCreated",
    "TicketResolved",
    "EVENT_DECODERS",
    "decode_event",
    "event_from_dict",
    # DTOs
    "CreateTicketCommand",
    "ResolveTicketCommand",
    "ListTicketsQuery",
    "TicketReadModel",
    "TicketOutputDTO",
    # Ports
    "TicketEventStore",
    "TicketReadRepository",
    "ListCacheInvalidator",
    # Projection
    "apply_event_to_read_model",
    "build_read_model",
    # Use Cases
    "CreateTicketService",
    "ResolveTicketService",
    "GetTicketService",
    "ListTicketsService",
    "RebuildTicketReadModelService",
]
