"""
Projeção do read model de tickets.

Função pura que dobra um evento sobre o documento atual. É a mesma
função usada pelo Projector (incremental) e pela reconstrução a
partir do EventStore (caminho de reparo), o que garante que ambos
chegam ao mesmo documento.
"""

from typing import Iterable, Optional

from ticket_ledger.core.shared.events import DomainEvent
from .dtos import TicketReadModel
from .entities import TicketStatus
from .events import TicketCreated, TicketResolved


def apply_event_to_read_model(
    current: Optional[TicketReadModel],
    event: DomainEvent,
) -> Optional[TicketReadModel]:
    """
    Dobra um evento sobre o documento.

    Args:
        current: Documento atual (None se ainda não existe)
        event: Evento a aplicar

    Returns:
        Novo documento, ou None quando não há nada a gravar
        (tipo de evento sem projeção, ou TicketResolved sem documento).
    """
    if isinstance(event, TicketCreated):
        if current is not None:
            # Reentrega tardia: preserva o ciclo de vida já projetado
            return TicketReadModel(
                ticket_id=event.aggregate_id,
                title=event.title,
                description=event.description,
                priority=event.priority,
                status=current.status,
                created_at=event.occurred_on,
                resolved_at=current.resolved_at,
            )
        return TicketReadModel(
            ticket_id=event.aggregate_id,
            title=event.title,
            description=event.description,
            priority=event.priority,
            status=TicketStatus.OPEN.value,
            created_at=event.occurred_on,
            resolved_at=None,
        )

    if isinstance(event, TicketResolved):
        if current is None:
            return None
        return current.resolved(event.occurred_on)

    return None


def build_read_model(events: Iterable[DomainEvent]) -> Optional[TicketReadModel]:
    """
    Reconstrói o documento do zero a partir do histórico.

    Example:
        ticket_events = [created, resolved]
        build_read_model(ticket_events).status  # "resolved"
    """
    document = None
    for event in events:
        updated = apply_event_to_read_model(document, event)
        if updated is not None:
            document = updated
    return document
