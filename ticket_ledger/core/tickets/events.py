"""
Domain Events do Domínio de Tickets.

Este módulo define os eventos de domínio que formam o histórico
de um ticket, e o registro que decodifica cada evento persistido
a partir da sua tag de event_type.

Eventos:
- TicketCreated: Novo ticket foi aberto
- TicketResolved: Ticket foi resolvido

Registro:
    EVENT_DECODERS mapeia a tag persistida para uma função pura
    que recebe o envelope do evento e devolve a variante tipada.
    Tags sem decoder geram UnknownEventTypeError.

    event = decode_event(
        "TicketCreated",
        aggregate_id="T1",
        event_id="...",
        occurred_on=datetime(...),
        payload={"ticket_id": "T1", "title": "...", ...},
    )
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, ClassVar, Dict, Mapping

from ticket_ledger.core.shared.events import DomainEvent, parse_timestamp
from ticket_ledger.core.shared.exceptions import (
    MalformedEventError,
    UnknownEventTypeError,
)


AGGREGATE_TYPE = "Ticket"


@dataclass(frozen=True)
class TicketCreated(DomainEvent):
    """
    Evento: Ticket foi aberto.

    Só é válido como primeiro evento do stream de um ticket.

    Attributes:
        title: Título do ticket
        description: Descrição do problema
        priority: "low", "medium" ou "high"
    """

    title: str = ""
    description: str = ""
    priority: str = ""

    event_type: ClassVar[str] = "TicketCreated"
    aggregate_type: ClassVar[str] = AGGREGATE_TYPE

    def __post_init__(self):
        super().__post_init__()
        if not self.title:
            raise MalformedEventError(self.event_type, "title é obrigatório")
        if not self.priority:
            raise MalformedEventError(self.event_type, "priority é obrigatório")
        if self.description is None:
            raise MalformedEventError(self.event_type, "description é obrigatório")

    def to_payload(self) -> Dict[str, Any]:
        return {
            "ticket_id": self.aggregate_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class TicketResolved(DomainEvent):
    """
    Evento: Ticket foi resolvido.

    Carrega apenas o ID do agregado e o momento da resolução.
    """

    event_type: ClassVar[str] = "TicketResolved"
    aggregate_type: ClassVar[str] = AGGREGATE_TYPE

    def to_payload(self) -> Dict[str, Any]:
        return {"ticket_id": self.aggregate_id}


# =============================================================================
# Decoders
# =============================================================================

def _require(payload: Mapping[str, Any], key: str, event_type: str) -> Any:
    try:
        return payload[key]
    except KeyError:
        raise MalformedEventError(event_type, f"campo ausente no payload: {key}") from None


def _decode_ticket_created(
    aggregate_id: str,
    event_id: str,
    occurred_on: datetime,
    version: int,
    payload: Mapping[str, Any],
) -> TicketCreated:
    return TicketCreated(
        aggregate_id=aggregate_id,
        event_id=event_id,
        occurred_on=occurred_on,
        version=version,
        title=_require(payload, "title", TicketCreated.event_type),
        description=_require(payload, "description", TicketCreated.event_type),
        priority=_require(payload, "priority", TicketCreated.event_type),
    )


def _decode_ticket_resolved(
    aggregate_id: str,
    event_id: str,
    occurred_on: datetime,
    version: int,
    payload: Mapping[str, Any],
) -> TicketResolved:
    return TicketResolved(
        aggregate_id=aggregate_id,
        event_id=event_id,
        occurred_on=occurred_on,
        version=version,
    )


EVENT_DECODERS: Dict[str, Callable[..., DomainEvent]] = {
    TicketCreated.event_type: _decode_ticket_created,
    TicketResolved.event_type: _decode_ticket_resolved,
}


def decode_event(
    event_type: str,
    *,
    aggregate_id: str,
    event_id: str,
    occurred_on: datetime,
    payload: Mapping[str, Any],
    version: int = 1,
) -> DomainEvent:
    """
    Decodifica um evento persistido para sua variante tipada.

    Args:
        event_type: Tag persistida (ex: "TicketCreated")
        aggregate_id: ID do agregado
        event_id: ID único do evento
        occurred_on: Momento do evento
        payload: Campos específicos do tipo
        version: Versão do schema

    Returns:
        Instância imutável do evento

    Raises:
        UnknownEventTypeError: Se a tag não tiver decoder
        MalformedEventError: Se faltar campo obrigatório
    """
    decoder = EVENT_DECODERS.get(event_type)
    if decoder is None:
        raise UnknownEventTypeError(event_type)
    if not isinstance(payload, Mapping):
        raise MalformedEventError(event_type, "payload deve ser um objeto")
    return decoder(aggregate_id, event_id, occurred_on, version, payload)


def event_from_dict(data: Dict[str, Any]) -> DomainEvent:
    """
    Reconstrói um evento serializado por DomainEvent.to_dict().

    Usado pelas tasks Celery ao receber um lote.
    """
    event_type = data.get("event_type", "")
    try:
        occurred_on = parse_timestamp(data["occurred_on"])
        aggregate_id = data["aggregate_id"]
        event_id = data["event_id"]
    except (KeyError, ValueError) as e:
        raise MalformedEventError(event_type, f"envelope inválido: {e}") from e
    return decode_event(
        event_type,
        aggregate_id=aggregate_id,
        event_id=event_id,
        occurred_on=occurred_on,
        payload=data.get("payload", {}),
        version=data.get("version", 1),
    )
