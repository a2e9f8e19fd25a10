"""
Domain Events - Fatos imutáveis do domínio.

Este módulo define a infraestrutura base para Domain Events
e para o lote de eventos entregue aos consumidores assíncronos.

Características:
- Imutáveis após criação (frozen dataclasses)
- Auto-geração de ID e timestamp (UTC)
- Serializáveis para persistência/transporte
- Rastreáveis via aggregate_id

Pattern: Event Sourcing
    - O estado do agregado é o fold do seu histórico de eventos
    - EventStore.save() retorna os eventos efetivamente gravados
    - PersistedBatchNotification leva esse lote aos consumidores
    - Projector e Publisher processam o lote de forma idempotente
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, ClassVar, Dict, List, Tuple
import uuid

from .exceptions import MalformedEventError


def utc_now() -> datetime:
    """Momento atual com timezone UTC."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """
    Formato textual fixo usado nas mensagens do broker.

    Example:
        format_timestamp(dt)  # "2025-04-16T11:58:16+00:00"
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def parse_timestamp(value: Any) -> datetime:
    """Converte ISO 8601 (ou datetime) para datetime com timezone."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class DomainEvent(ABC):
    """
    Classe base abstrata para Domain Events.

    Um Domain Event representa algo significativo que aconteceu
    no domínio. Uma vez gravado no EventStore nunca é alterado
    nem removido.

    Attributes:
        aggregate_id: ID do agregado que gerou o evento
        event_id: Identificador único global do evento
        occurred_on: Momento em que o evento ocorreu
        version: Versão do schema do evento (para evolução)
        event_type: Tag persistida em event_type (por classe)
        aggregate_type: Tipo do agregado (por classe)

    Example:
        @dataclass(frozen=True)
        class TicketResolved(DomainEvent):
            event_type: ClassVar[str] = "TicketResolved"
            aggregate_type: ClassVar[str] = "Ticket"

            def to_payload(self):
                return {"ticket_id": self.aggregate_id}
    """

    aggregate_id: str = ""
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    occurred_on: datetime = field(default_factory=utc_now)
    version: int = 1

    event_type: ClassVar[str] = ""
    aggregate_type: ClassVar[str] = ""

    def __post_init__(self):
        """Validação após inicialização."""
        if not self.aggregate_id:
            raise MalformedEventError(self.event_type, "aggregate_id é obrigatório")
        if not self.event_id:
            raise MalformedEventError(self.event_type, "event_id é obrigatório")

    @abstractmethod
    def to_payload(self) -> Dict[str, Any]:
        """
        Campos específicos do tipo de evento.

        É exatamente o que vai para a coluna payload do EventStore
        e para o corpo da mensagem publicada no broker.
        """
        raise NotImplementedError

    def to_dict(self) -> Dict[str, Any]:
        """
        Serializa evento para dicionário (transporte via Celery).

        Returns:
            Dicionário JSON-compatível com envelope e payload
        """
        return {
            "event_id": self.event_id,
            "event_type": self.event_type,
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "occurred_on": self.occurred_on.isoformat(),
            "version": self.version,
            "payload": self.to_payload(),
        }

    def __repr__(self) -> str:
        return (
            f"{self.event_type}("
            f"event_id={self.event_id[:8]}..., "
            f"aggregate_id={self.aggregate_id})"
        )


# =============================================================================
# Lote entregue aos consumidores
# =============================================================================

EventDecoder = Callable[[Dict[str, Any]], DomainEvent]


@dataclass(frozen=True)
class PersistedBatchNotification:
    """
    Eventos gravados por uma única chamada a EventStore.save().

    É a unidade de trabalho entregue ao Projector e ao Publisher.
    A ordem de `events` é a ordem persistida (sequence_number).

    Attributes:
        aggregate_id: ID do agregado
        aggregate_type: Tipo do agregado (ex: "Ticket")
        events: Eventos em ordem de persistência
    """

    aggregate_id: str
    aggregate_type: str
    events: Tuple[DomainEvent, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "events", tuple(self.events))

    @property
    def event_ids(self) -> List[str]:
        return [event.event_id for event in self.events]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "aggregate_id": self.aggregate_id,
            "aggregate_type": self.aggregate_type,
            "events": [event.to_dict() for event in self.events],
        }

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        decoder: EventDecoder,
    ) -> "PersistedBatchNotification":
        """
        Reconstrói o lote recebido de um transporte assíncrono.

        Args:
            data: Resultado de to_dict()
            decoder: Função que decodifica cada evento serializado

        Raises:
            UnknownEventTypeError: Se algum evento não tiver decoder
            MalformedEventError: Se algum evento estiver incompleto
        """
        return cls(
            aggregate_id=data["aggregate_id"],
            aggregate_type=data["aggregate_type"],
            events=tuple(decoder(item) for item in data.get("events", [])),
        )


@dataclass
class BatchReport:
    """
    Resultado do processamento de um lote por um consumidor.

    Falhas por evento ficam registradas aqui em vez de subir
    como exceção; a camada de entrega decide se reentrega o lote.
    """

    consumer: str
    aggregate_id: str = ""
    applied: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def has_failures(self) -> bool:
        return bool(self.failed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "consumer": self.consumer,
            "aggregate_id": self.aggregate_id,
            "applied": list(self.applied),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
        }
