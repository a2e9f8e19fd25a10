"""
Mappers para conversão entre o Core e os Models Django.

Responsabilidades:
- Converter DomainEvent → StoredEventModel (para o Event Store)
- Converter StoredEventModel → DomainEvent (para reconstruir o agregado)
- Converter TicketReadModelRecord ↔ TicketReadModel (lado de leitura)

Princípios:
- Mappers são stateless
- Não contêm lógica de negócio
- Tratam apenas conversão de dados
"""

from typing import Any, Dict, List
import json

from ticket_ledger.core.shared.events import DomainEvent
from ticket_ledger.core.shared.exceptions import MalformedEventError
from ticket_ledger.core.tickets.dtos import TicketReadModel
from ticket_ledger.core.tickets.events import decode_event

from .models import StoredEventModel, TicketReadModelRecord


def encode_payload(payload: Dict[str, Any]) -> bytes:
    """Payload do evento como JSON em UTF-8 (chaves ordenadas)."""
    return json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")


def decode_payload(raw: Any, event_type: str) -> Dict[str, Any]:
    """
    Inverso de encode_payload.

    Raises:
        MalformedEventError: Se os bytes não forem JSON válido
    """
    try:
        return json.loads(bytes(raw).decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedEventError(event_type, f"payload ilegível: {e}") from e


class StoredEventMapper:
    """
    Mapper entre DomainEvent e StoredEventModel.

    - to_model(): Evento → registro (não salvo)
    - to_event(): Registro → evento tipado via EVENT_DECODERS
    """

    @staticmethod
    def to_model(
        event: DomainEvent,
        sequence_number: int,
        aggregate_type: str = "Ticket",
    ) -> StoredEventModel:
        """
        Converte evento para registro do Event Store.

        Args:
            event: Evento emitido pelo agregado
            sequence_number: Posição no stream (1, 2, 3, ...)
            aggregate_type: Valor gravado em aggregate_type

        Returns:
            Model ainda não persistido
        """
        return StoredEventModel(
            aggregate_id=event.aggregate_id,
            aggregate_type=aggregate_type,
            event_type=event.event_type,
            event_id=event.event_id,
            payload=encode_payload(event.to_payload()),
            sequence_number=sequence_number,
            occurred_on=event.occurred_on,
            version=event.version,
        )

    @staticmethod
    def to_event(model: StoredEventModel) -> DomainEvent:
        """
        Converte registro para evento tipado.

        Raises:
            UnknownEventTypeError: Se event_type não tiver decoder
            MalformedEventError: Se o payload estiver corrompido
        """
        return decode_event(
            model.event_type,
            aggregate_id=model.aggregate_id,
            event_id=model.event_id,
            occurred_on=model.occurred_on,
            payload=decode_payload(model.payload, model.event_type),
            version=model.version,
        )

    @staticmethod
    def to_event_list(models) -> List[DomainEvent]:
        return [StoredEventMapper.to_event(model) for model in models]


class TicketReadModelMapper:
    """Mapper entre TicketReadModelRecord e TicketReadModel."""

    @staticmethod
    def to_document(record: TicketReadModelRecord) -> TicketReadModel:
        return TicketReadModel(
            ticket_id=record.ticket_id,
            title=record.title,
            description=record.description,
            priority=record.priority,
            status=record.status,
            created_at=record.created_at,
            resolved_at=record.resolved_at,
            last_updated_at=record.last_updated_at,
        )

    @staticmethod
    def to_fields(document: TicketReadModel) -> Dict[str, Any]:
        """
        Campos atualizáveis do documento.

        created_at fica de fora: é gravado só na inserção.
        """
        return {
            "title": document.title,
            "description": document.description,
            "priority": document.priority,
            "status": document.status,
            "resolved_at": document.resolved_at,
        }
