"""
Ports (Interfaces) do Domínio de Tickets.

Define os contratos que os Adapters de infraestrutura devem implementar
para o event store e para o read model de tickets.

Tipos de Ports:
- TicketEventStore: Lado de escrita (append-only, por agregado)
- TicketReadRepository: Lado de leitura (documentos desnormalizados)
- ListCacheInvalidator: Invalidação do cache de listagens

Princípio:
    Core define interfaces → Adapters implementam
    Dependências sempre apontam para o Core

Example:
    # No Adapter (Django)
    class DjangoTicketEventStore:
        def save(self, ticket: Ticket) -> List[DomainEvent]:
            ...
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable

from ticket_ledger.core.shared.events import DomainEvent
from ticket_ledger.core.shared.exceptions import (
    AggregateNotFoundError,
    ConcurrencyError,
    TicketAlreadyExistsError,
)
from .dtos import TicketReadModel, normalize_sort
from .entities import Ticket
from .events import AGGREGATE_TYPE


@runtime_checkable
class TicketEventStore(Protocol):
    """
    Interface para o event store de tickets.

    Implementações:
    - DjangoTicketEventStore (ORM, transação por save)
    - InMemoryTicketEventStore (para testes)

    Methods:
        save: Grava os eventos não-commitados do agregado
        load: Reconstrói o agregado a partir do histórico
        exists: Verifica se o stream tem eventos
        aggregate_ids: Lista os IDs com stream gravado
    """

    def save(self, ticket: Ticket) -> List[DomainEvent]:
        """
        Grava os eventos não-commitados numa única transação.

        Returns:
            Eventos gravados (lista vazia se não havia nada a gravar)

        Raises:
            ConcurrencyError: Se o stream avançou desde a leitura ou outro
                processo gravou o mesmo sequence_number
            TicketAlreadyExistsError: Se um TicketCreated for gravado num stream existente
            EventPersistenceFailedError: Em qualquer outra falha (nada é gravado)
        """
        ...

    def load(self, ticket_id: str) -> Ticket:
        """
        Reconstrói o ticket a partir de todos os seus eventos.

        Raises:
            AggregateNotFoundError: Se não houver eventos para o ID
            UnknownEventTypeError: Se algum evento não puder ser decodificado
        """
        ...

    def load_events(self, ticket_id: str) -> List[DomainEvent]:
        """
        Histórico decodificado do ticket, em ordem de sequence_number.

        Raises:
            AggregateNotFoundError: Se não houver eventos para o ID
        """
        ...

    def exists(self, ticket_id: str) -> bool:
        ...

    def aggregate_ids(self) -> List[str]:
        ...


@runtime_checkable
class TicketReadRepository(Protocol):
    """
    Interface para o read model de tickets.

    Methods:
        save: Upsert por ticket_id (created_at fixo, last_updated_at renovado)
        find_by_id: Leitura direta
        find_all: Listagem ordenada (order_by validado contra allow-list)
    """

    def save(self, document: TicketReadModel) -> None:
        ...

    def find_by_id(self, ticket_id: str) -> Optional[TicketReadModel]:
        ...

    def find_all(
        self,
        order_by: str = "created_at",
        order_direction: str = "desc",
    ) -> List[TicketReadModel]:
        ...


@runtime_checkable
class ListCacheInvalidator(Protocol):
    """Descarta todas as listagens em cache com uma única chamada."""

    def invalidate_list_cache(self) -> None:
        ...


# =============================================================================
# Implementações em memória
# =============================================================================

class InMemoryTicketEventStore:
    """
    Event store em memória com a mesma semântica do store Django.

    Útil para:
    - Testes unitários de use cases
    - Prototipagem

    Não usar em produção!

    Example:
        store = InMemoryTicketEventStore()
        store.save(Ticket.create("T1", "Fix login", "desc", "high"))
        ticket = store.load("T1")
    """

    def __init__(self):
        self._streams: Dict[str, List[Tuple[int, DomainEvent]]] = {}

    def save(self, ticket: Ticket) -> List[DomainEvent]:
        persisted_version = ticket.persisted_version
        events = ticket.pull_uncommitted_events()
        if not events:
            return []

        stream = self._streams.get(ticket.id, [])
        current = stream[-1][0] if stream else 0
        if persisted_version == 0 and current > 0:
            raise TicketAlreadyExistsError(ticket.id)
        if current != persisted_version:
            raise ConcurrencyError(
                f"Ticket {ticket.id} mudou desde a leitura. Recarregue e tente novamente.",
                aggregate_id=ticket.id,
            )

        records = [(current + offset, event) for offset, event in enumerate(events, start=1)]
        self._streams[ticket.id] = stream + records
        return list(events)

    def load(self, ticket_id: str) -> Ticket:
        return Ticket.reconstitute_from_history(ticket_id, self.load_events(ticket_id))

    def load_events(self, ticket_id: str) -> List[DomainEvent]:
        stream = self._streams.get(ticket_id)
        if not stream:
            raise AggregateNotFoundError(ticket_id, AGGREGATE_TYPE)
        return [event for _, event in stream]

    def exists(self, ticket_id: str) -> bool:
        return bool(self._streams.get(ticket_id))

    def aggregate_ids(self) -> List[str]:
        return sorted(self._streams)

    def sequence_numbers(self, ticket_id: str) -> List[int]:
        """Sequências gravadas para o ticket (útil para testes)."""
        return [sequence for sequence, _ in self._streams.get(ticket_id, [])]

    def events_for(self, ticket_id: str) -> List[DomainEvent]:
        return [event for _, event in self._streams.get(ticket_id, [])]

    def clear(self) -> None:
        """Limpa todos os dados (útil para testes)."""
        self._streams.clear()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryTicketReadRepository:
    """
    Read model em memória.

    Mantém created_at da primeira gravação e renova
    last_updated_at a cada save, como o store Django.
    """

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self._documents: Dict[str, TicketReadModel] = {}
        self._clock = clock
        self.save_calls = 0

    def save(self, document: TicketReadModel) -> None:
        self.save_calls += 1
        existing = self._documents.get(document.ticket_id)
        created_at = document.created_at
        if existing is not None and existing.created_at is not None:
            created_at = existing.created_at
        self._documents[document.ticket_id] = TicketReadModel(
            ticket_id=document.ticket_id,
            title=document.title,
            description=document.description,
            priority=document.priority,
            status=document.status,
            created_at=created_at or self._clock(),
            resolved_at=document.resolved_at,
            last_updated_at=self._clock(),
        )

    def find_by_id(self, ticket_id: str) -> Optional[TicketReadModel]:
        return self._documents.get(ticket_id)

    def find_all(
        self,
        order_by: str = "created_at",
        order_direction: str = "desc",
    ) -> List[TicketReadModel]:
        field_name, direction = normalize_sort(order_by, order_direction)
        present = [d for d in self._documents.values() if getattr(d, field_name) is not None]
        missing = [d for d in self._documents.values() if getattr(d, field_name) is None]
        present.sort(key=lambda d: getattr(d, field_name), reverse=(direction == "desc"))
        return present + missing

    def clear(self) -> None:
        self._documents.clear()
