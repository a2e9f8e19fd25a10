"""
Use Cases (Application Services) do Domínio de Tickets.

Este módulo contém os casos de uso da aplicação, que orquestram
o agregado, o event store, o read model e o despacho de lotes.

Use Cases implementados:
- CreateTicketService: Abre novo ticket
- ResolveTicketService: Resolve ticket aberto
- GetTicketService: Obtém documento do read model
- ListTicketsService: Lista documentos ordenados
- RebuildTicketReadModelService: Reconstrói o read model a partir dos eventos

Fluxo de escrita:
    load/create → método de negócio → EventStore.save()
    → PersistedBatchNotification → EventDispatcher

Princípios:
- Um Use Case = Uma operação de negócio
- Dependências injetadas (DI)
- Sem lógica de infraestrutura
"""

from typing import List, Optional
import uuid

from ticket_ledger.core.shared.events import DomainEvent, PersistedBatchNotification
from ticket_ledger.core.shared.exceptions import EntityNotFoundError, MalformedEventError
from ticket_ledger.core.shared.interfaces import EventDispatcher

from .dtos import (
    CreateTicketCommand,
    ListTicketsQuery,
    ResolveTicketCommand,
    TicketOutputDTO,
    TicketReadModel,
)
from .entities import Ticket
from .events import AGGREGATE_TYPE, TicketCreated
from .ports import ListCacheInvalidator, TicketEventStore, TicketReadRepository
from .projections import build_read_model


class _WriteService:
    """Base dos use cases de escrita: grava e despacha o lote."""

    def __init__(
        self,
        event_store: TicketEventStore,
        dispatcher: Optional[EventDispatcher] = None,
    ):
        self.event_store = event_store
        self.dispatcher = dispatcher

    def _save_and_dispatch(self, ticket: Ticket) -> List[DomainEvent]:
        events = self.event_store.save(ticket)
        if events and self.dispatcher is not None:
            self.dispatcher.dispatch(
                PersistedBatchNotification(
                    aggregate_id=ticket.id,
                    aggregate_type=AGGREGATE_TYPE,
                    events=events,
                )
            )
        return events


class CreateTicketService(_WriteService):
    """
    Use Case: Abrir um novo ticket.

    Fluxo:
    1. Gerar ID (se não informado)
    2. Criar agregado (emite TicketCreated)
    3. Gravar eventos no EventStore
    4. Despachar lote para Projector e Publisher
    5. Retornar DTO de saída

    Example:
        service = CreateTicketService(event_store, dispatcher)
        output = service.execute(
            CreateTicketCommand(title="Fix login", description="...", priority="high")
        )
        print(output.id)
    """

    def execute(self, command: CreateTicketCommand) -> TicketOutputDTO:
        """
        Args:
            command: Dados do ticket

        Returns:
            DTO com o estado do ticket aberto

        Raises:
            ValidationError: Se dados inválidos
            TicketAlreadyExistsError: Se o ID já tiver stream
            PersistenceError: Se a gravação falhar
        """
        ticket_id = command.ticket_id or str(uuid.uuid4())
        ticket = Ticket.create(
            ticket_id=ticket_id,
            title=command.title,
            description=command.description,
            priority=command.priority,
        )
        self._save_and_dispatch(ticket)
        return TicketOutputDTO.from_aggregate(ticket)


class ResolveTicketService(_WriteService):
    """
    Use Case: Resolver um ticket aberto.

    Example:
        service = ResolveTicketService(event_store, dispatcher)
        output = service.execute(ResolveTicketCommand(ticket_id="T1"))
        output.status  # "resolved"
    """

    def execute(self, command: ResolveTicketCommand) -> TicketOutputDTO:
        """
        Raises:
            AggregateNotFoundError: Se o ticket não existir
            InvalidTicketStateError: Se o ticket não estiver aberto
            ConcurrencyError: Se outro processo gravou antes
        """
        ticket = self.event_store.load(command.ticket_id)
        ticket.resolve()
        self._save_and_dispatch(ticket)
        return TicketOutputDTO.from_aggregate(ticket)


class GetTicketService:
    """Use Case: Obter documento do read model por ID."""

    def __init__(self, read_repository: TicketReadRepository):
        self.read_repository = read_repository

    def execute(self, ticket_id: str) -> TicketReadModel:
        document = self.read_repository.find_by_id(ticket_id)
        if document is None:
            raise EntityNotFoundError(
                f"Ticket {ticket_id} não encontrado",
                entity_type=AGGREGATE_TYPE,
                entity_id=ticket_id,
            )
        return document


class ListTicketsService:
    """
    Use Case: Listar documentos do read model.

    A ordenação é validada contra a allow-list; valores
    inválidos caem em created_at desc.
    """

    def __init__(self, read_repository: TicketReadRepository):
        self.read_repository = read_repository

    def execute(self, query: Optional[ListTicketsQuery] = None) -> List[TicketReadModel]:
        order_by, order_direction = (query or ListTicketsQuery()).normalized()
        return self.read_repository.find_all(order_by, order_direction)


class RebuildTicketReadModelService:
    """
    Use Case: Reconstruir o read model a partir do EventStore.

    Caminho de reparo para qualquer divergência detectada:
    replay de EventStore.load_events(id) pela mesma função de projeção
    usada pelo Projector.

    Example:
        service = RebuildTicketReadModelService(event_store, read_repo, read_repo)
        service.execute("T1")
        service.rebuild_all()
    """

    def __init__(
        self,
        event_store: TicketEventStore,
        read_repository: TicketReadRepository,
        list_cache: Optional[ListCacheInvalidator] = None,
    ):
        self.event_store = event_store
        self.read_repository = read_repository
        self.list_cache = list_cache

    def execute(self, ticket_id: str) -> TicketReadModel:
        """
        Reconstrói o documento de um ticket.

        Raises:
            AggregateNotFoundError: Se o ticket não existir
            UnknownEventTypeError: Se o histórico não puder ser decodificado
        """
        document = self._rebuild(ticket_id)
        self._invalidate()
        return document

    def rebuild_all(self) -> List[str]:
        """
        Reconstrói todos os tickets do EventStore.

        Returns:
            IDs reconstruídos
        """
        rebuilt = [self._rebuild(ticket_id) for ticket_id in self.event_store.aggregate_ids()]
        if rebuilt:
            self._invalidate()
        return [document.ticket_id for document in rebuilt]

    def _rebuild(self, ticket_id: str) -> TicketReadModel:
        document = build_read_model(self.event_store.load_events(ticket_id))
        if document is None:
            raise MalformedEventError(
                TicketCreated.event_type,
                f"histórico do ticket {ticket_id} não contém TicketCreated",
            )
        self.read_repository.save(document)
        return document

    def _invalidate(self) -> None:
        if self.list_cache is not None:
            self.list_cache.invalidate_list_cache()
