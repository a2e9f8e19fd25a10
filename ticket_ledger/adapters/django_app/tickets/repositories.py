"""
Repositórios Django para o domínio de Tickets.

Implementam as interfaces (Ports) definidas em ticket_ledger/core/tickets/ports.py.
São DRIVEN ADAPTERS - acionados pelo Core em resposta a operações.

Componentes:
- DjangoTicketEventStore: Log append-only de eventos por agregado
- DjangoTicketReadRepository: Documentos desnormalizados (lado de leitura)

Princípios:
- Repository não contém lógica de negócio
- Usa Mapper para conversões
- Erros do driver sobem embrulhados em exceções do Core
"""

from typing import List, Optional
import logging

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F, Max
from django.utils import timezone

from ticket_ledger.config.structs import EventStoreConfig, ReadModelConfig
from ticket_ledger.core.shared.events import DomainEvent
from ticket_ledger.core.shared.exceptions import (
    AggregateNotFoundError,
    ConcurrencyError,
    DomainException,
    EventLoadFailedError,
    EventPersistenceFailedError,
    ReadModelPersistenceError,
    TicketAlreadyExistsError,
)
from ticket_ledger.core.tickets.dtos import TicketReadModel, normalize_sort
from ticket_ledger.core.tickets.entities import Ticket

from .mappers import StoredEventMapper, TicketReadModelMapper
from .models import StoredEventModel, TicketReadModelRecord

logger = logging.getLogger(__name__)


class DjangoTicketEventStore:
    """
    Event Store de tickets usando Django ORM.

    Cada save() roda numa única transação: lê o maior sequence_number
    do agregado, numera os novos eventos em sequência e insere todos.
    Qualquer falha desfaz a transação inteira.

    Um ticket carregado na versão N só grava se o stream ainda estiver
    em N; caso contrário ConcurrencyError.

    O índice único (aggregate_id, sequence_number) é a proteção contra
    dois escritores concorrentes: o perdedor recebe ConcurrencyError.

    Example:
        store = DjangoTicketEventStore(EventStoreConfig())
        ticket = Ticket.create("T1", "Fix login", "...", "high")
        store.save(ticket)

        ticket = store.load("T1")
        ticket.resolve()
        store.save(ticket)
    """

    def __init__(self, config: Optional[EventStoreConfig] = None):
        self.config = config or EventStoreConfig()
        self._mapper = StoredEventMapper()

    def save(self, ticket: Ticket) -> List[DomainEvent]:
        """
        Grava os eventos não-commitados do ticket.

        Returns:
            Eventos gravados, em ordem (vazio se não havia nada)

        Raises:
            TicketAlreadyExistsError: TicketCreated num stream existente
            ConcurrencyError: Stream avançou desde a leitura ou sequence_number
                já ocupado por outro escritor
            EventPersistenceFailedError: event_id repetido ou qualquer outra
                falha (rollback total)
        """
        persisted_version = ticket.persisted_version
        events = ticket.pull_uncommitted_events()
        if not events:
            logger.debug(f"Nothing to save for ticket {ticket.id}")
            return []

        logger.debug(f"Saving {len(events)} event(s) for ticket {ticket.id}")

        try:
            with transaction.atomic(using=self.config.database_alias):
                current = self._last_sequence_number(ticket.id)
                if persisted_version == 0 and current > 0:
                    raise TicketAlreadyExistsError(ticket.id)
                if current != persisted_version:
                    logger.warning(
                        f"Stale write for ticket {ticket.id}: "
                        f"loaded at {persisted_version}, stream at {current}"
                    )
                    raise ConcurrencyError(
                        f"Ticket {ticket.id} mudou desde a leitura. Recarregue e tente novamente.",
                        aggregate_id=ticket.id,
                    )

                for offset, event in enumerate(events, start=1):
                    model = self._mapper.to_model(
                        event,
                        sequence_number=current + offset,
                        aggregate_type=self.config.aggregate_type,
                    )
                    self._insert_record(model)
        except DomainException:
            raise
        except IntegrityError as e:
            if self._event_id_taken(events):
                logger.error(f"Duplicate event_id for ticket {ticket.id}: {e}", exc_info=True)
                raise EventPersistenceFailedError(ticket.id, cause=e) from e
            logger.warning(f"Concurrent write detected for ticket {ticket.id}: {e}")
            raise ConcurrencyError(
                f"Outro processo gravou eventos do ticket {ticket.id}. Recarregue e tente novamente.",
                aggregate_id=ticket.id,
            ) from e
        except Exception as e:
            logger.error(f"Failed to save events for ticket {ticket.id}: {e}", exc_info=True)
            raise EventPersistenceFailedError(ticket.id, cause=e) from e

        logger.info(
            f"Stored {len(events)} event(s) for ticket {ticket.id} "
            f"(sequence {current + 1}..{current + len(events)})"
        )
        return list(events)

    def load(self, ticket_id: str) -> Ticket:
        """
        Reconstrói o ticket a partir do seu histórico.

        Raises:
            AggregateNotFoundError: Se não houver eventos
            UnknownEventTypeError: Se algum registro não tiver decoder
            MalformedEventError: Se algum registro estiver corrompido
        """
        return Ticket.reconstitute_from_history(ticket_id, self.load_events(ticket_id))

    def load_events(self, ticket_id: str) -> List[DomainEvent]:
        """Histórico decodificado, em ordem de sequence_number."""
        try:
            models = list(
                self._records()
                .filter(aggregate_id=ticket_id)
                .order_by("sequence_number")
            )
        except DatabaseError as e:
            logger.error(f"Failed to load events for ticket {ticket_id}: {e}", exc_info=True)
            raise EventLoadFailedError(ticket_id, cause=e) from e

        if not models:
            raise AggregateNotFoundError(ticket_id, self.config.aggregate_type)

        return self._mapper.to_event_list(models)

    def exists(self, ticket_id: str) -> bool:
        return self._records().filter(aggregate_id=ticket_id).exists()

    def aggregate_ids(self) -> List[str]:
        return list(
            self._records()
            .filter(aggregate_type=self.config.aggregate_type)
            .order_by("aggregate_id")
            .values_list("aggregate_id", flat=True)
            .distinct()
        )

    def _records(self):
        return StoredEventModel.objects.using(self.config.database_alias)

    def _last_sequence_number(self, ticket_id: str) -> int:
        result = self._records().filter(aggregate_id=ticket_id).aggregate(
            last=Max("sequence_number")
        )
        return result["last"] or 0

    def _insert_record(self, model: StoredEventModel) -> None:
        model.save(using=self.config.database_alias, force_insert=True)

    def _event_id_taken(self, events: List[DomainEvent]) -> bool:
        return self._records().filter(
            event_id__in=[event.event_id for event in events]
        ).exists()


class DjangoTicketReadRepository:
    """
    Read model de tickets usando Django ORM.

    save() é um upsert por ticket_id: created_at é gravado apenas
    na inserção e last_updated_at é renovado a cada gravação.

    Example:
        repo = DjangoTicketReadRepository(ReadModelConfig())
        repo.save(document)
        repo.find_all(order_by="priority", order_direction="asc")
    """

    def __init__(self, config: Optional[ReadModelConfig] = None):
        self.config = config or ReadModelConfig()
        self._mapper = TicketReadModelMapper()

    def save(self, document: TicketReadModel) -> None:
        """
        Raises:
            ReadModelPersistenceError: Se o banco falhar
        """
        fields = self._mapper.to_fields(document)
        try:
            with transaction.atomic(using=self.config.database_alias):
                record, created = self._records().select_for_update().get_or_create(
                    ticket_id=document.ticket_id,
                    defaults={**fields, "created_at": document.created_at or timezone.now()},
                )
                if not created:
                    for name, value in fields.items():
                        setattr(record, name, value)
                    record.save(using=self.config.database_alias)
        except DatabaseError as e:
            logger.error(f"Failed to save read model for ticket {document.ticket_id}: {e}")
            raise ReadModelPersistenceError(document.ticket_id, cause=e) from e

        logger.debug(
            f"Read model {'inserted' if created else 'updated'}: "
            f"{document.ticket_id} ({document.status})"
        )

    def find_by_id(self, ticket_id: str) -> Optional[TicketReadModel]:
        try:
            record = self._records().get(ticket_id=ticket_id)
        except TicketReadModelRecord.DoesNotExist:
            logger.debug(f"Read model not found: {ticket_id}")
            return None
        return self._mapper.to_document(record)

    def find_all(
        self,
        order_by: str = "created_at",
        order_direction: str = "desc",
    ) -> List[TicketReadModel]:
        """
        Lista documentos ordenados.

        order_by é validado contra a allow-list antes de chegar ao ORM.
        Valores nulos (resolved_at de tickets abertos) ficam por último.
        """
        field_name, direction = normalize_sort(order_by, order_direction)
        if direction == "asc":
            ordering = F(field_name).asc(nulls_last=True)
        else:
            ordering = F(field_name).desc(nulls_last=True)

        records = self._records().order_by(ordering, "ticket_id")
        return [self._mapper.to_document(record) for record in records]

    def _records(self):
        return TicketReadModelRecord.objects.using(self.config.database_alias)
