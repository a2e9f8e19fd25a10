"""
Entidades do Domínio de Tickets.

Este módulo define o agregado Ticket, cujo estado é sempre o
left-fold do seu histórico de eventos.

Entidades:
- Ticket: Agregado event-sourced
- TicketStatus: Estados possíveis de um ticket
- TicketPriority: Níveis de prioridade

Regras de Negócio Encapsuladas:
- Validação de dados na abertura
- Transição única open → resolved
- Nenhum campo é alterado fora da aplicação de um evento
"""

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional

from ticket_ledger.core.shared.events import DomainEvent
from ticket_ledger.core.shared.exceptions import (
    InvalidTicketStateError,
    MalformedEventError,
    ValidationError,
)
from .events import TicketCreated, TicketResolved


class TicketStatus(Enum):
    """
    Estados possíveis de um ticket.

    Fluxo de Estados:
        OPEN → RESOLVED
    """

    OPEN = "open"
    RESOLVED = "resolved"

    @classmethod
    def from_string(cls, value: str) -> "TicketStatus":
        """
        Converte string para enum.

        Args:
            value: Nome ("OPEN") ou valor ("open")

        Raises:
            ValueError: Se valor inválido
        """
        for status in cls:
            if value and (status.value == value.lower() or status.name == value.upper()):
                return status
        raise ValueError(f"Status inválido: {value}")


class TicketPriority(Enum):
    """Níveis de prioridade."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_string(cls, value: str) -> "TicketPriority":
        """
        Converte string para enum.

        Args:
            value: Nome ("HIGH") ou valor ("high")

        Raises:
            ValueError: Se valor inválido
        """
        for priority in cls:
            if value and (priority.value == value.lower() or priority.name == value.upper()):
                return priority
        raise ValueError(f"Prioridade inválida: {value}")

    @classmethod
    def allowed_values(cls) -> List[str]:
        return [priority.value for priority in cls]


class Ticket:
    """
    Agregado: Ticket de suporte.

    O único caminho de mutação é aplicar um evento. Métodos de
    negócio validam invariantes, registram o evento no buffer de
    não-commitados e o aplicam imediatamente.

    Invariantes:
    - status=RESOLVED implica resolved_at preenchido
    - status só transita OPEN → RESOLVED
    - TicketCreated só é válido como primeiro evento
    - TicketResolved só é válido uma vez, após TicketCreated

    Attributes:
        id: Identificador do ticket (aggregate_id)
        title: Título
        description: Descrição
        priority: TicketPriority
        status: TicketStatus (None antes do primeiro evento)
        created_at: Momento de abertura
        resolved_at: Momento de resolução
        version: Quantidade de eventos aplicados

    Example:
        ticket = Ticket.create("T1", "Fix login", "desc", "high")
        ticket.resolve()
        events = ticket.pull_uncommitted_events()  # [Created, Resolved]
    """

    ID_MAX_LENGTH = 64
    TITLE_MAX_LENGTH = 255

    def __init__(self, ticket_id: str):
        self._id = ticket_id
        self._title: Optional[str] = None
        self._description: Optional[str] = None
        self._priority: Optional[TicketPriority] = None
        self._status: Optional[TicketStatus] = None
        self._created_at: Optional[datetime] = None
        self._resolved_at: Optional[datetime] = None
        self._version = 0
        self._uncommitted_events: List[DomainEvent] = []

    # =========================================================================
    # Factory / Replay
    # =========================================================================

    @classmethod
    def create(
        cls,
        ticket_id: str,
        title: str,
        description: str,
        priority,
    ) -> "Ticket":
        """
        Abre um novo ticket.

        Args:
            ticket_id: Identificador do ticket (até ID_MAX_LENGTH caracteres)
            title: Título (obrigatório, até TITLE_MAX_LENGTH caracteres)
            description: Descrição
            priority: TicketPriority ou string ("low", "medium", "high")

        Returns:
            Ticket com TicketCreated no buffer de não-commitados

        Raises:
            ValidationError: Se dados de entrada inválidos
        """
        if not ticket_id or not str(ticket_id).strip():
            raise ValidationError("ID do ticket é obrigatório", field="id")
        if len(str(ticket_id)) > cls.ID_MAX_LENGTH:
            raise ValidationError(
                f"ID do ticket deve ter no máximo {cls.ID_MAX_LENGTH} caracteres", field="id"
            )
        if not title or not title.strip():
            raise ValidationError("Título é obrigatório", field="title")
        if len(title.strip()) > cls.TITLE_MAX_LENGTH:
            raise ValidationError(
                f"Título deve ter no máximo {cls.TITLE_MAX_LENGTH} caracteres", field="title"
            )
        if description is None:
            raise ValidationError("Descrição é obrigatória", field="description")

        if isinstance(priority, TicketPriority):
            parsed_priority = priority
        else:
            try:
                parsed_priority = TicketPriority.from_string(priority)
            except (ValueError, AttributeError):
                raise ValidationError(
                    f"Prioridade inválida: {priority}. "
                    f"Use uma de {TicketPriority.allowed_values()}",
                    field="priority",
                ) from None

        ticket = cls(ticket_id)
        ticket._record_that(
            TicketCreated(
                aggregate_id=ticket_id,
                title=title.strip(),
                description=description,
                priority=parsed_priority.value,
            )
        )
        return ticket

    @classmethod
    def reconstitute_from_history(
        cls,
        ticket_id: str,
        events: Iterable[DomainEvent],
    ) -> "Ticket":
        """
        Reconstrói o ticket aplicando o histórico em ordem.

        Os eventos são aplicados sem entrar no buffer de
        não-commitados. Usado exclusivamente pelo EventStore.load().

        Raises:
            MalformedEventError: Se algum evento estiver inconsistente
        """
        ticket = cls(ticket_id)
        for event in events:
            ticket._apply(event)
        return ticket

    # =========================================================================
    # Comportamento
    # =========================================================================

    def resolve(self) -> None:
        """
        Resolve o ticket.

        Raises:
            InvalidTicketStateError: Se o ticket não estiver aberto
        """
        if self._status is not TicketStatus.OPEN:
            raise InvalidTicketStateError(
                f"O ticket {self._id} já está resolvido ou foi fechado.",
                ticket_id=self._id,
            )
        self._record_that(TicketResolved(aggregate_id=self._id))

    def pull_uncommitted_events(self) -> List[DomainEvent]:
        """
        Retorna e limpa o buffer de eventos não-commitados.

        Cada evento emitido localmente é devolvido exatamente uma vez.
        """
        events = self._uncommitted_events
        self._uncommitted_events = []
        return events

    @property
    def has_uncommitted_events(self) -> bool:
        return bool(self._uncommitted_events)

    # =========================================================================
    # Aplicação de eventos
    # =========================================================================

    def _record_that(self, event: DomainEvent) -> None:
        self._apply(event)
        self._uncommitted_events.append(event)

    def _apply(self, event: DomainEvent) -> None:
        if event.aggregate_id != self._id:
            raise MalformedEventError(
                event.event_type,
                f"aggregate_id {event.aggregate_id} não pertence ao ticket {self._id}",
            )

        if isinstance(event, TicketCreated):
            self._apply_created(event)
        elif isinstance(event, TicketResolved):
            self._apply_resolved(event)
        # Tipos desconhecidos são ignorados (compatibilidade futura)

        self._version += 1

    def _apply_created(self, event: TicketCreated) -> None:
        if self._status is not None:
            raise MalformedEventError(event.event_type, "ticket já foi criado")
        try:
            priority = TicketPriority.from_string(event.priority)
        except ValueError as e:
            raise MalformedEventError(event.event_type, str(e)) from e

        self._title = event.title
        self._description = event.description
        self._priority = priority
        self._status = TicketStatus.OPEN
        self._created_at = event.occurred_on
        self._resolved_at = None

    def _apply_resolved(self, event: TicketResolved) -> None:
        if self._status is None:
            raise MalformedEventError(event.event_type, "ticket resolvido antes de ser criado")
        if self._status is TicketStatus.RESOLVED:
            raise MalformedEventError(event.event_type, "ticket já foi resolvido")
        self._status = TicketStatus.RESOLVED
        self._resolved_at = event.occurred_on

    # =========================================================================
    # Leitura
    # =========================================================================

    @property
    def id(self) -> str:
        return self._id

    @property
    def title(self) -> Optional[str]:
        return self._title

    @property
    def description(self) -> Optional[str]:
        return self._description

    @property
    def priority(self) -> Optional[TicketPriority]:
        return self._priority

    @property
    def status(self) -> Optional[TicketStatus]:
        return self._status

    @property
    def created_at(self) -> Optional[datetime]:
        return self._created_at

    @property
    def resolved_at(self) -> Optional[datetime]:
        return self._resolved_at

    @property
    def version(self) -> int:
        """Quantidade de eventos aplicados (históricos + novos)."""
        return self._version

    @property
    def persisted_version(self) -> int:
        """Quantidade de eventos que vieram do EventStore."""
        return self._version - len(self._uncommitted_events)

    @property
    def is_resolved(self) -> bool:
        return self._status is TicketStatus.RESOLVED

    def snapshot(self) -> dict:
        """Estado atual como dicionário (comparação e debug)."""
        return {
            "id": self._id,
            "title": self._title,
            "description": self._description,
            "priority": self._priority.value if self._priority else None,
            "status": self._status.value if self._status else None,
            "created_at": self._created_at,
            "resolved_at": self._resolved_at,
        }

    def __eq__(self, other) -> bool:
        if not isinstance(other, Ticket):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    __hash__ = None

    def __repr__(self) -> str:
        status = self._status.value if self._status else None
        return f"Ticket(id={self._id!r}, status={status!r}, version={self._version})"
