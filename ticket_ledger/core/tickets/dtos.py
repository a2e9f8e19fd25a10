"""
Data Transfer Objects (DTOs) do Domínio de Tickets.

DTOs são estruturas simples para transportar dados entre camadas,
evitando vazamento do agregado para camadas externas.

Tipos de DTOs:
- Commands: Entrada dos use cases de escrita
- Query DTOs: Parâmetros de listagem (ordenação validada)
- TicketReadModel: Documento desnormalizado do lado de leitura
- TicketOutputDTO: Estado do agregado após um comando
"""

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Tuple

from .entities import Ticket, TicketPriority, TicketStatus


# Campos aceitos em find_all(order_by=...)
SORTABLE_FIELDS = (
    "ticket_id",
    "title",
    "priority",
    "status",
    "created_at",
    "resolved_at",
    "last_updated_at",
)
DEFAULT_ORDER_BY = "created_at"
DEFAULT_ORDER_DIRECTION = "desc"


def normalize_sort(order_by: Optional[str], order_direction: Optional[str]) -> Tuple[str, str]:
    """
    Valida parâmetros de ordenação contra a allow-list.

    Valores fora da lista caem no padrão seguro (created_at desc).

    Example:
        normalize_sort("title", "ASC")       # ("title", "asc")
        normalize_sort("; drop", "sideways") # ("created_at", "desc")
    """
    field_name = (order_by or "").strip().lower()
    if field_name not in SORTABLE_FIELDS:
        field_name = DEFAULT_ORDER_BY

    direction = (order_direction or "").strip().lower()
    if direction not in ("asc", "desc"):
        direction = DEFAULT_ORDER_DIRECTION

    return field_name, direction


# =============================================================================
# COMMANDS (Entrada)
# =============================================================================

@dataclass(frozen=True)
class CreateTicketCommand:
    """
    Comando para abrir ticket.

    Attributes:
        title: Título do ticket
        description: Descrição do problema
        priority: "low", "medium" ou "high"
        ticket_id: ID desejado (gerado pelo use case se None)
    """

    title: str
    description: str
    priority: str = TicketPriority.MEDIUM.value
    ticket_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "ticket_id": self.ticket_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
        }


@dataclass(frozen=True)
class ResolveTicketCommand:
    """Comando para resolver ticket."""

    ticket_id: str

    def to_dict(self) -> dict:
        return {"ticket_id": self.ticket_id}


@dataclass(frozen=True)
class ListTicketsQuery:
    """
    Parâmetros de listagem.

    Attributes:
        order_by: Campo de ordenação (ver SORTABLE_FIELDS)
        order_direction: "asc" ou "desc"
    """

    order_by: str = DEFAULT_ORDER_BY
    order_direction: str = DEFAULT_ORDER_DIRECTION

    def normalized(self) -> Tuple[str, str]:
        return normalize_sort(self.order_by, self.order_direction)


# =============================================================================
# READ MODEL
# =============================================================================

@dataclass(frozen=True)
class TicketReadModel:
    """
    Documento desnormalizado de um ticket.

    Derivado dos eventos, eventualmente consistente e reconstruível
    a partir do EventStore a qualquer momento.

    Attributes:
        ticket_id: ID do ticket
        title: Título
        description: Descrição
        priority: "low", "medium" ou "high"
        status: "open" ou "resolved"
        created_at: Abertura (gravado uma única vez pelo store)
        resolved_at: Resolução (None enquanto aberto)
        last_updated_at: Última gravação (preenchido pelo store)
    """

    ticket_id: str
    title: str
    description: str
    priority: str
    status: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    last_updated_at: Optional[datetime] = None

    @property
    def is_resolved(self) -> bool:
        return self.status == TicketStatus.RESOLVED.value

    def resolved(self, resolved_at: datetime) -> "TicketReadModel":
        """Cópia com status=resolved e resolved_at preenchido."""
        return replace(self, status=TicketStatus.RESOLVED.value, resolved_at=resolved_at)

    def to_dict(self) -> dict:
        return {
            "ticket_id": self.ticket_id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "last_updated_at": (
                self.last_updated_at.isoformat() if self.last_updated_at else None
            ),
        }


# =============================================================================
# OUTPUT DTOs (Saída)
# =============================================================================

@dataclass(frozen=True)
class TicketOutputDTO:
    """
    Estado do agregado devolvido pelos use cases de escrita.

    Attributes:
        id: ID do ticket
        title: Título
        description: Descrição
        priority: Prioridade (string)
        status: Status (string)
        created_at: Abertura
        resolved_at: Resolução
        version: Eventos no stream após o comando
    """

    id: str
    title: str
    description: str
    priority: str
    status: str
    created_at: datetime
    resolved_at: Optional[datetime]
    version: int

    @classmethod
    def from_aggregate(cls, ticket: Ticket) -> "TicketOutputDTO":
        """
        Factory method para converter o agregado em DTO.

        Args:
            ticket: Agregado Ticket

        Returns:
            DTO com o estado atual do agregado
        """
        return cls(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            priority=ticket.priority.value,
            status=ticket.status.value,
            created_at=ticket.created_at,
            resolved_at=ticket.resolved_at,
            version=ticket.version,
        )

    def to_dict(self) -> dict:
        """Converte para dicionário (serialização JSON)."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "status": self.status,
            "created_at": self.created_at.isoformat(),
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "version": self.version,
        }
