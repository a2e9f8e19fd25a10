"""
Shared Domain Components.

Contém componentes compartilhados entre todos os domínios:
- Exceções de domínio e de infraestrutura
- Interfaces (Ports)
- Base classes para Domain Events e lote persistido
"""

from .exceptions import (
    DomainException,
    ValidationError,
    EntityNotFoundError,
    AggregateNotFoundError,
    ConflictError,
    BusinessRuleViolationError,
    ConcurrencyError,
    UnknownEventTypeError,
    MalformedEventError,
    InfrastructureException,
    PersistenceError,
)
from .events import DomainEvent, PersistedBatchNotification, BatchReport
from .interfaces import EventDispatcher, IdempotencyGuard, MessageBroker

__all__ = [
    "DomainException",
    "ValidationError",
    "EntityNotFoundError",
    "AggregateNotFoundError",
    "ConflictError",
    "BusinessRuleViolationError",
    "ConcurrencyError",
    "UnknownEventTypeError",
    "MalformedEventError",
    "InfrastructureException",
    "PersistenceError",
    "DomainEvent",
    "PersistedBatchNotification",
    "BatchReport",
    "EventDispatcher",
    "IdempotencyGuard",
    "MessageBroker",
]
