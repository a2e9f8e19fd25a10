"""
Interfaces (Ports) - Contratos entre Core e Adapters.

Este módulo define as interfaces que os Adapters devem implementar.
São os "Ports" da Arquitetura Hexagonal.

Tipos de Ports:
- EventDispatcher: entrega PersistedBatchNotification aos consumidores
- BatchConsumer: Projector e Publisher
- IdempotencyGuard: "o consumidor X já tratou o evento Y?"
- MessageBroker: envio de mensagens para o broker externo

Princípio: Core define interfaces; Adapters implementam.
O fluxo de dependência sempre aponta para o Core.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, Dict, Protocol, Tuple, runtime_checkable
import time

from .events import BatchReport, PersistedBatchNotification


class EventDispatcher(ABC):
    """
    Entrega lotes persistidos aos consumidores.

    Chamado pelo use case depois que EventStore.save() retornou.
    Implementações não devem propagar falhas dos consumidores:
    a escrita já foi concluída de forma independente.

    Example:
        events = event_store.save(ticket)
        dispatcher.dispatch(
            PersistedBatchNotification(ticket.id, "Ticket", events)
        )
    """

    @abstractmethod
    def dispatch(self, notification: PersistedBatchNotification) -> None:
        """
        Entrega um lote.

        Args:
            notification: Eventos gravados por um único save()
        """
        raise NotImplementedError


@runtime_checkable
class BatchConsumer(Protocol):
    """Consumidor de PersistedBatchNotification."""

    consumer_name: str

    def handle(self, notification: PersistedBatchNotification) -> BatchReport:
        ...


@runtime_checkable
class IdempotencyGuard(Protocol):
    """
    Registro de eventos já tratados, por consumidor.

    A chave é (consumer_name, event_id). Marcas expiram após um TTL:
    ausência de marca significa "não tratado recentemente", não
    "nunca tratado". Reprocessar um evento depois da expiração é
    seguro porque projeção e payload derivam apenas do evento.
    """

    def seen(self, consumer_name: str, event_id: str) -> bool:
        """Retorna True se o evento já foi tratado pelo consumidor."""
        ...

    def mark(self, consumer_name: str, event_id: str) -> None:
        """Registra que o consumidor tratou o evento com sucesso."""
        ...


class InMemoryIdempotencyGuard:
    """
    IdempotencyGuard em memória para testes.

    Respeita o TTL usando um relógio injetável.

    Example:
        clock = FakeClock()
        guard = InMemoryIdempotencyGuard(ttl_seconds=900, clock=clock)
        guard.mark("projector", "evt-1")
        clock.advance(901)
        guard.seen("projector", "evt-1")  # False
    """

    def __init__(self, ttl_seconds: int = 900, clock: Callable[[], float] = time.monotonic):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._marks: Dict[Tuple[str, str], float] = {}

    def seen(self, consumer_name: str, event_id: str) -> bool:
        expires_at = self._marks.get((consumer_name, event_id))
        if expires_at is None:
            return False
        if self._clock() >= expires_at:
            del self._marks[(consumer_name, event_id)]
            return False
        return True

    def mark(self, consumer_name: str, event_id: str) -> None:
        self._marks[(consumer_name, event_id)] = self._clock() + self._ttl_seconds

    def clear(self) -> None:
        self._marks.clear()


# =============================================================================
# Broker
# =============================================================================

@dataclass(frozen=True)
class BrokerMessage:
    """
    Mensagem pronta para o broker.

    Attributes:
        topic: Tópico de destino
        key: Chave de particionamento (aggregate_id)
        value: Corpo serializado (JSON em UTF-8)
        headers: Cabeçalhos (ex: {"event_type": "TicketCreated"})
    """

    topic: str
    key: str
    value: bytes
    headers: Dict[str, str] = field(default_factory=dict)


@runtime_checkable
class MessageBroker(Protocol):
    """Cliente de broker usado pelo Publisher."""

    def send(self, message: BrokerMessage) -> None:
        """
        Envia a mensagem e aguarda confirmação.

        Raises:
            PublishFailedError: Se o broker não confirmar o envio
        """
        ...
