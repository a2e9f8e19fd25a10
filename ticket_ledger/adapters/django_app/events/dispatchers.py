"""
Event Dispatchers - Entrega de lotes persistidos.

Implementações de EventDispatcher:
- CeleryEventDispatcher: Uma task Celery por consumidor (produção)
- SynchronousEventDispatcher: Consumidores no mesmo processo (desenvolvimento)
- InMemoryEventDispatcher: Para testes

Falhas aqui nunca quebram o fluxo principal: os eventos já foram
gravados e podem ser reprojetados a partir do EventStore.
"""

from typing import List, Sequence
import logging

from ticket_ledger.core.shared.events import PersistedBatchNotification
from ticket_ledger.core.shared.interfaces import BatchConsumer, EventDispatcher

logger = logging.getLogger(__name__)


class CeleryEventDispatcher(EventDispatcher):
    """
    Dispatcher que enfileira o lote para o Projector e o Publisher.

    O lote viaja serializado (PersistedBatchNotification.to_dict())
    na fila "events". Cada consumidor tem sua própria task e sua
    própria política de reentrega.
    """

    def dispatch(self, notification: PersistedBatchNotification) -> None:
        from .handlers import project_ticket_events, publish_ticket_events

        data = notification.to_dict()
        logger.info(
            f"[EVENT->CELERY] {len(notification.events)} evento(s) | "
            f"aggregate={notification.aggregate_id}"
        )

        for task in (project_ticket_events, publish_ticket_events):
            try:
                task.delay(data)
            except Exception as e:
                logger.error(
                    f"Falha ao enfileirar {task.name} para {notification.aggregate_id}: {e}",
                    exc_info=True,
                )
                # Em caso de falha, não quebra o fluxo principal


class SynchronousEventDispatcher(EventDispatcher):
    """
    Dispatcher que executa os consumidores no próprio processo.

    Usado em desenvolvimento e testes de integração. A falha de um
    consumidor não impede os demais.
    """

    def __init__(self, consumers: Sequence[BatchConsumer] = ()):
        self._consumers = list(consumers)

    def add_consumer(self, consumer: BatchConsumer) -> None:
        self._consumers.append(consumer)

    def dispatch(self, notification: PersistedBatchNotification) -> None:
        logger.info(
            f"[EVENT] {len(notification.events)} evento(s) | "
            f"aggregate={notification.aggregate_id}"
        )
        for consumer in self._consumers:
            try:
                report = consumer.handle(notification)
            except Exception as e:
                logger.error(
                    f"Erro no consumidor {consumer.consumer_name} "
                    f"para {notification.aggregate_id}: {e}",
                    exc_info=True,
                )
                continue
            if report.has_failures:
                logger.warning(
                    f"Consumidor {consumer.consumer_name} terminou com falhas: "
                    f"{sorted(report.failed)}"
                )


class InMemoryEventDispatcher(EventDispatcher):
    """
    Dispatcher em memória para testes.

    Armazena os lotes despachados para verificação.
    """

    def __init__(self):
        self._notifications: List[PersistedBatchNotification] = []

    def dispatch(self, notification: PersistedBatchNotification) -> None:
        self._notifications.append(notification)

    @property
    def notifications(self) -> List[PersistedBatchNotification]:
        return self._notifications.copy()

    @property
    def dispatched_events(self):
        return [event for notification in self._notifications for event in notification.events]

    def clear(self) -> None:
        self._notifications.clear()
