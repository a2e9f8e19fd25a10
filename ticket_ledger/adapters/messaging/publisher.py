"""
Publisher: envia os eventos persistidos para o broker.

Consome PersistedBatchNotification de qualquer tipo de agregado.
Cada evento vira uma mensagem:

    topic:   KafkaConfig.topic
    key:     aggregate_id (ordem garantida por ticket na partição)
    headers: {"event_type": "TicketCreated"}
    value:   {"ticket_id": ..., ..., "occurred_on": "2025-04-16T11:58:16+00:00"}
"""

from typing import Optional
import json
import logging

from ticket_ledger.config.structs import KafkaConfig
from ticket_ledger.core.shared.events import (
    BatchReport,
    DomainEvent,
    PersistedBatchNotification,
    format_timestamp,
)
from ticket_ledger.core.shared.interfaces import BrokerMessage, IdempotencyGuard, MessageBroker

logger = logging.getLogger(__name__)


def serialize_event_for_broker(event: DomainEvent) -> bytes:
    """Campos do evento + occurred_on, como JSON em UTF-8."""
    body = dict(event.to_payload())
    body["occurred_on"] = format_timestamp(event.occurred_on)
    return json.dumps(body, ensure_ascii=False).encode("utf-8")


class TicketEventBrokerPublisher:
    """
    Consumidor "publisher".

    A marca de idempotência só é gravada depois que o broker
    confirma o envio. Falhas ficam no BatchReport; o lote inteiro
    é reentregue pela task Celery e os eventos já enviados são pulados.

    Example:
        publisher = TicketEventBrokerPublisher(broker, guard, KafkaConfig())
        report = publisher.handle(notification)
    """

    consumer_name = "publisher"

    def __init__(
        self,
        broker: MessageBroker,
        idempotency_guard: IdempotencyGuard,
        config: Optional[KafkaConfig] = None,
    ):
        self.broker = broker
        self.idempotency_guard = idempotency_guard
        self.config = config or KafkaConfig()

    def handle(self, notification: PersistedBatchNotification) -> BatchReport:
        report = BatchReport(consumer=self.consumer_name, aggregate_id=notification.aggregate_id)
        topic = self.config.topic

        for event in notification.events:
            if self.idempotency_guard.seen(self.consumer_name, event.event_id):
                logger.debug(f"[PUBLISHER] Event already published: {event.event_id}")
                report.skipped.append(event.event_id)
                continue

            try:
                message = BrokerMessage(
                    topic=topic,
                    key=event.aggregate_id,
                    value=serialize_event_for_broker(event),
                    headers={"event_type": event.event_type},
                )
                self.broker.send(message)
                self.idempotency_guard.mark(self.consumer_name, event.event_id)
            except Exception as e:
                logger.error(
                    f"[PUBLISHER] Erro ao publicar evento | topic={topic} | "
                    f"event_type={event.event_type} | aggregate={event.aggregate_id} | "
                    f"error={e}",
                    exc_info=True,
                )
                report.failed[event.event_id] = str(e)
                continue

            report.applied.append(event.event_id)
            logger.info(
                f"[PUBLISHER] {event.event_type} publicado em {topic} | "
                f"aggregate={event.aggregate_id}"
            )

        return report
