"""
Event Handlers - Tasks Celery dos consumidores de eventos.

Cada lote persistido por EventStore.save() é entregue a duas tasks:

- project_ticket_events: Atualiza o read model (Projector)
- publish_ticket_events: Publica no Kafka (Publisher)

Entrega at-least-once:
    acks_late=True e reentrega do lote inteiro enquanto houver falhas,
    com backoff de 10s, 30s, 60s e 120s (5 tentativas no total).
    Eventos já tratados são pulados pelo IdempotencyGuard.

Padrão:
    @shared_task(bind=True, ...)
    def <consumidor>_ticket_events(self, data: dict) -> dict:
        # decodifica lote → consumer.handle() → retry se houver falhas
"""

from typing import Any, Dict, Optional
import logging

from celery import shared_task
from django.conf import settings

from ticket_ledger.core.shared.events import PersistedBatchNotification
from ticket_ledger.core.shared.exceptions import (
    EventReconstitutionError,
    ProjectionFailedError,
    PublishFailedError,
)
from ticket_ledger.core.tickets.events import event_from_dict

logger = logging.getLogger(__name__)

MAX_RETRIES = 4
DEFAULT_RETRY_BACKOFF = (10, 30, 60, 120)


def retry_countdown(retries: int) -> int:
    """Segundos até a próxima tentativa (a última espera se repete)."""
    backoff = tuple(getattr(settings, "EVENT_CONSUMER_RETRY_BACKOFF", DEFAULT_RETRY_BACKOFF))
    return backoff[min(retries, len(backoff) - 1)]


def _decode_batch(data: Dict[str, Any], task_name: str) -> Optional[PersistedBatchNotification]:
    try:
        return PersistedBatchNotification.from_dict(data, event_from_dict)
    except (EventReconstitutionError, KeyError, TypeError) as e:
        # Lote que nunca vai decodificar: reentregar não adianta
        logger.error(
            f"[HANDLER] {task_name}: lote descartado para "
            f"{data.get('aggregate_id') if isinstance(data, dict) else data!r}: {e}",
            exc_info=True,
        )
        return None


@shared_task(
    bind=True,
    max_retries=MAX_RETRIES,
    acks_late=True,
)
def project_ticket_events(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Projeta um lote no read model.

    Args:
        data: PersistedBatchNotification.to_dict()

    Returns:
        BatchReport.to_dict() (ou None se o lote foi descartado)
    """
    from ticket_ledger.config.container import get_container

    notification = _decode_batch(data, "project_ticket_events")
    if notification is None:
        return None

    logger.info(
        f"[HANDLER] Projetando {len(notification.events)} evento(s) | "
        f"aggregate={notification.aggregate_id} | tentativa {self.request.retries + 1}"
    )

    report = get_container().projector().handle(notification)

    if report.has_failures:
        raise self.retry(
            exc=ProjectionFailedError(notification.aggregate_id, list(report.failed)),
            countdown=retry_countdown(self.request.retries),
        )

    return report.to_dict()


@shared_task(
    bind=True,
    max_retries=MAX_RETRIES,
    acks_late=True,
)
def publish_ticket_events(self, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Publica um lote no broker.

    Args:
        data: PersistedBatchNotification.to_dict()

    Returns:
        BatchReport.to_dict() (ou None se o lote foi descartado)
    """
    from ticket_ledger.config.container import get_container

    notification = _decode_batch(data, "publish_ticket_events")
    if notification is None:
        return None

    logger.info(
        f"[HANDLER] Publicando {len(notification.events)} evento(s) | "
        f"aggregate={notification.aggregate_id} | tentativa {self.request.retries + 1}"
    )

    report = get_container().publisher().handle(notification)

    if report.has_failures:
        raise self.retry(
            exc=PublishFailedError(
                f"Falha ao publicar eventos do agregado {notification.aggregate_id}",
                failed_event_ids=list(report.failed),
            ),
            countdown=retry_countdown(self.request.retries),
        )

    return report.to_dict()
