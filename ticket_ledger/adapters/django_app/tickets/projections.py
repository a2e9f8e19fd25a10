"""
Projector do read model de tickets.

Consome PersistedBatchNotification e mantém TicketReadModel em dia,
usando o IdempotencyGuard para não aplicar o mesmo evento duas vezes
quando o lote é reentregue.

Fluxo por evento:
    seen? → find_by_id → apply_event_to_read_model → save → mark

Falhas por evento ficam no BatchReport e não interrompem o lote.
A escrita original já foi concluída; a reentrega do lote é
responsabilidade da camada de entrega (tasks Celery).
"""

from typing import Optional
import logging

from ticket_ledger.core.shared.events import BatchReport, PersistedBatchNotification
from ticket_ledger.core.shared.interfaces import IdempotencyGuard
from ticket_ledger.core.tickets.events import AGGREGATE_TYPE, TicketResolved
from ticket_ledger.core.tickets.ports import ListCacheInvalidator, TicketReadRepository
from ticket_ledger.core.tickets.projections import apply_event_to_read_model

logger = logging.getLogger(__name__)


class TicketReadModelProjector:
    """
    Consumidor "projector".

    Example:
        projector = TicketReadModelProjector(read_repo, guard, list_cache=read_repo)
        report = projector.handle(notification)
        report.applied  # IDs dos eventos projetados
    """

    consumer_name = "projector"

    def __init__(
        self,
        read_repository: TicketReadRepository,
        idempotency_guard: IdempotencyGuard,
        list_cache: Optional[ListCacheInvalidator] = None,
    ):
        self.read_repository = read_repository
        self.idempotency_guard = idempotency_guard
        self.list_cache = list_cache

    def handle(self, notification: PersistedBatchNotification) -> BatchReport:
        """
        Projeta os eventos do lote, em ordem.

        Returns:
            BatchReport com eventos aplicados, ignorados e com falha
        """
        report = BatchReport(consumer=self.consumer_name, aggregate_id=notification.aggregate_id)

        if notification.aggregate_type != AGGREGATE_TYPE:
            logger.debug(
                f"[PROJECTOR] Ignoring batch for aggregate type "
                f"{notification.aggregate_type} ({notification.aggregate_id})"
            )
            return report

        for event in notification.events:
            if self.idempotency_guard.seen(self.consumer_name, event.event_id):
                logger.debug(f"[PROJECTOR] Event already projected: {event.event_id}")
                report.skipped.append(event.event_id)
                continue

            try:
                current = self.read_repository.find_by_id(event.aggregate_id)
                document = apply_event_to_read_model(current, event)

                if document is None:
                    if isinstance(event, TicketResolved):
                        logger.warning(
                            f"[PROJECTOR] {event.event_type} sem documento no read model: "
                            f"ticket {event.aggregate_id} (evento {event.event_id})"
                        )
                    report.skipped.append(event.event_id)
                    continue

                self.read_repository.save(document)
                self.idempotency_guard.mark(self.consumer_name, event.event_id)
            except Exception as e:
                logger.error(
                    f"[PROJECTOR] Falha ao projetar {event.event_type} "
                    f"do ticket {event.aggregate_id}: {e}",
                    exc_info=True,
                )
                report.failed[event.event_id] = str(e)
                continue

            report.applied.append(event.event_id)
            logger.info(
                f"[PROJECTOR] Read model atualizado: {event.aggregate_id} "
                f"({event.event_type}, status={document.status})"
            )

        if report.applied:
            self._invalidate_list_cache(notification.aggregate_id)

        return report

    def _invalidate_list_cache(self, aggregate_id: str) -> None:
        if self.list_cache is None:
            return
        try:
            self.list_cache.invalidate_list_cache()
        except Exception as e:
            logger.warning(
                f"[PROJECTOR] Falha ao invalidar cache de listagens "
                f"(ticket {aggregate_id}): {e}"
            )
