"""
Testes Unitários para a função de projeção do read model.

apply_event_to_read_model() é usada tanto pelo Projector quanto
pela reconstrução a partir do EventStore.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import ClassVar

from ticket_ledger.core.shared.events import DomainEvent
from ticket_ledger.core.tickets.dtos import TicketReadModel
from ticket_ledger.core.tickets.events import TicketCreated, TicketResolved
from ticket_ledger.core.tickets.projections import apply_event_to_read_model, build_read_model


T0 = datetime(2025, 4, 16, 11, 58, 16, tzinfo=timezone.utc)


@dataclass(frozen=True)
class TicketArchived(DomainEvent):
    """Evento sem projeção no read model."""

    event_type: ClassVar[str] = "TicketArchived"
    aggregate_type: ClassVar[str] = "Ticket"

    def to_payload(self):
        return {"ticket_id": self.aggregate_id}


def _created(**overrides):
    data = dict(
        aggregate_id="T1",
        occurred_on=T0,
        title="Fix login",
        description="desc",
        priority="high",
    )
    data.update(overrides)
    return TicketCreated(**data)


class TestApplyEventToReadModel:

    def test_created_gera_documento_aberto(self):
        document = apply_event_to_read_model(None, _created())

        assert document == TicketReadModel(
            ticket_id="T1",
            title="Fix login",
            description="desc",
            priority="high",
            status="open",
            created_at=T0,
            resolved_at=None,
        )

    def test_resolved_altera_apenas_status_e_resolved_at(self):
        opened = apply_event_to_read_model(None, _created())
        resolved_on = T0 + timedelta(hours=1)

        document = apply_event_to_read_model(
            opened, TicketResolved(aggregate_id="T1", occurred_on=resolved_on)
        )

        assert document.status == "resolved"
        assert document.is_resolved
        assert document.resolved_at == resolved_on
        assert document.title == opened.title
        assert document.created_at == opened.created_at

    def test_resolved_sem_documento_retorna_none(self):
        assert apply_event_to_read_model(None, TicketResolved(aggregate_id="T1")) is None

    def test_created_reentregue_preserva_resolucao(self):
        """Reentrega tardia de TicketCreated não reabre o ticket."""
        resolved_on = T0 + timedelta(hours=1)
        current = apply_event_to_read_model(None, _created()).resolved(resolved_on)

        document = apply_event_to_read_model(current, _created())

        assert document.status == "resolved"
        assert document.resolved_at == resolved_on

    def test_evento_sem_projecao_retorna_none(self):
        current = apply_event_to_read_model(None, _created())

        assert apply_event_to_read_model(current, TicketArchived(aggregate_id="T1")) is None


class TestBuildReadModel:

    def test_fold_do_historico_completo(self):
        history = [_created(), TicketResolved(aggregate_id="T1", occurred_on=T0 + timedelta(days=1))]

        document = build_read_model(history)

        assert document.status == "resolved"
        assert document.resolved_at == T0 + timedelta(days=1)

    def test_historico_vazio(self):
        assert build_read_model([]) is None

