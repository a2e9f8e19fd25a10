"""
Testes para TicketReadModelProjector.

Usa fakes em memória (read model, IdempotencyGuard) para verificar
deduplicação, isolamento de falhas por evento e invalidação do
cache de listagens.
"""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from ticket_ledger.adapters.django_app.tickets.projections import TicketReadModelProjector
from ticket_ledger.core.shared.events import PersistedBatchNotification
from ticket_ledger.core.shared.interfaces import InMemoryIdempotencyGuard
from ticket_ledger.core.tickets.events import TicketCreated, TicketResolved
from ticket_ledger.core.tickets.ports import InMemoryTicketReadRepository


T0 = datetime(2025, 4, 16, 11, 58, 16, tzinfo=timezone.utc)


def _created(ticket_id="T1"):
    return TicketCreated(
        aggregate_id=ticket_id,
        occurred_on=T0,
        title="Fix login",
        description="desc",
        priority="high",
    )


def _batch(*events, aggregate_type="Ticket"):
    return PersistedBatchNotification(events[0].aggregate_id, aggregate_type, list(events))


@pytest.fixture
def read_repo():
    return InMemoryTicketReadRepository()


@pytest.fixture
def guard():
    return InMemoryIdempotencyGuard()


@pytest.fixture
def list_cache():
    return Mock()


@pytest.fixture
def projector(read_repo, guard, list_cache):
    return TicketReadModelProjector(read_repo, guard, list_cache=list_cache)


class TestProjecao:

    def test_created_cria_documento(self, projector, read_repo, guard):
        created = _created()

        report = projector.handle(_batch(created))

        assert report.applied == [created.event_id]
        document = read_repo.find_by_id("T1")
        assert document.status == "open"
        assert document.created_at == T0
        assert guard.seen("projector", created.event_id)

    def test_created_e_resolved_no_mesmo_lote(self, projector, read_repo):
        created = _created()
        resolved = TicketResolved(aggregate_id="T1", occurred_on=T0 + timedelta(hours=1))

        report = projector.handle(_batch(created, resolved))

        assert report.applied == [created.event_id, resolved.event_id]
        document = read_repo.find_by_id("T1")
        assert document.status == "resolved"
        assert document.resolved_at == T0 + timedelta(hours=1)

    def test_reentrega_e_ignorada(self, projector, read_repo):
        """O mesmo lote duas vezes grava o documento uma única vez."""
        batch = _batch(_created())
        projector.handle(batch)

        report = projector.handle(batch)

        assert report.applied == []
        assert report.skipped == [batch.events[0].event_id]
        assert read_repo.save_calls == 1

    def test_marca_de_outro_consumidor_nao_conta(self, projector, read_repo, guard):
        created = _created()
        guard.mark("publisher", created.event_id)

        report = projector.handle(_batch(created))

        assert report.applied == [created.event_id]

    def test_lote_de_outro_agregado_e_ignorado(self, projector, read_repo, list_cache):
        report = projector.handle(_batch(_created(), aggregate_type="Invoice"))

        assert report.applied == []
        assert report.skipped == []
        assert read_repo.find_by_id("T1") is None
        list_cache.invalidate_list_cache.assert_not_called()


class TestResolvedSemDocumento:

    def test_resolved_sem_documento_e_pulado(self, projector, read_repo, guard, caplog):
        resolved = TicketResolved(aggregate_id="T1")

        with caplog.at_level(logging.WARNING):
            report = projector.handle(_batch(resolved))

        assert report.skipped == [resolved.event_id]
        assert not report.has_failures
        assert read_repo.find_by_id("T1") is None
        assert not guard.seen("projector", resolved.event_id)
        assert "sem documento" in caplog.text


class TestFalhas:

    def test_falha_em_um_evento_nao_interrompe_o_lote(self, guard, list_cache):
        """O erro fica no relatório e os demais eventos seguem."""
        read_repo = InMemoryTicketReadRepository()
        original_save = read_repo.save
        calls = []

        def save(document):
            calls.append(document)
            if len(calls) == 1:
                raise RuntimeError("db down")
            original_save(document)

        read_repo.save = save
        projector = TicketReadModelProjector(read_repo, guard, list_cache=list_cache)
        first = _created("T1")
        second = TicketResolved(aggregate_id="T1")

        report = projector.handle(_batch(first))
        assert report.failed == {first.event_id: "db down"}
        assert not guard.seen("projector", first.event_id)

        report = projector.handle(_batch(first, second))
        assert report.applied == [first.event_id, second.event_id]
        assert read_repo.find_by_id("T1").status == "resolved"

    def test_falha_no_meio_do_lote(self, guard):
        read_repo = Mock()
        read_repo.find_by_id.side_effect = [None, RuntimeError("timeout"), None]
        projector = TicketReadModelProjector(read_repo, guard)
        events = [_created("T1"), _created("T2"), _created("T3")]
        batch = PersistedBatchNotification("T1", "Ticket", events)

        report = projector.handle(batch)

        assert report.applied == [events[0].event_id, events[2].event_id]
        assert list(report.failed) == [events[1].event_id]
        assert report.has_failures


class TestInvalidacaoDoCache:

    def test_invalida_uma_vez_por_lote(self, projector, list_cache):
        projector.handle(_batch(_created(), TicketResolved(aggregate_id="T1")))

        list_cache.invalidate_list_cache.assert_called_once_with()

    def test_nao_invalida_quando_nada_foi_aplicado(self, projector, list_cache):
        batch = _batch(_created())
        projector.handle(batch)
        list_cache.reset_mock()

        projector.handle(batch)

        list_cache.invalidate_list_cache.assert_not_called()

    def test_falha_na_invalidacao_nao_e_fatal(self, projector, list_cache, caplog):
        list_cache.invalidate_list_cache.side_effect = ConnectionError("redis down")

        with caplog.at_level(logging.WARNING):
            report = projector.handle(_batch(_created()))

        assert not report.has_failures
        assert len(report.applied) == 1
        assert "redis down" in caplog.text

    def test_sem_list_cache(self, read_repo, guard):
        projector = TicketReadModelProjector(read_repo, guard)

        report = projector.handle(_batch(_created()))

        assert len(report.applied) == 1
