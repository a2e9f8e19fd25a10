"""
Testes para as tasks Celery e os dispatchers de eventos.

As tasks são chamadas diretamente (sem broker): nesse modo
self.retry() relança a exceção passada em exc.
"""

import logging
from unittest.mock import Mock, patch

import pytest
from dependency_injector import providers

from ticket_ledger.adapters.django_app.events.dispatchers import (
    CeleryEventDispatcher,
    InMemoryEventDispatcher,
    SynchronousEventDispatcher,
)
from ticket_ledger.adapters.django_app.events.handlers import (
    MAX_RETRIES,
    project_ticket_events,
    publish_ticket_events,
    retry_countdown,
)
from ticket_ledger.config.container import get_container
from ticket_ledger.core.shared.events import BatchReport, PersistedBatchNotification
from ticket_ledger.core.shared.exceptions import ProjectionFailedError, PublishFailedError
from ticket_ledger.core.tickets.events import TicketCreated, TicketResolved


HANDLERS = "ticket_ledger.adapters.django_app.events.handlers"


def _notification():
    created = TicketCreated(aggregate_id="T1", title="Fix login", description="", priority="low")
    resolved = TicketResolved(aggregate_id="T1")
    return PersistedBatchNotification("T1", "Ticket", [created, resolved])


class FakeConsumer:
    """Consumidor que devolve um relatório pronto e guarda os lotes."""

    def __init__(self, consumer_name, failed=None):
        self.consumer_name = consumer_name
        self.failed = failed or {}
        self.handled = []

    def handle(self, notification):
        self.handled.append(notification)
        return BatchReport(
            consumer=self.consumer_name,
            aggregate_id=notification.aggregate_id,
            applied=[e for e in notification.event_ids if e not in self.failed],
            failed=dict(self.failed),
        )


class TestRetryCountdown:

    @pytest.mark.parametrize(
        "retries,expected",
        [(0, 10), (1, 30), (2, 60), (3, 120), (7, 120)],
    )
    def test_backoff(self, retries, expected):
        assert retry_countdown(retries) == expected

    def test_cinco_tentativas_no_total(self):
        assert MAX_RETRIES + 1 == 5
        assert project_ticket_events.max_retries == MAX_RETRIES
        assert publish_ticket_events.acks_late is True


class TestProjectTicketEvents:

    def test_lote_projetado(self):
        consumer = FakeConsumer("projector")
        get_container().projector.override(providers.Object(consumer))
        notification = _notification()

        result = project_ticket_events(notification.to_dict())

        assert result["applied"] == notification.event_ids
        assert result["failed"] == {}
        assert consumer.handled == [notification]

    def test_falha_gera_retry(self):
        notification = _notification()
        failed_id = notification.event_ids[1]
        get_container().projector.override(
            providers.Object(FakeConsumer("projector", failed={failed_id: "db down"}))
        )

        with pytest.raises(ProjectionFailedError) as exc_info:
            project_ticket_events(notification.to_dict())

        assert exc_info.value.aggregate_id == "T1"
        assert exc_info.value.failed_event_ids == [failed_id]

    def test_lote_indecodificavel_e_descartado(self, caplog):
        consumer = FakeConsumer("projector")
        get_container().projector.override(providers.Object(consumer))
        data = _notification().to_dict()
        data["events"][0]["event_type"] = "TicketStatusChanged"

        with caplog.at_level(logging.ERROR):
            result = project_ticket_events(data)

        assert result is None
        assert consumer.handled == []
        assert "descartado" in caplog.text


class TestPublishTicketEvents:

    def test_lote_publicado(self):
        consumer = FakeConsumer("publisher")
        get_container().publisher.override(providers.Object(consumer))

        result = publish_ticket_events(_notification().to_dict())

        assert result["consumer"] == "publisher"
        assert len(consumer.handled) == 1

    def test_falha_gera_retry(self):
        notification = _notification()
        failed_id = notification.event_ids[0]
        get_container().publisher.override(
            providers.Object(FakeConsumer("publisher", failed={failed_id: "timeout"}))
        )

        with pytest.raises(PublishFailedError) as exc_info:
            publish_ticket_events(notification.to_dict())

        assert exc_info.value.failed_event_ids == [failed_id]
        assert exc_info.value.consumer == "publisher"

    def test_envelope_incompleto_e_descartado(self):
        consumer = FakeConsumer("publisher")
        get_container().publisher.override(providers.Object(consumer))

        assert publish_ticket_events({"events": []}) is None
        assert consumer.handled == []


class TestCeleryEventDispatcher:

    def test_enfileira_uma_task_por_consumidor(self):
        notification = _notification()

        with patch(f"{HANDLERS}.project_ticket_events") as project, \
             patch(f"{HANDLERS}.publish_ticket_events") as publish:
            CeleryEventDispatcher().dispatch(notification)

        project.delay.assert_called_once_with(notification.to_dict())
        publish.delay.assert_called_once_with(notification.to_dict())

    def test_falha_ao_enfileirar_nao_propaga(self):
        with patch(f"{HANDLERS}.project_ticket_events") as project, \
             patch(f"{HANDLERS}.publish_ticket_events") as publish:
            project.delay.side_effect = ConnectionError("broker down")

            CeleryEventDispatcher().dispatch(_notification())

        publish.delay.assert_called_once()


class TestSynchronousEventDispatcher:

    def test_entrega_a_todos_os_consumidores(self):
        projector = FakeConsumer("projector")
        publisher = FakeConsumer("publisher")
        notification = _notification()

        SynchronousEventDispatcher([projector, publisher]).dispatch(notification)

        assert projector.handled == [notification]
        assert publisher.handled == [notification]

    def test_excecao_de_um_consumidor_nao_afeta_os_demais(self):
        broken = Mock(consumer_name="projector")
        broken.handle.side_effect = RuntimeError("boom")
        publisher = FakeConsumer("publisher")
        dispatcher = SynchronousEventDispatcher([broken])
        dispatcher.add_consumer(publisher)

        dispatcher.dispatch(_notification())

        assert len(publisher.handled) == 1

    def test_relatorio_com_falhas_gera_warning(self, caplog):
        notification = _notification()
        consumer = FakeConsumer("publisher", failed={notification.event_ids[0]: "x"})

        with caplog.at_level(logging.WARNING):
            SynchronousEventDispatcher([consumer]).dispatch(notification)

        assert "publisher" in caplog.text


class TestInMemoryEventDispatcher:

    def test_guarda_lotes(self):
        dispatcher = InMemoryEventDispatcher()
        notification = _notification()

        dispatcher.dispatch(notification)

        assert dispatcher.notifications == [notification]
        assert len(dispatcher.dispatched_events) == 2

        dispatcher.clear()
        assert dispatcher.notifications == []
