"""
Testes de Integração para DjangoTicketEventStore.

Testa a integração entre:
- Ticket (Core) ↔ StoredEventModel (via StoredEventMapper)
- Transação por save() ↔ SQLite em memória
- Índice único (aggregate_id, sequence_number) ↔ ConcurrencyError
"""

import json
import uuid
from unittest.mock import Mock, patch

import pytest
from django.db import DatabaseError
from django.utils import timezone

from ticket_ledger.adapters.django_app.tickets.models import StoredEventModel
from ticket_ledger.adapters.django_app.tickets.repositories import DjangoTicketEventStore
from ticket_ledger.config.structs import EventStoreConfig
from ticket_ledger.core.shared.exceptions import (
    AggregateNotFoundError,
    ConcurrencyError,
    EventLoadFailedError,
    EventPersistenceFailedError,
    MalformedEventError,
    PersistenceError,
    TicketAlreadyExistsError,
    UnknownEventTypeError,
)
from ticket_ledger.core.tickets.entities import Ticket, TicketStatus
from ticket_ledger.core.tickets.events import TicketCreated, TicketResolved


pytestmark = pytest.mark.django_db


@pytest.fixture
def store():
    return DjangoTicketEventStore(EventStoreConfig())


def _open_ticket(store, ticket_id="T1"):
    ticket = Ticket.create(ticket_id, "Fix login", "Usuários não conseguem entrar", "high")
    store.save(ticket)
    return ticket


class TestSave:
    """Testes para save()."""

    def test_save_grava_evento_com_sequencia_1(self, store):
        ticket = Ticket.create("T1", "Fix login", "desc", "high")

        saved = store.save(ticket)

        assert [type(e) for e in saved] == [TicketCreated]
        record = StoredEventModel.objects.get(aggregate_id="T1")
        assert record.sequence_number == 1
        assert record.event_type == "TicketCreated"
        assert record.aggregate_type == "Ticket"
        assert record.event_id == saved[0].event_id
        assert record.version == 1

    def test_payload_gravado_como_json(self, store):
        _open_ticket(store)

        record = StoredEventModel.objects.get(aggregate_id="T1")

        assert json.loads(bytes(record.payload).decode("utf-8")) == {
            "ticket_id": "T1",
            "title": "Fix login",
            "description": "Usuários não conseguem entrar",
            "priority": "high",
        }

    def test_save_sem_eventos_e_noop(self, store):
        ticket = _open_ticket(store)

        assert store.save(ticket) == []
        assert StoredEventModel.objects.count() == 1

    def test_save_varios_eventos_numa_chamada(self, store):
        ticket = Ticket.create("T1", "Fix login", "desc", "low")
        ticket.resolve()

        saved = store.save(ticket)

        assert len(saved) == 2
        sequences = list(
            StoredEventModel.objects.filter(aggregate_id="T1")
            .order_by("sequence_number")
            .values_list("sequence_number", flat=True)
        )
        assert sequences == [1, 2]

    def test_sequencia_continua_entre_saves(self, store):
        _open_ticket(store)
        ticket = store.load("T1")
        ticket.resolve()

        store.save(ticket)

        record = StoredEventModel.objects.get(aggregate_id="T1", event_type="TicketResolved")
        assert record.sequence_number == 2

    def test_sequencias_independentes_por_agregado(self, store):
        _open_ticket(store, "T1")
        _open_ticket(store, "T2")

        assert StoredEventModel.objects.get(aggregate_id="T2").sequence_number == 1

    def test_created_em_stream_existente_erro(self, store):
        _open_ticket(store)
        duplicate = Ticket.create("T1", "Outro", "", "low")

        with pytest.raises(TicketAlreadyExistsError):
            store.save(duplicate)

        assert StoredEventModel.objects.filter(aggregate_id="T1").count() == 1


class TestConcorrencia:
    """Dois escritores no mesmo agregado."""

    def test_escritor_perdedor_recebe_concurrency_error(self, store):
        """Ambos leem max(sequence)=1; o segundo insert viola o índice único."""
        _open_ticket(store)
        first = store.load("T1")
        second = store.load("T1")
        first.resolve()
        second.resolve()

        with patch.object(store, "_last_sequence_number", return_value=1):
            store.save(first)
            with pytest.raises(ConcurrencyError) as exc_info:
                store.save(second)

        assert exc_info.value.aggregate_id == "T1"
        assert exc_info.value.retryable is True
        assert StoredEventModel.objects.filter(aggregate_id="T1").count() == 2

    def test_copia_desatualizada_recebe_concurrency_error(self, store):
        """Quem carregou na versão 1 não grava depois que o stream foi para 2."""
        _open_ticket(store)
        first = store.load("T1")
        second = store.load("T1")
        first.resolve()
        second.resolve()
        store.save(first)

        with pytest.raises(ConcurrencyError) as exc_info:
            store.save(second)

        assert exc_info.value.aggregate_id == "T1"
        stored = StoredEventModel.objects.filter(aggregate_id="T1").order_by("sequence_number")
        assert [m.event_type for m in stored] == ["TicketCreated", "TicketResolved"]

    def test_event_id_repetido_nao_e_concorrencia(self, store):
        """Colisão de event_id não se resolve com retry: vira falha de persistência."""
        _open_ticket(store)
        taken = StoredEventModel.objects.get(aggregate_id="T1").event_id

        with patch(
            "ticket_ledger.core.shared.events.uuid.uuid4",
            return_value=uuid.UUID(taken),
        ):
            ticket = Ticket.create("T9", "Outro", "desc", "low")

        with pytest.raises(EventPersistenceFailedError) as exc_info:
            store.save(ticket)

        assert not isinstance(exc_info.value, ConcurrencyError)
        assert exc_info.value.aggregate_id == "T9"
        assert not StoredEventModel.objects.filter(aggregate_id="T9").exists()


class TestAtomicidade:
    """Falha no meio do save() desfaz tudo."""

    def test_falha_no_segundo_insert_desfaz_o_primeiro(self, store):
        ticket = Ticket.create("T1", "Fix login", "desc", "high")
        ticket.resolve()
        original_insert = store._insert_record
        calls = []

        def flaky_insert(model):
            calls.append(model)
            if len(calls) == 2:
                raise DatabaseError("disk I/O error")
            original_insert(model)

        with patch.object(store, "_insert_record", side_effect=flaky_insert):
            with pytest.raises(EventPersistenceFailedError) as exc_info:
                store.save(ticket)

        assert exc_info.value.aggregate_id == "T1"
        assert isinstance(exc_info.value.__cause__, DatabaseError)
        assert isinstance(exc_info.value, PersistenceError)
        assert StoredEventModel.objects.filter(aggregate_id="T1").count() == 0

    def test_erro_inesperado_vira_persistence_failure(self, store):
        ticket = Ticket.create("T1", "Fix login", "desc", "high")

        with patch.object(store, "_insert_record", side_effect=RuntimeError("boom")):
            with pytest.raises(EventPersistenceFailedError) as exc_info:
                store.save(ticket)

        assert "T1" in str(exc_info.value)
        assert "boom" in str(exc_info.value)


class TestLoad:
    """Testes para load() / load_events()."""

    def test_load_reconstroi_ticket(self, store):
        original = Ticket.create("T1", "Fix login", "desc", "medium")
        original.resolve()
        store.save(original)

        loaded = store.load("T1")

        assert loaded.status == TicketStatus.RESOLVED
        assert loaded.title == "Fix login"
        assert loaded.version == 2
        assert loaded.persisted_version == 2
        assert not loaded.has_uncommitted_events
        assert loaded.resolved_at == original.resolved_at

    def test_load_events_em_ordem(self, store):
        _open_ticket(store)
        ticket = store.load("T1")
        ticket.resolve()
        store.save(ticket)

        events = store.load_events("T1")

        assert [type(e) for e in events] == [TicketCreated, TicketResolved]

    def test_load_inexistente_erro(self, store):
        with pytest.raises(AggregateNotFoundError) as exc_info:
            store.load("nope")

        assert exc_info.value.entity_id == "nope"

    def test_tipo_de_evento_desconhecido_aborta_load(self, store):
        _open_ticket(store)
        StoredEventModel.objects.create(
            aggregate_id="T1",
            event_type="TicketStatusChanged",
            event_id="evt-unknown",
            payload=b'{"ticket_id": "T1"}',
            sequence_number=2,
            occurred_on=timezone.now(),
        )

        with pytest.raises(UnknownEventTypeError):
            store.load("T1")

    def test_payload_corrompido_aborta_load(self, store):
        StoredEventModel.objects.create(
            aggregate_id="T9",
            event_type="TicketCreated",
            event_id="evt-corrupt",
            payload=b"not json",
            sequence_number=1,
            occurred_on=timezone.now(),
        )

        with pytest.raises(MalformedEventError):
            store.load("T9")

    def test_falha_do_banco_no_load(self, store):
        records = Mock()
        records.filter.return_value.order_by.side_effect = DatabaseError("connection lost")

        with patch.object(store, "_records", return_value=records):
            with pytest.raises(EventLoadFailedError):
                store.load("T1")


class TestConsultas:

    def test_exists(self, store):
        _open_ticket(store)

        assert store.exists("T1")
        assert not store.exists("T2")

    def test_aggregate_ids_distintos(self, store):
        _open_ticket(store, "T2")
        _open_ticket(store, "T1")
        ticket = store.load("T1")
        ticket.resolve()
        store.save(ticket)

        assert store.aggregate_ids() == ["T1", "T2"]
