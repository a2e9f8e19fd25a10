#!/usr/bin/env python
"""
Setup rápido do Ticket Ledger para desenvolvimento local.

Passos:
1. Django com SQLite (a menos que DATABASE_URL já esteja definida)
2. migrate (ticket_events e ticket_read_models)
3. Tickets de exemplo gravados pelo EventStore e projetados (opcional)
4. Resumo: eventos gravados, documentos no read model, modo de despacho

Uso:
    python scripts/quick_setup.py
    python scripts/quick_setup.py --with-sample-data
    python scripts/quick_setup.py --check-only
"""

import os
import sys
import argparse

# Raiz do projeto no path (execução sem pip install -e .)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

SAMPLE_TICKETS = [
    ('Sistema fora do ar', 'Erro 503 em todas as páginas desde o deploy.', 'high'),
    ('Bug no login com Google', 'Usuários não conseguem entrar com conta Google.', 'high'),
    ('Relatório com valores negativos', 'Colunas de desconto saem negativas no CSV.', 'medium'),
    ('Modo escuro', 'Pedido de tema escuro na área do cliente.', 'low'),
]


def setup_django():
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'ticket_ledger.config.settings')
    os.environ.setdefault('DATABASE_URL', 'sqlite:///db.sqlite3')

    import django
    django.setup()


def check_connection():
    from django.db import DatabaseError, connection

    try:
        connection.ensure_connection()
    except DatabaseError as e:
        print(f"❌ Banco indisponível: {e}")
        return False
    print(f"✅ Banco OK ({connection.vendor})")
    return True


def run_migrations():
    from django.core.management import call_command

    print("📦 Aplicando migrations...")
    call_command('migrate', verbosity=0)


def create_sample_data():
    """
    Grava os tickets de exemplo e resolve o último.

    Os lotes vão só para o Projector: o setup local não depende do Kafka.
    Os eventos continuam no EventStore e podem ser publicados depois.
    """
    from ticket_ledger.adapters.django_app.events.dispatchers import SynchronousEventDispatcher
    from ticket_ledger.config.container import get_container
    from ticket_ledger.core.tickets.dtos import CreateTicketCommand, ResolveTicketCommand
    from ticket_ledger.core.tickets.use_cases import CreateTicketService, ResolveTicketService

    container = get_container()
    dispatcher = SynchronousEventDispatcher([container.projector()])
    event_store = container.event_store()

    print("📝 Gravando tickets de exemplo...")
    outputs = [
        CreateTicketService(event_store, dispatcher).execute(
            CreateTicketCommand(title=title, description=description, priority=priority)
        )
        for title, description, priority in SAMPLE_TICKETS
    ]
    resolved = ResolveTicketService(event_store, dispatcher).execute(
        ResolveTicketCommand(ticket_id=outputs[-1].id)
    )

    for output in outputs[:-1] + [resolved]:
        print(f"   ✓ [{output.status:8}] {output.title} ({output.id[:8]})")


def show_summary():
    from django.conf import settings
    from ticket_ledger.adapters.django_app.tickets.models import (
        StoredEventModel,
        TicketReadModelRecord,
    )

    print("\n" + "=" * 60)
    print(f"  Database: {settings.DATABASES['default']['NAME']}")
    print(f"  Eventos gravados: {StoredEventModel.objects.count()}")
    print(f"  Documentos no read model: {TicketReadModelRecord.objects.count()}")
    print(f"  Despacho: {settings.EVENT_DISPATCH_MODE}")
    print(f"  Tópico Kafka: {settings.KAFKA_TICKET_EVENTS_TOPIC}")
    print("=" * 60)
    print("\n🚀 Próximos passos:")
    print("   celery -A ticket_ledger.config.celery worker -Q events -l INFO")
    print("   python scripts/rebuild_read_model.py --all\n")


def main(argv=None):
    parser = argparse.ArgumentParser(description='Setup rápido do Ticket Ledger')
    parser.add_argument(
        '--with-sample-data',
        action='store_true',
        help='Gravar tickets de exemplo'
    )
    parser.add_argument(
        '--check-only',
        action='store_true',
        help='Apenas verificar conexão'
    )
    args = parser.parse_args(argv)

    setup_django()

    if not check_connection():
        print("   Para usar SQLite: DATABASE_URL=sqlite:///db.sqlite3")
        return 1
    if args.check_only:
        return 0

    run_migrations()
    if args.with_sample_data:
        create_sample_data()
    show_summary()
    return 0


if __name__ == '__main__':
    sys.exit(main())
