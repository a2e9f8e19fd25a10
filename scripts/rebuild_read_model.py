#!/usr/bin/env python
"""
Reconstrói o read model de tickets a partir do EventStore.

Caminho de reparo quando o read model diverge dos eventos
(projeção perdida, documento corrompido, tabela recriada).

Uso:
    python scripts/rebuild_read_model.py <ticket_id> [<ticket_id> ...]
    python scripts/rebuild_read_model.py --all
"""

import os
import sys
import argparse

# Raiz do projeto no path (execução sem pip install -e .)
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


def setup_django():
    """Configura Django para uso standalone."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'ticket_ledger.config.settings')

    import django
    django.setup()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Reconstrói o read model de tickets')
    parser.add_argument('ticket_ids', nargs='*', help='IDs dos tickets')
    parser.add_argument(
        '--all',
        action='store_true',
        help='Reconstruir todos os tickets do EventStore'
    )

    args = parser.parse_args(argv)
    if not args.all and not args.ticket_ids:
        parser.error('informe ao menos um ticket_id ou --all')

    setup_django()

    from ticket_ledger.config.container import get_container
    from ticket_ledger.core.shared.exceptions import DomainException

    service = get_container().rebuild_read_model_service()

    if args.all:
        rebuilt = service.rebuild_all()
        print(f"✅ {len(rebuilt)} ticket(s) reconstruído(s)")
        return 0

    failures = 0
    for ticket_id in args.ticket_ids:
        try:
            document = service.execute(ticket_id)
        except DomainException as e:
            failures += 1
            print(f"❌ {ticket_id}: {e}")
            continue
        print(f"   ✓ {document.ticket_id} ({document.status})")

    return 1 if failures else 0


if __name__ == '__main__':
    sys.exit(main())
