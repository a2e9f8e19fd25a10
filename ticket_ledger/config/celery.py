"""
Configuração do Celery para entrega assíncrona de lotes.

O Celery entrega cada PersistedBatchNotification aos consumidores
(Projector e Publisher) com semântica at-least-once:
- acks_late: a mensagem só é confirmada após a task terminar
- retry com backoff quando o consumidor reporta falhas
- IdempotencyGuard torna a reentrega segura

Serialização, acks e prefetch ficam em settings.py (CELERY_*).

Uso:
    celery -A ticket_ledger.config.celery worker -Q events -l INFO
"""

import os
from celery import Celery
from kombu import Exchange, Queue

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'ticket_ledger.config.settings')

app = Celery('ticket_ledger')

app.config_from_object('django.conf:settings', namespace='CELERY')

events_exchange = Exchange('ticket_ledger.events', type='topic')

app.conf.task_default_queue = 'default'
app.conf.task_queues = (
    Queue('default', Exchange('default'), routing_key='default'),
    Queue('events', events_exchange, routing_key='events.tickets.#'),
)

# Projector e Publisher compartilham a fila; cada um tem sua task
app.conf.task_routes = {
    'ticket_ledger.adapters.django_app.events.handlers.project_ticket_events': {
        'queue': 'events',
        'routing_key': 'events.tickets.project',
    },
    'ticket_ledger.adapters.django_app.events.handlers.publish_ticket_events': {
        'queue': 'events',
        'routing_key': 'events.tickets.publish',
    },
}

app.conf.worker_send_task_events = True

app.autodiscover_tasks(
    ['ticket_ledger.adapters.django_app.events'],
    related_name='handlers',
)
