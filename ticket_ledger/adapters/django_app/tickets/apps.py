"""
Configuração do Django App para Tickets.

Registra os models do event store e do read model.
"""

from django.apps import AppConfig


class TicketsConfig(AppConfig):
    """Configuração do app Tickets."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'ticket_ledger.adapters.django_app.tickets'
    label = 'tickets'
    verbose_name = 'Ticket Ledger'
