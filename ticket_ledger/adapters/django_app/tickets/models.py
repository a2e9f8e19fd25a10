"""
Django Models para o domínio de Tickets.

Estes models são ADAPTERS - implementam a persistência para o
event store e para o read model definidos em ticket_ledger/core/tickets.

IMPORTANTE:
- Models NÃO contêm lógica de negócio
- O agregado é reconstruído a partir de StoredEventModel via Mappers
- TicketReadModelRecord é derivado e pode ser reconstruído a qualquer momento

Tabelas:
- ticket_events: Log append-only (um registro por evento)
- ticket_read_models: Um documento desnormalizado por ticket
"""

from django.db import models


class TicketStatusChoices(models.TextChoices):
    """Choices para status de ticket (espelha TicketStatus do Core)."""
    OPEN = 'open', 'Aberto'
    RESOLVED = 'resolved', 'Resolvido'


class TicketPriorityChoices(models.TextChoices):
    """Choices para prioridade de ticket (espelha TicketPriority do Core)."""
    LOW = 'low', 'Baixa'
    MEDIUM = 'medium', 'Média'
    HIGH = 'high', 'Alta'


class StoredEventModel(models.Model):
    """
    Registro de evento no event store.

    Append-only: registros nunca são atualizados nem removidos.
    A unicidade de (aggregate_id, sequence_number) é a garantia
    contra dois escritores concorrentes no mesmo agregado.

    Fields:
        aggregate_id: ID do agregado
        aggregate_type: Tipo do agregado ("Ticket")
        event_type: Tag usada para escolher o decoder
        event_id: UUID único global do evento
        payload: Campos específicos do evento (JSON em bytes)
        sequence_number: Posição no stream do agregado (1, 2, 3, ...)
        occurred_on: Quando o evento ocorreu
        version: Versão do schema do evento
        recorded_at: Quando o evento foi persistido
    """

    aggregate_id = models.CharField(
        max_length=64,
        db_index=True,
        help_text="ID do agregado que gerou o evento"
    )

    aggregate_type = models.CharField(
        max_length=100,
        default='Ticket',
        help_text="Tipo do agregado (ex: Ticket)"
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Tipo do evento (ex: TicketCreated)"
    )

    event_id = models.CharField(
        max_length=36,
        unique=True,
        help_text="UUID único do evento"
    )

    payload = models.BinaryField(
        help_text="Dados serializados do evento"
    )

    sequence_number = models.PositiveIntegerField(
        help_text="Sequência do evento no agregado (começa em 1)"
    )

    occurred_on = models.DateTimeField(
        help_text="Quando o evento ocorreu"
    )

    version = models.PositiveSmallIntegerField(
        default=1,
        help_text="Versão do schema do evento"
    )

    recorded_at = models.DateTimeField(
        auto_now_add=True,
        help_text="Quando o evento foi persistido"
    )

    class Meta:
        db_table = 'ticket_events'
        verbose_name = 'Evento de Ticket'
        verbose_name_plural = 'Eventos de Ticket'
        ordering = ['aggregate_id', 'sequence_number']
        constraints = [
            models.UniqueConstraint(
                fields=['aggregate_id', 'sequence_number'],
                name='ticket_events_aggregate_sequence_uniq',
            ),
        ]
        indexes = [
            models.Index(
                fields=['event_type', 'recorded_at'],
                name='ticket_evt_type_recorded_idx',
            ),
        ]

    def __str__(self):
        return f"{self.event_type} #{self.sequence_number} - {self.aggregate_id}"


class TicketReadModelRecord(models.Model):
    """
    Documento do read model de tickets.

    created_at é gravado uma única vez (na inserção);
    last_updated_at é renovado a cada save().
    """

    ticket_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="ID do ticket (aggregate_id)"
    )

    title = models.CharField(max_length=255)

    description = models.TextField(blank=True, default='')

    priority = models.CharField(
        max_length=10,
        choices=TicketPriorityChoices.choices,
        db_index=True,
    )

    status = models.CharField(
        max_length=10,
        choices=TicketStatusChoices.choices,
        db_index=True,
    )

    created_at = models.DateTimeField(
        db_index=True,
        help_text="Abertura do ticket (nunca sobrescrito)"
    )

    resolved_at = models.DateTimeField(null=True, blank=True)

    last_updated_at = models.DateTimeField(
        auto_now=True,
        db_index=True,
        help_text="Última gravação do documento"
    )

    class Meta:
        db_table = 'ticket_read_models'
        verbose_name = 'Ticket (read model)'
        verbose_name_plural = 'Tickets (read model)'

    def __str__(self):
        return f"{self.ticket_id} ({self.status})"
