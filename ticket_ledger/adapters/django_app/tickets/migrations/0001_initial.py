"""
Migration inicial para o domínio de Tickets.

Cria as tabelas:
- ticket_events: Event store (único por aggregate_id + sequence_number)
- ticket_read_models: Read model desnormalizado
"""

from django.db import migrations, models


class Migration(migrations.Migration):
    """Migration inicial."""

    initial = True

    dependencies = [
    ]

    operations = [
        # =================================================================
        # Tabela: ticket_events
        # =================================================================
        migrations.CreateModel(
            name='StoredEventModel',
            fields=[
                ('id', models.BigAutoField(
                    auto_created=True,
                    primary_key=True,
                    serialize=False,
                    verbose_name='ID',
                )),
                ('aggregate_id', models.CharField(
                    db_index=True,
                    help_text='ID do agregado que gerou o evento',
                    max_length=64,
                )),
                ('aggregate_type', models.CharField(
                    default='Ticket',
                    help_text='Tipo do agregado (ex: Ticket)',
                    max_length=100,
                )),
                ('event_type', models.CharField(
                    db_index=True,
                    help_text='Tipo do evento (ex: TicketCreated)',
                    max_length=100,
                )),
                ('event_id', models.CharField(
                    help_text='UUID único do evento',
                    max_length=36,
                    unique=True,
                )),
                ('payload', models.BinaryField(
                    help_text='Dados serializados do evento',
                )),
                ('sequence_number', models.PositiveIntegerField(
                    help_text='Sequência do evento no agregado (começa em 1)',
                )),
                ('occurred_on', models.DateTimeField(
                    help_text='Quando o evento ocorreu',
                )),
                ('version', models.PositiveSmallIntegerField(
                    default=1,
                    help_text='Versão do schema do evento',
                )),
                ('recorded_at', models.DateTimeField(
                    auto_now_add=True,
                    help_text='Quando o evento foi persistido',
                )),
            ],
            options={
                'verbose_name': 'Evento de Ticket',
                'verbose_name_plural': 'Eventos de Ticket',
                'db_table': 'ticket_events',
                'ordering': ['aggregate_id', 'sequence_number'],
                'indexes': [
                    models.Index(
                        fields=['event_type', 'recorded_at'],
                        name='ticket_evt_type_recorded_idx',
                    ),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        fields=('aggregate_id', 'sequence_number'),
                        name='ticket_events_aggregate_sequence_uniq',
                    ),
                ],
            },
        ),

        # =================================================================
        # Tabela: ticket_read_models
        # =================================================================
        migrations.CreateModel(
            name='TicketReadModelRecord',
            fields=[
                ('id', models.BigAutoField(
                    auto_created=True,
                    primary_key=True,
                    serialize=False,
                    verbose_name='ID',
                )),
                ('ticket_id', models.CharField(
                    help_text='ID do ticket (aggregate_id)',
                    max_length=64,
                    unique=True,
                )),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('priority', models.CharField(
                    choices=[('low', 'Baixa'), ('medium', 'Média'), ('high', 'Alta')],
                    db_index=True,
                    max_length=10,
                )),
                ('status', models.CharField(
                    choices=[('open', 'Aberto'), ('resolved', 'Resolvido')],
                    db_index=True,
                    max_length=10,
                )),
                ('created_at', models.DateTimeField(
                    db_index=True,
                    help_text='Abertura do ticket (nunca sobrescrito)',
                )),
                ('resolved_at', models.DateTimeField(blank=True, null=True)),
                ('last_updated_at', models.DateTimeField(
                    auto_now=True,
                    db_index=True,
                    help_text='Última gravação do documento',
                )),
            ],
            options={
                'verbose_name': 'Ticket (read model)',
                'verbose_name_plural': 'Tickets (read model)',
                'db_table': 'ticket_read_models',
            },
        ),
    ]
