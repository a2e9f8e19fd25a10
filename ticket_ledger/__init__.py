"""
Ticket Ledger - ciclo de vida de tickets de suporte em Event Sourcing.

Camadas:
- core: domínio puro (agregado, eventos, use cases, ports)
- adapters: Django ORM, cache, Celery e broker Kafka
- config: settings, Celery app e container de dependências
"""
