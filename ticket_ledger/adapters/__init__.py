"""
Adapters de infraestrutura.

- django_app: Event store, read model, cache e tasks Celery (Django ORM)
- messaging: Publicação de eventos no broker (Kafka)
"""
