"""
Entrega de lotes persistidos aos consumidores.

- dispatchers: EventDispatcher síncrono, via Celery e em memória
- handlers: Tasks Celery do Projector e do Publisher
"""
