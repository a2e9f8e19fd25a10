"""
IdempotencyGuard sobre o Django cache framework.

Marca "consumidor X já tratou o evento Y" com TTL. Em produção o
cache é Redis, compartilhado entre todos os workers Celery.

Chave:
    processed_event:{consumer_name}:{event_id}
"""

from typing import Optional
import logging

from django.core.cache import caches

from ticket_ledger.config.structs import IdempotencyConfig

logger = logging.getLogger(__name__)


class CacheIdempotencyGuard:
    """
    Implementação de IdempotencyGuard com Django cache.

    A marca expira após config.ttl_seconds (padrão 15 minutos).
    Depois disso o evento pode ser reprocessado, o que é seguro
    porque a projeção e a mensagem publicada derivam só do evento.

    Example:
        guard = CacheIdempotencyGuard(IdempotencyConfig())
        if not guard.seen("projector", event.event_id):
            ...
            guard.mark("projector", event.event_id)
    """

    def __init__(self, config: Optional[IdempotencyConfig] = None, cache=None):
        self.config = config or IdempotencyConfig()
        self._cache = cache if cache is not None else caches[self.config.cache_alias]

    def seen(self, consumer_name: str, event_id: str) -> bool:
        return self._cache.get(self._key(consumer_name, event_id)) is not None

    def mark(self, consumer_name: str, event_id: str) -> None:
        self._cache.set(self._key(consumer_name, event_id), 1, self.config.ttl_seconds)
        logger.debug(f"Event marked as processed: {consumer_name}:{event_id}")

    def _key(self, consumer_name: str, event_id: str) -> str:
        return f"{self.config.key_prefix}:{consumer_name}:{event_id}"
