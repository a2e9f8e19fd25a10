"""
Cache-aside para listagens do read model.

CachingTicketReadRepository envolve um TicketReadRepository recebido
no construtor e usa o Django cache framework apenas para find_all().
find_by_id() e save() vão direto ao repositório decorado.

Invalidação por tag:
    Cada chave de listagem embute o token atual da tag compartilhada.
    invalidate_list_cache() troca o token, o que torna inalcançáveis
    todas as listagens em cache (qualquer ordenação) com uma única
    escrita. As entradas antigas expiram pelo TTL.

    tickets:all:created_at:desc:<token>
    tickets:all:priority:asc:<token>
"""

from typing import List, Optional
import logging
import uuid

from django.core.cache import caches

from ticket_ledger.config.structs import ReadModelConfig
from ticket_ledger.core.tickets.dtos import TicketReadModel, normalize_sort
from ticket_ledger.core.tickets.ports import TicketReadRepository

logger = logging.getLogger(__name__)


class CachingTicketReadRepository:
    """
    Decorator de TicketReadRepository com cache de listagens.

    Example:
        base = DjangoTicketReadRepository(config)
        repo = CachingTicketReadRepository(base, config)

        repo.find_all("created_at", "desc")  # miss → banco → cache
        repo.find_all("created_at", "desc")  # hit
        repo.invalidate_list_cache()
    """

    def __init__(
        self,
        decorated: TicketReadRepository,
        config: Optional[ReadModelConfig] = None,
        cache=None,
    ):
        self.decorated = decorated
        self.config = config or ReadModelConfig()
        self._cache = cache if cache is not None else caches[self.config.cache_alias]

    def save(self, document: TicketReadModel) -> None:
        self.decorated.save(document)

    def find_by_id(self, ticket_id: str) -> Optional[TicketReadModel]:
        return self.decorated.find_by_id(ticket_id)

    def find_all(
        self,
        order_by: str = "created_at",
        order_direction: str = "desc",
    ) -> List[TicketReadModel]:
        """Listagem ordenada, servida do cache quando possível."""
        field_name, direction = normalize_sort(order_by, order_direction)
        cache_key = self._list_cache_key(field_name, direction)

        cached = self._cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Cache hit: {cache_key}")
            return list(cached)

        # Cache miss - buscar do banco
        documents = self.decorated.find_all(field_name, direction)
        self._cache.set(cache_key, documents, self.config.list_cache_ttl)
        return documents

    def invalidate_list_cache(self) -> None:
        """Descarta todas as listagens em cache."""
        self._cache.set(self._tag_key(), uuid.uuid4().hex, None)
        logger.debug(f"List cache invalidated: {self.config.list_cache_tag}")

    def _tag_key(self) -> str:
        return f"tag:{self.config.list_cache_tag}"

    def _tag_token(self) -> str:
        token = self._cache.get(self._tag_key())
        if token is None:
            token = uuid.uuid4().hex
            # outro processo pode ter criado o token entre get e add
            if not self._cache.add(self._tag_key(), token, None):
                token = self._cache.get(self._tag_key(), token)
        return token

    def _list_cache_key(self, field_name: str, direction: str) -> str:
        return f"{self.config.list_cache_prefix}:{field_name}:{direction}:{self._tag_token()}"
