"""
Dependency Injection Container.

Raiz de composição do Ticket Ledger. Cada adapter é construído
explicitamente com sua configuração (structs.py) e suas dependências
passadas no construtor; nada é resolvido por nome em tempo de execução.

Padrões:
- Singleton: Uma instância por processo (stores, cache, guard, broker, consumidores)
- Factory: Nova instância por chamada (use cases)
- Selector: Dispatcher escolhido por EVENT_DISPATCH_MODE ("sync" ou "celery")

Composição do lado de leitura:
    base_read_repository = DjangoTicketReadRepository(config)
    read_repository = CachingTicketReadRepository(base_read_repository, config)
"""

from typing import Optional

from dependency_injector import containers, providers

from ticket_ledger.adapters.django_app.events.dispatchers import (
    CeleryEventDispatcher,
    SynchronousEventDispatcher,
)
from ticket_ledger.adapters.django_app.shared.idempotency import CacheIdempotencyGuard
from ticket_ledger.adapters.django_app.tickets.cache import CachingTicketReadRepository
from ticket_ledger.adapters.django_app.tickets.projections import TicketReadModelProjector
from ticket_ledger.adapters.django_app.tickets.repositories import (
    DjangoTicketEventStore,
    DjangoTicketReadRepository,
)
from ticket_ledger.adapters.messaging.brokers import KafkaMessageBroker
from ticket_ledger.adapters.messaging.publisher import TicketEventBrokerPublisher
from ticket_ledger.core.tickets.use_cases import (
    CreateTicketService,
    GetTicketService,
    ListTicketsService,
    RebuildTicketReadModelService,
    ResolveTicketService,
)

from .structs import EventStoreConfig, IdempotencyConfig, KafkaConfig, ReadModelConfig


class Container(containers.DeclarativeContainer):
    """
    Container principal de Dependency Injection.

    Organização:
    - Configuration: Structs lidas de settings
    - Persistence: Event store e read model (com cache)
    - Consumers: Projector e Publisher
    - Dispatch: Entrega dos lotes persistidos
    - Services: Use Cases

    Example:
        container = get_container()
        service = container.create_ticket_service()
        output = service.execute(CreateTicketCommand(title="...", description="..."))
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    config = providers.Configuration()

    event_store_config = providers.Singleton(EventStoreConfig.from_settings)
    read_model_config = providers.Singleton(ReadModelConfig.from_settings)
    idempotency_config = providers.Singleton(IdempotencyConfig.from_settings)
    kafka_config = providers.Singleton(KafkaConfig.from_settings)

    # =========================================================================
    # Persistence
    # =========================================================================

    event_store = providers.Singleton(
        DjangoTicketEventStore,
        config=event_store_config,
    )

    base_read_repository = providers.Singleton(
        DjangoTicketReadRepository,
        config=read_model_config,
    )

    read_repository = providers.Singleton(
        CachingTicketReadRepository,
        decorated=base_read_repository,
        config=read_model_config,
    )

    idempotency_guard = providers.Singleton(
        CacheIdempotencyGuard,
        config=idempotency_config,
    )

    # =========================================================================
    # Consumers
    # =========================================================================

    message_broker = providers.Singleton(
        KafkaMessageBroker,
        config=kafka_config,
    )

    projector = providers.Singleton(
        TicketReadModelProjector,
        read_repository=read_repository,
        idempotency_guard=idempotency_guard,
        list_cache=read_repository,
    )

    publisher = providers.Singleton(
        TicketEventBrokerPublisher,
        broker=message_broker,
        idempotency_guard=idempotency_guard,
        config=kafka_config,
    )

    # =========================================================================
    # Dispatch
    # =========================================================================

    event_dispatcher = providers.Selector(
        config.dispatch_mode,
        sync=providers.Singleton(
            SynchronousEventDispatcher,
            consumers=providers.List(projector, publisher),
        ),
        celery=providers.Singleton(CeleryEventDispatcher),
    )

    # =========================================================================
    # Services / Use Cases (Factory - nova instância por chamada)
    # =========================================================================

    create_ticket_service = providers.Factory(
        CreateTicketService,
        event_store=event_store,
        dispatcher=event_dispatcher,
    )

    resolve_ticket_service = providers.Factory(
        ResolveTicketService,
        event_store=event_store,
        dispatcher=event_dispatcher,
    )

    get_ticket_service = providers.Factory(
        GetTicketService,
        read_repository=read_repository,
    )

    list_tickets_service = providers.Factory(
        ListTicketsService,
        read_repository=read_repository,
    )

    rebuild_read_model_service = providers.Factory(
        RebuildTicketReadModelService,
        event_store=event_store,
        read_repository=read_repository,
        list_cache=read_repository,
    )


# =============================================================================
# Container Global (Singleton)
# =============================================================================

_container: Optional[Container] = None


def get_container() -> Container:
    """
    Retorna instância global do container.

    Cria se não existir (lazy initialization), com o modo de
    despacho lido de settings.EVENT_DISPATCH_MODE.
    """
    global _container

    if _container is None:
        from django.conf import settings

        _container = Container()
        _container.config.from_dict({
            "dispatch_mode": getattr(settings, "EVENT_DISPATCH_MODE", "sync"),
        })

    return _container


def reset_container() -> None:
    """
    Reset do container (para testes).

    Permite criar novo container limpo.
    """
    global _container
    _container = None
