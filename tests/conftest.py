"""
Configurações globais do Pytest para o Ticket Ledger.

Este arquivo é carregado automaticamente pelo pytest e
fornece configuração do Django, fixtures e marcadores compartilhados.
"""

import pytest
from pathlib import Path


def pytest_configure(config):
    """Configura Django e marcadores antes dos testes."""
    import django
    from django.conf import settings

    if not settings.configured:
        settings.configure(
            DEBUG=True,
            SECRET_KEY='test-secret-key',
            DATABASES={
                'default': {
                    'ENGINE': 'django.db.backends.sqlite3',
                    'NAME': ':memory:',
                }
            },
            CACHES={
                'default': {
                    'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
                    'LOCATION': 'ticket-ledger-tests',
                }
            },
            INSTALLED_APPS=[
                'django.contrib.contenttypes',
                'django.contrib.auth',
                'ticket_ledger.adapters.django_app.tickets',
            ],
            DEFAULT_AUTO_FIELD='django.db.models.BigAutoField',
            USE_TZ=True,
            TIME_ZONE='America/Sao_Paulo',
            EVENT_DISPATCH_MODE='sync',
            KAFKA_BROKERS='localhost:9092',
            KAFKA_TICKET_EVENTS_TOPIC='ticket-events',
            EVENT_CONSUMER_RETRY_BACKOFF=(10, 30, 60, 120),
        )
        django.setup()

    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


def pytest_addoption(parser):
    """Adiciona opções de linha de comando."""
    parser.addoption(
        "--run-integration",
        action="store_true",
        default=False,
        help="run integration tests",
    )


def pytest_collection_modifyitems(config, items):
    """Pula testes de integração se --run-integration não for informado."""
    if config.getoption("--run-integration", default=False):
        return

    skip_integration = pytest.mark.skip(reason="use --run-integration para executar")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(scope="session")
def project_root():
    """Retorna o caminho raiz do projeto."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def reset_state():
    """
    Reset de estado global entre testes.

    Garante que cada teste inicia com container e cache limpos.
    """
    from django.core.cache import caches
    from ticket_ledger.config.container import reset_container

    reset_container()
    caches['default'].clear()
    yield
    reset_container()
