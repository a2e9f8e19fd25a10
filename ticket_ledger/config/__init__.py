"""
Configuração do Ticket Ledger.

Módulos:
- settings: Configurações Django
- structs: Estruturas de configuração passadas aos adapters
- celery: Aplicação Celery para entrega assíncrona de lotes
- container: Composição das dependências (dependency-injector)
"""

from .celery import app as celery_app

__all__ = ('celery_app',)
