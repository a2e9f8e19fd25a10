"""
Core Domain Layer - O Hexágono.

Este pacote contém a lógica de negócio pura, sem dependências de frameworks.
Características:
- Zero dependências externas (Django, Celery, Kafka)
- 100% testável sem banco de dados
- Agnóstico a infraestrutura
"""
