"""
Mensageria: publicação dos eventos de ticket no broker.

- brokers: KafkaMessageBroker (kafka-python) e InMemoryMessageBroker (testes)
- publisher: Consumidor "publisher" de PersistedBatchNotification
"""
