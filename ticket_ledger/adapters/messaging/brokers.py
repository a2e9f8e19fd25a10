"""
Clientes de broker (implementações de MessageBroker).

- KafkaMessageBroker: kafka-python, producer criado no primeiro envio
- InMemoryMessageBroker: Para testes (com injeção de falhas)
"""

from typing import Dict, List, Optional
import logging
import threading

from kafka import KafkaProducer
from kafka.errors import KafkaError

from ticket_ledger.config.structs import KafkaConfig
from ticket_ledger.core.shared.exceptions import PublishFailedError
from ticket_ledger.core.shared.interfaces import BrokerMessage

logger = logging.getLogger(__name__)


class KafkaMessageBroker:
    """
    MessageBroker sobre kafka-python.

    O producer só é criado no primeiro send(), para que processos
    que nunca publicam (web, migrações) não abram conexão com o Kafka.
    Cada envio espera a confirmação do broker (future.get).

    Example:
        broker = KafkaMessageBroker(KafkaConfig(bootstrap_servers=("kafka:9092",)))
        broker.send(BrokerMessage("ticket-events", "T1", b"{...}", {"event_type": "TicketCreated"}))
    """

    def __init__(self, config: Optional[KafkaConfig] = None):
        self.config = config or KafkaConfig()
        self._producer: Optional[KafkaProducer] = None
        self._lock = threading.Lock()

    def _get_producer(self) -> KafkaProducer:
        if self._producer is None:
            with self._lock:
                if self._producer is None:
                    try:
                        self._producer = KafkaProducer(
                            bootstrap_servers=list(self.config.bootstrap_servers),
                            client_id=self.config.client_id,
                            acks=self.config.acks,
                        )
                        logger.info(
                            f"Kafka producer initialized: {','.join(self.config.bootstrap_servers)}"
                        )
                    except KafkaError as e:
                        logger.error(f"Failed to initialize Kafka producer: {e}")
                        raise PublishFailedError(f"Kafka indisponível: {e}") from e
        return self._producer

    def send(self, message: BrokerMessage) -> None:
        """
        Envia e aguarda confirmação.

        Raises:
            PublishFailedError: Producer indisponível ou envio não confirmado
        """
        producer = self._get_producer()
        try:
            future = producer.send(
                message.topic,
                key=message.key.encode("utf-8"),
                value=message.value,
                headers=[(name, value.encode("utf-8")) for name, value in message.headers.items()],
            )
            future.get(timeout=self.config.send_timeout)
        except KafkaError as e:
            raise PublishFailedError(f"Falha ao publicar em {message.topic}: {e}") from e

    def flush(self) -> None:
        if self._producer is not None:
            self._producer.flush(timeout=self.config.send_timeout)

    def close(self) -> None:
        """Fecha o producer, liberando conexões."""
        with self._lock:
            if self._producer is not None:
                self._producer.close(timeout=self.config.send_timeout)
                self._producer = None


class InMemoryMessageBroker:
    """
    Broker em memória para testes.

    Armazena mensagens enviadas por tópico. fail_next(n) faz os
    próximos n envios falharem com PublishFailedError.
    """

    def __init__(self):
        self.messages: Dict[str, List[BrokerMessage]] = {}
        self._failures_pending = 0

    def send(self, message: BrokerMessage) -> None:
        if self._failures_pending > 0:
            self._failures_pending -= 1
            raise PublishFailedError(f"Falha simulada ao publicar em {message.topic}")
        self.messages.setdefault(message.topic, []).append(message)

    def fail_next(self, count: int = 1) -> None:
        self._failures_pending = count

    def sent(self, topic: Optional[str] = None) -> List[BrokerMessage]:
        """Mensagens enviadas (de um tópico ou de todos, em ordem)."""
        if topic is not None:
            return list(self.messages.get(topic, []))
        return [message for messages in self.messages.values() for message in messages]

    def clear(self) -> None:
        self.messages.clear()
        self._failures_pending = 0
