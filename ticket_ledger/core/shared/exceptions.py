"""
Exceções do Ticket Ledger.

Este módulo define as exceções que atravessam as camadas do sistema,
permitindo comunicar falhas de forma clara e tipada entre o Core,
os Adapters e os consumidores assíncronos.

Hierarquia:
    DomainException (base)
    ├── ValidationError (validação de entrada)
    ├── EntityNotFoundError (entidade não existe)
    │   └── AggregateNotFoundError (stream de eventos vazio)
    ├── ConflictError (conflito - o chamador pode recarregar e tentar de novo)
    │   ├── BusinessRuleViolationError (regra de negócio violada)
    │   │   ├── InvalidTicketStateError
    │   │   └── TicketAlreadyExistsError
    │   └── ConcurrencyError (corrida de sequence_number)
    └── EventReconstitutionError (replay impossível)
        ├── UnknownEventTypeError
        └── MalformedEventError

    InfrastructureException (base)
    ├── PersistenceError (sempre carrega aggregate_id e a causa)
    │   ├── EventPersistenceFailedError
    │   ├── EventLoadFailedError
    │   └── ReadModelPersistenceError
    └── ConsumerError (confinada aos consumidores assíncronos)
        ├── ProjectionFailedError
        └── PublishFailedError
"""

from typing import Optional


class DomainException(Exception):
    """
    Exceção base para todos os erros de domínio.

    Todas as exceções específicas do domínio devem herdar desta classe.
    Isso permite capturar qualquer erro de domínio de forma genérica.

    Example:
        try:
            ticket.resolve()
        except DomainException as e:
            logger.error(f"Erro de domínio: {e}")
    """

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        """Serializa exceção para dicionário (útil para APIs)."""
        return {
            "error": self.code,
            "message": self.message,
        }


class ValidationError(DomainException):
    """
    Erro de validação de dados de entrada.

    Example:
        if not title.strip():
            raise ValidationError("Título é obrigatório", field="title")
    """

    def __init__(self, message: str, field: str = None):
        self.field = field
        code = f"VALIDATION_ERROR_{field.upper()}" if field else "VALIDATION_ERROR"
        super().__init__(message, code)

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        return result


class EntityNotFoundError(DomainException):
    """
    Entidade não encontrada.

    Lançada quando uma busca por ID não retorna resultado.
    """

    def __init__(self, message: str, entity_type: str = None, entity_id: str = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(message, "ENTITY_NOT_FOUND")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.entity_type:
            result["entity_type"] = self.entity_type
        if self.entity_id:
            result["entity_id"] = self.entity_id
        return result


class AggregateNotFoundError(EntityNotFoundError):
    """
    Nenhum evento encontrado para o agregado.

    Em Event Sourcing um agregado só existe se seu stream
    tiver pelo menos um evento.

    Example:
        store.load("ghost-id")  # AggregateNotFoundError
    """

    def __init__(self, aggregate_id: str, aggregate_type: str = "Ticket"):
        super().__init__(
            f"{aggregate_type} com ID {aggregate_id} não encontrado.",
            entity_type=aggregate_type,
            entity_id=aggregate_id,
        )
        self.code = "AGGREGATE_NOT_FOUND"


class ConflictError(DomainException):
    """
    Base para conflitos de estado.

    Agrupa violações de regra de negócio e corridas de
    concorrência: em ambos os casos o chamador pode recarregar
    o agregado e decidir se tenta novamente.
    """

    retryable = False

    def __init__(self, message: str, code: str = None):
        super().__init__(message, code or "CONFLICT")


class BusinessRuleViolationError(ConflictError):
    """
    Violação de regra de negócio.

    Example:
        if ticket.status is TicketStatus.RESOLVED:
            raise BusinessRuleViolationError(
                "Ticket já resolvido", rule="resolve_requires_open"
            )
    """

    def __init__(self, message: str, rule: str = None):
        self.rule = rule
        super().__init__(message, "BUSINESS_RULE_VIOLATION")

    def to_dict(self) -> dict:
        result = super().to_dict()
        if self.rule:
            result["rule"] = self.rule
        return result


class InvalidTicketStateError(BusinessRuleViolationError):
    """Transição de estado não permitida para o ticket."""

    def __init__(self, message: str, ticket_id: str = None):
        self.ticket_id = ticket_id
        super().__init__(message, rule="resolve_requires_open")
        self.code = "INVALID_TICKET_STATE"


class TicketAlreadyExistsError(BusinessRuleViolationError):
    """TicketCreated só é válido como primeiro evento de um stream."""

    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__(
            f"Ticket {ticket_id} já existe.",
            rule="created_must_be_first_event",
        )
        self.code = "TICKET_ALREADY_EXISTS"


class ConcurrencyError(ConflictError):
    """
    Erro de concorrência na escrita de eventos.

    Lançada quando outro processo gravou o mesmo sequence_number
    para o agregado. O chamador deve recarregar, reaplicar e salvar.

    Example:
        try:
            store.save(ticket)
        except ConcurrencyError:
            ticket = store.load(ticket.id)
    """

    retryable = True

    def __init__(self, message: str, aggregate_id: str = None):
        self.aggregate_id = aggregate_id
        super().__init__(message, "CONCURRENCY_ERROR")


class EventReconstitutionError(DomainException):
    """Base para falhas fatais ao reconstruir eventos do stream."""


class UnknownEventTypeError(EventReconstitutionError):
    """Tag de event_type sem decoder registrado."""

    def __init__(self, event_type: str):
        self.event_type = event_type
        super().__init__(
            f"Tipo de evento desconhecido: {event_type}",
            "UNKNOWN_EVENT_TYPE",
        )


class MalformedEventError(EventReconstitutionError):
    """Evento sem campo obrigatório ou com valor inválido."""

    def __init__(self, event_type: str, reason: str):
        self.event_type = event_type
        self.reason = reason
        super().__init__(
            f"Evento {event_type} malformado: {reason}",
            "MALFORMED_EVENT",
        )


# =============================================================================
# Infraestrutura
# =============================================================================

class InfrastructureException(Exception):
    """
    Exceção base para falhas de infraestrutura.

    Separada de DomainException: não representa uma regra violada,
    e sim banco, cache ou broker indisponível.
    """

    def __init__(self, message: str, code: str = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "error": self.code,
            "message": self.message,
        }


class PersistenceError(InfrastructureException):
    """
    Falha de persistência associada a um agregado.

    Attributes:
        aggregate_id: ID do agregado afetado
        cause: Erro original do driver (também em __cause__)
    """

    def __init__(
        self,
        message: str,
        aggregate_id: str,
        cause: Optional[BaseException] = None,
        code: str = None,
    ):
        self.aggregate_id = aggregate_id
        self.cause = cause
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, code or "PERSISTENCE_FAILURE")

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["aggregate_id"] = self.aggregate_id
        return result


class EventPersistenceFailedError(PersistenceError):
    """Transação de gravação de eventos desfeita."""

    def __init__(self, aggregate_id: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Falha ao salvar eventos para o agregado {aggregate_id}",
            aggregate_id=aggregate_id,
            cause=cause,
            code="EVENT_PERSISTENCE_FAILED",
        )


class EventLoadFailedError(PersistenceError):
    """Falha de leitura do stream de eventos."""

    def __init__(self, aggregate_id: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Falha ao carregar eventos do agregado {aggregate_id}",
            aggregate_id=aggregate_id,
            cause=cause,
            code="EVENT_LOAD_FAILED",
        )


class ReadModelPersistenceError(PersistenceError):
    """Falha ao ler ou gravar um documento do read model."""

    def __init__(self, aggregate_id: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Falha ao acessar read model do ticket {aggregate_id}",
            aggregate_id=aggregate_id,
            cause=cause,
            code="READ_MODEL_PERSISTENCE_FAILED",
        )


class ConsumerError(InfrastructureException):
    """Falha confinada a um consumidor assíncrono de eventos."""

    def __init__(self, message: str, consumer: str, failed_event_ids=None, code: str = None):
        self.consumer = consumer
        self.failed_event_ids = list(failed_event_ids or [])
        super().__init__(message, code)


class ProjectionFailedError(ConsumerError):
    """Um ou mais eventos do lote não foram projetados."""

    def __init__(self, aggregate_id: str, failed_event_ids=None):
        self.aggregate_id = aggregate_id
        super().__init__(
            f"Erro ao atualizar read model do ticket {aggregate_id}",
            consumer="projector",
            failed_event_ids=failed_event_ids,
            code="PROJECTION_FAILED",
        )


class PublishFailedError(ConsumerError):
    """Um ou mais eventos do lote não foram publicados no broker."""

    def __init__(self, message: str, failed_event_ids=None):
        super().__init__(
            message,
            consumer="publisher",
            failed_event_ids=failed_event_ids,
            code="PUBLISH_FAILED",
        )
