#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Иерархия исключений RAG-ядра и классификация сбоев генерации.

Вид сбоя (ErrorKind) определяется один раз — на границе вызова модели —
и дальше используется и политикой повторов, и выбором текста для пользователя.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Категория сбоя вызова языковой модели."""

    BAD_REQUEST = "bad_request"
    INVALID_CREDENTIALS = "invalid_credentials"
    RATE_LIMITED = "rate_limited"
    PERMISSION_DENIED = "permission_denied"
    SERVER_ERROR = "server_error"
    TRANSIENT = "transient"

    @property
    def retryable(self) -> bool:
        return self not in (ErrorKind.BAD_REQUEST, ErrorKind.INVALID_CREDENTIALS)


RATE_LIMITED_MESSAGE = "I'm receiving too many requests right now. Please try again in a moment."
PERMISSION_RESTRICTED_MESSAGE = "My system permissions are currently restricted. Please check the API Key."
SERVICE_OUTAGE_MESSAGE = "I am currently experiencing service outages. Please try again later."
SERVICE_UNAVAILABLE_MESSAGE = "AI Service Unavailable"


class RagError(Exception):
    """Базовое исключение RAG-ядра."""


class EmbeddingError(RagError):
    """Провайдер эмбеддингов не вернул вектор."""


class RetrievalError(RagError):
    """Хранилище недоступно или индекс отсутствует."""


class DimensionMismatchError(RagError, ValueError):
    """Размерность вектора не совпадает с размерностью хранилища."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Embedding dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class ModelCallError(RagError):
    """Сбой одного обращения к модели с уже определённой категорией."""

    def __init__(self, kind: ErrorKind, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class GenerationError(RagError):
    """Окончательный сбой генерации ответа.

    - kind: категория последнего сбоя
    - attempts: сколько попыток было сделано
    - user_message: безопасный текст для показа пользователю
    """

    default_message = SERVICE_UNAVAILABLE_MESSAGE

    def __init__(self, kind: ErrorKind, attempts: int, cause: Optional[BaseException] = None) -> None:
        super().__init__(self.default_message)
        self.kind = kind
        self.attempts = attempts
        self.cause = cause

    @property
    def user_message(self) -> str:
        return self.default_message


class NonRetryableGenerationError(GenerationError):
    """Некорректный запрос или неверные учётные данные: повтор бессмыслен."""

    def __init__(self, kind: ErrorKind, attempts: int, cause: Optional[BaseException] = None) -> None:
        super().__init__(kind, attempts, cause)
        # без подмены текста: наружу уходит исходная ошибка
        self.args = (str(cause) if cause is not None else kind.value,)


class RetryExhaustedError(GenerationError):
    """Все попытки исчерпаны."""


class RateLimitedError(RetryExhaustedError):
    default_message = RATE_LIMITED_MESSAGE


class PermissionRestrictedError(RetryExhaustedError):
    default_message = PERMISSION_RESTRICTED_MESSAGE


class ServiceUnavailableError(RetryExhaustedError):
    default_message = SERVICE_OUTAGE_MESSAGE


_MARKERS = (
    (("API_KEY", "401"), ErrorKind.INVALID_CREDENTIALS),
    (("400",), ErrorKind.BAD_REQUEST),
    (("429",), ErrorKind.RATE_LIMITED),
    (("403",), ErrorKind.PERMISSION_DENIED),
    (("500", "503"), ErrorKind.SERVER_ERROR),
)

_STATUS_KINDS = {
    400: ErrorKind.BAD_REQUEST,
    401: ErrorKind.INVALID_CREDENTIALS,
    403: ErrorKind.PERMISSION_DENIED,
    429: ErrorKind.RATE_LIMITED,
    500: ErrorKind.SERVER_ERROR,
    503: ErrorKind.SERVER_ERROR,
}


def classify_status(status_code: Optional[int]) -> Optional[ErrorKind]:
    """Категория по HTTP-коду ответа (None, если код ничего не говорит)."""
    if status_code is None:
        return None
    if status_code in _STATUS_KINDS:
        return _STATUS_KINDS[status_code]
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    return None


def classify_error(exc: BaseException) -> ErrorKind:
    """Определяет категорию произвольного исключения клиента модели.

    Сначала смотрит на status_code (у исключения или его response),
    затем — на маркеры в тексте сообщения.
    """
    if isinstance(exc, ModelCallError):
        return exc.kind

    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        response = getattr(exc, "response", None)
        status_code = getattr(response, "status_code", None)
    kind = classify_status(status_code if isinstance(status_code, int) else None)
    if kind is not None:
        return kind

    text = str(exc)
    for markers, marker_kind in _MARKERS:
        if any(m in text for m in markers):
            return marker_kind
    return ErrorKind.TRANSIENT


def failure_for(kind: ErrorKind, attempts: int, cause: Optional[BaseException] = None) -> GenerationError:
    """Переводит итоговую категорию сбоя в исключение для вызывающего кода."""
    if not kind.retryable:
        return NonRetryableGenerationError(kind, attempts, cause)
    if kind is ErrorKind.RATE_LIMITED:
        return RateLimitedError(kind, attempts, cause)
    if kind is ErrorKind.PERMISSION_DENIED:
        return PermissionRestrictedError(kind, attempts, cause)
    if kind is ErrorKind.SERVER_ERROR:
        return ServiceUnavailableError(kind, attempts, cause)
    return RetryExhaustedError(kind, attempts, cause)
