"""Ядро RAG-ассистента по базе FAQ.

Содержит:
- config: dataclass-конфиги эмбеддингов, хранилища, LLM, поиска, повторов и промпта
- embeddings: провайдер эмбеддингов поверх LlamaIndex BaseEmbedding (OpenAI-совместимый API)
- vectorstore: хранилище базы знаний (NumPy in-memory / Weaviate) с косинусным поиском
- prompts: сборка промпта из инструкций, контекста, истории и вопроса
- llm: адаптер LlamaIndex CustomLLM для OpenAI-совместимого Chat API
- generator: генерация ответа с повторами и классификацией сбоев
- engine: оркестратор RagPipeline
- ingestion: загрузка FAQ в базу знаний
"""

from .engine import RagPipeline
from .errors import (
    DimensionMismatchError,
    EmbeddingError,
    GenerationError,
    NonRetryableGenerationError,
    PermissionRestrictedError,
    RagError,
    RateLimitedError,
    RetrievalError,
    RetryExhaustedError,
    ServiceUnavailableError,
)
from .models import Document, HistoryTurn, RagResponse, RetrievalResult, Role

__all__ = [
    "RagPipeline",
    "Document",
    "HistoryTurn",
    "RagResponse",
    "RetrievalResult",
    "Role",
    "RagError",
    "EmbeddingError",
    "RetrievalError",
    "DimensionMismatchError",
    "GenerationError",
    "NonRetryableGenerationError",
    "RetryExhaustedError",
    "RateLimitedError",
    "PermissionRestrictedError",
    "ServiceUnavailableError",
]
