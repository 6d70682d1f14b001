#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv


def _env(name: str, default: str = "") -> str:
    value = os.getenv(name, default)
    return value.strip().strip('"').strip("'")


def _env_optional(name: str) -> Optional[str]:
    value = _env(name)
    return value or None


@dataclass
class EmbeddingConfig:
    """Параметры модели эмбеддингов.

    - backend: "openai" (OpenAI-совместимый /v1/embeddings) или "huggingface" (локальная модель)
    - model_name: имя модели эмбеддингов
    - base_url, api_key: адрес и ключ OpenAI-совместимого сервиса
    - dimension: размерность векторов; должна совпадать с размерностью индекса
    - embed_batch_size: размер батча при построении эмбеддингов
    - timeout_s: таймаут одного HTTP-запроса к сервису эмбеддингов
    """
    backend: str = "openai"
    model_name: str = "text-embedding-3-small"
    base_url: Optional[str] = None
    api_key: str = "test"
    dimension: int = 768
    embed_batch_size: int = 32
    timeout_s: float = 30.0


@dataclass
class VectorStoreConfig:
    """Параметры векторного хранилища.

    - backend: "memory" (NumPy, в памяти процесса) или "weaviate"
    - index_name: имя коллекции в Weaviate
    - use_embedded: использовать ли встроенный (embedded) Weaviate
    - weaviate_url: URL удалённого Weaviate (если используется)
    - weaviate_api_key: API-ключ для удалённого Weaviate (опционально)
    - num_candidates: сколько кандидатов просматривает приближённый поиск до ранжирования
    """
    backend: str = "memory"
    index_name: str = "FaqKnowledge"
    use_embedded: bool = True
    weaviate_url: Optional[str] = None
    weaviate_api_key: Optional[str] = None
    num_candidates: int = 100


@dataclass
class LLMConfig:
    """Параметры языковой модели (OpenAI-совместимый API).

    - base_url: базовый URL сервиса LLM (None — официальный endpoint)
    - api_key: ключ доступа
    - model_name: имя модели
    - temperature, top_p, max_tokens: параметры генерации
    - system_prompt: системный промпт (по умолчанию инструкции уже внутри промпта)
    - enable_thinking: передавать ли спец.параметр enable_thinking
    - timeout_s: таймаут одного HTTP-запроса к модели
    """
    base_url: Optional[str] = None
    api_key: str = "test"
    model_name: str = "gpt-4o-mini"
    temperature: float = 0.3
    top_p: float = 0.9
    max_tokens: int = 800
    system_prompt: Optional[str] = None
    enable_thinking: bool = False
    timeout_s: float = 60.0


@dataclass
class RetrievalConfig:
    """Параметры извлечения: сколько фрагментов контекста передаём модели."""
    top_k: int = 3


@dataclass
class RetryConfig:
    """Политика повторов генерации: линейная пауза backoff_base_s * n между попытками."""
    max_attempts: int = 3
    backoff_base_s: float = 1.0


@dataclass
class PromptConfig:
    """Параметры промпта и подготовки истории диалога."""
    assistant_name: str = "Cimba.AI"
    history_limit: int = 10


@dataclass
class PipelineConfig:
    """Параметры обработки одного запроса и загрузки базы знаний.

    - request_timeout_s: общий лимит времени на запрос /api/chat
    - ingest_pace_s: пауза между вызовами эмбеддера при загрузке FAQ
    """
    request_timeout_s: float = 30.0
    ingest_pace_s: float = 0.2


@dataclass
class AppConfig:
    """Полная конфигурация приложения."""
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    prompt: PromptConfig = field(default_factory=PromptConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, dotenv: bool = True) -> "AppConfig":
        """Собирает конфигурацию из переменных окружения (и файла .env)."""
        if dotenv:
            load_dotenv()

        openai_base_url = _env_optional("OPENAI_BASE_URL")
        openai_api_key = _env("OPENAI_API_KEY", "test")
        weaviate_url = _env_optional("WEAVIATE_URL")

        return cls(
            embedding=EmbeddingConfig(
                backend=_env("RAG_EMBEDDING_BACKEND", "openai"),
                model_name=_env("RAG_EMBEDDING_MODEL", "text-embedding-3-small"),
                base_url=_env_optional("RAG_EMBEDDING_BASE_URL") or openai_base_url,
                api_key=_env("RAG_EMBEDDING_API_KEY") or openai_api_key,
                dimension=int(_env("RAG_EMBEDDING_DIM", "768")),
                timeout_s=float(_env("RAG_EMBEDDING_TIMEOUT_S", "30")),
            ),
            vector_store=VectorStoreConfig(
                backend=_env("RAG_VECTOR_BACKEND", "memory"),
                index_name=_env("RAG_INDEX_NAME", "FaqKnowledge"),
                use_embedded=(weaviate_url is None),
                weaviate_url=weaviate_url,
                weaviate_api_key=_env_optional("WEAVIATE_API_KEY"),
                num_candidates=int(_env("RAG_NUM_CANDIDATES", "100")),
            ),
            llm=LLMConfig(
                base_url=openai_base_url,
                api_key=openai_api_key,
                model_name=_env("RAG_LLM_MODEL", "gpt-4o-mini"),
                temperature=float(_env("RAG_LLM_TEMPERATURE", "0.3")),
                max_tokens=int(_env("RAG_LLM_MAX_TOKENS", "800")),
            ),
            retrieval=RetrievalConfig(top_k=int(_env("RAG_TOP_K", "3"))),
            retry=RetryConfig(
                max_attempts=int(_env("RAG_MAX_ATTEMPTS", "3")),
                backoff_base_s=float(_env("RAG_BACKOFF_BASE_S", "1.0")),
            ),
            prompt=PromptConfig(
                assistant_name=_env("RAG_ASSISTANT_NAME", "Cimba.AI"),
                history_limit=int(_env("RAG_HISTORY_LIMIT", "10")),
            ),
            pipeline=PipelineConfig(
                request_timeout_s=float(_env("RAG_REQUEST_TIMEOUT_S", "30")),
                ingest_pace_s=float(_env("RAG_INGEST_PACE_S", "0.2")),
            ),
            log_level=_env("RAG_LOG_LEVEL", "INFO").upper(),
        )
