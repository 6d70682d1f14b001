#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
from typing import Any, List, Optional

from llama_index.core.base.embeddings.base import BaseEmbedding
from llama_index.core.bridge.pydantic import PrivateAttr
from openai import AsyncOpenAI, OpenAI

from .config import EmbeddingConfig
from .errors import DimensionMismatchError, EmbeddingError
from .logging_utils import get_logger

logger = get_logger(__name__)


class OpenAICompatEmbedding(BaseEmbedding):
    """Адаптер LlamaIndex BaseEmbedding для OpenAI-совместимого /v1/embeddings.

    Каждый вызов — ровно один сетевой запрос к модели эмбеддингов: без
    кеширования и без повторов на стороне SDK.
    """
    _client: OpenAI = PrivateAttr()
    _aclient: AsyncOpenAI = PrivateAttr()
    _dimensions: Optional[int] = PrivateAttr(default=None)

    def __init__(
        self,
        model_name: str,
        api_key: str,
        base_url: Optional[str] = None,
        dimensions: Optional[int] = None,
        embed_batch_size: int = 32,
        timeout_s: float = 30.0,
        **kwargs: Any,
    ) -> None:
        super().__init__(model_name=model_name, embed_batch_size=embed_batch_size, **kwargs)
        self._client = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout_s, max_retries=0)
        self._aclient = AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout_s, max_retries=0)
        self._dimensions = dimensions

    @classmethod
    def class_name(cls) -> str:
        return "OpenAICompatEmbedding"

    def _request_kwargs(self, texts: List[str]) -> dict:
        kwargs = {"model": self.model_name, "input": texts}
        if self._dimensions:
            kwargs["dimensions"] = self._dimensions
        return kwargs

    def _get_text_embeddings(self, texts: List[str]) -> List[List[float]]:
        resp = self._client.embeddings.create(**self._request_kwargs(texts))
        return [item.embedding for item in resp.data]

    async def _aget_text_embeddings(self, texts: List[str]) -> List[List[float]]:
        resp = await self._aclient.embeddings.create(**self._request_kwargs(texts))
        return [item.embedding for item in resp.data]

    def _get_query_embedding(self, query: str) -> List[float]:
        return self._first(self._get_text_embeddings([query]))

    def _get_text_embedding(self, text: str) -> List[float]:
        return self._first(self._get_text_embeddings([text]))

    async def _aget_query_embedding(self, query: str) -> List[float]:
        return self._first(await self._aget_text_embeddings([query]))

    async def _aget_text_embedding(self, text: str) -> List[float]:
        return self._first(await self._aget_text_embeddings([text]))

    @staticmethod
    def _first(vectors: List[List[float]]) -> List[float]:
        return vectors[0] if vectors else []


class EmbeddingProvider:
    """Превращает текст в вектор фиксированной размерности.

    Оборачивает любую модель LlamaIndex (BaseEmbedding) и гарантирует, что
    вызывающий код получит либо непустой вектор, либо EmbeddingError.
    Если задана dimension, вектор другой длины сразу даёт
    DimensionMismatchError, не дожидаясь записи в хранилище.
    """
    def __init__(self, model: BaseEmbedding, dimension: Optional[int] = None) -> None:
        self._model = model
        self.dimension = dimension

    async def embed(self, text: str) -> List[float]:
        """Эмбеддинг поискового запроса."""
        return await self._embed(text, query=True)

    async def embed_document(self, text: str) -> List[float]:
        """Эмбеддинг документа базы знаний (для загрузки)."""
        return await self._embed(text, query=False)

    async def _embed(self, text: str, query: bool) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")
        try:
            if query:
                vector = await self._model.aget_query_embedding(text)
            else:
                vector = await self._model.aget_text_embedding(text)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Embedding request failed: %s", exc)
            raise EmbeddingError(f"Failed to generate embedding: {exc}") from exc

        if not vector:
            raise EmbeddingError("Failed to generate embedding: provider returned no vector")
        if self.dimension is not None and len(vector) != self.dimension:
            raise DimensionMismatchError(self.dimension, len(vector))
        return [float(x) for x in vector]


def make_embed_model(cfg: EmbeddingConfig) -> BaseEmbedding:
    """Создаёт модель эмбеддингов по конфигурации.

    - openai: удалённый OpenAI-совместимый сервис
    - huggingface: локальная модель через llama-index-embeddings-huggingface
    """
    if cfg.backend == "openai":
        return OpenAICompatEmbedding(
            model_name=cfg.model_name,
            api_key=cfg.api_key,
            base_url=cfg.base_url,
            dimensions=cfg.dimension,
            embed_batch_size=cfg.embed_batch_size,
            timeout_s=cfg.timeout_s,
        )
    if cfg.backend == "huggingface":
        from llama_index.embeddings.huggingface import HuggingFaceEmbedding

        return HuggingFaceEmbedding(model_name=cfg.model_name, embed_batch_size=cfg.embed_batch_size)
    raise ValueError(f"Unknown embedding backend: {cfg.backend}")
