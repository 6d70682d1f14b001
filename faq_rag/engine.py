#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import time
from typing import Optional, Sequence

from .embeddings import EmbeddingProvider
from .errors import RagError, RetrievalError
from .generator import AnswerGenerator
from .logging_utils import get_logger
from .models import GenerationRequest, HistoryTurn, RagResponse, context_texts
from .prompts import PromptAssembler
from .vectorstore import KnowledgeStore

logger = get_logger(__name__)


class RagPipeline:
    """Оркестратор RAG: эмбеддинг запроса -> поиск top-k -> промпт -> генерация.

    Все зависимости передаются явно, поэтому любую из них можно подменить
    заглушкой. Состояние запроса живёт только в локальных переменных
    answer(), так что один экземпляр обслуживает параллельные запросы.
    """
    def __init__(
        self,
        embedder: EmbeddingProvider,
        store: KnowledgeStore,
        generator: AnswerGenerator,
        assembler: Optional[PromptAssembler] = None,
        top_k: int = 3,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._generator = generator
        self._assembler = assembler or PromptAssembler()
        self._top_k = top_k

    async def _retrieve(self, query_vector: Sequence[float]):
        try:
            return await asyncio.to_thread(self._store.search, query_vector, self._top_k)
        except RagError:
            raise
        except Exception as exc:
            raise RetrievalError(f"Knowledge store search failed: {exc}") from exc

    async def answer(self, query: str, history: Sequence[HistoryTurn] = ()) -> RagResponse:
        """Отвечает на вопрос по базе знаний и возвращает ответ с использованным контекстом.

        Пустой результат поиска не ошибка: модель получает пустой блок
        контекста и должна сообщить, что информации нет.
        """
        t0 = time.perf_counter()
        query_vector = await self._embedder.embed(query)
        t_embed = time.perf_counter()

        results = await self._retrieve(query_vector)
        t_search = time.perf_counter()
        documents = context_texts(results)
        if not documents:
            logger.warning("No documents retrieved for query; answering with empty context.")
        else:
            logger.debug("Retrieved: %s", [(r.category, round(r.score, 4)) for r in results])

        request = GenerationRequest(query=query, context_documents=documents, history=list(history))
        prompt = self._assembler.assemble(request)

        answer = await self._generator.generate(prompt)
        t_done = time.perf_counter()

        logger.info(
            "Pipeline total: %.1fms (embed=%.1f, search=%.1f, generate=%.1f), context=%d, history=%d",
            (t_done - t0) * 1000,
            (t_embed - t0) * 1000,
            (t_search - t_embed) * 1000,
            (t_done - t_search) * 1000,
            len(documents),
            len(request.history),
        )
        return RagResponse(answer=answer, context=documents)
