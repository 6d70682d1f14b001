#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import threading
from functools import lru_cache
from typing import Dict, List, Literal

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from faq_rag.config import AppConfig
from faq_rag.errors import (
    EmbeddingError,
    GenerationError,
    NonRetryableGenerationError,
    PermissionRestrictedError,
    RateLimitedError,
    RetrievalError,
)
from faq_rag.factory import RagServices, build_services
from faq_rag.logging_utils import configure_logging, get_logger
from faq_rag.models import recent_history

logger = get_logger("faq_rag.api")

app = FastAPI(title="FAQ RAG Assistant API", version="1.0.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class HistoryMessage(BaseModel):
    """Реплика истории чата в том виде, в каком её присылает фронтенд."""
    role: Literal["user", "assistant", "system"]
    content: str = ""


class ChatRequest(BaseModel):
    """Тело запроса к ассистенту: вопрос и история диалога (любой длины)."""
    query: str = ""
    history: List[HistoryMessage] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Ответ ассистента и фрагменты базы знаний, на которых он построен."""
    answer: str
    context: List[str]


class IngestResponse(BaseModel):
    """Результат перестроения базы знаний."""
    message: str
    count: int


_services_lock = threading.Lock()


@lru_cache(maxsize=1)
def _load_services() -> RagServices:
    cfg = AppConfig.from_env()
    configure_logging(cfg.log_level)
    services = build_services(cfg)
    logger.info(
        "Services ready: store=%s, llm=%s, embeddings=%s",
        cfg.vector_store.backend, cfg.llm.model_name, cfg.embedding.model_name,
    )
    return services


def get_services() -> RagServices:
    """Ленивая сборка зависимостей по переменным окружения (один раз на процесс).

    FastAPI вызывает синхронные зависимости в пуле потоков, поэтому первые
    параллельные запросы ждут на замке и получают один и тот же RagServices.
    """
    with _services_lock:
        return _load_services()


def _status_for(exc: GenerationError) -> int:
    if isinstance(exc, RateLimitedError):
        return 429
    if isinstance(exc, (PermissionRestrictedError, NonRetryableGenerationError)):
        return 502
    return 503


@app.get("/health")
def health() -> Dict[str, str]:
    """Простой health-check эндпоинт для мониторинга/оркестраторов."""
    return {"status": "ok"}


@app.post("/api/chat", response_model=ChatResponse)
async def chat(req: ChatRequest, services: RagServices = Depends(get_services)) -> ChatResponse:
    """Отвечает на вопрос по базе знаний.

    История фильтруется здесь: реплики system отбрасываются, в ядро
    уходят только последние history_limit реплик.
    """
    if not req.query.strip():
        raise HTTPException(status_code=400, detail="Query is required")

    cfg = services.config
    history = recent_history((m.model_dump() for m in req.history), limit=cfg.prompt.history_limit)
    try:
        result = await asyncio.wait_for(
            services.pipeline.answer(req.query, history),
            timeout=cfg.pipeline.request_timeout_s,
        )
    except asyncio.TimeoutError:
        logger.error("Chat request timed out after %.1fs", cfg.pipeline.request_timeout_s)
        raise HTTPException(status_code=504, detail="The request took too long. Please try again.")
    except GenerationError as e:
        logger.error("Generation failed: %s (%s)", type(e).__name__, e.kind.value)
        raise HTTPException(status_code=_status_for(e), detail=e.user_message)
    except (EmbeddingError, RetrievalError) as e:
        logger.error("Chat error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process chat request")
    except Exception:
        logger.exception("Unexpected chat error")
        raise HTTPException(status_code=500, detail="Failed to process chat request")

    return ChatResponse(answer=result.answer, context=result.context)


@app.post("/api/ingest-docs", response_model=IngestResponse)
async def ingest_docs(services: RagServices = Depends(get_services)) -> IngestResponse:
    """Перестраивает базу знаний встроенным набором FAQ."""
    try:
        count = await services.indexer.build_index()
    except Exception:
        logger.exception("Ingestion error")
        raise HTTPException(status_code=500, detail="Failed to ingest documents")
    return IngestResponse(message="Ingestion complete", count=count)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=False)
