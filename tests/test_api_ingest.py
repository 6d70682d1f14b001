"""
Тесты загрузки базы знаний: эндпоинт /api/ingest-docs и FaqIndexer.

Сценарии:
- Успешная загрузка (мок индексатора, без реального эмбеддера)
- Ошибка загрузки (исключение из индексатора -> HTTP 500)
- FaqIndexer: встроенный FAQ целиком попадает в хранилище
- Отмена во время загрузки не трогает текущую базу
- Чтение FAQ из JSON-файла

Запуск тестов:
  pytest -q tests/test_api_ingest.py

Ручная проверка эндпоинта (после запуска uvicorn app.main:app):
  curl -X POST http://localhost:8000/api/ingest-docs
"""

import asyncio
import json
from pathlib import Path
from types import SimpleNamespace
from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient

from app.main import app, get_services
from faq_rag.data.faqs import RAW_FAQS
from faq_rag.embeddings import EmbeddingProvider
from faq_rag.errors import DimensionMismatchError
from faq_rag.ingestion import FaqIndexer, load_faq_file
from faq_rag.models import Document
from faq_rag.vectorstore import InMemoryKnowledgeStore


class _DummyIndexer:
    """Простой мок индексатора, без внешних зависимостей."""

    def __init__(self, count: int = 7, error: Optional[Exception] = None) -> None:
        self.count = count
        self.error = error
        self._calls: List[Any] = []

    async def build_index(self, entries=None) -> int:
        self._calls.append(entries)
        if self.error is not None:
            raise self.error
        return self.count


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_ingest_happy_path_mocked(client: TestClient) -> None:
    indexer = _DummyIndexer(count=15)
    app.dependency_overrides[get_services] = lambda: SimpleNamespace(indexer=indexer)

    resp = client.post("/api/ingest-docs")

    assert resp.status_code == 200, resp.text
    assert resp.json() == {"message": "Ingestion complete", "count": 15}
    assert indexer._calls == [None]


def test_ingest_error_translates_to_500(client: TestClient) -> None:
    indexer = _DummyIndexer(error=ConnectionError("embedding provider down"))
    app.dependency_overrides[get_services] = lambda: SimpleNamespace(indexer=indexer)

    resp = client.post("/api/ingest-docs")

    assert resp.status_code == 500
    assert resp.json() == {"detail": "Failed to ingest documents"}


def test_indexer_loads_bundled_faqs(embedder, stub_embed_model) -> None:
    store = InMemoryKnowledgeStore(dimension=4)
    store.ingest(Document(content="stale", category="Old", embedding=[0.0, 0.0, 0.0, 1.0]))
    indexer = FaqIndexer(embedder, store, pace_s=0)

    count = asyncio.run(indexer.build_index())

    assert count == len(RAW_FAQS) == 15
    assert store.count() == len(RAW_FAQS)
    assert stub_embed_model.calls == [e["content"] for e in RAW_FAQS]
    contents = {r.content for r in store.search([1.0, 0.0, 0.0, 0.0], k=100)}
    assert "stale" not in contents
    assert RAW_FAQS[0]["content"] in contents


def test_indexer_paces_embedding_calls(embedder) -> None:
    store = InMemoryKnowledgeStore(dimension=4)
    indexer = FaqIndexer(embedder, store, pace_s=0.02)
    entries = [{"category": "A", "content": f"fact {i}"} for i in range(3)]

    loop_time = asyncio.run(_timed(indexer.build_index(entries)))

    assert store.count() == 3
    assert loop_time >= 0.05


async def _timed(coro) -> float:
    loop = asyncio.get_running_loop()
    t0 = loop.time()
    await coro
    return loop.time() - t0


def test_cancelled_ingestion_keeps_existing_store(embedder) -> None:
    store = InMemoryKnowledgeStore(dimension=4)
    store.ingest(Document(content="current", category="General", embedding=[1.0, 0.0, 0.0, 0.0]))
    indexer = FaqIndexer(embedder, store, pace_s=1.0)

    async def run() -> None:
        await asyncio.wait_for(indexer.build_index(), timeout=0.05)

    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(run())

    assert store.count() == 1
    assert [r.content for r in store.search([1.0, 0.0, 0.0, 0.0])] == ["current"]


def test_indexer_dimension_mismatch_fails_fast(embed_model_cls) -> None:
    model = embed_model_cls(default=[1.0, 0.0])
    store = InMemoryKnowledgeStore(dimension=4)
    entries = [{"category": "A", "content": f"fact {i}"} for i in range(3)]

    with pytest.raises(DimensionMismatchError):
        asyncio.run(FaqIndexer(EmbeddingProvider(model, dimension=4), store, pace_s=0).build_index(entries))
    assert model.calls == ["fact 0"]
    assert store.count() == 0


def test_store_rejects_mismatch_when_embedder_has_no_dimension(embed_model_cls) -> None:
    store = InMemoryKnowledgeStore(dimension=4)
    with pytest.raises(DimensionMismatchError):
        asyncio.run(FaqIndexer(EmbeddingProvider(embed_model_cls(default=[1.0, 0.0])), store, pace_s=0).build_index([{"category": "A", "content": "x"}]))
    assert store.count() == 0


def test_load_faq_file(tmp_path: Path) -> None:
    path = tmp_path / "faqs.json"
    path.write_text(json.dumps([{"category": "Pricing", "content": "Plans start at $10."}]), encoding="utf-8")

    assert load_faq_file(str(path)) == [{"category": "Pricing", "content": "Plans start at $10."}]


def test_load_faq_file_errors(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_faq_file(str(tmp_path / "missing.json"))

    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"category": "x"}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_faq_file(str(bad))
