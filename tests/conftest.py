"""
Общие заглушки для тестов: эмбеддер, LLM со сценарием ответов, пауза без ожидания.

Ни одна заглушка не ходит в сеть и не скачивает модели.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

import pytest
from llama_index.core.llms import CompletionResponse

from faq_rag.embeddings import EmbeddingProvider

DIM = 4


class _StubEmbedModel:
    """Эмбеддер по словарю текст -> вектор (для остальных текстов — default)."""

    def __init__(self, vectors: Optional[Dict[str, Sequence[float]]] = None, default: Optional[Sequence[float]] = None) -> None:
        self.vectors = dict(vectors or {})
        self.default = list(default) if default is not None else [1.0] + [0.0] * (DIM - 1)
        self.calls: List[str] = []

    async def aget_query_embedding(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))

    async def aget_text_embedding(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


class _ScriptedLLM:
    """LLM, которая по очереди отдаёт ответы из сценария.

    Элемент сценария — строка (успешный ответ) или исключение (сбой попытки).
    Последний элемент повторяется, когда сценарий закончился.
    """

    def __init__(self, script: Sequence[Union[str, BaseException]]) -> None:
        self.script = list(script)
        self.prompts: List[str] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def acomplete(self, prompt: str, **kwargs: Any) -> CompletionResponse:
        idx = min(len(self.prompts), len(self.script) - 1)
        self.prompts.append(prompt)
        item = self.script[idx]
        if isinstance(item, BaseException):
            raise item
        return CompletionResponse(text=item)


class _RecordingSleep:
    """Подмена asyncio.sleep: запоминает длительности пауз и не ждёт."""

    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def stub_embed_model() -> _StubEmbedModel:
    return _StubEmbedModel()


@pytest.fixture
def embedder(stub_embed_model: _StubEmbedModel) -> EmbeddingProvider:
    return EmbeddingProvider(stub_embed_model, dimension=DIM)


@pytest.fixture
def recording_sleep() -> _RecordingSleep:
    return _RecordingSleep()


@pytest.fixture
def scripted_llm():
    return _ScriptedLLM


@pytest.fixture
def embed_model_cls():
    return _StubEmbedModel
