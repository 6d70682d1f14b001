#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Модель данных RAG-ядра: документы, история диалога, результаты поиска и ответ."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Document:
    """Документ базы знаний с заранее посчитанным эмбеддингом.

    После загрузки не изменяется: обновление — только повторной индексацией.
    """
    content: str
    category: str
    embedding: Tuple[float, ...]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "embedding", tuple(float(x) for x in self.embedding))


@dataclass(frozen=True)
class HistoryTurn:
    """Одна реплика диалога (user/assistant)."""
    role: Role
    content: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "HistoryTurn":
        return cls(role=Role(str(data["role"]).lower()), content=str(data.get("content") or ""))


@dataclass(frozen=True)
class RetrievalResult:
    """Найденный фрагмент и его косинусная близость к запросу."""
    content: str
    score: float
    category: str = ""
    document_id: str = ""


@dataclass
class GenerationRequest:
    """Всё, что нужно для сборки промпта одного запроса."""
    query: str
    context_documents: List[str] = field(default_factory=list)
    history: List[HistoryTurn] = field(default_factory=list)


@dataclass
class RagResponse:
    """Ответ пайплайна: текст и фрагменты контекста, на которых он основан."""
    answer: str
    context: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"answer": self.answer, "context": list(self.context)}


def recent_history(turns: Iterable[Mapping[str, Any]], limit: int = 10) -> List[HistoryTurn]:
    """Готовит историю для ядра на стороне вызывающего кода.

    - отбрасывает реплики с ролью system (и любые неизвестные роли)
    - оставляет последние `limit` реплик в хронологическом порядке
    """
    allowed = {r.value for r in Role}
    prepared: List[HistoryTurn] = []
    for turn in turns:
        role = str(turn.get("role", "")).lower()
        if role not in allowed:
            continue
        prepared.append(HistoryTurn(role=Role(role), content=str(turn.get("content") or "")))
    if limit <= 0:
        return []
    return prepared[-limit:]


def context_texts(results: Sequence[RetrievalResult]) -> List[str]:
    return [r.content for r in results]
