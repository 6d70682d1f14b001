#!/usr/bin/env python3
# -*- coding: utf-8 -*-
import asyncio
import json
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .data.faqs import RAW_FAQS
from .embeddings import EmbeddingProvider
from .logging_utils import get_logger
from .models import Document
from .vectorstore import KnowledgeStore

logger = get_logger(__name__)


def load_faq_file(path: str) -> List[Dict[str, str]]:
    """Читает FAQ из JSON-файла: список объектов {"category", "content"}."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"FAQ file not found: {p}")
    data = json.loads(p.read_text(encoding="utf-8"))
    if not isinstance(data, list):
        raise ValueError(f"FAQ file must contain a JSON list, got {type(data).__name__}")
    return [{"category": str(item["category"]), "content": str(item["content"])} for item in data]


class FaqIndexer:
    """Загрузчик базы знаний.

    1) Считает эмбеддинг каждой записи FAQ с паузой pace_s между вызовами
       (ограничения провайдера по частоте запросов)
    2) Заменяет содержимое хранилища целиком одной операцией replace_all

    Эмбеддинги считаются до замены, поэтому окно эксклюзивной записи
    в хранилище короткое, а отмена на этапе эмбеддингов ничего не меняет.
    """
    def __init__(self, embedder: EmbeddingProvider, store: KnowledgeStore, pace_s: float = 0.2) -> None:
        self.embedder = embedder
        self.store = store
        self.pace_s = pace_s

    async def _to_documents(self, entries: Sequence[Mapping[str, str]]) -> List[Document]:
        documents: List[Document] = []
        for n, entry in enumerate(entries, start=1):
            if self.pace_s > 0:
                await asyncio.sleep(self.pace_s)
            vector = await self.embedder.embed_document(entry["content"])
            documents.append(Document(content=entry["content"], category=entry.get("category", "General"), embedding=vector))
            logger.debug("Embedded %d/%d", n, len(entries))
        return documents

    async def build_index(self, entries: Optional[Sequence[Mapping[str, str]]] = None) -> int:
        """Перестраивает базу знаний; по умолчанию — встроенным набором RAW_FAQS.

        Возвращает число загруженных документов.
        """
        entries = RAW_FAQS if entries is None else entries
        logger.info("Ingesting %d documents...", len(entries))
        documents = await self._to_documents(entries)
        count = await asyncio.to_thread(self.store.replace_all, documents)
        logger.info("Ingestion complete: %d documents.", count)
        return count
