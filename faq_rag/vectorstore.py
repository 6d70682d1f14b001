#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Хранилище базы знаний: поиск ближайших соседей по косинусной близости.

- InMemoryKnowledgeStore: NumPy, снимки только для чтения (backend "memory")
- WeaviateKnowledgeStore: HNSW-индекс Weaviate (backend "weaviate")
- make_weaviate_client: фабрика клиента Weaviate (embedded/remote)
"""

from __future__ import annotations

import threading
import uuid
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple, runtime_checkable
from urllib.parse import urlparse

import numpy as np
import weaviate
from weaviate.classes.config import Configure, DataType, Property, VectorDistances
from weaviate.classes.data import DataObject
from weaviate.classes.init import Auth
from weaviate.classes.query import MetadataQuery

from .config import VectorStoreConfig
from .errors import DimensionMismatchError, RagError, RetrievalError
from .logging_utils import get_logger
from .models import Document, RetrievalResult

logger = get_logger(__name__)


@runtime_checkable
class KnowledgeStore(Protocol):
    """Возможности хранилища, которыми пользуется пайплайн и загрузчик FAQ."""

    dimension: int

    def search(self, query_vector: Sequence[float], k: int = 3) -> List[RetrievalResult]: ...

    def ingest(self, document: Document) -> None: ...

    def clear(self) -> None: ...

    def replace_all(self, documents: Iterable[Document]) -> int: ...

    def count(self) -> int: ...


def _check_dimension(vector: Sequence[float], dimension: int) -> None:
    if len(vector) != dimension:
        raise DimensionMismatchError(dimension, len(vector))


class _Snapshot:
    """Неизменяемое состояние in-memory хранилища: документы и нормированная матрица."""

    __slots__ = ("documents", "matrix")

    def __init__(self, documents: Tuple[Document, ...], dimension: int) -> None:
        self.documents = documents
        if documents:
            matrix = np.array([d.embedding for d in documents], dtype=np.float64)
            norms = np.linalg.norm(matrix, axis=1, keepdims=True)
            norms[norms == 0.0] = 1.0
            matrix = matrix / norms
        else:
            matrix = np.zeros((0, dimension), dtype=np.float64)
        matrix.setflags(write=False)
        self.matrix = matrix


class InMemoryKnowledgeStore:
    """Хранилище в памяти процесса.

    Читатели берут ссылку на текущий снимок и работают без блокировок;
    писатели сериализуются на замке и публикуют новый снимок одной
    операцией присваивания, поэтому замена базы (clear + загрузка) никогда
    не бывает видна читателю в промежуточном пустом состоянии.
    """

    def __init__(self, dimension: int, num_candidates: int = 100) -> None:
        if dimension <= 0:
            raise ValueError(f"dimension must be positive, got {dimension}")
        self.dimension = dimension
        self.num_candidates = num_candidates
        self._write_lock = threading.Lock()
        self._snapshot = _Snapshot((), dimension)

    def search(self, query_vector: Sequence[float], k: int = 3) -> List[RetrievalResult]:
        _check_dimension(query_vector, self.dimension)
        snapshot = self._snapshot
        n = len(snapshot.documents)
        if n == 0 or k <= 0:
            return []

        query = np.asarray(query_vector, dtype=np.float64)
        norm = np.linalg.norm(query)
        if norm == 0.0:
            scores = np.zeros(n, dtype=np.float64)
        else:
            scores = snapshot.matrix @ (query / norm)

        pool = min(n, max(self.num_candidates, k))
        if pool < n:
            candidates = np.argpartition(-scores, pool - 1)[:pool]
        else:
            candidates = np.arange(n)
        ranked = candidates[np.argsort(-scores[candidates], kind="stable")][:k]

        return [
            RetrievalResult(
                content=snapshot.documents[i].content,
                score=float(scores[i]),
                category=snapshot.documents[i].category,
                document_id=snapshot.documents[i].id,
            )
            for i in ranked
        ]

    def ingest(self, document: Document) -> None:
        _check_dimension(document.embedding, self.dimension)
        with self._write_lock:
            kept = tuple(d for d in self._snapshot.documents if d.id != document.id)
            self._snapshot = _Snapshot(kept + (document,), self.dimension)

    def clear(self) -> None:
        with self._write_lock:
            self._snapshot = _Snapshot((), self.dimension)

    def replace_all(self, documents: Iterable[Document]) -> int:
        docs = tuple(documents)
        for d in docs:
            _check_dimension(d.embedding, self.dimension)
        snapshot = _Snapshot(docs, self.dimension)
        with self._write_lock:
            self._snapshot = snapshot
        logger.info("Knowledge base replaced: %d documents", len(docs))
        return len(docs)

    def count(self) -> int:
        return len(self._snapshot.documents)

    def __repr__(self) -> str:
        return f"InMemoryKnowledgeStore(dimension={self.dimension}, documents={self.count()})"


class _ReadWriteGate:
    """Много читателей или один писатель."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writing = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._writing:
                self._cond.wait()
            self._writing = True
            while self._readers:
                self._cond.wait()
        try:
            yield
        finally:
            with self._cond:
                self._writing = False
                self._cond.notify_all()


def make_weaviate_client(cfg: VectorStoreConfig) -> weaviate.WeaviateClient:
    """Создаёт клиент Weaviate в зависимости от конфигурации.

    - embedded: локальный встроенный сервер Weaviate (без внешних сервисов)
    - remote с API-ключом: Weaviate Cloud
    - remote без ключа: собственный Weaviate (Docker/K8s) по host:port из URL
    """
    if cfg.use_embedded:
        return weaviate.connect_to_embedded()
    if not cfg.weaviate_url:
        raise RuntimeError("Remote Weaviate requested but no URL configured.")

    if cfg.weaviate_api_key:
        return weaviate.connect_to_weaviate_cloud(
            cluster_url=cfg.weaviate_url,
            auth_credentials=Auth.api_key(cfg.weaviate_api_key),
        )
    parsed = urlparse(cfg.weaviate_url)
    return weaviate.connect_to_local(host=parsed.hostname or "localhost", port=parsed.port or 8080)


class WeaviateKnowledgeStore:
    """Хранилище на коллекциях Weaviate с HNSW-индексом и косинусной метрикой.

    index_name — это алиас Weaviate, а не сама коллекция. Каждая
    перезагрузка базы пишет в новую коллекцию `<index_name>_<hex>` и
    переключает алиас только после успешной вставки, затем удаляет старую.
    Алиас хранится на сервере, поэтому другой процесс (например, ingest.py)
    тоже не покажет поиску пустую или наполовину загруженную базу.

    ef индекса = num_candidates: столько кандидатов просматривает
    приближённый поиск, прежде чем вернуть top-k.
    """

    def __init__(self, client: weaviate.WeaviateClient, index_name: str, dimension: int, num_candidates: int = 100) -> None:
        self._client = client
        self.index_name = index_name
        self.dimension = dimension
        self.num_candidates = num_candidates
        self._gate = _ReadWriteGate()

    def _active_collection(self) -> Optional[str]:
        alias = self._client.alias.get(alias_name=self.index_name)
        return alias.collection if alias is not None else None

    def _new_collection(self) -> str:
        name = f"{self.index_name}_{uuid.uuid4().hex[:8]}"
        self._client.collections.create(
            name,
            vectorizer_config=Configure.Vectorizer.none(),
            vector_index_config=Configure.VectorIndex.hnsw(
                distance_metric=VectorDistances.COSINE,
                ef=self.num_candidates,
            ),
            properties=[
                Property(name="content", data_type=DataType.TEXT),
                Property(name="category", data_type=DataType.TEXT),
                Property(name="doc_id", data_type=DataType.TEXT),
                Property(name="created_at", data_type=DataType.DATE),
            ],
        )
        logger.info("Created Weaviate collection '%s'", name)
        return name

    def _point_alias(self, target: str, previous: Optional[str]) -> None:
        if previous is None:
            self._client.alias.create(alias_name=self.index_name, target_collection=target)
        else:
            self._client.alias.update(alias_name=self.index_name, new_target_collection=target)

    def _drop_collection(self, name: str) -> None:
        try:
            self._client.collections.delete(name)
        except Exception as exc:
            logger.warning("Could not delete Weaviate collection '%s': %s", name, exc)

    def search(self, query_vector: Sequence[float], k: int = 3) -> List[RetrievalResult]:
        _check_dimension(query_vector, self.dimension)
        if k <= 0:
            return []
        with self._gate.read():
            try:
                target = self._active_collection()
                if target is None:
                    return []
                res = self._client.collections.get(target).query.near_vector(
                    near_vector=[float(x) for x in query_vector],
                    limit=k,
                    return_metadata=MetadataQuery(distance=True),
                )
            except Exception as exc:
                raise RetrievalError(f"Vector search failed: {exc}") from exc

        results: List[RetrievalResult] = []
        for obj in res.objects:
            props = obj.properties or {}
            distance = obj.metadata.distance if obj.metadata is not None else None
            results.append(RetrievalResult(
                content=str(props.get("content", "")),
                score=1.0 - float(distance) if distance is not None else 0.0,
                category=str(props.get("category", "")),
                document_id=str(props.get("doc_id", "")),
            ))
        results.sort(key=lambda r: r.score, reverse=True)
        return results[:k]

    def _insert(self, collection_name: str, documents: Sequence[Document]) -> None:
        if not documents:
            return
        objects = [
            DataObject(
                properties={
                    "content": d.content,
                    "category": d.category,
                    "doc_id": d.id,
                    "created_at": d.created_at,
                },
                vector=list(d.embedding),
            )
            for d in documents
        ]
        result = self._client.collections.get(collection_name).data.insert_many(objects)
        if getattr(result, "has_errors", False):
            raise RetrievalError(f"Failed to insert documents: {result.errors}")

    def ingest(self, document: Document) -> None:
        _check_dimension(document.embedding, self.dimension)
        with self._gate.write():
            target = self._guarded(self._active_collection)
            if target is None:
                self._publish([document], previous=None)
            else:
                self._guarded(self._insert, target, [document])

    def clear(self) -> None:
        with self._gate.write():
            target = self._guarded(self._active_collection)
            if target is None:
                return
            self._guarded(self._client.alias.delete, self.index_name)
            self._drop_collection(target)

    def replace_all(self, documents: Iterable[Document]) -> int:
        docs = list(documents)
        for d in docs:
            _check_dimension(d.embedding, self.dimension)
        with self._gate.write():
            previous = self._guarded(self._active_collection)
            self._publish(docs, previous)
        logger.info("Weaviate alias '%s' reloaded: %d documents", self.index_name, len(docs))
        return len(docs)

    def _publish(self, docs: Sequence[Document], previous: Optional[str]) -> None:
        staging = self._guarded(self._new_collection)
        try:
            self._guarded(self._insert, staging, docs)
            self._guarded(self._point_alias, staging, previous)
        except RagError:
            self._drop_collection(staging)
            raise
        if previous is not None:
            self._drop_collection(previous)

    def count(self) -> int:
        with self._gate.read():
            target = self._active_collection()
            if target is None:
                return 0
            agg = self._client.collections.get(target).aggregate.over_all(total_count=True)
            return int(agg.total_count or 0)

    @staticmethod
    def _guarded(fn, *args):
        try:
            return fn(*args)
        except RagError:
            raise
        except Exception as exc:
            raise RetrievalError(f"Weaviate write failed: {exc}") from exc

    def close(self) -> None:
        self._client.close()


def make_knowledge_store(cfg: VectorStoreConfig, dimension: int) -> KnowledgeStore:
    """Создаёт хранилище по конфигурации (memory / weaviate)."""
    if cfg.backend == "memory":
        return InMemoryKnowledgeStore(dimension=dimension, num_candidates=cfg.num_candidates)
    if cfg.backend == "weaviate":
        client = make_weaviate_client(cfg)
        return WeaviateKnowledgeStore(client, cfg.index_name, dimension, cfg.num_candidates)
    raise ValueError(f"Unknown vector store backend: {cfg.backend}")
