#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Сборка зависимостей приложения из конфигурации."""

from dataclasses import dataclass

from .config import AppConfig
from .embeddings import EmbeddingProvider, make_embed_model
from .engine import RagPipeline
from .generator import AnswerGenerator
from .ingestion import FaqIndexer
from .llm import OpenAIChatLLM
from .prompts import PromptAssembler
from .vectorstore import KnowledgeStore, make_knowledge_store


@dataclass
class RagServices:
    """Явно созданные зависимости вместо глобальных синглтонов."""
    config: AppConfig
    embedder: EmbeddingProvider
    store: KnowledgeStore
    pipeline: RagPipeline
    indexer: FaqIndexer


def build_services(cfg: AppConfig) -> RagServices:
    embedder = EmbeddingProvider(make_embed_model(cfg.embedding), dimension=cfg.embedding.dimension)
    store = make_knowledge_store(cfg.vector_store, dimension=cfg.embedding.dimension)
    generator = AnswerGenerator(OpenAIChatLLM.from_config(cfg.llm), cfg.retry)
    pipeline = RagPipeline(
        embedder=embedder,
        store=store,
        generator=generator,
        assembler=PromptAssembler(assistant_name=cfg.prompt.assistant_name),
        top_k=cfg.retrieval.top_k,
    )
    indexer = FaqIndexer(embedder, store, pace_s=cfg.pipeline.ingest_pace_s)
    return RagServices(config=cfg, embedder=embedder, store=store, pipeline=pipeline, indexer=indexer)
