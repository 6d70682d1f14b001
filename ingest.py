#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Наполнение базы знаний из командной строки.

  python ingest.py                      # встроенный набор FAQ
  python ingest.py --file faqs.json     # свой набор: [{"category": ..., "content": ...}]

Имеет смысл для постоянного хранилища (RAG_VECTOR_BACKEND=weaviate):
база в памяти живёт только внутри процесса сервера, для неё есть
эндпоинт POST /api/ingest-docs.
"""

import argparse
import asyncio
import sys

from faq_rag.config import AppConfig
from faq_rag.factory import build_services
from faq_rag.ingestion import load_faq_file
from faq_rag.logging_utils import configure_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Rebuild the FAQ knowledge base.")
    parser.add_argument("--file", help="JSON file with FAQ entries (defaults to the bundled set)")
    args = parser.parse_args()

    cfg = AppConfig.from_env()
    logger = configure_logging(cfg.log_level)
    services = build_services(cfg)

    try:
        entries = load_faq_file(args.file) if args.file else None
        count = asyncio.run(services.indexer.build_index(entries))
    except Exception:
        logger.exception("Ingestion failed")
        return 1
    finally:
        close = getattr(services.store, "close", None)
        if close is not None:
            close()

    logger.info("Knowledge base is updated: %d documents.", count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
