#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Единый формат логов для модулей пакета.

    from faq_rag.logging_utils import get_logger
    logger = get_logger(__name__)
"""

import logging
import sys
from typing import Optional, Union

_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_ROOT = "faq_rag"


def get_logger(name: str) -> logging.Logger:
    """Именованный логгер; обработчики навешиваются один раз на корневой логгер пакета."""
    return logging.getLogger(name)


def configure_logging(level: Union[int, str] = logging.INFO, name: Optional[str] = _ROOT) -> logging.Logger:
    """Настраивает вывод логов пакета в stdout (повторный вызов только меняет уровень)."""
    logger = logging.getLogger(name)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATEFMT))
        logger.addHandler(handler)
        # иначе uvicorn продублирует строки через root
        logger.propagate = False

    for handler in logger.handlers:
        handler.setLevel(level)
    return logger
