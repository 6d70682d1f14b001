#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Тонкий лаунчер API-сервера (FastAPI-приложение находится в `app/main.py`).

Запуск сервера:
  uvicorn app.main:app --host 0.0.0.0 --port 8000

Конфигурация читается из переменных окружения / файла .env
(см. `faq_rag.config.AppConfig.from_env`).
"""

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=False)
