#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Генерация ответа с ограниченным числом попыток.

Автомат одного вызова generate():

    ATTEMPT(n) --успех--> DONE(answer)
    ATTEMPT(n) --сбой, kind не повторяемый--> FAILED(kind)
    ATTEMPT(n) --сбой, повторяемый, n < max--> пауза backoff(n) --> ATTEMPT(n+1)
    ATTEMPT(n) --сбой, повторяемый, n == max--> FAILED(kind)

backoff(n) = backoff_base_s * n. FAILED переводится в исключение
с текстом для пользователя (errors.failure_for).
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

from llama_index.core.llms import LLM

from .config import RetryConfig
from .errors import ErrorKind, classify_error, failure_for
from .logging_utils import get_logger

logger = get_logger(__name__)

EMPTY_ANSWER_FALLBACK = "I'm sorry, I couldn't generate a response."

SleepFn = Callable[[float], Awaitable[None]]


class State(str, Enum):
    ATTEMPT = "attempt"
    DONE = "done"
    FAILED = "failed"


@dataclass
class _Step:
    state: State
    attempt: int
    answer: Optional[str] = None
    kind: Optional[ErrorKind] = None
    error: Optional[BaseException] = None


class AnswerGenerator:
    """Вызывает LLM с собранным промптом по политике повторов RetryConfig.

    - llm: любая LLM LlamaIndex (используется acomplete)
    - sleep: функция паузы; по умолчанию asyncio.sleep, поэтому ожидание
      между попытками прерывается отменой задачи
    """
    def __init__(self, llm: LLM, retry_cfg: Optional[RetryConfig] = None, sleep: SleepFn = asyncio.sleep) -> None:
        self._llm = llm
        self._retry = retry_cfg or RetryConfig()
        if self._retry.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        self._sleep = sleep

    def backoff(self, attempt: int) -> float:
        return self._retry.backoff_base_s * attempt

    async def _attempt(self, prompt: str, attempt: int) -> _Step:
        try:
            resp = await self._llm.acomplete(prompt)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            kind = classify_error(exc)
            logger.warning("Attempt %d failed (%s): %s", attempt, kind.value, exc)
            return _Step(State.FAILED, attempt, kind=kind, error=exc)
        text = (resp.text or "").strip()
        return _Step(State.DONE, attempt, answer=text or EMPTY_ANSWER_FALLBACK)

    async def generate(self, prompt: str) -> str:
        step = _Step(State.ATTEMPT, 1)
        while step.state is State.ATTEMPT:
            outcome = await self._attempt(prompt, step.attempt)
            if outcome.state is State.DONE:
                step = outcome
                break

            if not outcome.kind.retryable or outcome.attempt >= self._retry.max_attempts:
                step = outcome
                break

            delay = self.backoff(outcome.attempt)
            logger.info("Retrying in %.1fs (attempt %d of %d)", delay, outcome.attempt + 1, self._retry.max_attempts)
            await self._sleep(delay)
            step = _Step(State.ATTEMPT, outcome.attempt + 1)

        if step.state is State.DONE:
            return step.answer or EMPTY_ANSWER_FALLBACK

        failure = failure_for(step.kind, step.attempt, step.error)
        logger.error("Generation failed after %d attempt(s): %s", step.attempt, step.kind.value)
        raise failure from step.error
