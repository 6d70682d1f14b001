"""
Тесты генерации ответа с повторами.

Сценарии:
- Два повторяемых сбоя, затем успех: паузы 1с и 2с, ровно 3 попытки
- Сбой "400" — сразу ошибка, без второй попытки
- Постоянный 429 — RateLimitedError с готовым текстом после max попыток
- 403 / 503 / прочее — соответствующие итоговые ошибки
- Отмена во время паузы между попытками

Запуск тестов:
  pytest -q tests/test_generator.py
"""

import asyncio
import time

import pytest

from faq_rag.config import RetryConfig
from faq_rag.errors import (
    PERMISSION_RESTRICTED_MESSAGE,
    RATE_LIMITED_MESSAGE,
    SERVICE_OUTAGE_MESSAGE,
    SERVICE_UNAVAILABLE_MESSAGE,
    ErrorKind,
    ModelCallError,
    NonRetryableGenerationError,
    PermissionRestrictedError,
    RateLimitedError,
    RetryExhaustedError,
    ServiceUnavailableError,
)
from faq_rag.generator import EMPTY_ANSWER_FALLBACK, AnswerGenerator


def test_retryable_failures_then_success(scripted_llm, recording_sleep) -> None:
    llm = scripted_llm([
        RuntimeError("503 Service Unavailable"),
        ConnectionError("connection reset"),
        "Cimba is a RAG platform.",
    ])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=3, backoff_base_s=1.0), sleep=recording_sleep)

    answer = asyncio.run(gen.generate("prompt"))

    assert answer == "Cimba is a RAG platform."
    assert llm.calls == 3
    assert recording_sleep.delays == [1.0, 2.0]
    assert sum(recording_sleep.delays) * 1000 == 1000 * 1 + 1000 * 2


def test_real_backoff_elapsed_time(scripted_llm) -> None:
    llm = scripted_llm([RuntimeError("boom"), RuntimeError("boom"), "ok"])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=3, backoff_base_s=0.05))

    t0 = time.perf_counter()
    answer = asyncio.run(gen.generate("prompt"))
    elapsed = time.perf_counter() - t0

    assert answer == "ok"
    assert llm.calls == 3
    assert 0.14 <= elapsed < 1.0


def test_non_retryable_400_fails_immediately(scripted_llm, recording_sleep) -> None:
    llm = scripted_llm([RuntimeError("[400 Bad Request] invalid argument"), "never reached"])
    gen = AnswerGenerator(llm, RetryConfig(), sleep=recording_sleep)

    with pytest.raises(NonRetryableGenerationError) as exc_info:
        asyncio.run(gen.generate("prompt"))

    assert llm.calls == 1
    assert recording_sleep.delays == []
    assert exc_info.value.kind is ErrorKind.BAD_REQUEST
    assert exc_info.value.attempts == 1
    assert "400" in str(exc_info.value)


def test_invalid_api_key_is_not_retried(scripted_llm, recording_sleep) -> None:
    llm = scripted_llm([RuntimeError("API_KEY_INVALID: API key not valid")])
    gen = AnswerGenerator(llm, RetryConfig(), sleep=recording_sleep)

    with pytest.raises(NonRetryableGenerationError) as exc_info:
        asyncio.run(gen.generate("prompt"))

    assert llm.calls == 1
    assert exc_info.value.kind is ErrorKind.INVALID_CREDENTIALS


def test_persistent_rate_limit_surfaces_canned_message(scripted_llm, recording_sleep) -> None:
    llm = scripted_llm([RuntimeError("429 Too Many Requests")])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=3), sleep=recording_sleep)

    with pytest.raises(RateLimitedError) as exc_info:
        asyncio.run(gen.generate("prompt"))

    assert llm.calls == 3
    assert recording_sleep.delays == [1.0, 2.0]
    assert exc_info.value.attempts == 3
    assert exc_info.value.user_message == RATE_LIMITED_MESSAGE
    assert isinstance(exc_info.value, RetryExhaustedError)


@pytest.mark.parametrize(
    "error, expected_cls, message",
    [
        (RuntimeError("403 Forbidden"), PermissionRestrictedError, PERMISSION_RESTRICTED_MESSAGE),
        (RuntimeError("500 Internal error"), ServiceUnavailableError, SERVICE_OUTAGE_MESSAGE),
        (RuntimeError("503 overloaded"), ServiceUnavailableError, SERVICE_OUTAGE_MESSAGE),
        (TimeoutError("read timed out"), RetryExhaustedError, SERVICE_UNAVAILABLE_MESSAGE),
    ],
)
def test_exhausted_failure_is_mapped_to_user_message(scripted_llm, recording_sleep, error, expected_cls, message) -> None:
    llm = scripted_llm([error])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=3), sleep=recording_sleep)

    with pytest.raises(expected_cls) as exc_info:
        asyncio.run(gen.generate("prompt"))

    assert type(exc_info.value) is expected_cls
    assert exc_info.value.user_message == message
    assert llm.calls == 3


def test_kind_from_model_boundary_is_trusted(scripted_llm, recording_sleep) -> None:
    # текст сообщения с "400" не должен переопределить категорию из адаптера
    llm = scripted_llm([ModelCallError(ErrorKind.RATE_LIMITED, "quota 400/min exceeded", status_code=429)])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=2), sleep=recording_sleep)

    with pytest.raises(RateLimitedError):
        asyncio.run(gen.generate("prompt"))
    assert llm.calls == 2
    assert recording_sleep.delays == [1.0]


def test_status_code_attribute_beats_message(scripted_llm, recording_sleep) -> None:
    class _HttpError(Exception):
        status_code = 503

    llm = scripted_llm([_HttpError("bad gateway 400"), "recovered"])
    gen = AnswerGenerator(llm, RetryConfig(), sleep=recording_sleep)

    assert asyncio.run(gen.generate("prompt")) == "recovered"
    assert llm.calls == 2


def test_empty_model_text_uses_fallback_reply(scripted_llm, recording_sleep) -> None:
    gen = AnswerGenerator(scripted_llm(["   "]), RetryConfig(), sleep=recording_sleep)
    assert asyncio.run(gen.generate("prompt")) == EMPTY_ANSWER_FALLBACK


def test_single_attempt_policy(scripted_llm, recording_sleep) -> None:
    llm = scripted_llm([RuntimeError("503")])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=1), sleep=recording_sleep)
    with pytest.raises(ServiceUnavailableError):
        asyncio.run(gen.generate("prompt"))
    assert llm.calls == 1
    assert recording_sleep.delays == []


def test_invalid_max_attempts_rejected(scripted_llm) -> None:
    with pytest.raises(ValueError):
        AnswerGenerator(scripted_llm(["x"]), RetryConfig(max_attempts=0))


def test_backoff_wait_is_interrupted_by_timeout(scripted_llm) -> None:
    llm = scripted_llm([RuntimeError("503")])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=3, backoff_base_s=30.0))

    async def run() -> None:
        await asyncio.wait_for(gen.generate("prompt"), timeout=0.1)

    t0 = time.perf_counter()
    with pytest.raises(asyncio.TimeoutError):
        asyncio.run(run())
    assert time.perf_counter() - t0 < 5.0
    assert llm.calls == 1


def test_backoff_wait_is_interrupted_by_cancel(scripted_llm) -> None:
    llm = scripted_llm([RuntimeError("503")])
    gen = AnswerGenerator(llm, RetryConfig(max_attempts=3, backoff_base_s=30.0))

    async def run() -> bool:
        task = asyncio.create_task(gen.generate("prompt"))
        await asyncio.sleep(0.05)
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            return True
        return False

    assert asyncio.run(run()) is True
    assert llm.calls == 1
