#!/usr/bin/env python3
# -*- coding: utf-8 -*-
from typing import Any, Dict, List, Optional

import openai
from llama_index.core.llms import (
    CompletionResponse,
    CompletionResponseGen,
    CustomLLM,
    LLMMetadata,
)
from llama_index.core.bridge.pydantic import PrivateAttr
from openai import AsyncOpenAI, OpenAI

from .config import LLMConfig
from .errors import ErrorKind, ModelCallError, classify_error, classify_status


def to_model_call_error(exc: Exception) -> ModelCallError:
    """Переводит исключение клиента OpenAI в ModelCallError с категорией сбоя."""
    status_code = getattr(exc, "status_code", None)
    if isinstance(exc, openai.BadRequestError):
        kind = ErrorKind.BAD_REQUEST
    elif isinstance(exc, openai.AuthenticationError):
        kind = ErrorKind.INVALID_CREDENTIALS
    elif isinstance(exc, openai.RateLimitError):
        kind = ErrorKind.RATE_LIMITED
    elif isinstance(exc, openai.PermissionDeniedError):
        kind = ErrorKind.PERMISSION_DENIED
    elif isinstance(exc, openai.InternalServerError):
        kind = ErrorKind.SERVER_ERROR
    elif isinstance(exc, (openai.APIConnectionError, openai.APITimeoutError)):
        kind = ErrorKind.TRANSIENT
    elif isinstance(exc, openai.APIStatusError):
        kind = classify_status(status_code) or ErrorKind.TRANSIENT
    else:
        kind = classify_error(exc)
    return ModelCallError(kind, str(exc), status_code=status_code)


class OpenAIChatLLM(CustomLLM):
    """Адаптер LlamaIndex CustomLLM для OpenAI-совместимого Chat Completions API.

    Ошибки клиента классифицируются здесь же, на границе вызова: наружу
    уходит ModelCallError с ErrorKind, и политике повторов не нужно
    разбирать текст сообщений.
    """
    _client: OpenAI = PrivateAttr()
    _aclient: AsyncOpenAI = PrivateAttr()
    _model: str = PrivateAttr()
    _temperature: float = PrivateAttr()
    _top_p: float = PrivateAttr()
    _max_tokens: int = PrivateAttr()
    _system: Optional[str] = PrivateAttr(default=None)
    _enable_thinking: bool = PrivateAttr(default=False)

    def __init__(
        self,
        base_url: Optional[str],
        api_key: str,
        model_name: str,
        temperature: float = 0.3,
        top_p: float = 0.9,
        max_tokens: int = 800,
        system_prompt: Optional[str] = None,
        enable_thinking: bool = False,
        timeout_s: float = 60.0,
    ) -> None:
        super().__init__()
        # повторы делает AnswerGenerator, у клиента они выключены
        self._client = OpenAI(base_url=base_url, api_key=api_key, timeout=timeout_s, max_retries=0)
        self._aclient = AsyncOpenAI(base_url=base_url, api_key=api_key, timeout=timeout_s, max_retries=0)
        self._model = model_name
        self._temperature = float(temperature)
        self._top_p = float(top_p)
        self._max_tokens = int(max_tokens)
        self._system = system_prompt
        self._enable_thinking = bool(enable_thinking)

    @classmethod
    def from_config(cls, cfg: LLMConfig) -> "OpenAIChatLLM":
        return cls(
            base_url=cfg.base_url,
            api_key=cfg.api_key,
            model_name=cfg.model_name,
            temperature=cfg.temperature,
            top_p=cfg.top_p,
            max_tokens=cfg.max_tokens,
            system_prompt=cfg.system_prompt,
            enable_thinking=cfg.enable_thinking,
            timeout_s=cfg.timeout_s,
        )

    @property
    def metadata(self) -> LLMMetadata:
        return LLMMetadata(
            model_name=f"openai-compat::{self._model}",
            num_output=self._max_tokens,
        )

    def _make_messages(self, user_prompt: str) -> List[Dict[str, str]]:
        """Формирует список сообщений (system + user) для Chat API."""
        messages = []
        if self._system:
            messages.append({"role": "system", "content": self._system})
        messages.append({"role": "user", "content": user_prompt})
        return messages

    def _request_kwargs(self, prompt: str) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": self._model,
            "messages": self._make_messages(prompt),
            "temperature": self._temperature,
            "top_p": self._top_p,
            "max_tokens": self._max_tokens,
        }
        if self._enable_thinking:
            kwargs["extra_body"] = {"enable_thinking": True}
        return kwargs

    def complete(self, prompt: str, formatted: bool = False, **kwargs: Any) -> CompletionResponse:
        """Синхронное получение единого текста ответа для переданного промпта."""
        try:
            resp = self._client.chat.completions.create(**self._request_kwargs(prompt))
        except openai.OpenAIError as exc:
            raise to_model_call_error(exc) from exc
        text = (resp.choices[0].message.content or "").strip()
        return CompletionResponse(text=text)

    async def acomplete(self, prompt: str, formatted: bool = False, **kwargs: Any) -> CompletionResponse:
        """Асинхронный вариант complete: ожидание ответа можно отменить."""
        try:
            resp = await self._aclient.chat.completions.create(**self._request_kwargs(prompt))
        except openai.OpenAIError as exc:
            raise to_model_call_error(exc) from exc
        text = (resp.choices[0].message.content or "").strip()
        return CompletionResponse(text=text)

    def stream_complete(self, prompt: str, formatted: bool = False, **kwargs: Any) -> CompletionResponseGen:
        """Потоковая генерация: возвращает нарастающий ответ частями."""
        try:
            stream = self._client.chat.completions.create(stream=True, **self._request_kwargs(prompt))
        except openai.OpenAIError as exc:
            raise to_model_call_error(exc) from exc

        buffer = []
        for event in stream:
            if not event.choices:
                continue
            delta = event.choices[0].delta.content or ""
            if delta:
                buffer.append(delta)
                yield CompletionResponse(text="".join(buffer), delta=delta)
