#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Сборка промпта: инструкции, контекст, история диалога и вопрос пользователя."""

from typing import Sequence

from llama_index.core import PromptTemplate

from .models import GenerationRequest, HistoryTurn

CONTEXT_SEPARATOR = "\n\n---\n\n"
CONTEXT_LABEL = "CONTEXT (The following information is true):"
HISTORY_LABEL = "CHAT HISTORY:"
QUERY_LABEL = "USER QUERY:"

RAG_PROMPT_TEMPLATE = (
    "You are a friendly and helpful AI Support Assistant for {assistant_name}.\n"
    "\n"
    "INSTRUCTIONS:\n"
    "1. Answer the USER QUERY using primarily the information provided in the CONTEXT below.\n"
    "2. Also consider the CHAT HISTORY to understand follow-up questions "
    "(e.g., \"how much is it?\" referring to a previously discussed item).\n"
    "3. If the answer is not in the context, politely state that you cannot find that "
    "information in the current documentation.\n"
    "4. Keep the tone professional but warm.\n"
    "5. Do not invent information (hallucinate).\n"
    "6. Do NOT use markdown bolding (e.g., **text**) in your response. Keep text plain and clean.\n"
    "\n"
    f"{CONTEXT_LABEL}\n"
    "{context_str}\n"
    "\n"
    f"{HISTORY_LABEL}\n"
    "{history_str}\n"
    "\n"
    f"{QUERY_LABEL}\n"
    "{query_str}"
)


def format_context(context_documents: Sequence[str]) -> str:
    return CONTEXT_SEPARATOR.join(context_documents)


def format_history(history: Sequence[HistoryTurn]) -> str:
    """Одна строка на реплику: "<ROLE>: <текст>". История не обрезается."""
    return "\n".join(f"{turn.role.value.upper()}: {turn.content}" for turn in history)


class PromptAssembler:
    """Чистая функция сборки промпта, без ввода-вывода."""

    def __init__(self, assistant_name: str = "Cimba.AI") -> None:
        self._template = PromptTemplate(RAG_PROMPT_TEMPLATE)
        self._assistant_name = assistant_name

    def assemble(self, request: GenerationRequest) -> str:
        return self._template.format(
            assistant_name=self._assistant_name,
            context_str=format_context(request.context_documents),
            history_str=format_history(request.history),
            query_str=request.query,
        )


_default_assembler = PromptAssembler()


def assemble_prompt(query: str, context_documents: Sequence[str], history: Sequence[HistoryTurn]) -> str:
    return _default_assembler.assemble(
        GenerationRequest(query=query, context_documents=list(context_documents), history=list(history))
    )
