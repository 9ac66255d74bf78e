#!/usr/bin/env python3
"""
LLM chat service adapter.

Sends chat completions to an OpenAI-compatible endpoint and keeps the
per-conversation message history in Redis, so a conversation can be
restarted and its recent turns read back by the history distiller.
"""
from typing import List, Optional

import openai
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from rag_webhook.config.settings import CHAT_HISTORY_MAX, CHAT_HISTORY_WINDOW, LLM_API_KEY, LLM_ENDPOINT, LLM_MODEL
from rag_webhook.models.data_models import ChatMessage, ChatOptions, ChatResult
from rag_webhook.prompts.chat_prompts import CHAT_PROMPT
from rag_webhook.services.errors import CompletionFailed, StoreFailed
from rag_webhook.services.redis_service import RedisService
from rag_webhook.utils.logging_config import setup_logging
from rag_webhook.utils.text_utils import preview

log = setup_logging("llm_service.log")

HISTORY_KEY_PREFIX = "chat_history:"


def build_chat_model(endpoint: str, api_key: str, model: str) -> ChatOpenAI:
    """Chat model without client-side retries; callers decide how to recover."""
    return ChatOpenAI(
        model=model,
        base_url=endpoint or None,
        api_key=api_key or "not-needed",
        max_retries=0,
    )


def _to_langchain(message: ChatMessage) -> BaseMessage:
    if message.role == "assistant":
        return AIMessage(content=message.content)
    return HumanMessage(content=message.content)


class LlmService:
    """Chat completions keyed by conversation id."""

    def __init__(
            self,
            chat_model: Optional[ChatOpenAI] = None,
            history_store: Optional[RedisService] = None,
            history_window: int = CHAT_HISTORY_WINDOW,
    ):
        self.chat_model = chat_model or build_chat_model(LLM_ENDPOINT, LLM_API_KEY, LLM_MODEL)
        self.history_store = history_store
        self.history_window = history_window

    @staticmethod
    def history_key(chat_id: str) -> str:
        return f"{HISTORY_KEY_PREFIX}{chat_id}"

    def history(self, chat_id: str, n: int) -> List[ChatMessage]:
        """Last n messages of the conversation, oldest first. Raises StoreFailed."""
        if self.history_store is None:
            return []
        entries = self.history_store.get_recent(self.history_key(chat_id), n)
        return [ChatMessage(role=e.get("role", "user"), content=e.get("content", "")) for e in entries]

    def clear_history(self, chat_id: str) -> None:
        if self.history_store is None:
            return
        try:
            self.history_store.delete(self.history_key(chat_id))
        except StoreFailed as e:
            log.error(f"💥 Cannot clear chat history for {chat_id}: {e}")

    def _prior_messages(self, chat_id: str, restart: bool) -> List[ChatMessage]:
        if restart or self.history_store is None:
            return []
        try:
            return self.history(chat_id, self.history_window)
        except StoreFailed as e:
            log.error(f"💥 Cannot read chat history for {chat_id}: {e}")
            return []

    def _record(self, chat_id: str, user_text: str, answer: str) -> None:
        if self.history_store is None:
            return
        try:
            self.history_store.push_messages(
                self.history_key(chat_id),
                [ChatMessage("user", user_text).to_dict(), ChatMessage("assistant", answer).to_dict()],
                CHAT_HISTORY_MAX,
            )
        except StoreFailed as e:
            log.error(f"💥 Cannot record chat history for {chat_id}: {e}")

    def build_messages(self, user_prompt: str, options: ChatOptions, prior: List[ChatMessage]) -> List[BaseMessage]:
        user_content = f"{user_prompt}\n{options.post_prompt}" if options.post_prompt else user_prompt
        messages = CHAT_PROMPT.format_messages(
            system_prompt=options.system_prompt,
            history=[_to_langchain(m) for m in prior],
            user_prompt=user_content,
        )
        # An empty system prompt is dropped rather than sent as a blank message.
        return [m for m in messages if not (isinstance(m, SystemMessage) and not m.content)]

    def chat_completion(self, chat_id: str, user_prompt: str, options: ChatOptions, history_text: Optional[str] = None) -> ChatResult:
        """
        Run one chat turn for chat_id.

        restart=True drops the stored history before the call. On success the
        turn is appended to the history, recorded as history_text when given
        (the bare question rather than the composed prompt).
        """
        if options.restart:
            self.clear_history(chat_id)

        prior = self._prior_messages(chat_id, options.restart)
        messages = self.build_messages(user_prompt, options, prior)

        kwargs = {"max_tokens": options.token_limit}
        if options.model:
            kwargs["model"] = options.model

        try:
            response = self.chat_model.invoke(messages, **kwargs)
        except openai.OpenAIError as e:
            raise CompletionFailed(str(e)) from e

        choice = response.content if isinstance(response.content, str) else ""
        if not choice.strip():
            raise CompletionFailed("LLM returned an empty choice")

        log.debug(f"Completion for {chat_id}: {preview(choice, 256)}")
        self._record(chat_id, history_text if history_text is not None else user_prompt, choice)
        return ChatResult(choice=choice)
