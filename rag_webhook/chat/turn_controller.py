#!/usr/bin/env python3
"""
Turn controller: answers one webhook call.

States
------
Control
    The body is ``/new``: arm the restart flag and reply with an empty body.
Restart-armed
    The flag was set by a previous ``/new``: skip retrieval and history,
    restart the LLM conversation with the configured system prompt, then
    clear the flag once the completion succeeded.
Retrieval
    Default path, in this order: read the flag, fetch recent history,
    distill it, check the question against the domain anchor, and when on
    topic generate a hypothetical answer and run dual-query retrieval.
    Then compose the prompts, call the LLM and store the Q/A pair.

Every path produces exactly one 200 text/html reply.
"""
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from rag_webhook.chat.prompt_composer import PromptComposer
from rag_webhook.config.settings import CHAT_HISTORY_WINDOW, DOMAIN_ANCHOR, QA_UPSERT_MAX_CHARS, TOKEN_LIMIT
from rag_webhook.models.content import ContentSettings, WorkingPrompt
from rag_webhook.models.data_models import ChatMessage, ChatOptions, TurnReply
from rag_webhook.services.ephemeral_store import EphemeralStore
from rag_webhook.services.errors import CompletionFailed, EmbedUnavailable, StoreFailed
from rag_webhook.services.history_distiller import HistoryDistiller
from rag_webhook.services.hypothetical_answer import HypotheticalAnswerer
from rag_webhook.services.llm_service import LlmService
from rag_webhook.services.redis_service import RedisService
from rag_webhook.services.retrieval_service import RetrievalService
from rag_webhook.services.similarity import SimilarityOracle
from rag_webhook.utils.logging_config import setup_logging
from rag_webhook.utils.metrics import TurnMetrics
from rag_webhook.utils.text_utils import conversation_id, first_x_chars, is_control_message, preview

log = setup_logging("turn_controller.log")

CONVERSATION_HEADER = "x-conversation-name"

Headers = Union[Mapping[str, str], Iterable[Tuple[str, str]]]


def conversation_id_from_headers(headers: Headers) -> str:
    items = headers.items() if hasattr(headers, "items") else headers
    for name, value in items:
        if name.lower() == CONVERSATION_HEADER:
            return conversation_id(value)
    return ""


class TurnController:
    def __init__(
            self,
            content: ContentSettings,
            kv_store: RedisService,
            llm: LlmService,
            oracle: SimilarityOracle,
            hypothetical: HypotheticalAnswerer,
            retrieval: RetrievalService,
            distiller: HistoryDistiller,
            composer: PromptComposer,
            ephemeral: Optional[EphemeralStore] = None,
            domain_anchor: str = DOMAIN_ANCHOR,
            token_limit: int = TOKEN_LIMIT,
            history_window: int = CHAT_HISTORY_WINDOW,
    ):
        self.content = content
        self.kv_store = kv_store
        self.llm = llm
        self.oracle = oracle
        self.hypothetical = hypothetical
        self.retrieval = retrieval
        self.distiller = distiller
        self.composer = composer
        self.ephemeral = ephemeral
        self.domain_anchor = domain_anchor
        self.token_limit = token_limit
        self.history_window = history_window

    def handle(self, headers: Headers, body: bytes) -> TurnReply:
        chat_id = conversation_id_from_headers(headers)
        text = body.decode("utf-8", errors="replace")

        if is_control_message(text):
            self.kv_store.set_restart_flag(chat_id, True)
            log.info(f"🔄 Restarted conversation for {chat_id}")
            return TurnReply(body="")

        metrics = TurnMetrics(conversation_id=chat_id)
        try:
            with metrics.timer("total"):
                reply = self._answer(chat_id, text, metrics)
        except Exception as e:
            log.error(f"💥 Turn failed for {chat_id}: {e}", exc_info=True)
            metrics.add_field("outcome", "error")
            reply = TurnReply(body=self.content.error_message)
        metrics.emit(log)
        return reply

    def _answer(self, chat_id: str, text: str, metrics: TurnMetrics) -> TurnReply:
        restart = self.kv_store.get_restart_flag(chat_id)
        metrics.add_field("restart", restart)
        working = self.content.working_prompt()

        if restart:
            return self._restart_turn(chat_id, text, working, metrics)

        messages = self._fetch_history(chat_id)
        with metrics.timer("history_distillation"):
            history = self.distiller.distill(text, messages, chat_id)
        log.info(f"Distilled history for {chat_id}: {preview(history, 256)}")

        with metrics.timer("embedding"):
            try:
                score = self.oracle.score(text, self.domain_anchor)
            except EmbedUnavailable as e:
                log.error(f"💥 Cannot embed the question: {e}")
                return self._no_answer(metrics)
        on_topic = self.oracle.verdict(score)
        metrics.add_field("on_topic", on_topic)

        passages: List[str] = []
        recall_query = text
        if on_topic:
            with metrics.timer("hypothetical_answer"):
                hypo_answer = self.hypothetical.answer(text)
            with metrics.timer("retrieval"):
                try:
                    passages = self.retrieval.retrieve(text, hypo_answer, self.content.collection_name)
                except EmbedUnavailable as e:
                    log.error(f"💥 Cannot embed the question for retrieval: {e}")
                    return self._no_answer(metrics)
            recall_query = hypo_answer or text
        else:
            log.info(f"Off-topic question, skipping retrieval: {preview(text)}")
        metrics.add_counter("passages", len(passages))

        if self.ephemeral is not None:
            recalled = self.ephemeral.recall(recall_query)
            if recalled:
                history += f"{recalled}\n"

        composed = self.composer.compose(working, text, on_topic, passages, history)
        if not composed.has_context:
            log.info(f"No relevant context for {chat_id}, replying with the no-answer message")
            return self._no_answer(metrics)

        options = ChatOptions(
            system_prompt=composed.system_prompt,
            post_prompt=self.content.post_prompt,
            restart=False,
            token_limit=self.token_limit,
        )
        reply, _ = self._complete(chat_id, text, composed.user_prompt, options, metrics)
        return reply

    def _restart_turn(self, chat_id: str, text: str, working: WorkingPrompt, metrics: TurnMetrics) -> TurnReply:
        log.info(f"Detected restart = true for {chat_id}")
        if self.ephemeral is not None:
            self.ephemeral.ensure(reset=True)

        options = ChatOptions(
            system_prompt=working.system_prompt,
            post_prompt=self.content.post_prompt,
            restart=True,
            token_limit=self.token_limit,
        )
        reply, answered = self._complete(chat_id, text, text, options, metrics)
        if not answered:
            return reply

        # A successful restart. The next message will not be a restart.
        self.kv_store.set_restart_flag(chat_id, False)
        working.reset()
        return reply

    def _complete(self, chat_id: str, text: str, user_prompt: str, options: ChatOptions, metrics: TurnMetrics) -> Tuple[TurnReply, bool]:
        with metrics.timer("completion"):
            try:
                result = self.llm.chat_completion(chat_id, user_prompt, options, history_text=text)
            except CompletionFailed as e:
                log.error(f"💥 LLM returns error: {e}")
                metrics.add_field("outcome", "completion_failed")
                return TurnReply(body=self.content.error_message), False

        metrics.add_field("outcome", "answered")
        if self.ephemeral is not None:
            qa_to_upsert = first_x_chars(f"{text}\n {result.choice}", QA_UPSERT_MAX_CHARS)
            self.ephemeral.upsert_text(qa_to_upsert)
        return TurnReply(body=result.choice), True

    def _fetch_history(self, chat_id: str) -> List[ChatMessage]:
        try:
            return self.llm.history(chat_id, self.history_window)
        except StoreFailed as e:
            log.error(f"💥 Cannot fetch chat history for {chat_id}: {e}")
            return []

    def _no_answer(self, metrics: TurnMetrics) -> TurnReply:
        metrics.add_field("outcome", "no_answer")
        return TurnReply(body=self.content.no_answer_message)
