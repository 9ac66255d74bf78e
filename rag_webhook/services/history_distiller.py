#!/usr/bin/env python3
"""
History distillation: reduce the recent conversation to the turns that
still matter for the current question.

Two strategies are available, selected by HISTORY_STRATEGY:

``EmbeddingHistoryDistiller`` ("embedding", default)
    Takes the last HISTORY_PAIRS (user, assistant) pairs and keeps a pair
    when the similarity oracle judges its user turn relevant to the
    current question.

``LlmHistoryDistiller`` ("llm")
    Two-step chain-of-chat: the LLM first classifies every earlier user
    question as relevant or irrelevant to the latest one, then lists the
    relevant ones as JSON keyed question_1 ... question_last. The parsed
    list is cached in the KV store under HISTORY_CACHE_KEY.
"""
from typing import List, Optional, Tuple

from rag_webhook.config.settings import HISTORY_CACHE_KEY, HISTORY_CACHE_TTL, HISTORY_PAIRS, HISTORY_STRATEGY
from rag_webhook.models.data_models import ChatMessage, ChatOptions
from rag_webhook.prompts.chat_prompts import HISTORY_FILTER_STEP_1, HISTORY_FILTER_STEP_2, HISTORY_FILTER_SYSTEM_PROMPT, HISTORY_PAIR_TEMPLATE
from rag_webhook.services.errors import CompletionFailed, ParseFailed, StoreFailed
from rag_webhook.services.llm_service import LlmService
from rag_webhook.services.redis_service import RedisService
from rag_webhook.services.similarity import SimilarityOracle
from rag_webhook.utils.logging_config import setup_logging
from rag_webhook.utils.text_utils import parse_question_list, preview

log = setup_logging("history_distiller.log")


def pair_turns(messages: List[ChatMessage]) -> List[Tuple[str, str]]:
    """(user, assistant) pairs in order; unanswered user turns are dropped."""
    pairs = []
    pending_question: Optional[str] = None
    for message in messages:
        if message.role == "user":
            pending_question = message.content
        elif message.role == "assistant" and pending_question is not None:
            pairs.append((pending_question, message.content))
            pending_question = None
    return pairs


class HistoryDistiller:
    """Base class; distill() returns the block appended to the system prompt."""

    def distill(self, question: str, messages: List[ChatMessage], chat_id: str) -> str:
        raise NotImplementedError()


class EmbeddingHistoryDistiller(HistoryDistiller):
    def __init__(self, oracle: SimilarityOracle, pairs: int = HISTORY_PAIRS):
        self.oracle = oracle
        self.pairs = pairs

    def distill(self, question: str, messages: List[ChatMessage], chat_id: str) -> str:
        recent = pair_turns(messages)[-self.pairs:] if self.pairs > 0 else []
        distilled = []
        for asked, answered in recent:
            if self.oracle.is_relevant(asked, question):
                distilled.append(HISTORY_PAIR_TEMPLATE.format(question=asked, answer=answered))
            else:
                log.debug(f"Dropping unrelated turn: {preview(asked)}")
        log.info(f"Kept {len(distilled)} of {len(recent)} recent Q/A pairs for {chat_id}")
        return "".join(distilled)


class LlmHistoryDistiller(HistoryDistiller):
    def __init__(self, llm: LlmService, kv_store: RedisService, cache_ttl: int = HISTORY_CACHE_TTL):
        self.llm = llm
        self.kv_store = kv_store
        self.cache_ttl = cache_ttl

    def _ask(self, filter_chat_id: str, prompt: str, restart: bool) -> str:
        options = ChatOptions(system_prompt=HISTORY_FILTER_SYSTEM_PROMPT, restart=restart)
        return self.llm.chat_completion(filter_chat_id, prompt, options).choice

    @staticmethod
    def _parse(reply: str) -> List[str]:
        questions = parse_question_list(reply)
        if not questions:
            raise ParseFailed(f"Could not parse a question list from: {preview(reply, 256)}")
        return questions

    def distill(self, question: str, messages: List[ChatMessage], chat_id: str) -> str:
        earlier = [m.content for m in messages if m.role == "user"]
        if not earlier:
            return ""

        numbered = "\n".join(f"{i}. {q}" for i, q in enumerate(earlier + [question], start=1))
        filter_chat_id = f"{chat_id}-history-filter"
        try:
            self._ask(filter_chat_id, HISTORY_FILTER_STEP_1.format(numbered_questions=numbered), restart=True)
            reply = self._ask(filter_chat_id, HISTORY_FILTER_STEP_2.format(), restart=False)
        except CompletionFailed as e:
            log.error(f"💥 History filter failed, continuing without history: {e}")
            return ""

        try:
            questions = self._parse(reply)
        except ParseFailed as e:
            log.warning(f"⚠️ {e}")
            return ""

        try:
            self.kv_store.set(HISTORY_CACHE_KEY, questions, ttl=self.cache_ttl)
        except StoreFailed as e:
            log.error(f"💥 Cannot cache distilled history: {e}")

        # question_last normally echoes the current question; drop it wherever it appears
        relevant = [q for q in questions if q.strip() != question.strip()]
        return "".join(f"User asked: `{q}`\n" for q in relevant)


def get_history_distiller(
        strategy: str = HISTORY_STRATEGY,
        oracle: Optional[SimilarityOracle] = None,
        llm: Optional[LlmService] = None,
        kv_store: Optional[RedisService] = None,
) -> HistoryDistiller:
    if strategy == "llm":
        return LlmHistoryDistiller(llm, kv_store)
    if strategy == "embedding":
        return EmbeddingHistoryDistiller(oracle)
    raise ValueError(f"Unknown history strategy: {strategy}")
