#!/usr/bin/env python3
"""
End-to-end tests for the turn controller with in-memory Redis and mocked
LLM, embedding and vector search services.
"""
from unittest.mock import MagicMock

import openai
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from rag_webhook.chat.prompt_composer import PromptComposer
from rag_webhook.chat.turn_controller import TurnController, conversation_id_from_headers
from rag_webhook.models.content import ContentSettings
from rag_webhook.models.data_models import RetrievedPoint
from rag_webhook.services.embedding_service import EmbeddingService
from rag_webhook.services.ephemeral_store import EphemeralStore
from rag_webhook.services.errors import EmbedUnavailable
from rag_webhook.services.history_distiller import EmbeddingHistoryDistiller
from rag_webhook.services.hypothetical_answer import HypotheticalAnswerer
from rag_webhook.services.llm_service import LlmService
from rag_webhook.services.redis_service import RedisService
from rag_webhook.services.retrieval_service import RetrievalService
from rag_webhook.services.similarity import SimilarityOracle
from rag_webhook.services.vector_store import VectorStoreService

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ANCHOR = "This source material is a technical book on Kubernetes."
SYSTEM_PROMPT = "You are a Kubernetes expert."
HEADERS = {"X-Conversation-Name": "user@42"}

POD_QUESTION = "What is a Kubernetes Pod?"
HYPO_ANSWER = "A Pod is the smallest deployable unit in Kubernetes."
WEATHER_QUESTION = "What's the weather today?"

VECTORS = {
    ANCHOR: [1.0, 0.0],
    POD_QUESTION: [0.9, 0.1],
    HYPO_ANSWER: [0.8, 0.3],
    "Tell me about deployments.": [0.95, 0.0],
    WEATHER_QUESTION: [0.1, 0.9],
}
DEFAULT_VECTOR = [0.5, 0.5]


class Harness:
    """Wires a TurnController with real adapters around mocked clients."""

    def __init__(self, fake_redis, corpus=None, answer="Pods are groups of containers.", placement="user_prompt", ephemeral=True):
        self.redis = fake_redis
        self.corpus = corpus or {}

        self.embedder = MagicMock(spec=EmbeddingService)
        self.embedder.embed_many.side_effect = lambda texts: [VECTORS.get(t, DEFAULT_VECTOR) for t in texts]
        self.embedder.embed.side_effect = lambda text: VECTORS.get(text, DEFAULT_VECTOR)

        self.store = MagicMock(spec=VectorStoreService)
        self.store.search.side_effect = self._search
        self.store.points_count.return_value = 0

        self.chat_model = MagicMock()
        self.chat_model.invoke.return_value = AIMessage(content=answer)

        self.hypothetical = MagicMock(spec=HypotheticalAnswerer)
        self.hypothetical.answer.return_value = HYPO_ANSWER

        self.content = ContentSettings(SYSTEM_PROMPT, SYSTEM_PROMPT, "", "Sorry, something went wrong.", "No answer", "k8s_book")
        self.kv = RedisService(client=fake_redis)
        self.llm = LlmService(chat_model=self.chat_model, history_store=self.kv)
        oracle = SimilarityOracle(self.embedder, threshold=0.75)
        retrieval = RetrievalService(self.embedder, self.store, top_k=5, threshold=0.75)

        self.controller = TurnController(
            content=self.content,
            kv_store=self.kv,
            llm=self.llm,
            oracle=oracle,
            hypothetical=self.hypothetical,
            retrieval=retrieval,
            distiller=EmbeddingHistoryDistiller(oracle, pairs=2),
            composer=PromptComposer(placement, char_cap=30000),
            ephemeral=EphemeralStore(self.embedder, self.store, retrieval) if ephemeral else None,
            domain_anchor=ANCHOR,
            token_limit=2048,
        )

    def _search(self, collection_name, vector, limit):
        if collection_name != "k8s_book":
            return []
        return self.corpus.get(tuple(vector), [])

    def send(self, body, headers=HEADERS):
        return self.controller.handle(headers, body.encode("utf-8"))

    def corpus_searches(self):
        return [c for c in self.store.search.call_args_list if c.args[0] == "k8s_book"]

    def last_messages(self):
        return self.chat_model.invoke.call_args.args[0]


# ---------------------------------------------------------------------------
# Conversation identity
# ---------------------------------------------------------------------------


def test_conversation_header_is_case_insensitive():
    assert conversation_id_from_headers({"x-CONVERSATION-name": "user@42"}) == "user-42"
    assert conversation_id_from_headers([("X-Conversation-Name", "a b")]) == "a-b"
    assert conversation_id_from_headers({}) == ""


# ---------------------------------------------------------------------------
# Scenarios
# ---------------------------------------------------------------------------


def test_fresh_on_topic_query(fake_redis):
    h = Harness(fake_redis, corpus={tuple(VECTORS[POD_QUESTION]): [RetrievedPoint(1, 0.9, "A Pod wraps containers.")]})

    reply = h.send(POD_QUESTION)

    assert reply.status == 200
    assert reply.content_type == "text/html"
    assert reply.body == "Pods are groups of containers."
    assert h.embedder.embed_many.call_args_list[0].args[0] == [POD_QUESTION, ANCHOR]
    h.hypothetical.answer.assert_called_once_with(POD_QUESTION)
    assert len(h.corpus_searches()) == 2

    messages = h.last_messages()
    assert messages[0].content == SYSTEM_PROMPT
    assert "Given the context: `A Pod wraps containers.`" in messages[-1].content
    assert h.chat_model.invoke.call_args.kwargs["max_tokens"] == 2048
    assert "user-42" not in fake_redis.values


def test_explicit_restart(fake_redis):
    h = Harness(fake_redis)

    reply = h.send("/new")

    assert reply.body == ""
    assert reply.status == 200
    assert fake_redis.values["user-42"] == "true"
    assert "user-42" not in fake_redis.ttls
    h.chat_model.invoke.assert_not_called()
    h.embedder.embed_many.assert_not_called()


def test_control_idempotence(fake_redis):
    h = Harness(fake_redis)
    h.send("/new")
    h.send("/NEW")
    assert RedisService(client=fake_redis).get_restart_flag("user-42") is True
    h.chat_model.invoke.assert_not_called()


def test_post_restart_turn(fake_redis):
    h = Harness(fake_redis)
    h.send(POD_QUESTION)
    h.send("/new")

    reply = h.send("Tell me about deployments.")

    assert reply.body == "Pods are groups of containers."
    messages = h.last_messages()
    assert isinstance(messages[0], SystemMessage) and messages[0].content == SYSTEM_PROMPT
    # Previous turns were dropped by the restart.
    assert [type(m) for m in messages] == [SystemMessage, HumanMessage]
    assert fake_redis.values["user-42"] == "false"
    # No retrieval or history distillation on the restart turn.
    assert len(h.corpus_searches()) == 2
    h.store.delete_collection.assert_called_once_with("ephemeral")


def test_failed_restart_keeps_flag(fake_redis):
    h = Harness(fake_redis)
    h.send("/new")
    h.chat_model.invoke.side_effect = openai.OpenAIError("503")

    reply = h.send("Tell me about deployments.")

    assert reply.body == "Sorry, something went wrong."
    assert fake_redis.values["user-42"] == "true"


def test_restart_bracketing_clears_flag(fake_redis):
    h = Harness(fake_redis)
    h.send("/new")
    h.send(WEATHER_QUESTION)
    assert RedisService(client=fake_redis).get_restart_flag("user-42") is False

    h.send(POD_QUESTION)
    assert len(h.corpus_searches()) == 2


def test_off_topic_question_skips_retrieval(fake_redis):
    h = Harness(fake_redis)

    reply = h.send(WEATHER_QUESTION)

    assert reply.body == "Pods are groups of containers."
    assert h.corpus_searches() == []
    h.hypothetical.answer.assert_not_called()
    messages = h.last_messages()
    assert messages[0].content == "You're a question and answer bot."
    assert "Given the context" not in messages[-1].content
    assert messages[-1].content == "Here is the question you're to reply now: `What's the weather today?`. Please provide a concise answer."


def test_embedding_failure_on_question(fake_redis):
    h = Harness(fake_redis)
    h.embedder.embed_many.side_effect = EmbedUnavailable("down")

    reply = h.send(POD_QUESTION)

    assert reply.body == "No answer"
    h.chat_model.invoke.assert_not_called()
    assert "user-42" not in fake_redis.values


def test_dedup_prefers_hypothetical_answer_hit(fake_redis):
    h = Harness(fake_redis, corpus={
        tuple(VECTORS[POD_QUESTION]): [RetrievedPoint(7, 0.9, "A")],
        tuple(VECTORS[HYPO_ANSWER]): [RetrievedPoint(7, 0.88, "A′")],
    })

    h.send(POD_QUESTION)

    user_prompt = h.last_messages()[-1].content
    assert "Given the context: `A′`." in user_prompt
    assert user_prompt.count("A′") == 1


def test_on_topic_without_passages_quotes_empty_context(fake_redis):
    h = Harness(fake_redis)
    reply = h.send(POD_QUESTION)
    assert reply.body == "Pods are groups of containers."
    assert h.last_messages()[-1].content.startswith(f"Given the context: ``. Here is the question you're to reply now: `{POD_QUESTION}`.")


def test_low_scores_never_reach_the_prompt(fake_redis):
    h = Harness(fake_redis, corpus={tuple(VECTORS[POD_QUESTION]): [RetrievedPoint(1, 0.75, "borderline"), RetrievedPoint(2, 0.2, "noise")]})
    h.send(POD_QUESTION)
    user_prompt = h.last_messages()[-1].content
    assert "borderline" not in user_prompt
    assert "noise" not in user_prompt


def test_empty_hypothesis_skips_second_search(fake_redis):
    h = Harness(fake_redis)
    h.hypothetical.answer.return_value = ""
    h.send(POD_QUESTION)
    assert len(h.corpus_searches()) == 1


# ---------------------------------------------------------------------------
# Fallbacks and side effects
# ---------------------------------------------------------------------------


def test_no_context_fallback_in_system_placement(fake_redis):
    h = Harness(fake_redis, placement="system_prompt", ephemeral=False)

    reply = h.send(POD_QUESTION)

    assert reply.body == "No answer"
    h.chat_model.invoke.assert_not_called()


def test_system_placement_with_context_calls_llm(fake_redis):
    h = Harness(fake_redis, corpus={tuple(VECTORS[POD_QUESTION]): [RetrievedPoint(1, 0.9, "A Pod wraps containers.")]}, placement="system_prompt")
    reply = h.send(POD_QUESTION)
    assert reply.body == "Pods are groups of containers."
    assert h.last_messages()[0].content == SYSTEM_PROMPT + "\nA Pod wraps containers."


def test_completion_failure_replies_error_message(fake_redis):
    h = Harness(fake_redis)
    h.chat_model.invoke.side_effect = openai.OpenAIError("502")
    reply = h.send(POD_QUESTION)
    assert reply.body == "Sorry, something went wrong."
    h.store.upsert.assert_not_called()


def test_answer_is_upserted_truncated(fake_redis):
    h = Harness(fake_redis, answer="x" * 3000)
    h.send(POD_QUESTION)

    collection, point_id, _, payload = h.store.upsert.call_args.args
    assert collection == "ephemeral"
    assert point_id == 1
    assert payload["text"].startswith(f"{POD_QUESTION}\n x")
    assert len(payload["text"]) == 1500


def test_distilled_history_is_appended_to_system_prompt(fake_redis):
    h = Harness(fake_redis)
    h.send(POD_QUESTION)
    h.send("Tell me about deployments.")

    system_prompt = h.last_messages()[0].content
    assert system_prompt.startswith(SYSTEM_PROMPT)
    assert f"User asked: `{POD_QUESTION}`\n You answered: `Pods are groups of containers.`\n" in system_prompt


def test_unexpected_error_still_replies(fake_redis):
    h = Harness(fake_redis)
    h.hypothetical.answer.side_effect = RuntimeError("boom")
    reply = h.send(POD_QUESTION)
    assert reply.status == 200
    assert reply.body == "Sorry, something went wrong."
