#!/usr/bin/env python3
"""
Dependencies for FastAPI services.
"""
from functools import lru_cache

from rag_webhook.chat.prompt_composer import PromptComposer
from rag_webhook.chat.turn_controller import TurnController
from rag_webhook.config import settings
from rag_webhook.models.content import ContentSettings
from rag_webhook.services.embedding_service import EmbeddingService
from rag_webhook.services.ephemeral_store import EphemeralStore
from rag_webhook.services.history_distiller import get_history_distiller
from rag_webhook.services.hypothetical_answer import HypotheticalAnswerer
from rag_webhook.services.llm_service import LlmService
from rag_webhook.services.redis_service import RedisService
from rag_webhook.services.retrieval_service import RetrievalService
from rag_webhook.services.similarity import SimilarityOracle
from rag_webhook.services.vector_store import VectorStoreService


class DependenciesService:
    """Dependencies for FastAPI services as static methods."""

    @staticmethod
    @lru_cache()
    def get_turn_controller() -> TurnController:
        """Get a cached, fully wired turn controller."""
        kv_store = RedisService()
        embedder = EmbeddingService()
        vector_store = VectorStoreService()
        oracle = SimilarityOracle(embedder)
        llm = LlmService(history_store=kv_store)
        retrieval = RetrievalService(embedder, vector_store)

        ephemeral = None
        if settings.EPHEMERAL_ENABLED:
            ephemeral = EphemeralStore(embedder, vector_store, retrieval)
            ephemeral.ensure(reset=False)

        return TurnController(
            content=ContentSettings.from_settings(),
            kv_store=kv_store,
            llm=llm,
            oracle=oracle,
            hypothetical=HypotheticalAnswerer(),
            retrieval=retrieval,
            distiller=get_history_distiller(settings.HISTORY_STRATEGY, oracle=oracle, llm=llm, kv_store=kv_store),
            composer=PromptComposer(settings.CONTEXT_PLACEMENT, settings.CONTEXT_CHAR_CAP),
            ephemeral=ephemeral,
        )


# Expose static methods as module-level functions after class definition
get_turn_controller = DependenciesService.get_turn_controller
