#!/usr/bin/env python3
"""
Ephemeral Q/A collection for short-term recall.

Point ids are the collection's observed point count plus one. Two
concurrent upserts can therefore pick the same id; the later write wins.
Every failure here is logged and never reaches the user.
"""
from typing import List

from rag_webhook.config.settings import EMBEDDING_DIM, EPHEMERAL_COLLECTION, EPHEMERAL_RECALL_LIMIT
from rag_webhook.services.embedding_service import EmbeddingService
from rag_webhook.services.errors import EmbedUnavailable, StoreFailed
from rag_webhook.services.retrieval_service import RetrievalService
from rag_webhook.services.vector_store import VectorStoreService
from rag_webhook.utils.logging_config import setup_logging

log = setup_logging("ephemeral_store.log")


class EphemeralStore:
    def __init__(
            self,
            embedder: EmbeddingService,
            vector_store: VectorStoreService,
            retrieval: RetrievalService,
            collection_name: str = EPHEMERAL_COLLECTION,
            vector_size: int = EMBEDDING_DIM,
    ):
        self.embedder = embedder
        self.vector_store = vector_store
        self.retrieval = retrieval
        self.collection_name = collection_name
        self.vector_size = vector_size

    def ensure(self, reset: bool = False) -> None:
        """Create the collection on demand; reset=True drops and recreates it."""
        try:
            self.vector_store.create_collection(self.collection_name, self.vector_size)
            if reset:
                log.debug("Reset the ephemeral Q/A collection")
                try:
                    self.vector_store.delete_collection(self.collection_name)
                except StoreFailed as e:
                    log.debug(f"Ignoring delete failure on reset: {e}")
                self.vector_store.create_collection(self.collection_name, self.vector_size)
            else:
                count = self.vector_store.points_count(self.collection_name)
                log.debug(f"Continue with existing ephemeral collection, {count} points")
        except StoreFailed as e:
            log.error(f"💥 Cannot prepare collection '{self.collection_name}': {e}")

    def next_id(self) -> int:
        return self.vector_store.points_count(self.collection_name) + 1

    def upsert_text(self, text: str) -> bool:
        """Embed text and store it under the next id. Returns False when nothing was stored."""
        try:
            point_id = self.next_id()
            vector = self.embedder.embed(text)
            self.vector_store.upsert(self.collection_name, point_id, vector, {"text": text})
        except (StoreFailed, EmbedUnavailable) as e:
            log.error(f"💥 Cannot upsert into '{self.collection_name}': {e}")
            return False
        log.debug(f"Upserted Q/A pair as point {point_id}")
        return True

    def recall(self, query: str, limit: int = EPHEMERAL_RECALL_LIMIT) -> str:
        """Up to limit relevant prior Q/A pairs, ordered by point id and joined by newline."""
        try:
            hits = self.retrieval.search_collection(query, self.collection_name)
        except EmbedUnavailable as e:
            log.error(f"💥 Cannot embed recall query: {e}")
            return ""
        hits.sort(key=lambda hit: hit.id if isinstance(hit.id, int) else 0)
        recalled: List[str] = [hit.text for hit in hits[:limit]]
        return "\n".join(recalled)
