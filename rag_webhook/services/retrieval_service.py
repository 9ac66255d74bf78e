#!/usr/bin/env python3
"""
Dual-query retrieval over the corpus collection.

The raw question is searched first and the hypothetical answer second.
Hits above the similarity threshold are keyed by point id, so a passage
found by both queries appears once and the hypothetical-answer hit wins.
"""
from typing import Dict, List, Optional, Union

from rag_webhook.config.settings import RETRIEVER_TOP_K, SIMILARITY_THRESHOLD
from rag_webhook.models.data_models import RetrievedPoint
from rag_webhook.services.embedding_service import EmbeddingService
from rag_webhook.services.errors import EmbedUnavailable, SearchFailed
from rag_webhook.services.vector_store import VectorStoreService
from rag_webhook.utils.logging_config import setup_logging

log = setup_logging("retrieval_service.log")


class RetrievalService:
    def __init__(
            self,
            embedder: EmbeddingService,
            vector_store: VectorStoreService,
            top_k: int = RETRIEVER_TOP_K,
            threshold: float = SIMILARITY_THRESHOLD,
    ):
        self.embedder = embedder
        self.vector_store = vector_store
        self.top_k = top_k
        self.threshold = threshold

    def search_collection(self, query: str, collection_name: str, vector: Optional[List[float]] = None) -> List[RetrievedPoint]:
        """
        Embed query (unless vector is given) and return hits scoring above the threshold.

        Raises EmbedUnavailable when the query cannot be embedded. A failed
        search is logged and yields no hits.
        """
        if vector is None:
            vector = self.embedder.embed(query)
        try:
            hits = self.vector_store.search(collection_name, vector, self.top_k)
        except SearchFailed as e:
            log.error(f"💥 Vector search returns error: {e}")
            return []
        return [hit for hit in hits if hit.score > self.threshold]

    def retrieve(self, question: str, hypo_answer: str, collection_name: str) -> List[str]:
        """
        Passages for question and hypo_answer, deduplicated by point id.

        Raises EmbedUnavailable only for the raw question; the hypothetical
        answer is best effort.
        """
        found: Dict[Union[int, str], str] = {}

        for hit in self.search_collection(question, collection_name):
            found[hit.id] = hit.text

        if hypo_answer:
            try:
                hypo_hits = self.search_collection(hypo_answer, collection_name)
            except EmbedUnavailable as e:
                log.error(f"💥 Cannot embed hypothetical answer: {e}")
                hypo_hits = []
            for hit in hypo_hits:
                found[hit.id] = hit.text

        log.info(f"Retrieved {len(found)} passages from '{collection_name}'")
        return list(found.values())
