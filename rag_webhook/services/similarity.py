#!/usr/bin/env python3
"""
Similarity oracle over embedding dot products.
"""
import numpy as np

from rag_webhook.config.settings import SIMILARITY_THRESHOLD
from rag_webhook.services.embedding_service import EmbeddingService
from rag_webhook.services.errors import EmbedUnavailable
from rag_webhook.utils.logging_config import setup_logging
from rag_webhook.utils.text_utils import preview

log = setup_logging("similarity.log")


class SimilarityOracle:
    """Binary relevance verdicts on the raw dot product of two embeddings."""

    def __init__(self, embedder: EmbeddingService, threshold: float = SIMILARITY_THRESHOLD):
        self.embedder = embedder
        self.threshold = threshold

    def score(self, a: str, b: str) -> float:
        """Embed a and b in one batch and return their dot product. Raises EmbedUnavailable."""
        first, second = self.embedder.embed_many([a, b])[:2]
        score = float(np.dot(np.asarray(first, dtype=np.float32), np.asarray(second, dtype=np.float32)))
        log.debug(f"similarity: {score} between {preview(a)} and {preview(b)}")
        return score

    def verdict(self, score: float) -> bool:
        return score > self.threshold

    def is_relevant(self, a: str, b: str) -> bool:
        """True iff score(a, b) exceeds the threshold; False when an embedding is missing."""
        try:
            return self.verdict(self.score(a, b))
        except EmbedUnavailable:
            return False
