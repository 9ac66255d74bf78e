#!/usr/bin/env python3
"""
Embedding service adapter.

Wraps an OpenAI-compatible embeddings endpoint. Transient failures are
retried by the client (EMBEDDING_MAX_RETRIES); anything that still fails,
or a reply without vectors, surfaces as EmbedUnavailable.
"""
from typing import List, Optional

import numpy as np
import openai
from langchain_openai import OpenAIEmbeddings

from rag_webhook.config.settings import EMBEDDING_MAX_RETRIES, EMBEDDING_MODEL, HYPO_LLM_ENDPOINT, OPENAI_API_KEY
from rag_webhook.services.errors import EmbedUnavailable
from rag_webhook.utils.logging_config import setup_logging

log = setup_logging("embedding_service.log")


class EmbeddingService:
    """Vectorizes one or many strings."""

    def __init__(self, embeddings: Optional[OpenAIEmbeddings] = None):
        self.embeddings = embeddings or OpenAIEmbeddings(
            model=EMBEDDING_MODEL,
            api_key=OPENAI_API_KEY or "not-needed",
            base_url=HYPO_LLM_ENDPOINT or None,
            max_retries=EMBEDDING_MAX_RETRIES,
            check_embedding_ctx_length=False,
        )

    def embed_many(self, texts: List[str]) -> List[List[float]]:
        """Embed texts in a single batch call; one vector per input, in order."""
        if not texts:
            return []
        try:
            vectors = self.embeddings.embed_documents(list(texts))
        except openai.OpenAIError as e:
            log.error(f"💥 Embedding service returned an error: {e}")
            raise EmbedUnavailable(str(e)) from e

        if not vectors or len(vectors) < len(texts) or any(not v for v in vectors):
            log.error(f"Embedding service returned {len(vectors or [])} vectors for {len(texts)} inputs")
            raise EmbedUnavailable("embedding service returned no vectors")

        return [np.asarray(v, dtype=np.float32).tolist() for v in vectors]

    def embed(self, text: str) -> List[float]:
        """Embed a single string."""
        return self.embed_many([text])[0]
