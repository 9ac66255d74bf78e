#!/usr/bin/env python3
"""
Vector store service for Qdrant operations.
"""
from typing import Any, Dict, List, Optional

from qdrant_client import QdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import Distance, PointStruct, VectorParams

from rag_webhook.config.settings import VECTOR_DB_HOST, VECTOR_DB_PORT
from rag_webhook.models.data_models import RetrievedPoint
from rag_webhook.services.errors import SearchFailed, StoreFailed
from rag_webhook.utils.logging_config import setup_logging
from rag_webhook.utils.text_utils import preview

log = setup_logging("vector_store.log")

# Client-side failures: HTTP error statuses, undecodable replies, transport errors.
QDRANT_ERRORS = (UnexpectedResponse, ResponseHandlingException, ConnectionError, TimeoutError, ValueError)


class VectorStoreService:
    """k-NN search and collection management over named Qdrant collections."""

    def __init__(self, client: Optional[QdrantClient] = None, host: str = VECTOR_DB_HOST, port: int = VECTOR_DB_PORT):
        self.client = client or QdrantClient(host=host, port=port)

    def search(self, collection_name: str, vector: List[float], limit: int) -> List[RetrievedPoint]:
        """Return up to limit scored hits carrying a non-empty payload text."""
        try:
            results = self.client.query_points(
                collection_name=collection_name,
                query=vector,
                limit=limit,
                with_payload=True,
            )
        except QDRANT_ERRORS as e:
            raise SearchFailed(f"search in '{collection_name}' failed: {e}") from e

        points = []
        for hit in results.points:
            text = (hit.payload or {}).get("text")
            if not isinstance(text, str) or not text:
                log.warning(f"Skipping point {hit.id} in '{collection_name}' without payload text")
                continue
            log.debug(f"Received vector score={hit.score} and text={preview(text, 256)}")
            points.append(RetrievedPoint(id=hit.id, score=hit.score, text=text))
        return points

    def create_collection(self, collection_name: str, vector_size: int) -> None:
        """Create the collection; an already existing collection is left as is."""
        try:
            if self.client.collection_exists(collection_name):
                log.debug(f"Collection '{collection_name}' already exists")
                return
            self.client.create_collection(
                collection_name=collection_name,
                vectors_config=VectorParams(size=vector_size, distance=Distance.COSINE),
            )
            log.info(f"Collection '{collection_name}' created successfully (dimension: {vector_size})")
        except UnexpectedResponse as e:
            if e.status_code == 409 or "already exists" in str(e):
                log.info(f"Collection '{collection_name}' already exists (created by another process)")
                return
            raise StoreFailed(f"cannot create collection '{collection_name}': {e}") from e
        except QDRANT_ERRORS as e:
            raise StoreFailed(f"cannot create collection '{collection_name}': {e}") from e

    def delete_collection(self, collection_name: str) -> None:
        try:
            self.client.delete_collection(collection_name=collection_name)
        except QDRANT_ERRORS as e:
            raise StoreFailed(f"cannot delete collection '{collection_name}': {e}") from e

    def points_count(self, collection_name: str) -> int:
        try:
            info = self.client.get_collection(collection_name)
        except QDRANT_ERRORS as e:
            raise StoreFailed(f"cannot get collection stat for '{collection_name}': {e}") from e
        return info.points_count or 0

    def upsert(self, collection_name: str, point_id: int, vector: List[float], payload: Dict[str, Any]) -> None:
        try:
            self.client.upsert(
                collection_name=collection_name,
                points=[PointStruct(id=point_id, vector=vector, payload=payload)],
            )
        except QDRANT_ERRORS as e:
            raise StoreFailed(f"cannot upsert into '{collection_name}': {e}") from e
