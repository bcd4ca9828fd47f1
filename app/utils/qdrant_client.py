"""
Qdrant Vector Database Client Configuration
Vector cache of paper summaries: connection state, nearest-neighbour lookup and insertion.
"""

import asyncio
from typing import Optional, Dict, Any, List, Callable
import uuid
from qdrant_client import QdrantClient
from qdrant_client.http import models
from qdrant_client.http.models import KeywordIndexParams, KeywordIndexType
import logging
from config.qdrant_config import qdrant_settings
from config.app_config import settings
from schemas.outcome_schemas import DegradedReason, Outcome
from schemas.paper_schemas import Paper
from schemas.qdrant_schemas import (
    QdrantCollectionSchema, entry_from_paper, entry_to_payload, paper_from_payload
)
from utils.embeddings import EmbeddingsManager

logger = logging.getLogger(__name__)


class VectorCache:
    """Manages the Qdrant collection that caches summarized papers."""

    def __init__(
        self,
        embeddings: EmbeddingsManager,
        client: Optional[QdrantClient] = None,
        collection_name: Optional[str] = None,
        min_score: Optional[float] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.embeddings = embeddings
        self.client: Optional[QdrantClient] = client
        self.collection_name: str = collection_name or qdrant_settings.COLLECTION_NAME
        self.vector_size: int = qdrant_settings.VECTOR_SIZE
        self.min_score: float = qdrant_settings.MIN_SCORE if min_score is None else min_score
        self.timeout_seconds: float = timeout_seconds or settings.HTTP_TIMEOUT_SECONDS
        self.connected: bool = False

    @property
    def status(self) -> str:
        return "connected" if self.connected else "disconnected"

    def get_client(self) -> QdrantClient:
        """Get or create Qdrant client instance."""
        if self.client is None:
            try:
                if qdrant_settings.URL:
                    self.client = QdrantClient(
                        url=qdrant_settings.URL,
                        api_key=qdrant_settings.API_KEY or None,
                        timeout=qdrant_settings.TIMEOUT
                    )
                    logger.info(f"Qdrant client initialized - URL: {qdrant_settings.URL}")
                else:
                    self.client = QdrantClient(
                        host=qdrant_settings.HOST,
                        port=qdrant_settings.PORT,
                        api_key=qdrant_settings.API_KEY or None,
                        https=qdrant_settings.USE_HTTPS,
                        timeout=qdrant_settings.TIMEOUT
                    )
                    logger.info(f"Qdrant client initialized - Host: {qdrant_settings.HOST}:{qdrant_settings.PORT}")

            except Exception as e:
                logger.error(f"Failed to initialize Qdrant client: {e}")
                raise

        return self.client

    async def _run(self, call: Callable[[], Any]) -> Any:
        """Run a blocking client call in the executor, bounded by the call timeout."""
        loop = asyncio.get_running_loop()
        return await asyncio.wait_for(loop.run_in_executor(None, call), timeout=self.timeout_seconds)

    async def test_connection(self) -> bool:
        """Test connection to Qdrant server."""
        try:
            client = self.get_client()
            # Try to get collections to test connection
            collections = await self._run(client.get_collections)
            logger.info(f"Qdrant connection successful. Found {len(collections.collections)} collections.")
            return True
        except Exception as e:
            logger.error(f"Qdrant connection failed: {e}")
            return False

    async def create_collection_if_not_exists(self) -> bool:
        """Create the summary collection if it doesn't exist."""
        try:
            client = self.get_client()

            # Check if collection exists
            collections = await self._run(client.get_collections)
            collection_names = [col.name for col in collections.collections]

            if self.collection_name in collection_names:
                logger.info(f"Collection '{self.collection_name}' already exists.")
                return True

            await self._run(
                lambda: client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=models.VectorParams(
                        size=self.vector_size,
                        distance=models.Distance.COSINE
                    ),
                    on_disk_payload=True
                )
            )

            await self._create_payload_indexes(client)

            logger.info(f"Collection '{self.collection_name}' created successfully.")
            return True

        except Exception as e:
            logger.error(f"Failed to create collection '{self.collection_name}': {e}")
            return False

    async def _create_payload_indexes(self, client: QdrantClient) -> None:
        """Create keyword indexes for the fields lookups filter on."""
        for field_name in QdrantCollectionSchema.indexed_fields():
            try:
                await self._run(
                    lambda: client.create_payload_index(
                        collection_name=self.collection_name,
                        field_name=field_name,
                        field_schema=KeywordIndexParams(type=KeywordIndexType.KEYWORD)
                    )
                )
                logger.info(f"Created payload index for field: {field_name}")
            except Exception as e:
                # Lookups still work without the index, only slower
                logger.warning(f"Failed to create index for {field_name}: {e}")

    async def connect(self) -> bool:
        """Establish the connection and make sure the collection exists."""
        self.connected = await self.test_connection() and await self.create_collection_if_not_exists()
        if self.connected:
            logger.info("Vector cache connected.")
        else:
            logger.error("Vector cache unavailable; searches will run without it.")
        return self.connected

    async def _ensure_connected(self) -> bool:
        if self.connected:
            return True
        return await self.connect()

    def _degrade(self, action: str, error: Exception) -> Outcome:
        reason = DegradedReason.TIMEOUT if isinstance(error, asyncio.TimeoutError) else DegradedReason.UNAVAILABLE
        logger.error(f"Vector cache {action} failed ({reason.value}): {error}")
        self.connected = False
        return Outcome.failure([], reason, str(error))

    async def lookup(self, query: str, source: str = "all", k: int = 5) -> Outcome[List[Paper]]:
        """
        Find cached summaries close to the query.

        Args:
            query: Search query text
            source: "all" or a single source to restrict hits to
            k: Maximum number of hits

        Returns:
            Outcome holding cached papers (summary and relevance_score set),
            nearest first. Empty and degraded when the store is unreachable.
        """
        if not await self._ensure_connected():
            return Outcome.failure([], DegradedReason.UNAVAILABLE, "vector store not connected")

        try:
            query_embedding = await self.embeddings.create_single_embedding(query)

            query_filter = None
            if source != "all":
                query_filter = models.Filter(
                    must=[
                        models.FieldCondition(
                            key="source",
                            match=models.MatchValue(value=source)
                        )
                    ]
                )

            client = self.get_client()
            response = await self._run(
                lambda: client.query_points(
                    collection_name=self.collection_name,
                    query=query_embedding,
                    query_filter=query_filter,
                    limit=k,
                    score_threshold=self.min_score,
                    with_payload=True,
                    with_vectors=False
                )
            )

            hits = []
            for point in response.points:
                try:
                    hits.append(paper_from_payload(point.payload or {}, point.score))
                except Exception as e:
                    logger.warning(f"Skipping malformed cache entry {point.id}: {e}")

            logger.info(f"Vector cache returned {len(hits)} hits for '{query}'")
            return Outcome.success(hits)

        except Exception as e:
            return self._degrade("lookup", e)

    async def insert(self, papers: List[Paper], summaries: List[str]) -> Outcome[int]:
        """
        Store summaries with their paper metadata.

        Args:
            papers: Papers that were summarized
            summaries: Summaries aligned with papers

        Returns:
            Outcome holding the number of stored points
        """
        if len(papers) != len(summaries):
            raise ValueError("papers and summaries must have the same length")
        if not papers:
            return Outcome.success(0)
        if not await self._ensure_connected():
            return Outcome.failure(0, DegradedReason.UNAVAILABLE, "vector store not connected")

        try:
            vectors = await self.embeddings.create_embeddings(summaries)

            points = []
            for paper, summary, vector in zip(papers, summaries, vectors):
                entry = entry_from_paper(paper, summary, vector)
                points.append(
                    models.PointStruct(
                        id=str(uuid.uuid4()),
                        vector=entry.vector,
                        payload=entry_to_payload(entry)
                    )
                )

            client = self.get_client()
            await self._run(
                lambda: client.upsert(
                    collection_name=self.collection_name,
                    points=points,
                    wait=True
                )
            )

            logger.info(f"Successfully saved {len(points)} summaries to Qdrant")
            return Outcome.success(len(points))

        except Exception as e:
            outcome = self._degrade("insert", e)
            outcome.value = 0
            return outcome

    async def get_collection_info(self) -> Dict[str, Any]:
        """
        Get information about the summary collection.

        Raises:
            Exception: Whatever the client raised; callers report it.
        """
        client = self.get_client()
        try:
            collection_info = await self._run(lambda: client.get_collection(self.collection_name))
        except Exception:
            self.connected = False
            raise
        self.connected = True
        return {
            "name": self.collection_name,
            "vector_size": self.vector_size,
            "points_count": collection_info.points_count or 0
        }
