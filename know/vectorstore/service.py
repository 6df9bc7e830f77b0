"""Vector store interface and Qdrant implementation."""

import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.models import Distance, PointStruct, VectorParams

from know.config import QdrantSettings, get_settings
from know.documents.models import DocumentChunk
from know.exceptions import ErrorCode, ValidationError, VectorStoreError
from know.logging_config import get_logger
from know.observability.metrics import track_vectorstore_operation
from know.vectorstore.models import CollectionInfo, SearchResult, VectorRecord

logger = get_logger(__name__)


class VectorStore(ABC):
    """Stores chunk embeddings and finds the nearest ones to a query.

    Implementations raise VectorStoreError for backend failures; only
    `is_available` never raises.
    """

    @abstractmethod
    async def create_collection(self, name: str, dimensions: int) -> None:
        """Create a collection of `dimensions`-sized vectors.

        Raises:
            VectorStoreError: COLLECTION_EXISTS if it already exists.
        """
        ...

    @abstractmethod
    async def delete_collection(self, name: str) -> None:
        """Delete a collection and every point in it.

        Raises:
            VectorStoreError: COLLECTION_NOT_FOUND if it does not exist.
        """
        ...

    @abstractmethod
    async def collection_exists(self, name: str) -> bool: ...

    @abstractmethod
    async def collection_info(self, name: str) -> CollectionInfo | None:
        """Point count and vector size, or None if the collection is absent."""
        ...

    @abstractmethod
    async def upsert(self, collection: str, records: list[VectorRecord]) -> int:
        """Write records keyed by id and return how many were written."""
        ...

    @abstractmethod
    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 5,
    ) -> list[SearchResult]:
        """Nearest points, most similar first. Points without payload are dropped."""
        ...

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the store answers at all."""
        ...

    async def ensure_collection(self, name: str, dimensions: int) -> bool:
        """Create the collection unless it already exists.

        An existing collection is left untouched whatever its dimension.

        Returns:
            True if the collection was created.
        """
        if await self.collection_exists(name):
            logger.debug(f"Collection already exists: {name}")
            return False

        await self.create_collection(name, dimensions)
        return True

    async def upsert_batch(
        self,
        collection: str,
        chunks: Sequence[DocumentChunk],
        vectors: Sequence[list[float]],
    ) -> int:
        """Upsert chunks paired positionally with their vectors.

        Points are keyed by chunk id, so re-ingesting an unchanged chunk
        overwrites its point.

        Raises:
            ValidationError: If the sequences differ in length.
            VectorStoreError: If the write fails.
        """
        if len(chunks) != len(vectors):
            raise ValidationError(
                "Chunks and vectors must have the same length",
                details={"chunks": len(chunks), "vectors": len(vectors)},
            )

        records = [
            VectorRecord.for_chunk(chunk.id, list(vector), chunk.content, chunk.source)
            for chunk, vector in zip(chunks, vectors, strict=True)
        ]
        return await self.upsert(collection, records)


class QdrantVectorStore(VectorStore):
    """Vector store backed by Qdrant, using cosine distance.

    The Qdrant client is created lazily; readiness is checked over plain
    HTTP so an unreachable server is reported instead of raised.
    """

    READY_TIMEOUT = 2.0

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize Qdrant vector store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
            http_client: HTTP client for the readiness probe (for testing).
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None
        self._http_client = http_client

    @property
    def url(self) -> str:
        """Qdrant server URL."""
        return self._settings.url.rstrip("/")

    async def _get_client(self) -> AsyncQdrantClient:
        if self._client is None:
            api_key = self._settings.api_key
            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key.get_secret_value() if api_key else None,
                timeout=self._settings.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client if we own it."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    @asynccontextmanager
    async def _operation(
        self, operation: str, collection: str
    ) -> AsyncIterator[AsyncQdrantClient]:
        """Time a Qdrant call and wrap client failures in VectorStoreError."""
        client = await self._get_client()
        start = time.perf_counter()
        try:
            yield client
        except VectorStoreError:
            track_vectorstore_operation(operation, time.perf_counter() - start, success=False)
            raise
        except Exception as e:
            track_vectorstore_operation(operation, time.perf_counter() - start, success=False)
            raise VectorStoreError(
                f"Qdrant {operation} failed for collection '{collection}': {e}",
                details={"collection": collection, "operation": operation, "error": str(e)},
            ) from e
        track_vectorstore_operation(operation, time.perf_counter() - start)

    async def is_available(self) -> bool:
        """Check Qdrant's /readyz endpoint."""
        url = f"{self.url}/readyz"
        try:
            if self._http_client is not None:
                response = await self._http_client.get(url, timeout=self.READY_TIMEOUT)
            else:
                async with httpx.AsyncClient(timeout=self.READY_TIMEOUT) as http_client:
                    response = await http_client.get(url)
        except httpx.HTTPError as e:
            logger.debug(f"Qdrant readiness check failed: {e}")
            return False

        return response.is_success

    async def create_collection(self, name: str, dimensions: int) -> None:
        async with self._operation("create_collection", name) as client:
            if await client.collection_exists(name):
                raise VectorStoreError(
                    f"Collection already exists: {name}",
                    code=ErrorCode.COLLECTION_EXISTS,
                    details={"collection": name},
                )
            await client.create_collection(
                collection_name=name,
                vectors_config=VectorParams(size=dimensions, distance=Distance.COSINE),
            )
        logger.info(f"Created collection: {name}", extra={"dimensions": dimensions})

    async def delete_collection(self, name: str) -> None:
        async with self._operation("delete_collection", name) as client:
            if not await client.collection_exists(name):
                raise VectorStoreError(
                    f"Collection not found: {name}",
                    code=ErrorCode.COLLECTION_NOT_FOUND,
                    details={"collection": name},
                )
            await client.delete_collection(name)
        logger.info(f"Deleted collection: {name}")

    async def collection_exists(self, name: str) -> bool:
        async with self._operation("collection_exists", name) as client:
            return await client.collection_exists(name)

    async def collection_info(self, name: str) -> CollectionInfo | None:
        async with self._operation("collection_info", name) as client:
            if not await client.collection_exists(name):
                return None
            info = await client.get_collection(name)

        # Single unnamed vector config; named vectors are not used by know.
        vectors = info.config.params.vectors
        return CollectionInfo(
            name=name,
            points_count=info.points_count or 0,
            dimensions=vectors.size if isinstance(vectors, VectorParams) else None,
        )

    async def upsert(self, collection: str, records: list[VectorRecord]) -> int:
        if not records:
            return 0

        points = [
            PointStruct(id=record.id, vector=record.vector, payload=record.payload)
            for record in records
        ]
        async with self._operation("upsert", collection) as client:
            await client.upsert(collection_name=collection, points=points)

        logger.debug(f"Upserted {len(points)} points", extra={"collection": collection})
        return len(points)

    async def search(
        self,
        collection: str,
        vector: list[float],
        limit: int = 5,
    ) -> list[SearchResult]:
        async with self._operation("search", collection) as client:
            response = await client.query_points(
                collection_name=collection,
                query=vector,
                limit=limit,
                with_payload=True,
            )

        return [
            SearchResult(
                id=str(point.id),
                score=point.score if point.score is not None else 0.0,
                payload=dict(point.payload),
            )
            for point in response.points
            if point.payload
        ]
