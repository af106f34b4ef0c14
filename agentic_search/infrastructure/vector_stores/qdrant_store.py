import logging
from typing import Optional

import httpx

from agentic_search.core.models.document import RawHit
from agentic_search.errors import BackendError, BackendErrorKind

logger = logging.getLogger(__name__)


class QdrantVectorStore:
    """Vector store using the Qdrant HTTP API."""

    def __init__(
        self,
        base_url: str,
        payload_field: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Qdrant client.

        Args:
            base_url: Qdrant URL, e.g. "http://127.0.0.1:6333".
            payload_field: Payload key holding the document content.
            api_key: Sent as the `api-key` header when set.
            timeout: Per-call timeout in seconds.
            transport: Custom transport (tests).
        """
        headers = {"api-key": api_key} if api_key else {}
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self.payload_field = payload_field

    async def search(
        self,
        vector: list[float],
        collection: str,
        limit: int,
        threshold: float,
    ) -> list[RawHit]:
        """Search collection by vector."""
        try:
            resp = await self._client.post(
                f"/collections/{collection}/points/search",
                json={
                    "vector": vector,
                    "limit": limit,
                    "score_threshold": threshold,
                    "with_payload": True,
                },
            )
        except httpx.HTTPError as e:
            logger.error(f"Qdrant unreachable: {e}")
            raise BackendError(
                f"vector store unreachable: {e}", BackendErrorKind.TRANSPORT
            ) from e

        if resp.status_code != 200:
            logger.error(f"Qdrant search failed with {resp.status_code}: {resp.text[:200]}")
            raise BackendError(
                f"vector store returned {resp.status_code}: {resp.text[:200]}",
                BackendErrorKind.HTTP,
                status=resp.status_code,
            )

        try:
            points = resp.json()["result"]
        except (ValueError, KeyError, TypeError) as e:
            raise BackendError(
                "vector store returned a malformed response", BackendErrorKind.MALFORMED
            ) from e
        if not isinstance(points, list):
            raise BackendError(
                "vector store result is not a list", BackendErrorKind.MALFORMED
            )

        hits = []
        for point in points:
            hit = self._to_hit(point)
            if hit is not None:
                hits.append(hit)

        logger.debug(f"Qdrant: {len(hits)}/{len(points)} usable hits in '{collection}'")
        return hits

    def _to_hit(self, point: object) -> Optional[RawHit]:
        """Convert a scored point, or None if it cannot be used."""
        if not isinstance(point, dict):
            logger.warning(f"Skipping malformed point: {point!r}")
            return None

        payload = point.get("payload")
        if not isinstance(payload, dict) or self.payload_field not in payload:
            logger.warning(
                f"Skipping point {point.get('id')}: payload has no '{self.payload_field}' field"
            )
            return None

        score = point.get("score")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            logger.warning(f"Skipping point {point.get('id')}: invalid score {score!r}")
            return None

        return RawHit(payload=payload, score=float(score))

    async def aclose(self) -> None:
        await self._client.aclose()
