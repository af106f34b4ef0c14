import logging
from typing import Optional

import httpx
import numpy as np
from openai import NOT_GIVEN, APIConnectionError, APIStatusError, AsyncOpenAI, Omit, OpenAIError
from openai.types import CreateEmbeddingResponse

from agentic_search.errors import EmbeddingError, TransportError

logger = logging.getLogger(__name__)


class OpenAIEmbedder:
    """Embedding client for OpenAI-compatible `/embeddings` APIs."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize embedding client.

        Args:
            base_url: API base URL, e.g. "https://api.openai.com/v1".
            api_key: Bearer token; no Authorization header when absent.
            model: Model name; omitted from the request when absent.
            timeout: Per-call timeout in seconds.
            http_client: Custom HTTP client (tests).
        """
        # Placeholder key; the Authorization header is dropped when no key is set.
        self._client = AsyncOpenAI(
            base_url=base_url,
            api_key=api_key or "unused",
            default_headers=None if api_key else {"Authorization": Omit()},
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )
        self._model = model

    async def embed(self, text: str) -> np.ndarray:
        try:
            response = await self._client.embeddings.create(
                input=text,
                model=self._model or NOT_GIVEN,
                encoding_format="float",
            )
        except APIStatusError as e:
            logger.error(f"Embedding service returned {e.status_code}")
            raise EmbeddingError(e.status_code, e.response.text) from e
        except APIConnectionError as e:
            logger.error(f"Embedding service unreachable: {e}")
            raise TransportError(f"embedding service unreachable: {e}") from e
        except OpenAIError as e:
            logger.error(f"Embedding service call failed: {e}")
            raise EmbeddingError(200, "", f"embedding call failed: {e}") from e

        if not isinstance(response, CreateEmbeddingResponse):
            raise EmbeddingError(200, str(response), "embedding response is not an embedding list")
        if not response.data:
            raise EmbeddingError(200, "", "embedding response contains no data")

        vector = np.asarray(response.data[0].embedding, dtype=np.float32)
        if vector.ndim != 1 or vector.size == 0 or not np.isfinite(vector).all():
            raise EmbeddingError(200, "", "embedding response contains an invalid vector")

        logger.debug(f"Embedded query into {vector.size} dimensions")
        return vector

    async def aclose(self) -> None:
        await self._client.close()
