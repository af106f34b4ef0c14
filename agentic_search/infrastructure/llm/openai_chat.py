
import json
import logging
from typing import Optional

import httpx
from openai import NOT_GIVEN, APIConnectionError, APIStatusError, AsyncOpenAI, Omit, OpenAIError
from openai.types.chat import ChatCompletion

from agentic_search.core.models.document import Document, format_context
from agentic_search.errors import ChatError, TransportError

logger = logging.getLogger(__name__)

SYNTHESIZE_SYSTEM_PROMPT = """You are a search assistant.

Answer the user's question using ONLY the numbered documents provided.
- Cite documents by their number, e.g. [2].
- Keep facts, figures and terms exactly as they appear in the documents.
- If the documents do not contain the answer, say so. Do not invent anything."""

RERANK_SYSTEM_PROMPT = """You rank search results.

Given a question and numbered documents, reply with ONLY a JSON array of the
document numbers ordered from most to least relevant, e.g. [3, 1, 2].
Include every document number exactly once."""

PROMPT_WITH_CONTEXT = """Documents:

{context}

---
Question: {question}"""


class OpenAIChatClient:
    """Chat client for OpenAI-compatible `/chat/completions` APIs."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: int = 1024,
        temperature: float = 0.1,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize chat client.

        Args:
            base_url: API base URL.
            api_key: Bearer token; no Authorization header when absent.
            model: Model name; omitted from the request when absent.
            max_tokens: Max response tokens.
            temperature: Sampling temperature.
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
        self._max_tokens = max_tokens
        self._temperature = temperature

    async def synthesize(self, query: str, documents: list[Document]) -> str:
        """Synthesize an answer from the documents."""
        return await self._complete(SYNTHESIZE_SYSTEM_PROMPT, query, documents)

    async def rerank(self, query: str, documents: list[Document]) -> list[int]:
        """Ask the model for a relevance order.

        Returns:
            0-based indices, most relevant first. Documents the model
            left out keep their relative order at the end.

        Raises:
            ChatError: If the reply is not a JSON array of document numbers.
        """
        reply = await self._complete(RERANK_SYSTEM_PROMPT, query, documents)

        try:
            numbers = json.loads(reply.strip().strip("`").removeprefix("json").strip())
        except ValueError as e:
            raise ChatError(200, reply, "rerank reply is not valid JSON") from e

        if not isinstance(numbers, list) or not all(
            type(n) is int and 1 <= n <= len(documents) for n in numbers
        ):
            raise ChatError(200, reply, "rerank reply is not a list of document numbers")

        order: list[int] = []
        for n in numbers:
            if n - 1 not in order:
                order.append(n - 1)
        order.extend(i for i in range(len(documents)) if i not in order)
        return order

    async def _complete(self, system_prompt: str, query: str, documents: list[Document]) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {
                "role": "user",
                "content": PROMPT_WITH_CONTEXT.format(
                    context=format_context(documents), question=query
                ),
            },
        ]

        try:
            response = await self._client.chat.completions.create(
                model=self._model or NOT_GIVEN,
                messages=messages,
                max_tokens=self._max_tokens,
                temperature=self._temperature,
            )
        except APIStatusError as e:
            logger.error(f"Chat service returned {e.status_code}")
            raise ChatError(e.status_code, e.response.text) from e
        except APIConnectionError as e:
            logger.error(f"Chat service unreachable: {e}")
            raise TransportError(f"chat service unreachable: {e}") from e
        except OpenAIError as e:
            logger.error(f"Chat service call failed: {e}")
            raise ChatError(200, "", f"chat call failed: {e}") from e

        if not isinstance(response, ChatCompletion):
            raise ChatError(200, str(response), "chat response is not a chat completion")
        if not response.choices or not response.choices[0].message.content:
            raise ChatError(200, "", "chat response contains no content")

        return response.choices[0].message.content

    async def aclose(self) -> None:
        await self._client.close()
