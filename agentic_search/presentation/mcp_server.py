"""MCP tool server exposing the search orchestrator."""

import asyncio
import json
import logging
from typing import Optional

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from mcp.types import TextContent

from agentic_search.core.services.search_service import SearchOrchestrator
from agentic_search.errors import AgenticSearchError

logger = logging.getLogger(__name__)

SERVER_NAME = "agentic-search"

TOOL_DESCRIPTION = (
    "Search the knowledge base for documents relevant to a natural-language "
    "query. Returns a JSON list of {content, score, source} ordered by "
    "relevance, followed by a synthesized answer when available."
)


class SearchToolServer:
    """Binds a SearchOrchestrator to a FastMCP `search` tool."""

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        request_timeout: Optional[float] = None,
    ):
        """Initialize tool server.

        Args:
            orchestrator: Search orchestrator.
            request_timeout: Per-call timeout in seconds (None disables).
        """
        self._orchestrator = orchestrator
        self._request_timeout = request_timeout

        self._server = FastMCP(
            name=SERVER_NAME,
            instructions="Agentic search over vector and keyword backends.",
        )
        self._server.tool(name="search", description=TOOL_DESCRIPTION)(self.search_tool)

    @property
    def server(self) -> FastMCP:
        return self._server

    async def search_tool(self, query: str) -> list[TextContent]:
        """Search documents relevant to the query."""
        try:
            result = await asyncio.wait_for(
                self._orchestrator.search(query), timeout=self._request_timeout
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Search timed out after {self._request_timeout}s")
            raise ToolError(f"timeout: search exceeded {self._request_timeout}s") from e
        except AgenticSearchError as e:
            logger.error(f"Search failed ({e.kind}): {e}")
            raise ToolError(f"{e.kind}: {e}") from e

        blocks = [
            TextContent(
                type="text",
                text=json.dumps(
                    [d.to_dict() for d in result.documents], ensure_ascii=False
                ),
            )
        ]
        if result.answer is not None:
            blocks.append(TextContent(type="text", text=result.answer))
        return blocks

    async def serve(self, transport: str, host: str, port: int) -> None:
        """Serve over "sse" or "stream-http", then close the backends.

        Backends are shared by every client session and closed once, when
        the server stops.
        """
        try:
            if transport == "sse":
                await self._server.run_async(transport="sse", host=host, port=port)
            else:
                await self._server.run_async(
                    transport="streamable-http", host=host, port=port, path="/mcp"
                )
        finally:
            await self.aclose()

    def run(self, transport: str, host: str, port: int) -> None:
        """Serve until interrupted."""
        asyncio.run(self.serve(transport, host, port))

    async def aclose(self) -> None:
        logger.info("Shutting down, closing backend connections")
        await self._orchestrator.aclose()
