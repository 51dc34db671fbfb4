"""
Encyclopedia search through the MediaWiki API.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
from pydantic import Field

from watsonx_agents.tools.base import BaseTool, ToolInput, ToolResult
from watsonx_agents.utils.logger import get_logger

logger = get_logger(__name__)

USER_AGENT = "watsonx-agent-examples/0.1 (httpx)"


class WikipediaInput(ToolInput):
    """Input of the Wikipedia tool."""

    query: str = Field(min_length=1, description="Search query, e.g. a person, place or topic")


class WikipediaTool(BaseTool):
    """
    Search Wikipedia and return the introduction of the best matches.

    Example:
        >>> tool = WikipediaTool(max_results=2)
        >>> result = await tool.arun(query="Rayleigh scattering")
    """

    name = "wikipedia"
    description = (
        "Search factual and historical information, including biography, history, "
        "politics, geography, society, culture, science, technology, people, animal "
        "species, mathematics, and other subjects."
    )
    input_schema = WikipediaInput
    category = "search"

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        language: str = "en",
        max_results: int = 3,
        extract_chars: int = 1200,
        timeout: float = 10.0,
    ):
        if max_results < 1:
            raise ValueError("max_results must be positive")
        self._http_client = http_client
        self.language = language
        self.max_results = max_results
        self.extract_chars = extract_chars
        self.timeout = timeout

    @property
    def api_url(self) -> str:
        return f"https://{self.language}.wikipedia.org/w/api.php"

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.timeout, headers={"User-Agent": USER_AGENT}) as client:
            yield client

    async def _arun(self, query: str) -> ToolResult:
        async with self._client() as client:
            response = await client.get(
                self.api_url,
                params={
                    "action": "query",
                    "list": "search",
                    "srsearch": query,
                    "srlimit": self.max_results,
                    "format": "json",
                },
            )
            response.raise_for_status()
            hits: List[Dict[str, Any]] = response.json().get("query", {}).get("search", [])

            if not hits:
                return ToolResult(success=True, output="[]", metadata={"results": 0})

            page_ids = [str(hit["pageid"]) for hit in hits]
            response = await client.get(
                self.api_url,
                params={
                    "action": "query",
                    "prop": "extracts|info",
                    "exintro": 1,
                    "explaintext": 1,
                    "inprop": "url",
                    "pageids": "|".join(page_ids),
                    "format": "json",
                },
            )
            response.raise_for_status()
            pages: Dict[str, Dict[str, Any]] = response.json().get("query", {}).get("pages", {})

        results = []
        for page_id in page_ids:
            page = pages.get(page_id)
            if page is None:
                continue
            results.append(
                {
                    "title": page.get("title"),
                    "description": (page.get("extract") or "")[: self.extract_chars],
                    "url": page.get("fullurl")
                    or f"https://{self.language}.wikipedia.org/?curid={page_id}",
                }
            )

        logger.debug(f"Wikipedia search for '{query}' found {len(results)} results")
        return ToolResult(
            success=True,
            output=json.dumps(results, ensure_ascii=False),
            metadata={"results": len(results)},
        )
