"""Tavily API client for web evidence gathering.

Tavily returns cleaned snippets (``content``) with url, title and an optional
``published_date`` per result, which is all the evidence layer needs.
"""

import os
from collections.abc import Sequence

from models.errors import FetchError
from utils.logger import get_logger

from .contracts import SearchResult

logger = get_logger(__name__)


class TavilySearchClient:
    """
    Thin synchronous wrapper over ``tavily.TavilyClient.search``.

    Unlike a best-effort search helper, every provider failure is raised as
    ``FetchError``: a run must not continue on partial evidence.
    """

    def __init__(self, api_key: str | None = None):
        """
        Initialize Tavily client.

        Args:
            api_key: Tavily API key (defaults to TAVILY_API_KEY env var)
        """
        self.api_key = api_key or os.getenv("TAVILY_API_KEY")

        if not self.api_key:
            raise ValueError("TAVILY_API_KEY not found in environment")

        # Lazy import so tests with a fake search client don't need the SDK
        try:
            from tavily import TavilyClient
        except ModuleNotFoundError as e:
            raise ModuleNotFoundError(
                "Dependency 'tavily' is not installed. Install it with: pip install tavily-python"
            ) from e

        self.client = TavilyClient(api_key=self.api_key)
        logger.info("Tavily client initialized")

    def search(
        self,
        query: str,
        max_results: int = 5,
        search_depth: str = "basic",
        include_domains: Sequence[str] | None = None,
        exclude_domains: Sequence[str] | None = None,
    ) -> list[SearchResult]:
        """
        Search the web using the Tavily API.

        Args:
            query: Search query
            max_results: Maximum number of results
            search_depth: "basic" (faster) or "advanced" (deeper)
            include_domains: Restrict results to these domains
            exclude_domains: Drop results from these domains

        Returns:
            List of SearchResult in provider order

        Raises:
            FetchError: On any provider failure
        """
        logger.info(
            "Tavily search",
            extra={
                "extra_fields": {
                    "query": query,
                    "max_results": max_results,
                    "search_depth": search_depth,
                }
            },
        )

        try:
            response = self.client.search(
                query=query,
                max_results=max_results,
                search_depth=search_depth,
                include_domains=list(include_domains or []),
                exclude_domains=list(exclude_domains or []),
                include_answer=False,
                include_raw_content=False,
            )
        except Exception as e:
            status = getattr(getattr(e, "response", None), "status_code", None)
            logger.error(
                f"Tavily search failed: {e}",
                extra={"extra_fields": {"query": query, "status": status}},
            )
            raise FetchError(
                f"Tavily search failed ({status or 'error'}): {e}", status=status
            ) from e

        results = [SearchResult.from_dict(item) for item in response.get("results", []) or []]
        logger.info(f"Tavily returned {len(results)} results for '{query[:80]}'")
        return results
