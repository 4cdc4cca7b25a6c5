# Google Custom Search client used for explicit search requests and
# for the auto re-search step. Plus helpers to decide whether a question
# needs fresh information and to format hits for a prompt.

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional

import requests

from study_ai.errors import EnrichmentError
from study_ai.settings import is_configured
from .rate_limit import MinIntervalRateLimiter
from .types import SearchResponse, SearchResult

logger = logging.getLogger(__name__)

GOOGLE_SEARCH_URL = "https://www.googleapis.com/customsearch/v1"
USER_AGENT = "Mozilla/5.0 (compatible; StudyAI/1.0)"
API_MAX_RESULTS = 10  # customsearch rejects num > 10

CURRENT_INFO_KEYWORDS = (
    "weather", "temperature", "forecast",
    "news", "latest", "recent", "today", "now", "current",
    "stock", "market", "price", "crypto", "bitcoin",
    "election", "politics", "breaking",
    "sports", "game", "score", "nba", "nfl", "mlb",
    "covid", "pandemic", "virus",
    "earthquake", "hurricane", "disaster",
)
_CURRENT_INFO_RE = re.compile(r"\b(" + "|".join(CURRENT_INFO_KEYWORDS) + r")\b", re.IGNORECASE)


class SearchError(EnrichmentError):
    pass


class SearchUnavailableError(SearchError):
    """Search credentials are missing or still set to a placeholder."""


def needs_current_information(question: str) -> bool:
    """Keyword check for time-sensitive questions (news, prices, scores, weather...)."""
    return bool(_CURRENT_INFO_RE.search(question or ""))


def format_search_results(response: SearchResponse) -> str:
    if not response.results:
        return ""
    lines = []
    for i, r in enumerate(response.results, start=1):
        lines.append(f"{i}. {r.title}\n   {r.snippet}\n   Source: {r.url}")
    stamp = response.timestamp[:10] if response.timestamp else ""
    return (
        f"Web search results for \"{response.query}\" ({stamp}):\n"
        "Prefer this information over older training data when they disagree.\n\n"
        + "\n\n".join(lines)
    )


class GoogleSearchClient:
    def __init__(
        self,
        api_key: Optional[str],
        engine_id: Optional[str],
        limit: int = 12,
        timeout: float = 10.0,
        rate_limiter: Optional[MinIntervalRateLimiter] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.engine_id = engine_id
        self.limit = limit if 0 < limit <= 20 else 12
        self.timeout = timeout
        self.rate_limiter = rate_limiter or MinIntervalRateLimiter(1.0)
        # shared across request threads, so no Session unless one is injected
        self.session = session

    @classmethod
    def from_settings(cls, s) -> "GoogleSearchClient":
        return cls(
            api_key=s.GOOGLE_SEARCH_API_KEY,
            engine_id=s.GOOGLE_SEARCH_ENGINE_ID,
            limit=s.SEARCH_RESULTS_LIMIT,
            timeout=s.SEARCH_TIMEOUT,
            rate_limiter=MinIntervalRateLimiter(s.SEARCH_MIN_INTERVAL_MS / 1000.0),
        )

    @property
    def configured(self) -> bool:
        return is_configured(self.api_key) and is_configured(self.engine_id)

    def search(self, query: str) -> SearchResponse:
        query = (query or "").strip()
        now = datetime.now(timezone.utc).isoformat()
        if not query:
            logger.info("Empty search query, skipping web search")
            return SearchResponse(query="", results=[], timestamp=now)
        if not is_configured(self.api_key):
            raise SearchUnavailableError("GOOGLE_SEARCH_API_KEY is missing or a placeholder")
        if not is_configured(self.engine_id):
            raise SearchUnavailableError("GOOGLE_SEARCH_ENGINE_ID is missing or a placeholder")

        self.rate_limiter.wait()
        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": query,
            "num": min(self.limit, API_MAX_RESULTS),
        }
        try:
            resp = (self.session or requests).get(
                GOOGLE_SEARCH_URL,
                params=params,
                headers={"User-Agent": USER_AGENT},
                timeout=self.timeout,
            )
        except requests.Timeout as e:
            raise SearchError(f"search timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise SearchError(f"search request failed: {e.__class__.__name__}") from e

        if not resp.ok:
            raise SearchError(f"search API returned HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as e:
            raise SearchError("search API returned invalid JSON") from e

        items = data.get("items") or []
        results: List[SearchResult] = [
            SearchResult(
                title=item.get("title") or "Untitled",
                snippet=item.get("snippet") or "No description available",
                url=item.get("link") or "",
            )
            for item in items
        ]
        logger.info("Web search returned %d results", len(results))
        return SearchResponse(query=query, results=results[: self.limit], timestamp=now)
