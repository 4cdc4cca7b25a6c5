# Makes the folder importable as a package.
# Exports the web search client, page scraper and auto re-search predicate.

from .auto_search import should_auto_search
from .rate_limit import MinIntervalRateLimiter
from .scraper import PageScraper, ScrapeError, extract_urls
from .types import AutoSearchDecision, ScrapedPage, SearchResponse, SearchResult
from .web_search import GoogleSearchClient, SearchError, SearchUnavailableError, needs_current_information

__all__ = [
    "GoogleSearchClient",
    "PageScraper",
    "MinIntervalRateLimiter",
    "SearchError",
    "SearchUnavailableError",
    "ScrapeError",
    "SearchResult",
    "SearchResponse",
    "ScrapedPage",
    "AutoSearchDecision",
    "extract_urls",
    "needs_current_information",
    "should_auto_search",
]
