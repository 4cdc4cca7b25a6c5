# Data models for the search layer: web search hits, scraped pages,
# and the auto re-search decision.

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SearchResult:
    """One hit from the web search API."""
    title: str
    snippet: str
    url: str


@dataclass
class SearchResponse:
    query: str
    results: List[SearchResult] = field(default_factory=list)
    timestamp: str = ""


@dataclass
class ScrapedPage:
    """Readable text pulled from one URL, already bounded in size."""
    url: str
    title: str
    content: str
    summary: str
    word_count: int
    rendered: bool = False


@dataclass
class AutoSearchDecision:
    trigger: bool
    query: Optional[str] = None
