# Request enrichment: explicit web search and scraping of links found in the
# question. Both steps are optional and independent, and neither can fail
# the request; failures turn into a notice or are simply left out.

from __future__ import annotations

import logging
from typing import List, Optional

from study_ai.search.scraper import PageScraper, extract_urls, format_scraped_pages
from study_ai.search.web_search import GoogleSearchClient, format_search_results
from .types import Enrichment, GenerationRequest, Source

logger = logging.getLogger(__name__)


class RequestEnricher:
    def __init__(
        self,
        search_client: Optional[GoogleSearchClient] = None,
        scraper: Optional[PageScraper] = None,
    ):
        self.search_client = search_client
        self.scraper = scraper

    def enrich(self, request: GenerationRequest) -> Enrichment:
        search_block, sources = self._search(request)
        scraped_block, scraped_urls = self._scrape(request)
        return Enrichment(
            search_block=search_block,
            sources=sources,
            scraped_block=scraped_block,
            scraped_urls=scraped_urls,
        )

    def _search(self, request: GenerationRequest):
        if not request.flags.is_search_request:
            return "", []
        if self.search_client is None:
            logger.warning("Search requested but no search client is configured")
            return "Web search failed: search is not configured.", []
        try:
            response = self.search_client.search(request.question)
        except Exception as e:
            logger.warning("Web search failed: %s", e)
            return f"Web search failed: {e}", []
        if not response.results:
            return f"No search results found for: \"{request.question}\"", []
        sources: List[Source] = [Source(title=r.title, url=r.url, snippet=r.snippet) for r in response.results]
        return format_search_results(response), sources

    def _scrape(self, request: GenerationRequest):
        if self.scraper is None:
            return "", []
        urls = extract_urls(request.question)
        if not urls:
            return "", []
        logger.info("Found %d URL(s) to scrape", len(urls))
        try:
            pages = self.scraper.scrape_many(urls)
        except Exception as e:
            logger.warning("URL scraping failed: %s", e)
            return "", []
        return format_scraped_pages(pages), [p.url for p in pages]
