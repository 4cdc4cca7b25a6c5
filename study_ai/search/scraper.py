# Page scraper used to enrich prompts with the content of links the user pasted.
# Two fetch strategies:
#  - light: requests + BeautifulSoup, for ordinary server-rendered pages
#  - render: headless Chromium via Playwright, for JavaScript-heavy domains
# Multiple URLs are fetched concurrently; failed pages are dropped.

from __future__ import annotations

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from study_ai.errors import EnrichmentError
from .types import ScrapedPage

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

# Pages on these domains are empty shells until their JavaScript runs.
JS_HEAVY_DOMAINS = frozenset({
    "twitter.com", "x.com",
    "instagram.com", "facebook.com", "linkedin.com", "tiktok.com",
    "reddit.com", "youtube.com",
    "medium.com", "notion.so", "notion.site",
    "quizlet.com", "docs.google.com",
})

_URL_RE = re.compile(r"https?://[^\s<>\"'`]+", re.IGNORECASE)
_TRAILING = ".,;:!?)]}>'\""
_DROP_TAGS = ("title", "script", "style", "noscript", "template", "svg", "iframe")


class ScrapeError(EnrichmentError):
    pass


def _trim_url(raw: str) -> str:
    url = raw
    while url and url[-1] in _TRAILING:
        # keep a closing paren that belongs to the URL, as in /wiki/Mercury_(planet)
        if url[-1] == ")" and url.count("(") >= url.count(")"):
            break
        url = url[:-1]
    return url


def extract_urls(text: str) -> List[str]:
    """Find http(s) links in free text, deduplicated, in order of appearance."""
    seen = set()
    urls: List[str] = []
    for raw in _URL_RE.findall(text or ""):
        url = _trim_url(raw)
        if url and url not in seen and urlparse(url).netloc:
            seen.add(url)
            urls.append(url)
    return urls


def should_render(url: str) -> bool:
    host = (urlparse(url).hostname or "").lower()
    return any(host == d or host.endswith("." + d) for d in JS_HEAVY_DOMAINS)


def html_to_text(html: str) -> Tuple[str, str]:
    """Return (title, visible text) for an HTML document."""
    soup = BeautifulSoup(html or "", "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    for tag in soup(_DROP_TAGS):
        tag.decompose()
    text = " ".join(soup.get_text(" ").split())
    return title, text


def format_scraped_pages(pages: List[ScrapedPage]) -> str:
    if not pages:
        return ""
    blocks = []
    for i, p in enumerate(pages, start=1):
        blocks.append(f"[{i}] {p.title}\nURL: {p.url}\n{p.content}")
    return "Content from links in the question:\n\n" + "\n\n---\n\n".join(blocks)


class PageScraper:
    CHUNK_SIZE = 16384

    def __init__(
        self,
        timeout: float = 15.0,
        max_chars: int = 10000,
        summary_chars: int = 200,
        max_workers: int = 4,
        max_bytes: int = 1_000_000,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.max_chars = max_chars
        self.summary_chars = summary_chars
        self.max_workers = max_workers
        self.max_bytes = max_bytes
        # Session is not thread-safe; without one, every fetch goes through requests.get
        self.session = session

    # -------------------------
    # Fetch strategies
    # -------------------------
    def fetch_light(self, url: str) -> Tuple[str, str]:
        http = self.session or requests
        try:
            resp = http.get(url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout, stream=True)
        except requests.RequestException as e:
            raise ScrapeError(f"fetch failed for {url}: {e.__class__.__name__}") from e
        try:
            if not resp.ok:
                raise ScrapeError(f"fetch failed for {url}: HTTP {resp.status_code}")
            ctype = resp.headers.get("Content-Type", "")
            if ctype and "html" not in ctype and not ctype.startswith("text/"):
                raise ScrapeError(f"unsupported content type for {url}: {ctype}")
            body = self._read_capped(resp, url, ctype)
        finally:
            resp.close()
        if "html" in ctype or not ctype:
            return html_to_text(body)
        return "", " ".join(body.split())

    def _read_capped(self, resp, url: str, ctype: str) -> str:
        """Read at most max_bytes of the body; the rest is never downloaded."""
        buf = bytearray()
        try:
            for chunk in resp.iter_content(chunk_size=self.CHUNK_SIZE):
                buf.extend(chunk)
                if len(buf) >= self.max_bytes:
                    logger.info("Truncated %s at %d bytes", url, self.max_bytes)
                    break
        except requests.RequestException as e:
            raise ScrapeError(f"fetch failed for {url}: {e.__class__.__name__}") from e
        encoding = (resp.encoding if "charset" in ctype.lower() else None) or "utf-8"
        try:
            return bytes(buf[: self.max_bytes]).decode(encoding, errors="replace")
        except LookupError:
            return bytes(buf[: self.max_bytes]).decode("utf-8", errors="replace")

    def fetch_rendered(self, url: str) -> Tuple[str, str]:
        # heavy import delayed until a JS-heavy page actually shows up
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright

        try:
            with sync_playwright() as pw:
                browser = pw.chromium.launch(headless=True)
                try:
                    page = browser.new_page(user_agent=USER_AGENT)
                    page.goto(url, timeout=int(self.timeout * 1000), wait_until="networkidle")
                    html = page.content()
                    page_title = page.title()
                finally:
                    browser.close()
        except PlaywrightError as e:
            raise ScrapeError(f"render failed for {url}: {e}") from e
        title, text = html_to_text(html)
        return page_title or title, text

    # -------------------------
    # Public API
    # -------------------------
    def scrape(self, url: str) -> ScrapedPage:
        rendered = should_render(url)
        title, text = self.fetch_rendered(url) if rendered else self.fetch_light(url)
        if not text:
            raise ScrapeError(f"no readable content at {url}")
        content = text[: self.max_chars]
        summary = content[: self.summary_chars]
        if len(content) > self.summary_chars:
            summary += "..."
        return ScrapedPage(
            url=url,
            title=title or "Untitled",
            content=content,
            summary=summary,
            word_count=len(content.split()),
            rendered=rendered,
        )

    def _scrape_or_none(self, url: str) -> Optional[ScrapedPage]:
        try:
            return self.scrape(url)
        except Exception as e:
            logger.warning("Scrape failed for %s: %s", url, e)
            return None

    def scrape_many(self, urls: List[str]) -> List[ScrapedPage]:
        """Fetch all URLs concurrently; keeps input order and drops failures."""
        if not urls:
            return []
        workers = max(1, min(self.max_workers, len(urls)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(self._scrape_or_none, urls))
        pages = [p for p in results if p is not None]
        if len(pages) < len(urls):
            logger.warning("Scraped %d of %d pages", len(pages), len(urls))
        return pages
