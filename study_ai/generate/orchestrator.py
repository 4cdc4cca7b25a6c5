# ProviderFallbackOrchestrator:
# - enriches the request once (web search, scraped links)
# - tries providers in fixed order, primary then secondary, never concurrently
# - post-processes the first successful answer (auto re-search when it hedges)
# - returns a canned answer when every provider fails; generate() never raises
# - generate_stream() does the same while forwarding text chunks as they arrive

from __future__ import annotations

import logging
import os
from typing import Callable, List, Optional, Sequence, Union

import yaml

from study_ai.errors import ProviderError
from study_ai.search.types import AutoSearchDecision
from study_ai.search.auto_search import should_auto_search
from study_ai.search.scraper import PageScraper
from study_ai.search.web_search import GoogleSearchClient, format_search_results
from .clients import build_providers
from .enrichment import RequestEnricher
from .fallback import canned_response
from .prompts import build_prompt_bundle
from .types import (
    Enrichment,
    GenerationRequest,
    GenerationResult,
    ModelClient,
    ModelParams,
    ProviderAttempt,
    ProviderTier,
    Source,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "config.yaml")
PROVIDER_TIERS = (ProviderTier.PRIMARY, ProviderTier.SECONDARY)
AUTO_SEARCH_HEADING = "Here is some more current information I found:"

AutoSearchPredicate = Callable[[str, str], Union[AutoSearchDecision, bool]]
ChunkCallback = Callable[[str], None]
RestartCallback = Callable[[str], None]


def _guarded(callback, what: str):
    """Wrap a consumer callback so its failures are logged and never abort generation."""
    if callback is None:
        return None

    def call(value):
        try:
            callback(value)
        except Exception:
            logger.exception("%s callback failed", what)

    return call


def _recording(emit: ChunkCallback, streamed: List[str]) -> ChunkCallback:
    def forward(chunk):
        if chunk:
            streamed.append(chunk)
            emit(chunk)

    return forward


class ProviderFallbackOrchestrator:
    def __init__(
        self,
        providers: Sequence[ModelClient],
        enricher: Optional[RequestEnricher] = None,
        search_client: Optional[GoogleSearchClient] = None,
        auto_search_predicate: Optional[AutoSearchPredicate] = should_auto_search,
        config_path: str = DEFAULT_CONFIG_PATH,
        timeout: Optional[float] = None,
    ):
        if len(providers) > len(PROVIDER_TIERS):
            raise ValueError(f"At most {len(PROVIDER_TIERS)} providers are supported, got {len(providers)}")
        self.providers = list(providers)
        self.enricher = enricher
        self.search_client = search_client
        self.auto_search_predicate = auto_search_predicate
        self.config_path = config_path
        self.timeout = timeout
        self.cfg = self._load_config()

    @classmethod
    def from_settings(cls, s) -> "ProviderFallbackOrchestrator":
        search_client = GoogleSearchClient.from_settings(s)
        scraper = PageScraper(timeout=s.SCRAPE_TIMEOUT)
        return cls(
            providers=build_providers(s),
            enricher=RequestEnricher(search_client=search_client, scraper=scraper),
            search_client=search_client,
            timeout=s.PROVIDER_TIMEOUT,
        )

    def _load_config(self):
        if not os.path.exists(self.config_path):
            return {}
        with open(self.config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    def _params(self, in_depth: bool = False) -> ModelParams:
        max_tokens = self.cfg.get("in_depth_max_tokens", 2000) if in_depth else self.cfg.get("max_tokens", 1000)
        return ModelParams(
            temperature=self.cfg.get("temperature", 0.3),
            max_tokens=max_tokens,
            timeout=self.timeout,
        )

    # -------------------------
    # Public API
    # -------------------------
    def generate(self, request: GenerationRequest) -> GenerationResult:
        """Best-effort answer; provider and enrichment errors never reach the caller."""
        if not (request.question or "").strip():
            logger.warning("Empty question, answering with canned fallback")
            return self._fallback(request, attempts=[])

        enrichment = self._enrich(request)
        return self._run(request, enrichment, in_depth=False)

    def generate_stream(
        self,
        request: GenerationRequest,
        on_chunk: ChunkCallback,
        on_restart: Optional[RestartCallback] = None,
    ) -> GenerationResult:
        """Like generate(), but forwards answer text to `on_chunk` as it is produced.

        When a provider fails after it already streamed some text, `on_restart` is
        called with that provider's id before the next provider (or the canned
        answer) starts streaming, so the consumer can discard the partial text.
        The returned result carries the complete answer of the provider that won.
        """
        emit = _guarded(on_chunk, "Stream chunk")
        restart = _guarded(on_restart, "Stream restart")
        if not (request.question or "").strip():
            logger.warning("Empty question, answering with canned fallback")
            result = self._fallback(request, attempts=[])
            if emit is not None:
                emit(result.answer)
            return result

        enrichment = self._enrich(request)
        return self._run(request, enrichment, in_depth=False, emit=emit, restart=restart)

    def analyze_in_depth(self, request: GenerationRequest) -> GenerationResult:
        """Longer, structured explanation. Same fallback order, no enrichment or re-search."""
        if not (request.question or "").strip():
            return self._fallback(request, attempts=[])
        return self._run(request, Enrichment(), in_depth=True)

    def provider_status(self) -> List[dict]:
        return [
            {
                "tier": tier.value,
                "engine": getattr(client, "name", type(client).__name__),
                "model": getattr(client, "model", None),
                "configured": bool(getattr(client, "configured", True)),
                "streaming": hasattr(client, "generate_stream"),
            }
            for tier, client in zip(PROVIDER_TIERS, self.providers)
        ]

    # -------------------------
    # Internals
    # -------------------------
    def _enrich(self, request: GenerationRequest) -> Enrichment:
        if self.enricher is None:
            return Enrichment()
        try:
            return self.enricher.enrich(request)
        except Exception:
            logger.exception("Request enrichment failed, continuing without it")
            return Enrichment()

    def _call(self, client, bundle, params, emit: Optional[ChunkCallback]):
        if emit is None:
            return client.generate(bundle, params)
        stream = getattr(client, "generate_stream", None)
        if stream is None:
            answer, meta = client.generate(bundle, params)
            if isinstance(answer, str) and answer.strip():
                emit(answer)
            return answer, meta
        return stream(bundle, params, emit)

    def _run(
        self,
        request: GenerationRequest,
        enrichment: Enrichment,
        in_depth: bool,
        emit: Optional[ChunkCallback] = None,
        restart: Optional[RestartCallback] = None,
    ) -> GenerationResult:
        params = self._params(in_depth)
        attempts: List[ProviderAttempt] = []

        for tier, client in zip(PROVIDER_TIERS, self.providers):
            provider_id = getattr(client, "name", type(client).__name__)
            streamed: List[str] = []
            forward = _recording(emit, streamed) if emit is not None else None
            try:
                bundle = build_prompt_bundle(request, client.capabilities, enrichment, in_depth=in_depth)
                answer, meta = self._call(client, bundle, params, forward)
                if not isinstance(answer, str) or not answer.strip():
                    raise ValueError("provider returned an empty answer")
                meta = dict(meta or {})
            except Exception as e:
                reason = f"{getattr(e, 'code', type(e).__name__)}: {e}"
                attempts.append(ProviderAttempt(provider_id=provider_id, succeeded=False, error_reason=reason))
                logger.warning(
                    "%s provider %s failed: %s", tier.value, provider_id, reason,
                    exc_info=not isinstance(e, ProviderError),
                )
                if streamed and restart is not None:
                    restart(provider_id)
                continue

            attempts.append(ProviderAttempt(provider_id=provider_id, succeeded=True))
            logger.info("Answer from %s provider %s", tier.value, provider_id)
            sources = list(enrichment.sources)
            if not in_depth:
                extended, extra = self._post_process(request.question, answer)
                if emit is not None and extended != answer:
                    emit(extended[len(answer):])
                answer = extended
                sources.extend(extra)
            return GenerationResult(
                answer=answer.strip(),
                provider=tier,
                sources=sources or None,
                is_search_request=request.flags.is_search_request,
                engine=meta.get("engine", provider_id),
                meta={
                    **meta,
                    "attempts": len(attempts),
                    "scraped_urls": list(enrichment.scraped_urls),
                    "streamed": emit is not None,
                },
            )

        result = self._fallback(request, attempts)
        if emit is not None:
            emit(result.answer)
        return result

    def _post_process(self, question: str, answer: str):
        """Append one round of search results when the answer hedges on a time-sensitive question."""
        if self.auto_search_predicate is None or self.search_client is None:
            return answer, []
        try:
            decision = self.auto_search_predicate(question, answer)
            if isinstance(decision, bool):
                decision = AutoSearchDecision(trigger=decision, query=question if decision else None)
            if not decision.trigger:
                return answer, []

            logger.info("Answer looks uncertain, searching for: %s", decision.query)
            response = self.search_client.search(decision.query or question)
            block = format_search_results(response)
            if not block:
                logger.info("Auto search returned nothing useful, leaving answer as is")
                return answer, []
            sources = [Source(title=r.title, url=r.url, snippet=r.snippet) for r in response.results]
            return f"{answer}\n\n{AUTO_SEARCH_HEADING}\n\n{block}", sources
        except Exception as e:
            logger.warning("Auto search failed: %s", e)
            return answer, []

    def _fallback(self, request: GenerationRequest, attempts: List[ProviderAttempt]) -> GenerationResult:
        if attempts:
            summary = "; ".join(f"{a.provider_id}={a.error_reason}" for a in attempts)
            logger.error("All providers failed, using canned answer (%s)", summary)
        return GenerationResult(
            answer=canned_response(request.question),
            provider=ProviderTier.FALLBACK,
            sources=None,
            is_search_request=request.flags.is_search_request,
            engine="canned",
            meta={"attempts": len(attempts)},
        )
