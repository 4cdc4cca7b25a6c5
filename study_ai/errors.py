from __future__ import annotations

CREDENTIAL_MISSING = "credential-missing"
UPSTREAM_HTTP_ERROR = "upstream-http-error"
NETWORK_TIMEOUT = "network-timeout"
MALFORMED_RESPONSE = "malformed-upstream-response"
ENRICHMENT_FAILURE = "enrichment-failure"


class ProviderError(Exception):
    """A generation provider did not produce an answer."""

    code = "provider-error"

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class CredentialMissingError(ProviderError):
    code = CREDENTIAL_MISSING


class UpstreamHTTPError(ProviderError):
    code = UPSTREAM_HTTP_ERROR

    def __init__(self, provider: str, status: int, detail: str = "") -> None:
        super().__init__(provider, f"HTTP {status} {detail[:200]}".strip())
        self.status = status


class ProviderTimeoutError(ProviderError):
    code = NETWORK_TIMEOUT


class ProviderNetworkError(ProviderError):
    code = NETWORK_TIMEOUT


class MalformedResponseError(ProviderError):
    code = MALFORMED_RESPONSE


class EnrichmentError(Exception):
    """Search or scrape failed; the request continues without that enrichment."""

    code = ENRICHMENT_FAILURE
