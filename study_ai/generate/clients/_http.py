# Shared POST helpers for the REST clients (Gemini, Claude): plain JSON and SSE streams.
# Maps requests failures onto the provider error taxonomy.

import json
from typing import Any, Dict, Iterator, Optional

import requests

from study_ai.errors import (
    MalformedResponseError,
    ProviderNetworkError,
    ProviderTimeoutError,
    UpstreamHTTPError,
)


def post_json(
    provider: str,
    url: str,
    payload: Dict[str, Any],
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
) -> Dict[str, Any]:
    http = session or requests
    try:
        resp = http.post(url, json=payload, headers=headers, params=params, timeout=timeout)
    except requests.Timeout as e:
        raise ProviderTimeoutError(provider, f"timed out after {timeout}s") from e
    except requests.RequestException as e:
        raise ProviderNetworkError(provider, f"request failed: {e.__class__.__name__}") from e

    if not resp.ok:
        raise UpstreamHTTPError(provider, resp.status_code, resp.text)
    try:
        data = resp.json()
    except ValueError as e:
        raise MalformedResponseError(provider, "response was not JSON") from e
    if not isinstance(data, dict):
        raise MalformedResponseError(provider, "unexpected response shape")
    if data.get("error"):
        err = data["error"]
        msg = err.get("message") if isinstance(err, dict) else str(err)
        raise MalformedResponseError(provider, f"API error: {msg}")
    return data


def stream_sse(
    provider: str,
    url: str,
    payload: Dict[str, Any],
    timeout: float,
    headers: Optional[Dict[str, str]] = None,
    params: Optional[Dict[str, str]] = None,
    session: Optional[requests.Session] = None,
) -> Iterator[Dict[str, Any]]:
    """POST with stream=True and yield each server-sent `data:` event as a dict."""
    http = session or requests
    try:
        resp = http.post(url, json=payload, headers=headers, params=params, timeout=timeout, stream=True)
    except requests.Timeout as e:
        raise ProviderTimeoutError(provider, f"timed out after {timeout}s") from e
    except requests.RequestException as e:
        raise ProviderNetworkError(provider, f"request failed: {e.__class__.__name__}") from e

    try:
        if not resp.ok:
            raise UpstreamHTTPError(provider, resp.status_code, resp.text)
        for line in resp.iter_lines():
            if isinstance(line, bytes):
                line = line.decode("utf-8", errors="replace")
            if not line or not line.startswith("data:"):
                continue
            raw = line[len("data:"):].strip()
            if not raw or raw == "[DONE]":
                continue
            try:
                event = json.loads(raw)
            except ValueError as e:
                raise MalformedResponseError(provider, "stream event was not JSON") from e
            if isinstance(event, dict) and event.get("error"):
                err = event["error"]
                msg = err.get("message") if isinstance(err, dict) else str(err)
                raise MalformedResponseError(provider, f"API error: {msg}")
            if isinstance(event, dict):
                yield event
    except requests.Timeout as e:
        raise ProviderTimeoutError(provider, "stream stalled") from e
    except requests.RequestException as e:
        raise ProviderNetworkError(provider, f"stream broke off: {e.__class__.__name__}") from e
    finally:
        resp.close()
