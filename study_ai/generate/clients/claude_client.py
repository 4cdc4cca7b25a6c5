# Client for Anthropic Claude (Messages REST API).
# Takes prior turns as real messages instead of a flattened transcript.
# generate_stream reads the SSE event stream and forwards text deltas.

from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from study_ai.errors import CredentialMissingError, MalformedResponseError
from study_ai.settings import is_configured
from ..types import ModelParams, PromptBundle, ProviderCapabilities
from ._http import post_json, stream_sse

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class ClaudeClient:
    name = "claude"
    capabilities = ProviderCapabilities(
        supports_image=True,
        supports_system_role=True,
        supports_history_turns=True,
    )

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "claude-3-5-sonnet-20241022",
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.session = session

    @property
    def configured(self) -> bool:
        return is_configured(self.api_key)

    def _messages(self, bundle: PromptBundle) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = [{"role": m.role, "content": m.content} for m in bundle.history]
        if bundle.image is not None:
            content: Any = [
                {
                    "type": "image",
                    "source": {"type": "base64", "media_type": bundle.image.mime_type, "data": bundle.image.data},
                },
                {"type": "text", "text": bundle.user},
            ]
        else:
            content = bundle.user
        messages.append({"role": "user", "content": content})
        return messages

    def _payload(self, bundle: PromptBundle, params: ModelParams) -> Dict[str, Any]:
        if not self.configured:
            raise CredentialMissingError(self.name, "Anthropic API key not configured")

        payload: Dict[str, Any] = {
            "model": self.model,
            "max_tokens": int(params.max_tokens or 1000),
            "temperature": float(params.temperature if params.temperature is not None else 0.3),
            "messages": self._messages(bundle),
        }
        if bundle.system:
            payload["system"] = bundle.system
        return payload

    def _headers(self) -> Dict[str, str]:
        return {"x-api-key": self.api_key, "anthropic-version": ANTHROPIC_VERSION}

    def generate(self, bundle: PromptBundle, params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        data = post_json(
            self.name,
            ANTHROPIC_URL,
            self._payload(bundle, params),
            timeout=params.timeout or self.timeout,
            headers=self._headers(),
            session=self.session,
        )
        blocks = data.get("content") or []
        text = "".join(b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text").strip()
        if not text:
            raise MalformedResponseError(self.name, "empty answer")
        return text, {"engine": "claude", "model": self.model}

    def generate_stream(
        self, bundle: PromptBundle, params: ModelParams, on_chunk: Callable[[str], None]
    ) -> Tuple[str, Dict[str, Any]]:
        payload = self._payload(bundle, params)
        payload["stream"] = True
        pieces = []
        events = stream_sse(
            self.name,
            ANTHROPIC_URL,
            payload,
            timeout=params.timeout or self.timeout,
            headers=self._headers(),
            session=self.session,
        )
        for event in events:
            if event.get("type") != "content_block_delta":
                continue
            delta = event.get("delta") or {}
            if delta.get("type") == "text_delta" and delta.get("text"):
                pieces.append(delta["text"])
                on_chunk(delta["text"])
        answer = "".join(pieces).strip()
        if not answer:
            raise MalformedResponseError(self.name, "stream ended without any text")
        return answer, {"engine": "claude", "model": self.model}
