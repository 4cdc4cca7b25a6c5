# Client for Google Gemini (generateContent REST endpoint).
# Same interface as the other clients: generate(bundle, params) -> (text, meta).
# generate_stream uses streamGenerateContent with alt=sse and forwards each text part.

from typing import Any, Callable, Dict, Optional, Tuple

import requests

from study_ai.errors import CredentialMissingError, MalformedResponseError
from study_ai.settings import is_configured
from ..types import ModelParams, PromptBundle, ProviderCapabilities
from ._http import post_json, stream_sse

GEMINI_HOST = "https://generativelanguage.googleapis.com/v1beta"


class GeminiClient:
    name = "gemini"
    capabilities = ProviderCapabilities(
        supports_image=True,
        supports_system_role=True,
        supports_history_turns=False,
    )

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
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

    def _payload(self, bundle: PromptBundle, params: ModelParams) -> Dict[str, Any]:
        if not self.configured:
            raise CredentialMissingError(self.name, "Google AI API key not configured")

        parts = [{"text": bundle.user}]
        if bundle.image is not None:
            parts.append({"inline_data": {"mime_type": bundle.image.mime_type, "data": bundle.image.data}})
        payload: Dict[str, Any] = {
            "contents": [{"role": "user", "parts": parts}],
            "generationConfig": {
                "temperature": float(params.temperature if params.temperature is not None else 0.3),
                "maxOutputTokens": int(params.max_tokens or 1000),
            },
        }
        if bundle.system:
            payload["systemInstruction"] = {"parts": [{"text": bundle.system}]}
        return payload

    def generate(self, bundle: PromptBundle, params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        payload = self._payload(bundle, params)
        data = post_json(
            self.name,
            f"{GEMINI_HOST}/models/{self.model}:generateContent",
            payload,
            timeout=params.timeout or self.timeout,
            params={"key": self.api_key},
            session=self.session,
        )
        text = self._extract_text(data)
        return text, {"engine": "gemini", "model": self.model}

    def generate_stream(
        self, bundle: PromptBundle, params: ModelParams, on_chunk: Callable[[str], None]
    ) -> Tuple[str, Dict[str, Any]]:
        payload = self._payload(bundle, params)
        pieces = []
        events = stream_sse(
            self.name,
            f"{GEMINI_HOST}/models/{self.model}:streamGenerateContent",
            payload,
            timeout=params.timeout or self.timeout,
            params={"alt": "sse", "key": self.api_key},
            session=self.session,
        )
        for event in events:
            for part in self._parts(event):
                text = part.get("text") if isinstance(part, dict) else None
                if text:
                    pieces.append(text)
                    on_chunk(text)
        answer = "".join(pieces).strip()
        if not answer:
            raise MalformedResponseError(self.name, "stream ended without any text")
        return answer, {"engine": "gemini", "model": self.model}

    @staticmethod
    def _parts(event: Dict[str, Any]):
        try:
            return event["candidates"][0]["content"]["parts"] or []
        except (KeyError, IndexError, TypeError):
            # usage/metadata-only events carry no candidates
            return []

    def _extract_text(self, data: Dict[str, Any]) -> str:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise MalformedResponseError(self.name, "no candidates in response")
        text = "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()
        if not text:
            raise MalformedResponseError(self.name, "empty answer")
        return text
