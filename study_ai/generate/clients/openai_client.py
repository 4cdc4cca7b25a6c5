# Client for OpenAI Chat Completions API.
# It follows the same interface as the REST clients; generate_stream uses stream=True.

from typing import Any, Callable, Dict, List, Optional, Tuple

import openai
from openai import OpenAI

from study_ai.errors import (
    CredentialMissingError,
    MalformedResponseError,
    ProviderNetworkError,
    ProviderTimeoutError,
    UpstreamHTTPError,
)
from study_ai.settings import is_configured
from ..types import ModelParams, PromptBundle, ProviderCapabilities


class OpenAIClient:
    name = "openai"
    capabilities = ProviderCapabilities(
        supports_image=True,
        supports_system_role=True,
        supports_history_turns=False,
    )

    def __init__(self, api_key: Optional[str], model: str = "gpt-4o-mini", timeout: float = 30.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[OpenAI] = None

    @property
    def configured(self) -> bool:
        return is_configured(self.api_key)

    def _get_client(self) -> OpenAI:
        # OpenAI() refuses to construct without a key, so build it on first use
        if self._client is None:
            self._client = OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def _messages(self, bundle: PromptBundle) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if bundle.system:
            messages.append({"role": "system", "content": bundle.system})
        if bundle.image is not None:
            data_url = f"data:{bundle.image.mime_type};base64,{bundle.image.data}"
            messages.append({
                "role": "user",
                "content": [
                    {"type": "text", "text": bundle.user},
                    {"type": "image_url", "image_url": {"url": data_url, "detail": "high"}},
                ],
            })
        else:
            messages.append({"role": "user", "content": bundle.user})
        return messages

    def _create(self, bundle: PromptBundle, params: ModelParams, **extra):
        if not self.configured:
            raise CredentialMissingError(self.name, "OpenAI API key not configured")
        return self._get_client().chat.completions.create(
            model=self.model,
            messages=self._messages(bundle),
            temperature=params.temperature if params.temperature is not None else 0.3,
            max_tokens=params.max_tokens or 1000,
            timeout=params.timeout or self.timeout,
            **extra,
        )

    def _mapped(self, e: Exception) -> Exception:
        if isinstance(e, openai.APITimeoutError):
            return ProviderTimeoutError(self.name, "request timed out")
        if isinstance(e, openai.APIConnectionError):
            return ProviderNetworkError(self.name, "connection failed")
        return UpstreamHTTPError(self.name, e.status_code, str(e.message))

    def generate(self, bundle: PromptBundle, params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        try:
            resp = self._create(bundle, params)
        except (openai.APIConnectionError, openai.APIStatusError) as e:
            raise self._mapped(e) from e

        if not resp.choices:
            raise MalformedResponseError(self.name, "no choices in response")
        text = (resp.choices[0].message.content or "").strip()
        if not text:
            raise MalformedResponseError(self.name, "empty answer")
        return text, {"engine": "openai", "model": self.model}

    def generate_stream(
        self, bundle: PromptBundle, params: ModelParams, on_chunk: Callable[[str], None]
    ) -> Tuple[str, Dict[str, Any]]:
        pieces = []
        try:
            for chunk in self._create(bundle, params, stream=True):
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    pieces.append(text)
                    on_chunk(text)
        except (openai.APIConnectionError, openai.APIStatusError) as e:
            raise self._mapped(e) from e

        answer = "".join(pieces).strip()
        if not answer:
            raise MalformedResponseError(self.name, "stream ended without any text")
        return answer, {"engine": "openai", "model": self.model}
