# Dummy model client for local dev and testing without API calls.

from typing import Any, Callable, Dict, Tuple

from ..types import ModelParams, PromptBundle, ProviderCapabilities


class EchoDevClient:
    name = "echo"
    capabilities = ProviderCapabilities(supports_image=False, supports_system_role=True)

    def __init__(self):
        self.model = "echo-dev"
        self.calls = 0

    def generate(self, bundle: PromptBundle, params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        self.calls += 1
        text = f"[ECHO RESPONSE]\n{bundle.user or '(no user input)'}"
        meta = {"engine": "echo", "model": "echo-dev", "temp": params.temperature, "max_tokens": params.max_tokens}
        return text, meta

    def generate_stream(
        self, bundle: PromptBundle, params: ModelParams, on_chunk: Callable[[str], None]
    ) -> Tuple[str, Dict[str, Any]]:
        text, meta = self.generate(bundle, params)
        for line in text.splitlines(keepends=True):
            on_chunk(line)
        return text, meta
