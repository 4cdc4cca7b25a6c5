# Model clients plus the provider ordering used by the orchestrator.

from typing import List

from .claude_client import ClaudeClient
from .echo_dev_client import EchoDevClient
from .gemini_client import GeminiClient
from .openai_client import OpenAIClient

# AI_PROVIDER_PREFERENCE -> [primary, secondary]
PROVIDER_ORDERS = {
    "google": ("gemini", "openai"),
    "openai": ("openai", "gemini"),
    "claude": ("claude", "gemini"),
}


def build_client(name: str, s):
    if name == "gemini":
        return GeminiClient(api_key=s.GOOGLE_AI_API_KEY, model=s.GEMINI_MODEL, timeout=s.PROVIDER_TIMEOUT)
    if name == "openai":
        return OpenAIClient(api_key=s.OPENAI_API_KEY, model=s.OPENAI_MODEL, timeout=s.PROVIDER_TIMEOUT)
    if name == "claude":
        return ClaudeClient(api_key=s.ANTHROPIC_API_KEY, model=s.CLAUDE_MODEL, timeout=s.PROVIDER_TIMEOUT)
    raise ValueError(f"Unknown provider: {name}")


def build_providers(s) -> List:
    order = PROVIDER_ORDERS.get(s.AI_PROVIDER_PREFERENCE, PROVIDER_ORDERS["google"])
    return [build_client(name, s) for name in order]


__all__ = [
    "GeminiClient",
    "OpenAIClient",
    "ClaudeClient",
    "EchoDevClient",
    "PROVIDER_ORDERS",
    "build_client",
    "build_providers",
]
