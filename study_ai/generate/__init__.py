# Generate package

# Exposes the orchestrator, the request/result types and the model clients.

from .orchestrator import ProviderFallbackOrchestrator
from .enrichment import RequestEnricher
from .fallback import canned_response
from .types import (
    FileContext,
    GenerationFlags,
    GenerationRequest,
    GenerationResult,
    ImageAttachment,
    LearningProfile,
    Message,
    ModelParams,
    Personalization,
    PromptBundle,
    ProviderCapabilities,
    ProviderTier,
    Source,
)
from .clients.echo_dev_client import EchoDevClient

__all__ = [
    "ProviderFallbackOrchestrator",
    "RequestEnricher",
    "canned_response",
    "GenerationRequest",
    "GenerationResult",
    "GenerationFlags",
    "Personalization",
    "LearningProfile",
    "FileContext",
    "ImageAttachment",
    "Message",
    "ModelParams",
    "PromptBundle",
    "ProviderCapabilities",
    "ProviderTier",
    "Source",
    "EchoDevClient",
]
