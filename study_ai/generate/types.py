# Typed dataclasses shared across the generate package.
# Request-side types are frozen: a GenerationRequest never changes during a call.

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple


@dataclass(frozen=True)
class Message:
    """Single chat turn: user or assistant."""
    role: str
    content: str


@dataclass(frozen=True)
class FileContext:
    file_name: str
    file_type: str
    file_content: Optional[str] = None


@dataclass(frozen=True)
class ImageAttachment:
    """Base64-encoded image sent inline with the question."""
    data: str
    mime_type: str = "image/jpeg"


@dataclass(frozen=True)
class LearningProfile:
    major: Optional[str] = None
    academic_level: Optional[str] = None
    learning_style: Optional[str] = None
    explanation_depth: Optional[str] = None
    goals: Optional[str] = None


@dataclass(frozen=True)
class Personalization:
    user_name: Optional[str] = None
    learning_profile: Optional[LearningProfile] = None
    response_style: Optional[str] = None  # concise | detailed | conversational | analytical


@dataclass(frozen=True)
class GenerationFlags:
    is_search_request: bool = False
    thinking_mode: bool = False


@dataclass(frozen=True)
class GenerationRequest:
    """Everything the orchestrator needs to answer one question."""
    question: str
    context: str = ""
    conversation_history: Tuple[Message, ...] = ()
    file_context: Optional[FileContext] = None
    image: Optional[ImageAttachment] = None
    flags: GenerationFlags = field(default_factory=GenerationFlags)
    personalization: Personalization = field(default_factory=Personalization)


@dataclass(frozen=True)
class Source:
    title: str
    url: str
    snippet: str


class ProviderTier(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    FALLBACK = "fallback"


@dataclass
class GenerationResult:
    """Final answer handed back to the caller; exactly one per request."""
    answer: str
    provider: ProviderTier
    sources: Optional[List[Source]] = None
    is_search_request: bool = False
    engine: Optional[str] = None
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Enrichment:
    """Extra prompt context gathered before generation: search hits and scraped pages."""
    search_block: str = ""
    sources: List[Source] = field(default_factory=list)
    scraped_block: str = ""
    scraped_urls: List[str] = field(default_factory=list)


@dataclass
class ProviderAttempt:
    provider_id: str
    succeeded: bool
    error_reason: Optional[str] = None


@dataclass
class ModelParams:
    """LLM parameters per request."""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    timeout: Optional[float] = None


@dataclass(frozen=True)
class ProviderCapabilities:
    supports_image: bool = False
    supports_system_role: bool = True
    supports_history_turns: bool = False


@dataclass(frozen=True)
class PromptBundle:
    """Provider-ready prompt. `history` is only filled for providers that take turns."""
    system: str
    user: str
    history: Tuple[Message, ...] = ()
    image: Optional[ImageAttachment] = None


class ModelClient(Protocol):
    name: str
    model: str
    capabilities: ProviderCapabilities

    def generate(self, bundle: PromptBundle, params: ModelParams) -> Tuple[str, Dict[str, Any]]:
        ...


class StreamingModelClient(ModelClient, Protocol):
    """A client that can also forward answer text as it arrives."""

    def generate_stream(
        self, bundle: PromptBundle, params: ModelParams, on_chunk: Callable[[str], None]
    ) -> Tuple[str, Dict[str, Any]]:
        ...
