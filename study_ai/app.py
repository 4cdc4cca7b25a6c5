# ============================================================
# Study AI FastAPI App
# ------------------------------------------------------------
# Thin HTTP surface over ProviderFallbackOrchestrator:
#   - /chat     answer a question (search + scraping enrichment)
#   - /chat/stream same answer as newline-delimited JSON events
#   - /analyze  in-depth explanation
#   - /providers configured provider order
# The orchestrator never raises, so valid requests always get 200.
# ============================================================

import json
import logging
import queue
import threading
from typing import Any, Dict, Iterator, List, Optional

from fastapi import FastAPI
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from study_ai import __version__
from study_ai.generate import (
    FileContext,
    GenerationFlags,
    GenerationRequest,
    GenerationResult,
    ImageAttachment,
    LearningProfile,
    Message,
    Personalization,
    ProviderFallbackOrchestrator,
)
from study_ai.log import configure_logging
from study_ai.settings import settings

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

orchestrator = ProviderFallbackOrchestrator.from_settings(settings)

# ------------------------------------------------------------
# 🚀 FastAPI init
# ------------------------------------------------------------
app = FastAPI(title=f"{settings.app_name} API", version=__version__)

# ------------------------------------------------------------
# 📦 Pydantic models
# ------------------------------------------------------------
class ChatTurn(BaseModel):
    role: str
    content: str

class FilePayload(BaseModel):
    file_name: str
    file_type: str
    file_content: Optional[str] = None

class ImagePayload(BaseModel):
    data: str
    mime_type: str = "image/jpeg"

class LearningProfilePayload(BaseModel):
    major: Optional[str] = None
    academic_level: Optional[str] = None
    learning_style: Optional[str] = None
    explanation_depth: Optional[str] = None
    goals: Optional[str] = None

class ChatRequest(BaseModel):
    question: str = Field(..., min_length=1)
    context: str = ""
    history: Optional[List[ChatTurn]] = None
    file: Optional[FilePayload] = None
    image: Optional[ImagePayload] = None
    is_search_request: bool = False
    thinking_mode: bool = False
    user_name: Optional[str] = None
    learning_profile: Optional[LearningProfilePayload] = None
    response_style: Optional[str] = None

class SourcePayload(BaseModel):
    title: str
    url: str
    snippet: str

class ChatPayload(BaseModel):
    answer: str
    provider: str
    engine: Optional[str] = None
    sources: List[SourcePayload] = []
    is_search_request: bool = False
    meta: Dict[str, Any] = {}


def to_generation_request(req: ChatRequest) -> GenerationRequest:
    profile = LearningProfile(**req.learning_profile.model_dump()) if req.learning_profile else None
    return GenerationRequest(
        question=req.question,
        context=req.context,
        conversation_history=tuple(Message(**h.model_dump()) for h in (req.history or [])),
        file_context=FileContext(**req.file.model_dump()) if req.file else None,
        image=ImageAttachment(**req.image.model_dump()) if req.image else None,
        flags=GenerationFlags(is_search_request=req.is_search_request, thinking_mode=req.thinking_mode),
        personalization=Personalization(
            user_name=req.user_name,
            learning_profile=profile,
            response_style=req.response_style,
        ),
    )


def to_payload(result: GenerationResult) -> ChatPayload:
    return ChatPayload(
        answer=result.answer,
        provider=result.provider.value,
        engine=result.engine,
        sources=[SourcePayload(title=s.title, url=s.url, snippet=s.snippet) for s in (result.sources or [])],
        is_search_request=result.is_search_request,
        meta=result.meta,
    )

def stream_events(request: GenerationRequest) -> Iterator[str]:
    """Run generate_stream on a worker thread and relay its callbacks as NDJSON lines.

    Events: {"type": "content"} per chunk, {"type": "restart"} when a provider
    failed mid-answer (drop the partial text), then one {"type": "done"} with the
    full ChatPayload.
    """
    events: "queue.Queue[Optional[dict]]" = queue.Queue()

    def run():
        try:
            result = orchestrator.generate_stream(
                request,
                on_chunk=lambda text: events.put({"type": "content", "content": text}),
                on_restart=lambda provider_id: events.put({"type": "restart", "provider": provider_id}),
            )
            events.put({"type": "done", **to_payload(result).model_dump()})
        finally:
            events.put(None)

    threading.Thread(target=run, daemon=True).start()
    while True:
        event = events.get()
        if event is None:
            break
        yield json.dumps(event) + "\n"

# ------------------------------------------------------------
# 💬 Chat routes
# ------------------------------------------------------------
@app.post("/chat", response_model=ChatPayload)
def chat(req: ChatRequest):
    result = orchestrator.generate(to_generation_request(req))
    return to_payload(result)

@app.post("/chat/stream")
def chat_stream(req: ChatRequest):
    return StreamingResponse(stream_events(to_generation_request(req)), media_type="application/x-ndjson")

@app.post("/analyze", response_model=ChatPayload)
def analyze(req: ChatRequest):
    result = orchestrator.analyze_in_depth(to_generation_request(req))
    return to_payload(result)

# ------------------------------------------------------------
# 🤖 Provider discovery
# ------------------------------------------------------------
@app.get("/providers")
def list_providers():
    return {
        "preference": settings.AI_PROVIDER_PREFERENCE,
        "providers": orchestrator.provider_status(),
        "search_configured": orchestrator.search_client is not None and orchestrator.search_client.configured,
    }

# ------------------------------------------------------------
# 🧭 Health checks
# ------------------------------------------------------------
@app.get("/healthz")
def healthz():
    return {
        "ok": True,
        "env": settings.ENV,
        "debug": settings.DEBUG,
        "app": settings.app_name,
    }

@app.get("/health")
def health():
    return {"status": "ok", "env": settings.ENV}

@app.get("/")
def hello():
    return {"message": f"{settings.app_name} service running."}
