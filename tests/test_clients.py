# ===============================================
# tests/test_clients.py
# Provider adapters: request shape, answer parsing
# and mapping of failures onto the error taxonomy.
# ===============================================

from types import SimpleNamespace

import httpx
import openai
import pytest
import requests

from study_ai.errors import (
    CredentialMissingError,
    MalformedResponseError,
    ProviderNetworkError,
    ProviderTimeoutError,
    UpstreamHTTPError,
)
from study_ai.generate.clients import (
    ClaudeClient,
    EchoDevClient,
    GeminiClient,
    OpenAIClient,
    build_providers,
)
from study_ai.generate.prompts import build_prompt_bundle
from study_ai.generate.types import GenerationRequest, ImageAttachment, Message, ModelParams, PromptBundle
from study_ai.settings import Settings
from tests.fakes import FakeResponse, FakeSession, sse, timeout_session

PARAMS = ModelParams(temperature=0.2, max_tokens=256, timeout=7)
IMAGE = ImageAttachment(data="aGVsbG8=", mime_type="image/png")
GEMINI_OK = {"candidates": [{"content": {"parts": [{"text": "Photosynthesis "}, {"text": "makes sugar."}]}}]}


# -------------------------
# Gemini
# -------------------------
def test_gemini_request_and_answer():
    session = FakeSession(FakeResponse(200, GEMINI_OK))
    client = GeminiClient("real-key", model="gemini-test", session=session)

    text, meta = client.generate(PromptBundle(system="be nice", user="what is it?", image=IMAGE), PARAMS)

    assert text == "Photosynthesis makes sugar."
    assert meta == {"engine": "gemini", "model": "gemini-test"}
    call = session.calls[0]
    assert call["url"].endswith("/models/gemini-test:generateContent")
    assert call["params"] == {"key": "real-key"}
    assert call["timeout"] == 7
    body = call["json"]
    assert body["systemInstruction"]["parts"][0]["text"] == "be nice"
    assert body["contents"][0]["parts"][1]["inline_data"] == {"mime_type": "image/png", "data": "aGVsbG8="}
    assert body["generationConfig"] == {"temperature": 0.2, "maxOutputTokens": 256}


@pytest.mark.parametrize("key", [None, "", "  ", "demo-key", "your_google_ai_key_here"])
def test_gemini_missing_key(key):
    session = FakeSession(FakeResponse(200, GEMINI_OK))
    with pytest.raises(CredentialMissingError):
        GeminiClient(key, session=session).generate(PromptBundle(system="", user="q"), PARAMS)
    assert session.calls == []


def test_gemini_http_error():
    session = FakeSession(FakeResponse(503, text="overloaded"))
    with pytest.raises(UpstreamHTTPError) as exc:
        GeminiClient("k-1", session=session).generate(PromptBundle(system="", user="q"), PARAMS)
    assert exc.value.status == 503
    assert exc.value.code == "upstream-http-error"


def test_gemini_timeout():
    with pytest.raises(ProviderTimeoutError):
        GeminiClient("k-1", session=timeout_session()).generate(PromptBundle(system="", user="q"), PARAMS)


@pytest.mark.parametrize("payload", [
    {"error": {"message": "API key not valid"}},
    {"candidates": []},
    {"candidates": [{"content": {"parts": [{"text": "  "}]}}]},
])
def test_gemini_malformed(payload):
    with pytest.raises(MalformedResponseError):
        GeminiClient("k-1", session=FakeSession(FakeResponse(200, payload))).generate(
            PromptBundle(system="", user="q"), PARAMS
        )


def test_gemini_stream_forwards_parts():
    lines = sse(
        {"candidates": [{"content": {"parts": [{"text": "Photo"}]}}]},
        {"candidates": [{"content": {"parts": [{"text": "synthesis."}]}}]},
        {"usageMetadata": {"totalTokenCount": 12}},
    )
    session = FakeSession(FakeResponse(200, lines=lines))
    chunks = []

    text, meta = GeminiClient("real-key", model="gemini-test", session=session).generate_stream(
        PromptBundle(system="", user="q"), PARAMS, chunks.append
    )

    assert chunks == ["Photo", "synthesis."]
    assert text == "Photosynthesis."
    call = session.calls[0]
    assert call["url"].endswith("/models/gemini-test:streamGenerateContent")
    assert call["params"] == {"alt": "sse", "key": "real-key"}
    assert call["stream"] is True
    assert session.response.closed


def test_gemini_stream_http_error():
    session = FakeSession(FakeResponse(429, text="quota"))
    with pytest.raises(UpstreamHTTPError):
        GeminiClient("k-1", session=session).generate_stream(PromptBundle(system="", user="q"), PARAMS, print)


def test_gemini_stream_broken_midway():
    lines = [*sse({"candidates": [{"content": {"parts": [{"text": "Half"}]}}]}), requests.ConnectionError("reset")]
    chunks = []
    with pytest.raises(ProviderNetworkError):
        GeminiClient("k-1", session=FakeSession(FakeResponse(200, lines=lines))).generate_stream(
            PromptBundle(system="", user="q"), PARAMS, chunks.append
        )
    assert chunks == ["Half"]


# -------------------------
# Claude
# -------------------------
def test_claude_sends_history_as_turns():
    session = FakeSession(FakeResponse(200, {"content": [{"type": "text", "text": "Sure."}]}))
    client = ClaudeClient("sk-ant-real", model="claude-test", session=session)
    bundle = PromptBundle(
        system="sys",
        user="and now?",
        history=(Message("user", "hi"), Message("assistant", "hello")),
    )

    text, meta = client.generate(bundle, PARAMS)

    assert text == "Sure."
    assert meta["engine"] == "claude"
    call = session.calls[0]
    assert call["headers"]["x-api-key"] == "sk-ant-real"
    assert call["json"]["system"] == "sys"
    assert call["json"]["messages"] == [
        {"role": "user", "content": "hi"},
        {"role": "assistant", "content": "hello"},
        {"role": "user", "content": "and now?"},
    ]


def test_claude_image_block():
    session = FakeSession(FakeResponse(200, {"content": [{"type": "text", "text": "A cat."}]}))
    ClaudeClient("sk-ant-real", session=session).generate(PromptBundle(system="", user="what?", image=IMAGE), PARAMS)
    content = session.calls[0]["json"]["messages"][-1]["content"]
    assert content[0]["source"] == {"type": "base64", "media_type": "image/png", "data": "aGVsbG8="}
    assert content[1] == {"type": "text", "text": "what?"}


def test_claude_turns_built_from_messy_history():
    session = FakeSession(FakeResponse(200, {"content": [{"type": "text", "text": "Sure."}]}))
    client = ClaudeClient("sk-ant-real", session=session)
    req = GenerationRequest(
        question="What is osmosis?",
        conversation_history=(Message("assistant", "Hi there!"), Message("user", "Bio quiz tomorrow.")),
    )

    client.generate(build_prompt_bundle(req, client.capabilities), PARAMS)

    messages = session.calls[0]["json"]["messages"]
    assert [m["role"] for m in messages] == ["user"]
    assert messages[0]["content"].startswith("Bio quiz tomorrow.")


def test_claude_stream_forwards_text_deltas():
    lines = [
        "event: message_start",
        *sse({"type": "message_start", "message": {"id": "m1"}}),
        *sse({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "Osmosis "}}),
        *sse({"type": "ping"}),
        *sse({"type": "content_block_delta", "delta": {"type": "text_delta", "text": "moves water."}}),
        *sse({"type": "message_stop"}),
    ]
    session = FakeSession(FakeResponse(200, lines=lines))
    chunks = []

    text, meta = ClaudeClient("sk-ant-real", session=session).generate_stream(
        PromptBundle(system="s", user="q"), PARAMS, chunks.append
    )

    assert chunks == ["Osmosis ", "moves water."]
    assert text == "Osmosis moves water."
    assert session.calls[0]["json"]["stream"] is True


def test_claude_stream_error_event():
    lines = sse({"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}})
    with pytest.raises(MalformedResponseError, match="Overloaded"):
        ClaudeClient("sk-ant-real", session=FakeSession(FakeResponse(200, lines=lines))).generate_stream(
            PromptBundle(system="", user="q"), PARAMS, print
        )


def test_claude_missing_key():
    with pytest.raises(CredentialMissingError):
        ClaudeClient("your_anthropic_api_key_here").generate(PromptBundle(system="", user="q"), PARAMS)


def test_claude_rate_limited():
    session = FakeSession(FakeResponse(429, text="rate_limit_error"))
    with pytest.raises(UpstreamHTTPError):
        ClaudeClient("sk-ant-real", session=session).generate(PromptBundle(system="", user="q"), PARAMS)


# -------------------------
# OpenAI
# -------------------------
class FakeCompletions:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.reply


def openai_client_with(completions):
    client = OpenAIClient("sk-real", model="gpt-test")
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client


def reply(text):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=text))])


def test_openai_request_and_answer():
    completions = FakeCompletions(reply=reply("  Mitosis splits cells.  "))
    text, meta = openai_client_with(completions).generate(
        PromptBundle(system="sys", user="explain", image=IMAGE), PARAMS
    )

    assert text == "Mitosis splits cells."
    assert meta == {"engine": "openai", "model": "gpt-test"}
    kw = completions.kwargs
    assert kw["model"] == "gpt-test"
    assert kw["max_tokens"] == 256
    assert kw["messages"][0] == {"role": "system", "content": "sys"}
    assert kw["messages"][1]["content"][1]["image_url"]["url"] == "data:image/png;base64,aGVsbG8="


def test_openai_missing_key_never_builds_sdk_client():
    client = OpenAIClient(None)
    with pytest.raises(CredentialMissingError):
        client.generate(PromptBundle(system="", user="q"), PARAMS)
    assert client._client is None


def test_openai_error_mapping():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    with pytest.raises(ProviderTimeoutError):
        openai_client_with(FakeCompletions(error=openai.APITimeoutError(request=request))).generate(
            PromptBundle(system="", user="q"), PARAMS
        )
    with pytest.raises(ProviderNetworkError):
        openai_client_with(FakeCompletions(error=openai.APIConnectionError(request=request))).generate(
            PromptBundle(system="", user="q"), PARAMS
        )
    rate_limited = openai.RateLimitError(
        "quota exceeded", response=httpx.Response(429, request=request), body=None
    )
    with pytest.raises(UpstreamHTTPError) as exc:
        openai_client_with(FakeCompletions(error=rate_limited)).generate(PromptBundle(system="", user="q"), PARAMS)
    assert exc.value.status == 429


def chunk(text):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


def test_openai_stream():
    completions = FakeCompletions(reply=iter([chunk("Mito"), chunk(None), SimpleNamespace(choices=[]), chunk("sis.")]))
    chunks = []

    text, meta = openai_client_with(completions).generate_stream(
        PromptBundle(system="", user="q"), PARAMS, chunks.append
    )

    assert chunks == ["Mito", "sis."]
    assert text == "Mitosis."
    assert completions.kwargs["stream"] is True


def test_openai_stream_broken_midway():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    def broken():
        yield chunk("Half")
        raise openai.APIConnectionError(request=request)

    with pytest.raises(ProviderNetworkError):
        openai_client_with(FakeCompletions(reply=broken())).generate_stream(
            PromptBundle(system="", user="q"), PARAMS, lambda text: None
        )


def test_openai_empty_choices():
    with pytest.raises(MalformedResponseError):
        openai_client_with(FakeCompletions(reply=SimpleNamespace(choices=[]))).generate(
            PromptBundle(system="", user="q"), PARAMS
        )


# -------------------------
# Echo + provider ordering
# -------------------------
def test_echo_client():
    text, meta = EchoDevClient().generate(PromptBundle(system="", user="ping"), ModelParams(temperature=0.1))
    assert text == "[ECHO RESPONSE]\nping"
    assert meta["engine"] == "echo"


def test_echo_client_streams_lines():
    chunks = []
    text, _ = EchoDevClient().generate_stream(PromptBundle(system="", user="ping"), ModelParams(), chunks.append)
    assert "".join(chunks) == text
    assert chunks[0] == "[ECHO RESPONSE]\n"


@pytest.mark.parametrize("preference,expected", [
    ("google", ["gemini", "openai"]),
    ("openai", ["openai", "gemini"]),
    ("claude", ["claude", "gemini"]),
    ("something-else", ["gemini", "openai"]),
])
def test_build_providers_follows_preference(preference, expected):
    s = Settings(_env_file=None, AI_PROVIDER_PREFERENCE=preference, PROVIDER_TIMEOUT=12)
    providers = build_providers(s)
    assert [p.name for p in providers] == expected
    assert all(p.timeout == 12 for p in providers)
