from __future__ import annotations

import asyncio

import aiohttp
import pytest

from helpers import FakeResponse, FakeSessionFactory, gemini_body, sse_line
from models.generation import ModelChoice
from services.llm_service import (
    DEFAULT_MODEL_MAP,
    NO_CONTENT_ERROR,
    LLMService,
    fallback_script_name,
    resolve_model,
)
from services.response_splitter import HELPER_MARKER
from services.static_context import StaticContext


def make_service(app_config, responses, context=None) -> tuple[LLMService, FakeSessionFactory]:
    factory = FakeSessionFactory(responses)
    return LLMService(app_config, context, session_factory=factory), factory


def test_model_mapping_covers_every_choice():
    for choice in ModelChoice:
        assert resolve_model(choice.value) == DEFAULT_MODEL_MAP[choice.value]


@pytest.mark.parametrize("model_id", ["", None, "gpt-4", "gemini-ultra-preview", "GEMINI-FLASH"])
def test_unknown_model_falls_back_to_default(model_id):
    assert resolve_model(model_id) == "gemini-2.5-pro"


def test_model_map_can_be_overridden_from_config(app_config):
    app_config["gemini"]["modelMap"] = {"gemini-flash": "gemini-2.5-flash-preview-05-20"}
    service = LLMService(app_config)

    assert service.resolve_model("gemini-flash") == "gemini-2.5-flash-preview-05-20"
    assert service.resolve_model("gemini-pro") == DEFAULT_MODEL_MAP["gemini-pro"]


def test_generate_splits_code_and_explanation(app_config, mock_api_key):
    raw = "```js\nfunction send(){}\n``` \nThis sends an email."
    service, factory = make_service(app_config, [FakeResponse(200, gemini_body(raw))])

    result = asyncio.run(service.generate("send an email", mock_api_key, "gemini-flash", False, False))

    assert result.success is True
    assert result.code == "function send(){}"
    assert result.explanation == "This sends an email."
    assert result.raw_content == raw
    assert result.response_time_ms >= 0

    method, url, payload = factory.calls[0]
    assert method == "POST"
    assert "/models/gemini-1.5-flash:generateContent" in url
    parts = payload["contents"][0]["parts"]
    assert len(parts) == 2
    assert parts[1] == {"text": "send an email"}
    assert "expert Google Apps Script developer" in parts[0]["text"]
    assert payload["generationConfig"] == {"temperature": 0.7, "topK": 40, "topP": 0.95, "maxOutputTokens": 8192}


def test_generate_reports_status_and_provider_message(app_config, mock_api_key):
    service, _ = make_service(app_config, [FakeResponse(429, {"error": {"message": "quota exceeded"}})])

    result = asyncio.run(service.generate("send an email", mock_api_key))

    assert result.success is False
    assert "429" in result.error
    assert "quota exceeded" in result.error
    assert result.code is None
    assert result.explanation is None
    assert result.response_time_ms >= 0


def test_generate_with_non_json_error_body(app_config, mock_api_key):
    service, _ = make_service(app_config, [FakeResponse(502, "Bad Gateway")])

    result = asyncio.run(service.generate("x", mock_api_key))

    assert result.error == "API error (502): Bad Gateway"


@pytest.mark.parametrize(
    "body, expected",
    [
        ({"error": "quota exceeded"}, "API error (429): quota exceeded"),
        ({"error": None}, "API error (429): Unknown error"),
        ({"error": ["rate", "limited"]}, "API error (429): Unknown error"),
        ([{"error": {"message": "batched"}}], "API error (429): Unknown error"),
    ],
)
def test_generate_with_unusual_error_shapes(app_config, mock_api_key, body, expected):
    service, _ = make_service(app_config, [FakeResponse(429, body)])

    result = asyncio.run(service.generate("x", mock_api_key))

    assert result.success is False
    assert result.error == expected


@pytest.mark.parametrize(
    "body",
    [
        {"candidates": None},
        {"candidates": [None]},
        {"candidates": [{"content": None}]},
        {"candidates": [{"content": {"parts": None}}]},
        {"candidates": [{"content": {"parts": ["plain string"]}}]},
        {"candidates": [{"content": {"parts": [{"text": 42}]}}]},
        ["not", "an", "object"],
    ],
)
def test_generate_with_malformed_candidates_has_no_content(app_config, mock_api_key, body):
    service, _ = make_service(app_config, [FakeResponse(200, body)])

    result = asyncio.run(service.generate("x", mock_api_key))

    assert result.success is False
    assert result.error == NO_CONTENT_ERROR


def test_generate_without_text_is_a_distinct_error(app_config, mock_api_key):
    service, _ = make_service(app_config, [FakeResponse(200, {"candidates": []})])

    result = asyncio.run(service.generate("x", mock_api_key))

    assert result.success is False
    assert result.error == NO_CONTENT_ERROR


def test_generate_converts_network_errors(app_config, mock_api_key):
    service, _ = make_service(
        app_config, [FakeResponse(raises=aiohttp.ClientConnectionError("connection refused"))]
    )

    result = asyncio.run(service.generate("x", mock_api_key))

    assert result.success is False
    assert result.error == "connection refused"


def test_generate_never_retries(app_config, mock_api_key):
    service, factory = make_service(app_config, [FakeResponse(503, {"error": {"message": "overloaded"}})])

    result = asyncio.run(service.generate("x", mock_api_key))

    assert result.success is False
    assert len(factory.calls) == 1


def test_generate_without_key_fails_without_request(app_config):
    service, factory = make_service(app_config, [])

    result = asyncio.run(service.generate("x", None))

    assert result.success is False
    assert "API key" in result.error
    assert factory.calls == []


def test_generate_appends_helper_from_context(app_config, mock_api_key, loaded_context):
    raw = "```js\nfunction main() {}\n```\nUses the helper."
    service, factory = make_service(app_config, [FakeResponse(200, gemini_body(raw))], loaded_context)

    result = asyncio.run(service.generate("x", mock_api_key, include_helper=True, include_sample_code=False))

    assert HELPER_MARKER in result.code
    assert loaded_context.helper_source in result.code
    assert loaded_context.helper_docs in factory.calls[0][2]["contents"][0]["parts"][0]["text"]


def test_generate_lazily_loads_context_and_degrades_on_failure(app_config, mock_api_key):
    def handler(method, url, payload):
        if method == "GET":
            return FakeResponse(404, "missing")
        return FakeResponse(200, gemini_body("```js\nfunction main() {}\n```"))

    factory = FakeSessionFactory(handler)
    context = StaticContext(
        "http://context.test",
        {"helperSource": "h.gs", "helperDocs": "h.md", "sampleCode": "s.md"},
        session_factory=factory,
    )
    service = LLMService(app_config, context, session_factory=factory)

    result = asyncio.run(service.generate("x", mock_api_key))

    assert result.success is True
    assert result.code == "function main() {}"
    assert context.loaded is False
    assert [call[0] for call in factory.calls].count("GET") >= 1
    assert factory.calls[-1][0] == "POST"


def test_verify_key_requires_models(app_config, mock_api_key):
    ok, factory = make_service(app_config, [FakeResponse(200, {"models": [{"name": "models/gemini-2.5-pro"}]})])
    empty, _ = make_service(app_config, [FakeResponse(200, {"models": []})])
    denied, _ = make_service(app_config, [FakeResponse(400, {"error": {"message": "API key not valid"}})])
    offline, _ = make_service(app_config, [FakeResponse(raises=aiohttp.ClientConnectionError("down"))])

    assert asyncio.run(ok.verify_key(mock_api_key)) is True
    assert factory.calls[0][0] == "GET"
    assert factory.calls[0][1].endswith(f"/models?key={mock_api_key}")
    assert asyncio.run(empty.verify_key(mock_api_key)) is False
    assert asyncio.run(denied.verify_key(mock_api_key)) is False
    assert asyncio.run(offline.verify_key(mock_api_key)) is False
    assert asyncio.run(ok.verify_key("")) is False


async def _collect(stream):
    return [chunk async for chunk in stream]


def test_stream_yields_deltas_then_final_chunk(app_config, mock_api_key):
    lines = [sse_line("```js\n"), "\n", sse_line("function a() {}\n```"), sse_line(" Done.")]
    service, factory = make_service(app_config, [FakeResponse(200, lines=lines)])

    stream = service.generate_stream("x", mock_api_key, include_helper=False, include_sample_code=False)
    chunks = asyncio.run(_collect(stream))

    assert [c.text_delta for c in chunks[:-1]] == ["```js\n", "function a() {}\n```", " Done."]
    assert chunks[-1].is_final is True
    assert chunks[-1].error is None
    assert sum(1 for c in chunks if c.is_final) == 1
    assert stream.text == "```js\nfunction a() {}\n``` Done."
    assert ":streamGenerateContent?alt=sse" in factory.calls[0][1]


def test_stream_skips_unparseable_fragments(app_config, mock_api_key):
    lines = [sse_line("one"), "data: {not json", sse_line("two")]
    service, _ = make_service(app_config, [FakeResponse(200, lines=lines)])

    chunks = asyncio.run(_collect(service.generate_stream("x", mock_api_key)))

    assert [c.text_delta for c in chunks if not c.is_final] == ["one", "two"]
    assert chunks[-1].error is None


def test_stream_survives_invalid_utf8_and_odd_payloads(app_config, mock_api_key):
    lines = [
        sse_line("one"),
        b"data: \xff\xfe garbage\n",
        'data: {"candidates": null}\n',
        "data: [1, 2]\n",
        sse_line("two"),
    ]
    service, _ = make_service(app_config, [FakeResponse(200, lines=lines)])

    chunks = asyncio.run(_collect(service.generate_stream("x", mock_api_key)))

    assert [c.text_delta for c in chunks if not c.is_final] == ["one", "two"]
    assert chunks[-1].is_final is True
    assert chunks[-1].error is None


def test_stream_error_string_ends_with_error_chunk(app_config, mock_api_key):
    lines = [sse_line("one"), 'data: {"error": "backend overloaded"}\n', sse_line("never")]
    service, _ = make_service(app_config, [FakeResponse(200, lines=lines)])

    chunks = asyncio.run(_collect(service.generate_stream("x", mock_api_key)))

    assert [c.text_delta for c in chunks if not c.is_final] == ["one"]
    assert chunks[-1].is_final is True
    assert chunks[-1].error == "API error: backend overloaded"


def test_stream_http_error_ends_with_error_chunk(app_config, mock_api_key):
    service, _ = make_service(app_config, [FakeResponse(429, {"error": {"message": "quota exceeded"}})])

    chunks = asyncio.run(_collect(service.generate_stream("x", mock_api_key)))

    assert len(chunks) == 1
    assert chunks[0].is_final is True
    assert "429" in chunks[0].error and "quota exceeded" in chunks[0].error


def test_stream_is_lazy_and_not_restartable(app_config, mock_api_key):
    service, factory = make_service(app_config, [FakeResponse(200, lines=[sse_line("hi")])])

    stream = service.generate_stream("x", mock_api_key)
    assert factory.calls == []

    asyncio.run(_collect(stream))
    assert stream.finished is True
    with pytest.raises(RuntimeError):
        stream.__aiter__()


def test_suggest_script_name_sanitizes_model_output(app_config, mock_api_key):
    service, factory = make_service(app_config, [FakeResponse(200, gemini_body('"Invoice Mailer"\n'))])

    name = asyncio.run(service.suggest_script_name("email invoices to clients", mock_api_key))

    assert name == "InvoiceMailer"
    assert "gemini-2.0-flash" in factory.calls[0][1]


def test_suggest_script_name_falls_back_on_error(app_config, mock_api_key):
    service, _ = make_service(app_config, [FakeResponse(500, "boom")])

    name = asyncio.run(service.suggest_script_name("email invoices to every client", mock_api_key))

    assert name == "EmailInvoicesToScript"


def test_fallback_script_name_edge_cases():
    assert fallback_script_name("") == "VibeScript"
    assert fallback_script_name("clean up DATA!") == "CleanUpDataScript"
