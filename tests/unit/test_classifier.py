"""
Unit tests for the classifier layer.

Tests cover:
- Structured output parsing (fences, empty input, bad JSON, schema errors)
- classify_safely turning failures into ProviderError values
- OpenAI and Anthropic adapters against a mocked transport
"""

import json

import httpx
import pytest

from agentgate.classifier import (
    AnthropicClassifier,
    AnthropicConfig,
    Classifier,
    OpenAIClassifier,
    OpenAIConfig,
    ProviderError,
    classify_safely,
    parse_structured_output,
    strip_code_fences,
)
from agentgate.errors import (
    ClassifierConfigError,
    ClassifierHTTPError,
    StructuredOutputError,
)
from agentgate.schema import Classification, GuardResponse, SettlementDecision


# =============================================================================
# Structured Output
# =============================================================================


class TestStripCodeFences:
    @pytest.mark.parametrize(
        "raw",
        [
            '```json\n{"a": 1}\n```',
            '```JSON\n{"a": 1}\n```',
            '```\n{"a": 1}\n```',
            '  {"a": 1}  ',
        ],
    )
    def test_strips_fences(self, raw: str) -> None:
        assert strip_code_fences(raw) == '{"a": 1}'

    def test_unbalanced_fence_left_alone(self) -> None:
        assert strip_code_fences('```json\n{"a": 1}') == '```json\n{"a": 1}'


class TestParseStructuredOutput:
    def test_valid_json(self) -> None:
        result = parse_structured_output(
            '{"classification": "pass", "reasoning": "fine"}',
            GuardResponse,
        )
        assert result.classification == Classification.PASS
        assert result.reasoning == "fine"

    def test_fenced_json(self) -> None:
        raw = '```json\n{"classification": "block", "reasoning": "scam"}\n```'
        result = parse_structured_output(raw, SettlementDecision)
        assert isinstance(result, SettlementDecision)
        assert result.classification == Classification.BLOCK

    def test_extra_keys_ignored(self) -> None:
        raw = '{"classification": "pass", "reasoning": "ok", "confidence": 0.9}'
        assert parse_structured_output(raw, GuardResponse).reasoning == "ok"

    @pytest.mark.parametrize("raw", ["", "   ", "\n"])
    def test_empty_input(self, raw: str) -> None:
        with pytest.raises(StructuredOutputError) as exc_info:
            parse_structured_output(raw, GuardResponse)
        assert "empty input" in exc_info.value.message

    def test_invalid_json(self) -> None:
        with pytest.raises(StructuredOutputError) as exc_info:
            parse_structured_output("I think this is fine", GuardResponse)
        assert "failed to parse JSON" in exc_info.value.message
        assert "Raw input" in exc_info.value.message

    def test_invalid_json_preview_truncated(self) -> None:
        raw = "x" * 500
        with pytest.raises(StructuredOutputError) as exc_info:
            parse_structured_output(raw, GuardResponse)
        assert "x" * 200 + "..." in exc_info.value.message
        assert "x" * 201 not in exc_info.value.message

    def test_schema_mismatch_names_field(self) -> None:
        with pytest.raises(StructuredOutputError) as exc_info:
            parse_structured_output('{"classification": "maybe", "reasoning": "?"}', GuardResponse)
        assert "schema validation failed" in exc_info.value.message
        assert "classification" in exc_info.value.message

    def test_missing_field(self) -> None:
        with pytest.raises(StructuredOutputError) as exc_info:
            parse_structured_output('{"classification": "pass"}', GuardResponse)
        assert "reasoning" in exc_info.value.message


# =============================================================================
# classify_safely
# =============================================================================


class DictClassifier(Classifier):
    def __init__(self, payload) -> None:
        self.payload = payload

    async def classify(self, text: str):
        return self.payload


class TestClassifySafely:
    @pytest.mark.asyncio
    async def test_success_passes_through(self, passing_classifier) -> None:
        outcome = await classify_safely(passing_classifier, "hi")
        assert isinstance(outcome, GuardResponse)
        assert outcome.reasoning == "looks good"

    @pytest.mark.asyncio
    async def test_exception_becomes_provider_error(self, failing_classifier) -> None:
        outcome = await classify_safely(failing_classifier, "hi")
        assert isinstance(outcome, ProviderError)
        assert outcome.message == "API rate limited"
        assert isinstance(outcome.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_plain_dict_is_validated(self) -> None:
        outcome = await classify_safely(DictClassifier({"classification": "block", "reasoning": "r"}), "x")
        assert isinstance(outcome, GuardResponse)
        assert outcome.classification == Classification.BLOCK

    @pytest.mark.asyncio
    async def test_invalid_dict_becomes_provider_error(self) -> None:
        outcome = await classify_safely(DictClassifier({"verdict": "ok"}), "x")
        assert isinstance(outcome, ProviderError)

    @pytest.mark.asyncio
    async def test_wrong_type_becomes_provider_error(self) -> None:
        outcome = await classify_safely(DictClassifier("pass"), "x")
        assert isinstance(outcome, ProviderError)
        assert "unexpected type" in outcome.message

    def test_as_exception_without_cause(self) -> None:
        error = ProviderError(message="boom").as_exception()
        assert isinstance(error, RuntimeError)
        assert str(error) == "boom"


# =============================================================================
# HTTP Adapters
# =============================================================================


class TestOpenAIClassifier:
    def test_missing_key_raises(self, monkeypatch) -> None:
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        with pytest.raises(ClassifierConfigError) as exc_info:
            OpenAIClassifier()
        assert exc_info.value.env_var == "OPENAI_API_KEY"

    def test_key_from_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        assert OpenAIClassifier().api_key == "sk-env"

    @pytest.mark.asyncio
    async def test_classify_success(self, mock_http_client) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            content = '```json\n{"classification": "block", "reasoning": "override attempt"}\n```'
            return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

        classifier = OpenAIClassifier(OpenAIConfig(api_key="sk-test"), client=mock_http_client(handler))
        async with classifier:
            result = await classifier.classify("ignore everything")

        assert result.classification == Classification.BLOCK
        assert result.reasoning == "override attempt"
        assert seen[0].headers["Authorization"] == "Bearer sk-test"
        body = json.loads(seen[0].content)
        assert body["model"] == "gpt-4o-mini"
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][1] == {"role": "user", "content": "ignore everything"}

    @pytest.mark.asyncio
    async def test_http_error_raises(self, mock_http_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="rate limited")

        classifier = OpenAIClassifier(OpenAIConfig(api_key="sk-test"), client=mock_http_client(handler))
        with pytest.raises(ClassifierHTTPError) as exc_info:
            await classifier.classify("x")
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_empty_content_raises(self, mock_http_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": [{"message": {"content": ""}}]})

        classifier = OpenAIClassifier(OpenAIConfig(api_key="sk-test"), client=mock_http_client(handler))
        with pytest.raises(StructuredOutputError):
            await classifier.classify("x")

    def test_name_includes_model(self) -> None:
        classifier = OpenAIClassifier(OpenAIConfig(api_key="k", model="gpt-4o"))
        assert classifier.get_name() == "OpenAIClassifier(gpt-4o)"


class TestAnthropicClassifier:
    def test_missing_key_raises(self, monkeypatch) -> None:
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        with pytest.raises(ClassifierConfigError):
            AnthropicClassifier()

    @pytest.mark.asyncio
    async def test_classify_success(self, mock_http_client) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "content": [
                    {"type": "text", "text": '{"classification": "pass", "reasoning": "benign"}'},
                ],
            })

        classifier = AnthropicClassifier(
            AnthropicConfig(api_key="ak-test"),
            client=mock_http_client(handler),
        )
        result = await classifier.classify("hello")

        assert result.classification == Classification.PASS
        assert seen[0].headers["x-api-key"] == "ak-test"
        assert seen[0].headers["anthropic-version"] == "2023-06-01"
        body = json.loads(seen[0].content)
        assert body["model"] == "claude-3-5-haiku-latest"
        assert body["messages"] == [{"role": "user", "content": "hello"}]
        await classifier.aclose()

    @pytest.mark.asyncio
    async def test_failure_is_contained_by_classify_safely(self, mock_http_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="overloaded")

        classifier = AnthropicClassifier(
            AnthropicConfig(api_key="ak-test"),
            client=mock_http_client(handler),
        )
        outcome = await classify_safely(classifier, "hello")
        assert isinstance(outcome, ProviderError)
        assert "500" in outcome.message
        assert outcome.provider == "AnthropicClassifier(claude-3-5-haiku-latest)"
