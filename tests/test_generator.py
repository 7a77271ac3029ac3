"""Tests for diagram generation via an LLM provider."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from docdiagrams.document.extractor import extract_descriptions
from docdiagrams.generation.generator import (
    SYSTEM_PROMPT,
    CredentialRejected,
    DiagramGenerator,
    GenerationError,
    build_prompt,
    normalize_source,
    parse_response,
)
from tests.conftest import SAMPLE_DOC
from tests.helpers import _make_mock_provider, _make_text_response, _mermaid_reply


class TestNormalizeSource:
    def test_splits_statement_off_header(self) -> None:
        assert normalize_source("graph TD A-->B") == "graph TD\n    A-->B"

    def test_reindents_body(self) -> None:
        src = "flowchart LR\nA-->B\n  subgraph S\n    C\n  end"
        assert normalize_source(src) == "flowchart LR\n    A-->B\n      subgraph S\n        C\n      end"

    def test_already_indented_unchanged(self) -> None:
        src = "sequenceDiagram\n    participant A\n    A->>A: self"
        assert normalize_source(src) == src

    def test_header_only(self) -> None:
        assert normalize_source("  graph TD  \n") == "graph TD"


class TestParseResponse:
    def test_extracts_block(self) -> None:
        result = parse_response(_mermaid_reply("graph TD A-->B"))
        assert result.source == "graph TD\n    A-->B"
        assert result.explanation is None

    def test_explanation_when_requested(self) -> None:
        reply = _mermaid_reply("graph TD\n    A-->B", explanation="A hands off to B.")
        assert parse_response(reply, include_explanation=True).explanation == "A hands off to B."
        assert parse_response(reply, include_explanation=False).explanation is None

    def test_missing_block_raises(self) -> None:
        with pytest.raises(GenerationError):
            parse_response("Sorry, I can't draw that.")

    def test_empty_block_raises(self) -> None:
        with pytest.raises(GenerationError):
            parse_response("```mermaid\n\n```")

    def test_none_response_raises(self) -> None:
        with pytest.raises(GenerationError):
            parse_response(None)


class TestBuildPrompt:
    def test_includes_title_description_and_context(self) -> None:
        rec = extract_descriptions(SAMPLE_DOC)[0]
        prompt = build_prompt(rec)
        assert '"**Login Flow Diagram**:"' in prompt
        assert rec.description in prompt
        assert "Users log in through the gateway." in prompt
        assert "```mermaid" in prompt
        assert "explaining" not in prompt

    def test_context_truncated(self) -> None:
        rec = extract_descriptions(SAMPLE_DOC)[0]
        rec.context_window = "z" * 5000
        assert "z" * 2001 not in build_prompt(rec)

    def test_explanation_request(self) -> None:
        rec = extract_descriptions(SAMPLE_DOC)[0]
        assert "explaining" in build_prompt(rec, include_explanation=True)


class TestDiagramGenerator:
    def test_generate_uses_system_prompt(self) -> None:
        provider = _make_mock_provider("graph TD\n    A-->B")
        gen = DiagramGenerator(provider, delay=0)
        rec = extract_descriptions(SAMPLE_DOC)[0]
        result = gen.generate(rec)
        assert result.source == "graph TD\n    A-->B"
        assert provider.generate.call_args.kwargs["system"] == SYSTEM_PROMPT

    def test_generate_all_fills_records(self) -> None:
        provider = _make_mock_provider("graph TD\n    A-->B")
        records = extract_descriptions(SAMPLE_DOC)
        count = DiagramGenerator(provider, delay=0).generate_all(records)
        assert count == 2
        assert all(r.generated_source == "graph TD\n    A-->B" for r in records)
        assert provider.generate.call_count == 2

    def test_generate_all_isolates_failures(self) -> None:
        call_count = 0

        def flaky_generate(prompt: str, system: str | None = None) -> str:
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise RuntimeError("503 Service Unavailable")
            return _mermaid_reply("graph LR\n    X-->Y")

        provider = MagicMock()
        provider.generate = MagicMock(side_effect=flaky_generate)
        records = extract_descriptions(SAMPLE_DOC)

        count = DiagramGenerator(provider, delay=0).generate_all(records)
        assert count == 1
        assert records[0].generated_source is None
        assert records[1].generated_source == "graph LR\n    X-->Y"

    def test_unparseable_response_skips_record(self) -> None:
        provider = MagicMock()
        provider.generate = MagicMock(side_effect=["no code here", _mermaid_reply("graph TD\n    A-->B")])
        records = extract_descriptions(SAMPLE_DOC)
        assert DiagramGenerator(provider, delay=0).generate_all(records) == 1
        assert records[0].generated_source is None

    def test_auth_error_aborts(self) -> None:
        provider = MagicMock()
        provider.generate = MagicMock(side_effect=RuntimeError("400 API_KEY_INVALID"))
        records = extract_descriptions(SAMPLE_DOC)
        with pytest.raises(CredentialRejected, match="API key error"):
            DiagramGenerator(provider, delay=0).generate_all(records)
        assert provider.generate.call_count == 1

    def test_auth_error_keeps_earlier_results(self) -> None:
        provider = MagicMock()
        provider.generate = MagicMock(side_effect=[
            _mermaid_reply("graph TD\n    A-->B"),
            RuntimeError("403 PERMISSION_DENIED"),
        ])
        records = extract_descriptions(SAMPLE_DOC)
        with pytest.raises(CredentialRejected):
            DiagramGenerator(provider, delay=0).generate_all(records)
        assert records[0].generated_source == "graph TD\n    A-->B"
        assert records[1].generated_source is None

    def test_progress_callback(self) -> None:
        events = []
        records = extract_descriptions(SAMPLE_DOC)
        DiagramGenerator(_make_mock_provider(), delay=0).generate_all(records, on_progress=events.append)
        assert [e["current"] for e in events] == [1, 2]
        assert all(e["step"] == "generate" and e["ok"] for e in events)

    def test_delay_between_calls_only(self) -> None:
        records = extract_descriptions(SAMPLE_DOC)
        with patch("docdiagrams.generation.generator.time.sleep") as sleep:
            DiagramGenerator(_make_mock_provider(), delay=0.25).generate_all(records)
        sleep.assert_called_once_with(0.25)


# ── GeminiProvider (construction and mocked client, no API) ──


class TestGeminiProvider:
    def test_default_model(self) -> None:
        from docdiagrams import config
        from docdiagrams.generation.provider import GeminiProvider

        provider = GeminiProvider(api_key="test-key")
        assert provider._generation_model == config.GEMINI_MODEL

    def test_custom_model(self) -> None:
        from docdiagrams.generation.provider import GeminiProvider

        provider = GeminiProvider(api_key="test-key", generation_model="gemini-pro")
        assert provider._generation_model == "gemini-pro"

    def test_generate_returns_text(self) -> None:
        from docdiagrams.generation.provider import GeminiProvider

        provider = GeminiProvider(api_key="test-key")
        provider._client = MagicMock()
        provider._client.models.generate_content.return_value = _make_text_response("```mermaid\ngraph TD\n```")

        assert provider.generate("prompt", system="sys") == "```mermaid\ngraph TD\n```"
        kwargs = provider._client.models.generate_content.call_args.kwargs
        assert kwargs["contents"] == "prompt"
        assert kwargs["model"] == provider._generation_model
        assert kwargs["config"].max_output_tokens == provider._max_output_tokens

    def test_generate_empty_text(self) -> None:
        from docdiagrams.generation.provider import GeminiProvider

        provider = GeminiProvider(api_key="test-key")
        provider._client = MagicMock()
        provider._client.models.generate_content.return_value = _make_text_response(None)
        assert provider.generate("prompt") == ""
