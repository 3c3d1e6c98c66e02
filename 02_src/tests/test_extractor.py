"""Tests for DebugParameterExtractor."""

import json
import re

from conftest import DEBUG_MESSAGE
from turnrelay.engine import DebugParameterExtractor, normalize_pseudo_json, payload_from_structured
from turnrelay.engine.extractor import DEFAULT_MATCHERS, ScalarMatcher
from turnrelay.models import TokenRegime


class TestNormalizePseudoJson:
    """Tests for object-literal normalization."""

    def test_quotes_bare_keys(self):
        """Test that bare keys get double quotes."""
        assert normalize_pseudo_json("{total: 65, query: 1}") == '{"total": 65, "query": 1}'

    def test_single_quotes_become_double(self):
        """Test that single-quoted keys become JSON strings."""
        assert normalize_pseudo_json("{'total': 65}") == '{"total": 65}'

    def test_strict_json_unchanged(self):
        """Test that valid JSON passes through untouched."""
        assert normalize_pseudo_json('{"total": 65}') == '{"total": 65}'

    def test_apostrophe_in_string_kept(self):
        """Test that an apostrophe inside a double-quoted value survives."""
        assert normalize_pseudo_json("{\"note\": \"it's\", 'total': 1}") == '{"note": "it\'s", "total": 1}'


class TestTokenConsumption:
    """Tests for token consumption parsing."""

    def test_raw_regime(self):
        """Test reading the raw consumption figures."""
        payload = DebugParameterExtractor(TokenRegime.RAW).extract(DEBUG_MESSAGE)

        assert payload.total_tokens == 65
        assert payload.query_tokens == 1
        assert payload.answer_tokens == 64
        assert payload.parse_failed is False

    def test_post_multiplier_regime(self):
        """Test reading the post-multiplier figures."""
        payload = DebugParameterExtractor(TokenRegime.POST_MULTIPLIER).extract(DEBUG_MESSAGE)

        assert payload.total_tokens == 130
        assert payload.query_tokens == 2
        assert payload.answer_tokens == 128

    def test_raw_regime_ignores_post_multiplier_only_message(self):
        """Test that the raw matcher does not pick up the post-multiplier marker."""
        message = "Post-Multiplier Token Consumption: `{total: 130, query: 2, answer: 128}`"
        payload = DebugParameterExtractor(TokenRegime.RAW).extract(message)

        assert payload.total_tokens is None

    def test_single_quoted_keys(self):
        """Test single-quoted keys parse like bare ones."""
        message = "Token Consumption: `{'total': 65, 'query': 1, 'answer': 64}`"
        payload = DebugParameterExtractor().extract(message)

        assert (payload.total_tokens, payload.query_tokens, payload.answer_tokens) == (65, 1, 64)

    def test_double_quoted_keys(self):
        """Test strict JSON parses as-is."""
        message = 'Token Consumption: `{"total": 65, "query": 1, "answer": 64}`'
        payload = DebugParameterExtractor().extract(message)

        assert (payload.total_tokens, payload.query_tokens, payload.answer_tokens) == (65, 1, 64)

    def test_malformed_sets_flag(self):
        """Test that an unparseable fragment flags the payload and keeps other fields."""
        message = "Model: `gpt-4o-mini`\nToken Consumption: `{total: 65, query: }`"
        payload = DebugParameterExtractor().extract(message)

        assert payload.parse_failed is True
        assert payload.total_tokens is None
        assert payload.model == "gpt-4o-mini"


class TestDebugParameterExtractor:
    """Tests for the full extractor."""

    def test_extracts_scalars(self):
        """Test model, temperature, max tokens and multiplier."""
        payload = DebugParameterExtractor().extract(DEBUG_MESSAGE)

        assert payload.model == "gpt-4o-mini"
        assert payload.temperature == 0.7
        assert payload.max_tokens == 256
        assert payload.multiplier == 2.0

    def test_no_markers(self):
        """Test that plain text yields an empty payload."""
        extractor = DebugParameterExtractor()
        payload = extractor.extract("Query received: what is 2+2?")

        assert payload.is_empty()
        assert payload.parse_failed is False
        assert extractor.recognizes("Query received: what is 2+2?") is False

    def test_non_string_message(self):
        """Test that missing messages never raise."""
        assert DebugParameterExtractor().extract(None).is_empty()
        assert DebugParameterExtractor().extract({"message": 1}).is_empty()

    def test_recognizes_malformed(self):
        """Test that a failed token parse still counts as an AI step."""
        assert DebugParameterExtractor().recognizes("Token Consumption: `{bad`}`")

    def test_appended_matcher(self):
        """Test that a new convention is supported by adding a matcher."""
        output = ScalarMatcher("output", re.compile(r"Output:\s*`(.*?)`"), "output")
        extractor = DebugParameterExtractor(matchers=[*DEFAULT_MATCHERS, output])

        payload = extractor.extract("Model: `gpt-4o`\nOutput: `4`")

        assert payload.model == "gpt-4o"
        assert payload.output == "4"

    def test_first_value_wins(self):
        """Test that an earlier matcher's value is kept."""
        first = ScalarMatcher("engine", re.compile(r"Engine:\s*`(.*?)`"), "model")
        extractor = DebugParameterExtractor(matchers=[first, *DEFAULT_MATCHERS])

        payload = extractor.extract("Engine: `custom`\nModel: `gpt-4o`")

        assert payload.model == "custom"

    def test_failing_matcher_is_skipped(self):
        """Test that a matcher raising does not stop the others."""

        class Broken:
            name = "broken"

            def match(self, message, regime):
                raise RuntimeError("boom")

        extractor = DebugParameterExtractor(matchers=[Broken(), *DEFAULT_MATCHERS])

        assert extractor.extract(DEBUG_MESSAGE).model == "gpt-4o-mini"


class TestPayloadFromStructured:
    """Tests for nested structured payloads."""

    def test_reads_camel_case_keys(self):
        """Test reading a structured AI payload."""
        payload = payload_from_structured(
            {
                "model": "claude-3-haiku",
                "systemPrompt": "You are helpful",
                "assistantPrompt": "Say hi",
                "output": "Hi!",
                "temperature": "0.5",
                "maxTokens": 100,
                "tokens": 42,
            }
        )

        assert payload.model == "claude-3-haiku"
        assert payload.system_prompt == "You are helpful"
        assert payload.assistant_prompt == "Say hi"
        assert payload.output == "Hi!"
        assert payload.temperature == 0.5
        assert payload.max_tokens == 100
        assert payload.total_tokens == 42

    def test_non_dict(self):
        """Test that anything but a dict gives an empty payload."""
        assert payload_from_structured("model").is_empty()

    def test_non_finite_numbers(self):
        """Test that NaN and infinite counts are dropped instead of raising."""
        payload = payload_from_structured(
            json.loads(
                '{"model": "m", "tokens": NaN, "maxTokens": Infinity, "queryTokens": "-inf", "temperature": NaN}'
            )
        )

        assert payload.model == "m"
        assert payload.total_tokens is None
        assert payload.max_tokens is None
        assert payload.query_tokens is None
        assert payload.temperature is None
