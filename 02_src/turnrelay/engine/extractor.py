"""Debug parameter extraction.

Debug traces from the dialogue engine describe AI steps as markdown, e.g.::

    __AI Set__
    Model: `gpt-4o-mini`
    Temperature: `0.7`
    Token Consumption: `{total: 65, query: 1, answer: 64}`
    Post-Multiplier Token Consumption: `{total: 65, query: 1, answer: 64}`

Each labelled marker is read by an independent matcher. Matchers run in a
fixed order and each contributes only the fields it knows; the first value
found for a field wins. A new message convention is supported by appending
a matcher, without touching the existing ones.
"""

import json
import math
import re
from dataclasses import dataclass, fields
from typing import Any, Callable, Protocol

from ..logging_config import get_logger
from ..models import AiInvocationPayload, TokenRegime

logger = get_logger(__name__)


class DebugMatcher(Protocol):
    """Reads one labelled marker out of a debug message."""

    name: str

    def match(self, message: str, regime: TokenRegime) -> dict[str, Any] | None:
        """Return the fields found, or None when the marker is absent."""
        ...


# Bare object keys: `{total: 1` / `, query: 2`
_BARE_KEY = re.compile(r"([{,]\s*)([A-Za-z_$][\w$-]*)\s*:")
# Quote-free single-quoted tokens; a lone apostrophe inside double-quoted text is kept.
_SINGLE_QUOTED = re.compile(r"'([^'\"]*)'")


def normalize_pseudo_json(fragment: str) -> str:
    """Turn a JS-style object literal into strict JSON.

    Quotes bare keys and converts single-quoted strings to double quotes.
    """
    quoted = _SINGLE_QUOTED.sub(r'"\1"', fragment)
    return _BARE_KEY.sub(r'\1"\2":', quoted)


def _to_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    number = _to_float(value)
    return int(number) if number is not None else None


def _to_float(value: Any) -> float | None:
    """Finite float from a number or numeric string, else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    return number if math.isfinite(number) else None


@dataclass
class ScalarMatcher:
    """`Label: `value`` markers holding a single value."""

    name: str
    pattern: re.Pattern
    field_name: str
    convert: Callable[[str], Any] = str

    def match(self, message: str, regime: TokenRegime) -> dict[str, Any] | None:
        found = self.pattern.search(message)
        if not found:
            return None
        value = self.convert(found.group(1).strip())
        if value is None or value == "":
            return None
        return {self.field_name: value}


class TokenConsumptionMatcher:
    """`Token Consumption: `{...}`` markers, read per token regime."""

    name = "token_consumption"

    PATTERNS = {
        TokenRegime.RAW: re.compile(
            r"(?<!Post-Multiplier )Token Consumption:\s*`(\{.*?\})`", re.DOTALL
        ),
        TokenRegime.POST_MULTIPLIER: re.compile(
            r"Post-Multiplier Token Consumption:\s*`(\{.*?\})`", re.DOTALL
        ),
    }

    def match(self, message: str, regime: TokenRegime) -> dict[str, Any] | None:
        found = self.PATTERNS[regime].search(message)
        if not found:
            return None

        fragment = found.group(1)
        try:
            consumption = json.loads(normalize_pseudo_json(fragment))
            if not isinstance(consumption, dict):
                raise ValueError("token consumption is not an object")
        except ValueError:
            logger.warning(
                "Failed to parse token consumption",
                extra={"context": {"fragment": fragment, "regime": regime.value}},
            )
            return {
                "query_tokens": None,
                "answer_tokens": None,
                "total_tokens": None,
                "parse_failed": True,
            }

        return {
            "query_tokens": _to_int(consumption.get("query")),
            "answer_tokens": _to_int(consumption.get("answer")),
            "total_tokens": _to_int(consumption.get("total")),
        }


DEFAULT_MATCHERS: list[DebugMatcher] = [
    ScalarMatcher("model", re.compile(r"Model:\s*`(.*?)`"), "model"),
    ScalarMatcher(
        "temperature", re.compile(r"Temperature:\s*`(.*?)`"), "temperature", _to_float
    ),
    ScalarMatcher(
        "max_tokens", re.compile(r"Max Tokens:\s*`(.*?)`", re.IGNORECASE), "max_tokens", _to_int
    ),
    ScalarMatcher(
        "multiplier", re.compile(r"(?<![\w-])Multiplier:\s*`(.*?)`"), "multiplier", _to_float
    ),
    TokenConsumptionMatcher(),
]

_PAYLOAD_FIELDS = {f.name for f in fields(AiInvocationPayload)}


class DebugParameterExtractor:
    """Builds an AiInvocationPayload from a free-text debug message."""

    def __init__(
        self,
        regime: TokenRegime = TokenRegime.RAW,
        matchers: list[DebugMatcher] | None = None,
    ):
        self._regime = regime
        self._matchers = list(matchers) if matchers is not None else list(DEFAULT_MATCHERS)

    @property
    def regime(self) -> TokenRegime:
        return self._regime

    def extract(self, message: Any) -> AiInvocationPayload:
        """Parse a debug message. Never raises; missing markers leave fields None."""
        if not isinstance(message, str) or not message:
            return AiInvocationPayload()

        found: dict[str, Any] = {}
        parse_failed = False
        for matcher in self._matchers:
            try:
                result = matcher.match(message, self._regime)
            except Exception:
                logger.exception("Debug matcher %s failed", matcher.name)
                continue
            if not result:
                continue
            parse_failed = parse_failed or bool(result.pop("parse_failed", False))
            for key, value in result.items():
                if key in _PAYLOAD_FIELDS and value is not None and key not in found:
                    found[key] = value

        return AiInvocationPayload(**found, parse_failed=parse_failed)

    def recognizes(self, message: Any) -> bool:
        """True when the message carries any AI-invocation marker."""
        payload = self.extract(message)
        return payload.parse_failed or not payload.is_empty()


def payload_from_structured(data: Any) -> AiInvocationPayload:
    """Read the structured AI payload some debug events nest alongside the text."""
    if not isinstance(data, dict):
        return AiInvocationPayload()

    def pick(*keys: str) -> Any:
        for key in keys:
            if data.get(key) is not None:
                return data[key]
        return None

    def text(*keys: str) -> str | None:
        value = pick(*keys)
        return value if isinstance(value, str) else None

    return AiInvocationPayload(
        system_prompt=text("systemPrompt", "system"),
        assistant_prompt=text("assistantPrompt", "prompt"),
        output=text("output"),
        model=text("model"),
        temperature=_to_float(pick("temperature")),
        max_tokens=_to_int(pick("maxTokens", "max_tokens")),
        query_tokens=_to_int(pick("queryTokens", "query_tokens")),
        answer_tokens=_to_int(pick("answerTokens", "answer_tokens")),
        total_tokens=_to_int(pick("totalTokens", "tokens", "total_tokens")),
        multiplier=_to_float(pick("multiplier")),
    )
