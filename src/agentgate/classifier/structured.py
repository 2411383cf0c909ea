"""
Structured output parsing for classifier responses.

Models asked for "ONLY valid JSON" still tend to wrap it in markdown code
fences or return nothing at all. This module strips the fences, parses the
JSON and validates it against a Pydantic model, producing error messages
that say which of those steps failed.
"""

import json
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from agentgate.errors import StructuredOutputError

T = TypeVar("T", bound=BaseModel)

# Length of the raw-input preview included in parse errors
PREVIEW_CHARS = 200

_FENCE_START = re.compile(r"^```(?:json|JSON)?\s*\n?")
_FENCE_END = re.compile(r"\n?\s*```\s*$")


def strip_code_fences(raw: str) -> str:
    """
    Remove a surrounding markdown code fence.

    Handles ```json, ```JSON and bare ``` fences. Text without both an
    opening and a closing fence is only trimmed.
    """
    text = raw.strip()
    if _FENCE_START.search(text) and _FENCE_END.search(text):
        text = _FENCE_END.sub("", _FENCE_START.sub("", text, count=1), count=1)
    return text.strip()


def parse_structured_output(raw: str, model: type[T], provider: str = "") -> T:
    """
    Parse raw model output into `model`.

    Args:
        raw: Text returned by the model
        model: Pydantic model to validate against
        provider: Classifier name, recorded on errors

    Returns:
        Validated model instance

    Raises:
        StructuredOutputError: On empty input, invalid JSON, or schema mismatch
    """
    if not raw or not raw.strip():
        raise StructuredOutputError(
            message="parse_structured_output: received empty input. "
            "The model may have returned an empty response.",
            provider=provider,
        )

    cleaned = strip_code_fences(raw)

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        preview = cleaned if len(cleaned) <= PREVIEW_CHARS else cleaned[:PREVIEW_CHARS] + "..."
        raise StructuredOutputError(
            message=f'parse_structured_output: failed to parse JSON. {e}. Raw input: "{preview}"',
            provider=provider,
            raw_response=cleaned,
        ) from e

    try:
        return model.model_validate(data)
    except ValidationError as e:
        issues = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise StructuredOutputError(
            message=f"parse_structured_output: schema validation failed. {issues}",
            provider=provider,
            raw_response=cleaned,
        ) from e
