"""
Token counting and usage tracking.

Extracts token counts from the several record shapes found in usage logs.
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional

from cushare.logs.models import RawEvent


@dataclass(frozen=True)
class TokenUsage:
    """Token usage extracted from one raw record.

    input_tokens includes cache creation and cache read tokens; the cache
    fields only break that figure down.
    """
    input_tokens: int
    output_tokens: int
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens used (input + output)."""
        return self.input_tokens + self.output_tokens


TokenAccessor = Callable[[RawEvent], Optional[float]]

# Flat-record fallbacks, tried in order
INPUT_TOKEN_FIELDS: List[TokenAccessor] = [
    lambda raw: raw.tokens_in,
    lambda raw: raw.input_tokens,
    lambda raw: raw.usage.input_tokens if raw.usage else None,
    lambda raw: raw.usage.prompt_tokens if raw.usage else None,
]

OUTPUT_TOKEN_FIELDS: List[TokenAccessor] = [
    lambda raw: raw.tokens_out,
    lambda raw: raw.output_tokens,
    lambda raw: raw.usage.output_tokens if raw.usage else None,
    lambda raw: raw.usage.completion_tokens if raw.usage else None,
]


def _count(value: Optional[float]) -> int:
    """Coerce a raw token figure to a non-negative int (0 when absent)."""
    if value is None or not math.isfinite(value) or value <= 0:
        return 0
    return int(value)


def _first_count(raw: RawEvent, accessors: List[TokenAccessor]) -> int:
    for accessor in accessors:
        count = _count(accessor(raw))
        if count > 0:
            return count
    return 0


def extract_tokens(raw: RawEvent) -> TokenUsage:
    """Extract input and output token counts from a raw record.

    Chat messages carry their usage under message.usage, where cache
    tokens count as input. Other shapes fall back through a fixed list of
    flat and nested field names; the first positive value wins.

    Args:
        raw: Raw log record

    Returns:
        TokenUsage, zeros when nothing is present
    """
    if raw.message is not None and raw.message.usage is not None:
        usage = raw.message.usage
        cache_creation = _count(usage.cache_creation_input_tokens)
        cache_read = _count(usage.cache_read_input_tokens)
        return TokenUsage(
            input_tokens=_count(usage.input_tokens) + cache_creation + cache_read,
            output_tokens=_count(usage.output_tokens),
            cache_creation_tokens=cache_creation,
            cache_read_tokens=cache_read,
        )

    return TokenUsage(
        input_tokens=_first_count(raw, INPUT_TOKEN_FIELDS),
        output_tokens=_first_count(raw, OUTPUT_TOKEN_FIELDS),
    )
