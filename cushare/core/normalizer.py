"""
Event normalization.

Turns a loosely-typed RawEvent into a canonical NormalizedEvent, or rejects
it. Each logical field is read through an ordered list of accessors; the
first one yielding a usable value wins.
"""

from datetime import datetime
from typing import Callable, List, Optional, Union

from .timezones import parse_timestamp
from .token_counter import extract_tokens
from cushare.logs.models import ModelBucket, NormalizedEvent, RawEvent

COMPLETION_EVENT = "completion"
ASSISTANT_ROLE = "assistant"

MODEL_FIELDS: List[Callable[[RawEvent], Optional[str]]] = [
    lambda raw: raw.message.model if raw.message else None,
    lambda raw: raw.model,
    lambda raw: raw.model_name,
    lambda raw: raw.meta.model if raw.meta else None,
]

TIMESTAMP_FIELDS: List[Callable[[RawEvent], Union[str, float, None]]] = [
    lambda raw: raw.ts,
    lambda raw: raw.timestamp,
    lambda raw: raw.created_at,
]

DURATION_FIELDS: List[Callable[[RawEvent], Optional[float]]] = [
    lambda raw: raw.latency_ms,
    lambda raw: raw.duration_ms,
]

SESSION_FIELDS: List[Callable[[RawEvent], Optional[str]]] = [
    lambda raw: raw.sessionId,
    lambda raw: raw.session_id,
    lambda raw: raw.conversation_id,
]

PROJECT_FIELDS: List[Callable[[RawEvent], Optional[str]]] = [
    lambda raw: raw.project,
    lambda raw: raw.workspace,
    lambda raw: raw.repo_path,
    lambda raw: raw.cwd,
]


def normalize_model(model: str) -> ModelBucket:
    """Classify a model name into its reporting bucket."""
    lower = model.lower()
    if "opus" in lower:
        return ModelBucket.OPUS
    if "sonnet" in lower:
        return ModelBucket.SONNET
    return ModelBucket.OTHER


def _first_text(raw: RawEvent, accessors: List[Callable[[RawEvent], Optional[str]]]) -> Optional[str]:
    for accessor in accessors:
        value = accessor(raw)
        if value:
            return value
    return None


def extract_model(raw: RawEvent) -> Optional[str]:
    return _first_text(raw, MODEL_FIELDS)


def extract_session_id(raw: RawEvent) -> Optional[str]:
    return _first_text(raw, SESSION_FIELDS)


def extract_project(raw: RawEvent) -> Optional[str]:
    return _first_text(raw, PROJECT_FIELDS)


def extract_timestamp(raw: RawEvent) -> Optional[datetime]:
    """Return the first timestamp field that parses, or None."""
    for accessor in TIMESTAMP_FIELDS:
        parsed = parse_timestamp(accessor(raw))
        if parsed is not None:
            return parsed
    return None


def extract_duration(raw: RawEvent) -> Optional[float]:
    """Return the observed duration in ms, or None when not recorded.

    Missing durations are inferred later, so nothing defaults to 0 here.
    """
    for accessor in DURATION_FIELDS:
        value = accessor(raw)
        if value is not None and value >= 0:
            return value
    return None


def _is_assistant_message(raw: RawEvent) -> bool:
    return (
        raw.type == ASSISTANT_ROLE
        and raw.message is not None
        and raw.message.role == ASSISTANT_ROLE
        and raw.message.usage is not None
    )


def is_valid_event(raw: RawEvent) -> bool:
    """Check whether a raw record describes a countable model invocation.

    A record needs a model and a timestamp. It also needs a positive token
    count unless it is flagged as a completion event; assistant chat
    messages always need a nonzero usage total.
    """
    if extract_model(raw) is None or extract_timestamp(raw) is None:
        return False

    usage = extract_tokens(raw)
    has_tokens = usage.input_tokens > 0 or usage.output_tokens > 0

    if _is_assistant_message(raw):
        return has_tokens
    return has_tokens or raw.event == COMPLETION_EVENT


def normalize_event(raw: RawEvent) -> Optional[NormalizedEvent]:
    """Convert a raw record into a NormalizedEvent.

    Args:
        raw: Raw log record

    Returns:
        NormalizedEvent, or None when the record fails validation
    """
    if not is_valid_event(raw):
        return None

    model_name = extract_model(raw)
    usage = extract_tokens(raw)

    return NormalizedEvent(
        timestamp=extract_timestamp(raw),
        model=normalize_model(model_name),
        model_name=model_name,
        tokens_in=usage.input_tokens,
        tokens_out=usage.output_tokens,
        duration_ms=extract_duration(raw),
        session_id=extract_session_id(raw),
        project=extract_project(raw),
        cache_creation_tokens=usage.cache_creation_tokens,
        cache_read_tokens=usage.cache_read_tokens,
    )
