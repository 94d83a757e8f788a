"""
Data models for usage log records.

RawEvent describes the loose shape of one log line; NormalizedEvent is the
canonical record every later stage works with.
"""

from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, StrictFloat, StrictInt, StrictStr


# JSON numbers, without bool or numeric-string coercion
Number = Union[StrictInt, StrictFloat]


class ModelBucket(Enum):
    """Model classification groups used in reports."""
    OPUS = "Opus"
    SONNET = "Sonnet"
    OTHER = "Other"


class _RawSection(BaseModel):
    # Unknown keys are kept, known keys must carry the declared type
    model_config = ConfigDict(extra="allow", protected_namespaces=(), allow_inf_nan=False)


class RawMessageUsage(_RawSection):
    input_tokens: Optional[Number] = None
    cache_creation_input_tokens: Optional[Number] = None
    cache_read_input_tokens: Optional[Number] = None
    output_tokens: Optional[Number] = None


class RawMessage(_RawSection):
    """Chat message payload written by Claude Code."""
    role: Optional[StrictStr] = None
    model: Optional[StrictStr] = None
    usage: Optional[RawMessageUsage] = None


class RawUsage(_RawSection):
    input_tokens: Optional[Number] = None
    prompt_tokens: Optional[Number] = None
    output_tokens: Optional[Number] = None
    completion_tokens: Optional[Number] = None


class RawMeta(_RawSection):
    model: Optional[StrictStr] = None


class RawEvent(_RawSection):
    """One log line in any of the known schemas.

    Every field is optional; which ones are present depends on the tool
    that wrote the line.
    """
    # Timestamps
    ts: Optional[StrictStr] = None
    timestamp: Optional[Union[StrictStr, Number]] = None
    created_at: Optional[StrictStr] = None

    # Model
    model: Optional[StrictStr] = None
    model_name: Optional[StrictStr] = None
    meta: Optional[RawMeta] = None

    # Tokens
    tokens_in: Optional[Number] = None
    input_tokens: Optional[Number] = None
    tokens_out: Optional[Number] = None
    output_tokens: Optional[Number] = None
    usage: Optional[RawUsage] = None

    # Duration
    latency_ms: Optional[Number] = None
    duration_ms: Optional[Number] = None

    # Session / project
    session_id: Optional[StrictStr] = None
    conversation_id: Optional[StrictStr] = None
    sessionId: Optional[StrictStr] = None
    project: Optional[StrictStr] = None
    workspace: Optional[StrictStr] = None
    repo_path: Optional[StrictStr] = None
    cwd: Optional[StrictStr] = None

    # Event type
    event: Optional[StrictStr] = None
    type: Optional[StrictStr] = None

    message: Optional[RawMessage] = None


@dataclass(frozen=True)
class NormalizedEvent:
    """Canonical record of one model invocation.

    Only produced for records that passed validation. tokens_in already
    includes cache creation and cache read tokens.
    """
    timestamp: datetime
    model: ModelBucket
    model_name: str
    tokens_in: int = 0
    tokens_out: int = 0
    duration_ms: Optional[float] = None
    session_id: Optional[str] = None
    project: Optional[str] = None
    cache_creation_tokens: int = 0
    cache_read_tokens: int = 0

    @property
    def tokens_total(self) -> int:
        """Total tokens used (input + output)."""
        return self.tokens_in + self.tokens_out

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "model": self.model.value,
            "model_name": self.model_name,
            "tokens_in": self.tokens_in,
            "tokens_out": self.tokens_out,
            "tokens_total": self.tokens_total,
            "duration_ms": self.duration_ms,
            "session_id": self.session_id,
            "project": self.project,
        }


@dataclass(frozen=True)
class EventWithInferredDuration(NormalizedEvent):
    """NormalizedEvent with the duration used by all downstream stages."""
    inferred_duration_ms: float = 0

    @classmethod
    def from_event(cls, event: NormalizedEvent, inferred_duration_ms: float) -> "EventWithInferredDuration":
        values = {f.name: getattr(event, f.name) for f in fields(NormalizedEvent)}
        return cls(inferred_duration_ms=inferred_duration_ms, **values)
