# logic_engine/protocol.py
from __future__ import annotations

"""
JSON-friendly protocol types shared by the registry, the engine and the
decision ledger. Facts and events are frozen; the State aggregate is only
ever mutated by the engine that owns it.
"""

from collections.abc import Mapping
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from logic_engine._compat import Self, StrEnum

PROTOCOL_VERSION = "1.0.0"

_PROTOCOL_CONFIG = ConfigDict(
    extra="forbid",
    validate_assignment=True,
    use_enum_values=False,
)

_IMMUTABLE_PROTOCOL_CONFIG = ConfigDict(
    extra="forbid",
    use_enum_values=False,
    frozen=True,
)


class Fact(BaseModel):
    """A tagged proposition about the domain, e.g. UserLoggedIn."""

    model_config = _IMMUTABLE_PROTOCOL_CONFIG
    tag: str = Field(min_length=1)
    payload: Any = None

    @classmethod
    def from_raw(cls, raw: object) -> Self:
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, Mapping):
            return cls.model_validate(dict(raw))
        raise TypeError(f"expected a Fact or a mapping with a tag, got {type(raw).__name__}")


class Event(BaseModel):
    """A tagged input consumed by a single step, e.g. LOGIN."""

    model_config = _IMMUTABLE_PROTOCOL_CONFIG
    tag: str = Field(min_length=1)
    payload: Any = None

    @classmethod
    def from_raw(cls, raw: object) -> Self:
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, Mapping):
            return cls.model_validate(dict(raw))
        raise TypeError(f"expected an Event or a mapping with a tag, got {type(raw).__name__}")


class State(BaseModel):
    model_config = _PROTOCOL_CONFIG
    context: Any = None
    facts: list[Fact] = Field(default_factory=list)
    meta: Optional[dict[str, Any]] = None
    protocol_version: Optional[str] = None


class DiagnosticKind(StrEnum):
    RULE_ERROR = "rule-error"
    CONSTRAINT_VIOLATION = "constraint-violation"


class Diagnostic(BaseModel):
    model_config = _PROTOCOL_CONFIG
    kind: DiagnosticKind
    message: str
    data: Optional[dict[str, Any]] = None


class StepConfig(BaseModel):
    """Rule and constraint ids applied by one step, in execution order."""

    model_config = _PROTOCOL_CONFIG
    rule_ids: list[str] = Field(default_factory=list)
    constraint_ids: list[str] = Field(default_factory=list)


class StepResult(BaseModel):
    model_config = _PROTOCOL_CONFIG
    state: State
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.diagnostics

    def diagnostics_of(self, kind: DiagnosticKind) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == kind]
