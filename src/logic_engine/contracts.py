# logic_engine/contracts.py
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from logic_engine._compat import StrEnum, utc_now_iso
from logic_engine.errors import ContractDefinitionError

DEFAULT_CONTRACT_VERSION = "1.0.0"

# ------------------------------------------------------------------------------
# Shared BaseModel config helpers
# ------------------------------------------------------------------------------

# Wire documents (ledger JSON, reports) use camelCase keys; Python code uses
# snake_case attribute names. Both spellings are accepted on input.
_WIRE_CONFIG = ConfigDict(
    extra="forbid",
    use_enum_values=False,
    frozen=True,
    alias_generator=to_camel,
    populate_by_name=True,
)


class WireModel(BaseModel):
    model_config = _WIRE_CONFIG

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict with camelCase keys and unset optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ------------------------------------------------------------------------------
# Enumerations
# ------------------------------------------------------------------------------


class AssumptionStatus(StrEnum):
    ACTIVE = "active"
    REVISED = "revised"
    INVALIDATED = "invalidated"


class Impact(StrEnum):
    SPEC = "spec"
    TESTS = "tests"
    CODE = "code"


class Severity(StrEnum):
    WARNING = "warning"
    ERROR = "error"
    INFO = "info"


class MissingArtifact(StrEnum):
    BEHAVIOR = "behavior"
    EXAMPLES = "examples"
    INVARIANTS = "invariants"
    TESTS = "tests"
    SPEC = "spec"
    CONTRACT = "contract"


# ------------------------------------------------------------------------------
# Contract value types
# ------------------------------------------------------------------------------


class Assumption(WireModel):
    """An explicit assumption behind a contract, with a confidence in [0, 1]."""

    id: str = Field(min_length=1)
    statement: str
    confidence: float = Field(ge=0.0, le=1.0)
    justification: str
    derived_from: Optional[str] = None
    impacts: list[Impact] = Field(default_factory=list)
    status: AssumptionStatus = AssumptionStatus.ACTIVE


class Reference(WireModel):
    type: str
    url: Optional[str] = None
    description: Optional[str] = None


class Example(WireModel):
    """Given/When/Then example; each one doubles as a test vector."""

    given: str
    when: str
    then: str


class Contract(WireModel):
    rule_id: str = Field(min_length=1)
    behavior: str
    examples: list[Example] = Field(min_length=1)
    invariants: list[str] = Field(default_factory=list)
    assumptions: Optional[list[Assumption]] = None
    references: Optional[list[Reference]] = None
    version: str = DEFAULT_CONTRACT_VERSION
    timestamp: Optional[str] = None

    def canonical_behavior(self) -> dict[str, Any]:
        """The {behavior, examples, invariants} triple compared across versions."""
        return {
            "behavior": self.behavior,
            "examples": [example.to_payload() for example in self.examples],
            "invariants": list(self.invariants),
        }


class ContractGap(WireModel):
    rule_id: str
    missing: list[MissingArtifact]
    severity: Severity
    message: Optional[str] = None


class ValidatedContract(WireModel):
    rule_id: str
    contract: Contract


class ValidationReport(WireModel):
    complete: list[ValidatedContract] = Field(default_factory=list)
    incomplete: list[ContractGap] = Field(default_factory=list)
    missing: list[str] = Field(default_factory=list)
    total: int = 0
    timestamp: str


# ------------------------------------------------------------------------------
# Factory and guards
# ------------------------------------------------------------------------------

ExampleLike = Union[Example, Mapping[str, Any]]
AssumptionLike = Union[Assumption, Mapping[str, Any]]
ReferenceLike = Union[Reference, Mapping[str, Any]]


def define_contract(
    *,
    rule_id: str,
    behavior: str,
    examples: Sequence[ExampleLike],
    invariants: Iterable[str] = (),
    assumptions: Optional[Sequence[AssumptionLike]] = None,
    references: Optional[Sequence[ReferenceLike]] = None,
    version: Optional[str] = None,
) -> Contract:
    """
    Build a contract for a rule or constraint.

    Example:
        define_contract(
            rule_id="auth.login",
            behavior="Process login events and create user session facts",
            examples=[{
                "given": "User provides valid credentials",
                "when": "LOGIN event is received",
                "then": "UserSessionCreated fact is emitted",
            }],
            invariants=["Session must have unique ID"],
        )
    """
    if not examples:
        raise ContractDefinitionError("Contract must have at least one example")

    return Contract(
        rule_id=rule_id,
        behavior=behavior,
        examples=[Example.model_validate(e) if not isinstance(e, Example) else e for e in examples],
        invariants=list(invariants),
        assumptions=(
            [Assumption.model_validate(a) if not isinstance(a, Assumption) else a for a in assumptions]
            if assumptions is not None
            else None
        ),
        references=(
            [Reference.model_validate(r) if not isinstance(r, Reference) else r for r in references]
            if references is not None
            else None
        ),
        version=version or DEFAULT_CONTRACT_VERSION,
        timestamp=utc_now_iso(),
    )


def _is_example(raw: object) -> bool:
    if isinstance(raw, Example):
        return True
    if not isinstance(raw, Mapping):
        return False
    return all(isinstance(raw.get(key), str) for key in ("given", "when", "then"))


def is_contract(obj: object) -> bool:
    """Structural check: rule id, behavior, at least one well-formed example, string invariants."""
    if isinstance(obj, Contract):
        return True
    if not isinstance(obj, Mapping):
        return False

    rule_id = obj.get("ruleId", obj.get("rule_id"))
    examples = obj.get("examples")
    invariants = obj.get("invariants")
    return (
        isinstance(rule_id, str)
        and isinstance(obj.get("behavior"), str)
        and isinstance(examples, list)
        and len(examples) > 0
        and all(_is_example(example) for example in examples)
        and isinstance(invariants, list)
        and all(isinstance(invariant, str) for invariant in invariants)
    )


def coerce_contract(raw: object) -> Optional[Contract]:
    """Return a Contract for anything passing `is_contract` that also validates, else None."""
    if isinstance(raw, Contract):
        return raw
    if not is_contract(raw):
        return None
    try:
        return Contract.model_validate(raw)
    except ValidationError:
        return None


def get_contract(meta: Optional[Mapping[str, Any]]) -> Optional[Contract]:
    """Extract a contract stored under `meta["contract"]`."""
    if not meta:
        return None
    return coerce_contract(meta.get("contract"))


def get_contract_from_descriptor(descriptor: object) -> Optional[Contract]:
    """First-class `contract` attribute wins; `meta["contract"]` is the fallback."""
    contract = coerce_contract(getattr(descriptor, "contract", None))
    if contract is not None:
        return contract
    meta = getattr(descriptor, "meta", None)
    return get_contract(meta if isinstance(meta, Mapping) else None)
