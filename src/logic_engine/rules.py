# logic_engine/rules.py
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

from loguru import logger

from logic_engine.config import ComplianceConfig
from logic_engine.contracts import (
    Contract,
    ContractGap,
    MissingArtifact,
    Severity,
    get_contract_from_descriptor,
)
from logic_engine.errors import DuplicateIdError
from logic_engine.protocol import Event, Fact, State

RuleId = str
ConstraintId = str

# Rules derive new facts from the current state and the step's events.
RuleFn = Callable[[State, Sequence[Event]], Sequence[Union[Fact, Mapping[str, Any]]]]
# Constraints return True when the invariant holds, False or a message when violated.
ConstraintFn = Callable[[State], Union[bool, str]]
GapSink = Callable[[ContractGap], None]

# Incomplete contracts are always reported at this level; only the
# "no contract at all" severity is configurable.
INCOMPLETE_CONTRACT_SEVERITY = Severity.WARNING


@dataclass(frozen=True)
class RuleDescriptor:
    id: RuleId
    description: str
    impl: RuleFn
    contract: Optional[Contract] = None
    meta: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class ConstraintDescriptor:
    id: ConstraintId
    description: str
    impl: ConstraintFn
    contract: Optional[Contract] = None
    meta: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class PraxisModule:
    """A bundle of rules and constraints registered together."""

    rules: Sequence[RuleDescriptor] = field(default_factory=tuple)
    constraints: Sequence[ConstraintDescriptor] = field(default_factory=tuple)
    meta: Optional[Mapping[str, Any]] = None


def log_contract_gap(gap: ContractGap) -> None:
    logger.warning(
        "[contract-gap] {} ({}): missing {}",
        gap.rule_id,
        gap.severity.value,
        ", ".join(m.value for m in gap.missing),
    )


def check_contract_compliance(
    descriptor: Union[RuleDescriptor, ConstraintDescriptor],
    *,
    kind: str,
    config: ComplianceConfig,
) -> Optional[ContractGap]:
    contract = get_contract_from_descriptor(descriptor)
    if contract is None:
        return ContractGap(
            rule_id=descriptor.id,
            missing=[MissingArtifact.CONTRACT],
            severity=Severity(config.missing_severity),
            message=f"{kind.capitalize()} '{descriptor.id}' has no contract",
        )

    missing: list[MissingArtifact] = []
    if "behavior" in config.required_fields and not contract.behavior.strip():
        missing.append(MissingArtifact.BEHAVIOR)
    if "examples" in config.required_fields and not contract.examples:
        missing.append(MissingArtifact.EXAMPLES)
    if "invariants" in config.required_fields and not contract.invariants:
        missing.append(MissingArtifact.INVARIANTS)

    if not missing:
        return None

    return ContractGap(
        rule_id=descriptor.id,
        missing=missing,
        severity=INCOMPLETE_CONTRACT_SEVERITY,
        message=(
            f"{kind.capitalize()} '{descriptor.id}' contract is incomplete: "
            f"missing {', '.join(m.value for m in missing)}"
        ),
    )


class PraxisRegistry:
    """
    Rules and constraints keyed by stable id, in two separate namespaces.

    Registering an id twice within a namespace raises `DuplicateIdError` and
    leaves the registry untouched. After a successful registration the
    compliance check reports contract gaps to `on_gap`; it never blocks or
    undoes the registration.
    """

    def __init__(
        self,
        *,
        compliance: Optional[ComplianceConfig] = None,
        on_gap: Optional[GapSink] = None,
    ) -> None:
        self._rules: dict[RuleId, RuleDescriptor] = {}
        self._constraints: dict[ConstraintId, ConstraintDescriptor] = {}
        self._compliance = compliance or ComplianceConfig()
        self._on_gap: GapSink = on_gap or log_contract_gap
        self._gaps: list[ContractGap] = []

    @property
    def compliance(self) -> ComplianceConfig:
        return self._compliance

    def register_rule(self, descriptor: RuleDescriptor) -> None:
        if descriptor.id in self._rules:
            raise DuplicateIdError("Rule", descriptor.id)
        self._rules[descriptor.id] = descriptor
        self._report_compliance(descriptor, kind="rule")

    def register_constraint(self, descriptor: ConstraintDescriptor) -> None:
        if descriptor.id in self._constraints:
            raise DuplicateIdError("Constraint", descriptor.id)
        self._constraints[descriptor.id] = descriptor
        self._report_compliance(descriptor, kind="constraint")

    def register_module(self, module: PraxisModule) -> None:
        # No rollback: a duplicate mid-batch leaves earlier items registered.
        for rule in module.rules:
            self.register_rule(rule)
        for constraint in module.constraints:
            self.register_constraint(constraint)

    def get_rule(self, rule_id: RuleId) -> Optional[RuleDescriptor]:
        return self._rules.get(rule_id)

    def get_constraint(self, constraint_id: ConstraintId) -> Optional[ConstraintDescriptor]:
        return self._constraints.get(constraint_id)

    def get_rule_ids(self) -> list[RuleId]:
        return list(self._rules)

    def get_constraint_ids(self) -> list[ConstraintId]:
        return list(self._constraints)

    def get_all_rules(self) -> list[RuleDescriptor]:
        return list(self._rules.values())

    def get_all_constraints(self) -> list[ConstraintDescriptor]:
        return list(self._constraints.values())

    def get_contract_gaps(self) -> list[ContractGap]:
        return list(self._gaps)

    def clear_contract_gaps(self) -> None:
        self._gaps.clear()

    def _report_compliance(self, descriptor: Union[RuleDescriptor, ConstraintDescriptor], *, kind: str) -> None:
        if not self._compliance.enabled:
            return
        try:
            gap = check_contract_compliance(descriptor, kind=kind, config=self._compliance)
            if gap is None:
                return
            self._gaps.append(gap)
            self._on_gap(gap)
        except Exception:
            logger.exception("Contract compliance check failed for {} '{}'", kind, descriptor.id)
