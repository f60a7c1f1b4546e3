# logic_engine/decision_ledger/validation.py
from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Optional, Union

from logic_engine._compat import utc_now_iso
from logic_engine.config import RequiredField, ValidationConfig
from logic_engine.contracts import (
    DEFAULT_CONTRACT_VERSION,
    Contract,
    ContractGap,
    MissingArtifact,
    Severity,
    ValidatedContract,
    ValidationReport,
    get_contract_from_descriptor,
)

if TYPE_CHECKING:
    from logic_engine.rules import PraxisRegistry

SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
SARIF_TOOL_NAME = "Praxis Decision Ledger"
SARIF_RULE_PREFIX = "decision-ledger"

_SARIF_RULE_DESCRIPTIONS: dict[MissingArtifact, str] = {
    MissingArtifact.CONTRACT: "Rule or constraint missing contract",
    MissingArtifact.BEHAVIOR: "Contract missing behavior description",
    MissingArtifact.EXAMPLES: "Contract missing examples",
    MissingArtifact.INVARIANTS: "Contract missing invariants",
    MissingArtifact.TESTS: "Contract missing tests",
    MissingArtifact.SPEC: "Contract missing spec",
}

_SARIF_LEVELS: dict[Severity, str] = {
    Severity.ERROR: "error",
    Severity.WARNING: "warning",
    Severity.INFO: "note",
}

_TEXT_MARKERS: dict[Severity, str] = {
    Severity.ERROR: "✗",
    Severity.WARNING: "⚠",
    Severity.INFO: "ℹ",
}


@dataclass(frozen=True)
class ArtifactIndex:
    """Rule ids known to have tests / specs; a None set skips that check."""

    tests: Optional[frozenset[str]] = None
    spec: Optional[frozenset[str]] = None
    contract_versions: Optional[Mapping[str, str]] = None

    @classmethod
    def build(
        cls,
        *,
        tests: Optional[Sequence[str]] = None,
        spec: Optional[Sequence[str]] = None,
        contract_versions: Optional[Mapping[str, str]] = None,
    ) -> ArtifactIndex:
        return cls(
            tests=frozenset(tests) if tests is not None else None,
            spec=frozenset(spec) if spec is not None else None,
            contract_versions=dict(contract_versions) if contract_versions is not None else None,
        )


@dataclass(frozen=True)
class ValidateOptions:
    missing_severity: Optional[Severity] = None
    incomplete_severity: Severity = Severity.WARNING
    required_fields: tuple[RequiredField, ...] = ("behavior", "examples")
    artifact_index: Optional[ArtifactIndex] = None
    now: Callable[[], str] = utc_now_iso

    @classmethod
    def from_config(cls, config: ValidationConfig, *, artifact_index: Optional[ArtifactIndex] = None) -> ValidateOptions:
        return cls(
            missing_severity=Severity(config.missing_severity) if config.missing_severity else None,
            incomplete_severity=Severity(config.incomplete_severity),
            required_fields=tuple(config.required_fields),
            artifact_index=artifact_index,
        )


def _is_blank(value: Optional[str]) -> bool:
    return not value or not value.strip()


def find_contract_gaps(
    contract: Contract,
    required_fields: Sequence[RequiredField],
    artifact_index: Optional[ArtifactIndex] = None,
) -> list[MissingArtifact]:
    missing: list[MissingArtifact] = []

    if "behavior" in required_fields and _is_blank(contract.behavior):
        missing.append(MissingArtifact.BEHAVIOR)
    if "examples" in required_fields and not contract.examples:
        missing.append(MissingArtifact.EXAMPLES)
    if "invariants" in required_fields and not contract.invariants:
        missing.append(MissingArtifact.INVARIANTS)

    if artifact_index is not None:
        if artifact_index.tests is not None and contract.rule_id not in artifact_index.tests:
            missing.append(MissingArtifact.TESTS)
        if artifact_index.spec is not None and contract.rule_id not in artifact_index.spec:
            missing.append(MissingArtifact.SPEC)

    return missing


def validate_contracts(
    registry: PraxisRegistry,
    options: Union[ValidateOptions, None] = None,
) -> ValidationReport:
    """
    Classify every rule, then every constraint, as complete / incomplete /
    missing. Output order follows registration order, so identical registry
    contents and options give identical reports (timestamp aside).
    """
    opts = options or ValidateOptions()

    complete: list[ValidatedContract] = []
    incomplete: list[ContractGap] = []
    missing: list[str] = []

    descriptors: list[tuple[str, Any]] = [("Rule", r) for r in registry.get_all_rules()]
    descriptors += [("Constraint", c) for c in registry.get_all_constraints()]

    for label, descriptor in descriptors:
        contract = get_contract_from_descriptor(descriptor)

        if contract is None:
            missing.append(descriptor.id)
            if opts.missing_severity is not None:
                incomplete.append(
                    ContractGap(
                        rule_id=descriptor.id,
                        missing=[MissingArtifact.CONTRACT],
                        severity=opts.missing_severity,
                        message=f"{label} '{descriptor.id}' has no contract",
                    )
                )
            continue

        gaps = find_contract_gaps(contract, opts.required_fields, opts.artifact_index)
        if gaps:
            incomplete.append(
                ContractGap(
                    rule_id=descriptor.id,
                    missing=gaps,
                    severity=opts.incomplete_severity,
                    message=f"{label} '{descriptor.id}' contract is incomplete: missing {', '.join(g.value for g in gaps)}",
                )
            )
        else:
            complete.append(ValidatedContract(rule_id=descriptor.id, contract=contract))

    return ValidationReport(
        complete=complete,
        incomplete=incomplete,
        missing=missing,
        total=len(descriptors),
        timestamp=opts.now(),
    )


# ------------------------------------------------------------------------------
# Formatters
# ------------------------------------------------------------------------------


def format_validation_report(report: ValidationReport) -> str:
    lines: list[str] = [
        "Contract Validation Report",
        "=" * 50,
        "",
        f"Total: {report.total}",
        f"Complete: {len(report.complete)}",
        f"Incomplete: {len(report.incomplete)}",
        f"Missing: {len(report.missing)}",
        "",
    ]

    if report.complete:
        lines.append("✓ Complete Contracts:")
        for item in report.complete:
            lines.append(f"  ✓ {item.rule_id} (v{item.contract.version or DEFAULT_CONTRACT_VERSION})")
        lines.append("")

    if report.incomplete:
        lines.append("✗ Incomplete Contracts:")
        for gap in report.incomplete:
            marker = _TEXT_MARKERS.get(gap.severity, "ℹ")
            lines.append(f"  {marker} {gap.rule_id} - Missing: {', '.join(m.value for m in gap.missing)}")
            if gap.message:
                lines.append(f"     {gap.message}")
        lines.append("")

    if report.missing:
        lines.append("✗ No Contract:")
        for rule_id in report.missing:
            lines.append(f"  ✗ {rule_id}")
        lines.append("")

    lines.append(f"Validated at: {report.timestamp}")
    return "\n".join(lines)


def format_validation_report_json(report: ValidationReport) -> str:
    return json.dumps(report.to_payload(), ensure_ascii=False, indent=2)


def _sarif_result(gap: ContractGap) -> dict[str, Any]:
    primary = gap.missing[0] if gap.missing else MissingArtifact.CONTRACT
    return {
        "ruleId": f"{SARIF_RULE_PREFIX}/{primary.value}",
        "level": _SARIF_LEVELS.get(gap.severity, "note"),
        "message": {"text": gap.message or f"Missing: {', '.join(m.value for m in gap.missing)}"},
        "locations": [
            {
                "physicalLocation": {
                    "artifactLocation": {"uri": "registry"},
                    "region": {"startLine": 1},
                }
            }
        ],
        "properties": {
            "ruleId": gap.rule_id,
            "missing": [m.value for m in gap.missing],
        },
    }


def format_validation_report_sarif(report: ValidationReport) -> str:
    sarif = {
        "version": SARIF_VERSION,
        "$schema": SARIF_SCHEMA,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": SARIF_TOOL_NAME,
                        "version": DEFAULT_CONTRACT_VERSION,
                        "rules": [
                            {"id": f"{SARIF_RULE_PREFIX}/{artifact.value}", "shortDescription": {"text": text}}
                            for artifact, text in _SARIF_RULE_DESCRIPTIONS.items()
                        ],
                    }
                },
                "results": [_sarif_result(gap) for gap in report.incomplete],
            }
        ],
    }
    return json.dumps(sarif, ensure_ascii=False, indent=2)
