# logic_engine/decision_ledger/facts_events.py
from __future__ import annotations

"""
Facts and events the decision ledger exchanges with an engine.

Payloads are camelCase dicts (the wire shape of the models below), so a
fact emitted here serializes the same way as the reports it came from.
"""

from typing import Optional

from pydantic import Field

from logic_engine._compat import utc_now_iso
from logic_engine.contracts import ContractGap, MissingArtifact, Severity, ValidatedContract, ValidationReport, WireModel
from logic_engine.dsl import define_event, define_fact
from logic_engine.protocol import Fact

# ------------------------------------------------------------------------------
# Payload models
# ------------------------------------------------------------------------------


class ContractMissingPayload(WireModel):
    rule_id: str
    missing: list[MissingArtifact]
    severity: Severity
    message: Optional[str] = None


class ContractValidatedPayload(WireModel):
    rule_id: str
    version: str
    timestamp: str


class AcknowledgeContractGapPayload(WireModel):
    rule_id: str
    missing: list[MissingArtifact]
    justification: str = Field(min_length=1)
    expires_at: Optional[str] = None


class ValidateContractsPayload(WireModel):
    strict: bool = False


class ContractGapAcknowledgedPayload(WireModel):
    rule_id: str
    missing: list[MissingArtifact]
    justification: str
    acknowledged_at: str
    expires_at: Optional[str] = None


class ContractAddedPayload(WireModel):
    rule_id: str
    version: str


class ContractUpdatedPayload(WireModel):
    rule_id: str
    previous_version: str
    new_version: str


# ------------------------------------------------------------------------------
# Definitions
# ------------------------------------------------------------------------------

ContractMissing = define_fact("ContractMissing")
ContractValidated = define_fact("ContractValidated")
ContractGapAcknowledged = define_fact("ContractGapAcknowledged")

AcknowledgeContractGap = define_event("ACKNOWLEDGE_CONTRACT_GAP")
ValidateContracts = define_event("VALIDATE_CONTRACTS")
ContractAdded = define_event("CONTRACT_ADDED")
ContractUpdated = define_event("CONTRACT_UPDATED")


def gap_to_fact(gap: ContractGap) -> Fact:
    payload = ContractMissingPayload(
        rule_id=gap.rule_id,
        missing=list(gap.missing),
        severity=gap.severity,
        message=gap.message,
    )
    return ContractMissing.create(payload.to_payload())


def validated_to_fact(validated: ValidatedContract, *, timestamp: Optional[str] = None) -> Fact:
    payload = ContractValidatedPayload(
        rule_id=validated.rule_id,
        version=validated.contract.version,
        timestamp=timestamp or utc_now_iso(),
    )
    return ContractValidated.create(payload.to_payload())


def report_to_facts(report: ValidationReport) -> list[Fact]:
    """ContractValidated for each complete entry, then ContractMissing for each gap."""
    facts = [validated_to_fact(v, timestamp=report.timestamp) for v in report.complete]
    facts.extend(gap_to_fact(gap) for gap in report.incomplete)
    return facts


def acknowledge_gap(payload: AcknowledgeContractGapPayload, *, acknowledged_at: Optional[str] = None) -> Fact:
    """Turn an ACKNOWLEDGE_CONTRACT_GAP payload into the matching ContractGapAcknowledged fact."""
    acknowledged = ContractGapAcknowledgedPayload(
        rule_id=payload.rule_id,
        missing=list(payload.missing),
        justification=payload.justification,
        acknowledged_at=acknowledged_at or utc_now_iso(),
        expires_at=payload.expires_at,
    )
    return ContractGapAcknowledged.create(acknowledged.to_payload())
