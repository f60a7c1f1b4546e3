from __future__ import annotations

from collections.abc import Callable

import pytest
from pydantic import ValidationError

from logic_engine.contracts import Contract, ContractGap, MissingArtifact, Severity
from logic_engine.decision_ledger.facts_events import (
    AcknowledgeContractGap,
    AcknowledgeContractGapPayload,
    ContractGapAcknowledged,
    ContractMissing,
    ContractValidated,
    ValidateContracts,
    acknowledge_gap,
    gap_to_fact,
    report_to_facts,
)
from logic_engine.decision_ledger.validation import ValidateOptions, validate_contracts
from logic_engine.dsl import define_event, define_fact, define_rule
from logic_engine.protocol import Event, Fact
from logic_engine.rules import PraxisRegistry


def test_fact_definition_creates_and_selects() -> None:
    user_logged_in = define_fact("UserLoggedIn")
    fact = user_logged_in.create({"user_id": "123"})

    assert isinstance(fact, Fact)
    assert fact.tag == "UserLoggedIn"
    assert user_logged_in.is_(fact)
    assert not user_logged_in.is_(Fact(tag="Other"))
    assert user_logged_in.select([fact, Fact(tag="Other")]) == [fact]


def test_event_definition_creates_and_selects() -> None:
    login = define_event("LOGIN")
    event = login.create({"username": "alice"})

    assert isinstance(event, Event)
    assert login.select([event, Event(tag="LOGOUT")]) == [event]
    assert not login.is_({"tag": "LOGIN"})


def test_facts_are_immutable() -> None:
    fact = Fact(tag="X", payload=1)
    with pytest.raises(ValidationError):
        fact.tag = "Y"  # type: ignore[misc]


def test_decision_ledger_tags() -> None:
    assert AcknowledgeContractGap.tag == "ACKNOWLEDGE_CONTRACT_GAP"
    assert ValidateContracts.tag == "VALIDATE_CONTRACTS"
    assert ContractMissing.tag == "ContractMissing"


def test_gap_to_fact_uses_camel_case_payload() -> None:
    gap = ContractGap(rule_id="auth.login", missing=[MissingArtifact.EXAMPLES], severity=Severity.ERROR, message="m")

    fact = gap_to_fact(gap)

    assert ContractMissing.is_(fact)
    assert fact.payload == {"ruleId": "auth.login", "missing": ["examples"], "severity": "error", "message": "m"}


def test_report_to_facts(make_contract: Callable[..., Contract]) -> None:
    registry = PraxisRegistry(on_gap=lambda gap: None)
    registry.register_rule(define_rule(id="auth.login", description="l", impl=lambda s, e: [], contract=make_contract()))
    registry.register_rule(define_rule(id="bare", description="b", impl=lambda s, e: []))
    report = validate_contracts(registry, ValidateOptions(missing_severity=Severity.WARNING, now=lambda: "T0"))

    facts = report_to_facts(report)

    assert [f.tag for f in facts] == ["ContractValidated", "ContractMissing"]
    assert facts[0].payload == {"ruleId": "auth.login", "version": "1.0.0", "timestamp": "T0"}
    assert ContractValidated.is_(facts[0])


def test_acknowledge_gap() -> None:
    payload = AcknowledgeContractGapPayload.model_validate(
        {"ruleId": "legacy.rule", "missing": ["tests"], "justification": "Covered by e2e suite", "expiresAt": "2027-01-01"}
    )
    event = AcknowledgeContractGap.create(payload.to_payload())

    fact = acknowledge_gap(AcknowledgeContractGapPayload.model_validate(event.payload), acknowledged_at="T1")

    assert ContractGapAcknowledged.is_(fact)
    assert fact.payload == {
        "ruleId": "legacy.rule",
        "missing": ["tests"],
        "justification": "Covered by e2e suite",
        "acknowledgedAt": "T1",
        "expiresAt": "2027-01-01",
    }


def test_acknowledgement_requires_justification() -> None:
    with pytest.raises(ValidationError):
        AcknowledgeContractGapPayload(rule_id="r", missing=[], justification="")
