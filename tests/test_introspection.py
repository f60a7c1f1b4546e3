from __future__ import annotations

from collections.abc import Callable

from logic_engine.contracts import Contract
from logic_engine.dsl import define_constraint, define_rule
from logic_engine.introspection import RegistryIntrospector
from logic_engine.protocol import PROTOCOL_VERSION
from logic_engine.rules import PraxisRegistry


def test_stats_and_schema(registry: PraxisRegistry, make_contract: Callable[..., Contract]) -> None:
    registry.register_rule(
        define_rule(
            id="auth.login",
            description="Process login events",
            impl=lambda s, e: [],
            contract=make_contract(version="2.1.0"),
            meta={"owner": "identity", "contract": {"ignored": True}},
        )
    )
    registry.register_constraint(define_constraint(id="auth.required", description="user set", impl=lambda s: True))
    introspector = RegistryIntrospector(registry)

    stats = introspector.get_stats()
    assert stats.rule_count == 1
    assert stats.constraint_count == 1
    assert stats.constraints_by_id == ["auth.required"]
    assert stats.contract_gap_count == 1

    schema = introspector.generate_schema()
    assert schema.protocol_version == PROTOCOL_VERSION
    rule = schema.rules[0]
    assert rule.has_contract is True
    assert rule.contract_version == "2.1.0"
    assert rule.meta == {"owner": "identity"}
    assert schema.constraints[0].has_contract is False

    payload = schema.model_dump(mode="json", by_alias=True, exclude_none=True)
    assert payload["protocolVersion"] == PROTOCOL_VERSION
    assert payload["rules"][0]["hasContract"] is True
    assert "contractVersion" not in payload["constraints"][0]
