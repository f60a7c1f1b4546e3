from __future__ import annotations

import threading
from typing import Any

import pytest

from logic_engine.dsl import define_constraint, define_rule
from logic_engine.engine import EngineOptions, LogicEngine, create_engine
from logic_engine.protocol import DiagnosticKind, Fact, StepConfig
from logic_engine.rules import PraxisRegistry

LOGIN = {"tag": "LOGIN", "payload": {"username": "alice"}}


def _boom(*_: Any) -> Any:
    raise RuntimeError("boom")


def test_login_emits_one_fact_and_no_diagnostics_when_user_is_set(auth_registry: PraxisRegistry) -> None:
    engine = create_engine(registry=auth_registry, initial_context={"currentUser": "alice"})

    result = engine.step([LOGIN])

    assert [f.tag for f in result.state.facts] == ["UserLoggedIn"]
    assert result.state.facts[0].payload == {"username": "alice"}
    assert result.diagnostics == []
    assert result.ok


def test_login_without_current_user_reports_one_violation(auth_registry: PraxisRegistry) -> None:
    engine = create_engine(registry=auth_registry, initial_context={})

    result = engine.step([LOGIN])

    assert [f.tag for f in result.state.facts] == ["UserLoggedIn"]
    assert len(result.diagnostics) == 1
    diagnostic = result.diagnostics[0]
    assert diagnostic.kind == DiagnosticKind.CONSTRAINT_VIOLATION
    assert diagnostic.message == 'Constraint "auth.required" violated'
    assert diagnostic.data == {"constraint_id": "auth.required", "description": "A current user must be set"}


def test_step_never_raises_and_reports_one_diagnostic_per_failure(registry: PraxisRegistry) -> None:
    registry.register_rule(define_rule(id="ok", description="ok", impl=lambda s, e: [{"tag": "Ok"}]))
    registry.register_rule(define_rule(id="bad", description="bad", impl=_boom))
    registry.register_rule(define_rule(id="bad.return", description="bad", impl=lambda s, e: None))
    registry.register_constraint(define_constraint(id="throws", description="t", impl=_boom))
    registry.register_constraint(define_constraint(id="false", description="f", impl=lambda s: False))
    registry.register_constraint(define_constraint(id="msg", description="m", impl=lambda s: "too many facts"))
    registry.register_constraint(define_constraint(id="true", description="t", impl=lambda s: True))
    engine = create_engine(registry=registry)

    result = engine.step([])

    rule_errors = result.diagnostics_of(DiagnosticKind.RULE_ERROR)
    violations = result.diagnostics_of(DiagnosticKind.CONSTRAINT_VIOLATION)
    assert [d.data["rule_id"] for d in rule_errors] == ["bad", "bad.return"]
    assert rule_errors[0].message == 'Error executing rule "bad": boom'
    assert rule_errors[0].data["error_type"] == "RuntimeError"
    assert [d.message for d in violations] == [
        'Error checking constraint "throws": boom',
        'Constraint "false" violated',
        "too many facts",
    ]
    assert [f.tag for f in result.state.facts] == ["Ok"]


def test_unknown_ids_become_diagnostics(registry: PraxisRegistry) -> None:
    engine = create_engine(registry=registry)

    result = engine.step_with_config([], StepConfig(rule_ids=["nope"], constraint_ids=["nada"]))

    assert [(d.kind, d.message) for d in result.diagnostics] == [
        (DiagnosticKind.RULE_ERROR, 'Rule "nope" not found in registry'),
        (DiagnosticKind.CONSTRAINT_VIOLATION, 'Constraint "nada" not found in registry'),
    ]


def test_step_with_config_runs_only_listed_ids_in_order(registry: PraxisRegistry) -> None:
    registry.register_rule(define_rule(id="a", description="a", impl=lambda s, e: [{"tag": "A"}]))
    registry.register_rule(define_rule(id="b", description="b", impl=lambda s, e: [{"tag": "B"}]))
    registry.register_rule(define_rule(id="c", description="c", impl=lambda s, e: [{"tag": "C"}]))
    engine = create_engine(registry=registry)

    result = engine.step_with_config([], {"rule_ids": ["c", "a"]})

    assert [f.tag for f in result.state.facts] == ["C", "A"]


def test_constraints_see_facts_from_the_same_step(registry: PraxisRegistry) -> None:
    registry.register_rule(define_rule(id="emit", description="e", impl=lambda s, e: [{"tag": "X"}]))
    registry.register_constraint(
        define_constraint(id="at.most.one", description="c", impl=lambda s: len(s.facts) <= 1 or "more than one X")
    )
    engine = create_engine(registry=registry)

    assert engine.step([]).ok
    second = engine.step([])
    assert [d.message for d in second.diagnostics] == ["more than one X"]
    # committed regardless of diagnostics
    assert len(engine.get_facts()) == 2


def test_facts_accumulate_in_order_across_steps_and_clear(auth_registry: PraxisRegistry) -> None:
    engine = create_engine(registry=auth_registry, initial_context={"currentUser": "alice"})

    engine.step([LOGIN])
    engine.step([{"tag": "LOGIN", "payload": {"username": "bob"}}])

    assert [f.payload["username"] for f in engine.get_facts()] == ["alice", "bob"]

    engine.clear_facts()
    assert engine.get_facts() == []


def test_getters_return_independent_copies(auth_registry: PraxisRegistry) -> None:
    engine = create_engine(registry=auth_registry, initial_context={"currentUser": "alice", "roles": ["admin"]})
    engine.step([LOGIN])

    context = engine.get_context()
    context["roles"].append("root")
    state = engine.get_state()
    state.facts.clear()
    facts = engine.get_facts()
    facts[0].payload["username"] = "mallory"

    assert engine.get_context()["roles"] == ["admin"]
    assert len(engine.get_state().facts) == 1
    assert engine.get_facts()[0].payload == {"username": "alice"}


def test_rule_mutating_its_state_view_cannot_corrupt_committed_facts(registry: PraxisRegistry) -> None:
    def _vandal(state: Any, events: Any) -> list[Any]:
        state.facts.clear()
        return []

    registry.register_rule(define_rule(id="vandal", description="v", impl=_vandal))
    engine = create_engine(registry=registry, initial_facts=[{"tag": "Keep"}])

    engine.step([])

    assert [f.tag for f in engine.get_facts()] == ["Keep"]


def test_invalid_event_becomes_rule_error_and_is_dropped(auth_registry: PraxisRegistry) -> None:
    engine = create_engine(registry=auth_registry, initial_context={"currentUser": "alice"})

    result = engine.step([{"payload": {}}, LOGIN])

    assert len(result.diagnostics_of(DiagnosticKind.RULE_ERROR)) == 1
    assert result.diagnostics[0].message.startswith("Invalid event at index 0")
    assert len(result.state.facts) == 1


def test_invalid_step_config_runs_nothing(auth_registry: PraxisRegistry) -> None:
    engine = create_engine(registry=auth_registry)

    result = engine.step_with_config([LOGIN], {"rule_ids": "auth.login", "unknown": True})

    assert result.state.facts == []
    assert result.diagnostics[0].message.startswith("Invalid step configuration")


def test_escape_hatches_update_context_and_add_facts(registry: PraxisRegistry) -> None:
    engine = create_engine(registry=registry, initial_context={"count": 1})

    engine.update_context(lambda ctx: {**ctx, "count": ctx["count"] + 1})
    engine.add_facts([Fact(tag="Seed", payload=1), {"tag": "Seed", "payload": 2}])

    assert engine.get_context() == {"count": 2}
    assert [f.payload for f in engine.get_facts()] == [1, 2]


def test_reset_restores_initial_state(auth_registry: PraxisRegistry) -> None:
    options = EngineOptions(registry=auth_registry, initial_context={"currentUser": "alice"}, initial_meta={"run": 1})
    engine = LogicEngine(options)
    engine.step([LOGIN])

    engine.reset(options)

    state = engine.get_state()
    assert state.facts == []
    assert state.context == {"currentUser": "alice"}
    assert state.meta == {"run": 1}
    assert state.protocol_version == "1.0.0"


def test_add_facts_rejects_non_fact_values(registry: PraxisRegistry) -> None:
    engine = create_engine(registry=registry)
    with pytest.raises(TypeError):
        engine.add_facts([42])


def test_steps_are_logged_at_debug(auth_registry: PraxisRegistry, log_messages: list[Any]) -> None:
    engine = create_engine(registry=auth_registry, initial_context={})
    engine.step([LOGIN])

    debug = [m.record["message"] for m in log_messages if m.record["level"].name == "DEBUG"]
    assert any(msg.startswith("step: rules=1 constraints=1 new_facts=1 diagnostics=1") for msg in debug)
    assert any("auth.required" in msg for msg in debug)


def test_update_context_rejects_a_context_that_cannot_be_copied(registry: PraxisRegistry) -> None:
    engine = create_engine(registry=registry, initial_context={"count": 1})

    with pytest.raises(TypeError):
        engine.update_context(lambda ctx: {"lock": threading.Lock()})

    assert engine.get_context() == {"count": 1}
    assert engine.step([]).ok


def test_rule_emitting_an_uncopyable_payload_becomes_a_rule_error(registry: PraxisRegistry) -> None:
    registry.register_rule(
        define_rule(id="handle", description="h", impl=lambda s, e: [Fact(tag="Handle", payload=threading.Lock())])
    )
    registry.register_rule(define_rule(id="ok", description="ok", impl=lambda s, e: [{"tag": "Ok"}]))
    engine = create_engine(registry=registry)

    result = engine.step([])

    rule_errors = result.diagnostics_of(DiagnosticKind.RULE_ERROR)
    assert [d.data["rule_id"] for d in rule_errors] == ["handle"]
    assert rule_errors[0].data["error_type"] == "TypeError"
    assert [f.tag for f in engine.get_facts()] == ["Ok"]


def test_constraint_result_with_hostile_equality_passes(registry: PraxisRegistry) -> None:
    class _NoCompare:
        def __eq__(self, other: object) -> bool:
            raise RuntimeError("no comparisons")

        __hash__ = object.__hash__

    registry.register_constraint(define_constraint(id="odd", description="o", impl=lambda s: _NoCompare()))
    registry.register_constraint(define_constraint(id="empty", description="e", impl=lambda s: ""))
    engine = create_engine(registry=registry)

    result = engine.step([])

    assert [d.message for d in result.diagnostics] == ['Constraint "empty" violated']


def test_rules_in_one_step_share_a_snapshot_taken_before_the_step(registry: PraxisRegistry) -> None:
    seen: list[int] = []

    def _count(state: Any, events: Any) -> list[Any]:
        seen.append(len(state.facts))
        return [{"tag": "Counted"}]

    registry.register_rule(define_rule(id="first", description="f", impl=_count))
    registry.register_rule(define_rule(id="second", description="s", impl=_count))
    engine = create_engine(registry=registry, initial_facts=[{"tag": "Seed"}])

    engine.step([])

    assert seen == [1, 1]
    assert len(engine.get_facts()) == 3
