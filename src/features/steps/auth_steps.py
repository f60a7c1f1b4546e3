# features/steps/auth_steps.py
from __future__ import annotations

from typing import Any

from behave import given, then, when

from logic_engine.contracts import define_contract
from logic_engine.dsl import define_constraint, define_event, define_fact, define_module, define_rule
from logic_engine.engine import create_engine
from logic_engine.protocol import Event, State
from logic_engine.rules import PraxisRegistry
from praxis.step_state import get_engine_step_state

Login = define_event("LOGIN")
UserLoggedIn = define_fact("UserLoggedIn")


def _login_rule(state: State, events: list[Event]) -> list[Any]:
    return [UserLoggedIn.create({"username": e.payload["username"]}) for e in Login.select(events)]


def _auth_required(state: State) -> bool | str:
    context = state.context or {}
    if context.get("currentUser"):
        return True
    return "Authentication required: no current user in context"


AUTH_MODULE = define_module(
    rules=[
        define_rule(
            id="auth.login",
            description="Process login events",
            impl=_login_rule,
            contract=define_contract(
                rule_id="auth.login",
                behavior="Process login events and create user session facts",
                examples=[
                    {
                        "given": "User provides valid credentials",
                        "when": "LOGIN event is received",
                        "then": "UserLoggedIn fact is emitted",
                    }
                ],
                invariants=["One UserLoggedIn fact per LOGIN event"],
            ),
        )
    ],
    constraints=[
        define_constraint(
            id="auth.required",
            description="A current user must be set",
            impl=_auth_required,
            contract=define_contract(
                rule_id="auth.required",
                behavior="Fails unless the context names a current user",
                examples=[
                    {
                        "given": "context.currentUser is unset",
                        "when": "a step completes",
                        "then": "a constraint violation is reported",
                    }
                ],
                invariants=["Never passes with an empty currentUser"],
            ),
        )
    ],
)


@given("a registry with the auth login module")
def step_registry(context: Any) -> None:
    st = get_engine_step_state(context)
    st.registry = PraxisRegistry()
    st.registry.register_module(AUTH_MODULE)


@given('an engine whose context has current user "{username}"')
def step_engine_with_user(context: Any, username: str) -> None:
    st = get_engine_step_state(context)
    assert st.registry is not None
    st.engine = create_engine(registry=st.registry, initial_context={"currentUser": username})


@given("an engine with an empty context")
def step_engine_without_user(context: Any) -> None:
    st = get_engine_step_state(context)
    assert st.registry is not None
    st.engine = create_engine(registry=st.registry, initial_context={})


@when('the engine steps a LOGIN event for "{username}"')
def step_login(context: Any, username: str) -> None:
    st = get_engine_step_state(context)
    assert st.engine is not None
    st.last_result = st.engine.step([{"tag": "LOGIN", "payload": {"username": username}}])


@then('the state holds {count:d} "{tag}" fact')
@then('the state holds {count:d} "{tag}" facts')
def step_fact_count(context: Any, count: int, tag: str) -> None:
    st = get_engine_step_state(context)
    assert st.engine is not None
    facts = [f for f in st.engine.get_facts() if f.tag == tag]
    assert len(facts) == count, facts


@then("the step reports {count:d} diagnostics")
def step_no_diagnostics(context: Any, count: int) -> None:
    st = get_engine_step_state(context)
    assert st.last_result is not None
    assert len(st.last_result.diagnostics) == count, st.last_result.diagnostics


@then('the step reports {count:d} "{kind}" diagnostic')
def step_diagnostic_kind(context: Any, count: int, kind: str) -> None:
    st = get_engine_step_state(context)
    assert st.last_result is not None
    assert len(st.last_result.diagnostics) == count, st.last_result.diagnostics
    assert all(d.kind.value == kind for d in st.last_result.diagnostics)
