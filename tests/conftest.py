from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from typing import Any

import pytest
from loguru import logger

from logic_engine.contracts import Contract, define_contract
from logic_engine.dsl import define_constraint, define_event, define_fact, define_rule
from logic_engine.protocol import Event, State
from logic_engine.rules import ConstraintDescriptor, PraxisRegistry, RuleDescriptor

Login = define_event("LOGIN")
UserLoggedIn = define_fact("UserLoggedIn")


@pytest.fixture(autouse=True)
def log_messages() -> Iterator[list[Any]]:
    """Route loguru into a list for the duration of a test."""
    messages: list[Any] = []
    logger.remove()
    logger.enable("logic_engine")
    logger.add(messages.append, level="DEBUG", format="{level} | {message}")
    yield messages
    logger.remove()


@pytest.fixture
def make_contract() -> Callable[..., Contract]:
    def _make_contract(
        *,
        rule_id: str = "auth.login",
        behavior: str = "Process login events and create user session facts",
        examples: Sequence[dict[str, str]] | None = None,
        invariants: Sequence[str] = ("Session must have unique ID",),
        assumptions: Sequence[dict[str, Any]] | None = None,
        version: str | None = None,
    ) -> Contract:
        return define_contract(
            rule_id=rule_id,
            behavior=behavior,
            examples=examples
            or [
                {
                    "given": "User provides valid credentials",
                    "when": "LOGIN event is received",
                    "then": "UserLoggedIn fact is emitted",
                }
            ],
            invariants=invariants,
            assumptions=assumptions,
            version=version,
        )

    return _make_contract


def login_rule_impl(state: State, events: Sequence[Event]) -> list[Any]:
    return [UserLoggedIn.create({"username": e.payload["username"]}) for e in Login.select(events)]


def auth_required_impl(state: State) -> bool:
    return bool((state.context or {}).get("currentUser"))


@pytest.fixture
def login_rule(make_contract: Callable[..., Contract]) -> RuleDescriptor:
    return define_rule(
        id="auth.login",
        description="Process login events",
        impl=login_rule_impl,
        contract=make_contract(),
    )


@pytest.fixture
def auth_required(make_contract: Callable[..., Contract]) -> ConstraintDescriptor:
    return define_constraint(
        id="auth.required",
        description="A current user must be set",
        impl=auth_required_impl,
        contract=make_contract(
            rule_id="auth.required",
            behavior="Fails unless context.currentUser is set",
            invariants=["Never passes with an empty currentUser"],
        ),
    )


@pytest.fixture
def gaps() -> list[Any]:
    return []


@pytest.fixture
def registry(gaps: list[Any]) -> PraxisRegistry:
    return PraxisRegistry(on_gap=gaps.append)


@pytest.fixture
def auth_registry(
    registry: PraxisRegistry,
    login_rule: RuleDescriptor,
    auth_required: ConstraintDescriptor,
) -> PraxisRegistry:
    registry.register_rule(login_rule)
    registry.register_constraint(auth_required)
    return registry
