# logic_engine/dsl.py
from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Optional

from logic_engine.contracts import Contract
from logic_engine.protocol import Event, Fact
from logic_engine.rules import (
    ConstraintDescriptor,
    ConstraintFn,
    PraxisModule,
    RuleDescriptor,
    RuleFn,
)


@dataclass(frozen=True)
class FactDefinition:
    """
    Named fact type.

        UserLoggedIn = define_fact("UserLoggedIn")
        fact = UserLoggedIn.create({"user_id": "123"})
        assert UserLoggedIn.is_(fact)
    """

    tag: str

    def create(self, payload: Any = None) -> Fact:
        return Fact(tag=self.tag, payload=payload)

    def is_(self, fact: object) -> bool:
        return getattr(fact, "tag", None) == self.tag

    def select(self, facts: Sequence[Fact]) -> list[Fact]:
        return [f for f in facts if self.is_(f)]


@dataclass(frozen=True)
class EventDefinition:
    tag: str

    def create(self, payload: Any = None) -> Event:
        return Event(tag=self.tag, payload=payload)

    def is_(self, event: object) -> bool:
        return getattr(event, "tag", None) == self.tag

    def select(self, events: Sequence[Event]) -> list[Event]:
        return [e for e in events if self.is_(e)]


def define_fact(tag: str) -> FactDefinition:
    return FactDefinition(tag=tag)


def define_event(tag: str) -> EventDefinition:
    return EventDefinition(tag=tag)


def define_rule(
    *,
    id: str,
    description: str,
    impl: RuleFn,
    contract: Optional[Contract] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> RuleDescriptor:
    return RuleDescriptor(id=id, description=description, impl=impl, contract=contract, meta=meta)


def define_constraint(
    *,
    id: str,
    description: str,
    impl: ConstraintFn,
    contract: Optional[Contract] = None,
    meta: Optional[Mapping[str, Any]] = None,
) -> ConstraintDescriptor:
    return ConstraintDescriptor(id=id, description=description, impl=impl, contract=contract, meta=meta)


def define_module(
    *,
    rules: Sequence[RuleDescriptor] = (),
    constraints: Sequence[ConstraintDescriptor] = (),
    meta: Optional[Mapping[str, Any]] = None,
) -> PraxisModule:
    return PraxisModule(rules=tuple(rules), constraints=tuple(constraints), meta=meta)
