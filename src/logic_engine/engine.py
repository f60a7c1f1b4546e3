# logic_engine/engine.py
from __future__ import annotations

import copy
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from loguru import logger
from pydantic import ValidationError

from logic_engine._compat import StrEnum
from logic_engine.protocol import (
    PROTOCOL_VERSION,
    Diagnostic,
    DiagnosticKind,
    Event,
    Fact,
    State,
    StepConfig,
    StepResult,
)
from logic_engine.rules import PraxisRegistry

EventLike = Union[Event, Mapping[str, Any]]
FactLike = Union[Fact, Mapping[str, Any]]


@dataclass(frozen=True)
class EngineOptions:
    registry: PraxisRegistry
    initial_context: Any = None
    initial_facts: Optional[Sequence[FactLike]] = None
    initial_meta: Optional[Mapping[str, Any]] = None


class OperationKind(StrEnum):
    RULE = "rule"
    CONSTRAINT = "constraint"


@dataclass(frozen=True)
class _Outcome:
    value: Any = None
    error: Optional[Exception] = None


def _guarded(fn: Callable[..., Any], *args: Any) -> _Outcome:
    """Failure boundary shared by rule and constraint invocations."""
    try:
        return _Outcome(value=fn(*args))
    except Exception as exc:
        return _Outcome(error=exc)


def _snapshot(state: State) -> _Outcome:
    return _guarded(lambda: state.model_copy(deep=True))


def _unwrap(snapshot: _Outcome) -> State:
    # Called inside a guarded callable: a failed copy becomes that call's error.
    if snapshot.error is not None:
        raise snapshot.error
    return snapshot.value


def _error_data(kind: OperationKind, item_id: str, exc: Exception) -> dict[str, Any]:
    return {f"{kind.value}_id": item_id, "error": str(exc), "error_type": type(exc).__name__}


def _initial_state(options: EngineOptions) -> State:
    return State(
        context=copy.deepcopy(options.initial_context),
        facts=[Fact.from_raw(f).model_copy(deep=True) for f in (options.initial_facts or [])],
        meta=dict(copy.deepcopy(options.initial_meta)) if options.initial_meta is not None else {},
        protocol_version=PROTOCOL_VERSION,
    )


class LogicEngine:
    """
    Owns the State aggregate and evolves it one step at a time.

    A step runs the configured rules (in order) against the current state,
    appends every fact they produced, then evaluates the configured
    constraints against the resulting state. Failures of any kind become
    diagnostics; the new state is committed regardless, so callers wanting
    fail-closed behavior inspect `StepResult.diagnostics` and call `reset`.

    Reads (`get_state`, `get_context`, `get_facts`) return deep copies.
    """

    def __init__(self, options: EngineOptions) -> None:
        self._registry = options.registry
        self._state = _initial_state(options)

    @property
    def registry(self) -> PraxisRegistry:
        return self._registry

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_state(self) -> State:
        return self._state.model_copy(deep=True)

    def get_context(self) -> Any:
        return copy.deepcopy(self._state.context)

    def get_facts(self) -> list[Fact]:
        return [f.model_copy(deep=True) for f in self._state.facts]

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def step(self, events: Sequence[EventLike]) -> StepResult:
        config = StepConfig(
            rule_ids=self._registry.get_rule_ids(),
            constraint_ids=self._registry.get_constraint_ids(),
        )
        return self.step_with_config(events, config)

    def step_with_config(
        self,
        events: Sequence[EventLike],
        config: Union[StepConfig, Mapping[str, Any]],
    ) -> StepResult:
        diagnostics: list[Diagnostic] = []

        step_config = self._coerce_config(config, diagnostics)
        step_events = self._coerce_events(events, diagnostics)

        # One snapshot per phase: rules share a copy of the pre-step state,
        # constraints share a copy of the post-rule state.
        rule_view = _snapshot(self._state)
        new_facts: list[Fact] = []
        for rule_id in step_config.rule_ids:
            new_facts.extend(self._apply_rule(rule_id, rule_view, step_events, diagnostics))

        new_state = State(
            context=self._state.context,
            facts=[*self._state.facts, *new_facts],
            meta=self._state.meta,
            protocol_version=self._state.protocol_version,
        )

        constraint_view = _snapshot(new_state)
        for constraint_id in step_config.constraint_ids:
            self._check_constraint(constraint_id, constraint_view, diagnostics)

        self._state = new_state

        logger.debug(
            "step: rules={} constraints={} new_facts={} diagnostics={}",
            len(step_config.rule_ids),
            len(step_config.constraint_ids),
            len(new_facts),
            len(diagnostics),
        )
        for diagnostic in diagnostics:
            logger.debug("step diagnostic [{}] {}", diagnostic.kind.value, diagnostic.message)

        return StepResult(state=self.get_state(), diagnostics=diagnostics)

    def _apply_rule(
        self,
        rule_id: str,
        view: _Outcome,
        events: Sequence[Event],
        diagnostics: list[Diagnostic],
    ) -> list[Fact]:
        rule = self._registry.get_rule(rule_id)
        if rule is None:
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.RULE_ERROR,
                    message=f'Rule "{rule_id}" not found in registry',
                    data={"rule_id": rule_id},
                )
            )
            return []

        # Produced facts are copied too, so committed state stays deep-copyable.
        outcome = _guarded(
            lambda: [Fact.from_raw(f).model_copy(deep=True) for f in rule.impl(_unwrap(view), list(events))]
        )
        if outcome.error is not None:
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.RULE_ERROR,
                    message=f'Error executing rule "{rule_id}": {outcome.error}',
                    data=_error_data(OperationKind.RULE, rule_id, outcome.error),
                )
            )
            return []
        return outcome.value

    def _check_constraint(
        self,
        constraint_id: str,
        view: _Outcome,
        diagnostics: list[Diagnostic],
    ) -> None:
        constraint = self._registry.get_constraint(constraint_id)
        if constraint is None:
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.CONSTRAINT_VIOLATION,
                    message=f'Constraint "{constraint_id}" not found in registry',
                    data={"constraint_id": constraint_id},
                )
            )
            return

        outcome = _guarded(lambda: constraint.impl(_unwrap(view)))
        if outcome.error is not None:
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.CONSTRAINT_VIOLATION,
                    message=f'Error checking constraint "{constraint_id}": {outcome.error}',
                    data=_error_data(OperationKind.CONSTRAINT, constraint_id, outcome.error),
                )
            )
            return

        result = outcome.value
        if result is False or (isinstance(result, str) and not result):
            message = f'Constraint "{constraint_id}" violated'
        elif isinstance(result, str):
            message = result
        else:
            return

        diagnostics.append(
            Diagnostic(
                kind=DiagnosticKind.CONSTRAINT_VIOLATION,
                message=message,
                data={"constraint_id": constraint_id, "description": constraint.description},
            )
        )

    @staticmethod
    def _coerce_config(
        config: Union[StepConfig, Mapping[str, Any]],
        diagnostics: list[Diagnostic],
    ) -> StepConfig:
        if isinstance(config, StepConfig):
            return config
        try:
            return StepConfig.model_validate(config)
        except (ValidationError, TypeError) as exc:
            diagnostics.append(
                Diagnostic(
                    kind=DiagnosticKind.RULE_ERROR,
                    message=f"Invalid step configuration: {exc}",
                    data={"error_type": type(exc).__name__},
                )
            )
            return StepConfig()

    @staticmethod
    def _coerce_events(events: Sequence[EventLike], diagnostics: list[Diagnostic]) -> list[Event]:
        out: list[Event] = []
        for index, raw in enumerate(events or ()):
            try:
                out.append(Event.from_raw(raw))
            except (ValidationError, TypeError) as exc:
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.RULE_ERROR,
                        message=f"Invalid event at index {index}: {exc}",
                        data={"event_index": index, "error_type": type(exc).__name__},
                    )
                )
        return out

    # ------------------------------------------------------------------
    # Escape hatches (bypass rule evaluation)
    # ------------------------------------------------------------------

    def update_context(self, updater: Callable[[Any], Any]) -> None:
        context = copy.deepcopy(updater(copy.deepcopy(self._state.context)))
        self._state = self._state.model_copy(update={"context": context})

    def add_facts(self, facts: Sequence[FactLike]) -> None:
        added = [Fact.from_raw(f).model_copy(deep=True) for f in facts]
        self._state = self._state.model_copy(update={"facts": [*self._state.facts, *added]})

    def clear_facts(self) -> None:
        self._state = self._state.model_copy(update={"facts": []})

    def reset(self, options: EngineOptions) -> None:
        self._registry = options.registry
        self._state = _initial_state(options)


def create_engine(
    *,
    registry: PraxisRegistry,
    initial_context: Any = None,
    initial_facts: Optional[Sequence[FactLike]] = None,
    initial_meta: Optional[Mapping[str, Any]] = None,
) -> LogicEngine:
    return LogicEngine(
        EngineOptions(
            registry=registry,
            initial_context=initial_context,
            initial_facts=initial_facts,
            initial_meta=initial_meta,
        )
    )
