from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from logic_engine.engine import LogicEngine
from logic_engine.protocol import StepResult
from logic_engine.rules import PraxisRegistry


@dataclass
class EngineStepState:
    registry: PraxisRegistry | None = None
    engine: LogicEngine | None = None
    pending_events: list[dict[str, Any]] = field(default_factory=list)
    last_result: StepResult | None = None


def get_engine_step_state(context: Any) -> EngineStepState:
    state = getattr(context, "_engine_step_state", None)
    if not isinstance(state, EngineStepState):
        state = EngineStepState()
        setattr(context, "_engine_step_state", state)
    return state
