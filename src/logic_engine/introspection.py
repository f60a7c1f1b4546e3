# logic_engine/introspection.py
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from logic_engine.contracts import get_contract_from_descriptor
from logic_engine.protocol import PROTOCOL_VERSION
from logic_engine.rules import ConstraintDescriptor, PraxisRegistry, RuleDescriptor

_SCHEMA_CONFIG = ConfigDict(extra="forbid", frozen=True, alias_generator=to_camel, populate_by_name=True)


class NodeSchema(BaseModel):
    model_config = _SCHEMA_CONFIG
    id: str
    type: Literal["rule", "constraint"]
    description: str
    has_contract: bool
    contract_version: Optional[str] = None
    meta: Optional[dict[str, Any]] = None


class RegistryStats(BaseModel):
    model_config = _SCHEMA_CONFIG
    rule_count: int
    constraint_count: int
    rules_by_id: list[str] = Field(default_factory=list)
    constraints_by_id: list[str] = Field(default_factory=list)
    contract_gap_count: int = 0


class RegistrySchema(BaseModel):
    model_config = _SCHEMA_CONFIG
    protocol_version: str
    rules: list[NodeSchema] = Field(default_factory=list)
    constraints: list[NodeSchema] = Field(default_factory=list)


def _jsonable_meta(meta: Optional[Mapping[str, Any]]) -> Optional[dict[str, Any]]:
    # The contract is summarized by has_contract/contract_version instead.
    if not meta:
        return None
    return {str(k): v for k, v in meta.items() if k != "contract"}


def _node(descriptor: Union[RuleDescriptor, ConstraintDescriptor], node_type: Literal["rule", "constraint"]) -> NodeSchema:
    contract = get_contract_from_descriptor(descriptor)
    return NodeSchema(
        id=descriptor.id,
        type=node_type,
        description=descriptor.description,
        has_contract=contract is not None,
        contract_version=contract.version if contract is not None else None,
        meta=_jsonable_meta(descriptor.meta),
    )


class RegistryIntrospector:
    def __init__(self, registry: PraxisRegistry) -> None:
        self._registry = registry

    def get_stats(self) -> RegistryStats:
        return RegistryStats(
            rule_count=len(self._registry.get_rule_ids()),
            constraint_count=len(self._registry.get_constraint_ids()),
            rules_by_id=self._registry.get_rule_ids(),
            constraints_by_id=self._registry.get_constraint_ids(),
            contract_gap_count=len(self._registry.get_contract_gaps()),
        )

    def generate_schema(self, protocol_version: str = PROTOCOL_VERSION) -> RegistrySchema:
        return RegistrySchema(
            protocol_version=protocol_version,
            rules=[_node(rule, "rule") for rule in self._registry.get_all_rules()],
            constraints=[_node(constraint, "constraint") for constraint in self._registry.get_all_constraints()],
        )
