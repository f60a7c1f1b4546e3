"""
praxis-ledger distribution import namespace.

Re-exports the public surface of the `logic_engine` packages so callers can
write `from praxis import create_engine, define_contract`.
"""

from importlib.metadata import PackageNotFoundError, version

# src/praxis/__init__.py
from logic_engine.config import AppConfig
from logic_engine.contracts import (
    Assumption,
    Contract,
    ContractGap,
    Example,
    Reference,
    ValidationReport,
    define_contract,
    get_contract,
    get_contract_from_descriptor,
    is_contract,
)
from logic_engine.decision_ledger.facts_events import (
    AcknowledgeContractGap,
    ContractAdded,
    ContractGapAcknowledged,
    ContractMissing,
    ContractUpdated,
    ContractValidated,
    ValidateContracts,
    gap_to_fact,
)
from logic_engine.decision_ledger.ledger import BehaviorLedger, LedgerEntry, create_behavior_ledger
from logic_engine.decision_ledger.logic_ledger import (
    LogicLedgerEntry,
    LogicLedgerIndex,
    LogicLedgerWriteOptions,
    read_logic_ledger_history,
    read_logic_ledger_index,
    write_logic_ledger_entry,
)
from logic_engine.decision_ledger.scenarios import contract_scenario_ids, render_contract_feature
from logic_engine.decision_ledger.validation import (
    ArtifactIndex,
    ValidateOptions,
    format_validation_report,
    format_validation_report_json,
    format_validation_report_sarif,
    validate_contracts,
)
from logic_engine.dsl import define_constraint, define_event, define_fact, define_module, define_rule
from logic_engine.engine import EngineOptions, LogicEngine, create_engine
from logic_engine.errors import ContractDefinitionError, DuplicateIdError, LedgerFormatError, PraxisError
from logic_engine.introspection import RegistryIntrospector
from logic_engine.log import configure_logging, disable_logging
from logic_engine.protocol import PROTOCOL_VERSION, Diagnostic, Event, Fact, State, StepConfig, StepResult
from logic_engine.rules import ConstraintDescriptor, PraxisModule, PraxisRegistry, RuleDescriptor

try:
    __version__ = version("praxis-ledger")
except PackageNotFoundError:  # pragma: no cover - fallback for editable/local non-built environments
    __version__ = "0+unknown"

__all__ = [
    "AcknowledgeContractGap",
    "AppConfig",
    "ArtifactIndex",
    "Assumption",
    "BehaviorLedger",
    "ConstraintDescriptor",
    "Contract",
    "ContractAdded",
    "ContractDefinitionError",
    "ContractGap",
    "ContractGapAcknowledged",
    "ContractMissing",
    "ContractUpdated",
    "ContractValidated",
    "Diagnostic",
    "DuplicateIdError",
    "EngineOptions",
    "Event",
    "Example",
    "Fact",
    "LedgerEntry",
    "LedgerFormatError",
    "LogicEngine",
    "LogicLedgerEntry",
    "LogicLedgerIndex",
    "LogicLedgerWriteOptions",
    "PROTOCOL_VERSION",
    "PraxisError",
    "PraxisModule",
    "PraxisRegistry",
    "Reference",
    "RegistryIntrospector",
    "RuleDescriptor",
    "State",
    "StepConfig",
    "StepResult",
    "ValidateContracts",
    "ValidateOptions",
    "ValidationReport",
    "__version__",
    "configure_logging",
    "contract_scenario_ids",
    "create_behavior_ledger",
    "create_engine",
    "define_constraint",
    "define_contract",
    "define_event",
    "define_fact",
    "define_module",
    "define_rule",
    "disable_logging",
    "format_validation_report",
    "format_validation_report_json",
    "format_validation_report_sarif",
    "gap_to_fact",
    "get_contract",
    "get_contract_from_descriptor",
    "is_contract",
    "read_logic_ledger_history",
    "read_logic_ledger_index",
    "render_contract_feature",
    "validate_contracts",
    "write_logic_ledger_entry",
]
