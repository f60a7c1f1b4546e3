# logic_engine/decision_ledger/logic_ledger.py
from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Callable, Optional

from loguru import logger
from pydantic import Field

from logic_engine._compat import StrEnum, utc_now_iso
from logic_engine.adapters.persistence import FileSystem, LocalFileSystem, PathLike, read_json, write_json
from logic_engine.contracts import Assumption, AssumptionStatus, Contract, Example, WireModel

LEDGER_DIRNAME = "logic-ledger"
INDEX_FILENAME = "index.json"
LATEST_FILENAME = "LATEST.json"

BEHAVIOR_CHANGED = "behavior-changed"

_UNSAFE_ID_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


class ChangeSummary(StrEnum):
    INITIAL = "initial"
    UPDATED = "updated"
    NO_CHANGE = "no-change"


class CanonicalBehavior(WireModel):
    behavior: str
    examples: list[Example] = Field(default_factory=list)
    invariants: list[str] = Field(default_factory=list)


class ArtifactPresence(WireModel):
    contract_present: bool = True
    tests_present: bool = False
    spec_present: bool = False


class Drift(WireModel):
    change_summary: ChangeSummary
    assumptions_invalidated: list[str] = Field(default_factory=list)
    assumptions_revised: list[str] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)


class LogicLedgerEntry(WireModel):
    rule_id: str
    version: int = Field(ge=1)
    timestamp: str
    canonical_behavior: CanonicalBehavior
    assumptions: list[Assumption] = Field(default_factory=list)
    artifacts: ArtifactPresence
    drift: Drift


class LogicLedgerIndex(WireModel):
    """Derived lookup of ruleId -> ledger directory (relative to the root)."""

    by_rule_id: dict[str, str] = Field(default_factory=dict)


@dataclass(frozen=True)
class LogicLedgerWriteOptions:
    root_dir: PathLike
    author: str = "system"
    tests_present: bool = False
    spec_present: bool = False
    fs: Optional[FileSystem] = None
    now: Callable[[], str] = utc_now_iso


def _canon(obj: Any) -> str:
    """
    Canonical JSON string (stable across runs) for comparisons.
    """
    return json.dumps(obj, sort_keys=True, ensure_ascii=False, separators=(",", ":"))


def ledger_key(rule_id: str) -> str:
    """Sanitized rule id plus a short hash, so ids that sanitize identically stay apart."""
    digest = hashlib.sha256(rule_id.encode("utf-8")).hexdigest()[:6]
    return f"{_UNSAFE_ID_CHARS.sub('-', rule_id)}-{digest}".lower()


def version_filename(version: int) -> str:
    return f"v{version:04d}.json"


def _ledger_root(root_dir: PathLike) -> Path:
    return Path(root_dir) / LEDGER_DIRNAME


def ledger_dir_for(root_dir: PathLike, rule_id: str) -> Path:
    return _ledger_root(root_dir) / ledger_key(rule_id)


def compute_drift(previous: Optional[LogicLedgerEntry], contract: Contract) -> Drift:
    if previous is None:
        return Drift(change_summary=ChangeSummary.INITIAL)

    conflicts: list[str] = []
    if _canon(previous.canonical_behavior.to_payload()) != _canon(contract.canonical_behavior()):
        conflicts.append(BEHAVIOR_CHANGED)

    current = {a.id: a for a in contract.assumptions or []}
    prior = {a.id: a for a in previous.assumptions}

    revised = [
        a.id
        for a in contract.assumptions or []
        if a.id in prior and (prior[a.id].statement != a.statement or prior[a.id].status != a.status)
    ]
    invalidated = [
        a.id
        for a in previous.assumptions
        if a.id not in current or current[a.id].status == AssumptionStatus.INVALIDATED
    ]

    return Drift(
        change_summary=ChangeSummary.UPDATED if BEHAVIOR_CHANGED in conflicts else ChangeSummary.NO_CHANGE,
        assumptions_invalidated=invalidated,
        assumptions_revised=revised,
        conflicts=conflicts,
    )


def read_logic_ledger_latest(
    root_dir: PathLike, rule_id: str, *, fs: Optional[FileSystem] = None
) -> Optional[LogicLedgerEntry]:
    raw = read_json(ledger_dir_for(root_dir, rule_id) / LATEST_FILENAME, None, fs=fs)
    if raw is None:
        return None
    return LogicLedgerEntry.model_validate(raw)


def read_logic_ledger_history(
    root_dir: PathLike, rule_id: str, *, fs: Optional[FileSystem] = None
) -> list[LogicLedgerEntry]:
    """All versions for `rule_id`, oldest first. A missing version file is an error."""
    filesystem = fs or LocalFileSystem()
    latest = read_logic_ledger_latest(root_dir, rule_id, fs=filesystem)
    if latest is None:
        return []

    ledger_dir = ledger_dir_for(root_dir, rule_id)
    return [
        LogicLedgerEntry.model_validate_json(filesystem.read_text(ledger_dir / version_filename(version)))
        for version in range(1, latest.version + 1)
    ]


def read_logic_ledger_index(root_dir: PathLike, *, fs: Optional[FileSystem] = None) -> LogicLedgerIndex:
    raw = read_json(_ledger_root(root_dir) / INDEX_FILENAME, None, fs=fs)
    if raw is None:
        return LogicLedgerIndex()
    return LogicLedgerIndex.model_validate(raw)


def _update_index(root_dir: PathLike, rule_id: str, relative_dir: str, filesystem: FileSystem) -> None:
    index = read_logic_ledger_index(root_dir, fs=filesystem)
    by_rule_id = {**index.by_rule_id, rule_id: relative_dir}
    write_json(_ledger_root(root_dir) / INDEX_FILENAME, LogicLedgerIndex(by_rule_id=by_rule_id), fs=filesystem)


def write_logic_ledger_entry(contract: Contract, options: LogicLedgerWriteOptions) -> LogicLedgerEntry:
    """
    Record the next version of `contract` under
    `<root>/logic-ledger/<key>/vNNNN.json`, mirror it to LATEST.json and
    point the global index at the rule's directory.

    There is no locking: concurrent writers for the same rule race on the
    version number and on the index. Wrap calls in an external lock when
    several processes write to one root.
    """
    filesystem = options.fs or LocalFileSystem()
    ledger_dir = ledger_dir_for(options.root_dir, contract.rule_id)

    previous = read_logic_ledger_latest(options.root_dir, contract.rule_id, fs=filesystem)
    next_version = previous.version + 1 if previous is not None else 1

    entry = LogicLedgerEntry(
        rule_id=contract.rule_id,
        version=next_version,
        timestamp=options.now(),
        canonical_behavior=CanonicalBehavior.model_validate(contract.canonical_behavior()),
        assumptions=list(contract.assumptions or []),
        artifacts=ArtifactPresence(
            contract_present=True,
            tests_present=options.tests_present,
            spec_present=options.spec_present,
        ),
        drift=compute_drift(previous, contract),
    )

    write_json(ledger_dir / version_filename(next_version), entry, fs=filesystem)
    write_json(ledger_dir / LATEST_FILENAME, entry, fs=filesystem)

    relative_dir = PurePosixPath(LEDGER_DIRNAME, ledger_key(contract.rule_id)).as_posix()
    _update_index(options.root_dir, contract.rule_id, relative_dir, filesystem)

    logger.info(
        "logic ledger: {} v{} ({}) recorded by {}",
        contract.rule_id,
        next_version,
        entry.drift.change_summary.value,
        options.author,
    )
    return entry
