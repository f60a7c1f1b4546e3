# logic_engine/decision_ledger/ledger.py
from __future__ import annotations

import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Optional, Union

from loguru import logger
from pydantic import Field

from logic_engine._compat import Self, StrEnum
from logic_engine.adapters.persistence import PathLike, append_jsonl, read_jsonl
from logic_engine.adapters.storage import KeyValueStore
from logic_engine.contracts import Assumption, AssumptionStatus, Contract, Impact, WireModel
from logic_engine.errors import DuplicateIdError, LedgerFormatError

LEDGER_FORMAT_VERSION = "1.0.0"


class LedgerEntryStatus(StrEnum):
    ACTIVE = "active"
    SUPERSEDED = "superseded"
    DEPRECATED = "deprecated"


class LedgerEntry(WireModel):
    id: str = Field(min_length=1)
    timestamp: str
    status: LedgerEntryStatus = LedgerEntryStatus.ACTIVE
    author: str
    contract: Contract
    supersedes: Optional[str] = None
    # e.g. "initial", "assumption-revised", "behavior-updated"
    reason: Optional[str] = None

    @property
    def rule_id(self) -> str:
        return self.contract.rule_id


class LedgerStats(WireModel):
    total_entries: int = 0
    active_entries: int = 0
    superseded_entries: int = 0
    deprecated_entries: int = 0
    unique_rules: int = 0


EntryLike = Union[LedgerEntry, Mapping[str, Any]]


class BehaviorLedger:
    """
    Append-only log of contract versions.

    Two views are kept:
    - the history: every appended entry exactly as it was appended;
    - the status table: the current status per entry id, the only thing
      supersession ever changes.

    Query methods (`get_entry`, `get_all_entries`, `get_latest_entry`, ...)
    read entries through the status table. `get_history` returns the
    verbatim records.

    With `journal_path` set, each accepted entry is also appended to a
    JSONL file that `replay_jsonl` can rebuild the ledger from.
    """

    def __init__(self, *, journal_path: Optional[PathLike] = None) -> None:
        self._history: list[LedgerEntry] = []
        self._by_id: dict[str, LedgerEntry] = {}
        self._status: dict[str, LedgerEntryStatus] = {}
        self._journal_path = Path(journal_path) if journal_path is not None else None

    def append(self, entry: EntryLike) -> LedgerEntry:
        record = entry if isinstance(entry, LedgerEntry) else LedgerEntry.model_validate(entry)
        if record.id in self._by_id:
            raise DuplicateIdError(
                "Ledger entry", record.id, message=f"Ledger entry with ID '{record.id}' already exists"
            )

        if record.supersedes is not None:
            previous = self._by_id.get(record.supersedes)
            if (
                previous is not None
                and previous.rule_id == record.rule_id
                and self._status[previous.id] == LedgerEntryStatus.ACTIVE
            ):
                self._status[previous.id] = LedgerEntryStatus.SUPERSEDED
            else:
                logger.debug(
                    "ledger entry {} supersedes {} which is not an active entry for {}; status table unchanged",
                    record.id,
                    record.supersedes,
                    record.rule_id,
                )

        self._history.append(record)
        self._by_id[record.id] = record
        self._status[record.id] = record.status

        if self._journal_path is not None:
            append_jsonl(self._journal_path, record.to_payload())

        return record

    # ------------------------------------------------------------------
    # Queries (current-status view)
    # ------------------------------------------------------------------

    def _current(self, record: LedgerEntry) -> LedgerEntry:
        status = self._status[record.id]
        if status == record.status:
            return record
        return record.model_copy(update={"status": status})

    def _is_active(self, record: LedgerEntry) -> bool:
        return self._status[record.id] == LedgerEntryStatus.ACTIVE

    def get_entry(self, entry_id: str) -> Optional[LedgerEntry]:
        record = self._by_id.get(entry_id)
        return self._current(record) if record is not None else None

    def get_all_entries(self) -> list[LedgerEntry]:
        return [self._current(record) for record in self._history]

    def get_history(self) -> list[LedgerEntry]:
        return list(self._history)

    def get_entries_for_rule(self, rule_id: str) -> list[LedgerEntry]:
        return [self._current(record) for record in self._history if record.rule_id == rule_id]

    def get_latest_entry(self, rule_id: str) -> Optional[LedgerEntry]:
        for record in reversed(self._history):
            if record.rule_id == rule_id and self._is_active(record):
                return record
        return None

    def get_active_assumptions(self) -> dict[str, Assumption]:
        assumptions: dict[str, Assumption] = {}
        for record in self._history:
            if not self._is_active(record):
                continue
            for assumption in record.contract.assumptions or []:
                if assumption.status == AssumptionStatus.ACTIVE:
                    assumptions[assumption.id] = assumption
        return assumptions

    def find_assumptions_by_impact(self, impact: Union[Impact, str]) -> list[Assumption]:
        wanted = Impact(impact)
        found: list[Assumption] = []
        for record in self._history:
            if not self._is_active(record):
                continue
            for assumption in record.contract.assumptions or []:
                if assumption.status == AssumptionStatus.ACTIVE and wanted in assumption.impacts:
                    found.append(assumption)
        return found

    def get_stats(self) -> LedgerStats:
        statuses = [self._status[record.id] for record in self._history]
        return LedgerStats(
            total_entries=len(self._history),
            active_entries=statuses.count(LedgerEntryStatus.ACTIVE),
            superseded_entries=statuses.count(LedgerEntryStatus.SUPERSEDED),
            deprecated_entries=statuses.count(LedgerEntryStatus.DEPRECATED),
            unique_rules=len({record.rule_id for record in self._history}),
        )

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def to_payload(self) -> dict[str, Any]:
        return {
            "version": LEDGER_FORMAT_VERSION,
            "entries": [record.to_payload() for record in self._history],
            "stats": self.get_stats().to_payload(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False, indent=2)

    @classmethod
    def from_payload(cls, data: object) -> Self:
        """Rebuild by replaying the recorded history through `append`, in order."""
        if not isinstance(data, Mapping):
            raise LedgerFormatError(f"Expected a ledger object, got {type(data).__name__}")
        entries = data.get("entries")
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise LedgerFormatError("Ledger 'entries' must be a list")

        ledger = cls()
        for raw in entries:
            ledger.append(raw)
        return ledger

    @classmethod
    def from_json(cls, text: str) -> Self:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as exc:
            raise LedgerFormatError(f"Invalid ledger JSON: {exc.msg}") from exc
        return cls.from_payload(data)

    def save(self, store: KeyValueStore, key: str) -> None:
        store.set(key, self.to_payload())

    @classmethod
    def load(cls, store: KeyValueStore, key: str) -> Self:
        data = store.get(key)
        if data is None:
            return cls()
        return cls.from_payload(data)

    @classmethod
    def replay_jsonl(cls, path: PathLike, *, journal_path: Optional[PathLike] = None) -> Self:
        ledger = cls(journal_path=journal_path)
        for _, raw in read_jsonl(path):
            ledger.append(raw)
        return ledger


def create_behavior_ledger(*, journal_path: Optional[PathLike] = None) -> BehaviorLedger:
    return BehaviorLedger(journal_path=journal_path)
