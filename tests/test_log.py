from __future__ import annotations

from pathlib import Path
from typing import Any

from loguru import logger

from logic_engine.config import LogConfig
from logic_engine.contracts import ContractGap, MissingArtifact, Severity
from logic_engine.log import configure_logging, disable_logging
from logic_engine.rules import log_contract_gap


def test_configure_logging_writes_rotating_file(tmp_path: Path) -> None:
    configure_logging(LogConfig(level="DEBUG", dir=str(tmp_path / "logs")))
    logger.info("hello from the ledger")
    logger.remove()

    files = list((tmp_path / "logs").glob("*.log"))
    assert len(files) == 1
    assert "hello from the ledger" in files[0].read_text(encoding="utf-8")


def test_disable_logging_silences_library_messages(log_messages: list[Any]) -> None:
    gap = ContractGap(rule_id="r", missing=[MissingArtifact.CONTRACT], severity=Severity.WARNING)

    disable_logging()
    try:
        log_contract_gap(gap)
    finally:
        logger.enable("logic_engine")
    assert log_messages == []

    log_contract_gap(gap)
    assert [m.record["message"] for m in log_messages] == ["[contract-gap] r (warning): missing contract"]
