# logic_engine/log.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from loguru import logger

from logic_engine.config import LogConfig


def configure_logging(config: Optional[LogConfig] = None) -> None:
    """
    Replace every loguru sink with a stderr sink (plus a rotating file
    sink when `config.dir` is set) and enable the `logic_engine` loggers.
    """
    cfg = config or LogConfig()

    logger.remove()
    logger.add(sys.stderr, level=cfg.level, format=cfg.fmt)

    if cfg.dir:
        Path(cfg.dir).mkdir(parents=True, exist_ok=True)
        logger.add(
            sink=f"{cfg.dir}/{{time:YYYY-MM-DD}}.log",
            rotation=cfg.rotation,
            retention=cfg.retention,
            level=cfg.level,
            format=cfg.fmt,
            enqueue=True,
        )

    logger.enable("logic_engine")


def disable_logging() -> None:
    logger.disable("logic_engine")


__all__ = ["configure_logging", "disable_logging", "logger"]
