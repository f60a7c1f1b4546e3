from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from typing_extensions import Self

UTC = timezone.utc


class StrEnum(str, Enum):  # noqa: UP042
    """Python 3.10-compatible StrEnum."""

    def __str__(self) -> str:
        return str(self.value)


def utc_now_iso() -> str:
    return datetime.now(UTC).isoformat()


__all__ = ["Self", "UTC", "StrEnum", "utc_now_iso"]
