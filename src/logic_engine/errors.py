# logic_engine/errors.py
from __future__ import annotations


class PraxisError(Exception):
    """Base class for errors raised synchronously by the engine core."""


class DuplicateIdError(PraxisError, ValueError):
    """Raised when an id is registered twice within the same namespace."""

    def __init__(self, kind: str, item_id: str, message: str | None = None) -> None:
        self.kind = kind
        self.id = item_id
        super().__init__(message or f'{kind} with id "{item_id}" already registered')


class ContractDefinitionError(PraxisError, ValueError):
    """Raised when a contract is built from invalid options."""


class LedgerFormatError(PraxisError, ValueError):
    """Raised when a persisted ledger document cannot be read back."""
