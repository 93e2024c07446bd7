# finance_ledger/core/errors.py


class LedgerError(Exception):
    """Base class for ledger failures."""


class ValidationError(LedgerError):
    """The caller supplied a missing or malformed field."""

    def __init__(self, reason, message: str | None = None):
        self.reason = reason
        super().__init__(message or str(reason))


class StorageError(LedgerError):
    """The database could not be read or a write could not be confirmed."""
