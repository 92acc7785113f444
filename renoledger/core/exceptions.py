"""Custom exceptions for the RenoLedger application."""


class RenoLedgerError(Exception):
    """Base exception for RenoLedger application."""

    def __init__(self, message: str = "", details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(RenoLedgerError):
    """Raised when input is malformed or fails schema validation."""

    pass


class NotFoundError(RenoLedgerError):
    """Raised when a resource does not exist in the current site."""

    pass


class ConflictError(RenoLedgerError):
    """Raised when a business rule forbids the requested change."""

    pass


class DependencyError(RenoLedgerError):
    """Raised when an external provider (email, PDF) fails."""

    pass


class ProviderNotConfiguredError(DependencyError):
    """Raised when an external provider has no credentials configured."""

    pass


class InternalError(RenoLedgerError):
    """Raised when the backing store fails unexpectedly."""

    pass


class ConfigurationError(RenoLedgerError):
    """Raised when configuration is invalid."""

    pass
