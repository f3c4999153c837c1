"""
Custom exceptions for mediaimport operations.

Per-item failures during a synchronisation are reported through boolean
results and logged. The exceptions below describe failures that abort a
whole operation.
"""


class MediaImportError(Exception):
    """Base exception for all mediaimport errors."""

    pass


class ValidationError(MediaImportError):
    """Raised when validation fails."""

    pass


class ImportNotFoundError(MediaImportError):
    """Raised when a persisted import cannot be found."""

    pass


class SettingTypeError(MediaImportError, TypeError):
    """Raised when an import setting is read or written with the wrong type."""

    pass


class RepositoryError(MediaImportError):
    """Raised when the library repository is unavailable or a query fails."""

    pass


class TransactionError(RepositoryError):
    """Raised when a transaction cannot be started, committed or rolled back."""

    pass


class HandlerNotFoundError(MediaImportError):
    """Raised when no import handler is registered for a media type."""

    pass


class HierarchyResolutionError(MediaImportError):
    """Raised when a parent entity can neither be resolved nor created."""

    pass


class SynchronisationError(MediaImportError):
    """Raised when a synchronisation run fails structurally."""

    pass


class SynchronisationCancelledError(SynchronisationError):
    """Raised when a synchronisation run is cancelled between items."""

    pass


class SynchronisationInProgressError(SynchronisationError):
    """Raised when another run against the same import holds its lock."""

    pass
