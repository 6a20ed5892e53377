"""Exception hierarchy for crates-publisher.

Validation and execution code raise these; :class:`CratesPlugin` converts
them into failed responses so nothing propagates into the host process.
"""
from __future__ import annotations


class CratesPublisherError(Exception):
    """Base class for all crates-publisher specific errors."""


class ConfigurationError(CratesPublisherError):
    """Raised when the plugin configuration cannot be used."""


class InvalidConfigError(ConfigurationError):
    """Raised when configuration values have the wrong type or shape.

    Attributes
    ----------
    field_errors:
        ``(field, message)`` pairs, one per offending key.
    """

    def __init__(self, field_errors: list[tuple[str, str]]) -> None:
        self.field_errors = field_errors
        details = "; ".join(f"{field}: {message}" for field, message in field_errors)
        super().__init__(f"invalid configuration: {details}")


class PathValidationError(ConfigurationError):
    """Raised when a configured path could escape the working tree."""


class RegistryValidationError(ConfigurationError):
    """Raised when a registry name or URL is rejected."""


class CommandExecutionError(CratesPublisherError):
    """Raised when an external command could not run to completion.

    Attributes
    ----------
    output:
        Combined stdout/stderr captured before the failure (may be empty).
    """

    def __init__(self, message: str, output: str = "") -> None:
        self.output = output
        super().__init__(message)


class CommandTimeoutError(CommandExecutionError):
    """Raised when an external command exceeds its timeout."""


class CommandCancelledError(CommandExecutionError):
    """Raised when an external command is cancelled by the caller."""
