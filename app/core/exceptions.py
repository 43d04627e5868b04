"""Core custom exceptions for the application."""


class PipelineError(Exception):
    """Base exception for pipeline-related errors."""

    status_code: int = 500


class ConfigurationError(PipelineError):
    """Exception for configuration-related errors (e.g., unreachable database, invalid settings)."""


class ValidationError(PipelineError):
    """Raised when an upload or its form fields are rejected."""

    status_code = 400


class ExtractionError(PipelineError):
    """Raised when text cannot be extracted from an uploaded document."""


class GenerationError(PipelineError):
    """Raised when the external generation service fails or answers malformed data."""


class PersistenceError(PipelineError):
    """Raised when a generated material cannot be written to the database."""
