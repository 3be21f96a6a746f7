from __future__ import annotations


class DatadeskError(Exception):
    """Base error class for the workbench core."""


class ParseError(DatadeskError, ValueError):
    """Raised when an uploaded file cannot be decoded into rows."""


class ValidationError(DatadeskError, ValueError):
    """Raised when a request is rejected before any state is touched."""


class ComputationError(DatadeskError):
    """Numeric edge case. The engines substitute 0 instead of raising this."""


class QueryExecutionError(DatadeskError):
    """Raised when the embedded query engine reports a fault."""


class SessionNotFoundError(DatadeskError, LookupError):
    """Raised when a workbench session id is unknown."""
