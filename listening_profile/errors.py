"""Exception hierarchy for listening profile analysis."""

from typing import Any, Optional


class ListeningProfileError(Exception):
    """Base exception for all listening profile errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class MalformedInputError(ListeningProfileError, ValueError):
    """Raised when provider data is rejected at the analysis boundary.

    Covers non-finite or out-of-range acoustic values, unparseable
    timestamps and sample/timestamp lists that do not line up.
    """
