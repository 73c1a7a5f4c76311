"""
skillbridge.errors — Engagement Error Taxonomy
===============================================

Every service boundary raises one of these instead of returning status
tuples.  The API layer maps each class to an HTTP status code.
"""

from __future__ import annotations


class EngagementError(Exception):
    """Base exception for engagement and matching errors."""

    def __init__(self, message: str, user_id: str | None = None):
        super().__init__(message)
        self.message = message
        self.user_id = user_id


class ValidationError(EngagementError):
    """Raised when inputs are missing or malformed.  Never retried."""


class DuplicateRequest(EngagementError):
    """Raised when an active connection request already exists for a pair."""


class NotAuthorized(EngagementError):
    """Raised when the acting user may not perform the operation."""


class StaleState(EngagementError):
    """Raised when a compare-and-set lost the race; the work was already handled."""


class NotFound(EngagementError):
    """Raised when a referenced record does not exist."""
