"""
Error taxonomy for competition engine operations.

Every error is recoverable and carries a message suitable for display.
"""
from typing import Optional


class EngineError(Exception):
    """Base class for engine errors reported back to the caller."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidRoster(EngineError):
    """Team name or member list failed registration rules."""


class InvalidUrl(EngineError, ValueError):
    """Repository URL does not point at a supported code host."""


class NotFound(EngineError):
    """No team with the given id."""

    def __init__(self, team_id: str):
        super().__init__(f"Team not found: {team_id}")
        self.team_id = team_id


class SelectionLocked(EngineError):
    """Problem statement choice can no longer be changed."""


class PaymentRequired(EngineError):
    """Payment is missing or was not confirmed by the gateway."""


class NoRepo(EngineError):
    """The team has not submitted a repository URL."""


class UpstreamError(EngineError):
    """Commit history could not be fetched."""

    def __init__(self, detail: str, status: Optional[int] = None):
        super().__init__(f"Commit sync failed: {detail}")
        self.detail = detail
        self.status = status


class RegistrationClosed(EngineError):
    """Registration is closed by the admin."""


class InvalidSprint(EngineError):
    """Sprint duration outside the configured range."""


class UnknownProblem(EngineError):
    """Problem id is not in the catalog."""
