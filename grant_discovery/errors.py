"""Structured pipeline errors.

Every error carries a ``kind`` and a ``context`` dict (source id, identity key,
module id, ...) so a log line is enough for triage without a stack trace.
"""

from typing import Any, Dict


class DiscoveryError(Exception):
    """Base class for all pipeline errors."""

    kind = "discovery_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def __str__(self) -> str:
        if not self.context:
            return f"{self.kind}: {self.message}"
        details = ", ".join(f"{k}={v}" for k, v in sorted(self.context.items()))
        return f"{self.kind}: {self.message} ({details})"


class SourceUnavailable(DiscoveryError):
    """Adapter timeout or network failure. Recorded; the run continues."""

    kind = "source_unavailable"


class NormalizationError(DiscoveryError):
    """Malformed raw record. Dropped and counted; the run continues."""

    kind = "normalization_error"


class InvalidTransitionError(DiscoveryError):
    """Lifecycle misuse. Rejected; state is left unchanged."""

    kind = "invalid_transition"


class ConcurrentUpdateConflict(DiscoveryError):
    """Optimistic-concurrency collision on a versioned write."""

    kind = "concurrent_update_conflict"


class PersistenceError(DiscoveryError):
    """Storage unavailable or retries exhausted. Fatal for the current run."""

    kind = "persistence_error"


class UnknownEntityError(DiscoveryError):
    """Referenced opportunity, module or outcome event does not exist."""

    kind = "unknown_entity"
