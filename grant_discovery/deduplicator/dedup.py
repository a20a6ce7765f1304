"""Upsert of normalized opportunities by identity key."""

import logging
from enum import Enum
from typing import Optional

from pydantic import BaseModel

from ..database import Store, conflict_retry
from ..errors import ConcurrentUpdateConflict, PersistenceError
from ..models import Opportunity, OpportunityStatus
from ..models.opportunity import utcnow
from ..scorer import Scorer
from .merger import has_changes, merge_opportunity

logger = logging.getLogger(__name__)


class UpsertOutcome(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


class UpsertResult(BaseModel):
    outcome: UpsertOutcome
    opportunity: Opportunity


class Deduplicator:
    """Creates or merges opportunities, one versioned write per record.

    A second sighting of the same identity key, from any source and in any
    run, merges into the stored record instead of creating a new one.
    """

    def __init__(self, store: Store, scorer: Scorer, max_retries: int = 5):
        self.store = store
        self.scorer = scorer
        self.max_retries = max_retries

    def upsert(self, candidate: Opportunity) -> UpsertResult:
        """Insert or merge ``candidate``.

        Raises:
            PersistenceError: conflicts persisted through every retry, or the
                store is unavailable.
        """
        try:
            for attempt in conflict_retry(self.max_retries):
                with attempt:
                    result = self._upsert_once(candidate)
        except ConcurrentUpdateConflict as exc:
            raise PersistenceError(
                f"upsert retries exhausted after {self.max_retries} attempt(s)",
                identity_key=candidate.identity_key,
            ) from exc

        logger.debug(
            "upsert identity_key=%s outcome=%s sources=%s",
            candidate.identity_key,
            result.outcome.value,
            ",".join(result.opportunity.source_ids),
        )
        return result

    def _upsert_once(self, candidate: Opportunity) -> UpsertResult:
        existing: Optional[Opportunity] = self.store.get_opportunity(candidate.identity_key)
        if existing is None:
            now = utcnow()
            fresh = candidate.model_copy(
                update={
                    "status": OpportunityStatus.DISCOVERED,
                    "created_at": now,
                    "updated_at": now,
                    "status_changed_at": now,
                    "version": 0,
                    "matches": self.scorer.score(candidate),
                }
            )
            # Conflict here means another writer inserted first; retry merges
            stored = self.store.insert_opportunity(fresh)
            return UpsertResult(outcome=UpsertOutcome.CREATED, opportunity=stored)

        merged = merge_opportunity(existing, candidate)
        merged = merged.model_copy(update={"matches": self.scorer.score(merged)})
        if not has_changes(existing, merged):
            return UpsertResult(outcome=UpsertOutcome.UNCHANGED, opportunity=existing)

        merged = merged.model_copy(update={"updated_at": utcnow()})
        stored = self.store.replace_opportunity(merged, expected_version=existing.version)
        return UpsertResult(outcome=UpsertOutcome.UPDATED, opportunity=stored)
