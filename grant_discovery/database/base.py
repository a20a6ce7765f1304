"""Storage contract shared by the in-memory and Supabase stores.

All writes of versioned records (Opportunity, Module) are conditional: a
replace succeeds only when the stored ``version`` equals ``expected_version``,
otherwise ``ConcurrentUpdateConflict`` is raised and the caller re-reads.
"""

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Iterable, List, Optional

from tenacity import Retrying, before_sleep_log, retry_if_exception_type, stop_after_attempt

from ..errors import ConcurrentUpdateConflict
from ..models import DiscoveryRun, Module, Opportunity, OpportunityStatus, OutcomeEvent

logger = logging.getLogger(__name__)


class Store(ABC):
    """Durable store with per-key conditional writes."""

    # Opportunities

    @abstractmethod
    def get_opportunity(self, identity_key: str) -> Optional[Opportunity]:
        pass

    @abstractmethod
    def insert_opportunity(self, opportunity: Opportunity) -> Opportunity:
        """Insert a new record. Raises ConcurrentUpdateConflict if the key exists."""
        pass

    @abstractmethod
    def replace_opportunity(self, opportunity: Opportunity, expected_version: int) -> Opportunity:
        """Replace a record if its stored version matches; returns the stored copy."""
        pass

    @abstractmethod
    def list_opportunities(
        self,
        status: Optional[OpportunityStatus] = None,
        module_id: Optional[str] = None,
        deadline_from: Optional[date] = None,
        deadline_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[Opportunity]:
        pass

    # Modules

    @abstractmethod
    def get_module(self, module_id: str) -> Optional[Module]:
        pass

    @abstractmethod
    def list_modules(self) -> List[Module]:
        pass

    @abstractmethod
    def insert_module(self, module: Module) -> Module:
        pass

    @abstractmethod
    def replace_module(self, module: Module, expected_version: int) -> Module:
        pass

    # Discovery runs

    @abstractmethod
    def save_run(self, run: DiscoveryRun) -> DiscoveryRun:
        pass

    @abstractmethod
    def list_runs(self, limit: int = 20) -> List[DiscoveryRun]:
        """Most recent runs first."""
        pass

    # Outcome events

    @abstractmethod
    def append_outcome(self, event: OutcomeEvent) -> OutcomeEvent:
        pass

    @abstractmethod
    def get_outcome(self, event_id: str) -> Optional[OutcomeEvent]:
        pass

    @abstractmethod
    def mark_outcome_processed(self, event_id: str, processed_at: datetime) -> bool:
        """Flip ``processed`` to True. Returns False if it was already processed."""
        pass

    @abstractmethod
    def list_outcomes(self, processed: Optional[bool] = None) -> List[OutcomeEvent]:
        """Events ordered by (recorded_at, event_id)."""
        pass


def sort_key(opportunity: Opportunity):
    """Deadline ascending with undated records last, then identity key."""
    deadline = opportunity.application_deadline
    return (deadline is None, deadline or date.min, opportunity.identity_key)


def filter_opportunities(
    opportunities: Iterable[Opportunity],
    status: Optional[OpportunityStatus] = None,
    module_id: Optional[str] = None,
    deadline_from: Optional[date] = None,
    deadline_to: Optional[date] = None,
    limit: Optional[int] = None,
) -> List[Opportunity]:
    """Apply the query-surface filters in memory.

    A deadline bound excludes records without a deadline.
    """
    selected = []
    for opp in opportunities:
        if status is not None and opp.status != OpportunityStatus(status):
            continue
        if module_id is not None and opp.match_for(module_id) is None:
            continue
        deadline = opp.application_deadline
        if deadline_from is not None and (deadline is None or deadline < deadline_from):
            continue
        if deadline_to is not None and (deadline is None or deadline > deadline_to):
            continue
        selected.append(opp)

    selected.sort(key=sort_key)
    if limit is not None:
        selected = selected[:limit]
    return selected


def conflict_retry(max_attempts: int) -> Retrying:
    """Retry loop for read-modify-write cycles: re-run on version conflicts.

    With ``reraise=True`` the last ConcurrentUpdateConflict escapes once
    attempts are exhausted; callers turn it into a PersistenceError.
    """
    return Retrying(
        stop=stop_after_attempt(max_attempts),
        retry=retry_if_exception_type(ConcurrentUpdateConflict),
        before_sleep=before_sleep_log(logger, logging.DEBUG),
        reraise=True,
    )
