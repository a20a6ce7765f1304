"""In-process store. Thread-safe; every read and write deep-copies records."""

import threading
from datetime import date, datetime
from typing import Dict, List, Optional

from ..errors import ConcurrentUpdateConflict, UnknownEntityError
from ..models import DiscoveryRun, Module, Opportunity, OpportunityStatus, OutcomeEvent
from .base import Store, filter_opportunities


class InMemoryStore(Store):
    """Dict-backed Store used by default and in tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._opportunities: Dict[str, Opportunity] = {}
        self._modules: Dict[str, Module] = {}
        self._runs: List[DiscoveryRun] = []
        self._outcomes: Dict[str, OutcomeEvent] = {}

    # ------------------------------------------------------------------
    # Opportunities
    # ------------------------------------------------------------------

    def get_opportunity(self, identity_key: str) -> Optional[Opportunity]:
        with self._lock:
            opp = self._opportunities.get(identity_key)
            return opp.model_copy(deep=True) if opp else None

    def insert_opportunity(self, opportunity: Opportunity) -> Opportunity:
        with self._lock:
            key = opportunity.identity_key
            if key in self._opportunities:
                raise ConcurrentUpdateConflict("Opportunity already exists", identity_key=key)
            stored = opportunity.model_copy(deep=True, update={"version": 1})
            self._opportunities[key] = stored
            return stored.model_copy(deep=True)

    def replace_opportunity(self, opportunity: Opportunity, expected_version: int) -> Opportunity:
        with self._lock:
            key = opportunity.identity_key
            current = self._opportunities.get(key)
            if current is None:
                raise UnknownEntityError("Opportunity not found", identity_key=key)
            if current.version != expected_version:
                raise ConcurrentUpdateConflict(
                    "Opportunity version changed",
                    identity_key=key,
                    expected=expected_version,
                    actual=current.version,
                )
            stored = opportunity.model_copy(deep=True, update={"version": expected_version + 1})
            self._opportunities[key] = stored
            return stored.model_copy(deep=True)

    def list_opportunities(
        self,
        status: Optional[OpportunityStatus] = None,
        module_id: Optional[str] = None,
        deadline_from: Optional[date] = None,
        deadline_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[Opportunity]:
        with self._lock:
            snapshot = [o.model_copy(deep=True) for o in self._opportunities.values()]
        return filter_opportunities(snapshot, status, module_id, deadline_from, deadline_to, limit)

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def get_module(self, module_id: str) -> Optional[Module]:
        with self._lock:
            module = self._modules.get(module_id)
            return module.model_copy(deep=True) if module else None

    def list_modules(self) -> List[Module]:
        with self._lock:
            return [self._modules[k].model_copy(deep=True) for k in sorted(self._modules)]

    def insert_module(self, module: Module) -> Module:
        with self._lock:
            if module.module_id in self._modules:
                raise ConcurrentUpdateConflict("Module already exists", module_id=module.module_id)
            stored = module.model_copy(deep=True, update={"version": 1})
            self._modules[module.module_id] = stored
            return stored.model_copy(deep=True)

    def replace_module(self, module: Module, expected_version: int) -> Module:
        with self._lock:
            current = self._modules.get(module.module_id)
            if current is None:
                raise UnknownEntityError("Module not found", module_id=module.module_id)
            if current.version != expected_version:
                raise ConcurrentUpdateConflict(
                    "Module version changed",
                    module_id=module.module_id,
                    expected=expected_version,
                    actual=current.version,
                )
            stored = module.model_copy(deep=True, update={"version": expected_version + 1})
            self._modules[module.module_id] = stored
            return stored.model_copy(deep=True)

    # ------------------------------------------------------------------
    # Discovery runs
    # ------------------------------------------------------------------

    def save_run(self, run: DiscoveryRun) -> DiscoveryRun:
        with self._lock:
            self._runs.append(run)
            return run

    def list_runs(self, limit: int = 20) -> List[DiscoveryRun]:
        with self._lock:
            ordered = sorted(self._runs, key=lambda r: r.started_at, reverse=True)
            return ordered[:limit]

    # ------------------------------------------------------------------
    # Outcome events
    # ------------------------------------------------------------------

    def append_outcome(self, event: OutcomeEvent) -> OutcomeEvent:
        with self._lock:
            if event.event_id in self._outcomes:
                raise ConcurrentUpdateConflict("Outcome event already recorded", event_id=event.event_id)
            self._outcomes[event.event_id] = event.model_copy(deep=True)
            return event

    def get_outcome(self, event_id: str) -> Optional[OutcomeEvent]:
        with self._lock:
            event = self._outcomes.get(event_id)
            return event.model_copy(deep=True) if event else None

    def mark_outcome_processed(self, event_id: str, processed_at: datetime) -> bool:
        with self._lock:
            event = self._outcomes.get(event_id)
            if event is None:
                raise UnknownEntityError("Outcome event not found", event_id=event_id)
            if event.processed:
                return False
            self._outcomes[event_id] = event.model_copy(
                update={"processed": True, "processed_at": processed_at}
            )
            return True

    def list_outcomes(self, processed: Optional[bool] = None) -> List[OutcomeEvent]:
        with self._lock:
            events = [
                e.model_copy(deep=True)
                for e in self._outcomes.values()
                if processed is None or e.processed == processed
            ]
        events.sort(key=lambda e: (e.recorded_at, e.event_id))
        return events
