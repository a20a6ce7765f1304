"""Supabase-backed store for the discovery pipeline."""

import logging
import os
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from ..errors import ConcurrentUpdateConflict, PersistenceError, UnknownEntityError
from ..models import DiscoveryRun, Module, Opportunity, OpportunityStatus, OutcomeEvent
from .base import Store, filter_opportunities

logger = logging.getLogger(__name__)

UNIQUE_VIOLATION = "23505"

OPPORTUNITIES = "opportunities"
MODULES = "modules"
RUNS = "discovery_runs"
OUTCOMES = "outcome_events"


class SupabaseStore(Store):
    """Store over the opportunities, modules, discovery_runs and outcome_events tables.

    Versioned replaces are issued as ``UPDATE ... WHERE key = ? AND version = ?``;
    an empty result means another writer got there first.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
    ) -> None:
        """Initialize Supabase client from explicit args or env vars.

        Args:
            url: Supabase project URL (falls back to SUPABASE_URL env var).
            key: Supabase anon/service key (falls back to SUPABASE_KEY env var).
        """
        self._url = url or os.environ["SUPABASE_URL"]
        self._key = key or os.environ["SUPABASE_KEY"]
        self._client: Client = create_client(self._url, self._key)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _execute(self, query, action: str, **context: Any):
        """Run a query, translating client errors into pipeline errors."""
        try:
            return query.execute()
        except APIError as exc:
            if exc.code == UNIQUE_VIOLATION:
                raise ConcurrentUpdateConflict(f"{action}: duplicate key", **context) from exc
            raise PersistenceError(f"{action} failed: {exc.message}", **context) from exc
        except httpx.HTTPError as exc:
            raise PersistenceError(f"{action} failed: {exc}", **context) from exc

    @staticmethod
    def _first(response) -> Optional[Dict[str, Any]]:
        return response.data[0] if response.data else None

    # ------------------------------------------------------------------
    # Opportunities
    # ------------------------------------------------------------------

    def get_opportunity(self, identity_key: str) -> Optional[Opportunity]:
        response = self._execute(
            self._client.table(OPPORTUNITIES).select("*").eq("identity_key", identity_key),
            "get_opportunity",
            identity_key=identity_key,
        )
        row = self._first(response)
        return Opportunity.model_validate(row) if row else None

    def insert_opportunity(self, opportunity: Opportunity) -> Opportunity:
        stored = opportunity.model_copy(update={"version": 1})
        response = self._execute(
            self._client.table(OPPORTUNITIES).insert(stored.model_dump(mode="json")),
            "insert_opportunity",
            identity_key=opportunity.identity_key,
        )
        logger.info("Inserted opportunity %s", opportunity.identity_key)
        row = self._first(response)
        return Opportunity.model_validate(row) if row else stored

    def replace_opportunity(self, opportunity: Opportunity, expected_version: int) -> Opportunity:
        stored = opportunity.model_copy(update={"version": expected_version + 1})
        response = self._execute(
            self._client.table(OPPORTUNITIES)
            .update(stored.model_dump(mode="json"))
            .eq("identity_key", opportunity.identity_key)
            .eq("version", expected_version),
            "replace_opportunity",
            identity_key=opportunity.identity_key,
        )
        row = self._first(response)
        if row is None:
            if self.get_opportunity(opportunity.identity_key) is None:
                raise UnknownEntityError("Opportunity not found", identity_key=opportunity.identity_key)
            raise ConcurrentUpdateConflict(
                "Opportunity version changed",
                identity_key=opportunity.identity_key,
                expected=expected_version,
            )
        logger.info("Updated opportunity %s to version %d", opportunity.identity_key, stored.version)
        return Opportunity.model_validate(row)

    def list_opportunities(
        self,
        status: Optional[OpportunityStatus] = None,
        module_id: Optional[str] = None,
        deadline_from: Optional[date] = None,
        deadline_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[Opportunity]:
        query = self._client.table(OPPORTUNITIES).select("*")
        if status is not None:
            query = query.eq("status", OpportunityStatus(status).value)
        if deadline_from is not None:
            query = query.gte("application_deadline", deadline_from.isoformat())
        if deadline_to is not None:
            query = query.lte("application_deadline", deadline_to.isoformat())
        response = self._execute(query, "list_opportunities")
        rows = [Opportunity.model_validate(row) for row in response.data]
        # matches live in a jsonb column; module filtering and ordering happen here
        return filter_opportunities(rows, module_id=module_id, limit=limit)

    # ------------------------------------------------------------------
    # Modules
    # ------------------------------------------------------------------

    def get_module(self, module_id: str) -> Optional[Module]:
        response = self._execute(
            self._client.table(MODULES).select("*").eq("module_id", module_id),
            "get_module",
            module_id=module_id,
        )
        row = self._first(response)
        return Module.model_validate(row) if row else None

    def list_modules(self) -> List[Module]:
        response = self._execute(
            self._client.table(MODULES).select("*").order("module_id"),
            "list_modules",
        )
        return [Module.model_validate(row) for row in response.data]

    def insert_module(self, module: Module) -> Module:
        stored = module.model_copy(update={"version": 1})
        response = self._execute(
            self._client.table(MODULES).insert(stored.model_dump(mode="json")),
            "insert_module",
            module_id=module.module_id,
        )
        row = self._first(response)
        return Module.model_validate(row) if row else stored

    def replace_module(self, module: Module, expected_version: int) -> Module:
        stored = module.model_copy(update={"version": expected_version + 1})
        response = self._execute(
            self._client.table(MODULES)
            .update(stored.model_dump(mode="json"))
            .eq("module_id", module.module_id)
            .eq("version", expected_version),
            "replace_module",
            module_id=module.module_id,
        )
        row = self._first(response)
        if row is None:
            if self.get_module(module.module_id) is None:
                raise UnknownEntityError("Module not found", module_id=module.module_id)
            raise ConcurrentUpdateConflict(
                "Module version changed", module_id=module.module_id, expected=expected_version
            )
        return Module.model_validate(row)

    # ------------------------------------------------------------------
    # Discovery runs
    # ------------------------------------------------------------------

    def save_run(self, run: DiscoveryRun) -> DiscoveryRun:
        self._execute(
            self._client.table(RUNS).insert(run.model_dump(mode="json")),
            "save_run",
            run_id=run.run_id,
        )
        logger.info(
            "Saved discovery run %s: %d seen, %d created, %d updated",
            run.run_id, run.opportunities_seen, run.opportunities_created, run.opportunities_updated,
        )
        return run

    def list_runs(self, limit: int = 20) -> List[DiscoveryRun]:
        response = self._execute(
            self._client.table(RUNS).select("*").order("started_at", desc=True).limit(limit),
            "list_runs",
        )
        return [DiscoveryRun.model_validate(row) for row in response.data]

    # ------------------------------------------------------------------
    # Outcome events
    # ------------------------------------------------------------------

    def append_outcome(self, event: OutcomeEvent) -> OutcomeEvent:
        self._execute(
            self._client.table(OUTCOMES).insert(event.model_dump(mode="json")),
            "append_outcome",
            event_id=event.event_id,
        )
        return event

    def get_outcome(self, event_id: str) -> Optional[OutcomeEvent]:
        response = self._execute(
            self._client.table(OUTCOMES).select("*").eq("event_id", event_id),
            "get_outcome",
            event_id=event_id,
        )
        row = self._first(response)
        return OutcomeEvent.model_validate(row) if row else None

    def mark_outcome_processed(self, event_id: str, processed_at: datetime) -> bool:
        response = self._execute(
            self._client.table(OUTCOMES)
            .update({"processed": True, "processed_at": processed_at.isoformat()})
            .eq("event_id", event_id)
            .eq("processed", False),
            "mark_outcome_processed",
            event_id=event_id,
        )
        if response.data:
            return True
        if self.get_outcome(event_id) is None:
            raise UnknownEntityError("Outcome event not found", event_id=event_id)
        return False

    def list_outcomes(self, processed: Optional[bool] = None) -> List[OutcomeEvent]:
        query = self._client.table(OUTCOMES).select("*")
        if processed is not None:
            query = query.eq("processed", processed)
        response = self._execute(
            query.order("recorded_at").order("event_id"),
            "list_outcomes",
        )
        return [OutcomeEvent.model_validate(row) for row in response.data]
