"""Discovery orchestrator: one explicit fetch -> normalize -> score -> upsert run.

Scheduling is external (see ``main.py``); ``run()`` is a plain coroutine so it
can be awaited from a scheduler job, a CLI, or a test.
"""

import asyncio
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from ..adapters import AdapterRegistry, BaseAdapter
from ..catalog import ModuleCatalog
from ..database import Store
from ..deduplicator import Deduplicator, UpsertOutcome
from ..errors import NormalizationError, PersistenceError
from ..lifecycle import LifecycleService
from ..models import DiscoveryRun, FetchContext, RawRecord, SourceFailure, SourceResult
from ..models.opportunity import utcnow
from ..normalizer import Normalizer
from ..scorer import DEFAULT_PARAMS, Scorer, ScoringParams

logger = logging.getLogger(__name__)


class _RunCounters:
    def __init__(self) -> None:
        self.seen = 0
        self.created = 0
        self.updated = 0
        self.unchanged = 0
        self.dropped = 0
        self.expired = 0


class DiscoveryOrchestrator:
    """Runs one discovery cycle across every registered adapter."""

    def __init__(
        self,
        store: Store,
        registry: AdapterRegistry,
        catalog: ModuleCatalog,
        lifecycle: LifecycleService,
        scoring_params: ScoringParams = DEFAULT_PARAMS,
        fetch_context: Optional[FetchContext] = None,
        max_concurrency: Optional[int] = None,
        max_write_retries: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.registry = registry
        self.catalog = catalog
        self.lifecycle = lifecycle
        self.scoring_params = scoring_params
        self.fetch_context = fetch_context or FetchContext()
        self.max_concurrency = max_concurrency
        self.max_write_retries = max_write_retries
        self.clock = clock

    async def run(self) -> DiscoveryRun:
        """Execute one run and persist its DiscoveryRun record.

        Source failures are recorded and the run continues. A PersistenceError
        stops ingestion and the run is saved as ``failed``; if saving the run
        fails too, that error propagates.
        """
        run_id = uuid.uuid4().hex
        started_at = self.clock()
        adapters = list(self.registry)
        logger.info("run_started run_id=%s sources=%s", run_id, ",".join(a.source_id for a in adapters))

        fetched: List[Tuple[List[RawRecord], SourceResult]] = []
        counters = _RunCounters()
        status = "completed"
        error: Optional[str] = None
        try:
            scorer = Scorer(self.catalog.list_modules(), self.scoring_params)
            context = self.fetch_context.model_copy(
                update={"keywords": self.catalog.search_keywords()}
            )
            fetched = await self._fetch_all(adapters, context)
            self._ingest([records for records, r in fetched if r.ok], scorer, counters)
            counters.expired = len(self.lifecycle.expire_overdue(self.clock().date()))
        except PersistenceError as exc:
            status = "failed"
            error = str(exc)
            logger.error("run_failed run_id=%s error=%s", run_id, exc)

        source_results = [r for _, r in fetched]
        failures = [
            SourceFailure(
                source_id=r.source_id,
                reason=r.reason or "unknown",
                error_kind=r.error_kind or "source_unavailable",
            )
            for r in source_results
            if not r.ok
        ]

        run = DiscoveryRun(
            run_id=run_id,
            started_at=started_at,
            finished_at=self.clock(),
            sources_attempted=[a.source_id for a in adapters],
            sources_failed=failures,
            source_results=source_results,
            opportunities_seen=counters.seen,
            opportunities_created=counters.created,
            opportunities_updated=counters.updated,
            opportunities_unchanged=counters.unchanged,
            records_dropped=counters.dropped,
            opportunities_expired=counters.expired,
            status=status,
            error=error,
        )
        self.store.save_run(run)
        logger.info(
            "run_complete run_id=%s status=%s sources=%d failed=%d seen=%d created=%d "
            "updated=%d unchanged=%d dropped=%d expired=%d duration_s=%.2f",
            run.run_id,
            run.status,
            len(run.sources_attempted),
            len(run.sources_failed),
            run.opportunities_seen,
            run.opportunities_created,
            run.opportunities_updated,
            run.opportunities_unchanged,
            run.records_dropped,
            run.opportunities_expired,
            run.duration_seconds,
        )
        return run

    async def _fetch_all(
        self, adapters: List[BaseAdapter], context: FetchContext
    ) -> List[Tuple[List[RawRecord], SourceResult]]:
        if not adapters:
            return []
        semaphore = asyncio.Semaphore(self.max_concurrency or len(adapters))

        async def bounded(adapter: BaseAdapter):
            async with semaphore:
                return await adapter.fetch(context)

        return await asyncio.gather(*(bounded(a) for a in adapters))

    def _ingest(self, batches: List[List[RawRecord]], scorer: Scorer, counters: _RunCounters) -> None:
        normalizer = Normalizer(self.registry.field_mappers())
        deduplicator = Deduplicator(self.store, scorer, self.max_write_retries)
        for records in batches:
            for record in records:
                counters.seen += 1
                try:
                    candidate = normalizer.normalize(record)
                except NormalizationError as exc:
                    counters.dropped += 1
                    logger.warning("record_dropped %s", exc)
                    continue

                result = deduplicator.upsert(candidate)
                if result.outcome == UpsertOutcome.CREATED:
                    counters.created += 1
                elif result.outcome == UpsertOutcome.UPDATED:
                    counters.updated += 1
                else:
                    counters.unchanged += 1
