"""DiscoveryService - the query, outcome and trigger surface of the pipeline."""

import logging
from datetime import date
from typing import List, Optional, Union

from .adapters import AdapterRegistry, build_default_registry
from .catalog import ModuleCatalog, load_modules
from .config import Config, load_config
from .database import InMemoryStore, Store
from .learning import FeedbackLoop, LearningParams, OutcomeRecorder
from .lifecycle import LifecycleService
from .models import DiscoveryRun, FetchContext, Opportunity, OpportunityStatus, Outcome, OutcomeEvent
from .orchestrator import DiscoveryOrchestrator
from .scorer import ScoringParams

logger = logging.getLogger(__name__)


class DiscoveryService:
    """Facade wiring store, catalog, orchestrator, lifecycle and learning."""

    def __init__(
        self,
        store: Store,
        registry: AdapterRegistry,
        scoring_params: Optional[ScoringParams] = None,
        learning_params: Optional[LearningParams] = None,
        fetch_context: Optional[FetchContext] = None,
        max_fetch_concurrency: Optional[int] = None,
        max_write_retries: int = 5,
    ):
        self.store = store
        self.registry = registry
        self.catalog = ModuleCatalog(store)
        self.lifecycle = LifecycleService(store, max_retries=max_write_retries)
        self.feedback = FeedbackLoop(store, learning_params or LearningParams(), max_retries=max_write_retries)
        self.recorder = OutcomeRecorder(store)
        self.orchestrator = DiscoveryOrchestrator(
            store=store,
            registry=registry,
            catalog=self.catalog,
            lifecycle=self.lifecycle,
            scoring_params=scoring_params or ScoringParams(),
            fetch_context=fetch_context,
            max_concurrency=max_fetch_concurrency,
            max_write_retries=max_write_retries,
        )

    async def run_discovery(self) -> DiscoveryRun:
        return await self.orchestrator.run()

    def record_outcome(
        self,
        opportunity_id: str,
        module_id: str,
        outcome: Union[Outcome, str],
        process: bool = True,
    ) -> OutcomeEvent:
        """Record a won/lost outcome; by default apply it to weights immediately."""
        event = self.recorder.record_outcome(opportunity_id, module_id, outcome)
        if process:
            self.feedback.process(event.event_id)
            event = self.store.get_outcome(event.event_id) or event
        return event

    def process_pending_outcomes(self) -> int:
        return self.feedback.process_pending()

    def list_opportunities(
        self,
        status: Optional[Union[OpportunityStatus, str]] = None,
        module_id: Optional[str] = None,
        deadline_from: Optional[date] = None,
        deadline_to: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> List[Opportunity]:
        """Opportunities sorted by deadline (undated last), then identity key."""
        if status is not None:
            status = OpportunityStatus(status)
        return self.store.list_opportunities(status, module_id, deadline_from, deadline_to, limit)

    def get_opportunity(self, identity_key: str) -> Optional[Opportunity]:
        return self.store.get_opportunity(identity_key)

    def list_runs(self, limit: int = 20) -> List[DiscoveryRun]:
        return self.store.list_runs(limit)

    def advance_status(self, identity_key: str, to_status: Union[OpportunityStatus, str]) -> Opportunity:
        return self.lifecycle.advance(identity_key, to_status)

    def expire_overdue(self, today: Optional[date] = None) -> List[str]:
        return self.lifecycle.expire_overdue(today)


def build_store(config: Config) -> Store:
    if config.storage_backend == "supabase":
        # Imported lazily: the supabase client is only needed for this backend
        from .database.client import SupabaseStore

        return SupabaseStore(config.supabase_url, config.supabase_key)
    return InMemoryStore()


def build_service(
    config: Optional[Config] = None,
    store: Optional[Store] = None,
    registry: Optional[AdapterRegistry] = None,
) -> DiscoveryService:
    """Wire a DiscoveryService from configuration.

    The catalog is seeded from ``MODULE_CATALOG_PATH`` (or the bundled
    default) when the store holds no modules yet.
    """
    config = config or load_config()
    store = store or build_store(config)
    registry = registry if registry is not None else build_default_registry(config)

    service = DiscoveryService(
        store=store,
        registry=registry,
        scoring_params=ScoringParams(
            match_threshold=config.match_threshold,
            confidence_token_floor=config.confidence_token_floor,
        ),
        learning_params=LearningParams(
            base_increment=config.learning_base_increment,
            min_weight=config.min_weight,
            max_weight=config.max_weight,
        ),
        fetch_context=FetchContext(
            timeout_seconds=config.adapter_timeout_seconds,
            retry_attempts=config.adapter_retry_attempts,
            lookback_days=config.search_lookback_days,
        ),
        max_fetch_concurrency=config.max_fetch_concurrency,
        max_write_retries=config.max_write_retries,
    )

    if not service.catalog.list_modules():
        seeded = service.catalog.seed(load_modules(config.module_catalog_path))
        logger.info("Seeded empty catalog with %d module(s)", seeded)
    return service
