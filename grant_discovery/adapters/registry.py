"""Adapter registry: the plugin surface for opportunity sources."""

import logging
from typing import Callable, Dict, Iterator, List, Optional

from ..models import SourceFields
from .base import BaseAdapter
from .federal_register import FederalRegisterAdapter
from .fema import FemaAdapter
from .grants_gov import GrantsGovAdapter
from .nih_reporter import NihReporterAdapter
from .nsf_awards import NsfAwardsAdapter
from .sam_gov import SamGovAdapter
from .sbir_gov import SbirGovAdapter
from .usaspending import UsaSpendingAdapter

logger = logging.getLogger(__name__)

FieldMapper = Callable[[dict], SourceFields]


class AdapterRegistry:
    """Registered adapters, keyed by source_id, in registration order."""

    def __init__(self, adapters: Optional[List[BaseAdapter]] = None):
        self._adapters: Dict[str, BaseAdapter] = {}
        for adapter in adapters or []:
            self.register(adapter)

    def register(self, adapter: BaseAdapter) -> None:
        if adapter.source_id in self._adapters:
            raise ValueError(f"Adapter already registered for source_id '{adapter.source_id}'")
        self._adapters[adapter.source_id] = adapter
        logger.debug("Registered adapter source=%s", adapter.source_id)

    def unregister(self, source_id: str) -> BaseAdapter:
        try:
            return self._adapters.pop(source_id)
        except KeyError:
            raise KeyError(f"No adapter registered for source_id '{source_id}'") from None

    def get(self, source_id: str) -> Optional[BaseAdapter]:
        return self._adapters.get(source_id)

    def field_mappers(self) -> Dict[str, FieldMapper]:
        """Per-source field mappers, handed to the normalizer."""
        return {source_id: adapter.map_fields for source_id, adapter in self._adapters.items()}

    @property
    def source_ids(self) -> List[str]:
        return list(self._adapters)

    def __iter__(self) -> Iterator[BaseAdapter]:
        return iter(list(self._adapters.values()))

    def __len__(self) -> int:
        return len(self._adapters)

    def __contains__(self, source_id: object) -> bool:
        return source_id in self._adapters


def build_default_registry(config) -> AdapterRegistry:
    """All built-in sources; SAM.gov only when an API key is configured."""
    registry = AdapterRegistry([
        GrantsGovAdapter(attribution_header=config.grants_gov_attribution),
        SbirGovAdapter(),
        NihReporterAdapter(),
        NsfAwardsAdapter(),
        FederalRegisterAdapter(),
        UsaSpendingAdapter(),
        FemaAdapter(state=config.fema_state),
    ])
    if config.sam_api_key:
        registry.register(SamGovAdapter(api_key=config.sam_api_key))
    else:
        logger.info("SAM_API_KEY not set, skipping sam_gov adapter")
    return registry
