"""Shared Pydantic models for the discovery pipeline."""

from .opportunity import AmountRange, ModuleMatch, Opportunity, OpportunityStatus
from .module import Module, normalize_feature
from .discovery_run import DiscoveryRun, SourceFailure
from .outcome_event import Outcome, OutcomeEvent
from .raw_record import FetchContext, RawRecord, SourceFields, SourceResult

__all__ = [
    "AmountRange",
    "ModuleMatch",
    "Opportunity",
    "OpportunityStatus",
    "Module",
    "normalize_feature",
    "DiscoveryRun",
    "SourceFailure",
    "Outcome",
    "OutcomeEvent",
    "FetchContext",
    "RawRecord",
    "SourceFields",
    "SourceResult",
]
