"""DiscoveryRun - immutable summary of one orchestrator execution."""

from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .raw_record import SourceResult


class SourceFailure(BaseModel):
    """A source that failed during a run, with the reason."""

    model_config = {"frozen": True}

    source_id: str
    reason: str
    error_kind: str = "source_unavailable"


class DiscoveryRun(BaseModel):
    """Run statistics. Frozen: used for auditing, never re-processed."""

    model_config = {"frozen": True}

    run_id: str
    started_at: datetime
    finished_at: datetime
    sources_attempted: List[str] = Field(default_factory=list)
    sources_failed: List[SourceFailure] = Field(default_factory=list)
    source_results: List[SourceResult] = Field(
        default_factory=list, description="One fetch outcome per attempted source"
    )
    opportunities_seen: int = 0
    opportunities_created: int = 0
    opportunities_updated: int = 0
    opportunities_unchanged: int = 0
    records_dropped: int = Field(default=0, description="Records that failed normalization")
    opportunities_expired: int = Field(default=0, description="Expired by the maintenance pass")
    status: Literal["completed", "failed"] = "completed"
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        return (self.finished_at - self.started_at).total_seconds()

    @property
    def failed_source_ids(self) -> List[str]:
        return [f.source_id for f in self.sources_failed]

    @property
    def records_by_source(self) -> Dict[str, int]:
        return {r.source_id: r.record_count for r in self.source_results}
