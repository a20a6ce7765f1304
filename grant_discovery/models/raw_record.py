"""Transport-level shapes produced by source adapters."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .opportunity import utcnow


class RawRecord(BaseModel):
    """One raw payload, tagged by the source that produced it.

    ``source_id`` selects the field mapper used by the normalizer; the payload
    itself never flows past normalization.
    """

    source_id: str
    payload: Dict[str, Any]
    fetched_at: datetime = Field(default_factory=utcnow)


class SourceFields(BaseModel):
    """Source-agnostic field values picked out of a raw payload.

    Values are still loosely typed here; the normalizer parses dates and amounts.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: Optional[str] = None
    agency: Optional[str] = None
    description: Optional[str] = None
    amount_min: Any = None
    amount_max: Any = None
    deadline: Any = None
    url: Optional[str] = None
    opportunity_number: Optional[str] = None


class SourceResult(BaseModel):
    """Per-source fetch outcome: ok, or failed with a reason."""

    source_id: str
    ok: bool
    reason: Optional[str] = None
    error_kind: Optional[str] = None
    record_count: int = 0
    duration_ms: float = 0.0


class FetchContext(BaseModel):
    """Per-run parameters handed to every adapter."""

    keywords: List[str] = Field(default_factory=list)
    timeout_seconds: Optional[float] = Field(None, gt=0, description="Overrides adapter default")
    retry_attempts: int = Field(default=2, ge=1)
    lookback_days: int = Field(default=30, ge=1)
    max_results: int = Field(default=100, ge=1)
