"""Module - catalog entry for a target program, with learned feature weights."""

import re
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .opportunity import utcnow

_WORD = re.compile(r"[a-z0-9]+")


def normalize_feature(token: str) -> str:
    """Canonical feature token: lower-case words joined by single spaces."""
    return " ".join(_WORD.findall((token or "").lower()))


class Module(BaseModel):
    """A target program that opportunities are matched against.

    ``features`` is only mutated automatically by the learning feedback loop;
    ``feature_events`` and ``applied_event_ids`` are its bookkeeping.
    """

    module_id: str = Field(..., min_length=1)
    display_name: str
    description: Optional[str] = None
    features: Dict[str, float] = Field(default_factory=dict, description="feature token -> weight")
    feature_events: Dict[str, int] = Field(
        default_factory=dict, description="Outcome events already applied per feature"
    )
    applied_event_ids: List[str] = Field(default_factory=list)
    version: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("features")
    @classmethod
    def normalize_features(cls, v: Dict[str, float]) -> Dict[str, float]:
        normalized: Dict[str, float] = {}
        for token, weight in v.items():
            key = normalize_feature(token)
            if not key:
                raise ValueError(f"Empty feature token: {token!r}")
            if weight < 0:
                raise ValueError(f"Feature weight must be >= 0, got {weight} for {token!r}")
            normalized[key] = float(weight)
        return normalized

    def top_features(self, limit: int = 5) -> List[str]:
        """Highest-weighted features, ties broken alphabetically."""
        ranked = sorted(self.features.items(), key=lambda kv: (-kv[1], kv[0]))
        return [token for token, _ in ranked[:limit]]
