"""Opportunity - canonical record for a funding opportunity, merged across sources."""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OpportunityStatus(str, Enum):
    """Application lifecycle states."""

    DISCOVERED = "discovered"
    UNDER_REVIEW = "under_review"
    DRAFTING = "drafting"
    SUBMITTED = "submitted"
    AWARDED = "awarded"
    DECLINED = "declined"
    EXPIRED = "expired"
    ARCHIVED = "archived"


class AmountRange(BaseModel):
    """Award amount bounds. Either bound may be unknown."""

    minimum: Optional[float] = Field(None, ge=0, description="Award floor")
    maximum: Optional[float] = Field(None, ge=0, description="Award ceiling")

    @model_validator(mode="after")
    def order_bounds(self) -> "AmountRange":
        if self.minimum is not None and self.maximum is not None and self.minimum > self.maximum:
            self.minimum, self.maximum = self.maximum, self.minimum
        return self

    @property
    def known_bounds(self) -> int:
        return int(self.minimum is not None) + int(self.maximum is not None)

    @property
    def width(self) -> float:
        if self.minimum is None or self.maximum is None:
            return float("inf")
        return self.maximum - self.minimum


class ModuleMatch(BaseModel):
    """One scored module match. ``matched_features`` is sorted."""

    module_id: str
    score: float = Field(..., ge=0, le=1)
    confidence: float = Field(..., ge=0, le=1)
    matched_features: List[str] = Field(default_factory=list)


class Opportunity(BaseModel):
    """Normalized opportunity record, deduplicated by ``identity_key``.

    ``matches`` is a cache: it can always be re-derived from title, description
    and the module catalog at scoring time.
    """

    identity_key: str = Field(..., description="SHA256 over normalized (title, agency, deadline)")

    title: str = Field(..., description="Opportunity title")
    issuing_agency: str = Field(..., description="Issuing agency")
    description: str = Field(default="", description="Synopsis / abstract")
    amount_range: Optional[AmountRange] = Field(None, description="Award amount bounds")
    application_deadline: Optional[date] = Field(None, description="Submission deadline")
    url: Optional[str] = Field(None, description="Link to source listing")
    opportunity_number: Optional[str] = Field(None, description="Official opportunity/solicitation number")

    source_ids: List[str] = Field(default_factory=list, description="Sources that reported this record")
    raw_payloads: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict, description="Last-seen raw payload per source"
    )

    status: OpportunityStatus = Field(default=OpportunityStatus.DISCOVERED)
    matches: List[ModuleMatch] = Field(default_factory=list, description="Highest score first")

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    status_changed_at: datetime = Field(default_factory=utcnow)
    version: int = Field(default=0, ge=0, description="Optimistic-concurrency counter")

    model_config = {
        "json_schema_extra": {
            "example": {
                "identity_key": "5b0c6f1e...",
                "title": "Rural Health Grant",
                "issuing_agency": "USDA",
                "description": "Telehealth access for underserved rural communities",
                "amount_range": {"minimum": 50000.0, "maximum": 250000.0},
                "application_deadline": "2026-03-01",
                "source_ids": ["grants_gov", "sbir_gov"],
                "status": "discovered",
                "matches": [
                    {
                        "module_id": "rural-health",
                        "score": 0.5,
                        "confidence": 0.5,
                        "matched_features": ["rural", "telehealth", "underserved"],
                    }
                ],
            }
        }
    }

    @field_validator("source_ids")
    @classmethod
    def unique_sorted_sources(cls, v: List[str]) -> List[str]:
        return sorted(set(v))

    @property
    def top_match(self) -> Optional[ModuleMatch]:
        return self.matches[0] if self.matches else None

    @property
    def priority(self) -> str:
        """high / medium / low, derived from the best match confidence."""
        top = self.top_match
        if top is None:
            return "low"
        if top.confidence >= 0.6:
            return "high"
        if top.confidence >= 0.3:
            return "medium"
        return "low"

    def match_for(self, module_id: str) -> Optional[ModuleMatch]:
        for match in self.matches:
            if match.module_id == module_id:
                return match
        return None
