"""OutcomeEvent - a recorded win/loss that feeds the learning loop."""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .opportunity import utcnow


class Outcome(str, Enum):
    WON = "won"
    LOST = "lost"


class OutcomeEvent(BaseModel):
    """Append-only. Consumed at most once, then marked processed."""

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    opportunity_id: str = Field(..., description="Opportunity identity_key")
    module_id: str = Field(..., description="Module the opportunity was pursued under")
    outcome: Outcome
    feature_snapshot: List[str] = Field(
        default_factory=list, description="Features that contributed to the match at decision time"
    )
    recorded_at: datetime = Field(default_factory=utcnow)
    processed: bool = False
    processed_at: Optional[datetime] = None
