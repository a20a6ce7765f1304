"""OpenFEMA adapter - disaster declarations that open FEMA assistance programs."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter

logger = logging.getLogger(__name__)

PROGRAM_FLAGS = [
    ("ihProgramDeclared", "Individual Assistance"),
    ("paProgramDeclared", "Public Assistance"),
    ("hmProgramDeclared", "Hazard Mitigation"),
]


class FemaAdapter(BaseAdapter):
    """Recent disaster declarations from the OpenFEMA API.

    Declarations are filtered by date and optionally by state, not by
    keyword; the scorer decides which modules they are relevant to. One
    declaration spans many county rows, which merge into one opportunity.
    """

    API_URL = "https://www.fema.gov/api/open/v2/DisasterDeclarationsSummaries"

    def __init__(self, state: Optional[str] = None):
        self.state = state.upper() if state else None

    @property
    def source_id(self) -> str:
        return "fema"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        since = (datetime.now(timezone.utc) - timedelta(days=context.lookback_days)).date().isoformat()
        conditions = [f"declarationDate ge '{since}T00:00:00.000z'"]
        if self.state:
            conditions.append(f"state eq '{self.state}'")
        params = {
            "$filter": " and ".join(conditions),
            "$orderby": "declarationDate desc",
            "$top": min(context.max_results, 1000),
        }
        data = await self._request_json(client, "GET", self.API_URL, params=params)
        declarations = data.get("DisasterDeclarationsSummaries", []) if isinstance(data, dict) else []
        logger.info("OpenFEMA returned %d declaration rows", len(declarations))
        return declarations

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        number = payload.get("disasterNumber")
        declaration_type = payload.get("declarationType") or "DR"
        title = payload.get("declarationTitle") or payload.get("title")
        programs = [label for flag, label in PROGRAM_FLAGS if payload.get(flag)]
        description = f"{payload.get('incidentType', 'Incident')} in {payload.get('state', 'unknown state')}."
        if programs:
            description += f" Programs: {', '.join(programs)}."
        return SourceFields(
            title=f"{declaration_type} Declaration: {title}" if title else None,
            agency="Federal Emergency Management Agency",
            description=description,
            url=f"https://www.fema.gov/disaster/{number}" if number else None,
            opportunity_number=f"{declaration_type}-{number}" if number else None,
        )
