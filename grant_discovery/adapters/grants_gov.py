"""Grants.gov API adapter - POST /v1/api/search2."""

import logging
from typing import Any, Dict, List

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter, first_present

logger = logging.getLogger(__name__)


class GrantsGovAdapter(BaseAdapter):
    """Adapter for Grants.gov Search API v2.

    Requests must include an attribution User-Agent per the Grants.gov ToS.
    """

    API_URL = "https://api.grants.gov/v1/api/search2"

    def __init__(self, attribution_header: str = "Grant Discovery Pipeline"):
        self.attribution_header = attribution_header

    @property
    def source_id(self) -> str:
        return "grants_gov"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        payload = {
            "keyword": " OR ".join(context.keywords[:10]),
            "sortBy": "openDate|desc",
            "rows": context.max_results,
            "oppStatuses": "forecasted|posted",
        }
        headers = {
            "Content-Type": "application/json",
            "User-Agent": self.attribution_header,
        }
        data = await self._request_json(client, "POST", self.API_URL, json=payload, headers=headers)

        # API wraps results in a "data" envelope
        inner = data.get("data", data) if isinstance(data, dict) else {}
        hits = inner.get("oppHits", []) if isinstance(inner, dict) else []
        logger.info("Grants.gov returned %d opportunities", len(hits))
        return hits

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        opp_id = first_present(payload, "id", "number")
        agency = payload.get("agency")
        if isinstance(agency, dict):
            agency = agency.get("name")
        return SourceFields(
            title=payload.get("title"),
            agency=first_present(payload, "agencyName") or agency or payload.get("agencyCode"),
            description=first_present(payload, "synopsis", "description"),
            amount_min=payload.get("awardFloor"),
            amount_max=payload.get("awardCeiling"),
            deadline=payload.get("closeDate"),
            url=f"https://www.grants.gov/search-results-detail/{opp_id}" if opp_id else None,
            opportunity_number=first_present(payload, "number", "id"),
        )
