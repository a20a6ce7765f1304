"""NSF Award Search adapter - GET /services/v1/awards.json."""

import logging
from typing import Any, Dict, List

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter

logger = logging.getLogger(__name__)

PRINT_FIELDS = ",".join([
    "id", "title", "abstractText", "agency", "awardeeName", "fundsObligatedAmt",
    "date", "startDate", "expDate", "primaryProgram",
])


class NsfAwardsAdapter(BaseAdapter):
    """Science and research awards from the NSF Award Search API."""

    API_URL = "https://api.nsf.gov/services/v1/awards.json"

    @property
    def source_id(self) -> str:
        return "nsf_awards"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        params = {
            "keyword": " ".join(context.keywords[:3]),
            "printFields": PRINT_FIELDS,
            "rpp": min(context.max_results, 25),
        }
        data = await self._request_json(client, "GET", self.API_URL, params=params)
        envelope = data.get("response", {}) if isinstance(data, dict) else {}
        awards = envelope.get("award", []) if isinstance(envelope, dict) else []
        logger.info("NSF returned %d awards", len(awards))
        return awards[:context.max_results]

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        award_id = payload.get("id")
        return SourceFields(
            title=payload.get("title"),
            agency="National Science Foundation",
            description=payload.get("abstractText"),
            amount_max=payload.get("fundsObligatedAmt"),
            deadline=payload.get("expDate"),
            url=f"https://www.nsf.gov/awardsearch/showAward?AWD_ID={award_id}" if award_id else None,
            opportunity_number=award_id,
        )
