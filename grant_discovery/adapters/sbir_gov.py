"""SBIR.gov API adapter - GET api.www.sbir.gov/public/api/solicitations."""

import logging
from typing import Any, Dict, List

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter, first_present

logger = logging.getLogger(__name__)


class SbirGovAdapter(BaseAdapter):
    """Adapter for SBIR.gov Public API."""

    API_URL = "https://api.www.sbir.gov/public/api/solicitations"

    @property
    def source_id(self) -> str:
        return "sbir_gov"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        params = {"keyword": " ".join(context.keywords[:3]), "open": 1, "rows": context.max_results}
        data = await self._request_json(client, "GET", self.API_URL, params=params)
        solicitations = data if isinstance(data, list) else data.get("solicitations", [])
        logger.info("SBIR.gov returned %d solicitations", len(solicitations))
        return solicitations

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        number = first_present(payload, "solicitation_number", "solicitation_id")
        return SourceFields(
            title=first_present(payload, "topic_title", "solicitation_title"),
            agency=first_present(payload, "agency", "agency_name"),
            description=first_present(payload, "description", "topic_description"),
            amount_min=payload.get("award_amount_min"),
            amount_max=first_present(payload, "award_amount_max", "award_amount"),
            deadline=first_present(payload, "close_date", "application_due_date"),
            url=first_present(payload, "solicitation_url")
            or (f"https://www.sbir.gov/sbirsearch/detail/{number}" if number else None),
            opportunity_number=number,
        )
