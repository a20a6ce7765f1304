"""SAM.gov API adapter - authenticated API access."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter, first_present

logger = logging.getLogger(__name__)


class SamGovAdapter(BaseAdapter):
    """Adapter for SAM.gov Opportunities API.

    API Docs: https://open.gsa.gov/api/opportunities-api/
    Requires an API key; only registered when SAM_API_KEY is configured.
    """

    API_URL = "https://api.sam.gov/prod/opportunities/v2/search"

    def __init__(self, api_key: str):
        self.api_key = api_key

    @property
    def source_id(self) -> str:
        return "sam_gov"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        now = datetime.now(timezone.utc)
        params = {
            "api_key": self.api_key,
            "postedFrom": (now - timedelta(days=context.lookback_days)).strftime("%m/%d/%Y"),
            "postedTo": now.strftime("%m/%d/%Y"),
            "limit": context.max_results,
        }
        if context.keywords:
            params["title"] = " ".join(context.keywords[:3])

        data = await self._request_json(client, "GET", self.API_URL, params=params)
        if not isinstance(data, dict):
            return []
        logger.info("SAM.gov returned %s opportunities", data.get("totalRecords", 0))
        return data.get("opportunitiesData", [])

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        notice_id = payload.get("noticeId")
        return SourceFields(
            title=payload.get("title"),
            agency=first_present(payload, "fullParentPathName", "organizationName"),
            description=payload.get("description"),
            deadline=payload.get("responseDeadLine"),
            url=f"https://sam.gov/opp/{notice_id}/view" if notice_id else None,
            opportunity_number=first_present(payload, "solicitationNumber", "noticeId"),
        )
