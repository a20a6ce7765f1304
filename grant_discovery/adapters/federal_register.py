"""Federal Register adapter - funding notices from /api/v1/documents.json."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter

logger = logging.getLogger(__name__)


class FederalRegisterAdapter(BaseAdapter):
    """New grant and funding announcements published as Federal Register notices."""

    API_URL = "https://www.federalregister.gov/api/v1/documents.json"

    @property
    def source_id(self) -> str:
        return "federal_register"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        since = (datetime.now(timezone.utc) - timedelta(days=context.lookback_days)).date().isoformat()
        params = {
            "conditions[term]": f"{' '.join(context.keywords[:3])} grant funding".strip(),
            "conditions[type][]": "NOTICE",
            "conditions[publication_date][gte]": since,
            "per_page": min(context.max_results, 100),
            "order": "newest",
        }
        data = await self._request_json(client, "GET", self.API_URL, params=params)
        results = data.get("results", []) if isinstance(data, dict) else []
        logger.info("Federal Register returned %d notices", len(results))
        return results

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        agencies = payload.get("agencies") or []
        agency = None
        if agencies and isinstance(agencies[0], dict):
            agency = agencies[0].get("name") or agencies[0].get("raw_name")
        return SourceFields(
            title=payload.get("title"),
            agency=agency,
            description=payload.get("abstract"),
            deadline=payload.get("comments_close_on"),
            url=payload.get("html_url"),
            opportunity_number=payload.get("document_number"),
        )
