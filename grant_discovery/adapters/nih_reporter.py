"""NIH RePORTER adapter - POST /v2/projects/search."""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter, first_present

logger = logging.getLogger(__name__)


class NihReporterAdapter(BaseAdapter):
    """Health research projects from NIH RePORTER, largest awards first."""

    API_URL = "https://api.reporter.nih.gov/v2/projects/search"

    @property
    def source_id(self) -> str:
        return "nih_reporter"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        year = datetime.now(timezone.utc).year
        body = {
            "criteria": {
                "advanced_text_search": {
                    "operator": "or",
                    "search_field": "all",
                    "search_text": " ".join(context.keywords[:5]),
                },
                "fiscal_years": [year - 1, year],
            },
            "offset": 0,
            "limit": min(context.max_results, 500),
            "sort_field": "award_amount",
            "sort_order": "desc",
        }
        data = await self._request_json(client, "POST", self.API_URL, json=body)
        results = data.get("results", []) if isinstance(data, dict) else []
        logger.info("NIH RePORTER returned %d projects", len(results))
        return results

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        admin = payload.get("agency_ic_admin") or {}
        project_num = first_present(payload, "project_num", "appl_id")
        return SourceFields(
            title=payload.get("project_title"),
            agency=(admin.get("name") if isinstance(admin, dict) else None) or "NIH",
            description=payload.get("abstract_text"),
            amount_max=payload.get("award_amount"),
            deadline=payload.get("project_end_date"),
            url=f"https://reporter.nih.gov/project-details/{project_num}" if project_num else None,
            opportunity_number=str(project_num) if project_num is not None else None,
        )
