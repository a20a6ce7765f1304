"""USAspending.gov adapter - recent grant awards from /search/spending_by_award/.

Public API, no key required. Awards are historical: they carry no deadline
and show what an agency has been funding under similar keywords.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx

from ..models import FetchContext, SourceFields
from .base import BaseAdapter, first_present

logger = logging.getLogger(__name__)

# Block, formula, project and cooperative agreement grants
GRANT_AWARD_TYPES = ["02", "03", "04", "05"]

AWARD_FIELDS = [
    "Award ID",
    "Recipient Name",
    "Award Amount",
    "Description",
    "Awarding Agency",
    "CFDA Number",
    "Start Date",
]


class UsaSpendingAdapter(BaseAdapter):
    """Adapter for the USAspending.gov award search API."""

    API_URL = "https://api.usaspending.gov/api/v2/search/spending_by_award/"
    LOOKBACK_DAYS = 365

    default_timeout = 15.0

    @property
    def source_id(self) -> str:
        return "usaspending"

    async def fetch_payloads(self, client: httpx.AsyncClient, context: FetchContext) -> List[Dict[str, Any]]:
        today = datetime.now(timezone.utc).date()
        payload = {
            "filters": {
                "keywords": context.keywords[:5],
                "award_type_codes": GRANT_AWARD_TYPES,
                "time_period": [{
                    "start_date": (today - timedelta(days=self.LOOKBACK_DAYS)).isoformat(),
                    "end_date": today.isoformat(),
                }],
            },
            "fields": AWARD_FIELDS,
            "limit": min(context.max_results, 100),
            "page": 1,
            "sort": "Award Amount",
            "order": "desc",
        }
        data = await self._request_json(client, "POST", self.API_URL, json=payload)
        results = data.get("results", []) if isinstance(data, dict) else []
        logger.info("USAspending returned %d awards", len(results))
        return results

    def map_fields(self, payload: Dict[str, Any]) -> SourceFields:
        award_id = payload.get("Award ID")
        description = (payload.get("Description") or "").strip()
        detail_id = first_present(payload, "generated_internal_id", "Award ID")
        return SourceFields(
            title=f"Award: {description[:100] or 'Grant Award'}",
            agency=payload.get("Awarding Agency") or "Federal Government",
            description=description or None,
            amount_max=payload.get("Award Amount"),
            url=f"https://www.usaspending.gov/award/{detail_id}" if detail_id else None,
            opportunity_number=award_id,
        )
