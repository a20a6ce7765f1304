"""Normalizer: tagged raw records -> canonical Opportunity."""

import hashlib
import json
import logging
import math
import re
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional

from ..errors import NormalizationError
from ..models import AmountRange, Opportunity, RawRecord, SourceFields

logger = logging.getLogger(__name__)

FieldMapper = Callable[[Dict[str, Any]], SourceFields]

_WHITESPACE = re.compile(r"\s+")
_DATE_FORMATS = ("%m/%d/%Y", "%Y-%m-%d")


def normalize_text(value: Optional[str]) -> str:
    """Lower-case, trim, collapse internal whitespace."""
    return _WHITESPACE.sub(" ", (value or "").strip()).lower()


def compute_identity_key(title: str, agency: str, deadline: Optional[date]) -> str:
    """SHA256 over canonical JSON of (title, agency, deadline).

    Independent of which source reported the record, so the same opportunity
    listed on two sources collapses to one key.
    """
    canonical = json.dumps(
        {
            "title": normalize_text(title),
            "agency": normalize_text(agency),
            "deadline": deadline.isoformat() if deadline else "none",
        },
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def parse_date(value: Any) -> Optional[date]:
    """Parse a source date. Unparseable values become None with a warning."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        logger.warning("Could not parse date: %r", value)
        return None

    text = value.strip()
    try:
        # ISO date or datetime, trailing Z allowed
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    logger.warning("Could not parse date: %s", text)
    return None


def parse_amount(value: Any) -> Optional[float]:
    """Parse an award amount. Strips $ and commas; negatives become None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.replace("$", "").replace(",", "").strip()
        if not value:
            return None
    try:
        amount = float(value)
    except (ValueError, TypeError):
        return None
    if math.isnan(amount) or math.isinf(amount) or amount < 0:
        return None
    return amount


class Normalizer:
    """Dispatches each RawRecord to its source's field mapper."""

    def __init__(self, field_mappers: Dict[str, FieldMapper]):
        self.field_mappers = dict(field_mappers)

    def normalize(self, record: RawRecord) -> Opportunity:
        mapper = self.field_mappers.get(record.source_id)
        if mapper is None:
            raise NormalizationError("no field mapper for source", source_id=record.source_id)

        try:
            fields = mapper(record.payload)
        except Exception as exc:
            raise NormalizationError(
                f"field mapping failed: {exc}", source_id=record.source_id
            ) from exc

        title = (fields.title or "").strip()
        agency = (fields.agency or "").strip()
        if not title:
            raise NormalizationError("missing title", source_id=record.source_id)
        if not agency:
            raise NormalizationError("missing agency", source_id=record.source_id, title=title)

        deadline = parse_date(fields.deadline)
        minimum = parse_amount(fields.amount_min)
        maximum = parse_amount(fields.amount_max)
        amount_range = None
        if minimum is not None or maximum is not None:
            amount_range = AmountRange(minimum=minimum, maximum=maximum)

        return Opportunity(
            identity_key=compute_identity_key(title, agency, deadline),
            title=title,
            issuing_agency=agency,
            description=(fields.description or "").strip(),
            amount_range=amount_range,
            application_deadline=deadline,
            url=fields.url or None,
            opportunity_number=fields.opportunity_number or None,
            source_ids=[record.source_id],
            raw_payloads={record.source_id: record.payload},
        )
