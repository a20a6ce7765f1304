"""Pure merge rules for two records that share an identity key."""

from typing import Optional

from ..models import AmountRange, Opportunity

TEXT_FIELDS = ("title", "issuing_agency", "description", "url", "opportunity_number")

# Fields ignored when deciding whether a merge changed anything
VOLATILE_FIELDS = {"updated_at", "version"}


def _specificity(amount: Optional[AmountRange]):
    if amount is None:
        return (0, float("-inf"))
    return (amount.known_bounds, -amount.width)


def merge_opportunity(existing: Opportunity, candidate: Opportunity) -> Opportunity:
    """Merge a freshly normalized candidate into the stored record.

    Richer data wins and known values never regress to empty. Status,
    identity key and creation time always come from ``existing``; matches
    are taken from ``candidate`` wholesale.
    """
    update = {}
    for field in TEXT_FIELDS:
        current = getattr(existing, field)
        incoming = getattr(candidate, field)
        if not current and incoming:
            update[field] = incoming

    if _specificity(candidate.amount_range) > _specificity(existing.amount_range):
        update["amount_range"] = candidate.amount_range

    if existing.application_deadline is None and candidate.application_deadline is not None:
        update["application_deadline"] = candidate.application_deadline

    update["source_ids"] = sorted(set(existing.source_ids) | set(candidate.source_ids))
    update["raw_payloads"] = {**existing.raw_payloads, **candidate.raw_payloads}
    update["matches"] = list(candidate.matches)

    return existing.model_copy(deep=True, update=update)


def has_changes(before: Opportunity, after: Opportunity) -> bool:
    """True when the records differ in anything but timestamps and version."""
    return before.model_dump(exclude=VOLATILE_FIELDS) != after.model_dump(exclude=VOLATILE_FIELDS)
