"""Application lifecycle state machine."""

import logging
from datetime import date, datetime
from typing import Callable, Dict, FrozenSet, List, Optional, Union

from ..database import Store, conflict_retry
from ..errors import ConcurrentUpdateConflict, InvalidTransitionError, PersistenceError, UnknownEntityError
from ..models import Opportunity, OpportunityStatus
from ..models.opportunity import utcnow

logger = logging.getLogger(__name__)

S = OpportunityStatus

TRANSITIONS: Dict[OpportunityStatus, FrozenSet[OpportunityStatus]] = {
    S.DISCOVERED: frozenset({S.UNDER_REVIEW, S.ARCHIVED, S.EXPIRED}),
    S.UNDER_REVIEW: frozenset({S.DRAFTING, S.ARCHIVED, S.EXPIRED}),
    S.DRAFTING: frozenset({S.SUBMITTED, S.ARCHIVED, S.EXPIRED}),
    S.SUBMITTED: frozenset({S.AWARDED, S.DECLINED}),
    S.AWARDED: frozenset(),
    S.DECLINED: frozenset(),
    S.EXPIRED: frozenset(),
    S.ARCHIVED: frozenset(),
}

# States from which a passed deadline expires the opportunity
EXPIRABLE = frozenset({S.DISCOVERED, S.UNDER_REVIEW, S.DRAFTING})


def allowed_transitions(status: OpportunityStatus) -> FrozenSet[OpportunityStatus]:
    return TRANSITIONS[OpportunityStatus(status)]


def transition(
    opportunity: Opportunity,
    to_status: Union[OpportunityStatus, str],
    now: Optional[datetime] = None,
) -> Opportunity:
    """Return a copy of ``opportunity`` in ``to_status``; the input is never mutated.

    Raises:
        InvalidTransitionError: unknown target, same state, or an edge not in
            ``TRANSITIONS``.
    """
    try:
        target = OpportunityStatus(to_status)
    except ValueError:
        raise InvalidTransitionError(
            f"unknown status '{to_status}'", identity_key=opportunity.identity_key
        ) from None

    current = opportunity.status
    if target not in TRANSITIONS[current]:
        raise InvalidTransitionError(
            f"cannot move from {current.value} to {target.value}",
            identity_key=opportunity.identity_key,
        )

    now = now or utcnow()
    return opportunity.model_copy(
        update={"status": target, "status_changed_at": now, "updated_at": now}
    )


class LifecycleService:
    """Persists status transitions through versioned writes."""

    def __init__(
        self,
        store: Store,
        max_retries: int = 5,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.max_retries = max_retries
        self.clock = clock

    def advance(self, identity_key: str, to_status: Union[OpportunityStatus, str]) -> Opportunity:
        """Move one opportunity to ``to_status``.

        Raises:
            UnknownEntityError: no opportunity with that key.
            InvalidTransitionError: the move is not allowed; nothing is written.
            PersistenceError: conflicts persisted through every retry.
        """
        try:
            for attempt in conflict_retry(self.max_retries):
                with attempt:
                    current = self.store.get_opportunity(identity_key)
                    if current is None:
                        raise UnknownEntityError("Opportunity not found", identity_key=identity_key)
                    updated = transition(current, to_status, self.clock())
                    stored = self.store.replace_opportunity(updated, expected_version=current.version)
        except ConcurrentUpdateConflict as exc:
            raise PersistenceError(
                "status write retries exhausted", identity_key=identity_key
            ) from exc

        logger.info(
            "status_changed identity_key=%s from=%s to=%s",
            identity_key,
            current.status.value,
            stored.status.value,
        )
        return stored

    def expire_overdue(self, today: Optional[date] = None) -> List[str]:
        """Expire pre-submission opportunities whose deadline is before ``today``.

        Returns the identity keys that were expired.
        """
        today = today or self.clock().date()
        expired = []
        for opp in self.store.list_opportunities(deadline_to=today):
            if opp.status not in EXPIRABLE or opp.application_deadline >= today:
                continue
            try:
                self.advance(opp.identity_key, S.EXPIRED)
            except InvalidTransitionError:
                # Moved past an expirable state since the listing
                logger.debug("skip expiry identity_key=%s", opp.identity_key)
                continue
            expired.append(opp.identity_key)

        if expired:
            logger.info("expire_overdue today=%s expired=%d", today.isoformat(), len(expired))
        return expired
