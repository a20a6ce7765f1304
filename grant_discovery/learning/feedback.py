"""Outcome-driven feature weight learning.

Each won/lost event nudges the weight of every snapshot feature:

    w' = clamp(w + (1 / (1 + n)) * (+1 | -1) * base_increment, min_weight, max_weight)

where ``n`` is how many events have already adjusted that feature. The update
is pure and replayable; idempotence comes from the module's
``applied_event_ids`` and the event's ``processed`` flag.
"""

import logging
from typing import Callable, Union

from ..database import Store, conflict_retry
from ..errors import ConcurrentUpdateConflict, PersistenceError, UnknownEntityError
from ..models import Module, Outcome, OutcomeEvent
from ..models.opportunity import utcnow
from ..scorer import opportunity_text, tokenize
from ..scorer.tokens import feature_length
from .params import DEFAULT_LEARNING_PARAMS, LearningParams

logger = logging.getLogger(__name__)


def adjust_weight(
    weight: float,
    events_seen: int,
    outcome: Union[Outcome, str],
    params: LearningParams = DEFAULT_LEARNING_PARAMS,
) -> float:
    """One bounded step with a learning rate that decays per feature."""
    direction = 1.0 if Outcome(outcome) == Outcome.WON else -1.0
    rate = 1.0 / (1 + max(0, events_seen))
    adjusted = weight + rate * direction * params.base_increment
    return min(params.max_weight, max(params.min_weight, adjusted))


def apply_outcome(
    module: Module,
    event: OutcomeEvent,
    params: LearningParams = DEFAULT_LEARNING_PARAMS,
) -> Module:
    """Return a copy of ``module`` with ``event`` folded into its weights."""
    features = dict(module.features)
    feature_events = dict(module.feature_events)
    for feature in sorted(set(event.feature_snapshot)):
        if feature not in features:
            logger.debug(
                "skip feature not in module module_id=%s feature=%s event_id=%s",
                module.module_id, feature, event.event_id,
            )
            continue
        seen = feature_events.get(feature, 0)
        features[feature] = adjust_weight(features[feature], seen, event.outcome, params)
        feature_events[feature] = seen + 1

    return module.model_copy(
        update={
            "features": features,
            "feature_events": feature_events,
            "applied_event_ids": [*module.applied_event_ids, event.event_id],
            "updated_at": utcnow(),
        }
    )


class FeedbackLoop:
    """Applies recorded outcome events to module weights, at most once each."""

    def __init__(
        self,
        store: Store,
        params: LearningParams = DEFAULT_LEARNING_PARAMS,
        max_retries: int = 5,
    ):
        self.store = store
        self.params = params
        self.max_retries = max_retries

    def process(self, event_id: str) -> bool:
        """Apply one event. Returns False if it had already been processed."""
        event = self.store.get_outcome(event_id)
        if event is None:
            raise UnknownEntityError("Outcome event not found", event_id=event_id)
        if event.processed:
            logger.debug("outcome already processed event_id=%s", event_id)
            return False

        try:
            for attempt in conflict_retry(self.max_retries):
                with attempt:
                    self._apply_once(event)
        except ConcurrentUpdateConflict as exc:
            raise PersistenceError(
                "module weight write retries exhausted",
                module_id=event.module_id,
                event_id=event_id,
            ) from exc

        return self.store.mark_outcome_processed(event_id, utcnow())

    def _apply_once(self, event: OutcomeEvent) -> None:
        module = self.store.get_module(event.module_id)
        if module is None:
            raise UnknownEntityError("Module not found", module_id=event.module_id)
        if event.event_id in module.applied_event_ids:
            logger.debug("outcome already applied event_id=%s module_id=%s", event.event_id, module.module_id)
            return
        updated = apply_outcome(module, event, self.params)
        self.store.replace_module(updated, expected_version=module.version)
        logger.info(
            "weights_updated module_id=%s event_id=%s outcome=%s features=%d",
            module.module_id,
            event.event_id,
            event.outcome.value,
            len(event.feature_snapshot),
        )

    def process_pending(self) -> int:
        """Process all unprocessed events in (recorded_at, event_id) order.

        An event whose module no longer exists is logged and left unprocessed;
        later events still apply. Applied-event ids of processed events are
        pruned from the modules afterwards.
        """
        applied = 0
        for event in self.store.list_outcomes(processed=False):
            try:
                if self.process(event.event_id):
                    applied += 1
            except UnknownEntityError as exc:
                logger.warning(
                    "outcome_skipped event_id=%s module_id=%s error=%s",
                    event.event_id, event.module_id, exc,
                )
        if applied:
            logger.info("outcomes_processed count=%d", applied)
        self.prune_applied()
        return applied

    def prune_applied(self) -> int:
        """Drop applied-event ids whose events are already marked processed.

        The ids only guard the window between the weight write and marking the
        event processed, so the module row stays bounded. Returns the number
        of ids dropped.
        """
        pruned = 0
        for module in self.store.list_modules():
            if not module.applied_event_ids:
                continue
            try:
                for attempt in conflict_retry(self.max_retries):
                    with attempt:
                        dropped = self._prune_once(module.module_id)
            except ConcurrentUpdateConflict as exc:
                raise PersistenceError(
                    "module prune retries exhausted", module_id=module.module_id
                ) from exc
            pruned += dropped
        if pruned:
            logger.debug("applied_event_ids_pruned count=%d", pruned)
        return pruned

    def _prune_once(self, module_id: str) -> int:
        module = self.store.get_module(module_id)
        if module is None:
            return 0
        keep = [eid for eid in module.applied_event_ids if self._awaiting_mark(eid)]
        dropped = len(module.applied_event_ids) - len(keep)
        if dropped:
            self.store.replace_module(
                module.model_copy(update={"applied_event_ids": keep}),
                expected_version=module.version,
            )
        return dropped

    def _awaiting_mark(self, event_id: str) -> bool:
        event = self.store.get_outcome(event_id)
        return event is not None and not event.processed


class OutcomeRecorder:
    """Validates and appends won/lost outcome events."""

    def __init__(self, store: Store, clock: Callable = utcnow):
        self.store = store
        self.clock = clock

    def record_outcome(
        self,
        opportunity_id: str,
        module_id: str,
        outcome: Union[Outcome, str],
    ) -> OutcomeEvent:
        opportunity = self.store.get_opportunity(opportunity_id)
        if opportunity is None:
            raise UnknownEntityError("Opportunity not found", identity_key=opportunity_id)
        module = self.store.get_module(module_id)
        if module is None:
            raise UnknownEntityError("Module not found", module_id=module_id)

        match = opportunity.match_for(module_id)
        if match is not None:
            snapshot = list(match.matched_features)
        else:
            max_ngram = max((feature_length(f) for f in module.features), default=1)
            tokens = tokenize(opportunity_text(opportunity), max_ngram)
            snapshot = sorted(tokens & set(module.features))

        event = OutcomeEvent(
            opportunity_id=opportunity_id,
            module_id=module_id,
            outcome=Outcome(outcome),
            feature_snapshot=snapshot,
            recorded_at=self.clock(),
        )
        self.store.append_outcome(event)
        logger.info(
            "outcome_recorded event_id=%s identity_key=%s module_id=%s outcome=%s",
            event.event_id, opportunity_id, module_id, event.outcome.value,
        )
        return event

