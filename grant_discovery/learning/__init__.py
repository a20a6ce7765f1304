"""Learning feedback loop: outcome events -> module feature weights."""

from .feedback import FeedbackLoop, OutcomeRecorder, adjust_weight, apply_outcome
from .params import DEFAULT_LEARNING_PARAMS, LearningParams

__all__ = [
    "DEFAULT_LEARNING_PARAMS",
    "FeedbackLoop",
    "LearningParams",
    "OutcomeRecorder",
    "adjust_weight",
    "apply_outcome",
]
