"""Weighted-feature scoring engine for module matching."""

from .engine import Scorer, opportunity_text, score_module, score_opportunity
from .params import DEFAULT_PARAMS, ScoringParams, load_params
from .tokens import tokenize

__all__ = [
    "Scorer",
    "opportunity_text",
    "score_module",
    "score_opportunity",
    "DEFAULT_PARAMS",
    "ScoringParams",
    "load_params",
    "tokenize",
]
