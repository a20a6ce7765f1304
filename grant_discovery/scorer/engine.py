"""Weighted-feature scoring of opportunities against the module catalog.

For each module ``m`` with feature weights ``w``:

    score(m)      = sum(w[f] for f in T & features(m)) / sum(w.values())
    confidence(m) = score(m) * min(1, |T & features(m)| / confidence_token_floor)

where ``T`` is the token set of title + description. Matches below
``match_threshold`` are dropped; ordering is score desc, module_id asc.
The result is a pure function of (text, modules, params).
"""

import math
from typing import FrozenSet, Iterable, List, Optional

from ..models import Module, ModuleMatch, Opportunity
from .params import DEFAULT_PARAMS, ScoringParams
from .tokens import feature_length, tokenize


def opportunity_text(opportunity: Opportunity) -> str:
    return f"{opportunity.title or ''} {opportunity.description or ''}"


def score_module(
    tokens: FrozenSet[str],
    module: Module,
    params: ScoringParams = DEFAULT_PARAMS,
) -> Optional[ModuleMatch]:
    """Score a single module, or None when it has no usable weight."""
    total = math.fsum(module.features[f] for f in sorted(module.features))
    if total <= 0:
        return None

    hits = sorted(f for f in module.features if f in tokens)
    if not hits:
        return ModuleMatch(module_id=module.module_id, score=0.0, confidence=0.0)

    score = min(1.0, math.fsum(module.features[f] for f in hits) / total)
    ramp = min(1.0, len(hits) / params.confidence_token_floor)
    return ModuleMatch(
        module_id=module.module_id,
        score=score,
        confidence=score * ramp,
        matched_features=hits,
    )


class Scorer:
    """Scores opportunities against a fixed snapshot of the module catalog."""

    def __init__(self, modules: Iterable[Module], params: ScoringParams = DEFAULT_PARAMS):
        self.modules: List[Module] = sorted(modules, key=lambda m: m.module_id)
        self.params = params
        self.max_ngram = max(
            (feature_length(f) for m in self.modules for f in m.features),
            default=1,
        )

    def tokens(self, text: str) -> FrozenSet[str]:
        return tokenize(text, self.max_ngram)

    def score_text(self, text: str) -> List[ModuleMatch]:
        tokens = self.tokens(text)
        matches = []
        for module in self.modules:
            match = score_module(tokens, module, self.params)
            if match is None or match.score < self.params.match_threshold:
                continue
            if not match.matched_features:
                continue
            matches.append(match)
        matches.sort(key=lambda m: (-m.score, m.module_id))
        return matches

    def score(self, opportunity: Opportunity) -> List[ModuleMatch]:
        """Ranked module matches for an opportunity."""
        return self.score_text(opportunity_text(opportunity))


def score_opportunity(
    opportunity: Opportunity,
    modules: Iterable[Module],
    params: ScoringParams = DEFAULT_PARAMS,
) -> List[ModuleMatch]:
    """Convenience wrapper: build a Scorer and score one opportunity."""
    return Scorer(modules, params).score(opportunity)
