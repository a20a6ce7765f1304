"""Feature tokenization shared by the scorer and the learning loop."""

import re
from typing import FrozenSet

_WORD = re.compile(r"[a-z0-9]+")


def tokenize(text: str, max_ngram: int = 1) -> FrozenSet[str]:
    """Return the set of word n-grams (1..max_ngram) in ``text``.

    N-grams are lower-cased words joined by single spaces, the same shape
    ``normalize_feature`` produces, so multi-word features like "food bank"
    can match.
    """
    words = _WORD.findall((text or "").lower())
    tokens = set()
    for n in range(1, max(1, max_ngram) + 1):
        for i in range(len(words) - n + 1):
            tokens.add(" ".join(words[i:i + n]))
    return frozenset(tokens)


def feature_length(feature: str) -> int:
    return len(feature.split(" "))
