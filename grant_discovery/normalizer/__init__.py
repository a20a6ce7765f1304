"""Normalization of raw source payloads into Opportunity records."""

from .normalizer import (
    Normalizer,
    compute_identity_key,
    normalize_text,
    parse_amount,
    parse_date,
)

__all__ = ["Normalizer", "compute_identity_key", "normalize_text", "parse_amount", "parse_date"]
