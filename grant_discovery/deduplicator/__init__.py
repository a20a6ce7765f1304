"""Identity-key deduplication and upsert merging."""

from .dedup import Deduplicator, UpsertOutcome, UpsertResult
from .merger import has_changes, merge_opportunity

__all__ = ["Deduplicator", "UpsertOutcome", "UpsertResult", "has_changes", "merge_opportunity"]
