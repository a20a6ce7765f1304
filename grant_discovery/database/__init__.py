"""Persistence: store contract plus in-memory and Supabase implementations."""

from .base import Store, conflict_retry, filter_opportunities
from .memory import InMemoryStore

__all__ = ["Store", "conflict_retry", "filter_opportunities", "InMemoryStore"]
