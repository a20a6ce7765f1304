"""Opportunity lifecycle transitions."""

from .state_machine import EXPIRABLE, TRANSITIONS, LifecycleService, allowed_transitions, transition

__all__ = ["EXPIRABLE", "TRANSITIONS", "LifecycleService", "allowed_transitions", "transition"]
