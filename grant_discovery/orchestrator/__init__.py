"""Discovery run orchestration."""

from .runner import DiscoveryOrchestrator

__all__ = ["DiscoveryOrchestrator"]
