"""Source adapters for federal grant and research funding APIs."""

from .base import BaseAdapter, adapter_retry, is_transient
from .federal_register import FederalRegisterAdapter
from .fema import FemaAdapter
from .grants_gov import GrantsGovAdapter
from .nih_reporter import NihReporterAdapter
from .nsf_awards import NsfAwardsAdapter
from .registry import AdapterRegistry, build_default_registry
from .sam_gov import SamGovAdapter
from .sbir_gov import SbirGovAdapter
from .usaspending import UsaSpendingAdapter

__all__ = [
    "AdapterRegistry",
    "BaseAdapter",
    "FederalRegisterAdapter",
    "FemaAdapter",
    "GrantsGovAdapter",
    "NihReporterAdapter",
    "NsfAwardsAdapter",
    "SamGovAdapter",
    "SbirGovAdapter",
    "UsaSpendingAdapter",
    "adapter_retry",
    "build_default_registry",
    "is_transient",
]
