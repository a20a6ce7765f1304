"""Tests for the adapter registry (plugin surface)."""

import pytest

from grant_discovery.adapters import AdapterRegistry, SbirGovAdapter, build_default_registry
from grant_discovery.config import Config


def test_register_rejects_duplicate_source_id():
    registry = AdapterRegistry([SbirGovAdapter()])

    with pytest.raises(ValueError, match="sbir_gov"):
        registry.register(SbirGovAdapter())

    assert len(registry) == 1


def test_unregister_removes_adapter_and_mapper(stub_adapter):
    registry = AdapterRegistry([stub_adapter("a"), stub_adapter("b")])

    removed = registry.unregister("a")

    assert removed.source_id == "a"
    assert registry.source_ids == ["b"]
    assert set(registry.field_mappers()) == {"b"}
    assert "a" not in registry
    with pytest.raises(KeyError):
        registry.unregister("a")


def test_field_mappers_dispatch_to_adapter(stub_adapter):
    registry = AdapterRegistry([stub_adapter("a")])

    fields = registry.field_mappers()["a"]({"title": "T", "agency": "A"})

    assert fields.title == "T"
    assert fields.agency == "A"


def test_iteration_preserves_registration_order(stub_adapter):
    registry = AdapterRegistry([stub_adapter("z"), stub_adapter("a")])

    assert [a.source_id for a in registry] == ["z", "a"]
    assert registry.get("a") is not None
    assert registry.get("missing") is None


class TestDefaultRegistry:
    def test_sam_gov_skipped_without_api_key(self):
        registry = build_default_registry(Config(_env_file=None, sam_api_key=None))

        assert "sam_gov" not in registry
        assert set(registry.source_ids) == {
            "grants_gov", "sbir_gov", "nih_reporter", "nsf_awards", "federal_register",
            "usaspending", "fema",
        }

    def test_sam_gov_registered_with_api_key(self):
        registry = build_default_registry(
            Config(_env_file=None, sam_api_key="key", grants_gov_attribution="Attribution")
        )

        assert "sam_gov" in registry
        assert len(registry) == 8
        assert registry.get("grants_gov").attribution_header == "Attribution"

    def test_fema_state_from_config(self):
        registry = build_default_registry(Config(_env_file=None, fema_state="tx"))

        assert registry.get("fema").state == "TX"
