"""Tests for database.client (SupabaseStore).

The Supabase client is mocked; no network calls are made.
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import httpx
import pytest
from postgrest.exceptions import APIError

from grant_discovery.database.client import SupabaseStore
from grant_discovery.errors import ConcurrentUpdateConflict, PersistenceError, UnknownEntityError
from grant_discovery.models import OpportunityStatus


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_supabase():
    """Patch create_client so no real network call is made."""
    with patch("grant_discovery.database.client.create_client") as mock_create:
        mock_client = MagicMock()
        mock_create.return_value = mock_client
        store = SupabaseStore(url="https://fake.supabase.co", key="fake-key")
        yield store, mock_client


def _response(data):
    response = MagicMock()
    response.data = data
    return response


def _api_error(code, message="boom"):
    return APIError({"message": message, "code": code, "hint": None, "details": None})


# ---------------------------------------------------------------------------
# Opportunities
# ---------------------------------------------------------------------------

class TestOpportunities:
    def test_get_returns_model(self, mock_supabase, make_opportunity):
        store, sb = mock_supabase
        row = make_opportunity().model_dump(mode="json")
        sb.table.return_value.select.return_value.eq.return_value.execute.return_value = _response([row])

        opp = store.get_opportunity(row["identity_key"])

        assert opp.title == "Rural Health Grant"
        sb.table.assert_called_with("opportunities")

    def test_get_missing_returns_none(self, mock_supabase):
        store, sb = mock_supabase
        sb.table.return_value.select.return_value.eq.return_value.execute.return_value = _response([])

        assert store.get_opportunity("missing") is None

    def test_insert_sets_version_one(self, mock_supabase, make_opportunity):
        store, sb = mock_supabase
        sb.table.return_value.insert.return_value.execute.return_value = _response([])

        stored = store.insert_opportunity(make_opportunity())

        assert stored.version == 1
        payload = sb.table.return_value.insert.call_args[0][0]
        assert payload["version"] == 1
        assert payload["application_deadline"] == "2030-03-01"

    def test_duplicate_insert_is_a_conflict(self, mock_supabase, make_opportunity):
        store, sb = mock_supabase
        sb.table.return_value.insert.return_value.execute.side_effect = _api_error("23505")

        with pytest.raises(ConcurrentUpdateConflict):
            store.insert_opportunity(make_opportunity())

    def test_replace_is_conditional_on_version(self, mock_supabase, make_opportunity):
        store, sb = mock_supabase
        opp = make_opportunity()
        update = sb.table.return_value.update
        update.return_value.eq.return_value.eq.return_value.execute.return_value = _response(
            [opp.model_copy(update={"version": 4}).model_dump(mode="json")]
        )

        stored = store.replace_opportunity(opp, expected_version=3)

        assert stored.version == 4
        update.return_value.eq.return_value.eq.assert_called_with("version", 3)

    def test_replace_with_stale_version_conflicts(self, mock_supabase, make_opportunity):
        store, sb = mock_supabase
        opp = make_opportunity()
        sb.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.return_value = _response([])
        sb.table.return_value.select.return_value.eq.return_value.execute.return_value = _response(
            [opp.model_dump(mode="json")]
        )

        with pytest.raises(ConcurrentUpdateConflict):
            store.replace_opportunity(opp, expected_version=3)

    def test_replace_missing_record(self, mock_supabase, make_opportunity):
        store, sb = mock_supabase
        sb.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.return_value = _response([])
        sb.table.return_value.select.return_value.eq.return_value.execute.return_value = _response([])

        with pytest.raises(UnknownEntityError):
            store.replace_opportunity(make_opportunity(), expected_version=1)

    def test_list_filters_by_status(self, mock_supabase, make_opportunity):
        store, sb = mock_supabase
        later = make_opportunity(title="Later")
        undated = make_opportunity(title="Undated", deadline=None)
        query = sb.table.return_value.select.return_value
        query.eq.return_value.execute.return_value = _response(
            [undated.model_dump(mode="json"), later.model_dump(mode="json")]
        )

        result = store.list_opportunities(status=OpportunityStatus.DISCOVERED)

        query.eq.assert_called_with("status", "discovered")
        assert [o.title for o in result] == ["Later", "Undated"]


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

class TestErrorHandling:
    def test_api_error_becomes_persistence_error(self, mock_supabase):
        store, sb = mock_supabase
        sb.table.return_value.select.return_value.order.return_value.execute.side_effect = _api_error(
            "42P01", "relation does not exist"
        )

        with pytest.raises(PersistenceError) as exc_info:
            store.list_modules()

        assert "relation does not exist" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, APIError)

    def test_transport_error_becomes_persistence_error(self, mock_supabase):
        store, sb = mock_supabase
        sb.table.return_value.select.return_value.eq.return_value.execute.side_effect = httpx.ConnectError(
            "connection refused"
        )

        with pytest.raises(PersistenceError):
            store.get_module("rural-health")


# ---------------------------------------------------------------------------
# Outcome events
# ---------------------------------------------------------------------------

class TestOutcomes:
    def test_mark_processed_only_once(self, mock_supabase):
        store, sb = mock_supabase
        update = sb.table.return_value.update.return_value.eq.return_value.eq.return_value
        update.execute.return_value = _response([{"event_id": "e1"}])

        assert store.mark_outcome_processed("e1", datetime.now(timezone.utc)) is True
        sb.table.return_value.update.return_value.eq.return_value.eq.assert_called_with("processed", False)

    def test_mark_already_processed_returns_false(self, mock_supabase):
        store, sb = mock_supabase
        sb.table.return_value.update.return_value.eq.return_value.eq.return_value.execute.return_value = _response([])
        sb.table.return_value.select.return_value.eq.return_value.execute.return_value = _response([{
            "event_id": "e1",
            "opportunity_id": "opp",
            "module_id": "rural-health",
            "outcome": "won",
            "processed": True,
        }])

        assert store.mark_outcome_processed("e1", datetime.now(timezone.utc)) is False
