"""Unit tests for the weighted-feature scoring engine."""

import json

import pytest

from grant_discovery.models import Module
from grant_discovery.scorer import (
    Scorer,
    ScoringParams,
    load_params,
    score_module,
    score_opportunity,
    tokenize,
)


@pytest.fixture
def modules(rural_health_module, veterans_module):
    return [veterans_module, rural_health_module]


def test_tokenize_builds_ngrams():
    tokens = tokenize("Rural Health: Telehealth!", max_ngram=2)

    assert tokens == frozenset({"rural", "health", "telehealth", "rural health", "health telehealth"})


def test_multi_word_feature_matches(make_opportunity, modules):
    opp = make_opportunity(title="Rural Health Grant", description="Telehealth for underserved counties")

    matches = score_opportunity(opp, modules)

    assert [m.module_id for m in matches] == ["rural-health"]
    match = matches[0]
    assert match.matched_features == ["rural", "rural health", "telehealth", "underserved"]
    assert match.score == pytest.approx(4 / 6)
    assert match.confidence == pytest.approx(4 / 6)


def test_scoring_is_deterministic(make_opportunity, modules):
    opp = make_opportunity(description="Telehealth and veteran employment transition in rural areas")

    first = Scorer(modules).score(opp)
    second = Scorer(list(reversed(modules))).score(opp)

    assert [m.model_dump() for m in first] == [m.model_dump() for m in second]


def test_single_low_weight_token_never_reaches_full_confidence():
    module = Module(module_id="m", display_name="M", features={"veteran": 0.1, "housing": 5.0})

    match = score_module(tokenize("veteran"), module)

    assert match.matched_features == ["veteran"]
    assert match.confidence < 1.0
    assert match.confidence == pytest.approx(match.score / 3)


def test_single_feature_module_confidence_is_ramped():
    module = Module(module_id="m", display_name="M", features={"veteran": 1.0})

    match = score_module(tokenize("veteran"), module)

    assert match.score == 1.0
    assert match.confidence == pytest.approx(1 / 3)


def test_threshold_is_inclusive():
    module = Module(module_id="m", display_name="M", features={"a": 1.0, "b": 1.0, "c": 1.0, "d": 1.0})

    at_threshold = Scorer([module], ScoringParams(match_threshold=0.25)).score_text("a")
    above_threshold = Scorer([module], ScoringParams(match_threshold=0.26)).score_text("a")

    assert [m.module_id for m in at_threshold] == ["m"]
    assert above_threshold == []


def test_ties_ordered_by_module_id():
    beta = Module(module_id="beta", display_name="B", features={"water": 1.0})
    alpha = Module(module_id="alpha", display_name="A", features={"water": 1.0})

    matches = Scorer([beta, alpha]).score_text("clean water")

    assert [m.module_id for m in matches] == ["alpha", "beta"]


def test_zero_weight_module_is_skipped():
    module = Module(module_id="m", display_name="M", features={"water": 0.0})

    assert score_module(tokenize("water"), module) is None
    assert Scorer([module]).score_text("water") == []


def test_modules_without_hits_are_excluded(modules):
    assert Scorer(modules, ScoringParams(match_threshold=0.0)).score_text("nothing relevant") == []


class TestScoringParams:
    def test_threshold_out_of_range(self):
        with pytest.raises(ValueError):
            ScoringParams(match_threshold=1.5)

    def test_token_floor_must_be_positive(self):
        with pytest.raises(ValueError):
            ScoringParams(confidence_token_floor=0)

    def test_load_params_from_yaml(self, tmp_path):
        path = tmp_path / "params.yaml"
        path.write_text("match_threshold: 0.3\nconfidence_token_floor: 2\n")

        params = load_params(str(path))

        assert params.match_threshold == 0.3
        assert params.confidence_token_floor == 2

    def test_load_params_from_json(self, tmp_path):
        path = tmp_path / "params.json"
        path.write_text(json.dumps({"match_threshold": 0.2}))

        assert load_params(str(path)).match_threshold == 0.2

    def test_load_params_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_params("/nonexistent/params.yaml")

    def test_load_params_defaults(self):
        assert load_params() == ScoringParams()
