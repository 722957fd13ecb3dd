"""
Tests for the violation catalog and risk scorer
"""
import pytest

from examguard.core.exceptions import InvalidArgumentError
from examguard.proctoring import catalog, scoring


class TestRiskScore:
    def test_weighted_sum_below_threshold(self):
        summary = {"cell_phone": 1, "tab_switch": 2}

        risk = scoring.score(summary)

        assert risk == 25
        assert scoring.should_flag(risk, currently_flagged=False) is False

    def test_crossing_threshold_flags(self):
        summary = {"cell_phone": 3, "multiple_faces": 1}

        risk = scoring.score(summary)

        assert risk == 55
        assert scoring.should_flag(risk, currently_flagged=False) is True

    def test_score_is_capped_at_100(self):
        assert scoring.score({"cell_phone": 10}) == 100

    def test_empty_summary_scores_zero(self):
        assert scoring.score(catalog.empty_summary()) == 0

    def test_unknown_kind_uses_default_weight(self):
        assert scoring.score({"eye_tracking": 2}) == 2 * catalog.DEFAULT_WEIGHT

    def test_every_catalog_weight_counts_once(self):
        summary = {kind: 1 for kind in catalog.VIOLATION_KINDS}
        assert scoring.score(summary) == min(sum(catalog.VIOLATION_WEIGHTS.values()), 100)

    def test_negative_counts_do_not_lower_score(self):
        assert scoring.score({"cell_phone": 2, "tab_switch": -5}) == 30

    @pytest.mark.parametrize("counts", [
        {},
        {"no_face": 1},
        {"suspicious_activity": 4, "copy_paste": 3},
        {"prohibited_object": 50, "fullscreen_exit": 50},
    ])
    def test_score_stays_within_bounds(self, counts):
        assert 0 <= scoring.score(counts) <= scoring.MAX_RISK_SCORE


class TestFlagging:
    def test_flag_is_never_cleared_by_scoring(self):
        assert scoring.should_flag(10, currently_flagged=True) is True

    def test_threshold_is_inclusive(self):
        assert scoring.should_flag(scoring.FLAG_THRESHOLD, currently_flagged=False) is True
        assert scoring.should_flag(scoring.FLAG_THRESHOLD - 1, currently_flagged=False) is False


class TestCatalog:
    def test_catalog_has_eight_kinds(self):
        assert len(catalog.VIOLATION_KINDS) == 8
        assert set(catalog.empty_summary()) == set(catalog.VIOLATION_KINDS)

    def test_parse_known_type(self):
        assert catalog.parse_violation_type("cell_phone") is catalog.ViolationType.CELL_PHONE

    def test_parse_unknown_type_is_rejected(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            catalog.parse_violation_type("other")
        assert exc_info.value.kind == "invalid_argument"

    def test_missing_severity_defaults_to_medium(self):
        assert catalog.parse_severity(None) is catalog.Severity.MEDIUM

    def test_unknown_severity_is_rejected(self):
        with pytest.raises(InvalidArgumentError):
            catalog.parse_severity("extreme")
