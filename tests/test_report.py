"""Tests for src.fairness.report and src.fairness.raw_metrics."""

import math
from dataclasses import replace

import pandas as pd
import pytest

from src.fairness.config import FairnessThresholds
from src.fairness.raw_metrics import RAW_METRICS, raw_metric_frame
from src.fairness.report import (
    CHECK_DEFINITIONS,
    STAT_REDUCERS,
    FairnessStat,
    FairnessSummary,
    ScenarioMetricsReport,
    build_fairness_narrative,
    evaluate_fairness_checks,
    format_degrees,
    format_units,
    reports_to_frame,
    seed_label,
    summarize_reports,
)

# Comfortably inside every default threshold
PASSING_VALUES = {
    "adjacent_range": 0.0,
    "center_neutral_count": 4,
    "center_neutral_count_max": 5,
    "satellite_angle_std_dev_deg": 20.0,
    "neutral_angle_std_dev_deg": 30.0,
    "hq_radius_range": 0.0,
    "hq_nearest_enemy_range": 0.0,
    "hq_average_enemy_range": 0.0,
    "hq_angle_max_deviation_deg": 0.1,
    "cluster_average_range": 10.0,
    "cluster_min_spacing": 200.0,
    "cluster_max_spacing": 300.0,
    "min_foreign_gap": 100.0,
    "neutral_spread": 200.0,
    "isolation_range": 100.0,
    "clearance": 80.0,
    "max_distance_to_center": 1200.0,
}


def _make_summary(seeds_tested=3, average_hq_distance=1080.4, **overrides):
    stats = {key: FairnessStat(value, 1) for key, value in PASSING_VALUES.items()}
    for key, (value, seed) in overrides.items():
        stats[key] = FairnessStat(value, seed)
    return FairnessSummary(seeds_tested, average_hq_distance, stats)


def _make_reports(base_scenario, base_metrics, seeds, **columns):
    """One report per seed, overriding metric fields column-wise."""
    reports = []
    for i, seed in enumerate(seeds):
        fields = {name: values[i] for name, values in columns.items()}
        metrics = replace(base_metrics, **fields)
        reports.append(ScenarioMetricsReport(seed=seed, scenario=base_scenario, metrics=metrics))
    return reports


# ── Aggregation ──────────────────────────────────────────────────────


class TestSummarizeReports:

    def test_max_stat_ties_keep_first_seed(self, seed_one_scenario, seed_one_metrics):
        reports = _make_reports(
            seed_one_scenario, seed_one_metrics, [5, 6, 7],
            nearest_neutral_spread=[100.0, 300.0, 300.0],
        )
        stat = summarize_reports(reports).stats["neutral_spread"]
        assert stat == FairnessStat(300.0, 6)

    def test_min_stat_ignores_infinite(self, seed_one_scenario, seed_one_metrics):
        reports = _make_reports(
            seed_one_scenario, seed_one_metrics, [1, 2, 3],
            min_foreign_gap_across_players=[math.inf, 80.0, 70.0],
        )
        assert summarize_reports(reports).stats["min_foreign_gap"] == FairnessStat(70.0, 3)

    def test_all_infinite_reports_zero_without_seed(self, seed_one_scenario, seed_one_metrics):
        reports = _make_reports(
            seed_one_scenario, seed_one_metrics, [1, 2],
            min_foreign_gap_across_players=[math.inf, math.inf],
        )
        assert summarize_reports(reports).stats["min_foreign_gap"] == FairnessStat(0.0, None)

    def test_center_count_tracked_both_ways(self, seed_one_scenario, seed_one_metrics):
        reports = _make_reports(
            seed_one_scenario, seed_one_metrics, [1, 2, 3],
            center_neutral_count=[4, 3, 6],
        )
        stats = summarize_reports(reports).stats
        assert stats["center_neutral_count"] == FairnessStat(3.0, 2)
        assert stats["center_neutral_count_max"] == FairnessStat(6.0, 3)

    def test_type_ranges_reduced(self, seed_one_scenario, seed_one_metrics):
        reports = _make_reports(
            seed_one_scenario, seed_one_metrics, [1, 2],
            neutral_type_count_ranges=[{"foundry": 1, "reactor": 2}, {"foundry": 3, "reactor": 0}],
        )
        stats = summarize_reports(reports).stats
        assert stats["neutral_foundry_range"] == FairnessStat(3.0, 2)
        assert stats["neutral_reactor_range"] == FairnessStat(2.0, 1)

    def test_average_hq_distance(self, seed_one_scenario, seed_one_metrics):
        reports = _make_reports(
            seed_one_scenario, seed_one_metrics, [1, 2],
            hq_distances=[[1000.0, 1100.0], [1200.0, 1300.0]],
        )
        assert summarize_reports(reports).average_hq_distance == pytest.approx(1150.0)

    def test_empty(self):
        summary = summarize_reports([])
        assert summary.seeds_tested == 0
        assert summary.average_hq_distance == 0.0
        assert set(summary.stats) == set(STAT_REDUCERS)
        assert all(s == FairnessStat(0.0, None) for s in summary.stats.values())

    def test_reports_to_frame(self, seed_one_scenario, seed_one_metrics):
        reports = _make_reports(
            seed_one_scenario, seed_one_metrics, [4, 9],
            isolation_range=[10.0, 20.0],
        )
        frame = reports_to_frame(reports)
        assert list(frame.columns) == ["seed", *STAT_REDUCERS]
        assert frame["seed"].tolist() == [4, 9]
        assert frame["isolation_range"].tolist() == [10.0, 20.0]


# ── Checks ───────────────────────────────────────────────────────────


class TestEvaluateFairnessChecks:

    def test_every_check_has_a_tracked_stat(self):
        for check in CHECK_DEFINITIONS:
            assert check.stat_key in STAT_REDUCERS
            assert hasattr(FairnessThresholds(), check.threshold_key)

    def test_all_pass(self):
        results = evaluate_fairness_checks(_make_summary())
        assert len(results) == len(CHECK_DEFINITIONS) == 17
        assert all(r.passed for r in results)

    def test_max_check_fails_with_seed(self):
        summary = _make_summary(neutral_spread=(400.0, 12))
        result = next(r for r in evaluate_fairness_checks(summary) if r.id == "neutral_spread")
        assert not result.passed
        assert result.seed == 12
        assert result.fail_text == "Neutral reach skewed (400.0u > 350.0u on seed #12)."

    def test_min_check_fails(self):
        summary = _make_summary(center_neutral_count=(2, 8))
        result = next(r for r in evaluate_fairness_checks(summary) if r.id == "center_occupancy")
        assert not result.passed
        assert result.fail_text == "Center was sparse on seed #8 (2 < 3)."

    def test_limits_are_inclusive(self):
        summary = _make_summary(
            neutral_spread=(350.0, 1),
            clearance=(40.0, 1),
        )
        results = {r.id: r for r in evaluate_fairness_checks(summary)}
        assert results["neutral_spread"].passed
        assert results["clearance"].passed

    def test_custom_thresholds(self):
        results = evaluate_fairness_checks(_make_summary(), FairnessThresholds(neutral_spread=100))
        failed = [r.id for r in results if not r.passed]
        assert failed == ["neutral_spread"]

    def test_pass_text(self):
        result = next(
            r for r in evaluate_fairness_checks(_make_summary()) if r.id == "center_occupancy"
        )
        assert result.pass_text == "Center populated with 4 neutrals (min 3)."


class TestFormatting:

    def test_seed_label(self):
        assert seed_label(17) == "seed #17"
        assert seed_label(None) == "unknown seed"

    def test_units_and_degrees(self):
        assert format_units(12.345) == "12.3u"
        assert format_degrees(1.5) == "1.50°"
        assert format_units(math.inf) == "—"
        assert format_degrees(math.nan) == "—"


# ── Narrative ────────────────────────────────────────────────────────


class TestNarrative:

    def test_headline_and_one_line_per_check(self):
        narrative = build_fairness_narrative(_make_summary())
        assert narrative.lines[0] == (
            "Across 3 seeds, neighboring HQ travel distance stayed around 1080 units."
        )
        assert len(narrative.lines) == 1 + len(CHECK_DEFINITIONS)
        assert all(line.startswith("✅ ") for line in narrative.lines[1:])

    def test_failed_check_warns(self):
        narrative = build_fairness_narrative(_make_summary(isolation_range=(450.0, 4)))
        warnings = [line for line in narrative.lines if line.startswith("⚠️ ")]
        assert warnings == ["⚠️ Someone was isolated (450.0u > 300.0u on seed #4)."]


# ── Raw metric table ─────────────────────────────────────────────────


class TestRawMetricFrame:

    def test_rows(self):
        summary = _make_summary(
            visible_neutral_min=(1, 2),
            visible_neutral_range=(2, 3),
            visible_enemy_max=(0, 1),
            min_structure_distance=(120.0, 5),
        )
        frame = raw_metric_frame(summary)
        assert len(frame) == len(RAW_METRICS) == 14
        assert list(frame.columns) == ["metric", "value", "display", "seed", "description"]

        first = frame.iloc[0]
        assert first["metric"] == "Average HQ distance"
        assert first["display"] == "1080.4u"
        assert pd.isna(first["seed"])

        by_metric = frame.set_index("metric")
        assert by_metric.loc["Min visible neutrals at spawn", "display"] == "1 outposts"
        assert by_metric.loc["Nearest-neutral spread", "display"] == "200.00u"
        assert by_metric.loc["Satellite angle stddev", "display"] == "20.00°"
