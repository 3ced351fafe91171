"""Tests for the post-normalization rebalancer, finishing passes and normalizer."""

import math

import pytest

from src.scenario_generator.anchors import place_headquarters
from src.scenario_generator.config import (
    DEFAULT_NORMALIZER_CONFIG,
    DEFAULT_REBALANCE_CONFIG,
    MAP_HEIGHT,
    MAP_WIDTH,
)
from src.scenario_generator.geometry import angle_of, distance, nearest_two_sums, polar, spread
from src.scenario_generator.models import Anchor, Point
from src.scenario_generator.normalizer import clamp_to_bounds, fit_scale, normalize_to_margin
from src.scenario_generator.rebalancer import (
    MISSING_DISTANCE,
    evacuate_center_overflow,
    fill_center_shortfall,
    isolation_scores,
    nearest_two_sums_padded,
    rebalance_neutrals,
    repair_final_spread,
)
from src.scenario_generator.rng import DeterministicRng

CENTER = Point(MAP_WIDTH / 2, MAP_HEIGHT / 2)
CFG = DEFAULT_REBALANCE_CONFIG


def _make_hq_points(seed=1):
    return [Point(hq.x, hq.y) for hq in place_headquarters(DeterministicRng(seed), CENTER)]


def _symmetric_neutrals(hqs, radius=300):
    """One neutral per HQ, *radius* units toward the center."""
    return [polar(hq, radius, angle_of(CENTER, hq)) for hq in hqs]


def _skewed_neutrals(hqs):
    """Five neutrals bunched near the first two HQs, none near the rest."""
    base = angle_of(CENTER, hqs[0])
    return [
        polar(hqs[0], 260, base),
        polar(hqs[0], 300, base + 1.2),
        polar(hqs[1], 260, angle_of(CENTER, hqs[1])),
        polar(hqs[1], 320, angle_of(CENTER, hqs[1]) - 1.2),
        polar(CENTER, 1200, angle_of(hqs[0], CENTER) + 0.6),
    ]


def _penalty(hqs, neutrals):
    s = spread(nearest_two_sums_padded(hqs, neutrals))
    iso = spread(isolation_scores(hqs, neutrals))
    return max(0.0, s - CFG.neutral_spread_limit) + max(0.0, iso - CFG.isolation_range_limit)


def _center_count(neutrals):
    return sum(1 for n in neutrals if distance(n, CENTER) <= CFG.center_radius)


# ── Metrics ──────────────────────────────────────────────────────────


class TestRebalanceMetrics:

    def test_padded_sums_without_neutrals(self):
        hqs = _make_hq_points()
        assert nearest_two_sums_padded(hqs, []) == [2 * MISSING_DISTANCE] * 5

    def test_padded_sums_repeat_single_neutral(self):
        hqs = [Point(0, 0)]
        assert nearest_two_sums_padded(hqs, [Point(300, 400)]) == [pytest.approx(1000.0)]

    def test_isolation_symmetric_layout(self):
        hqs = _make_hq_points()
        scores = isolation_scores(hqs, [CENTER])
        radius = distance(hqs[0], CENTER)
        for score in scores:
            # Three padded copies of the center distance plus two neighbours at 1080
            assert score == pytest.approx(radius + 1080.0)


# ── Rebalancer ───────────────────────────────────────────────────────


class TestRebalanceNeutrals:

    def test_empty_inputs_return_copy(self):
        hqs = _make_hq_points()
        assert rebalance_neutrals([], [CENTER], [], DeterministicRng(1)) == [CENTER]
        assert rebalance_neutrals(hqs, [], [], DeterministicRng(1)) == []

    def test_within_limits_unchanged(self):
        hqs = _make_hq_points()
        neutrals = _symmetric_neutrals(hqs)
        result = rebalance_neutrals(hqs, neutrals, list(hqs), DeterministicRng(1))
        assert result == neutrals
        assert result is not neutrals

    def test_penalty_never_increases(self):
        hqs = _make_hq_points(3)
        neutrals = _skewed_neutrals(hqs)
        before = _penalty(hqs, neutrals)
        result = rebalance_neutrals(hqs, neutrals, list(hqs), DeterministicRng(3))
        assert len(result) == len(neutrals)
        assert _penalty(hqs, result) <= before

    def test_moved_neutrals_respect_limits(self):
        hqs = _make_hq_points(3)
        neutrals = _skewed_neutrals(hqs)
        result = rebalance_neutrals(hqs, neutrals, list(hqs), DeterministicRng(3))
        for old, new in zip(neutrals, result):
            if old == new:
                continue
            assert distance(new, CENTER) <= CFG.max_distance_to_center
            assert 0 <= new.x <= MAP_WIDTH and 0 <= new.y <= MAP_HEIGHT
            assert all(distance(new, hq) >= CFG.min_neutral_separation for hq in hqs)

    def test_deterministic(self):
        hqs = _make_hq_points(3)
        neutrals = _skewed_neutrals(hqs)
        first = rebalance_neutrals(hqs, neutrals, list(hqs), DeterministicRng(8))
        second = rebalance_neutrals(hqs, neutrals, list(hqs), DeterministicRng(8))
        assert first == second


# ── Finishing passes ─────────────────────────────────────────────────


class TestFinishingPasses:

    def test_evacuate_center_overflow(self):
        crowded = [polar(CENTER, 40 * i, i * 0.7) for i in range(9)]
        result = evacuate_center_overflow(crowded, [], DeterministicRng(2))
        assert _center_count(result) <= CFG.max_center_count
        for old, new in zip(crowded, result):
            if old != new:
                d = distance(new, CENTER)
                assert CFG.center_radius + CFG.evac_gap <= d <= CFG.evac_radius_max + 1e-9

    def test_evacuate_noop_under_cap(self):
        neutrals = [polar(CENTER, 300, a) for a in (0.0, 2.0, 4.0)]
        assert evacuate_center_overflow(neutrals, [], DeterministicRng(2)) == neutrals

    def test_repair_never_widens_spread(self):
        hqs = _make_hq_points(5)
        neutrals = _skewed_neutrals(hqs)
        before = spread(nearest_two_sums(hqs, neutrals))
        result = repair_final_spread(hqs, neutrals, list(hqs))
        assert spread(nearest_two_sums(hqs, result)) <= before

    def test_repair_is_deterministic(self):
        hqs = _make_hq_points(5)
        neutrals = _skewed_neutrals(hqs)
        assert repair_final_spread(hqs, neutrals, hqs) == repair_final_spread(hqs, neutrals, hqs)

    def test_repair_empty_inputs(self):
        assert repair_final_spread([], [CENTER], []) == [CENTER]
        assert repair_final_spread(_make_hq_points(), [], []) == []

    def test_fill_center_shortfall(self):
        far = [polar(CENTER, 1200, i * math.tau / 10) for i in range(10)]
        result = fill_center_shortfall(far, [], DeterministicRng(4))
        assert _center_count(result) >= CFG.center_min_count
        assert len(result) == len(far)

    def test_fill_center_noop_when_satisfied(self):
        neutrals = [polar(CENTER, 300, a) for a in (0.0, 2.0, 4.0)]
        assert fill_center_shortfall(neutrals, [], DeterministicRng(4)) == neutrals


# ── Normalizer ───────────────────────────────────────────────────────


class TestNormalizer:

    def test_scale_is_one_when_inside_margin(self):
        points = [Point(CENTER.x + 100, CENTER.y - 100)]
        assert fit_scale(points, CENTER) == 1.0
        assert normalize_to_margin(points, CENTER) == points

    def test_shrinks_layout_into_margin(self):
        margin = DEFAULT_NORMALIZER_CONFIG.margin
        points = [Point(-500, CENTER.y), Point(CENTER.x, MAP_HEIGHT + 400), CENTER]
        result = normalize_to_margin(points, CENTER)
        for p in result:
            assert margin - 1e-6 <= p.x <= MAP_WIDTH - margin + 1e-6
            assert margin - 1e-6 <= p.y <= MAP_HEIGHT - margin + 1e-6
        assert result[2] == CENTER

    def test_keeps_anchor_fields(self):
        anchor = Anchor(id="p1-hq", type="hq", x=-800.0, y=CENTER.y, owner_id="p1")
        (scaled,) = normalize_to_margin([anchor], CENTER)
        assert scaled.id == "p1-hq"
        assert scaled.owner_id == "p1"
        assert scaled.x > 0

    def test_empty_layout(self):
        assert fit_scale([], CENTER) == 1.0
        assert normalize_to_margin([], CENTER) == []

    def test_clamp_to_bounds(self):
        points = [Point(-5, 10), Point(MAP_WIDTH + 1, MAP_HEIGHT + 1), Point(10, 20)]
        assert clamp_to_bounds(points) == [
            Point(0.0, 10),
            Point(float(MAP_WIDTH), float(MAP_HEIGHT)),
            Point(10, 20),
        ]
