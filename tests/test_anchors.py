"""Tests for HQ ring placement and satellite cluster sampling."""

import itertools
import math

import pytest

from src.scenario_generator.anchors import place_headquarters
from src.scenario_generator.clusters import ClusterSampler, sample_satellites
from src.scenario_generator.config import (
    DEFAULT_ANCHOR_CONFIG,
    DEFAULT_CLUSTER_CONFIG,
    MAP_HEIGHT,
    MAP_WIDTH,
    AnchorConfig,
    ClusterConfig,
)
from src.scenario_generator.geometry import distance
from src.scenario_generator.models import Point
from src.scenario_generator.rng import DeterministicRng

CENTER = Point(MAP_WIDTH / 2, MAP_HEIGHT / 2)


def _make_hqs(seed=1, config=DEFAULT_ANCHOR_CONFIG):
    return place_headquarters(DeterministicRng(seed), CENTER, config)


def _make_clusters(seed, config=DEFAULT_CLUSTER_CONFIG):
    """Run the sampler for every HQ, returning ``(hqs, placed, clusters)``."""
    rng = DeterministicRng(seed)
    hqs = place_headquarters(rng, CENTER)
    placed = list(hqs)
    clusters = {}
    sampler = ClusterSampler(config)
    for hq in hqs:
        sats = sampler.sample(rng, hq, hqs, placed, CENTER)
        clusters[hq.owner_id] = sats
        placed.extend(sats)
    return hqs, placed, clusters


# ── HQ ring ──────────────────────────────────────────────────────────


class TestPlaceHeadquarters:

    def test_one_hq_per_player(self):
        hqs = _make_hqs()
        assert len(hqs) == 5
        assert [hq.id for hq in hqs] == [f"p{i}-hq" for i in range(1, 6)]
        assert [hq.owner_id for hq in hqs] == [f"p{i}" for i in range(1, 6)]
        assert all(hq.type == "hq" for hq in hqs)

    def test_equidistant_from_center(self):
        for hq in _make_hqs(seed=7):
            assert distance(hq, CENTER) == pytest.approx(DEFAULT_ANCHOR_CONFIG.ring_radius)

    def test_neighbours_at_min_distance(self):
        hqs = _make_hqs(seed=3)
        for a, b in zip(hqs, hqs[1:] + hqs[:1]):
            assert distance(a, b) == pytest.approx(1080.0)

    def test_ring_radius_from_travel_time(self):
        expected = 1080.0 / (2 * math.sin(math.pi / 5))
        assert DEFAULT_ANCHOR_CONFIG.ring_radius == pytest.approx(expected)

    def test_rotation_changes_with_seed(self):
        assert _make_hqs(seed=1)[0] != _make_hqs(seed=2)[0]

    def test_deterministic(self):
        assert _make_hqs(seed=11) == _make_hqs(seed=11)

    def test_player_count_configurable(self):
        hqs = _make_hqs(config=AnchorConfig(player_count=3))
        assert len(hqs) == 3
        for a, b in itertools.combinations(hqs, 2):
            assert distance(a, b) == pytest.approx(1080.0)


# ── Satellite clusters ───────────────────────────────────────────────


class TestClusterSampler:

    @pytest.mark.parametrize("seed", [1, 2, 3, 5, 8])
    def test_clusters_complete_or_empty(self, seed):
        _, _, clusters = _make_clusters(seed)
        for sats in clusters.values():
            assert len(sats) in (0, 3)

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_satellite_constraints(self, seed):
        cfg = DEFAULT_CLUSTER_CONFIG
        hqs, placed, clusters = _make_clusters(seed)
        for hq in hqs:
            sats = clusters[hq.owner_id]
            enemy_hqs = [h for h in hqs if h.owner_id != hq.owner_id]
            for sat in sats:
                own = distance(sat, hq)
                assert cfg.distance_min <= own <= cfg.distance_max
                nearest_enemy = min(distance(sat, e) for e in enemy_hqs)
                assert nearest_enemy - own >= cfg.foreign_margin
                assert nearest_enemy >= cfg.sonar_buffer
            for a, b in itertools.combinations(sats, 2):
                assert distance(a, b) >= cfg.min_separation

    def test_cross_player_separation(self):
        _, placed, _ = _make_clusters(4)
        satellites = [s for s in placed if s.type != "hq"]
        for a, b in itertools.combinations(satellites, 2):
            if a.owner_id != b.owner_id:
                assert distance(a, b) >= DEFAULT_CLUSTER_CONFIG.min_separation

    def test_ids_and_types(self):
        _, _, clusters = _make_clusters(1)
        sats = next(s for s in clusters.values() if s)
        owner = sats[0].owner_id
        assert [s.id for s in sats] == [f"{owner}-foundry-a", f"{owner}-foundry-b", f"{owner}-reactor"]
        assert [s.type for s in sats] == ["foundry", "foundry", "reactor"]

    def test_impossible_spacing_returns_empty(self):
        cfg = ClusterConfig(min_separation=5000.0, attempts_per_satellite=10)
        hqs = _make_hqs()
        sats = sample_satellites(DeterministicRng(1), hqs[0], hqs, list(hqs), CENTER, cfg)
        assert sats == []
