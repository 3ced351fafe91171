"""Tests for src.visibility.sonar."""

import pytest

from src.scenario_generator.models import Outpost, Point
from src.visibility.config import BASE_SONAR_RADIUS, SonarConfig
from src.visibility.sonar import (
    SonarSource,
    is_outpost_visible,
    outpost_sonar_radius,
    sonar_sources_for_player,
)


def _make_outpost(outpost_id, x, y, owner_id=None, structure_type="foundry"):
    return Outpost(
        id=outpost_id,
        type=structure_type,
        position=Point(x, y),
        label=outpost_id.upper(),
        color="#969aa6",
        size=24,
        drone_count=0,
        drone_capacity=100,
        owner_id=owner_id,
    )


@pytest.fixture
def outposts():
    return [
        _make_outpost("p1-hq", 1000, 1000, "p1", "hq"),
        _make_outpost("p1-foundry-a", 1200, 1000, "p1"),
        _make_outpost("near-neutral", 1000, 1000 + BASE_SONAR_RADIUS),
        _make_outpost("far-neutral", 2000, 2000),
        _make_outpost("p2-hq", 1550, 1000, "p2", "hq"),
        _make_outpost("p2-far", 2400, 400, "p2"),
    ]


def _by_id(outposts, outpost_id):
    return next(o for o in outposts if o.id == outpost_id)


class TestSonarSources:

    def test_one_source_per_owned_outpost(self, outposts):
        sources = sonar_sources_for_player(outposts, "p1")
        assert [s.outpost_id for s in sources] == ["p1-hq", "p1-foundry-a"]
        assert all(s.radius == BASE_SONAR_RADIUS for s in sources)

    def test_radius_multiplier(self, outposts):
        assert outpost_sonar_radius(outposts[0], multiplier=1.5) == pytest.approx(540.0)

    def test_config_radius(self, outposts):
        sources = sonar_sources_for_player(outposts, "p1", SonarConfig(base_sonar_radius=100))
        assert all(s.radius == 100 for s in sources)

    def test_covers_is_inclusive(self):
        source = SonarSource("x", 0.0, 0.0, 360.0)
        assert source.covers(360.0, 0.0)
        assert not source.covers(360.01, 0.0)


class TestIsOutpostVisible:

    def test_own_outposts_always_visible(self, outposts):
        far_own = _by_id(outposts, "p2-far")
        assert is_outpost_visible(far_own, "p2", outposts)

    def test_neutral_on_sonar_edge_visible(self, outposts):
        assert is_outpost_visible(_by_id(outposts, "near-neutral"), "p1", outposts)

    def test_far_neutral_hidden(self, outposts):
        assert not is_outpost_visible(_by_id(outposts, "far-neutral"), "p1", outposts)

    def test_enemy_inside_satellite_sonar(self, outposts):
        # 350 from p1's foundry, 550 from p1's HQ
        assert is_outpost_visible(_by_id(outposts, "p2-hq"), "p1", outposts)
        assert not is_outpost_visible(_by_id(outposts, "p2-far"), "p1", outposts)

    def test_precomputed_sources_used(self, outposts):
        target = _by_id(outposts, "far-neutral")
        sources = [SonarSource("probe", 2000.0, 1900.0, 200.0)]
        assert is_outpost_visible(target, "p1", outposts, sonar_sources=sources)

    def test_player_without_outposts_sees_nothing(self, outposts):
        assert not is_outpost_visible(_by_id(outposts, "near-neutral"), "p9", outposts)
