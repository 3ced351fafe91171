"""Shared fixtures for the scenario generator and fairness test suite.

Generating a scenario runs every placement pass, so the fixtures here are
module-scoped and reused by every test that only reads the result.
"""

import pytest

from src.fairness.metrics import evaluate_fairness
from src.scenario_generator.scenario import generate_scenario


@pytest.fixture(scope="module")
def seed_one_scenario():
    return generate_scenario(1)


@pytest.fixture(scope="module")
def seed_one_metrics(seed_one_scenario):
    return evaluate_fairness(seed_one_scenario.players, seed_one_scenario.structures)
