"""
Shared fixtures for the event generator tests.
"""

import numpy as np
import pandas as pd
import pytest

from sngen import (
    EnergyTimeGrid, FinalStateBuilder, KinematicsSampler, OxygenTables,
    RandomSource, StandardCrossSections,
)


class FixedRandom:
    """Random stream stub; every uniform draw sits at fraction ``u`` of its range."""

    def __init__(self, u=0.0):
        self.u = u
        self.calls = 0

    def uniform(self, lo, hi, size=None):
        self.calls += 1
        return lo + self.u * (hi - lo)

    def random(self):
        self.calls += 1
        return self.u

    def poisson(self, mean):
        self.calls += 1
        return np.zeros(np.shape(mean), dtype=np.int64) if np.ndim(mean) else 0


class ToyCrossSections:
    """Flat cross sections with optional thresholds; records every call."""

    def __init__(self, thresholds=None, value=1e-42, probability=1.0):
        self.thresholds = thresholds or {}
        self.value = value
        self.probability = probability
        self.total_calls = []

    def threshold(self, channel):
        return self.thresholds.get(channel.family)

    def total(self, channel, energy):
        self.total_calls.append((channel, energy))
        return self.value

    def differential(self, channel, energy, cos_theta):
        return self.probability, 0.5 * energy


@pytest.fixture
def rng():
    """Fixture providing a seeded random stream."""
    return RandomSource(12345)


@pytest.fixture
def fixed_rng():
    """Fixture providing a deterministic random stub."""
    return FixedRandom()


@pytest.fixture
def toy_model():
    """Fixture providing flat toy cross sections."""
    return ToyCrossSections()


@pytest.fixture
def small_grid():
    """Fixture providing a 2 s x 0-40 MeV grid with 4 x 20 bins."""
    return EnergyTimeGrid(0.0, 2.0, 4, 0.0, 40.0, 20)


@pytest.fixture
def oxygen_tables():
    """Fixture providing small in-memory oxygen tables."""
    energies = [0.0, 50.0, 100.0]
    cc_rows = []
    for flavor, state, level, channel, xs, ex in [
        (1, 0, 0, 0, 1e-42, 0.0),
        (0, 0, 1, 5, 2e-42, 3.0),
    ]:
        for e in energies:
            cc_rows.append((flavor, state, level, channel, e, xs * e / 100.0, ex, 0.2))
    # two sub-reactions of the unresolved aggregate of nuebar state 2
    for sub in range(2):
        for e in energies:
            cc_rows.append((1, 2, -1, sub, e, 1e-43 * e / 100.0, 0.0, 0.0))
    cc = pd.DataFrame(cc_rows, columns=['flavor', 'state', 'level', 'channel', 'energy', 'xs',
                                        'excitation_energy', 'asymmetry'])
    nc = pd.DataFrame([(0, 2, e, 1e-43 * e / 100.0) for e in energies],
                      columns=['nucleon', 'level', 'energy', 'xs'])
    return OxygenTables(cc, nc)


@pytest.fixture
def cross_sections(oxygen_tables):
    """Fixture providing the standard model with the small oxygen tables."""
    return StandardCrossSections(oxygen_tables)


@pytest.fixture
def builder(cross_sections, rng):
    """Fixture providing a final-state builder on the standard model."""
    return FinalStateBuilder(KinematicsSampler(cross_sections, rng), rng)
