"""
Tests for live-time normalisation and relic IBD generation.
"""

import math

import numpy as np
import pandas as pd
import pytest

from conftest import FixedRandom, ToyCrossSections
from sngen import (
    FinalStateBuilder, IBD_THRESHOLD, KinematicsError, KinematicsSampler, Me,
    RelicIBDGenerator, RunPeriodLookup, StandardCrossSections, TimeEventTable,
    expected_events_per_subrun, subrun_tags,
)

TIME_EVENTS = """\
# run subrun livetime elapsed
100 1 60.0 0
100 2 120.0 60
101 1 30.0 0
102 1 90.0 0
"""


class IBDToyModel(ToyCrossSections):
    """dsigma/dcos of one, positron carrying E_nu minus the nucleon mass gap."""

    def differential(self, channel, energy, cos_theta):
        return 1.0, energy - (IBD_THRESHOLD - Me)


@pytest.fixture
def time_event_file(tmp_path):
    path = tmp_path / "timevent.txt"
    path.write_text(TIME_EVENTS)
    return path


# =============================================================================
# Live time
# =============================================================================

class TestTimeEventTable:
    """Tests of the whitespace time-event reader."""

    def test_read(self, time_event_file):
        table = TimeEventTable.from_file(time_event_file)
        assert table.subruns() == [(100, 1), (100, 2), (101, 1), (102, 1)]
        assert table.livetime_seconds(100, 2) == pytest.approx(120.0)

    def test_run_range(self, time_event_file):
        table = TimeEventTable.from_file(time_event_file, run_begin=100, run_end=102)
        assert table.subruns() == [(100, 1), (100, 2), (101, 1)]

    def test_missing_subrun(self, time_event_file):
        table = TimeEventTable.from_file(time_event_file)
        with pytest.raises(KeyError):
            table.livetime_seconds(103, 1)

    def test_missing_columns(self):
        with pytest.raises(ValueError):
            TimeEventTable(pd.DataFrame({'run': [1], 'subrun': [1]}))

    def test_interface(self):
        with pytest.raises(NotImplementedError):
            RunPeriodLookup().subruns()


class TestExpectedEvents:
    """Tests of events per subrun from live time."""

    def test_exact_counts(self, time_event_file):
        table = TimeEventTable.from_file(time_event_file)
        counts = expected_events_per_subrun(table, 2.0, FixedRandom(0.5))
        assert list(counts.columns) == ['run', 'subrun', 'livetime', 'expected', 'events']
        assert list(counts['expected']) == pytest.approx([2.0, 4.0, 1.0, 3.0])
        assert list(counts['events']) == [2, 4, 1, 3]

    def test_fractional_counts(self, time_event_file):
        table = TimeEventTable.from_file(time_event_file)
        # expectations 1.5, 3.0, 0.75, 2.25
        assert list(expected_events_per_subrun(table, 1.5, FixedRandom(0.6))['events']) == [1, 3, 1, 2]
        assert list(expected_events_per_subrun(table, 1.5, FixedRandom(0.4))['events']) == [2, 3, 1, 2]

    def test_total_unbiased(self, time_event_file, rng):
        table = TimeEventTable.from_file(time_event_file)
        totals = [expected_events_per_subrun(table, 0.7, rng)['events'].sum() for _ in range(2000)]
        assert np.mean(totals) == pytest.approx(0.7 * 5.0, abs=0.05)

    def test_subrun_tags(self):
        counts = pd.DataFrame({'run': [100, 100, 101], 'subrun': [1, 2, 1], 'events': [2, 0, 1]})
        assert subrun_tags(counts) == [(100, 1), (100, 1), (101, 1)]


# =============================================================================
# Relic IBD events
# =============================================================================

def _builder(model, rng):
    return FinalStateBuilder(KinematicsSampler(model, rng), rng)


class TestRelicGenerator:
    """Tests of the relic IBD generator."""

    def test_integral_estimate(self, rng):
        model = IBDToyModel()
        generator = RelicIBDGenerator(lambda e: 1.0, model, _builder(model, rng), rng,
                                      e_min=10.0, e_max=20.0, max_prob=2.0)
        result = generator.generate(1000)
        assert len(result.events) == result.hits == 1000
        assert result.throws >= 1000
        # flux x dsigma/dcos = 1 over [10, 20] x [-1, 1]
        assert result.integral == pytest.approx(20.0, abs=5.0 * result.integral_error)
        assert result.integral_error > 0.0

    def test_event_content(self, rng):
        model = IBDToyModel()
        generator = RelicIBDGenerator(lambda e: 1.0, model, _builder(model, rng), rng,
                                      e_min=10.0, e_max=20.0, max_prob=1.0)
        for event in generator.generate(50).events:
            assert [p.pdg for p in event.particles] == [-12, 2212, -11, 2112]
            assert 10.0 <= event.neutrino_energy < 20.0
            assert np.linalg.norm(event.neutrino_direction) == pytest.approx(1.0)
            positron = event.particles[2]
            assert positron.energy == pytest.approx(event.neutrino_energy - (IBD_THRESHOLD - Me))

    def test_estimated_ceiling(self, rng):
        model = IBDToyModel()
        generator = RelicIBDGenerator(lambda e: 3.0, model, _builder(model, rng), rng,
                                      e_min=10.0, e_max=20.0)
        # twice the scanned maximum
        assert generator.max_prob == pytest.approx(6.0)

    def test_flux_zero_below_threshold(self, rng):
        model = IBDToyModel()
        generator = RelicIBDGenerator(lambda e: 1.0, model, _builder(model, rng), rng, max_prob=1.0)
        assert generator.flux_times_xsec(IBD_THRESHOLD, 0.0) == 0.0
        assert generator.flux_times_xsec(IBD_THRESHOLD + 1.0, 0.0) == 1.0

    def test_flat_mode(self, rng):
        model = StandardCrossSections()
        generator = RelicIBDGenerator(None, model, _builder(model, rng), rng,
                                      e_min=10.0, e_max=30.0, flat=True)
        result = generator.generate(50)
        assert result.integral is None
        assert result.integral_error is None
        for event in result.events:
            positron = event.particles[2]
            assert 10.0 <= positron.energy < 30.0
            assert event.neutrino_energy > positron.energy

    def test_neutrino_energy_inversion(self, rng):
        model = StandardCrossSections()
        generator = RelicIBDGenerator(None, model, _builder(model, rng), rng, flat=True)
        for e_positron, cos_theta in [(5.0, -0.8), (15.0, 0.3), (60.0, 0.95)]:
            energy = generator.neutrino_energy(e_positron, cos_theta)
            assert generator.positron_energy(energy, cos_theta) == pytest.approx(e_positron, rel=1e-8)
        with pytest.raises(KinematicsError):
            generator.neutrino_energy(0.5 * Me, 0.0)

    def test_run_tags(self, rng):
        model = IBDToyModel()
        generator = RelicIBDGenerator(lambda e: 1.0, model, _builder(model, rng), rng,
                                      e_min=10.0, e_max=20.0, max_prob=1.0)
        tags = [(100, 1), (100, 1), (101, 3)]
        events = generator.generate(3, tags=tags).events
        assert [(e.run, e.subrun) for e in events] == tags
        with pytest.raises(ValueError):
            generator.generate(2, tags=tags)

    def test_invalid_range(self, rng):
        model = IBDToyModel()
        with pytest.raises(ValueError):
            RelicIBDGenerator(lambda e: 1.0, model, _builder(model, rng), rng, e_min=20.0, e_max=10.0)

    def test_isotropic_neutrinos(self, rng):
        model = IBDToyModel()
        generator = RelicIBDGenerator(lambda e: 1.0, model, _builder(model, rng), rng,
                                      e_min=10.0, e_max=20.0, max_prob=1.0)
        directions = np.array([e.neutrino_direction for e in generator.generate(2000).events])
        assert np.allclose(directions.mean(axis=0), 0.0, atol=0.06)
        assert math.isclose(np.abs(directions[:, 2]).mean(), 0.5, abs_tol=0.03)
