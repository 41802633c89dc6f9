"""
End-to-end tests of the burst and relic workflows.
"""

import numpy as np
import pytest

from sngen import (
    ElasticScattering, EnergyTimeGrid, Flavor, GeneratorConfig, InverseBetaDecay,
    MixingParameters, RandomSource, StandardCrossSections, TimeEventTable,
)
from workflows import PARTICLE_COLUMNS, events_to_frame, iter_batches, run_burst, run_relic


class ConstantFlux:
    def flux(self, flavor, time, energy):
        return np.full_like(np.asarray(energy, dtype=float), 1e8)


def _pin_poisson(rng, monkeypatch, count):
    monkeypatch.setattr(rng, 'poisson', lambda mean: np.full(np.shape(mean), count))


@pytest.fixture
def one_cell_config():
    """Fixture providing a single (1 s, 20-21 MeV) cell."""
    return GeneratorConfig(grid=EnergyTimeGrid(0.0, 1.0, 1, 20.0, 21.0, 1), seed=3)


class TestRunBurst:
    """Tests of the burst workflow."""

    def test_five_ibd_events(self, one_cell_config, monkeypatch):
        rng = RandomSource(one_cell_config.seed)
        _pin_poisson(rng, monkeypatch, 5)
        result = run_burst(one_cell_config, ConstantFlux(), StandardCrossSections(),
                           channels=[InverseBetaDecay()], rng=rng)
        assert result.n_events == 5
        assert result.n_skipped == 0
        for i, event in enumerate(result.events):
            assert event.index == i
            assert len(event.particles) == 4
            assert event.particles[0].pdg == -12
            assert event.particles[1].momentum == (0.0, 0.0, 0.0)
        assert result.totals.generated[0] == 5
        assert result.totals.expected[0] > 0.0

    def test_events_time_ordered(self, monkeypatch):
        config = GeneratorConfig(grid=EnergyTimeGrid(0.0, 1.0, 4, 20.0, 24.0, 2), seed=4)
        rng = RandomSource(config.seed)
        _pin_poisson(rng, monkeypatch, 2)
        result = run_burst(config, ConstantFlux(), StandardCrossSections(),
                           channels=[InverseBetaDecay(), ElasticScattering(Flavor.NUE)], rng=rng)
        times = [event.time for event in result.events]
        assert len(times) == 4 * 2 * 2 * 2
        assert times == sorted(times)

    def test_rates_only(self, one_cell_config):
        config = GeneratorConfig(grid=one_cell_config.grid, generate_events=False)
        result = run_burst(config, ConstantFlux(), StandardCrossSections(),
                           channels=[InverseBetaDecay()], keep_rates=True)
        assert result.events == []
        assert result.rates.shape == (1, 1, 1)
        assert result.totals.expected[0] == pytest.approx(result.rates.sum())

    def test_kinematics_failures_skipped(self, one_cell_config, monkeypatch):
        # 20 MeV neutrinos cannot produce 50 MeV recoils
        config = GeneratorConfig(grid=one_cell_config.grid, elastic_min_kinetic=50.0)
        rng = RandomSource(1)
        _pin_poisson(rng, monkeypatch, 2)
        result = run_burst(config, ConstantFlux(), StandardCrossSections(),
                           channels=[InverseBetaDecay(), ElasticScattering(Flavor.NUE)], rng=rng)
        assert result.n_events == 2
        assert result.n_skipped == 2
        assert list(result.totals.skipped) == [0, 2]
        assert list(result.totals.generated) == [2, 0]

    def test_reproducible(self, one_cell_config):
        def energies():
            result = run_burst(one_cell_config, ConstantFlux(), StandardCrossSections(),
                               channels=[InverseBetaDecay()])
            return [p.energy for event in result.events for p in event.particles]
        assert energies() == energies()

    def test_cache_used(self, one_cell_config, tmp_path):
        config = GeneratorConfig(grid=one_cell_config.grid, generate_events=False,
                                 cache_path=str(tmp_path / "xs.npz"))
        run_burst(config, ConstantFlux(), StandardCrossSections(), channels=[InverseBetaDecay()])
        assert (tmp_path / "xs.npz").exists()


def test_events_to_frame(one_cell_config, monkeypatch):
    rng = RandomSource(one_cell_config.seed)
    _pin_poisson(rng, monkeypatch, 3)
    result = run_burst(one_cell_config, ConstantFlux(), StandardCrossSections(),
                       channels=[InverseBetaDecay()], rng=rng)
    frame = events_to_frame(result.events)
    assert list(frame.columns) == PARTICLE_COLUMNS
    assert len(frame) == 12
    assert list(frame['particle'][:4]) == [0, 1, 2, 3]
    assert set(frame['label']) == {'nuebar + p'}
    assert frame['event'].nunique() == 3
    assert events_to_frame([]).empty


def test_iter_batches():
    batches = list(iter_batches(range(5), 2))
    assert batches == [(0, 1), (2, 3), (4,)]
    assert all(isinstance(batch, tuple) for batch in batches)
    with pytest.raises(ValueError):
        list(iter_batches([1], 0))


class TestRunRelic:
    """Tests of the relic workflow."""

    def test_fixed_count(self):
        result, counts = run_relic(None, StandardCrossSections(), n_events=5, seed=2, flat=True,
                                   e_min=10.0, e_max=30.0)
        assert counts is None
        assert len(result.events) == 5

    def test_livetime_tags(self, tmp_path):
        path = tmp_path / "timevent.txt"
        path.write_text("200 1 120.0 0\n200 2 60.0 120\n")
        lookup = TimeEventTable.from_file(path)
        # 1 event per minute of live time: 2 and 1 events
        result, counts = run_relic(None, StandardCrossSections(), lookup=lookup, events_per_minute=1.0,
                                   rng=RandomSource(5), flat=True, e_min=10.0, e_max=30.0)
        assert list(counts['events']) == [2, 1]
        assert [(e.run, e.subrun) for e in result.events] == [(200, 1), (200, 1), (200, 2)]

    def test_arguments(self):
        with pytest.raises(ValueError):
            run_relic(None, StandardCrossSections())
        with pytest.raises(ValueError):
            run_relic(None, StandardCrossSections(), n_events=1, lookup=object())
        with pytest.raises(ValueError):
            run_relic(None, StandardCrossSections(), lookup=object())


def test_snsim_parser():
    import snsim
    args = snsim.build_parser().parse_args(['--seed', '3', 'burst', '--distance', '5', '--mixing', 'normal'])
    config = snsim.build_config(args)
    assert config.distance_scale == pytest.approx(4.0)
    assert config.mixing == MixingParameters.normal_hierarchy()
    assert config.direction == pytest.approx((0.0, 0.0, -1.0))
    assert config.seed == 3
