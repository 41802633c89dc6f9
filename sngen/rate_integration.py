"""
Expected interaction rates on the time x energy grid.

For every time bin, energy bin and reaction channel the expected number of
interactions is

    N_targets(channel) * sum_f w(channel, f) * F_f(t, E) * sigma(channel, E)
    * dE * dt * (10 kpc / d)^2

with the emitted fluxes F_f of nue, nuebar and nux and the mixing weights
w of ``MixingParameters``.
"""

from dataclasses import dataclass
import logging
import math

import numpy as np
import pandas as pd

from .channels import channel_label, encode
from .config import FLUX_FLAVORS
from .constants import (
    avogadro, water_density, water_molar_mass, PROTONS_PER_WATER,
    ELECTRONS_PER_WATER, OXYGEN_PER_WATER,
)
from .event_sampling import EventStore, detector_volume
from .tools import timer

LOGGER = logging.getLogger(__name__)

TARGETS_PER_WATER = {
    'ibd': PROTONS_PER_WATER,
    'elastic': ELECTRONS_PER_WATER,
    'cc_oxygen': OXYGEN_PER_WATER,
    'cc_oxygen_sub': OXYGEN_PER_WATER,
    'nc_oxygen': OXYGEN_PER_WATER,
}


def water_molecules(volume='inner'):
    """Number of water molecules in a cylindrical interaction volume."""
    radius, half_height = detector_volume(volume)
    mass = math.pi * radius * radius * 2.0 * half_height * water_density
    return mass / water_molar_mass * avogadro


def target_counts(channels, volume='inner'):
    """Number of targets (free protons, electrons or 16O) per channel."""
    molecules = water_molecules(volume)
    return np.array([TARGETS_PER_WATER[channel.family] * molecules for channel in channels])


class ChannelTotals:
    """Running expected and generated counts per reaction channel.

    Parameters
    ----------
    channels : sequence
        Reaction channels, in the column order of the rate arrays
    """

    def __init__(self, channels):
        self.channels = tuple(channels)
        self._index = {channel: i for i, channel in enumerate(self.channels)}
        self.reset()

    def reset(self):
        n = len(self.channels)
        self.expected = np.zeros(n)
        self.generated = np.zeros(n, dtype=np.int64)
        self.skipped = np.zeros(n, dtype=np.int64)

    def add_expected(self, rates):
        """Add one cell's (or one time bin's summed) rate vector."""
        self.expected += np.asarray(rates, dtype=float)

    def add_generated(self, channel, n=1):
        self.generated[self._index[channel]] += n

    def add_skipped(self, channel, n=1):
        self.skipped[self._index[channel]] += n

    def expected_for(self, channel):
        return float(self.expected[self._index[channel]])

    def to_frame(self):
        """One row per channel: label, code, family, expected, generated, skipped."""
        return pd.DataFrame({
            'label': [channel_label(ch) for ch in self.channels],
            'code': [encode(ch) for ch in self.channels],
            'family': [ch.family for ch in self.channels],
            'expected': self.expected,
            'generated': self.generated,
            'skipped': self.skipped,
        })

    def summary(self):
        """Totals grouped by reporting label, in first-appearance order."""
        frame = self.to_frame()
        return frame.groupby('label', sort=False)[['expected', 'generated', 'skipped']].sum()

    def log_summary(self, title='Expected and generated events'):
        summary = self.summary()
        LOGGER.info("------ %s ------", title)
        for label, row in summary.iterrows():
            LOGGER.info("%-28s expected %12.4f  generated %8d  skipped %4d",
                        label, row['expected'], row['generated'], row['skipped'])
        LOGGER.info("%-28s expected %12.4f  generated %8d  skipped %4d", 'total',
                    summary['expected'].sum(), summary['generated'].sum(), summary['skipped'].sum())


@dataclass
class IntegrationResult:
    totals: ChannelTotals
    events: EventStore
    rates: np.ndarray = None


class RateIntegrator:
    """Integrates flux x cross section over the grid.

    Parameters
    ----------
    volume : str
        Interaction volume that sets the number of targets
    keep_rates : bool
        Keep the full (time, energy, channel) rate array in the result
    """

    def __init__(self, volume='inner', keep_rates=False):
        detector_volume(volume)
        self.volume = volume
        self.keep_rates = keep_rates

    def flux_matrix(self, flux_model, time, energies):
        """Emitted fluxes at one time, shape (3, n_energies)."""
        rows = []
        for flavor in FLUX_FLAVORS:
            values = np.asarray(flux_model.flux(flavor, time, energies), dtype=float)
            rows.append(np.broadcast_to(values, energies.shape))
        return np.vstack(rows)

    @timer
    def integrate(self, grid, flux_model, cross_section_grid, mixing, distance_scale,
                  sampler=None, totals=None):
        """Compute expected rates and optionally sample events.

        Parameters
        ----------
        grid : EnergyTimeGrid
            Time and energy binning; must match ``cross_section_grid``
        flux_model : object
            Provides ``flux(flavor, time, energies)``
        cross_section_grid : CrossSectionGrid
            Total cross sections per energy bin and channel
        mixing : MixingParameters
            Flavor mixing weights
        distance_scale : float
            (10 kpc / d)^2
        sampler : EventCountSampler, optional
            Invoked for every (time, energy) cell when given
        totals : ChannelTotals, optional
            Accumulator to add to; a fresh one is created otherwise

        Returns
        -------
        IntegrationResult
        """
        channels = cross_section_grid.channels
        energies = grid.energy_centers
        if len(cross_section_grid.energies) != len(energies) or \
                not np.allclose(cross_section_grid.energies, energies):
            raise ValueError("cross-section grid does not match the energy binning")

        totals = ChannelTotals(channels) if totals is None else totals
        events = EventStore()
        weights = mixing.weight_matrix(channels)
        norm = target_counts(channels, self.volume)
        scale = cross_section_grid.values * norm[np.newaxis, :] * grid.de * grid.dt * distance_scale
        rates_all = np.zeros((grid.n_time_bins, len(energies), len(channels))) if self.keep_rates else None

        LOGGER.info("start loop over %d time bins x %d energy bins x %d channels",
                    grid.n_time_bins, len(energies), len(channels))
        for i, time in enumerate(grid.time_centers):
            fluxes = self.flux_matrix(flux_model, time, energies)
            rates = (fluxes.T @ weights.T) * scale
            totals.add_expected(rates.sum(axis=0))
            if rates_all is not None:
                rates_all[i] = rates

            if sampler is None:
                continue
            time_bin = grid.time_bin(i)
            for e in np.flatnonzero(rates.any(axis=1)):
                events.extend(sampler.sample_cell(rates[e], time_bin, grid.energy_bin(e), channels))

        LOGGER.info("%d raw events sampled", len(events))
        return IntegrationResult(totals, events, rates_all)


__all__ = [
    'TARGETS_PER_WATER',
    'water_molecules',
    'target_counts',
    'ChannelTotals',
    'IntegrationResult',
    'RateIntegrator',
]
