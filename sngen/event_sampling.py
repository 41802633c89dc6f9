"""
Discrete interactions from expected rates.

This module turns the expected number of interactions of a
(time bin, energy bin, channel) cell into raw event records:
- Poisson counts per cell
- Flat-within-bin jitter of emission time and neutrino energy
- Uniform interaction vertices inside a cylindrical detector volume
- Unbiased stochastic rounding of a continuous expected count
"""

from dataclasses import dataclass
import math

import numpy as np

from .constants import DETECTOR_VOLUMES


@dataclass(frozen=True)
class RawEventRecord:
    """One interaction before final-state expansion."""

    channel: object
    time: float
    energy: float
    direction: tuple
    vertex: tuple


class EventStore:
    """Append-only collection of raw event records."""

    def __init__(self, records=None):
        self._records = list(records) if records is not None else []

    def append(self, record):
        self._records.append(record)

    def extend(self, records):
        self._records.extend(records)

    def __len__(self):
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    def sorted_by_time(self):
        """Records ordered by emission time; ties keep insertion order."""
        return sorted(self._records, key=lambda record: record.time)


def detector_volume(volume):
    """(radius, half height) in cm of a named interaction volume."""
    try:
        return DETECTOR_VOLUMES[volume]
    except KeyError:
        raise ValueError(f"unknown detector volume {volume!r}, expected one of {sorted(DETECTOR_VOLUMES)}") from None


def sample_vertex(rng, volume='inner'):
    """Uniform point inside a cylinder: r^2 uniform, phi uniform, z uniform."""
    radius, half_height = detector_volume(volume)
    r = math.sqrt(rng.uniform(0.0, 1.0) * radius * radius)
    phi = rng.uniform(0.0, 1.0) * 2.0 * math.pi
    z = -half_height + rng.uniform(0.0, 1.0) * 2.0 * half_height
    return (r * math.cos(phi), r * math.sin(phi), z)


def stochastic_round(d, rng):
    """Round ``d`` down or up so that the expectation stays ``d``.

    One uniform ``u`` is drawn; the extra unit is dropped iff
    ``d - floor(d) < u``, so it is added with probability ``d - floor(d)``.
    """
    if d < 0:
        raise ValueError(f"expected count must be non-negative, got {d}")
    base = math.floor(d)
    fraction = d - base
    extra = 0 if fraction < rng.random() else 1
    return int(base) + extra


class EventCountSampler:
    """Poisson sampling of interactions within grid cells.

    Parameters
    ----------
    rng : RandomSource
        Shared random stream
    volume : str
        Interaction volume: 'fiducial', 'inner' or 'tank'
    direction : array-like
        Incident neutrino direction attached to every record
    """

    def __init__(self, rng, volume='inner', direction=(0.0, 0.0, -1.0)):
        detector_volume(volume)
        self.rng = rng
        self.volume = volume
        self.direction = tuple(float(x) for x in direction)

    def _records(self, n, time_bin, energy_bin, channel, direction):
        records = []
        for _ in range(n):
            time = self.rng.uniform(time_bin[0], time_bin[1])
            energy = self.rng.uniform(energy_bin[0], energy_bin[1])
            vertex = sample_vertex(self.rng, self.volume)
            records.append(RawEventRecord(channel, time, energy, direction, vertex))
        return records

    def sample(self, rate, time_bin, energy_bin, channel, direction=None):
        """Draw ``n ~ Poisson(rate)`` records of one channel in one cell."""
        if rate < 0:
            raise ValueError(f"rate must be non-negative, got {rate}")
        direction = self.direction if direction is None else tuple(direction)
        n = self.rng.poisson(rate)
        if n == 0:
            return []
        return self._records(n, time_bin, energy_bin, channel, direction)

    def sample_cell(self, rates, time_bin, energy_bin, channels, direction=None):
        """Draw records for every channel of a cell.

        One Poisson count per channel is drawn first, in channel order,
        then the records of each channel with a non-zero count. Drawing a
        channel's count and its jitter before moving to the next channel
        gives the same distribution with a different order of draws on the
        random stream, so seeded samples differ between the two orderings.
        """
        rates = np.asarray(rates, dtype=float)
        if np.any(rates < 0):
            raise ValueError("rates must be non-negative")
        direction = self.direction if direction is None else tuple(direction)
        counts = np.atleast_1d(self.rng.poisson(rates))
        records = []
        for c in np.flatnonzero(counts):
            records.extend(self._records(int(counts[c]), time_bin, energy_bin, channels[c], direction))
        return records


__all__ = [
    'RawEventRecord',
    'EventStore',
    'detector_volume',
    'sample_vertex',
    'stochastic_round',
    'EventCountSampler',
]
