"""
Precomputed total cross sections on the energy grid.

The table ``xs[energy_bin, channel]`` is filled once per run at the energy
bin centres and can be cached to a ``.npz`` file.
"""

import logging

import numpy as np

from .channels import channel_catalogue, encode
from .tools import timer

LOGGER = logging.getLogger(__name__)


def _npz_path(path):
    path = str(path)
    return path if path.endswith('.npz') else path + '.npz'


class CrossSectionGrid:
    """Total cross section per (energy bin, reaction channel).

    Parameters
    ----------
    energies : ndarray
        Energy bin centres (MeV)
    channels : tuple
        Reaction channels, one column each
    values : ndarray
        Array of shape (len(energies), len(channels)) in cm^2
    """

    def __init__(self, energies, channels, values):
        values = np.asarray(values, dtype=float)
        if values.shape != (len(energies), len(channels)):
            raise ValueError(
                f"cross-section table has shape {values.shape}, "
                f"expected {(len(energies), len(channels))}"
            )
        self.energies = np.asarray(energies, dtype=float)
        self.channels = tuple(channels)
        self.values = values
        self._columns = {channel: i for i, channel in enumerate(self.channels)}

    @classmethod
    @timer
    def build(cls, grid, model, channels=None):
        """Evaluate ``model.total`` at every energy centre of ``grid``.

        Channels whose ``model.threshold`` is not None are zero at or below
        threshold; ``model.total`` is never called there.
        """
        channels = channel_catalogue() if channels is None else tuple(channels)
        energies = grid.energy_centers
        values = np.zeros((len(energies), len(channels)))

        LOGGER.info("calculate cross section and fill to array (%d energies x %d channels)",
                    len(energies), len(channels))
        for c, channel in enumerate(channels):
            threshold = model.threshold(channel)
            for e, energy in enumerate(energies):
                if threshold is not None and energy <= threshold:
                    continue
                values[e, c] = model.total(channel, float(energy))
        return cls(energies, channels, values)

    @property
    def codes(self):
        return np.array([encode(channel) for channel in self.channels], dtype=np.int64)

    def column(self, channel):
        """Cross sections of one channel over the energy bins."""
        try:
            return self.values[:, self._columns[channel]]
        except KeyError:
            raise KeyError(f"channel {channel!r} is not in the grid") from None

    def save(self, path):
        path = _npz_path(path)
        np.savez(path, energies=self.energies, codes=self.codes, values=self.values)
        LOGGER.info("cross-section grid saved to %s", path)

    @classmethod
    def load(cls, path, grid, channels=None):
        """Load a cached table, rejecting it if it was built for another grid.

        Raises
        ------
        ValueError
            If the stored energy centres or channel identifiers differ from
            the requested ones
        """
        channels = channel_catalogue() if channels is None else tuple(channels)
        path = _npz_path(path)
        with np.load(path) as data:
            energies = data['energies']
            codes = data['codes']
            values = data['values']

        expected = grid.energy_centers
        if energies.shape != expected.shape or not np.allclose(energies, expected, rtol=1e-12, atol=0.0):
            raise ValueError(f"cached cross sections in {path} were built for another energy grid")
        if list(codes) != [encode(channel) for channel in channels]:
            raise ValueError(f"cached cross sections in {path} were built for other channels")
        LOGGER.info("cross-section grid loaded from %s", path)
        return cls(energies, channels, values)

    @classmethod
    def build_or_load(cls, path, grid, model, channels=None):
        """Load ``path`` if it matches the grid, otherwise build and save."""
        if path is not None:
            try:
                return cls.load(path, grid, channels)
            except FileNotFoundError:
                LOGGER.info("no cross-section cache at %s", path)
            except ValueError as exc:
                LOGGER.warning("%s; rebuilding", exc)
        table = cls.build(grid, model, channels)
        if path is not None:
            table.save(path)
        return table


__all__ = ['CrossSectionGrid']
