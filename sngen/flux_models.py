"""
Supernova neutrino flux models.

A flux model returns the differential number flux
``d^2 N / (dE dt dA)`` in 1/(MeV s cm^2) at the 10 kpc reference distance
for the emitted flavors nue, nuebar and nux (nux stands for each of the
four heavy-lepton species).

Key Classes
-----------
- PinchedFluxModel: luminosity, mean energy and pinching per flavor
- TabulatedFluxModel: bilinear interpolation of a (time, energy) table
"""

import math

import numpy as np
import pandas as pd
from scipy.interpolate import RegularGridInterpolator
from scipy.special import gamma

from .channels import Flavor
from .constants import MEV_TO_ERG, REFERENCE_DISTANCE_KPC, kpc_to_cm

FLUX_COLUMNS = {Flavor.NUE: 'nue', Flavor.NUEBAR: 'nuebar', Flavor.NUX: 'nux'}


def emitted_flavor(flavor):
    """Map an interacting flavor onto the flux column that feeds it."""
    flavor = Flavor(flavor)
    return Flavor.NUX if flavor is Flavor.NUXBAR else flavor


def pinched_spectrum(energy, mean_energy, alpha):
    """Normalized alpha-fit spectrum (gamma distribution with mean <E>).

    Parameters
    ----------
    energy : float or ndarray
        Neutrino energy (MeV)
    mean_energy : float
        Mean energy <E> (MeV)
    alpha : float
        Pinching parameter; alpha = 2 is a Maxwell-Boltzmann-like shape

    Returns
    -------
    float or ndarray
        f(E) in 1/MeV with integral one over [0, inf)
    """
    e = np.asarray(energy, dtype=float)
    k = alpha + 1.0
    theta = mean_energy / k
    norm = 1.0 / (gamma(k) * theta ** k)
    return norm * np.clip(e, 0.0, None) ** (k - 1.0) * np.exp(-e / theta)


def flux_from_luminosity(luminosity_erg_s, mean_energy_mev, distance_kpc=REFERENCE_DISTANCE_KPC):
    """Total number flux at Earth, (L / <E>) / (4 pi d^2), in 1/(s cm^2)."""
    n_dot = luminosity_erg_s / (mean_energy_mev * MEV_TO_ERG)
    d_cm = distance_kpc * kpc_to_cm
    return n_dot / (4.0 * math.pi * d_cm * d_cm)


def _as_function(value):
    if callable(value):
        return value
    return lambda t: value


class PinchedFluxModel:
    """Flux from luminosity, mean energy and pinching of each flavor.

    Parameters
    ----------
    luminosity : dict
        Flavor -> luminosity (erg/s), a constant or a callable of time
    mean_energy : dict
        Flavor -> mean energy (MeV), a constant or a callable of time
    alpha : dict, optional
        Flavor -> pinching parameter, constant or callable (default 2.5)
    """

    def __init__(self, luminosity, mean_energy, alpha=None):
        alpha = alpha or {}
        self._luminosity = {}
        self._mean_energy = {}
        self._alpha = {}
        for flavor in FLUX_COLUMNS:
            if flavor not in luminosity or flavor not in mean_energy:
                raise ValueError(f"missing luminosity or mean energy for {flavor.label}")
            self._luminosity[flavor] = _as_function(luminosity[flavor])
            self._mean_energy[flavor] = _as_function(mean_energy[flavor])
            self._alpha[flavor] = _as_function(alpha.get(flavor, 2.5))

    def flux(self, flavor, time, energy):
        flavor = emitted_flavor(flavor)
        lum = self._luminosity[flavor](time)
        mean = self._mean_energy[flavor](time)
        if lum <= 0.0 or mean <= 0.0:
            return np.zeros_like(np.asarray(energy, dtype=float))
        total = flux_from_luminosity(lum, mean)
        return total * pinched_spectrum(energy, mean, self._alpha[flavor](time))


class TabulatedFluxModel:
    """Flux interpolated from a regular (time, energy) table.

    The table has one row per (time, energy) node and the columns
    ``time, energy, nue, nuebar, nux``. Outside the table the flux is zero.
    """

    def __init__(self, table):
        missing = {'time', 'energy', *FLUX_COLUMNS.values()} - set(table.columns)
        if missing:
            raise ValueError(f"flux table lacks columns {sorted(missing)}")
        times = np.sort(table['time'].unique())
        energies = np.sort(table['energy'].unique())
        if len(times) * len(energies) != len(table):
            raise ValueError("flux table is not a regular (time, energy) grid")

        ordered = table.sort_values(['time', 'energy'])
        self.times = times
        self.energies = energies
        self._interpolators = {}
        for flavor, column in FLUX_COLUMNS.items():
            values = ordered[column].to_numpy(dtype=float).reshape(len(times), len(energies))
            self._interpolators[flavor] = RegularGridInterpolator(
                (times, energies), values, bounds_error=False, fill_value=0.0)

    @classmethod
    def from_csv(cls, path, **read_kwargs):
        return cls(pd.read_csv(path, **read_kwargs))

    def flux(self, flavor, time, energy):
        energy = np.atleast_1d(np.asarray(energy, dtype=float))
        points = np.column_stack([np.full_like(energy, time), energy])
        return np.clip(self._interpolators[emitted_flavor(flavor)](points), 0.0, None)


__all__ = [
    'FLUX_COLUMNS',
    'emitted_flavor',
    'pinched_spectrum',
    'flux_from_luminosity',
    'PinchedFluxModel',
    'TabulatedFluxModel',
]
