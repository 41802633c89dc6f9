"""
Run configuration: the time x energy grid, flavor mixing and generator
settings.
"""

from dataclasses import dataclass, field
import math

import numpy as np

from .channels import Flavor
from .constants import (
    T_START, T_END, T_NBINS, NU_ENE_MIN, NU_ENE_MAX, NU_ENE_NBINS,
    REFERENCE_DISTANCE_KPC, DETECTOR_VOLUMES, COS_THETA_NBINS,
    MAX_REJECTION_ITERATIONS, zero_precision,
)

# Flux flavors delivered by flux models; nu_x stands for each heavy species
FLUX_FLAVORS = (Flavor.NUE, Flavor.NUEBAR, Flavor.NUX)

# Oscillation parameters used by the hierarchy presets
SIN2_THETA12 = 0.307
SIN2_THETA13 = 0.0220


@dataclass(frozen=True)
class EnergyTimeGrid:
    """Fixed-width time bins x fixed-width energy bins.

    Bins are half-open intervals ``[lo, hi)``; the integration evaluates
    flux and cross section at the bin centres.
    """

    t_start: float = T_START
    t_end: float = T_END
    n_time_bins: int = T_NBINS
    e_min: float = NU_ENE_MIN
    e_max: float = NU_ENE_MAX
    n_energy_bins: int = NU_ENE_NBINS

    def __post_init__(self):
        if self.n_time_bins <= 0 or self.n_energy_bins <= 0:
            raise ValueError("grid needs at least one time and one energy bin")
        if self.t_end <= self.t_start:
            raise ValueError("t_end must be larger than t_start")
        if self.e_max <= self.e_min:
            raise ValueError("e_max must be larger than e_min")
        if self.e_min < 0:
            raise ValueError("e_min must be non-negative")

    @property
    def dt(self):
        return (self.t_end - self.t_start) / self.n_time_bins

    @property
    def de(self):
        return (self.e_max - self.e_min) / self.n_energy_bins

    @property
    def time_centers(self):
        return self.t_start + (np.arange(self.n_time_bins) + 0.5) * self.dt

    @property
    def energy_centers(self):
        return self.e_min + (np.arange(self.n_energy_bins) + 0.5) * self.de

    @property
    def energy_edges(self):
        return self.e_min + np.arange(self.n_energy_bins + 1) * self.de

    @property
    def time_edges(self):
        return self.t_start + np.arange(self.n_time_bins + 1) * self.dt

    def time_bin(self, i):
        """(lo, hi) of time bin ``i``."""
        lo = self.t_start + i * self.dt
        return lo, lo + self.dt

    def energy_bin(self, j):
        """(lo, hi) of energy bin ``j``."""
        lo = self.e_min + j * self.de
        return lo, lo + self.de


@dataclass(frozen=True)
class MixingParameters:
    """Survival probabilities of nu_e and nu_e-bar between source and detector.

    The detected flux of each interacting flavor is a two-term combination
    of the emitted fluxes:

    - nu_e:      p_ee * F_nue + (1 - p_ee) * F_nux
    - nu_e-bar:  pbar_ee * F_nuebar + (1 - pbar_ee) * F_nux
    - nu_x:      (1 + p_ee)/2 * F_nux + (1 - p_ee)/2 * F_nue
    - nu_x-bar:  (1 + pbar_ee)/2 * F_nux + (1 - pbar_ee)/2 * F_nuebar
    """

    p_ee: float = 1.0
    pbar_ee: float = 1.0
    name: str = 'custom'

    def __post_init__(self):
        for value in (self.p_ee, self.pbar_ee):
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"survival probability {value} outside [0, 1]")

    @staticmethod
    def no_oscillation():
        return MixingParameters(1.0, 1.0, name='none')

    @staticmethod
    def normal_hierarchy(sin2_12=SIN2_THETA12, sin2_13=SIN2_THETA13):
        """Adiabatic MSW conversion, normal mass ordering."""
        return MixingParameters(sin2_13, (1.0 - sin2_12) * (1.0 - sin2_13), name='normal')

    @staticmethod
    def inverted_hierarchy(sin2_12=SIN2_THETA12, sin2_13=SIN2_THETA13):
        """Adiabatic MSW conversion, inverted mass ordering."""
        return MixingParameters(sin2_12 * (1.0 - sin2_13), sin2_13, name='inverted')

    @staticmethod
    def from_name(name):
        presets = {
            'none': MixingParameters.no_oscillation,
            'normal': MixingParameters.normal_hierarchy,
            'inverted': MixingParameters.inverted_hierarchy,
        }
        try:
            return presets[name]()
        except KeyError:
            raise ValueError(f"unknown mixing preset {name!r}, expected one of {sorted(presets)}") from None

    def weights(self, flavor):
        """Weights of the emitted (nue, nuebar, nux) fluxes for an interacting flavor."""
        flavor = Flavor(flavor)
        if flavor is Flavor.NUE:
            return (self.p_ee, 0.0, 1.0 - self.p_ee)
        if flavor is Flavor.NUEBAR:
            return (0.0, self.pbar_ee, 1.0 - self.pbar_ee)
        if flavor is Flavor.NUX:
            return ((1.0 - self.p_ee) / 2.0, 0.0, (1.0 + self.p_ee) / 2.0)
        return (0.0, (1.0 - self.pbar_ee) / 2.0, (1.0 + self.pbar_ee) / 2.0)

    def weight_matrix(self, channels):
        """(n_channels, 3) matrix mapping emitted fluxes onto each channel."""
        return np.array([self.weights(ch.flavor) for ch in channels], dtype=float)


def unit_vector(direction):
    v = np.asarray(direction, dtype=float)
    if v.shape != (3,):
        raise ValueError(f"direction must be a 3-vector, got shape {v.shape}")
    norm = np.linalg.norm(v)
    if norm == 0.0:
        raise ValueError("direction must be non-zero")
    return v / norm


@dataclass(frozen=True)
class GeneratorConfig:
    """Settings of one burst simulation."""

    grid: EnergyTimeGrid = field(default_factory=EnergyTimeGrid)
    distance_kpc: float = REFERENCE_DISTANCE_KPC
    volume: str = 'inner'
    direction: tuple = (0.0, 0.0, -1.0)
    seed: int = None
    generate_events: bool = True
    mixing: MixingParameters = field(default_factory=MixingParameters.no_oscillation)
    cos_theta_bins: int = COS_THETA_NBINS
    max_rejection_iterations: int = MAX_REJECTION_ITERATIONS
    elastic_min_kinetic: float = zero_precision
    cache_path: str = None

    def __post_init__(self):
        if self.distance_kpc <= 0:
            raise ValueError("distance_kpc must be positive")
        if self.volume not in DETECTOR_VOLUMES:
            raise ValueError(f"unknown detector volume {self.volume!r}, expected one of {sorted(DETECTOR_VOLUMES)}")
        if self.cos_theta_bins <= 0:
            raise ValueError("cos_theta_bins must be positive")
        if self.max_rejection_iterations <= 0:
            raise ValueError("max_rejection_iterations must be positive")
        object.__setattr__(self, 'direction', tuple(unit_vector(self.direction)))

    @property
    def distance_scale(self):
        """Flux scaling from the 10 kpc reference to the configured distance."""
        return (REFERENCE_DISTANCE_KPC / self.distance_kpc) ** 2

    @property
    def direction_vector(self):
        return np.array(self.direction)

    @staticmethod
    def direction_from_angles(theta, phi):
        """Unit vector from polar angle ``theta`` and azimuth ``phi`` (radians)."""
        return (math.sin(theta) * math.cos(phi), math.sin(theta) * math.sin(phi), math.cos(theta))


__all__ = [
    'FLUX_FLAVORS',
    'EnergyTimeGrid',
    'MixingParameters',
    'GeneratorConfig',
    'unit_vector',
]
