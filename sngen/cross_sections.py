"""
Interaction cross sections of supernova neutrinos in water.

This module provides the physics behind the rate integration and the
kinematics sampling:
- Inverse beta decay (Strumia-Vissani total, first-order Vogel-Beacom
  angular distribution)
- Neutrino-electron elastic scattering (tree level, flavor couplings)
- Charged- and neutral-current interactions on oxygen, interpolated from
  external tables

A cross-section model offers three methods used by the generator:

- ``total(channel, energy)``: total cross section (cm^2)
- ``differential(channel, energy, cos_theta)``: ``(dsigma/dcos, lepton
  total energy)`` of the outgoing charged lepton
- ``threshold(channel)``: neutrino energy at or below which the channel is
  closed, or None
"""

import math

import numpy as np
import pandas as pd
from numba import jit
from scipy.interpolate import interp1d

from .channels import Flavor
from .constants import (
    GFermi, hbarc2, cos_cabibbo, ibd_radiative, Me, sw2, sig0_es,
    IBD_THRESHOLD, CC_OXYGEN_THRESHOLD, CC_SUBCHANNEL_THRESHOLD,
)

# Chiral couplings (gL, gR) of elastic scattering per flavor; the
# antineutrino couplings are swapped
ES_COUPLINGS = {
    Flavor.NUE: (0.5 + sw2, sw2),
    Flavor.NUEBAR: (sw2, 0.5 + sw2),
    Flavor.NUX: (-0.5 + sw2, sw2),
    Flavor.NUXBAR: (sw2, -0.5 + sw2),
}

UNRESOLVED_LEVEL = -1


@jit(nopython=True, cache=True)
def ibd_total_sv(enu):
    """Strumia-Vissani total IBD cross section (cm^2), valid below 300 MeV."""
    ee = enu - 1.29333236  # Mn - Mp
    if ee <= 0.51099895:
        return 0.0
    pe = math.sqrt(ee * ee - 0.51099895 * 0.51099895)
    log_e = math.log(enu)
    exponent = -0.07056 + 0.02018 * log_e - 0.001953 * log_e * log_e * log_e
    return 1e-43 * pe * ee * enu ** exponent


@jit(nopython=True, cache=True)
def ibd_dsigma_dcos_vb(enu, cost, sigma0):
    """First-order Vogel-Beacom IBD angular distribution.

    Parameters
    ----------
    enu : float
        Antineutrino energy (MeV)
    cost : float
        cos(theta) between antineutrino and positron
    sigma0 : float
        Overall normalization G_F^2 cos^2(theta_C) / pi (1 + radiative), cm^2/MeV^2

    Returns
    -------
    tuple
        (dsigma/dcos in cm^2, positron total energy in MeV)
    """
    me = 0.51099895
    delta = 1.29333236
    mnuc = 938.27208816
    f = 1.0
    g = 1.2701
    ee0 = enu - delta
    if ee0 <= me:
        return 0.0, me
    pe0 = math.sqrt(ee0 * ee0 - me * me)
    ve0 = pe0 / ee0
    ysq = (delta * delta - me * me) / 2.0
    ee1 = ee0 * (1.0 - enu / mnuc * (1.0 - ve0 * cost)) - ysq / mnuc
    if ee1 <= me:
        return 0.0, me
    pe1 = math.sqrt(ee1 * ee1 - me * me)
    ve1 = pe1 / ee1
    dsig = sigma0 / 2.0 * ((f * f + 3.0 * g * g) + (f * f - g * g) * ve1 * cost) * ee1 * pe1
    if dsig < 0.0:
        dsig = 0.0
    return dsig, ee1


@jit(nopython=True, cache=True)
def es_dsigma_dT(enu, T, gL, gR):
    """Tree-level dsigma/dT of nu-e scattering (cm^2/MeV)."""
    me = 0.51099895
    y = T / enu
    return 88.083e-46 / me * (gL * gL + gR * gR * (1.0 - y) * (1.0 - y) - gL * gR * me * T / (enu * enu))


@jit(nopython=True, cache=True)
def es_dsigma_dcos(enu, cost, gL, gR):
    """dsigma/dcos of the recoil electron and its total energy."""
    me = 0.51099895
    if cost <= 0.0:
        return 0.0, me
    a = (me + enu) * (me + enu)
    b = enu * enu * cost * cost
    T = 2.0 * me * b / (a - b)
    dT_dcos = 4.0 * me * enu * enu * a * cost / ((a - b) * (a - b))
    dsig = es_dsigma_dT(enu, T, gL, gR) * dT_dcos
    if dsig < 0.0:
        dsig = 0.0
    return dsig, T + me


def es_tmax(enu):
    """Maximum recoil kinetic energy T_max = 2 E^2 / (m_e + 2 E)."""
    return 2.0 * enu * enu / (Me + 2.0 * enu)


def es_total(enu, gL, gR, t_min=0.0):
    """Total elastic cross section integrated over T in [t_min, T_max]."""
    t_max = es_tmax(enu)
    if t_max <= t_min:
        return 0.0

    def primitive(T):
        return (gL * gL * T
                - gR * gR * enu / 3.0 * (1.0 - T / enu) ** 3
                - gL * gR * Me * T * T / (2.0 * enu * enu))

    return sig0_es / Me * (primitive(t_max) - primitive(t_min))


def es_threshold_cos(enu, t_min):
    """cos(theta) of a recoil electron with kinetic energy ``t_min``.

    Values above one mean the neutrino cannot produce such a recoil.
    """
    return math.sqrt(t_min * (Me + enu) ** 2 / ((t_min + 2.0 * Me) * enu * enu))


def _interpolator(energy, values):
    return interp1d(energy, values, kind='linear', bounds_error=False, fill_value=0.0)


class OxygenTables:
    """Tabulated charged- and neutral-current cross sections on 16O.

    Parameters
    ----------
    cc : pandas.DataFrame, optional
        Columns ``flavor, state, level, channel, energy, xs`` and optionally
        ``excitation_energy`` (MeV) and ``asymmetry`` (angular coefficient
        ``a`` of ``1 + a cos(theta)``). Rows with ``level == -1`` are the
        sub-reactions of the unresolved aggregate of that nuclear state,
        ``channel`` indexing the sub-reaction; they are summed.
    nc : pandas.DataFrame, optional
        Columns ``nucleon, level, energy, xs``

    Notes
    -----
    Interpolation is linear in energy; outside a table the cross section
    is zero.
    """

    def __init__(self, cc=None, nc=None):
        self._cc = {}
        self._cc_excitation = {}
        self._cc_asymmetry = {}
        self._nc = {}
        if cc is not None:
            self._load_cc(cc)
        if nc is not None:
            self._load_nc(nc)

    @classmethod
    def from_csv(cls, cc_path=None, nc_path=None):
        cc = pd.read_csv(cc_path) if cc_path else None
        nc = pd.read_csv(nc_path) if nc_path else None
        return cls(cc, nc)

    def _load_cc(self, frame):
        frame = frame.copy()
        if 'excitation_energy' not in frame.columns:
            frame['excitation_energy'] = 0.0
        if 'asymmetry' not in frame.columns:
            frame['asymmetry'] = 0.0

        resolved = frame[frame['level'] != UNRESOLVED_LEVEL]
        for key, rows in resolved.groupby(['flavor', 'state', 'level', 'channel']):
            rows = rows.sort_values('energy')
            key = tuple(int(k) for k in key)
            self._cc[key] = _interpolator(rows['energy'].to_numpy(), rows['xs'].to_numpy())
            self._cc_asymmetry[key] = _interpolator(rows['energy'].to_numpy(), rows['asymmetry'].to_numpy())
            self._cc_excitation[key] = float(rows['excitation_energy'].iloc[0])

        unresolved = frame[frame['level'] == UNRESOLVED_LEVEL]
        for (flavor, state), rows in unresolved.groupby(['flavor', 'state']):
            summed = rows.groupby('energy').agg(
                xs=('xs', 'sum'), asymmetry=('asymmetry', 'mean'),
                excitation_energy=('excitation_energy', 'mean'))
            key = (int(flavor), int(state), UNRESOLVED_LEVEL, 0)
            energy = summed.index.to_numpy(dtype=float)
            self._cc[key] = _interpolator(energy, summed['xs'].to_numpy())
            self._cc_asymmetry[key] = _interpolator(energy, summed['asymmetry'].to_numpy())
            self._cc_excitation[key] = float(summed['excitation_energy'].mean())

    def _load_nc(self, frame):
        for key, rows in frame.groupby(['nucleon', 'level']):
            rows = rows.sort_values('energy')
            key = tuple(int(k) for k in key)
            self._nc[key] = _interpolator(rows['energy'].to_numpy(), rows['xs'].to_numpy())

    @staticmethod
    def _cc_key(channel):
        if channel.family == 'cc_oxygen_sub':
            return (int(channel.flavor), channel.nuclear_state, UNRESOLVED_LEVEL, 0)
        return (int(channel.flavor), channel.nuclear_state, channel.excitation_level, channel.decay_channel)

    def cc_total(self, channel, energy):
        interp = self._cc.get(self._cc_key(channel))
        if interp is None:
            return 0.0
        return max(float(interp(energy)), 0.0)

    def cc_excitation_energy(self, channel):
        return self._cc_excitation.get(self._cc_key(channel), 0.0)

    def cc_asymmetry(self, channel, energy):
        interp = self._cc_asymmetry.get(self._cc_key(channel))
        if interp is None:
            return 0.0
        return float(np.clip(interp(energy), -1.0, 1.0))

    def nc_total(self, channel, energy):
        interp = self._nc.get((int(channel.ejected_nucleon), channel.excitation_level))
        if interp is None:
            return 0.0
        return max(float(interp(energy)), 0.0)


class StandardCrossSections:
    """Cross-section model of all reaction channels in water.

    Parameters
    ----------
    oxygen : OxygenTables, optional
        Oxygen tables; without them every oxygen channel has zero cross
        section
    elastic_min_kinetic : float
        Lower bound of the recoil kinetic energy in elastic scattering (MeV)
    """

    def __init__(self, oxygen=None, elastic_min_kinetic=0.0):
        self.oxygen = oxygen if oxygen is not None else OxygenTables()
        self.elastic_min_kinetic = elastic_min_kinetic
        self.ibd_sigma0 = GFermi ** 2 * cos_cabibbo ** 2 / math.pi * (1.0 + ibd_radiative) * hbarc2

    def threshold(self, channel):
        family = channel.family
        if family == 'ibd':
            return IBD_THRESHOLD
        if family == 'cc_oxygen':
            return CC_OXYGEN_THRESHOLD[channel.flavor] + self.oxygen.cc_excitation_energy(channel)
        if family == 'cc_oxygen_sub':
            return CC_SUBCHANNEL_THRESHOLD[channel.flavor]
        return None

    def total(self, channel, energy):
        family = channel.family
        if family == 'ibd':
            return ibd_total_sv(energy)
        if family == 'elastic':
            gL, gR = ES_COUPLINGS[channel.flavor]
            return es_total(energy, gL, gR, self.elastic_min_kinetic)
        if family in ('cc_oxygen', 'cc_oxygen_sub'):
            return self.oxygen.cc_total(channel, energy)
        return self.oxygen.nc_total(channel, energy)

    def cc_lepton_energy(self, channel, energy):
        """Total energy of the e-(+) of a charged-current oxygen interaction."""
        q_value = CC_OXYGEN_THRESHOLD[channel.flavor] if channel.family == 'cc_oxygen' \
            else CC_SUBCHANNEL_THRESHOLD[channel.flavor]
        return energy - q_value - self.oxygen.cc_excitation_energy(channel) + Me

    def differential(self, channel, energy, cos_theta):
        family = channel.family
        if family == 'ibd':
            return ibd_dsigma_dcos_vb(energy, cos_theta, self.ibd_sigma0)
        if family == 'elastic':
            gL, gR = ES_COUPLINGS[channel.flavor]
            return es_dsigma_dcos(energy, cos_theta, gL, gR)
        if family in ('cc_oxygen', 'cc_oxygen_sub'):
            e_lepton = self.cc_lepton_energy(channel, energy)
            if e_lepton <= Me:
                return 0.0, Me
            shape = 1.0 + self.oxygen.cc_asymmetry(channel, energy) * cos_theta
            return 0.5 * self.oxygen.cc_total(channel, energy) * shape, e_lepton
        raise ValueError(f"no outgoing charged lepton in {family} channels")


__all__ = [
    'ES_COUPLINGS',
    'UNRESOLVED_LEVEL',
    'ibd_total_sv',
    'ibd_dsigma_dcos_vb',
    'es_dsigma_dT',
    'es_dsigma_dcos',
    'es_tmax',
    'es_total',
    'es_threshold_cos',
    'OxygenTables',
    'StandardCrossSections',
]
