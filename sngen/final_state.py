"""
Final-state particle lists of sampled interactions.

Each reaction channel variant maps to a template function that emits the
incident neutrino (always index 0), the targets and the outgoing particles
with their bookkeeping flags.
"""

from dataclasses import dataclass
import math

import numpy as np

from .channels import (
    ChargedCurrentOxygen, ElasticScattering, InverseBetaDecay, NeutralCurrentOxygen,
    UnresolvedSubChannel, encode,
)
from .constants import (
    Me, Mp, Mn, PDG_ELECTRON, PDG_POSITRON, PDG_PROTON, PDG_NEUTRON, PDG_GAMMA,
    CC_DECAY_PRODUCTS, CC_GAMMA_ENERGY, NC_GAMMA_ENERGY, NUCLEON_KINETIC_ENERGY,
)
from .transformations import convert_direction, sample_isotropic_direction

# (origin, initial vertex, final vertex, final-state flag, detection flag)
ROLE_FLAGS = {
    'incident': (0, 1, 1, -1, 0),
    'target': (0, 1, 1, -1, 0),
    'secondary': (1, 1, 1, 0, 1),
    'deexcitation': (0, 1, 1, 0, 1),
}

PARTICLE_MASS = {
    PDG_ELECTRON: Me,
    PDG_POSITRON: Me,
    PDG_PROTON: Mp,
    PDG_NEUTRON: Mn,
    PDG_GAMMA: 0.0,
}


@dataclass(frozen=True)
class FinalStateParticle:
    pdg: int
    energy: float
    momentum: tuple
    origin: int
    initial_vertex: int
    final_vertex: int
    final_state_flag: int
    detection_flag: int

    @classmethod
    def with_role(cls, pdg, energy, momentum, role):
        return cls(int(pdg), float(energy), tuple(float(p) for p in momentum), *ROLE_FLAGS[role])


@dataclass(frozen=True)
class VertexRecord:
    position: tuple
    time: float = 0.0
    flag: int = 1
    parent: int = 0


@dataclass(frozen=True)
class FinalStateEvent:
    """All particles of one interaction plus its vertex."""

    index: int
    channel: object
    code: int
    time: float
    neutrino_energy: float
    neutrino_direction: tuple
    particles: tuple
    vertex: VertexRecord
    run: int = None
    subrun: int = None

    def __len__(self):
        return len(self.particles)


def _incident(channel, energy, direction):
    momentum = energy * np.asarray(direction, dtype=float)
    return FinalStateParticle.with_role(channel.flavor.pdg, energy, momentum, 'incident')


def _lepton(pdg, kinematics, direction):
    momentum = math.sqrt(max(kinematics.energy ** 2 - Me * Me, 0.0))
    lab = convert_direction(kinematics.theta, kinematics.phi, direction)
    return FinalStateParticle.with_role(pdg, kinematics.energy, momentum * lab, 'secondary')


def _isotropic_massive(pdg, kinetic, rng, role):
    mass = PARTICLE_MASS[pdg]
    energy = mass + kinetic
    momentum = math.sqrt(energy * energy - mass * mass)
    return FinalStateParticle.with_role(pdg, energy, momentum * sample_isotropic_direction(rng), role)


def _isotropic_gamma(energy, rng, role):
    return FinalStateParticle.with_role(PDG_GAMMA, energy, energy * sample_isotropic_direction(rng), role)


class FinalStateBuilder:
    """Expands raw event records into final-state particle lists.

    Parameters
    ----------
    kinematics : KinematicsSampler
        Source of the outgoing lepton kinematics
    rng : RandomSource
        Shared random stream for isotropic emission
    """

    def __init__(self, kinematics, rng):
        self.kinematics = kinematics
        self.rng = rng
        self._templates = {
            InverseBetaDecay: self._inverse_beta_decay,
            ElasticScattering: self._elastic,
            ChargedCurrentOxygen: self._charged_current,
            UnresolvedSubChannel: self._unresolved,
            NeutralCurrentOxygen: self._neutral_current,
        }

    def particles(self, channel, energy, direction, lepton=None):
        """Ordered particle tuple of one interaction.

        ``lepton`` (LeptonKinematics) replaces the sampled lepton kinematics
        when the caller has drawn them already.

        Raises
        ------
        KinematicsError
            If the lepton kinematics cannot be sampled
        """
        try:
            template = self._templates[type(channel)]
        except KeyError:
            raise TypeError(f"not a reaction channel: {channel!r}") from None
        return tuple(template(channel, energy, np.asarray(direction, dtype=float), lepton))

    def build_channel(self, channel, energy, direction, vertex, time=0.0, index=0,
                      run=None, subrun=None, lepton=None):
        particles = self.particles(channel, energy, direction, lepton)
        return FinalStateEvent(
            index=index,
            channel=channel,
            code=encode(channel),
            time=float(time),
            neutrino_energy=float(energy),
            neutrino_direction=tuple(float(x) for x in direction),
            particles=particles,
            vertex=VertexRecord(tuple(float(x) for x in vertex)),
            run=run,
            subrun=subrun,
        )

    def build(self, record, index=0, run=None, subrun=None):
        return self.build_channel(record.channel, record.energy, record.direction, record.vertex,
                                  time=record.time, index=index, run=run, subrun=subrun)

    def _kinematics(self, channel, energy, lepton):
        if lepton is not None:
            return lepton
        return self.kinematics.sample(channel, energy)

    def _inverse_beta_decay(self, channel, energy, direction, lepton):
        neutrino = _incident(channel, energy, direction)
        proton = FinalStateParticle.with_role(PDG_PROTON, Mp, (0.0, 0.0, 0.0), 'target')
        positron = _lepton(PDG_POSITRON, self._kinematics(channel, energy, lepton), direction)
        # proton at rest: p_n = p_nu - p_e
        p_n = np.asarray(neutrino.momentum) - np.asarray(positron.momentum)
        neutron = FinalStateParticle.with_role(
            PDG_NEUTRON, math.sqrt(float(p_n @ p_n) + Mn * Mn), p_n, 'secondary')
        return [neutrino, proton, positron, neutron]

    def _elastic(self, channel, energy, direction, lepton):
        neutrino = _incident(channel, energy, direction)
        electron = _lepton(PDG_ELECTRON, self._kinematics(channel, energy, lepton), direction)
        return [neutrino, electron]

    def _cc_lepton(self, channel, energy, direction, lepton):
        pdg = PDG_POSITRON if channel.flavor.is_antineutrino else PDG_ELECTRON
        return _lepton(pdg, self._kinematics(channel, energy, lepton), direction)

    def _charged_current(self, channel, energy, direction, lepton):
        particles = [_incident(channel, energy, direction), self._cc_lepton(channel, energy, direction, lepton)]
        for pdg in CC_DECAY_PRODUCTS[channel.flavor][channel.decay_channel]:
            if pdg == PDG_GAMMA:
                particles.append(_isotropic_gamma(CC_GAMMA_ENERGY, self.rng, 'deexcitation'))
            else:
                particles.append(_isotropic_massive(pdg, NUCLEON_KINETIC_ENERGY, self.rng, 'deexcitation'))
        return particles

    def _unresolved(self, channel, energy, direction, lepton):
        return [_incident(channel, energy, direction), self._cc_lepton(channel, energy, direction, lepton)]

    def _neutral_current(self, channel, energy, direction, lepton):
        nucleon = channel.ejected_nucleon
        return [
            _incident(channel, energy, direction),
            _isotropic_massive(nucleon.pdg, NUCLEON_KINETIC_ENERGY, self.rng, 'secondary'),
            _isotropic_gamma(NC_GAMMA_ENERGY[nucleon][channel.excitation_level], self.rng, 'secondary'),
        ]


__all__ = [
    'ROLE_FLAGS',
    'FinalStateParticle',
    'VertexRecord',
    'FinalStateEvent',
    'FinalStateBuilder',
]
