"""
Outgoing charged-lepton kinematics by rejection sampling.

For a channel and a neutrino energy the polar angle of the lepton with
respect to the neutrino is drawn from the channel's ``dsigma/dcos``; the
lepton energy follows from the same evaluation.
"""

from collections import namedtuple
import logging
import math

from .constants import COS_THETA_MIN, COS_THETA_MAX, COS_THETA_NBINS, MAX_REJECTION_ITERATIONS, zero_precision
from .cross_sections import es_threshold_cos
from .errors import EnvelopeTooLowError, KinematicsError
from .sampling import rejection_sample_1d, scan_envelope

LOGGER = logging.getLogger(__name__)

LeptonKinematics = namedtuple('LeptonKinematics', ['energy', 'theta', 'phi', 'trials'])


class KinematicsSampler:
    """Draws (energy, theta, phi) of the outgoing lepton.

    Parameters
    ----------
    model : object
        Cross-section model with ``differential`` and ``threshold``
    rng : RandomSource
        Shared random stream
    n_cos_bins : int
        Number of cos(theta) midpoints scanned for the envelope
    max_iterations : int
        Cap of the rejection loop
    elastic_min_kinetic : float
        Minimum recoil kinetic energy in elastic scattering (MeV); sets the
        lower cos(theta) bound
    envelope_strategy : dict, optional
        Overrides of ``ENVELOPE_STRATEGY`` per channel family
    """

    # 'scan': maximum over cos(theta) midpoints; 'forward': value at
    # cos(theta) = 1 - epsilon; 'scan_forward': the larger of the two, for
    # distributions that may peak inside the range or steeply at cos = 1
    ENVELOPE_STRATEGY = {
        'ibd': 'scan',
        'elastic': 'scan_forward',
        'cc_oxygen': 'scan',
        'cc_oxygen_sub': 'scan',
    }

    def __init__(self, model, rng, n_cos_bins=COS_THETA_NBINS,
                 max_iterations=MAX_REJECTION_ITERATIONS, elastic_min_kinetic=zero_precision,
                 envelope_strategy=None):
        self.model = model
        self.rng = rng
        self.n_cos_bins = n_cos_bins
        self.max_iterations = max_iterations
        self.elastic_min_kinetic = elastic_min_kinetic
        self.envelope_strategy = dict(self.ENVELOPE_STRATEGY)
        if envelope_strategy:
            self.envelope_strategy.update(envelope_strategy)

    def cos_range(self, channel, energy):
        """Sampled cos(theta) interval of a channel at a neutrino energy."""
        if channel.family != 'elastic':
            return COS_THETA_MIN, COS_THETA_MAX
        cos_th = es_threshold_cos(energy, self.elastic_min_kinetic)
        if abs(cos_th) > 1.0:
            raise KinematicsError(channel, energy, f"threshold angle undefined (cos={cos_th:.4f})")
        return cos_th, COS_THETA_MAX

    def _evaluate(self, cos_theta, channel, energy):
        return self.model.differential(channel, energy, cos_theta)

    def _probability(self, cos_theta, channel, energy):
        return self._evaluate(cos_theta, channel, energy)[0]

    def envelope(self, channel, energy, cos_bounds):
        strategy = self.envelope_strategy.get(channel.family)
        if strategy == 'scan':
            return scan_envelope(self._probability, cos_bounds, self.n_cos_bins, channel, energy)
        if strategy == 'scan_forward':
            return max(scan_envelope(self._probability, cos_bounds, self.n_cos_bins, channel, energy),
                       self._probability(COS_THETA_MAX - zero_precision, channel, energy))
        if strategy == 'forward':
            return self._probability(COS_THETA_MAX - zero_precision, channel, energy)
        raise ValueError(f"no envelope strategy for {channel.family} channels")

    def sample(self, channel, energy):
        """Sample the lepton kinematics of one interaction.

        Returns
        -------
        LeptonKinematics
            Total energy (MeV), polar angle and azimuth (rad) of the lepton
            and the number of rejection trials

        Raises
        ------
        KinematicsError
            If the channel has no valid kinematic region at ``energy``
        EnvelopeTooLowError
            If no draw was accepted within ``max_iterations``
        """
        threshold = self.model.threshold(channel)
        if threshold is not None and energy <= threshold:
            raise KinematicsError(channel, energy, f"below threshold {threshold:.4f} MeV")

        cos_bounds = self.cos_range(channel, energy)
        envelope = self.envelope(channel, energy, cos_bounds)
        if envelope <= 0.0:
            raise KinematicsError(channel, energy, "differential cross section vanishes")

        draw = rejection_sample_1d(self._evaluate, cos_bounds, envelope, self.rng,
                                   self.max_iterations, channel, energy)
        if draw is None:
            raise EnvelopeTooLowError(channel, energy, envelope, self.max_iterations)
        if draw.overshoots:
            LOGGER.warning("envelope %.4e exceeded %d times for %s at E_nu=%.3f MeV",
                           envelope, draw.overshoots, channel, energy)

        phi = self.rng.uniform(-math.pi, math.pi)
        return LeptonKinematics(draw.extra, math.acos(draw.x), phi, draw.trials)


__all__ = ['LeptonKinematics', 'KinematicsSampler']
