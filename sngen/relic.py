"""
Relic (diffuse supernova background) inverse beta decay events.

Two modes:
- flux weighted: (E_nu, cos theta) drawn by rejection against
  flux(E) * dsigma/dcos, with an estimate of the integral of flux x sigma
- flat: positron energy and cos theta drawn uniformly, E_nu recovered by
  inverting the positron energy relation
"""

from collections import namedtuple
import logging
import math

from scipy.optimize import brentq

from .channels import InverseBetaDecay
from .constants import DeltaM, Me, IBD_THRESHOLD, COS_THETA_MIN, COS_THETA_MAX, MAX_REJECTION_ITERATIONS
from .errors import EnvelopeTooLowError, KinematicsError
from .event_sampling import sample_vertex
from .kinematics import LeptonKinematics
from .sampling import rejection_sampling_2Dfunc, scan_envelope_2d
from .transformations import sample_isotropic_direction

LOGGER = logging.getLogger(__name__)

RelicResult = namedtuple('RelicResult', ['events', 'hits', 'throws', 'integral', 'integral_error'])


class RelicIBDGenerator:
    """IBD events of an isotropic, time-independent flux.

    Parameters
    ----------
    flux : callable
        Flux per MeV as a function of the neutrino energy; unused in flat mode
    model : object
        Cross-section model providing ``differential`` for inverse beta decay
    builder : FinalStateBuilder
        Assembles the final state from the drawn kinematics
    rng : RandomSource
        Shared random stream
    e_min, e_max : float
        Sampled neutrino (flux mode) or positron (flat mode) energy range
    max_prob : float, optional
        Ceiling of flux x dsigma/dcos; estimated on a grid when omitted
    flat : bool
        Use the flat positron-energy mode
    volume : str
        Interaction volume of the vertices
    """

    def __init__(self, flux, model, builder, rng, e_min=IBD_THRESHOLD, e_max=90.0,
                 max_prob=None, flat=False, volume='inner', max_iterations=MAX_REJECTION_ITERATIONS):
        if e_max <= e_min:
            raise ValueError("e_max must be larger than e_min")
        self.flux = flux
        self.model = model
        self.builder = builder
        self.rng = rng
        self.e_min = e_min
        self.e_max = e_max
        self.flat = flat
        self.volume = volume
        self.max_iterations = max_iterations
        self.channel = InverseBetaDecay()
        self.max_prob = max_prob
        if not flat and max_prob is None:
            # safety factor for the coarse grid
            self.max_prob = 2.0 * scan_envelope_2d(
                self.flux_times_xsec, (e_min, e_max), (COS_THETA_MIN, COS_THETA_MAX))
            LOGGER.info("estimated max flux x xsec = %.4e", self.max_prob)

    def flux_times_xsec(self, energy, cos_theta):
        if energy <= IBD_THRESHOLD:
            return 0.0
        return self.flux(energy) * self.model.differential(self.channel, energy, cos_theta)[0]

    def positron_energy(self, energy, cos_theta):
        return self.model.differential(self.channel, energy, cos_theta)[1]

    def neutrino_energy(self, e_positron, cos_theta):
        """Neutrino energy giving a positron of ``e_positron`` at ``cos_theta``."""
        if e_positron <= Me:
            raise KinematicsError(self.channel, e_positron, "positron energy below its mass")
        lo = IBD_THRESHOLD + 1e-9
        hi = 2.0 * (e_positron + DeltaM) + 10.0
        return brentq(lambda e: self.positron_energy(e, cos_theta) - e_positron, lo, hi)

    def _draw_flux_weighted(self):
        samples, throws = rejection_sampling_2Dfunc(
            self.flux_times_xsec, 1, (self.e_min, self.e_max), (COS_THETA_MIN, COS_THETA_MAX),
            self.max_prob, self.rng, self.max_iterations)
        if len(samples) == 0:
            raise EnvelopeTooLowError(self.channel, self.e_max, self.max_prob, throws)
        energy, cos_theta = samples[0]
        return energy, cos_theta, self.positron_energy(energy, cos_theta), throws

    def _draw_flat(self):
        e_positron = self.rng.uniform(self.e_min, self.e_max)
        cos_theta = self.rng.uniform(COS_THETA_MIN, COS_THETA_MAX)
        return self.neutrino_energy(e_positron, cos_theta), cos_theta, e_positron, 1

    def generate(self, n_events, tags=None):
        """Generate ``n_events`` IBD final states.

        Parameters
        ----------
        n_events : int
            Number of events
        tags : sequence, optional
            (run, subrun) per event, e.g. from ``livetime.subrun_tags``

        Returns
        -------
        RelicResult
            Events, accepted and thrown candidates (flux mode) and the
            integral estimate of flux x sigma with its binomial error
        """
        if tags is not None and len(tags) != n_events:
            raise ValueError(f"{len(tags)} run tags for {n_events} events")

        events = []
        throws = 0
        for i in range(n_events):
            if self.flat:
                energy, cos_theta, e_positron, trials = self._draw_flat()
            else:
                energy, cos_theta, e_positron, trials = self._draw_flux_weighted()
            throws += trials

            direction = sample_isotropic_direction(self.rng)
            vertex = sample_vertex(self.rng, self.volume)
            lepton = LeptonKinematics(e_positron, math.acos(cos_theta),
                                      self.rng.uniform(-math.pi, math.pi), trials)
            run, subrun = tags[i] if tags is not None else (None, None)
            events.append(self.builder.build_channel(
                self.channel, energy, direction, vertex, index=i, run=run, subrun=subrun, lepton=lepton))

        if self.flat or throws == 0:
            return RelicResult(events, n_events, throws, None, None)

        hit_fraction = n_events / throws
        volume = self.max_prob * (self.e_max - self.e_min) * (COS_THETA_MAX - COS_THETA_MIN)
        integral = hit_fraction * volume
        error = volume * math.sqrt(hit_fraction * (1.0 - hit_fraction) / throws)
        LOGGER.info("Status : nhits / ntotal = %d / %d = %.4g", n_events, throws, hit_fraction)
        LOGGER.info("Integrator estimation I := integral( flux * sigma ) = %.4e +- %.4e", integral, error)
        return RelicResult(events, n_events, throws, integral, error)


__all__ = ['RelicResult', 'RelicIBDGenerator']
