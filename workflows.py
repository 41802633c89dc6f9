"""
Complete event generation workflows for supernova neutrino bursts.

This module provides high-level workflow functions for:
- A full burst run: cross-section grid, rate integration, Poisson
  sampling and final-state assembly
- Relic (diffuse background) IBD samples normalised to detector live time
- Flattening generated events into pandas tables and batching them for
  downstream consumers

Key Functions
-------------
- run_burst: Expected rates and final-state events of one burst
- run_relic: Relic IBD events, optionally tagged with (run, subrun)
- events_to_frame: One table row per final-state particle
- iter_batches: Immutable batches of events
"""

from dataclasses import dataclass
import logging

import numpy as np
import pandas as pd

from sngen import (
    CrossSectionGrid, EventCountSampler, FinalStateBuilder, KinematicsError,
    KinematicsSampler, RandomSource, RateIntegrator, RelicIBDGenerator,
    channel_label, expected_events_per_subrun, subrun_tags,
)

LOGGER = logging.getLogger(__name__)

PARTICLE_COLUMNS = [
    'event', 'run', 'subrun', 'code', 'label', 'time', 'neutrino_energy',
    'vertex_x', 'vertex_y', 'vertex_z', 'particle', 'pdg', 'energy',
    'px', 'py', 'pz', 'origin', 'initial_vertex', 'final_vertex',
    'final_state_flag', 'detection_flag',
]


@dataclass
class BurstResult:
    """Outcome of one burst simulation."""

    events: list
    totals: object
    n_skipped: int
    rates: np.ndarray = None

    @property
    def n_events(self):
        return len(self.events)


def run_burst(config, flux_model, cross_sections, channels=None, rng=None, keep_rates=False):
    """Simulate the interactions of one supernova burst.

    Complete workflow:
    1. Build (or load from ``config.cache_path``) the cross-section grid
    2. Integrate flux x cross section over the time x energy grid, sampling
       Poisson counts per cell when ``config.generate_events`` is set
    3. Order the sampled interactions by emission time
    4. Expand each interaction into its final-state particles; interactions
       without a valid kinematic region are skipped and counted

    Parameters
    ----------
    config : GeneratorConfig
        Run settings
    flux_model : object
        Provides ``flux(flavor, time, energies)``
    cross_sections : object
        Cross-section model with ``total``, ``differential`` and ``threshold``
    channels : sequence, optional
        Reaction channels to simulate (default: the full catalogue)
    rng : RandomSource, optional
        Shared random stream; seeded from ``config.seed`` when omitted
    keep_rates : bool
        Keep the (time, energy, channel) rate array in the result

    Returns
    -------
    BurstResult
        Final-state events in time order, the per-channel totals and the
        number of skipped interactions

    Raises
    ------
    EnvelopeTooLowError
        If the lepton kinematics of an interaction cannot be sampled within
        the rejection iteration cap
    """
    rng = RandomSource(config.seed) if rng is None else rng

    LOGGER.info("====== Cross sections ======")
    table = CrossSectionGrid.build_or_load(config.cache_path, config.grid, cross_sections, channels)

    LOGGER.info("====== Rate integration (d = %.2f kpc, mixing: %s) ======",
                config.distance_kpc, config.mixing.name)
    sampler = EventCountSampler(rng, config.volume, config.direction) if config.generate_events else None
    integrator = RateIntegrator(config.volume, keep_rates=keep_rates)
    result = integrator.integrate(config.grid, flux_model, table, config.mixing,
                                  config.distance_scale, sampler=sampler)
    totals = result.totals

    events = []
    n_skipped = 0
    if sampler is not None:
        LOGGER.info("====== Final states of %d interactions ======", len(result.events))
        kinematics = KinematicsSampler(cross_sections, rng,
                                       n_cos_bins=config.cos_theta_bins,
                                       max_iterations=config.max_rejection_iterations,
                                       elastic_min_kinetic=config.elastic_min_kinetic)
        builder = FinalStateBuilder(kinematics, rng)
        for record in result.events.sorted_by_time():
            try:
                event = builder.build(record, index=len(events))
            except KinematicsError as exc:
                LOGGER.warning("skip event: %s", exc)
                totals.add_skipped(record.channel)
                n_skipped += 1
                continue
            totals.add_generated(record.channel)
            events.append(event)

    totals.log_summary()
    if n_skipped:
        LOGGER.warning("%d interactions skipped for lack of valid kinematics", n_skipped)
    return BurstResult(events, totals, n_skipped, result.rates)


def run_relic(flux, cross_sections, n_events=None, lookup=None, events_per_minute=None,
              seed=None, rng=None, flat=False, e_min=None, e_max=90.0, max_prob=None,
              volume='inner', cos_theta_bins=None):
    """Generate relic IBD events.

    The sample size is either ``n_events`` or, given a live-time ``lookup``
    and ``events_per_minute``, the stochastically rounded expectation of
    each subrun; in the latter case every event carries its (run, subrun).

    Returns
    -------
    result : RelicResult
        Events and the integral estimate of the flux-weighted mode
    counts : pandas.DataFrame or None
        Per-subrun expected and generated counts when ``lookup`` is given
    """
    if (n_events is None) == (lookup is None):
        raise ValueError("give either n_events or a live-time lookup")
    if lookup is not None and events_per_minute is None:
        raise ValueError("events_per_minute is required with a live-time lookup")

    rng = RandomSource(seed) if rng is None else rng
    kwargs = {} if cos_theta_bins is None else {'n_cos_bins': cos_theta_bins}
    builder = FinalStateBuilder(KinematicsSampler(cross_sections, rng, **kwargs), rng)

    counts = None
    tags = None
    if lookup is not None:
        counts = expected_events_per_subrun(lookup, events_per_minute, rng)
        tags = subrun_tags(counts)
        n_events = len(tags)
        LOGGER.info("%d subruns, %.2f expected, %d events", len(counts),
                    counts['expected'].sum(), n_events)

    generator_kwargs = {'flat': flat, 'e_max': e_max, 'max_prob': max_prob, 'volume': volume}
    if e_min is not None:
        generator_kwargs['e_min'] = e_min
    generator = RelicIBDGenerator(flux, cross_sections, builder, rng, **generator_kwargs)
    return generator.generate(n_events, tags=tags), counts


def events_to_frame(events):
    """Flatten final-state events into one row per particle.

    Parameters
    ----------
    events : iterable of FinalStateEvent

    Returns
    -------
    pandas.DataFrame
        Columns ``PARTICLE_COLUMNS``; ``particle`` is the index within the
        event (0 is the incident neutrino)
    """
    rows = []
    for event in events:
        label = channel_label(event.channel)
        vx, vy, vz = event.vertex.position
        for i, p in enumerate(event.particles):
            rows.append((
                event.index, event.run, event.subrun, event.code, label, event.time,
                event.neutrino_energy, vx, vy, vz, i, p.pdg, p.energy,
                p.momentum[0], p.momentum[1], p.momentum[2], p.origin, p.initial_vertex,
                p.final_vertex, p.final_state_flag, p.detection_flag,
            ))
    return pd.DataFrame(rows, columns=PARTICLE_COLUMNS)


def iter_batches(events, size):
    """Yield consecutive tuples of at most ``size`` events."""
    if size <= 0:
        raise ValueError("batch size must be positive")
    events = list(events)
    for start in range(0, len(events), size):
        yield tuple(events[start:start + size])


__all__ = [
    'PARTICLE_COLUMNS',
    'BurstResult',
    'run_burst',
    'run_relic',
    'events_to_frame',
    'iter_batches',
]
