#!/usr/bin/env python
"""
Supernova neutrino event generation for a water Cherenkov detector.

Two modes:
- burst: rates on a time x energy grid, Poisson sampled interactions and
  their final states for a supernova at a given distance
- relic: diffuse background IBD events, optionally normalised to the live
  time of a list of (run, subrun)

Usage:
    python snsim.py burst [--flux-csv FILE] [--distance KPC] [--mixing normal] ...
    python snsim.py relic (--events N | --time-events FILE --rate R) [--flat] ...

Example:
    python snsim.py burst --distance 10 --mixing normal --seed 1 --output ./output/
    python snsim.py relic --events 1000 --seed 7 --output ./output/
"""

import argparse
import logging
import math
import os
import sys

import numpy as np
import pandas as pd
from scipy.interpolate import interp1d

from sngen import (
    Flavor, EnergyTimeGrid, GeneratorConfig, MixingParameters, OxygenTables,
    PinchedFluxModel, StandardCrossSections, TabulatedFluxModel, TimeEventTable,
    pinched_spectrum, setup_logging, IBD_THRESHOLD,
)
from workflows import events_to_frame, run_burst, run_relic

LOGGER = logging.getLogger(__name__)

# Default burst: exponentially cooling luminosity, constant mean energies
BURST_LUMINOSITY = 5e52  # erg/s per flavor at t = 0
BURST_DECAY_TIME = 3.0  # s
BURST_MEAN_ENERGY = {Flavor.NUE: 12.0, Flavor.NUEBAR: 15.0, Flavor.NUX: 18.0}

# Default relic spectrum
RELIC_FLUX = 10.0  # nuebar / (cm^2 s)
RELIC_MEAN_ENERGY = 15.0
RELIC_ALPHA = 2.0


def default_burst_flux():
    luminosity = {
        flavor: (lambda t: BURST_LUMINOSITY * math.exp(-t / BURST_DECAY_TIME))
        for flavor in BURST_MEAN_ENERGY
    }
    return PinchedFluxModel(luminosity, dict(BURST_MEAN_ENERGY))


def relic_flux_from_csv(path):
    """Relic spectrum from a CSV with columns ``energy`` (MeV) and ``flux``."""
    table = pd.read_csv(path).sort_values('energy')
    return interp1d(table['energy'].to_numpy(), table['flux'].to_numpy(),
                    kind='linear', bounds_error=False, fill_value=0.0)


def default_relic_flux(energy):
    return RELIC_FLUX * float(pinched_spectrum(energy, RELIC_MEAN_ENERGY, RELIC_ALPHA))


def build_cross_sections(args, elastic_min_kinetic=0.0):
    oxygen = None
    if args.oxygen_cc or args.oxygen_nc:
        oxygen = OxygenTables.from_csv(args.oxygen_cc, args.oxygen_nc)
    return StandardCrossSections(oxygen, elastic_min_kinetic=elastic_min_kinetic)


def build_config(args):
    grid = EnergyTimeGrid(args.t_start, args.t_end, args.t_bins, args.e_min, args.e_max, args.e_bins)
    direction = GeneratorConfig.direction_from_angles(math.radians(args.theta), math.radians(args.phi))
    return GeneratorConfig(
        grid=grid,
        distance_kpc=args.distance,
        volume=args.volume,
        direction=direction,
        seed=args.seed,
        generate_events=not args.no_events,
        mixing=MixingParameters.from_name(args.mixing),
        cos_theta_bins=args.cos_bins,
        max_rejection_iterations=args.max_iterations,
        elastic_min_kinetic=args.elastic_min_kinetic,
        cache_path=args.cache,
    )


def save_frame(frame, output_dir, filename):
    os.makedirs(output_dir, exist_ok=True)
    path = os.path.join(output_dir, filename)
    frame.to_csv(path, index=False)
    print(f"Saved {len(frame)} rows to {path}")
    return path


def command_burst(args):
    config = build_config(args)
    cross_sections = build_cross_sections(args, config.elastic_min_kinetic)
    flux = TabulatedFluxModel.from_csv(args.flux_csv) if args.flux_csv else default_burst_flux()

    print(f"\n{'='*70}")
    print("  SUPERNOVA BURST EVENT GENERATION")
    print(f"{'='*70}")
    print(f"Flux: {args.flux_csv or 'default pinched model'}")
    print(f"Distance: {config.distance_kpc:.2f} kpc, mixing: {config.mixing.name}")
    print(f"Grid: {config.grid.n_time_bins} x [{config.grid.t_start}, {config.grid.t_end}) s, "
          f"{config.grid.n_energy_bins} x [{config.grid.e_min}, {config.grid.e_max}) MeV")
    print(f"Volume: {config.volume}, direction: {np.round(config.direction, 4)}")
    print(f"Seed: {config.seed}")
    print(f"{'='*70}\n")

    result = run_burst(config, flux, cross_sections, keep_rates=args.plot)

    print(f"\n{'='*70}")
    print(result.totals.summary().to_string(float_format=lambda x: f"{x:.4f}"))
    print(f"Generated events: {result.n_events}, skipped: {result.n_skipped}")
    print(f"{'='*70}\n")

    if args.output:
        save_frame(result.totals.to_frame(), args.output, 'channel_totals.csv')
        if result.events:
            save_frame(events_to_frame(result.events), args.output, 'burst_particles.csv')
    if args.plot:
        from ploter import plot_event_energy, plot_rate_vs_time
        plot_dir = args.output or './plots/'
        plot_rate_vs_time(result.rates, config.grid, result.totals.channels, plot_dir)
        if result.events:
            plot_event_energy(events_to_frame(result.events), plot_dir)
    return result


def command_relic(args):
    cross_sections = build_cross_sections(args)
    flux = relic_flux_from_csv(args.flux_csv) if args.flux_csv else default_relic_flux

    lookup = None
    if args.time_events:
        lookup = TimeEventTable.from_file(args.time_events, args.run_begin, args.run_end)

    print(f"\n{'='*70}")
    print("  RELIC IBD EVENT GENERATION")
    print(f"{'='*70}")
    print(f"Mode: {'flat positron energy' if args.flat else 'flux weighted'}")
    print(f"Energy range: [{args.e_min}, {args.e_max}] MeV")
    if lookup is not None:
        print(f"Live time: {args.time_events}, {args.rate} events/min")
    else:
        print(f"Events: {args.events}")
    print(f"{'='*70}\n")

    result, counts = run_relic(
        flux, cross_sections,
        n_events=None if lookup is not None else args.events,
        lookup=lookup,
        events_per_minute=args.rate,
        seed=args.seed,
        flat=args.flat,
        e_min=args.e_min,
        e_max=args.e_max,
        max_prob=args.max_prob,
        volume=args.volume,
    )

    print(f"\n{'='*70}")
    print(f"Generated events: {len(result.events)}")
    if result.integral is not None:
        print(f"Integral of flux x sigma: {result.integral:.4e} +- {result.integral_error:.4e}")
    print(f"{'='*70}\n")

    if args.output:
        if counts is not None:
            save_frame(counts, args.output, 'relic_subruns.csv')
        if result.events:
            save_frame(events_to_frame(result.events), args.output, 'relic_particles.csv')
    return result


def build_parser():
    parser = argparse.ArgumentParser(
        description='Supernova neutrino event generator for a water Cherenkov detector'
    )
    parser.add_argument('--seed', type=int, default=None, help='Random seed (default: fresh entropy)')
    parser.add_argument('--volume', choices=['fiducial', 'inner', 'tank'], default='inner',
                        help='Interaction volume (default: inner)')
    parser.add_argument('--oxygen-cc', type=str, default=None,
                        help='CSV of charged-current oxygen cross sections')
    parser.add_argument('--oxygen-nc', type=str, default=None,
                        help='CSV of neutral-current oxygen cross sections')
    parser.add_argument('--output', type=str, default=None, help='Output directory for tables')
    parser.add_argument('--verbose', action='store_true', help='Debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    burst = subparsers.add_parser('burst', help='Supernova burst events')
    burst.add_argument('--flux-csv', type=str, default=None,
                       help='Flux table with columns time, energy, nue, nuebar, nux')
    burst.add_argument('--distance', type=float, default=10.0, help='Distance in kpc (default: 10)')
    burst.add_argument('--mixing', choices=['none', 'normal', 'inverted'], default='none',
                       help='Flavor conversion (default: none)')
    burst.add_argument('--theta', type=float, default=180.0,
                       help='Polar angle of the neutrino direction in degrees (default: 180)')
    burst.add_argument('--phi', type=float, default=0.0,
                       help='Azimuth of the neutrino direction in degrees (default: 0)')
    burst.add_argument('--t-start', type=float, default=0.0)
    burst.add_argument('--t-end', type=float, default=10.0)
    burst.add_argument('--t-bins', type=int, default=1000)
    burst.add_argument('--e-min', type=float, default=0.0)
    burst.add_argument('--e-max', type=float, default=300.0)
    burst.add_argument('--e-bins', type=int, default=300)
    burst.add_argument('--cos-bins', type=int, default=1000,
                       help='cos(theta) points of the envelope scan (default: 1000)')
    burst.add_argument('--max-iterations', type=int, default=1_000_000,
                       help='Cap of the rejection loop (default: 1000000)')
    burst.add_argument('--elastic-min-kinetic', type=float, default=1e-6,
                       help='Minimum recoil kinetic energy of elastic scattering in MeV')
    burst.add_argument('--cache', type=str, default=None, help='Cross-section grid cache (.npz)')
    burst.add_argument('--no-events', action='store_true', help='Only integrate expected rates')
    burst.add_argument('--plot', action='store_true', help='Save diagnostic plots')
    burst.set_defaults(func=command_burst)

    relic = subparsers.add_parser('relic', help='Relic IBD events')
    relic.add_argument('--flux-csv', type=str, default=None,
                       help='Relic spectrum with columns energy, flux')
    relic.add_argument('--events', type=int, default=None, help='Number of events')
    relic.add_argument('--time-events', type=str, default=None,
                       help='Whitespace file with run, subrun, livetime, elapsed')
    relic.add_argument('--rate', type=float, default=None, help='Events per minute of live time')
    relic.add_argument('--run-begin', type=int, default=None)
    relic.add_argument('--run-end', type=int, default=None)
    relic.add_argument('--flat', action='store_true', help='Flat positron energy and angle')
    relic.add_argument('--e-min', type=float, default=IBD_THRESHOLD)
    relic.add_argument('--e-max', type=float, default=90.0)
    relic.add_argument('--max-prob', type=float, default=None,
                       help='Ceiling of flux x dsigma/dcos (default: grid estimate)')
    relic.set_defaults(func=command_relic)
    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.command == 'relic' and (args.events is None) == (args.time_events is None):
        parser.error("relic needs exactly one of --events or --time-events")
    for path in (args.oxygen_cc, args.oxygen_nc, getattr(args, 'flux_csv', None),
                 getattr(args, 'time_events', None)):
        if path and not os.path.exists(path):
            print(f"Error: Input file not found: {path}")
            sys.exit(1)

    try:
        args.func(args)
    except Exception as e:
        print(f"\n{'='*70}")
        print("  ERROR!")
        print(f"{'='*70}")
        print(f"{type(e).__name__}: {e}")
        print(f"{'='*70}\n")
        LOGGER.debug("traceback", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
