"""
Monte Carlo sampling algorithms for interaction kinematics.

This module provides grid-search envelopes and bounded rejection sampling
used to draw outgoing lepton angles and relic neutrino spectra.

Key Functions
-------------
- scan_envelope: Maximum of a 1D function over bin midpoints
- scan_envelope_2d: Maximum of a 2D function over a grid
- rejection_sample_1d: One bounded rejection draw of a 1D distribution
- rejection_sampling_2Dfunc: Rejection sampling for 2D distributions
"""

from collections import namedtuple

import numpy as np

RejectionDraw = namedtuple('RejectionDraw', ['x', 'value', 'extra', 'trials', 'overshoots'])


def scan_envelope(f, x_bounds, num_points, *args):
    """Find the maximum of a 1D function over bin midpoints.

    Evaluates ``f`` at ``x_lo + step * (i + 0.5)`` for ``i < num_points``
    and returns the largest value. Used to determine the envelope of a
    rejection sampler.

    Parameters
    ----------
    f : callable
        Function to maximize f(x, *args), returning a float
    x_bounds : tuple
        (x_min, x_max)
    num_points : int
        Number of midpoints
    *args : optional
        Additional arguments passed to f

    Returns
    -------
    float
        Maximum value found on the grid (0 if every value is non-positive)

    Notes
    -----
    This is a simple grid search and may miss the true maximum if the
    function is peaked between grid points. Draws above the envelope are
    reported by ``rejection_sample_1d`` as overshoots.
    """
    step = (x_bounds[1] - x_bounds[0]) / num_points
    maximum = 0.0
    for i in range(num_points):
        value = f(x_bounds[0] + step * (i + 0.5), *args)
        if value > maximum:
            maximum = value
    return maximum


def scan_envelope_2d(f, x_bounds, y_bounds, num_points=100, *args):
    """Find the maximum of a 2D function over a ``num_points`` squared grid."""
    maximum = 0.0
    for ix in range(num_points):
        x_this = x_bounds[0] + ix * (x_bounds[1] - x_bounds[0]) / num_points
        for iy in range(num_points):
            y_this = y_bounds[0] + iy * (y_bounds[1] - y_bounds[0]) / num_points
            value = f(x_this, y_this, *args)
            if value > maximum:
                maximum = value
    return maximum


def rejection_sample_1d(f, x_bounds, M, rng, max_iterations, *args):
    """Draw one sample of a 1D distribution by bounded rejection sampling.

    The rejection sampling algorithm:
    1. Generate uniform x in bounds
    2. Evaluate ``(p, extra) = f(x, *args)``
    3. Generate uniform u in [0, M]
    4. Accept if u < p, otherwise repeat, at most ``max_iterations`` times

    Parameters
    ----------
    f : callable
        Target distribution f(x, *args) returning ``(probability, extra)``;
        ``extra`` is carried through to the result untouched
    x_bounds : tuple
        (x_min, x_max) bounds for x
    M : float
        Envelope, expected to satisfy f(x) <= M
    rng : RandomSource
        Random stream
    max_iterations : int
        Maximum number of candidate draws
    *args : optional
        Additional arguments passed to f

    Returns
    -------
    RejectionDraw or None
        Accepted ``(x, value, extra, trials, overshoots)``, or None if no
        candidate was accepted within ``max_iterations`` draws.
        ``overshoots`` counts candidates whose value exceeded M.
    """
    overshoots = 0
    for trial in range(1, max_iterations + 1):
        x = rng.uniform(x_bounds[0], x_bounds[1])
        value, extra = f(x, *args)
        if value > M:
            overshoots += 1

        u = rng.uniform(0.0, M)
        if u < value:
            return RejectionDraw(x, value, extra, trial, overshoots)

    return None


def rejection_sampling_2Dfunc(f, num_samples, x_bounds, y_bounds, M, rng, max_iterations, *args):
    """Generate samples from a 2D distribution using rejection sampling.

    Parameters
    ----------
    f : callable
        Target distribution function f(x, y, *args)
    num_samples : int
        Number of samples to generate
    x_bounds : tuple
        (x_min, x_max) bounds for x
    y_bounds : tuple
        (y_min, y_max) bounds for y
    M : float
        Upper bound on f over the sampling region
    rng : RandomSource
        Random stream
    max_iterations : int
        Cap on the total number of candidate points
    *args : optional
        Additional arguments passed to f

    Returns
    -------
    samples : ndarray
        Array of shape (n, 2) with accepted (x, y) pairs, n <= num_samples
    throws : int
        Number of candidate points drawn

    Notes
    -----
    ``len(samples) / throws * M * area`` estimates the integral of f over
    the sampling region.
    """
    samples = []
    throws = 0

    while len(samples) < num_samples and throws < max_iterations:
        x = rng.uniform(x_bounds[0], x_bounds[1])
        y = rng.uniform(y_bounds[0], y_bounds[1])
        u = rng.uniform(0.0, M)
        throws += 1

        if u < f(x, y, *args):
            samples.append([x, y])

    return np.array(samples).reshape(-1, 2), throws


__all__ = [
    'RejectionDraw',
    'scan_envelope',
    'scan_envelope_2d',
    'rejection_sample_1d',
    'rejection_sampling_2Dfunc',
]
