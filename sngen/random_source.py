"""
Single shared random stream.

All stochastic steps of a run (Poisson counts, bin jitter, vertices,
rejection sampling, isotropic emission) draw from one ``RandomSource`` in
a fixed order, so a seed reproduces a run exactly.
"""

import numpy as np


class RandomSource:
    """Uniform and Poisson draws over a ``numpy.random.Generator``.

    Parameters
    ----------
    seed : int or numpy.random.Generator, optional
        Seed of a fresh PCG64 generator, or an existing generator to wrap
    """

    def __init__(self, seed=None):
        if isinstance(seed, np.random.Generator):
            self.generator = seed
        else:
            self.generator = np.random.default_rng(seed)

    def uniform(self, lo, hi, size=None):
        """Uniform draw(s) in ``[lo, hi)``."""
        if size is None:
            return float(self.generator.uniform(lo, hi))
        return self.generator.uniform(lo, hi, size)

    def random(self):
        """Uniform draw in ``[0, 1)``."""
        return float(self.generator.random())

    def poisson(self, mean):
        """Poisson count(s) for a scalar or array of means."""
        counts = self.generator.poisson(mean)
        if np.ndim(counts) == 0:
            return int(counts)
        return counts


__all__ = ['RandomSource']
