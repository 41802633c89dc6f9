"""
Coordinate transformations between the neutrino frame and the lab frame.

This module handles:
- The rotation from angles measured about the incident neutrino axis into
  detector coordinates
- Isotropic emission directions for de-excitation products
"""

import math

import numpy as np


def rotation_matrix(direction):
    """Rotation whose columns are the spherical basis (e_theta, e_phi, e_r)
    of the incident direction.

    Parameters
    ----------
    direction : array-like
        Unit vector of the incident neutrino in lab coordinates

    Returns
    -------
    ndarray
        3x3 orthonormal matrix; ``R @ (0, 0, 1)`` is ``direction`` itself

    Notes
    -----
    A direction along the z axis has an undefined azimuth; phi is taken as
    zero there, which still yields a proper rotation.
    """
    dx, dy, dz = direction
    costh = min(1.0, max(-1.0, dz))
    sinth = math.sqrt(max(0.0, 1.0 - costh * costh))
    phi = math.atan2(dy, dx) if sinth > 0.0 else 0.0
    cosph = math.cos(phi)
    sinph = math.sin(phi)

    return np.array([
        [costh * cosph, -sinph, sinth * cosph],
        [costh * sinph, cosph, sinth * sinph],
        [-sinth, 0.0, costh],
    ])


def local_direction(theta, phi):
    """Unit vector at polar angle ``theta`` and azimuth ``phi`` about the z axis."""
    sinth = math.sin(theta)
    return np.array([sinth * math.cos(phi), sinth * math.sin(phi), math.cos(theta)])


def convert_direction(theta, phi, direction):
    """Rotate a direction given relative to the neutrino axis into the lab.

    Parameters
    ----------
    theta : float
        Polar angle with respect to the incident direction (rad)
    phi : float
        Azimuth about the incident direction (rad)
    direction : array-like
        Incident neutrino unit vector

    Returns
    -------
    ndarray
        Lab-frame unit vector
    """
    return rotation_matrix(direction) @ local_direction(theta, phi)


def sample_isotropic_direction(rng):
    """Draw a unit vector uniformly on the sphere.

    Uses ``cos(theta)`` uniform in ``[-1, 1]`` and ``phi`` uniform in
    ``[0, 2 pi)``, consuming two uniforms from ``rng`` in that order.
    """
    costh = rng.uniform(-1.0, 1.0)
    phi = rng.uniform(0.0, 2.0 * math.pi)
    sinth = math.sqrt(max(0.0, 1.0 - costh * costh))
    return np.array([sinth * math.cos(phi), sinth * math.sin(phi), costh])


__all__ = [
    'rotation_matrix',
    'local_direction',
    'convert_direction',
    'sample_isotropic_direction',
]
