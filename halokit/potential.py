"""Gravitational potential and kinetic energy of halo particles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

DONT_CALCULATE_FLAG = 1

_PAIR_BUDGET = 2_000_000


@dataclass
class PotentialParticle:
    """A particle for energy calculations.

    ``pos`` holds three position and three velocity components.
    ``pe`` and ``ke`` are the potential and kinetic energies; a negative
    ``ke`` marks a particle excluded from kinetic energy updates.
    """

    pos: list[float] = field(default_factory=lambda: [0.0] * 6)
    mass: float = 0.0
    r2: float = 0.0
    energy: float = 0.0
    pe: float = 0.0
    ke: float = 0.0
    flags: int = 0
    type: int = 0


def _positions(particles: Sequence[PotentialParticle]) -> np.ndarray:
    return np.array([p.pos[:3] for p in particles], dtype=float).reshape(-1, 3)


def _masses(particles: Sequence[PotentialParticle]) -> np.ndarray:
    return np.array([p.mass for p in particles], dtype=float)


def _summed_inverse_distance(targets: np.ndarray, sources: np.ndarray,
                             masses: np.ndarray, force_res: float,
                             exclude_self: bool) -> np.ndarray:
    result = np.zeros(len(targets))
    if not len(targets) or not len(sources):
        return result
    chunk = max(1, _PAIR_BUDGET // len(sources))
    for start in range(0, len(targets), chunk):
        block = targets[start:start + chunk]
        diff = block[:, None, :] - sources[None, :, :]
        r = np.sqrt(np.einsum("ijk,ijk->ij", diff, diff))
        np.maximum(r, force_res, out=r)
        with np.errstate(divide="ignore"):
            inv = 1.0 / r
        if exclude_self:
            rows = np.arange(len(block))
            inv[rows, rows + start] = 0.0
        result[start:start + len(block)] = inv @ masses
    return result


def compute_direct_potential(particles: Sequence[PotentialParticle], force_res: float) -> None:
    """Add the pairwise potential of the particles among themselves to ``pe``."""
    pos = _positions(particles)
    contrib = _summed_inverse_distance(pos, pos, _masses(particles), force_res, True)
    for particle, extra in zip(particles, contrib):
        particle.pe += float(extra)


def compute_indirect_potential(targets: Sequence[PotentialParticle],
                               sources: Sequence[PotentialParticle],
                               force_res: float) -> None:
    """Add the potential due to ``sources`` to the ``pe`` of each target."""
    contrib = _summed_inverse_distance(_positions(targets), _positions(sources),
                                       _masses(sources), force_res, False)
    for particle, extra in zip(targets, contrib):
        particle.pe += float(extra)


def compute_potential(particles: Sequence[PotentialParticle], force_res: float) -> None:
    """Reset and compute the potential of every particle by direct summation."""
    for particle in particles:
        particle.pe = 0.0
    compute_direct_potential(particles, force_res)


def compute_kinetic_energy(particles: Sequence[PotentialParticle], vel_cen: Sequence[float],
                           pos_cen: Sequence[float], scale_now: float, hubble: float,
                           gc: float) -> None:
    """Set ``ke`` relative to a centre, including the Hubble flow.

    ``hubble`` is the Hubble parameter in km/s/(Mpc/h) at ``scale_now``.
    Particles with negative ``ke`` are left untouched.
    """
    conv_const = 0.5 * scale_now / gc
    flow = hubble * scale_now
    for particle in particles:
        if particle.ke < 0:
            continue
        ke = 0.0
        for j in range(3):
            dv = (particle.pos[j + 3] - vel_cen[j]
                  + flow * (particle.pos[j] - pos_cen[j]))
            ke += dv * dv
        particle.ke = (ke + particle.energy) * conv_const