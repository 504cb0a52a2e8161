"""Derived halo properties: core velocity, shape, energy and pseudo-evolution masses."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

import numpy as np

from .potential import PotentialParticle


@dataclass(frozen=True)
class CoreVelocity:
    """Velocity of a halo's core and of its whole virial region.

    ``n_core`` is the index of the last particle counted in the core.
    """

    n_core: int
    min_vel_err: float
    corevel: tuple[float, float, float]
    bulkvel: tuple[float, float, float]
    min_bulkvel_err: float


@dataclass(frozen=True)
class Shape:
    """Axis ratios of a halo and its major axis vector (kpc)."""

    b_to_a: float = 0.0
    c_to_a: float = 0.0
    A: tuple[float, float, float] = field(default_factory=lambda: (0.0, 0.0, 0.0))


def _excluded(particle: PotentialParticle, bound: bool) -> bool:
    return bound and particle.pe < particle.ke


def add_ang_mom(L: Sequence[float], center: Sequence[float], pos: Sequence[float],
                weight: float) -> tuple[float, float, float]:
    """Return ``L`` plus ``weight`` times the angular momentum of ``pos`` about ``center``.

    ``center`` and ``pos`` hold three position and three velocity components.
    """
    r = [pos[k] - center[k] for k in range(3)]
    v = [pos[k + 3] - center[k + 3] for k in range(3)]
    return (
        L[0] + weight * (r[1] * v[2] - r[2] * v[1]),
        L[1] + weight * (r[2] * v[0] - r[0] * v[2]),
        L[2] + weight * (r[0] * v[1] - r[1] * v[0]),
    )


def estimate_vmax_from_bins(bins: Sequence[float], r_scale: float, force_res: float,
                            gc: float, scale_now: float) -> float:
    """Peak circular velocity from masses in equal-width radial bins."""
    enclosed = 0.0
    vmax = 0.0
    for i, mass in enumerate(bins):
        r = max((i + 1.0) / r_scale, force_res)
        enclosed += mass
        vmax = max(vmax, enclosed / r)
    return math.sqrt(gc * vmax / scale_now)


def calculate_corevel(particles: Sequence[PotentialParticle],
                      rvir_thresh: float) -> Optional[CoreVelocity]:
    """Core and bulk velocities of particles sorted by radius.

    ``rvir_thresh`` is the virial density threshold times 4*pi/3 in mass
    units. Returns None when fewer than two particles lie within the virial
    radius.
    """
    total_mass = sum(p.mass for p in particles)
    j = len(particles) - 1
    while j >= 0:
        r2 = particles[j].r2
        if total_mass * total_mass > (r2 * r2 * r2) * (rvir_thresh * rvir_thresh):
            break
        total_mass -= particles[j].mass
        j -= 1
    rvir_max = j
    if rvir_max < 1:
        return None

    limit = particles[rvir_max].r2
    j = len(particles) - 1
    while j >= 0 and not particles[j].r2 * 100.0 < limit:
        j -= 1
    core_max = max(j, 100)

    vel = [0.0, 0.0, 0.0]
    var = [0.0, 0.0, 0.0]
    total_mass = 0.0
    bestvar = 0.0
    n_core = 0
    min_vel_err = 0.0
    corevel = (0.0, 0.0, 0.0)
    for i, particle in enumerate(particles[:rvir_max]):
        total_mass += particle.mass
        for k in range(3):
            delta = particle.pos[k + 3] - vel[k]
            scale = particle.mass * (i + 1.0) / total_mass if total_mass else 0.0
            delta *= scale
            vel[k] += delta / (i + 1.0)
            var[k] += delta * (particle.pos[k + 3] - vel[k])
        bestvar = sum(var) / ((i - 3) * i) if i > 3 else 0.0
        if i < core_max:
            n_core = i
            min_vel_err = bestvar
            corevel = (vel[0], vel[1], vel[2])

    return CoreVelocity(
        n_core=n_core,
        min_vel_err=min_vel_err,
        corevel=corevel,
        bulkvel=(vel[0], vel[1], vel[2]),
        min_bulkvel_err=bestvar,
    )


def _decompose(tensor: np.ndarray) -> tuple[list[float], np.ndarray]:
    values, vectors = np.linalg.eigh(tensor)
    return [float(v) for v in values], vectors.T.copy()


def calc_shape(particles: Sequence[PotentialParticle], center: Sequence[float],
               radius: float, bound: bool, iterations: int, weighted: bool,
               force_res: float) -> Shape:
    """Iteratively fit the ellipsoidal shape of particles within ``radius`` (kpc).

    Positions and ``center`` are in Mpc; ``force_res`` too.
    """
    shape = Shape()
    if not radius > 0:
        return shape
    min_r = force_res * force_res * 1e6 / (radius * radius)
    used = [p for p in particles if not _excluded(p, bound)]
    if len(used) < 3:
        return shape
    iterations = min(iterations, len(used))

    cen = np.asarray(center[:3], dtype=float)
    offsets = np.array([p.pos[:3] for p in used], dtype=float) - cen
    masses = np.array([p.mass for p in used], dtype=float)
    orth = np.eye(3)
    eig = [radius * radius * 1e-6] * 3

    for _ in range(iterations):
        projected = offsets @ orth.T
        r = np.sum(projected * projected / np.asarray(eig), axis=1)
        r = np.maximum(r, min_r)
        inside = (r > 0) & (r <= 1)
        tw = masses / r if weighted else masses
        tw = np.where(inside, tw, 0.0)
        weight = float(tw.sum())
        if not weight:
            return shape
        tensor = (offsets * tw[:, None]).T @ offsets / weight
        eig, orth = _decompose(tensor)

        a, b, c = 0, 1, 2
        if eig[1] > eig[0]:
            a, b = 1, 0
        if eig[2] > eig[b]:
            c, b = b, 2
        if eig[b] > eig[a]:
            a, b = b, a
        if not eig[a] or not eig[b] or not eig[c]:
            return shape
        b_to_a = math.sqrt(eig[b] / eig[a]) if eig[b] / eig[a] >= 0 else math.nan
        c_to_a = math.sqrt(eig[c] / eig[a]) if eig[c] / eig[a] >= 0 else math.nan
        if (abs(b_to_a - shape.b_to_a) < 0.01 * shape.b_to_a
                and abs(c_to_a - shape.c_to_a) < 0.01 * shape.c_to_a):
            return shape
        major = math.sqrt(eig[a])
        shape = Shape(
            b_to_a=b_to_a if b_to_a > 0 else 0.0,
            c_to_a=c_to_a if c_to_a > 0 else 0.0,
            A=tuple(float(1e3 * major * orth[a][k]) for k in range(3)),
        )
        factor = radius * radius * 1e-6 / (major * major)
        eig = [e * factor for e in eig]
    return shape


def estimate_total_energy(particles: Sequence[PotentialParticle], force_res: float,
                          gc: float, scale_now: float) -> tuple[float, float]:
    """Total energy of the bound particles and their kinetic-to-potential ratio.

    Particles must be sorted by radius. Returns ``(energy, ke_over_pe)``.
    """
    total_mass = sum(p.mass for p in particles)
    phi = 0.0
    total_phi = 0.0
    ke = 0.0
    for particle in reversed(particles):
        total_mass -= particle.mass
        if particle.pe > particle.ke:
            ke += particle.ke * particle.mass
            r = max(math.sqrt(particle.r2), force_res)
            total_phi += particle.mass * (total_mass / r + phi)
            phi += particle.mass / r
    total_phi /= 2.0
    ratio = ke / total_phi if total_phi else 0.0
    return (ke - total_phi) * gc / scale_now, ratio


def pseudo_evolution_masses(particles: Sequence[PotentialParticle], rs: float,
                            radius: float, bound: bool, rvir_dens_z0: float,
                            particle_mass: float) -> tuple[float, float]:
    """Masses that discount pseudo-evolution, as ``(m_pe_b, m_pe_d)``.

    ``rs`` and ``radius`` are in kpc; particles are sorted by radius (Mpc).
    Enclosed masses are accumulated as whole numbers.
    """
    r_pe_d = max(rs * 4.0, radius / 5.0) * 1e-3
    mass = 0
    mass_pe_d = 0
    max_pe_b = 0.0
    for particle in particles:
        if _excluded(particle, bound):
            continue
        mass = int(mass + particle.mass)
        r = math.sqrt(particle.r2)
        r32 = math.sqrt(r) ** 3
        if r32 > 0:
            value = float(mass * mass) / r32
        elif mass:
            value = math.inf
        else:
            value = 0.0
        if value > max_pe_b:
            max_pe_b = value
        if r < r_pe_d:
            mass_pe_d = mass
    m_pe_b = max_pe_b ** (2.0 / 3.0) / (
        (4.0 * math.pi * rvir_dens_z0 * particle_mass / 3.0) ** (1.0 / 3.0))
    return m_pe_b, float(mass_pe_d)