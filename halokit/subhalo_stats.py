"""Statistics of subhaloes measured relative to their top-level host halo."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

Vector = Sequence[float]

HEADER = (
    "#ID UPID Mass/Pmass Pmass Vmax/Pvmax Pvmax Rvir/Prvir Prvir Pc "
    "R/Rvir Theta Vr/Pvmax Vtheta/Pvmax Vphi/Pvmax"
)


def dot(a: Vector, b: Vector) -> float:
    """Dot product of the first three components of two vectors."""
    return sum(x * y for x, y in zip(a[:3], b[:3]))


def cross(a: Vector, b: Vector) -> tuple[float, float, float]:
    """Cross product of two three-vectors."""
    return (
        a[1] * b[2] - a[2] * b[1],
        a[2] * b[0] - a[0] * b[2],
        a[0] * b[1] - a[1] * b[0],
    )


def calc_angle(pos1: Vector, pos2: Vector) -> float:
    """Angle in radians between two vectors; 0 if either has zero length."""
    norm = math.sqrt(dot(pos1, pos1) * dot(pos2, pos2))
    if not norm:
        return 0.0
    cosine = max(-1.0, min(1.0, dot(pos1, pos2) / norm))
    return math.acos(cosine)


def decompose_v(pos: Vector, axis: Vector, vel: Vector) -> tuple[float, float, float]:
    """Split a velocity into radial, theta and phi components about an axis."""
    r = math.sqrt(dot(pos, pos))
    if not r:
        return 0.0, 0.0, 0.0
    vr = dot(vel, pos) / r

    theta = cross(axis, pos)
    tnorm = math.sqrt(dot(theta, theta))
    if not tnorm:
        return vr, 0.0, 0.0
    vtheta = dot(vel, theta) / tnorm

    phi = cross(pos, theta)
    pnorm = math.sqrt(dot(phi, phi))
    vphi = dot(vel, phi) / pnorm if pnorm else 0.0
    return vr, vtheta, vphi


@dataclass
class StatsHalo:
    """A halo as needed for subhalo statistics.

    ``parent`` is the index of the parent halo in the halo list, or -1.
    ``pos`` holds position (Mpc) followed by velocity; ``r`` and ``rs`` are in kpc.
    """

    id: int
    parent: int = -1
    m: float = 0.0
    r: float = 0.0
    vmax: float = 0.0
    rs: float = 0.0
    pos: tuple[float, ...] = field(default_factory=lambda: (0.0,) * 6)
    J: tuple[float, ...] = field(default_factory=lambda: (0.0,) * 3)


@dataclass(frozen=True)
class SubhaloStats:
    """One line of the subhalo statistics table."""

    id: int
    host_id: int
    mass_ratio: float
    host_mass: float
    vmax_ratio: float
    host_vmax: float
    radius_ratio: float
    host_radius_mpc: float
    host_concentration: float
    distance_ratio: float
    theta: float
    vr_ratio: float
    vtheta_ratio: float
    vphi_ratio: float

    def format(self) -> str:
        """Render as a line of the statistics table (without newline)."""
        return (
            f"{self.id:d} {self.host_id:d} {self.mass_ratio:.3e} {self.host_mass:.3e} "
            f"{self.vmax_ratio:.3f} {self.host_vmax:.3f} {self.radius_ratio:.3f} "
            f"{self.host_radius_mpc:.3f} {self.host_concentration:.1f} "
            f"{self.distance_ratio:.3f} {self.theta:.3f} {self.vr_ratio:.3f} "
            f"{self.vtheta_ratio:.3f} {self.vphi_ratio:.3f}"
        )


def _top_host(halo: StatsHalo, halos: Sequence[StatsHalo]) -> StatsHalo:
    if halo.parent < 0:
        raise ValueError(f"halo {halo.id} has no parent")
    host = halos[halo.parent]
    seen = {halo.parent}
    while host.parent >= 0:
        if host.parent in seen:
            raise ValueError(f"parent chain of halo {halo.id} contains a cycle")
        seen.add(host.parent)
        host = halos[host.parent]
    return host


def calc_subhalo_stats(halo: StatsHalo, halos: Sequence[StatsHalo]) -> Optional[SubhaloStats]:
    """Measure a subhalo against its top-level host.

    Returns None when the host lacks a mass, radius, vmax or scale radius.
    """
    host = _top_host(halo, halos)
    if not host.m or not host.r or not host.vmax or not host.rs:
        return None

    rel = [a - b for a, b in zip(halo.pos, host.pos)]
    position, velocity = rel[:3], rel[3:6]
    r = math.sqrt(dot(position, position))
    theta = calc_angle(position, host.J)
    vr, vtheta, vphi = decompose_v(position, host.J, velocity)
    return SubhaloStats(
        id=halo.id,
        host_id=host.id,
        mass_ratio=halo.m / host.m,
        host_mass=host.m,
        vmax_ratio=halo.vmax / host.vmax,
        host_vmax=host.vmax,
        radius_ratio=halo.r / host.r,
        host_radius_mpc=host.r / 1e3,
        host_concentration=host.r / host.rs,
        distance_ratio=r * 1e3 / host.r,
        theta=theta,
        vr_ratio=vr / host.vmax,
        vtheta_ratio=vtheta / host.vmax,
        vphi_ratio=vphi / host.vmax,
    )