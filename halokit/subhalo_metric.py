"""Phase-space distance metric between particles, haloes and subhaloes."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Sequence

import numpy as np

FAR = 1e20
INV_RADIUS_WEIGHTING = -0.2


class HaloType(IntEnum):
    """Particle and halo species."""

    DM = 0
    GAS = 1
    STAR = 2
    BH = 3


@dataclass(eq=False)
class MetricHalo:
    """A halo as seen by the phase-space metric.

    ``pos`` holds position and velocity; ``bulkvel`` is the bulk velocity.
    Equality is identity.
    """

    id: int = 0
    pos: tuple[float, ...] = field(default_factory=lambda: (0.0,) * 6)
    bulkvel: tuple[float, ...] = field(default_factory=lambda: (0.0,) * 3)
    r: float = 0.0
    vrms: float = 0.0
    vmax: float = 0.0
    m: float = 0.0
    num_p: int = 0
    type: HaloType = HaloType.DM
    galaxy_ineligible: bool = False


@dataclass
class MetricParticle:
    """A particle: three position and three velocity components and a type."""

    pos: tuple[float, ...] = field(default_factory=lambda: (0.0,) * 6)
    type: HaloType = HaloType.DM


def calc_particle_dist(halo: MetricHalo, particle: MetricParticle,
                       non_dm_scaling: float) -> float:
    """Phase-space distance of a particle from a halo, or ``FAR`` if ineligible."""
    if halo.vrms <= 0 or halo.r <= 0 or halo.num_p <= 0:
        return FAR
    particle_dm = particle.type == HaloType.DM
    halo_dm = halo.type == HaloType.DM
    if particle_dm and not halo_dm:
        return FAR
    if not particle_dm and halo_dm and halo.galaxy_ineligible:
        return FAR
    r2 = sum((h - p) ** 2 for h, p in zip(halo.pos[:3], particle.pos[:3]))
    v2 = sum((v - p) ** 2 for v, p in zip(halo.bulkvel[:3], particle.pos[3:6]))
    if halo_dm and not particle_dm:
        v2 /= non_dm_scaling * non_dm_scaling
    return math.sqrt(r2 / (halo.r * halo.r) + v2 / (halo.vrms * halo.vrms))


def calc_halo_dist(h1: MetricHalo, h2: MetricHalo, non_dm_scaling: float) -> float:
    """Distance of halo ``h2`` from candidate host ``h1``, or ``FAR``."""
    dm_host_of_galaxy = h1.type == HaloType.DM and h2.type != HaloType.DM
    if h2.r > h1.r * 0.99999 and not dm_host_of_galaxy:
        return FAR
    if dm_host_of_galaxy and h1.vmax < 0.2 * h2.vmax:
        return FAR
    probe = MetricParticle(pos=(*h2.pos[:3], *h2.bulkvel[:3]), type=h2.type)
    return calc_particle_dist(h1, probe, non_dm_scaling)


def calc_expected_density(halo: MetricHalo, particle: MetricParticle) -> float:
    """Expected phase-space density of a halo's profile at a particle."""
    if halo.vrms <= 0 or halo.r <= 0:
        return 1e9
    r2 = sum((h - p) ** 2 for h, p in zip(halo.pos[:3], particle.pos[:3]))
    v2 = sum((h - p) ** 2 for h, p in zip(halo.pos[3:6], particle.pos[3:6]))
    r = math.sqrt(r2)
    if r == 0:
        return math.inf
    prof = 1.0 + 10.0 * r / halo.r
    vrms = halo.vrms
    return (math.exp(-0.5 * (v2 / (vrms * vrms))) / (vrms * vrms * vrms)
            * halo.m / (halo.r * halo.r * r * (prof * prof)))


class SubhaloMetric:
    """Nearest-halo searches among a fixed set of candidate haloes."""

    def __init__(self, halos: Sequence[MetricHalo], non_dm_scaling: float = 1.0,
                 alt_nfw_metric: bool = False):
        self.halos = list(halos)
        self.non_dm_scaling = non_dm_scaling
        self.alt_nfw_metric = alt_nfw_metric
        self._pos = np.array([list(h.pos[:3]) for h in self.halos], dtype=float).reshape(-1, 3)
        self._vel = np.array([list(h.bulkvel[:3]) for h in self.halos],
                             dtype=float).reshape(-1, 3)
        self._r = np.array([h.r for h in self.halos], dtype=float)
        self._vrms = np.array([h.vrms for h in self.halos], dtype=float)
        self._usable = ((self._vrms > 0) & (self._r > 0)
                        & np.array([h.num_p > 0 for h in self.halos], dtype=bool))
        self._dm = np.array([h.type == HaloType.DM for h in self.halos], dtype=bool)
        self._ineligible = np.array([h.galaxy_ineligible for h in self.halos], dtype=bool)

    def _metrics(self, particle: MetricParticle) -> np.ndarray:
        ppos = np.asarray(particle.pos[:3], dtype=float)
        pvel = np.asarray(particle.pos[3:6], dtype=float)
        particle_dm = particle.type == HaloType.DM
        valid = self._usable & (self._dm if particle_dm else ~(self._dm & self._ineligible))
        dx = self._pos - ppos
        dv = self._vel - pvel
        r2 = np.einsum("ij,ij->i", dx, dx)
        v2 = np.einsum("ij,ij->i", dv, dv)
        if not particle_dm:
            v2 = np.where(self._dm, v2 / (self.non_dm_scaling * self.non_dm_scaling), v2)
        with np.errstate(divide="ignore", invalid="ignore"):
            metric = np.sqrt(r2 / (self._r * self._r) + v2 / (self._vrms * self._vrms))
        return np.where(valid, metric, FAR)

    def _alt_best_halo(self, particle: MetricParticle, best_halo: MetricHalo) -> MetricHalo:
        best = calc_expected_density(best_halo, particle)
        for halo in self.halos:
            density = calc_expected_density(halo, particle)
            if density > best:
                best, best_halo = density, halo
        return best_halo

    def find_best_halo(self, particle: MetricParticle, best_halo: MetricHalo) -> MetricHalo:
        """The halo closest to a particle, starting from ``best_halo``."""
        if self.alt_nfw_metric:
            return self._alt_best_halo(particle, best_halo)
        best = calc_particle_dist(best_halo, particle, self.non_dm_scaling)
        if not self.halos:
            return best_halo
        metrics = self._metrics(particle)
        index = int(np.argmin(metrics))
        if metrics[index] < best:
            return self.halos[index]
        return best_halo

    def find_best_parent(self, halo: MetricHalo, biggest_halo: MetricHalo) -> MetricHalo:
        """The closest larger halo to ``halo``, defaulting to ``biggest_halo``."""
        if halo is biggest_halo:
            return halo
        best = calc_halo_dist(biggest_halo, halo, self.non_dm_scaling)
        best_halo = biggest_halo
        for candidate in self.halos:
            if halo.type == HaloType.DM and candidate.type != HaloType.DM:
                continue
            metric = calc_halo_dist(candidate, halo, self.non_dm_scaling)
            if metric < best:
                best, best_halo = metric, candidate
        return best_halo

    def find_children(self, halo: MetricHalo, parent: Optional[MetricHalo],
                      r: float) -> list[MetricHalo]:
        """Smaller haloes within distance ``r`` of ``halo`` that are closer to it
        than to ``parent``."""
        weight = 1.0 / INV_RADIUS_WEIGHTING
        search = r * r * (1.0 + 1.0 / (INV_RADIUS_WEIGHTING * INV_RADIUS_WEIGHTING))
        children = []
        for candidate in self.halos:
            ds = sum((c - h) ** 2 for c, h in zip(candidate.pos[:3], halo.pos[:3]))
            dr = (candidate.r - halo.r) * weight
            if ds + dr * dr > search:
                continue
            if candidate.r >= halo.r or ds >= r * r:
                continue
            if parent is not None and (
                calc_halo_dist(halo, candidate, self.non_dm_scaling)
                > calc_halo_dist(parent, candidate, self.non_dm_scaling)
            ):
                continue
            children.append(candidate)
        return children