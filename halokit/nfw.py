"""NFW scale-radius estimation for haloes."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from .potential import PotentialParticle

MAX_SCALE_BINS = 50
MIN_PART_PER_BIN = 15
MIN_SCALE_PART = 100
_MIN_FIT_F = 4.625


@dataclass(frozen=True)
class NFWConstants:
    """Unit constants used when estimating scale radii."""

    rmax_to_rs: float
    vmax_const: float
    rs_constant: float


def c_to_f(c: float) -> float:
    """Map an NFW concentration to the vmax/mvir ratio function f(c)."""
    cp1 = 1.0 + c
    return c * cp1 / (math.log1p(c) * cp1 - c)


def f_to_c(f: float) -> float:
    """Invert :func:`c_to_f` on its high-concentration branch."""
    c = f
    tc = c_to_f(c)
    while abs((f - tc) / f) > 1e-7:
        slope = (c_to_f(c + 0.1) - tc) / 0.1
        new_c = c + (f - tc) / slope
        if new_c < 0:
            c /= 2
        else:
            c = new_c
        tc = c_to_f(c)
    return c


def estimate_scale_radius(mvir: float, rvir: float, vmax: float, rvmax: float,
                          scale: float, constants: NFWConstants) -> float:
    """Scale radius from vmax and mvir, falling back to rvmax."""
    fallback = rvmax / constants.rmax_to_rs
    if not mvir or not rvir or not vmax:
        return fallback
    vm2 = vmax / constants.vmax_const
    vm2 = vm2 * vm2 * scale
    f = (rvir / 1.0e3) * vm2 / (mvir * constants.rs_constant)
    if f < _MIN_FIT_F:
        return fallback
    c = f_to_c(f)
    if c <= 0:
        return fallback
    return rvir / c


def nfw_menc(r: float, rs: float) -> float:
    """Dimensionless enclosed mass of an NFW profile."""
    return math.log((rs + r) / rs) - r / (rs + r)


def chi2_scale(rs: float, bin_r: Sequence[float], weights: Sequence[float]) -> float:
    """Weighted chi-squared of equal-mass bins against an NFW profile."""
    num_bins = len(weights)
    bin_mass = nfw_menc(bin_r[num_bins], rs) / num_bins
    last_menc = 0.0
    chi2 = 0.0
    for i, weight in enumerate(weights):
        menc = nfw_menc(bin_r[i + 1], rs)
        dx = weight * ((menc - last_menc) - bin_mass) / bin_mass
        chi2 += dx * dx
        last_menc = menc
    return chi2


def calc_scale_from_bins(rs: float, bin_r: Sequence[float], weights: Sequence[float]) -> float:
    """Refine a scale radius to best fit equal-mass radial bins."""
    num_bins = len(weights)
    if not num_bins:
        raise ValueError("at least one bin is required")
    inner, outer = bin_r[0], bin_r[num_bins]
    if not (rs > inner) or not (rs < outer):
        rs = bin_r[(num_bins + 1) // 2]
    initial_rs = rs
    chi2 = chi2_scale(rs, bin_r, weights)
    drs = rs / 10.0
    iterations = 0
    last_chi2 = 1e30
    if not rs > 0:
        return initial_rs
    while abs(chi2 - last_chi2) > 0.005 * chi2 and iterations < MIN_PART_PER_BIN:
        last_chi2 = chi2
        if rs + drs > outer:
            drs = 0.1 * (outer - rs)
        if rs - drs < inner:
            drs = 0.1 * (rs - inner)
        chi2_right = chi2_scale(rs + drs, bin_r, weights)
        chi2_left = chi2_scale(rs - drs, bin_r, weights)
        dx = 0.5 * (chi2_right - chi2_left) / drs
        dx2 = (chi2_right + chi2_left - 2.0 * chi2) / (drs * drs)
        move = -dx / dx2 if dx2 != 0 else 0.0
        if not move:
            return rs
        if rs + move > 4 * rs:
            move = 3.0 * rs
        if rs + move < 0.25 * rs:
            move = -0.75 * rs
        new_rs = rs + move
        if new_rs > outer:
            new_rs = rs + 0.8 * (outer - rs)
        elif new_rs < inner:
            new_rs = rs + 0.8 * (inner - rs)
        new_chi2 = chi2_scale(new_rs, bin_r, weights)
        if chi2_right < new_chi2:
            new_chi2, new_rs = chi2_right, rs + drs
        if chi2_left < new_chi2:
            new_chi2, new_rs = chi2_left, rs - drs
        if last_chi2 < new_chi2:
            drs *= 0.5
            continue
        drs = abs(rs - new_rs) / 10.0
        rs = new_rs
        chi2 = new_chi2
        iterations += 1
    return rs


def calc_scale_radius(particles: Sequence[PotentialParticle], mvir: float, rvir: float,
                      vmax: float, rvmax: float, scale: float, bound: bool,
                      force_res: float, constants: NFWConstants) -> tuple[float, float]:
    """Fit the NFW scale radius of particles sorted by radius.

    Returns ``(rs, klypin_rs)``: the fitted radius in kpc and the estimate
    from vmax/mvir used as the starting point.
    """
    klypin_rs = estimate_scale_radius(mvir, rvir, vmax, rvmax, scale, constants)
    candidates = [p for p in particles[:-1] if not (bound and p.pe < p.ke)]
    analyze_p = len(candidates)
    if analyze_p < MIN_SCALE_PART:
        return klypin_rs, klypin_rs
    total_mass = sum(p.mass for p in candidates)
    max_mass = max(p.mass for p in candidates)

    ppbin = math.ceil(analyze_p / MAX_SCALE_BINS)
    if ppbin < MIN_PART_PER_BIN:
        ppbin = analyze_p // (analyze_p // MIN_PART_PER_BIN)
    num_bins = min(analyze_p // ppbin, MAX_SCALE_BINS)
    mpbin = max(total_mass / num_bins, max_mass)

    bin_r = [0.0]
    weights: list[float] = []
    mass = 0.0
    for i in range(len(particles) - 1):
        part = particles[i]
        if bound and part.pe < part.ke:
            continue
        mass += part.mass
        if mass >= mpbin:
            r1 = math.sqrt(part.r2)
            r2 = math.sqrt(particles[i + 1].r2)
            edge = 1e3 * 0.5 * (r1 + r2)
            mass -= mpbin
            if not part.mass > 0:
                raise ValueError("particle masses must be positive")
            diff = mass / part.mass
            if i > 0:
                edge -= diff * (r1 - math.sqrt(particles[i - 1].r2))
            bin_r.append(edge)
            weights.append(1.0)

    for i in range(len(weights)):
        if bin_r[i] * 1e-3 < 3 * force_res:
            weights[i] = 0.1

    return calc_scale_from_bins(klypin_rs, bin_r, weights), klypin_rs