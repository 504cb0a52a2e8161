import math

import pytest

from halokit.potential import PotentialParticle
from halokit.properties import (
    CoreVelocity,
    Shape,
    add_ang_mom,
    calc_shape,
    calculate_corevel,
    estimate_total_energy,
    estimate_vmax_from_bins,
    pseudo_evolution_masses,
)
from halokit.subhalo_stats import cross


def _particle(x, y, z, vx=0.0, vy=0.0, vz=0.0, mass=1.0, pe=1.0, ke=0.0):
    return PotentialParticle(pos=[x, y, z, vx, vy, vz], mass=mass,
                             r2=x * x + y * y + z * z, pe=pe, ke=ke)


def test_add_ang_mom_matches_cross_product():
    center = (1.0, 2.0, 3.0, 0.5, 0.5, 0.5)
    pos = (2.0, 0.0, 4.0, 1.5, -1.0, 2.0)
    L = add_ang_mom((0.0, 0.0, 0.0), center, pos, 3.0)
    r = [pos[k] - center[k] for k in range(3)]
    v = [pos[k + 3] - center[k + 3] for k in range(3)]
    expected = cross(r, v)
    for got, want in zip(L, expected):
        assert got == pytest.approx(3.0 * want)


def test_add_ang_mom_accumulates():
    center = (0.0,) * 6
    pos = (1.0, 0.0, 0.0, 0.0, 1.0, 0.0)
    once = add_ang_mom((0.0, 0.0, 0.0), center, pos, 1.0)
    twice = add_ang_mom(once, center, pos, 1.0)
    assert twice == pytest.approx(tuple(2 * c for c in once))
    assert once[2] == pytest.approx(1.0)


def test_estimate_vmax_single_bin():
    assert estimate_vmax_from_bins([4.0, 0.0, 0.0], 1.0, 0.0, 1.0, 1.0) == pytest.approx(2.0)


def test_estimate_vmax_scales_with_mass():
    bins = [1.0, 2.0, 3.0, 0.5]
    v1 = estimate_vmax_from_bins(bins, 10.0, 0.0, 4.3e-9, 1.0)
    v2 = estimate_vmax_from_bins([2 * b for b in bins], 10.0, 0.0, 4.3e-9, 1.0)
    assert v2 == pytest.approx(math.sqrt(2) * v1)


def test_estimate_vmax_force_resolution_floor():
    soft = estimate_vmax_from_bins([4.0, 0.0], 10.0, 1.0, 1.0, 1.0)
    hard = estimate_vmax_from_bins([4.0, 0.0], 10.0, 0.0, 1.0, 1.0)
    assert soft < hard


def _shell(n, velocity):
    particles = []
    for i in range(n):
        r = 0.001 * (i + 1)
        particles.append(_particle(r, 0.0, 0.0, *velocity))
    return particles


def test_corevel_uniform_velocity():
    result = calculate_corevel(_shell(50, (10.0, -5.0, 2.0)), 1e-6)
    assert isinstance(result, CoreVelocity)
    assert result.corevel == pytest.approx((10.0, -5.0, 2.0))
    assert result.bulkvel == pytest.approx((10.0, -5.0, 2.0))
    assert result.min_bulkvel_err == pytest.approx(0.0, abs=1e-9)


def test_corevel_none_when_nothing_virialised():
    assert calculate_corevel(_shell(10, (1.0, 1.0, 1.0)), 1e30) is None


def test_shape_spherical():
    particles = [_particle(*v) for v in [
        (0.5, 0, 0), (-0.5, 0, 0), (0, 0.5, 0), (0, -0.5, 0), (0, 0, 0.5), (0, 0, -0.5)]]
    shape = calc_shape(particles, (0, 0, 0), 1000.0, False, 10, False, 0.0)
    assert shape.b_to_a == pytest.approx(1.0)
    assert shape.c_to_a == pytest.approx(1.0)


def test_shape_elongated_axis_ratios():
    particles = [_particle(*v) for v in [
        (0.8, 0, 0), (-0.8, 0, 0), (0, 0.4, 0), (0, -0.4, 0), (0, 0, 0.2), (0, 0, -0.2)]]
    shape = calc_shape(particles, (0, 0, 0), 1000.0, False, 10, False, 0.0)
    assert shape.b_to_a == pytest.approx(0.5)
    assert shape.c_to_a == pytest.approx(0.25)
    assert abs(shape.A[0]) > 0
    assert shape.A[1] == pytest.approx(0.0, abs=1e-9)
    assert shape.A[2] == pytest.approx(0.0, abs=1e-9)


def test_shape_too_few_bound_particles():
    particles = [_particle(0.1, 0, 0), _particle(0, 0.1, 0),
                 _particle(0, 0, 0.1, pe=0.0, ke=1.0)]
    assert calc_shape(particles, (0, 0, 0), 1000.0, True, 10, False, 0.0) == Shape()


def test_shape_zero_radius():
    particles = [_particle(0.1 * i, 0, 0) for i in range(1, 5)]
    assert calc_shape(particles, (0, 0, 0), 0.0, False, 10, False, 0.0) == Shape()


def test_total_energy_two_bound_particles():
    particles = [_particle(1.0, 0, 0), _particle(2.0, 0, 0)]
    energy, ratio = estimate_total_energy(particles, 0.0, 2.0, 1.0)
    assert energy == pytest.approx(-1.0)
    assert ratio == 0.0


def test_total_energy_unbound_is_zero():
    particles = [_particle(1.0, 0, 0, pe=0.0, ke=5.0), _particle(2.0, 0, 0, pe=0.0, ke=5.0)]
    assert estimate_total_energy(particles, 0.0, 1.0, 1.0) == (0.0, 0.0)


def test_total_energy_proportional_to_gc():
    particles = [_particle(0.1 * i, 0, 0, ke=0.1) for i in range(1, 6)]
    for p in particles:
        p.pe = 10.0
    e1, r1 = estimate_total_energy(particles, 0.0, 1.0, 1.0)
    e3, r3 = estimate_total_energy(particles, 0.0, 3.0, 1.0)
    assert e3 == pytest.approx(3.0 * e1)
    assert r1 == pytest.approx(r3)


def _radial(radii, mass=10.0):
    return [_particle(r, 0, 0, mass=mass) for r in radii]


def test_pseudo_evolution_inner_mass():
    particles = _radial([0.001, 0.002, 0.003, 0.005])
    m_pe_b, m_pe_d = pseudo_evolution_masses(particles, 1.0, 10.0, False, 1.0, 1.0)
    assert m_pe_d == 30.0
    assert m_pe_b > 0


def test_pseudo_evolution_bound_excludes():
    particles = _radial([0.001, 0.002, 0.003, 0.005])
    particles[0].pe, particles[0].ke = 0.0, 1.0
    _, m_pe_d = pseudo_evolution_masses(particles, 1.0, 10.0, True, 1.0, 1.0)
    assert m_pe_d == 20.0


def test_pseudo_evolution_density_scaling():
    particles = _radial([0.001, 0.002, 0.003])
    b1, _ = pseudo_evolution_masses(particles, 1.0, 10.0, False, 1.0, 1.0)
    b8, _ = pseudo_evolution_masses(particles, 1.0, 10.0, False, 8.0, 1.0)
    assert b8 == pytest.approx(b1 / 2.0)