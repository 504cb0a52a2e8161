import math

import pytest

from halokit.subhalo_metric import (
    FAR,
    HaloType,
    MetricHalo,
    MetricParticle,
    SubhaloMetric,
    calc_expected_density,
    calc_halo_dist,
    calc_particle_dist,
)


def _halo(hid, x, r, vmax=100.0, htype=HaloType.DM, m=1e12):
    return MetricHalo(id=hid, pos=(x, 0.0, 0.0, 0.0, 0.0, 0.0), bulkvel=(0.0, 0.0, 0.0),
                      r=r, vrms=1.0, vmax=vmax, m=m, num_p=100, type=htype)


def test_particle_dist_pure_position():
    halo = _halo(1, 0.0, 1.0)
    particle = MetricParticle(pos=(3.0, 4.0, 0.0, 0.0, 0.0, 0.0))
    assert calc_particle_dist(halo, particle, 1.0) == pytest.approx(5.0)


def test_particle_dist_ineligible_cases():
    gas_halo = _halo(1, 0.0, 1.0, htype=HaloType.GAS)
    dm_particle = MetricParticle(pos=(0.0,) * 6, type=HaloType.DM)
    assert calc_particle_dist(gas_halo, dm_particle, 1.0) == FAR
    empty = _halo(2, 0.0, 1.0)
    empty.num_p = 0
    assert calc_particle_dist(empty, dm_particle, 1.0) == FAR
    dm_halo = _halo(3, 0.0, 1.0)
    dm_halo.galaxy_ineligible = True
    star = MetricParticle(pos=(0.0,) * 6, type=HaloType.STAR)
    assert calc_particle_dist(dm_halo, star, 1.0) == FAR


def test_non_dm_velocity_downweighted():
    halo = _halo(1, 0.0, 1.0)
    gas = MetricParticle(pos=(0.0, 0.0, 0.0, 2.0, 0.0, 0.0), type=HaloType.GAS)
    dm = MetricParticle(pos=(0.0, 0.0, 0.0, 2.0, 0.0, 0.0), type=HaloType.DM)
    assert calc_particle_dist(halo, gas, 2.0) == pytest.approx(
        calc_particle_dist(halo, dm, 2.0) / 2.0)


def test_halo_dist_rejects_larger_halo():
    small = _halo(1, 0.0, 1.0)
    large = _halo(2, 0.5, 2.0)
    assert calc_halo_dist(small, large, 1.0) == FAR
    assert calc_halo_dist(large, small, 1.0) < FAR


def test_halo_dist_rejects_weak_dm_host_of_galaxy():
    host = _halo(1, 0.0, 1.0, vmax=10.0)
    galaxy = _halo(2, 0.1, 2.0, vmax=100.0, htype=HaloType.STAR)
    assert calc_halo_dist(host, galaxy, 1.0) == FAR


def test_find_best_halo_picks_minimum_metric():
    host = _halo(1, 0.0, 2.0)
    medium = _halo(2, 1.0, 1.0)
    metric = SubhaloMetric([host, medium])
    particle = MetricParticle(pos=(1.1, 0.0, 0.0, 0.0, 0.0, 0.0))
    best = metric.find_best_halo(particle, host)
    assert best is medium
    assert calc_particle_dist(best, particle, 1.0) == min(
        calc_particle_dist(h, particle, 1.0) for h in metric.halos)


def test_find_best_halo_alt_metric_maximises_density():
    halos = [_halo(1, 0.0, 2.0), _halo(2, 1.0, 1.0, m=1e11), _halo(3, 3.0, 0.5, m=1e10)]
    metric = SubhaloMetric(halos, alt_nfw_metric=True)
    particle = MetricParticle(pos=(0.8, 0.2, 0.0, 0.0, 0.0, 0.0))
    best = metric.find_best_halo(particle, halos[0])
    assert calc_expected_density(best, particle) == max(
        calc_expected_density(h, particle) for h in halos)


def test_expected_density_default_for_bad_halo():
    halo = _halo(1, 0.0, 1.0)
    halo.vrms = 0.0
    assert calc_expected_density(halo, MetricParticle(pos=(1.0,) * 6)) == 1e9


def test_find_best_parent():
    host = _halo(1, 0.0, 2.0)
    medium = _halo(2, 1.0, 1.0)
    sub = _halo(3, 1.1, 0.5)
    metric = SubhaloMetric([host, medium, sub])
    assert metric.find_best_parent(sub, host) is medium
    assert metric.find_best_parent(host, host) is host


def test_find_children_filters():
    host = _halo(1, 0.0, 1.0)
    inner = _halo(2, 0.5, 0.2)
    bigger = _halo(3, 0.3, 1.5)
    far = _halo(4, 5.0, 0.2)
    metric = SubhaloMetric([host, inner, bigger, far])
    children = metric.find_children(host, None, 1.0)
    assert children == [inner]
    assert all(c.r < host.r for c in children)


def test_find_children_prefers_closer_parent():
    host = _halo(1, 0.0, 1.0)
    rival = _halo(5, 0.6, 1.2)
    inner = _halo(2, 0.55, 0.2)
    metric = SubhaloMetric([host, inner])
    assert metric.find_children(host, rival, 1.0) == []
    assert math.isclose(calc_halo_dist(host, inner, 1.0), 0.55)