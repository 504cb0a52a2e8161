from dataclasses import dataclass

import pytest

from halokit.parents import find_parents


@dataclass
class PHalo:
    id: int
    pos: tuple
    vmax: float
    r: float


def test_small_halo_inside_large_gets_parent():
    halos = [
        PHalo(1, (50.0, 50.0, 50.0), 300.0, 1000.0),
        PHalo(2, (50.5, 50.0, 50.0), 100.0, 100.0),
        PHalo(3, (60.0, 50.0, 50.0), 90.0, 100.0),
    ]
    assert find_parents(halos, 100.0) == [-1, 1, -1]


def test_lower_vmax_host_overrides_earlier_assignment():
    halos = [
        PHalo(1, (50.0, 50.0, 50.0), 300.0, 2000.0),
        PHalo(2, (50.2, 50.0, 50.0), 200.0, 800.0),
        PHalo(3, (50.4, 50.0, 50.0), 100.0, 100.0),
    ]
    assert find_parents(halos, 100.0) == [-1, 1, 2]


def test_periodic_wrap_links_across_box_edge():
    halos = [
        PHalo(7, (1.0, 50.0, 50.0), 300.0, 5000.0),
        PHalo(8, (98.0, 50.0, 50.0), 100.0, 100.0),
    ]
    assert find_parents(halos, 100.0) == [-1, 7]
    assert find_parents(halos, 100.0, periodic=False) == [-1, -1]


def test_radius_attribute_and_conversion():
    @dataclass
    class Other:
        id: int
        pos: tuple
        vmax: float
        rvir: float

    halos = [Other(1, (0.0, 0.0, 0.0), 300.0, 2.0), Other(2, (1.0, 0.0, 0.0), 50.0, 0.5)]
    assert find_parents(halos, 0.0, radius_attr="rvir", radius_conversion=1.0,
                        periodic=False) == [-1, 1]


def test_equal_radius_is_not_a_child():
    halos = [PHalo(1, (5.0, 5.0, 5.0), 200.0, 500.0), PHalo(2, (5.1, 5.0, 5.0), 100.0, 500.0)]
    assert find_parents(halos, 10.0) == [-1, -1]


def test_empty_and_bad_box():
    assert find_parents([], 100.0) == []
    with pytest.raises(ValueError):
        find_parents([PHalo(1, (0.0, 0.0, 0.0), 1.0, 1.0)], 0.0)