# halokit

Building blocks for characterising dark-matter halos in cosmological
N-body simulations, together with a small command-line tool that assigns
host halos to an ASCII halo catalogue.

## Installation

```
pip install .
```

`numpy` is the only runtime dependency. To run the test suite:

```
pip install ".[test]"
pytest
```

## What is inside

| Module | Purpose |
| --- | --- |
| `halokit.potential` | `PotentialParticle`; gravitational potential of particle sets by direct summation (`compute_potential`, `compute_direct_potential`, `compute_indirect_potential`) with a force-resolution floor on distances, and `compute_kinetic_energy` relative to a halo centre including the Hubble flow. |
| `halokit.nfw` | NFW helpers (`c_to_f`, `f_to_c`, `nfw_menc`), the vmax/mvir scale-radius estimate (`estimate_scale_radius`, with unit constants in `NFWConstants`) and a chi-squared fit of the scale radius to equal-mass radial bins (`chi2_scale`, `calc_scale_from_bins`, `calc_scale_radius`). |
| `halokit.universe_time` | `TimeTable`: scale factor to cosmic time (relative to today, in units of 1/H0) and to years, by direct integration or from an interpolated table; `adaptive_simpsons`; `exact_time_to_scale` for flat ΛCDM. |
| `halokit.properties` | Angular momentum (`add_ang_mom`), Vmax from radial mass bins (`estimate_vmax_from_bins`), core and bulk velocities (`calculate_corevel` → `CoreVelocity`), iterative ellipsoidal shapes (`calc_shape` → `Shape`), total energy (`estimate_total_energy`) and pseudo-evolution masses (`pseudo_evolution_masses`). |
| `halokit.subhalo_metric` | Phase-space distances between halos and particles (`calc_particle_dist`, `calc_halo_dist`, `calc_expected_density`) and `SubhaloMetric` with `find_best_halo`, `find_best_parent` and `find_children`. |
| `halokit.parents` | `find_parents`: visits halos in order of decreasing Vmax and gives every smaller halo inside the visited halo's radius that halo's ID, so the last (lowest-Vmax) such halo wins; periodic boundaries optional. |
| `halokit.merger` | `MergerTree` of `CatalogHalo` records: each halo of an earlier catalogue gets as descendant the later halo holding most of its particle IDs (ties to the smallest ID). |
| `halokit.hlist` | `HlistHalo`, `parse_hlist`, `format_halo` and `find_hlist_parents` for 44-column ASCII halo lists; `main` for the command. |
| `halokit.subhalo_stats` | `calc_subhalo_stats` → `SubhaloStats`: mass, Vmax and radius ratios to the top-level host, radial distance, angle to the host spin and velocity components; `SubhaloStats.format` renders a table line. |
| `halokit.particles` | `Particle`, `remove_duplicate_particles`, `align_particles` for groups straddling a periodic boundary, and `fof_send_order` (group indices, largest first). |

## Quick examples

NFW concentration and the ratio used in scale-radius estimates:

```python
from halokit.nfw import c_to_f, f_to_c

f = c_to_f(10.0)
assert abs(f_to_c(f) - 10.0) < 1e-5
```

Angle between a subhalo's offset and its host's angular momentum:

```python
from halokit.subhalo_stats import calc_angle

calc_angle([1.0, 0.0, 0.0], [0.0, 0.0, 1.0])   # pi / 2
```

Parent assignment for a catalogue file:

```python
from halokit.hlist import find_hlist_parents

with open("hlist_1.00000.list") as catalogue:
    for line in find_hlist_parents(catalogue, box_size=250.0):
        print(line)
```

## Command line

`halokit-find-parents` reads an ASCII halo list and a periodic box size
(in the same length units as the halo positions) and writes the catalogue
to standard output with an extra `PID` column holding the ID of each
halo's host, or `-1` for host halos:

```
halokit-find-parents hlist_1.00000.list 250
```

Lines starting with `#` are passed through; the first one gets ` PID`
appended. Lines without 44 parsable columns are not written as halos.
With fewer than two arguments the command prints a usage line and exits
with status 1.

## What it does not do

halokit works on particles and halos already in memory or in ASCII halo
lists. It does not read simulation snapshots or binary catalogues, does
not link particles into friends-of-friends groups, does not build a full
halo catalogue from raw particles, and has no distributed or multi-process
mode. The potential is computed by direct summation only, so very large
particle sets are slow.