"""Descendant assignment between two consecutive halo catalogues."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field


@dataclass
class CatalogHalo:
    """A halo whose member particle IDs lie in ``particles[p_start:p_start+num_p]``."""

    id: int
    p_start: int = 0
    num_p: int = 0
    desc: int = -1


def _member_ids(halo: CatalogHalo, particle_ids: list[int]) -> list[int]:
    end = halo.p_start + halo.num_p
    if halo.p_start < 0 or halo.num_p < 0 or end > len(particle_ids):
        raise ValueError(
            f"halo {halo.id} refers to particles {halo.p_start}..{end} "
            f"outside a list of {len(particle_ids)}"
        )
    return particle_ids[halo.p_start:end]


@dataclass
class MergerTree:
    """Links the haloes of an earlier catalogue to those of a later one.

    ``halos1``/``part1`` describe the earlier snapshot and ``halos2``/``part2``
    the later one. Each earlier halo's descendant is the later halo that
    receives most of its particles.
    """

    halos1: list[CatalogHalo] = field(default_factory=list)
    halos2: list[CatalogHalo] = field(default_factory=list)
    part1: list[int] = field(default_factory=list)
    part2: list[int] = field(default_factory=list)
    part2_halos: dict[int, int] = field(default_factory=dict)

    def clear(self) -> None:
        """Drop both catalogues, their particles and the ID lookup."""
        self.halos1 = []
        self.halos2 = []
        self.part1 = []
        self.part2 = []
        self.part2_halos = {}

    def init_descendants(self) -> None:
        """Mark every earlier halo as having no descendant."""
        for halo in self.halos1:
            halo.desc = -1

    def connect_particle_ids_to_halo_ids(self) -> None:
        """Build the particle-ID to later-halo-ID lookup and release ``part2``."""
        self.part2_halos = {}
        if not self.part2 or not self.halos2:
            return
        for halo in self.halos2:
            for pid in _member_ids(halo, self.part2):
                self.part2_halos[pid] = halo.id
        self.part2 = []

    def calculate_descendants(self) -> None:
        """Give each earlier halo the later halo holding most of its particles.

        Ties go to the smallest halo ID. Haloes none of whose particles are
        found keep their current descendant.
        """
        if not self.halos2:
            return
        lookup = self.part2_halos
        for halo in self.halos1:
            found = Counter(
                lookup[pid] for pid in _member_ids(halo, self.part1) if pid in lookup
            )
            if not found:
                continue
            halo.desc = min(found, key=lambda hid: (-found[hid], hid))