"""Reading, parent finding and writing of halo list (hlist) catalogues."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

import numpy as np

from .parents import find_parents

NUM_COLUMNS = 44
_INT_COLUMNS = frozenset({0, 1, 7})

_FORMATS = (
    "d", "d", ".3e", ".2f", ".2f", ".3f", ".3f", "d",
    ".5f", ".5f", ".5f", ".2f", ".2f", ".2f",
    ".3e", ".3e", ".3e", ".5f", ".5f", ".4e",
    ".4e", ".4e", ".4e", ".4e", ".5f", ".2f",
    ".5f", ".5f", ".5f", ".5f", ".5f", ".5f",
    ".5f", ".5f", ".5f", ".5f", ".5f", ".4f",
    ".3e", ".3e", ".0f", ".3e", ".3e", ".3e", "d",
)


def _f32(value: float) -> float:
    with np.errstate(over="ignore"):
        return float(np.float32(value))


@dataclass
class HlistHalo:
    """One row of a halo list; ``pid`` is the parent ID (-1 for hosts)."""

    id: int
    descid: int
    mvir: float
    vmax: float
    vrms: float
    rvir: float
    rs: float
    num_p: int
    pos: tuple[float, float, float]
    vel: tuple[float, float, float]
    J: tuple[float, float, float]
    spin: float
    klypin_rs: float
    m_all: float
    alt_m: tuple[float, float, float, float]
    xoff: float
    voff: float
    bullock_spin: float
    b_to_a: float
    c_to_a: float
    A: tuple[float, float, float]
    b500: float
    c500: float
    A500: tuple[float, float, float]
    kin_to_pot: float
    m_pe_b: float
    m_pe_d: float
    type: float
    sm: float
    gas: float
    bh_mass: float
    pid: int = -1

    @classmethod
    def from_values(cls, v: Sequence) -> "HlistHalo":
        """Build a halo from the 44 column values in file order."""
        if len(v) != NUM_COLUMNS:
            raise ValueError(f"expected {NUM_COLUMNS} values, got {len(v)}")
        return cls(
            id=v[0], descid=v[1], mvir=v[2], vmax=v[3], vrms=v[4], rvir=v[5], rs=v[6],
            num_p=v[7], pos=tuple(v[8:11]), vel=tuple(v[11:14]), J=tuple(v[14:17]),
            spin=v[17], klypin_rs=v[18], m_all=v[19], alt_m=tuple(v[20:24]),
            xoff=v[24], voff=v[25], bullock_spin=v[26], b_to_a=v[27], c_to_a=v[28],
            A=tuple(v[29:32]), b500=v[32], c500=v[33], A500=tuple(v[34:37]),
            kin_to_pot=v[37], m_pe_b=v[38], m_pe_d=v[39], type=v[40], sm=v[41],
            gas=v[42], bh_mass=v[43],
        )

    def values(self) -> list:
        """The 44 column values in file order."""
        return [
            self.id, self.descid, self.mvir, self.vmax, self.vrms, self.rvir, self.rs,
            self.num_p, *self.pos, *self.vel, *self.J, self.spin, self.klypin_rs,
            self.m_all, *self.alt_m, self.xoff, self.voff, self.bullock_spin,
            self.b_to_a, self.c_to_a, *self.A, self.b500, self.c500, *self.A500,
            self.kin_to_pot, self.m_pe_b, self.m_pe_d, self.type, self.sm, self.gas,
            self.bh_mass,
        ]


def _parse_row(line: str) -> Optional[HlistHalo]:
    tokens = line.split()
    if len(tokens) < NUM_COLUMNS:
        return None
    values: list = []
    for index, token in enumerate(tokens[:NUM_COLUMNS]):
        try:
            values.append(int(token) if index in _INT_COLUMNS else _f32(float(token)))
        except ValueError:
            return None
    return HlistHalo.from_values(values)


def parse_hlist(lines: Iterable[str]) -> tuple[list[str], list[HlistHalo]]:
    """Split a halo list into its comment lines and its parsed haloes.

    Comment lines are returned without their line ending. Rows that do not
    hold 44 parsable columns are skipped.
    """
    comments: list[str] = []
    halos: list[HlistHalo] = []
    for line in lines:
        if line.startswith("#"):
            comments.append(line.rstrip("\r\n"))
        halo = _parse_row(line)
        if halo is not None:
            halos.append(halo)
    return comments, halos


def format_halo(halo: HlistHalo) -> str:
    """Render a halo as an output row, with its parent ID as the last column."""
    return " ".join(format(value, spec)
                    for value, spec in zip([*halo.values(), halo.pid], _FORMATS))


def find_hlist_parents(lines: Iterable[str], box_size: float) -> list[str]:
    """Assign parents to the haloes of a halo list and return the output lines."""
    comments, halos = parse_hlist(lines)
    for halo, parent in zip(halos, find_parents(halos, box_size, radius_attr="rvir",
                                                radius_conversion=1.0e-3, periodic=True)):
        halo.pid = parent
    if comments:
        comments[0] = comments[0] + " PID"
    return comments + [format_halo(h) for h in halos]


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Command entry point: ``find_parents hlist box_size``."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print("Usage: find_parents hlist box_size")
        return 1
    box_size = float(args[1])
    with open(args[0], encoding="utf-8") as handle:
        for line in find_hlist_parents(handle, box_size):
            print(line)
    return 0