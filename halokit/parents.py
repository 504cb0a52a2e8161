"""Assignment of parent haloes by spatial overlap."""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np


def _window(sorted_x: np.ndarray, order_x: np.ndarray, lo: float, hi: float) -> np.ndarray:
    start = np.searchsorted(sorted_x, lo, side="left")
    stop = np.searchsorted(sorted_x, hi, side="right")
    return order_x[start:stop]


def find_parents(halos: Sequence[Any], box_size: float, *, radius_attr: str = "r",
                 radius_conversion: float = 1.0e-3, periodic: bool = True) -> list[int]:
    """Return the parent ID of each halo, or -1 for hosts.

    Haloes are visited in order of decreasing ``vmax``; every halo with a
    smaller radius lying inside the visited halo's radius gets that halo's ID
    as parent, so later (lower-vmax) haloes override earlier ones. Each halo
    needs ``id``, ``pos`` (at least three components), ``vmax`` and the
    attribute named by ``radius_attr``.
    """
    count = len(halos)
    parents = np.full(count, -1, dtype=np.int64)
    if not count:
        return []
    if periodic and not box_size > 0:
        raise ValueError("a positive box size is required for periodic boundaries")

    pos = np.array([list(h.pos[:3]) for h in halos], dtype=float).reshape(-1, 3)
    radii = np.array([getattr(h, radius_attr) for h in halos], dtype=float)
    ids = np.array([h.id for h in halos], dtype=np.int64)
    if periodic:
        pos = np.mod(pos, box_size)
        max_dist = box_size / 2.01
        shifts = (-box_size, 0.0, box_size)
    else:
        shifts = (0.0,)

    order_x = np.argsort(pos[:, 0], kind="stable")
    sorted_x = pos[order_x, 0]
    visit = sorted(range(count), key=lambda i: -halos[i].vmax)

    for i in visit:
        reach = radii[i] * radius_conversion
        if periodic and max_dist < reach:
            reach = max_dist
        centre = pos[i]
        windows = [_window(sorted_x, order_x, centre[0] - reach + s, centre[0] + reach + s)
                   for s in shifts]
        candidates = np.unique(np.concatenate(windows))
        if not len(candidates):
            continue
        delta = pos[candidates] - centre
        if periodic:
            delta -= box_size * np.round(delta / box_size)
        dist2 = np.einsum("ij,ij->i", delta, delta)
        inside = (dist2 < reach * reach) & (radii[candidates] < radii[i])
        parents[candidates[inside]] = ids[i]
    return parents.tolist()