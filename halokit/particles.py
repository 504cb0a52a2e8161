"""Particle preparation for friends-of-friends group finding."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

MAX_WRAP_BINS = 100


@dataclass
class Particle:
    """A simulation particle: an ID, three position and three velocity components."""

    id: int
    pos: tuple[float, ...] = field(default_factory=lambda: (0.0,) * 6)
    type: int = 0


def align_particles(positions, box_size: float, link_length: float) -> np.ndarray:
    """Unwrap a group that straddles a periodic boundary.

    ``positions`` has one row per particle; only the first three columns are
    positions. Along each axis on which the group touches both faces of the
    box, the coordinate range is split into bins of about ``link_length``;
    particles beyond the first empty bin are shifted down by ``box_size``.
    Returns a new array; the input is left unchanged.
    """
    result = np.array(positions, dtype=float, copy=True)
    if result.ndim != 2 or result.shape[1] < 3:
        raise ValueError("positions must have one row of at least three values per particle")
    if not box_size or len(result) < 2:
        return result
    if not link_length > 0:
        raise ValueError("link length must be positive")

    for axis in range(3):
        coords = result[:, axis]
        low, high = coords.min(), coords.max()
        if not (low <= link_length and high >= box_size - link_length):
            continue
        max_counts = min(int(box_size / link_length), MAX_WRAP_BINS)
        if max_counts < 1:
            continue
        multiple = max_counts / box_size
        bins = np.clip((coords * multiple).astype(np.int64), 0, MAX_WRAP_BINS - 1)
        counts = np.bincount(bins, minlength=MAX_WRAP_BINS)
        empty = np.flatnonzero(counts[:max_counts] == 0)
        first_empty = int(empty[0]) if len(empty) else max_counts
        wrap_position = (first_empty + 0.5) * box_size / max_counts
        coords[coords > wrap_position] -= box_size
    return result


def remove_duplicate_particles(particles: Sequence[Particle]) -> tuple[list[Particle], int]:
    """Drop particles that repeat the position or ID of their neighbour.

    The list is scanned from the end; each duplicate is replaced by the
    current last particle and the list shortened. Returns the remaining
    particles and the number removed.
    """
    kept = list(particles)
    count = len(kept)
    if count < 2:
        return kept, 0
    removed = 0
    last = kept[count - 1]
    for i in range(count - 2, -1, -1):
        current = kept[i]
        if tuple(current.pos[:6]) == tuple(last.pos[:6]) or current.id == last.id:
            count -= 1
            kept[i] = kept[count]
            removed += 1
            continue
        last = current
    return kept[:count], removed


def fof_send_order(fof_sizes: Sequence[int]) -> list[int]:
    """Indices of groups in the order they are handed out: largest first."""
    ascending = sorted(range(len(fof_sizes)), key=lambda i: fof_sizes[i])
    return ascending[::-1]