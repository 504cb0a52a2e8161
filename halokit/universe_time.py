"""Conversion between cosmic scale factor and cosmic time."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Optional

STEPS = 4096
MAX_SCALE = 5.0


def _simpson_step(f, a, b, eps, whole, fa, fb, fc, depth):
    c = 0.5 * (a + b)
    h = b - a
    d = 0.5 * (a + c)
    e = 0.5 * (c + b)
    fd, fe = f(d), f(e)
    left = h / 12.0 * (fa + 4.0 * fd + fc)
    right = h / 12.0 * (fc + 4.0 * fe + fb)
    delta = left + right - whole
    if depth <= 0 or abs(delta) <= 15.0 * eps:
        return left + right + delta / 15.0
    return (_simpson_step(f, a, c, eps / 2.0, left, fa, fc, fd, depth - 1)
            + _simpson_step(f, c, b, eps / 2.0, right, fc, fb, fe, depth - 1))


def adaptive_simpsons(f: Callable[[float], float], a: float, b: float,
                      tol: float, max_depth: int) -> float:
    """Integrate ``f`` from ``a`` to ``b`` with adaptive Simpson's rule."""
    c = 0.5 * (a + b)
    fa, fb, fc = f(a), f(b), f(c)
    whole = (b - a) / 6.0 * (fa + 4.0 * fc + fb)
    return _simpson_step(f, a, b, tol, whole, fa, fb, fc, max_depth)


def exact_time_to_scale(t: float, omega_m: float) -> float:
    """Scale factor at time ``t`` (in units of 1/H0) for flat LCDM."""
    m = math.sinh(1.5 * t * math.sqrt(1.0 - omega_m))
    return (omega_m * m * m / (1.0 - omega_m)) ** (1.0 / 3.0)


@dataclass
class TimeTable:
    """Lookup table of cosmic time (relative to today) against scale factor.

    ``hubble_scaling`` maps redshift to H(z)/H0. Times are in units of 1/H0;
    ``hubble_time_conversion / h0`` converts them to years.
    """

    h0: float
    hubble_scaling: Callable[[float], float]
    hubble_time_conversion: float
    _times: Optional[list[float]] = field(default=None, init=False, repr=False)

    def _inv_hubble_scaling(self, a: float) -> float:
        return 1.0 / (a * self.hubble_scaling(1.0 / a - 1.0))

    def exact_scale_to_time(self, scale: float) -> float:
        """Time from today to ``scale`` by direct integration."""
        if scale == 1.0:
            return 0.0
        scale = max(scale, 1e-30)
        tol = min(abs(scale - 1.0) * 1e-7, 1e-7)
        return adaptive_simpsons(self._inv_hubble_scaling, 1.0, scale, tol, 20)

    @property
    def times(self) -> list[float]:
        if self._times is None:
            self._times = [self.exact_scale_to_time(MAX_SCALE * i / STEPS)
                           for i in range(STEPS + 1)]
        return self._times

    def scale_to_time(self, scale: float) -> float:
        """Time from today to ``scale``, interpolated from the table."""
        if scale > MAX_SCALE:
            return self.exact_scale_to_time(scale)
        times = self.times
        if scale < 0:
            return times[0]
        position = scale / MAX_SCALE * STEPS
        index = int(position)
        if index >= STEPS:
            return times[STEPS]
        frac = position - index
        return times[index] + frac * (times[index + 1] - times[index])

    def scale_to_years(self, scale: float) -> float:
        """Time from today to ``scale`` in years."""
        return self.scale_to_time(scale) * self.hubble_time_conversion / self.h0