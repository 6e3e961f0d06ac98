"""
Axis range policy shared by all result viewports.

Every suggested viewport passes through clamp_axis_range, which absorbs
numeric degeneracies instead of raising: non-finite bounds are defaulted,
inverted bounds are swapped and a near-zero span is widened to two units
around its midpoint.
"""

from dataclasses import dataclass
from typing import Tuple

import numpy as np


MIN_SPAN = 1e-6


def is_singular(value: float) -> bool:
    """True for NaN or ±inf."""
    return not np.isfinite(value)


def clamp_axis_range(minimum: float, maximum: float) -> Tuple[float, float]:
    """
    Sanitize an axis range.

    Parameters
    ----------
    minimum, maximum : float
        Requested bounds (may be NaN, infinite or inverted)

    Returns
    -------
    Tuple[float, float]
        Finite (min, max) with max - min >= 2 whenever the input span was
        below 1e-6
    """
    if is_singular(minimum):
        minimum = 0.0
    if is_singular(maximum):
        maximum = 1.0

    if minimum > maximum:
        minimum, maximum = maximum, minimum

    if (maximum - minimum) < MIN_SPAN:
        center = (maximum + minimum) / 2.0
        minimum = center - 1.0
        maximum = center + 1.0

    return float(minimum), float(maximum)


@dataclass(frozen=True)
class Viewport:
    """Suggested plotting window (real/x axis by imaginary/y axis)."""
    x_min: float
    x_max: float
    y_min: float
    y_max: float

    @classmethod
    def from_limits(cls, x_min: float, x_max: float,
                    y_min: float, y_max: float) -> 'Viewport':
        """Build a viewport with both axes passed through clamp_axis_range."""
        x_lo, x_hi = clamp_axis_range(x_min, x_max)
        y_lo, y_hi = clamp_axis_range(y_min, y_max)
        return cls(x_lo, x_hi, y_lo, y_hi)

    def contains(self, x: float, y: float) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max


def waveform_viewport(waveform) -> Viewport:
    """
    Time axis over the sampled window, amplitude axis padded by 10 %
    (one unit when the waveform is flat).
    """
    sample_rate = waveform.metadata.get('sample_rate')
    duration = len(waveform.time) / sample_rate if sample_rate else float(waveform.time[-1])
    lo, hi = waveform.minimum, waveform.maximum
    span = hi - lo
    padding = 1.0 if span < MIN_SPAN else span * 0.1
    return Viewport.from_limits(0.0, duration, lo - padding, hi + padding)


def spectrum_viewport(spectrum) -> Viewport:
    """Frequency axis up to Nyquist, magnitude axis up to 1.2x the peak."""
    peak = float(np.max(spectrum.magnitudes)) if len(spectrum) else 0.0
    return Viewport.from_limits(0.0, spectrum.sample_rate / 2.0, 0.0, peak * 1.2)


def system_vi_viewport(duration: float, voltage: np.ndarray, current: np.ndarray) -> Viewport:
    """
    Shared window for one phase of the V-I overlay: time axis over the
    sampled window, amplitude axis spanning both traces padded by 20 %
    (ten units when both traces are flat).
    """
    lo = min(float(np.min(voltage)), float(np.min(current)))
    hi = max(float(np.max(voltage)), float(np.max(current)))
    span = hi - lo
    padding = 10.0 if span < MIN_SPAN else span * 0.2
    return Viewport.from_limits(0.0, duration, lo - padding, hi + padding)
