"""
Discrete-Domain Stability Mapping (Sampled Delay Chain)

Sampling the loop with period Ts turns the transport delay Td into a chain
of d = max(1, floor(Td/Ts)) unit delays. Folding the loop gain K through
that chain places d poles evenly on a circle of radius |K|^(1/d), starting
on the negative real axis:

    θ_k = (π + 2πk) / d,    p_k = |K|^(1/d) · e^(iθ_k),    k = 0 .. d-1

The continuous Padé zero s = 2/Td is carried over by direct exponential
mapping z = exp(s·Ts), not by a bilinear transform.
"""

from typing import Optional

import numpy as np
import control as ctrl

from smart_grid_twin.core.constants import GridConstants, DEFAULT_CONSTANTS
from smart_grid_twin.core.stability.pole_zero import Domain, PoleZeroMap
from smart_grid_twin.core.stability.viewport import Viewport


Z_VIEWPORT = Viewport.from_limits(-2.0, 2.0, -1.5, 1.5)


def delay_order(delay: float, sampling_period: float) -> int:
    """Number of whole sampling periods in the delay, at least one."""
    with np.errstate(divide='ignore', invalid='ignore'):
        ratio = np.float64(delay) / np.float64(sampling_period)
    if not np.isfinite(ratio):
        return 1
    return max(1, int(np.floor(ratio)))


def delay_chain_poles(gain: float, order: int) -> np.ndarray:
    """
    Poles of a d-step delay chain closed around gain K.

    Returns
    -------
    np.ndarray
        d complex poles on the circle of radius |K|^(1/d)
    """
    radius = np.abs(gain) ** (1.0 / order)
    angles = (np.pi + 2.0 * np.pi * np.arange(order)) / order
    return radius * (np.cos(angles) + 1j * np.sin(angles))


def unit_circle(step_deg: int = 5) -> np.ndarray:
    """Closed unit circle sampled every step_deg degrees (0..360 inclusive)."""
    rad = np.deg2rad(np.arange(0, 360 + step_deg, step_deg))
    return np.cos(rad) + 1j * np.sin(rad)


class DiscreteStabilityMapper:
    """
    Z-domain pole/zero mapping of the sampled voltage loop.
    """

    def __init__(self, constants: GridConstants = DEFAULT_CONSTANTS):
        self.delay = constants.power_quality_delay
        self.sampling_period = constants.z_sampling_period

    @property
    def order(self) -> int:
        return delay_order(self.delay, self.sampling_period)

    def mapped_zero(self) -> float:
        """exp((2/Td)·Ts); non-finite for a zero delay."""
        with np.errstate(divide='ignore', over='ignore', invalid='ignore'):
            s_zero = np.float64(2.0) / np.float64(self.delay)
            return float(np.exp(s_zero * self.sampling_period))

    def analyze(self, amplitude_scale: float, order: Optional[int] = None) -> PoleZeroMap:
        """
        Compute the Z-domain pole/zero map.

        Parameters
        ----------
        amplitude_scale : float
            Voltage sensor amplitude scale, used unscaled as loop gain
        order : int, optional
            Override of the discrete delay order

        Returns
        -------
        PoleZeroMap
            d poles, the mapped zero and the unit-circle boundary
        """
        d = self.order if order is None else max(1, int(order))
        poles = delay_chain_poles(amplitude_scale, d)

        return PoleZeroMap(
            domain=Domain.Z,
            poles=poles,
            zeros=np.array([complex(self.mapped_zero(), 0.0)]),
            viewport=Z_VIEWPORT,
            unit_circle=unit_circle(),
            metadata={
                'gain': amplitude_scale,
                'delay': self.delay,
                'sampling_period': self.sampling_period,
                'order': d,
                'radius': float(np.abs(amplitude_scale) ** (1.0 / d)),
            }
        )

    def transfer_function(self, amplitude_scale: float) -> ctrl.TransferFunction:
        """
        Discrete transfer function (z - z0) / (z^d + |K|) with dt = Ts.
        """
        d = self.order
        num = np.poly([self.mapped_zero()]).real
        den = np.poly(delay_chain_poles(amplitude_scale, d)).real
        return ctrl.tf(num, den, self.sampling_period)
