"""
Continuous-Domain Stability Analysis (Padé Delay Approximation)

The voltage regulation loop is modelled as a first-order lag K/(τs + 1)
closed around the metering transport delay e^(-s·Td). Replacing the delay by
its first-order Padé form

    e^(-s·Td) ≈ (1 - s·Td/2) / (1 + s·Td/2)

keeps the characteristic equation polynomial:

    (τs + 1)(1 + s·Td/2) + K(1 - s·Td/2) = a·s² + b·s + c = 0

    a = 0.5·τ·Td
    b = τ + 0.5·Td - 0.5·K·Td
    c = 1 + K

The closed-loop zero is the root of the Padé numerator, s = 2/Td.
"""

import warnings
from typing import Tuple

import numpy as np
import control as ctrl

from smart_grid_twin.core.constants import GridConstants, DEFAULT_CONSTANTS
from smart_grid_twin.core.stability.pole_zero import Domain, PoleZeroMap
from smart_grid_twin.core.stability.viewport import Viewport, is_singular


def characteristic_coefficients(gain: float, delay: float,
                                time_constant: float) -> Tuple[float, float, float]:
    """Return (a, b, c) of the closed-loop characteristic quadratic."""
    a = 0.5 * time_constant * delay
    b = time_constant + 0.5 * delay - 0.5 * gain * delay
    c = 1.0 + gain
    return a, b, c


def discriminant(gain: float, delay: float, time_constant: float) -> float:
    """b² - 4ac; negative for a complex-conjugate pole pair."""
    a, b, c = characteristic_coefficients(gain, delay, time_constant)
    return b * b - 4.0 * a * c


def pade_poles(gain: float, delay: float, time_constant: float) -> Tuple[complex, complex]:
    """
    Solve the characteristic quadratic for the two closed-loop poles.

    Degenerate coefficients (a = 0) yield non-finite poles rather than an
    exception.

    Returns
    -------
    Tuple[complex, complex]
        (p1, p2); for real roots p1 = (-b + √det)/2a, for a complex pair p1
        carries the positive imaginary part
    """
    a, b, c = (np.float64(v) for v in characteristic_coefficients(gain, delay, time_constant))
    det = b * b - 4.0 * a * c

    with np.errstate(divide='ignore', invalid='ignore'):
        if det >= 0:
            root = np.sqrt(det)
            p1 = complex((-b + root) / (2.0 * a), 0.0)
            p2 = complex((-b - root) / (2.0 * a), 0.0)
        else:
            real = -b / (2.0 * a)
            imag = np.sqrt(-det) / (2.0 * a)
            p1 = complex(real, imag)
            p2 = complex(real, -imag)

    return p1, p2


class ContinuousStabilityAnalyzer:
    """
    S-domain pole/zero analysis of the delay-dominated voltage loop.

    Usage:
    ------
    >>> analyzer = ContinuousStabilityAnalyzer()
    >>> pz = analyzer.analyze(amplitude_scale=1.0)
    >>> pz.poles, pz.zeros, pz.is_stable
    """

    def __init__(self, constants: GridConstants = DEFAULT_CONSTANTS):
        """
        Parameters
        ----------
        constants : GridConstants
            Supplies the loop delay (power_quality_delay), the lag time
            constant (current_time_constant) and the gain multiplier
        """
        self.delay = constants.power_quality_delay
        self.time_constant = constants.current_time_constant
        self.gain_multiplier = constants.s_gain_multiplier

    def loop_gain(self, amplitude_scale: float) -> float:
        """K = voltage amplitude scale × gain multiplier."""
        return amplitude_scale * self.gain_multiplier

    def analyze(self, amplitude_scale: float) -> PoleZeroMap:
        """
        Compute the S-domain pole/zero map for a voltage amplitude scale.

        Parameters
        ----------
        amplitude_scale : float
            Voltage sensor amplitude scale

        Returns
        -------
        PoleZeroMap
            Poles, the Padé zero and a viewport with headroom
        """
        gain = self.loop_gain(amplitude_scale)
        return self.analyze_gain(gain)

    def analyze_gain(self, gain: float) -> PoleZeroMap:
        """Compute the S-domain pole/zero map for an explicit loop gain K."""
        p1, p2 = pade_poles(gain, self.delay, self.time_constant)
        with np.errstate(divide='ignore'):
            zero = float(np.float64(2.0) / np.float64(self.delay))

        poles = np.array([p1, p2], dtype=complex)
        singular = np.array([is_singular(p.real) for p in poles])
        if singular.any():
            warnings.warn(f"Singular S-domain poles dropped for K={gain}")

        # Margin policy: keep every pole and the zero visible with headroom
        view_min = np.minimum(-50.0, np.minimum(p1.real, p2.real) - 10.0)
        view_max = np.maximum(25.0, zero + 10.0)
        y_limit = np.maximum(30.0, abs(p1.imag) + 10.0)

        a, b, c = characteristic_coefficients(gain, self.delay, self.time_constant)
        return PoleZeroMap(
            domain=Domain.S,
            poles=poles[~singular],
            zeros=np.array([complex(zero, 0.0)]),
            viewport=Viewport.from_limits(view_min, view_max, -y_limit, y_limit),
            singular_poles=poles[singular],
            metadata={
                'gain': gain,
                'delay': self.delay,
                'time_constant': self.time_constant,
                'coefficients': (a, b, c),
                'discriminant': b * b - 4.0 * a * c,
            }
        )

    def transfer_function(self, gain: float) -> ctrl.TransferFunction:
        """
        Closed-loop transfer function built with python-control.

        Uses the library's first-order Padé approximant, so its poles can be
        cross-checked against the closed-form solution.
        """
        plant = ctrl.tf([gain], [self.time_constant, 1.0])
        num, den = ctrl.pade(self.delay, 1)
        delay = ctrl.tf(num, den)
        return ctrl.feedback(plant * delay, 1)
