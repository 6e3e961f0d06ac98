"""
Pole/zero map container shared by the continuous and discrete analyzers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import numpy as np

from smart_grid_twin.core.stability.viewport import Viewport


class Domain(Enum):
    """Analysis domain of a pole/zero map."""
    S = "s"   # Continuous (Laplace)
    Z = "z"   # Discrete (sampled)


@dataclass
class PoleZeroMap:
    """
    Poles and zeros of one closed-loop model, ready for presentation.

    Attributes
    ----------
    domain : Domain
        S (continuous) or Z (discrete)
    poles : np.ndarray
        Finite poles (complex); singular poles are moved to singular_poles
    zeros : np.ndarray
        Zeros (complex); exactly one for both loop models
    viewport : Viewport
        Suggested axis window that keeps every pole and zero visible
    singular_poles : np.ndarray
        Poles with a non-finite real part, excluded from plotting
    unit_circle : np.ndarray, optional
        Stability boundary points (Z-domain only)
    metadata : Dict
        Loop gain, delay and intermediate quantities
    """
    domain: Domain
    poles: np.ndarray
    zeros: np.ndarray
    viewport: Viewport
    singular_poles: np.ndarray = field(default_factory=lambda: np.array([], dtype=complex))
    unit_circle: Optional[np.ndarray] = None
    metadata: Dict = field(default_factory=dict)

    @property
    def is_stable(self) -> bool:
        """
        Stability verdict from the plotted poles.

        S-domain: every pole in the open left half-plane.
        Z-domain: every pole strictly inside the unit circle.
        A map with singular poles is never reported stable.
        """
        if len(self.singular_poles) > 0 or len(self.poles) == 0:
            return False
        if self.domain is Domain.S:
            return bool(np.all(np.real(self.poles) < 0))
        return bool(np.all(np.abs(self.poles) < 1.0))

    @property
    def stability_margin(self) -> float:
        """
        Distance of the least stable pole from the stability boundary.

        Positive when stable: -max(Re p) for S, 1 - max|p| for Z.
        """
        if len(self.poles) == 0:
            return float('nan')
        if self.domain is Domain.S:
            return float(-np.max(np.real(self.poles)))
        return float(1.0 - np.max(np.abs(self.poles)))
