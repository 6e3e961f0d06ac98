"""
Stability Analysis

Continuous (Padé) and discrete (sampled delay chain) pole/zero maps of the
voltage regulation loop, plus the axis range policy used by every viewport.
"""

from .viewport import (
    Viewport,
    clamp_axis_range,
    is_singular,
    spectrum_viewport,
    system_vi_viewport,
    waveform_viewport,
)

from .pole_zero import Domain, PoleZeroMap

from .s_domain import (
    ContinuousStabilityAnalyzer,
    characteristic_coefficients,
    discriminant,
    pade_poles,
)

from .z_domain import (
    DiscreteStabilityMapper,
    delay_chain_poles,
    delay_order,
    unit_circle,
)

__all__ = [
    # Viewports
    'Viewport',
    'clamp_axis_range',
    'is_singular',
    'spectrum_viewport',
    'system_vi_viewport',
    'waveform_viewport',
    # Maps
    'Domain',
    'PoleZeroMap',
    # S-domain
    'ContinuousStabilityAnalyzer',
    'characteristic_coefficients',
    'discriminant',
    'pade_poles',
    # Z-domain
    'DiscreteStabilityMapper',
    'delay_chain_poles',
    'delay_order',
    'unit_circle',
]
