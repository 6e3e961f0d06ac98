"""
Process-wide physical constants for the three-phase grid simulation.

Sample rate, sample count and fundamental frequency are shared by every
sensor. The per-sensor calibration values (time constants, transport delays,
Hall-effect calibration) are fixed properties of the sensor hardware and are
therefore kept here rather than in the user-adjustable SensorParameters.
"""

from dataclasses import dataclass, asdict, fields
from typing import Any, Dict

from smart_grid_twin.core.spectral.fft import InvalidInputError, is_power_of_two


@dataclass(frozen=True)
class GridConstants:
    """
    Fixed constants of the simulated 380 V (phase-to-phase) grid.

    Attributes
    ----------
    sample_rate : float
        Sampling frequency [Hz]
    sample_count : int
        Samples per waveform; must be a power of two (FFT precondition)
    fundamental_freq : float
        Nominal grid frequency [Hz]
    nominal_phase_voltage : float
        RMS phase voltage [V]
    nominal_current : float
        RMS line current [A]
    hall_offset : float
        Quiescent output of the Hall-effect sensor [V]
    hall_sensitivity : float
        Hall-effect sensor gain [V per unit field]
    current_time_constant : float
        First-order lag of the current sensor [s]
    magnetic_time_constant : float
        First-order lag of the magnetic field sensor [s]
    current_bias : float
        Mid-scale output bias of the current sensor [V]
    zero_crossing_delay : float
        Transport delay of the zero-crossing detector [s]
    power_quality_delay : float
        Transport delay of the power quality meter; also the loop delay used
        by the stability analysis [s]
    z_sampling_period : float
        Sampling period of the discrete loop model [s]
    s_gain_multiplier : float
        Scale from voltage amplitude scale to S-domain loop gain
    """
    sample_rate: float = 1000.0
    sample_count: int = 128
    fundamental_freq: float = 50.0
    nominal_phase_voltage: float = 220.0
    nominal_current: float = 10.0
    hall_offset: float = 1.02
    hall_sensitivity: float = 0.045
    current_time_constant: float = 4.375e-6  # 4.375 µs
    magnetic_time_constant: float = 7.9e-6   # 7.9 µs
    current_bias: float = 2.5
    zero_crossing_delay: float = 0.01        # 10 ms
    power_quality_delay: float = 0.1         # 100 ms
    z_sampling_period: float = 0.1
    s_gain_multiplier: float = 1.5

    def __post_init__(self):
        if not is_power_of_two(self.sample_count):
            raise InvalidInputError(
                f"sample_count must be a power of two, got {self.sample_count}"
            )

    @property
    def duration(self) -> float:
        """Time span covered by one waveform [s]."""
        return self.sample_count / self.sample_rate

    @property
    def nyquist(self) -> float:
        return self.sample_rate / 2.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GridConstants':
        """Build constants from a (partial) mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown grid constants: {sorted(unknown)}")
        return cls(**data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_CONSTANTS = GridConstants()
