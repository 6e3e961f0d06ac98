"""
Sensor Signal Synthesis for the Three-Phase Grid

This module generates the time-domain output of the five grid sensors from
parametric transfer-function models:

- ZMPT101B voltage transformer:      H(s) ≈ K_ZMPT
- ACS712 Hall current sensor:        H(s) = K_ACS / (τ_i s + 1)
- H11A1 opto zero-crossing detector: H(s) = e^(-0.01 s)
- PZEM-004T power quality meter:     H(s) = e^(-0.1 s)
- DRV5053 Hall magnetic field probe: H(s) = K_DRV / (τ_m s + 1)

Each kind has one synthesis function. All of them share a common tail that
injects a third-harmonic term and additive uniform noise scaled by a
kind-specific reference amplitude; the zero-crossing detector is digital and
carries its own jitter term instead.

The three phases R, S, T are produced with the identical parameter set and
differ only by the structural offset p·2π/3.
"""

from dataclasses import dataclass, field, fields, asdict
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Union

import numpy as np

from smart_grid_twin.core.constants import GridConstants, DEFAULT_CONSTANTS
from smart_grid_twin.core.sensors.noise import NoiseSource
from smart_grid_twin.core.spectral.fft import InvalidInputError, is_power_of_two
from smart_grid_twin.core.stability.viewport import Viewport, system_vi_viewport


PHASE_NAMES = ('R', 'S', 'T')
PHASE_SEPARATION = 2.0 * np.pi / 3.0

TimeLike = Union[float, np.ndarray]


class SensorKind(Enum):
    """The closed set of sensors installed on the grid."""
    VOLTAGE = "voltage"
    CURRENT = "current"
    ZERO_CROSSING = "zero_crossing"
    POWER_QUALITY = "power_quality"
    MAGNETIC_FIELD = "magnetic_field"

    @classmethod
    def parse(cls, name: Union[str, 'SensorKind']) -> 'SensorKind':
        """Resolve a kind from its value or member name (case-insensitive)."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for kind in cls:
            if key in (kind.value, kind.name.lower()):
                return kind
        raise ValueError(f"Unknown sensor kind: {name!r}")


@dataclass(frozen=True)
class SensorSpec:
    """Descriptive metadata of a physical sensor."""
    part_number: str
    label: str
    transfer_function: str


SENSOR_SPECS: Dict[SensorKind, SensorSpec] = {
    SensorKind.VOLTAGE: SensorSpec("ZMPT101B", "Voltage", "H_ZMPT(s) ≈ K_ZMPT"),
    SensorKind.CURRENT: SensorSpec("ACS712", "Current", "H_ACS(s) = K_ACS / (τ_i s + 1)"),
    SensorKind.ZERO_CROSSING: SensorSpec("H11A1", "Frequency", "H_ZCD(s) = e^(-0.01s)"),
    SensorKind.POWER_QUALITY: SensorSpec("PZEM-004T", "Power Quality", "H_PZEM(s) = e^(-0.1s)"),
    SensorKind.MAGNETIC_FIELD: SensorSpec("DRV5053", "Magnetic Field", "H_DRV(s) = K_DRV / (τ_m s + 1)"),
}


@dataclass
class SensorParameters:
    """
    User-adjustable parameters of one sensor.

    Ranges are enforced by the front end, not here.

    Attributes
    ----------
    amplitude_scale : float
        Ratio to nominal amplitude (1.0 = nominal)
    noise_level : float
        Additive noise level [0, 1]
    harmonic_magnitude : float
        Third-harmonic injection level [0, 1]
    phase_shift : float
        Phase shift [rad]
    frequency_deviation : float
        Deviation from the fundamental [Hz]
    offset : float
        DC offset in the sensor's output unit
    distortion_level : float
        Power-quality distortion level [0, 1]
    magnetic_field_strength : float
        Field strength ratio (1.0 = nominal)
    """
    amplitude_scale: float = 1.0
    noise_level: float = 0.0
    harmonic_magnitude: float = 0.0
    phase_shift: float = 0.0
    frequency_deviation: float = 0.0
    offset: float = 0.0
    distortion_level: float = 0.0
    magnetic_field_strength: float = 1.0

    @classmethod
    def field_names(cls) -> Tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SensorParameters':
        unknown = set(data) - set(cls.field_names())
        if unknown:
            raise ValueError(f"Unknown sensor parameters: {sorted(unknown)}")
        return cls(**{k: float(v) for k, v in data.items()})

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    def copy(self) -> 'SensorParameters':
        return SensorParameters(**self.to_dict())


@dataclass
class Waveform:
    """
    Three-phase time-domain output of one sensor.

    Attributes
    ----------
    kind : SensorKind
        Sensor that produced the waveform
    time : np.ndarray
        Sample instants [s], shape (N,)
    phases : np.ndarray
        Amplitudes, shape (3, N), rows ordered R, S, T
    signal_frequency : float
        Effective signal frequency (fundamental + deviation) [Hz]
    """
    kind: SensorKind
    time: np.ndarray
    phases: np.ndarray
    signal_frequency: float
    metadata: Dict = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.time)

    def phase(self, which: Union[int, str]) -> np.ndarray:
        """Samples of one phase, by index (0..2) or name ('R', 'S', 'T')."""
        if isinstance(which, str):
            which = PHASE_NAMES.index(which.upper())
        return self.phases[which]

    def pairs(self, which: Union[int, str]):
        """Iterate (time, amplitude) pairs of one phase."""
        return zip(self.time.tolist(), self.phase(which).tolist())

    @property
    def minimum(self) -> float:
        return float(np.min(self.phases))

    @property
    def maximum(self) -> float:
        return float(np.max(self.phases))


def angular_frequency(params: SensorParameters,
                      constants: GridConstants = DEFAULT_CONSTANTS) -> float:
    """ω = 2π·(f0 + Δf) [rad/s]."""
    return 2.0 * np.pi * (constants.fundamental_freq + params.frequency_deviation)


def _draw(noise: NoiseSource, t: TimeLike) -> TimeLike:
    return noise.uniform(None if np.ndim(t) == 0 else np.shape(t)[0])


def _first_order_lag(omega: float, tau: float) -> Tuple[float, float]:
    """Phase lag [rad] and gain of 1/(τs + 1) at ω."""
    wt = omega * tau
    return -np.arctan(wt), 1.0 / np.sqrt(1.0 + wt ** 2)


# Synthesis functions return (signal, reference amplitude). The reference
# amplitude scales the shared harmonic and noise injection.

def _voltage(params, omega, t, phase_offset, noise, constants):
    amp = constants.nominal_phase_voltage * np.sqrt(2) * params.amplitude_scale
    signal = amp * np.sin(omega * t + phase_offset + params.phase_shift) + params.offset
    return signal, amp


def _current(params, omega, t, phase_offset, noise, constants):
    lag, gain = _first_order_lag(omega, constants.current_time_constant)
    current = (constants.nominal_current * np.sqrt(2) * params.amplitude_scale
               * np.sin(omega * t + phase_offset + params.phase_shift + lag))
    signal = constants.current_bias + current * 0.1 * gain + params.offset
    return signal, 1.0


def _zero_crossing(params, omega, t, phase_offset, noise, constants):
    td = np.asarray(t, dtype=float) - constants.zero_crossing_delay
    sine = np.where(td >= 0, np.sin(omega * td + phase_offset + params.phase_shift), 0.0)
    signal = np.where(sine > 0, 1.0, 0.0)
    # Digital jitter; this sensor bypasses the shared harmonic/noise tail
    signal = signal + params.noise_level * (_draw(noise, t) - 0.5) * 0.2
    return signal, 1.0


def _power_quality(params, omega, t, phase_offset, noise, constants):
    tp = np.asarray(t, dtype=float) - constants.power_quality_delay
    amp = constants.nominal_phase_voltage * np.sqrt(2) * params.amplitude_scale
    signal = np.where(tp >= 0, amp * np.sin(omega * tp + phase_offset + params.phase_shift), 0.0)
    signal = signal + params.distortion_level * 0.3 * amp * np.sin(3 * omega * t + phase_offset)
    return signal, amp


def _magnetic_field(params, omega, t, phase_offset, noise, constants):
    lag, _ = _first_order_lag(omega, constants.magnetic_time_constant)
    b = (constants.nominal_current * params.magnetic_field_strength * 0.1
         * np.sin(omega * t + phase_offset + params.phase_shift + lag))
    signal = constants.hall_offset + b * constants.hall_sensitivity
    return signal, 1.0


SynthesisFn = Callable[..., Tuple[TimeLike, float]]

SYNTHESIZERS: Dict[SensorKind, SynthesisFn] = {
    SensorKind.VOLTAGE: _voltage,
    SensorKind.CURRENT: _current,
    SensorKind.ZERO_CROSSING: _zero_crossing,
    SensorKind.POWER_QUALITY: _power_quality,
    SensorKind.MAGNETIC_FIELD: _magnetic_field,
}


def sample(kind: SensorKind, params: SensorParameters, omega: float, t: TimeLike,
           phase_offset: float, noise: NoiseSource,
           constants: GridConstants = DEFAULT_CONSTANTS) -> TimeLike:
    """
    Evaluate one sensor output at time t.

    Parameters
    ----------
    kind : SensorKind
        Sensor model to evaluate
    params : SensorParameters
        Sensor parameters
    omega : float
        Angular signal frequency [rad/s]
    t : float or np.ndarray
        Sample instant(s) [s]; arrays are evaluated element-wise
    phase_offset : float
        Structural phase offset of the phase being generated [rad]
    noise : NoiseSource
        Source of the uniform noise draws
    constants : GridConstants
        Physical constants

    Returns
    -------
    float or np.ndarray
        Sensor output, same shape as t
    """
    synthesize = SYNTHESIZERS[kind]
    signal, amp = synthesize(params, omega, t, phase_offset, noise, constants)

    if kind is not SensorKind.ZERO_CROSSING:
        signal = signal + params.harmonic_magnitude * 0.2 * amp * np.sin(3 * omega * t)
        noise_scale = amp * 0.05 if amp != 0 else 0.5
        signal = signal + params.noise_level * (_draw(noise, t) - 0.5) * noise_scale

    if np.ndim(t) == 0:
        return float(signal)
    return signal


def waveform(kind: SensorKind, params: SensorParameters, noise: NoiseSource,
             sample_count: Optional[int] = None,
             sample_rate: Optional[float] = None,
             fundamental_freq: Optional[float] = None,
             constants: GridConstants = DEFAULT_CONSTANTS) -> Waveform:
    """
    Generate the three-phase waveform of a sensor.

    Unspecified sampling arguments default to the values in `constants`.

    Raises
    ------
    InvalidInputError
        If sample_count is not a power of two
    """
    n = constants.sample_count if sample_count is None else int(sample_count)
    fs = constants.sample_rate if sample_rate is None else sample_rate
    f0 = constants.fundamental_freq if fundamental_freq is None else fundamental_freq

    if not is_power_of_two(n):
        raise InvalidInputError(f"sample_count must be a power of two, got {n}")

    signal_frequency = f0 + params.frequency_deviation
    omega = 2.0 * np.pi * signal_frequency
    time = np.arange(n) / fs

    phases = np.empty((len(PHASE_NAMES), n))
    for p in range(len(PHASE_NAMES)):
        phases[p] = sample(kind, params, omega, time, p * PHASE_SEPARATION, noise, constants)

    return Waveform(kind=kind, time=time, phases=phases, signal_frequency=signal_frequency,
                    metadata={'sample_rate': fs})


@dataclass
class SystemVoltCurrent:
    """
    Noise-free per-phase voltage and current overlay.

    Attributes
    ----------
    time : np.ndarray
        Sample instants [s], shape (N,)
    voltage : np.ndarray
        Phase voltages [V], shape (3, N)
    current : np.ndarray
        Current sensor outputs [V], shape (3, N)
    viewports : Tuple[Viewport, ...]
        Suggested axis window per phase, shared by both traces
    """
    time: np.ndarray
    voltage: np.ndarray
    current: np.ndarray
    viewports: Tuple[Viewport, ...] = ()

    def viewport(self, phase: int) -> Viewport:
        return self.viewports[phase]


def system_voltage_current(voltage_params: SensorParameters,
                           current_params: SensorParameters,
                           constants: GridConstants = DEFAULT_CONSTANTS) -> SystemVoltCurrent:
    """
    Ideal voltage and current traces of each phase on a shared time grid.

    The current trace applies the current sensor's lag but not its gain
    roll-off, matching the system overview panel it feeds.
    """
    w_v = angular_frequency(voltage_params, constants)
    w_i = angular_frequency(current_params, constants)
    lag, _ = _first_order_lag(w_i, constants.current_time_constant)

    time = np.arange(constants.sample_count) / constants.sample_rate
    voltage = np.empty((len(PHASE_NAMES), len(time)))
    current = np.empty_like(voltage)

    for p in range(len(PHASE_NAMES)):
        shift = p * PHASE_SEPARATION
        voltage[p] = (constants.nominal_phase_voltage * np.sqrt(2) * voltage_params.amplitude_scale
                      * np.sin(w_v * time + shift + voltage_params.phase_shift)
                      + voltage_params.offset)
        current[p] = (constants.current_bias
                      + constants.nominal_current * np.sqrt(2) * current_params.amplitude_scale
                      * np.sin(w_i * time + shift + current_params.phase_shift + lag) * 0.1
                      + current_params.offset)

    duration = constants.sample_count / constants.sample_rate
    viewports = tuple(system_vi_viewport(duration, voltage[p], current[p])
                      for p in range(len(PHASE_NAMES)))

    return SystemVoltCurrent(time=time, voltage=voltage, current=current, viewports=viewports)
