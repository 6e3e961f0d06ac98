"""
Sensor Models

Noise sources and per-sensor signal synthesis for the three-phase grid.
"""

from .noise import (
    NoiseSource,
    UniformNoiseSource,
    SynchronizedNoiseSource,
    ConstantNoiseSource,
)

from .sensor_models import (
    PHASE_NAMES,
    SENSOR_SPECS,
    SensorKind,
    SensorParameters,
    SensorSpec,
    SystemVoltCurrent,
    Waveform,
    angular_frequency,
    sample,
    system_voltage_current,
    waveform,
)

__all__ = [
    # Noise
    'NoiseSource',
    'UniformNoiseSource',
    'SynchronizedNoiseSource',
    'ConstantNoiseSource',
    # Synthesis
    'PHASE_NAMES',
    'SENSOR_SPECS',
    'SensorKind',
    'SensorParameters',
    'SensorSpec',
    'SystemVoltCurrent',
    'Waveform',
    'angular_frequency',
    'sample',
    'system_voltage_current',
    'waveform',
]
