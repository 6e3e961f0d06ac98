"""
Spectral Analysis

Radix-2 FFT and single-sided magnitude spectra of sensor waveforms.
"""

from .fft import (
    InvalidInputError,
    Spectrum,
    is_power_of_two,
    magnitude_spectrum,
    total_harmonic_distortion,
    transform,
)

__all__ = [
    'InvalidInputError',
    'Spectrum',
    'is_power_of_two',
    'magnitude_spectrum',
    'total_harmonic_distortion',
    'transform',
]
