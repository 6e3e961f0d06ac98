"""
Fast Fourier Transform for Sensor Waveform Analysis

Implements the recursive radix-2 decimation-in-time Cooley-Tukey algorithm.
For a length-N sequence x[n] the transform is split into the even- and
odd-indexed halves, each transformed recursively, and recombined with the
twiddle factors W_N^k = exp(-2πi·k/N):

    X[k]       = E[k] + W_N^k · O[k]
    X[k + N/2] = E[k] - W_N^k · O[k]        for k in [0, N/2)

Only power-of-two lengths are supported. The magnitude spectrum exposes the
first N/2 bins (below Nyquist) scaled by 2/N so that a sinusoid of amplitude
A sampled exactly on a bin frequency reads as A.
"""

import warnings
from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


class InvalidInputError(ValueError):
    """Raised when a transform is requested on a non-power-of-two length."""


def is_power_of_two(n: int) -> bool:
    """Return True for n in {1, 2, 4, 8, ...}."""
    return n >= 1 and (n & (n - 1)) == 0


def transform(samples: Sequence[complex]) -> np.ndarray:
    """
    Compute the discrete Fourier transform of a power-of-two sequence.

    Parameters
    ----------
    samples : sequence of complex
        Input sequence of length N (N must be a power of two)

    Returns
    -------
    np.ndarray
        Complex spectrum of length N

    Raises
    ------
    InvalidInputError
        If N is not a power of two
    """
    x = np.asarray(samples, dtype=complex)
    n = x.shape[0] if x.ndim else 0
    if x.ndim != 1 or not is_power_of_two(n):
        raise InvalidInputError(f"Length must be a power of 2, got {n}")
    return _radix2(x)


def _radix2(x: np.ndarray) -> np.ndarray:
    n = x.shape[0]
    if n == 1:
        return x.copy()

    even = _radix2(x[0::2])
    odd = _radix2(x[1::2])

    half = n // 2
    twiddle = np.exp(-2j * np.pi * np.arange(half) / n)
    weighted = twiddle * odd
    return np.concatenate([even + weighted, even - weighted])


@dataclass
class Spectrum:
    """
    Single-sided magnitude spectrum of one waveform phase.

    Attributes
    ----------
    frequencies : np.ndarray
        Bin frequencies [Hz], ascending, length N/2
    magnitudes : np.ndarray
        Amplitude-normalised magnitudes (2/N · |X[k]|), length N/2
    sample_rate : float
        Sampling frequency the spectrum was computed at [Hz]
    """
    frequencies: np.ndarray
    magnitudes: np.ndarray
    sample_rate: float

    def __len__(self) -> int:
        return len(self.frequencies)

    @property
    def resolution(self) -> float:
        """Bin spacing [Hz]; NaN for an empty spectrum (N = 1)."""
        if len(self.frequencies) == 0:
            return float('nan')
        return self.sample_rate / (2 * len(self.frequencies))

    def peak(self, skip_dc: bool = False) -> Tuple[float, float]:
        """Return (frequency, magnitude) of the largest bin, NaN when empty."""
        if len(self.magnitudes) == 0:
            return float('nan'), float('nan')
        start = 1 if skip_dc and len(self.magnitudes) > 1 else 0
        idx = start + int(np.argmax(self.magnitudes[start:]))
        return float(self.frequencies[idx]), float(self.magnitudes[idx])

    def pairs(self):
        """Iterate (frequency, magnitude) pairs in ascending frequency."""
        return zip(self.frequencies.tolist(), self.magnitudes.tolist())


def magnitude_spectrum(phase_samples: Sequence[float], sample_rate: float) -> Spectrum:
    """
    Transform a real-valued waveform phase into its magnitude spectrum.

    Parameters
    ----------
    phase_samples : sequence of float
        Time-domain amplitudes of one phase (length N, power of two)
    sample_rate : float
        Sampling frequency [Hz]

    Returns
    -------
    Spectrum
        (k·fs/N, 2/N·|X[k]|) for k in [0, N/2)
    """
    real = np.asarray(phase_samples, dtype=float)
    spectrum = transform(real + 0j)

    n = len(real)
    half = n // 2
    k = np.arange(half)
    frequencies = k * sample_rate / n
    magnitudes = (2.0 / n) * np.abs(spectrum[:half])

    return Spectrum(frequencies=frequencies, magnitudes=magnitudes, sample_rate=sample_rate)


def total_harmonic_distortion(spectrum: Spectrum, fundamental_freq: float,
                              max_harmonic: int = 25) -> float:
    """
    Estimate THD from a magnitude spectrum.

    Harmonic h is read from the bin nearest to h·f0. Bins at or above
    Nyquist are ignored. Leakage from the coarse 128-point grid makes this an
    indicator, not a metrology-grade figure.

    Returns
    -------
    float
        sqrt(sum(|H_h|², h >= 2)) / |H_1|, or 0.0 when the fundamental bin is
        empty.
    """
    n_bins = len(spectrum)
    if n_bins < 2:
        warnings.warn(f"Spectrum has {n_bins} bin(s), THD set to 0")
        return 0.0
    resolution = spectrum.resolution

    fundamental_bin = int(round(fundamental_freq / resolution))
    if fundamental_bin <= 0 or fundamental_bin >= n_bins:
        warnings.warn(f"Fundamental {fundamental_freq} Hz outside spectrum, THD set to 0")
        return 0.0

    fundamental = spectrum.magnitudes[fundamental_bin]
    if fundamental <= 0.0:
        warnings.warn("Zero fundamental magnitude, THD set to 0")
        return 0.0

    harmonic_power = 0.0
    for h in range(2, max_harmonic + 1):
        idx = int(round(h * fundamental_freq / resolution))
        if idx >= n_bins:
            break
        if idx == fundamental_bin:
            continue
        harmonic_power += spectrum.magnitudes[idx] ** 2

    return float(np.sqrt(harmonic_power) / fundamental)
