"""
Noise Sources for Sensor Signal Synthesis

Every random draw made by the synthesis engine goes through a NoiseSource
instance that is injected by the caller. Seeded sources make waveforms
reproducible for debugging and continuous integration, and spawning
independent children lets concurrent sensor computations draw noise without
sharing generator state.
"""

from abc import ABC, abstractmethod
import threading
from typing import List, Optional, Union

import numpy as np


class NoiseSource(ABC):
    """
    Abstract uniform random generator on [0, 1).
    """

    @abstractmethod
    def uniform(self, size: Optional[int] = None) -> Union[float, np.ndarray]:
        """
        Draw uniform samples on [0, 1).

        Parameters
        ----------
        size : int, optional
            Number of samples; None returns a single float

        Returns
        -------
        float or np.ndarray
        """
        pass

    @abstractmethod
    def spawn(self, n: int) -> List['NoiseSource']:
        """
        Create n statistically independent child sources.
        """
        pass


class UniformNoiseSource(NoiseSource):
    """
    Seedable uniform noise source backed by numpy's PCG64 generator.

    Children created by spawn() derive from the same SeedSequence, so a
    seeded parent yields the same family of children on every run.
    """

    def __init__(self, seed: Optional[Union[int, np.random.SeedSequence]] = None):
        """
        Initialize the noise source.

        Parameters
        ----------
        seed : int or np.random.SeedSequence, optional
            Seed for deterministic execution; None draws fresh OS entropy
        """
        if isinstance(seed, np.random.SeedSequence):
            self.seed_sequence = seed
        else:
            self.seed_sequence = np.random.SeedSequence(seed)
        self.rng = np.random.default_rng(self.seed_sequence)

    def uniform(self, size: Optional[int] = None) -> Union[float, np.ndarray]:
        if size is None:
            return float(self.rng.random())
        return self.rng.random(size)

    def spawn(self, n: int) -> List['UniformNoiseSource']:
        return [UniformNoiseSource(child) for child in self.seed_sequence.spawn(n)]

    def reseed(self, seed: Optional[int] = None) -> None:
        """Restart the stream from a new seed."""
        self.seed_sequence = np.random.SeedSequence(seed)
        self.rng = np.random.default_rng(self.seed_sequence)


class SynchronizedNoiseSource(NoiseSource):
    """
    Lock-guarded wrapper for a source shared across worker threads.
    """

    def __init__(self, source: NoiseSource):
        self._source = source
        self._lock = threading.Lock()

    def uniform(self, size: Optional[int] = None) -> Union[float, np.ndarray]:
        with self._lock:
            return self._source.uniform(size)

    def spawn(self, n: int) -> List[NoiseSource]:
        with self._lock:
            return self._source.spawn(n)


class ConstantNoiseSource(NoiseSource):
    """
    Degenerate source that always returns the same value.

    The default of 0.5 centres every (u - 0.5) noise term on zero, which
    removes noise from a waveform without touching its parameters.
    """

    def __init__(self, value: float = 0.5):
        self.value = value

    def uniform(self, size: Optional[int] = None) -> Union[float, np.ndarray]:
        if size is None:
            return self.value
        return np.full(size, self.value, dtype=float)

    def spawn(self, n: int) -> List['ConstantNoiseSource']:
        return [ConstantNoiseSource(self.value) for _ in range(n)]
