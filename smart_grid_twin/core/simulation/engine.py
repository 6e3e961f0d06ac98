"""
Grid Simulation Engine

Orchestrates one update cycle of the digital twin:

1. Per sensor (mutually independent, run on a worker pool):
   three-phase waveform → magnitude spectrum of phase R → THD and viewports
2. Once per cycle (concurrently with step 1):
   S-domain and Z-domain pole/zero maps driven by the voltage sensor gain
3. System V-I overlay from the voltage and current sensor parameters

Every sensor task receives its own noise source spawned from the engine's
root source, so a seeded engine reproduces the same results regardless of
thread scheduling.

Parameter changes arrive in rapid bursts (a slider being dragged), so
asynchronous updates follow last-request-wins semantics: a newer request
cancels a pending one, and a computation that finishes after being
superseded is discarded rather than published.
"""

import threading
import time
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from smart_grid_twin.core.constants import GridConstants
from smart_grid_twin.core.sensors.noise import NoiseSource, UniformNoiseSource
from smart_grid_twin.core.sensors.sensor_models import (
    SENSOR_SPECS,
    SensorKind,
    SensorParameters,
    SystemVoltCurrent,
    Waveform,
    system_voltage_current,
    waveform,
)
from smart_grid_twin.core.spectral.fft import (
    Spectrum,
    magnitude_spectrum,
    total_harmonic_distortion,
)
from smart_grid_twin.core.stability.pole_zero import PoleZeroMap
from smart_grid_twin.core.stability.s_domain import ContinuousStabilityAnalyzer
from smart_grid_twin.core.stability.viewport import (
    Viewport,
    spectrum_viewport,
    waveform_viewport,
)
from smart_grid_twin.core.stability.z_domain import DiscreteStabilityMapper


@dataclass
class SimulationConfig:
    """
    Configuration of the simulation engine.

    Attributes
    ----------
    constants : GridConstants
        Physical constants (validated at construction)
    seed : int, optional
        Root noise seed; None for non-deterministic noise
    max_workers : int
        Worker threads for the per-sensor computations
    verbose : bool
        Print progress banners
    """
    constants: GridConstants = field(default_factory=GridConstants)
    seed: Optional[int] = 42
    max_workers: int = 4
    verbose: bool = False


@dataclass
class SensorResult:
    """Outputs for one sensor in one update cycle."""
    kind: SensorKind
    parameters: SensorParameters
    waveform: Waveform
    spectrum: Spectrum
    thd: float
    waveform_viewport: Viewport
    spectrum_viewport: Viewport

    @property
    def signal_frequency(self) -> float:
        return self.waveform.signal_frequency

    @property
    def label(self) -> str:
        """Display caption, e.g. 'Signal: 50.00 Hz | Fs: 1000 Hz'."""
        return (f"Signal: {self.signal_frequency:.2f} Hz | "
                f"Fs: {self.spectrum.sample_rate:g} Hz")


@dataclass
class UpdateResult:
    """Complete output of one update cycle."""
    generation: int
    sensors: Dict[SensorKind, SensorResult]
    s_domain: PoleZeroMap
    z_domain: PoleZeroMap
    system_vi: SystemVoltCurrent
    execution_time: float = 0.0

    def summary(self) -> pd.DataFrame:
        """
        One row per sensor with the headline spectral figures.

        Returns
        -------
        pd.DataFrame
            Indexed by sensor kind value
        """
        rows = []
        for kind, result in self.sensors.items():
            peak_freq, peak_mag = result.spectrum.peak(skip_dc=True)
            rows.append({
                'sensor': kind.value,
                'part': SENSOR_SPECS[kind].part_number,
                'signal_freq_hz': result.signal_frequency,
                'peak_freq_hz': peak_freq,
                'peak_magnitude': peak_mag,
                'thd': result.thd,
                'min': result.waveform.minimum,
                'max': result.waveform.maximum,
            })
        return pd.DataFrame(rows).set_index('sensor')

    def stability_summary(self) -> pd.DataFrame:
        """One row per domain: pole count, verdict, margin and zero."""
        rows = []
        for pz in (self.s_domain, self.z_domain):
            rows.append({
                'domain': pz.domain.value,
                'gain': pz.metadata.get('gain'),
                'n_poles': len(pz.poles),
                'n_singular': len(pz.singular_poles),
                'stable': pz.is_stable,
                'margin': pz.stability_margin,
                'zero': float(np.real(pz.zeros[0])),
            })
        return pd.DataFrame(rows).set_index('domain')


def compute_sensor(kind: SensorKind, params: SensorParameters, noise: NoiseSource,
                   constants: GridConstants) -> SensorResult:
    """Waveform, phase-R spectrum, THD and viewports for one sensor."""
    wf = waveform(kind, params, noise, constants=constants)
    spectrum = magnitude_spectrum(wf.phase('R'), constants.sample_rate)
    thd = total_harmonic_distortion(spectrum, wf.signal_frequency)
    return SensorResult(
        kind=kind,
        parameters=params,
        waveform=wf,
        spectrum=spectrum,
        thd=thd,
        waveform_viewport=waveform_viewport(wf),
        spectrum_viewport=spectrum_viewport(spectrum),
    )


class GridSimulationEngine:
    """
    Recomputes every sensor output and both stability maps on demand.

    Usage:
    ------
    >>> engine = GridSimulationEngine(SimulationConfig(seed=7))
    >>> engine.set_parameter(SensorKind.VOLTAGE, 'amplitude_scale', 1.2)
    >>> result = engine.update()
    >>> result.summary()
    >>>
    >>> # Front-end driven: only the newest request is published
    >>> for value in slider_values:
    ...     engine.set_parameter('voltage', 'noise_level', value, request=True)
    >>> engine.wait()
    >>> engine.latest_result
    """

    def __init__(
        self,
        config: Optional[SimulationConfig] = None,
        parameters: Optional[Dict[SensorKind, SensorParameters]] = None,
        noise: Optional[NoiseSource] = None
    ):
        """
        Initialize the engine.

        Parameters
        ----------
        config : SimulationConfig, optional
            Engine configuration (defaults apply when omitted)
        parameters : Dict[SensorKind, SensorParameters], optional
            Initial parameters; missing sensors get defaults
        noise : NoiseSource, optional
            Root noise source; defaults to UniformNoiseSource(config.seed)
        """
        self.config = config or SimulationConfig()
        self.constants = self.config.constants
        self.verbose = self.config.verbose

        self._parameters: Dict[SensorKind, SensorParameters] = {
            kind: SensorParameters() for kind in SensorKind
        }
        for kind, params in (parameters or {}).items():
            self._parameters[SensorKind.parse(kind)] = params.copy()

        self._noise = noise if noise is not None else UniformNoiseSource(self.config.seed)

        self.s_analyzer = ContinuousStabilityAnalyzer(self.constants)
        self.z_mapper = DiscreteStabilityMapper(self.constants)

        self._lock = threading.Lock()
        self._generation = 0
        self._published_generation = 0
        self._latest: Optional[UpdateResult] = None
        self._pending: Optional[Future] = None
        self._listeners: List[Callable[[UpdateResult], None]] = []

        self._workers = ThreadPoolExecutor(max_workers=self.config.max_workers,
                                           thread_name_prefix='grid-sensor')
        self._dispatcher = ThreadPoolExecutor(max_workers=1, thread_name_prefix='grid-update')

    # ------------------------------------------------------------------
    # Parameters
    # ------------------------------------------------------------------

    def parameters(self, kind: Union[SensorKind, str]) -> SensorParameters:
        """Copy of the current parameters of one sensor."""
        with self._lock:
            return self._parameters[SensorKind.parse(kind)].copy()

    def set_parameters(self, kind: Union[SensorKind, str], params: SensorParameters,
                       request: bool = False) -> Optional[Future]:
        """Replace the full parameter record of one sensor."""
        with self._lock:
            self._parameters[SensorKind.parse(kind)] = params.copy()
        return self.request_update() if request else None

    def set_parameter(self, kind: Union[SensorKind, str], name: str, value: float,
                      request: bool = False) -> Optional[Future]:
        """
        Parameter-changed event from the front end.

        Parameters
        ----------
        kind : SensorKind or str
            Sensor whose parameter changed
        name : str
            SensorParameters field name
        value : float
            New value
        request : bool
            Also request an asynchronous recompute

        Raises
        ------
        ValueError
            For unknown sensor kinds or field names
        """
        if name not in SensorParameters.field_names():
            raise ValueError(f"Unknown sensor parameter: {name!r}")
        kind = SensorKind.parse(kind)
        with self._lock:
            setattr(self._parameters[kind], name, float(value))
        return self.request_update() if request else None

    # ------------------------------------------------------------------
    # Update cycle
    # ------------------------------------------------------------------

    def _snapshot(self):
        """Claim a generation and freeze the inputs for it. Lock must be held."""
        self._generation += 1
        params = {kind: p.copy() for kind, p in self._parameters.items()}
        sources = dict(zip(SensorKind, self._noise.spawn(len(SensorKind))))
        return self._generation, params, sources

    def update(self) -> UpdateResult:
        """
        Run one synchronous update cycle and publish the result.
        """
        with self._lock:
            generation, params, sources = self._snapshot()
        result = self.compute(generation, params, sources)
        self._publish(result)
        return result

    def request_update(self) -> Future:
        """
        Schedule an asynchronous update cycle.

        A not-yet-started earlier request is cancelled. The returned future
        resolves to the UpdateResult, or to None when the request was
        superseded before its result could be published.
        """
        with self._lock:
            generation, params, sources = self._snapshot()
            if self._pending is not None:
                self._pending.cancel()
            future = self._dispatcher.submit(self._run_request, generation, params, sources)
            self._pending = future
        return future

    def _run_request(self, generation, params, sources) -> Optional[UpdateResult]:
        with self._lock:
            if generation != self._generation:
                return None
        result = self.compute(generation, params, sources)
        with self._lock:
            if generation != self._generation:
                if self.verbose:
                    print(f"Discarding stale update #{generation} (latest #{self._generation})")
                return None
        self._publish(result)
        return result

    def _publish(self, result: UpdateResult) -> None:
        with self._lock:
            if result.generation < self._published_generation:
                return
            self._published_generation = result.generation
            self._latest = result
            listeners = list(self._listeners)
        for callback in listeners:
            callback(result)

    def compute(self, generation: int, params: Dict[SensorKind, SensorParameters],
                sources: Dict[SensorKind, NoiseSource]) -> UpdateResult:
        """
        Compute a full update from frozen inputs.

        Sensor tasks and the two stability maps run concurrently on the
        worker pool; no state is shared between them.
        """
        start = time.time()
        if self.verbose:
            print("=" * 60)
            print(f"Update cycle #{generation}")
            print("=" * 60)

        sensor_futures = {
            kind: self._workers.submit(compute_sensor, kind, params[kind], sources[kind],
                                       self.constants)
            for kind in SensorKind
        }
        voltage_scale = params[SensorKind.VOLTAGE].amplitude_scale
        s_future = self._workers.submit(self.s_analyzer.analyze, voltage_scale)
        z_future = self._workers.submit(self.z_mapper.analyze, voltage_scale)

        system_vi = system_voltage_current(params[SensorKind.VOLTAGE],
                                           params[SensorKind.CURRENT], self.constants)
        sensors = {kind: future.result() for kind, future in sensor_futures.items()}

        result = UpdateResult(
            generation=generation,
            sensors=sensors,
            s_domain=s_future.result(),
            z_domain=z_future.result(),
            system_vi=system_vi,
            execution_time=time.time() - start,
        )

        if self.verbose:
            for kind, sensor in sensors.items():
                print(f"  {SENSOR_SPECS[kind].part_number:<10} {sensor.label}")
            print(f"  S-domain stable: {result.s_domain.is_stable}   "
                  f"Z-domain stable: {result.z_domain.is_stable}")
            print(f"  Execution time: {result.execution_time * 1e3:.1f} ms")

        return result

    # ------------------------------------------------------------------
    # Results and lifecycle
    # ------------------------------------------------------------------

    @property
    def latest_result(self) -> Optional[UpdateResult]:
        with self._lock:
            return self._latest

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def subscribe(self, callback: Callable[[UpdateResult], None]) -> None:
        """Register a callback invoked with every published result."""
        with self._lock:
            self._listeners.append(callback)

    def wait(self, timeout: Optional[float] = None) -> Optional[UpdateResult]:
        """Block until the most recent request has settled."""
        while True:
            with self._lock:
                pending = self._pending
            if pending is None:
                break
            try:
                pending.result(timeout=timeout)
            except CancelledError:
                # Superseded while waiting; follow the newer request
                continue
            with self._lock:
                if self._pending is pending:
                    break
        return self.latest_result

    def close(self) -> None:
        self._dispatcher.shutdown(wait=True)
        self._workers.shutdown(wait=True)

    def __enter__(self) -> 'GridSimulationEngine':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
