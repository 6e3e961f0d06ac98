"""
Unit tests for noise sources and sensor signal synthesis.

This module contains pytest-based unit tests for the five sensor models.
Tests verify the per-kind transfer-function formulas, the shared harmonic and
noise injection, three-phase symmetry and deterministic seeded noise.
"""

import threading

import numpy as np
import pytest

from smart_grid_twin.core.constants import DEFAULT_CONSTANTS, GridConstants
from smart_grid_twin.core.sensors.noise import (
    ConstantNoiseSource,
    SynchronizedNoiseSource,
    UniformNoiseSource,
)
from smart_grid_twin.core.sensors.sensor_models import (
    PHASE_NAMES,
    SENSOR_SPECS,
    SensorKind,
    SensorParameters,
    angular_frequency,
    sample,
    system_voltage_current,
    waveform,
)
from smart_grid_twin.core.spectral.fft import InvalidInputError, magnitude_spectrum


OMEGA = 2 * np.pi * 50.0
V_PEAK = 220.0 * np.sqrt(2)


@pytest.fixture
def quiet():
    """Noise source whose draws cancel the (u - 0.5) noise terms."""
    return ConstantNoiseSource()


class TestNoiseSources:
    """Test suite for the injectable noise sources."""

    def test_deterministic_with_seed(self):
        """Same seed produces identical sequences."""
        a = UniformNoiseSource(seed=123)
        b = UniformNoiseSource(seed=123)

        np.testing.assert_array_equal(a.uniform(50), b.uniform(50))

    def test_different_seeds(self):
        a = UniformNoiseSource(seed=1)
        b = UniformNoiseSource(seed=2)

        assert not np.allclose(a.uniform(20), b.uniform(20))

    def test_range(self):
        draws = UniformNoiseSource(seed=0).uniform(10000)

        assert np.all(draws >= 0.0)
        assert np.all(draws < 1.0)
        assert abs(np.mean(draws) - 0.5) < 0.02

    def test_scalar_draw(self):
        assert isinstance(UniformNoiseSource(seed=0).uniform(), float)

    def test_spawn_deterministic_and_independent(self):
        """Children of equal parents match; siblings differ."""
        kids_a = UniformNoiseSource(seed=9).spawn(3)
        kids_b = UniformNoiseSource(seed=9).spawn(3)

        draws_a = [k.uniform(10) for k in kids_a]
        draws_b = [k.uniform(10) for k in kids_b]

        for x, y in zip(draws_a, draws_b):
            np.testing.assert_array_equal(x, y)
        assert not np.allclose(draws_a[0], draws_a[1])

    def test_reseed_restarts_stream(self):
        source = UniformNoiseSource(seed=5)
        first = source.uniform(5)
        source.reseed(5)

        np.testing.assert_array_equal(source.uniform(5), first)

    def test_synchronized_wrapper_delegates(self):
        wrapped = SynchronizedNoiseSource(UniformNoiseSource(seed=3))
        reference = UniformNoiseSource(seed=3)

        np.testing.assert_array_equal(wrapped.uniform(8), reference.uniform(8))
        assert len(wrapped.spawn(2)) == 2

    def test_synchronized_source_shared_across_threads(self):
        """
        Concurrent draws from one shared seeded source are neither lost nor
        duplicated: together they form the first draws of the seeded stream.
        """
        n_threads, n_draws, size = 8, 50, 4
        shared = SynchronizedNoiseSource(UniformNoiseSource(seed=21))
        results = [[] for _ in range(n_threads)]

        def worker(out):
            for _ in range(n_draws):
                out.append(shared.uniform(size))

        threads = [threading.Thread(target=worker, args=(out,)) for out in results]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        combined = np.concatenate([draw for out in results for draw in out])
        total = n_threads * n_draws * size
        assert combined.shape == (total,)

        reference = UniformNoiseSource(seed=21).uniform(total)
        np.testing.assert_array_equal(np.sort(combined), np.sort(reference))

    def test_constant_source(self):
        source = ConstantNoiseSource(0.25)

        assert source.uniform() == 0.25
        np.testing.assert_array_equal(source.uniform(3), [0.25, 0.25, 0.25])


class TestSensorParameters:
    """Test suite for SensorParameters."""

    def test_defaults(self):
        params = SensorParameters()

        assert params.amplitude_scale == 1.0
        assert params.magnetic_field_strength == 1.0
        assert params.noise_level == 0.0
        assert params.offset == 0.0

    def test_from_dict_roundtrip(self):
        params = SensorParameters.from_dict({'noise_level': 0.3, 'phase_shift': 1})

        assert params.noise_level == 0.3
        assert params.phase_shift == 1.0
        assert SensorParameters.from_dict(params.to_dict()) == params

    def test_from_dict_rejects_unknown(self):
        with pytest.raises(ValueError):
            SensorParameters.from_dict({'gain': 2.0})

    def test_copy_is_independent(self):
        params = SensorParameters()
        clone = params.copy()
        clone.noise_level = 0.9

        assert params.noise_level == 0.0


class TestSensorKind:
    """Test suite for SensorKind lookup and metadata."""

    @pytest.mark.parametrize("name,kind", [
        ("voltage", SensorKind.VOLTAGE),
        ("ZERO_CROSSING", SensorKind.ZERO_CROSSING),
        (" Magnetic_Field ", SensorKind.MAGNETIC_FIELD),
        (SensorKind.CURRENT, SensorKind.CURRENT),
    ])
    def test_parse(self, name, kind):
        assert SensorKind.parse(name) is kind

    def test_parse_unknown(self):
        with pytest.raises(ValueError):
            SensorKind.parse("temperature")

    def test_every_kind_has_part_metadata(self):
        assert set(SENSOR_SPECS) == set(SensorKind)
        assert SENSOR_SPECS[SensorKind.POWER_QUALITY].part_number == "PZEM-004T"


class TestSynthesisFormulas:
    """Per-kind formulas evaluated at single instants with noise removed."""

    def test_voltage(self, quiet):
        params = SensorParameters(amplitude_scale=0.5, phase_shift=0.3, offset=2.0)
        t = 0.0037

        expected = 0.5 * V_PEAK * np.sin(OMEGA * t + 0.3) + 2.0
        assert sample(SensorKind.VOLTAGE, params, OMEGA, t, 0.0, quiet) == pytest.approx(expected)

    def test_current_first_order_lag(self, quiet):
        params = SensorParameters(amplitude_scale=1.2, offset=0.1)
        t = 0.0051
        tau = DEFAULT_CONSTANTS.current_time_constant

        lag = -np.arctan(OMEGA * tau)
        gain = 1.0 / np.sqrt(1.0 + (OMEGA * tau) ** 2)
        expected = 2.5 + 0.1 * gain * 10.0 * np.sqrt(2) * 1.2 * np.sin(OMEGA * t + lag) + 0.1

        assert sample(SensorKind.CURRENT, params, OMEGA, t, 0.0, quiet) == pytest.approx(expected)

    def test_magnetic_field(self, quiet):
        params = SensorParameters(magnetic_field_strength=1.5)
        t = 0.0123
        lag = -np.arctan(OMEGA * 7.9e-6)

        b = 10.0 * 1.5 * 0.1 * np.sin(OMEGA * t + lag)
        expected = 1.02 + b * 0.045
        assert sample(SensorKind.MAGNETIC_FIELD, params, OMEGA, t, 0.0, quiet) == pytest.approx(expected)

    def test_zero_crossing_delay_and_binary_output(self, quiet):
        """Output is zero inside the 10 ms delay, then a binary square wave."""
        params = SensorParameters()

        assert sample(SensorKind.ZERO_CROSSING, params, OMEGA, 0.005, 0.0, quiet) == 0.0
        # 5 ms after the delay the 50 Hz sine peaks
        assert sample(SensorKind.ZERO_CROSSING, params, OMEGA, 0.015, 0.0, quiet) == 1.0
        # Same instant, phase S: sin(π/2 + 2π/3) < 0
        assert sample(SensorKind.ZERO_CROSSING, params, OMEGA, 0.015, 2 * np.pi / 3, quiet) == 0.0

    def test_zero_crossing_ignores_harmonic(self, quiet):
        """The digital sensor is excluded from harmonic injection."""
        clean = SensorParameters()
        harmonic = SensorParameters(harmonic_magnitude=1.0)
        t = np.arange(128) / 1000.0

        np.testing.assert_array_equal(
            sample(SensorKind.ZERO_CROSSING, clean, OMEGA, t, 0.0, quiet),
            sample(SensorKind.ZERO_CROSSING, harmonic, OMEGA, t, 0.0, quiet),
        )

    def test_zero_crossing_jitter_bounds(self):
        """Jitter stays within ±0.1 of the digital levels."""
        params = SensorParameters(noise_level=1.0)
        t = np.arange(128) / 1000.0
        out = sample(SensorKind.ZERO_CROSSING, params, OMEGA, t, 0.0, UniformNoiseSource(seed=1))

        distance = np.minimum(np.abs(out), np.abs(out - 1.0))
        assert np.all(distance <= 0.1)
        assert np.any(distance > 0.0)

    def test_power_quality_transport_delay(self, quiet):
        """Nothing but distortion before the 100 ms delay has elapsed."""
        params = SensorParameters()
        t = np.arange(128) / 1000.0
        out = sample(SensorKind.POWER_QUALITY, params, OMEGA, t, 0.0, quiet)

        np.testing.assert_allclose(out[:100], 0.0, atol=1e-12)
        np.testing.assert_allclose(out[101:], V_PEAK * np.sin(OMEGA * (t[101:] - 0.1)), atol=1e-9)

    def test_power_quality_distortion(self, quiet):
        """Third-harmonic distortion is referenced to t, not the delayed time."""
        params = SensorParameters(distortion_level=0.5)
        t = 0.0031
        expected = 0.5 * 0.3 * V_PEAK * np.sin(3 * OMEGA * t)

        assert sample(SensorKind.POWER_QUALITY, params, OMEGA, t, 0.0, quiet) == pytest.approx(expected)

    def test_harmonic_injection_voltage(self, quiet):
        params = SensorParameters(harmonic_magnitude=0.5)
        t = 0.0042
        expected = V_PEAK * np.sin(OMEGA * t) + 0.5 * 0.2 * V_PEAK * np.sin(3 * OMEGA * t)

        assert sample(SensorKind.VOLTAGE, params, OMEGA, t, 0.0, quiet) == pytest.approx(expected)

    def test_harmonic_injection_uses_unit_reference_for_current(self, quiet):
        """Current and magnetic sensors inject harmonics against amp = 1."""
        base = SensorParameters()
        harmonic = SensorParameters(harmonic_magnitude=1.0)
        t = 0.0042

        delta = (sample(SensorKind.CURRENT, harmonic, OMEGA, t, 0.0, quiet)
                 - sample(SensorKind.CURRENT, base, OMEGA, t, 0.0, quiet))
        assert delta == pytest.approx(0.2 * np.sin(3 * OMEGA * t))

    def test_noise_bounds_voltage(self):
        """Uniform noise is bounded by ±0.5 · amp · 0.05."""
        t = np.arange(128) / 1000.0
        clean = sample(SensorKind.VOLTAGE, SensorParameters(), OMEGA, t, 0.0, ConstantNoiseSource())
        noisy = sample(SensorKind.VOLTAGE, SensorParameters(noise_level=1.0), OMEGA, t, 0.0,
                       UniformNoiseSource(seed=4))

        deviation = np.abs(noisy - clean)
        assert np.max(deviation) <= 0.5 * V_PEAK * 0.05
        assert np.max(deviation) > 0.0

    def test_noise_with_zero_amplitude(self):
        """With a zero reference amplitude the noise scale falls back to 0.5."""
        t = np.arange(128) / 1000.0
        params = SensorParameters(amplitude_scale=0.0, noise_level=1.0)
        out = sample(SensorKind.VOLTAGE, params, OMEGA, t, 0.0, UniformNoiseSource(seed=4))

        assert np.max(np.abs(out)) <= 0.25
        assert np.max(np.abs(out)) > 0.0

    def test_constant_noise_removes_noise(self):
        t = np.arange(64) / 1000.0
        clean = sample(SensorKind.VOLTAGE, SensorParameters(), OMEGA, t, 0.0, ConstantNoiseSource())
        noisy = sample(SensorKind.VOLTAGE, SensorParameters(noise_level=1.0), OMEGA, t, 0.0,
                       ConstantNoiseSource())

        np.testing.assert_allclose(noisy, clean)


class TestWaveform:
    """Test suite for three-phase waveform generation."""

    def test_shape_and_time_grid(self, quiet):
        wf = waveform(SensorKind.VOLTAGE, SensorParameters(), quiet)

        assert wf.phases.shape == (3, 128)
        assert len(wf) == 128
        np.testing.assert_allclose(wf.time, np.arange(128) / 1000.0)
        assert wf.signal_frequency == 50.0

    def test_phase_access(self, quiet):
        wf = waveform(SensorKind.CURRENT, SensorParameters(), quiet)

        np.testing.assert_array_equal(wf.phase('S'), wf.phases[1])
        np.testing.assert_array_equal(wf.phase(2), wf.phase('t'))
        pairs = list(wf.pairs('R'))
        assert pairs[0][0] == 0.0
        assert len(pairs) == 128

    def test_frequency_deviation(self, quiet):
        wf = waveform(SensorKind.ZERO_CROSSING, SensorParameters(frequency_deviation=-2.5), quiet)
        assert wf.signal_frequency == 47.5

    def test_explicit_sampling_arguments(self, quiet):
        wf = waveform(SensorKind.VOLTAGE, SensorParameters(), quiet,
                      sample_count=64, sample_rate=2000.0, fundamental_freq=60.0)

        assert wf.phases.shape == (3, 64)
        assert wf.time[1] == pytest.approx(1.0 / 2000.0)
        assert wf.signal_frequency == 60.0

    def test_rejects_non_power_of_two(self, quiet):
        with pytest.raises(InvalidInputError):
            waveform(SensorKind.VOLTAGE, SensorParameters(), quiet, sample_count=100)

    @pytest.mark.parametrize("kind", [
        SensorKind.VOLTAGE, SensorKind.CURRENT, SensorKind.MAGNETIC_FIELD
    ])
    def test_three_phase_symmetry(self, kind, quiet):
        """
        With noise and harmonics off, phases S and T equal phase R evaluated
        at a constant time shift of ±120° of the signal period.
        """
        params = SensorParameters(amplitude_scale=0.8, phase_shift=0.4, offset=0.3,
                                  frequency_deviation=1.5)
        wf = waveform(kind, params, quiet)
        omega = angular_frequency(params)

        for p in (1, 2):
            shift = p * (2 * np.pi / 3) / omega
            expected = sample(kind, params, omega, wf.time + shift, 0.0, quiet)
            np.testing.assert_allclose(wf.phases[p], expected, atol=1e-9)

    def test_seeded_waveforms_reproducible(self):
        params = SensorParameters(noise_level=0.7, harmonic_magnitude=0.2)
        a = waveform(SensorKind.POWER_QUALITY, params, UniformNoiseSource(seed=11))
        b = waveform(SensorKind.POWER_QUALITY, params, UniformNoiseSource(seed=11))

        np.testing.assert_array_equal(a.phases, b.phases)

    def test_end_to_end_voltage_scenario(self, quiet):
        """
        Nominal voltage sensor at fs=1000 Hz, N=128, f0=50 Hz: R starts at
        zero and the spectrum peaks at bin 6 (46.875 Hz), the bin nearest
        50 Hz, with leakage-reduced amplitude.
        """
        params = SensorParameters(amplitude_scale=1.0, magnetic_field_strength=0.0)
        wf = waveform(SensorKind.VOLTAGE, params, UniformNoiseSource(seed=0),
                      sample_count=128, sample_rate=1000.0, fundamental_freq=50.0)

        assert wf.phase('R')[0] == 0.0

        spectrum = magnitude_spectrum(wf.phase('R'), 1000.0)
        freq, mag = spectrum.peak()
        assert freq == pytest.approx(46.875)
        assert np.argmax(spectrum.magnitudes) == 6
        assert 0.6 * V_PEAK < mag < V_PEAK


class TestSystemVoltCurrent:
    """Test suite for the ideal V-I overlay."""

    def test_shapes_and_phase_offsets(self):
        vi = system_voltage_current(SensorParameters(), SensorParameters())

        assert vi.voltage.shape == (3, 128)
        assert vi.current.shape == (3, 128)
        assert vi.voltage[0, 0] == pytest.approx(0.0)
        assert vi.voltage[1, 0] == pytest.approx(V_PEAK * np.sin(2 * np.pi / 3))
        assert len(PHASE_NAMES) == 3

    def test_current_bias_and_offset(self):
        current = SensorParameters(amplitude_scale=0.0, offset=0.2)
        vi = system_voltage_current(SensorParameters(), current)

        np.testing.assert_allclose(vi.current, 2.7)

    def test_viewport_pads_both_traces(self):
        vi = system_voltage_current(SensorParameters(), SensorParameters())

        assert len(vi.viewports) == 3
        for p in range(3):
            lo = min(vi.voltage[p].min(), vi.current[p].min())
            hi = max(vi.voltage[p].max(), vi.current[p].max())
            vp = vi.viewport(p)
            assert vp.x_min == 0.0
            assert vp.x_max == pytest.approx(0.128)
            assert vp.y_min == pytest.approx(lo - 0.2 * (hi - lo))
            assert vp.y_max == pytest.approx(hi + 0.2 * (hi - lo))

    def test_viewport_flat_traces(self):
        """Flat traces get ten units of padding."""
        voltage = SensorParameters(amplitude_scale=0.0)
        current = SensorParameters(amplitude_scale=0.0, offset=-2.5)
        vi = system_voltage_current(voltage, current)

        vp = vi.viewport(0)
        assert vp.y_min == pytest.approx(-10.0)
        assert vp.y_max == pytest.approx(10.0)

    def test_custom_constants(self):
        constants = GridConstants(sample_count=32, nominal_phase_voltage=110.0)
        vi = system_voltage_current(SensorParameters(phase_shift=np.pi / 2), SensorParameters(),
                                    constants)

        assert vi.time.shape == (32,)
        assert vi.voltage[0, 0] == pytest.approx(110.0 * np.sqrt(2))


class TestGridConstants:
    """Test suite for GridConstants."""

    def test_defaults(self):
        c = GridConstants()

        assert c.sample_rate == 1000.0
        assert c.sample_count == 128
        assert c.duration == pytest.approx(0.128)
        assert c.nyquist == 500.0
        assert c == DEFAULT_CONSTANTS

    def test_rejects_non_power_of_two(self):
        with pytest.raises(InvalidInputError):
            GridConstants(sample_count=96)

    def test_from_dict(self):
        c = GridConstants.from_dict({'fundamental_freq': 60.0})

        assert c.fundamental_freq == 60.0
        assert GridConstants.from_dict(c.to_dict()) == c

    def test_from_dict_rejects_unknown(self):
        with pytest.raises(ValueError):
            GridConstants.from_dict({'line_voltage': 380.0})
