"""
Dashboard Plots for the Grid Digital Twin

Renders an UpdateResult as a static figure:

- one row per sensor: three-phase waveform and FFT magnitude spectrum
- system V-I overlay per phase
- S-domain and Z-domain pole/zero maps with their stability regions

All axis windows come from the viewports computed by the engine; this
module only draws.
"""

from typing import Optional, Tuple, Union
from pathlib import Path

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.gridspec import GridSpec

from smart_grid_twin.core.sensors.sensor_models import PHASE_NAMES, SENSOR_SPECS
from smart_grid_twin.core.stability.pole_zero import Domain, PoleZeroMap
from smart_grid_twin.core.stability.viewport import Viewport


PHASE_COLORS = ('red', 'blue', 'green')


def _apply_viewport(ax: plt.Axes, viewport: Viewport) -> None:
    ax.set_xlim(viewport.x_min, viewport.x_max)
    ax.set_ylim(viewport.y_min, viewport.y_max)


class GridDashboardPlotter:
    """
    Static rendering of one update cycle.

    Usage:
    ------
    >>> plotter = GridDashboardPlotter()
    >>> fig = plotter.plot_update(engine.update())
    >>> fig.savefig('grid_dashboard.png', dpi=150)
    """

    def __init__(self, figure_size: Tuple[float, float] = (18, 22)):
        self.figure_size = figure_size

    def plot_waveform(self, sensor, ax: plt.Axes) -> plt.Axes:
        """Three-phase time series of one sensor."""
        wf = sensor.waveform
        for p, name in enumerate(PHASE_NAMES):
            ax.plot(wf.time, wf.phases[p], color=PHASE_COLORS[p], linewidth=1.5, label=name)
        spec = SENSOR_SPECS[sensor.kind]
        ax.set_title(f"3-Phase Signals - {spec.part_number} ({spec.label})\n{spec.transfer_function}",
                     fontsize=9)
        ax.set_xlabel('Time (s)')
        ax.set_ylabel('Amplitude')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='lower right', fontsize=7)
        _apply_viewport(ax, sensor.waveform_viewport)
        ax.text(0.01, 0.02, sensor.label, transform=ax.transAxes, fontsize=7)
        return ax

    def plot_spectrum(self, sensor, ax: plt.Axes) -> plt.Axes:
        """Magnitude spectrum of phase R."""
        spectrum = sensor.spectrum
        ax.bar(spectrum.frequencies, spectrum.magnitudes, width=spectrum.resolution * 0.8,
               color='royalblue')
        ax.set_title(f"FFT Analysis (THD {sensor.thd * 100:.1f} %)", fontsize=9)
        ax.set_xlabel('Frequency (Hz)')
        ax.set_ylabel('Magnitude')
        ax.grid(True, alpha=0.3)
        _apply_viewport(ax, sensor.spectrum_viewport)
        return ax

    def plot_system_vi(self, system_vi, phase: int, ax: plt.Axes) -> plt.Axes:
        """Voltage and current overlay of one phase."""
        ax.plot(system_vi.time, system_vi.voltage[phase], color='darkorange',
                linewidth=2, label='V')
        ax.plot(system_vi.time, system_vi.current[phase], color=PHASE_COLORS[phase],
                linewidth=2, linestyle=':', label='I')
        ax.set_title(f"System V-I Phase {PHASE_NAMES[phase]}", fontsize=9)
        ax.set_xlabel('Time (s)')
        ax.set_ylabel('V / I')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='lower right', fontsize=7)
        if system_vi.viewports:
            _apply_viewport(ax, system_vi.viewport(phase))
        return ax

    def plot_pole_zero(self, pz: PoleZeroMap, ax: plt.Axes) -> plt.Axes:
        """Pole/zero map with stable region (S) or unit circle (Z)."""
        vp = pz.viewport
        if pz.domain is Domain.S:
            ax.fill_between([vp.x_min, 0.0], vp.y_min, vp.y_max, color='lightgreen',
                            alpha=0.3, label='Stable Region')
            ax.set_title('S-Domain (Closed Loop Stability - Padé Approximation)', fontsize=9)
            ax.set_xlabel('Real (σ)')
            ax.set_ylabel('Imaginary (jω)')
        else:
            circle = pz.unit_circle
            ax.plot(circle.real, circle.imag, color='gray', linestyle='--', linewidth=1,
                    label='Unit Circle')
            ax.set_title('Z-Domain (Discrete Pole-Zero - Delay Model)', fontsize=9)
            ax.set_xlabel('Real')
            ax.set_ylabel('Imaginary')

        ax.axhline(0.0, color='black', linewidth=0.8)
        ax.axvline(0.0, color='black', linewidth=0.8)
        ax.scatter(np.real(pz.poles), np.imag(pz.poles), marker='x', s=80, color='red',
                   label='Poles (x)')
        ax.scatter(np.real(pz.zeros), np.imag(pz.zeros), marker='o', s=60,
                   facecolors='none', edgecolors='blue', label='Zeros (o)')
        ax.grid(True, alpha=0.3)
        ax.legend(loc='upper left', fontsize=7)
        _apply_viewport(ax, vp)
        return ax

    def plot_update(self, update, save_path: Optional[Union[str, Path]] = None,
                    dpi: int = 150) -> plt.Figure:
        """
        Full dashboard figure.

        Parameters
        ----------
        update : UpdateResult
            Result of one engine update cycle
        save_path : str or Path, optional
            Write the figure to this path when given
        dpi : int
            Resolution for the saved figure

        Returns
        -------
        plt.Figure
        """
        n_sensors = len(update.sensors)
        fig = plt.figure(figsize=self.figure_size)
        gs = GridSpec(n_sensors + 2, 3, figure=fig, hspace=0.6, wspace=0.3)

        for row, sensor in enumerate(update.sensors.values()):
            self.plot_waveform(sensor, fig.add_subplot(gs[row, 0]))
            self.plot_spectrum(sensor, fig.add_subplot(gs[row, 1]))

        for phase in range(len(PHASE_NAMES)):
            self.plot_system_vi(update.system_vi, phase, fig.add_subplot(gs[phase, 2]))

        self.plot_pole_zero(update.s_domain, fig.add_subplot(gs[n_sensors:, 0]))
        self.plot_pole_zero(update.z_domain, fig.add_subplot(gs[n_sensors:, 1]))

        fig.suptitle('Smart Grid Harmonic Signal Analysis (3-Phase 380V System)',
                     fontsize=16, fontweight='bold')

        if save_path is not None:
            fig.savefig(save_path, dpi=dpi, bbox_inches='tight')

        return fig
