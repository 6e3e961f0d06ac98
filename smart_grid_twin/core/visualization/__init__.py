"""
Visualization Module

Static matplotlib rendering of grid simulation results.
"""

from .grid_plots import GridDashboardPlotter

__all__ = [
    'GridDashboardPlotter',
]
