"""
Simulation

Update-cycle orchestration for the grid digital twin.
"""

from .engine import (
    GridSimulationEngine,
    SensorResult,
    SimulationConfig,
    UpdateResult,
    compute_sensor,
)

__all__ = [
    'GridSimulationEngine',
    'SensorResult',
    'SimulationConfig',
    'UpdateResult',
    'compute_sensor',
]
