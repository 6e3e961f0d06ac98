#!/usr/bin/env python3
"""
Command-line runner for the Smart Grid Harmonic Analysis twin.

Loads the JSON configuration, applies parameter overrides (the same events a
front end would emit when a control changes), runs one update cycle and
prints the spectral and stability summaries.

Usage:
    python -m smart_grid_twin.runner --set voltage.noise_level=0.2 --plot grid.png
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pandas as pd

from smart_grid_twin.core.constants import GridConstants
from smart_grid_twin.core.sensors.sensor_models import SensorKind, SensorParameters
from smart_grid_twin.core.simulation.engine import GridSimulationEngine, SimulationConfig


DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config" / "grid_simulation.json"


def load_config(config_path: Path) -> dict:
    """Load the simulation config file; a missing file falls back to defaults."""
    if not config_path.exists():
        print(f"Configuration notice: config file not found at {config_path}")
        print("Using default internal parameters.")
        return {}

    try:
        with open(config_path, 'r') as f:
            return json.load(f)
    except json.JSONDecodeError:
        print(f"Error: Failed to parse JSON config at {config_path}")
        sys.exit(1)


def map_config(raw_config: dict) -> Tuple[SimulationConfig, Dict[SensorKind, SensorParameters]]:
    """
    Map the JSON structure to engine configuration and sensor parameters.

    Raises
    ------
    ValueError
        For unknown constants, sensor names or parameter fields
    """
    constants = GridConstants.from_dict(raw_config.get("constants", {}))
    sim = raw_config.get("simulation", {})

    config = SimulationConfig(
        constants=constants,
        seed=sim.get("seed", 42),
        max_workers=sim.get("max_workers", 4),
    )

    parameters = {
        SensorKind.parse(name): SensorParameters.from_dict(values)
        for name, values in raw_config.get("sensors", {}).items()
    }
    return config, parameters


def parse_override(text: str) -> Tuple[SensorKind, str, float]:
    """Parse 'sensor.field=value' into its parts."""
    try:
        target, value = text.split("=", 1)
        sensor, name = target.split(".", 1)
        name = name.strip()
        if name not in SensorParameters.field_names():
            raise ValueError(f"unknown field {name!r}")
        return SensorKind.parse(sensor), name, float(value)
    except ValueError as e:
        raise ValueError(f"Invalid override {text!r} (expected SENSOR.FIELD=VALUE): {e}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Smart Grid Harmonic Analysis - 3-Phase Sensor and Stability Simulation",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to the JSON simulation config"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for deterministic noise (overrides config)"
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="SENSOR.FIELD=VALUE",
        help="Parameter change event, e.g. voltage.amplitude_scale=1.2 (repeatable)"
    )
    parser.add_argument(
        "--plot",
        type=Path,
        default=None,
        help="Render the dashboard figure to this file"
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress progress banners"
    )
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)

    if not args.quiet:
        print("=" * 60)
        print("Initializing Smart Grid Harmonic Analysis")
        print("=" * 60)

    try:
        # 1. Load Configuration
        config, parameters = map_config(load_config(args.config))
        if args.seed is not None:
            config.seed = args.seed
        config.verbose = not args.quiet
        overrides = [parse_override(text) for text in args.overrides]
    except ValueError as e:
        print(f"Configuration Error: {e}")
        sys.exit(1)

    try:
        # 2. Run one update cycle
        with GridSimulationEngine(config, parameters) as engine:
            for kind, name, value in overrides:
                engine.set_parameter(kind, name, value)
            result = engine.update()

        # 3. Output Results
        with pd.option_context('display.width', 120, 'display.precision', 4):
            print("\n" + "=" * 30)
            print(" SENSOR SUMMARY")
            print("=" * 30)
            print(result.summary())
            print("\n" + "=" * 30)
            print(" STABILITY SUMMARY")
            print("=" * 30)
            print(result.stability_summary())
            print("=" * 30 + "\n")

        if args.plot is not None:
            import matplotlib
            matplotlib.use("Agg")
            from smart_grid_twin.core.visualization.grid_plots import GridDashboardPlotter

            GridDashboardPlotter().plot_update(result, save_path=args.plot)
            print(f"Dashboard written to {args.plot}")

    except KeyboardInterrupt:
        print("\nSimulation interrupted by user.")
        sys.exit(0)
    except Exception as e:
        print(f"\nCRITICAL FAILURE: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
