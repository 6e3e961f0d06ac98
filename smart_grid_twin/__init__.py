"""
Smart Grid Harmonic Analysis Digital Twin

Simulates the outputs of the sensors on a three-phase grid, analyzes their
frequency content and evaluates the stability of the voltage regulation loop
in the continuous (S) and discrete (Z) domains.
"""

__version__ = "1.0.0"
