"""Computational core of the smart grid harmonic analysis twin."""
