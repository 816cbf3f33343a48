"""Numerical building blocks."""

from acoustic_template_engine.processing.correlation import correlate, correlate_all

__all__ = ["correlate", "correlate_all"]
