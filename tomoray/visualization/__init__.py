"""Visualization utilities for cross-sections and raypath segments."""

from .section_plot import SectionPlotter

__all__ = [
    "SectionPlotter",
]
