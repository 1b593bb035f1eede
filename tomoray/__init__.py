"""
tomoray: Raypath Segmentation and Cross-Section Resampling for Tomography

This package provides the geometric core of a seismic tomography toolkit:
- Positions on a spherical Earth with tolerance-based comparison
- Discretised ray paths clipped by radial shells, with turning points
- Gap-aware splitting and interpolation of sparsely sampled coordinates
- Resampling of sparse 3-D voxel fields onto great-circle cross-sections
- Plots of resampled sections and raypath segments

Key Classes:
- HorizontalPosition, FullPosition: Immutable geographic positions
- Raypath: Ray path with clipping and turning point detection
- RayPathTracer: Ray paths through a standard Earth model via TauP
- Trace: 1-D sampled function used by the interpolation routines
- CrossSectionResampler: Voxel field to vertical cross-section
- SectionPlotter: Cross-section and raypath segment visualization

Version: 0.1.0
"""

__version__ = "0.1.0"

from .coordinates import (
    CoordinateConverter,
    FullPosition,
    HorizontalPosition,
    crosses_date_line,
    equals_within,
)
from .cross_section import CrossSectionResampler, decide_grid_sampling
from .interpolation import extract_continuous_sequence, split_at_gaps
from .ray_paths import RayPathTracer
from .raypath import Raypath, segment_raypaths
from .trace import Trace
from .visualization import SectionPlotter

__all__ = [
    'CoordinateConverter',
    'CrossSectionResampler',
    'FullPosition',
    'HorizontalPosition',
    'Raypath',
    'RayPathTracer',
    'SectionPlotter',
    'Trace',
    'crosses_date_line',
    'decide_grid_sampling',
    'equals_within',
    'extract_continuous_sequence',
    'segment_raypaths',
    'split_at_gaps',
]
