"""
Named constants shared by the position model, the raypath segmenter and
the cross-section resampler.
"""

import os

# Mean Earth radius [km]
EARTH_RADIUS = 6371.0

# Number of decimals kept for each coordinate
LATITUDE_DECIMALS = 4
LONGITUDE_DECIMALS = 4
RADIUS_DECIMALS = 6

# Margins to decide whether two coordinates are the same value
LATITUDE_EPSILON = 10.0 ** -LATITUDE_DECIMALS / 2
LONGITUDE_EPSILON = 10.0 ** -LONGITUDE_DECIMALS / 2
RADIUS_EPSILON = 10.0 ** -RADIUS_DECIMALS / 2

# A gap between neighbouring coordinates larger than margin * GAP_MULTIPLIER
# splits a sequence in two.
GAP_MULTIPLIER = 2.5

# How much finer the cross-section grid is than the map grid
GRID_SMOOTHING_FACTOR = 2
# Size of the vertical grid interval with respect to the horizontal one
VERTICAL_ENLARGE_FACTOR = 4
# Number of nodes to divide an original node into when deciding map grids
MAP_SMOOTHING_FACTOR = 10
# Decimals to which grid coordinates are rounded
GRID_PRECISION = 4

# Environment variable that overrides the resampler worker count
N_WORKERS_ENV = "TOMORAY_N_WORKERS"


def default_n_workers() -> int:
    """Worker count from ``TOMORAY_N_WORKERS``, or the number of CPUs."""
    value = os.environ.get(N_WORKERS_ENV)
    if value:
        n_workers = int(value)
        if n_workers < 1:
            raise ValueError(
                f"{N_WORKERS_ENV} must be a positive integer, got {value!r}"
            )
        return n_workers
    return os.cpu_count() or 1
