"""
Interpolation of values along lines and on grids.

Two interpolation modes are supported throughout:

- mosaic: nearest-neighbour interpolation (no smoothing)
- smooth: piecewise cubic Hermite interpolation. Each segment
  ``[x_k, x_k+1]`` is mapped to ``[0, 1]`` and the derivatives are
  central differences of the values in index space. Beyond either end the
  trace is continued as a sign-flipped mirror (``f(-1) = -f(0)``), so the
  interpolant decays towards zero inside the margin. Original data
  points are reproduced exactly.

Sequences of coordinates are split at gaps larger than
``margin * GAP_MULTIPLIER`` so that values are never interpolated across
regions without data.
"""

import logging
from collections import defaultdict
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from numpy.polynomial import Polynomial

from .constants import EARTH_RADIUS, GAP_MULTIPLIER, GRID_PRECISION
from .coordinates import CoordinateConverter, FullPosition, crosses_date_line
from .trace import Trace

logger = logging.getLogger(__name__)


def _ceil(value: float) -> float:
    # absorb floating-point noise such as 8574.999999999 before rounding up
    return float(np.ceil(np.round(value, 9)))


def _floor(value: float) -> float:
    return float(np.floor(np.round(value, 9)))


# ========== Gap-aware splitting ========== #

def split_at_gaps(
    x: Sequence[float],
    margin: float,
    multiplier: float = GAP_MULTIPLIER,
) -> List[Tuple[int, int]]:
    """
    Partition a sorted array into maximal runs without large gaps.

    A run boundary is placed between ``x[i-1]`` and ``x[i]`` whenever
    ``x[i] - x[i-1] > margin * multiplier``.

    Parameters
    ----------
    x : array-like
        Sorted coordinates
    margin : float
        Margin added at either end of each run
    multiplier : float
        Gap threshold in units of ``margin``

    Returns
    -------
    List[Tuple[int, int]]
        ``(start, end)`` index pairs of the runs, ``end`` exclusive
    """
    x = np.asarray(x, dtype=float)
    if len(x) == 0:
        return []
    cuts = np.nonzero(np.diff(x) > margin * multiplier)[0] + 1
    starts = np.concatenate(([0], cuts))
    ends = np.concatenate((cuts, [len(x)]))
    return list(zip(starts.tolist(), ends.tolist()))


def split_trace_at_gaps(
    trace: Trace,
    margin: float,
    multiplier: float = GAP_MULTIPLIER,
) -> List[Trace]:
    """Split a trace into continuous sub-traces (see :func:`split_at_gaps`)."""
    return [
        trace.sub_trace(start, end)
        for start, end in split_at_gaps(trace.x, margin, multiplier)
    ]


def extract_continuous_sequence(
    coordinates: Sequence[float],
    target: float,
    margin: float,
    multiplier: float = GAP_MULTIPLIER,
) -> Optional[np.ndarray]:
    """
    Find the continuous run of coordinates that covers a target.

    The coordinates are split at gaps (see :func:`split_at_gaps`), then
    the runs are scanned in ascending order and the first one satisfying
    ``run[0] - margin <= target < run[-1] + margin`` is returned.

    Parameters
    ----------
    coordinates : array-like
        Strictly ascending coordinates, possibly with gaps
    target : float
        Coordinate that the run must cover
    margin : float
        Margin added at either end of each run
    multiplier : float
        Gap threshold in units of ``margin``

    Returns
    -------
    np.ndarray or None
        The raw coordinates of the covering run, or None if no run covers
        ``target``

    Raises
    ------
    ValueError
        If the coordinates are not strictly ascending
    """
    coordinates = np.asarray(coordinates, dtype=float)
    if np.any(np.diff(coordinates) <= 0):
        raise ValueError("Coordinates must be distinct and sorted ascending")

    for start, end in split_at_gaps(coordinates, margin, multiplier):
        sequence = coordinates[start:end]
        if sequence[0] - margin <= target < sequence[-1] + margin:
            return sequence
    return None


# ========== 1-D interpolation kernels ========== #

def _cubic(values: np.ndarray, i_segment: int) -> Polynomial:
    """
    Cubic Hermite polynomial on segment ``i_segment`` normalised to [0, 1].

    ``i_segment`` runs from -1 (left of the first value) to the last index
    (right of the last value); the two outer segments use the
    sign-flipped mirror of the data.
    """
    last = len(values) - 1
    if i_segment < -1 or last < i_segment:
        raise ValueError(
            f"Segment {i_segment} out of bounds [-1:{last}]"
        )

    if last == 0:
        f0 = -values[0] if i_segment == -1 else values[0]
        f1 = values[0] if i_segment == -1 else -values[0]
        fprime0 = 0.0
        fprime1 = 0.0
    elif i_segment == -1:
        f0 = -values[0]
        fprime0 = (values[1] + values[0]) / 2
        f1 = values[0]
        fprime1 = (values[1] + values[0]) / 2
    elif i_segment == last:
        f0 = values[last]
        fprime0 = (-values[last] - values[last - 1]) / 2
        f1 = -values[last]
        fprime1 = (-values[last] - values[last - 1]) / 2
    else:
        f0 = values[i_segment]
        if i_segment == 0:
            fprime0 = (values[1] + values[0]) / 2
        else:
            fprime0 = (values[i_segment + 1] - values[i_segment - 1]) / 2
        f1 = values[i_segment + 1]
        if i_segment == last - 1:
            fprime1 = (-values[last] - values[last - 1]) / 2
        else:
            fprime1 = (values[i_segment + 2] - values[i_segment]) / 2

    a = 2 * f0 - 2 * f1 + fprime0 + fprime1
    b = -3 * f0 + 3 * f1 - 2 * fprime0 - fprime1
    return Polynomial([f0, fprime0, b, a])


def _smooth_values(trace: Trace, xs: np.ndarray, margin: float) -> np.ndarray:
    x = trace.x
    last = trace.length - 1
    # segment k satisfies x[k] <= sample < x[k+1]; -1 is left of x[0]
    segments = np.searchsorted(x, xs, side="right") - 1
    ys = np.empty(len(xs))
    for k in np.unique(segments):
        k = int(k)
        in_segment = segments == k
        # margin * 2 beyond either end so that only one side of the mirror
        # is used
        x_lower = x[0] - margin * 2 if k == -1 else x[k]
        x_upper = x[last] + margin * 2 if k == last else x[k + 1]
        width = x_upper - x_lower
        if width > 0:
            normalized = (xs[in_segment] - x_lower) / width
        else:
            normalized = np.zeros(np.count_nonzero(in_segment))
        ys[in_segment] = _cubic(trace.y, k)(normalized)
    return ys


def interpolate_trace_at_points(
    original_trace: Trace,
    sample_points: Sequence[float],
    margin: float,
    mosaic: bool,
) -> Trace:
    """
    Interpolate a 1-D trace at a set of points.

    The domain is ``[min_x - margin, max_x + margin]``; sample points
    outside it are dropped.

    Parameters
    ----------
    original_trace : Trace
        Original 1-D function
    sample_points : array-like
        Points at which to interpolate
    margin : float
        Length of the margin added at either end of the domain
    mosaic : bool
        Nearest-neighbour interpolation if True, otherwise smooth cubic

    Returns
    -------
    Trace
        Interpolated values at the sample points inside the domain
    """
    if original_trace.length == 0:
        return Trace([], [])
    sample_points = np.asarray(sample_points, dtype=float)
    start_x = original_trace.min_x - margin
    end_x = original_trace.max_x + margin
    xs = np.sort(sample_points[(start_x <= sample_points) & (sample_points <= end_x)])
    if len(xs) == 0:
        return Trace([], [])

    if mosaic:
        ys = original_trace.y[original_trace.find_nearest_x_index(xs)]
    else:
        ys = _smooth_values(original_trace, xs, margin)
    return Trace(xs, ys)


def interpolate_trace_at_point(
    original_trace: Trace,
    sample_point: float,
    margin: float,
    mosaic: bool,
) -> float:
    """
    Interpolate a 1-D trace at a single point.

    Raises
    ------
    ValueError
        If the point is outside ``[min_x - margin, max_x + margin]``
    """
    if original_trace.length == 0:
        raise ValueError("Cannot interpolate an empty trace")
    start_x = original_trace.min_x - margin
    end_x = original_trace.max_x + margin
    if sample_point < start_x or end_x < sample_point:
        raise ValueError(
            f"Sample point {sample_point} out of range [{start_x}:{end_x}]"
        )

    if mosaic:
        return original_trace.y_at(
            original_trace.find_nearest_x_index(sample_point)
        )
    return float(_smooth_values(
        original_trace, np.array([sample_point], dtype=float), margin
    )[0])


def interpolate_trace_on_grid(
    original_trace: Trace,
    grid_interval: float,
    margin: float,
    mosaic: bool,
) -> Trace:
    """
    Interpolate a 1-D trace at all multiples of ``grid_interval`` that lie
    within ``[min_x - margin, max_x + margin]``.

    Grid coordinates are rounded to ``GRID_PRECISION`` decimals.
    """
    if original_trace.length == 0:
        return Trace([], [])
    start_x = _ceil((original_trace.min_x - margin) / grid_interval) * grid_interval
    end_x = _floor((original_trace.max_x + margin) / grid_interval) * grid_interval
    n_grid = int(round((end_x - start_x) / grid_interval)) + 1
    if n_grid <= 0:
        return Trace([], [])
    xs = np.round(start_x + np.arange(n_grid) * grid_interval, GRID_PRECISION)
    return interpolate_trace_at_points(original_trace, xs, margin, mosaic)


# ========== Interpolation of voxel fields ========== #

def in_each_west_east_line(
    original_map: Mapping[FullPosition, float],
    sample_longitudes: Sequence[float],
    longitude_margin: float,
    margin_in_km: bool = False,
    mean_radius: float = EARTH_RADIUS,
    cross_date_line: Optional[bool] = None,
    mosaic: bool = False,
) -> Dict[FullPosition, float]:
    """
    Resample a voxel field along each line of constant latitude and radius.

    Each west-east line is split at longitude gaps and each continuous
    piece is interpolated at those of ``sample_longitudes`` that fall
    within its domain.

    Parameters
    ----------
    original_map : Mapping[FullPosition, float]
        Voxel field to resample
    sample_longitudes : array-like
        Longitudes at which to interpolate, in [0:360) when
        ``cross_date_line`` is True, otherwise in [-180:180)
    longitude_margin : float
        Margin at the western and eastern ends of each piece, also used to
        recognise gaps. In km when ``margin_in_km`` is True, else in deg.
    margin_in_km : bool
        Whether ``longitude_margin`` is given in km
    mean_radius : float
        Radius [km] used to convert a km margin into degrees of the small
        circle at each latitude
    cross_date_line : bool, optional
        Longitude convention; decided from the voxel positions if None
    mosaic : bool
        Nearest-neighbour interpolation if True, otherwise smooth

    Returns
    -------
    Dict[FullPosition, float]
        Resampled field, ordered by radius, latitude and longitude
    """
    if cross_date_line is None:
        cross_date_line = crosses_date_line(original_map.keys())

    lines: Dict[Tuple[float, float], List[Tuple[float, float]]] = defaultdict(list)
    for position, value in original_map.items():
        lines[(position.radius, position.latitude)].append(
            (position.longitude_in(cross_date_line), value)
        )

    interpolated_map: Dict[FullPosition, float] = {}
    for (radius, latitude) in sorted(lines):
        samples = sorted(lines[(radius, latitude)])
        original_trace = Trace(
            [lon for lon, _ in samples], [value for _, value in samples]
        )

        if margin_in_km:
            small_circle_radius = mean_radius * np.cos(np.radians(latitude))
            margin_deg = CoordinateConverter.km_to_degrees(
                longitude_margin, small_circle_radius
            )
        else:
            margin_deg = longitude_margin

        for piece in split_trace_at_gaps(original_trace, margin_deg):
            interpolated = interpolate_trace_at_points(
                piece, sample_longitudes, margin_deg, mosaic
            )
            for longitude, value in zip(interpolated.x, interpolated.y):
                position = FullPosition(latitude, longitude, radius)
                interpolated_map[position] = float(value)

    logger.debug(
        "Resampled %d west-east lines into %d positions",
        len(lines), len(interpolated_map),
    )
    return interpolated_map
