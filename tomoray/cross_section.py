"""
Resampling of a sparse 3-D voxel field onto a vertical great-circle
cross-section.

The field is interpolated in three passes:

1. along each west-east line (constant latitude and radius) onto the
   longitudes of the section's sample points,
2. along the meridian of each sample point onto its latitude, separately
   for each radius and only within the run of latitudes that covers it,
3. along the resulting vertical trace onto a regular radius grid.

Sample points without data coverage are left out of the result.
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from .constants import (
    GRID_PRECISION,
    GRID_SMOOTHING_FACTOR,
    LONGITUDE_EPSILON,
    MAP_SMOOTHING_FACTOR,
    VERTICAL_ENLARGE_FACTOR,
    default_n_workers,
)
from .coordinates import (
    CoordinateConverter,
    FullPosition,
    HorizontalPosition,
    crosses_date_line,
    equals_within,
    find_latitude_interval,
)
from .interpolation import (
    extract_continuous_sequence,
    in_each_west_east_line,
    interpolate_trace_at_point,
    interpolate_trace_on_grid,
)
from .trace import Trace

logger = logging.getLogger(__name__)

RECORD_DTYPE = np.dtype([
    ('distance', float),
    ('latitude', float),
    ('longitude', float),
    ('radius', float),
    ('value', float),
])

# radius -> [(longitude, latitudes, values)] of the resampled field
Meridians = Dict[float, List[Tuple[float, np.ndarray, np.ndarray]]]


def decide_grid_sampling(
    positions: Iterable[HorizontalPosition],
    map_smoothing_factor: int = MAP_SMOOTHING_FACTOR,
) -> float:
    """
    Grid interval [deg] suited to a set of regularly spaced positions.

    The latitude interval of the positions is snapped down to 1, 2 or 5
    times a power of ten and divided by ``map_smoothing_factor``.

    Parameters
    ----------
    positions : iterable of HorizontalPosition
        Positions of the field, equally spaced in latitude
    map_smoothing_factor : int
        Number of grid nodes per original node

    Returns
    -------
    float
        Grid interval in degrees
    """
    interval = find_latitude_interval(positions)
    power = math.floor(math.log10(interval))
    coef = interval / 10.0 ** power
    if coef < 2:
        grid_interval = 10.0 ** power
    elif coef < 5:
        grid_interval = 2 * 10.0 ** power
    else:
        grid_interval = 5 * 10.0 ** power
    return grid_interval / map_smoothing_factor


class CrossSectionResampler:
    """
    Vertical cross-section of a voxel field along a great circle.

    The section starts at ``pos0`` moved back by ``before_pos0_deg`` along
    the great circle through ``pos0`` and ``pos1``. It ends at ``pos1``
    moved beyond itself by ``after_pos_deg`` when ``use_after_pos1`` is
    True, or otherwise at ``pos0`` moved forward by ``after_pos_deg``.

    Parameters
    ----------
    pos0, pos1 : HorizontalPosition
        Reference positions defining the great circle
    discrete_positions : iterable of FullPosition
        Positions the voxel field is defined on. Maps passed to
        :meth:`compute_cross_section_data` may only use these positions.
    before_pos0_deg : float
        Distance [deg] the section extends before ``pos0``
    after_pos_deg : float
        Distance [deg] of the end point from ``pos1`` or ``pos0``
    use_after_pos1 : bool
        Whether ``after_pos_deg`` is measured from ``pos1``
    margin_latitude : float
        Margin at the ends of latitude runs, also used to detect gaps
    margin_latitude_in_km : bool
        Whether ``margin_latitude`` is in km (otherwise deg)
    margin_longitude : float
        Margin at the ends of longitude runs, also used to detect gaps
    margin_longitude_in_km : bool
        Whether ``margin_longitude`` is in km (otherwise deg)
    margin_radius : float
        Distance [km] the vertical traces extend beyond the outermost radii
    mosaic : bool
        Nearest-neighbour interpolation if True, otherwise smooth
    grid_smoothing_factor : int
        How much finer the section grid is than the field's grid
    vertical_enlarge_factor : int
        Ratio of the vertical to the horizontal grid interval
    n_workers : int, optional
        Number of threads; defaults to ``TOMORAY_N_WORKERS`` or the CPU
        count

    Examples
    --------
    >>> resampler = CrossSectionResampler(
    ...     HorizontalPosition(0, 0), HorizontalPosition(0, 10),
    ...     voxel_map.keys(), margin_latitude=1.0, margin_longitude=1.0,
    ...     margin_radius=50.0)
    >>> traces = resampler.compute_cross_section_data(voxel_map)
    >>> records = resampler.to_records(traces)
    """

    def __init__(
        self,
        pos0: HorizontalPosition,
        pos1: HorizontalPosition,
        discrete_positions: Iterable[FullPosition],
        before_pos0_deg: float = 0.0,
        after_pos_deg: float = 0.0,
        use_after_pos1: bool = True,
        margin_latitude: float = 1.0,
        margin_latitude_in_km: bool = False,
        margin_longitude: float = 1.0,
        margin_longitude_in_km: bool = False,
        margin_radius: float = 50.0,
        mosaic: bool = False,
        grid_smoothing_factor: int = GRID_SMOOTHING_FACTOR,
        vertical_enlarge_factor: int = VERTICAL_ENLARGE_FACTOR,
        n_workers: Optional[int] = None,
    ):
        self.discrete_positions = frozenset(discrete_positions)
        if not self.discrete_positions:
            raise ValueError("No discrete positions are given")
        for position in self.discrete_positions:
            if not isinstance(position, FullPosition):
                raise TypeError("discrete_positions must be FullPositions")

        self.radii = np.unique([pos.radius for pos in self.discrete_positions])
        self.mean_radius = float(np.mean(self.radii))
        horizontal_positions = {
            pos.to_horizontal_position() for pos in self.discrete_positions
        }

        if margin_latitude_in_km:
            margin_latitude = CoordinateConverter.km_to_degrees(
                margin_latitude, self.mean_radius
            )
        self.margin_latitude = margin_latitude
        self.margin_longitude = margin_longitude
        self.margin_longitude_in_km = margin_longitude_in_km
        self.margin_radius = margin_radius
        self.mosaic = mosaic
        self.n_workers = n_workers

        self.start_position = pos0.point_along_azimuth(
            pos0.compute_azimuth_deg(pos1), -before_pos0_deg
        )
        if use_after_pos1:
            self.end_position = pos1.point_along_azimuth(
                pos1.compute_azimuth_deg(pos0), -after_pos_deg
            )
        else:
            self.end_position = pos0.point_along_azimuth(
                pos0.compute_azimuth_deg(pos1), after_pos_deg
            )
        self.distance = round(
            self.start_position.compute_epicentral_distance_deg(
                self.end_position
            )
        )
        self.azimuth = self.start_position.compute_azimuth_deg(
            self.end_position
        )

        self.horizontal_grid_interval = (
            decide_grid_sampling(horizontal_positions) / grid_smoothing_factor
        )
        self.vertical_grid_interval = (
            self.horizontal_grid_interval * vertical_enlarge_factor
        )
        self.sample_positions = self._create_sample_positions()
        self.cross_date_line = crosses_date_line(
            self.sample_positions.values()
        )

    def _create_sample_positions(self) -> Dict[float, HorizontalPosition]:
        n_samples = int(round(self.distance / self.horizontal_grid_interval)) + 1
        sample_positions = {}
        for i in range(n_samples):
            key = round(i * self.horizontal_grid_interval, GRID_PRECISION)
            sample_positions[key] = self.start_position.point_along_azimuth(
                self.azimuth, key
            )
        return sample_positions

    def _check_positions(self, voxel_map: Mapping[FullPosition, float], name: str):
        if not all(pos in self.discrete_positions for pos in voxel_map):
            raise ValueError(f"Input {name} contains illegal positions")

    # ========== Resampling ========== #

    def _build_meridians(self, voxel_map: Mapping[FullPosition, float]) -> Meridians:
        sample_longitudes = np.unique([
            pos.longitude_in(self.cross_date_line)
            for pos in self.sample_positions.values()
        ])
        resampled = in_each_west_east_line(
            voxel_map,
            sample_longitudes,
            self.margin_longitude,
            margin_in_km=self.margin_longitude_in_km,
            mean_radius=self.mean_radius,
            cross_date_line=self.cross_date_line,
            mosaic=self.mosaic,
        )

        columns: Dict[Tuple[float, float], List[Tuple[float, float]]] = {}
        for position, value in resampled.items():
            columns.setdefault(
                (position.radius, position.longitude), []
            ).append((position.latitude, value))

        meridians: Meridians = {}
        for (radius, longitude), samples in columns.items():
            samples.sort()
            meridians.setdefault(radius, []).append((
                longitude,
                np.array([lat for lat, _ in samples]),
                np.array([value for _, value in samples]),
            ))
        return meridians

    def _interpolate_at_radius(
        self,
        lines: List[Tuple[float, np.ndarray, np.ndarray]],
        sample_position: HorizontalPosition,
    ) -> Optional[float]:
        for longitude, latitudes, values in lines:
            if not equals_within(
                longitude, sample_position.longitude, LONGITUDE_EPSILON
            ):
                continue
            sequence = extract_continuous_sequence(
                latitudes, sample_position.latitude, self.margin_latitude
            )
            if sequence is None:
                return None
            start = int(np.searchsorted(latitudes, sequence[0]))
            end = start + len(sequence)
            return interpolate_trace_at_point(
                Trace(latitudes[start:end], values[start:end]),
                sample_position.latitude,
                self.margin_latitude,
                self.mosaic,
            )
        return None

    def _compute_vertical_trace(
        self,
        distance: float,
        sample_position: HorizontalPosition,
        meridians: Meridians,
    ) -> Tuple[float, Optional[Trace]]:
        radii = []
        values = []
        for radius in self.radii:
            value = self._interpolate_at_radius(
                meridians.get(radius, []), sample_position
            )
            if value is not None:
                radii.append(radius)
                values.append(value)

        if not radii:
            return distance, None
        vertical_trace = interpolate_trace_on_grid(
            Trace(radii, values),
            self.vertical_grid_interval,
            self.margin_radius,
            self.mosaic,
        )
        return distance, vertical_trace

    def compute_cross_section_data(
        self, voxel_map: Mapping[FullPosition, float]
    ) -> Dict[float, Trace]:
        """
        Resample a voxel field at every sample point of the section.

        Parameters
        ----------
        voxel_map : Mapping[FullPosition, float]
            Field values at (a subset of) the declared discrete positions

        Returns
        -------
        Dict[float, Trace]
            Vertical traces (radius, value) keyed by distance [deg] from the
            start position, in ascending order of distance. Sample points
            without data are absent.

        Raises
        ------
        ValueError
            If the map contains a position outside the declared set
        """
        self._check_positions(voxel_map, "map")
        meridians = self._build_meridians(voxel_map)

        n_samples = len(self.sample_positions)
        n_workers = min(self.n_workers or default_n_workers(), n_samples)
        logger.log(
            logging.INFO,
            f"Resampling {n_samples} sample points: workers={n_workers}",
        )

        traces: Dict[float, Trace] = {}
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            futures = [
                ex.submit(self._compute_vertical_trace, distance, position, meridians)
                for distance, position in self.sample_positions.items()
            ]
            for fut in as_completed(futures):
                distance, trace = fut.result()
                if trace is None or trace.length == 0:
                    logger.debug("No data at sample point %.4f", distance)
                    continue
                traces[distance] = trace

        logger.log(
            logging.INFO,
            f"{len(traces)} of {n_samples} sample points carry data",
        )
        return dict(sorted(traces.items()))

    def compute_cross_section(
        self,
        voxel_map: Mapping[FullPosition, float],
        mask_map: Optional[Mapping[FullPosition, float]] = None,
    ) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        """
        Resampled records of a voxel field and, optionally, of a mask.

        Both maps are validated before any computation.

        Returns
        -------
        records : np.ndarray
            Records of ``voxel_map`` (see :meth:`to_records`)
        mask_records : np.ndarray or None
            Records of ``mask_map``, or None if no mask is given
        """
        self._check_positions(voxel_map, "map")
        if mask_map is not None:
            self._check_positions(mask_map, "mask map")

        records = self.to_records(self.compute_cross_section_data(voxel_map))
        mask_records = None
        if mask_map is not None:
            mask_records = self.to_records(
                self.compute_cross_section_data(mask_map)
            )
        return records, mask_records

    def to_records(self, traces: Mapping[float, Trace]) -> np.ndarray:
        """
        Flatten resampled traces into records.

        Parameters
        ----------
        traces : Mapping[float, Trace]
            Output of :meth:`compute_cross_section_data`

        Returns
        -------
        np.ndarray
            Structured array with fields ``distance``, ``latitude``,
            ``longitude``, ``radius`` and ``value``, one record per
            (distance, radius) pair
        """
        rows = []
        for distance, trace in traces.items():
            position = self.sample_positions[distance]
            for radius, value in zip(trace.x, trace.y):
                rows.append((
                    distance, position.latitude, position.longitude,
                    radius, value,
                ))
        return np.array(rows, dtype=RECORD_DTYPE)

    def __repr__(self):
        return (
            f"CrossSectionResampler(start={self.start_position}, "
            f"end={self.end_position}, distance={self.distance}, "
            f"n_samples={len(self.sample_positions)})"
        )
