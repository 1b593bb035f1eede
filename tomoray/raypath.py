"""
Discretised seismic ray paths and their segmentation by radial shells.
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .constants import RADIUS_EPSILON
from .coordinates import FullPosition, HorizontalPosition, equals_within

logger = logging.getLogger(__name__)


class Raypath:
    """
    Immutable ray path: ordered 3-D positions from the source to the
    receiver, paired with cumulative epicentral distances.

    Parameters
    ----------
    positions : sequence of FullPosition
        Points along the path, source first and receiver last
    distances : array-like
        Cumulative distance [deg] of each point from the first one.
        Must start at 0 and be non-decreasing.
    phase_name : str
        Name of the seismic phase the path belongs to

    Raises
    ------
    ValueError
        If the arrays have different lengths, fewer than two points are
        given, or the distances are not valid cumulative distances
    TypeError
        If a position is not a FullPosition
    """

    def __init__(
        self,
        positions: Sequence[FullPosition],
        distances: Sequence[float],
        phase_name: str = "P",
    ):
        positions = tuple(positions)
        distances = np.array(distances, dtype=float)
        if distances.ndim != 1:
            raise ValueError("distances must be 1-dimensional")
        if len(positions) != len(distances):
            raise ValueError(
                f"Number of positions ({len(positions)}) and distances "
                f"({len(distances)}) differ"
            )
        if len(positions) < 2:
            raise ValueError("A raypath needs at least two points")
        for position in positions:
            if not isinstance(position, FullPosition):
                raise TypeError(
                    f"positions must be FullPosition instances, "
                    f"got {type(position).__name__}"
                )
        if distances[0] != 0.0:
            raise ValueError(
                f"distances must start at 0, got {distances[0]}"
            )
        if np.any(np.diff(distances) < 0):
            raise ValueError("distances must be non-decreasing")

        distances.flags.writeable = False
        self._positions = positions
        self._distances = distances
        self._phase_name = phase_name
        self._radii = np.array([pos.radius for pos in positions])
        self._radii.flags.writeable = False

    @classmethod
    def from_source_receiver(
        cls,
        source: FullPosition,
        receiver: FullPosition,
        phase_name: str = "P",
    ) -> "Raypath":
        """Two-point raypath running straight from source to receiver."""
        distance = source.compute_epicentral_distance_deg(receiver)
        return cls([source, receiver], [0.0, distance], phase_name)

    @classmethod
    def from_taup_arrival(cls, arrival) -> "Raypath":
        """
        Build a raypath from an ObsPy TauP arrival with a geographic path.

        Parameters
        ----------
        arrival : obspy.taup.helper_classes.Arrival
            Arrival returned by ``TauPyModel.get_ray_paths_geo``; its
            ``path`` must carry the ``dist`` [rad], ``depth`` [km], ``lat``
            and ``lon`` fields

        Returns
        -------
        Raypath
            Path with distances re-based to start at 0
        """
        path = arrival.path
        try:
            distances_rad = np.asarray(path['dist'], dtype=float)
            depths = np.asarray(path['depth'], dtype=float)
            lat_arr = np.asarray(path['lat'], dtype=float)
            lon_arr = np.asarray(path['lon'], dtype=float)
        except (KeyError, ValueError) as exc:
            raise ValueError(
                "Ray path lacks distance or latitude/longitude information. "
                "Use TauPyModel.get_ray_paths_geo."
            ) from exc

        distances_deg = np.degrees(distances_rad)
        distances_deg = distances_deg - distances_deg[0]
        positions = [
            FullPosition.from_depth(lat, lon, depth)
            for lat, lon, depth in zip(lat_arr, lon_arr, depths)
        ]
        return cls(positions, distances_deg, arrival.name)

    # ========== Accessors ========== #

    @property
    def positions(self) -> Tuple[FullPosition, ...]:
        return self._positions

    @property
    def distances(self) -> np.ndarray:
        """Cumulative distances [deg], starting at 0."""
        return self._distances

    @property
    def radii(self) -> np.ndarray:
        """Radius [km] of each point."""
        return self._radii

    @property
    def phase_name(self) -> str:
        return self._phase_name

    @property
    def source(self) -> FullPosition:
        return self._positions[0]

    @property
    def receiver(self) -> FullPosition:
        return self._positions[-1]

    @property
    def epicentral_distance_deg(self) -> float:
        return self.source.compute_epicentral_distance_deg(self.receiver)

    @property
    def azimuth_deg(self) -> float:
        """Azimuth [deg] from the source to the receiver."""
        return self.source.compute_azimuth_deg(self.receiver)

    @property
    def back_azimuth_deg(self) -> float:
        """Azimuth [deg] from the receiver back to the source."""
        return self.source.compute_back_azimuth_deg(self.receiver)

    def __len__(self):
        return len(self._positions)

    def __repr__(self):
        return (
            f"Raypath(phase={self._phase_name!r}, n_points={len(self)}, "
            f"distance={self._distances[-1]:.4f})"
        )

    # ========== Clipping ========== #

    def clip(self, start: int, end: int) -> "Raypath":
        """
        Sub-path made of points ``start`` to ``end`` (both inclusive).

        Raises
        ------
        ValueError
            If the sub-path would have fewer than two points or the indices
            are out of range
        """
        n_points = len(self._positions)
        if start < 0 or end >= n_points:
            raise ValueError(
                f"Clip range [{start}:{end}] out of bounds [0:{n_points - 1}]"
            )
        if end - start < 1:
            raise ValueError(
                f"Clip range [{start}:{end}] has fewer than two points"
            )
        return Raypath(
            self._positions[start:end + 1],
            self._distances[start:end + 1] - self._distances[start],
            self._phase_name,
        )

    def _clip_runs(self, runs: Iterable[Tuple[int, int]]) -> List["Raypath"]:
        return [self.clip(start, end) for start, end in sorted(runs)]

    def clip_inside_layer(
        self, lower_radius: float, upper_radius: float
    ) -> List["Raypath"]:
        """
        Parts of the path lying within the shell
        ``[lower_radius, upper_radius]``.

        A part starts at the first point if that point is in the shell, and
        otherwise only at a point exactly on a boundary. It ends at the last
        point before the path leaves the shell. Parts of a single point are
        discarded, so with a coarse discretisation a path that dips into
        the shell between two samples yields nothing. Use
        :meth:`with_pierce_points` beforehand to add the boundary points.

        Parameters
        ----------
        lower_radius, upper_radius : float
            Boundaries of the shell [km]

        Returns
        -------
        List[Raypath]
            Clipped parts in path order, distances re-based to 0
        """
        _check_shell(lower_radius, upper_radius)
        runs = []
        start: Optional[int] = None

        for i, radius in enumerate(self._radii):
            if (equals_within(radius, lower_radius, RADIUS_EPSILON)
                    or equals_within(radius, upper_radius, RADIUS_EPSILON)):
                if start is None:
                    start = i
            elif lower_radius < radius < upper_radius:
                if i == 0:
                    start = 0
            else:
                _append_run(runs, start, i - 1)
                start = None

        _append_run(runs, start, len(self._radii) - 1)
        return self._clip_runs(runs)

    def clip_outside_layer(
        self, lower_radius: float, upper_radius: float
    ) -> List["Raypath"]:
        """
        Parts of the path lying below ``lower_radius`` or above
        ``upper_radius``.

        The parts below and above the shell are tracked independently. A
        point on the lower boundary starts or continues a part below and
        ends any part above; the upper boundary works the other way round.
        A point strictly inside the shell ends both.

        Returns
        -------
        List[Raypath]
            Clipped parts in path order, distances re-based to 0
        """
        _check_shell(lower_radius, upper_radius)
        runs = []
        below: Optional[int] = None
        above: Optional[int] = None

        for i, radius in enumerate(self._radii):
            if equals_within(radius, lower_radius, RADIUS_EPSILON):
                if below is None:
                    below = i
                _append_run(runs, above, i - 1)
                above = None
            elif equals_within(radius, upper_radius, RADIUS_EPSILON):
                if above is None:
                    above = i
                _append_run(runs, below, i - 1)
                below = None
            elif radius < lower_radius:
                if i == 0:
                    below = 0
                _append_run(runs, above, i - 1)
                above = None
            elif radius > upper_radius:
                if i == 0:
                    above = 0
                _append_run(runs, below, i - 1)
                below = None
            else:
                _append_run(runs, below, i - 1)
                below = None
                _append_run(runs, above, i - 1)
                above = None

        last = len(self._radii) - 1
        _append_run(runs, below, last)
        _append_run(runs, above, last)
        return self._clip_runs(runs)

    def with_pierce_points(self, radii: Iterable[float]) -> "Raypath":
        """
        Copy of the path with a point inserted wherever it crosses one of
        ``radii``.

        The distance and the radius of a pierce point are interpolated
        linearly between the neighbouring samples; its horizontal position
        is found along the great circle joining them.

        Parameters
        ----------
        radii : iterable of float
            Radii [km] of the discontinuities to pierce

        Returns
        -------
        Raypath
            New path including the pierce points
        """
        pierce_radii = np.unique(np.asarray(list(radii), dtype=float))
        positions: List[FullPosition] = [self._positions[0]]
        distances: List[float] = [float(self._distances[0])]

        for i in range(len(self._positions) - 1):
            r0 = self._radii[i]
            r1 = self._radii[i + 1]
            if r0 != r1:
                lo, hi = min(r0, r1), max(r0, r1)
                crossing = [
                    r for r in pierce_radii
                    if lo + RADIUS_EPSILON < r < hi - RADIUS_EPSILON
                ]
                if r1 < r0:
                    crossing = crossing[::-1]
                if crossing:
                    p0 = self._positions[i]
                    p1 = self._positions[i + 1]
                    segment_deg = p0.compute_epicentral_distance_deg(p1)
                    azimuth = p0.compute_azimuth_deg(p1) if segment_deg > 0 else 0.0
                    for radius in crossing:
                        f = (radius - r0) / (r1 - r0)
                        horizontal = p0.point_along_azimuth(azimuth, f * segment_deg)
                        positions.append(horizontal.to_full_position(radius))
                        distances.append(
                            self._distances[i]
                            + f * (self._distances[i + 1] - self._distances[i])
                        )
            positions.append(self._positions[i + 1])
            distances.append(float(self._distances[i + 1]))

        return Raypath(positions, distances, self._phase_name)

    # ========== Turning and bouncing points ========== #

    def find_turning_points(self) -> List[FullPosition]:
        """
        Local minima of radius over the interior points.

        A point qualifies when its radius is not larger than either
        neighbour's, so every point of a flat bottom is reported.
        """
        r = self._radii
        return [
            self._positions[i] for i in range(1, len(r) - 1)
            if r[i] <= r[i - 1] and r[i] <= r[i + 1]
        ]

    def find_ceil_bouncing_points(self) -> List[FullPosition]:
        """Local maxima of radius over the interior points (see
        :meth:`find_turning_points`)."""
        r = self._radii
        return [
            self._positions[i] for i in range(1, len(r) - 1)
            if r[i] >= r[i - 1] and r[i] >= r[i + 1]
        ]

    def find_turning_point(self, index: int) -> FullPosition:
        """
        The ``index``-th turning point.

        Raises
        ------
        IndexError
            If there are not that many turning points
        """
        return _pick(self.find_turning_points(), index, "turning")

    def find_ceil_bouncing_point(self, index: int) -> FullPosition:
        """
        The ``index``-th ceiling bouncing point.

        Raises
        ------
        IndexError
            If there are not that many bouncing points
        """
        return _pick(self.find_ceil_bouncing_points(), index, "bouncing")

    def compute_turning_azimuth_deg(self, index: int) -> float:
        """Azimuth [deg] from the ``index``-th turning point to the receiver."""
        turning_point: HorizontalPosition = self.find_turning_point(index)
        return turning_point.compute_azimuth_deg(self.receiver)


def _check_shell(lower_radius: float, upper_radius: float):
    if lower_radius >= upper_radius:
        raise ValueError(
            f"Lower radius {lower_radius} must be smaller than upper radius "
            f"{upper_radius}"
        )


def _append_run(
    runs: List[Tuple[int, int]], start: Optional[int], end: int
) -> None:
    # single-point runs are not a segment
    if start is not None and end - start >= 1:
        runs.append((start, end))


def _pick(points: List[FullPosition], index: int, kind: str) -> FullPosition:
    if not 0 <= index < len(points):
        raise IndexError(
            f"No {kind} point with index {index} "
            f"({len(points)} {kind} points found)"
        )
    return points[index]


def segment_raypaths(
    raypaths: Iterable[Raypath],
    lower_radius: float,
    upper_radius: float,
) -> Dict[str, list]:
    """
    Segment a set of raypaths by a radial shell.

    Parameters
    ----------
    raypaths : iterable of Raypath
        Raypaths to segment
    lower_radius, upper_radius : float
        Boundaries of the shell [km]

    Returns
    -------
    Dict[str, list]
        ``'inside'`` and ``'outside'`` lists of clipped raypaths, and
        ``'turning_points'``, the turning points of the inside segments
    """
    _check_shell(lower_radius, upper_radius)
    inside: List[Raypath] = []
    outside: List[Raypath] = []
    turning_points: List[FullPosition] = []

    n_raypaths = 0
    for raypath in raypaths:
        n_raypaths += 1
        segments = raypath.clip_inside_layer(lower_radius, upper_radius)
        inside.extend(segments)
        outside.extend(raypath.clip_outside_layer(lower_radius, upper_radius))
        for segment in segments:
            turning_points.extend(segment.find_turning_points())

    logger.info(
        "Segmented %d raypaths by shell [%s:%s]: %d inside, %d outside, "
        "%d turning points",
        n_raypaths, lower_radius, upper_radius,
        len(inside), len(outside), len(turning_points),
    )
    return {
        'inside': inside,
        'outside': outside,
        'turning_points': turning_points,
    }
