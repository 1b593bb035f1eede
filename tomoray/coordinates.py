"""
Positions on a spherical Earth and geographic utilities.

Positions are value objects: coordinates are rounded to a fixed number of
decimals on construction and compared with the epsilons defined in
:mod:`tomoray.constants`. Latitudes are treated as geocentric, i.e. the
Earth is a sphere of radius :data:`~tomoray.constants.EARTH_RADIUS`.
"""

import functools
from typing import Iterable, Tuple

import numpy as np
from obspy.geodetics import gps2dist_azimuth, locations2degrees

from .constants import (
    EARTH_RADIUS,
    LATITUDE_DECIMALS,
    LATITUDE_EPSILON,
    LONGITUDE_DECIMALS,
    LONGITUDE_EPSILON,
    RADIUS_DECIMALS,
    RADIUS_EPSILON,
)


def equals_within(a: float, b: float, epsilon: float) -> bool:
    """
    Decide whether two values are the same within a tolerance.

    This is the only comparison used for "sameness" of latitudes,
    longitudes and radii throughout the package.

    Parameters
    ----------
    a, b : float
        Values to compare
    epsilon : float
        Tolerance; values are equal when ``|a - b| <= epsilon``

    Returns
    -------
    bool
        Whether the values are the same
    """
    return abs(a - b) <= epsilon


def _normalize_longitude(longitude: float) -> float:
    if not -180.0 <= longitude <= 360.0:
        raise ValueError(f"Longitude {longitude} out of range [-180:360]")
    longitude = round(longitude, LONGITUDE_DECIMALS)
    if longitude >= 180.0:
        longitude = round(longitude - 360.0, LONGITUDE_DECIMALS)
    return longitude


@functools.total_ordering
class HorizontalPosition:
    """
    Immutable position on the Earth's surface (latitude, longitude).

    Parameters
    ----------
    latitude : float
        Latitude in degrees, [-90:90]
    longitude : float
        Longitude in degrees, [-180:360]; stored in [-180:180)

    Examples
    --------
    >>> pos = HorizontalPosition(35.0, 200.0)
    >>> pos.longitude
    -160.0
    >>> pos.longitude_in(cross_date_line=True)
    200.0
    """

    __slots__ = ("_latitude", "_longitude")

    def __init__(self, latitude: float, longitude: float):
        latitude = float(latitude)
        if not -90.0 <= latitude <= 90.0:
            raise ValueError(f"Latitude {latitude} out of range [-90:90]")
        self._latitude = round(latitude, LATITUDE_DECIMALS)
        self._longitude = _normalize_longitude(float(longitude))

    @property
    def latitude(self) -> float:
        """Latitude [deg] in [-90:90]."""
        return self._latitude

    @property
    def longitude(self) -> float:
        """Longitude [deg] in [-180:180)."""
        return self._longitude

    def longitude_in(self, cross_date_line: bool) -> float:
        """
        Longitude [deg], in [0:360) when ``cross_date_line`` is True,
        otherwise in [-180:180).
        """
        if cross_date_line and self._longitude < 0:
            return self._longitude + 360.0
        return self._longitude

    @property
    def theta(self) -> float:
        """Colatitude [rad] in [0:pi]."""
        return np.radians(90.0 - self._latitude)

    @property
    def phi(self) -> float:
        """Longitude [rad] in [-pi:pi)."""
        return np.radians(self._longitude)

    def _same_horizontal(self, other: "HorizontalPosition") -> bool:
        return (
            equals_within(self._latitude, other._latitude, LATITUDE_EPSILON)
            and equals_within(
                self._longitude, other._longitude, LONGITUDE_EPSILON
            )
        )

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._same_horizontal(other)

    def __lt__(self, other):
        if not isinstance(other, HorizontalPosition):
            return NotImplemented
        return (self._latitude, self._longitude) < (
            other._latitude, other._longitude
        )

    def __hash__(self):
        return hash((self._latitude, self._longitude))

    def __repr__(self):
        return f"HorizontalPosition({self._latitude}, {self._longitude})"

    def __str__(self):
        return f"{self._latitude:.4f} {self._longitude:.4f}"

    # ========== Great-circle geometry ========== #

    def compute_epicentral_distance_deg(
        self, position: "HorizontalPosition"
    ) -> float:
        """Great-circle distance [deg] to ``position``, in [0:180]."""
        return float(locations2degrees(
            self._latitude, self._longitude,
            position.latitude, position.longitude,
        ))

    def compute_epicentral_distance_rad(
        self, position: "HorizontalPosition"
    ) -> float:
        """Great-circle distance [rad] to ``position``, in [0:pi]."""
        return float(np.radians(self.compute_epicentral_distance_deg(position)))

    def _azimuths(self, position: "HorizontalPosition") -> Tuple[float, float]:
        # f=0 turns the ellipsoidal inverse problem into the spherical one
        _, azimuth, back_azimuth = gps2dist_azimuth(
            self._latitude, self._longitude,
            position.latitude, position.longitude,
            a=EARTH_RADIUS * 1000.0, f=0.0,
        )
        return float(azimuth), float(back_azimuth)

    def compute_azimuth_deg(self, position: "HorizontalPosition") -> float:
        """Azimuth [deg] from this position to ``position``, in [0:360)."""
        return self._azimuths(position)[0]

    def compute_back_azimuth_deg(self, position: "HorizontalPosition") -> float:
        """Azimuth [deg] from ``position`` back to this position, in [0:360)."""
        return self._azimuths(position)[1]

    def point_along_azimuth(
        self, azimuth_deg: float, distance_deg: float
    ) -> "HorizontalPosition":
        """
        Position reached by travelling along a great circle.

        Parameters
        ----------
        azimuth_deg : float
            Azimuth of the direction to head in [deg]
        distance_deg : float
            Distance to travel [deg]; negative values travel backwards

        Returns
        -------
        HorizontalPosition
            Point located ``distance_deg`` away along ``azimuth_deg``
        """
        lat_rad = np.radians(self._latitude)
        lon_rad = np.radians(self._longitude)
        dist_rad = np.radians(distance_deg)
        azimuth_rad = np.radians(azimuth_deg)

        sin_lat = (
            np.sin(lat_rad) * np.cos(dist_rad)
            + np.cos(lat_rad) * np.sin(dist_rad) * np.cos(azimuth_rad)
        )
        lat_new = np.arcsin(np.clip(sin_lat, -1.0, 1.0))
        lon_new = lon_rad + np.arctan2(
            np.sin(azimuth_rad) * np.sin(dist_rad) * np.cos(lat_rad),
            np.cos(dist_rad) - np.sin(lat_rad) * np.sin(lat_new),
        )

        longitude = float(np.degrees(lon_new))
        if longitude < -180.0:
            longitude += 360.0
        if longitude > 180.0:
            longitude -= 360.0
        return HorizontalPosition(float(np.degrees(lat_new)), longitude)

    def to_full_position(self, radius: float) -> "FullPosition":
        """Position at this latitude and longitude with the given radius."""
        return FullPosition(self._latitude, self._longitude, radius)


class FullPosition(HorizontalPosition):
    """
    Immutable 3-D position (latitude, longitude, radius).

    Parameters
    ----------
    latitude : float
        Latitude in degrees, [-90:90]
    longitude : float
        Longitude in degrees, [-180:360]
    radius : float
        Distance from the centre of the Earth [km] (not depth)
    """

    __slots__ = ("_radius",)

    def __init__(self, latitude: float, longitude: float, radius: float):
        super().__init__(latitude, longitude)
        self._radius = round(float(radius), RADIUS_DECIMALS)

    @classmethod
    def from_depth(
        cls, latitude: float, longitude: float, depth: float
    ) -> "FullPosition":
        """Construct from a depth [km] below the surface."""
        return cls(latitude, longitude, EARTH_RADIUS - depth)

    @property
    def radius(self) -> float:
        """Radius [km]."""
        return self._radius

    @property
    def depth(self) -> float:
        """Depth below the surface [km]."""
        return round(EARTH_RADIUS - self._radius, RADIUS_DECIMALS)

    def to_horizontal_position(self) -> HorizontalPosition:
        return HorizontalPosition(self._latitude, self._longitude)

    def __eq__(self, other):
        if type(self) is not type(other):
            return NotImplemented
        return self._same_horizontal(other) and equals_within(
            self._radius, other._radius, RADIUS_EPSILON
        )

    def __lt__(self, other):
        if not isinstance(other, FullPosition):
            return super().__lt__(other)
        return (self._latitude, self._longitude, self._radius) < (
            other._latitude, other._longitude, other._radius
        )

    def __hash__(self):
        return hash((self._latitude, self._longitude, self._radius))

    def __repr__(self):
        return (
            f"FullPosition({self._latitude}, {self._longitude}, "
            f"{self._radius})"
        )

    def __str__(self):
        return f"{super().__str__()} {self._radius:.6f}"


# ========== Functions on sets of positions ========== #

def crosses_date_line(positions: Iterable[HorizontalPosition]) -> bool:
    """
    Judge whether a set of positions crosses the date line but not the
    prime meridian.

    The largest longitude gap of the set is searched for. The positions
    cross only the date line when that gap starts in the western
    hemisphere and ends in the eastern one.

    Parameters
    ----------
    positions : iterable of HorizontalPosition
        Input positions

    Returns
    -------
    bool
        True when the set should be handled in [0:360) longitudes
    """
    longitudes = np.unique([pos.longitude for pos in positions])
    if len(longitudes) <= 1:
        return False

    largest_gap = longitudes[0] + 360.0 - longitudes[-1]
    gap_start = longitudes[-1]
    gap_end = longitudes[0]
    for lon_prev, lon_next in zip(longitudes[:-1], longitudes[1:]):
        if lon_next - lon_prev > largest_gap:
            largest_gap = lon_next - lon_prev
            gap_start = lon_prev
            gap_end = lon_next

    return bool(gap_start <= 0.0 <= gap_end)


def find_latitude_interval(positions: Iterable[HorizontalPosition]) -> float:
    """
    Smallest non-zero latitude difference from the first position of the
    set. The latitudes are expected to be equally spaced.
    """
    positions = list(positions)
    if not positions:
        raise ValueError("No positions are given")
    lat0 = positions[0].latitude
    diffs = [
        abs(pos.latitude - lat0) for pos in positions
        if not equals_within(pos.latitude, lat0, LATITUDE_EPSILON)
    ]
    if not diffs:
        raise ValueError("All positions share the same latitude")
    return min(diffs)


class CoordinateConverter:
    """
    Utilities for coordinate conversions.
    """

    @staticmethod
    def degrees_to_km(
        distance_deg: float,
        radius: float = EARTH_RADIUS,
    ) -> float:
        """
        Convert an arc length from degrees to kilometers.

        Parameters
        ----------
        distance_deg : float
            Distance in degrees
        radius : float
            Radius of the arc in km

        Returns
        -------
        distance_km : float
            Distance in kilometers
        """
        return distance_deg * np.pi * radius / 180.0

    @staticmethod
    def km_to_degrees(
        distance_km: float,
        radius: float = EARTH_RADIUS,
    ) -> float:
        """
        Convert an arc length from kilometers to degrees.

        Parameters
        ----------
        distance_km : float
            Distance in kilometers
        radius : float
            Radius of the arc in km

        Returns
        -------
        distance_deg : float
            Distance in degrees
        """
        return distance_km * 180.0 / (np.pi * radius)

    @staticmethod
    def polar_to_cartesian(
        r: np.ndarray,
        theta: np.ndarray,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Convert polar coordinates to Cartesian.

        Parameters
        ----------
        r, theta : np.ndarray
            Polar coordinates (radius, angle in radians)

        Returns
        -------
        x, y : np.ndarray
            Cartesian coordinates
        """
        x = r * np.cos(theta)
        y = r * np.sin(theta)
        return x, y
