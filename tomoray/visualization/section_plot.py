"""
Plots of resampled cross-sections and segmented raypaths.
"""

from typing import List, Optional, Sequence, Tuple

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from ..constants import EARTH_RADIUS
from ..coordinates import CoordinateConverter, FullPosition
from ..raypath import Raypath


class SectionPlotter:
    """Class for plotting cross-section records and raypath segments."""

    def __init__(
        self,
        earth_radius: float = EARTH_RADIUS,
        boundary_radii: Sequence[float] = (3480.0, 1221.5),
    ) -> None:
        self.earth_radius = earth_radius
        self.boundary_radii = list(boundary_radii)

    def plot_cross_section(
        self,
        records: np.ndarray,
        fig_size: Tuple[int, int] = (12, 8),
        cmap: str = "RdBu_r",
        title: Optional[str] = None,
    ) -> Figure:
        """Annular view of a resampled cross-section.

        The distance along the section is drawn as the polar angle,
        centred on the vertical axis, and the radius as the distance from
        the centre of the Earth.

        Parameters
        ----------
        records : np.ndarray
            Records from ``CrossSectionResampler.to_records``
        fig_size : Tuple[int, int]
            Figure size (width, height)
        cmap : str
            Colormap of the values
        title : str, optional
            Title of the plot
        """
        fig, ax = plt.subplots(figsize=fig_size)

        distances = np.asarray(records["distance"], dtype=float)
        radii = np.asarray(records["radius"], dtype=float)
        values = np.asarray(records["value"], dtype=float)

        half_width = distances.max() / 2.0 if len(distances) else 0.0
        angles = np.pi / 2.0 - np.radians(distances - half_width)
        x, y = CoordinateConverter.polar_to_cartesian(radii, angles)

        vmax = float(np.max(np.abs(values))) if len(values) else 1.0
        scatter = ax.scatter(
            x, y, c=values, cmap=cmap, vmin=-vmax, vmax=vmax,
            s=4, marker="s", linewidths=0,
        )
        fig.colorbar(scatter, ax=ax, label="Value")

        theta = np.pi / 2.0 - np.radians(
            np.linspace(-half_width - 1.0, half_width + 1.0, 180)
        )
        self._plot_boundaries(ax, theta)

        ax.set_aspect("equal")
        ax.set_xlabel("Distance (km)")
        ax.set_ylabel("Height (km)")
        ax.set_title(title or f"Cross-section ({2 * half_width:.1f}°)")
        return fig

    def _plot_boundaries(self, ax: plt.Axes, theta: np.ndarray) -> None:
        x, y = CoordinateConverter.polar_to_cartesian(self.earth_radius, theta)
        ax.plot(x, y, "k-", linewidth=2, label="Surface")
        for radius in self.boundary_radii:
            x, y = CoordinateConverter.polar_to_cartesian(radius, theta)
            ax.plot(x, y, "k--", linewidth=1, alpha=0.8)

    def plot_raypath_segments(
        self,
        inside: List[Raypath],
        outside: Optional[List[Raypath]] = None,
        turning_points: Optional[List[FullPosition]] = None,
        fig_size: Tuple[int, int] = (12, 8),
    ) -> Figure:
        """Map view of clipped raypaths.

        One line is drawn per segment and one marker per turning point.
        """
        fig, ax = plt.subplots(figsize=fig_size)

        for i, segment in enumerate(inside):
            ax.plot(
                [pos.longitude for pos in segment.positions],
                [pos.latitude for pos in segment.positions],
                color="red", linewidth=1.5,
                label="Inside" if i == 0 else None,
            )
        for i, segment in enumerate(outside or []):
            ax.plot(
                [pos.longitude for pos in segment.positions],
                [pos.latitude for pos in segment.positions],
                color="gray", linewidth=1, alpha=0.6,
                label="Outside" if i == 0 else None,
            )
        if turning_points:
            ax.plot(
                [pos.longitude for pos in turning_points],
                [pos.latitude for pos in turning_points],
                "b^", markersize=8, markeredgecolor="black",
                label="Turning points",
            )

        ax.set_xlabel("Longitude (°)")
        ax.set_ylabel("Latitude (°)")
        ax.set_title("Raypath segments")
        if inside or outside or turning_points:
            ax.legend(loc="best")
        ax.grid(True, alpha=0.3)
        return fig
