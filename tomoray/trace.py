"""
One-dimensional sampled functions.
"""

from typing import Sequence, Union

import numpy as np


class Trace:
    """
    A 1-D function sampled at arbitrary points, as parallel x and y arrays
    sorted by x.

    Parameters
    ----------
    x : array-like
        Sample coordinates, non-decreasing
    y : array-like
        Values at the sample coordinates

    Raises
    ------
    ValueError
        If the arrays have different lengths or x is not sorted
    """

    def __init__(
        self,
        x: Union[Sequence[float], np.ndarray],
        y: Union[Sequence[float], np.ndarray],
    ):
        x = np.array(x, dtype=float)
        y = np.array(y, dtype=float)
        if x.ndim != 1 or y.ndim != 1:
            raise ValueError("Trace arrays must be 1-dimensional")
        if x.shape != y.shape:
            raise ValueError(
                f"Input arrays have different lengths: {len(x)} and {len(y)}"
            )
        if np.any(np.diff(x) < 0):
            raise ValueError("x values of a Trace must be sorted ascending")
        x.flags.writeable = False
        y.flags.writeable = False
        self._x = x
        self._y = y

    @property
    def x(self) -> np.ndarray:
        return self._x

    @property
    def y(self) -> np.ndarray:
        return self._y

    @property
    def length(self) -> int:
        return len(self._x)

    def __len__(self):
        return len(self._x)

    @property
    def min_x(self) -> float:
        return float(self._x[0])

    @property
    def max_x(self) -> float:
        return float(self._x[-1])

    def x_at(self, i: int) -> float:
        return float(self._x[i])

    def y_at(self, i: int) -> float:
        return float(self._y[i])

    def find_nearest_x_index(
        self, target: Union[float, np.ndarray]
    ) -> Union[int, np.ndarray]:
        """
        Index of the x value closest to ``target``.

        When two x values are equally close, the later index is returned.
        Accepts a scalar or an array of targets.
        """
        targets = np.atleast_1d(np.asarray(target, dtype=float))
        residuals = np.abs(self._x[np.newaxis, :] - targets[:, np.newaxis])
        # argmin returns the first minimum; search the reversed array
        indices = len(self._x) - 1 - np.argmin(residuals[:, ::-1], axis=1)
        if np.isscalar(target):
            return int(indices[0])
        return indices

    def sub_trace(self, start: int, end: int) -> "Trace":
        """Trace made of samples ``start`` (inclusive) to ``end`` (exclusive)."""
        return Trace(self._x[start:end], self._y[start:end])

    def __repr__(self):
        return f"Trace(length={self.length})"
