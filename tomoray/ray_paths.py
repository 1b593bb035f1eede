"""
Ray path computation through a standard Earth model.

Travel times and ray geometry come from ObsPy's TauP implementation; this
module only turns its arrivals into :class:`~tomoray.raypath.Raypath`
objects.
"""

import logging
import warnings
from typing import Iterable, List

from obspy.taup import TauPyModel

from .coordinates import FullPosition, HorizontalPosition
from .raypath import Raypath

logger = logging.getLogger(__name__)


class RayPathTracer:
    """
    Compute discretised ray paths between a source and a receiver.

    Parameters
    ----------
    model_name : str
        Name of a standard Earth model known to TauP ('prem', 'iasp91',
        'ak135', ...)
    """

    def __init__(self, model_name: str = "prem"):
        self.model_name = model_name
        self.model = TauPyModel(model=model_name)

    def get_arrivals(
        self,
        source: FullPosition,
        receiver: HorizontalPosition,
        phases: Iterable[str] = ("P", "S"),
    ) -> List:
        """
        Geographic TauP arrivals for each requested phase.

        A warning is issued for every phase without arrivals.

        Parameters
        ----------
        source : FullPosition
            Event position; its depth is the source depth
        receiver : HorizontalPosition
            Station position at the surface
        phases : iterable of str
            Seismic phases to compute

        Returns
        -------
        List
            ObsPy arrivals carrying ``dist``, ``depth``, ``lat`` and ``lon``
            along their path
        """
        if not isinstance(source, FullPosition):
            raise TypeError("source must be a FullPosition")
        phases = list(phases)
        arrivals = self.model.get_ray_paths_geo(
            source_depth_in_km=max(source.depth, 0.0),
            source_latitude_in_deg=source.latitude,
            source_longitude_in_deg=source.longitude,
            receiver_latitude_in_deg=receiver.latitude,
            receiver_longitude_in_deg=receiver.longitude,
            phase_list=phases,
        )
        arrivals = list(arrivals)

        found = {arrival.name for arrival in arrivals}
        for phase in phases:
            if phase not in found:
                warnings.warn(
                    f"No arrival of phase {phase} from {source} to "
                    f"{receiver} in model {self.model_name}",
                    stacklevel=2,
                )
        logger.debug(
            "%d arrivals for phases %s", len(arrivals), ", ".join(phases)
        )
        return arrivals

    def get_raypaths(
        self,
        source: FullPosition,
        receiver: HorizontalPosition,
        phases: Iterable[str] = ("P", "S"),
        first_only: bool = False,
    ) -> List[Raypath]:
        """
        Raypaths from ``source`` to ``receiver`` for each requested phase.

        Parameters
        ----------
        source : FullPosition
            Event position
        receiver : HorizontalPosition
            Station position at the surface
        phases : iterable of str
            Seismic phases to compute
        first_only : bool
            Keep only the fastest arrival of each phase

        Returns
        -------
        List[Raypath]
            One raypath per arrival, in order of travel time
        """
        arrivals = self.get_arrivals(source, receiver, phases)
        if first_only:
            fastest = {}
            for arrival in arrivals:
                if (arrival.name not in fastest
                        or arrival.time < fastest[arrival.name].time):
                    fastest[arrival.name] = arrival
            arrivals = sorted(fastest.values(), key=lambda a: a.time)
        return [Raypath.from_taup_arrival(arrival) for arrival in arrivals]

    def get_pierced_raypaths(
        self,
        source: FullPosition,
        receiver: HorizontalPosition,
        phases: Iterable[str],
        pierce_radii: Iterable[float],
        first_only: bool = False,
    ) -> List[Raypath]:
        """
        As :meth:`get_raypaths`, with points added where each raypath
        crosses one of ``pierce_radii`` [km].
        """
        pierce_radii = list(pierce_radii)
        return [
            raypath.with_pierce_points(pierce_radii)
            for raypath in self.get_raypaths(source, receiver, phases, first_only)
        ]
