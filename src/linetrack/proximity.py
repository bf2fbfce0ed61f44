"""Classification of the upcoming station as approaching or next."""

from typing import Callable, Optional, Sequence

from .config import APPROACHING_THRESHOLD_M
from .models import Coordinates, ProximityLabel, Station

# Geodesic distance in meters between two points
DistanceFunction = Callable[[Coordinates, Coordinates], float]


def classify_next(
    window: Sequence[Station],
    rider: Optional[Coordinates],
    distance: DistanceFunction,
    approaching_threshold_m: float = APPROACHING_THRESHOLD_M,
) -> Optional[ProximityLabel]:
    """
    Label the first station ahead of the rider.

    Args:
        window: Formed window, current station first.
        rider: Rider's latest fix, or None if none yet.
        distance: External geodesic distance function returning meters.
        approaching_threshold_m: Exclusive distance below which the next
            station counts as approaching.

    Returns:
        APPROACHING or NEXT, or None when there is no next station or no fix.
    """
    if len(window) < 2 or rider is None:
        return None

    next_station = window[1]
    target = Coordinates(latitude=next_station.latitude, longitude=next_station.longitude)
    if distance(rider, target) < approaching_threshold_m:
        return ProximityLabel.APPROACHING
    return ProximityLabel.NEXT
