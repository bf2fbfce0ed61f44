"""Current station resolution."""

import logging
from typing import Optional

from .config import ARRIVED_THRESHOLD_KM
from .models import Station
from .observable import ObservableCell

logger = logging.getLogger(__name__)


def accept(
    candidate: Station,
    selected_line_id: Optional[int],
    arrived_threshold_km: float = ARRIVED_THRESHOLD_KM,
) -> bool:
    """
    Decide whether a nearest-station candidate becomes the current station.

    With no line selected every candidate is accepted. Otherwise the
    candidate must serve the selected line and be strictly closer than the
    arrival threshold, so that the current station neither jumps to another
    line's station at interchanges nor advances while still far away.

    Args:
        candidate: Nearest station reported by the catalog.
        selected_line_id: Currently selected line, or None.
        arrived_threshold_km: Exclusive distance limit in kilometers.

    Returns:
        True if the candidate should replace the current station.
    """
    if selected_line_id is None:
        return True
    return candidate.serves(selected_line_id) and candidate.distance < arrived_threshold_km


class CurrentStationResolver:
    """Applies the acceptance policy to a current-station cell."""

    def __init__(
        self,
        cell: ObservableCell[Optional[Station]],
        arrived_threshold_km: float = ARRIVED_THRESHOLD_KM,
    ):
        self.cell = cell
        self.arrived_threshold_km = arrived_threshold_km

    def offer(self, candidate: Station, selected_line_id: Optional[int]) -> bool:
        """Set the cell to the candidate if accepted. Rejected candidates are dropped."""
        if not accept(candidate, selected_line_id, self.arrived_threshold_km):
            logger.debug(
                f"Rejected {candidate.name} ({candidate.group_id}) "
                f"at {candidate.distance:.3f} km for line {selected_line_id}"
            )
            return False

        previous = self.cell.value
        if previous is None or previous.group_id != candidate.group_id:
            logger.info(f"Current station is now {candidate.name} ({candidate.group_id})")
        self.cell.set(candidate)
        return True
