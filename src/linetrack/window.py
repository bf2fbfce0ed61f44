"""Display window formation around the current station."""

from typing import List, Optional, Sequence, Tuple

from .models import Direction, Station

# Maximum number of stations shown at once
WINDOW_SIZE = 8
# Stations taken from the opposite end when a loop line wraps around
LOOP_WRAP_COUNT = 6


def current_station_index(stations: Sequence[Station], current: Optional[Station]) -> int:
    """
    Find the current station's position in the fetched list by group id.

    Returns:
        The index, or -1 when there is no current station or it is not in the list.
    """
    if current is None:
        return -1
    for i, station in enumerate(stations):
        if station.group_id == current.group_id:
            return i
    return -1


def _behind(stations: Sequence[Station], index: int) -> List[Station]:
    # Current station first, then the stations before it, nearest first
    start = max(index - (WINDOW_SIZE - 1), 0)
    return list(reversed(stations[start:index + 1]))


def _ahead(stations: Sequence[Station], index: int) -> List[Station]:
    return list(stations[index:index + WINDOW_SIZE])


def _loop_window(stations: Sequence[Station], index: int, direction: Optional[Direction]) -> List[Station]:
    # Index 0 and the last index are cut points of a circle, not terminals
    if direction is Direction.INBOUND:
        if index == 0:
            return [stations[0]] + list(reversed(stations))[:LOOP_WRAP_COUNT]
        return _behind(stations, index)

    if index == len(stations) - 1:
        return [stations[index]] + list(stations[:LOOP_WRAP_COUNT])
    return _ahead(stations, index)


def form_window(
    stations: Sequence[Station],
    current_index: int,
    direction: Optional[Direction],
    is_loop: bool,
) -> List[Station]:
    """
    Build the bounded list of stations to display, current station first.

    On a linear line OUTBOUND shows the current station followed by the
    stations already passed, and any other direction shows the current
    station followed by the ones ahead in list order. On a loop line the
    roles are swapped (INBOUND walks backwards through the list) and the
    window wraps to the opposite end of the list at index 0 and at the
    last index.

    Args:
        stations: Full station list of the selected line, in line order.
        current_index: Position of the current station, -1 if unknown.
        direction: Bound direction, or None before one is selected.
        is_loop: Whether the line is a loop line.

    Returns:
        At most WINDOW_SIZE stations. Empty when current_index is not a
        valid position in stations.
    """
    if not 0 <= current_index < len(stations):
        return []

    if is_loop:
        return _loop_window(stations, current_index, direction)

    if direction is Direction.OUTBOUND:
        return _behind(stations, current_index)
    return _ahead(stations, current_index)


def terminals(stations: Sequence[Station]) -> Tuple[Optional[Station], Optional[Station]]:
    """Return (outbound terminal, inbound terminal): the first and last stations."""
    if not stations:
        return None, None
    return stations[0], stations[-1]
