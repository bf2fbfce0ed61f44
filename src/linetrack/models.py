"""Data models for the line tracker."""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional


class Direction(Enum):
    """Rider-selected travel direction relative to the line's station order."""
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class HeaderContent(Enum):
    """Which label the header currently shows."""
    CURRENT_STATION = "CURRENT_STATION"
    NEXT_STOP = "NEXT_STOP"


class ProximityLabel(Enum):
    """Label for the upcoming station."""
    APPROACHING = "APPROACHING"
    NEXT = "NEXT"


@dataclass(frozen=True)
class Coordinates:
    """A single position fix."""
    latitude: float
    longitude: float
    accuracy: Optional[float] = None  # Meters, None when the source does not report it


@dataclass(frozen=True)
class Line:
    """Represents a transit line."""
    id: int
    color_code: str = ""  # Hex without leading '#', may be empty


@dataclass(frozen=True)
class Station:
    """Represents a station as returned by the station catalog."""
    group_id: int  # Stable identity across refetches
    name: str
    latitude: float
    longitude: float
    lines: FrozenSet[Line] = field(default_factory=frozenset)
    distance: float = 0.0  # Kilometers from the queried point, computed by the catalog

    def serves(self, line_id: int) -> bool:
        """Return True if any of the station's lines has the given id."""
        return any(line.id == line_id for line in self.lines)

    def line(self, line_id: int) -> Optional[Line]:
        """Return the station's entry for a line, or None."""
        for line in self.lines:
            if line.id == line_id:
                return line
        return None
