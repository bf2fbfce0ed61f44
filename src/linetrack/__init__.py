"""LineTrack - Station window tracking for riders on a transit line."""

__version__ = "0.1.0"

from .models import Coordinates, Direction, HeaderContent, Line, ProximityLabel, Station
from .config import TrackingConfig, load_config
from .topology import is_loop_line
from .accuracy import AccuracyGate, is_accuracy_bad
from .resolver import CurrentStationResolver, accept
from .window import current_station_index, form_window
from .proximity import classify_next
from .header import HeaderRotator
from .observable import ObservableCell
from .session import StationCatalog, TrackingSession

__all__ = [
    "TrackingSession",
    "StationCatalog",
    "TrackingConfig",
    "load_config",
    "Coordinates",
    "Direction",
    "HeaderContent",
    "Line",
    "ProximityLabel",
    "Station",
    "is_loop_line",
    "AccuracyGate",
    "is_accuracy_bad",
    "CurrentStationResolver",
    "accept",
    "current_station_index",
    "form_window",
    "classify_next",
    "HeaderRotator",
    "ObservableCell",
]
