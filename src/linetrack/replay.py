"""Offline replay of recorded rides against a station snapshot."""

import asyncio
import dataclasses
import logging
from pathlib import Path
from typing import IO, AsyncIterator, FrozenSet, Iterable, List, Sequence, Union

import pandas as pd

from .models import Coordinates, Line, Station
from .proximity import DistanceFunction

logger = logging.getLogger(__name__)

CsvSource = Union[str, Path, IO[str]]

STATION_COLUMNS = ("group_id", "name", "latitude", "longitude", "lines")
FIX_COLUMNS = ("latitude", "longitude")


def _read_csv(source: CsvSource, required: Sequence[str], **kwargs) -> pd.DataFrame:
    if isinstance(source, (str, Path)) and not Path(source).exists():
        raise FileNotFoundError(f"CSV file not found: {Path(source).resolve()}")
    df = pd.read_csv(source, **kwargs)
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"Missing columns: {missing}")
    return df


def parse_lines(raw: str) -> FrozenSet[Line]:
    """
    Parse a lines cell such as "11302:80C241;11623".

    Each entry is a line id optionally followed by ':' and its color code.
    """
    lines = set()
    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        line_id, _, color = entry.partition(":")
        try:
            lines.add(Line(id=int(line_id), color_code=color.strip()))
        except ValueError:
            raise ValueError(f"Invalid line entry: {entry!r}")
    return frozenset(lines)


def load_stations_csv(source: CsvSource) -> List[Station]:
    """
    Load a station snapshot.

    Row order is kept and is used as line order by StaticStationCatalog.

    Args:
        source: Path or text buffer with columns group_id, name, latitude,
            longitude and lines.

    Returns:
        List of Station objects with distance 0.
    """
    df = _read_csv(source, STATION_COLUMNS, dtype={"name": str, "lines": str})
    df["lines"] = df["lines"].fillna("")

    stations = [
        Station(
            group_id=int(row["group_id"]),
            name=str(row["name"]),
            latitude=float(row["latitude"]),
            longitude=float(row["longitude"]),
            lines=parse_lines(row["lines"]),
        )
        for row in df.to_dict("records")
    ]
    logger.info(f"Loaded {len(stations)} stations")
    return stations


def load_fixes_csv(source: CsvSource) -> List[Coordinates]:
    """
    Load a recorded ride. The accuracy column is optional; blank cells mean unreported.

    Args:
        source: Path or text buffer with columns latitude, longitude and
            optionally accuracy.

    Returns:
        Fixes in file order.
    """
    df = _read_csv(source, FIX_COLUMNS)
    has_accuracy = "accuracy" in df.columns

    fixes = []
    for row in df.to_dict("records"):
        accuracy = row["accuracy"] if has_accuracy else None
        fixes.append(
            Coordinates(
                latitude=float(row["latitude"]),
                longitude=float(row["longitude"]),
                accuracy=None if accuracy is None or pd.isna(accuracy) else float(accuracy),
            )
        )
    logger.info(f"Loaded {len(fixes)} fixes")
    return fixes


async def replay_fixes(fixes: Iterable[Coordinates], delay_sec: float = 0.0) -> AsyncIterator[Coordinates]:
    """Yield recorded fixes as a position stream, pausing delay_sec after each."""
    for fix in fixes:
        yield fix
        await asyncio.sleep(delay_sec)


class StaticStationCatalog:
    """Station catalog over an in-memory snapshot."""

    def __init__(self, stations: Sequence[Station], distance: DistanceFunction):
        """
        Args:
            stations: Snapshot in line order.
            distance: Geodesic distance function returning meters.
        """
        self.stations = list(stations)
        self.distance = distance

    async def fetch_nearest_station(self, latitude: float, longitude: float) -> Station:
        """
        Find the station closest to a point.

        Returns:
            A copy of the station with distance set in kilometers.

        Raises:
            ValueError: If the snapshot is empty.
        """
        if not self.stations:
            raise ValueError("Station catalog is empty")

        point = Coordinates(latitude=latitude, longitude=longitude)
        best = None
        best_m = 0.0
        for station in self.stations:
            meters = self.distance(point, Coordinates(station.latitude, station.longitude))
            if best is None or meters < best_m:
                best, best_m = station, meters

        return dataclasses.replace(best, distance=best_m / 1000.0)

    async def fetch_stations_by_line_id(self, line_id: int) -> List[Station]:
        return [s for s in self.stations if s.serves(line_id)]
