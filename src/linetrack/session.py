"""Tracking session tying position fixes, the station catalog and the display views together."""

import asyncio
import logging
from typing import AsyncIterable, Callable, List, Optional, Protocol, Set

from .accuracy import AccuracyGate
from .config import TrackingConfig
from .header import HeaderRotator
from .models import Coordinates, Direction, HeaderContent, Line, ProximityLabel, Station
from .observable import ObservableCell
from .proximity import DistanceFunction, classify_next
from .resolver import CurrentStationResolver
from .topology import is_loop_line
from .window import current_station_index, form_window, terminals

logger = logging.getLogger(__name__)


class StationCatalog(Protocol):
    """Remote station catalog. Both calls are one-shot and may raise."""

    async def fetch_nearest_station(self, latitude: float, longitude: float) -> Station:
        ...

    async def fetch_stations_by_line_id(self, line_id: int) -> List[Station]:
        ...


class TrackingSession:
    """
    Owns all state of one tracking session.

    State is only mutated by the event handlers (position fixes, catalog
    results, rider commands); the derived views are recomputed from the
    latest snapshot on every read. Everything runs on one asyncio event
    loop, so no locking is needed.

    Typical use:

        async with TrackingSession(catalog, hubeny_distance) as session:
            session.start(position_stream)
            session.select_line(11302)
            ...
    """

    def __init__(
        self,
        catalog: StationCatalog,
        distance: DistanceFunction,
        config: Optional[TrackingConfig] = None,
    ):
        """
        Args:
            catalog: Station catalog collaborator.
            distance: Geodesic distance function returning meters.
            config: Thresholds and timings. Defaults to TrackingConfig().
        """
        self.catalog = catalog
        self.distance = distance
        self.config = config or TrackingConfig()

        self.current_station: ObservableCell[Optional[Station]] = ObservableCell(None)
        self.fetched_stations: ObservableCell[List[Station]] = ObservableCell([])
        self.selected_line_id: Optional[int] = None
        self.bound_direction: Optional[Direction] = None
        self.bound_station: Optional[Station] = None

        self.accuracy = AccuracyGate(self.config.bad_accuracy_threshold_m)
        self.resolver = CurrentStationResolver(self.current_station, self.config.arrived_threshold_km)
        self.header = HeaderRotator(lambda: len(self.window), self.config.header_interval_sec)

        self._tasks: Set[asyncio.Task] = set()
        self._disposers: List[Callable[[], None]] = [self.header.stop, self._cancel_tasks]
        self._selection = 0  # Bumped on every line selection to detect stale fetches
        self._fix_count = 0  # Bumped on every fix so only the newest lookup is applied
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def stopped(self) -> bool:
        return self._stopped

    def start(self, fixes: Optional[AsyncIterable[Coordinates]] = None) -> None:
        """
        Begin consuming a position stream. Must be called inside a running event loop.

        Args:
            fixes: Async iterable of fixes. When None, fixes are expected
                through on_fix() directly.

        Raises:
            RuntimeError: If the session was already stopped.
        """
        if self._stopped:
            raise RuntimeError("Tracking session already stopped")
        logger.info("Tracking session started")
        if fixes is not None:
            self._spawn(self._watch(fixes))

    def stop(self) -> None:
        """Release the position stream, in-flight fetches and the header timer together."""
        if self._stopped:
            return
        self._stopped = True
        for dispose in self._disposers:
            dispose()
        logger.info("Tracking session stopped")

    async def __aenter__(self) -> "TrackingSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        pending = list(self._tasks)
        self.stop()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _cancel_tasks(self) -> None:
        for task in list(self._tasks):
            task.cancel()

    # ------------------------------------------------------------------
    # Events and commands
    # ------------------------------------------------------------------

    async def _watch(self, fixes: AsyncIterable[Coordinates]) -> None:
        try:
            async for fix in fixes:
                self.on_fix(fix)
        except Exception as e:
            logger.error(f"Position stream failed: {e}", exc_info=True)
            return
        logger.info("Position stream ended")

    def on_fix(self, fix: Coordinates) -> None:
        """Record a fix and look up the nearest station for it."""
        if self._stopped:
            return
        logger.debug(f"Fix {fix.latitude:.6f},{fix.longitude:.6f} accuracy={fix.accuracy}")
        self.accuracy.observe(fix)
        self._fix_count += 1
        self._spawn(self._resolve_nearest(fix, self._fix_count))

    async def _resolve_nearest(self, fix: Coordinates, fix_number: int) -> None:
        try:
            candidate = await self.catalog.fetch_nearest_station(fix.latitude, fix.longitude)
        except Exception as e:
            logger.warning(f"Nearest station lookup failed: {e}")
            return
        if self._stopped:
            return
        if fix_number != self._fix_count:
            logger.debug(f"Discarding nearest station {candidate.name} for an older fix")
            return
        self.resolver.offer(candidate, self.selected_line_id)

    def select_line(self, line_id: int) -> None:
        """Select a line and fetch its stations."""
        if self._stopped:
            return
        self.selected_line_id = line_id
        self._selection += 1
        logger.info(f"Selected line {line_id}")
        self._spawn(self._load_line(line_id, self._selection))

    async def _load_line(self, line_id: int, selection: int) -> None:
        try:
            stations = await self.catalog.fetch_stations_by_line_id(line_id)
        except Exception as e:
            logger.warning(f"Failed to fetch stations for line {line_id}: {e}")
            return
        if self._stopped or selection != self._selection:
            logger.debug(f"Discarding stale station list for line {line_id}")
            return
        logger.info(f"Loaded {len(stations)} stations for line {line_id}")
        self.fetched_stations.set(list(stations))

    def select_bound(self, direction: Direction, station: Station) -> None:
        """Set the bound direction and bound station together and (re)start header rotation."""
        if self._stopped:
            return
        self.bound_direction = direction
        self.bound_station = station
        logger.info(f"Bound {direction.value} for {station.name}")
        self.header.start()

    def dismiss_bad_accuracy(self) -> None:
        self.accuracy.dismiss()

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return self.accuracy.fix

    @property
    def current_index(self) -> int:
        return current_station_index(self.fetched_stations.value, self.current_station.value)

    @property
    def is_loop_line(self) -> bool:
        return is_loop_line(self.selected_line_id, self.config.loop_line_ids)

    @property
    def window(self) -> List[Station]:
        return form_window(
            self.fetched_stations.value,
            self.current_index,
            self.bound_direction,
            self.is_loop_line,
        )

    @property
    def next_label(self) -> Optional[ProximityLabel]:
        return classify_next(
            self.window,
            self.coordinates,
            self.distance,
            self.config.approaching_threshold_m,
        )

    @property
    def bad_accuracy(self) -> bool:
        return self.accuracy.is_bad

    @property
    def header_content(self) -> HeaderContent:
        return self.header.content

    @property
    def current_line(self) -> Optional[Line]:
        """The selected line as listed on the current station, or None."""
        station = self.current_station.value
        if station is None or self.selected_line_id is None:
            return None
        return station.line(self.selected_line_id)

    @property
    def outbound_terminal(self) -> Optional[Station]:
        return terminals(self.fetched_stations.value)[0]

    @property
    def inbound_terminal(self) -> Optional[Station]:
        return terminals(self.fetched_stations.value)[1]
