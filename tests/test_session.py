"""Tests for TrackingSession."""

import asyncio
import unittest
import sys
from pathlib import Path
from typing import Dict, List

# Add src to path so we can import linetrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from linetrack.config import TrackingConfig
from linetrack.models import Coordinates, Direction, HeaderContent, Line, ProximityLabel, Station
from linetrack.replay import replay_fixes
from linetrack.session import TrackingSession

LINEAR_LINE = 5
LOOP_LINE = 11302


def make_line(line_id: int, count: int, first_group_id: int) -> List[Station]:
    return [
        Station(
            group_id=first_group_id + i,
            name=f"L{line_id}-{i}",
            latitude=35.0 + i * 0.01,
            longitude=139.0,
            lines=frozenset({Line(id=line_id, color_code="80C241")}),
        )
        for i in range(count)
    ]


class FakeCatalog:
    """Catalog double with controllable results and optional gates."""

    def __init__(self, lines: Dict[int, List[Station]]):
        self.lines = lines
        self.nearest = None
        self.nearest_calls = []
        self.gates: Dict[int, asyncio.Event] = {}
        self.failing_lines = set()

    async def fetch_nearest_station(self, latitude, longitude):
        self.nearest_calls.append((latitude, longitude))
        if isinstance(self.nearest, Exception):
            raise self.nearest
        return self.nearest

    async def fetch_stations_by_line_id(self, line_id):
        gate = self.gates.get(line_id)
        if gate is not None:
            await gate.wait()
        if line_id in self.failing_lines:
            raise ConnectionError(f"line {line_id} unavailable")
        return self.lines[line_id]


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


def at(station: Station, distance: float = 0.1) -> Station:
    """Copy of a station as the catalog would report it from nearby."""
    return Station(
        group_id=station.group_id,
        name=station.name,
        latitude=station.latitude,
        longitude=station.longitude,
        lines=station.lines,
        distance=distance,
    )


class TestTrackingSession(unittest.IsolatedAsyncioTestCase):
    """Test the session's handlers and derived views."""

    async def asyncSetUp(self):
        self.linear = make_line(LINEAR_LINE, 12, 100)
        self.loop = make_line(LOOP_LINE, 29, 200)
        self.catalog = FakeCatalog({LINEAR_LINE: self.linear, LOOP_LINE: self.loop})
        self.distance_m = 1000.0
        self.session = TrackingSession(self.catalog, lambda a, b: self.distance_m)
        self.session.start()

    async def asyncTearDown(self):
        self.session.stop()

    async def ride_to(self, station: Station, accuracy: float = 10.0):
        self.catalog.nearest = at(station)
        self.session.on_fix(Coordinates(station.latitude, station.longitude, accuracy))
        await settle()

    async def test_initial_views(self):
        """Test views before any event."""
        self.assertIsNone(self.session.current_station.value)
        self.assertEqual(self.session.current_index, -1)
        self.assertEqual(self.session.window, [])
        self.assertIsNone(self.session.next_label)
        self.assertFalse(self.session.bad_accuracy)
        self.assertFalse(self.session.is_loop_line)
        self.assertEqual(self.session.header_content, HeaderContent.CURRENT_STATION)
        self.assertIsNone(self.session.current_line)
        self.assertIsNone(self.session.outbound_terminal)

    async def test_fix_without_line_accepts_nearest(self):
        """Test fix without line accepts nearest."""
        await self.ride_to(self.linear[3])
        self.assertEqual(self.session.current_station.value.group_id, self.linear[3].group_id)
        self.assertEqual(self.catalog.nearest_calls, [(self.linear[3].latitude, self.linear[3].longitude)])

    async def test_end_to_end_linear_outbound(self):
        """Test end to end linear outbound."""
        self.session.select_line(LINEAR_LINE)
        await settle()
        await self.ride_to(self.linear[3])
        self.session.select_bound(Direction.OUTBOUND, self.linear[0])

        self.assertEqual(self.session.current_index, 3)
        self.assertEqual(
            [s.group_id for s in self.session.window],
            [self.linear[i].group_id for i in (3, 2, 1, 0)],
        )
        self.assertEqual(self.session.next_label, ProximityLabel.NEXT)
        self.distance_m = 200.0
        self.assertEqual(self.session.next_label, ProximityLabel.APPROACHING)
        self.assertTrue(self.session.header.running)

    async def test_loop_line_wraps(self):
        """Test loop line wraps."""
        self.session.select_line(LOOP_LINE)
        await settle()
        await self.ride_to(self.loop[0])
        self.session.select_bound(Direction.INBOUND, self.loop[-1])

        self.assertTrue(self.session.is_loop_line)
        expected = [self.loop[0]] + list(reversed(self.loop))[:6]
        self.assertEqual([s.group_id for s in self.session.window], [s.group_id for s in expected])

    async def test_selected_line_filters_candidates(self):
        """Test selected line filters candidates."""
        self.session.select_line(LINEAR_LINE)
        await settle()
        await self.ride_to(self.linear[2])

        # Nearby station on another line is ignored
        await self.ride_to(self.loop[0])
        self.assertEqual(self.session.current_station.value.group_id, self.linear[2].group_id)

        # Station on the line but still too far is ignored
        self.catalog.nearest = at(self.linear[3], distance=0.5)
        self.session.on_fix(Coordinates(35.0, 139.0, 10.0))
        await settle()
        self.assertEqual(self.session.current_station.value.group_id, self.linear[2].group_id)

    async def test_nearest_lookup_failure_keeps_current(self):
        """Test nearest lookup failure keeps current."""
        await self.ride_to(self.linear[1])
        self.catalog.nearest = ConnectionError("offline")
        with self.assertLogs("linetrack.session", level="WARNING"):
            self.session.on_fix(Coordinates(35.0, 139.0, 10.0))
            await settle()
        self.assertEqual(self.session.current_station.value.group_id, self.linear[1].group_id)

    async def test_line_fetch_failure_keeps_stations(self):
        """Test line fetch failure keeps stations."""
        self.session.select_line(LINEAR_LINE)
        await settle()
        self.catalog.failing_lines.add(LOOP_LINE)
        with self.assertLogs("linetrack.session", level="WARNING"):
            self.session.select_line(LOOP_LINE)
            await settle()
        self.assertEqual(self.session.fetched_stations.value, self.linear)
        self.assertEqual(self.session.selected_line_id, LOOP_LINE)

    async def test_stale_fetch_is_discarded(self):
        """Test stale fetch is discarded."""
        gate = asyncio.Event()
        self.catalog.gates[LINEAR_LINE] = gate

        self.session.select_line(LINEAR_LINE)
        await settle()
        self.session.select_line(LOOP_LINE)
        await settle()
        self.assertEqual(self.session.fetched_stations.value, self.loop)

        gate.set()
        await settle()
        self.assertEqual(self.session.fetched_stations.value, self.loop)

    async def test_reselecting_same_line_applies_latest_fetch_only(self):
        """Test reselecting same line applies latest fetch only."""
        gate = asyncio.Event()
        self.catalog.gates[LINEAR_LINE] = gate
        updates = []
        self.session.fetched_stations.subscribe(updates.append)

        self.session.select_line(LINEAR_LINE)
        self.session.select_line(LINEAR_LINE)
        await settle()
        gate.set()
        await settle()
        self.assertEqual(len(updates), 1)

    async def test_bound_selection_restarts_single_timer(self):
        """Test bound selection restarts single timer."""
        self.session.select_line(LINEAR_LINE)
        await settle()
        self.session.select_bound(Direction.INBOUND, self.linear[-1])
        first = self.session.header._task
        self.session.select_bound(Direction.OUTBOUND, self.linear[0])
        await settle()

        self.assertTrue(first.cancelled())
        self.assertTrue(self.session.header.running)
        self.assertEqual(self.session.bound_direction, Direction.OUTBOUND)
        self.assertIs(self.session.bound_station, self.linear[0])

    async def test_header_stays_on_current_with_single_station_window(self):
        """Test header stays on current with single station window."""
        self.session.select_line(LINEAR_LINE)
        await settle()
        await self.ride_to(self.linear[0])
        self.session.select_bound(Direction.OUTBOUND, self.linear[0])
        self.assertEqual(len(self.session.window), 1)
        for _ in range(4):
            self.assertEqual(self.session.header.tick(), HeaderContent.CURRENT_STATION)

    async def test_bad_accuracy_and_dismissal(self):
        """Test bad accuracy and dismissal."""
        await self.ride_to(self.linear[0], accuracy=1500.0)
        self.assertTrue(self.session.bad_accuracy)
        self.session.dismiss_bad_accuracy()
        self.assertFalse(self.session.bad_accuracy)
        await self.ride_to(self.linear[1], accuracy=5000.0)
        self.assertFalse(self.session.bad_accuracy)

    async def test_current_line_and_terminals(self):
        """Test current line and terminals."""
        self.session.select_line(LINEAR_LINE)
        await settle()
        await self.ride_to(self.linear[4])
        self.assertEqual(self.session.current_line, Line(id=LINEAR_LINE, color_code="80C241"))
        self.assertIs(self.session.outbound_terminal, self.linear[0])
        self.assertIs(self.session.inbound_terminal, self.linear[-1])

    async def test_older_fix_result_does_not_overwrite_newer(self):
        """Test that a slow lookup for an earlier fix is discarded."""
        first_gate = asyncio.Event()
        results = {1.0: at(self.linear[1]), 2.0: at(self.linear[2])}

        async def fetch_nearest_station(latitude, longitude):
            if latitude == 1.0:
                await first_gate.wait()
            return results[latitude]

        self.catalog.fetch_nearest_station = fetch_nearest_station
        self.session.on_fix(Coordinates(1.0, 139.0, 10.0))
        self.session.on_fix(Coordinates(2.0, 139.0, 10.0))
        await settle()
        self.assertEqual(self.session.current_station.value.group_id, self.linear[2].group_id)

        first_gate.set()
        await settle()
        self.assertEqual(self.session.current_station.value.group_id, self.linear[2].group_id)

    async def test_failing_position_stream_is_logged(self):
        """Test that an error raised by the position stream is logged."""
        async def broken():
            yield Coordinates(35.0, 139.0, 10.0)
            raise OSError("receiver disconnected")

        self.catalog.nearest = at(self.linear[0])
        with self.assertLogs("linetrack.session", level="ERROR") as logs:
            self.session.start(broken())
            await settle()
        self.assertIn("receiver disconnected", "\n".join(logs.output))
        self.assertEqual(self.session.current_station.value.group_id, self.linear[0].group_id)

    async def test_position_stream(self):
        """Test fixes consumed from a position stream."""
        self.catalog.nearest = at(self.linear[6])
        self.session.start(replay_fixes([Coordinates(35.06, 139.0, 8.0)] * 3))
        await settle()
        self.assertEqual(len(self.catalog.nearest_calls), 3)
        self.assertEqual(self.session.current_station.value.group_id, self.linear[6].group_id)
        self.assertEqual(self.session.coordinates, Coordinates(35.06, 139.0, 8.0))


class TestTrackingSessionLifecycle(unittest.IsolatedAsyncioTestCase):
    """Test teardown of the session's subscriptions."""

    async def asyncSetUp(self):
        self.stations = make_line(LINEAR_LINE, 5, 100)
        self.catalog = FakeCatalog({LINEAR_LINE: self.stations})
        self.session = TrackingSession(self.catalog, lambda a, b: 0.0, TrackingConfig(header_interval_sec=0.01))

    async def test_stop_cancels_in_flight_fetch(self):
        """Test that stop cancels an in-flight fetch."""
        gate = asyncio.Event()
        self.catalog.gates[LINEAR_LINE] = gate
        self.session.start()
        self.session.select_line(LINEAR_LINE)
        await settle()

        self.session.stop()
        gate.set()
        await settle()
        self.assertEqual(self.session.fetched_stations.value, [])

    async def test_stop_releases_stream_and_timer(self):
        """Test stop releases stream and timer."""
        stream_closed = asyncio.Event()

        async def endless():
            try:
                while True:
                    yield Coordinates(35.0, 139.0, 10.0)
                    await asyncio.sleep(0.01)
            finally:
                stream_closed.set()

        self.catalog.nearest = at(self.stations[0])
        self.session.start(endless())
        self.session.select_bound(Direction.INBOUND, self.stations[-1])
        await asyncio.sleep(0.03)

        self.session.stop()
        await asyncio.wait_for(stream_closed.wait(), timeout=1.0)
        self.assertFalse(self.session.header.running)
        self.assertTrue(self.session.stopped)

        calls = len(self.catalog.nearest_calls)
        await asyncio.sleep(0.03)
        self.assertEqual(len(self.catalog.nearest_calls), calls)

    async def test_commands_after_stop_are_ignored(self):
        """Test commands after stop are ignored."""
        self.session.start()
        self.session.stop()
        self.session.stop()
        self.session.select_line(LINEAR_LINE)
        self.session.on_fix(Coordinates(35.0, 139.0, 5000.0))
        self.session.select_bound(Direction.INBOUND, self.stations[0])
        await settle()

        self.assertIsNone(self.session.selected_line_id)
        self.assertIsNone(self.session.coordinates)
        self.assertIsNone(self.session.bound_direction)
        self.assertFalse(self.session.header.running)
        with self.assertRaises(RuntimeError):
            self.session.start()

    async def test_context_manager(self):
        """Test async context manager teardown."""
        async with TrackingSession(self.catalog, lambda a, b: 0.0) as session:
            session.start()
            session.select_line(LINEAR_LINE)
            await settle()
            self.assertEqual(session.fetched_stations.value, self.stations)
        self.assertTrue(session.stopped)


if __name__ == "__main__":
    unittest.main()
