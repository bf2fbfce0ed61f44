"""Replay a recorded ride and log what the display would show after each fix."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add src to path so we can import linetrack
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from linetrack import Direction, TrackingConfig, TrackingSession, load_config
from linetrack.geodesy import hubeny_distance
from linetrack.replay import StaticStationCatalog, load_fixes_csv, load_stations_csv, replay_fixes

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"


def describe(session: TrackingSession) -> str:
    """One-line summary of the derived views."""
    window = " > ".join(s.name for s in session.window) or "(no window)"
    label = session.next_label.value if session.next_label else "-"
    flags = " [BAD ACCURACY]" if session.bad_accuracy else ""
    return f"{session.header_content.value:<15} {label:<11} {window}{flags}"


async def replay(args: argparse.Namespace) -> None:
    config = load_config(args.config) if args.config else TrackingConfig()
    stations = load_stations_csv(args.stations)
    fixes = load_fixes_csv(args.ride)
    catalog = StaticStationCatalog(stations, hubeny_distance)

    async with TrackingSession(catalog, hubeny_distance, config) as session:
        session.start()
        session.current_station.subscribe(
            lambda station: logger.info(f"Now at {station.name}") if station else None
        )
        session.select_line(args.line)
        # Let the station list arrive before the bound is chosen
        await asyncio.sleep(0.1)

        direction = Direction[args.direction]
        bound = session.inbound_terminal if direction is Direction.INBOUND else session.outbound_terminal
        if bound is None:
            logger.error(f"No stations for line {args.line}")
            return
        session.select_bound(direction, bound)

        for fix in fixes:
            session.on_fix(fix)
            await asyncio.sleep(args.delay)
            print(describe(session))

        if args.linger > 0:
            # Watch the header rotate after the ride ends
            for _ in range(int(args.linger / config.header_interval_sec)):
                await asyncio.sleep(config.header_interval_sec)
                print(describe(session))


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--stations", default=str(DATA_DIR / "stations.csv"))
    parser.add_argument("--ride", default=str(DATA_DIR / "ride.csv"))
    parser.add_argument("--line", type=int, default=11302)
    parser.add_argument("--direction", choices=[d.name for d in Direction], default="OUTBOUND")
    parser.add_argument("--delay", type=float, default=0.2, help="Seconds between fixes")
    parser.add_argument("--linger", type=float, default=0.0, help="Seconds to keep running after the ride")
    parser.add_argument("--config", help="Optional tracking config JSON")
    args = parser.parse_args()

    try:
        asyncio.run(replay(args))
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nStopped by user.")


if __name__ == "__main__":
    main()
