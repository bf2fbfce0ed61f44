"""Tracking thresholds and their JSON configuration loader."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Union

from .topology import LOOP_LINE_IDS

logger = logging.getLogger(__name__)

HEADER_INTERVAL_SEC = 5.0
APPROACHING_THRESHOLD_M = 750.0
ARRIVED_THRESHOLD_KM = 0.5
BAD_ACCURACY_THRESHOLD_M = 1000.0


@dataclass(frozen=True)
class TrackingConfig:
    """Thresholds and timings used by a tracking session."""
    header_interval_sec: float = HEADER_INTERVAL_SEC
    approaching_threshold_m: float = APPROACHING_THRESHOLD_M
    arrived_threshold_km: float = ARRIVED_THRESHOLD_KM
    bad_accuracy_threshold_m: float = BAD_ACCURACY_THRESHOLD_M
    loop_line_ids: FrozenSet[int] = LOOP_LINE_IDS


_POSITIVE_FLOAT_KEYS = (
    "header_interval_sec",
    "approaching_threshold_m",
    "arrived_threshold_km",
    "bad_accuracy_threshold_m",
)


def _positive_float(raw: Dict[str, Any], key: str) -> float:
    try:
        value = float(raw[key])
    except (TypeError, ValueError):
        raise ValueError(f"tracking.{key} must be a number, got {raw[key]!r}")
    if value <= 0:
        raise ValueError(f"tracking.{key} must be > 0")
    return value


def _loop_line_ids(raw: Any) -> FrozenSet[int]:
    if not isinstance(raw, list):
        raise ValueError("tracking.loop_line_ids must be a list of line ids")
    ids = set()
    for i, line_id in enumerate(raw):
        # bool is an int subclass but never a line id
        if isinstance(line_id, bool) or not isinstance(line_id, (int, str)):
            raise ValueError(f"tracking.loop_line_ids[{i}] is not a line id: {line_id!r}")
        try:
            ids.add(int(line_id))
        except ValueError:
            raise ValueError(f"tracking.loop_line_ids[{i}] is not a line id: {line_id!r}")
    return frozenset(ids)


def load_config(path: Union[str, Path]) -> TrackingConfig:
    """
    Load tracking configuration from a JSON file.

    The file holds a single "tracking" object; every key is optional and
    falls back to the module default.

    Args:
        path: Path to the JSON file.

    Returns:
        TrackingConfig instance.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the content is malformed or a value is out of range.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Config file not found: {p.resolve()}")

    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {p}: {e}")

    if not isinstance(raw, dict):
        raise ValueError("Config root must be an object")
    tracking = raw.get("tracking", {})
    if not isinstance(tracking, dict):
        raise ValueError("'tracking' must be an object")

    values: Dict[str, Any] = {}
    for key in _POSITIVE_FLOAT_KEYS:
        if key in tracking:
            values[key] = _positive_float(tracking, key)
    if "loop_line_ids" in tracking:
        values["loop_line_ids"] = _loop_line_ids(tracking["loop_line_ids"])

    unknown = set(tracking) - set(_POSITIVE_FLOAT_KEYS) - {"loop_line_ids"}
    if unknown:
        logger.warning(f"Ignoring unknown tracking keys: {sorted(unknown)}")

    config = TrackingConfig(**values)
    logger.info(f"Loaded tracking config from {p}")
    return config
