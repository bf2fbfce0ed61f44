"""Static classification of loop (circular) lines."""

from typing import AbstractSet, Optional

# 11302: Yamanote Line, 11623: Osaka Loop Line
LOOP_LINE_IDS = frozenset({11302, 11623})


def is_loop_line(line_id: Optional[int], loop_line_ids: AbstractSet[int] = LOOP_LINE_IDS) -> bool:
    """
    Check whether a line is a loop line.

    Args:
        line_id: Line identifier, or None when no line is selected.
        loop_line_ids: Allow-list of loop line ids.

    Returns:
        True only for ids in the allow-list.
    """
    if line_id is None:
        return False
    return line_id in loop_line_ids
