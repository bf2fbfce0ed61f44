"""Position fix accuracy gating."""

import logging
from typing import Optional

from .config import BAD_ACCURACY_THRESHOLD_M
from .models import Coordinates

logger = logging.getLogger(__name__)


def is_accuracy_bad(
    fix: Optional[Coordinates],
    dismissed: bool,
    threshold_m: float = BAD_ACCURACY_THRESHOLD_M,
) -> bool:
    """
    Decide whether a fix is too inaccurate to rely on.

    Args:
        fix: Latest fix, or None if none has been received.
        dismissed: True once the warning was dismissed by the rider.
        threshold_m: Accuracy radius above which the fix is bad.

    Returns:
        True iff a fix exists, the gate is not dismissed and the fix
        reports an accuracy above the threshold.
    """
    if fix is None:
        return False
    if dismissed:
        return False
    # A zero accuracy is treated as unreported
    if not fix.accuracy:
        return False
    return fix.accuracy > threshold_m


class AccuracyGate:
    """Tracks the latest fix and the one-way dismissal of the accuracy warning."""

    def __init__(self, threshold_m: float = BAD_ACCURACY_THRESHOLD_M):
        self.threshold_m = threshold_m
        self.fix: Optional[Coordinates] = None
        self._dismissed = False

    @property
    def dismissed(self) -> bool:
        return self._dismissed

    def observe(self, fix: Coordinates) -> None:
        self.fix = fix

    def dismiss(self) -> None:
        """Silence the warning for the rest of the session. There is no re-arm."""
        if not self._dismissed:
            logger.info("Bad accuracy warning dismissed")
        self._dismissed = True

    @property
    def is_bad(self) -> bool:
        return is_accuracy_bad(self.fix, self._dismissed, self.threshold_m)
