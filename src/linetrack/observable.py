"""Last-value cell with change notification."""

import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ObservableCell(Generic[T]):
    """
    Holds one current value and notifies subscribers when it is replaced.

    Subscribers are called synchronously, in registration order, with the
    new value. A failing subscriber is logged and skipped so the others
    still see the update.
    """

    def __init__(self, initial: T):
        self._value = initial
        self._subscribers: List[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception as e:
                logger.error(f"Subscriber {callback!r} failed: {e}", exc_info=True)

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register a change callback.

        Args:
            callback: Called with each new value.

        Returns:
            A function that removes the callback. Calling it twice is harmless.
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe
