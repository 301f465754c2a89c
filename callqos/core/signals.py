"""
Observable values with synchronous change notification.

Signal sources and the aggregated health level are exposed as Observables.
Setting a value notifies subscribers in registration order, on the caller's
stack, only when the value actually changes.
"""

import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

ChangeCallback = Callable[[T, T], None]


class Observable(Generic[T]):
    """
    A value holder that notifies subscribers on change.

    Subscribers receive (new_value, old_value). A subscriber that raises is
    logged and skipped; remaining subscribers are still notified.
    """

    def __init__(self, value: T):
        self._value = value
        self._subscribers: List[ChangeCallback] = []

    @property
    def value(self) -> T:
        return self._value

    @value.setter
    def value(self, new_value: T):
        self.set(new_value)

    def set(self, new_value: T) -> bool:
        """Set the value. Returns True if subscribers were notified."""
        old_value = self._value
        if new_value == old_value:
            return False
        self._value = new_value
        for callback in list(self._subscribers):
            try:
                callback(new_value, old_value)
            except Exception as e:
                logger.error(f"Observable subscriber error: {e}")
        return True

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """Register a change callback. Returns a function that detaches it."""
        self._subscribers.append(callback)

        def unsubscribe():
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __repr__(self) -> str:
        return f"Observable({self._value!r})"
