"""Deduplication of concurrent upstream fetches."""
import threading
from concurrent.futures import Future
from typing import Callable, Optional, TypeVar

T = TypeVar('T')


class SingleFlight:
    """
    Runs at most one call at a time; concurrent callers share its result.

    The first caller runs the function. Callers arriving while it is in
    flight block on a shared future and are woken as soon as it settles,
    receiving the same result or exception.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._in_flight: Optional[Future] = None

    @property
    def in_flight(self) -> bool:
        with self._lock:
            return self._in_flight is not None

    def do(self, fn: Callable[[], T]) -> T:
        with self._lock:
            future = self._in_flight
            leader = future is None
            if leader:
                future = Future()
                self._in_flight = future

        if not leader:
            return future.result()

        try:
            result = fn()
        except BaseException as e:
            self._settle(future, exception=e)
            raise
        self._settle(future, result=result)
        return result

    def _settle(self, future: Future, result=None, exception=None) -> None:
        with self._lock:
            self._in_flight = None
        if exception is not None:
            future.set_exception(exception)
        else:
            future.set_result(result)
