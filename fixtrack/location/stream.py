"""
Fix Stream Controller

This module turns the callback-based provider interface into fix sequences:
a one-shot read of the cached location, and a cancellable continuous
subscription.

Example usage:
    controller = FixStreamController(provider, ReadinessMonitor(provider, permissions))

    for fix in controller.last_known_fix():
        print(fix.latitude, fix.longitude)

    subscription = controller.continuous_fixes(5000).subscribe(on_fix=print)
    ...
    subscription.cancel()
"""

from typing import Optional, Callable, Iterator
import queue
import threading
from loguru import logger

from .base import (
    Fix,
    LocationListener,
    LocationProvider,
    LocationRequest,
    LocationPermissionError,
    ProviderUnavailableError,
    ListenerFailureError,
)
from .readiness import ReadinessMonitor


DEFAULT_INTERVAL_MS = 5000

_END = object()


class FixSubscription(LocationListener):
    """
    An active registration with the location provider.

    Fixes are pushed to on_fix when given, otherwise queued for iteration.
    Delivery and cancel() share one lock, so when cancel() returns the
    provider listener is removed and no fix is in flight.
    """

    def __init__(
        self,
        provider: LocationProvider,
        request: LocationRequest,
        on_fix: Optional[Callable[[Fix], None]] = None,
        on_error: Optional[Callable[[ListenerFailureError], None]] = None
    ):
        self._provider = provider
        self._request = request
        self._on_fix = on_fix
        self._on_error = on_error

        self._queue: "queue.Queue" = queue.Queue()
        self._lock = threading.RLock()
        self._active = False
        self._finished = False
        self.delivered = 0

    @property
    def request(self) -> LocationRequest:
        return self._request

    @property
    def is_active(self) -> bool:
        """True while the provider listener is registered"""
        return self._active

    def _register(self) -> None:
        with self._lock:
            self._active = True
            try:
                self._provider.request_updates(self._request, self)
            except Exception as e:
                self._active = False
                self._finished = True
                logger.error(f"Error al solicitar actualizaciones: {e}")
                raise ListenerFailureError(f"Error al solicitar actualizaciones: {e}") from e
        logger.debug(f"Location updates requested every {self._request.interval_ms} ms")

    def _deregister(self) -> None:
        self._active = False
        try:
            self._provider.remove_updates(self)
        except Exception as e:
            logger.warning(f"Error removing location listener: {e}")

    def on_locations(self, batch) -> None:
        """Surface the latest fix of a delivery batch"""
        with self._lock:
            if not self._active or not batch:
                return
            fix = Fix.from_raw(batch[-1])
            self.delivered += 1
            if self._on_fix is not None:
                try:
                    self._on_fix(fix)
                except Exception as e:
                    logger.error(f"Fix callback error: {e}")
            else:
                self._queue.put(fix)

    def on_failure(self, error: Exception) -> None:
        """Terminate the subscription with a ListenerFailureError"""
        with self._lock:
            if not self._active:
                return
            self._deregister()
            failure = ListenerFailureError(f"Error al obtener ubicación: {error}")
            failure.__cause__ = error
            logger.error(str(failure))
            if self._on_error is not None:
                try:
                    self._on_error(failure)
                except Exception as e:
                    logger.error(f"Error callback error: {e}")
            else:
                self._queue.put(failure)

    def cancel(self) -> None:
        """Stop updates. Safe to call repeatedly and from any thread."""
        with self._lock:
            if self._finished:
                return
            self._finished = True
            if self._active:
                logger.debug("Deteniendo actualizaciones de ubicación")
                self._deregister()
            self._queue.put(_END)

    def __iter__(self) -> Iterator[Fix]:
        return self

    def __next__(self) -> Fix:
        while True:
            if self._finished and self._queue.empty():
                raise StopIteration
            item = self._queue.get()
            if item is _END:
                raise StopIteration
            with self._lock:
                if self._finished and not isinstance(item, ListenerFailureError):
                    raise StopIteration
            if isinstance(item, ListenerFailureError):
                self._finished = True
                raise item
            return item

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cancel()


class FixSequence:
    """
    Cold, restartable sequence of continuous fixes.

    Each subscribe() checks the prerequisites again and issues a fresh
    request to the provider.
    """

    def __init__(self, controller: 'FixStreamController', interval_ms: int):
        self._controller = controller
        self.request = LocationRequest.for_interval(interval_ms)

    def subscribe(
        self,
        on_fix: Optional[Callable[[Fix], None]] = None,
        on_error: Optional[Callable[[ListenerFailureError], None]] = None
    ) -> FixSubscription:
        """
        Start receiving fixes.

        Raises:
            LocationPermissionError: No location capability granted
            ProviderUnavailableError: GPS and network both disabled
            ListenerFailureError: The provider rejected the request
        """
        self._controller.ensure_ready()
        subscription = FixSubscription(
            self._controller.provider, self.request, on_fix=on_fix, on_error=on_error
        )
        subscription._register()
        return subscription

    def __iter__(self) -> Iterator[Fix]:
        return self.subscribe()


class FixStreamController:
    """Produces fix sequences from a location provider"""

    def __init__(self, provider: LocationProvider, readiness: ReadinessMonitor):
        self.provider = provider
        self.readiness = readiness

    def ensure_ready(self) -> None:
        """Raise if continuous updates cannot be requested right now"""
        if not self.readiness.has_permission():
            raise LocationPermissionError("No hay permisos de ubicación")
        if not self.readiness.is_any_provider_enabled():
            raise ProviderUnavailableError("GPS y Red desactivados")

    def last_known_fix(self) -> Iterator[Fix]:
        """
        Yield the provider's cached fix, if any.

        Raises:
            LocationPermissionError: No location capability granted
            ListenerFailureError: The provider failed to answer
        """
        if not self.readiness.has_permission():
            raise LocationPermissionError("No hay permisos de ubicación")

        try:
            raw = self.provider.last_location()
        except Exception as e:
            logger.error(f"Error al obtener última ubicación: {e}")
            raise ListenerFailureError(f"Error al obtener última ubicación: {e}") from e

        if raw is not None:
            yield Fix.from_raw(raw)

    def continuous_fixes(self, interval_ms: int = DEFAULT_INTERVAL_MS) -> FixSequence:
        """
        Build a continuous fix sequence.

        Args:
            interval_ms: Desired update interval in milliseconds (> 0)

        Returns:
            FixSequence; nothing is requested until it is subscribed to
        """
        return FixSequence(self, interval_ms)
