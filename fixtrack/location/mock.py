"""
Mock Location Provider Implementation

This module provides a simulated location provider for testing and
development without positioning hardware. Locations can be pushed by hand
with emit(), or generated by a background random walk.
"""

from typing import Optional, List, Dict
import random
import threading
import time
from loguru import logger

from .base import (
    LocationProvider, LocationListener, LocationRequest, RawLocation, ProviderKind
)


class MockLocationProvider(LocationProvider):
    """
    Mock location provider for testing without hardware.

    Useful for:
    - Development and testing without a GPS receiver
    - Demonstrating the system
    - Unit testing
    """

    def __init__(
        self,
        default_lat: float = 19.4326,
        default_lon: float = -99.1332,
        gps_enabled: bool = True,
        network_enabled: bool = True
    ):
        """
        Initialize mock provider.

        Args:
            default_lat: Latitude the random walk starts from
            default_lon: Longitude the random walk starts from
            gps_enabled: Initial GPS availability
            network_enabled: Initial network availability
        """
        self._enabled: Dict[ProviderKind, bool] = {
            ProviderKind.GPS: gps_enabled,
            ProviderKind.NETWORK: network_enabled,
        }
        self._enabled_errors: Dict[ProviderKind, Exception] = {}
        self._last_location: Optional[RawLocation] = None
        self._last_location_error: Optional[Exception] = None
        self._request_error: Optional[Exception] = None
        self._listeners: Dict[LocationListener, LocationRequest] = {}
        self._lock = threading.Lock()

        self._default = (default_lat, default_lon)
        self._is_running = False
        self._update_thread: Optional[threading.Thread] = None

        logger.info("Mock location provider initialized")

    # Capability interface
    def last_location(self) -> Optional[RawLocation]:
        if self._last_location_error is not None:
            raise self._last_location_error
        return self._last_location

    def request_updates(self, request: LocationRequest, listener: LocationListener) -> None:
        if self._request_error is not None:
            raise self._request_error
        with self._lock:
            self._listeners[listener] = request
        logger.debug(f"Mock listener registered ({len(self._listeners)} active)")

    def remove_updates(self, listener: LocationListener) -> None:
        with self._lock:
            self._listeners.pop(listener, None)

    def is_provider_enabled(self, kind: ProviderKind) -> bool:
        if kind in self._enabled_errors:
            raise self._enabled_errors[kind]
        return self._enabled.get(kind, False)

    def settings_target(self) -> str:
        return "mock://settings/location"

    # Test controls
    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._listeners)

    @property
    def requests(self) -> List[LocationRequest]:
        with self._lock:
            return list(self._listeners.values())

    def set_provider_enabled(self, kind: ProviderKind, enabled: bool) -> None:
        self._enabled[kind] = enabled
        self._enabled_errors.pop(kind, None)

    def set_provider_error(self, kind: ProviderKind, error: Exception) -> None:
        """Make availability queries for kind raise error"""
        self._enabled_errors[kind] = error

    def set_last_location(self, location: Optional[RawLocation]) -> None:
        self._last_location = location
        self._last_location_error = None

    def set_last_location_error(self, error: Optional[Exception]) -> None:
        self._last_location_error = error

    def set_request_error(self, error: Optional[Exception]) -> None:
        """Make the next request_updates() calls raise error"""
        self._request_error = error

    def emit(self, *batch: RawLocation) -> None:
        """Deliver one batch to every registered listener"""
        if not batch:
            return
        self._last_location = batch[-1]
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener.on_locations(list(batch))

    def fail(self, error: Exception) -> None:
        """Report a delivery failure to every registered listener"""
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener.on_failure(error)

    # Simulation
    def start(self, interval_s: float = 1.0) -> bool:
        """Start simulated movement around the default position"""
        if self._is_running:
            return True

        self._is_running = True
        self._update_thread = threading.Thread(
            target=self._simulation_loop,
            args=(interval_s,),
            daemon=True
        )
        self._update_thread.start()

        logger.info("Mock location simulation started")
        return True

    def stop(self) -> None:
        """Stop simulated movement"""
        self._is_running = False

        if self._update_thread and self._update_thread.is_alive():
            self._update_thread.join(timeout=2.0)
        self._update_thread = None

        logger.info("Mock location simulation stopped")

    def _simulation_loop(self, interval_s: float) -> None:
        """Background thread producing a small random walk"""
        while self._is_running:
            self.emit(self._next_simulated())
            time.sleep(interval_s)

    def _next_simulated(self) -> RawLocation:
        if self._last_location is not None:
            lat, lon = self._last_location.latitude, self._last_location.longitude
        else:
            lat, lon = self._default

        gps = self._enabled.get(ProviderKind.GPS, False)
        return RawLocation(
            latitude=lat + random.gauss(0, 0.00001),
            longitude=lon + random.gauss(0, 0.00001),
            accuracy=round(random.uniform(3.0, 8.0), 1) if gps else 25.0,
            provider="gps" if gps else "network",
            is_mock=True,
        )

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.stop()
