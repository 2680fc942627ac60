"""
GPSD Location Provider

Real positioning through the gpsd daemon (gpsd-py3). Continuous updates
are produced by one polling thread per registered listener.
"""

from typing import Optional, Dict
import threading
from loguru import logger

from .base import (
    LocationProvider, LocationListener, LocationRequest, RawLocation, ProviderKind
)

try:
    import gpsd
    GPSD_AVAILABLE = True
except ImportError:
    gpsd = None
    GPSD_AVAILABLE = False


class _Poller:
    """Polling loop feeding one listener"""

    def __init__(self, provider: 'GpsdLocationProvider', request: LocationRequest,
                 listener: LocationListener):
        self.listener = listener
        self._provider = provider
        self._interval_s = request.interval_ms / 1000
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        # Not joined: the listener may be holding a lock this thread waits on
        self._stop.set()

    def _run(self) -> None:
        while not self._stop.is_set():
            try:
                location = self._provider.read_current()
            except Exception as e:
                logger.error(f"GPSD update error: {e}")
                self.listener.on_failure(e)
                return
            if location is not None and not self._stop.is_set():
                self.listener.on_locations([location])
            self._stop.wait(self._interval_s)


class GpsdLocationProvider(LocationProvider):
    """
    Location provider backed by a gpsd daemon.

    GPS counts as enabled while the daemon is reachable; network
    positioning is not available through gpsd.
    """

    def __init__(self, host: str = "localhost", port: int = 2947):
        if not GPSD_AVAILABLE:
            raise ImportError("GPSD support not available (gpsd-py3 not installed)")
        self.host = host
        self.port = port
        self._connected = False
        self._last_location: Optional[RawLocation] = None
        self._pollers: Dict[LocationListener, _Poller] = {}
        self._lock = threading.Lock()

    def connect(self) -> bool:
        """Connect to the daemon if not connected yet"""
        if self._connected:
            return True
        try:
            gpsd.connect(host=self.host, port=self.port)
            self._connected = True
            logger.info(f"Connected to GPSD at {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to connect to GPSD: {e}")
            self._connected = False
        return self._connected

    def read_current(self) -> Optional[RawLocation]:
        """Read the current fix; None while the receiver has no 2D fix"""
        if not self.connect():
            raise ConnectionError(f"GPSD not reachable at {self.host}:{self.port}")

        packet = gpsd.get_current()
        if packet.mode < 2:
            return None

        error = getattr(packet, 'error', None) or {}
        accuracy = max(error.get('x', 0.0), error.get('y', 0.0))
        try:
            time_ms = int(packet.get_time().timestamp() * 1000)
        except Exception:
            time_ms = 0

        location = RawLocation(
            latitude=packet.lat,
            longitude=packet.lon,
            accuracy=float(accuracy),
            provider="gps",
            time_ms=time_ms,
            is_mock=False,
        )
        self._last_location = location
        return location

    def last_location(self) -> Optional[RawLocation]:
        if self._last_location is None and self._connected:
            return self.read_current()
        return self._last_location

    def request_updates(self, request: LocationRequest, listener: LocationListener) -> None:
        if not self.connect():
            raise ConnectionError(f"GPSD not reachable at {self.host}:{self.port}")
        poller = _Poller(self, request, listener)
        with self._lock:
            previous = self._pollers.pop(listener, None)
            self._pollers[listener] = poller
        if previous:
            previous.stop()
        poller.start()

    def remove_updates(self, listener: LocationListener) -> None:
        with self._lock:
            poller = self._pollers.pop(listener, None)
        if poller:
            poller.stop()

    def is_provider_enabled(self, kind: ProviderKind) -> bool:
        if kind == ProviderKind.GPS:
            return self.connect()
        return False

    def settings_target(self) -> str:
        return f"gpsd://{self.host}:{self.port}"
