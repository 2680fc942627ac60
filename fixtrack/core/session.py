"""
Session Coordinator

This module drives a tracking session: it reacts to permission signals and
manual refreshes, keeps a single fix subscription alive, writes every fix
to the history log, and publishes the resulting state to listeners.
"""

from dataclasses import dataclass, replace
from typing import Optional, List, Callable, Dict, Any
from pathlib import Path
from enum import Enum
import threading
from loguru import logger

from .config import settings
from ..location import (
    Fix,
    LocationProvider,
    PermissionSource,
    StaticPermissionSource,
    ProviderKind,
    ReadinessMonitor,
    FixStreamController,
    FixSubscription,
    LocationError,
    LocationPermissionError,
    ProviderUnavailableError,
    ListenerFailureError,
    DEFAULT_INTERVAL_MS,
    get_location_provider,
)
from ..storage import HistoryStore, CsvExporter, PersistenceError, ExportError


PERMISSION_DENIED_MESSAGE = "Se requiere permiso de ubicación para usar esta aplicación"
PERMISSION_REQUIRED_MESSAGE = "Se requieren permisos de ubicación"
NOTHING_TO_EXPORT_MESSAGE = "No hay historial para exportar"
EXPORT_SUCCESS_MESSAGE = "Archivo CSV exportado correctamente"


class PermissionState(Enum):
    """Location permission as last observed"""
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


class ReadinessState(Enum):
    """Provider availability as last evaluated"""
    CHECKING = "checking"
    ENABLED = "enabled"
    DISABLED = "disabled"


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the observable session state"""
    permission: PermissionState = PermissionState.UNKNOWN
    readiness: ReadinessState = ReadinessState.CHECKING
    current_fix: Optional[Fix] = None
    error: Optional[str] = None
    last_saved_fix: Optional[Fix] = None
    export_status: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'permission': self.permission.value,
            'readiness': self.readiness.value,
            'current_fix': self.current_fix.to_dict() if self.current_fix else None,
            'error': self.error,
            'last_saved_fix': self.last_saved_fix.to_dict() if self.last_saved_fix else None,
            'export_status': self.export_status,
        }


class SessionCoordinator:
    """
    Orchestrates readiness checks, the fix stream, and history storage.

    The coordinator is the only writer of the session state. At most one
    fix subscription is active; starting updates cancels the previous one
    first.
    """

    def __init__(
        self,
        provider: LocationProvider,
        permissions: PermissionSource,
        store: HistoryStore,
        exporter: Optional[CsvExporter] = None,
        interval_ms: int = DEFAULT_INTERVAL_MS
    ):
        """
        Initialize session coordinator.

        Args:
            provider: Location provider to read fixes from
            permissions: Source of location permission grants
            store: History log fixes are written to
            exporter: CSV exporter (defaults to an exports/ folder beside the log)
            interval_ms: Desired continuous update interval
        """
        self.provider = provider
        self.permissions = permissions
        self.store = store
        self.exporter = exporter or CsvExporter(store, store.path.parent / "exports")
        self.interval_ms = interval_ms

        self.readiness = ReadinessMonitor(provider, permissions)
        self.controller = FixStreamController(provider, self.readiness)

        self._state = SessionState()
        self._state_lock = threading.Lock()
        self._subscription: Optional[FixSubscription] = None
        self._subscription_lock = threading.RLock()
        self._listeners: List[Callable[[SessionState], None]] = []

        logger.info("Session coordinator initialized")

    # State publication
    @property
    def state(self) -> SessionState:
        """Get current session state"""
        with self._state_lock:
            return self._state

    @property
    def is_streaming(self) -> bool:
        """Check if a continuous subscription is active"""
        subscription = self._subscription
        return subscription is not None and subscription.is_active

    def add_listener(self, callback: Callable[[SessionState], None]) -> None:
        """Add a callback for state changes"""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[SessionState], None]) -> None:
        """Remove a state change callback"""
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify_listeners(self, state: SessionState) -> None:
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Session listener error: {e}")

    def _update(self, **changes) -> SessionState:
        with self._state_lock:
            self._state = replace(self._state, **changes)
            state = self._state
        self._notify_listeners(state)
        return state

    # Permission
    def has_location_permission(self) -> bool:
        return self.readiness.has_permission()

    def recheck_permission(self) -> PermissionState:
        """Re-read the permission grant from the permission source"""
        permission = (PermissionState.GRANTED if self.readiness.has_permission()
                      else PermissionState.DENIED)
        self._update(permission=permission)
        return permission

    def on_permission_granted(self) -> None:
        """External signal: the user granted location access"""
        logger.info("Location permission granted")
        self._update(permission=PermissionState.GRANTED)
        self.start_updates()

    def on_permission_denied(self) -> None:
        """External signal: the user denied location access"""
        logger.warning("Location permission denied")
        self.stop_updates()
        self._update(permission=PermissionState.DENIED, error=PERMISSION_DENIED_MESSAGE)

    # Readiness
    def check_readiness(self) -> ReadinessState:
        """Evaluate provider availability now"""
        self._update(readiness=ReadinessState.CHECKING)

        checks = [self.readiness.check_provider(kind)
                  for kind in (ProviderKind.GPS, ProviderKind.NETWORK)]

        if any(check.enabled for check in checks):
            return self._update(readiness=ReadinessState.ENABLED).readiness

        errors = [check.error for check in checks if check.error]
        if errors:
            return self._update(readiness=ReadinessState.DISABLED, error=errors[0]).readiness
        return self._update(readiness=ReadinessState.DISABLED).readiness

    def refresh(self) -> ReadinessState:
        """Manual refresh: re-check readiness and restart updates if enabled"""
        readiness = self.check_readiness()
        if readiness == ReadinessState.ENABLED:
            self.start_updates()
        return readiness

    def open_location_settings(self) -> str:
        return self.readiness.open_settings_target()

    # Fix stream
    def start_updates(self) -> bool:
        """
        (Re)start fix acquisition.

        Cancels any running subscription, delivers the last known fix, then
        subscribes to continuous updates.

        Returns:
            True if a continuous subscription is active afterwards
        """
        with self._subscription_lock:
            self._cancel_subscription()
            self._update(readiness=ReadinessState.CHECKING)

            try:
                for fix in self.controller.last_known_fix():
                    self._handle_fix(fix, continuous=False)
            except LocationPermissionError as e:
                self._handle_permission_error(e)
                return False
            except LocationError as e:
                logger.error(f"Error al obtener última ubicación: {e}")

            try:
                self._subscription = self.controller.continuous_fixes(self.interval_ms).subscribe(
                    on_fix=self._on_continuous_fix,
                    on_error=self._handle_listener_failure
                )
            except LocationPermissionError as e:
                self._handle_permission_error(e)
                return False
            except ProviderUnavailableError as e:
                logger.warning(f"Location providers unavailable: {e}")
                self._update(readiness=ReadinessState.DISABLED,
                             error=f"Error al obtener ubicación: {e}")
                return False
            except ListenerFailureError as e:
                self._update(error=str(e))
                return False

        logger.info(f"Location updates started ({self.interval_ms} ms)")
        return True

    def stop_updates(self) -> None:
        """Cancel the active subscription, if any"""
        with self._subscription_lock:
            self._cancel_subscription()

    def _cancel_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def _on_continuous_fix(self, fix: Fix) -> None:
        self._handle_fix(fix, continuous=True)

    def _handle_fix(self, fix: Fix, continuous: bool) -> None:
        if continuous:
            self._update(current_fix=fix, readiness=ReadinessState.ENABLED, error=None)
        else:
            self._update(current_fix=fix)
        self._persist(fix)

    def _persist(self, fix: Fix) -> None:
        try:
            self.store.append(fix)
        except PersistenceError as e:
            self._update(error=str(e))
            return
        self._update(last_saved_fix=fix)

    def _handle_permission_error(self, error: LocationPermissionError) -> None:
        logger.warning(f"Location permission missing: {error}")
        self._update(permission=PermissionState.DENIED, error=PERMISSION_REQUIRED_MESSAGE)

    def _handle_listener_failure(self, error: ListenerFailureError) -> None:
        # Runs on the provider's thread; the subscription has already ended
        self._update(error=str(error))

    # History and export
    def get_location_history(self) -> str:
        """Raw history log text, or a message explaining why there is none"""
        try:
            return self.store.read_all()
        except PersistenceError as e:
            return str(e)

    def export_csv(self) -> Optional[Path]:
        """
        Export the history log to CSV.

        Returns:
            Path of the generated file, or None if nothing was exported
        """
        try:
            path = self.exporter.export()
        except ExportError as e:
            self._update(export_status=f"Error al exportar: {e}")
            return None

        if path is None:
            self._update(export_status=NOTHING_TO_EXPORT_MESSAGE)
            return None

        self._update(export_status=EXPORT_SUCCESS_MESSAGE)
        return path

    def clear_export_status(self) -> None:
        self._update(export_status=None)

    def close(self) -> None:
        """Stop updates and drop listeners"""
        self.stop_updates()
        self._listeners.clear()
        logger.info("Session coordinator closed")


def create_session_coordinator() -> SessionCoordinator:
    """Build a coordinator from application settings"""
    location = settings.location

    if location.provider == 'gpsd':
        provider = get_location_provider('gpsd', host=location.gpsd_host, port=location.gpsd_port)
    else:
        provider = get_location_provider(
            location.provider,
            default_lat=location.mock_default_lat,
            default_lon=location.mock_default_lon
        )

    permissions = StaticPermissionSource(fine=location.grant_fine, coarse=location.grant_coarse)
    store = HistoryStore(settings.storage.history_path)
    exporter = CsvExporter(store, settings.storage.export_dir)

    return SessionCoordinator(
        provider,
        permissions,
        store,
        exporter=exporter,
        interval_ms=location.update_interval_ms
    )


# Global session coordinator instance
_session_coordinator: Optional[SessionCoordinator] = None


def get_session_coordinator() -> SessionCoordinator:
    """Get the global session coordinator instance"""
    global _session_coordinator
    if _session_coordinator is None:
        _session_coordinator = create_session_coordinator()
    return _session_coordinator


def reset_session_coordinator() -> None:
    """Close and forget the global session coordinator"""
    global _session_coordinator
    if _session_coordinator is not None:
        _session_coordinator.close()
    _session_coordinator = None
