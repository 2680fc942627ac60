"""
Location Abstraction Layer - Base Classes

This module provides the fix model and the abstract capability interfaces
the tracker consumes. Every positioning backend (gpsd, simulated, or a host
platform bridge) implements LocationProvider; permission grants are read
through PermissionSource.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional, List
from enum import Enum
import time


class Provider(Enum):
    """Positioning source a fix is attributed to"""
    GPS = "gps"
    NETWORK = "network"
    PASSIVE = "passive"
    UNKNOWN = "unknown"

    @classmethod
    def from_identifier(cls, identifier: Optional[str]) -> 'Provider':
        """Map a platform provider identifier, falling back to UNKNOWN"""
        if not identifier:
            return cls.UNKNOWN
        try:
            return cls(identifier.strip().lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def label(self) -> str:
        """Human readable label used in the history log"""
        return PROVIDER_LABELS[self]


PROVIDER_LABELS = {
    Provider.GPS: "GPS",
    Provider.NETWORK: "Red",
    Provider.PASSIVE: "Pasivo",
    Provider.UNKNOWN: "Desconocido",
}


class ProviderKind(Enum):
    """Provider classes that can be queried for availability"""
    GPS = "gps"
    NETWORK = "network"


class Capability(Enum):
    """Location capabilities a permission source can grant"""
    FINE = "fine"
    COARSE = "coarse"


class Priority(Enum):
    """Requested accuracy/power trade-off"""
    HIGH_ACCURACY = "high_accuracy"
    BALANCED = "balanced"
    LOW_POWER = "low_power"


@dataclass(frozen=True)
class Fix:
    """One location observation"""
    latitude: float             # Degrees
    longitude: float            # Degrees
    accuracy: float             # Horizontal accuracy in meters
    provider: Provider = Provider.UNKNOWN
    is_mock: bool = False
    timestamp: int = 0          # Milliseconds since epoch

    def __post_init__(self):
        """Validate accuracy"""
        if not self.accuracy >= 0:
            raise ValueError(f"Accuracy must be a non-negative number: {self.accuracy}")
        if not isinstance(self.provider, Provider):
            object.__setattr__(self, 'provider', Provider.from_identifier(self.provider))

    @classmethod
    def from_raw(cls, raw: 'RawLocation') -> 'Fix':
        """
        Build a fix from a provider-reported location.

        The mock flag comes from the platform's own verdict when it reports
        one, otherwise from the mock-provider attribution.
        """
        is_mock = raw.is_mock if raw.is_mock is not None else raw.from_mock_provider
        return cls(
            latitude=raw.latitude,
            longitude=raw.longitude,
            accuracy=raw.accuracy if raw.accuracy > 0 else 0.0,
            provider=Provider.from_identifier(raw.provider),
            is_mock=bool(is_mock),
            timestamp=raw.time_ms,
        )

    @property
    def recorded_at(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000)

    def formatted_datetime(self) -> str:
        """Date and time of the fix, e.g. "25/03/2024 15:30:45" """
        return self.recorded_at.strftime("%d/%m/%Y %H:%M:%S")

    @property
    def provider_label(self) -> str:
        return self.provider.label

    def to_dict(self) -> dict:
        """Convert to dictionary"""
        data = asdict(self)
        data['provider'] = self.provider.value
        return data


@dataclass
class RawLocation:
    """Location record as reported by a provider"""
    latitude: float
    longitude: float
    accuracy: float = 0.0
    provider: Optional[str] = None
    time_ms: int = 0
    is_mock: Optional[bool] = None          # Platform verdict, when available
    from_mock_provider: bool = False        # Attribution to a test provider

    def __post_init__(self):
        if not self.time_ms:
            self.time_ms = int(time.time() * 1000)


@dataclass(frozen=True)
class LocationRequest:
    """Parameters for a continuous update request"""
    interval_ms: int
    min_update_interval_ms: int
    max_update_delay_ms: int
    min_update_distance_m: float = 0.0
    priority: Priority = Priority.HIGH_ACCURACY

    @classmethod
    def for_interval(cls, interval_ms: int) -> 'LocationRequest':
        """Request updates every interval_ms, tolerating half to double that cadence"""
        if interval_ms <= 0:
            raise ValueError(f"interval_ms must be positive: {interval_ms}")
        return cls(
            interval_ms=interval_ms,
            min_update_interval_ms=interval_ms // 2,
            max_update_delay_ms=interval_ms * 2,
        )


class LocationListener(ABC):
    """Receiver registered with a provider for continuous updates"""

    @abstractmethod
    def on_locations(self, batch: List[RawLocation]) -> None:
        """Called with one delivery batch, oldest first"""
        pass

    @abstractmethod
    def on_failure(self, error: Exception) -> None:
        """Called when the provider can no longer deliver updates"""
        pass


class LocationProvider(ABC):
    """
    Abstract interface for positioning backends.

    Implementations stop scheduling deliveries to a listener once
    remove_updates() for it has returned. A delivery already in progress on
    a provider thread may still arrive; listeners ignore calls made after
    their removal.
    """

    @abstractmethod
    def last_location(self) -> Optional[RawLocation]:
        """Return the cached location, or None if there is none"""
        pass

    @abstractmethod
    def request_updates(self, request: LocationRequest, listener: LocationListener) -> None:
        """Register a listener for continuous updates"""
        pass

    @abstractmethod
    def remove_updates(self, listener: LocationListener) -> None:
        """Deregister a listener"""
        pass

    @abstractmethod
    def is_provider_enabled(self, kind: ProviderKind) -> bool:
        """Check whether a provider class is enabled"""
        pass

    def settings_target(self) -> str:
        """Reference the user can follow to open location settings"""
        return "settings://location"


class PermissionSource(ABC):
    """Abstract interface for location permission grants"""

    @abstractmethod
    def is_granted(self, capability: Capability) -> bool:
        pass


class StaticPermissionSource(PermissionSource):
    """Permission source backed by in-process flags"""

    def __init__(self, fine: bool = True, coarse: bool = True):
        self._granted = {Capability.FINE: fine, Capability.COARSE: coarse}

    def is_granted(self, capability: Capability) -> bool:
        return self._granted.get(capability, False)

    def grant(self, capability: Capability = Capability.FINE) -> None:
        self._granted[capability] = True

    def revoke(self, capability: Optional[Capability] = None) -> None:
        """Revoke one capability, or all of them"""
        if capability is None:
            for key in self._granted:
                self._granted[key] = False
        else:
            self._granted[capability] = False


class LocationError(Exception):
    """Base exception for location errors"""
    pass


class LocationPermissionError(LocationError, PermissionError):
    """Raised when no location capability is granted"""
    pass


class ProviderUnavailableError(LocationError):
    """Raised when neither GPS nor network positioning is enabled"""
    pass


class ListenerFailureError(LocationError):
    """Raised when a provider fails after a subscription was established"""
    pass
