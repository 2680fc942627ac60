"""
Location Module

This module provides the fix model, the provider capability interfaces,
readiness checks, and the fix stream controller.

Example usage:
    from fixtrack.location import (
        MockLocationProvider, StaticPermissionSource,
        ReadinessMonitor, FixStreamController, RawLocation
    )

    provider = MockLocationProvider()
    readiness = ReadinessMonitor(provider, StaticPermissionSource())
    controller = FixStreamController(provider, readiness)

    with controller.continuous_fixes(1000).subscribe() as subscription:
        provider.emit(RawLocation(latitude=19.4326, longitude=-99.1332, accuracy=5.0))
        print(next(subscription))
"""

# Base classes and types
from .base import (
    Fix,
    Provider,
    ProviderKind,
    Capability,
    Priority,
    RawLocation,
    LocationRequest,
    LocationListener,
    LocationProvider,
    PermissionSource,
    StaticPermissionSource,
    LocationError,
    LocationPermissionError,
    ProviderUnavailableError,
    ListenerFailureError,
)

# Providers
from .mock import MockLocationProvider
from .gpsd import GpsdLocationProvider, GPSD_AVAILABLE

# Readiness and streams
from .readiness import ReadinessMonitor, ProviderCheck
from .stream import (
    FixStreamController,
    FixSequence,
    FixSubscription,
    DEFAULT_INTERVAL_MS,
)

__all__ = [
    # Base
    'Fix',
    'Provider',
    'ProviderKind',
    'Capability',
    'Priority',
    'RawLocation',
    'LocationRequest',
    'LocationListener',
    'LocationProvider',
    'PermissionSource',
    'StaticPermissionSource',
    'LocationError',
    'LocationPermissionError',
    'ProviderUnavailableError',
    'ListenerFailureError',

    # Providers
    'MockLocationProvider',
    'GpsdLocationProvider',
    'GPSD_AVAILABLE',
    'get_location_provider',

    # Readiness and streams
    'ReadinessMonitor',
    'ProviderCheck',
    'FixStreamController',
    'FixSequence',
    'FixSubscription',
    'DEFAULT_INTERVAL_MS',
]


def get_location_provider(provider_type: str, **kwargs) -> LocationProvider:
    """
    Factory function to create a location provider.

    Args:
        provider_type: Type of provider ('mock', 'gpsd')
        **kwargs: Provider constructor arguments

    Returns:
        Location provider instance
    """
    if provider_type == 'mock':
        return MockLocationProvider(**kwargs)
    elif provider_type == 'gpsd':
        if not GPSD_AVAILABLE:
            raise ImportError("GPSD support not available (gpsd-py3 not installed)")
        return GpsdLocationProvider(**kwargs)
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")
