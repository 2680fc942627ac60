"""
Readiness Monitor

Point-in-time queries for the prerequisites of location tracking: a granted
location capability and at least one enabled provider.
"""

from dataclasses import dataclass
from typing import Optional
from loguru import logger

from .base import LocationProvider, PermissionSource, ProviderKind, Capability


@dataclass(frozen=True)
class ProviderCheck:
    """Outcome of a provider availability query"""
    kind: ProviderKind
    enabled: bool
    error: Optional[str] = None


class ReadinessMonitor:
    """
    Answers permission and provider availability questions.

    Provider queries fail closed: a query that raises is reported as
    disabled, with the failure kept as a soft signal in last_error.
    """

    def __init__(self, provider: LocationProvider, permissions: PermissionSource):
        self._provider = provider
        self._permissions = permissions
        self.last_error: Optional[str] = None

    def has_permission(self) -> bool:
        """True if fine or coarse location is granted"""
        return (self._permissions.is_granted(Capability.FINE) or
                self._permissions.is_granted(Capability.COARSE))

    def check_provider(self, kind: ProviderKind) -> ProviderCheck:
        """Query one provider class, capturing any failure"""
        try:
            enabled = bool(self._provider.is_provider_enabled(kind))
        except Exception as e:
            message = f"Error al verificar {kind.value}: {e}"
            logger.warning(message)
            self.last_error = message
            return ProviderCheck(kind=kind, enabled=False, error=message)
        self.last_error = None
        return ProviderCheck(kind=kind, enabled=enabled)

    def is_provider_enabled(self, kind: ProviderKind) -> bool:
        return self.check_provider(kind).enabled

    def is_any_provider_enabled(self) -> bool:
        return (self.is_provider_enabled(ProviderKind.GPS) or
                self.is_provider_enabled(ProviderKind.NETWORK))

    def open_settings_target(self) -> str:
        """Reference for opening the system location settings"""
        return self._provider.settings_target()
