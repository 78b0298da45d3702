"""Collaborator interfaces the inspector queries."""

from __future__ import annotations

from typing import Protocol

from nicpower.core.model import AdapterHandle, AdapterProperty, PowerManagementSetting


class AdapterEnumerator(Protocol):
    def list_all(self) -> list[AdapterHandle]:
        """Return every adapter visible on the host."""

    def resolve(self, name: str) -> AdapterHandle:
        """Look up one adapter by name; raise AdapterNotFoundError if absent."""


class PowerManagementProvider(Protocol):
    def get(self, adapter: AdapterHandle) -> PowerManagementSetting:
        """Return the device power-off permission; raise ProviderError on failure."""


class AdvancedPropertyProvider(Protocol):
    def list(self, adapter: AdapterHandle) -> list[AdapterProperty]:
        """Return driver advanced properties; raise ProviderError on failure."""
