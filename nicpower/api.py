"""Stable public API for building tooling on top of nicpower.

This module is the supported integration surface for third-party callers.
Avoid importing from private/internal modules unless intentionally depending on
non-stable internals.
"""

from __future__ import annotations

from collections.abc import Sequence

from nicpower.core.errors import (
    AdapterNotFoundError,
    CatalogLoadError,
    CatalogValidationError,
    EnumerationError,
    NicpowerError,
    PowerShellError,
    ProviderError,
)
from nicpower.core.model import (
    AdapterHandle,
    AdapterProperty,
    FeatureDefinition,
    InspectionReport,
    InspectOptions,
    PowerManagementSetting,
    RawKind,
    RawValue,
    ReportRow,
    Status,
)
from nicpower.core.normalize import normalize
from nicpower.core.service import InspectorService
from nicpower.providers.base import AdapterEnumerator, AdvancedPropertyProvider, PowerManagementProvider

__all__ = [
    "NicpowerError",
    "AdapterNotFoundError",
    "CatalogLoadError",
    "CatalogValidationError",
    "EnumerationError",
    "PowerShellError",
    "ProviderError",
    "AdapterHandle",
    "AdapterProperty",
    "FeatureDefinition",
    "InspectionReport",
    "InspectOptions",
    "PowerManagementSetting",
    "RawKind",
    "RawValue",
    "ReportRow",
    "Status",
    "normalize",
    "Client",
]


class Client:
    """Public client for inventorying adapter power-saving features.

    A `Client` wraps feature catalog loading, adapter enumeration and the
    per-adapter inspection behind a stable API. Providers default to the
    PowerShell-backed implementations and may be replaced with any object
    satisfying the provider protocols.
    """

    def __init__(
        self,
        *,
        enumerator: AdapterEnumerator | None = None,
        power_management: PowerManagementProvider | None = None,
        advanced_properties: AdvancedPropertyProvider | None = None,
        features: Sequence[FeatureDefinition] | None = None,
    ) -> None:
        self._service = InspectorService(
            enumerator=enumerator,
            power_management=power_management,
            advanced_properties=advanced_properties,
            features=features,
        )

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    def list_features(self) -> list[FeatureDefinition]:
        return self._service.list_features()

    def list_adapters(self) -> list[AdapterHandle]:
        return self._service.list_adapters()

    def inspect(
        self,
        adapters: Sequence[str] | None = None,
        *,
        workers: int = 1,
        deadline_s: float | None = None,
    ) -> InspectionReport:
        """Inspect the named adapters, or every enumerable adapter when none are given."""
        if adapters is None:
            adapters = [adapter.name for adapter in self._service.list_adapters()]
        options = InspectOptions(adapters=tuple(adapters), workers=workers, deadline_s=deadline_s)
        return self._service.run(options)
