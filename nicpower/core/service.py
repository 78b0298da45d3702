"""Service layer used by CLI and the public API."""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from nicpower.core.catalog_loader import load_catalog
from nicpower.core.errors import NicpowerError
from nicpower.core.feature_match import match_property
from nicpower.core.model import (
    NOT_FOUND,
    POWER_MANAGEMENT_FEATURE,
    POWER_MANAGEMENT_PROPERTY,
    AdapterHandle,
    AdapterInspection,
    AdapterProperty,
    FeatureDefinition,
    InspectionReport,
    InspectOptions,
    RawValue,
    ReportRow,
    Status,
)
from nicpower.core.normalize import normalize
from nicpower.providers.base import AdapterEnumerator, AdvancedPropertyProvider, PowerManagementProvider
from nicpower.providers.powershell import (
    PowerShellAdapterEnumerator,
    PowerShellAdvancedProperties,
    PowerShellPowerManagement,
    PowerShellRunner,
)

LOGGER = logging.getLogger(__name__)


class InspectorService:
    def __init__(
        self,
        *,
        enumerator: AdapterEnumerator | None = None,
        power_management: PowerManagementProvider | None = None,
        advanced_properties: AdvancedPropertyProvider | None = None,
        features: Sequence[FeatureDefinition] | None = None,
        runner: PowerShellRunner | None = None,
    ) -> None:
        if features is None:
            loaded = load_catalog()
            self.features = loaded.features
            self.load_warnings = loaded.warnings
        else:
            self.features = tuple(features)
            self.load_warnings = ()
        self.runner = runner or PowerShellRunner()
        self.enumerator = enumerator or PowerShellAdapterEnumerator(self.runner)
        self.power_management = power_management or PowerShellPowerManagement(self.runner)
        self.advanced_properties = advanced_properties or PowerShellAdvancedProperties(self.runner)

    def list_features(self) -> list[FeatureDefinition]:
        return list(self.features)

    def list_adapters(self) -> list[AdapterHandle]:
        return sorted(self.enumerator.list_all(), key=lambda a: a.name)

    def inspect(self, identifier: str) -> AdapterInspection:
        """Build one row per feature for a single adapter.

        Only a failed lookup drops the adapter; every later failure degrades
        to a row or an empty property list and a diagnostic.
        """
        diagnostics: list[str] = []

        def _diagnose(message: str) -> None:
            LOGGER.warning(message)
            diagnostics.append(message)

        try:
            adapter = self.enumerator.resolve(identifier)
        except NicpowerError as exc:
            _diagnose(f"Skipping adapter '{identifier}': {exc}")
            return AdapterInspection(identifier=identifier, rows=(), diagnostics=tuple(diagnostics))

        rows: list[ReportRow] = []
        try:
            setting = self.power_management.get(adapter)
        except NicpowerError as exc:
            _diagnose(f"Could not read power management for '{adapter.name}': {exc}")
            rows.append(
                _row(adapter, POWER_MANAGEMENT_FEATURE, Status.ERROR_RETRIEVING, Status.ERROR_RETRIEVING.value)
            )
        else:
            allowed = setting.allow_turn_off_to_save_power
            status = Status.ENABLED if allowed else Status.DISABLED
            rows.append(
                _row(
                    adapter,
                    POWER_MANAGEMENT_FEATURE,
                    status,
                    status.value,
                    matched_property=POWER_MANAGEMENT_PROPERTY,
                    raw_value=RawValue.of(allowed),
                )
            )

        properties: list[AdapterProperty] = []
        try:
            properties = list(self.advanced_properties.list(adapter))
        except NicpowerError as exc:
            _diagnose(f"Could not read advanced properties for '{adapter.name}': {exc}")

        for feature in self.features:
            prop = match_property(feature, properties)
            if prop is None:
                rows.append(_row(adapter, feature.name, Status.NOT_SUPPORTED, Status.NOT_SUPPORTED.value))
                continue
            normalized = normalize(prop.raw_value)
            rows.append(
                _row(
                    adapter,
                    feature.name,
                    normalized.status,
                    normalized.text,
                    matched_property=prop.display_name,
                    raw_value=prop.raw_value,
                )
            )

        return AdapterInspection(
            identifier=identifier,
            rows=tuple(rows),
            diagnostics=tuple(diagnostics),
            adapter_name=adapter.name,
        )

    def run(self, options: InspectOptions) -> InspectionReport:
        identifiers = tuple(dict.fromkeys(options.adapters))
        deadline = _deadline(options.deadline_s)
        if deadline is None and (options.workers <= 1 or len(identifiers) <= 1):
            inspections = [self.inspect(identifier) for identifier in identifiers]
            late: list[str] = []
        else:
            inspections, late = self._inspect_pooled(identifiers, max(1, options.workers), deadline)

        diagnostics: list[str] = []
        kept: list[AdapterInspection] = []
        seen: set[str] = set()
        for inspection in inspections:
            diagnostics.extend(inspection.diagnostics)
            if inspection.adapter_name is not None:
                if inspection.adapter_name in seen:
                    LOGGER.debug(
                        "Adapter '%s' already inspected as '%s'", inspection.identifier, inspection.adapter_name
                    )
                    continue
                seen.add(inspection.adapter_name)
            kept.append(inspection)
        for identifier in late:
            message = f"Deadline exceeded before adapter '{identifier}' was inspected"
            LOGGER.warning(message)
            diagnostics.append(message)

        return InspectionReport(
            rows=assemble(inspection.rows for inspection in kept),
            diagnostics=tuple(diagnostics),
        )

    def _inspect_until(self, identifier: str, deadline: float | None) -> tuple[AdapterInspection, float]:
        with self.runner.deadline(deadline):
            inspection = self.inspect(identifier)
        return inspection, time.monotonic()

    def _inspect_pooled(
        self,
        identifiers: tuple[str, ...],
        workers: int,
        deadline: float | None,
    ) -> tuple[list[AdapterInspection], list[str]]:
        """Inspect on worker threads, keeping only inspections done by *deadline*.

        Inspections still running at the deadline are abandoned; PowerShell
        queries see the same deadline and stop on their own.
        """
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="nicpower")
        futures: dict[Future[tuple[AdapterInspection, float]], int] = {
            executor.submit(self._inspect_until, identifier, deadline): position
            for position, identifier in enumerate(identifiers)
        }
        finished: dict[int, AdapterInspection] = {}
        late: set[int] = set()
        pending = set(futures)
        try:
            while pending:
                timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
                done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
                for future in done:
                    inspection, finished_at = future.result()
                    if deadline is not None and finished_at > deadline:
                        late.add(futures[future])
                    else:
                        finished[futures[future]] = inspection
                if not done:
                    break
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        late.update(futures[future] for future in pending)
        inspections = [finished[position] for position in sorted(finished)]
        return inspections, [identifiers[position] for position in sorted(late)]


def assemble(row_groups: Iterable[Sequence[ReportRow]]) -> tuple[ReportRow, ...]:
    rows: list[ReportRow] = []
    for group in row_groups:
        rows.extend(group)
    return tuple(sorted(rows, key=lambda row: (row.adapter_name, row.feature)))


def _row(
    adapter: AdapterHandle,
    feature: str,
    status: Status,
    status_text: str,
    *,
    matched_property: str = NOT_FOUND,
    raw_value: RawValue | None = None,
) -> ReportRow:
    return ReportRow(
        adapter_name=adapter.name,
        adapter_description=adapter.description,
        feature=feature,
        status=status,
        status_text=status_text,
        matched_property=matched_property,
        raw_value=raw_value,
    )


def _deadline(deadline_s: float | None) -> float | None:
    if deadline_s is None:
        return None
    return time.monotonic() + deadline_s
