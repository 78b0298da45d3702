"""Adapter queries backed by the Windows NetAdapter PowerShell cmdlets."""

from __future__ import annotations

import json
import logging
import os
import shutil
import subprocess
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from nicpower.core.errors import AdapterNotFoundError, EnumerationError, PowerShellError
from nicpower.core.model import AdapterHandle, AdapterProperty, PowerManagementSetting, RawValue

LOGGER = logging.getLogger(__name__)

POWERSHELL_ENV = "NICPOWER_POWERSHELL"
_CANDIDATES = ("powershell", "pwsh")

_ADAPTER_FIELDS = "Name, InterfaceDescription, ifIndex"
# Windows PowerShell otherwise writes the OEM code page.
_UTF8_PREFIX = "[Console]::OutputEncoding = [Text.Encoding]::UTF8; "


def _quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _literal_name(name: str) -> str:
    # Get-NetAdapter -Name treats its argument as a wildcard pattern.
    return f"([WildcardPattern]::Escape({_quote(name)}))"


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class PowerShellRunner:
    def __init__(self, executable: str | None = None, *, timeout_s: float = 30.0) -> None:
        self.executable = executable or os.environ.get(POWERSHELL_ENV)
        self.timeout_s = timeout_s
        self._local = threading.local()

    def _resolve_executable(self) -> str:
        if self.executable:
            return self.executable
        for candidate in _CANDIDATES:
            found = shutil.which(candidate)
            if found:
                return found
        raise PowerShellError("PowerShell not found on PATH (tried powershell, pwsh)")

    @contextmanager
    def deadline(self, at: float | None) -> Iterator[None]:
        """Bound every query made on this thread by the monotonic time *at*."""
        previous = getattr(self._local, "deadline", None)
        self._local.deadline = at
        try:
            yield
        finally:
            self._local.deadline = previous

    def _query_timeout(self) -> float:
        at = getattr(self._local, "deadline", None)
        if at is None:
            return self.timeout_s
        remaining = at - time.monotonic()
        if remaining <= 0:
            raise PowerShellError("Deadline exceeded before PowerShell query started")
        return min(self.timeout_s, remaining)

    def run_json(self, script: str) -> Any:
        """Run *script* and decode its JSON output; empty output decodes to None."""
        timeout = self._query_timeout()
        cmd = [self._resolve_executable(), "-NoProfile", "-NonInteractive", "-Command", _UTF8_PREFIX + script]
        LOGGER.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                check=False,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise PowerShellError(f"PowerShell query timed out after {timeout:g}s") from exc
        except OSError as exc:
            raise PowerShellError(f"Could not start PowerShell: {exc}") from exc

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise PowerShellError(stderr or f"PowerShell exited with status {result.returncode}")

        output = (result.stdout or "").strip()
        if not output:
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as exc:
            raise PowerShellError(f"PowerShell returned invalid JSON: {exc}") from exc


def _adapter_from_json(item: dict[str, Any]) -> AdapterHandle:
    index = item.get("ifIndex")
    return AdapterHandle(
        name=str(item.get("Name") or ""),
        description=str(item.get("InterfaceDescription") or ""),
        index=index if isinstance(index, int) else None,
    )


class PowerShellAdapterEnumerator:
    def __init__(self, runner: PowerShellRunner | None = None) -> None:
        self.runner = runner or PowerShellRunner()

    def list_all(self) -> list[AdapterHandle]:
        script = (
            "ConvertTo-Json -Compress -InputObject "
            f"@(Get-NetAdapter -ErrorAction Stop | Select-Object {_ADAPTER_FIELDS})"
        )
        try:
            data = self.runner.run_json(script)
        except PowerShellError as exc:
            raise EnumerationError(f"Adapter enumeration failed: {exc}") from exc
        return [_adapter_from_json(item) for item in _as_list(data) if isinstance(item, dict)]

    def resolve(self, name: str) -> AdapterHandle:
        script = (
            f"Get-NetAdapter -Name {_literal_name(name)} -ErrorAction Stop | "
            f"Select-Object -First 1 {_ADAPTER_FIELDS} | ConvertTo-Json -Compress"
        )
        try:
            data = self.runner.run_json(script)
        except PowerShellError as exc:
            raise AdapterNotFoundError(f"Adapter '{name}' not found: {exc}") from exc
        items = [item for item in _as_list(data) if isinstance(item, dict)]
        if not items:
            raise AdapterNotFoundError(f"Adapter '{name}' not found")
        return _adapter_from_json(items[0])


class PowerShellPowerManagement:
    def __init__(self, runner: PowerShellRunner | None = None) -> None:
        self.runner = runner or PowerShellRunner()

    def get(self, adapter: AdapterHandle) -> PowerManagementSetting:
        script = (
            f"Get-NetAdapterPowerManagement -Name {_literal_name(adapter.name)} -ErrorAction Stop | "
            "Select-Object @{Name='AllowComputerToTurnOffDevice';"
            "Expression={[string]$_.AllowComputerToTurnOffDevice}} | ConvertTo-Json -Compress"
        )
        data = self.runner.run_json(script)
        items = [item for item in _as_list(data) if isinstance(item, dict)]
        if not items:
            raise PowerShellError(f"No power management data returned for '{adapter.name}'")

        value = str(items[0].get("AllowComputerToTurnOffDevice") or "").strip().lower()
        if value == "enabled":
            return PowerManagementSetting(allow_turn_off_to_save_power=True)
        if value == "disabled":
            return PowerManagementSetting(allow_turn_off_to_save_power=False)
        raise PowerShellError(
            f"Adapter '{adapter.name}' reports AllowComputerToTurnOffDevice={value or '<empty>'}"
        )


class PowerShellAdvancedProperties:
    def __init__(self, runner: PowerShellRunner | None = None) -> None:
        self.runner = runner or PowerShellRunner()

    def list(self, adapter: AdapterHandle) -> list[AdapterProperty]:
        script = (
            "ConvertTo-Json -Compress -Depth 4 -InputObject "
            f"@(Get-NetAdapterAdvancedProperty -Name {_literal_name(adapter.name)} -ErrorAction Stop | "
            "ForEach-Object { [pscustomobject]@{ "
            "DisplayName = $_.DisplayName; "
            "RegistryKeyword = $_.RegistryKeyword; "
            "RegistryValue = $_.RegistryValue; "
            "DisplayValue = $_.DisplayValue; "
            "ValueType = $(if ($null -eq $_.RegistryValue) { 'null' } else { $_.RegistryValue.GetType().Name }) "
            "} })"
        )
        data = self.runner.run_json(script)

        properties: list[AdapterProperty] = []
        for item in _as_list(data):
            if not isinstance(item, dict) or not item.get("DisplayName"):
                continue
            properties.append(
                AdapterProperty(
                    display_name=str(item["DisplayName"]),
                    raw_value=RawValue.of(item.get("RegistryValue"), type_name=item.get("ValueType")),
                    keyword=item.get("RegistryKeyword"),
                    display_value=item.get("DisplayValue"),
                )
            )
        return properties
