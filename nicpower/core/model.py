"""Core data models used across loader, service, providers, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

POWER_MANAGEMENT_FEATURE = "Allow the computer to turn off this device to save power"
POWER_MANAGEMENT_PROPERTY = "AllowComputerToTurnOffDevice"
NOT_FOUND = "Not Found"


class RawKind(Enum):
    INTEGER = "integer"
    STRING = "string"
    STRING_LIST = "string_list"
    OTHER = "other"


@dataclass(frozen=True)
class RawValue:
    """Driver-reported property value, tagged with the shape it arrived in."""

    kind: RawKind
    value: Any
    type_name: str

    @classmethod
    def of(cls, obj: Any, type_name: str | None = None) -> RawValue:
        name = type_name or type(obj).__name__
        if isinstance(obj, bool):
            return cls(RawKind.OTHER, obj, name)
        if isinstance(obj, int):
            return cls(RawKind.INTEGER, obj, name)
        if isinstance(obj, str):
            return cls(RawKind.STRING, obj, name)
        if isinstance(obj, (list, tuple)):
            items = tuple(obj)
            if all(isinstance(item, str) for item in items):
                return cls(RawKind.STRING_LIST, items, name)
            return cls(RawKind.OTHER, items, name)
        return cls(RawKind.OTHER, obj, name)

    def to_plain(self) -> Any:
        if isinstance(self.value, tuple):
            return list(self.value)
        return self.value


@dataclass(frozen=True)
class FeatureDefinition:
    name: str
    patterns: tuple[str, ...]
    description: str = ""


@dataclass(frozen=True)
class AdapterHandle:
    name: str
    description: str
    index: int | None = None


@dataclass(frozen=True)
class AdapterProperty:
    display_name: str
    raw_value: RawValue
    keyword: str | None = None
    display_value: str | None = None


@dataclass(frozen=True)
class PowerManagementSetting:
    allow_turn_off_to_save_power: bool


class Status(str, Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"
    NOT_SUPPORTED = "Not Supported"
    ERROR_RETRIEVING = "Error Retrieving"
    UNPARSEABLE = "Unparseable"


@dataclass(frozen=True)
class Normalized:
    status: Status
    text: str


@dataclass(frozen=True)
class ReportRow:
    adapter_name: str
    adapter_description: str
    feature: str
    status: Status
    status_text: str
    matched_property: str = NOT_FOUND
    raw_value: RawValue | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "Adapter": self.adapter_name,
            "Description": self.adapter_description,
            "Feature": self.feature,
            "Status": self.status_text,
            "Property": self.matched_property,
            "RawValue": self.raw_value.to_plain() if self.raw_value is not None else None,
        }


@dataclass(frozen=True)
class InspectOptions:
    adapters: tuple[str, ...]
    workers: int = 1
    deadline_s: float | None = None


@dataclass(frozen=True)
class AdapterInspection:
    identifier: str
    rows: tuple[ReportRow, ...]
    diagnostics: tuple[str, ...] = field(default_factory=tuple)
    adapter_name: str | None = None


@dataclass(frozen=True)
class InspectionReport:
    rows: tuple[ReportRow, ...]
    diagnostics: tuple[str, ...]
