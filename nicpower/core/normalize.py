"""Normalization of driver-reported property values into a status."""

from __future__ import annotations

from typing import Any

from nicpower.core.model import Normalized, RawKind, RawValue, Status

_FLAG_STATUS = {0: Status.DISABLED, 1: Status.ENABLED}


def _flag_from_text(text: str) -> int | None:
    try:
        return int(text.strip())
    except ValueError:
        return None


def _render(raw: RawValue) -> str:
    if raw.kind is RawKind.STRING_LIST or isinstance(raw.value, tuple):
        rendered = "{" + ", ".join(str(item) for item in raw.value) + "}"
    else:
        rendered = str(raw.value)
    return f"{rendered} ({raw.type_name})"


def normalize(raw: RawValue) -> Normalized:
    """Map a raw value to Enabled/Disabled, or Unparseable with a verbatim rendering.

    Only 0 and 1 are understood. For string lists the first element decides;
    any further elements are ignored.
    """
    flag: int | None = None
    if raw.kind is RawKind.INTEGER:
        flag = raw.value
    elif raw.kind is RawKind.STRING:
        flag = _flag_from_text(raw.value)
    elif raw.kind is RawKind.STRING_LIST and raw.value:
        flag = _flag_from_text(raw.value[0])

    status = _FLAG_STATUS.get(flag) if flag is not None else None
    if status is not None:
        return Normalized(status=status, text=status.value)
    return Normalized(status=Status.UNPARSEABLE, text=_render(raw))


def normalize_value(value: Any, type_name: str | None = None) -> Normalized:
    return normalize(RawValue.of(value, type_name=type_name))
