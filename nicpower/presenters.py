"""Renderers for inspection reports: aligned text table, CSV, and JSON."""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Sequence
from typing import Any

from nicpower.core.model import ReportRow

COLUMNS = ("Adapter", "Description", "Feature", "Status", "Property", "RawValue")
TABLE_COLUMNS = ("Adapter", "Feature", "Status", "Property", "RawValue")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "{" + ", ".join(str(item) for item in value) + "}"
    return str(value)


def render_table(rows: Sequence[ReportRow]) -> str:
    records = [[_cell(row.as_dict()[column]) for column in TABLE_COLUMNS] for row in rows]
    widths = [len(column) for column in TABLE_COLUMNS]
    for record in records:
        widths = [max(width, len(cell)) for width, cell in zip(widths, record)]

    def _line(cells: Sequence[str]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    lines = [_line(TABLE_COLUMNS), _line(["-" * width for width in widths])]
    lines.extend(_line(record) for record in records)
    return "\n".join(lines)


def render_csv(rows: Sequence[ReportRow]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: _cell(value) for key, value in row.as_dict().items()})
    return buffer.getvalue()


def render_json(rows: Sequence[ReportRow]) -> str:
    return json.dumps([row.as_dict() for row in rows], indent=2)


RENDERERS = {
    "table": render_table,
    "csv": render_csv,
    "json": render_json,
}
