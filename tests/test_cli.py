from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from nicpower import cli
from nicpower.core.model import (
    POWER_MANAGEMENT_FEATURE,
    AdapterHandle,
    FeatureDefinition,
    InspectionReport,
    RawValue,
    ReportRow,
    Status,
)


def _rows(name: str) -> tuple[ReportRow, ...]:
    return (
        ReportRow(
            adapter_name=name,
            adapter_description="Intel(R) Ethernet",
            feature=POWER_MANAGEMENT_FEATURE,
            status=Status.ENABLED,
            status_text="Enabled",
            matched_property="AllowComputerToTurnOffDevice",
            raw_value=RawValue.of(True),
        ),
        ReportRow(
            adapter_name=name,
            adapter_description="Intel(R) Ethernet",
            feature="Energy Efficient Ethernet",
            status=Status.ENABLED,
            status_text="Enabled",
            matched_property="Energy Efficient Ethernet",
            raw_value=RawValue.of(["1"]),
        ),
    )


class FakeService:
    last_options = None

    def __init__(self, runner=None) -> None:
        self.load_warnings = ()

    def list_features(self):
        return [FeatureDefinition(name="Gigabit Lite", patterns=("Gigabit Lite", "GigaLite"))]

    def list_adapters(self):
        return [AdapterHandle(name="Ethernet0", description="Intel(R) Ethernet")]

    def run(self, options):
        FakeService.last_options = options
        rows: list[ReportRow] = []
        diagnostics: list[str] = []
        for name in options.adapters:
            if name == "Bad0":
                diagnostics.append("Skipping adapter 'Bad0': not found")
                continue
            rows.extend(_rows(name))
        return InspectionReport(rows=tuple(rows), diagnostics=tuple(diagnostics))


runner = CliRunner()


def test_inspect_defaults_to_all_adapters(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["inspect"])
    assert result.exit_code == 0
    assert FakeService.last_options.adapters == ("Ethernet0",)
    assert "Energy Efficient Ethernet" in result.stdout
    assert "{1}" in result.stdout


def test_inspect_partial_failure_still_succeeds(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["inspect", "Bad0", "Ethernet0"])
    assert result.exit_code == 0
    assert FakeService.last_options.adapters == ("Bad0", "Ethernet0")
    assert "1 warning(s) suppressed" in result.stderr
    assert "Bad0" not in result.stdout


def test_inspect_verbose_prints_diagnostics(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["inspect", "Bad0", "--verbose"])
    assert result.exit_code == 0
    assert "Warning: Skipping adapter 'Bad0': not found" in result.stderr
    assert "No adapters inspected" in result.stdout


def test_inspect_json_output(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["inspect", "Ethernet0", "--format", "json"])
    assert result.exit_code == 0
    records = json.loads(result.stdout)
    assert records[1]["RawValue"] == ["1"]
    assert records[0]["Property"] == "AllowComputerToTurnOffDevice"


def test_inspect_csv_to_file(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    target = tmp_path / "report.csv"
    result = runner.invoke(cli.app, ["inspect", "Ethernet0", "-f", "csv", "-o", str(target)])
    assert result.exit_code == 0
    assert "Wrote 2 rows" in result.stdout
    lines = target.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Adapter,Description,Feature,Status,Property,RawValue"
    assert len(lines) == 3


def test_inspect_passes_workers_and_deadline(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["inspect", "Ethernet0", "--workers", "4", "--deadline", "10"])
    assert result.exit_code == 0
    assert FakeService.last_options.workers == 4
    assert FakeService.last_options.deadline_s == 10


def test_enumeration_failure_exits_non_zero(monkeypatch):
    class BrokenService(FakeService):
        def list_adapters(self):
            from nicpower.core.errors import EnumerationError

            raise EnumerationError("Adapter enumeration failed: PowerShell not found on PATH")

    monkeypatch.setattr(cli, "InspectorService", BrokenService)
    result = runner.invoke(cli.app, ["inspect"])
    assert result.exit_code == 1
    assert "Error: Adapter enumeration failed" in result.stderr
    assert "Traceback" not in result.stdout
    assert "Traceback" not in result.stderr


def test_adapters_command(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["adapters"])
    assert result.exit_code == 0
    assert "Ethernet0: Intel(R) Ethernet" in result.stdout


def test_features_command(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["features"])
    assert result.exit_code == 0
    assert "Gigabit Lite: Gigabit Lite, GigaLite" in result.stdout


def test_load_warning_is_printed(monkeypatch):
    class WarnService(FakeService):
        def __init__(self, runner=None) -> None:
            super().__init__(runner)
            self.load_warnings = ("User feature 'Gigabit Lite' overrides packaged definition",)

    monkeypatch.setattr(cli, "InspectorService", WarnService)
    result = runner.invoke(cli.app, ["features"])
    assert result.exit_code == 0
    assert "Warning: User feature 'Gigabit Lite'" in result.stderr


def test_package_logger_is_silent_without_configuration():
    import logging

    handlers = logging.getLogger("nicpower").handlers
    assert any(isinstance(handler, logging.NullHandler) for handler in handlers)


def test_verbose_prints_each_diagnostic_once(monkeypatch):
    from nicpower.core.errors import AdapterNotFoundError
    from nicpower.core.service import InspectorService

    class Enumerator:
        def list_all(self):
            return []

        def resolve(self, name):
            raise AdapterNotFoundError(f"Adapter '{name}' not found")

    def build(runner=None):
        return InspectorService(enumerator=Enumerator(), features=(), runner=runner)

    monkeypatch.setattr(cli, "InspectorService", build)
    result = runner.invoke(cli.app, ["inspect", "Bad0", "--verbose"])
    assert result.exit_code == 0
    assert result.stderr.count("Skipping adapter 'Bad0'") == 1


def test_inspect_json_without_rows_is_empty_array(monkeypatch):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    result = runner.invoke(cli.app, ["inspect", "Bad0", "--format", "json"])
    assert result.exit_code == 0
    assert json.loads(result.stdout) == []
    assert "No adapters inspected" not in result.stdout


def test_inspect_csv_without_rows_writes_header(monkeypatch, tmp_path: Path):
    monkeypatch.setattr(cli, "InspectorService", FakeService)
    target = tmp_path / "empty.csv"
    result = runner.invoke(cli.app, ["inspect", "Bad0", "-f", "csv", "-o", str(target)])
    assert result.exit_code == 0
    assert target.read_text(encoding="utf-8").splitlines() == ["Adapter,Description,Feature,Status,Property,RawValue"]
