"""
Integration tests for the report module.

Tests cover:
- JSON dictionaries for findings, packs, installs and status
- Console rendering of the same outcomes
"""

import json
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from kitbag.engine import Installer, InstallResult
from kitbag.pack.spec import parse
from kitbag.report import (
    dumps,
    findings_dict,
    install_dict,
    pack_dict,
    print_findings,
    print_install,
    print_pack,
    print_status,
    status_dict,
)
from kitbag.schema import Interactive, Severity, StatusEntry, ValidationFinding


FLAG_PACK = """\
[package]
name = "async-pack"

[package.metadata.kitbag-pack]
schema_version = 1

[package.metadata.kitbag-pack.libraries]
tokio = { version = "1.38", features = ["macros"] }

[package.metadata.kitbag-pack.features]
tokio-full = { tokio = { features = ["full"] } }
"""


@pytest.fixture
def output() -> StringIO:
    return StringIO()


@pytest.fixture
def console(output: StringIO) -> Console:
    return Console(file=output, width=120, no_color=True)


@pytest.fixture
def added(cli_pack: Path, consumer_manifest: Path) -> InstallResult:
    """Install cli-pack with indicators into the consumer manifest."""
    return Installer().add(cli_pack, consumer_manifest, features=["indicators", "bogus"])


FINDINGS = [
    ValidationFinding(rule_id="non-dev-dependency", severity=Severity.ERROR, message="[dependencies] declares 'serde'"),
    ValidationFinding(rule_id="feature.empty", severity=Severity.WARNING, message="feature 'x' lists no libraries"),
]


class TestJsonReport:
    """Tests for JSON report dictionaries."""

    def test_findings(self) -> None:
        data = findings_dict(FINDINGS, "packs/p")
        assert data["valid"] is False
        assert data["error_count"] == 1
        assert data["warning_count"] == 1
        assert data["findings"][1] == {
            "rule_id": "feature.empty",
            "severity": "warning",
            "message": "feature 'x' lists no libraries",
        }

    def test_pack_round_trips_through_json(self, cli_pack_toml: str) -> None:
        data = json.loads(dumps(pack_dict(parse(cli_pack_toml))))
        assert data["schema_version"] == 1
        assert data["libraries"]["clap"]["feature_flags"] == ["derive"]
        assert data["feature_flags"] == {}

    def test_pack_feature_flags(self) -> None:
        data = json.loads(dumps(pack_dict(parse(FLAG_PACK))))
        assert data["features"] == {"tokio-full": ["tokio"]}
        assert data["feature_flags"] == {"tokio-full": {"tokio": ["full"]}}

    def test_install(self, added: InstallResult) -> None:
        data = install_dict(added)
        assert data["deferred"] is False
        assert data["active_features"] == ["default", "indicators"]
        assert data["unknown_features"] == ["bogus"]
        changed = {c["name"]: c for c in data["changes"]}
        assert changed["indicatif"]["before"] is None
        assert changed["indicatif"]["after"] == '"0.17"'

    def test_deferred_install(self, cli_pack_toml: str, temp_dir: Path) -> None:
        spec = parse(cli_pack_toml)
        result = InstallResult(spec=spec, manifest_path=temp_dir / "Cargo.toml", selection=Interactive())
        data = install_dict(result)
        assert data["deferred"] is True
        assert data["available_features"] == ["indicators", "serde", "build"]
        assert "kitbag-runtime" not in data["available_libraries"]

    def test_status(self) -> None:
        entries = [StatusEntry(name="clap", installed=None, recommended="4.5")]
        data = status_dict("cli-pack", entries)
        assert data["libraries"][0]["missing"] is True
        assert data["libraries"][0]["recommended"] == "4.5"


class TestConsoleReport:
    """Tests for console rendering."""

    def test_findings(self, console: Console, output: StringIO) -> None:
        print_findings(console, FINDINGS, "packs/p")
        text = output.getvalue()
        assert "error[non-dev-dependency]: [dependencies] declares 'serde'" in text
        assert "warning[feature.empty]" in text
        assert "1 error(s), 1 warning(s)" in text

    def test_clean_findings(self, console: Console, output: StringIO) -> None:
        print_findings(console, [], "packs/p")
        assert "packs/p is valid" in output.getvalue()

    def test_pack(self, console: Console, output: StringIO, cli_pack_toml: str) -> None:
        print_pack(console, parse(cli_pack_toml))
        text = output.getvalue()
        assert "cli-pack" in text
        assert "indicators: indicatif, console" in text
        assert "hidden" in text

    def test_pack_feature_flags(self, console: Console, output: StringIO) -> None:
        print_pack(console, parse(FLAG_PACK))
        assert "tokio-full: tokio (+full)" in output.getvalue()

    def test_install(self, console: Console, output: StringIO, added: InstallResult) -> None:
        print_install(console, added)
        text = output.getvalue()
        assert "Unknown feature 'bogus' ignored" in text
        assert "+ indicatif (dependencies)" in text
        assert "= anyhow (dependencies)" in text

    def test_deferred_install(self, console: Console, output: StringIO, cli_pack_toml: str, temp_dir: Path) -> None:
        result = InstallResult(
            spec=parse(cli_pack_toml), manifest_path=temp_dir / "Cargo.toml", selection=Interactive()
        )
        print_install(console, result)
        assert "No libraries selected from cli-pack" in output.getvalue()

    def test_status(self, console: Console, output: StringIO) -> None:
        entries = [
            StatusEntry(name="clap", installed="4.0", recommended="4.5", outdated=True),
            StatusEntry(name="anyhow", installed="1.0", recommended="1.0"),
        ]
        print_status(console, "cli-pack", entries)
        text = output.getvalue()
        assert "cli-pack status" in text
        assert "1 of 2 libraries need attention" in text
