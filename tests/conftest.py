"""
Pytest configuration and fixtures for kitbag tests.

This module provides shared fixtures used across unit and integration tests.
"""

import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest


CLI_PACK_TOML = """\
[package]
name = "cli-pack"
version = "0.3.0"
description = "Libraries for building command-line tools"
repository = "https://example.com/cli-pack"

[dependencies]
kitbag-runtime = "0.1"

[dev-dependencies]
pretty_assertions = "1"

[package.metadata.kitbag-pack]
schema_version = 1
default = ["clap", "anyhow"]

[package.metadata.kitbag-pack.libraries]
clap = { version = "4.5", features = ["derive"] }
anyhow = "1.0"
indicatif = "0.17"
console = "0.15"
serde = { version = "1.0", features = ["derive"], optional = true }
cc = { version = "1.0", kind = "build" }

[package.metadata.kitbag-pack.features]
indicators = ["indicatif", "console"]
serde = ["serde"]
build = ["cc"]
"""


CONSUMER_TOML = """\
[package]
name = "app"
version = "0.1.0"
edition = "2021"

[dependencies]
anyhow = "1.0"
"""


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def cli_pack_toml() -> str:
    """Return a complete pack manifest with defaults, features and a hidden library."""
    return CLI_PACK_TOML


@pytest.fixture
def consumer_toml() -> str:
    """Return a small consumer manifest."""
    return CONSUMER_TOML


@pytest.fixture
def write_pack(temp_dir: Path) -> Callable[[str, str], Path]:
    """Return a helper that writes a pack manifest into its own directory."""

    def _write(text: str, name: str = "pack") -> Path:
        pack_dir = temp_dir / name
        pack_dir.mkdir()
        (pack_dir / "Cargo.toml").write_text(text)
        return pack_dir

    return _write


@pytest.fixture
def cli_pack(write_pack: Callable[[str, str], Path]) -> Path:
    """Create the cli-pack directory."""
    return write_pack(CLI_PACK_TOML, "cli-pack")


@pytest.fixture
def consumer_manifest(temp_dir: Path) -> Path:
    """Create a consumer project directory and return its manifest path."""
    project = temp_dir / "app"
    project.mkdir()
    manifest = project / "Cargo.toml"
    manifest.write_text(CONSUMER_TOML)
    return manifest
