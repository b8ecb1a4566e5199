"""
Pack loader for locating and reading pack manifests.

This module provides the PackLoader class for:
- Resolving a pack from a directory or a manifest file path
- Reading the pack manifest text
- Parsing it into a PackSpec

Design Decisions:
    - The loader owns the filesystem boundary; parsing stays pure
    - A PackSpec is parsed lazily once per loader and never persisted
"""

from __future__ import annotations

import logging
from pathlib import Path

from kitbag.config import DEFAULT_CONFIG, KitbagConfig
from kitbag.errors import PackNotFoundError
from kitbag.pack.spec import parse
from kitbag.schema import PackSpec

logger = logging.getLogger(__name__)


class PackLoader:
    """
    Loads a pack's manifest from disk.

    Attributes:
        pack_path: Absolute path to the pack directory
        config: Key names and supported schema version

    Example:
        >>> loader = PackLoader("packs/cli-pack")
        >>> spec = loader.spec
        >>> sorted(spec.features)
        ['indicators']
    """

    def __init__(self, pack_path: Path | str, config: KitbagConfig | None = None) -> None:
        """
        Initialize with path to a pack directory or its manifest file.

        Args:
            pack_path: Pack directory, or the manifest file inside it
            config: Optional configuration (defaults if None)

        Raises:
            PackNotFoundError: If the path doesn't exist
        """
        self.config = config or DEFAULT_CONFIG
        path = Path(pack_path).resolve()

        if path.is_file():
            self._manifest_path = path
            path = path.parent
        else:
            self._manifest_path = path / self.config.manifest_filename

        self.pack_path = path
        self._spec: PackSpec | None = None

        if not self.pack_path.is_dir():
            raise PackNotFoundError(pack_path=str(self.pack_path))

    @property
    def manifest_path(self) -> Path:
        """Path of the pack's manifest file (may not exist)."""
        return self._manifest_path

    @property
    def spec(self) -> PackSpec:
        """
        Get the parsed pack specification.

        Parses the manifest if not already parsed.

        Raises:
            PackNotFoundError: If the manifest file doesn't exist
            ParseError: If the manifest is not a valid pack specification
        """
        if self._spec is None:
            self._spec = self.load_spec()
        return self._spec

    def read_text(self) -> str:
        """
        Read the manifest text.

        Raises:
            PackNotFoundError: If the manifest file doesn't exist
        """
        if not self.manifest_path.is_file():
            raise PackNotFoundError(
                pack_path=str(self.pack_path),
                message=f"No {self.config.manifest_filename} found in {self.pack_path}",
            )
        return self.manifest_path.read_text(encoding="utf-8")

    def load_spec(self) -> PackSpec:
        """
        Read and parse the manifest.

        Returns:
            PackSpec instance

        Raises:
            PackNotFoundError: If the manifest file doesn't exist
            ParseError: If the manifest is not a valid pack specification
        """
        text = self.read_text()
        spec = parse(text, self.config, source=str(self.manifest_path))
        logger.debug("Loaded pack %s from %s", spec.name, self.manifest_path)
        return spec

    @property
    def name(self) -> str:
        """Pack name, falling back to the directory name when undeclared."""
        return self.spec.name or self.pack_path.name
