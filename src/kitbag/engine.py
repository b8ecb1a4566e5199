"""
Install engine for kitbag.

The Installer is the orchestration layer behind the CLI. It ties together:
- PackLoader: Reads and parses the pack's manifest
- Resolver: Turns a selection into concrete libraries
- Merge engine: Writes them into the consumer manifest

Install Flow:
    1. Load the pack specification (nothing is written yet)
    2. Resolve the selection; Interactive stops here with no changes
    3. Merge libraries and bookkeeping into the consumer manifest
    4. Write the manifest back only if something changed

Sync re-runs steps 2-4 with the features recorded in the manifest.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from kitbag.config import DEFAULT_CONFIG, KitbagConfig
from kitbag.errors import PackNotFoundError, WriteFailureError
from kitbag.manifest.merge import MergeResult, merge_file
from kitbag.manifest.status import check_status, installed_packs, read_active_features
from kitbag.pack.loader import PackLoader
from kitbag.resolver import resolve, resolve_recorded
from kitbag.schema import Concrete, InstallTarget, Interactive, PackSpec, ResolvedSelection, StatusEntry

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """
    Result of installing or syncing one pack.

    Attributes:
        spec: The pack that was installed
        manifest_path: Consumer manifest that was (or would be) written
        selection: Resolution outcome; Interactive means nothing was merged
        merge: Merge outcome, None when resolution deferred
        dry_run: Whether the manifest was left untouched on purpose
    """

    spec: PackSpec
    manifest_path: Path
    selection: ResolvedSelection
    merge: MergeResult | None = None
    dry_run: bool = False

    @property
    def deferred(self) -> bool:
        """Whether resolution needs a human to pick libraries."""
        return isinstance(self.selection, Interactive)

    @property
    def changed(self) -> bool:
        """Whether the merge produced a different manifest."""
        return self.merge is not None and self.merge.changed


class Installer:
    """
    Installs packs into a consumer manifest.

    Usage:
        installer = Installer()
        result = installer.add("packs/cli-pack", "Cargo.toml", features=["indicators"])
        for change in result.merge.changes:
            print(change.name, change.changed)

    Attributes:
        config: Key names and supported schema version
    """

    def __init__(self, config: KitbagConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG

    def load(self, pack_path: Path | str) -> PackSpec:
        """Load a pack's specification from its directory or manifest path."""
        return PackLoader(pack_path, self.config).spec

    def _manifest(self, manifest_path: Path | str | None) -> Path:
        path = Path(manifest_path) if manifest_path else Path.cwd()
        if path.is_dir():
            path = path / self.config.manifest_filename
        if not path.is_file():
            raise PackNotFoundError(
                pack_path=str(path),
                message=f"Consumer manifest not found: {path}",
                suggestion="Pass --manifest or run inside a project directory",
            )
        return path

    def _read(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise WriteFailureError(path=str(path), underlying_error=str(e)) from e

    def add(
        self,
        pack_path: Path | str,
        manifest_path: Path | str | None = None,
        features: list[str] | tuple[str, ...] = (),
        no_default_features: bool = False,
        all_features: bool = False,
        libraries: list[str] | tuple[str, ...] = (),
        install_target: InstallTarget = InstallTarget.DEFAULT,
        dry_run: bool = False,
    ) -> InstallResult:
        """
        Install a pack into a consumer manifest.

        Args:
            pack_path: Pack directory or manifest
            manifest_path: Consumer manifest (or its directory); cwd if None
            features: Features to activate
            no_default_features: Skip the pack's default libraries
            all_features: Activate every feature
            libraries: Explicit library names (replaces feature selection)
            install_target: Where bookkeeping is recorded
            dry_run: Compute the result without writing

        Returns:
            InstallResult; check ``deferred`` before ``merge``

        Raises:
            PackNotFoundError: Pack or consumer manifest missing
            ParseError: Pack manifest invalid
            MergeError: Consumer manifest could not be merged or written
        """
        spec = self.load(pack_path)
        path = self._manifest(manifest_path)

        selection = resolve(
            spec,
            requested_features=features,
            no_default_features=no_default_features,
            all_features=all_features,
            explicit_libraries=libraries,
        )
        if isinstance(selection, Interactive):
            logger.info("Pack %s needs an explicit selection", spec.name)
            return InstallResult(spec=spec, manifest_path=path, selection=selection, dry_run=dry_run)

        active = list(selection.active_features)
        if libraries:
            # Explicit picks leave the recorded features as they were.
            active = installed_packs(self._read(path), self.config).get(spec.name, [])

        result = merge_file(
            path,
            selection.libraries,
            install_target=install_target,
            pack_name=spec.name or None,
            active_features=active,
            config=self.config,
            dry_run=dry_run,
        )
        logger.info(
            "Merged %d libraries from %s into %s (%d changed)",
            len(result.changes), spec.name, path, sum(c.changed for c in result.changes),
        )
        return InstallResult(spec=spec, manifest_path=path, selection=selection, merge=result, dry_run=dry_run)

    def sync(
        self,
        pack_path: Path | str,
        manifest_path: Path | str | None = None,
        install_target: InstallTarget = InstallTarget.DEFAULT,
        dry_run: bool = False,
    ) -> InstallResult:
        """
        Bring a manifest up to date with a pack, using its recorded features.

        Raises:
            PackNotFoundError: Pack or consumer manifest missing
            ParseError: Pack manifest invalid
            MergeError: Consumer manifest could not be merged or written
        """
        spec = self.load(pack_path)
        path = self._manifest(manifest_path)
        active = read_active_features(self._read(path), spec.name, self.config)
        selection: Concrete = resolve_recorded(spec, active)

        result = merge_file(
            path,
            selection.libraries,
            install_target=install_target,
            pack_name=spec.name or None,
            active_features=active,
            config=self.config,
            dry_run=dry_run,
        )
        return InstallResult(spec=spec, manifest_path=path, selection=selection, merge=result, dry_run=dry_run)

    def status(self, pack_path: Path | str, manifest_path: Path | str | None = None) -> list[StatusEntry]:
        """Report drift between a pack and a consumer manifest."""
        spec = self.load(pack_path)
        path = self._manifest(manifest_path)
        return check_status(spec, self._read(path), self.config)
