"""
Format-preserving manifest merge.

Writes resolved pack libraries into a consumer manifest without disturbing
anything it does not need to change. The document is edited through
tomlkit, which keeps whitespace, comments and quoting of untouched items;
when nothing changes the input text is returned as-is.

Per-library rules:
    - Absent: insert (bare version, or inline table when features/optional)
    - Version: replaced only when should_upgrade() says so
    - Features: union of existing and requested, existing order first
    - Optional: only set on insert, never toggled on existing entries

Bookkeeping (which features of which pack are active) is recorded under
[package.metadata.<key>.<pack>] or [workspace.metadata.<key>.<pack>].
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import tomlkit
from tomlkit.exceptions import TOMLKitError
from tomlkit.items import InlineTable, Item

from kitbag.config import DEFAULT_CONFIG, KitbagConfig
from kitbag.errors import MalformedSyntaxError, NoDependencySectionError, WriteFailureError
from kitbag.schema import InstallTarget, LibrarySpec
from kitbag.versions import should_upgrade

logger = logging.getLogger(__name__)

ACTIVE_FEATURES_KEY = "active-features"

_BARE_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")


# =============================================================================
# Dependency Entries
# =============================================================================


@dataclass(frozen=True)
class BareEntry:
    """A dependency written as a plain version string."""

    version: str


@dataclass(frozen=True)
class TableEntry:
    """
    A dependency written as a table.

    ``version`` is None for entries that point elsewhere (path, git or
    workspace inheritance); their version is never touched.
    """

    version: str | None
    features: tuple[str, ...] = ()
    optional: bool = False


DependencyEntry = BareEntry | TableEntry


def read_entry(item: Any) -> DependencyEntry | None:
    """Interpret a manifest value as a dependency entry (None if unusable)."""
    if isinstance(item, str):
        return BareEntry(version=str(item))
    if isinstance(item, dict):
        version = item.get("version")
        features = item.get("features", [])
        if not isinstance(features, list):
            features = []
        return TableEntry(
            version=str(version) if isinstance(version, str) else None,
            features=tuple(str(f) for f in features),
            optional=bool(item.get("optional", False)),
        )
    return None


def plan_entry(existing: DependencyEntry | None, spec: LibrarySpec) -> DependencyEntry | None:
    """
    Compute the entry a library should have after merging.

    Returns:
        The new entry, or None when the existing entry already satisfies
        the recommendation and must be left alone
    """
    if existing is None:
        version = spec.version or "*"
        if not spec.feature_flags and not spec.optional:
            return BareEntry(version=version)
        return TableEntry(version=version, features=spec.feature_flags, optional=spec.optional)

    if isinstance(existing, BareEntry):
        version = spec.version if should_upgrade(existing.version, spec.version) else existing.version
        if spec.feature_flags:
            return TableEntry(version=version, features=spec.feature_flags)
        if version != existing.version:
            return BareEntry(version=version)
        return None

    version = existing.version
    if version is not None and should_upgrade(version, spec.version):
        version = spec.version
    added = tuple(f for f in spec.feature_flags if f not in existing.features)
    if version == existing.version and not added:
        return None
    return TableEntry(
        version=version,
        features=existing.features + added,
        optional=existing.optional,
    )


# =============================================================================
# Rendering
# =============================================================================


def _render_key(key: str) -> str:
    if _BARE_KEY_RE.match(key):
        return key
    return tomlkit.string(key).as_string()


def _render_value(value: Any) -> str:
    if isinstance(value, Item):
        return value.as_string().strip()
    return tomlkit.item(value).as_string()


def _render_string(value: str) -> str:
    return tomlkit.string(value).as_string()


def _render_features(existing: Any, features: tuple[str, ...]) -> str:
    """Render a features array, reusing the text of items already present."""
    parts = []
    known = set()
    if isinstance(existing, list):
        for value in existing:
            parts.append(_render_value(value))
            known.add(str(value))
    parts.extend(_render_string(f) for f in features if f not in known)
    return "[" + ", ".join(parts) + "]"


def _render_version(old_item: Any, old_version: str | None, new_version: str | None) -> str:
    """Reuse the original text of an unchanged version so its quoting survives."""
    if new_version == old_version and isinstance(old_item, Item):
        return old_item.as_string().strip()
    return _render_string(new_version or "*")


def _render_inline(pairs: list[tuple[str, str]]) -> str:
    return "{ " + ", ".join(f"{key} = {value}" for key, value in pairs) + " }"


def _write_entry(table: Any, name: str, item: Any, existing: DependencyEntry | None, new: DependencyEntry) -> None:
    if isinstance(new, BareEntry):
        table[name] = tomlkit.string(new.version)
        return

    if existing is None:
        pairs = [("version", _render_string(new.version or "*"))]
        if new.features:
            pairs.append(("features", _render_features(None, new.features)))
        if new.optional:
            pairs.append(("optional", "true"))
        table[name] = tomlkit.value(_render_inline(pairs))
        return

    if isinstance(existing, BareEntry):
        pairs = [
            ("version", _render_version(item, existing.version, new.version)),
            ("features", _render_features(None, new.features)),
        ]
        table[name] = tomlkit.value(_render_inline(pairs))
        return

    if isinstance(item, InlineTable):
        pairs = []
        for key, value in item.items():
            if key == "version" and new.version != existing.version:
                pairs.append((_render_key(key), _render_string(new.version or "*")))
            elif key == "features":
                pairs.append((_render_key(key), _render_features(value, new.features)))
            else:
                pairs.append((_render_key(key), _render_value(value)))
        if "features" not in item and new.features:
            pairs.append(("features", _render_features(None, new.features)))
        table[name] = tomlkit.value(_render_inline(pairs))
        return

    # A [dependencies.<name>] table: edit keys in place.
    if new.version != existing.version:
        item["version"] = tomlkit.string(new.version or "*")
    if new.features != existing.features:
        item["features"] = tomlkit.value(_render_features(item.get("features"), new.features))


def sync_one(table: Any, name: str, spec: LibrarySpec) -> bool:
    """
    Merge one library into an already located dependency table.

    Args:
        table: A tomlkit table (e.g. the document's [dependencies])
        name: Library name
        spec: What the pack recommends for it

    Returns:
        True if the table was modified
    """
    item = table.get(name)
    existing = read_entry(item) if item is not None else None
    if item is not None and existing is None:
        logger.warning("Leaving %s untouched: unrecognised dependency value", name)
        return False

    new = plan_entry(existing, spec)
    if new is None:
        logger.debug("%s is up to date", name)
        return False

    _write_entry(table, name, item, existing, new)
    if existing is None:
        logger.debug("Added %s", name)
    else:
        logger.debug("Updated %s: %s -> %s", name, existing, new)
    return True


# =============================================================================
# Document Merge
# =============================================================================


@dataclass
class LibraryChange:
    """
    Outcome for one library.

    Attributes:
        name: Library name
        section: Dependency section written to
        changed: Whether the entry was inserted or modified
        before: Entry text before the merge (None if absent)
        after: Entry text after the merge
    """

    name: str
    section: str
    changed: bool
    before: str | None = None
    after: str | None = None


@dataclass
class MergeResult:
    """
    Result of merging libraries into a manifest.

    Attributes:
        text: The resulting manifest text
        changes: Per-library outcomes, in merge order
        metadata_changed: Whether pack bookkeeping was (re)written
    """

    text: str
    changes: list[LibraryChange] = field(default_factory=list)
    metadata_changed: bool = False

    @property
    def changed(self) -> bool:
        """Whether the manifest text differs from the input."""
        return self.metadata_changed or any(c.changed for c in self.changes)


def _entry_text(table: Any, name: str) -> str | None:
    item = table.get(name)
    if item is None:
        return None
    if isinstance(item, Item):
        return item.as_string().strip()
    return str(item)


def _dependency_table(doc: Any, section: str, library: str, path: str | None) -> Any:
    """Find (or append) a dependency section."""
    if section not in doc:
        doc.add(section, tomlkit.table())
        logger.debug("Created [%s]", section)
    table = doc[section]
    if not isinstance(table, dict):
        raise NoDependencySectionError(section=section, library=library, path=path)
    return table


def metadata_region(doc: Mapping[str, Any], install_target: InstallTarget) -> str:
    """Top-level table that holds pack bookkeeping for this install target."""
    if install_target == InstallTarget.WORKSPACE:
        return "workspace"
    if install_target == InstallTarget.PACKAGE:
        return "package"
    if "workspace" in doc and "package" not in doc:
        return "workspace"
    return "package"


def recorded_region(doc: Mapping[str, Any], pack_name: str, config: KitbagConfig = DEFAULT_CONFIG) -> str | None:
    """Top-level table already holding bookkeeping for a pack (package first), if any."""
    for region in ("package", "workspace"):
        node: Any = doc.get(region)
        for key in ("metadata", config.metadata_key, pack_name):
            node = node.get(key) if isinstance(node, dict) else None
        if isinstance(node, dict):
            return region
    return None


def _child(parent: Any, key: str, super_table: bool) -> Any:
    node = parent.get(key)
    if node is None:
        if isinstance(parent, InlineTable):
            node = tomlkit.inline_table()
        else:
            node = tomlkit.table(is_super_table=super_table)
        parent[key] = node
        node = parent[key]
    return node


def record_active_features(
    doc: Any,
    pack_name: str,
    active_features: list[str],
    install_target: InstallTarget = InstallTarget.DEFAULT,
    config: KitbagConfig = DEFAULT_CONFIG,
) -> bool:
    """
    Store a pack's active features in the manifest's bookkeeping region.

    Returns:
        True if the stored value changed
    """
    region = None
    if install_target == InstallTarget.DEFAULT:
        region = recorded_region(doc, pack_name, config)
    region = region or metadata_region(doc, install_target)

    follows = region in doc and list(doc.keys())[-1] != region
    root = _child(doc, region, super_table=True)
    metadata = _child(root, "metadata", super_table=True)
    packs = _child(metadata, config.metadata_key, super_table=True)
    created = pack_name not in packs
    entry = _child(packs, pack_name, super_table=False)

    current = entry.get(ACTIVE_FEATURES_KEY)
    if isinstance(current, list) and [str(f) for f in current] == list(active_features):
        return False

    array = tomlkit.array()
    array.extend(active_features)
    entry[ACTIVE_FEATURES_KEY] = array
    if created and follows and not isinstance(entry, InlineTable):
        # Keep a blank line before the next table header.
        entry.add(tomlkit.nl())
    logger.debug("Recorded %s.metadata.%s.%s = %s", region, config.metadata_key, pack_name, active_features)
    return True


def merge(
    manifest_text: str,
    libraries: Mapping[str, LibrarySpec],
    install_target: InstallTarget = InstallTarget.DEFAULT,
    pack_name: str | None = None,
    active_features: list[str] | tuple[str, ...] | None = None,
    config: KitbagConfig | None = None,
    path: str | None = None,
) -> MergeResult:
    """
    Merge libraries into a manifest.

    Args:
        manifest_text: The consumer manifest as TOML text
        libraries: Library name to spec, merged in order
        install_target: Where bookkeeping goes (package or workspace region)
        pack_name: Pack the libraries come from; enables bookkeeping
        active_features: Features to record for the pack (defaults to
            ["default"] when a pack name is given)
        config: Key names (defaults if None)
        path: Manifest path, for error context only

    Returns:
        MergeResult whose text equals the input when nothing changed

    Raises:
        MalformedSyntaxError: If the manifest is not valid TOML
        NoDependencySectionError: If a dependency section exists but is not a table
    """
    config = config or DEFAULT_CONFIG
    try:
        doc = tomlkit.parse(manifest_text)
    except TOMLKitError as e:
        raise MalformedSyntaxError(source=path or "<string>", detail=str(e)) from e

    changes = []
    for name, spec in libraries.items():
        section = spec.dep_kind.section
        table = _dependency_table(doc, section, name, path)
        before = _entry_text(table, name)
        changed = sync_one(table, name, spec)
        changes.append(LibraryChange(
            name=name,
            section=section,
            changed=changed,
            before=before,
            after=_entry_text(table, name) if changed else before,
        ))

    metadata_changed = False
    if pack_name:
        features = list(active_features) if active_features is not None else ["default"]
        metadata_changed = record_active_features(doc, pack_name, features, install_target, config)

    result = MergeResult(text=manifest_text, changes=changes, metadata_changed=metadata_changed)
    if result.changed:
        result.text = doc.as_string()
    return result


def merge_file(
    path: Path | str,
    libraries: Mapping[str, LibrarySpec],
    install_target: InstallTarget = InstallTarget.DEFAULT,
    pack_name: str | None = None,
    active_features: list[str] | tuple[str, ...] | None = None,
    config: KitbagConfig | None = None,
    dry_run: bool = False,
) -> MergeResult:
    """
    Read, merge and write back a manifest file.

    The file is only rewritten when the merge changed something.

    Raises:
        WriteFailureError: If the manifest cannot be read or written
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise WriteFailureError(path=str(path), underlying_error=str(e)) from e

    result = merge(
        text,
        libraries,
        install_target=install_target,
        pack_name=pack_name,
        active_features=active_features,
        config=config,
        path=str(path),
    )

    if result.changed and not dry_run:
        try:
            path.write_text(result.text, encoding="utf-8")
        except OSError as e:
            raise WriteFailureError(path=str(path), underlying_error=str(e)) from e
        logger.info("Wrote %s", path)
    return result


__all__ = [
    "ACTIVE_FEATURES_KEY",
    "BareEntry",
    "DependencyEntry",
    "LibraryChange",
    "MergeResult",
    "TableEntry",
    "merge",
    "merge_file",
    "metadata_region",
    "plan_entry",
    "read_entry",
    "recorded_region",
    "record_active_features",
    "sync_one",
]
