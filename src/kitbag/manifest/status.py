"""
Read-only views of a consumer manifest.

- Which packs are installed and with which features
- How far a manifest has drifted from what a pack recommends
"""

import logging
from typing import Any

from kitbag.config import DEFAULT_CONFIG, KitbagConfig
from kitbag.manifest.merge import ACTIVE_FEATURES_KEY
from kitbag.pack.spec import load_toml
from kitbag.resolver import resolve_recorded
from kitbag.schema import DEFAULT_FEATURE, PackSpec, StatusEntry
from kitbag.versions import should_upgrade

logger = logging.getLogger(__name__)

_REGIONS = ("package", "workspace")


def _pack_tables(data: dict[str, Any], config: KitbagConfig) -> dict[str, dict[str, Any]]:
    """Collect bookkeeping tables from both metadata regions (package wins)."""
    packs: dict[str, dict[str, Any]] = {}
    for region in reversed(_REGIONS):
        node = data.get(region, {})
        for key in ("metadata", config.metadata_key):
            node = node.get(key, {}) if isinstance(node, dict) else {}
        if isinstance(node, dict):
            packs.update({name: entry for name, entry in node.items() if isinstance(entry, dict)})
    return packs


def _features_of(entry: dict[str, Any]) -> list[str] | None:
    features = entry.get(ACTIVE_FEATURES_KEY)
    if isinstance(features, list) and all(isinstance(f, str) for f in features):
        return list(features)
    return None


def read_active_features(manifest_text: str, pack_name: str, config: KitbagConfig | None = None) -> list[str]:
    """
    Return the features recorded for a pack.

    Falls back to ["default"] when the pack has no bookkeeping entry.
    """
    config = config or DEFAULT_CONFIG
    entry = _pack_tables(load_toml(manifest_text), config).get(pack_name)
    features = _features_of(entry) if entry is not None else None
    return features if features is not None else [DEFAULT_FEATURE]


def installed_packs(manifest_text: str, config: KitbagConfig | None = None) -> dict[str, list[str]]:
    """Map every pack with a bookkeeping entry to its recorded features."""
    config = config or DEFAULT_CONFIG
    packs = {}
    for name, entry in _pack_tables(load_toml(manifest_text), config).items():
        features = _features_of(entry)
        packs[name] = features if features is not None else [DEFAULT_FEATURE]
    return packs


def _entry_version(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("version"), str):
        return value["version"]
    return None


def _entry_features(value: Any) -> list[str]:
    if isinstance(value, dict) and isinstance(value.get("features"), list):
        return [f for f in value["features"] if isinstance(f, str)]
    return []


def check_status(spec: PackSpec, manifest_text: str, config: KitbagConfig | None = None) -> list[StatusEntry]:
    """
    Compare a manifest against what a pack recommends.

    The pack is resolved with the features recorded in the manifest, so
    only libraries the user actually installed through it are checked.

    Returns:
        One StatusEntry per expected library, in pack declaration order
    """
    config = config or DEFAULT_CONFIG
    data = load_toml(manifest_text)
    active = read_active_features(manifest_text, spec.name, config)
    selection = resolve_recorded(spec, active)

    entries = []
    for name, library in selection.libraries.items():
        section = data.get(library.dep_kind.section, {})
        value = section.get(name) if isinstance(section, dict) else None
        installed = None
        if value is not None:
            installed = _entry_version(value) or ""
        have = _entry_features(value)
        entries.append(StatusEntry(
            name=name,
            installed=installed,
            recommended=library.version,
            outdated=bool(installed) and should_upgrade(installed, library.version),
            missing_features=tuple(f for f in library.feature_flags if f not in have),
        ))
    logger.debug("Status for %s: %d libraries checked", spec.name, len(entries))
    return entries

