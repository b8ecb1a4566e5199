"""
JSON output for kitbag.

Builds plain dictionaries for ``--json`` output so scripts get the same
information the console shows, with stable snake_case keys.
"""

import json
from typing import Any

from kitbag.engine import InstallResult
from kitbag.schema import Interactive, PackSpec, Severity, StatusEntry, ValidationFinding


def dumps(data: dict[str, Any], indent: int = 2) -> str:
    """Serialize a report dictionary."""
    return json.dumps(data, indent=indent, default=_json_serializer)


def findings_dict(findings: list[ValidationFinding], pack_path: str) -> dict[str, Any]:
    errors = sum(1 for f in findings if f.severity == Severity.ERROR)
    return {
        "pack_path": pack_path,
        "valid": errors == 0,
        "error_count": errors,
        "warning_count": len(findings) - errors,
        "findings": [f.model_dump(mode="json") for f in findings],
    }


def pack_dict(spec: PackSpec) -> dict[str, Any]:
    return {
        "name": spec.name,
        "version": spec.version,
        "description": spec.description,
        "repository": spec.repository,
        "schema_version": spec.schema_version,
        "features": {name: list(libs) for name, libs in spec.features.items()},
        "feature_flags": {
            name: {lib: list(flags) for lib, flags in extras.items()}
            for name, extras in spec.feature_extras.items()
        },
        "default_libraries": sorted(spec.default_libraries),
        "hidden_libraries": sorted(spec.hidden_libraries),
        "libraries": {
            name: lib.model_dump(mode="json") for name, lib in spec.libraries.items()
        },
    }


def install_dict(result: InstallResult) -> dict[str, Any]:
    """Describe an add/sync outcome."""
    data: dict[str, Any] = {
        "pack": result.spec.name,
        "manifest_path": str(result.manifest_path),
        "dry_run": result.dry_run,
        "deferred": isinstance(result.selection, Interactive),
        "changed": result.changed,
    }
    if isinstance(result.selection, Interactive):
        data["available_features"] = list(result.spec.features)
        data["available_libraries"] = result.spec.visible_libraries()
        return data

    data["active_features"] = list(result.selection.active_features)
    data["unknown_libraries"] = list(result.selection.unknown_libraries)
    data["unknown_features"] = list(result.selection.unknown_features)
    if result.merge is not None:
        data["metadata_changed"] = result.merge.metadata_changed
        data["changes"] = [
            {
                "name": c.name,
                "section": c.section,
                "changed": c.changed,
                "before": c.before,
                "after": c.after,
            }
            for c in result.merge.changes
        ]
    return data


def status_dict(pack: str, entries: list[StatusEntry]) -> dict[str, Any]:
    return {
        "pack": pack,
        "libraries": [
            {**e.model_dump(mode="json"), "missing": e.missing} for e in entries
        ],
    }


def _json_serializer(obj: Any) -> Any:
    """Custom JSON serializer for non-standard types."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(mode="json")
    if isinstance(obj, (set, frozenset, tuple)):
        return list(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")
