"""
Pack validation.

Runs a fixed, ordered set of rules against a pack directory and collects
findings instead of raising per rule. Some rules short-circuit: a missing
manifest, unparsable TOML, or a workspace manifest stop the run, since no
later rule is meaningful for them.

Rule order:
    1. no-package                  (error, stops)
    2. manifest.syntax             (error, stops)
    3. workspace-manifest          (error, stops)
    4. package.name.missing        (error)
    5. schema.version.*            (error)
    6. non-dev-dependency          (error)
    7. spec.malformed              (error)
    8. spec.dangling-reference     (error)
    9. package.repository.missing, feature.empty, library.version.missing (warnings)
"""

import logging
from pathlib import Path
from typing import Any

from kitbag.config import DEFAULT_CONFIG, KitbagConfig
from kitbag.errors import MalformedSyntaxError, SchemaMismatchError, ValidationFailedError
from kitbag.pack.spec import (
    build_spec,
    check_schema_version,
    dangling_references,
    load_toml,
    pack_metadata,
)
from kitbag.schema import PackSpec, Severity, ValidationFinding

logger = logging.getLogger(__name__)

RULE_NO_PACKAGE = "no-package"
RULE_SYNTAX = "manifest.syntax"
RULE_WORKSPACE_MANIFEST = "workspace-manifest"
RULE_NAME_MISSING = "package.name.missing"
RULE_SCHEMA_MISSING = "schema.version.missing"
RULE_SCHEMA_UNSUPPORTED = "schema.version.unsupported"
RULE_NON_DEV_DEPENDENCY = "non-dev-dependency"
RULE_MALFORMED = "spec.malformed"
RULE_DANGLING_REFERENCE = "spec.dangling-reference"
RULE_REPOSITORY_MISSING = "package.repository.missing"
RULE_FEATURE_EMPTY = "feature.empty"
RULE_LIBRARY_VERSION_MISSING = "library.version.missing"


def _error(rule_id: str, message: str) -> ValidationFinding:
    return ValidationFinding(rule_id=rule_id, severity=Severity.ERROR, message=message)


def _warning(rule_id: str, message: str) -> ValidationFinding:
    return ValidationFinding(rule_id=rule_id, severity=Severity.WARNING, message=message)


def _check_purity(data: dict[str, Any], config: KitbagConfig) -> list[ValidationFinding]:
    """A pack may only depend at runtime on the runtime support library."""
    findings = []
    for section in ("dependencies", "build-dependencies"):
        deps = data.get(section, {})
        if not isinstance(deps, dict):
            continue
        for name in deps:
            if name == config.runtime_library:
                continue
            findings.append(_error(
                RULE_NON_DEV_DEPENDENCY,
                f"[{section}] declares '{name}'; packs may only depend on "
                f"'{config.runtime_library}' at runtime (use [dev-dependencies] or "
                f"the pack libraries table instead)",
            ))
    return findings


def _warnings(spec: PackSpec, declared_features: dict[str, Any]) -> list[ValidationFinding]:
    findings = []
    if not spec.repository:
        findings.append(_warning(
            RULE_REPOSITORY_MISSING,
            "[package] has no repository; users cannot find the pack's source",
        ))
    for feature, names in declared_features.items():
        if isinstance(names, (list, dict)) and not names:
            findings.append(_warning(RULE_FEATURE_EMPTY, f"feature '{feature}' lists no libraries"))
    for name, library in spec.libraries.items():
        if not library.version:
            findings.append(_warning(
                RULE_LIBRARY_VERSION_MISSING,
                f"library '{name}' has no recommended version",
            ))
    return findings


def collect_findings(spec_dir: Path | str, config: KitbagConfig | None = None) -> list[ValidationFinding]:
    """
    Run every rule against a pack directory and return all findings.

    Args:
        spec_dir: Pack directory (or the manifest file inside it)
        config: Key names and supported schema version

    Returns:
        Findings in rule order; empty when the pack is clean
    """
    config = config or DEFAULT_CONFIG
    path = Path(spec_dir)
    manifest = path if path.is_file() else path / config.manifest_filename

    if not manifest.is_file():
        return [_error(RULE_NO_PACKAGE, f"no {config.manifest_filename} found at {path}")]

    try:
        data = load_toml(manifest.read_text(encoding="utf-8"), str(manifest))
    except MalformedSyntaxError as e:
        return [_error(RULE_SYNTAX, e.message)]

    if "workspace" in data and "package" not in data:
        return [_error(
            RULE_WORKSPACE_MANIFEST,
            f"{manifest} is a workspace manifest, not a pack; point at the pack's own directory",
        )]

    findings: list[ValidationFinding] = []

    package = data.get("package")
    if not isinstance(package, dict) or not package.get("name"):
        findings.append(_error(RULE_NAME_MISSING, "[package] does not declare a name"))

    schema_ok = True
    try:
        check_schema_version(pack_metadata(data, config), config, str(manifest))
    except SchemaMismatchError as e:
        schema_ok = False
        rule = RULE_SCHEMA_MISSING if e.found is None else RULE_SCHEMA_UNSUPPORTED
        findings.append(_error(rule, e.message))

    findings.extend(_check_purity(data, config))

    spec = None
    if schema_ok:
        try:
            spec = build_spec(data, config, str(manifest), check_references=False)
        except MalformedSyntaxError as e:
            findings.append(_error(RULE_MALFORMED, e.message))

    for referrer, name in dangling_references(data, config):
        findings.append(_error(
            RULE_DANGLING_REFERENCE,
            f"{referrer} references unknown library '{name}'",
        ))

    if spec is not None:
        declared = (pack_metadata(data, config) or {}).get("features", {})
        findings.extend(_warnings(spec, declared))

    return findings


def validate(spec_dir: Path | str, config: KitbagConfig | None = None) -> list[ValidationFinding]:
    """
    Validate a pack directory.

    Args:
        spec_dir: Pack directory (or the manifest file inside it)
        config: Key names and supported schema version

    Returns:
        Warning findings (possibly empty) when validation passes

    Raises:
        ValidationFailedError: If any error-severity finding exists; the
            message reports the error count
    """
    findings = collect_findings(spec_dir, config)
    errors = [f for f in findings if f.severity == Severity.ERROR]
    for finding in findings:
        logger.debug("%s", finding)

    if errors:
        raise ValidationFailedError(findings=findings, pack_path=str(spec_dir))
    return findings
