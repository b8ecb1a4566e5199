"""
Pack specification parser.

Turns the text of a pack's own manifest into a PackSpec. Parsing is a pure
function of the input string: no filesystem or network access.

Where things come from:
    - [package]                                name, version, description, repository
    - [package.metadata.<pack-key>]            schema_version, default, hidden
    - [package.metadata.<pack-key>.libraries]  library name -> version or table
    - [package.metadata.<pack-key>.features]   feature name -> library names, or a
                                               table of library name -> { features = [...] }
    - [dependencies] / [build-dependencies]    hidden (always-installed) libraries
"""

import logging
import tomllib
from typing import Any

from pydantic import ValidationError

from kitbag.config import DEFAULT_CONFIG, KitbagConfig
from kitbag.errors import DanglingReferenceError, MalformedSyntaxError, SchemaMismatchError
from kitbag.schema import DEFAULT_FEATURE, DepKind, LibrarySpec, PackSpec

logger = logging.getLogger(__name__)

# Pack dependency sections whose entries are installed regardless of selection.
_HIDDEN_SECTIONS = {
    "dependencies": DepKind.NORMAL,
    "build-dependencies": DepKind.BUILD,
}


def load_toml(text: str, source: str = "<string>") -> dict[str, Any]:
    """Parse TOML text, mapping syntax errors to MalformedSyntaxError."""
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise MalformedSyntaxError(source=source, detail=str(e)) from e


def pack_metadata(data: dict[str, Any], config: KitbagConfig = DEFAULT_CONFIG) -> dict[str, Any] | None:
    """Return the pack metadata region of a parsed manifest, if present."""
    package = data.get("package")
    if not isinstance(package, dict):
        return None
    metadata = package.get("metadata")
    if not isinstance(metadata, dict):
        return None
    region = metadata.get(config.pack_metadata_key)
    return region if isinstance(region, dict) else None


def parse_library(name: str, value: Any, kind: DepKind | None = None, source: str = "<string>") -> LibrarySpec:
    """
    Parse one library declaration.

    A bare string is a version; a table may carry version, features, kind
    and optional. ``kind`` overrides whatever the table declares.
    """
    if isinstance(value, str):
        return LibrarySpec(version=value, dep_kind=kind or DepKind.NORMAL)

    if not isinstance(value, dict):
        raise MalformedSyntaxError(
            source=source,
            detail=f"library '{name}' must be a version string or a table",
        )

    features = _string_list(value.get("features", []), f"library '{name}' features", source)
    try:
        return LibrarySpec(
            version=value.get("version", ""),
            feature_flags=features,
            dep_kind=kind or DepKind(value.get("kind", DepKind.NORMAL.value)),
            optional=value.get("optional", False),
        )
    except (ValidationError, ValueError, TypeError) as e:
        raise MalformedSyntaxError(source=source, detail=f"library '{name}': {e}") from e


def _string_list(value: Any, field_name: str, source: str) -> tuple[str, ...]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedSyntaxError(source=source, detail=f"{field_name} must be a list of strings")
    return tuple(value)


def parse_feature(
    feature: str, value: Any, source: str = "<string>"
) -> tuple[tuple[str, ...], dict[str, tuple[str, ...]]]:
    """
    Parse one feature declaration.

    Either a list of library names, or a table mapping library names to
    ``{ features = [...] }`` flags the feature adds to that library:

        indicators = ["indicatif", "console"]
        tokio-full = { tokio = { features = ["full"] } }

    Returns:
        (library names in declared order, library name -> extra flags)
    """
    if isinstance(value, list):
        return _string_list(value, f"feature '{feature}'", source), {}
    if not isinstance(value, dict):
        raise MalformedSyntaxError(
            source=source,
            detail=f"feature '{feature}' must be a list of library names or a table",
        )

    extras: dict[str, tuple[str, ...]] = {}
    for name, entry in value.items():
        if not isinstance(entry, dict):
            raise MalformedSyntaxError(
                source=source,
                detail=f"feature '{feature}' entry '{name}' must be a table",
            )
        flags = _string_list(entry.get("features", []), f"feature '{feature}' entry '{name}' features", source)
        if flags:
            extras[name] = tuple(dict.fromkeys(flags))
    return tuple(value), extras


def check_schema_version(region: dict[str, Any] | None, config: KitbagConfig, source: str) -> int:
    """Return the declared schema version, raising SchemaMismatchError otherwise."""
    found = region.get("schema_version") if region is not None else None
    if not isinstance(found, int) or isinstance(found, bool):
        raise SchemaMismatchError(source=source, found=None, expected=config.schema_version)
    if found != config.schema_version:
        raise SchemaMismatchError(source=source, found=found, expected=config.schema_version)
    return found


def build_spec(
    data: dict[str, Any],
    config: KitbagConfig = DEFAULT_CONFIG,
    source: str = "<string>",
    check_references: bool = True,
) -> PackSpec:
    """
    Build a PackSpec from an already parsed manifest.

    Args:
        data: Parsed manifest
        config: Metadata key names and supported schema version
        source: Label used in error context
        check_references: When False, dangling names are dropped instead of
            raising, so validation can report them as findings

    Raises:
        SchemaMismatchError: schema_version absent or unsupported
        MalformedSyntaxError: a field has the wrong shape
        DanglingReferenceError: a reference names an unknown library
    """
    region = pack_metadata(data, config)
    schema_version = check_schema_version(region, config, source)
    region = region or {}
    package = data.get("package")
    if not isinstance(package, dict):
        package = {}

    libraries: dict[str, LibrarySpec] = {}
    raw_libraries = region.get("libraries", {})
    if not isinstance(raw_libraries, dict):
        raise MalformedSyntaxError(source=source, detail="libraries must be a table")
    for name, value in raw_libraries.items():
        libraries[name] = parse_library(name, value, source=source)

    hidden: list[str] = []
    for section, kind in _HIDDEN_SECTIONS.items():
        deps = data.get(section, {})
        if not isinstance(deps, dict):
            raise MalformedSyntaxError(source=source, detail=f"[{section}] must be a table")
        for name, value in deps.items():
            if name not in libraries:
                libraries[name] = parse_library(name, value, kind=kind, source=source)
            hidden.append(name)

    if "hidden" in region:
        hidden.extend(_string_list(region["hidden"], "hidden", source))

    features: dict[str, tuple[str, ...]] = {}
    extras: dict[str, dict[str, tuple[str, ...]]] = {}
    raw_features = region.get("features", {})
    if not isinstance(raw_features, dict):
        raise MalformedSyntaxError(source=source, detail="features must be a table")
    for feature, value in raw_features.items():
        if feature == DEFAULT_FEATURE:
            raise MalformedSyntaxError(
                source=source,
                detail=f"'{DEFAULT_FEATURE}' is reserved and cannot be declared as a feature",
            )
        features[feature], flags = parse_feature(feature, value, source)
        if flags:
            extras[feature] = flags

    if "default" in region:
        defaults = list(_string_list(region["default"], "default", source))
    else:
        in_features = {name for names in features.values() for name in names}
        defaults = [
            name for name in libraries
            if name not in in_features and name not in hidden
        ]

    references = [(f"feature '{f}'", n) for f, names in features.items() for n in names]
    references += [("default", n) for n in defaults]
    references += [("hidden", n) for n in hidden]
    dangling = [(referrer, n) for referrer, n in references if n not in libraries]
    if dangling:
        if check_references:
            referrer, name = dangling[0]
            raise DanglingReferenceError(source=source, library=name, referenced_by=referrer)
        for referrer, name in dangling:
            logger.debug("Dropping dangling reference %s -> %s", referrer, name)
        features = {f: tuple(n for n in names if n in libraries) for f, names in features.items()}
        defaults = [n for n in defaults if n in libraries]
        hidden = [n for n in hidden if n in libraries]
        extras = {
            f: {n: flags for n, flags in by_library.items() if n in libraries}
            for f, by_library in extras.items()
        }

    try:
        return PackSpec(
            name=str(package.get("name", "")),
            version=str(package.get("version", "")),
            description=str(package.get("description", "")),
            repository=package.get("repository"),
            schema_version=schema_version,
            libraries=libraries,
            features=features,
            feature_extras=extras,
            default_libraries=frozenset(defaults),
            hidden_libraries=frozenset(hidden),
        )
    except ValidationError as e:
        raise MalformedSyntaxError(source=source, detail=str(e)) from e


def dangling_references(data: dict[str, Any], config: KitbagConfig = DEFAULT_CONFIG) -> list[tuple[str, str]]:
    """
    List (referrer, library) pairs naming libraries the pack does not declare.

    Tolerates a missing or unsupported schema version so validation can
    report every problem in one pass.
    """
    region = pack_metadata(data, config) or {}
    known = set()
    libraries = region.get("libraries", {})
    if isinstance(libraries, dict):
        known.update(libraries)
    for section in _HIDDEN_SECTIONS:
        deps = data.get(section, {})
        if isinstance(deps, dict):
            known.update(deps)

    references: list[tuple[str, str]] = []
    features = region.get("features", {})
    if isinstance(features, dict):
        for feature, names in features.items():
            if isinstance(names, dict):
                names = list(names)
            if isinstance(names, list):
                references.extend((f"feature '{feature}'", n) for n in names if isinstance(n, str))
    for key in ("default", "hidden"):
        names = region.get(key, [])
        if isinstance(names, list):
            references.extend((key, n) for n in names if isinstance(n, str))

    return [(referrer, name) for referrer, name in references if name not in known]


def parse(manifest_text: str, config: KitbagConfig | None = None, source: str = "<string>") -> PackSpec:
    """
    Parse a pack manifest into a PackSpec.

    Args:
        manifest_text: The pack's manifest as TOML text
        config: Key names and supported schema version (defaults if None)
        source: Label for error messages (usually the manifest path)

    Returns:
        Validated, immutable PackSpec

    Raises:
        MalformedSyntaxError: Text is not valid TOML or a field is mistyped
        SchemaMismatchError: schema_version is missing or unsupported
        DanglingReferenceError: A feature/default/hidden name is not a library
    """
    config = config or DEFAULT_CONFIG
    data = load_toml(manifest_text, source)
    spec = build_spec(data, config, source)
    logger.debug(
        "Parsed pack %s: %d libraries, %d features",
        spec.name or source, len(spec.libraries), len(spec.features),
    )
    return spec
