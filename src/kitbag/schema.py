"""
Schema definitions for kitbag.

This module defines the Pydantic models used throughout kitbag:
- LibrarySpec/PackSpec: What a pack offers
- Interactive/Concrete: The outcome of feature resolution
- ValidationFinding: A single diagnostic from pack validation
- StatusEntry: Drift between a pack and a consumer manifest

Design Decisions:
    - All models use strict validation (extra="forbid")
    - Models are immutable (frozen=True); a PackSpec is built fresh per call
    - Ordered collections are tuples so declaration order survives
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from kitbag.errors import UnknownLibraryError

# Capability name recorded when a pack's default libraries are applied.
DEFAULT_FEATURE = "default"


# =============================================================================
# Enums
# =============================================================================


class DepKind(str, Enum):
    """Which dependency section of a manifest a library belongs in."""

    NORMAL = "normal"
    DEV = "dev"
    BUILD = "build"

    @property
    def section(self) -> str:
        """The manifest table holding dependencies of this kind."""
        return {
            DepKind.NORMAL: "dependencies",
            DepKind.DEV: "dev-dependencies",
            DepKind.BUILD: "build-dependencies",
        }[self]


class InstallTarget(str, Enum):
    """
    Where pack bookkeeping metadata is recorded.

    DEFAULT infers the region from the manifest: workspace-level when the
    manifest is a workspace root without a [package] table, package-level
    otherwise.
    """

    WORKSPACE = "workspace"
    PACKAGE = "package"
    DEFAULT = "default"


class Severity(str, Enum):
    """Severity of a validation finding."""

    ERROR = "error"
    WARNING = "warning"


# =============================================================================
# Pack Models
# =============================================================================


def _dedupe(values: tuple[str, ...] | list[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return tuple(seen)


class LibrarySpec(BaseModel):
    """
    One library a pack can install.

    Attributes:
        version: Recommended version requirement (a floor, never enforced downward)
        feature_flags: Library-internal flags to enable, in declared order
        dep_kind: Dependency section the library is written into
        optional: Whether the dependency is marked optional
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    version: str = Field(
        default="",
        description="Recommended version requirement",
    )
    feature_flags: tuple[str, ...] = Field(
        default=(),
        description="Library feature flags to enable",
    )
    dep_kind: DepKind = Field(
        default=DepKind.NORMAL,
        description="Dependency section: normal, dev or build",
    )
    optional: bool = Field(
        default=False,
        description="Whether the dependency is optional",
    )

    @field_validator("feature_flags")
    @classmethod
    def dedupe_feature_flags(cls, v: tuple[str, ...]) -> tuple[str, ...]:
        """Drop repeated flags, keeping the first occurrence."""
        return _dedupe(v)


class PackSpec(BaseModel):
    """
    A pack's declared contents.

    Constructed fresh from the pack's manifest text on every invocation and
    read-only thereafter.

    Attributes:
        name: Pack name from [package] (used as the bookkeeping key)
        version: Pack version from [package]
        description: Pack description from [package]
        repository: Source repository URL, if declared
        schema_version: Pack metadata schema version
        libraries: Every library the pack knows about, in declaration order
        features: Feature name to the libraries it pulls in
        feature_extras: Feature name to extra library flags it turns on,
            added on top of each library's own flags
        default_libraries: Installed when no explicit selection is given
        hidden_libraries: Always installed regardless of selection
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str = Field(default="", description="Pack name")
    version: str = Field(default="", description="Pack version")
    description: str = Field(default="", description="Pack description")
    repository: str | None = Field(default=None, description="Source repository URL")
    schema_version: int = Field(..., description="Pack metadata schema version")
    libraries: dict[str, LibrarySpec] = Field(default_factory=dict)
    features: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    feature_extras: dict[str, dict[str, tuple[str, ...]]] = Field(default_factory=dict)
    default_libraries: frozenset[str] = Field(default_factory=frozenset)
    hidden_libraries: frozenset[str] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def check_references(self) -> "PackSpec":
        """Every referenced library must exist in the libraries table."""
        for referrer, name in self.references():
            if name not in self.libraries:
                msg = f"{referrer} references unknown library '{name}'"
                raise ValueError(msg)
        return self

    def references(self) -> list[tuple[str, str]]:
        """List (referrer, library) pairs for every feature/default/hidden name."""
        pairs = []
        for feature, names in self.features.items():
            pairs.extend((f"feature '{feature}'", name) for name in names)
        pairs.extend(("default", name) for name in sorted(self.default_libraries))
        pairs.extend(("hidden", name) for name in sorted(self.hidden_libraries))
        return pairs

    def visible_libraries(self) -> list[str]:
        """Library names a user can choose from (hidden ones excluded)."""
        return [name for name in self.libraries if name not in self.hidden_libraries]


# =============================================================================
# Resolution Models
# =============================================================================


class Interactive(BaseModel):
    """Resolution could not pick libraries without asking a human."""

    model_config = ConfigDict(frozen=True, extra="forbid")


class Concrete(BaseModel):
    """
    A concrete set of libraries to install.

    Attributes:
        active_features: Capabilities turned on, in request order
        libraries: Deduplicated union of everything to install
        unknown_libraries: Explicitly requested names the pack does not have
        unknown_features: Requested feature names the pack does not define
        pack: Name of the resolved pack
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    active_features: tuple[str, ...] = ()
    libraries: dict[str, LibrarySpec] = Field(default_factory=dict)
    unknown_libraries: tuple[str, ...] = ()
    unknown_features: tuple[str, ...] = ()
    pack: str = ""

    @property
    def error(self) -> UnknownLibraryError | None:
        """The partial-failure error for unknown explicit libraries, if any."""
        if not self.unknown_libraries:
            return None
        return UnknownLibraryError(names=list(self.unknown_libraries), pack=self.pack)


ResolvedSelection = Interactive | Concrete


# =============================================================================
# Diagnostics
# =============================================================================


class ValidationFinding(BaseModel):
    """
    A single diagnostic produced while validating a pack.

    Attributes:
        rule_id: Stable rule identifier (e.g. "schema.version.missing")
        severity: ERROR fails validation, WARNING is reported only
        message: Human-readable description
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    rule_id: str = Field(..., min_length=1)
    severity: Severity
    message: str

    def __str__(self) -> str:
        return f"{self.severity.value}[{self.rule_id}]: {self.message}"


class StatusEntry(BaseModel):
    """How one expected library compares with the consumer manifest."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    installed: str | None = None
    recommended: str = ""
    outdated: bool = False
    missing_features: tuple[str, ...] = ()

    @property
    def missing(self) -> bool:
        return self.installed is None
