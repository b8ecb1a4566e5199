"""
Exception hierarchy for kitbag.

All kitbag exceptions inherit from KitbagError, allowing callers to catch
all kitbag-specific exceptions with a single except clause.

Exception Categories:
    - ParseError: Pack specification could not be parsed
    - ResolveError: Requested libraries could not be resolved
    - MergeError: Consumer manifest could not be updated
    - ValidationFailedError: Pack failed one or more validation rules
    - ConfigError / PackNotFoundError: Boundary problems (config, paths)

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (library, section, path where applicable)
    - All errors provide actionable suggestions where possible
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Parse errors: 1xxx
ERROR_PARSE_MALFORMED_SYNTAX = 1001
ERROR_PARSE_SCHEMA_MISMATCH = 1002
ERROR_PARSE_DANGLING_REFERENCE = 1003

# Resolve errors: 2xxx
ERROR_RESOLVE_UNKNOWN_LIBRARY = 2001

# Merge errors: 3xxx
ERROR_MERGE_NO_DEPENDENCY_SECTION = 3001
ERROR_MERGE_WRITE_FAILURE = 3002

# Validation errors: 4xxx
ERROR_VALIDATION_FAILED = 4001

# Boundary errors: 5xxx
ERROR_PACK_NOT_FOUND = 5001
ERROR_CONFIG_INVALID = 5002


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class KitbagError(Exception):
    """
    Base exception for all kitbag errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Parse Errors
# =============================================================================


@dataclass
class ParseError(KitbagError):
    """
    Base class for pack specification parse errors.

    Attributes:
        source: Where the manifest text came from (path or "<string>")
    """

    source: str = "<string>"

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["source"] = self.source


@dataclass
class MalformedSyntaxError(ParseError):
    """Raised when the manifest is not valid TOML or has mistyped fields."""

    detail: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Malformed manifest: {self.detail}"
        if self.code == 0:
            self.code = ERROR_PARSE_MALFORMED_SYNTAX
        super().__post_init__()
        self.context["detail"] = self.detail


@dataclass
class SchemaMismatchError(ParseError):
    """Raised when schema_version is absent or not the supported value."""

    found: int | None = None
    expected: int = 1

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            if self.found is None:
                self.message = "Pack metadata does not declare schema_version"
            else:
                self.message = (
                    f"Unsupported schema_version {self.found} (expected {self.expected})"
                )
        if self.code == 0:
            self.code = ERROR_PARSE_SCHEMA_MISMATCH
        if not self.suggestion:
            self.suggestion = f"Set schema_version = {self.expected} in the pack metadata"
        super().__post_init__()
        self.context.update({
            "found": self.found,
            "expected": self.expected,
        })


@dataclass
class DanglingReferenceError(ParseError):
    """Raised when a feature, default or hidden list names an unknown library."""

    library: str = ""
    referenced_by: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"{self.referenced_by} references unknown library '{self.library}'"
            )
        if self.code == 0:
            self.code = ERROR_PARSE_DANGLING_REFERENCE
        if not self.suggestion:
            self.suggestion = "Declare the library in the pack's libraries table"
        super().__post_init__()
        self.context.update({
            "library": self.library,
            "referenced_by": self.referenced_by,
        })


# =============================================================================
# Resolve Errors
# =============================================================================


@dataclass
class ResolveError(KitbagError):
    """Base class for feature resolution errors."""


@dataclass
class UnknownLibraryError(ResolveError):
    """
    Reported when explicitly requested libraries are not part of the pack.

    This is a partial failure: the recognised libraries still resolve and
    the error travels alongside the result rather than aborting it.

    Attributes:
        names: The requested names missing from the pack
        pack: Name of the pack being resolved
    """

    names: list[str] = field(default_factory=list)
    pack: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            noun = "library" if len(self.names) == 1 else "libraries"
            where = f" in pack '{self.pack}'" if self.pack else ""
            self.message = f"Unknown {noun}{where}: {', '.join(self.names)}"
        if self.code == 0:
            self.code = ERROR_RESOLVE_UNKNOWN_LIBRARY
        if not self.suggestion:
            self.suggestion = "Use `kitbag show <pack>` to list the pack's libraries"
        self.context.update({
            "names": list(self.names),
            "pack": self.pack,
        })


# =============================================================================
# Merge Errors
# =============================================================================


@dataclass
class MergeError(KitbagError):
    """
    Base class for manifest merge errors.

    Attributes:
        path: Manifest path, when the merge is file backed
    """

    path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        self.context["path"] = self.path


@dataclass
class NoDependencySectionError(MergeError):
    """Raised when a dependency section exists but is not a table."""

    section: str = ""
    library: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"[{self.section}] is not a table; cannot add '{self.library}'"
        if self.code == 0:
            self.code = ERROR_MERGE_NO_DEPENDENCY_SECTION
        if not self.suggestion:
            self.suggestion = f"Rewrite {self.section} as a [{self.section}] table"
        super().__post_init__()
        self.context.update({
            "section": self.section,
            "library": self.library,
        })


@dataclass
class WriteFailureError(MergeError):
    """Raised when the merged manifest cannot be read or written back."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Failed to write {self.path}: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_MERGE_WRITE_FAILURE
        super().__post_init__()
        self.context["underlying_error"] = self.underlying_error


# =============================================================================
# Validation Errors
# =============================================================================


@dataclass
class ValidationFailedError(KitbagError):
    """
    Aggregate failure raised when a pack has error-severity findings.

    Attributes:
        findings: Every finding collected, warnings included
        pack_path: The validated pack directory
    """

    findings: list[Any] = field(default_factory=list)
    pack_path: str = ""

    @property
    def error_count(self) -> int:
        return sum(1 for f in self.findings if f.severity.value == "error")

    @property
    def warning_count(self) -> int:
        return sum(1 for f in self.findings if f.severity.value == "warning")

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"validation failed: {self.error_count} error(s), "
                f"{self.warning_count} warning(s)"
            )
        if self.code == 0:
            self.code = ERROR_VALIDATION_FAILED
        self.context.update({
            "pack_path": self.pack_path,
            "rules": [f.rule_id for f in self.findings],
        })


# =============================================================================
# Boundary Errors
# =============================================================================


@dataclass
class PackNotFoundError(KitbagError):
    """Raised when a pack directory or its manifest does not exist."""

    pack_path: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Pack not found: {self.pack_path}"
        if self.code == 0:
            self.code = ERROR_PACK_NOT_FOUND
        if not self.suggestion:
            self.suggestion = "Pass the directory containing the pack's manifest"
        self.context["pack_path"] = self.pack_path


@dataclass
class ConfigError(KitbagError):
    """Raised when a kitbag configuration file is unreadable or invalid."""

    config_path: str = ""
    validation_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid config {self.config_path}: {self.validation_error}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context.update({
            "config_path": self.config_path,
            "validation_error": self.validation_error,
        })
