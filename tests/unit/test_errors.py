"""
Unit tests for error hierarchy.

Tests cover:
- Base KitbagError behavior
- Parse errors with context
- Resolve and merge errors
- The aggregate validation error
- Error serialization
"""

import pytest

from kitbag.errors import (
    ERROR_MERGE_NO_DEPENDENCY_SECTION,
    ERROR_PARSE_DANGLING_REFERENCE,
    ERROR_PARSE_MALFORMED_SYNTAX,
    ERROR_PARSE_SCHEMA_MISMATCH,
    ERROR_RESOLVE_UNKNOWN_LIBRARY,
    ConfigError,
    DanglingReferenceError,
    KitbagError,
    MalformedSyntaxError,
    MergeError,
    NoDependencySectionError,
    PackNotFoundError,
    ParseError,
    ResolveError,
    SchemaMismatchError,
    UnknownLibraryError,
    ValidationFailedError,
    WriteFailureError,
)
from kitbag.schema import Severity, ValidationFinding


class TestKitbagError:
    """Tests for base KitbagError."""

    def test_basic_error(self) -> None:
        """Create a basic error with message."""
        err = KitbagError(message="Something went wrong", code=9999)
        assert err.message == "Something went wrong"
        assert err.code == 9999
        assert err.suggestion is None
        assert err.context == {}

    def test_str_format(self) -> None:
        err = KitbagError(message="Test error", code=1234)
        assert str(err) == "[E1234] Test error"

    def test_str_with_suggestion(self) -> None:
        err = KitbagError(message="Failed", code=1, suggestion="Try again")
        assert "Suggestion: Try again" in str(err)

    def test_repr_format(self) -> None:
        err = KitbagError(message="Test", code=1)
        assert repr(err).startswith("KitbagError(message='Test'")

    def test_can_be_raised(self) -> None:
        with pytest.raises(KitbagError) as exc_info:
            raise KitbagError(message="boom", code=1)
        assert exc_info.value.message == "boom"


# =============================================================================
# Parse Errors
# =============================================================================


class TestParseErrors:
    """Tests for the parse error kinds."""

    def test_malformed_syntax(self) -> None:
        err = MalformedSyntaxError(source="pack/Cargo.toml", detail="Unexpected character")
        assert isinstance(err, ParseError)
        assert err.code == ERROR_PARSE_MALFORMED_SYNTAX
        assert err.message == "Malformed manifest: Unexpected character"
        assert err.context == {"source": "pack/Cargo.toml", "detail": "Unexpected character"}

    def test_schema_missing(self) -> None:
        err = SchemaMismatchError()
        assert err.code == ERROR_PARSE_SCHEMA_MISMATCH
        assert "does not declare schema_version" in err.message
        assert err.suggestion == "Set schema_version = 1 in the pack metadata"

    def test_schema_unsupported(self) -> None:
        err = SchemaMismatchError(found=2, expected=1)
        assert err.message == "Unsupported schema_version 2 (expected 1)"
        assert err.context["found"] == 2

    def test_dangling_reference(self) -> None:
        err = DanglingReferenceError(library="ghost", referenced_by="feature 'fancy'")
        assert err.code == ERROR_PARSE_DANGLING_REFERENCE
        assert err.message == "feature 'fancy' references unknown library 'ghost'"
        assert err.context["library"] == "ghost"

    def test_custom_message_kept(self) -> None:
        err = MalformedSyntaxError(message="custom", detail="x")
        assert err.message == "custom"


# =============================================================================
# Resolve and Merge Errors
# =============================================================================


class TestResolveErrors:
    """Tests for UnknownLibraryError."""

    def test_single_name(self) -> None:
        err = UnknownLibraryError(names=["left-pad"], pack="cli-pack")
        assert isinstance(err, ResolveError)
        assert err.code == ERROR_RESOLVE_UNKNOWN_LIBRARY
        assert err.message == "Unknown library in pack 'cli-pack': left-pad"

    def test_several_names(self) -> None:
        err = UnknownLibraryError(names=["a", "b"])
        assert err.message == "Unknown libraries: a, b"
        assert err.context["names"] == ["a", "b"]


class TestMergeErrors:
    """Tests for merge errors."""

    def test_no_dependency_section(self) -> None:
        err = NoDependencySectionError(section="dependencies", library="anyhow", path="Cargo.toml")
        assert isinstance(err, MergeError)
        assert err.code == ERROR_MERGE_NO_DEPENDENCY_SECTION
        assert err.context == {"path": "Cargo.toml", "section": "dependencies", "library": "anyhow"}
        assert "[dependencies]" in err.message

    def test_write_failure(self) -> None:
        err = WriteFailureError(path="Cargo.toml", underlying_error="Permission denied")
        assert err.message == "Failed to write Cargo.toml: Permission denied"
        assert err.context["underlying_error"] == "Permission denied"


# =============================================================================
# Validation and Boundary Errors
# =============================================================================


class TestValidationFailedError:
    """Tests for the aggregate validation error."""

    def test_counts_and_message(self) -> None:
        findings = [
            ValidationFinding(rule_id="non-dev-dependency", severity=Severity.ERROR, message="x"),
            ValidationFinding(rule_id="feature.empty", severity=Severity.WARNING, message="y"),
        ]
        err = ValidationFailedError(findings=findings, pack_path="packs/p")
        assert err.error_count == 1
        assert err.warning_count == 1
        assert err.message == "validation failed: 1 error(s), 1 warning(s)"
        assert err.context == {"pack_path": "packs/p", "rules": ["non-dev-dependency", "feature.empty"]}


class TestBoundaryErrors:
    """Tests for pack path and config errors."""

    def test_pack_not_found(self) -> None:
        err = PackNotFoundError(pack_path="nowhere")
        assert err.message == "Pack not found: nowhere"
        assert err.suggestion is not None

    def test_config_error(self) -> None:
        err = ConfigError(config_path="kitbag.yaml", validation_error="bad key")
        assert err.message == "Invalid config kitbag.yaml: bad key"


class TestErrorSerialization:
    """Tests for to_dict()."""

    def test_to_dict(self) -> None:
        err = DanglingReferenceError(library="ghost", referenced_by="default")
        data = err.to_dict()
        assert data["error_type"] == "DanglingReferenceError"
        assert data["code"] == ERROR_PARSE_DANGLING_REFERENCE
        assert data["context"]["referenced_by"] == "default"
        assert data["suggestion"] == "Declare the library in the pack's libraries table"
