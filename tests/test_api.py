"""
Tests for CrossFieldValidationService API

Tests the public service methods with valid and invalid objects.
"""
from dataclasses import dataclass
from typing import Annotated, Optional

import pytest

from cross_field_lib import (
    CollectingContext,
    ConfigurationError,
    ConstraintValidator,
    CrossFieldValidationService,
    MatchWith,
    get_field_value,
)


class BeforeValidator(ConstraintValidator):
    def is_valid(self, obj, fields, violations, field, marker):
        value = get_field_value(obj, field.name)
        other = get_field_value(obj, marker.field)
        if value is not None and other is not None and value >= other:
            violations.add(field.name, marker.message)
            return False
        return True


@dataclass(frozen=True)
class Before:
    field: str
    message: str = "Must be before the other date."


@dataclass
class Signup:
    id: str
    password: Optional[str]
    confirm_password: Annotated[Optional[str], MatchWith(field="password")]


@dataclass
class Booking:
    id: str
    ref: str
    check_in: Annotated[int, Before(field="check_out")]
    check_out: int
    note: Annotated[str, "free text"] = ""


@pytest.fixture
def service():
    """Create a CrossFieldValidationService with default config."""
    with CrossFieldValidationService() as svc:
        yield svc


@pytest.fixture
def bound_config(tmp_path):
    """User config binding Before through its dotted path."""
    path = tmp_path / "cross-field.yaml"
    path.write_text(
        "bindings:\n"
        f"  {__name__}.Before: {__name__}.BeforeValidator\n"
    )
    return str(path)


class TestInitialization:
    """Test CrossFieldValidationService initialization."""

    def test_create_service(self, service):
        """Test that service can be created."""
        assert service.dispatcher is not None
        assert service.config_loader is not None

    def test_invalid_config_fails(self, tmp_path):
        """Test that an invalid config aborts construction."""
        path = tmp_path / "bad.yaml"
        path.write_text("batch_parallelism: maybe\n")
        with pytest.raises(ConfigurationError):
            CrossFieldValidationService(str(path))

    def test_unimportable_binding_fails(self, tmp_path):
        """Test that a bad binding is reported at startup."""
        path = tmp_path / "bad.yaml"
        path.write_text("bindings:\n  missing_pkg.Marker: missing_pkg.Validator\n")
        with pytest.raises(ConfigurationError, match="Failed to import"):
            CrossFieldValidationService(str(path))


class TestValidate:
    """Test validate() method."""

    def test_valid_object(self, service):
        """Test that a valid object yields no violations."""
        assert service.validate(Signup("1", "pw", "pw")) == []

    def test_invalid_object(self, service):
        """Test the violation dict structure."""
        assert service.validate(Signup("1", "pw", "nope")) == [
            {"field": "confirm_password", "message": "Fields do not match."}
        ]

    def test_unbound_marker_is_inert(self, service):
        """Test that Before does nothing without a binding."""
        assert service.validate(Booking("1", "r", check_in=9, check_out=1)) == []

    def test_configured_binding(self, bound_config):
        """Test that a binding from config is applied."""
        with CrossFieldValidationService(bound_config) as service:
            assert service.validate(Booking("1", "r", check_in=9, check_out=1)) == [
                {"field": "check_in", "message": "Must be before the other date."}
            ]


class TestIsValid:
    """Test the host framework entry point."""

    def test_valid_reports_nothing(self, service):
        """Test that a valid object leaves the context untouched."""
        context = CollectingContext()
        assert service.is_valid(Signup("1", "pw", "pw"), context) is True
        assert context.messages() == ["Cross-field validation failed"]
        assert context.violations == []

    def test_invalid_reports_property_violations(self, service):
        """Test that violations replace the default message."""
        context = CollectingContext()
        assert service.is_valid(Signup("1", "pw", "nope"), context) is False
        assert context.messages() == ["Fields do not match."]
        assert context.by_property() == {"confirm_password": ["Fields do not match."]}


class TestBatchValidate:
    """Test batch_validate() method."""

    def test_results_in_input_order(self, service):
        """Test per-object results and ordering."""
        results = service.batch_validate(
            [Signup("1", "a", "a"), Signup("2", "a", "b"), Signup("3", None, None)]
        )
        assert [r["object_id"] for r in results] == ["1", "2", "3"]
        assert [r["valid"] for r in results] == [True, False, True]
        assert results[1]["violations"] == [
            {"field": "confirm_password", "message": "Fields do not match."}
        ]
        assert results[0]["object_type"] == "Signup"

    def test_composite_id(self, service):
        """Test that several id fields are joined with '-'."""
        results = service.batch_validate([Booking("1", "R7", 1, 2)], ["id", "ref"])
        assert results[0]["object_id"] == "1-R7"

    def test_unknown_id(self, service):
        """Test that objects without id fields are 'unknown'."""
        results = service.batch_validate([Booking("1", "R7", 1, 2)], ["missing"])
        assert results[0]["object_id"] == "unknown"

    def test_parallel_batch(self, tmp_path):
        """Test that the thread pool path returns the same results in order."""
        path = tmp_path / "parallel.yaml"
        path.write_text("batch_parallelism: true\nbatch_max_workers: 4\n")
        objects = [Signup(str(i), "pw", "pw" if i % 2 else "other") for i in range(50)]
        with CrossFieldValidationService(str(path)) as service:
            results = service.batch_validate(objects)
        assert [r["object_id"] for r in results] == [str(i) for i in range(50)]
        assert [r["valid"] for r in results] == [bool(i % 2) for i in range(50)]

    def test_close_is_idempotent(self, tmp_path):
        """Test that close() can be called repeatedly."""
        path = tmp_path / "parallel.yaml"
        path.write_text("batch_parallelism: true\n")
        service = CrossFieldValidationService(str(path))
        service.close()
        service.close()


class TestDiscoverConstraints:
    """Test discover_constraints() method."""

    def test_lists_marker_fields_only(self, service):
        """Test that only marker-carrying fields are described."""
        assert list(service.discover_constraints(Signup)) == ["confirm_password"]

    def test_marker_metadata(self, service):
        """Test the description of a bound marker."""
        described = service.discover_constraints(Signup)["confirm_password"]
        assert described == [
            {
                "marker": "MatchWith",
                "validator": "MatchWithValidator",
                "parameters": {"field": "password", "message": "Fields do not match."},
            }
        ]

    def test_inert_markers(self, service):
        """Test that unbound markers are described with validator None."""
        described = service.discover_constraints(Booking)
        assert described["check_in"][0]["validator"] is None
        assert described["note"] == [{"marker": "str", "validator": None, "parameters": {}}]
