"""
cross-field-lib: Cross-field constraint validation for Python objects

Single-field validators see one value at a time. This library checks
constraints that span several fields of one object:
- Markers attached to fields through typing.Annotated
- Per-class cached field discovery
- One shared validator per marker type, bound declaratively
- Every constraint evaluated per pass, faulty validators isolated
- Violations reported per field to a host framework

Example:
    from typing import Annotated
    from dataclasses import dataclass
    from cross_field_lib import MatchWith, validate

    @dataclass
    class SignupForm:
        password: str
        confirm_password: Annotated[str, MatchWith(field="password")]

    outcome = validate(SignupForm("secret", "secrte"))
    outcome.valid       # False
    outcome.violations  # (Violation(field_name='confirm_password', ...),)
"""

from .api import CrossFieldValidationService
from .constraints import MatchWith, MatchWithValidator
from .context import CollectingContext, PropertyViolation, ReportingContext
from .dispatcher import (
    ValidationDispatcher,
    ValidationOutcome,
    get_dispatcher,
    reset_dispatcher,
    validate,
)
from .errors import ConfigurationError, CrossFieldError
from .metadata import FieldDescriptor, FieldLayout, MetadataCache
from .registry import ValidatorRegistry, cross_field_constraint
from .validator import ConstraintValidator, for_each_annotated_field, get_field_value
from .violations import Violation, ViolationCollector

__version__ = "0.1.0"
__all__ = [
    "CrossFieldValidationService",
    "ValidationDispatcher",
    "ValidationOutcome",
    "get_dispatcher",
    "reset_dispatcher",
    "validate",
    "MetadataCache",
    "FieldDescriptor",
    "FieldLayout",
    "ValidatorRegistry",
    "cross_field_constraint",
    "ConstraintValidator",
    "get_field_value",
    "for_each_annotated_field",
    "Violation",
    "ViolationCollector",
    "ReportingContext",
    "CollectingContext",
    "PropertyViolation",
    "MatchWith",
    "MatchWithValidator",
    "CrossFieldError",
    "ConfigurationError",
]
