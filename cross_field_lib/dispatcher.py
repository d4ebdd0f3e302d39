"""
Validation Dispatcher - One Pass Over One Object

Runs every cross-field constraint attached to an object's fields and reports
the violations to the host framework.

## Pass Algorithm

1. Fetch the field layout of `type(obj)` from the metadata cache
2. For each field, for each marker on it, resolve a validator; skip inert markers
3. Call `validator.is_valid(obj, layout, violations, field, marker)`
4. AND the results together; every marker is evaluated, there is no early exit
5. A validator that raises fails the pass and is logged; the pass carries on
6. On failure, hand the violations to the reporting context in order

Configuration errors from the registry are not validation outcomes and
propagate to the caller.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional, Tuple

from .context import ReportingContext
from .metadata import MetadataCache
from .registry import ValidatorRegistry
from .violations import Violation, ViolationCollector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of one pass: overall validity, the violations, and validator faults."""

    valid: bool
    violations: Tuple[Violation, ...] = ()
    errors: int = 0

    def __bool__(self) -> bool:
        return self.valid


class ValidationDispatcher:
    """Core cross-field validation logic, independent of any host framework"""

    def __init__(
        self,
        metadata_cache: Optional[MetadataCache] = None,
        registry: Optional[ValidatorRegistry] = None,
    ):
        """
        Initialize the dispatcher.

        Args:
            metadata_cache: Shared field discovery cache (new one if omitted)
            registry: Shared validator registry (new one if omitted)
        """
        self.metadata_cache = metadata_cache or MetadataCache()
        self.registry = registry or ValidatorRegistry()

    def validate(self, obj: Any, context: Optional[ReportingContext] = None) -> ValidationOutcome:
        """
        Validate all cross-field constraints on obj.

        Args:
            obj: The object to validate
            context: Host reporting channel; only touched when the pass fails

        Returns:
            ValidationOutcome with the violations in the order validators ran

        Raises:
            ConfigurationError: If a bound validator cannot be constructed
        """
        layout = self.metadata_cache.fields(type(obj))
        violations = ViolationCollector()
        passed = True
        errors = 0

        for field in layout:
            for marker in field.markers:
                validator = self.registry.resolve(type(marker))
                if validator is None:
                    continue

                try:
                    passed &= bool(validator.is_valid(obj, layout, violations, field, marker))
                except Exception:
                    passed = False
                    errors += 1
                    logger.exception(
                        f"{type(validator).__qualname__} raised while checking "
                        f"{type(obj).__qualname__}.{field.name}",
                        extra={
                            "type": type(obj).__qualname__,
                            "field": field.name,
                            "marker": type(marker).__qualname__,
                        },
                    )

        outcome = ValidationOutcome(
            valid=passed and not violations,
            violations=violations.records(),
            errors=errors,
        )

        if not outcome.valid and context is not None:
            self._report(context, outcome)

        return outcome

    def _report(self, context: ReportingContext, outcome: ValidationOutcome) -> None:
        context.disable_default_constraint_violation()
        for violation in outcome.violations:
            context.add_property_violation(violation.message, violation.field_name)


_dispatcher: Optional[ValidationDispatcher] = None
_dispatcher_lock = threading.Lock()


def get_dispatcher() -> ValidationDispatcher:
    """Get or initialize the process-wide ValidationDispatcher."""
    global _dispatcher
    with _dispatcher_lock:
        if _dispatcher is None:
            _dispatcher = ValidationDispatcher()
        return _dispatcher


def reset_dispatcher() -> None:
    """Reset the process-wide dispatcher (for testing)."""
    global _dispatcher
    with _dispatcher_lock:
        _dispatcher = None


def validate(obj: Any, context: Optional[ReportingContext] = None) -> ValidationOutcome:
    """Validate obj with the process-wide dispatcher."""
    return get_dispatcher().validate(obj, context)
