"""Reporting channel between the dispatcher and a host validation framework."""

from typing import Dict, List, NamedTuple, Protocol


class ReportingContext(Protocol):
    """
    What the dispatcher needs from a host framework to report a failed pass.

    On failure the dispatcher calls disable_default_constraint_violation()
    once, then add_property_violation() for every violation in order.
    """

    def disable_default_constraint_violation(self) -> None:
        ...

    def add_property_violation(self, message: str, property_name: str) -> None:
        ...


class PropertyViolation(NamedTuple):
    property_name: str
    message: str


class CollectingContext:
    """
    ReportingContext that records what it is told.

    Starts with a single default violation enabled, the way host frameworks
    attach one generic message to a failed class-level constraint.
    """

    def __init__(self, default_message: str = "Cross-field validation failed"):
        self.default_message = default_message
        self.default_violation_enabled = True
        self.violations: List[PropertyViolation] = []

    def disable_default_constraint_violation(self) -> None:
        self.default_violation_enabled = False

    def add_property_violation(self, message: str, property_name: str) -> None:
        self.violations.append(PropertyViolation(property_name, message))

    def messages(self) -> List[str]:
        """All messages the host would render, default message included when enabled."""
        rendered = [v.message for v in self.violations]
        if self.default_violation_enabled:
            rendered.insert(0, self.default_message)
        return rendered

    def by_property(self) -> Dict[str, List[str]]:
        """Group messages by property name, preserving order."""
        grouped: Dict[str, List[str]] = {}
        for violation in self.violations:
            grouped.setdefault(violation.property_name, []).append(violation.message)
        return grouped
