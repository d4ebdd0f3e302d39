"""
Constraint validator contract and the helpers offered to implementations.

A constraint is two pieces: a marker class describing one occurrence of the
constraint (its parameters and message) and a validator class interpreting
it. The marker is bound to the validator with `cross_field_constraint`; the
dispatcher then calls the validator once for every field carrying the marker.

Helpers are plain functions so validators compose them instead of inheriting
them:

- `get_field_value(obj, name)` reads a sibling field without raising
- `for_each_annotated_field(obj, fields, marker_type, action)` visits every
  field carrying a given marker type
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Callable

from .metadata import FieldDescriptor, FieldLayout
from .violations import ViolationCollector

logger = logging.getLogger(__name__)


class ConstraintValidator(ABC):
    """
    Abstract base class for cross-field constraint validators.

    One instance per marker type is created by the validator registry and
    shared across every pass and every thread. Implementations must not keep
    per-call state on self; everything a call needs arrives as arguments.
    """

    @abstractmethod
    def is_valid(
        self,
        obj: Any,
        fields: FieldLayout,
        violations: ViolationCollector,
        field: FieldDescriptor,
        marker: Any,
    ) -> bool:
        """
        Evaluate one marker occurrence against obj.

        Args:
            obj: The whole object under validation
            fields: Field layout of obj's class, for looking up sibling fields
            violations: Collector for this pass; append a violation on failure
            field: The field carrying the marker
            marker: The marker instance being evaluated

        Returns:
            True if the constraint holds, False otherwise
        """


def get_field_value(obj: Any, name: str) -> Any:
    """
    Read a named field of obj, returning None instead of raising.

    Mappings are read by key, other objects by public attribute or property.
    Missing names, private names and getters that raise all yield None.
    """
    if not name or name.startswith("_"):
        return None

    if isinstance(obj, Mapping):
        return obj.get(name)

    try:
        return getattr(obj, name, None)
    except Exception as e:
        logger.debug(
            f"Property {name!r} of {type(obj).__qualname__} is not readable: {e}",
            extra={"type": type(obj).__qualname__, "field": name},
        )
        return None


def for_each_annotated_field(
    obj: Any,
    fields: FieldLayout,
    marker_type: type,
    action: Callable[[FieldDescriptor, Any], None],
) -> None:
    """
    Call action(field, marker) for every marker of marker_type in fields.

    Fields are visited in layout order, markers in attachment order.
    """
    for field, marker in fields.annotated_with(marker_type):
        action(field, marker)
