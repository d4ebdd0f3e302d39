"""
MatchWith: the reference cross-field constraint.

Requires the annotated field to equal another field of the same object:

```python
@dataclass
class SignupForm:
    password: Optional[str]
    confirm_password: Annotated[Optional[str], MatchWith(field="password")]
```

Equality semantics other constraints are expected to follow:

| annotated | other | result |
|-----------|-------|--------|
| None      | None  | valid (vacuously equal) |
| "x"       | None  | violation on the annotated field |
| None      | "x"   | violation on the annotated field |
| "x"       | "x"   | valid |
| "x"       | "y"   | violation on the annotated field |
"""

from dataclasses import dataclass

from .registry import cross_field_constraint
from .validator import ConstraintValidator, get_field_value


class MatchWithValidator(ConstraintValidator):
    """Checks that the annotated field equals the field named by the marker."""

    def is_valid(self, obj, fields, violations, field, marker) -> bool:
        value = get_field_value(obj, field.name)
        other = get_field_value(obj, marker.field)

        if value is None and other is None:
            return True

        if value is None or other is None or value != other:
            violations.add(field.name, marker.message.replace("{field}", marker.field))
            return False

        return True


@cross_field_constraint(validated_by=MatchWithValidator)
@dataclass(frozen=True)
class MatchWith:
    """The annotated field must equal `field`. `{field}` in message is substituted."""

    field: str
    message: str = "Fields do not match."
