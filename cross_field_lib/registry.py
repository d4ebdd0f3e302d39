"""
Validator Registry - Marker to Validator Resolution

Maps a marker type to the single validator instance that interprets it.

## Declaring a Binding

In code, on the marker class:

```python
@cross_field_constraint(validated_by=MatchWithValidator)
@dataclass(frozen=True)
class MatchWith:
    field: str
    message: str = "Fields do not match."
```

Or at load time, in the YAML config:

```yaml
bindings:
  "myapp.markers.MatchWith": "myapp.validators.MatchWithValidator"
```

Each marker type has at most one validator type. A marker type with no
binding is inert: `resolve()` returns None and nothing is constructed.

## Lifecycle

1. `resolve(marker_type)` looks the binding up (config first, then the
   decorator attribute)
2. The validator class is constructed with no arguments, exactly once
3. The instance is cached by marker type and shared by every later pass

Construction failures raise ConfigurationError straight away; nothing is
cached, so the mistake cannot be masked by a later retry.
"""

import importlib
import logging
import threading
from typing import Any, Dict, Mapping, Optional, Union

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

VALIDATOR_ATTR = "__cross_field_validator__"

BindingKey = Union[str, type]


def cross_field_constraint(validated_by: type):
    """
    Class decorator binding a marker class to its validator class.

    Args:
        validated_by: Validator class, constructed with no arguments on first use
    """
    if not isinstance(validated_by, type):
        raise ConfigurationError(
            f"validated_by must be a class, got {validated_by!r}"
        )

    def decorator(marker_cls: type) -> type:
        setattr(marker_cls, VALIDATOR_ATTR, validated_by)
        return marker_cls

    return decorator


def load_object(dotted_path: str) -> Any:
    """
    Import an object from a dotted path such as "myapp.validators.Range".

    Raises:
        ConfigurationError: If the module or attribute cannot be found
    """
    module_name, _, attr = dotted_path.rpartition(".")
    if not module_name:
        raise ConfigurationError(
            f"Binding target must be a dotted path 'module.Name': {dotted_path!r}"
        )
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Failed to import {module_name} for {dotted_path}: {e}") from e
    if not hasattr(module, attr):
        raise ConfigurationError(f"Module {module_name} has no attribute '{attr}'")
    return getattr(module, attr)


class ValidatorRegistry:
    """Memoised marker type -> validator instance lookup. Thread-safe."""

    def __init__(self, bindings: Optional[Mapping[BindingKey, BindingKey]] = None):
        """
        Initialize the registry.

        Args:
            bindings: Optional marker -> validator mapping from configuration.
                Keys and values are classes or dotted import paths; paths are
                imported here so a bad binding fails at startup.

        Raises:
            ConfigurationError: If a binding cannot be imported
        """
        self._bindings: Dict[type, type] = {}
        for marker, validator in (bindings or {}).items():
            marker_type = load_object(marker) if isinstance(marker, str) else marker
            validator_cls = load_object(validator) if isinstance(validator, str) else validator
            self._bindings[marker_type] = validator_cls

        self._validators: Dict[type, Any] = {}  # Cache: marker type -> validator or None
        self._lock = threading.RLock()
        self.constructions = 0

    def binding_for(self, marker_type: type) -> Optional[type]:
        """
        Return the validator class bound to marker_type, or None if inert.

        Raises:
            ConfigurationError: If config and decorator bind different classes
        """
        configured = self._bindings.get(marker_type)
        declared = getattr(marker_type, VALIDATOR_ATTR, None)

        if configured is not None and declared is not None and configured is not declared:
            raise ConfigurationError(
                f"Conflicting bindings for {marker_type.__qualname__}: "
                f"config binds {configured.__qualname__}, "
                f"decorator binds {declared.__qualname__}"
            )
        return configured if configured is not None else declared

    def resolve(self, marker_type: type) -> Optional[Any]:
        """
        Return the shared validator for marker_type, constructing it on first use.

        Args:
            marker_type: Type of a marker found on a field

        Returns:
            The cached validator instance, or None if marker_type has no binding

        Raises:
            ConfigurationError: If the bound validator cannot be constructed
        """
        with self._lock:
            if marker_type in self._validators:
                return self._validators[marker_type]

            validator_cls = self.binding_for(marker_type)
            validator = None
            if validator_cls is not None:
                validator = self._construct(marker_type, validator_cls)

            self._validators[marker_type] = validator
            return validator

    def cached(self) -> Dict[type, Any]:
        """Snapshot of resolved marker types and their validators (None if inert)."""
        with self._lock:
            return dict(self._validators)

    def clear(self) -> None:
        with self._lock:
            self._validators.clear()

    def _construct(self, marker_type: type, validator_cls: type) -> Any:
        try:
            validator = validator_cls()
        except Exception as e:
            raise ConfigurationError(
                f"Failed to instantiate validator for {marker_type.__qualname__}: "
                f"{validator_cls.__qualname__}() raised {type(e).__name__}: {e}"
            ) from e

        if not callable(getattr(validator, "is_valid", None)):
            raise ConfigurationError(
                f"Failed to instantiate validator for {marker_type.__qualname__}: "
                f"{validator_cls.__qualname__} does not define is_valid()"
            )

        self.constructions += 1
        logger.debug(
            f"Constructed {validator_cls.__qualname__} for {marker_type.__qualname__}",
            extra={"marker": marker_type.__qualname__, "validator": validator_cls.__qualname__},
        )
        return validator
