"""
Metadata Cache - Field and Marker Discovery

Discovers the fields declared on a class and the constraint markers attached to
them, and memoises the result per class.

## How Markers Are Attached

Markers ride along in the metadata of a `typing.Annotated` field annotation:

```python
@dataclass
class SignupForm:
    password: str
    confirm_password: Annotated[str, MatchWith(field="password")]
```

Any object can appear in `Annotated` metadata. The cache records all of them;
whether a marker means anything is decided later by the validator registry,
so markers from other libraries can sit on the same field.

## Discovery Order

1. Walk `cls.__mro__` from `object` towards `cls`
2. Take each class's own annotations in declaration order
3. A field redeclared in a subclass keeps its first position but takes the
   subclass's annotation (and therefore its markers)
4. `ClassVar` annotations are skipped

The order depends only on the class definitions, never on dict hashing, so
every pass over instances of one class sees the same layout.
"""

import inspect
import logging
import sys
import threading
import typing
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple, Type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldDescriptor:
    """A declared field, the class that declared it, and its markers."""

    name: str
    owner: type
    annotation: Any
    markers: Tuple[Any, ...] = ()

    def markers_of(self, marker_type: type) -> Tuple[Any, ...]:
        """Markers on this field that are instances of marker_type."""
        return tuple(m for m in self.markers if isinstance(m, marker_type))


class FieldLayout:
    """
    Ordered, read-only view of the fields of one class.

    Iterating yields FieldDescriptor objects in discovery order; indexing and
    membership go by field name.
    """

    def __init__(self, cls: type, fields: List[FieldDescriptor]):
        self._cls = cls
        self._fields = tuple(fields)
        self._by_name = {f.name: f for f in self._fields}

    @property
    def type(self) -> type:
        return self._cls

    def names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self._fields)

    def get(self, name: str) -> Optional[FieldDescriptor]:
        return self._by_name.get(name)

    def annotated_with(self, marker_type: type) -> Iterator[Tuple[FieldDescriptor, Any]]:
        """Yield (field, marker) pairs for every marker of marker_type, in order."""
        for field in self._fields:
            for marker in field.markers_of(marker_type):
                yield field, marker

    def __getitem__(self, name: str) -> FieldDescriptor:
        return self._by_name[name]

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[FieldDescriptor]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        return f"FieldLayout({self._cls.__name__}, fields={list(self.names())})"


class MetadataCache:
    """Per-class memoised field discovery. Safe to share between threads."""

    def __init__(self):
        self._layouts: Dict[type, FieldLayout] = {}
        self._lock = threading.Lock()
        self.discoveries = 0  # Number of discovery runs, one per distinct class

    def fields(self, cls: Type) -> FieldLayout:
        """
        Return the field layout of cls, discovering it on first use.

        Args:
            cls: The class of the object being validated

        Returns:
            The cached FieldLayout; the same object on every call for cls
        """
        with self._lock:
            layout = self._layouts.get(cls)
            if layout is None:
                layout = self._discover(cls)
                self._layouts[cls] = layout
                self.discoveries += 1
        return layout

    def clear(self) -> None:
        with self._lock:
            self._layouts.clear()

    def __contains__(self, cls: object) -> bool:
        return cls in self._layouts

    def _discover(self, cls: type) -> FieldLayout:
        hints = _resolve_hints(cls)

        order: List[str] = []
        owners: Dict[str, type] = {}
        for klass in reversed(cls.__mro__):
            for name in inspect.get_annotations(klass):
                if name not in owners:
                    order.append(name)
                owners[name] = klass

        fields = []
        for name in order:
            hint = hints.get(name)
            if _is_class_var(hint):
                continue
            markers: Tuple[Any, ...] = ()
            if typing.get_origin(hint) is typing.Annotated:
                markers = tuple(hint.__metadata__)
            fields.append(FieldDescriptor(name, owners[name], hint, markers))

        logger.debug(
            f"Discovered {len(fields)} fields on {cls.__qualname__}",
            extra={"type": cls.__qualname__, "fields": [f.name for f in fields]},
        )
        return FieldLayout(cls, fields)


def _resolve_hints(cls: type) -> Dict[str, Any]:
    """
    Evaluate the annotations of cls and its bases, keeping Annotated metadata.

    String annotations (PEP 563) that name something outside the module
    globals, such as a class local to a function, cannot be resolved for the
    class as a whole. Each annotation is then evaluated on its own against
    its declaring module, and one that still fails stays a raw string, which
    carries no markers.
    """
    try:
        return typing.get_type_hints(cls, include_extras=True)
    except (NameError, TypeError) as e:
        logger.debug(
            f"Cannot resolve annotations of {cls.__qualname__} as a whole, "
            f"resolving per field: {e}",
            extra={"type": cls.__qualname__},
        )

    hints: Dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        module = sys.modules.get(klass.__module__)
        globalns = dict(vars(module)) if module is not None else {}
        localns = dict(vars(klass))
        for name, value in inspect.get_annotations(klass).items():
            if isinstance(value, str):
                try:
                    value = eval(value, globalns, localns)
                except (NameError, AttributeError, SyntaxError, TypeError) as e:
                    logger.debug(
                        f"Leaving {klass.__qualname__}.{name} unresolved: {e}",
                        extra={"type": cls.__qualname__, "field": name},
                    )
            hints[name] = value
    return hints


def _is_class_var(hint: Any) -> bool:
    if isinstance(hint, str):
        return hint.startswith(("ClassVar[", "typing.ClassVar[")) or hint in ("ClassVar", "typing.ClassVar")
    return hint is typing.ClassVar or typing.get_origin(hint) is typing.ClassVar
