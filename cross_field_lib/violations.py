"""Violation records collected during a single validation pass."""

from typing import Iterator, List, NamedTuple, Tuple


class Violation(NamedTuple):
    """A failed constraint: the field it is reported on and the message."""

    field_name: str
    message: str


class ViolationCollector:
    """
    Append-only, ordered sequence of violations for one pass.

    No deduplication: two validators reporting on the same field produce two
    records. A collector belongs to exactly one pass and is never shared
    between threads.
    """

    def __init__(self):
        self._records: List[Violation] = []

    def add(self, field_name: str, message: str) -> None:
        self._records.append(Violation(field_name, message))

    def records(self) -> Tuple[Violation, ...]:
        """Snapshot of the violations collected so far, in insertion order."""
        return tuple(self._records)

    def __iter__(self) -> Iterator[Violation]:
        return iter(tuple(self._records))

    def __len__(self) -> int:
        return len(self._records)

    def __bool__(self) -> bool:
        return bool(self._records)

    def __repr__(self) -> str:
        return f"ViolationCollector({self._records!r})"
