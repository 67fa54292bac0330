"""Base change records, severity aggregation and the leaf value records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional

from .models import (
    ChangeSummary,
    ChangeType,
    CoreDelta,
    DiffContext,
    ElementType,
    Severity,
)
from .utils import canonical_json, list_diff


class ChangeRecord:
    """
    A node of the change tree.

    Subclasses report their own scalar differences through ``core_severity``
    and ``core_deltas``; composite records additionally expose ``children``.
    Records are built once per comparison and never modified afterwards.
    """

    element_type: ClassVar[ElementType] = ElementType.METADATA

    def core_severity(self) -> Severity:
        raise NotImplementedError

    def core_deltas(self) -> list[CoreDelta]:
        return []

    def children(self) -> list[tuple[Optional[str], ChangeRecord]]:
        return []

    def severity(self) -> Severity:
        return self.core_severity()

    def is_unchanged(self) -> bool:
        return self.severity().is_unchanged()

    def is_different(self) -> bool:
        return self.severity().is_different()

    def is_compatible(self) -> bool:
        return self.severity().is_compatible()

    def is_incompatible(self) -> bool:
        return self.severity().is_incompatible()

    def flatten(
        self,
        identifier: Optional[str] = None,
        parent_path: str = "",
        depth: int = 0,
    ) -> list[ChangeSummary]:
        """
        Flatten this subtree into path-annotated entries.

        Children come first and the record's own entry last. Entries whose core
        severity is NO_CHANGES are left out.

        Args:
            identifier: Name of this record within its parent
            parent_path: Path of the parent record
            depth: Depth of the parent record

        Returns:
            List of ChangeSummary entries
        """
        path = parent_path
        if identifier is not None:
            path = f"{parent_path}/{identifier}" if parent_path else identifier
            depth += 1

        entries: list[ChangeSummary] = []
        for child_identifier, child in self.children():
            entries.extend(child.flatten(child_identifier, path, depth))

        severity = self.core_severity()
        if severity.is_different():
            entries.append(ChangeSummary(
                path=path,
                identifier=identifier,
                element_type=self.element_type,
                severity=severity,
                deltas=self.core_deltas(),
                depth=depth,
            ))
        return entries


class CompositeChangeRecord(ChangeRecord):
    """A record whose severity also covers the records nested under it."""

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        """Named child slots; empty slots are None."""
        return []

    def children(self) -> list[tuple[Optional[str], ChangeRecord]]:
        return [(name, child) for name, child in self.changed_elements() if child is not None]

    def severity(self) -> Severity:
        result = self.core_severity()
        for _, child in self.children():
            result = max(result, child.severity())
        return Severity(result)


def is_changed(record: Optional[ChangeRecord]) -> Optional[ChangeRecord]:
    """Keep a record only when something under it actually changed."""
    if record is None or record.is_unchanged():
        return None
    return record


def keyed_deltas(
    element_type: ElementType,
    increased: dict | list,
    missing: dict | list,
) -> list[CoreDelta]:
    """Deltas for the added and removed keys of a keyed collection."""
    deltas = [CoreDelta(element_type, ChangeType.ADDED, str(key)) for key in increased]
    deltas.extend(CoreDelta(element_type, ChangeType.REMOVED, str(key)) for key in missing)
    return deltas


def value_delta(
    element_type: ElementType,
    name: str,
    old: Any,
    new: Any,
) -> Optional[CoreDelta]:
    """A CHANGED/ADDED/REMOVED delta for one scalar field, or None when equal."""
    if old == new:
        return None
    if old is None:
        return CoreDelta(element_type, ChangeType.ADDED, name, None, new)
    if new is None:
        return CoreDelta(element_type, ChangeType.REMOVED, name, old, None)
    return CoreDelta(element_type, ChangeType.CHANGED, name, old, new)


@dataclass
class ListChangeRecord(ChangeRecord):
    """Change of an unordered collection of scalar values, compared by their JSON form."""

    field_name: ClassVar[str] = "values"

    old_values: list = field(default_factory=list)
    new_values: list = field(default_factory=list)
    context: Optional[DiffContext] = None
    increased: list = field(init=False, default_factory=list)
    missing: list = field(init=False, default_factory=list)
    shared: list = field(init=False, default_factory=list)

    def __post_init__(self):
        diff = list_diff(self.old_values, self.new_values, key=canonical_json)
        self.increased = diff.increased
        self.missing = diff.missing
        self.shared = diff.shared

    def items_severity(self) -> Severity:
        raise NotImplementedError

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        return self.items_severity()

    def core_deltas(self) -> list[CoreDelta]:
        deltas = [
            CoreDelta(self.element_type, ChangeType.ADDED, self.field_name, None, value)
            for value in self.increased
        ]
        deltas.extend(
            CoreDelta(self.element_type, ChangeType.REMOVED, self.field_name, value, None)
            for value in self.missing
        )
        return deltas


@dataclass
class ChangedEnum(ListChangeRecord):
    element_type = ElementType.ENUM
    field_name = "enum"

    def items_severity(self) -> Severity:
        context = self.context or DiffContext()
        if (context.is_request and not self.missing) or (context.is_response and not self.increased):
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE


@dataclass
class ChangedRequired(ListChangeRecord):
    """Change of a schema's ``required`` list.

    ``not_applicable`` names properties that were added but do not apply to the
    current direction; they are not counted as newly required.
    """

    element_type = ElementType.REQUIRED
    field_name = "required"

    not_applicable: list = field(default_factory=list)

    def __post_init__(self):
        super().__post_init__()
        if self.not_applicable:
            self.increased = [name for name in self.increased if name not in self.not_applicable]

    def items_severity(self) -> Severity:
        context = self.context or DiffContext()
        if (context.is_request and not self.increased) or (context.is_response and not self.missing):
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE


@dataclass
class ChangedMetadata(ChangeRecord):
    """Free-text change such as a description or summary."""

    element_type = ElementType.METADATA

    old: Optional[str] = None
    new: Optional[str] = None
    name: str = "description"

    def core_severity(self) -> Severity:
        if self.old == self.new:
            return Severity.NO_CHANGES
        return Severity.METADATA

    def core_deltas(self) -> list[CoreDelta]:
        delta = value_delta(self.element_type, self.name, self.old, self.new)
        return [delta] if delta else []


@dataclass
class ChangedBound(ChangeRecord):
    """
    Change of a numeric limit such as ``maxLength`` or ``minimum``.

    Loosening a limit is safe for requests; tightening is safe for responses.
    ``upper`` tells which way is loosening.
    """

    element_type = ElementType.BOUND

    old: Optional[float] = None
    new: Optional[float] = None
    context: Optional[DiffContext] = None
    name: str = "maxLength"
    upper: bool = True

    def _widened(self) -> bool:
        if self.new is None:
            return True
        if self.old is None:
            return False
        return self.new >= self.old if self.upper else self.new <= self.old

    def _narrowed(self) -> bool:
        if self.new is None or self.old is None:
            return True
        return self.new <= self.old if self.upper else self.new >= self.old

    def core_severity(self) -> Severity:
        if self.old == self.new:
            return Severity.NO_CHANGES
        context = self.context or DiffContext()
        if context.is_request and self._widened():
            return Severity.COMPATIBLE
        if context.is_response and self._narrowed():
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        delta = value_delta(self.element_type, self.name, self.old, self.new)
        return [delta] if delta else []


@dataclass
class ChangedReadOnly(ChangeRecord):
    element_type = ElementType.READ_ONLY

    old: bool = False
    new: bool = False
    context: Optional[DiffContext] = None

    def core_severity(self) -> Severity:
        if self.old == self.new:
            return Severity.NO_CHANGES
        context = self.context or DiffContext()
        if context.is_response:
            return Severity.COMPATIBLE
        if context.is_request:
            if self.new and context.required:
                return Severity.INCOMPATIBLE
            return Severity.COMPATIBLE
        return Severity.UNKNOWN

    def core_deltas(self) -> list[CoreDelta]:
        return [CoreDelta(self.element_type, ChangeType.CHANGED, "readOnly", self.old, self.new)]


@dataclass
class ChangedWriteOnly(ChangeRecord):
    element_type = ElementType.WRITE_ONLY

    old: bool = False
    new: bool = False
    context: Optional[DiffContext] = None

    def core_severity(self) -> Severity:
        if self.old == self.new:
            return Severity.NO_CHANGES
        return Severity.COMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return [CoreDelta(self.element_type, ChangeType.CHANGED, "writeOnly", self.old, self.new)]


@dataclass
class ChangedExtensions(CompositeChangeRecord):
    """Vendor extension changes reported by registered plugins, keyed by ``x-`` name."""

    element_type = ElementType.EXTENSIONS

    old: dict = field(default_factory=dict)
    new: dict = field(default_factory=dict)
    context: Optional[DiffContext] = None
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: dict = field(default_factory=dict)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        elements = []
        for records in (self.increased, self.missing, self.changed):
            elements.extend(records.items())
        return elements

    def core_severity(self) -> Severity:
        return Severity.NO_CHANGES
