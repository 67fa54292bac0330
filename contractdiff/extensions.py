"""Vendor extension (``x-``) plugins and their registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Optional

import structlog

from .changes import ChangeRecord, ChangedExtensions, is_changed
from .models import ChangeType, DiffContext
from .utils import get_extensions


logger = structlog.get_logger()


@dataclass
class ExtensionChange:
    """The old and new value of one vendor extension."""
    old_value: Any = None
    new_value: Any = None
    type: ChangeType = ChangeType.CHANGED

    @classmethod
    def added(cls, value: Any) -> ExtensionChange:
        return cls(new_value=value, type=ChangeType.ADDED)

    @classmethod
    def removed(cls, value: Any) -> ExtensionChange:
        return cls(old_value=value, type=ChangeType.REMOVED)

    @classmethod
    def changed(cls, old_value: Any, new_value: Any) -> ExtensionChange:
        return cls(old_value=old_value, new_value=new_value, type=ChangeType.CHANGED)


class ExtensionDiff(ABC):
    """
    Plugin comparing one vendor extension.

    Subclasses set ``name`` to the extension name without the ``x-`` prefix.
    """

    name: str = ""

    @property
    def key(self) -> str:
        return f"x-{self.name}"

    @abstractmethod
    def diff(self, change: ExtensionChange, context: Optional[DiffContext]) -> Optional[ChangeRecord]:
        """Classify a change of the extension; None means nothing to report."""

    def is_parent_applicable(
        self,
        change_type: ChangeType,
        parent: Any,
        value: Any,
        context: Optional[DiffContext],
    ) -> bool:
        """Whether an added or removed element carrying this extension should be reported."""
        return True


class ExtensionRegistry:
    """Plugins indexed by their ``x-`` key."""

    def __init__(self, extensions: Iterable[ExtensionDiff] = ()):
        self._extensions: dict[str, ExtensionDiff] = {}
        for extension in extensions:
            self.register(extension)

    def register(self, extension: ExtensionDiff):
        self._extensions[extension.key] = extension

    def get(self, key: str) -> Optional[ExtensionDiff]:
        return self._extensions.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._extensions

    def __len__(self) -> int:
        return len(self._extensions)


class ExtensionsDiff:
    """Compares the vendor extensions of two elements through the registered plugins."""

    def __init__(self, registry: Optional[ExtensionRegistry] = None):
        self.registry = registry or ExtensionRegistry()

    def diff(
        self,
        left: Optional[dict],
        right: Optional[dict],
        context: Optional[DiffContext] = None,
    ) -> Optional[ChangedExtensions]:
        """
        Compare the ``x-`` keys of two elements.

        Args:
            left: The old element (or its extension map)
            right: The new element (or its extension map)
            context: Comparison context handed to the plugins

        Returns:
            ChangedExtensions when a plugin reported a change, otherwise None
        """
        old = get_extensions(left)
        new = get_extensions(right)
        if not old and not new:
            return None

        changed_extensions = ChangedExtensions(old=old, new=new, context=context)
        for key, value in old.items():
            if key in new:
                record = self._execute(key, ExtensionChange.changed(value, new[key]), context)
                if record is not None:
                    changed_extensions.changed[key] = record
            else:
                record = self._execute(key, ExtensionChange.removed(value), context)
                if record is not None:
                    changed_extensions.missing[key] = record
        for key, value in new.items():
            if key not in old:
                record = self._execute(key, ExtensionChange.added(value), context)
                if record is not None:
                    changed_extensions.increased[key] = record

        return is_changed(changed_extensions)

    def is_parent_applicable(
        self,
        change_type: ChangeType,
        parent: Any,
        extensions: Optional[dict],
        context: Optional[DiffContext],
    ) -> bool:
        """True unless a plugin for one of the parent's extensions vetoes it."""
        for key, value in get_extensions(extensions).items():
            extension = self.registry.get(key)
            if extension is None:
                continue
            if not extension.is_parent_applicable(change_type, parent, value, context):
                logger.debug("Extension vetoed element", extension=key, change_type=change_type.value)
                return False
        return True

    def _execute(
        self,
        key: str,
        change: ExtensionChange,
        context: Optional[DiffContext],
    ) -> Optional[ChangeRecord]:
        extension = self.registry.get(key)
        if extension is None:
            return None
        return is_changed(extension.diff(change, context))
