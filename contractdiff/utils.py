"""Utility functions and set-diff primitives for the contractdiff engine."""

from __future__ import annotations

import re
import json
import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional


PATH_PARAMETER_PATTERN = re.compile(r"\{([^/{}]+)\}")


@dataclass
class MapKeyDiff:
    """Key partition of two mappings. Values are carried, never compared."""
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    shared: list = field(default_factory=list)


@dataclass
class ListDiff:
    """Partition of two scalar collections."""
    increased: list = field(default_factory=list)
    missing: list = field(default_factory=list)
    shared: list = field(default_factory=list)


def map_key_diff(old: Optional[Mapping], new: Optional[Mapping]) -> MapKeyDiff:
    """
    Partition the keys of two mappings.

    Args:
        old: The old mapping (None is treated as empty)
        new: The new mapping (None is treated as empty)

    Returns:
        MapKeyDiff with new-only entries, old-only entries and shared keys
    """
    old = old or {}
    new = new or {}

    result = MapKeyDiff()
    for key, value in new.items():
        if key not in old:
            result.increased[key] = value
    for key, value in old.items():
        if key in new:
            result.shared.append(key)
        else:
            result.missing[key] = value
    return result


def _unique(values: Iterable, key: Callable[[Any], Any]) -> tuple[list, list]:
    unique = []
    seen = []
    for value in values:
        marker = key(value)
        if marker not in seen:
            seen.append(marker)
            unique.append(value)
    return unique, seen


def list_diff(
    old: Optional[Iterable],
    new: Optional[Iterable],
    key: Optional[Callable[[Any], Any]] = None,
) -> ListDiff:
    """
    Partition two collections of scalar values.

    Duplicates collapse and the first-seen order of each side is kept.

    Args:
        old: Values of the old version
        new: Values of the new version
        key: Maps a value to what it is compared by (the value itself by default)

    Returns:
        ListDiff holding the original values
    """
    key = key or (lambda value: value)
    old_values, old_keys = _unique(old or [], key)
    new_values, new_keys = _unique(new or [], key)

    if not old_values:
        return ListDiff(increased=new_values)
    if not new_values:
        return ListDiff(missing=old_values)

    result = ListDiff()
    for value, marker in zip(old_values, old_keys):
        if marker in new_keys:
            result.shared.append(value)
        else:
            result.missing.append(value)
    result.increased = [value for value, marker in zip(new_values, new_keys) if marker not in old_keys]
    return result


def deep_copy(obj: Any) -> Any:
    """Create a deep copy of an object."""
    return copy.deepcopy(obj)


def canonical_json(obj: Any) -> str:
    """Serialize a value so that structurally equal values give equal strings."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)


def normalize_path(url: str) -> str:
    """Replace every ``{param}`` placeholder of a path template with ``{}``."""
    return PATH_PARAMETER_PATTERN.sub("{}", url)


def extract_path_parameters(url: str) -> list[str]:
    """Return the placeholder names of a path template in positional order."""
    return PATH_PARAMETER_PATTERN.findall(url)


def get_extensions(element: Optional[Mapping]) -> dict:
    """Return the ``x-`` vendor extensions of an element."""
    if not isinstance(element, Mapping):
        return {}
    return {key: value for key, value in element.items()
            if isinstance(key, str) and key.startswith("x-")}


def get_flag(element: Optional[Mapping], name: str) -> bool:
    """Read a boolean flag, treating absent and null as false."""
    if not isinstance(element, Mapping):
        return False
    return bool(element.get(name) or False)
