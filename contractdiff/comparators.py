"""Leaf value comparisons: descriptions, enums, required lists, bounds and access flags."""

from __future__ import annotations

from typing import Any, Iterable, Optional

from .changes import (
    ChangedBound,
    ChangedEnum,
    ChangedMetadata,
    ChangedReadOnly,
    ChangedRequired,
    ChangedWriteOnly,
    is_changed,
)
from .models import DiffContext
from .utils import get_flag


# (keyword, is_upper_bound)
BOUND_KEYWORDS = (
    ("maxLength", True),
    ("minLength", False),
    ("maxItems", True),
    ("minItems", False),
    ("maxProperties", True),
    ("minProperties", False),
    ("maximum", True),
    ("minimum", False),
)


def compare_metadata(
    old: Optional[str],
    new: Optional[str],
    name: str = "description",
) -> Optional[ChangedMetadata]:
    """
    Compare two free-text values.

    Args:
        old: The old text
        new: The new text
        name: Field the text belongs to, used in the reported delta

    Returns:
        ChangedMetadata when the texts differ, otherwise None
    """
    if old == new:
        return None
    return ChangedMetadata(old=old, new=new, name=name)


def compare_enum(
    old: Optional[Iterable[Any]],
    new: Optional[Iterable[Any]],
    context: DiffContext,
) -> Optional[ChangedEnum]:
    """Compare enumerations; values of different JSON types never match."""
    return is_changed(ChangedEnum(list(old or []), list(new or []), context))


def compare_required(
    old: Optional[Iterable[str]],
    new: Optional[Iterable[str]],
    context: DiffContext,
    not_applicable: Optional[Iterable[str]] = None,
) -> ChangedRequired:
    """
    Compare two ``required`` lists.

    Args:
        old: The old required property names
        new: The new required property names
        context: Comparison context
        not_applicable: Added properties that do not count as newly required

    Returns:
        ChangedRequired, whether or not anything changed
    """
    return ChangedRequired(
        list(old or []), list(new or []), context, not_applicable=list(not_applicable or [])
    )


def compare_bound(
    old: Optional[float],
    new: Optional[float],
    context: DiffContext,
    name: str,
    upper: bool,
) -> Optional[ChangedBound]:
    if old == new:
        return None
    return ChangedBound(old=old, new=new, context=context, name=name, upper=upper)


def compare_bounds(old_schema: dict, new_schema: dict, context: DiffContext) -> dict[str, ChangedBound]:
    """Compare every numeric limit keyword of two schemas, keyed by keyword."""
    bounds = {}
    for name, upper in BOUND_KEYWORDS:
        changed = compare_bound(old_schema.get(name), new_schema.get(name), context, name, upper)
        if changed is not None:
            bounds[name] = changed
    return bounds


def compare_read_only(old_schema: dict, new_schema: dict, context: DiffContext) -> ChangedReadOnly:
    return ChangedReadOnly(
        old=get_flag(old_schema, "readOnly"),
        new=get_flag(new_schema, "readOnly"),
        context=context,
    )


def compare_write_only(old_schema: dict, new_schema: dict, context: DiffContext) -> ChangedWriteOnly:
    return ChangedWriteOnly(
        old=get_flag(old_schema, "writeOnly"),
        new=get_flag(new_schema, "writeOnly"),
        context=context,
    )


def boolean_changed(old: Optional[bool], new: Optional[bool]) -> bool:
    """Compare two optional booleans, treating absent as false."""
    return bool(old or False) != bool(new or False)


def newly_set(old: Optional[dict], new: Optional[dict], name: str) -> bool:
    """True when a flag goes from unset to set, e.g. ``deprecated``."""
    return not get_flag(old, name) and get_flag(new, name)
