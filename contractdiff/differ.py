"""Schema comparison: dispatch by shape over resolved, flattened schemas."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

import structlog

from .cache import ReferenceDiffCache
from .changes import is_changed
from .comparators import (
    compare_bounds,
    compare_enum,
    compare_metadata,
    compare_read_only,
    compare_required,
    compare_write_only,
    newly_set,
)
from .elements import ChangedOneOfSchema, ChangedSchema
from .exceptions import UnsupportedSchemaError
from .models import ChangeType, DiffContext
from .schema import SCHEMA_POINTER, SchemaShape, get_ref
from .utils import canonical_json, get_flag, map_key_diff

if TYPE_CHECKING:
    from .engine import DiffSession


logger = structlog.get_logger()


def is_property_applicable(schema: Optional[dict], context: DiffContext) -> bool:
    """Read-only properties do not exist in requests, write-only ones not in responses."""
    if context.is_response and get_flag(schema, "writeOnly"):
        return False
    if context.is_request and get_flag(schema, "readOnly"):
        return False
    return True


def _additional_properties(schema: dict) -> Optional[dict]:
    # Only schema-valued additionalProperties constrain anything comparable
    value = schema.get("additionalProperties")
    return value if isinstance(value, dict) else None


class SchemaDiff(ReferenceDiffCache):
    """
    Compares two schemas reached from any element of the contract.

    Both sides are resolved and ``allOf``-flattened first. A side that is
    missing, or a ``type``/``format`` mismatch, yields a type-changed record;
    otherwise the new schema's shape picks the algorithm.
    """

    def __init__(self, session: DiffSession):
        super().__init__()
        self.session = session

    def diff(
        self,
        ref_set: set[str],
        left: Optional[dict],
        right: Optional[dict],
        context: DiffContext,
    ) -> Optional[ChangedSchema]:
        if left is None and right is None:
            return None
        return self.cached_diff(ref_set, left, right, get_ref(left), get_ref(right), context)

    def type_changed_schema(self, left: Any, right: Any, context: DiffContext) -> ChangedSchema:
        return ChangedSchema(context=context, old_schema=left, new_schema=right, type_changed=True)

    def compute_diff(
        self,
        ref_set: set[str],
        left: Any,
        right: Any,
        context: DiffContext,
    ) -> Optional[ChangedSchema]:
        left = SCHEMA_POINTER.resolve(self.session.left_components, left)
        right = SCHEMA_POINTER.resolve(self.session.right_components, right)

        left = self.session.left_flattener.flatten(left)
        right = self.session.right_flattener.flatten(right)

        if (
            left is None
            or right is None
            or left.get("type") != right.get("type")
            or left.get("format") != right.get("format")
        ):
            logger.debug(
                "Schema type changed",
                old_type=(left or {}).get("type"),
                new_type=(right or {}).get("type"),
            )
            return self.type_changed_schema(left, right, context)

        shape = SchemaShape.classify(right)
        if shape is SchemaShape.COMPOSED:
            return self._diff_composed(ref_set, left, right, context)
        if shape is SchemaShape.ARRAY:
            items = self.diff(
                ref_set, left.get("items"), right.get("items"), context.copy_with_required(True)
            )
            return self._diff_base(ref_set, left, right, context, items=items)
        return self._diff_base(ref_set, left, right, context)

    def _diff_composed(
        self,
        ref_set: set[str],
        left: dict,
        right: dict,
        context: DiffContext,
    ) -> Optional[ChangedSchema]:
        if SchemaShape.classify(left) is not SchemaShape.COMPOSED:
            return self.type_changed_schema(left, right, context)

        left_one_of = left.get("oneOf") or []
        right_one_of = right.get("oneOf") or []
        if not left_one_of and not right_one_of:
            return self._diff_base(ref_set, left, right, context)

        left_property = (left.get("discriminator") or {}).get("propertyName")
        right_property = (right.get("discriminator") or {}).get("propertyName")
        if not left_property or not right_property:
            raise UnsupportedSchemaError(
                "discriminator or property not found for oneOf schema",
                reason="oneOf schemas must declare discriminator.propertyName",
            )

        if left_property != right_property or not left_one_of or not right_one_of:
            return ChangedSchema(
                context=context,
                old_schema=left,
                new_schema=right,
                discriminator_property_changed=True,
            )

        left_mapping = self._mapping(left)
        right_mapping = self._mapping(right)
        mapping_diff = map_key_diff(left_mapping, right_mapping)

        changed = {}
        for key in mapping_diff.shared:
            record = self.diff(
                ref_set,
                {"$ref": left_mapping[key]},
                {"$ref": right_mapping[key]},
                context.copy_with_required(True),
            )
            if record is not None:
                changed[key] = record

        one_of_schema = ChangedOneOfSchema(
            old_mapping=left_mapping,
            new_mapping=right_mapping,
            context=context,
            increased=mapping_diff.increased,
            missing=mapping_diff.missing,
            changed=changed,
        )
        return self._diff_base(ref_set, left, right, context, one_of_schema=is_changed(one_of_schema))

    def _mapping(self, schema: dict) -> dict[str, str]:
        """Discriminator value to schema reference, explicit mappings overriding defaults."""
        reverse: dict[str, str] = {}
        for member in schema.get("oneOf") or []:
            ref = get_ref(member)
            if ref is None:
                raise UnsupportedSchemaError(
                    "invalid oneOf schema",
                    reason="oneOf members must be references to component schemas",
                )
            reverse[ref] = SCHEMA_POINTER.ref_name(ref)

        mapping = (schema.get("discriminator") or {}).get("mapping") or {}
        for key, value in mapping.items():
            ref = value if value.startswith("#") else f"{SCHEMA_POINTER.base_ref}{value}"
            reverse[ref] = key

        return {name: ref for ref, name in reverse.items()}

    def _diff_base(
        self,
        ref_set: set[str],
        left: dict,
        right: dict,
        context: DiffContext,
        **children,
    ) -> Optional[ChangedSchema]:
        read_only = compare_read_only(left, right, context)
        write_only = compare_write_only(left, right, context)

        changed_schema = ChangedSchema(
            context=context,
            old_schema=left,
            new_schema=right,
            deprecated_changed=newly_set(left, right, "deprecated"),
            title_changed=left.get("title") != right.get("title"),
            default_changed=canonical_json(left.get("default")) != canonical_json(right.get("default")),
            format_changed=left.get("format") != right.get("format"),
            description=compare_metadata(left.get("description"), right.get("description")),
            read_only=is_changed(read_only),
            write_only=is_changed(write_only),
            enumeration=compare_enum(left.get("enum"), right.get("enum"), context),
            bounds=compare_bounds(left, right, context),
            extensions=self.session.extensions_diff.diff(left, right, context),
            **children,
        )

        left_properties = left.get("properties") or {}
        right_properties = right.get("properties") or {}
        right_required = right.get("required") or []
        property_diff = map_key_diff(left_properties, right_properties)

        for name in property_diff.shared:
            record = self.diff(
                ref_set,
                left_properties[name],
                right_properties[name],
                context.copy_with_required(name in right_required),
            )
            if record is not None:
                changed_schema.changed_properties[name] = record

        changed_schema.additional_properties = self._diff_additional_properties(
            ref_set, left, right, context
        )

        not_applicable = []
        for name, value in property_diff.increased.items():
            if self._is_applicable(ChangeType.ADDED, value, self.session.right_components, context):
                changed_schema.increased_properties[name] = value
            else:
                not_applicable.append(name)
        for name, value in property_diff.missing.items():
            if self._is_applicable(ChangeType.REMOVED, value, self.session.left_components, context):
                changed_schema.missing_properties[name] = value

        changed_schema.required = is_changed(compare_required(
            left.get("required"), right.get("required"), context, not_applicable
        ))

        if (
            read_only.is_unchanged()
            and write_only.is_unchanged()
            and not is_property_applicable(right, context)
        ):
            return None
        return is_changed(changed_schema)

    def _is_applicable(
        self,
        change_type: ChangeType,
        value: Any,
        components: Optional[dict],
        context: DiffContext,
    ) -> bool:
        schema = SCHEMA_POINTER.resolve(components, value)
        if not is_property_applicable(schema, context):
            return False
        return self.session.extensions_diff.is_parent_applicable(change_type, schema, schema, context)

    def _diff_additional_properties(
        self,
        ref_set: set[str],
        left: dict,
        right: dict,
        context: DiffContext,
    ) -> Optional[ChangedSchema]:
        left_additional = _additional_properties(left)
        right_additional = _additional_properties(right)
        if left_additional is None and right_additional is None:
            return None

        record = ChangedSchema(context=context, old_schema=left_additional, new_schema=right_additional)
        if left_additional is not None and right_additional is not None:
            diff = self.diff(ref_set, left_additional, right_additional, context.copy_with_required(False))
            record = diff or record
        return is_changed(record)
