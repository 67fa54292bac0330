"""Reference resolution, allOf flattening and schema shape classification."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import structlog

from .exceptions import UnresolvedRefError
from .utils import canonical_json


logger = structlog.get_logger()

BASE_REF = "#/components/"

MERGED_LIST_KEYWORDS = ("required", "enum")


class RefKind(Enum):
    """Component tables a ``$ref`` may point into."""
    SCHEMAS = "schemas"
    PARAMETERS = "parameters"
    REQUEST_BODIES = "requestBodies"
    RESPONSES = "responses"
    HEADERS = "headers"
    SECURITY_SCHEMES = "securitySchemes"


class SchemaShape(Enum):
    PLAIN = "plain"
    ARRAY = "array"
    COMPOSED = "composed"

    @classmethod
    def classify(cls, schema: Optional[dict]) -> SchemaShape:
        """Decide the shape of an already flattened schema."""
        if not isinstance(schema, dict):
            return cls.PLAIN
        if schema.get("oneOf") is not None or schema.get("anyOf") is not None:
            return cls.COMPOSED
        if schema.get("type") == "array":
            return cls.ARRAY
        return cls.PLAIN


def get_ref(element: Any) -> Optional[str]:
    """Return the ``$ref`` of an element, or None for inline elements."""
    if isinstance(element, dict):
        return element.get("$ref")
    return None


def _unescape(token: str) -> str:
    # JSON pointer escaping
    return token.replace("~1", "/").replace("~0", "~")


class RefPointer:
    """Resolves ``#/components/<kind>/<name>`` references of one component kind."""

    def __init__(self, kind: RefKind):
        self.kind = kind

    @property
    def base_ref(self) -> str:
        return f"{BASE_REF}{self.kind.value}/"

    def ref_name(self, ref: str) -> str:
        """
        Extract the component name from a reference.

        Security schemes are referenced by bare name; a full component
        reference to one is reduced to that name.
        """
        if self.kind is RefKind.SECURITY_SCHEMES:
            return ref[len(self.base_ref):] if ref.startswith(self.base_ref) else ref
        if not ref.lower().startswith(self.base_ref.lower()):
            raise UnresolvedRefError(ref, f"expected a reference into {self.base_ref}")
        return _unescape(ref[len(self.base_ref):])

    def resolve(self, components: Optional[dict], element: Any, ref: Optional[str] = None) -> Any:
        """
        Resolve an element against a component table.

        Args:
            components: The document's ``components`` object
            element: The element, possibly a ``{"$ref": ...}`` object
            ref: Explicit reference to resolve instead of the element's own

        Returns:
            The referenced component, or the element itself when it is inline
        """
        ref = ref if ref is not None else get_ref(element)
        seen: list[str] = []
        while ref is not None:
            if ref in seen:
                raise UnresolvedRefError(ref, "circular reference chain")
            seen.append(ref)
            element = self._lookup(components, ref)
            ref = get_ref(element)
        return element

    def _lookup(self, components: Optional[dict], ref: str) -> Any:
        name = self.ref_name(ref)
        table = (components or {}).get(self.kind.value) or {}
        if name in table:
            return table[name]

        for candidate in table:
            if isinstance(candidate, str) and candidate.lower() == name.lower():
                raise UnresolvedRefError(
                    ref, f"reference is case sensitive: '{name}' is not equal to '{candidate}'"
                )
        raise UnresolvedRefError(ref, "does not exist")


SCHEMA_POINTER = RefPointer(RefKind.SCHEMAS)


def _merge_unique(target: Optional[list], values: list) -> list:
    merged = list(target or [])
    for value in values:
        if value not in merged:
            merged.append(value)
    return merged


def merge_schema(target: dict, source: dict) -> dict:
    """
    Fold ``source`` into ``target`` the way ``allOf`` composes schemas.

    Scalar keywords present in ``source`` overwrite ``target``. Properties,
    ``required``, ``enum``, vendor extensions and discriminator mappings are
    unioned. ``target`` is modified and returned; ``source`` is left untouched.
    """
    for key, value in source.items():
        if key == "allOf" or value is None:
            continue
        if key == "properties" and isinstance(value, dict):
            properties = dict(target.get("properties") or {})
            properties.update(value)
            target["properties"] = properties
        elif key in MERGED_LIST_KEYWORDS and isinstance(value, list):
            target[key] = _merge_unique(target.get(key), value)
        elif key == "discriminator" and isinstance(value, dict):
            discriminator = dict(target.get("discriminator") or {})
            if value.get("propertyName") is not None:
                discriminator["propertyName"] = value["propertyName"]
            if value.get("mapping"):
                mapping = dict(discriminator.get("mapping") or {})
                mapping.update(value["mapping"])
                discriminator["mapping"] = mapping
            target["discriminator"] = discriminator
        else:
            target[key] = value
    return target


class SchemaFlattener:
    """
    Collapses ``allOf`` compositions into a single schema for one document.

    Results are cached by the canonical form of the composed schema. A member
    reference that is already being flattened higher up the stack is skipped.
    """

    def __init__(self, components: Optional[dict]):
        self.components = components
        self._cache: dict[str, dict] = {}
        self._stack: list[str] = []

    def flatten(self, schema: Any) -> Any:
        if not isinstance(schema, dict) or not schema.get("allOf"):
            return schema

        key = canonical_json(schema)
        if key in self._cache:
            return self._cache[key]

        combined = merge_schema({}, schema)
        for member in schema["allOf"]:
            ref = get_ref(member)
            if ref is not None and ref in self._stack:
                logger.debug("Skipping recursive allOf member", ref=ref)
                continue
            if ref is not None:
                self._stack.append(ref)
            try:
                resolved = SCHEMA_POINTER.resolve(self.components, member)
                merge_schema(combined, self.flatten(resolved) or {})
            finally:
                if ref is not None:
                    self._stack.pop()

        self._cache[key] = combined
        return combined
