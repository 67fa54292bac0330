"""JSONPath utilities used to strip ignored parts of a document before comparison."""

from __future__ import annotations

from typing import Any

import structlog
from jsonpath_ng import parse as jsonpath_parse
from jsonpath_ng.exceptions import JsonPathLexerError, JsonPathParserError

from .exceptions import JSONPathError


logger = structlog.get_logger()


class JSONPathMatcher:
    """Utility class for JSONPath matching and deletion."""

    # Cache for compiled JSONPath expressions
    _cache: dict = {}

    @classmethod
    def compile(cls, path: str):
        """Compile and cache a JSONPath expression."""
        if path not in cls._cache:
            try:
                cls._cache[path] = jsonpath_parse(path)
            except (JsonPathParserError, JsonPathLexerError) as e:
                raise JSONPathError(path, str(e))
        return cls._cache[path]

    @classmethod
    def delete_paths(cls, data: Any, paths: list[str]) -> Any:
        """
        Delete all paths matching the given JSONPath expressions.

        Args:
            data: The data to modify (will be modified in place)
            paths: List of JSONPath expressions

        Returns:
            Modified data
        """
        for path in paths:
            data = cls._delete_path(data, path)
        return data

    @classmethod
    def _delete_path(cls, data: Any, path: str) -> Any:
        """Delete a single JSONPath from data."""
        expr = cls.compile(path)
        matches = expr.find(data)
        logger.debug("Applying ignore expression", expression=path, matches=len(matches))

        # Process matches in reverse order to avoid index issues
        for match in reversed(matches):
            full_path = match.full_path
            if hasattr(full_path, "left") and hasattr(full_path, "right"):
                parent = full_path.left.find(data)
                if not parent:
                    continue
                parent_obj = parent[0].value
                key = full_path.right
            else:
                # Direct child of the root
                parent_obj, key = data, full_path
            if hasattr(key, "fields"):
                # Object field
                for field in key.fields:
                    if isinstance(parent_obj, dict) and field in parent_obj:
                        del parent_obj[field]
            elif hasattr(key, "indices") or hasattr(key, "index"):
                # Array index
                indices = getattr(key, "indices", None) or (key.index,)
                for index in sorted(indices, reverse=True):
                    if isinstance(parent_obj, list) and 0 <= index < len(parent_obj):
                        del parent_obj[index]

        return data
