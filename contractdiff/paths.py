"""Path matching and the diff engines for path items."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from .changes import is_changed
from .elements import ChangedPath, ChangedPaths
from .exceptions import PathCollisionError
from .models import HTTP_METHODS, DiffContext
from .utils import extract_path_parameters, map_key_diff, normalize_path

if TYPE_CHECKING:
    from .engine import DiffSession


logger = structlog.get_logger()


def path_urls(paths: Optional[dict]) -> dict:
    """The path items of a ``paths`` object, without its vendor extensions."""
    return {url: item for url, item in (paths or {}).items() if not str(url).startswith("x-")}


def index_templates(paths: dict) -> dict[str, str]:
    """
    Map every normalized template of a document to its URL.

    Raises:
        PathCollisionError: If two URLs normalize to the same template
    """
    index: dict[str, str] = {}
    for url in paths:
        template = normalize_path(url)
        if template in index:
            raise PathCollisionError(template, [index[template], url])
        index[template] = url
    return index


def rename_map(old_url: str, new_url: str) -> dict[str, str]:
    """Old to new names of the path parameters that were renamed between two matched URLs."""
    if old_url == new_url:
        return {}
    return {
        old: new
        for old, new in zip(extract_path_parameters(old_url), extract_path_parameters(new_url))
        if old != new
    }


def operations_of(path_item: Optional[dict]) -> dict:
    return {
        method: operation for method, operation in (path_item or {}).items()
        if method in HTTP_METHODS and isinstance(operation, dict)
    }


class PathsDiff:
    """Matches the path items of two documents by template signature."""

    def __init__(self, session: DiffSession):
        self.session = session

    def diff(self, left: Optional[dict], right: Optional[dict]) -> Optional[ChangedPaths]:
        left = path_urls(left)
        right = path_urls(right)
        index_templates(left)
        right_index = index_templates(right)

        increased = dict(right)
        missing = {}
        changed = {}
        for url, left_item in left.items():
            right_url = right_index.get(normalize_path(url))
            if right_url is None:
                missing[url] = left_item
                continue

            del increased[right_url]
            parameters = rename_map(url, right_url)
            if parameters:
                logger.info("Path parameters renamed", old_url=url, new_url=right_url, parameters=parameters)

            context = DiffContext.for_path(url, right_url, parameters)
            record = self.session.path_diff.diff(left_item, right[right_url], context)
            if record is not None:
                changed[url] = record

        return is_changed(ChangedPaths(
            old=left,
            new=right,
            increased=increased,
            missing=missing,
            changed=changed,
        ))


class PathDiff:
    """Compares the operations of two matched path items."""

    def __init__(self, session: DiffSession):
        self.session = session

    def diff(self, left: dict, right: dict, context: DiffContext) -> Optional[ChangedPath]:
        left_operations = operations_of(left)
        right_operations = operations_of(right)
        operations_diff = map_key_diff(left_operations, right_operations)

        changed = []
        for method in operations_diff.shared:
            record = self.session.operation_diff.diff(
                left_operations[method], right_operations[method], context.copy_with_method(method)
            )
            if record is not None:
                changed.append(record)

        return is_changed(ChangedPath(
            path_url=context.url or "",
            old_path=left or {},
            new_path=right or {},
            context=context,
            increased=operations_diff.increased,
            missing=operations_diff.missing,
            changed=changed,
            extensions=self.session.extensions_diff.diff(left, right, context),
        ))
