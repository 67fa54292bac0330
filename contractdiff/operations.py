"""Diff engines for operations and the request/response elements under them."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import structlog

from .cache import ReferenceDiffCache
from .changes import is_changed
from .comparators import boolean_changed, compare_metadata, newly_set
from .elements import (
    ChangedApiResponses,
    ChangedContent,
    ChangedHeader,
    ChangedHeaders,
    ChangedMediaType,
    ChangedOperation,
    ChangedParameter,
    ChangedParameters,
    ChangedRequestBody,
    ChangedResponse,
)
from .models import DiffContext
from .schema import RefKind, RefPointer, get_ref
from .utils import get_flag, map_key_diff

if TYPE_CHECKING:
    from .engine import DiffSession


logger = structlog.get_logger()

PARAMETER_POINTER = RefPointer(RefKind.PARAMETERS)
HEADER_POINTER = RefPointer(RefKind.HEADERS)
REQUEST_BODY_POINTER = RefPointer(RefKind.REQUEST_BODIES)
RESPONSE_POINTER = RefPointer(RefKind.RESPONSES)


def _without_extensions(mapping: Optional[dict]) -> dict:
    return {
        str(key): value for key, value in (mapping or {}).items()
        if not str(key).startswith("x-")
    }


class ContentDiff:
    """Compares media-type maps (``content``) by media type name."""

    def __init__(self, session: DiffSession):
        self.session = session

    def diff(
        self,
        left: Optional[dict],
        right: Optional[dict],
        context: DiffContext,
    ) -> Optional[ChangedContent]:
        left = left or {}
        right = right or {}
        if not left and not right:
            return None

        content_diff = map_key_diff(left, right)
        changed = {}
        for media_type in content_diff.shared:
            old_media = left[media_type] or {}
            new_media = right[media_type] or {}
            schema = self.session.schema_diff.diff(
                set(), old_media.get("schema"), new_media.get("schema"), context.copy_with_required(True)
            )
            record = is_changed(ChangedMediaType(
                old_schema=old_media.get("schema"),
                new_schema=new_media.get("schema"),
                context=context,
                schema=schema,
            ))
            if record is not None:
                changed[media_type] = record

        return is_changed(ChangedContent(
            old=left,
            new=right,
            context=context,
            increased=content_diff.increased,
            missing=content_diff.missing,
            changed=changed,
        ))


class ParameterDiff(ReferenceDiffCache):
    def __init__(self, session: DiffSession):
        super().__init__()
        self.session = session

    def diff(self, left: dict, right: dict, context: DiffContext) -> Optional[ChangedParameter]:
        return self.cached_diff(set(), left, right, get_ref(left), get_ref(right), context)

    def compute_diff(
        self,
        ref_set: set[str],
        left: dict,
        right: dict,
        context: DiffContext,
    ) -> Optional[ChangedParameter]:
        left = PARAMETER_POINTER.resolve(self.session.left_components, left)
        right = PARAMETER_POINTER.resolve(self.session.right_components, right)

        changed_parameter = ChangedParameter(
            name=right.get("name", ""),
            location=right.get("in"),
            old_parameter=left,
            new_parameter=right,
            context=context,
            required_changed=boolean_changed(left.get("required"), right.get("required")),
            deprecated=newly_set(left, right, "deprecated"),
            allow_empty_value_changed=boolean_changed(
                left.get("allowEmptyValue"), right.get("allowEmptyValue")
            ),
            style_changed=left.get("style") != right.get("style"),
            explode_changed=boolean_changed(left.get("explode"), right.get("explode")),
            schema=self.session.schema_diff.diff(
                ref_set, left.get("schema"), right.get("schema"), context.copy_with_required(True)
            ),
            description=compare_metadata(left.get("description"), right.get("description")),
            content=self.session.content_diff.diff(left.get("content"), right.get("content"), context),
            extensions=self.session.extensions_diff.diff(left, right, context),
        )
        return is_changed(changed_parameter)


class ParametersDiff:
    """
    Matches the parameter lists of two operations.

    Parameters are matched by name and location; path parameters are matched
    through the rename map of the enclosing path.
    """

    def __init__(self, session: DiffSession):
        self.session = session

    def same(self, left: dict, right: dict, context: DiffContext) -> bool:
        if left.get("in") != right.get("in"):
            return False
        left_name = left.get("name")
        if left.get("in") == "path":
            left_name = context.parameter_map.get(left_name, left_name)
        return left_name == right.get("name")

    def diff(
        self,
        left: Optional[list],
        right: Optional[list],
        context: DiffContext,
    ) -> Optional[ChangedParameters]:
        left = list(left or [])
        right = list(right or [])

        missing = []
        changed = []
        remaining = [
            (parameter, PARAMETER_POINTER.resolve(self.session.right_components, parameter))
            for parameter in right
        ]
        for parameter in left:
            resolved = PARAMETER_POINTER.resolve(self.session.left_components, parameter)
            index = next(
                (i for i, (_, candidate) in enumerate(remaining) if self.same(resolved, candidate, context)),
                None,
            )
            if index is None:
                missing.append(resolved)
                continue

            right_parameter, _ = remaining.pop(index)
            record = self.session.parameter_diff.diff(parameter, right_parameter, context)
            if record is not None:
                changed.append(record)
        increased = [resolved for _, resolved in remaining]

        # Renamed path parameters are accounted for by the path match
        for old_name, new_name in context.parameters:
            missing = self._without_path_parameter(old_name, missing)
            increased = self._without_path_parameter(new_name, increased)

        return is_changed(ChangedParameters(
            old=left,
            new=right,
            context=context,
            increased=increased,
            missing=missing,
            changed=changed,
        ))

    @staticmethod
    def _without_path_parameter(name: str, parameters: list[dict]) -> list[dict]:
        for index, parameter in enumerate(parameters):
            if parameter.get("in") == "path" and parameter.get("name") == name:
                logger.debug("Ignoring renamed path parameter", name=name)
                return parameters[:index] + parameters[index + 1:]
        return parameters


class HeaderDiff(ReferenceDiffCache):
    def __init__(self, session: DiffSession):
        super().__init__()
        self.session = session

    def diff(self, left: dict, right: dict, context: DiffContext) -> Optional[ChangedHeader]:
        return self.cached_diff(set(), left, right, get_ref(left), get_ref(right), context)

    def compute_diff(
        self,
        ref_set: set[str],
        left: dict,
        right: dict,
        context: DiffContext,
    ) -> Optional[ChangedHeader]:
        left = HEADER_POINTER.resolve(self.session.left_components, left) or {}
        right = HEADER_POINTER.resolve(self.session.right_components, right) or {}

        changed_header = ChangedHeader(
            old_header=left,
            new_header=right,
            context=context,
            required=boolean_changed(left.get("required"), right.get("required")),
            deprecated=newly_set(left, right, "deprecated"),
            style=left.get("style") != right.get("style"),
            explode=boolean_changed(left.get("explode"), right.get("explode")),
            description=compare_metadata(left.get("description"), right.get("description")),
            schema=self.session.schema_diff.diff(
                ref_set, left.get("schema"), right.get("schema"), context.copy_with_required(True)
            ),
            content=self.session.content_diff.diff(left.get("content"), right.get("content"), context),
            extensions=self.session.extensions_diff.diff(left, right, context),
        )
        return is_changed(changed_header)


class HeadersDiff:
    def __init__(self, session: DiffSession):
        self.session = session

    def diff(
        self,
        left: Optional[dict],
        right: Optional[dict],
        context: DiffContext,
    ) -> Optional[ChangedHeaders]:
        left = left or {}
        right = right or {}
        headers_diff = map_key_diff(left, right)

        changed = {}
        for name in headers_diff.shared:
            record = self.session.header_diff.diff(left[name], right[name], context)
            if record is not None:
                changed[name] = record

        return is_changed(ChangedHeaders(
            old=left,
            new=right,
            context=context,
            increased=headers_diff.increased,
            missing=headers_diff.missing,
            changed=changed,
        ))


class RequestBodyDiff(ReferenceDiffCache):
    def __init__(self, session: DiffSession):
        super().__init__()
        self.session = session

    def diff(
        self,
        left: Optional[dict],
        right: Optional[dict],
        context: DiffContext,
    ) -> Optional[ChangedRequestBody]:
        return self.cached_diff(set(), left, right, get_ref(left), get_ref(right), context)

    def compute_diff(
        self,
        ref_set: set[str],
        left: Optional[dict],
        right: Optional[dict],
        context: DiffContext,
    ) -> Optional[ChangedRequestBody]:
        old_body = None
        new_body = None
        if left is not None:
            old_body = REQUEST_BODY_POINTER.resolve(self.session.left_components, left)
        if right is not None:
            new_body = REQUEST_BODY_POINTER.resolve(self.session.right_components, right)

        changed_request_body = ChangedRequestBody(
            old_request_body=old_body,
            new_request_body=new_body,
            context=context,
            required_changed=get_flag(old_body, "required") != get_flag(new_body, "required"),
            description=compare_metadata(
                (old_body or {}).get("description"), (new_body or {}).get("description")
            ),
            content=self.session.content_diff.diff(
                (old_body or {}).get("content"), (new_body or {}).get("content"), context
            ),
            extensions=self.session.extensions_diff.diff(old_body, new_body, context),
        )
        return is_changed(changed_request_body)


class ResponseDiff(ReferenceDiffCache):
    def __init__(self, session: DiffSession):
        super().__init__()
        self.session = session

    def diff(self, left: dict, right: dict, context: DiffContext) -> Optional[ChangedResponse]:
        return self.cached_diff(set(), left, right, get_ref(left), get_ref(right), context)

    def compute_diff(
        self,
        ref_set: set[str],
        left: dict,
        right: dict,
        context: DiffContext,
    ) -> Optional[ChangedResponse]:
        left = RESPONSE_POINTER.resolve(self.session.left_components, left) or {}
        right = RESPONSE_POINTER.resolve(self.session.right_components, right) or {}

        changed_response = ChangedResponse(
            old_response=left,
            new_response=right,
            context=context,
            description=compare_metadata(left.get("description"), right.get("description")),
            headers=self.session.headers_diff.diff(left.get("headers"), right.get("headers"), context),
            content=self.session.content_diff.diff(left.get("content"), right.get("content"), context),
            extensions=self.session.extensions_diff.diff(left, right, context),
        )
        return is_changed(changed_response)


class ApiResponseDiff:
    """Compares the status-code maps of two operations."""

    def __init__(self, session: DiffSession):
        self.session = session

    def diff(
        self,
        left: Optional[dict],
        right: Optional[dict],
        context: DiffContext,
    ) -> Optional[ChangedApiResponses]:
        left_codes = _without_extensions(left)
        right_codes = _without_extensions(right)
        responses_diff = map_key_diff(left_codes, right_codes)

        changed = {}
        for code in responses_diff.shared:
            record = self.session.response_diff.diff(left_codes[code], right_codes[code], context)
            if record is not None:
                changed[code] = record

        return is_changed(ChangedApiResponses(
            old=left_codes,
            new=right_codes,
            context=context,
            increased=responses_diff.increased,
            missing=responses_diff.missing,
            changed=changed,
            extensions=self.session.extensions_diff.diff(left, right, context),
        ))


class OperationDiff:
    def __init__(self, session: DiffSession):
        self.session = session

    def diff(
        self,
        old_operation: dict,
        new_operation: dict,
        context: DiffContext,
    ) -> Optional[ChangedOperation]:
        """
        Compare two operations matched by path and HTTP method.

        Args:
            old_operation: The old operation object
            new_operation: The new operation object
            context: Context carrying the path URL, method and rename map

        Returns:
            ChangedOperation when anything differs, otherwise None
        """
        changed_operation = ChangedOperation(
            path_url=context.url or "",
            method=context.method or "",
            old_operation=old_operation,
            new_operation=new_operation,
            summary=compare_metadata(
                old_operation.get("summary"), new_operation.get("summary"), name="summary"
            ),
            description=compare_metadata(old_operation.get("description"), new_operation.get("description")),
            deprecated=newly_set(old_operation, new_operation, "deprecated"),
        )

        if old_operation.get("requestBody") is not None or new_operation.get("requestBody") is not None:
            changed_operation.request_body = self.session.request_body_diff.diff(
                old_operation.get("requestBody"),
                new_operation.get("requestBody"),
                context.copy_as_request(),
            )

        changed_operation.parameters = self.session.parameters_diff.diff(
            old_operation.get("parameters"), new_operation.get("parameters"), context.copy_as_request()
        )

        if old_operation.get("responses") is not None or new_operation.get("responses") is not None:
            changed_operation.api_responses = self.session.api_response_diff.diff(
                old_operation.get("responses"), new_operation.get("responses"), context.copy_as_response()
            )

        if old_operation.get("security") is not None or new_operation.get("security") is not None:
            changed_operation.security_requirements = self.session.security_requirements_diff.diff(
                old_operation.get("security"), new_operation.get("security"), context
            )

        changed_operation.extensions = self.session.extensions_diff.diff(
            old_operation, new_operation, context
        )
        return is_changed(changed_operation)

