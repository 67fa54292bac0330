"""Main comparison engine for contractdiff."""

from __future__ import annotations

import time
from typing import Any, Optional

import structlog

from .elements import ChangedOpenApi, ChangedPaths
from .exceptions import (
    JSONPathError,
    PathCollisionError,
    UnresolvedRefError,
    UnsupportedSchemaError,
    ValidationError,
)
from .differ import SchemaDiff
from .extensions import ExtensionsDiff
from .jsonpath_utils import JSONPathMatcher
from .models import EngineConfig, Endpoint, ErrorResponse
from .operations import (
    PARAMETER_POINTER,
    ApiResponseDiff,
    ContentDiff,
    HeaderDiff,
    HeadersDiff,
    OperationDiff,
    ParameterDiff,
    ParametersDiff,
    RequestBodyDiff,
    ResponseDiff,
)
from .paths import PathDiff, PathsDiff, operations_of, path_urls
from .schema import SchemaFlattener
from .security import (
    OAuthFlowDiff,
    OAuthFlowsDiff,
    SecurityRequirementDiff,
    SecurityRequirementsDiff,
    SecuritySchemeDiff,
)
from .utils import canonical_json, deep_copy


logger = structlog.get_logger()


def _distinct(requirements: list) -> list:
    seen = set()
    result = []
    for requirement in requirements:
        key = canonical_json(requirement)
        if key not in seen:
            seen.add(key)
            result.append(requirement)
    return result


def apply_global_security(document: dict):
    """
    Push document-level security down to the operations.

    Operations without a ``security`` key inherit the document's requirements;
    duplicated requirements collapse. The document-level list is removed.
    """
    requirements = document.pop("security", None)
    for path_item in path_urls(document.get("paths")).values():
        for operation in operations_of(path_item).values():
            if operation.get("security") is not None:
                operation["security"] = _distinct(operation["security"])
            elif requirements is not None:
                operation["security"] = deep_copy(_distinct(requirements))


def merge_path_parameters(document: dict):
    """Copy path-item parameters into each operation; operation parameters win on name and location."""
    components = document.get("components")
    for url, path_item in path_urls(document.get("paths")).items():
        if not isinstance(path_item, dict):
            continue
        shared = path_item.pop("parameters", None)
        if not shared:
            continue

        for operation in operations_of(path_item).values():
            own = operation.get("parameters") or []
            own_keys = set()
            for parameter in own:
                resolved = PARAMETER_POINTER.resolve(components, parameter)
                own_keys.add((resolved.get("name"), resolved.get("in")))

            inherited = []
            for parameter in shared:
                resolved = PARAMETER_POINTER.resolve(components, parameter)
                if (resolved.get("name"), resolved.get("in")) not in own_keys:
                    inherited.append(parameter)
            operation["parameters"] = inherited + list(own)
        logger.debug("Merged path-level parameters", path=url, count=len(shared))


def normalize_response_codes(document: dict):
    for path_item in path_urls(document.get("paths")).values():
        for operation in operations_of(path_item).values():
            responses = operation.get("responses")
            if isinstance(responses, dict):
                operation["responses"] = {str(code): value for code, value in responses.items()}


def endpoints_of(url: str, operations: dict) -> list[Endpoint]:
    return [
        Endpoint(path_url=url, method=method, summary=operation.get("summary"), operation=operation)
        for method, operation in operations.items()
    ]


class DiffSession:
    """
    One comparison of two contract documents.

    The session owns the preprocessed document copies, the per-kind reference
    caches and the ``allOf`` flatteners. It is used once and then discarded.
    """

    def __init__(
        self,
        old_document: Any,
        new_document: Any,
        config: Optional[EngineConfig] = None,
        old_identifier: Optional[str] = None,
        new_identifier: Optional[str] = None,
    ):
        self.config = config or EngineConfig()
        self._validate_inputs(old_document, new_document)

        self.old_identifier = old_identifier
        self.new_identifier = new_identifier
        self.old_document = self.prepare(old_document)
        self.new_document = self.prepare(new_document)

        self.left_components = self.old_document.get("components") or {}
        self.right_components = self.new_document.get("components") or {}
        self.left_flattener = SchemaFlattener(self.left_components)
        self.right_flattener = SchemaFlattener(self.right_components)

        self.extensions_diff = ExtensionsDiff(self.config.extensions)
        self.schema_diff = SchemaDiff(self)
        self.content_diff = ContentDiff(self)
        self.parameters_diff = ParametersDiff(self)
        self.parameter_diff = ParameterDiff(self)
        self.headers_diff = HeadersDiff(self)
        self.header_diff = HeaderDiff(self)
        self.request_body_diff = RequestBodyDiff(self)
        self.response_diff = ResponseDiff(self)
        self.api_response_diff = ApiResponseDiff(self)
        self.operation_diff = OperationDiff(self)
        self.security_requirements_diff = SecurityRequirementsDiff(self)
        self.security_requirement_diff = SecurityRequirementDiff(self)
        self.security_scheme_diff = SecuritySchemeDiff(self)
        self.oauth_flows_diff = OAuthFlowsDiff(self)
        self.oauth_flow_diff = OAuthFlowDiff(self)
        self.paths_diff = PathsDiff(self)
        self.path_diff = PathDiff(self)

    def _validate_inputs(self, old_document: Any, new_document: Any):
        """Validate input documents."""
        if old_document is None:
            raise ValidationError("old_document is required")
        if new_document is None:
            raise ValidationError("new_document is required")
        for name, document in (("old_document", old_document), ("new_document", new_document)):
            if not isinstance(document, dict):
                raise ValidationError(
                    f"{name} must be an object",
                    {"type": type(document).__name__}
                )

    def prepare(self, document: dict) -> dict:
        """Return a preprocessed deep copy of a document."""
        document = deep_copy(document)
        if self.config.global_ignores:
            document = JSONPathMatcher.delete_paths(document, self.config.global_ignores)
        if self.config.apply_global_security:
            apply_global_security(document)
        if self.config.merge_path_parameters:
            merge_path_parameters(document)
        normalize_response_codes(document)
        return document

    def compare(self) -> ChangedOpenApi:
        """
        Compare the two documents.

        Returns:
            ChangedOpenApi describing every difference

        Raises:
            ContractDiffError: On path collisions, unresolved references or
                unsupported schemas
        """
        with structlog.contextvars.bound_contextvars(old=self.old_identifier, new=self.new_identifier):
            logger.debug("Comparing contracts")
            paths = self.paths_diff.diff(self.old_document.get("paths"), self.new_document.get("paths"))
            new_endpoints, missing_endpoints, changed_operations = self._collect_endpoints(paths)

            result = ChangedOpenApi(
                old_identifier=self.old_identifier,
                new_identifier=self.new_identifier,
                new_endpoints=new_endpoints,
                missing_endpoints=missing_endpoints,
                changed_operations=changed_operations,
                changed_extensions=self.extensions_diff.diff(self.old_document, self.new_document),
                old_document=self.old_document,
                new_document=self.new_document,
            )
            logger.debug(
                "Comparison finished",
                severity=result.severity().name,
                new_endpoints=len(new_endpoints),
                missing_endpoints=len(missing_endpoints),
                changed_operations=len(changed_operations),
            )
            return result

    def _collect_endpoints(self, paths: Optional[ChangedPaths]):
        new_endpoints: list[Endpoint] = []
        missing_endpoints: list[Endpoint] = []
        changed_operations = []
        if paths is None:
            return new_endpoints, missing_endpoints, changed_operations

        for url, path_item in paths.increased.items():
            new_endpoints.extend(endpoints_of(url, operations_of(path_item)))
        for url, path_item in paths.missing.items():
            missing_endpoints.extend(endpoints_of(url, operations_of(path_item)))
        for url, changed_path in paths.changed.items():
            new_endpoints.extend(endpoints_of(changed_path.context.new_url or url, changed_path.increased))
            missing_endpoints.extend(endpoints_of(url, changed_path.missing))
            changed_operations.extend(changed_path.changed)
        return new_endpoints, missing_endpoints, changed_operations


def compare(
    old_document: dict,
    new_document: dict,
    config: Optional[EngineConfig] = None,
    old_identifier: Optional[str] = None,
    new_identifier: Optional[str] = None,
) -> ChangedOpenApi:
    """Compare two documents, raising ContractDiffError subclasses on failure."""
    return DiffSession(old_document, new_document, config, old_identifier, new_identifier).compare()


class ContractDiffEngine:
    """
    Entry point that compares two contract documents:

    1. Preprocessing: Drop ignored paths, push down security, merge path parameters
    2. Path matching: Pair path items by template signature
    3. Element diffing: Recurse through operations down to schemas
    4. Classification: Aggregate severities into one verdict
    """

    VERSION = "1.0.0"

    def __init__(self, config: Optional[EngineConfig] = None):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (uses defaults if not provided)
        """
        self.config = config or EngineConfig()

    def compare(
        self,
        old_document: Any,
        new_document: Any,
        old_identifier: Optional[str] = None,
        new_identifier: Optional[str] = None,
    ) -> ChangedOpenApi | ErrorResponse:
        """
        Compare two parsed contract documents.

        Args:
            old_document: The baseline contract
            new_document: The contract to check against the baseline
            old_identifier: Label for the old document (e.g. its file name)
            new_identifier: Label for the new document

        Returns:
            ChangedOpenApi on success, ErrorResponse on validation/processing errors
        """
        start_time = time.time()

        try:
            return compare(old_document, new_document, self.config, old_identifier, new_identifier)
        except ValidationError as e:
            return self._create_error_response(
                "VALIDATION_ERROR",
                e.message,
                e.details,
                start_time
            )
        except PathCollisionError as e:
            return self._create_error_response(
                "PATH_COLLISION",
                str(e),
                {"template": e.template, "paths": e.paths},
                start_time
            )
        except UnresolvedRefError as e:
            return self._create_error_response(
                "UNRESOLVED_REF",
                str(e),
                {"ref": e.ref, "reason": e.reason},
                start_time
            )
        except UnsupportedSchemaError as e:
            return self._create_error_response(
                "UNSUPPORTED_SCHEMA",
                e.message,
                {"reason": e.reason},
                start_time
            )
        except JSONPathError as e:
            return self._create_error_response(
                "JSONPATH_ERROR",
                str(e),
                {"expression": e.expression, "reason": e.reason},
                start_time
            )
        except Exception as e:
            return self._create_error_response(
                "PROCESSING_ERROR",
                str(e),
                {"type": type(e).__name__},
                start_time
            )

    def _create_error_response(
        self,
        code: str,
        message: str,
        details: dict,
        start_time: float
    ) -> ErrorResponse:
        """Create an error response."""
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error("Comparison failed", code=code, message=message, duration_ms=duration_ms)
        return ErrorResponse(
            success=False,
            error={
                "code": code,
                "message": message,
                "details": {**details, "duration_ms": duration_ms}
            }
        )
