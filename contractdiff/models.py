"""Data models for the contractdiff engine."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from typing import Any, Optional


HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


class LogLevel(Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


class Severity(IntEnum):
    """Ordered classification of a change; aggregation always keeps the max."""
    NO_CHANGES = 0
    METADATA = 1
    COMPATIBLE = 2
    UNKNOWN = 3
    INCOMPATIBLE = 4

    def is_unchanged(self) -> bool:
        return self is Severity.NO_CHANGES

    def is_different(self) -> bool:
        return self is not Severity.NO_CHANGES

    def is_compatible(self) -> bool:
        return self <= Severity.COMPATIBLE

    def is_incompatible(self) -> bool:
        return self > Severity.COMPATIBLE


class ChangeType(Enum):
    ADDED = "ADDED"
    REMOVED = "REMOVED"
    CHANGED = "CHANGED"


class ElementType(Enum):
    OPENAPI = "OpenApi"
    PATHS = "Paths"
    PATH = "Path"
    OPERATION = "Operation"
    PARAMETERS = "Parameters"
    PARAMETER = "Parameter"
    REQUEST_BODY = "RequestBody"
    RESPONSES = "Responses"
    RESPONSE = "Response"
    HEADERS = "Headers"
    HEADER = "Header"
    CONTENT = "Content"
    MEDIA_TYPE = "MediaType"
    SCHEMA = "Schema"
    ONE_OF = "OneOf"
    ENUM = "Enum"
    REQUIRED = "Required"
    BOUND = "Bound"
    READ_ONLY = "ReadOnly"
    WRITE_ONLY = "WriteOnly"
    METADATA = "Metadata"
    SECURITY_REQUIREMENTS = "SecurityRequirements"
    SECURITY_REQUIREMENT = "SecurityRequirement"
    SECURITY_SCHEME = "SecurityScheme"
    SECURITY_SCOPES = "SecurityScopes"
    OAUTH_FLOWS = "OAuthFlows"
    OAUTH_FLOW = "OAuthFlow"
    EXTENSIONS = "Extensions"
    EXTENSION = "Extension"


class Direction(Enum):
    REQUEST = "request"
    RESPONSE = "response"


@dataclass(frozen=True)
class DiffContext:
    """
    Where in the contract a comparison is happening.

    Values are never changed in place; every ``copy_*`` helper returns a new
    context so sibling branches of the recursion cannot see each other's state.
    """
    url: Optional[str] = None
    new_url: Optional[str] = None
    parameters: tuple[tuple[str, str], ...] = ()
    method: Optional[str] = None
    direction: Optional[Direction] = None
    required: bool = False

    @property
    def is_request(self) -> bool:
        return self.direction is Direction.REQUEST

    @property
    def is_response(self) -> bool:
        return self.direction is Direction.RESPONSE

    @property
    def parameter_map(self) -> dict[str, str]:
        return dict(self.parameters)

    def copy_as_request(self) -> DiffContext:
        return replace(self, direction=Direction.REQUEST)

    def copy_as_response(self) -> DiffContext:
        return replace(self, direction=Direction.RESPONSE)

    def copy_with_method(self, method: str) -> DiffContext:
        return replace(self, method=method)

    def copy_with_required(self, required: bool) -> DiffContext:
        return replace(self, required=required)

    @classmethod
    def for_path(cls, url: str, new_url: str, parameters: dict[str, str]) -> DiffContext:
        return cls(url=url, new_url=new_url, parameters=tuple(parameters.items()))


@dataclass(frozen=True)
class CacheKey:
    """Key of the reference cache: both pointers plus the context they were diffed in."""
    left_ref: str
    right_ref: str
    context: DiffContext


@dataclass
class CoreDelta:
    """One scalar difference owned by a change record."""
    element_type: ElementType
    change_type: ChangeType
    field: str
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> dict:
        return {
            "element_type": self.element_type.value,
            "change_type": self.change_type.value,
            "field": self.field,
            "old_value": self.old_value,
            "new_value": self.new_value,
        }


@dataclass
class ChangeSummary:
    """A flattened, path-annotated entry of the change tree."""
    path: str
    identifier: Optional[str]
    element_type: ElementType
    severity: Severity
    deltas: list[CoreDelta] = field(default_factory=list)
    depth: int = 0

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "identifier": self.identifier,
            "element_type": self.element_type.value,
            "severity": self.severity.name,
            "deltas": [d.to_dict() for d in self.deltas],
        }


@dataclass
class Endpoint:
    """An operation addressed by its URL template and HTTP method."""
    path_url: str
    method: str
    summary: Optional[str] = None
    operation: Optional[dict] = None

    def to_dict(self) -> dict:
        return {
            "path": self.path_url,
            "method": self.method.upper(),
            "summary": self.summary,
        }


@dataclass
class EngineConfig:
    """
    Global configuration for the comparison engine.

    ``log_level`` is read by the command-line script when it configures
    logging; the engine itself never configures structlog.
    """
    global_ignores: list[str] = field(default_factory=list)
    apply_global_security: bool = True
    merge_path_parameters: bool = True
    extensions: Optional[Any] = None
    log_level: LogLevel = LogLevel.INFO


@dataclass
class ErrorResponse:
    """Error response structure."""
    success: bool = False
    error: Optional[dict] = None

    def to_dict(self) -> dict:
        result = {"success": self.success}
        if self.error:
            result["error"] = self.error
        return result
