"""Change records for the structural elements of a contract."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .changes import (
    ChangeRecord,
    ChangedBound,
    ChangedEnum,
    ChangedExtensions,
    ChangedMetadata,
    ChangedReadOnly,
    ChangedRequired,
    ChangedWriteOnly,
    CompositeChangeRecord,
    keyed_deltas,
    value_delta,
)
from .models import (
    ChangeSummary,
    ChangeType,
    CoreDelta,
    DiffContext,
    ElementType,
    Endpoint,
    Severity,
)
from .utils import ListDiff, get_flag


def _schema_value(schema: Optional[dict], name: str) -> Any:
    if not isinstance(schema, dict):
        return None
    return schema.get(name)


@dataclass
class ChangedSchema(CompositeChangeRecord):
    element_type = ElementType.SCHEMA

    context: DiffContext = field(default_factory=DiffContext)
    old_schema: Optional[dict] = None
    new_schema: Optional[dict] = None
    type_changed: bool = False
    format_changed: bool = False
    deprecated_changed: bool = False
    title_changed: bool = False
    default_changed: bool = False
    discriminator_property_changed: bool = False
    increased_properties: dict = field(default_factory=dict)
    missing_properties: dict = field(default_factory=dict)
    changed_properties: dict = field(default_factory=dict)
    description: Optional[ChangedMetadata] = None
    read_only: Optional[ChangedReadOnly] = None
    write_only: Optional[ChangedWriteOnly] = None
    items: Optional[ChangedSchema] = None
    one_of_schema: Optional[ChangedOneOfSchema] = None
    additional_properties: Optional[ChangedSchema] = None
    enumeration: Optional[ChangedEnum] = None
    required: Optional[ChangedRequired] = None
    bounds: dict[str, ChangedBound] = field(default_factory=dict)
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        elements: list[tuple[Optional[str], Optional[ChangeRecord]]] = list(self.changed_properties.items())
        elements.extend([
            ("Description", self.description),
            ("ReadOnly", self.read_only),
            ("WriteOnly", self.write_only),
            ("Items", self.items),
            ("OneOf", self.one_of_schema),
            ("AdditionalProperties", self.additional_properties),
            ("Enum", self.enumeration),
            ("Required", self.required),
        ])
        elements.extend(self.bounds.items())
        elements.append(("Extensions", self.extensions))
        return elements

    def core_severity(self) -> Severity:
        both_or_neither = (self.old_schema is None) == (self.new_schema is None)
        if (
            not self.type_changed
            and both_or_neither
            and not self.format_changed
            and not self.increased_properties
            and not self.missing_properties
            and not self.changed_properties
            and not self.deprecated_changed
            and not self.discriminator_property_changed
        ):
            if self.title_changed or self.default_changed:
                return Severity.METADATA
            return Severity.NO_CHANGES

        compatible_for_request = self.old_schema is not None or self.new_schema is None
        compatible_for_response = (
            not self.missing_properties
            and (self.old_schema is None or self.new_schema is not None)
        )
        if (
            (self.context.is_request and compatible_for_request
             or self.context.is_response and compatible_for_response)
            and not self.type_changed
            and not self.discriminator_property_changed
        ):
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        deltas = keyed_deltas(self.element_type, self.increased_properties, self.missing_properties)
        old, new = self.old_schema, self.new_schema

        def changed(name: str, old_value: Any, new_value: Any):
            deltas.append(CoreDelta(self.element_type, ChangeType.CHANGED, name, old_value, new_value))

        if self.type_changed:
            changed("type", _schema_value(old, "type"), _schema_value(new, "type"))
        if self.default_changed:
            changed("default", _schema_value(old, "default"), _schema_value(new, "default"))
        if self.deprecated_changed:
            changed("deprecated", get_flag(old, "deprecated"), get_flag(new, "deprecated"))
        if self.format_changed:
            changed("format", _schema_value(old, "format"), _schema_value(new, "format"))
        if self.title_changed:
            changed("title", _schema_value(old, "title"), _schema_value(new, "title"))
        if self.discriminator_property_changed:
            changed(
                "discriminator.propertyName",
                (_schema_value(old, "discriminator") or {}).get("propertyName"),
                (_schema_value(new, "discriminator") or {}).get("propertyName"),
            )
        return deltas


@dataclass
class ChangedOneOfSchema(CompositeChangeRecord):
    """Change of a discriminated ``oneOf``; keys are discriminator values."""

    element_type = ElementType.ONE_OF

    old_mapping: dict = field(default_factory=dict)
    new_mapping: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: dict = field(default_factory=dict)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return list(self.changed.items())

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if self.context.is_request and not self.missing:
            return Severity.COMPATIBLE
        if self.context.is_response and not self.increased:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(self.element_type, self.increased, self.missing)


@dataclass
class ChangedMediaType(CompositeChangeRecord):
    element_type = ElementType.MEDIA_TYPE

    old_schema: Optional[dict] = None
    new_schema: Optional[dict] = None
    context: DiffContext = field(default_factory=DiffContext)
    schema: Optional[ChangedSchema] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [("Schema", self.schema)]

    def core_severity(self) -> Severity:
        return Severity.NO_CHANGES


@dataclass
class ChangedContent(CompositeChangeRecord):
    """Media types of a body; responses must keep exactly the same set."""

    element_type = ElementType.CONTENT

    old: dict = field(default_factory=dict)
    new: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: dict[str, ChangedMediaType] = field(default_factory=dict)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return list(self.changed.items())

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if self.context.is_request and not self.missing:
            return Severity.COMPATIBLE
        if self.context.is_response and not self.missing and not self.increased:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(self.element_type, self.increased, self.missing)


@dataclass
class ChangedParameter(CompositeChangeRecord):
    element_type = ElementType.PARAMETER

    name: str = ""
    location: Optional[str] = None
    old_parameter: dict = field(default_factory=dict)
    new_parameter: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    required_changed: bool = False
    deprecated: bool = False
    style_changed: bool = False
    explode_changed: bool = False
    allow_empty_value_changed: bool = False
    description: Optional[ChangedMetadata] = None
    schema: Optional[ChangedSchema] = None
    content: Optional[ChangedContent] = None
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [
            ("Description", self.description),
            ("Schema", self.schema),
            ("Content", self.content),
            ("Extensions", self.extensions),
        ]

    def core_severity(self) -> Severity:
        if not (self.required_changed or self.deprecated or self.allow_empty_value_changed
                or self.style_changed or self.explode_changed):
            return Severity.NO_CHANGES
        if (
            (not self.required_changed or get_flag(self.old_parameter, "required"))
            and (not self.allow_empty_value_changed or get_flag(self.new_parameter, "allowEmptyValue"))
            and not self.style_changed
            and not self.explode_changed
        ):
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        deltas = []
        for flag, name in (
            (self.required_changed, "required"),
            (self.deprecated, "deprecated"),
            (self.style_changed, "style"),
            (self.explode_changed, "explode"),
            (self.allow_empty_value_changed, "allowEmptyValue"),
        ):
            if flag:
                deltas.append(CoreDelta(
                    self.element_type, ChangeType.CHANGED, name,
                    self.old_parameter.get(name), self.new_parameter.get(name),
                ))
        return deltas


@dataclass
class ChangedParameters(CompositeChangeRecord):
    element_type = ElementType.PARAMETERS

    old: list = field(default_factory=list)
    new: list = field(default_factory=list)
    context: DiffContext = field(default_factory=DiffContext)
    increased: list = field(default_factory=list)
    missing: list = field(default_factory=list)
    changed: list[ChangedParameter] = field(default_factory=list)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [(parameter.name, parameter) for parameter in self.changed]

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if self.missing or any(get_flag(p, "required") for p in self.increased):
            return Severity.INCOMPATIBLE
        return Severity.COMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(
            self.element_type,
            [p.get("name") for p in self.increased],
            [p.get("name") for p in self.missing],
        )


@dataclass
class ChangedHeader(CompositeChangeRecord):
    element_type = ElementType.HEADER

    old_header: dict = field(default_factory=dict)
    new_header: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    required: bool = False
    deprecated: bool = False
    style: bool = False
    explode: bool = False
    description: Optional[ChangedMetadata] = None
    schema: Optional[ChangedSchema] = None
    content: Optional[ChangedContent] = None
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [
            ("Description", self.description),
            ("Schema", self.schema),
            ("Content", self.content),
            ("Extensions", self.extensions),
        ]

    def core_severity(self) -> Severity:
        if not (self.required or self.deprecated or self.style or self.explode):
            return Severity.NO_CHANGES
        if not (self.required or self.style or self.explode):
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        deltas = []
        for flag, name in (
            (self.required, "required"),
            (self.deprecated, "deprecated"),
            (self.style, "style"),
            (self.explode, "explode"),
        ):
            if flag:
                deltas.append(CoreDelta(
                    self.element_type, ChangeType.CHANGED, name,
                    self.old_header.get(name), self.new_header.get(name),
                ))
        return deltas


@dataclass
class ChangedHeaders(CompositeChangeRecord):
    element_type = ElementType.HEADERS

    old: dict = field(default_factory=dict)
    new: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: dict[str, ChangedHeader] = field(default_factory=dict)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return list(self.changed.items())

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if not self.missing:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(self.element_type, self.increased, self.missing)


@dataclass
class ChangedRequestBody(CompositeChangeRecord):
    element_type = ElementType.REQUEST_BODY

    old_request_body: Optional[dict] = None
    new_request_body: Optional[dict] = None
    context: DiffContext = field(default_factory=DiffContext)
    required_changed: bool = False
    description: Optional[ChangedMetadata] = None
    content: Optional[ChangedContent] = None
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [
            ("Description", self.description),
            ("Content", self.content),
            ("Extensions", self.extensions),
        ]

    def core_severity(self) -> Severity:
        if self.required_changed:
            return Severity.INCOMPATIBLE
        return Severity.NO_CHANGES

    def core_deltas(self) -> list[CoreDelta]:
        if not self.required_changed:
            return []
        return [CoreDelta(
            self.element_type, ChangeType.CHANGED, "required",
            get_flag(self.old_request_body, "required"),
            get_flag(self.new_request_body, "required"),
        )]


@dataclass
class ChangedResponse(CompositeChangeRecord):
    element_type = ElementType.RESPONSE

    old_response: dict = field(default_factory=dict)
    new_response: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    description: Optional[ChangedMetadata] = None
    headers: Optional[ChangedHeaders] = None
    content: Optional[ChangedContent] = None
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [
            ("Description", self.description),
            ("Headers", self.headers),
            ("Content", self.content),
            ("Extensions", self.extensions),
        ]

    def core_severity(self) -> Severity:
        return Severity.NO_CHANGES


@dataclass
class ChangedApiResponses(CompositeChangeRecord):
    """The status-code map of an operation."""

    element_type = ElementType.RESPONSES

    old: dict = field(default_factory=dict)
    new: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: dict[str, ChangedResponse] = field(default_factory=dict)
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        elements: list[tuple[Optional[str], Optional[ChangeRecord]]] = list(self.changed.items())
        elements.append(("Extensions", self.extensions))
        return elements

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if not self.missing:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(self.element_type, self.increased, self.missing)


@dataclass
class ChangedOAuthFlow(CompositeChangeRecord):
    element_type = ElementType.OAUTH_FLOW

    old_flow: Optional[dict] = None
    new_flow: Optional[dict] = None
    authorization_url_changed: bool = False
    token_url_changed: bool = False
    refresh_url_changed: bool = False
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [("Extensions", self.extensions)]

    def core_severity(self) -> Severity:
        if self.authorization_url_changed or self.token_url_changed or self.refresh_url_changed:
            return Severity.INCOMPATIBLE
        return Severity.NO_CHANGES

    def core_deltas(self) -> list[CoreDelta]:
        deltas = []
        for flag, name in (
            (self.authorization_url_changed, "authorizationUrl"),
            (self.token_url_changed, "tokenUrl"),
            (self.refresh_url_changed, "refreshUrl"),
        ):
            if flag:
                delta = value_delta(
                    self.element_type, name,
                    _schema_value(self.old_flow, name), _schema_value(self.new_flow, name),
                )
                if delta:
                    deltas.append(delta)
        return deltas


@dataclass
class ChangedOAuthFlows(CompositeChangeRecord):
    element_type = ElementType.OAUTH_FLOWS

    old_flows: Optional[dict] = None
    new_flows: Optional[dict] = None
    flows: dict[str, ChangedOAuthFlow] = field(default_factory=dict)
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        elements: list[tuple[Optional[str], Optional[ChangeRecord]]] = list(self.flows.items())
        elements.append(("Extensions", self.extensions))
        return elements

    def core_severity(self) -> Severity:
        return Severity.NO_CHANGES


@dataclass
class ChangedSecurityScheme(CompositeChangeRecord):
    element_type = ElementType.SECURITY_SCHEME

    name: str = ""
    old_scheme: dict = field(default_factory=dict)
    new_scheme: dict = field(default_factory=dict)
    type_changed: bool = False
    in_changed: bool = False
    scheme_changed: bool = False
    bearer_format_changed: bool = False
    open_id_connect_url_changed: bool = False
    changed_scopes: Optional[ListDiff] = None
    description: Optional[ChangedMetadata] = None
    oauth_flows: Optional[ChangedOAuthFlows] = None
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [
            ("Description", self.description),
            ("OAuthFlows", self.oauth_flows),
            ("Extensions", self.extensions),
        ]

    def _fields_changed(self) -> bool:
        return (self.type_changed or self.in_changed or self.scheme_changed
                or self.bearer_format_changed or self.open_id_connect_url_changed)

    def core_severity(self) -> Severity:
        scopes = self.changed_scopes
        scopes_changed = scopes is not None and bool(scopes.increased or scopes.missing)
        if not self._fields_changed() and not scopes_changed:
            return Severity.NO_CHANGES
        if not self._fields_changed() and (scopes is None or not scopes.increased):
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        deltas = []
        for flag, name in (
            (self.bearer_format_changed, "bearerFormat"),
            (self.in_changed, "in"),
            (self.open_id_connect_url_changed, "openIdConnectUrl"),
            (self.scheme_changed, "scheme"),
            (self.type_changed, "type"),
        ):
            if flag:
                deltas.append(CoreDelta(
                    self.element_type, ChangeType.CHANGED, name,
                    self.old_scheme.get(name), self.new_scheme.get(name),
                ))
        if self.changed_scopes is not None:
            deltas.extend(
                CoreDelta(ElementType.SECURITY_SCOPES, ChangeType.ADDED, "scope", None, scope)
                for scope in self.changed_scopes.increased
            )
            deltas.extend(
                CoreDelta(ElementType.SECURITY_SCOPES, ChangeType.REMOVED, "scope", scope, None)
                for scope in self.changed_scopes.missing
            )
        return deltas


@dataclass
class ChangedSecurityRequirement(CompositeChangeRecord):
    """One security requirement object: all of its schemes must be satisfied together."""

    element_type = ElementType.SECURITY_REQUIREMENT

    old_requirement: Optional[dict] = None
    new_requirement: Optional[dict] = None
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: list[ChangedSecurityScheme] = field(default_factory=list)

    @property
    def identifier(self) -> str:
        names = list(self.old_requirement or {}) or list(self.new_requirement or {})
        return "+".join(names)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [(scheme.name, scheme) for scheme in self.changed]

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if not self.increased:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(self.element_type, self.increased, self.missing)


@dataclass
class ChangedSecurityRequirements(CompositeChangeRecord):
    """The list of alternative security requirements of an operation."""

    element_type = ElementType.SECURITY_REQUIREMENTS

    old: list = field(default_factory=list)
    new: list = field(default_factory=list)
    increased: list = field(default_factory=list)
    missing: list = field(default_factory=list)
    changed: list[ChangedSecurityRequirement] = field(default_factory=list)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [(requirement.identifier, requirement) for requirement in self.changed]

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if not self.missing:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(
            self.element_type,
            ["+".join(requirement) for requirement in self.increased],
            ["+".join(requirement) for requirement in self.missing],
        )


@dataclass
class ChangedOperation(CompositeChangeRecord):
    element_type = ElementType.OPERATION

    path_url: str = ""
    method: str = ""
    old_operation: dict = field(default_factory=dict)
    new_operation: dict = field(default_factory=dict)
    summary: Optional[ChangedMetadata] = None
    description: Optional[ChangedMetadata] = None
    deprecated: bool = False
    parameters: Optional[ChangedParameters] = None
    request_body: Optional[ChangedRequestBody] = None
    api_responses: Optional[ChangedApiResponses] = None
    security_requirements: Optional[ChangedSecurityRequirements] = None
    extensions: Optional[ChangedExtensions] = None

    @property
    def identifier(self) -> str:
        return f"{self.method.upper()} {self.path_url}"

    def to_endpoint(self) -> Endpoint:
        return Endpoint(
            path_url=self.path_url,
            method=self.method,
            summary=self.new_operation.get("summary"),
            operation=self.new_operation,
        )

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return [
            ("Summary", self.summary),
            ("Description", self.description),
            ("Parameters", self.parameters),
            ("RequestBody", self.request_body),
            ("Responses", self.api_responses),
            ("SecurityRequirements", self.security_requirements),
            ("Extensions", self.extensions),
        ]

    def core_severity(self) -> Severity:
        if self.deprecated:
            return Severity.COMPATIBLE
        return Severity.NO_CHANGES

    def core_deltas(self) -> list[CoreDelta]:
        if not self.deprecated:
            return []
        return [CoreDelta(
            self.element_type, ChangeType.CHANGED, "deprecated",
            get_flag(self.old_operation, "deprecated"),
            get_flag(self.new_operation, "deprecated"),
        )]


@dataclass
class ChangedPath(CompositeChangeRecord):
    """Operations of one matched path item, keyed by HTTP method."""

    element_type = ElementType.PATH

    path_url: str = ""
    old_path: dict = field(default_factory=dict)
    new_path: dict = field(default_factory=dict)
    context: DiffContext = field(default_factory=DiffContext)
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: list[ChangedOperation] = field(default_factory=list)
    extensions: Optional[ChangedExtensions] = None

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        elements: list[tuple[Optional[str], Optional[ChangeRecord]]] = [
            (operation.method.upper(), operation) for operation in self.changed
        ]
        elements.append(("Extensions", self.extensions))
        return elements

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if not self.missing:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(
            self.element_type,
            [method.upper() for method in self.increased],
            [method.upper() for method in self.missing],
        )


@dataclass
class ChangedPaths(CompositeChangeRecord):
    element_type = ElementType.PATHS

    old: dict = field(default_factory=dict)
    new: dict = field(default_factory=dict)
    increased: dict = field(default_factory=dict)
    missing: dict = field(default_factory=dict)
    changed: dict[str, ChangedPath] = field(default_factory=dict)

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        return list(self.changed.items())

    def core_severity(self) -> Severity:
        if not self.increased and not self.missing:
            return Severity.NO_CHANGES
        if not self.missing:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(self.element_type, self.increased, self.missing)


@dataclass
class ChangedOpenApi(CompositeChangeRecord):
    """
    Result of comparing two contract documents.

    ``new_endpoints`` and ``missing_endpoints`` cover both whole path items and
    single operations added to or removed from a matched path item.
    """

    element_type = ElementType.OPENAPI

    old_identifier: Optional[str] = None
    new_identifier: Optional[str] = None
    new_endpoints: list[Endpoint] = field(default_factory=list)
    missing_endpoints: list[Endpoint] = field(default_factory=list)
    changed_operations: list[ChangedOperation] = field(default_factory=list)
    changed_extensions: Optional[ChangedExtensions] = None
    old_document: Optional[dict] = None
    new_document: Optional[dict] = None

    def deprecated_endpoints(self) -> list[Endpoint]:
        return [op.to_endpoint() for op in self.changed_operations if op.deprecated]

    def changed_elements(self) -> list[tuple[Optional[str], Optional[ChangeRecord]]]:
        elements: list[tuple[Optional[str], Optional[ChangeRecord]]] = [
            (operation.identifier, operation) for operation in self.changed_operations
        ]
        elements.append(("Extensions", self.changed_extensions))
        return elements

    def core_severity(self) -> Severity:
        if not self.new_endpoints and not self.missing_endpoints:
            return Severity.NO_CHANGES
        if not self.missing_endpoints:
            return Severity.COMPATIBLE
        return Severity.INCOMPATIBLE

    def core_deltas(self) -> list[CoreDelta]:
        return keyed_deltas(
            self.element_type,
            [f"{e.method.upper()} {e.path_url}" for e in self.new_endpoints],
            [f"{e.method.upper()} {e.path_url}" for e in self.missing_endpoints],
        )

    def change_list(self) -> list[ChangeSummary]:
        """All changes, most specific (deepest) first."""
        return sorted(self.flatten(), key=lambda entry: -entry.depth)

    def to_dict(self) -> dict:
        severity = self.severity()
        return {
            "old": self.old_identifier,
            "new": self.new_identifier,
            "severity": severity.name,
            "compatible": severity.is_compatible(),
            "unchanged": severity.is_unchanged(),
            "new_endpoints": [e.to_dict() for e in self.new_endpoints],
            "missing_endpoints": [e.to_dict() for e in self.missing_endpoints],
            "deprecated_endpoints": [e.to_dict() for e in self.deprecated_endpoints()],
            "changed_operations": [
                {
                    "path": op.path_url,
                    "method": op.method.upper(),
                    "severity": op.severity().name,
                }
                for op in self.changed_operations
            ],
            "changes": [entry.to_dict() for entry in self.change_list()],
        }

    def print_summary(self):
        severity = self.severity()
        verdict = "compatible" if severity.is_compatible() else "INCOMPATIBLE"
        print(f"\nContract diff: {severity.name} ({verdict})")
        if self.new_endpoints:
            print(f"  New endpoints: {len(self.new_endpoints)}")
        if self.missing_endpoints:
            print(f"  Missing endpoints: {len(self.missing_endpoints)}")
            for endpoint in self.missing_endpoints:
                print(f"    {endpoint.method.upper()} {endpoint.path_url}")
        deprecated = self.deprecated_endpoints()
        if deprecated:
            print(f"  Deprecated endpoints: {len(deprecated)}")
        if self.changed_operations:
            print(f"\nChanged operations:")
            for operation in self.changed_operations:
                print(f"  {operation.identifier}: {operation.severity().name}")
