"""Shared document builders for the contractdiff tests."""

import copy


def make_document(paths=None, components=None, **extra):
    """Build a minimal OpenAPI 3 document."""
    document = {
        "openapi": "3.0.3",
        "info": {"title": "Pet Store", "version": "1.0.0"},
        "paths": copy.deepcopy(paths) if paths is not None else {},
    }
    if components is not None:
        document["components"] = copy.deepcopy(components)
    document.update(copy.deepcopy(extra))
    return document


def make_operation(parameters=None, request_body=None, responses=None, **extra):
    """Build an operation with a plain 200 response unless responses are given."""
    operation = {
        "responses": responses if responses is not None else {"200": {"description": "OK"}},
    }
    if parameters is not None:
        operation["parameters"] = parameters
    if request_body is not None:
        operation["requestBody"] = request_body
    operation.update(extra)
    return operation


def json_content(schema, *media_types):
    media_types = media_types or ("application/json",)
    return {media_type: {"schema": copy.deepcopy(schema)} for media_type in media_types}


def request_body_document(schema, components=None, required=False):
    """A document whose only operation posts ``schema`` as its JSON body."""
    request_body = {"required": required, "content": json_content(schema)}
    return make_document(
        {"/pets": {"post": make_operation(request_body=request_body)}},
        components,
    )


def response_document(schema, components=None):
    """A document whose only operation returns ``schema`` as its 200 JSON body."""
    responses = {"200": {"description": "OK", "content": json_content(schema)}}
    return make_document(
        {"/pets": {"get": make_operation(responses=responses)}},
        components,
    )


def parameter_document(parameters, components=None):
    return make_document(
        {"/pets": {"get": make_operation(parameters=parameters)}},
        components,
    )


def request_schema_change(result):
    """The schema record of the JSON request body of the first changed operation."""
    content = result.changed_operations[0].request_body.content
    return content.changed["application/json"].schema


def response_schema_change(result):
    """The schema record of the 200 JSON response of the first changed operation."""
    content = result.changed_operations[0].api_responses.changed["200"].content
    return content.changed["application/json"].schema
