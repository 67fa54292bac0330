"""Tests for schema comparison: shapes, composition, cycles and direction rules."""

import copy

from contractdiff import ContractDiffEngine, ErrorResponse, Severity
from contractdiff.engine import DiffSession
from contractdiff.models import DiffContext
from contractdiff.schema import SchemaFlattener, SchemaShape, merge_schema
from conftest import (
    make_document,
    parameter_document,
    request_body_document,
    request_schema_change,
    response_document,
    response_schema_change,
)


def ref(name):
    return {"$ref": f"#/components/schemas/{name}"}


class TestTypeChanges:
    """Test type and format changes."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def test_type_change(self):
        """Test that a type change is incompatible in both directions."""
        for build in (request_body_document, response_document):
            result = self.engine.compare(build({"type": "string"}), build({"type": "integer"}))
            assert result.severity() == Severity.INCOMPATIBLE

    def test_format_change(self):
        """Test that a format change counts as a type change."""
        old = response_document({"type": "string", "format": "date"})
        new = response_document({"type": "string", "format": "date-time"})

        result = self.engine.compare(old, new)
        schema = response_schema_change(result)
        assert schema.type_changed is True
        assert schema.severity() == Severity.INCOMPATIBLE

    def test_title_and_default_are_reported_without_breaking(self):
        """Test that title/default edits show up as deltas only."""
        old = request_body_document({"type": "object", "properties": {
            "size": {"type": "integer", "title": "Size", "default": 1},
        }})
        new = request_body_document({"type": "object", "properties": {
            "size": {"type": "integer", "title": "Pet size", "default": 2},
        }})

        result = self.engine.compare(old, new)
        size = request_schema_change(result).changed_properties["size"]
        assert size.title_changed is True
        assert size.default_changed is True
        assert size.core_severity() == Severity.METADATA
        assert result.is_compatible() is True
        fields = {delta.field for delta in size.core_deltas()}
        assert fields == {"title", "default"}

    def test_default_type_change(self):
        """Test that a default of another JSON type counts as changed."""
        old = response_document({"type": "object", "properties": {"size": {"default": 1}}})
        new = response_document({"type": "object", "properties": {"size": {"default": "1"}}})

        result = self.engine.compare(old, new)
        size = response_schema_change(result).changed_properties["size"]
        assert size.default_changed is True
        assert size.core_severity() == Severity.METADATA
        delta = next(d for d in size.core_deltas() if d.field == "default")
        assert (delta.old_value, delta.new_value) == (1, "1")


class TestProperties:
    """Test added and removed properties."""

    def setup_method(self):
        self.engine = ContractDiffEngine()
        self.schema = {"type": "object", "properties": {"name": {"type": "string"}}}
        self.extended = {"type": "object", "properties": {
            "name": {"type": "string"},
            "age": {"type": "integer"},
        }}

    def test_added_property_in_request(self):
        """Test that accepting a new property is compatible."""
        result = self.engine.compare(request_body_document(self.schema), request_body_document(self.extended))
        schema = request_schema_change(result)
        assert list(schema.increased_properties) == ["age"]
        assert result.severity() == Severity.COMPATIBLE

    def test_added_property_in_response(self):
        """Test that returning a new property is compatible."""
        result = self.engine.compare(response_document(self.schema), response_document(self.extended))
        assert result.severity() == Severity.COMPATIBLE

    def test_removed_property_in_response(self):
        """Test that no longer returning a property is incompatible."""
        result = self.engine.compare(response_document(self.extended), response_document(self.schema))
        schema = response_schema_change(result)
        assert list(schema.missing_properties) == ["age"]
        assert result.severity() == Severity.INCOMPATIBLE

    def test_removed_property_in_request(self):
        """Test that no longer accepting a property is compatible for the request schema itself."""
        result = self.engine.compare(request_body_document(self.extended), request_body_document(self.schema))
        assert request_schema_change(result).core_severity() == Severity.COMPATIBLE


class TestRequired:
    """Test required-list changes."""

    def setup_method(self):
        self.engine = ContractDiffEngine()
        self.properties = {"name": {"type": "string"}, "tag": {"type": "string"}}

    def schema(self, required):
        return {"type": "object", "required": required, "properties": self.properties}

    def test_newly_required_in_request(self):
        """Test that requiring an existing property in a request is incompatible."""
        result = self.engine.compare(
            request_body_document(self.schema(["name"])),
            request_body_document(self.schema(["name", "tag"])),
        )
        required = request_schema_change(result).required
        assert required.increased == ["tag"]
        assert result.severity() == Severity.INCOMPATIBLE

    def test_newly_required_in_response(self):
        """Test that guaranteeing a property in a response is compatible."""
        result = self.engine.compare(
            response_document(self.schema(["name"])),
            response_document(self.schema(["name", "tag"])),
        )
        assert result.severity() == Severity.COMPATIBLE

    def test_no_longer_required_in_response(self):
        """Test that dropping a response guarantee is incompatible."""
        result = self.engine.compare(
            response_document(self.schema(["name", "tag"])),
            response_document(self.schema(["name"])),
        )
        assert result.severity() == Severity.INCOMPATIBLE


class TestBounds:
    """Test numeric limit direction rules."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def parameter(self, max_length):
        return parameter_document([
            {"name": "q", "in": "query", "schema": {"type": "string", "maxLength": max_length}},
        ])

    def test_narrowed_parameter(self):
        """Test that tightening maxLength on a parameter breaks callers."""
        result = self.engine.compare(self.parameter(10), self.parameter(5))
        schema = result.changed_operations[0].parameters.changed[0].schema
        assert schema.bounds["maxLength"].severity() == Severity.INCOMPATIBLE
        assert result.severity() == Severity.INCOMPATIBLE

    def test_widened_parameter(self):
        """Test that loosening maxLength on a parameter is compatible."""
        result = self.engine.compare(self.parameter(5), self.parameter(10))
        assert result.severity() == Severity.COMPATIBLE

    def test_narrowed_response(self):
        """Test that tightening maxLength on a response is compatible."""
        old = response_document({"type": "string", "maxLength": 10})
        new = response_document({"type": "string", "maxLength": 5})

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE

    def test_widened_response(self):
        """Test that loosening maxLength on a response is incompatible."""
        old = response_document({"type": "string", "maxLength": 5})
        new = response_document({"type": "string", "maxLength": 10})

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.INCOMPATIBLE

    def test_lower_bound_mirrors_upper_bound(self):
        """Test that raising a minimum in a request is incompatible."""
        old = request_body_document({"type": "integer", "minimum": 1})
        new = request_body_document({"type": "integer", "minimum": 5})

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.INCOMPATIBLE

        result = self.engine.compare(new, old)
        assert result.severity() == Severity.COMPATIBLE

    def test_removed_limit_in_request(self):
        """Test that dropping a limit on a request is compatible."""
        old = request_body_document({"type": "string", "maxLength": 5})
        new = request_body_document({"type": "string"})

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE


class TestAccessFlags:
    """Test readOnly and writeOnly handling."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def test_required_property_becomes_read_only_in_request(self):
        """Test that a required request property turning readOnly is incompatible."""
        old = request_body_document({"type": "object", "required": ["id"], "properties": {
            "id": {"type": "string"},
        }})
        new = request_body_document({"type": "object", "required": ["id"], "properties": {
            "id": {"type": "string", "readOnly": True},
        }})

        result = self.engine.compare(old, new)
        read_only = request_schema_change(result).changed_properties["id"].read_only
        assert read_only.severity() == Severity.INCOMPATIBLE

    def test_optional_property_becomes_read_only_in_request(self):
        """Test that an optional request property turning readOnly is compatible."""
        old = request_body_document({"type": "object", "properties": {"id": {"type": "string"}}})
        new = request_body_document({"type": "object", "properties": {"id": {"type": "string", "readOnly": True}}})

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE

    def test_added_read_only_property_is_invisible_to_requests(self):
        """Test that a new read-only property does not affect the request body."""
        old = request_body_document({"type": "object", "properties": {"name": {"type": "string"}}})
        new = request_body_document({"type": "object", "required": ["id"], "properties": {
            "name": {"type": "string"},
            "id": {"type": "string", "readOnly": True},
        }})

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_removed_write_only_property_is_invisible_to_responses(self):
        """Test that dropping a write-only property does not affect responses."""
        old = response_document({"type": "object", "properties": {
            "name": {"type": "string"},
            "password": {"type": "string", "writeOnly": True},
        }})
        new = response_document({"type": "object", "properties": {"name": {"type": "string"}}})

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True

    def test_write_only_flip_is_compatible(self):
        """Test that toggling writeOnly is compatible."""
        old = request_body_document({"type": "object", "properties": {"secret": {"type": "string"}}})
        new = request_body_document({"type": "object", "properties": {"secret": {"type": "string", "writeOnly": True}}})

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE


class TestCycles:
    """Test termination on recursive schemas."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def linked_list(self, value_type):
        return {"schemas": {"Node": {
            "type": "object",
            "properties": {
                "value": {"type": value_type},
                "next": ref("Node"),
            },
        }}}

    def test_identical_self_reference(self):
        """Test that a self-referencing schema compares as unchanged."""
        old = response_document(ref("Node"), self.linked_list("string"))

        result = self.engine.compare(old, copy.deepcopy(old))
        assert result.is_unchanged() is True

    def test_changed_self_reference(self):
        """Test that a change inside a self-referencing schema is found once."""
        old = response_document(ref("Node"), self.linked_list("string"))
        new = response_document(ref("Node"), self.linked_list("integer"))

        result = self.engine.compare(old, new)
        schema = response_schema_change(result)
        assert schema.changed_properties["value"].type_changed is True
        assert result.severity() == Severity.INCOMPATIBLE

    def test_mutual_references(self):
        """Test that two schemas referencing each other terminate."""
        def components(owner_name_type):
            return {"schemas": {
                "Pet": {"type": "object", "properties": {"owner": ref("Owner")}},
                "Owner": {"type": "object", "properties": {
                    "name": {"type": owner_name_type},
                    "pets": {"type": "array", "items": ref("Pet")},
                }},
            }}

        old = response_document(ref("Pet"), components("string"))
        new = response_document(ref("Pet"), components("integer"))

        result = self.engine.compare(old, new)
        owner = response_schema_change(result).changed_properties["owner"]
        assert owner.changed_properties["name"].type_changed is True
        assert result.severity() == Severity.INCOMPATIBLE


class TestComposition:
    """Test allOf flattening and discriminated oneOf."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def test_all_of_is_flattened(self):
        """Test that properties from allOf members are compared together."""
        def components(base_properties):
            return {"schemas": {
                "Base": {"type": "object", "required": ["id"], "properties": base_properties},
                "Pet": {"allOf": [ref("Base"), {"type": "object", "properties": {"name": {"type": "string"}}}]},
            }}

        old = request_body_document(ref("Pet"), components({"id": {"type": "integer"}}))
        new = request_body_document(
            ref("Pet"), components({"id": {"type": "integer"}, "tag": {"type": "string"}})
        )

        result = self.engine.compare(old, new)
        schema = request_schema_change(result)
        assert list(schema.increased_properties) == ["tag"]
        assert schema.missing_properties == {}
        assert result.severity() == Severity.COMPATIBLE

    def test_merge_schema_unions_lists(self):
        """Test that required and enum lists are unioned while scalars are overwritten."""
        target = {"type": "object", "required": ["id"], "description": "first"}
        merge_schema(target, {"required": ["name", "id"], "description": "second"})
        assert target == {"type": "object", "required": ["id", "name"], "description": "second"}

    def test_flattener_skips_recursive_members(self):
        """Test that an allOf member referring back to its parent is skipped."""
        components = {"schemas": {
            "Tree": {"allOf": [{"type": "object", "properties": {"leaf": {"type": "string"}}}, ref("Tree")]},
        }}
        flattener = SchemaFlattener(components)

        flattened = flattener.flatten(components["schemas"]["Tree"])
        assert flattened["properties"] == {"leaf": {"type": "string"}}

    def pets(self, members, mapping=None, property_name="petType"):
        discriminator = {"propertyName": property_name}
        if mapping:
            discriminator["mapping"] = mapping
        return {"schemas": {
            "Cat": {"type": "object", "properties": {"meows": {"type": "boolean"}}},
            "Dog": {"type": "object", "properties": {"barks": {"type": "boolean"}}},
            "Lizard": {"type": "object", "properties": {"scales": {"type": "integer"}}},
            "Pet": {"oneOf": [ref(name) for name in members], "discriminator": discriminator},
        }}

    def test_one_of_added_branch_in_response(self):
        """Test that returning a new variant is incompatible."""
        old = response_document(ref("Pet"), self.pets(["Cat", "Dog"]))
        new = response_document(ref("Pet"), self.pets(["Cat", "Dog", "Lizard"]))

        result = self.engine.compare(old, new)
        one_of = response_schema_change(result).one_of_schema
        assert list(one_of.increased) == ["Lizard"]
        assert result.severity() == Severity.INCOMPATIBLE

    def test_one_of_added_branch_in_request(self):
        """Test that accepting a new variant is compatible."""
        old = request_body_document(ref("Pet"), self.pets(["Cat", "Dog"]))
        new = request_body_document(ref("Pet"), self.pets(["Cat", "Dog", "Lizard"]))

        result = self.engine.compare(old, new)
        assert result.severity() == Severity.COMPATIBLE

    def test_one_of_explicit_mapping(self):
        """Test that explicit discriminator mappings name the branches."""
        old = response_document(ref("Pet"), self.pets(["Cat", "Dog"], mapping={"cat": "Cat", "dog": "Dog"}))
        new = copy.deepcopy(old)
        new["components"]["schemas"]["Dog"]["properties"]["barks"] = {"type": "string"}

        result = self.engine.compare(old, new)
        one_of = response_schema_change(result).one_of_schema
        assert list(one_of.changed) == ["dog"]
        assert result.severity() == Severity.INCOMPATIBLE

    def test_one_of_discriminator_renamed(self):
        """Test that a changed discriminator property is incompatible."""
        old = request_body_document(ref("Pet"), self.pets(["Cat", "Dog"]))
        new = request_body_document(ref("Pet"), self.pets(["Cat", "Dog"], property_name="kind"))

        result = self.engine.compare(old, new)
        assert request_schema_change(result).discriminator_property_changed is True
        assert result.severity() == Severity.INCOMPATIBLE

    def test_one_of_without_discriminator(self):
        """Test that oneOf without a discriminator cannot be compared."""
        components = {"schemas": {
            "Cat": {"type": "object"},
            "Pet": {"oneOf": [ref("Cat")]},
        }}
        document = response_document(ref("Pet"), components)

        result = self.engine.compare(document, copy.deepcopy(document))
        assert isinstance(result, ErrorResponse)
        assert result.error["code"] == "UNSUPPORTED_SCHEMA"

    def test_composed_replaces_plain(self):
        """Test that turning a plain schema into a oneOf is a type change."""
        components = self.pets(["Cat", "Dog"])
        old_components = copy.deepcopy(components)
        old_components["schemas"]["Pet"] = {"properties": {"meows": {"type": "boolean"}}}

        old = response_document(ref("Pet"), old_components)
        new = response_document(ref("Pet"), components)

        result = self.engine.compare(old, new)
        assert response_schema_change(result).type_changed is True

    def test_shape_classification(self):
        """Test schema shape detection."""
        assert SchemaShape.classify({"type": "string"}) is SchemaShape.PLAIN
        assert SchemaShape.classify({"type": "array", "items": {}}) is SchemaShape.ARRAY
        assert SchemaShape.classify({"oneOf": []}) is SchemaShape.COMPOSED
        assert SchemaShape.classify({"anyOf": [{"type": "string"}]}) is SchemaShape.COMPOSED


class TestArraysAndMaps:
    """Test items and additionalProperties."""

    def setup_method(self):
        self.engine = ContractDiffEngine()

    def test_items_type_change(self):
        """Test that array item changes are found."""
        old = response_document({"type": "array", "items": {"type": "string"}})
        new = response_document({"type": "array", "items": {"type": "integer"}})

        result = self.engine.compare(old, new)
        assert response_schema_change(result).items.type_changed is True
        assert result.severity() == Severity.INCOMPATIBLE

    def test_additional_properties_change(self):
        """Test that schema-valued additionalProperties are compared."""
        old = response_document({"type": "object", "additionalProperties": {"type": "string"}})
        new = response_document({"type": "object", "additionalProperties": {"type": "integer"}})

        result = self.engine.compare(old, new)
        assert response_schema_change(result).additional_properties.type_changed is True

    def test_boolean_additional_properties_are_ignored(self):
        """Test that boolean additionalProperties are not compared."""
        old = response_document({"type": "object", "additionalProperties": True})
        new = response_document({"type": "object", "additionalProperties": False})

        result = self.engine.compare(old, new)
        assert result.is_unchanged() is True


class TestSession:
    """Test the schema engine directly through a session."""

    def test_reference_results_are_cached(self):
        """Test that one reference pair is compared once per context."""
        components = {"schemas": {"Pet": {"type": "string", "maxLength": 5}}}
        new_components = {"schemas": {"Pet": {"type": "string", "maxLength": 10}}}
        session = DiffSession(make_document(components=components), make_document(components=new_components))
        context = DiffContext().copy_as_request()

        first = session.schema_diff.diff(set(), ref("Pet"), ref("Pet"), context)
        second = session.schema_diff.diff(set(), ref("Pet"), ref("Pet"), context)
        assert first is second
        assert len(session.schema_diff) == 1

        response = session.schema_diff.diff(set(), ref("Pet"), ref("Pet"), DiffContext().copy_as_response())
        assert response is not first
        assert first.severity() == Severity.COMPATIBLE
        assert response.severity() == Severity.INCOMPATIBLE

    def test_read_only_without_direction_is_unknown(self):
        """Test that readOnly changes outside a request or response are UNKNOWN."""
        session = DiffSession(make_document(), make_document())

        record = session.schema_diff.diff(
            set(), {"type": "string"}, {"type": "string", "readOnly": True}, DiffContext()
        )
        assert record.read_only.severity() == Severity.UNKNOWN
        assert record.severity() == Severity.UNKNOWN
        assert record.is_compatible() is False

    def test_both_absent(self):
        """Test that two missing schemas compare as nothing."""
        session = DiffSession(make_document(), make_document())
        assert session.schema_diff.diff(set(), None, None, DiffContext()) is None

    def test_one_side_absent(self):
        """Test that a schema appearing on one side is a type change."""
        session = DiffSession(make_document(), make_document())

        record = session.schema_diff.diff(set(), None, {"type": "string"}, DiffContext().copy_as_request())
        assert record.type_changed is True
        assert record.severity() == Severity.INCOMPATIBLE
