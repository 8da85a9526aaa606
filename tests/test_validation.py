import pytest

from rest_args.errors import MissingRequiredBody, RequestBodyValidationError, UnsupportedReference
from rest_args.models import ReferenceObject, RequestBodySpec
from rest_args.validation import body_schema, validate_request_body

SCHEMAS = {
    "Pet": {
        "type": "object",
        "required": ["name"],
        "properties": {
            "name": {"type": "string", "minLength": 1},
            "age": {"type": "integer", "minimum": 0},
            "kind": {"type": "string", "enum": ["cat", "dog"]},
            "tags": {"type": "array", "items": {"type": "string"}},
            "owner": {"$ref": "#/components/schemas/Owner"},
        },
    },
    "Owner": {"type": "object", "properties": {"_id": {"type": "integer"}}},
}


def body(schema, required=False, media_type="application/json") -> RequestBodySpec:
    return RequestBodySpec(content={media_type: {"schema": schema}}, required=required)


PET = body({"$ref": "#/components/schemas/Pet"})


class TestStrictValidation:
    def test_valid_json_body_passes_unchanged(self):
        value = {"name": "a"}
        assert validate_request_body(value, body({"type": "object", "properties": {"name": {"type": "string"}}}), {}) is value

    def test_extra_properties_allowed(self):
        value = {"name": "a", "color": "red"}
        assert validate_request_body(value, PET, SCHEMAS) == value

    def test_nested_reference(self):
        value = {"name": "a", "owner": {"_id": 1}}
        assert validate_request_body(value, PET, SCHEMAS) == value

    def test_string_number_rejected(self):
        with pytest.raises(RequestBodyValidationError) as info:
            validate_request_body({"name": "a", "age": "3"}, PET, SCHEMAS)
        assert info.value.details[0]["path"] == "age"

    def test_all_failures_enumerated(self):
        with pytest.raises(RequestBodyValidationError) as info:
            validate_request_body({"age": -1, "kind": "fish"}, PET, SCHEMAS)
        paths = {detail["path"] for detail in info.value.details}
        assert paths == {"name", "age", "kind"}
        assert "name" in info.value.message

    def test_additional_properties_false(self):
        schema = {"type": "object", "properties": {"a": {"type": "string"}}, "additionalProperties": False}
        with pytest.raises(RequestBodyValidationError):
            validate_request_body({"a": "x", "b": "y"}, body(schema), {})

    def test_integral_float_accepted_for_integer(self):
        value = {"name": "a", "age": 3.0}
        assert validate_request_body(value, PET, SCHEMAS) is value

    def test_fractional_float_rejected_for_integer(self):
        with pytest.raises(RequestBodyValidationError) as info:
            validate_request_body({"name": "a", "age": 3.5}, PET, SCHEMAS)
        assert info.value.details[0]["path"] == "age"

    def test_nullable(self):
        schema = {"type": "object", "properties": {"a": {"type": "string", "nullable": True}}}
        assert validate_request_body({"a": None}, body(schema), {}) == {"a": None}


class TestCoercingValidation:
    def test_form_values_coerced(self):
        value = {"name": "a", "age": "3", "tags": ["x"]}
        assert validate_request_body(value, PET, SCHEMAS, coerce_types=True) == {
            "name": "a",
            "age": 3,
            "tags": ["x"],
        }

    def test_unset_fields_are_not_invented(self):
        assert validate_request_body({"name": "a"}, PET, SCHEMAS, coerce_types=True) == {"name": "a"}

    def test_text_body(self):
        assert validate_request_body("hello", body({"type": "string"}, media_type="text/plain"), {}, coerce_types=True) == "hello"

    def test_uncoercible_value(self):
        with pytest.raises(RequestBodyValidationError):
            validate_request_body({"name": "a", "age": "old"}, PET, SCHEMAS, coerce_types=True)


class TestBodySpecHandling:
    def test_no_body_spec(self):
        assert validate_request_body({"x": 1}, None, {}) == {"x": 1}

    def test_reference_body_spec(self):
        with pytest.raises(UnsupportedReference):
            validate_request_body({}, ReferenceObject("#/components/requestBodies/Pet"), {})

    def test_required_missing(self):
        with pytest.raises(MissingRequiredBody) as info:
            validate_request_body(None, body({"type": "object"}, required=True), {})
        assert info.value.status_code == 400

    def test_optional_missing(self):
        assert validate_request_body(None, body({"type": "object"}), {}) is None

    def test_unknown_schema_reference(self):
        with pytest.raises(UnsupportedReference):
            validate_request_body({}, body({"$ref": "#/components/schemas/Nope"}), {})

    def test_schema_falls_back_to_first_media_type(self):
        spec = body({"type": "string"}, media_type="text/plain")
        assert body_schema(spec) == {"type": "string"}
