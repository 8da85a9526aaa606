"""Request body validation against the operation's JSON schema."""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any, Dict, List, Literal, Optional, Set, Tuple, Union

from pydantic import ConfigDict, Field, StringConstraints, TypeAdapter, ValidationError, create_model

from .errors import MissingRequiredBody, RequestBodyValidationError, UnsupportedReference
from .logging import redact_payload
from .models import ReferenceObject, RequestBodySpec

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"


def validate_request_body(
    value: Any,
    body_spec: Optional[Union[RequestBodySpec, ReferenceObject]],
    schemas: Optional[Dict[str, Any]] = None,
    coerce_types: bool = False,
) -> Any:
    """Check ``value`` against the body schema and return the validated value.

    JSON payloads are checked strictly. Form and text payloads arrive as
    strings, so with ``coerce_types`` they are converted to the schema types
    and the converted value is returned.
    """
    if body_spec is None:
        return value
    if isinstance(body_spec, ReferenceObject):
        raise UnsupportedReference("$ref requestBody is not supported yet.")

    if value is None:
        if body_spec.required:
            raise MissingRequiredBody()
        return value

    schema = body_schema(body_spec)
    if not schema:
        return value

    logger.debug("Validating request body - value %s", redact_payload(value))
    adapter = TypeAdapter(SchemaTranslator(schemas).to_type(schema, "RequestBody"))
    try:
        if coerce_types:
            validated = adapter.validate_python(value)
            return adapter.dump_python(validated, by_alias=True, exclude_unset=True)
        adapter.validate_json(json.dumps(_integral_floats_as_ints(value)), strict=True)
    except ValidationError as exc:
        raise RequestBodyValidationError(_error_details(exc)) from exc
    return value


def body_schema(body_spec: RequestBodySpec) -> Optional[Dict[str, Any]]:
    content = body_spec.content or {}
    media = content.get(JSON_MEDIA_TYPE)
    if media is None and content:
        media = next(iter(content.values()))
    return (media or {}).get("schema")


class SchemaTranslator:
    """Translate JSON schema fragments into types pydantic can validate."""

    def __init__(self, schemas: Optional[Dict[str, Any]] = None) -> None:
        self.schemas = schemas or {}
        self._resolved: Dict[str, Any] = {}
        self._resolving: Set[str] = set()

    def to_type(self, schema: Optional[Dict[str, Any]], name: str = "Model") -> Any:
        if not schema:
            return Any
        if "$ref" in schema:
            return self._resolve_ref(schema["$ref"])

        field_type = self._base_type(schema, name)
        if schema.get("nullable"):
            field_type = Optional[field_type]
        return field_type

    def _base_type(self, schema: Dict[str, Any], name: str) -> Any:
        if "enum" in schema:
            return Literal[tuple(schema["enum"])]
        for keyword in ("oneOf", "anyOf"):
            if keyword in schema:
                members = tuple(self.to_type(item, f"{name}Option") for item in schema[keyword])
                return Union[members]
        if "allOf" in schema:
            return self._object_type(self._merge_all_of(schema["allOf"]), name)

        schema_type = schema.get("type")
        if schema_type == "string":
            return Annotated[
                str,
                StringConstraints(
                    min_length=schema.get("minLength"),
                    max_length=schema.get("maxLength"),
                    pattern=schema.get("pattern"),
                ),
            ]
        if schema_type == "integer":
            return Annotated[int, Field(**_numeric_bounds(schema))]
        if schema_type == "number":
            return Annotated[float, Field(allow_inf_nan=False, **_numeric_bounds(schema))]
        if schema_type == "boolean":
            return bool
        if schema_type == "array":
            item_type = self.to_type(schema.get("items"), f"{name}Item")
            return Annotated[
                List[item_type],
                Field(min_length=schema.get("minItems"), max_length=schema.get("maxItems")),
            ]
        if schema_type == "object" or "properties" in schema:
            return self._object_type(schema, name)
        return Any

    def _object_type(self, schema: Dict[str, Any], name: str) -> Any:
        properties = schema.get("properties") or {}
        additional = schema.get("additionalProperties")
        if not properties:
            if isinstance(additional, dict):
                return Dict[str, self.to_type(additional, f"{name}Value")]
            return Dict[str, Any]

        required = set(schema.get("required") or [])
        fields: Dict[str, Tuple[Any, Any]] = {}
        for position, (prop, prop_schema) in enumerate(properties.items()):
            prop_type = self.to_type(prop_schema, f"{name}_{_sanitize_name(prop)}")
            default = ... if prop in required else None
            fields[f"field_{position}"] = (prop_type, Field(default, alias=prop))

        extra = "forbid" if additional is False else "allow"
        model_config = ConfigDict(extra=extra)
        return create_model(_sanitize_name(name), __config__=model_config, **fields)

    def _merge_all_of(self, parts: List[Dict[str, Any]]) -> Dict[str, Any]:
        merged: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}
        for part in parts:
            if "$ref" in part:
                part = self._lookup(part["$ref"])
            merged["properties"].update(part.get("properties") or {})
            merged["required"].extend(part.get("required") or [])
        return merged

    def _resolve_ref(self, ref: str) -> Any:
        if ref in self._resolved:
            return self._resolved[ref]
        if ref in self._resolving:
            # Recursive schemas validate their inner occurrences loosely.
            return Any
        self._resolving.add(ref)
        try:
            resolved = self.to_type(self._lookup(ref), ref.rsplit("/", 1)[-1])
        finally:
            self._resolving.discard(ref)
        self._resolved[ref] = resolved
        return resolved

    def _lookup(self, ref: str) -> Dict[str, Any]:
        key = ref.rsplit("/", 1)[-1]
        if not ref.startswith("#/") or key not in self.schemas:
            raise UnsupportedReference(f"Cannot resolve schema reference {ref}")
        return self.schemas[key]


def _numeric_bounds(schema: Dict[str, Any]) -> Dict[str, Any]:
    bounds: Dict[str, Any] = {}
    minimum = schema.get("minimum")
    maximum = schema.get("maximum")
    exclusive_min = schema.get("exclusiveMinimum")
    exclusive_max = schema.get("exclusiveMaximum")

    # OpenAPI 3.0 uses boolean exclusive flags, 3.1 uses numeric bounds.
    if isinstance(exclusive_min, bool):
        if minimum is not None:
            bounds["gt" if exclusive_min else "ge"] = minimum
    else:
        if minimum is not None:
            bounds["ge"] = minimum
        if exclusive_min is not None:
            bounds["gt"] = exclusive_min
    if isinstance(exclusive_max, bool):
        if maximum is not None:
            bounds["lt" if exclusive_max else "le"] = maximum
    else:
        if maximum is not None:
            bounds["le"] = maximum
        if exclusive_max is not None:
            bounds["lt"] = exclusive_max
    if schema.get("multipleOf") is not None:
        bounds["multiple_of"] = schema["multipleOf"]
    return bounds


def _integral_floats_as_ints(value: Any) -> Any:
    # JSON does not distinguish 3 from 3.0; integer schemas accept both.
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _integral_floats_as_ints(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_integral_floats_as_ints(item) for item in value]
    return value


def _error_details(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {
            "path": ".".join(str(part) for part in error["loc"]),
            "code": error["type"],
            "message": error["msg"],
        }
        for error in exc.errors()
    ]


def _sanitize_name(name: str) -> str:
    return "".join(ch if ch.isalnum() else "_" for ch in name)
