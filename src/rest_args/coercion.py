"""Coercion of raw path, query and header values into their schema types."""

from __future__ import annotations

import json
from datetime import date, datetime
from functools import lru_cache
from typing import Any, Dict, List

from pydantic import TypeAdapter, ValidationError

from .errors import InvalidParameterValue, MissingRequiredParameter
from .models import ParameterSpec
from .validation import SchemaTranslator


def coerce_parameter(raw: Any, spec: ParameterSpec) -> Any:
    """Convert ``raw`` to the type declared by ``spec.schema``.

    Missing values are ``None`` for optional parameters and raise
    ``MissingRequiredParameter`` otherwise. Empty strings count as missing
    unless the parameter is an optional string.
    """
    schema = spec.schema or {}
    schema_type = schema.get("type")

    if raw is None or (raw == "" and (spec.required or schema_type not in (None, "string"))):
        if spec.required:
            raise MissingRequiredParameter(spec.name)
        return None
    if not schema or "$ref" in schema:
        return raw

    if schema_type == "array":
        if not isinstance(raw, list):
            raw = str(raw).split(",")
    elif isinstance(raw, list):
        if len(raw) != 1:
            raise InvalidParameterValue(spec.name, raw, schema_type or "a single value")
        raw = raw[0]

    adapter = _adapter(json.dumps(schema, sort_keys=True))
    try:
        if schema_type == "object" and isinstance(raw, str):
            value = adapter.validate_json(raw)
        else:
            value = adapter.validate_python(raw)
    except ValidationError as exc:
        raise InvalidParameterValue(spec.name, raw, _describe(schema)) from exc
    return adapter.dump_python(value, by_alias=True, exclude_unset=True)


@lru_cache(maxsize=256)
def _adapter(schema_key: str) -> TypeAdapter:
    return TypeAdapter(_parameter_type(json.loads(schema_key)))


def _parameter_type(schema: Dict[str, Any]) -> Any:
    schema_type = schema.get("type")
    if schema_type == "string" and schema.get("format") == "date-time":
        return datetime
    if schema_type == "string" and schema.get("format") == "date":
        return date
    if schema_type == "array":
        return List[_parameter_type(schema.get("items") or {})]
    return SchemaTranslator().to_type(schema, "Parameter")


def _describe(schema: Dict[str, Any]) -> str:
    if schema.get("format"):
        return f"{schema.get('type')} ({schema['format']})"
    return str(schema.get("type"))
