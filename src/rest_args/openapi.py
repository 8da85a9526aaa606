"""OpenAPI document loader and operation parser."""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import httpx
import yaml

from .models import (
    REQUEST_BODY_INDEX,
    OperationSpec,
    ParameterSpec,
    ReferenceObject,
    RequestBodySpec,
)


logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "put", "post", "delete", "options", "head", "patch", "trace")


class OpenAPILoader:
    def __init__(self, cache_seconds: int = 3600) -> None:
        self.cache_seconds = cache_seconds
        self._cache: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    async def load_spec(self, url: str) -> Optional[Dict[str, Any]]:
        cached = self._cache.get(url)
        if cached and time.time() - cached[0] < self.cache_seconds:
            return cached[1]

        async with httpx.AsyncClient(timeout=30) as client:
            response = await client.get(url)
            if response.status_code != 200:
                logger.warning("Failed to fetch OpenAPI spec: %s (%s)", url, response.status_code)
                return None
            data = _parse_document(response.text, url)

        self._cache[url] = (time.time(), data)
        return data

    def load_file(self, path: Union[str, Path]) -> Dict[str, Any]:
        path = Path(path)
        return _parse_document(path.read_text(encoding="utf-8"), str(path))

    def extract_operations(self, spec: Dict[str, Any]) -> List[OperationSpec]:
        operations: List[OperationSpec] = []
        paths = spec.get("paths") or {}

        for path, methods in paths.items():
            shared_parameters = (methods or {}).get("parameters") or []
            for method, operation in (methods or {}).items():
                if method.lower() not in HTTP_METHODS:
                    continue
                operation_id = operation.get("operationId") or self._fallback_operation_id(
                    method, path
                )
                operations.append(
                    OperationSpec(
                        operation_id=operation_id,
                        method=method.lower(),
                        path=path,
                        parameters=self._build_parameters(
                            [*shared_parameters, *(operation.get("parameters") or [])]
                        ),
                        request_body=self._build_request_body(operation.get("requestBody")),
                        raw=operation,
                    )
                )

        return operations

    def schemas(self, spec: Dict[str, Any]) -> Dict[str, Any]:
        components = spec.get("components") or {}
        return dict(components.get("schemas") or spec.get("definitions") or {})

    def _build_parameters(
        self, parameters: List[Dict[str, Any]]
    ) -> List[Union[ParameterSpec, ReferenceObject]]:
        built: List[Union[ParameterSpec, ReferenceObject]] = []
        seen: Dict[Tuple[str, str], int] = {}

        for parameter in parameters:
            if "$ref" in parameter:
                built.append(ReferenceObject(parameter["$ref"]))
                continue
            name = parameter.get("name")
            if not name:
                logger.warning("Skipping unnamed parameter: %s", parameter)
                continue
            spec = ParameterSpec(
                name=name,
                location=parameter.get("in", "query"),
                schema=parameter.get("schema") or {},
                required=parameter.get("required", parameter.get("in") == "path"),
                description=parameter.get("description") or "",
            )
            # Operation-level parameters override path-level ones.
            key = (spec.name, spec.location)
            if key in seen:
                built[seen[key]] = spec
                continue
            seen[key] = len(built)
            built.append(spec)

        return built

    def _build_request_body(
        self, request_body: Optional[Dict[str, Any]]
    ) -> Optional[Union[RequestBodySpec, ReferenceObject]]:
        if not request_body:
            return None
        if "$ref" in request_body:
            return ReferenceObject(request_body["$ref"])
        return RequestBodySpec(
            content=request_body.get("content") or {},
            required=request_body.get("required", False),
            index=request_body.get(REQUEST_BODY_INDEX),
            description=request_body.get("description") or "",
        )

    def _fallback_operation_id(self, method: str, path: str) -> str:
        sanitized = path.strip("/").replace("/", "_").replace("{", "").replace("}", "")
        return f"{method.lower()}_{sanitized or 'root'}"


def _parse_document(text: str, source: str) -> Dict[str, Any]:
    if source.endswith((".yaml", ".yml")):
        return yaml.safe_load(text)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return yaml.safe_load(text)
