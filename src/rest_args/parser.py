"""Derive the positional handler arguments for a resolved operation."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .body import load_request_body
from .coercion import coerce_parameter
from .config import RequestBodyParserOptions
from .errors import InvalidParameterLocation, UnsupportedReference
from .models import (
    OperationSpec,
    ParameterLocation,
    ParameterSpec,
    RequestBody,
    RequestContext,
    ResolvedRoute,
    is_reference,
)
from .query import ensure_query_parsed
from .validation import validate_request_body

logger = logging.getLogger(__name__)

OperationArgs = List[Any]


async def parse_operation_args(
    ctx: RequestContext,
    route: ResolvedRoute,
    options: Optional[RequestBodyParserOptions] = None,
) -> OperationArgs:
    """Parse the request into the arguments for the route's handler.

    Args:
        ctx: Per-request context wrapping the incoming request
        route: Resolved route with the operation spec, path params and schemas
        options: Request body parser options

    Returns:
        Arguments in declared parameter order, body spliced at its index
    """
    logger.debug("Parsing operation arguments for route %s", route.describe())
    body = await load_request_body(route.spec, ctx, options)
    return build_operation_arguments(route.spec, ctx, route.path_params, body, route.schemas)


def build_operation_arguments(
    operation_spec: OperationSpec,
    ctx: RequestContext,
    path_params: Dict[str, str],
    body: RequestBody,
    schemas: Optional[Dict[str, Any]] = None,
) -> OperationArgs:
    request_body_index: Optional[int] = None
    if operation_spec.request_body is not None:
        if is_reference(operation_spec.request_body):
            raise UnsupportedReference("$ref requestBody is not supported yet.")
        index = operation_spec.request_body.index
        request_body_index = 0 if index is None else index

    for param_spec in operation_spec.parameters:
        if is_reference(param_spec):
            raise UnsupportedReference("$ref parameters are not supported yet.")

    args: OperationArgs = []
    for param_spec in operation_spec.parameters:
        raw_value = get_param_from_request(param_spec, ctx, path_params)
        args.append(coerce_parameter(raw_value, param_spec))

    body_value = validate_request_body(
        body.value,
        operation_spec.request_body,
        schemas,
        coerce_types=body.coercion_required,
    )

    if request_body_index is not None:
        args.insert(request_body_index, body_value)
    return args


def get_param_from_request(
    spec: ParameterSpec, ctx: RequestContext, path_params: Dict[str, str]
) -> Any:
    location = ParameterLocation.parse(spec.location)
    if location is ParameterLocation.QUERY:
        return ensure_query_parsed(ctx).get(spec.name)
    if location is ParameterLocation.PATH:
        return path_params.get(spec.name)
    if location is ParameterLocation.HEADER:
        values = ctx.request.headers.getlist(spec.name.lower())
        return ", ".join(values) if values else None
    if location is ParameterLocation.COOKIE:
        raise InvalidParameterLocation(location.value)
    raise InvalidParameterLocation(spec.location)
