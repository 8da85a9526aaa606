"""Starlette application that dispatches requests to operation handlers."""

import inspect
import logging
from typing import Any, Callable, Dict, Optional

from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from .config import Settings
from .errors import HTTPError, UnsupportedReference
from .models import RequestContext
from .parser import parse_operation_args
from .router import RoutingTable

logger = logging.getLogger(__name__)

Handler = Callable[..., Any]

_ALL_METHODS = ["GET", "PUT", "POST", "DELETE", "OPTIONS", "HEAD", "PATCH", "TRACE"]


def build_app(
    document: Dict[str, Any],
    handlers: Dict[str, Handler],
    settings: Optional[Settings] = None,
) -> Starlette:
    settings = settings or Settings()
    table = RoutingTable.from_document(document)
    options = settings.body_parser_options()

    async def dispatch(request: Request) -> Response:
        try:
            route = table.find(request.method, request.url.path)
            handler = handlers.get(route.spec.operation_id)
            if handler is None:
                logger.warning("No handler registered for operation %s", route.spec.operation_id)
                raise HTTPError(f"Operation {route.spec.operation_id} is not implemented.", 501)

            args = await parse_operation_args(RequestContext(request), route, options)
            result = handler(*args)
            if inspect.isawaitable(result):
                result = await result
        except HTTPError as exc:
            logger.info("Request failed: %s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
            return JSONResponse(exc.to_dict(), status_code=exc.status_code)
        except UnsupportedReference as exc:
            logger.error("Incompatible operation spec: %s", exc)
            error = HTTPError(str(exc), 500)
            return JSONResponse(error.to_dict(), status_code=500)

        if isinstance(result, Response):
            return result
        if result is None:
            return Response(status_code=204)
        return JSONResponse(result)

    app = Starlette(routes=[Route("/{path:path}", dispatch, methods=_ALL_METHODS)])
    app.state.routing_table = table
    app.state.settings = settings
    logger.info("Built %s with %s routes", settings.service_name, len(table))
    return app
