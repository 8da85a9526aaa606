"""CLI entry point serving an OpenAPI document's operations."""

from __future__ import annotations

import asyncio
import importlib
import sys
from typing import Any, Dict

import uvicorn

from .config import Settings, get_settings
from .logging import configure_logging
from .openapi import OpenAPILoader
from .server import build_app


async def _load_document(settings: Settings) -> Dict[str, Any]:
    loader = OpenAPILoader(cache_seconds=settings.openapi_cache_seconds)
    if settings.openapi_path:
        return loader.load_file(settings.openapi_path)
    if settings.openapi_url:
        document = await loader.load_spec(settings.openapi_url)
        if document:
            return document
    raise RuntimeError("Set REST_ARGS_OPENAPI_PATH or a reachable REST_ARGS_OPENAPI_URL")


def _load_handlers(target: str) -> Dict[str, Any]:
    """Import ``module:attribute`` resolving to an operationId -> callable map."""
    module_name, _, attribute = target.partition(":")
    module = importlib.import_module(module_name)
    return getattr(module, attribute or "handlers")


async def _run(handlers_target: str) -> None:
    settings = get_settings()
    configure_logging(settings.log_level)

    document = await _load_document(settings)
    app = build_app(document, _load_handlers(handlers_target), settings)

    config = uvicorn.Config(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    server = uvicorn.Server(config)
    await server.serve()


def main() -> None:
    if len(sys.argv) != 2:
        raise SystemExit("usage: rest-args module:handlers")
    asyncio.run(_run(sys.argv[1]))


if __name__ == "__main__":
    main()
