"""Request body loading: content-type negotiation, size ceiling and decoding."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Callable, Dict, List, Optional, Tuple

from starlette.requests import ClientDisconnect, Request

from .config import DEFAULT_LIMIT, RequestBodyParserOptions, parse_bytes
from .errors import BodyDecodeError, PayloadTooLarge, UnsupportedCharset, UnsupportedMediaType
from .models import OperationSpec, RequestBody, RequestContext
from .query import parse_query_string

logger = logging.getLogger(__name__)

ContentType = Tuple[str, Dict[str, str]]


@dataclass(frozen=True)
class BodyStrategy:
    name: str
    defaults: Dict[str, Any]
    coercion_required: bool
    decode: Callable[[bytes, ContentType, Dict[str, Any]], Any]


def _decode_json(raw: bytes, content_type: ContentType, options: Dict[str, Any]) -> Any:
    charset = content_type[1].get("charset", "utf-8").lower()
    if not charset.startswith("utf-"):
        raise UnsupportedCharset(charset)
    if not raw:
        return {}
    try:
        text = raw.decode(charset)
    except (LookupError, UnicodeDecodeError) as exc:
        raise BodyDecodeError(f"Cannot decode request body: {exc}") from exc

    if options.get("strict", True):
        stripped = text.lstrip()
        if stripped and stripped[0] not in "{[":
            raise BodyDecodeError(f"Unexpected token {stripped[0]} in JSON at position 0")
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise BodyDecodeError(f"Cannot parse JSON request body: {exc}") from exc


def _decode_urlencoded(raw: bytes, content_type: ContentType, options: Dict[str, Any]) -> Any:
    charset = content_type[1].get("charset", "utf-8").lower()
    if charset != "utf-8":
        raise UnsupportedCharset(charset)
    try:
        text = raw.decode(charset)
    except UnicodeDecodeError as exc:
        raise BodyDecodeError(f"Cannot decode request body: {exc}") from exc
    try:
        return parse_query_string(
            text,
            extended=options.get("extended", True),
            parameter_limit=options.get("parameter_limit"),
        )
    except ValueError as exc:
        raise BodyDecodeError("too many parameters", status_code=413) from exc


def _decode_text(raw: bytes, content_type: ContentType, options: Dict[str, Any]) -> Any:
    charset = content_type[1].get("charset") or options.get("default_charset", "utf-8")
    try:
        return raw.decode(charset)
    except LookupError as exc:
        raise UnsupportedCharset(charset) from exc
    except UnicodeDecodeError as exc:
        raise BodyDecodeError(f"Cannot decode request body: {exc}") from exc


# Order matters: the first strategy whose type matches owns the stream.
STRATEGIES: List[BodyStrategy] = [
    BodyStrategy(
        name="json",
        defaults={"type": ["application/json", "application/*+json"], "limit": DEFAULT_LIMIT, "strict": True},
        coercion_required=False,
        decode=_decode_json,
    ),
    BodyStrategy(
        name="urlencoded",
        defaults={
            "type": "application/x-www-form-urlencoded",
            "limit": DEFAULT_LIMIT,
            "extended": True,
            "parameter_limit": 1000,
        },
        coercion_required=True,
        decode=_decode_urlencoded,
    ),
    BodyStrategy(
        name="text",
        defaults={"type": "text/plain", "limit": DEFAULT_LIMIT, "default_charset": "utf-8"},
        coercion_required=True,
        decode=_decode_text,
    ),
]


async def load_request_body(
    operation_spec: OperationSpec,
    ctx: RequestContext,
    options: Optional[RequestBodyParserOptions] = None,
) -> RequestBody:
    if operation_spec.request_body is None:
        return RequestBody()

    options = options or RequestBodyParserOptions()
    logger.debug("Request body parser options: %s", options.model_dump(exclude_unset=True))

    request = ctx.request
    content_type = parse_content_type(ctx.content_type)
    selected = select_strategy(content_type[0], options)
    if selected is None:
        if ctx.content_type or has_body(request):
            raise UnsupportedMediaType(ctx.content_type)
        return RequestBody()
    if not has_body(request):
        return RequestBody()

    strategy, strategy_options = selected
    try:
        raw = await read_body(request, parse_bytes(strategy_options["limit"]))
        value = strategy.decode(raw, content_type, strategy_options)
    except BodyDecodeError as exc:
        _normalize_error(exc)
        raise
    return RequestBody(value=value, coercion_required=strategy.coercion_required)


def select_strategy(
    media_type: str, options: RequestBodyParserOptions
) -> Optional[Tuple[BodyStrategy, Dict[str, Any]]]:
    for strategy in STRATEGIES:
        strategy_options = options.merged(strategy.defaults)
        if type_matches(media_type, strategy_options["type"]):
            return strategy, strategy_options
    return None


def has_body(request: Request) -> bool:
    if "transfer-encoding" in request.headers:
        return True
    length = request.headers.get("content-length")
    return length is not None and length.strip() not in ("", "0")


async def read_body(request: Request, limit: int) -> bytes:
    """Drain the request stream, failing as soon as ``limit`` is exceeded."""
    length = request.headers.get("content-length")
    if length is not None and length.isdigit() and int(length) > limit:
        raise PayloadTooLarge(limit, int(length))

    chunks: List[bytes] = []
    received = 0
    try:
        async for chunk in request.stream():
            received += len(chunk)
            if received > limit:
                raise PayloadTooLarge(limit)
            chunks.append(chunk)
    except ClientDisconnect as exc:
        raise BodyDecodeError("request aborted") from exc
    return b"".join(chunks)


def parse_content_type(value: Optional[str]) -> ContentType:
    if not value:
        return "", {}
    media_type, *params = value.split(";")
    parsed: Dict[str, str] = {}
    for param in params:
        key, sep, val = param.partition("=")
        if sep:
            parsed[key.strip().lower()] = val.strip().strip('"')
    return media_type.strip().lower(), parsed


def type_matches(media_type: str, patterns: Any) -> bool:
    if not media_type:
        return False
    if isinstance(patterns, str):
        patterns = [patterns]
    return any(fnmatchcase(media_type, pattern.lower()) for pattern in patterns)


def _normalize_error(err: BodyDecodeError) -> None:
    logger.debug("Cannot parse request body: %s (status %s)", err.detail, err.status_code)
    # 413 from the size ceiling is reported as a plain bad request.
    if err.status_code >= 500 or err.status_code == 413:
        err.status_code = 400
