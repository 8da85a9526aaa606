"""Lazy, once-per-request query string parsing."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl

from .models import Parsed, RequestContext

logger = logging.getLogger(__name__)

_SEGMENT = re.compile(r"\[([^\[\]]*)\]")
QUERY_PARAMETER_LIMIT = 1000


def ensure_query_parsed(ctx: RequestContext) -> Dict[str, Any]:
    """Parse the request query string on first use and cache it on ``ctx``."""
    if isinstance(ctx.query, Parsed):
        return ctx.query.mapping

    raw = ctx.request.url.query
    mapping: Dict[str, Any] = {}
    if raw:
        try:
            mapping = parse_query_string(raw, parameter_limit=QUERY_PARAMETER_LIMIT)
        except ValueError:
            logger.debug("Query string exceeds %s parameters, truncating", QUERY_PARAMETER_LIMIT)
            truncated = "&".join(raw.split("&")[:QUERY_PARAMETER_LIMIT])
            mapping = parse_query_string(truncated, parameter_limit=QUERY_PARAMETER_LIMIT)
    ctx.query = Parsed(mapping)
    logger.debug("Parsed request query: %s", mapping)
    return mapping


def parse_query_string(
    raw: str, extended: bool = True, parameter_limit: Optional[int] = None
) -> Dict[str, Any]:
    """Tokenize ``raw`` into name -> str, or name -> list for repeated keys.

    With ``extended`` set, bracket keys nest: ``a[b]=1`` gives ``{"a": {"b": "1"}}``
    and ``a[]=1&a[]=2`` gives ``{"a": ["1", "2"]}``. ``parameter_limit`` caps
    the number of pairs and raises ``ValueError`` when exceeded.
    """
    pairs = parse_qsl(raw, keep_blank_values=True, max_num_fields=parameter_limit)
    result: Dict[str, Any] = {}
    for key, value in pairs:
        segments = _split_key(key) if extended else [key]
        _merge(result, segments, value)
    return result


def _split_key(key: str) -> List[str]:
    head, bracket, _ = key.partition("[")
    if not bracket or not head:
        return [key]
    tail = key[len(head):]
    segments = _SEGMENT.findall(tail)
    if "".join(f"[{segment}]" for segment in segments) != tail:
        return [key]
    if "" in segments[:-1]:
        return [key]
    return [head, *segments]


def _merge(target: Dict[str, Any], segments: List[str], value: str) -> None:
    key = segments[0]
    if len(segments) == 1:
        _add(target, key, value)
        return

    child = target.get(key)
    if segments[1] == "":
        if child is None:
            child = []
        elif not isinstance(child, list):
            child = [child]
        child.append(value)
        target[key] = child
        return

    if not isinstance(child, dict):
        child = {}
        target[key] = child
    _merge(child, segments[1:], value)


def _add(target: Dict[str, Any], key: str, value: str) -> None:
    if key not in target:
        target[key] = value
    elif isinstance(target[key], list):
        target[key].append(value)
    else:
        target[key] = [target[key], value]
