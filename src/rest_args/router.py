"""Path-template routing table producing resolved routes."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Pattern
from urllib.parse import unquote

from .errors import MethodNotAllowed, RouteNotFound
from .models import OperationSpec, ResolvedRoute
from .openapi import OpenAPILoader

logger = logging.getLogger(__name__)

_TEMPLATE_VARIABLE = re.compile(r"\{([^{}]+)\}")


@dataclass(frozen=True)
class RouteEntry:
    spec: OperationSpec
    pattern: Pattern[str]
    names: List[str]

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = self.pattern.match(path)
        if not found:
            return None
        return {name: unquote(found.group(f"p{i}")) for i, name in enumerate(self.names)}


class RoutingTable:
    def __init__(self, schemas: Optional[Dict[str, Any]] = None) -> None:
        self.schemas = schemas or {}
        self._routes: List[RouteEntry] = []

    @classmethod
    def from_document(
        cls, document: Dict[str, Any], loader: Optional[OpenAPILoader] = None
    ) -> "RoutingTable":
        loader = loader or OpenAPILoader()
        table = cls(schemas=loader.schemas(document))
        for operation in loader.extract_operations(document):
            table.register(operation)
        return table

    def register(self, spec: OperationSpec) -> None:
        names = _TEMPLATE_VARIABLE.findall(spec.path)
        self._routes.append(RouteEntry(spec=spec, pattern=compile_template(spec.path), names=names))
        # Static segments win over templated ones.
        self._routes.sort(key=lambda entry: len(entry.names))
        logger.debug("Registered route %s %s", spec.method.upper(), spec.path)

    def find(self, method: str, path: str) -> ResolvedRoute:
        allowed: List[str] = []
        for entry in self._routes:
            params = entry.match(path)
            if params is None:
                continue
            if entry.spec.method == method.lower():
                return ResolvedRoute(spec=entry.spec, path_params=params, schemas=self.schemas)
            allowed.append(entry.spec.method.upper())

        if allowed:
            raise MethodNotAllowed(method, path, allowed)
        raise RouteNotFound(method, path)

    def __len__(self) -> int:
        return len(self._routes)


def compile_template(template: str) -> Pattern[str]:
    parts: List[str] = []
    position = 0
    for index, variable in enumerate(_TEMPLATE_VARIABLE.finditer(template)):
        parts.append(re.escape(template[position:variable.start()]))
        parts.append(f"(?P<p{index}>[^/]+)")
        position = variable.end()
    parts.append(re.escape(template[position:]))
    return re.compile("^" + "".join(parts) + "/?$")
