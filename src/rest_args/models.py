"""Operation, route and request models."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from starlette.requests import Request


REQUEST_BODY_INDEX = "x-parameter-index"


class ParameterLocation(enum.Enum):
    QUERY = "query"
    PATH = "path"
    HEADER = "header"
    COOKIE = "cookie"

    @classmethod
    def parse(cls, value: str) -> Optional["ParameterLocation"]:
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class ReferenceObject:
    ref: str


@dataclass(frozen=True)
class ParameterSpec:
    name: str
    location: str
    schema: Dict[str, Any] = field(default_factory=dict)
    required: bool = False
    description: str = ""


@dataclass(frozen=True)
class RequestBodySpec:
    content: Dict[str, Any] = field(default_factory=dict)
    required: bool = False
    index: Optional[int] = None
    description: str = ""


@dataclass(frozen=True)
class OperationSpec:
    operation_id: str
    method: str
    path: str
    parameters: List[Union[ParameterSpec, ReferenceObject]] = field(default_factory=list)
    request_body: Optional[Union[RequestBodySpec, ReferenceObject]] = None
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class ResolvedRoute:
    spec: OperationSpec
    path_params: Dict[str, str] = field(default_factory=dict)
    schemas: Dict[str, Any] = field(default_factory=dict)

    def describe(self) -> str:
        return f"{self.spec.method.upper()} {self.spec.path} ({self.spec.operation_id})"


@dataclass(frozen=True)
class RequestBody:
    value: Any = None
    coercion_required: bool = False


class NotParsed:
    """Query state of a request whose query string has not been read yet."""

    def __repr__(self) -> str:
        return "NotParsed()"


@dataclass(frozen=True)
class Parsed:
    mapping: Dict[str, Any]


QueryState = Union[NotParsed, Parsed]


@dataclass
class RequestContext:
    """Per-request state wrapped around a Starlette request."""

    request: Request
    query: QueryState = field(default_factory=NotParsed)

    @property
    def headers(self) -> Mapping[str, str]:
        return self.request.headers

    @property
    def content_type(self) -> Optional[str]:
        return self.request.headers.get("content-type")


def is_reference(value: Any) -> bool:
    return isinstance(value, ReferenceObject)
