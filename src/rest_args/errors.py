"""HTTP-style errors raised while turning a request into operation arguments."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from starlette.exceptions import HTTPException


class HTTPError(HTTPException):
    """Base error carrying an HTTP status code and a client-facing message."""

    status: int = 500

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[List[Dict[str, Any]]] = None,
    ) -> None:
        super().__init__(status_code=status_code or self.status, detail=message)
        self.details = details

    @property
    def message(self) -> str:
        return str(self.detail)

    @property
    def name(self) -> str:
        return type(self).__name__

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {
            "statusCode": self.status_code,
            "name": self.name,
            "message": self.message,
        }
        if self.details:
            error["details"] = self.details
        return {"error": error}


class UnsupportedReference(Exception):
    """The operation uses a ``$ref`` parameter or request body."""


class UnsupportedMediaType(HTTPError):
    status = 415

    def __init__(self, content_type: Optional[str]) -> None:
        super().__init__(f"Content-type {content_type} is not supported.")
        self.content_type = content_type


class BodyDecodeError(HTTPError):
    """The request body could not be read or decoded."""

    status = 400


class UnsupportedCharset(BodyDecodeError):
    status = 415

    def __init__(self, charset: str) -> None:
        super().__init__(f'Unsupported charset "{charset.upper()}"')
        self.charset = charset


class PayloadTooLarge(BodyDecodeError):
    status = 413

    def __init__(self, limit: int, length: Optional[int] = None) -> None:
        message = f"Request entity too large (limit: {limit} bytes)"
        if length is not None:
            message = f"Request entity too large ({length} > {limit} bytes)"
        super().__init__(message)
        self.limit = limit
        self.length = length


class InvalidParameterLocation(HTTPError):
    status = 501

    def __init__(self, location: str) -> None:
        super().__init__(f'Parameters with "in: {location}" are not supported yet.')
        self.location = location


class MissingRequiredParameter(HTTPError):
    status = 400

    def __init__(self, name: str) -> None:
        super().__init__(f"Required parameter {name} is missing!")
        self.parameter = name


class InvalidParameterValue(HTTPError):
    status = 400

    def __init__(self, name: str, value: Any, expected: str) -> None:
        super().__init__(f"Invalid data {value!r} for parameter {name}! Expected {expected}.")
        self.parameter = name


class MissingRequiredBody(HTTPError):
    status = 400

    def __init__(self) -> None:
        super().__init__("Request body is required")


class RequestBodyValidationError(HTTPError):
    status = 422

    def __init__(self, details: List[Dict[str, Any]]) -> None:
        summary = "; ".join(f"{item['path'] or '<body>'}: {item['message']}" for item in details)
        super().__init__(
            f"The request body is invalid. See error object `details` property for more info. {summary}".rstrip(),
            details=details,
        )


class RouteNotFound(HTTPError):
    status = 404

    def __init__(self, method: str, path: str) -> None:
        super().__init__(f"Endpoint {method.upper()} {path} not found.")


class MethodNotAllowed(HTTPError):
    status = 405

    def __init__(self, method: str, path: str, allowed: List[str]) -> None:
        super().__init__(f"Method {method.upper()} is not allowed for {path}.")
        self.allowed = allowed
