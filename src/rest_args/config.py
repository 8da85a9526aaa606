"""Configuration for the operation argument parser."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_LIMIT = "1mb"

_BYTE_UNITS = {"b": 1, "kb": 1 << 10, "mb": 1 << 20, "gb": 1 << 30, "tb": 1 << 40}
_BYTE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(b|kb|mb|gb|tb)?\s*$", re.IGNORECASE)


class RequestBodyParserOptions(BaseModel):
    """Options shared by the json, urlencoded and text body strategies.

    Only fields that were explicitly set are merged over a strategy's own
    defaults, so an unset field never masks a strategy default.
    """

    model_config = ConfigDict(extra="allow")

    limit: Optional[Union[int, str]] = None
    type: Optional[Union[str, List[str]]] = None
    strict: Optional[bool] = None
    extended: Optional[bool] = None
    parameter_limit: Optional[int] = None
    default_charset: Optional[str] = None

    def merged(self, defaults: Dict[str, Any]) -> Dict[str, Any]:
        return {**defaults, **self.model_dump(exclude_unset=True)}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="REST_ARGS_", case_sensitive=False)

    service_name: str = Field(default="rest-args")

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    log_level: str = Field(default="INFO")

    openapi_url: Optional[str] = Field(default=None)
    openapi_path: Optional[str] = Field(default=None)
    openapi_cache_seconds: int = Field(default=3600)

    body_limit: str = Field(default=DEFAULT_LIMIT)
    json_strict: bool = Field(default=True)
    urlencoded_extended: bool = Field(default=True)

    def body_parser_options(self) -> RequestBodyParserOptions:
        options = RequestBodyParserOptions(limit=self.body_limit)
        # Strategy defaults already match these values; only pass overrides.
        if not self.json_strict:
            options.strict = False
        if not self.urlencoded_extended:
            options.extended = False
        return options


def parse_bytes(value: Union[int, str, None]) -> int:
    """Convert a size such as ``"1mb"`` or ``512`` into a byte count."""
    if value is None:
        value = DEFAULT_LIMIT
    if isinstance(value, int):
        return value
    match = _BYTE_PATTERN.match(value)
    if not match:
        raise ValueError(f"Invalid byte size: {value!r}")
    number, unit = match.groups()
    return int(float(number) * _BYTE_UNITS[(unit or "b").lower()])


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
