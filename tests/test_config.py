import pytest

from rest_args.config import RequestBodyParserOptions, Settings, parse_bytes
from rest_args.logging import redact_payload


class TestParseBytes:
    @pytest.mark.parametrize(
        "value,expected",
        [("1mb", 1048576), ("100kb", 102400), ("512", 512), ("1.5kb", 1536), (64, 64), (None, 1048576)],
    )
    def test_units(self, value, expected):
        assert parse_bytes(value) == expected

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_bytes("lots")


class TestRequestBodyParserOptions:
    def test_only_set_fields_override_defaults(self):
        options = RequestBodyParserOptions(limit="2mb")
        merged = options.merged({"type": "text/plain", "limit": "1mb"})
        assert merged == {"type": "text/plain", "limit": "2mb"}

    def test_extra_fields_are_passed_through(self):
        options = RequestBodyParserOptions(reviver="ignored")
        assert options.merged({})["reviver"] == "ignored"


class TestSettings:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("REST_ARGS_BODY_LIMIT", "2kb")
        monkeypatch.setenv("REST_ARGS_JSON_STRICT", "false")
        settings = Settings()
        assert settings.body_limit == "2kb"
        options = settings.body_parser_options()
        assert options.model_dump(exclude_unset=True) == {"limit": "2kb", "strict": False}

    def test_defaults(self):
        options = Settings().body_parser_options()
        assert options.model_dump(exclude_unset=True) == {"limit": "1mb"}


def test_redact_payload_masks_nested_secrets():
    payload = {"name": "a", "auth": {"api_key": "k", "items": [{"password": "p"}]}}
    assert redact_payload(payload) == {
        "name": "a",
        "auth": {"api_key": "***REDACTED***", "items": [{"password": "***REDACTED***"}]},
    }
