from rest_args.models import NotParsed, Parsed
from rest_args.query import ensure_query_parsed, parse_query_string


class TestEnsureQueryParsed:
    def test_starts_not_parsed(self, make_context):
        ctx = make_context(query="a=1")
        assert isinstance(ctx.query, NotParsed)

    def test_parses_on_first_access(self, make_context):
        ctx = make_context(query="a=1&b=two")
        mapping = ensure_query_parsed(ctx)
        assert mapping == {"a": "1", "b": "two"}
        assert isinstance(ctx.query, Parsed)
        assert ctx.query.mapping is mapping

    def test_second_call_returns_identical_mapping(self, make_context):
        ctx = make_context(query="a=1")
        first = ensure_query_parsed(ctx)
        second = ensure_query_parsed(ctx)
        assert first is second

    def test_never_reparses(self, make_context):
        ctx = make_context(query="a=1")
        ensure_query_parsed(ctx)
        ctx.request.scope["query_string"] = b"a=2"
        assert ensure_query_parsed(ctx) == {"a": "1"}

    def test_missing_query_stores_empty_mapping(self, make_context):
        ctx = make_context()
        assert ensure_query_parsed(ctx) == {}
        assert isinstance(ctx.query, Parsed)

    def test_parameter_count_is_capped(self, make_context):
        ctx = make_context(query="&".join(f"k{i}=v" for i in range(1500)))
        mapping = ensure_query_parsed(ctx)
        assert len(mapping) == 1000
        assert "k999" in mapping
        assert "k1000" not in mapping

    def test_malformed_query_does_not_raise(self, make_context):
        ctx = make_context(query="=&&a=%zz&b")
        mapping = ensure_query_parsed(ctx)
        assert mapping["a"] == "%zz"
        assert mapping["b"] == ""


class TestParseQueryString:
    def test_repeated_keys_become_lists(self):
        assert parse_query_string("tag=a&tag=b&tag=c") == {"tag": ["a", "b", "c"]}

    def test_bracket_keys_nest(self):
        assert parse_query_string("filter[name]=rex&filter[age]=3") == {
            "filter": {"name": "rex", "age": "3"}
        }

    def test_empty_brackets_build_lists(self):
        assert parse_query_string("ids[]=1&ids[]=2") == {"ids": ["1", "2"]}

    def test_plain_mode_keeps_brackets(self):
        assert parse_query_string("a[b]=1", extended=False) == {"a[b]": "1"}

    def test_percent_decoding(self):
        assert parse_query_string("q=hello%20world&x=a+b") == {"q": "hello world", "x": "a b"}
