import pytest

from relaycache._core._headers import HOP_BY_HOP_HEADERS, Headers, parse_cache_control


class TestHeaders:
    def test_lookup_is_case_insensitive(self):
        headers = Headers([("Content-Type", "text/plain")])
        assert headers["content-type"] == "text/plain"
        assert "CONTENT-TYPE" in headers

    def test_repeated_fields_keep_every_value(self):
        headers = Headers([("Set-Cookie", "a=1"), ("Vary", "Accept"), ("set-cookie", "b=2")])

        assert headers.get_list("Set-Cookie") == ["a=1", "b=2"]
        assert headers["Set-Cookie"] == "a=1, b=2"
        assert len(headers) == 2
        assert list(headers) == ["Set-Cookie", "Vary"]

    def test_mapping_with_list_values(self):
        headers = Headers({"Accept": ["text/html", "application/json"]})
        assert headers.multi_items() == [("Accept", "text/html"), ("Accept", "application/json")]

    def test_setitem_replaces_all_values(self):
        headers = Headers([("X-A", "1"), ("x-a", "2")])
        headers["X-A"] = "3"
        assert headers.multi_items() == [("X-A", "3")]

    def test_delitem(self):
        headers = Headers([("X-A", "1"), ("X-B", "2")])
        del headers["x-a"]
        assert headers.multi_items() == [("X-B", "2")]

        with pytest.raises(KeyError):
            del headers["X-A"]

    def test_missing_field(self):
        headers = Headers()
        assert headers.get("Expires") is None
        with pytest.raises(KeyError):
            headers["Expires"]

    def test_without_hop_by_hop(self):
        headers = Headers(
            [
                ("Connection", "keep-alive"),
                ("Transfer-Encoding", "chunked"),
                ("Content-Type", "text/html"),
                ("Proxy-Authorization", "Basic Zm9vOmJhcg=="),
            ]
        )
        assert headers.without(HOP_BY_HOP_HEADERS).multi_items() == [("Content-Type", "text/html")]
        # the source headers stay untouched
        assert len(headers) == 4

    def test_equality_ignores_name_casing(self):
        assert Headers([("ETag", '"x"')]) == Headers([("etag", '"x"')])
        assert Headers([("ETag", '"x"')]) != Headers([("ETag", '"y"')])

    def test_copy_is_independent(self):
        headers = Headers([("X-A", "1")])
        copy = headers.copy()
        copy.add("X-A", "2")
        assert headers.get_list("X-A") == ["1"]

    def test_extend(self):
        headers = Headers([("X-A", "1")])
        headers.extend([("x-a", "2"), ("X-B", "3")])
        assert headers.multi_items() == [("X-A", "1"), ("x-a", "2"), ("X-B", "3")]


class TestParseCacheControl:
    def test_empty(self):
        assert parse_cache_control([]) == {}
        assert parse_cache_control(["   "]) == {}

    def test_directives_without_arguments(self):
        assert parse_cache_control(["No-Cache, no-store"]) == {"no-cache": None, "no-store": None}

    def test_arguments(self):
        assert parse_cache_control(["max-age=60", 'private="Set-Cookie"']) == {
            "max-age": "60",
            "private": "Set-Cookie",
        }

    def test_comma_inside_quotes(self):
        assert parse_cache_control(['no-cache="Set-Cookie, Foo", max-age=5']) == {
            "no-cache": "Set-Cookie, Foo",
            "max-age": "5",
        }

    def test_escaped_quote(self):
        assert parse_cache_control(['ext="a\\"b,c"']) == {"ext": 'a"b,c'}
