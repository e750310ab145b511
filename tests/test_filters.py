"""
Filter registry and pipeline tests

Tests each built-in filter, pipeline ordering, stringification and the
pipeline cache.
"""

import pytest

from highlightdown.lib import cache as cache_module
from highlightdown.lib.cache import LruCache
from highlightdown.lib.filters import (
    filter_registry,
    filters_apply,
    pipeline_compile,
    truncate_length,
    value_stringify,
)
from highlightdown.models.filters import FilterCategory, filterSpec_split


class CountingCache:
    """Dict-backed cache that counts lookups and writes"""

    def __init__(self):
        self.store = {}
        self.hits = 0
        self.misses = 0
        self.sets = 0

    def get(self, key):
        if key in self.store:
            self.hits += 1
            return self.store[key]
        self.misses += 1
        return None

    def set(self, key, value):
        self.sets += 1
        self.store[key] = value
        return self


class TestRegistry:
    """Test the filter registry contents"""

    def test_all_filters_registered(self):
        """Every documented filter is present"""
        assert set(filter_registry.names()) == {
            "stripHTML", "br2nl", "escapeHtml", "unescapeHtml",
            "truncate", "lower", "upper",
            "quote", "escape",
            "dateFormat",
        }

    def test_argument_requirements(self):
        """Only truncate and dateFormat take arguments"""
        needing = {spec.name for spec in filter_registry.specs.values() if spec.requires_arg}
        assert needing == {"truncate", "dateFormat"}

    def test_lookup_is_case_sensitive(self):
        """Names must match exactly"""
        assert filter_registry.get("upper") is not None
        assert filter_registry.get("Upper") is None

    def test_unknown_resolves_to_identity(self):
        """Unknown names resolve to the identity spec"""
        assert filter_registry.resolve("nope").category == FilterCategory.IDENTITY

    def test_list_by_category(self):
        """Filters can be listed per category"""
        html = {s.name for s in filter_registry.filters_listByCategory(FilterCategory.HTML)}
        assert html == {"stripHTML", "br2nl", "escapeHtml", "unescapeHtml"}

    def test_every_filter_has_metadata(self):
        """Descriptions and examples are filled in"""
        for spec in filter_registry.specs.values():
            assert spec.description
            assert spec.examples


class TestFilterSpecSplit:
    """Test name:arg splitting"""

    @pytest.mark.parametrize("spec,expected", [
        ("upper", ("upper", None)),
        ("truncate:40", ("truncate", "40")),
        (" truncate : 40 ", ("truncate", "40")),
        ("dateFormat:HH:mm", ("dateFormat", "HH:mm")),
        ("truncate:", ("truncate", "")),
    ])
    def test_split(self, spec, expected):
        assert filterSpec_split(spec) == expected


class TestBuiltinFilters:
    """Test individual filter behaviour"""

    @pytest.mark.parametrize("value,specs,expected", [
        ("<p>a <b>b</b></p>", ["stripHTML"], "a b"),
        ("&lt;h1&gt;Title&lt;/h1&gt;", ["stripHTML"], "Title"),
        ("a<br>b<BR/>c<br />d", ["br2nl"], "a\nb\nc\nd"),
        ("<a & 'b'>", ["escapeHtml"], "&lt;a &amp; &#39;b&#39;&gt;"),
        ("&lt;a&gt; &eacute;", ["unescapeHtml"], "<a> é"),
        ("MiXeD", ["lower"], "mixed"),
        ("MiXeD", ["upper"], "MIXED"),
        ("a\n\nb", ["quote"], "> a\n>\n> b"),
        ("*a* [b]", ["escape"], "\\*a\\* \\[b\\]"),
        ("2024-01-02 13:14:15", ["dateFormat:YYYY-MM-DD"], "2024-01-02"),
        ("2024-01-02 13:14:15", ["dateFormat:HH:mm"], "13:14"),
    ])
    def test_filter(self, value, specs, expected):
        assert filters_apply(value, specs) == expected

    @pytest.mark.parametrize("value,arg,expected", [
        ("abcdef", "3", "abc…"),
        ("abc", "3", "abc"),
        ("ab", "3", "ab"),
        ("abcdef", "abc", "abcdef"),
        ("abcdef", "0", "abcdef"),
        ("abcdef", "-2", "abcdef"),
        ("abcdef", "4px", "abcd…"),
    ])
    def test_truncate(self, value, arg, expected):
        """Hard cut with an ellipsis only when something was cut"""
        assert filters_apply(value, [f"truncate:{arg}"]) == expected

    def test_truncate_without_argument(self):
        """No argument means no truncation"""
        assert filters_apply("abcdef", ["truncate"]) == "abcdef"

    def test_truncate_length_parsing(self):
        assert truncate_length("12") == 12
        assert truncate_length("2.5") == 2.5
        assert truncate_length("abc") is None
        assert truncate_length(None) is None


class TestPipeline:
    """Test composition and ordering"""

    def test_no_filters(self):
        """Without filters the stringified value is returned"""
        assert filters_apply("x") == "x"
        assert filters_apply("x", []) == "x"

    def test_unknown_filter_is_identity(self):
        """Unknown names never break a render"""
        assert filters_apply("x", ["bogus", "upper"]) == "X"

    def test_left_to_right(self):
        """Filters apply in the written order"""
        assert filters_apply("ab", ["truncate:1", "upper"]) == "A…"
        assert filters_apply("abcdef", ["upper", "truncate:3"]) == "ABC…"

    def test_order_matters(self):
        """Swapping filters changes the result"""
        assert filters_apply("abc", ["truncate:2", "quote"]) == "> ab…"
        assert filters_apply("abc", ["quote", "truncate:2"]) == "> …"

    def test_compiled_pipeline_is_reusable(self):
        pipeline = pipeline_compile(["lower", "quote"])
        assert pipeline("A") == "> a"
        assert pipeline("B") == "> b"


class TestStringify:
    """Test value conversion before filtering"""

    @pytest.mark.parametrize("value,expected", [
        (None, ""),
        ("", ""),
        (True, "true"),
        (False, "false"),
        (3, "3"),
        (3.0, "3"),
        (2.5, "2.5"),
        (["a", "b"], "a, b"),
        (("a",), "a"),
    ])
    def test_stringify(self, value, expected):
        assert value_stringify(value) == expected

    def test_none_with_filters(self):
        """None is stringified to "" before the filters run"""
        assert filters_apply(None, ["upper"]) == ""
        assert filters_apply(None, ["quote"]) == ">"


class TestPipelineCache:
    """Test reuse of compiled pipelines"""

    def test_second_call_hits_cache(self):
        """Identical filter lists reuse the compiled pipeline"""
        cache = CountingCache()
        assert filters_apply("a", ["upper"], cache=cache) == "A"
        assert filters_apply("b", ["upper"], cache=cache) == "B"
        assert cache.sets == 1
        assert cache.hits == 1
        assert "upper" in cache.store

    def test_key_is_joined_specs(self):
        cache = CountingCache()
        filters_apply("a", ["upper", "truncate:3"], cache=cache)
        assert list(cache.store) == ["upper|truncate:3"]

    def test_different_lists_do_not_collide(self):
        cache = CountingCache()
        filters_apply("a", ["upper"], cache=cache)
        filters_apply("A", ["lower"], cache=cache)
        assert cache.sets == 2
        assert cache.hits == 0

    def test_no_cache_without_filters(self):
        """Unfiltered values never touch the cache"""
        cache = CountingCache()
        filters_apply("a", None, cache=cache)
        assert cache.misses == 0 and cache.sets == 0


class TestLruCache:
    """Test the bundled LRU cache"""

    def test_get_set(self):
        cache = LruCache(max_size=2)
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.get("b") is None
        assert (cache.hits, cache.misses) == (1, 1)

    def test_evicts_least_recently_used(self):
        cache = LruCache(max_size=2)
        cache.set("a", 1).set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert len(cache) == 2

    def test_ttl_expiry(self, monkeypatch):
        now = [100.0]
        monkeypatch.setattr(cache_module.time, "monotonic", lambda: now[0])
        cache = LruCache(max_size=4, ttl=10)
        cache.set("a", 1)
        now[0] = 105.0
        assert cache.get("a") == 1
        now[0] = 111.0
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_delete_and_clear(self):
        cache = LruCache(max_size=4)
        cache.set("a", 1).set("b", 2)
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.get("b")
        cache.clear()
        assert len(cache) == 0
        assert cache.hits == 0

    def test_usable_as_pipeline_cache(self):
        cache = LruCache(max_size=4)
        filters_apply("a", ["upper"], cache=cache)
        filters_apply("a", ["upper"], cache=cache)
        assert cache.hits == 1
        assert "upper" in cache
