"""
Compiler tests

Tests evaluation of token trees against template data.
"""

import threading

import pytest

from highlightdown.lib.cache import LruCache
from highlightdown.lib.compiler import (
    Compiler,
    compile,
    note_render,
    noteQuotingStyle_detect,
    value_isTruthy,
)
from highlightdown.models.annotations import TemplateData


class TestPlainRendering:
    """Test templates without or with simple tags"""

    @pytest.mark.parametrize("template", ["", "text", "a\nb", "} { }}"])
    def test_plain_template_unchanged(self, template):
        """Templates without tags render as themselves for any data"""
        render = compile(template)
        assert render({}) == template
        assert render({"highlight": "x"}) == template

    def test_variable_substitution(self):
        render = compile("p.{{pageno}}: {{highlight}}")
        assert render({"pageno": 3, "highlight": "Hi"}) == "p.3: Hi"

    def test_missing_variable_is_empty(self):
        assert compile("[{{nothing}}]")({}) == "[]"

    def test_filters_are_applied(self):
        assert compile("{{chapter|upper}}")({"chapter": "One"}) == "ONE"

    def test_template_data_record(self):
        """TemplateData fields are looked up by name"""
        render = compile("{{pageno}}|{{callout}}|{{unknown}}")
        assert render(TemplateData(pageno=5)) == "5|note|"

    def test_compiled_function_is_reusable(self):
        render = compile("{{highlight}}")
        assert render({"highlight": "a"}) == "a"
        assert render({"highlight": "b"}) == "b"


class TestConditionals:
    """Test {{#key}} blocks"""

    @pytest.mark.parametrize("value", [None, "", 0, 0.0, False, [], (), {}])
    def test_falsy_values_hide_block(self, value):
        assert compile("a{{#x}}b{{/x}}c")({"x": value}) == "ac"

    @pytest.mark.parametrize("value", ["x", " ", 1, -1, 0.5, True, [0], {"k": 0}])
    def test_truthy_values_show_block(self, value):
        assert compile("a{{#x}}b{{/x}}c")({"x": value}) == "abc"

    def test_missing_key_hides_block(self):
        assert compile("{{#note}}has note{{/note}}")({}) == ""

    def test_nested_blocks(self):
        render = compile("{{#a}}A{{#b}}B{{/b}}{{/a}}")
        assert render({"a": 1, "b": 1}) == "AB"
        assert render({"a": 1, "b": 0}) == "A"
        assert render({"a": 0, "b": 1}) == ""

    def test_if_form(self):
        assert compile("{{#if note}}yes{{/if}}")({"note": "n"}) == "yes"


class TestTruthiness:
    """Test the single truthiness rule"""

    @pytest.mark.parametrize("value,expected", [
        (None, False),
        ("", False),
        (0, False),
        (0.0, False),
        (False, False),
        ([], False),
        ({}, False),
        ("0", True),
        ("false", True),
        (True, True),
        (object(), True),
    ])
    def test_value_isTruthy(self, value, expected):
        assert value_isTruthy(value) is expected


class TestNoteQuoting:
    """Test note quoting detection and rendering"""

    @pytest.mark.parametrize("template,style", [
        ("{{note}}", "auto"),
        ("> {{note}}", "manual"),
        ("  >{{note|upper}}", "manual"),
        ("> [!quote]\n{{note}}", "auto"),
        ("{{#note}}\n> {{note}}\n{{/note}}", "manual"),
        ("> {{notes}}", "auto"),
    ])
    def test_detection(self, template, style):
        assert noteQuotingStyle_detect(template) == style

    def test_auto_quotes_every_line(self):
        assert compile("{{note}}")({"note": "a\nb"}) == "> a\n> b"

    def test_manual_leaves_note_alone(self):
        assert compile("> {{note}}")({"note": "a\nb"}) == "> a\nb"

    def test_empty_note_renders_empty(self):
        assert compile("{{note}}")({"note": ""}) == ""
        assert compile("{{note}}")({}) == ""
        assert note_render(None, "auto") == ""

    def test_quoting_runs_before_filters(self):
        assert compile("{{note|upper}}")({"note": "a"}) == "> A"

    def test_block_on_note_uses_raw_value(self):
        """The block tests the note itself, not its quoted form"""
        assert compile("{{#note}}x{{/note}}")({"note": ""}) == ""


class TestCompilerObject:
    """Test the Compiler class directly"""

    def test_tokens_and_anomalies(self):
        compiler = Compiler("{{highlight}}{{/x}}")
        assert len(compiler.tokens) == 2
        assert len(compiler.anomalies) == 1

    def test_pipeline_cache_is_used(self):
        """Renders share the injected pipeline cache"""
        cache = LruCache(max_size=8)
        render = compile("{{highlight|upper}} {{chapter|upper}}", cache=cache)
        assert render({"highlight": "a", "chapter": "b"}) == "A B"
        assert len(cache) == 1
        assert cache.hits == 1


class TestConcurrentRendering:
    """Test one compiled template rendered from several threads"""

    TEMPLATE = (
        "{{highlight|upper}} {{highlight|truncate:3}} {{highlight|lower|quote}}\n"
        "{{#note}}{{note|escape}}{{/note}} {{chapter|stripHTML|upper}} "
        "{{chapter|truncate:4|escapeHtml}} {{pageno}}"
    )

    def records(self):
        return [
            {
                "highlight": f"Text <{i}> *{i}*",
                "note": f"note_{i}" if i % 2 else "",
                "chapter": f"<b>Chapter {i}</b>",
                "pageno": i,
            }
            for i in range(24)
        ]

    def test_shared_small_cache(self):
        """A two-entry pipeline cache evicting constantly still gives identical output"""
        records = self.records()
        expected = [compile(self.TEMPLATE)(data) for data in records]

        render = compile(self.TEMPLATE, cache=LruCache(max_size=2))
        results = {}
        errors = []

        def worker(worker_id):
            try:
                for _ in range(20):
                    for index, data in enumerate(records):
                        out = render(data)
                        if out != expected[index]:
                            results[(worker_id, index)] = out
            except Exception as e:  # surfaced through the assertion below
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert results == {}
