"""
Tokenizer recovery tests

Malformed syntax never raises; it degrades to literal text and is recorded
as an anomaly.
"""

import pytest

from highlightdown.lib.tokenizer import Tokenizer, tokenize
from highlightdown.models.tokens import AnomalyKind, CondToken, TextToken, VarToken


def anomalies_of(template: str):
    tokenizer = Tokenizer(template)
    tokens = tokenizer.tokenize()
    return tokens, [a.kind for a in tokenizer.anomalies]


class TestUnterminatedTags:
    """Test {{ without }}"""

    def test_rest_is_literal(self):
        """Everything from the unterminated {{ is text"""
        tokens, kinds = anomalies_of("a {{b")
        assert tokens == [TextToken("a "), TextToken("{{b")]
        assert kinds == [AnomalyKind.UNTERMINATED_TAG]

    def test_earlier_tags_survive(self):
        """Tags before the unterminated one are still parsed"""
        tokens = tokenize("{{pageno}} {{oops")
        assert tokens == [VarToken("pageno"), TextToken(" "), TextToken("{{oops")]


class TestMalformedTags:
    """Test tags that are not variables or blocks"""

    @pytest.mark.parametrize("tag", [
        "{{not a key}}",
        "{{}}",
        "{{na-me}}",
    ])
    def test_malformed_tag_is_literal(self, tag):
        """Bad keys keep their delimiters as text"""
        tokens, kinds = anomalies_of(f"x{tag}y")
        assert tokens == [TextToken("x"), TextToken(tag), TextToken("y")]
        assert kinds == [AnomalyKind.MALFORMED_TAG]

    def test_empty_block_key(self):
        """{{#}} is text, not a block"""
        tokens, kinds = anomalies_of("{{#}}x")
        assert tokens == [TextToken("{{#}}"), TextToken("x")]
        assert kinds == [AnomalyKind.EMPTY_BLOCK_KEY]


class TestStrayClosers:
    """Test closers that match no open block"""

    def test_closer_without_opener(self):
        """A closer at the root is text"""
        tokens, kinds = anomalies_of("a{{/note}}b")
        assert tokens == [TextToken("a"), TextToken("{{/note}}"), TextToken("b")]
        assert kinds == [AnomalyKind.STRAY_CLOSER]

    def test_mismatched_closer_leaves_block_open(self):
        """A wrong closer is text inside the still-open block"""
        tokens = tokenize("{{#a}}x{{/b}}y{{/a}}")
        assert tokens == [
            CondToken("a", (TextToken("x"), TextToken("{{/b}}"), TextToken("y"))),
        ]


class TestUnclosedBlocks:
    """Test blocks never closed before the end of input"""

    def test_unclosed_block_becomes_text(self):
        """The opener and everything after it are one text token"""
        tokens, kinds = anomalies_of("a{{#note}}b{{x}}")
        assert tokens == [TextToken("a"), TextToken("{{#note}}b{{x}}")]
        assert AnomalyKind.UNCLOSED_BLOCK in kinds

    def test_outermost_unclosed_block_wins(self):
        """Nested unclosed blocks collapse from the outermost opener"""
        template = "{{pageno}}{{#a}}{{#b}}x{{/a}}"
        tokens = tokenize(template)
        assert tokens == [VarToken("pageno"), TextToken("{{#a}}{{#b}}x{{/a}}")]

    def test_closed_block_before_unclosed_survives(self):
        """Completed siblings before the unclosed opener are kept"""
        tokens = tokenize("{{#a}}1{{/a}}{{#b}}2")
        assert tokens == [CondToken("a", (TextToken("1"),)), TextToken("{{#b}}2")]

    def test_anomaly_offsets(self):
        """Anomalies point at the offending tag"""
        tokenizer = Tokenizer("abc{{/x}}")
        tokenizer.tokenize()
        assert tokenizer.anomalies[0].offset == 3
        assert tokenizer.anomalies[0].raw == "{{/x}}"
