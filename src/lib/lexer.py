"""
Custom Pygments lexer for highlight template syntax

Used by ``--printTemplate`` to show a template's source with its
structure visible.

Token types:
- Keyword: Block openers and closers ({{#note}}, {{#if note}}, {{/note}})
- Name.Variable: Variable keys ({{highlight}})
- Name.Function: Filter names (|stripHTML)
- Literal.String: Filter arguments (:80)
- Punctuation: {{ }} | : delimiters
- Name.Builtin: HTML tags
- Comment: HTML comments and KOHL markers
"""

from pygments.lexer import RegexLexer, bygroups
from pygments.token import (
    Text,
    Punctuation,
    Name,
    Keyword,
    Literal,
    Comment,
    Error,
    Generic,
)


class TemplateLexer(RegexLexer):
    """
    Lexer for {{mustache}}-style highlight templates

    Example:
        > [!{{callout}}] {{highlight|truncate:80}}

    Tokens:
        {{ → Punctuation
        callout → Name.Variable
        | → Punctuation
        truncate → Name.Function
        :80 → Punctuation, Literal.String
    """

    name = 'Highlight Template'
    aliases = ['highlightdown', 'hltemplate']
    filenames = []

    tokens = {
        'root': [
            # HTML comments (KOHL markers included)
            (r'<!--.*?-->', Comment),
            (r'%%.*?%%', Comment),

            # Block openers: {{#if key}} and {{#key}}
            (r'(\{\{)(\s*)(#)(if)(\s+)(\w+)(\s*)(\}\})',
             bygroups(Punctuation, Text, Keyword, Keyword, Text, Name.Variable, Text, Punctuation)),
            (r'(\{\{)(\s*)(#)(\w+)(\s*)(\}\})',
             bygroups(Punctuation, Text, Keyword, Name.Variable, Text, Punctuation)),

            # Block closers: {{/key}}
            (r'(\{\{)(\s*)(/)(\w+)(\s*)(\}\})',
             bygroups(Punctuation, Text, Keyword, Keyword, Text, Punctuation)),

            # Variables, with an optional filter pipeline
            (r'(\{\{)(\s*)(\w+)', bygroups(Punctuation, Text, Name.Variable), 'filters'),

            # Anything else between braces is rendered literally
            (r'\{\{', Error),

            # Markdown rules and headings
            (r'^\s*(-{3,}|_{3,}|\*{3,})\s*$', Generic.Strong),
            (r'^#{1,6} .*$', Generic.Heading),

            # HTML tags
            (r'<[^>]+>', Name.Builtin),

            (r'[^{<%#\-_*\n]+', Text),
            (r'\n', Text),
            (r'.', Text),
        ],

        'filters': [
            (r'\s+', Text),
            (r'(\|)(\s*)(\w+)', bygroups(Punctuation, Text, Name.Function)),
            (r'(:)([^|}]*)', bygroups(Punctuation, Literal.String)),
            (r'\}\}', Punctuation, '#pop'),
            # Unterminated tag: stop at the line end
            (r'\n', Text, '#pop'),
            (r'.', Error),
        ],
    }


def get_lexer() -> TemplateLexer:
    """
    Get the TemplateLexer instance

    Returns:
        TemplateLexer instance ready for use with Pygments
    """
    return TemplateLexer()
