"""
Validator tests

Tests required variables, filter checks and syntax warnings.
"""

import pytest

from highlightdown.lib.tokenizer import tokenize
from highlightdown.lib.validator import (
    filters_extract,
    template_validate,
    variables_extract,
)


class TestRequiredVariables:
    """Test highlight and page requirements"""

    def test_pageno_only(self):
        """Missing highlight is an error, pageno is satisfied"""
        result = template_validate("{{pageno}}")
        assert result.isValid is False
        assert result.errors == ["Missing required variable: {{highlight}} or {{highlightPlain}}"]
        assert not any("pageno" in e for e in result.errors)

    def test_highlight_only(self):
        result = template_validate("{{highlight}}")
        assert result.errors == ["Missing required variable: {{pageno}}"]

    def test_both_missing(self):
        result = template_validate("nothing here")
        assert len(result.errors) == 2
        assert len(result.suggestions) == 2

    @pytest.mark.parametrize("template", [
        "{{highlight}} {{pageno}}",
        "{{highlightPlain|quote}} p.{{pageno}}",
        "{{#note}}{{highlight}}{{/note}}{{#pageno}}{{/pageno}}",
    ])
    def test_valid(self, template):
        result = template_validate(template)
        assert result.isValid
        assert result.errors == []
        assert result.suggestions == []


class TestFilterChecks:
    """Test filter findings"""

    def test_unknown_filter_is_error_and_warning(self):
        result = template_validate("{{highlight|bogus}} {{pageno}}")
        assert result.isValid is False
        assert result.errors == ["Unknown filter 'bogus'"]
        assert any("'bogus'" in w and "ignored" in w for w in result.warnings)

    def test_unknown_filter_inside_block(self):
        result = template_validate("{{highlight}}{{pageno}}{{#note}}{{note|nope}}{{/note}}")
        assert "Unknown filter 'nope'" in result.errors

    def test_non_numeric_truncate_is_warning(self):
        result = template_validate("{{highlight|truncate:abc}} {{pageno}}")
        assert result.isValid
        assert any("truncate:abc" in w for w in result.warnings)

    def test_missing_argument_is_warning(self):
        result = template_validate("{{highlight|truncate}} {{pageno}}")
        assert result.isValid
        assert any("expects an argument" in w for w in result.warnings)

    def test_numeric_truncate_is_clean(self):
        result = template_validate("{{highlight|truncate:80}} {{pageno}}")
        assert result.warnings == []


class TestWarnings:
    """Test warnings that never affect validity"""

    def test_syntax_anomaly(self):
        result = template_validate("{{highlight}} {{pageno}} {{/x}}")
        assert result.isValid
        assert any("Closing tag" in w for w in result.warnings)

    def test_unclosed_block_hides_variables(self):
        """Variables after an unclosed opener are only text"""
        result = template_validate("{{pageno}}{{#note}}{{highlight}}")
        assert result.isValid is False
        assert any("Unclosed block" in w for w in result.warnings)

    def test_unknown_variable(self):
        result = template_validate("{{highlight}} {{pageno}} {{title}}")
        assert result.isValid
        assert result.warnings == ["Unknown variable 'title' always renders empty"]


class TestExtraction:
    """Test variable and filter extraction"""

    def test_variables_include_block_keys(self):
        tokens = tokenize("{{#note}}{{highlight}}{{/note}}{{pageno}}")
        assert variables_extract(tokens) == {"note", "highlight", "pageno"}

    def test_filter_names_without_arguments(self):
        tokens = tokenize("{{a|truncate:5|upper}}{{#b}}{{b|dateFormat:YYYY}}{{/b}}")
        assert filters_extract(tokens) == {"truncate", "upper", "dateFormat"}
