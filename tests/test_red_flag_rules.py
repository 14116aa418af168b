from chat_insights.services.red_flag_rules import (
    DEFAULT_IMPACT,
    DEFAULT_PROGRESSION,
    IMPACT_TEMPLATES,
    PROGRESSION_TEMPLATES,
    evidence_phrase,
    flag_keywords,
    lookup_template,
    render,
    shorten_quote,
)


class TestTemplates:
    def test_lookup_is_substring_match(self):
        template = lookup_template(IMPACT_TEMPLATES, "Subtle Gaslighting", DEFAULT_IMPACT)
        assert template.startswith("{participant} undermines confidence")

    def test_first_keyword_in_table_order_wins(self):
        template = lookup_template(IMPACT_TEMPLATES, "Contemptuous criticism", DEFAULT_IMPACT)
        assert "targets character" in template

    def test_unknown_type_uses_default(self):
        assert lookup_template(PROGRESSION_TEMPLATES, "Jealousy", DEFAULT_PROGRESSION) == DEFAULT_PROGRESSION
        assert lookup_template(IMPACT_TEMPLATES, None, DEFAULT_IMPACT) == DEFAULT_IMPACT

    def test_render_with_and_without_evidence(self):
        template = "{participant} withdraws{evidence}."
        assert render(template, "Alex", None) == "Alex withdraws."
        assert render(template, "Alex", "Whatever") == 'Alex withdraws (as in "Whatever").'

    def test_progression_templates_have_no_placeholders(self):
        for _, template in PROGRESSION_TEMPLATES:
            assert render(template, "Alex", "quote") == template


class TestQuoteHelpers:
    def test_long_quotes_shortened(self):
        long_quote = "x" * 41
        assert shorten_quote(long_quote) == "x" * 37 + "..."
        assert len(shorten_quote(long_quote)) == 40

    def test_short_quotes_untouched(self):
        assert shorten_quote("x" * 40) == "x" * 40

    def test_empty_evidence(self):
        assert evidence_phrase("") == ""
        assert evidence_phrase(None) == ""


class TestFlagKeywords:
    def test_families_combined(self):
        words = flag_keywords("Manipulation and Gaslighting")
        assert "guilt" in words
        assert "gaslight" in words

    def test_unknown_family(self):
        assert flag_keywords("Jealousy") == ()
        assert flag_keywords("") == ()
