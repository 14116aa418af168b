"""Tests for quote provenance checks against the source conversation."""
import copy

import pytest

from chat_insights.services.quote_validator import quote_in_conversation, validate_quotes

SOURCE = "I really need you to listen to me tonight"


class TestQuoteInConversation:
    def test_exact_substring_is_case_insensitive(self):
        assert quote_in_conversation("NEED YOU TO LISTEN", SOURCE.lower())

    def test_close_paraphrase_passes_word_overlap(self):
        # 5 of 6 significant words present
        assert quote_in_conversation("you really need to listen tonight please", SOURCE.lower())

    def test_fabricated_quote_rejected(self):
        assert not quote_in_conversation("please stop shouting at everyone tonight", SOURCE.lower())

    def test_trailing_punctuation_ignored(self):
        assert quote_in_conversation("I never said that!", "alex: i never said that")
        assert quote_in_conversation("“Really” need you, to listen...", SOURCE.lower())

    def test_threshold_is_tunable(self):
        quote = "you really need to listen tonight please"
        assert not quote_in_conversation(quote, SOURCE.lower(), threshold=0.9)

    @pytest.mark.parametrize("quote", ["", "   ", None, 42, "a to"])
    def test_unusable_quotes_rejected(self, quote):
        assert not quote_in_conversation(quote, SOURCE.lower())


class TestValidateQuotes:
    def test_keeps_real_and_drops_fabricated_key_quotes(self, sample_analysis, conversation):
        sample_analysis["keyQuotes"].append(
            {"speaker": "Jamie", "quote": "I have never cared about your feelings", "analysis": "made up"}
        )
        result = validate_quotes(sample_analysis, conversation)

        quotes = [q["quote"] for q in result["keyQuotes"]]
        assert len(quotes) == 4
        assert "I have never cared about your feelings" not in quotes

    def test_all_fabricated_removes_key(self, conversation):
        analysis = {
            "keyQuotes": [
                {"speaker": "Alex", "quote": "Pineapples belong on pizza"},
                {"speaker": "Jamie", "quote": "Quantum bicycles everywhere"},
            ]
        }
        validate_quotes(analysis, conversation)
        assert "keyQuotes" not in analysis

    def test_red_flag_examples_filtered(self, conversation):
        analysis = {
            "redFlags": [
                {
                    "type": "Gaslighting",
                    "description": "d",
                    "severity": 3,
                    "examples": [
                        {"text": "That's not what happened", "from": "Jamie"},
                        {"text": "You are imagining everything again", "from": "Jamie"},
                    ],
                },
                {
                    "type": "Contempt",
                    "description": "d",
                    "severity": 2,
                    "examples": [{"text": "Completely invented sentence here", "from": "Alex"}],
                },
            ]
        }
        validate_quotes(analysis, conversation)

        first, second = analysis["redFlags"]
        assert first["examples"] == [{"text": "That's not what happened", "from": "Jamie"}]
        assert "examples" not in second
        # the flag itself survives without evidence
        assert second["type"] == "Contempt"

    def test_quote_text_is_never_rewritten(self, sample_analysis, conversation):
        before = copy.deepcopy(sample_analysis["keyQuotes"])
        validate_quotes(sample_analysis, conversation)
        assert sample_analysis["keyQuotes"] == before

    def test_every_surviving_quote_is_sound(self, sample_analysis, conversation):
        sample_analysis["keyQuotes"].extend(
            [
                {"speaker": "Alex", "quote": "You ALWAYS ruin every single weekend"},
                {"speaker": "Jamie", "quote": "stop this right now"},
            ]
        )
        validate_quotes(sample_analysis, conversation)

        source = conversation.lower()
        for item in sample_analysis["keyQuotes"]:
            quote = item["quote"].lower()
            words = [w for w in quote.split() if len(w) > 2]
            assert quote in source or sum(w in source for w in words) / len(words) >= 0.7

    def test_missing_fields_are_ignored(self, conversation):
        analysis = {"toneAnalysis": {"overallTone": "x"}}
        assert validate_quotes(analysis, conversation) == {"toneAnalysis": {"overallTone": "x"}}
