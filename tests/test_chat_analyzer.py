"""Tests for the end-to-end analysis pipeline with a mocked provider."""
import copy
from unittest.mock import patch

import pytest

from chat_insights.config import settings
from chat_insights.core.exceptions import EmptyResponseError, ProviderBusyError, UnexpectedFormatError
from chat_insights.services.chat_analyzer import (
    analyze_chat,
    analyze_message,
    de_escalate_message,
    recover_analysis,
)
from conftest import SAMPLE_ANALYSIS, fenced, text_block


@pytest.fixture
def mock_llm():
    with patch("chat_insights.services.chat_analyzer.llm_client") as client:
        yield client


class TestRecoverAnalysis:
    def test_json_stage(self):
        data, stage = recover_analysis('```json\n{"x": 1}\n```', "Alex", "Jamie")
        assert stage == "json"
        assert data == {"x": 1}

    def test_raw_fields_stage(self):
        data, stage = recover_analysis("overallTone: nope, score: 80", "Alex", "Jamie")
        assert stage == "raw_fields"
        assert data["healthScore"]["score"] == 80


class TestAnalyzeChat:
    def test_pro_analysis(self, mock_llm, conversation):
        mock_llm.complete.return_value = text_block(fenced(SAMPLE_ANALYSIS))

        result = analyze_chat(conversation, "Alex", "Jamie", tier="pro")

        assert result["healthScore"] == {"score": 35, "label": "Tension", "color": "yellow"}
        assert len(result["keyQuotes"]) == 4
        assert [flag["participant"] for flag in result["redFlags"]] == ["Jamie", "Alex", "Alex"]
        # the third flag comes from phrase patterns in the transcript
        assert result["redFlags"][2]["type"] == "All-or-Nothing Thinking"
        assert "dominanceAnalysis" in result

    def test_free_analysis(self, mock_llm, conversation):
        mock_llm.complete.return_value = text_block(fenced(SAMPLE_ANALYSIS))

        result = analyze_chat(conversation, "Alex", "Jamie")

        assert "redFlags" not in result
        assert "participantTones" not in result["toneAnalysis"]
        assert len(result["keyQuotes"]) == 2

    def test_healthy_conversation_has_no_red_flags(self, mock_llm, conversation):
        answer = copy.deepcopy(SAMPLE_ANALYSIS)
        answer["healthScore"] = {"score": 90}
        mock_llm.complete.return_value = text_block(fenced(answer))

        result = analyze_chat(conversation, "Alex", "Jamie", tier="pro")

        assert "redFlags" not in result
        assert result["healthScore"]["label"] == "Healthy"

    def test_pattern_flags_added_when_model_reports_none(self, mock_llm):
        answer = copy.deepcopy(SAMPLE_ANALYSIS)
        del answer["redFlags"]
        mock_llm.complete.return_value = text_block(fenced(answer))
        text = "Sam: Whatever, forget it\nRiley: That's not true and you know it\n"

        result = analyze_chat(text, "Sam", "Riley", tier="personal")

        assert [(f["type"], f["participant"]) for f in result["redFlags"]] == [
            ("Stonewalling", "Sam"),
            ("Gaslighting", "Riley"),
        ]
        assert result["redFlags"][0]["examples"] == [{"text": "Whatever, forget it", "from": "Sam"}]

    def test_fabricated_quotes_removed(self, mock_llm, conversation):
        answer = copy.deepcopy(SAMPLE_ANALYSIS)
        answer["keyQuotes"].append(
            {"speaker": "Jamie", "quote": "Pineapples belong on pizza", "analysis": "made up"}
        )
        mock_llm.complete.return_value = text_block(fenced(answer))

        result = analyze_chat(conversation, "Alex", "Jamie", tier="personal")

        assert "Pineapples belong on pizza" not in [q["quote"] for q in result["keyQuotes"]]

    def test_truncated_json_still_parses(self, mock_llm, conversation):
        answer = fenced(SAMPLE_ANALYSIS)
        cut = answer[: answer.index('"keyQuotes"')].rstrip().rstrip(",")
        mock_llm.complete.return_value = text_block(cut)

        result = analyze_chat(conversation, "Alex", "Jamie", tier="free")

        assert result["toneAnalysis"]["overallTone"] == "Tense and accusatory"
        assert result["healthScore"]["score"] == 35

    def test_unparseable_answer_degrades_to_raw_fields(self, mock_llm, conversation):
        mock_llm.complete.return_value = text_block("Sorry, I had trouble. score: 42")

        result = analyze_chat(conversation, "Alex", "Jamie", tier="pro")

        assert result["healthScore"] == {"score": 42, "label": "Tension", "color": "yellow"}
        assert result["toneAnalysis"]["participantTones"] == {
            "Alex": "Not analyzed",
            "Jamie": "Not analyzed",
        }

    def test_empty_response_raises(self, mock_llm, conversation):
        mock_llm.complete.return_value = []
        with pytest.raises(EmptyResponseError):
            analyze_chat(conversation, "Alex", "Jamie")

    def test_non_text_block_raises(self, mock_llm, conversation):
        mock_llm.complete.return_value = [{"type": "tool_use", "input": {}}]
        with pytest.raises(UnexpectedFormatError):
            analyze_chat(conversation, "Alex", "Jamie")

    def test_provider_errors_propagate(self, mock_llm, conversation):
        mock_llm.complete.side_effect = ProviderBusyError("busy", provider="anthropic")
        with pytest.raises(ProviderBusyError):
            analyze_chat(conversation, "Alex", "Jamie")

    def test_prompt_truncated_but_quotes_checked_in_full(self, mock_llm, conversation, monkeypatch):
        monkeypatch.setattr(settings, "llm_max_chars", 60)
        mock_llm.complete.return_value = text_block(fenced(SAMPLE_ANALYSIS))

        result = analyze_chat(conversation, "Alex", "Jamie", tier="pro")

        user_prompt = mock_llm.complete.call_args[0][1]
        assert user_prompt.endswith(conversation[:60])
        assert "do what I say" not in user_prompt
        # the last quote lies beyond the prompt cut but is still in the transcript
        assert len(result["keyQuotes"]) == 4


class TestAnalyzeMessage:
    ANSWER = '{"tone": "Frustrated", "intent": ["Vent"], "suggestedReply": "I hear you"}'

    def test_free_fields(self, mock_llm):
        mock_llm.complete.return_value = text_block(self.ANSWER)
        assert analyze_message("Why do you never call?", "Alex") == {
            "tone": "Frustrated",
            "intent": ["Vent"],
        }

    def test_personal_fields(self, mock_llm):
        mock_llm.complete.return_value = text_block(self.ANSWER)
        result = analyze_message("Why do you never call?", "Alex", tier="personal")
        assert result["suggestedReply"] == "I hear you"

    def test_fallback_on_garbage(self, mock_llm):
        mock_llm.complete.return_value = text_block("no idea")
        assert analyze_message("hi", "Alex") == {
            "tone": "Unable to analyze",
            "intent": ["Unable to determine"],
        }


class TestDeEscalate:
    def test_original_always_echoed(self, mock_llm):
        mock_llm.complete.return_value = text_block(
            '{"original": "something else", "rewritten": "Can we talk?", "explanation": "Softer"}'
        )
        result = de_escalate_message("You NEVER listen!!")
        assert result == {
            "original": "You NEVER listen!!",
            "rewritten": "Can we talk?",
            "explanation": "Softer",
        }

    def test_fallback_on_garbage(self, mock_llm):
        mock_llm.complete.return_value = text_block("I would rather not")
        result = de_escalate_message("You NEVER listen!!", tier="pro")
        assert result["original"] == "You NEVER listen!!"
        assert result["rewritten"]
        assert "longTermStrategy" not in result
