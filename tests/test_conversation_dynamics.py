"""Tests for dynamics derived from key quotes."""
import pytest

from chat_insights.services.conversation_dynamics import (
    behavior_patterns,
    dominance_analysis,
    evasion_tactics,
    power_shifts,
    timeline_position,
    usable_quotes,
)


def quote(speaker, text, analysis=""):
    return {"speaker": speaker, "quote": text, "analysis": analysis}


class TestUsableQuotes:
    def test_skips_incomplete_entries(self):
        analysis = {
            "keyQuotes": [
                quote("Alex", "hello"),
                {"quote": "no speaker"},
                {"speaker": "Jamie", "quote": 12},
                "junk",
            ]
        }
        assert usable_quotes(analysis) == [quote("Alex", "hello")]

    def test_missing_key_quotes(self):
        assert usable_quotes({}) == []
        assert usable_quotes({"keyQuotes": "nope"}) == []


class TestTimelinePosition:
    @pytest.mark.parametrize(
        "index,total,expected",
        [(0, 6, "Early"), (1, 6, "Early"), (2, 6, "Mid"), (3, 6, "Mid"), (4, 6, "Late"), (5, 6, "Late"), (0, 0, "Early")],
    )
    def test_thirds(self, index, total, expected):
        assert timeline_position(index, total) == expected


class TestBehaviorPatterns:
    def test_counts_and_orders_by_frequency(self):
        quotes = [
            quote("Alex", "Sorry about that", "apology"),
            quote("Alex", "It's your fault", "blame"),
            quote("Alex", "You always do this", "criticism again"),
            quote("Alex", "Fine, whatever", "accusing tone"),
        ]
        patterns = behavior_patterns(quotes)["Alex"]

        assert patterns[0]["category"] == "Criticism"
        assert patterns[0]["frequency"] == 3
        assert patterns[0]["examples"] == ["It's your fault", "You always do this"]
        assert patterns[1] == {"category": "Apology", "frequency": 1, "examples": ["Sorry about that"]}

    def test_no_matches(self):
        assert behavior_patterns([quote("Alex", "See you at six", "logistics")]) == {}


class TestDominanceAnalysis:
    def test_empty(self):
        assert dominance_analysis([]) is None

    def test_dominant_speaker(self):
        quotes = [
            quote("Alex", "one two three four five six seven eight nine ten", "interrupts Jamie"),
            quote("Alex", "more words here", "talks over everyone"),
            quote("Jamie", "ok"),
        ]
        result = dominance_analysis(quotes)

        assert result["participants"]["Alex"] == {
            "messageCount": 2,
            "wordCount": 13,
            "interruptions": 2,
            "score": 7.3,
        }
        assert result["participants"]["Jamie"]["score"] == 1.1
        assert result["dominantParticipant"] == "Alex"
        assert result["balance"] == "Alex dominates"
        assert result["imbalance"] == 0.85

    def test_balanced(self):
        quotes = [quote("Alex", "hi there"), quote("Jamie", "hello you")]
        result = dominance_analysis(quotes)
        assert result["dominantParticipant"] is None
        assert result["balance"] == "Balanced"
        assert result["imbalance"] == 0.0

    def test_single_speaker_dominates(self):
        assert dominance_analysis([quote("Alex", "hello")])["dominantParticipant"] == "Alex"


class TestEvasionTactics:
    def test_one_tactic_per_quote(self):
        quotes = [
            quote("Jamie", "Anyway, how was work?", "Changes the subject and avoids the question"),
            quote("Alex", "Maybe, we'll see", "Vague answer"),
            quote("Alex", "I love you", "affectionate"),
        ]
        assert evasion_tactics(quotes) == [
            {"participant": "Jamie", "tactic": "Topic Shifting", "example": "Anyway, how was work?"},
            {"participant": "Alex", "tactic": "Non-committal Response", "example": "Maybe, we'll see"},
        ]


class TestPowerShifts:
    def test_submission_then_dominance(self, sample_analysis):
        shifts = power_shifts(usable_quotes(sample_analysis))
        assert shifts == [
            {
                "from": "Alex",
                "to": "Jamie",
                "position": "Late",
                "trigger": "You need to stop this right now and do what I say",
            }
        ]

    def test_same_speaker_is_not_a_shift(self):
        quotes = [
            quote("Alex", "ok sorry", "apologizes"),
            quote("Alex", "do it now", "demands action"),
        ]
        assert power_shifts(quotes) == []
