"""Pytest configuration and shared fixtures."""
import copy
import json

import pytest

CONVERSATION = (
    "10/1/2024, 09:15 - Alex: You never listen to me, it's always about you\n"
    "10/1/2024, 09:16 - Jamie: That's not what happened and you know it\n"
    "10/1/2024, 09:17 - Alex: I'm sorry, I just feel ignored sometimes\n"
    "10/1/2024, 09:18 - Jamie: You need to stop this right now and do what I say\n"
)

SAMPLE_ANALYSIS = {
    "toneAnalysis": {
        "overallTone": "Tense and accusatory",
        "emotionalState": [
            {"emotion": "frustration", "intensity": 0.8},
            {"emotion": "hurt", "intensity": 0.6},
        ],
        "participantTones": {"Alex": "hurt and critical", "Jamie": "dismissive"},
    },
    "communication": {
        "patterns": [
            "Alex uses absolute language. This escalates the conflict.",
            "Jamie denies Alex's account. Alex then backs down.",
            "Both avoid the underlying issue. Nothing gets resolved.",
            "Apologies are one-sided. Resentment builds.",
            "Demands replace requests. Tension rises.",
        ],
        "suggestions": ["Use I-statements instead of always/never"],
    },
    "healthScore": {"score": 35, "label": "Tension", "color": "yellow"},
    "keyQuotes": [
        {
            "speaker": "Alex",
            "quote": "You never listen to me, it's always about you",
            "analysis": "Criticism using absolute language and blame",
            "improvement": "I feel unheard when we talk about this",
        },
        {
            "speaker": "Jamie",
            "quote": "That's not what happened and you know it",
            "analysis": "Denies Alex's experience, a gaslighting pattern",
            "improvement": "I remember it differently, can we compare notes?",
        },
        {
            "speaker": "Alex",
            "quote": "I'm sorry, I just feel ignored sometimes",
            "analysis": "Apologizes and backs down to appease Jamie",
        },
        {
            "speaker": "Jamie",
            "quote": "You need to stop this right now and do what I say",
            "analysis": "Demands compliance and asserts control",
        },
    ],
    "redFlags": [
        {
            "type": "Gaslighting",
            "description": "Denying the other person's account of events",
            "severity": 4,
            "examples": [{"text": "That's not what happened", "from": "Jamie"}],
        },
        {
            "type": "Criticism",
            "description": "Uses always and never statements",
            "severity": 3,
            "impact": "Makes the other person defensive",
        },
    ],
    "highTensionFactors": ["Feeling unheard"],
    "participantConflictScores": {
        "Alex": {"score": 55, "label": "Reactive", "isEscalating": True},
        "Jamie": {"score": 40, "label": "Controlling", "isEscalating": False},
    },
    "tensionContributions": {"Alex": ["Absolute statements"], "Jamie": ["Denial"]},
    "tensionMeaning": "Unresolved feelings of being dismissed",
}


def text_block(text):
    """Provider content list with a single text block."""
    return [{"type": "text", "text": text}]


def fenced(data):
    return "```json\n" + json.dumps(data) + "\n```"


@pytest.fixture
def conversation():
    return CONVERSATION


@pytest.fixture
def sample_analysis():
    """A parsed and validated pro-level analysis."""
    return copy.deepcopy(SAMPLE_ANALYSIS)
