"""
Last-resort field recovery from model text that defeated the JSON parser.

Each field is pulled by its own regex; anything not found gets a
placeholder so the result always has the required ChatAnalysis shape.
"""
import logging
import re
from typing import Any, Dict, List

from .analysis_normalizer import (
    DEFAULT_HEALTH_SCORE,
    DEFAULT_OVERALL_TONE,
    DEFAULT_PATTERN,
    clamp_intensity,
    error_analysis,
    make_health_score,
)

logger = logging.getLogger(__name__)

OVERALL_TONE_RE = re.compile(r"overallTone[\"'\s:]+([^\"',}]+)")
EMOTION_PAIR_RE = re.compile(
    r"emotion[\"'\s:]+([^\"',}]+).*?intensity[\"'\s:]+([0-9.]+)"
)
PARTICIPANT_TONES_RE = re.compile(r"participantTones[\"'\s:]+\{([^}]+)\}")
HEALTH_SECTION_SCORE_RE = re.compile(r"healthScore[\"'\s:]+\{[^}]*?score[\"'\s:]+([0-9]+)")
SCORE_RE = re.compile(r"score[\"'\s:]+([0-9]+)")
PATTERNS_RE = re.compile(r"patterns[\"'\s:]+\[([\s\S]*?)\]")

UNCLEAR_TONE = "Unclear"
NOT_ANALYZED_TONE = "Not analyzed"


def _extract_overall_tone(raw: str) -> str:
    match = OVERALL_TONE_RE.search(raw)
    if match and match.group(1).strip():
        return match.group(1).strip()
    return DEFAULT_OVERALL_TONE


def _extract_emotions(raw: str) -> List[Dict[str, Any]]:
    emotions: List[Dict[str, Any]] = []
    for emotion, intensity in EMOTION_PAIR_RE.findall(raw):
        emotion = emotion.strip()
        if emotion:
            emotions.append({"emotion": emotion, "intensity": clamp_intensity(intensity)})
    return emotions or [{"emotion": "mixed", "intensity": 0.5}]


def _extract_participant_tones(raw: str, me: str, them: str) -> Dict[str, str]:
    match = PARTICIPANT_TONES_RE.search(raw)
    if not match:
        return {me: NOT_ANALYZED_TONE, them: NOT_ANALYZED_TONE}

    section = match.group(1)
    tones: Dict[str, str] = {}
    for name in (me, them):
        name_match = re.search(re.escape(name) + r"[\"'\s:]+([^\"',}]+)", section)
        if name_match and name_match.group(1).strip():
            tones[name] = name_match.group(1).strip()
        else:
            tones[name] = UNCLEAR_TONE
    return tones


def _extract_health_score(raw: str) -> Dict[str, Any]:
    match = HEALTH_SECTION_SCORE_RE.search(raw) or SCORE_RE.search(raw)
    score = int(match.group(1)) if match else DEFAULT_HEALTH_SCORE
    return make_health_score(score)


def _extract_patterns(raw: str) -> List[str]:
    match = PATTERNS_RE.search(raw)
    if not match:
        return [DEFAULT_PATTERN]

    patterns = [
        re.sub(r"[\"']", "", part).strip()
        for part in match.group(1).split(",")
    ]
    return [p for p in patterns if p] or [DEFAULT_PATTERN]


def extract_raw_analysis(raw: str, me: str, them: str) -> Dict[str, Any]:
    """
    Build a minimally viable ChatAnalysis from raw model text.

    Never raises: on any internal failure the fixed error-shaped analysis
    is returned instead.
    """
    logger.warning("Using raw field extraction fallback (%d chars)", len(raw or ""))
    try:
        raw = raw or ""
        return {
            "toneAnalysis": {
                "overallTone": _extract_overall_tone(raw),
                "emotionalState": _extract_emotions(raw),
                "participantTones": _extract_participant_tones(raw, me, them),
            },
            "communication": {"patterns": _extract_patterns(raw)},
            "healthScore": _extract_health_score(raw),
        }
    except Exception:
        logger.exception("Raw field extraction failed, returning error analysis")
        return error_analysis(me, them)
