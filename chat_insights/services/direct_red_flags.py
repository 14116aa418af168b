"""
Red flags read straight off the transcript text.

A fixed table of phrase patterns backs up the model: each flag type is
reported at most once, for the first message that matches it, with that
message as its example. The model's own flags always win on a type
collision. A conversation the model scored as healthy carries no red flags
at all, whatever either source found.
"""
import logging
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Pattern, Tuple

from .chat_parser import filter_noise_messages
from .whatsapp_parser import parse_whatsapp_txt

logger = logging.getLogger(__name__)

# Health scores at or above this mean red flags are dropped, not added
HEALTHY_SCORE_THRESHOLD = 85

# Table severities are on a 1-10 scale and rescaled to the tier's range
TABLE_SEVERITY_MAX = 10

_APOS = "['’]"


@dataclass(frozen=True)
class DirectRedFlagRule:
    type: str
    description: str
    severity: int
    pattern: Pattern[str]


def _rule(flag_type: str, description: str, severity: int, pattern: str) -> DirectRedFlagRule:
    return DirectRedFlagRule(flag_type, description, severity, re.compile(pattern, re.IGNORECASE))


DIRECT_RED_FLAG_RULES: Tuple[DirectRedFlagRule, ...] = (
    _rule(
        "Emotional Manipulation",
        "Using guilt to control or manipulate the other person",
        7,
        rf"shouldn{_APOS}t have to|too busy for me|make me feel|always .* for you|guess you{_APOS}re too",
    ),
    _rule(
        "Stonewalling",
        "Refusing to communicate or engage in discussion",
        6,
        rf"not talking|done talking|\bwhatever\b|forget it|not discussing this|don{_APOS}t want to talk",
    ),
    _rule(
        "Blame Shifting",
        "Avoiding responsibility by blaming the other person",
        7,
        r"blame me|always my fault|make me the problem|always my problem",
    ),
    _rule(
        "All-or-Nothing Thinking",
        "Using absolutes to exaggerate situations",
        5,
        r"\b(?:always|never|nothing ever|everything is)\b",
    ),
    _rule(
        "Affection Manipulation",
        "Manipulating through withdrawal or excessive affection claims",
        6,
        r"care more than you|care about you|love you more",
    ),
    _rule(
        "Gaslighting",
        "Making someone question their own reality or experiences",
        8,
        rf"that{_APOS}s not true|didn{_APOS}t happen|making things up|imagining things|being dramatic",
    ),
)


def _scale_severity(severity: int, severity_range: Tuple[int, int]) -> int:
    low, high = severity_range
    return max(low, min(high, math.ceil(severity * high / TABLE_SEVERITY_MAX)))


def _speaker_lines(conversation_text: str) -> List[Tuple[str, str]]:
    """(speaker, message) pairs, from export headers when present, else ``Name: text`` lines."""
    messages = filter_noise_messages(parse_whatsapp_txt(conversation_text))
    if messages:
        return [(m.from_name, m.text) for m in messages]

    lines = []
    for line in conversation_text.splitlines():
        speaker, sep, message = line.partition(":")
        if sep and speaker.strip() and message.strip():
            lines.append((speaker.strip(), message.strip()))
    return lines


def detect_direct_red_flags(
    conversation_text: str,
    severity_range: Tuple[int, int] = (1, 5),
) -> List[Dict[str, Any]]:
    """One flag per matched rule, attributed to the speaker of the first matching message."""
    if not conversation_text:
        return []

    flags: List[Dict[str, Any]] = []
    seen = set()
    for speaker, message in _speaker_lines(conversation_text):
        for rule in DIRECT_RED_FLAG_RULES:
            if rule.type in seen or not rule.pattern.search(message):
                continue
            seen.add(rule.type)
            flags.append(
                {
                    "type": rule.type,
                    "description": rule.description,
                    "severity": _scale_severity(rule.severity, severity_range),
                    "participant": speaker,
                    "examples": [{"text": message, "from": speaker}],
                }
            )
    return flags


def merge_red_flags(
    flags: List[Dict[str, Any]], extra: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """``flags`` followed by each flag of ``extra`` whose type is not already present."""
    merged = list(flags)
    types = {str(flag.get("type", "")).casefold() for flag in merged}
    for flag in extra:
        key = flag["type"].casefold()
        if key not in types:
            merged.append(flag)
            types.add(key)
    return merged


def apply_direct_red_flags(
    analysis: Dict[str, Any],
    conversation_text: str,
    severity_range: Tuple[int, int] = (1, 5),
) -> Dict[str, Any]:
    """
    Add pattern-detected red flags to ``analysis`` in place and return it.

    When the analysis health score is at or above the healthy threshold,
    any red flags are removed instead.
    """
    score = (analysis.get("healthScore") or {}).get("score")
    if score is not None and score >= HEALTHY_SCORE_THRESHOLD:
        if analysis.pop("redFlags", None):
            logger.info("Removed red flags from a conversation scored %s", score)
        return analysis

    direct = detect_direct_red_flags(conversation_text, severity_range)
    if not direct:
        return analysis

    merged = merge_red_flags(analysis.get("redFlags") or [], direct)
    added = len(merged) - len(analysis.get("redFlags") or [])
    if added:
        logger.info("Added %d red flags detected from text patterns", added)
    analysis["redFlags"] = merged
    return analysis
