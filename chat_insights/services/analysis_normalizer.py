"""Required-shape guarantees for a ChatAnalysis dict."""
import logging
import math
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

# (exclusive upper bound, label, color); scores at or above the last bound are Healthy
HEALTH_BANDS: Tuple[Tuple[int, str, str], ...] = (
    (30, "Conflict", "red"),
    (50, "Tension", "yellow"),
    (70, "Stable", "light-green"),
)
HEALTHY_BAND = ("Healthy", "green")

DEFAULT_OVERALL_TONE = "Analysis incomplete"
DEFAULT_PATTERN = "Analysis incomplete - communication patterns unclear"
DEFAULT_HEALTH_SCORE = 50

# Optional fields the response models type as text
RED_FLAG_TEXT_FIELDS = (
    "participant",
    "impact",
    "progression",
    "recommendedAction",
    "behavioralPattern",
    "timelinePosition",
)
KEY_QUOTE_TEXT_FIELDS = ("speaker", "analysis", "improvement")

# Optional top-level fields that are only usable with the right container type
OBJECT_FIELDS = ("participantConflictScores", "tensionContributions", "dominanceAnalysis")
LIST_FIELDS = ("evasionTactics", "powerShifts")

MESSAGE_TEXT_FIELDS = ("tone", "suggestedReply", "potentialResponse", "possibleReword")
MESSAGE_LIST_FIELDS = ("intent",)
DE_ESCALATE_TEXT_FIELDS = ("rewritten", "explanation", "longTermStrategy")
DE_ESCALATE_LIST_FIELDS = ("alternativeOptions", "additionalContextInsights")


def health_band(score: int) -> Tuple[str, str]:
    """Label and color for a 0-100 health score; lower scores get redder bands."""
    for upper, label, color in HEALTH_BANDS:
        if score < upper:
            return label, color
    return HEALTHY_BAND


def make_health_score(score: int) -> Dict[str, Any]:
    score = max(0, min(100, int(score)))
    label, color = health_band(score)
    return {"score": score, "label": label, "color": color}


def error_analysis(me: str, them: str) -> Dict[str, Any]:
    """Fixed analysis used when nothing at all could be recovered."""
    return {
        "toneAnalysis": {
            "overallTone": "Analysis error - please try again",
            "emotionalState": [{"emotion": "unknown", "intensity": 0.5}],
            "participantTones": {me: "unavailable", them: "unavailable"},
        },
        "communication": {"patterns": ["Analysis failed - please try again"]},
        "healthScore": make_health_score(DEFAULT_HEALTH_SCORE),
    }


def _to_float(value: Any) -> Optional[float]:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def clamp_intensity(value: Any) -> float:
    number = _to_float(value)
    if number is None:
        return 0.5
    return max(0.0, min(1.0, number))


def _normalize_emotions(raw: Any) -> List[Dict[str, Any]]:
    emotions: List[Dict[str, Any]] = []
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict) or not item.get("emotion"):
                continue
            emotions.append(
                {
                    "emotion": str(item["emotion"]),
                    "intensity": clamp_intensity(item.get("intensity")),
                }
            )
    return emotions or [{"emotion": "mixed", "intensity": 0.5}]


def _as_text(value: Any) -> Optional[str]:
    """A scalar, or a list of scalars joined with spaces; None for anything else."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, list):
        parts = [_as_text(item) for item in value]
        return " ".join(p for p in parts if p) or None
    return None


def _coerce_text_fields(item: Dict[str, Any], fields: Tuple[str, ...]) -> None:
    """Make each present field a string, in place; unrepresentable values are dropped."""
    for field in fields:
        if field not in item:
            continue
        text = _as_text(item[field])
        if text is None:
            del item[field]
        else:
            item[field] = text


def _drop_unless(item: Dict[str, Any], field: str, kind: type) -> None:
    if field in item and not isinstance(item[field], kind):
        logger.debug("Dropping %s of type %s", field, type(item[field]).__name__)
        del item[field]


def _normalize_patterns(raw: Any) -> List[str]:
    if isinstance(raw, str):
        # A single pattern sent as a bare string
        patterns = [raw] if raw.strip() else []
    elif isinstance(raw, list):
        patterns = [text for text in (_as_text(p) for p in raw) if text]
    else:
        patterns = []
    return patterns or [DEFAULT_PATTERN]


def _quote_ref(raw: Any) -> Optional[Dict[str, str]]:
    if not isinstance(raw, dict):
        return None
    speaker = _as_text(raw.get("speaker"))
    quote = raw.get("quote")
    if not speaker or not isinstance(quote, str):
        return None
    return {"speaker": speaker, "quote": quote}


def _normalize_examples(raw: List[Any]) -> List[Dict[str, Any]]:
    examples = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get("text"), str):
            continue
        example = dict(item)
        _coerce_text_fields(example, ("from",))
        examples.append(example)
    return examples


def _normalize_red_flags(raw: Any, severity_range: Tuple[int, int]) -> Optional[List[Dict[str, Any]]]:
    if not isinstance(raw, list):
        return None

    low, high = severity_range
    flags: List[Dict[str, Any]] = []
    for item in raw:
        if not isinstance(item, dict) or not item.get("type"):
            continue
        flag = dict(item)
        flag["type"] = str(flag["type"])
        flag["description"] = _as_text(flag.get("description")) or ""
        severity = _to_float(flag.get("severity"))
        flag["severity"] = low if severity is None else max(low, min(high, int(round(severity))))
        _coerce_text_fields(flag, RED_FLAG_TEXT_FIELDS)

        if isinstance(flag.get("examples"), list):
            flag["examples"] = _normalize_examples(flag["examples"])
        else:
            flag.pop("examples", None)

        if "primaryQuote" in flag:
            primary = _quote_ref(flag["primaryQuote"])
            if primary is None:
                del flag["primaryQuote"]
            else:
                flag["primaryQuote"] = primary
        if "supportingQuotes" in flag:
            supporting = flag["supportingQuotes"]
            refs = [_quote_ref(q) for q in supporting] if isinstance(supporting, list) else []
            refs = [ref for ref in refs if ref]
            if refs:
                flag["supportingQuotes"] = refs
            else:
                del flag["supportingQuotes"]

        flags.append(flag)
    return flags


def _normalize_key_quotes(raw: List[Any]) -> List[Dict[str, Any]]:
    quotes = []
    for item in raw:
        if not isinstance(item, dict) or not isinstance(item.get("quote"), str):
            continue
        quote = dict(item)
        _coerce_text_fields(quote, KEY_QUOTE_TEXT_FIELDS)
        quotes.append(quote)
    return quotes

def normalize_analysis(
    data: Any,
    me: str,
    them: str,
    severity_range: Tuple[int, int] = (1, 5),
) -> Dict[str, Any]:
    """
    Return ``data`` with every required field present and typed.

    Required fields missing from the model output get placeholders, the
    emotion intensities and health score are clamped, and the health label
    and color are re-derived from the score. Red-flag severity is clamped to
    ``severity_range``. Optional fields the model sent with the wrong type
    are coerced to text where that is lossless enough (a list of sentences
    becomes one string) and dropped otherwise.
    """
    if not isinstance(data, dict):
        logger.warning("Analysis is not an object (%s), using error shape", type(data).__name__)
        return error_analysis(me, them)

    result = dict(data)

    tone = result.get("toneAnalysis")
    tone = dict(tone) if isinstance(tone, dict) else {}
    tone["overallTone"] = _as_text(tone.get("overallTone")) or DEFAULT_OVERALL_TONE
    tone["emotionalState"] = _normalize_emotions(tone.get("emotionalState"))
    participant_tones = tone.get("participantTones")
    if isinstance(participant_tones, dict):
        tone["participantTones"] = {
            str(k): _as_text(v) or str(v) for k, v in participant_tones.items()
        }
    else:
        tone.pop("participantTones", None)
    result["toneAnalysis"] = tone

    communication = result.get("communication")
    communication = dict(communication) if isinstance(communication, dict) else {}
    communication["patterns"] = _normalize_patterns(communication.get("patterns"))
    _drop_unless(communication, "dynamics", dict)
    result["communication"] = communication

    health = result.get("healthScore")
    if isinstance(health, dict):
        score = _to_float(health.get("score"))
        result["healthScore"] = make_health_score(DEFAULT_HEALTH_SCORE if score is None else score)
    elif health is not None:
        result.pop("healthScore")

    if "redFlags" in result:
        flags = _normalize_red_flags(result["redFlags"], severity_range)
        if flags is None:
            result.pop("redFlags")
        else:
            result["redFlags"] = flags

    if "keyQuotes" in result:
        quotes = result["keyQuotes"]
        if isinstance(quotes, list):
            result["keyQuotes"] = _normalize_key_quotes(quotes)
        else:
            result.pop("keyQuotes")

    _coerce_text_fields(result, ("tensionMeaning",))
    for field in OBJECT_FIELDS:
        _drop_unless(result, field, dict)
    for field in LIST_FIELDS:
        _drop_unless(result, field, list)

    return result


def normalize_response_fields(
    result: Dict[str, Any],
    text_fields: Tuple[str, ...],
    list_fields: Tuple[str, ...] = (),
) -> Dict[str, Any]:
    """
    Type the fields of a message or de-escalation result.

    ``text_fields`` become strings and ``list_fields`` stay either a string
    or a list of strings; values that cannot be expressed that way are
    dropped. Returns a new dict.
    """
    result = dict(result)
    _coerce_text_fields(result, text_fields)
    for field in list_fields:
        value = result.get(field)
        if isinstance(value, list):
            result[field] = [text for text in (_as_text(v) for v in value) if text]
        elif field in result:
            _coerce_text_fields(result, (field,))
    return result
