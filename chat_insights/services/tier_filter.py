"""Tier-based filtering and enrichment of analysis results."""
import copy
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.tiers import (
    FULL_ENRICHMENT_TIERS,
    features_for,
    field_allowed,
    normalize_tier,
)
from .analysis_normalizer import DEFAULT_PATTERN
from .conversation_dynamics import (
    behavior_patterns,
    dominance_analysis,
    evasion_tactics,
    power_shifts,
    timeline_position,
    usable_quotes,
)
from .red_flag_rules import (
    ATTRIBUTION_KEYWORDS,
    BEHAVIORAL_PATTERN_TEMPLATES,
    DEFAULT_BEHAVIORAL_PATTERN,
    DEFAULT_IMPACT,
    DEFAULT_PROGRESSION,
    DEFAULT_RECOMMENDED_ACTION,
    IMPACT_TEMPLATES,
    PROGRESSION_TEMPLATES,
    RECOMMENDED_ACTION_TEMPLATES,
    contains_any,
    flag_keywords,
    lookup_template,
    render,
)

logger = logging.getLogger(__name__)

FREE_MAX_PATTERNS = 2
FREE_MAX_KEY_QUOTES = 2
MAX_SUPPORTING_QUOTES = 3
MIN_TYPE_WORD_LEN = 4

BOTH_PARTICIPANTS = "Both participants"

# Top-level fields copied verbatim when their feature flag is enabled
PASSTHROUGH_FIELDS = (
    "highTensionFactors",
    "participantConflictScores",
    "tensionContributions",
    "tensionMeaning",
    "dramaScore",
    "empatheticSummary",
    "participantAnalysis",
    "manipulationScores",
    "powerDynamics",
    "psychologicalPatterns",
    "historicalPatterns",
    "messageDominance",
)

# (flag field, template table, default template)
ENRICHMENT_FIELDS = (
    ("impact", IMPACT_TEMPLATES, DEFAULT_IMPACT),
    ("progression", PROGRESSION_TEMPLATES, DEFAULT_PROGRESSION),
    ("recommendedAction", RECOMMENDED_ACTION_TEMPLATES, DEFAULT_RECOMMENDED_ACTION),
    ("behavioralPattern", BEHAVIORAL_PATTERN_TEMPLATES, DEFAULT_BEHAVIORAL_PATTERN),
)

_MESSAGE_BASE = ("tone", "intent")
_MESSAGE_PERSONAL = _MESSAGE_BASE + ("suggestedReply",)
_MESSAGE_PRO = _MESSAGE_PERSONAL + ("potentialResponse", "possibleReword")

MESSAGE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "free": _MESSAGE_BASE,
    "personal": _MESSAGE_PERSONAL,
    "pro": _MESSAGE_PRO,
    "instant": _MESSAGE_PRO,
    "beta": _MESSAGE_PRO,
}

_DE_ESCALATE_BASE = ("original", "rewritten", "explanation")
_DE_ESCALATE_PERSONAL = _DE_ESCALATE_BASE + ("alternativeOptions",)
_DE_ESCALATE_PRO = _DE_ESCALATE_PERSONAL + ("additionalContextInsights", "longTermStrategy")

DE_ESCALATE_FIELDS: Dict[str, Tuple[str, ...]] = {
    "free": _DE_ESCALATE_BASE,
    "personal": _DE_ESCALATE_PERSONAL,
    "pro": _DE_ESCALATE_PRO,
    "instant": _DE_ESCALATE_PRO,
    "beta": _DE_ESCALATE_PRO,
}


def _first_sentence(pattern: str) -> str:
    return pattern.split(".")[0].strip()


def _truncate_patterns(patterns: List[str]) -> List[str]:
    """Free tier: at most two patterns, first sentence only."""
    shortened = [_first_sentence(p) for p in patterns[:FREE_MAX_PATTERNS]]
    return [p for p in shortened if p] or [DEFAULT_PATTERN]


def _participant_names(
    analysis: Dict[str, Any], me: Optional[str], them: Optional[str]
) -> List[str]:
    names = [n for n in (me, them) if n]
    if names:
        return names
    tones = analysis.get("toneAnalysis", {}).get("participantTones")
    if isinstance(tones, dict):
        return [str(name) for name in list(tones)[:2]]
    return []


def attribute_participant(
    flag: Dict[str, Any],
    names: Sequence[str],
    quotes: List[Dict[str, Any]],
) -> str:
    """
    Work out who a red flag belongs to.

    A participant named in the flag's type or description wins. Otherwise
    the speaker behind most key quotes whose analysis matches the flag's
    behavior family is used. With no evidence either way the flag is put on
    both participants.
    """
    flag_type = str(flag.get("type") or "").lower()
    flag_text = flag_type + " " + str(flag.get("description") or "").lower()

    named = [name for name in names if name.lower() in flag_text]
    if len(named) == 1:
        return named[0]
    if len(named) > 1:
        return BOTH_PARTICIPANTS

    keywords: Tuple[str, ...] = ()
    for family_keywords in ATTRIBUTION_KEYWORDS.values():
        if contains_any(flag_type, family_keywords):
            keywords += family_keywords
    if not keywords:
        return BOTH_PARTICIPANTS

    counts: Dict[str, int] = {}
    for quote in quotes:
        if contains_any(str(quote.get("analysis") or "").lower(), keywords):
            speaker = str(quote["speaker"])
            counts[speaker] = counts.get(speaker, 0) + 1
    if not counts:
        return BOTH_PARTICIPANTS

    ranked = sorted(counts.items(), key=lambda item: -item[1])
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return BOTH_PARTICIPANTS
    return ranked[0][0]


def _matching_quote_indexes(flag: Dict[str, Any], quotes: List[Dict[str, Any]]) -> List[int]:
    flag_type = str(flag.get("type") or "")
    keywords = flag_keywords(flag_type + " " + str(flag.get("description") or ""))
    keywords += tuple(
        word for word in flag_type.lower().split() if len(word) >= MIN_TYPE_WORD_LEN
    )
    if not keywords:
        return []

    matches = []
    for index, quote in enumerate(quotes):
        text = quote["quote"].lower() + " " + str(quote.get("analysis") or "").lower()
        if contains_any(text, keywords):
            matches.append(index)
    return matches


def enrich_red_flag(flag: Dict[str, Any], quotes: List[Dict[str, Any]]) -> None:
    """Fill missing narrative fields and attach supporting key quotes, in place."""
    participant = flag.get("participant") or BOTH_PARTICIPANTS
    matches = _matching_quote_indexes(flag, quotes)

    # Prefer a quote from the participant the flag is about
    own = [i for i in matches if quotes[i]["speaker"] == participant]
    primary_index = own[0] if own else (matches[0] if matches else None)
    primary_quote = quotes[primary_index]["quote"] if primary_index is not None else None

    for field, table, default in ENRICHMENT_FIELDS:
        if not flag.get(field):
            template = lookup_template(table, flag.get("type", ""), default)
            flag[field] = render(template, participant, primary_quote)

    if primary_index is None:
        return

    if "primaryQuote" not in flag:
        primary = quotes[primary_index]
        flag["primaryQuote"] = {"speaker": str(primary["speaker"]), "quote": primary["quote"]}
    if "supportingQuotes" not in flag:
        supporting = [
            {"speaker": str(quotes[i]["speaker"]), "quote": quotes[i]["quote"]}
            for i in matches
            if i != primary_index
        ][:MAX_SUPPORTING_QUOTES]
        if supporting:
            flag["supportingQuotes"] = supporting
    if "timelinePosition" not in flag:
        flag["timelinePosition"] = timeline_position(primary_index, len(quotes))


def _filter_red_flags(
    flags: List[Dict[str, Any]],
    tier: str,
    names: Sequence[str],
    quotes: List[Dict[str, Any]],
) -> List[Dict[str, Any]]:
    filtered = []
    for flag in flags:
        flag = copy.deepcopy(flag)
        if not flag.get("participant"):
            flag["participant"] = attribute_participant(flag, names, quotes)
        if tier in FULL_ENRICHMENT_TIERS:
            enrich_red_flag(flag, quotes)
        filtered.append(flag)
    return filtered


def _filter_key_quotes(quotes: List[Dict[str, Any]], tier: str) -> List[Dict[str, Any]]:
    if tier != "free":
        return copy.deepcopy(quotes)
    capped = []
    for quote in quotes[:FREE_MAX_KEY_QUOTES]:
        quote = copy.deepcopy(quote)
        quote.pop("improvement", None)
        capped.append(quote)
    return capped


def _build_communication(
    source: Dict[str, Any],
    tier: str,
    features: Tuple[str, ...],
    quotes: List[Dict[str, Any]],
) -> Dict[str, Any]:
    patterns = [str(p) for p in source.get("patterns") or []] or [DEFAULT_PATTERN]
    communication: Dict[str, Any] = {
        "patterns": _truncate_patterns(patterns) if tier == "free" else patterns
    }

    if field_allowed("suggestions", features) and source.get("suggestions"):
        communication["suggestions"] = copy.deepcopy(source["suggestions"])

    if field_allowed("dynamics", features):
        dynamics = source.get("dynamics")
        dynamics = copy.deepcopy(dynamics) if isinstance(dynamics, dict) else {}
        if tier in FULL_ENRICHMENT_TIERS and "patterns" not in dynamics:
            patterns_by_speaker = behavior_patterns(quotes)
            if patterns_by_speaker:
                dynamics["patterns"] = patterns_by_speaker
        if dynamics:
            communication["dynamics"] = dynamics

    return communication


def _add_derived_dynamics(
    result: Dict[str, Any],
    analysis: Dict[str, Any],
    features: Tuple[str, ...],
    quotes: List[Dict[str, Any]],
) -> None:
    derived = (
        ("dominanceAnalysis", dominance_analysis),
        ("evasionTactics", evasion_tactics),
        ("powerShifts", power_shifts),
    )
    for field, derive in derived:
        if not field_allowed(field, features):
            continue
        value = analysis.get(field)
        value = copy.deepcopy(value) if value else derive(quotes)
        if value:
            result[field] = value


def filter_by_tier(
    analysis: Dict[str, Any],
    tier: str,
    me: Optional[str] = None,
    them: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Build the response object a ``tier`` subscriber is entitled to.

    Returns a new dict; ``analysis`` is not modified. Fields whose feature
    flag the tier lacks are left out entirely. Higher tiers get red flags
    attributed to a participant and, from pro up, narrative enrichment and
    conversation dynamics derived from the key quotes.
    """
    tier = normalize_tier(tier)
    features = features_for(tier)
    quotes = usable_quotes(analysis)
    names = _participant_names(analysis, me, them)

    tone_source = analysis.get("toneAnalysis") or {}
    tone: Dict[str, Any] = {
        "overallTone": tone_source.get("overallTone"),
        "emotionalState": copy.deepcopy(tone_source.get("emotionalState") or []),
    }
    if field_allowed("participantTones", features) and tone_source.get("participantTones"):
        tone["participantTones"] = copy.deepcopy(tone_source["participantTones"])

    result: Dict[str, Any] = {
        "toneAnalysis": tone,
        "communication": _build_communication(
            analysis.get("communication") or {}, tier, features, quotes
        ),
    }

    if field_allowed("healthScore", features) and analysis.get("healthScore"):
        result["healthScore"] = copy.deepcopy(analysis["healthScore"])

    if field_allowed("keyQuotes", features) and analysis.get("keyQuotes"):
        result["keyQuotes"] = _filter_key_quotes(analysis["keyQuotes"], tier)

    if field_allowed("redFlags", features) and analysis.get("redFlags"):
        result["redFlags"] = _filter_red_flags(analysis["redFlags"], tier, names, quotes)

    for field in PASSTHROUGH_FIELDS:
        if field_allowed(field, features) and analysis.get(field) is not None:
            result[field] = copy.deepcopy(analysis[field])

    if tier in FULL_ENRICHMENT_TIERS:
        _add_derived_dynamics(result, analysis, features, quotes)

    logger.info("Filtered analysis for tier=%s: %s", tier, ", ".join(sorted(result)))
    return result


def _keep_fields(data: Dict[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
    return {key: copy.deepcopy(data[key]) for key in fields if data.get(key) is not None}


def filter_message_analysis(result: Dict[str, Any], tier: str) -> Dict[str, Any]:
    return _keep_fields(result, MESSAGE_FIELDS[normalize_tier(tier)])


def filter_de_escalation(result: Dict[str, Any], tier: str) -> Dict[str, Any]:
    return _keep_fields(result, DE_ESCALATE_FIELDS[normalize_tier(tier)])
