"""
Keyword heuristics over validated key quotes.

Everything here is derived from ``keyQuotes`` entries (speaker, quote,
analysis) that already survived quote validation; nothing is invented
about the conversation beyond what those entries and the rule tables say.
"""
from typing import Any, Dict, List, Optional

from .red_flag_rules import (
    BEHAVIOR_CATEGORIES,
    DOMINANCE_IMBALANCE_THRESHOLD,
    DOMINANCE_KEYWORDS,
    EVASION_KEYWORDS,
    INTERRUPTION_KEYWORDS,
    SUBMISSION_KEYWORDS,
    contains_any,
)

MAX_PATTERN_EXAMPLES = 2


def usable_quotes(analysis: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Key quotes that carry a speaker and a quote string."""
    quotes = analysis.get("keyQuotes")
    if not isinstance(quotes, list):
        return []
    return [
        q for q in quotes
        if isinstance(q, dict) and isinstance(q.get("quote"), str) and q.get("speaker")
    ]


def _analysis_lower(quote: Dict[str, Any]) -> str:
    return str(quote.get("analysis") or "").lower()


def timeline_position(index: int, total: int) -> str:
    if total <= 0 or index < total / 3:
        return "Early"
    if index < 2 * total / 3:
        return "Mid"
    return "Late"


def behavior_patterns(quotes: List[Dict[str, Any]]) -> Dict[str, List[Dict[str, Any]]]:
    """Per participant, how often each behavior category shows up and where."""
    found: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for quote in quotes:
        speaker = str(quote["speaker"])
        text = quote["quote"].lower() + " " + _analysis_lower(quote)
        for category, keywords in BEHAVIOR_CATEGORIES.items():
            if not contains_any(text, keywords):
                continue
            entry = found.setdefault(speaker, {}).setdefault(
                category, {"category": category, "frequency": 0, "examples": []}
            )
            entry["frequency"] += 1
            if len(entry["examples"]) < MAX_PATTERN_EXAMPLES:
                entry["examples"].append(quote["quote"])

    return {
        speaker: sorted(categories.values(), key=lambda e: -e["frequency"])
        for speaker, categories in found.items()
    }


def dominance_analysis(quotes: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Who carries the conversation, judged from quote counts, lengths and
    interruptions noted in the analysis text.

    A participant is only named dominant when their score leads the
    runner-up by more than DOMINANCE_IMBALANCE_THRESHOLD of their own score.
    """
    if not quotes:
        return None

    stats: Dict[str, Dict[str, Any]] = {}
    for quote in quotes:
        entry = stats.setdefault(
            str(quote["speaker"]),
            {"messageCount": 0, "wordCount": 0, "interruptions": 0},
        )
        entry["messageCount"] += 1
        entry["wordCount"] += len(quote["quote"].split())
        if contains_any(_analysis_lower(quote), INTERRUPTION_KEYWORDS):
            entry["interruptions"] += 1

    for entry in stats.values():
        entry["score"] = round(
            entry["messageCount"] + entry["wordCount"] / 10 + 2 * entry["interruptions"], 2
        )

    ranked = sorted(stats.items(), key=lambda item: -item[1]["score"])
    top_name, top = ranked[0]
    second_score = ranked[1][1]["score"] if len(ranked) > 1 else 0
    imbalance = (top["score"] - second_score) / top["score"] if top["score"] else 0.0

    dominant = top_name if imbalance > DOMINANCE_IMBALANCE_THRESHOLD else None
    return {
        "participants": stats,
        "dominantParticipant": dominant,
        "imbalance": round(imbalance, 2),
        "balance": f"{dominant} dominates" if dominant else "Balanced",
    }


def evasion_tactics(quotes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    tactics: List[Dict[str, Any]] = []
    for quote in quotes:
        analysis = _analysis_lower(quote)
        for tactic, keywords in EVASION_KEYWORDS.items():
            if contains_any(analysis, keywords):
                tactics.append(
                    {
                        "participant": str(quote["speaker"]),
                        "tactic": tactic,
                        "example": quote["quote"],
                    }
                )
                break
    return tactics


def power_shifts(quotes: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Submission followed by dominance from the other speaker, pairwise over adjacent quotes."""
    shifts: List[Dict[str, Any]] = []
    for position in range(len(quotes) - 1):
        current, following = quotes[position], quotes[position + 1]
        if current["speaker"] == following["speaker"]:
            continue
        if contains_any(_analysis_lower(current), SUBMISSION_KEYWORDS) and contains_any(
            _analysis_lower(following), DOMINANCE_KEYWORDS
        ):
            shifts.append(
                {
                    "from": str(current["speaker"]),
                    "to": str(following["speaker"]),
                    "position": timeline_position(position + 1, len(quotes)),
                    "trigger": following["quote"],
                }
            )
    return shifts
