"""Subscription tiers and the feature flags each of them unlocks."""
from typing import Dict, Tuple

DEFAULT_TIER = "free"

_FREE = (
    "overallTone",           # Overall emotional tone summary
    "healthScore",           # Conversation health meter
    "keyQuotes",             # Up to two key quotes, no rewording help
    "pdfExport",
)

_PERSONAL = _FREE + (
    "participantTones",      # Participants named
    "communicationInsights",
    "advancedToneAnalysis",
    "tensionContributions",
    "manipulationScore",
    "redFlags",
    "communicationStyles",
    "accountabilityMeters",
    "empatheticSummary",
)

_PRO = _PERSONAL + (
    "conversationDynamics",
    "behaviouralPatterns",
    "advancedTrendLines",
    "evasionIdentification",
    "messageDominance",
    "emotionalShiftsTimeline",
    "powerDynamics",
    "redFlagsTimeline",
    "historicalPatterns",
    "psychologicalPatterns",
)

TIER_FEATURES: Dict[str, Tuple[str, ...]] = {
    "free": _FREE,
    "personal": _PERSONAL,
    "pro": _PRO,
    "instant": _PRO,  # one-time purchase of the pro feature set
    "beta": _PRO,
}

# Tiers that receive synthesized red-flag enrichment and conversation dynamics
FULL_ENRICHMENT_TIERS = frozenset({"pro", "instant", "beta"})

# Output field -> feature flags that unlock it (any of them)
FIELD_FEATURES: Dict[str, Tuple[str, ...]] = {
    "participantTones": ("participantTones",),
    "healthScore": ("healthScore",),
    "keyQuotes": ("keyQuotes",),
    "redFlags": ("redFlags",),
    "highTensionFactors": ("advancedToneAnalysis",),
    "dramaScore": ("advancedToneAnalysis",),
    "participantConflictScores": ("communicationStyles",),
    "participantAnalysis": ("communicationStyles",),
    "tensionContributions": ("tensionContributions",),
    "tensionMeaning": ("tensionContributions",),
    "suggestions": ("communicationInsights",),
    "dynamics": ("conversationDynamics",),
    "empatheticSummary": ("empatheticSummary",),
    "manipulationScores": ("manipulationScore",),
    "powerDynamics": ("powerDynamics",),
    "powerShifts": ("powerDynamics",),
    "psychologicalPatterns": ("psychologicalPatterns",),
    "historicalPatterns": ("historicalPatterns",),
    "messageDominance": ("messageDominance",),
    "dominanceAnalysis": ("messageDominance",),
    "evasionTactics": ("evasionIdentification",),
}


def normalize_tier(tier: str) -> str:
    """Lower-case the tier label and map unknown labels to the free tier."""
    name = (tier or "").strip().lower()
    return name if name in TIER_FEATURES else DEFAULT_TIER


def features_for(tier: str) -> Tuple[str, ...]:
    return TIER_FEATURES[normalize_tier(tier)]


def field_allowed(field: str, features: Tuple[str, ...]) -> bool:
    """True when any flag governing ``field`` is in ``features``."""
    required = FIELD_FEATURES.get(field)
    if required is None:
        return False
    return any(flag in features for flag in required)
