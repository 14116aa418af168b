"""
Keyword tables used to enrich red flags and derive conversation dynamics.

Templates take ``{participant}`` (who shows the behavior) and
``{evidence}`` (either empty or a short quoted example, see
``evidence_phrase``). Lookups match a table keyword as a substring of the
lower-cased flag type; the first hit wins, in table order.
"""
from typing import Dict, Optional, Sequence, Tuple

TemplateTable = Tuple[Tuple[str, str], ...]

MAX_QUOTE_CHARS = 40

IMPACT_TEMPLATES: TemplateTable = (
    ("manipulation", "{participant} creates emotional pressure to comply{evidence}, which makes healthy boundaries hard to keep."),
    ("gaslighting", "{participant} undermines confidence in shared memories{evidence}, which breeds self-doubt."),
    ("stonewalling", "{participant} shuts the discussion down{evidence}, so the issue stays unresolved."),
    ("criticism", "{participant} targets character rather than behavior{evidence}, which invites defensiveness."),
    ("contempt", "{participant} signals disrespect{evidence}, which erodes goodwill between you."),
    ("defensiveness", "{participant} deflects responsibility{evidence}, so concerns are never really heard."),
    ("love bombing", "{participant} uses excessive flattery{evidence}, accelerating intimacy before trust exists."),
    ("financial", "{participant} brings money into the relationship{evidence}, creating obligations early."),
    ("urgency", "{participant} manufactures urgency{evidence}, which pushes decisions before they are considered."),
    ("narcissism", "{participant} centres the exchange on themselves{evidence}, leaving little room for the other person."),
)
DEFAULT_IMPACT = "{participant} adds tension to the interaction{evidence}, which can lead to communication breakdown if not addressed."

PROGRESSION_TEMPLATES: TemplateTable = (
    ("manipulation", "Pressure tactics tend to intensify when they work, moving from guilt to explicit ultimatums."),
    ("gaslighting", "Reality distortion usually starts with small denials and grows into disputes over whole events."),
    ("stonewalling", "Withdrawal tends to lengthen over time, from short silences to refusing whole topics."),
    ("criticism", "Complaints about actions tend to harden into global judgements using always and never."),
    ("contempt", "Contempt tends to escalate from sarcasm to open mockery when left unaddressed."),
    ("defensiveness", "Defensiveness becomes a reflex, turning every concern into a counter-accusation."),
    ("love bombing", "Intense affection often gives way to withdrawal or control once commitment is secured."),
    ("financial", "Small money requests tend to grow in size and frequency."),
    ("urgency", "Artificial deadlines tend to recur whenever a decision is resisted."),
    ("narcissism", "Self-focus tends to deepen, with the other person's needs increasingly dismissed."),
)
DEFAULT_PROGRESSION = "This pattern may become more frequent and entrenched without intervention."

RECOMMENDED_ACTION_TEMPLATES: TemplateTable = (
    ("manipulation", "Name the pressure directly and ask {participant} to state plainly what they want{evidence}."),
    ("gaslighting", "Affirm your own account of events calmly and keep written notes of agreements{evidence}."),
    ("stonewalling", "Propose a short break and agree on a specific time to return to the topic{evidence}."),
    ("criticism", "Ask {participant} to describe the specific behavior rather than a general judgement{evidence}."),
    ("contempt", "Set a clear boundary about respectful language before continuing{evidence}."),
    ("defensiveness", "Invite {participant} to acknowledge one part of the concern before responding{evidence}."),
    ("love bombing", "Slow the pace and let trust build through consistent actions over time{evidence}."),
    ("financial", "Keep finances separate and decline requests you are not comfortable with{evidence}."),
    ("urgency", "Take the time you need and say you will answer once you have thought it through{evidence}."),
    ("narcissism", "Make space for your own needs explicitly and notice whether they are acknowledged{evidence}."),
)
DEFAULT_RECOMMENDED_ACTION = "Discuss the pattern directly with {participant}, focusing on impact rather than intent{evidence}."

BEHAVIORAL_PATTERN_TEMPLATES: TemplateTable = (
    ("manipulation", "{participant} relies on emotional leverage instead of direct requests{evidence}."),
    ("gaslighting", "{participant} reframes events to avoid accountability{evidence}."),
    ("stonewalling", "{participant} withdraws when topics become uncomfortable{evidence}."),
    ("criticism", "{participant} frames disagreements as personal failings{evidence}."),
    ("contempt", "{participant} shows an underlying negative view of the other person{evidence}."),
    ("defensiveness", "{participant} meets concerns with counter-complaints{evidence}."),
    ("love bombing", "{participant} uses intensity to create a fast sense of closeness{evidence}."),
    ("financial", "{participant} links the relationship to financial expectations{evidence}."),
    ("urgency", "{participant} uses time pressure to steer decisions{evidence}."),
    ("narcissism", "{participant} elevates their own perspective over the other person's{evidence}."),
)
DEFAULT_BEHAVIORAL_PATTERN = "{participant} shows a potentially recurring behavior{evidence} that shapes the wider dynamic."

# Quote matching: flag type keyword -> words looked for in quote text/analysis
FLAG_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "manipulation": ("manipulat", "pressure", "guilt", "force", "insist", "demand"),
    "gaslighting": ("gaslight", "reality", "imagin", "crazy", "didn't happen", "exaggerat", "memory"),
    "stonewalling": ("stonewall", "silence", "avoid", "ignore", "shut down", "withdraw"),
    "criticism": ("critic", "always", "never", "wrong", "fault", "blame", "accus"),
    "contempt": ("contempt", "disrespect", "dismissive", "superior", "mock", "sarcas", "condescend"),
    "defensiveness": ("defens", "excuse", "justify", "not my fault", "counter"),
    "love bombing": ("love", "forever", "perfect", "soul mate", "destiny"),
    "financial": ("money", "loan", "pay", "afford", "invest"),
    "urgency": ("urgent", "emergency", "immediate", "right away", "hurry"),
    "narcissism": ("narcissis", "superior", "self-centered", "entitle", "grandios", "about me"),
}

# Participant attribution: flag families matched against keyQuotes[].analysis
ATTRIBUTION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "narcissism": ("narcissis", "superior", "self-centered", "entitle", "grandios"),
    "defensiveness": ("defens", "excuse", "justif", "deflect"),
    "stonewalling": ("stonewall", "withdraw", "shut down", "silent", "ignore"),
    "criticism": ("critic", "blame", "fault", "attack", "accus"),
    "gaslighting": ("gaslight", "deny", "denies", "reality", "memory", "crazy"),
}

# Named behavior categories counted per participant for conversation dynamics
BEHAVIOR_CATEGORIES: Dict[str, Tuple[str, ...]] = {
    "Criticism": ("critic", "blame", "fault", "accus"),
    "Defensiveness": ("defens", "excuse", "justif"),
    "Stonewalling": ("stonewall", "withdraw", "shut down", "silent"),
    "Contempt": ("contempt", "mock", "sarcas", "condescend", "dismissive"),
    "Gaslighting": ("gaslight", "deny", "denies", "reality"),
    "Validation": ("validat", "acknowledg", "empath", "understand"),
    "Apology": ("apolog", "sorry", "regret"),
}

EVASION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "Topic Shifting": ("change subject", "changes the subject", "different topic", "tangent", "unrelated"),
    "Question Dodging": ("dodge", "avoid question", "avoids the question", "not answer", "redirect"),
    "Non-committal Response": ("vague", "ambiguous", "non-committal", "noncommittal"),
    "Deflection": ("deflect", "counter-question", "divert"),
    "Avoidance": ("avoid", "ignore", "withdraw", "distance"),
    "Refusal to Engage": ("refuse", "won't discuss", "shut down", "disengage"),
}

SUBMISSION_KEYWORDS: Tuple[str, ...] = (
    "apolog", "concede", "give in", "gives in", "back down", "backs down",
    "placat", "appease", "submissive", "yield", "accommodat",
)

DOMINANCE_KEYWORDS: Tuple[str, ...] = (
    "demand", "control", "dominat", "command", "insist", "override", "assert", "ultimatum",
)

INTERRUPTION_KEYWORDS: Tuple[str, ...] = (
    "interrupt", "cut off", "cuts off", "talk over", "talks over",
)

DOMINANCE_IMBALANCE_THRESHOLD = 0.30


def contains_any(text: str, keywords: Sequence[str]) -> bool:
    return any(keyword in text for keyword in keywords)


def shorten_quote(quote: str, limit: int = MAX_QUOTE_CHARS) -> str:
    if len(quote) > limit:
        return quote[: limit - 3] + "..."
    return quote


def evidence_phrase(quote: Optional[str]) -> str:
    if not quote:
        return ""
    return f' (as in "{shorten_quote(quote)}")'


def lookup_template(table: TemplateTable, flag_type: str, default: str) -> str:
    """First template whose keyword occurs in ``flag_type``, else ``default``."""
    flag_lower = (flag_type or "").lower()
    for keyword, template in table:
        if keyword in flag_lower:
            return template
    return default


def render(template: str, participant: str, quote: Optional[str]) -> str:
    return template.format(participant=participant, evidence=evidence_phrase(quote))


def flag_keywords(flag_type: str) -> Tuple[str, ...]:
    """All quote-matching keywords for families named in ``flag_type``."""
    flag_lower = (flag_type or "").lower()
    words: Tuple[str, ...] = ()
    for family, keywords in FLAG_KEYWORDS.items():
        if family in flag_lower:
            words += keywords
    return words
