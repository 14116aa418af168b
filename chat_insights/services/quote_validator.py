"""
Drop quoted evidence that cannot be found in the source conversation.

A quote is kept when its lower-cased text is a substring of the lower-cased
conversation, or when enough of its significant words (longer than two
characters once surrounding punctuation is stripped) each occur somewhere
in the conversation. Quotes are kept or dropped whole, never edited. Arrays
emptied by the filter are removed together with their key.
"""
import logging
import string
from typing import Any, Dict, List, Optional

from ..config import settings

logger = logging.getLogger(__name__)

MIN_SIGNIFICANT_WORD_LEN = 3
# Stripped from both ends of each quote word before matching
EDGE_PUNCTUATION = string.punctuation + "“”‘’…"


def quote_in_conversation(
    quote: Any,
    conversation_lower: str,
    threshold: Optional[float] = None,
) -> bool:
    """True if ``quote`` can be matched against the (already lower-cased) conversation."""
    if not isinstance(quote, str) or not quote.strip():
        return False
    if threshold is None:
        threshold = settings.quote_match_threshold

    quote_lower = quote.strip().lower()
    if quote_lower in conversation_lower:
        return True

    words = [w.strip(EDGE_PUNCTUATION) for w in quote_lower.split()]
    words = [w for w in words if len(w) >= MIN_SIGNIFICANT_WORD_LEN]
    if not words:
        return False

    found = sum(1 for w in words if w in conversation_lower)
    return found / len(words) >= threshold


def _filter_items(
    items: List[Any],
    text_key: str,
    conversation_lower: str,
    threshold: Optional[float],
) -> List[Any]:
    return [
        item
        for item in items
        if isinstance(item, dict)
        and quote_in_conversation(item.get(text_key), conversation_lower, threshold)
    ]


def validate_quotes(
    analysis: Dict[str, Any],
    conversation_text: str,
    threshold: Optional[float] = None,
) -> Dict[str, Any]:
    """
    Remove unverifiable ``keyQuotes[].quote`` and ``redFlags[].examples[].text``.

    ``analysis`` is modified in place (by deletion only) and returned.
    """
    conversation_lower = (conversation_text or "").lower()

    quotes = analysis.get("keyQuotes")
    if isinstance(quotes, list):
        kept = _filter_items(quotes, "quote", conversation_lower, threshold)
        if len(kept) != len(quotes):
            logger.info("Quote validation: kept %d of %d key quotes", len(kept), len(quotes))
        if kept:
            analysis["keyQuotes"] = kept
        else:
            del analysis["keyQuotes"]

    flags = analysis.get("redFlags")
    if isinstance(flags, list):
        for flag in flags:
            if not isinstance(flag, dict) or "examples" not in flag:
                continue
            examples = flag["examples"]
            kept = (
                _filter_items(examples, "text", conversation_lower, threshold)
                if isinstance(examples, list)
                else []
            )
            if isinstance(examples, list) and len(kept) != len(examples):
                logger.info(
                    "Quote validation: flag %r kept %d of %d examples",
                    flag.get("type"),
                    len(kept),
                    len(examples),
                )
            if kept:
                flag["examples"] = kept
            else:
                del flag["examples"]

    return analysis
