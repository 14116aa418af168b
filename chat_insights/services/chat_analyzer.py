"""Chat analysis service using LLM."""
import logging
from typing import Any, Dict, Optional, Tuple

from ..core.exceptions import UnparseableResponseError
from ..core.tiers import features_for, field_allowed
from .analysis_normalizer import (
    DE_ESCALATE_LIST_FIELDS,
    DE_ESCALATE_TEXT_FIELDS,
    MESSAGE_LIST_FIELDS,
    MESSAGE_TEXT_FIELDS,
    normalize_analysis,
    normalize_response_fields,
)
from .direct_red_flags import apply_direct_red_flags
from .llm_client import llm_client
from .prompt_builder import (
    build_chat_prompt,
    build_de_escalate_prompt,
    build_message_prompt,
    chat_schema_for,
)
from .quote_validator import validate_quotes
from .raw_extractor import extract_raw_analysis
from .response_text import extract_response_text
from .tier_filter import filter_by_tier, filter_de_escalation, filter_message_analysis
from .tolerant_json import parse_model_json

logger = logging.getLogger(__name__)

MESSAGE_FALLBACK_TEXT = (
    "We couldn't analyze this message right now. Please try again in a moment."
)


def _ask_model(system: str, user: str, max_tokens: int) -> str:
    """One provider round trip, returning the text of the first content block."""
    content = llm_client.complete(system, user, max_tokens)
    return extract_response_text(content)


def recover_analysis(text: str, me: str, them: str) -> Tuple[Dict[str, Any], str]:
    """
    Turn model text into an analysis dict, trying the JSON parser before
    regex field extraction. Returns the dict and the name of the stage that
    produced it.
    """
    try:
        return parse_model_json(text), "json"
    except UnparseableResponseError as exc:
        logger.warning("JSON parsing failed (%s), extracting fields from raw text", exc)
    return extract_raw_analysis(text, me, them), "raw_fields"


def analyze_chat(
    conversation_text: str,
    me: str,
    them: str,
    tier: str = "free",
    extra_context: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Full pipeline for one transcript.

    Provider and response-format errors propagate to the caller; a model
    answer that is not valid JSON degrades to regex field extraction
    instead of failing. Tiers that see red flags also get the ones found by
    phrase patterns in the transcript.
    """
    prompt = build_chat_prompt(conversation_text, me, them, tier, extra_context)
    text = _ask_model(prompt.system, prompt.user, prompt.max_tokens)

    data, stage = recover_analysis(text, me, them)
    logger.info("Chat analysis for tier=%s produced by stage=%s", tier, stage)

    severity_range = chat_schema_for(tier).severity_range
    analysis = normalize_analysis(data, me, them, severity_range)
    if field_allowed("redFlags", features_for(tier)):
        apply_direct_red_flags(analysis, conversation_text, severity_range)
    # Quotes are checked against the whole transcript, not the truncated prompt copy
    validate_quotes(analysis, conversation_text)
    return filter_by_tier(analysis, tier, me, them)


def message_fallback() -> Dict[str, Any]:
    return {
        "tone": "Unable to analyze",
        "intent": ["Unable to determine"],
        "suggestedReply": MESSAGE_FALLBACK_TEXT,
        "potentialResponse": MESSAGE_FALLBACK_TEXT,
        "possibleReword": MESSAGE_FALLBACK_TEXT,
    }


def analyze_message(message: str, author: str, tier: str = "free") -> Dict[str, Any]:
    """Tone and intent of a single message, filtered to what ``tier`` may see."""
    prompt = build_message_prompt(message, author, tier)
    text = _ask_model(prompt.system, prompt.user, prompt.max_tokens)
    try:
        result = parse_model_json(text)
    except UnparseableResponseError:
        logger.warning("Message analysis was not valid JSON, using fallback")
        result = message_fallback()
    result = normalize_response_fields(result, MESSAGE_TEXT_FIELDS, MESSAGE_LIST_FIELDS)
    return filter_message_analysis(result, tier)


def de_escalation_fallback(message: str) -> Dict[str, Any]:
    return {
        "original": message,
        "rewritten": "I'd like to talk about this calmly. Can we find a good time to discuss it?",
        "explanation": MESSAGE_FALLBACK_TEXT,
    }


def de_escalate_message(message: str, tier: str = "free") -> Dict[str, Any]:
    """Calmer rewrite of an emotional message."""
    prompt = build_de_escalate_prompt(message, tier)
    text = _ask_model(prompt.system, prompt.user, prompt.max_tokens)
    try:
        result = parse_model_json(text)
    except UnparseableResponseError:
        logger.warning("De-escalation was not valid JSON, using fallback")
        result = de_escalation_fallback(message)
    result = normalize_response_fields(result, DE_ESCALATE_TEXT_FIELDS, DE_ESCALATE_LIST_FIELDS)

    # The original is always echoed back as sent
    result["original"] = message
    return filter_de_escalation(result, tier)
