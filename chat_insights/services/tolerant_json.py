"""
Tolerant JSON parsing of model output.

The model is asked for fenced, strict JSON but regularly returns text
around the object, truncated output, trailing commas, smart quotes or bare
property names. Parsing runs an ordered list of repair strategies, ending
with the json-repair library; the first one whose output parses to a JSON
object wins. If all of them fail UnparseableResponseError is raised and the
caller decides what to do.
"""
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

from json_repair import repair_json

from ..core.exceptions import UnparseableResponseError

logger = logging.getLogger(__name__)

FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
OPEN_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*)$", re.IGNORECASE)
FENCE_MARKER_RE = re.compile(r"```(?:json)?", re.IGNORECASE)

TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_][A-Za-z0-9_]*)\s*:")
BARE_WORD_BEFORE_COLON_RE = re.compile(r"(?<![\"\w])([A-Za-z_]\w*)(?=\s*:)")
WHITESPACE_RE = re.compile(r"\s+")

SMART_QUOTES = {"“": '"', "”": '"'}

_CLOSERS = {"{": "}", "[": "]"}


def extract_fenced_payload(text: str) -> str:
    """Return the interior of the first ``` block, or the whole text if there is none."""
    match = FENCED_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()

    # Truncated output often keeps the opening fence only
    match = OPEN_FENCE_RE.search(text)
    if match:
        return match.group(1).strip()

    return text.strip()


def _slice_object(text: str) -> str:
    """Drop prose before the first { and, for complete objects, after the last }."""
    start = text.find("{")
    if start == -1:
        return text
    text = text[start:]
    if is_balanced(text):
        end = text.rfind("}")
        if end != -1:
            text = text[: end + 1]
    return text


def is_balanced(text: str) -> bool:
    """Stack check of {} and [] pairs; string contents are not skipped."""
    stack: List[str] = []
    for char in text:
        if char in _CLOSERS:
            stack.append(char)
        elif char in ("}", "]"):
            if not stack or _CLOSERS[stack.pop()] != char:
                return False
    return not stack


def _unmatched_openers(text: str) -> Optional[List[str]]:
    stack: List[str] = []
    for char in text:
        if char in _CLOSERS:
            stack.append(char)
        elif char in ("}", "]"):
            if not stack or _CLOSERS[stack[-1]] != char:
                return None
            stack.pop()
    return stack


def balance_brackets(text: str) -> str:
    """
    Append the closing braces and brackets missing from ``text``.

    How many of each is decided by the difference between opening and
    closing counts. When the text nests cleanly the closers are appended in
    nesting order, otherwise brackets go first and braces last.
    """
    missing_braces = text.count("{") - text.count("}")
    missing_brackets = text.count("[") - text.count("]")
    if missing_braces <= 0 and missing_brackets <= 0:
        return text

    stack = _unmatched_openers(text)
    if (
        stack is not None
        and stack.count("{") == max(missing_braces, 0)
        and stack.count("[") == max(missing_brackets, 0)
    ):
        closers = "".join(_CLOSERS[opener] for opener in reversed(stack))
    else:
        closers = "]" * max(missing_brackets, 0) + "}" * max(missing_braces, 0)

    return text.rstrip() + closers


def sanitize_json(text: str) -> str:
    """First-pass cleanup: trailing commas, bare keys, embedded newlines and tabs."""
    text = TRAILING_COMMA_RE.sub(r"\1", text)
    text = BARE_KEY_RE.sub(r'\1"\2":', text)
    text = text.replace("\n", " ").replace("\r", " ").replace("\t", " ")
    return WHITESPACE_RE.sub(" ", text).strip()


def aggressive_sanitize_json(text: str) -> str:
    """Second-pass cleanup, applied to the raw model text."""
    text = FENCE_MARKER_RE.sub("", text)
    for smart, straight in SMART_QUOTES.items():
        text = text.replace(smart, straight)
    text = BARE_WORD_BEFORE_COLON_RE.sub(r'"\1"', text)
    text = TRAILING_COMMA_RE.sub(r"\1", text)
    text = WHITESPACE_RE.sub(" ", text)
    return _slice_object(text).strip()


def _prepare_payload(text: str) -> str:
    payload = _slice_object(extract_fenced_payload(text))
    if "{" in payload and not is_balanced(payload):
        logger.info("Model JSON is unbalanced, appending missing closers")
        payload = balance_brackets(payload)
    return payload


def _strategy_fenced(text: str) -> str:
    return _prepare_payload(text)


def _strategy_sanitized(text: str) -> str:
    return sanitize_json(_prepare_payload(text))


def _strategy_aggressive(text: str) -> str:
    return aggressive_sanitize_json(text)


def _strategy_repair_json(text: str) -> str:
    # Last resort: the json-repair library rewrites unescaped quotes and
    # missing separators that the regex passes leave alone
    return repair_json(extract_fenced_payload(text))


# Ordered repair strategies, first success wins
PARSE_STRATEGIES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("fenced", _strategy_fenced),
    ("sanitized", _strategy_sanitized),
    ("aggressive", _strategy_aggressive),
    ("repair_json", _strategy_repair_json),
)


def _loads_object(candidate: str) -> Dict[str, Any]:
    data = json.loads(candidate, strict=False)
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def parse_model_json(text: str) -> Dict[str, Any]:
    """
    Parse model output into a dict.

    Raises UnparseableResponseError when no strategy yields a JSON object;
    a partially repaired result is never returned.
    """
    if not text or not text.strip():
        raise UnparseableResponseError("Model returned empty text", raw_text=text)

    errors: List[str] = []
    for name, strategy in PARSE_STRATEGIES:
        candidate = strategy(text)
        try:
            data = _loads_object(candidate)
        except ValueError as exc:
            # json.JSONDecodeError is a ValueError subclass
            errors.append(f"{name}: {exc}")
            continue
        logger.info("Parsed model JSON with strategy=%s", name)
        return data

    logger.warning("All JSON repair strategies failed: %s", "; ".join(errors))
    raise UnparseableResponseError(
        "Model returned JSON that could not be repaired", raw_text=text
    )
