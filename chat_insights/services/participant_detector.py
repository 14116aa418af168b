"""Detect the two participant names of a chat transcript."""
import logging
import re
from typing import Dict, List, Optional

from ..config import settings
from .llm_client import llm_client
from .prompt_builder import build_names_prompt
from .response_text import extract_response_text
from .whatsapp_parser import SENDER_NAME_PATTERN, SENDER_PATTERNS

logger = logging.getLogger(__name__)

_NAME = "(?P<name>" + SENDER_NAME_PATTERN + ")"

# Export headers first (bracketed, dash, dash without comma), then bare prefixes
NAME_PATTERNS = SENDER_PATTERNS + (
    # Name: at the start of a line
    re.compile(r"^" + _NAME + r"\s*:", re.MULTILINE),
    # Name: after a line break
    re.compile(r"(?:^|\n)" + _NAME + r"\s*:"),
)

SYSTEM_LINE_WORDS = ("changed", "added", "left", "joined", "created", "messages", "calls")
RESERVED_NAMES = {"You", "Me", "Them", "Media omitted", "null"}
MIN_NAME_LEN = 2
MAX_NAME_LEN = 50

DEFAULT_ME = "Me"
DEFAULT_THEM = "Them"
SINGLE_NAME_PARTNER = "Contact"

# {"me":"Name","them":"Name"}, tolerating stray backslashes before quotes
LENIENT_NAMES_RE = re.compile(
    r'\{.*?"me"\s*:\s*"([^"\\]*(?:\\.[^"\\]*)*).*?"them"\s*:\s*"([^"\\]*(?:\\.[^"\\]*)*)',
    re.DOTALL,
)
# Anything but letters (in any script) and spaces
NON_NAME_CHARS_RE = re.compile(r"[^\w ]|[\d_]")


def _is_valid_name(name: str) -> bool:
    lowered = name.lower()
    if any(word in lowered for word in SYSTEM_LINE_WORDS):
        return False
    if name in RESERVED_NAMES or name.isdigit():
        return False
    return MIN_NAME_LEN <= len(name) <= MAX_NAME_LEN


def find_names(text: str) -> List[str]:
    """Distinct plausible participant names, in order of first match."""
    names: List[str] = []
    for pattern in NAME_PATTERNS:
        for match in pattern.finditer(text):
            name = re.sub(r"[^\w\s]", "", match.group("name")).strip()
            if _is_valid_name(name) and name not in names:
                names.append(name)
    return names


def parse_names_response(text: str) -> Optional[Dict[str, str]]:
    match = LENIENT_NAMES_RE.search(text or "")
    if not match:
        return None
    me = NON_NAME_CHARS_RE.sub("", match.group(1)).strip()
    them = NON_NAME_CHARS_RE.sub("", match.group(2)).strip()
    if not me or not them:
        return None
    return {"me": me, "them": them}


def _ask_model(excerpt: str) -> Optional[Dict[str, str]]:
    prompt = build_names_prompt(excerpt)
    content = llm_client.complete(prompt.system, prompt.user, prompt.max_tokens)
    return parse_names_response(extract_response_text(content))


def detect_participants(conversation_text: str) -> Dict[str, str]:
    """
    Return ``{"me": ..., "them": ...}`` for a transcript.

    Only the beginning of the transcript is inspected. Line-prefix patterns
    are tried first; the model is only asked when none of them finds a
    name. Never raises: the fallback is the fixed Me/Them pair.
    """
    excerpt = (conversation_text or "")[: settings.name_detection_chars]

    names = find_names(excerpt)
    if len(names) >= 2:
        logger.info("Detected participants by pattern: %s, %s", names[0], names[1])
        return {"me": names[0], "them": names[1]}
    if len(names) == 1:
        logger.info("Detected one participant by pattern: %s", names[0])
        return {"me": names[0], "them": SINGLE_NAME_PARTNER}

    if excerpt.strip():
        try:
            detected = _ask_model(excerpt)
        except Exception:
            logger.exception("Participant detection via model failed")
            detected = None
        if detected:
            logger.info("Detected participants via model: %s, %s", detected["me"], detected["them"])
            return detected

    logger.info("Participant detection fell back to defaults")
    return {"me": DEFAULT_ME, "them": DEFAULT_THEM}
