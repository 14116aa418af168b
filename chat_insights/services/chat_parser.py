"""Transcript parsing and statistics."""
import logging
import re
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Tuple

from .whatsapp_parser import ChatMessage, parse_whatsapp_txt
from ..models.schemas import ChatStats, ParticipantStats

logger = logging.getLogger(__name__)

# ---- Noise / service messages ----

MEDIA_PLACEHOLDERS = {
    "<media omitted>",
    "[media omitted]",
    "image omitted",
    "video omitted",
    "audio omitted",
    "sticker omitted",
    "this message was deleted",
    "you deleted this message",
    "missed voice call",
    "missed video call",
}

SYSTEM_PATTERNS = [
    r"messages and calls are end-to-end encrypted",
    r"\bcreated (?:the )?group\b",
    r"\bchanged (?:the )?(?:group|subject|this group's icon)\b",
    r"\badded\b.*\bto the group\b",
    r"\bleft$",
    r"\bjoined using this group's invite link\b",
    r"\bpinned a message\b",
]

_system_regexes = [re.compile(pat, re.IGNORECASE) for pat in SYSTEM_PATTERNS]


def _is_noise_text(text: str) -> bool:
    """
    Whether a message text is noise: empty, a media placeholder or a
    service line. Emoji and one-word replies are real messages.
    """
    if not text:
        return True

    stripped = text.strip()
    if not stripped:
        return True

    low = stripped.lower()

    if low in MEDIA_PLACEHOLDERS:
        return True

    for rx in _system_regexes:
        if rx.search(low):
            return True

    return False


def filter_noise_messages(messages: List[ChatMessage]) -> List[ChatMessage]:
    before = len(messages)
    cleaned = [msg for msg in messages if not _is_noise_text(msg.text or "")]

    logger.info(
        "[noise_filter] before=%d, after=%d, removed=%d",
        before,
        len(cleaned),
        before - len(cleaned),
    )
    return cleaned


def compute_stats_from_messages(messages: List[ChatMessage]) -> ChatStats:
    """Message counts and average lengths per participant, plus the date span."""
    total = len(messages)

    per_user_length: Dict[str, List[int]] = defaultdict(list)
    dates: List[datetime] = []

    for msg in messages:
        per_user_length[msg.from_name].append(len(msg.text))
        if msg.date:
            dates.append(msg.date)

    participants_stats: List[ParticipantStats] = []
    for user, lengths in per_user_length.items():
        count = len(lengths)
        avg_len = sum(lengths) / count if count else 0
        participants_stats.append(
            ParticipantStats(
                id=user,
                messages_count=count,
                avg_message_length=round(avg_len, 1),
            )
        )

    participants_stats.sort(key=lambda p: p.messages_count, reverse=True)

    return ChatStats(
        total_messages=total,
        participants=participants_stats,
        first_message_at=min(dates) if dates else None,
        last_message_at=max(dates) if dates else None,
    )


def compute_stats_from_plain_text(text: str) -> ChatStats:
    """Line count only, for text that is not a recognised export."""
    lines = [ln for ln in text.splitlines() if ln.strip()]
    return ChatStats(
        total_messages=len(lines),
        participants=[],
        first_message_at=None,
        last_message_at=None,
    )


def parse_chat_text(chat_text: str) -> Tuple[List[ChatMessage], ChatStats]:
    """Parse a transcript, drop noise and return the messages with their statistics."""
    messages = parse_whatsapp_txt(chat_text)
    if not messages:
        return [], compute_stats_from_plain_text(chat_text)

    filtered = filter_noise_messages(messages)
    return filtered, compute_stats_from_messages(filtered)
