"""
Message headers of WhatsApp text exports.

Every supported export layout is described once, as a template over the
date, time and sender sub-patterns. The same layouts drive message parsing
for chat statistics and participant-name detection; the two differ only in
how strict the sender sub-pattern is.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Pattern, Tuple

from dateutil import parser as dateparser

DATE_PATTERN = r"\d{1,2}[./-]\d{1,2}[./-]\d{2,4}"
TIME_PATTERN = r"\d{1,2}:\d{2}(?::\d{2})?(?:\s?(?:AM|PM|am|pm))?"

# Anything up to the colon; used when reading messages
ANY_SENDER_PATTERN = r"[^:]+"
# Letters only, in any script, with single-line spaces between words
SENDER_NAME_PATTERN = r"[^\W\d_]+(?:[ \t]+[^\W\d_]+)*"

# (layout name, template); %(date)s, %(time)s and %(name)s are filled in
HEADER_LAYOUTS: Tuple[Tuple[str, str], ...] = (
    # [07/04/2018, 14:11:22] Mike: Hi
    ("bracketed", r"\[(?P<date>%(date)s),\s*(?P<time>%(time)s)\]\s*(?P<name>%(name)s)\s*:"),
    # 9/5/21, 8:07 PM - Me: Lol   /   09.01.2023, 19:58 - Alex: Hello
    ("dash", r"(?P<date>%(date)s),\s*(?P<time>%(time)s)\s*[-–]\s*(?P<name>%(name)s)\s*:"),
    # 15-02-24 5:42 PM - Sam: hi
    ("dash_no_comma", r"(?P<date>%(date)s)\s+(?P<time>%(time)s)\s*[-–]\s*(?P<name>%(name)s)\s*:"),
)


def header_patterns(name_pattern: str, suffix: str = "", flags: int = 0) -> Tuple[Pattern[str], ...]:
    """Compile every header layout anchored at a line start, with ``name_pattern`` as the sender."""
    parts = {"date": DATE_PATTERN, "time": TIME_PATTERN, "name": name_pattern}
    return tuple(
        re.compile("^" + template % parts + suffix, flags) for _, template in HEADER_LAYOUTS
    )


MESSAGE_LINE_PATTERNS = header_patterns(ANY_SENDER_PATTERN, r"\s*(?P<msg>.*)$")
SENDER_PATTERNS = header_patterns(SENDER_NAME_PATTERN, flags=re.MULTILINE)

SYSTEM_PREFIXES = (
    "Messages and calls are end-to-end encrypted",
)

MEDIA_MARKERS = (
    "<Media omitted>",
    "Media omitted",
    "image omitted",
    "video omitted",
    "audio omitted",
    "sticker omitted",
)


@dataclass
class ChatMessage:
    from_name: str
    text: str
    date: Optional[datetime]


def _parse_timestamp(date_str: str, time_str: str) -> Optional[datetime]:
    try:
        return dateparser.parse(f"{date_str} {time_str}", dayfirst=True)
    except (ValueError, OverflowError):
        return None


def read_header(line: str) -> Optional[ChatMessage]:
    """The message a header line opens, or None if ``line`` is not a header."""
    for pattern in MESSAGE_LINE_PATTERNS:
        m = pattern.match(line)
        if m:
            msg = m.group("msg").strip()
            return ChatMessage(
                from_name=m.group("name").strip(),
                # A bare media marker carries no text
                text="" if msg in MEDIA_MARKERS else msg,
                date=_parse_timestamp(m.group("date"), m.group("time")),
            )
    return None


def iter_header_senders(text: str) -> Iterator[str]:
    """Sender names of header lines, layout by layout, in order of appearance."""
    for pattern in SENDER_PATTERNS:
        for m in pattern.finditer(text):
            yield m.group("name")


def parse_whatsapp_txt(text: str) -> List[ChatMessage]:
    """
    Parse a WhatsApp txt export into ChatMessage items.

    Handles every header layout, multi-line messages and media
    placeholders. Lines before the first header are ignored.
    """
    messages: List[ChatMessage] = []
    current: Optional[ChatMessage] = None

    for raw_line in text.splitlines():
        line = raw_line.strip("\r\n")
        if not line.strip():
            continue

        if line.startswith(SYSTEM_PREFIXES):
            if current is not None:
                messages.append(current)
                current = None
            continue

        header = read_header(line)
        if header:
            if current is not None:
                messages.append(current)
            current = header
        elif current is not None and line not in MEDIA_MARKERS:
            # continuation of the previous message
            current.text += "\n" + line.strip()

    if current is not None:
        messages.append(current)

    return messages
