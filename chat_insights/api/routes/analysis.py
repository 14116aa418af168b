"""Analysis routes: /chat_meta, /detect_participants and /analyze_chat."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ...config import settings
from ...core.tiers import normalize_tier
from ...dependencies import get_client_ip
from ...models.schemas import (
    AnalyzeChatRequest,
    ChatAnalysis,
    ChatMetaRequest,
    ChatMetaResponse,
    DetectParticipantsRequest,
    ParticipantsResponse,
)
from ...services.chat_analyzer import analyze_chat
from ...services.chat_parser import parse_chat_text
from ...services.participant_detector import detect_participants
from ..errors import http_error_for

logger = logging.getLogger(__name__)

router = APIRouter()

EMPTY_TEXT_DETAIL = "Conversation text is empty"


def _require_text(text: str) -> None:
    if not text.strip():
        raise HTTPException(status_code=400, detail=EMPTY_TEXT_DETAIL)

    # Binary uploads show up as NUL characters
    if "\x00" in text:
        raise HTTPException(
            status_code=400,
            detail="This looks like a binary file. Only plain-text chat exports are supported.",
        )


@router.post("/chat_meta", response_model=ChatMetaResponse)
async def chat_meta(
    body: ChatMetaRequest,
    client_ip: str = Depends(get_client_ip),
):
    """
    Quick statistics without an LLM call.
    """
    text = body.chat_text
    _require_text(text)

    upload_bytes = len(text.encode("utf-8"))

    try:
        _, stats = parse_chat_text(text)
    except Exception as exc:
        raise http_error_for(exc, "chat_meta") from exc

    # What actually reaches the model after truncation
    snippet_bytes = len(text[: settings.llm_max_chars].encode("utf-8"))

    logger.info(
        "chat_meta ip=%s upload_bytes=%d snippet_bytes=%d",
        client_ip,
        upload_bytes,
        snippet_bytes,
    )

    return ChatMetaResponse(
        stats=stats,
        upload_bytes=upload_bytes,
        snippet_bytes=snippet_bytes,
        recommended_bytes=settings.recommended_bytes,
    )


@router.post("/detect_participants", response_model=ParticipantsResponse)
def detect_participants_route(
    body: DetectParticipantsRequest,
    client_ip: str = Depends(get_client_ip),
):
    _require_text(body.conversation_text)

    names = detect_participants(body.conversation_text)
    logger.info(
        "detect_participants ip=%s chars=%d me=%s them=%s",
        client_ip,
        len(body.conversation_text),
        names["me"],
        names["them"],
    )
    return ParticipantsResponse(**names)


@router.post(
    "/analyze_chat",
    response_model=ChatAnalysis,
    response_model_exclude_none=True,
)
def analyze_chat_route(
    body: AnalyzeChatRequest,
    client_ip: str = Depends(get_client_ip),
):
    """
    Full tier-filtered analysis of a transcript.
    """
    text = body.conversation_text
    _require_text(text)

    tier = normalize_tier(body.tier)
    size_bytes = len(text.encode("utf-8"))

    try:
        result = analyze_chat(
            text,
            me=body.me,
            them=body.them,
            tier=tier,
            extra_context=body.extra_context,
        )
    except Exception as exc:
        raise http_error_for(exc, "analyze_chat") from exc

    logger.info(
        "analyze_chat ok ip=%s tier=%s bytes=%d fields=%s",
        client_ip,
        tier,
        size_bytes,
        ",".join(sorted(result)),
    )
    return result
