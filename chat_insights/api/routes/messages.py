"""Single-message routes: /analyze_message and /de_escalate."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from ...core.tiers import normalize_tier
from ...dependencies import get_client_ip
from ...models.schemas import (
    AnalyzeMessageRequest,
    DeEscalateRequest,
    DeEscalateResponse,
    MessageAnalysis,
)
from ...services.chat_analyzer import analyze_message, de_escalate_message
from ..errors import http_error_for

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/analyze_message",
    response_model=MessageAnalysis,
    response_model_exclude_none=True,
)
def analyze_message_route(
    body: AnalyzeMessageRequest,
    client_ip: str = Depends(get_client_ip),
):
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is empty")

    tier = normalize_tier(body.tier)
    try:
        result = analyze_message(body.message, body.author, tier)
    except Exception as exc:
        raise http_error_for(exc, "analyze_message") from exc

    logger.info("analyze_message ok ip=%s tier=%s chars=%d", client_ip, tier, len(body.message))
    return result


@router.post(
    "/de_escalate",
    response_model=DeEscalateResponse,
    response_model_exclude_none=True,
)
def de_escalate_route(
    body: DeEscalateRequest,
    client_ip: str = Depends(get_client_ip),
):
    if not body.message.strip():
        raise HTTPException(status_code=400, detail="Message is empty")

    tier = normalize_tier(body.tier)
    try:
        result = de_escalate_message(body.message, tier)
    except Exception as exc:
        raise http_error_for(exc, "de_escalate") from exc

    logger.info("de_escalate ok ip=%s tier=%s chars=%d", client_ip, tier, len(body.message))
    return result
