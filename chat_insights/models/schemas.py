from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ChatMetaRequest(BaseModel):
    chat_text: str


class ParticipantStats(BaseModel):
    id: str
    messages_count: int
    avg_message_length: float


class ChatStats(BaseModel):
    total_messages: int
    participants: List[ParticipantStats]
    first_message_at: Optional[datetime] = None
    last_message_at: Optional[datetime] = None


class ChatMetaResponse(BaseModel):
    stats: ChatStats
    snippet_bytes: int         # what is actually sent to the model
    upload_bytes: int          # size of the submitted text
    recommended_bytes: int     # advisory upload limit


class DetectParticipantsRequest(BaseModel):
    conversation_text: str


class ParticipantsResponse(BaseModel):
    me: str
    them: str


class AnalyzeChatRequest(BaseModel):
    conversation_text: str
    me: str
    them: str
    # unknown tiers are served the free feature set
    tier: str = "free"
    extra_context: Optional[str] = None


class AnalyzeMessageRequest(BaseModel):
    message: str
    author: str
    tier: str = "free"


class DeEscalateRequest(BaseModel):
    message: str
    tier: str = "free"


# ---- Analysis result ----
# Optional fields are absent (not null) when the caller's tier does not
# include them; routes serialize with exclude_none.


class EmotionalState(BaseModel):
    emotion: str
    intensity: float = Field(ge=0.0, le=1.0)


class ToneAnalysis(BaseModel):
    overallTone: str
    emotionalState: List[EmotionalState]
    participantTones: Optional[Dict[str, str]] = None


class Communication(BaseModel):
    model_config = ConfigDict(extra="allow")

    patterns: List[str]
    suggestions: Optional[Any] = None
    dynamics: Optional[Dict[str, Any]] = None


class HealthScore(BaseModel):
    score: int = Field(ge=0, le=100)
    label: Literal["Conflict", "Tension", "Stable", "Healthy"]
    color: Literal["red", "yellow", "light-green", "green"]


class QuoteExample(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    from_: Optional[str] = Field(default=None, alias="from")


class QuoteRef(BaseModel):
    speaker: str
    quote: str


class KeyQuote(BaseModel):
    model_config = ConfigDict(extra="allow")

    speaker: Optional[str] = None
    quote: str
    analysis: Optional[str] = None
    improvement: Optional[str] = None


class RedFlag(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    description: str
    severity: int
    participant: Optional[str] = None
    examples: Optional[List[QuoteExample]] = None
    impact: Optional[str] = None
    progression: Optional[str] = None
    recommendedAction: Optional[str] = None
    behavioralPattern: Optional[str] = None
    primaryQuote: Optional[QuoteRef] = None
    supportingQuotes: Optional[List[QuoteRef]] = None
    timelinePosition: Optional[str] = None


class ChatAnalysis(BaseModel):
    model_config = ConfigDict(extra="allow")

    toneAnalysis: ToneAnalysis
    communication: Communication
    healthScore: Optional[HealthScore] = None
    keyQuotes: Optional[List[KeyQuote]] = None
    redFlags: Optional[List[RedFlag]] = None
    highTensionFactors: Optional[Any] = None
    participantConflictScores: Optional[Dict[str, Any]] = None
    tensionContributions: Optional[Dict[str, Any]] = None
    tensionMeaning: Optional[str] = None
    dramaScore: Optional[Any] = None
    empatheticSummary: Optional[Any] = None
    participantAnalysis: Optional[Any] = None
    manipulationScores: Optional[Any] = None
    powerDynamics: Optional[Any] = None
    psychologicalPatterns: Optional[Any] = None
    historicalPatterns: Optional[Any] = None
    messageDominance: Optional[Any] = None
    dominanceAnalysis: Optional[Dict[str, Any]] = None
    evasionTactics: Optional[List[Any]] = None
    powerShifts: Optional[List[Any]] = None


class MessageAnalysis(BaseModel):
    tone: Optional[str] = None
    intent: Optional[Union[List[str], str]] = None
    suggestedReply: Optional[str] = None
    potentialResponse: Optional[str] = None
    possibleReword: Optional[str] = None


class DeEscalateResponse(BaseModel):
    original: str
    rewritten: Optional[str] = None
    explanation: Optional[str] = None
    alternativeOptions: Optional[Union[List[str], str]] = None
    additionalContextInsights: Optional[Union[List[str], str]] = None
    longTermStrategy: Optional[str] = None
