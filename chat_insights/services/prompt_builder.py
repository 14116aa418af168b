"""
Prompt construction for every LLM call the service makes.

One parameterized template per analysis kind: the tier selects a schema
descriptor (which JSON fields the model must return and which extra
guidance applies), and the same standing format rules are appended for
every tier. Building a prompt never inspects the conversation and never
fails; unknown tiers use the free template.
"""
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..config import settings
from ..core.tiers import DEFAULT_TIER, normalize_tier


PLACEHOLDER_RE = re.compile(r"\{(me|them|severity_min|severity_max)\}")


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str
    max_tokens: int


@dataclass(frozen=True)
class ChatSchema:
    """What one tier asks the model for."""
    intro: str
    schema: str
    guidance: str
    severity_range: Tuple[int, int]


FORMAT_RULES = """EXTREMELY CRITICAL: You MUST follow these output format requirements EXACTLY:
1. You MUST ONLY return clean, syntactically perfect JSON with NO explanations outside the JSON
2. You MUST wrap your output in code block markers: ```json at start and ``` at end
3. ONLY reference text that appears verbatim in the conversation when quoting
4. NEVER use single quotes anywhere in the JSON - ONLY use double quotes
5. ALL property names MUST be in "double quotes"
6. DO NOT use trailing commas at the end of arrays or objects
7. KEEP every field concise - 25 words maximum for any field
8. NEVER use line returns inside string values - use spaces instead
9. NEVER use characters that would break JSON
10. DO NOT include any text outside the JSON code block

This is a TECHNICAL INTEGRATION - your JSON MUST be machine-parseable."""

CHAT_SYSTEM_PROMPT = (
    "You are a communication expert who analyzes tone and patterns in conversations.\n\n"
    + FORMAT_RULES
    + "\n\nFor the {tier} tier, include only the fields specified in the prompt."
)

MESSAGE_SYSTEM_PROMPT = (
    "You are a communication expert who analyzes messages to determine tone and intent.\n\n"
    + FORMAT_RULES
)

DE_ESCALATE_SYSTEM_PROMPT = (
    "You are a communication expert who transforms emotional messages into constructive ones.\n\n"
    + FORMAT_RULES
)

NAMES_SYSTEM_PROMPT = """You are a name extraction system. ONLY respond with a simple JSON object with "me" and "them" fields.

NO explanations. NO markdown. JUST a JSON object like this:
{"me":"Name1","them":"Name2"}"""

_HEALTH_SCORE_SCHEMA = """  "healthScore": {
    "score": 50,
    "label": "Conflict/Tension/Stable/Healthy",
    "color": "red/yellow/light-green/green"
  }"""

CHAT_SCHEMAS: Dict[str, ChatSchema] = {
    "free": ChatSchema(
        intro="Provide a basic tone analysis of the conversation between {me} and {them}.",
        schema="""{
  "toneAnalysis": {
    "overallTone": "simple description",
    "emotionalState": [{"emotion": "primary", "intensity": 0.7}],
    "participantTones": {"{me}": "brief tone", "{them}": "brief tone"}
  },
  "communication": {
    "patterns": ["pattern one", "pattern two"]
  },
""" + _HEALTH_SCORE_SCHEMA + """,
  "keyQuotes": [{"speaker": "name", "quote": "exact message text", "analysis": "brief interpretation"}]
}""",
        guidance="""FREE TIER GUIDELINES:
- Limit keyQuotes to the 1-2 most important quotes
- Do NOT include redFlags or any field not listed above
- Emotions must be single words and intensity between 0.1 and 1.0
- Each pattern must be unique and distinct""",
        severity_range=(1, 5),
    ),
    "personal": ChatSchema(
        intro="Analyze this conversation between {me} and {them} with a personal-level depth.",
        schema="""{
  "toneAnalysis": {
    "overallTone": "description of the overall tone",
    "emotionalState": [{"emotion": "string", "intensity": 0.5}],
    "participantTones": {"{me}": "tone description", "{them}": "tone description"}
  },
  "redFlags": [
    {
      "type": "string",
      "description": "clear description",
      "severity": 3,
      "participant": "name of participant showing this behavior",
      "examples": [{"text": "exact quote from conversation", "from": "participant name"}]
    }
  ],
  "communication": {
    "patterns": ["specific communication patterns observed"],
    "suggestions": ["personalized suggestions for improvement"]
  },
""" + _HEALTH_SCORE_SCHEMA + """,
  "keyQuotes": [{"speaker": "name", "quote": "exact message text", "analysis": "interpretation", "improvement": "constructive rewording"}],
  "highTensionFactors": ["clear reasons for tension"],
  "participantConflictScores": {"{me}": {"score": 50, "label": "style", "isEscalating": false}},
  "tensionContributions": {"{me}": ["specific actions that contribute to tension"]},
  "tensionMeaning": "what the tension means for the relationship"
}""",
        guidance="""RULES FOR RED FLAGS:
- Each red flag must identify the specific participant exhibiting the behavior
- Include at least one direct quote from the conversation for each red flag
- Set "from" in examples and "participant" to either "{me}" or "{them}"
- Severity must be a number between {severity_min} and {severity_max}""",
        severity_range=(1, 5),
    ),
    "pro": ChatSchema(
        intro="Provide a detailed professional analysis of the conversation between {me} and {them}.",
        schema="""{
  "toneAnalysis": {
    "overallTone": "brief professional assessment",
    "emotionalState": [{"emotion": "primary", "intensity": 0.8}],
    "participantTones": {"{me}": "concise tone description", "{them}": "concise tone description"}
  },
  "redFlags": [
    {
      "type": "issue",
      "description": "brief description",
      "severity": 3,
      "participant": "name of participant",
      "examples": [{"text": "exact quote from conversation", "from": "participant name"}],
      "impact": "how this behavior affects the relationship",
      "recommendedAction": "specific action to address this issue",
      "behavioralPattern": "how this connects to larger patterns",
      "progression": "how this behavior typically develops over time"
    }
  ],
  "communication": {
    "patterns": ["key pattern one", "key pattern two"],
    "suggestions": ["improvement suggestion one"]
  },
""" + _HEALTH_SCORE_SCHEMA + """,
  "keyQuotes": [{"speaker": "{me}", "quote": "exact quote text", "analysis": "brief interpretation", "improvement": "constructive reframe"}],
  "highTensionFactors": ["reason and which participant contributes more"],
  "participantConflictScores": {
    "{me}": {"score": 45, "label": "brief description", "isEscalating": false},
    "{them}": {"score": 65, "label": "brief description", "isEscalating": true}
  },
  "tensionContributions": {"{me}": ["specific action"], "{them}": ["specific action"]},
  "tensionMeaning": "brief explanation of what the tension means"
}""",
        guidance="""STRICT RULES:
- ALWAYS include at least 2 examples with direct quotes for each red flag
- Each example must include the exact text from the conversation
- Set "from" in examples and "participant" to either "{me}" or "{them}"
- Label must be one of: Conflict, Tension, Stable, Healthy
- Color must be one of: red, yellow, light-green, green
- Severity must be a number between {severity_min} and {severity_max}
- All scores must be 0-100""",
        severity_range=(1, 5),
    ),
}
CHAT_SCHEMAS["instant"] = CHAT_SCHEMAS["pro"]
CHAT_SCHEMAS["beta"] = CHAT_SCHEMAS["pro"]


MESSAGE_SCHEMAS: Dict[str, str] = {
    "free": """{
  "tone": "brief description of the tone",
  "intent": ["basic likely intentions"]
}""",
    "personal": """{
  "tone": "description of the tone with emotion recognition",
  "intent": ["likely intentions"],
  "suggestedReply": "personalized suggested response"
}""",
    "pro": """{
  "tone": "description of the tone with emotional nuance and subtext",
  "intent": ["primary and secondary intentions"],
  "suggestedReply": "tailored response recommendation",
  "potentialResponse": "how the other person might respond",
  "possibleReword": "reframed version of the message"
}""",
}
MESSAGE_SCHEMAS["instant"] = MESSAGE_SCHEMAS["pro"]
MESSAGE_SCHEMAS["beta"] = MESSAGE_SCHEMAS["pro"]

DE_ESCALATE_SCHEMAS: Dict[str, str] = {
    "free": """{
  "original": "the original message",
  "rewritten": "rewritten message that is calmer and more constructive",
  "explanation": "explanation of changes made"
}""",
    "personal": """{
  "original": "the original message",
  "rewritten": "thoughtfully rewritten message",
  "explanation": "the communication issues and improvements made",
  "alternativeOptions": "1-2 alternative approaches"
}""",
    "pro": """{
  "original": "the original message",
  "rewritten": "strategic, constructive rewrite",
  "explanation": "communication issues and reasoning behind the changes",
  "additionalContextInsights": "underlying issues that may need addressing",
  "longTermStrategy": "how to address the deeper pattern"
}""",
}
DE_ESCALATE_SCHEMAS["instant"] = DE_ESCALATE_SCHEMAS["pro"]
DE_ESCALATE_SCHEMAS["beta"] = DE_ESCALATE_SCHEMAS["pro"]


def _fill(template: str, **values: str) -> str:
    # str.format would choke on the JSON braces in the schemas; one pass so
    # substituted names are never substituted again
    return PLACEHOLDER_RE.sub(lambda m: values.get(m.group(1), m.group(0)), template)


def chat_schema_for(tier: str) -> ChatSchema:
    return CHAT_SCHEMAS.get(normalize_tier(tier), CHAT_SCHEMAS[DEFAULT_TIER])


def build_chat_prompt(
    conversation_text: str,
    me: str,
    them: str,
    tier: str = DEFAULT_TIER,
    extra_context: Optional[str] = None,
) -> PromptPair:
    """
    Build the system and user prompt for a full chat analysis.

    The conversation is appended verbatim at the end of the user prompt,
    cut to ``settings.llm_max_chars``.
    """
    tier_name = normalize_tier(tier)
    chat_schema = chat_schema_for(tier_name)
    severity_min, severity_max = chat_schema.severity_range

    parts = [
        _fill(chat_schema.intro, me=me, them=them),
        "Carefully distinguish between participants and attribute each behavior to the right person.",
    ]
    if extra_context:
        parts.append(extra_context.strip())
    parts.append("Return ONLY a JSON object with this EXACT structure:")
    parts.append(_fill(chat_schema.schema, me=me, them=them))
    parts.append(
        _fill(
            chat_schema.guidance,
            me=me,
            them=them,
            severity_min=str(severity_min),
            severity_max=str(severity_max),
        )
    )
    parts.append("Here's the conversation:\n" + conversation_text[: settings.llm_max_chars])

    return PromptPair(
        system=CHAT_SYSTEM_PROMPT.replace("{tier}", tier_name.upper()),
        user="\n\n".join(parts),
        max_tokens=settings.llm_max_tokens,
    )


def build_message_prompt(message: str, author: str, tier: str = DEFAULT_TIER) -> PromptPair:
    tier_name = normalize_tier(tier)
    user = (
        f"Analyze this message sent by {author}. Focus on the tone and intent of the message.\n"
        "Return a JSON object with the following structure:\n"
        f"{MESSAGE_SCHEMAS[tier_name]}\n\n"
        f"Here's the message:\n{message}"
    )
    return PromptPair(
        system=MESSAGE_SYSTEM_PROMPT,
        user=user,
        max_tokens=settings.llm_message_max_tokens,
    )


def build_de_escalate_prompt(message: str, tier: str = DEFAULT_TIER) -> PromptPair:
    tier_name = normalize_tier(tier)
    user = (
        "Rewrite this emotional message in a calmer, more constructive way "
        "that keeps the author's core concerns.\n"
        "Return a JSON object with the following structure:\n"
        f"{DE_ESCALATE_SCHEMAS[tier_name]}\n\n"
        f"Here's the message:\n{message}"
    )
    return PromptPair(
        system=DE_ESCALATE_SYSTEM_PROMPT,
        user=user,
        max_tokens=settings.llm_message_max_tokens,
    )


def build_names_prompt(excerpt: str) -> PromptPair:
    user = (
        "Identify the two main names in this conversation, showing them in this simple JSON format:\n"
        '{"me": "Name1", "them": "Name2"}\n\n'
        f"First few lines of conversation:\n{excerpt}"
    )
    return PromptPair(
        system=NAMES_SYSTEM_PROMPT,
        user=user,
        max_tokens=settings.llm_names_max_tokens,
    )
