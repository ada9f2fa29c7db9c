"""Thin client for an OpenAI-compatible chat-completions API."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import List, Literal, Optional

import requests

from .config import Settings, settings as default_settings
from .domain.age_group import age_group_for
from utils.logging_utils import get_tagged_logger

logger = get_tagged_logger(__name__, tag="openai_client")

REQUEST_TIMEOUT_SEC = 60

Role = Literal["system", "user", "assistant"]


class ChatCompletionConfigError(RuntimeError):
    """The client is missing configuration it needs before it can call out."""


class ChatCompletionError(RuntimeError):
    """The API answered, but not with a usable completion."""

    def __init__(self, message: str, *, status_code: int | None = None, body: object = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass
class ChatMessage:
    role: Role
    content: str


@dataclass
class ChatCompletionRequest:
    messages: List[ChatMessage]
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass
class TokenUsage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatCompletionResponse:
    message: str
    usage: Optional[TokenUsage] = None


@dataclass
class UserStats:
    """Progress figures fed into the motivational prompt."""
    completed_missions: int = 0
    carbon_credits: float = 0
    ranking: int = 0


ECO_TIP_SYSTEM_PROMPT = """You are an environmental expert and sustainability coach.
Generate a practical, actionable eco-friendly tip that users can implement in their daily lives.
The tip should be specific, easy to understand, and include the environmental impact.
Keep it under 150 words and make it engaging."""

MOTIVATION_SYSTEM_PROMPT = """You are a motivational coach for environmental action.
Create encouraging messages based on user progress. Be positive, specific, and inspiring.
Acknowledge their achievements and encourage continued action."""

QUESTION_SYSTEM_PROMPT = """You are an expert environmental scientist and climate action specialist.
Answer questions about climate change, sustainability, environmental protection, and eco-friendly practices.
Provide accurate, scientific information while being accessible to general audiences.
Focus on actionable advice and practical solutions."""

AGE_TIP_SYSTEM_PROMPT = """You write short, concrete environmental tips tailored to a person's stage of life.
Reply with the tip only."""

AGE_TIP_USER_TEMPLATE = """Generate a concise environmental tip for a {age}-year-old person.

Age category: {category}

Focus on:{guidance}

Requirements:
- Maximum 2-3 sentences (under 200 characters total)
- No greetings, no motivational fluff
- Only specific, actionable advice
- Include quantifiable impact when possible
- Direct and practical

Example format: "Switch to LED bulbs. They use 75% less energy and last 25 times longer than incandescent bulbs, saving $80+ annually."

Generate only the tip without any additional text:"""


class ChatCompletionClient:
    """Minimal client for the chat-completions endpoint.

    One request per call: no retries, no response caching. A missing API key
    is reported when a call is attempted, before anything goes on the wire.
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize client configuration from explicit values, falling back to settings."""
        cfg = settings or default_settings
        self.api_key = api_key if api_key is not None else cfg.openai_api_key
        self.base_url = (base_url or cfg.openai_base_url).rstrip("/")
        self.url = f"{self.base_url}/chat/completions"
        self.model = model or cfg.openai_model
        self.temperature = cfg.openai_temperature if temperature is None else temperature
        self.max_tokens = cfg.openai_max_tokens if max_tokens is None else max_tokens
        if not self.api_key:
            logger.warning("OpenAI API key not configured")

    def _headers(self) -> dict:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def create_chat_completion(self, request: ChatCompletionRequest) -> ChatCompletionResponse:
        """Send a chat request and return the first choice plus token usage."""
        if not self.api_key:
            raise ChatCompletionConfigError("OpenAI API key not configured")

        payload = {
            "model": request.model or self.model,
            "messages": [asdict(m) for m in request.messages],
            "temperature": self.temperature if request.temperature is None else request.temperature,
            "max_tokens": self.max_tokens if request.max_tokens is None else request.max_tokens,
        }

        logger.debug("Chat completion POST payload: %s", payload)
        try:
            r = requests.post(self.url, json=payload, headers=self._headers(), timeout=REQUEST_TIMEOUT_SEC)
        except requests.exceptions.RequestException as exc:
            logger.error("Chat completion POST failed: %s", exc)
            raise
        logger.info(
            "Chat completion POST took %.2fs, status %s",
            r.elapsed.total_seconds(),
            r.status_code,
        )

        if not 200 <= r.status_code < 300:
            try:
                body = r.json()
            except ValueError:
                body = r.text
            raise ChatCompletionError(
                f"OpenAI API error: {r.status_code} - {body}",
                status_code=r.status_code,
                body=body,
            )

        try:
            data = r.json()
        except ValueError as exc:
            raise ChatCompletionError(
                f"OpenAI returned non-JSON response: {(r.text or '')[:200]}",
                status_code=r.status_code,
                body=r.text,
            ) from exc

        choices = data.get("choices") or []
        if not choices:
            raise ChatCompletionError("No choices returned from OpenAI API", status_code=r.status_code, body=data)

        content = (choices[0].get("message") or {}).get("content") or ""
        if not content.strip():
            raise ChatCompletionError("No content returned from OpenAI API", status_code=r.status_code, body=data)
        usage = data.get("usage")
        return ChatCompletionResponse(
            message=content,
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens", 0),
                completion_tokens=usage.get("completion_tokens", 0),
                total_tokens=usage.get("total_tokens", 0),
            ) if usage else None,
        )

    def _complete(self, system_prompt: str, user_message: str, *, temperature: float, max_tokens: int) -> str:
        response = self.create_chat_completion(
            ChatCompletionRequest(
                messages=[
                    ChatMessage(role="system", content=system_prompt),
                    ChatMessage(role="user", content=user_message),
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        )
        return response.message

    def generate_eco_tip(self) -> str:
        return self._complete(
            ECO_TIP_SYSTEM_PROMPT,
            "Generate a daily eco tip for me.",
            temperature=0.8,
            max_tokens=200,
        )

    def generate_motivational_message(self, stats: UserStats) -> str:
        user_message = (
            f"Generate a motivational message for a user with {stats.completed_missions} completed missions, "
            f"{stats.carbon_credits} carbon credits, and ranking #{stats.ranking}."
        )
        return self._complete(MOTIVATION_SYSTEM_PROMPT, user_message, temperature=0.7, max_tokens=150)

    def answer_eco_question(self, question: str, context: str | None = None) -> str:
        system_prompt = QUESTION_SYSTEM_PROMPT
        if context:
            system_prompt = f"{system_prompt}\nContext: {context}"
        return self._complete(system_prompt, question, temperature=0.3, max_tokens=600)

    def generate_age_specific_tip(self, user_age: int) -> str:
        """Ask for a short tip aimed at the age bracket `user_age` falls into."""
        group = age_group_for(user_age)
        user_message = AGE_TIP_USER_TEMPLATE.format(age=user_age, category=group.name, guidance=group.guidance())
        return self._complete(AGE_TIP_SYSTEM_PROMPT, user_message, temperature=0.8, max_tokens=200).strip()
