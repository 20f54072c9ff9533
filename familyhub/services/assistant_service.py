"""Assistant gateway: stateless proxy to the Gemini text-generation API.

Builds a `generateContent` request from the caller's message, recent
history and system instruction, and returns the first candidate's text.
"""

import logging

import httpx

from familyhub.config import settings
from familyhub.errors import UpstreamUnavailable, ValidationError
from familyhub.schemas.assistant import AssistantChatRequest, ChatTurn

logger = logging.getLogger(__name__)

MAX_TEMPERATURE = 1.9


def _normalize_model(model: str) -> str:
    model = model.strip()
    return model if model.startswith("models/") else f"models/{model}"


def _turn_role(turn: ChatTurn) -> str:
    return "model" if turn.role in ("assistant", "model") else "user"


class AssistantGateway:
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        history_limit: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = settings.assistant_api_key if api_key is None else api_key
        self._model = _normalize_model(model or settings.assistant_model)
        self._base_url = (base_url or settings.assistant_base_url).rstrip("/")
        self._history_limit = history_limit or settings.assistant_history_limit
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def build_payload(self, request: AssistantChatRequest) -> dict:
        system = (request.system or "").strip() or settings.assistant_system_prompt
        history = request.history[-self._history_limit:] if self._history_limit else []

        contents = [{"role": "user", "parts": [{"text": system}]}]
        for turn in history:
            if turn.text:
                contents.append({"role": _turn_role(turn), "parts": [{"text": turn.text}]})
        contents.append({"role": "user", "parts": [{"text": request.message}]})

        payload: dict = {"contents": contents}
        if request.temperature is not None:
            payload["generationConfig"] = {
                "temperature": min(max(request.temperature, 0.0), MAX_TEMPERATURE),
            }
        return payload

    async def chat(self, request: AssistantChatRequest) -> str:
        if not request.message.strip():
            raise ValidationError("Message is required")
        if not self.configured:
            raise UpstreamUnavailable("AI service not configured")

        url = f"{self._base_url}/{self._model}:generateContent"
        try:
            async with httpx.AsyncClient(
                transport=self._transport,
                timeout=settings.request_timeout_seconds,
            ) as client:
                response = await client.post(
                    url,
                    params={"key": self._api_key},
                    json=self.build_payload(request),
                )
        except httpx.HTTPError as e:
            logger.error("Assistant request failed: %s", e)
            raise UpstreamUnavailable("AI service unreachable") from e

        if response.status_code >= 400:
            logger.error("Assistant error response %s: %s", response.status_code, response.text[:500])
            raise UpstreamUnavailable(f"AI service returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error("Assistant returned a non-JSON body: %s", response.text[:500])
            raise UpstreamUnavailable("AI service returned an invalid response") from e
        if not isinstance(data, dict):
            raise UpstreamUnavailable("AI service returned an invalid response")

        blocked = (data.get("promptFeedback") or {}).get("blockReason")
        if blocked:
            raise UpstreamUnavailable(f"Request blocked: {blocked}")

        for candidate in data.get("candidates") or []:
            parts = (candidate.get("content") or {}).get("parts") or []
            text = "".join(p.get("text", "") for p in parts).strip()
            if text:
                return text
        raise UpstreamUnavailable("AI service returned no text")
