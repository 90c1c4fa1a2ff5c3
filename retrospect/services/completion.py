# retrospect/services/completion.py

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from retrospect.core.exceptions import ProviderNotConfigured, UpstreamError

logger = logging.getLogger(__name__)

PARSE_ERROR = "Failed to parse AI response"


@dataclass(frozen=True)
class ModelParams:
    model: str
    temperature: float = 0.2
    max_tokens: int = 3000


@dataclass
class StructuredCompletion:
    """Model output with its best-effort JSON parse.

    ``parsed`` is None when no JSON object could be extracted; ``raw`` is
    always kept so a human can inspect it.
    """

    parsed: Optional[Dict[str, Any]]
    raw: str
    error: Optional[str] = None


def extract_json(text: Optional[str]) -> Optional[Any]:
    """Parse the span from the first ``{`` to the last ``}`` as one JSON value.

    Returns None when there are no braces or the span does not parse. Text
    around the span (prose, code fences) is ignored.
    """
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end < start:
        return None
    try:
        return json.loads(text[start:end + 1])
    except ValueError:
        return None


class CompletionGateway:
    """Thin client for an OpenAI-compatible chat-completion endpoint.

    One request per call: no retries, no backoff. A non-2xx answer raises
    :class:`UpstreamError` carrying the provider's status code.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 90.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_settings(cls, settings) -> "CompletionGateway":
        return cls(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.COMPLETION_TIMEOUT_SECONDS,
        )

    def is_available(self) -> bool:
        return bool(self.api_key)

    async def complete_messages(self, messages: List[Dict[str, str]], params: ModelParams) -> str:
        if not self.is_available():
            raise ProviderNotConfigured("Completion provider API key not configured")

        body = {
            "model": params.model,
            "messages": messages,
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(f"{self.base_url}/chat/completions", json=body, headers=headers)

        if response.is_error:
            logger.error(
                "Completion provider error %s: %s",
                response.status_code,
                response.text[:500],
                extra={"model": params.model},
            )
            raise UpstreamError(response.status_code, response.text)

        try:
            content = response.json()["choices"][0]["message"]["content"]
        except (ValueError, LookupError, TypeError) as exc:
            # a 2xx whose body is not a chat completion is still a provider failure
            logger.error("Malformed completion response: %s", response.text[:500], extra={"model": params.model})
            raise UpstreamError(httpx.codes.BAD_GATEWAY, response.text) from exc
        return content or ""

    async def complete(self, system_prompt: str, user_prompt: str, params: ModelParams) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        return await self.complete_messages(messages, params)

    async def complete_json(self, system_prompt: str, user_prompt: str, params: ModelParams) -> StructuredCompletion:
        text = await self.complete(system_prompt, user_prompt, params)
        parsed = extract_json(text)
        if parsed is None or not isinstance(parsed, dict):
            logger.warning("Could not parse JSON from completion (%d chars)", len(text))
            return StructuredCompletion(parsed=None, raw=text, error=PARSE_ERROR)
        return StructuredCompletion(parsed=parsed, raw=text)
