import logging
from typing import Optional

import httpx

from ..context import ExternalClientContext
from ..errors import LLMError
from .prompts import PromptPayload

logger = logging.getLogger(__name__)

ANTHROPIC_VERSION = "2023-06-01"


class LLMClient:
    """Single-turn completion calls against the messages API."""

    def __init__(self, context: ExternalClientContext):
        self.context = context
        self.settings = context.settings

    async def complete(self, prompt: PromptPayload, max_tokens: Optional[int] = None) -> str:
        if not self.settings.anthropic_api_key:
            raise LLMError("ANTHROPIC_API_KEY not set")

        url = f"{self.settings.anthropic_base_url}/v1/messages"
        headers = {
            "x-api-key": self.settings.anthropic_api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }
        body = {
            "model": self.settings.llm_model,
            "max_tokens": max_tokens or self.settings.llm_max_tokens,
            "system": prompt.system,
            "messages": [{"role": "user", "content": prompt.task}],
        }
        timeout_s = self.settings.llm_timeout

        try:
            async with httpx.AsyncClient(timeout=timeout_s, transport=self.context.transport) as client:
                resp = await client.post(url, headers=headers, json=body)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException:
            raise LLMError(f"LLM request timed out after {int(timeout_s)}s")
        except httpx.HTTPStatusError as e:
            # Surface useful error message if available
            try:
                err = e.response.json()
            except ValueError:
                err = {"detail": e.response.text}
            raise LLMError(f"LLM HTTP {e.response.status_code}: {err}")
        except (httpx.TransportError, ValueError) as e:
            raise LLMError(f"LLM request failed: {e}")

        blocks = data.get("content") if isinstance(data, dict) else None
        if not isinstance(blocks, list):
            raise LLMError("LLM response has no content blocks")
        text = "\n".join(
            b.get("text", "") for b in blocks if isinstance(b, dict) and b.get("type") == "text"
        )
        if not text.strip():
            raise LLMError("LLM response has no text content")
        return text
