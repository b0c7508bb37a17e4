"""
Anthropic client for plan drafting and goal review.

Calls are single, non-streaming completions. Overload, rate limit and
network failures are retried with jittered exponential backoff; anything
else surfaces as AIServiceError (502). Without ANTHROPIC_API_KEY the client
is never built and callers get AINotConfiguredError (503).
"""
import asyncio
import json
import random
import re
from typing import Any, Dict, List, Optional

import httpx
from anthropic import APIConnectionError, APIError, APIStatusError, APITimeoutError, AsyncAnthropic

from myteacher.core.config import settings
from myteacher.core.exceptions import AIResponseParseError, AINotConfiguredError, AIServiceError
from myteacher.core.logging_config import logger

RETRY_STATUS_CODES = frozenset({429, 500, 502, 503, 529})
RETRY_ERROR_TYPES = frozenset({"overloaded_error", "rate_limit_error", "api_error"})

_JSON_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


def is_transient(error: Exception) -> bool:
    if isinstance(error, (APIConnectionError, APITimeoutError, httpx.TransportError)):
        return True
    if isinstance(error, APIStatusError):
        body = error.body if isinstance(error.body, dict) else {}
        error_type = (body.get("error") or {}).get("type", "")
        return error_type in RETRY_ERROR_TYPES or error.status_code in RETRY_STATUS_CODES
    return False


def backoff_delay(attempt: int) -> float:
    base = min(settings.CLAUDE_RETRY_BASE_DELAY * 2 ** attempt, settings.CLAUDE_RETRY_MAX_DELAY)
    return base * random.uniform(1.0, 1.25)


class ClaudeClient:

    def __init__(self):
        read_timeout = float(settings.CLAUDE_REQUEST_TIMEOUT)
        options: Dict[str, Any] = {
            "api_key": settings.ANTHROPIC_API_KEY,
            "timeout": httpx.Timeout(read_timeout, connect=float(settings.CLAUDE_CONNECT_TIMEOUT)),
            # retries are handled here so they show up in our logs
            "max_retries": 0,
        }
        base_url = settings.ANTHROPIC_BASE_URL.strip()
        if base_url:
            options["base_url"] = base_url
        self.async_client = AsyncAnthropic(**options)
        self.model = settings.CLAUDE_MODEL
        self.max_retries = settings.CLAUDE_MAX_RETRIES
        logger.info(f"Claude client ready (model={self.model}, base_url={base_url or 'default'})")

    async def _create(self, **request):
        for attempt in range(self.max_retries + 1):
            try:
                return await self.async_client.messages.create(**request)
            except (APIError, httpx.HTTPError) as e:
                kind = type(e).__name__
                if attempt >= self.max_retries or not is_transient(e):
                    logger.error(
                        f"Claude request failed after {attempt + 1} attempt(s): {kind}: {e}",
                        extra={"event_type": "claude_api_error", "error_type": kind},
                    )
                    raise AIServiceError(f"Content generation failed: {kind}") from e
                delay = backoff_delay(attempt)
                logger.warning(
                    f"Claude {kind}, retry {attempt + 1}/{self.max_retries} in {delay:.1f}s",
                    extra={"event_type": "claude_api_retry", "error_type": kind, "retry_delay": delay},
                )
                await asyncio.sleep(delay)
        raise AIServiceError("Content generation failed")

    async def generate(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        messages: Optional[List[Dict[str, str]]] = None,
    ) -> Dict[str, Any]:
        """
        Returns content (joined text blocks), model, input/output/total
        token counts, stop_reason and the response id.
        """
        response = await self._create(
            model=self.model,
            max_tokens=max_tokens or settings.CLAUDE_MAX_TOKENS,
            temperature=settings.CLAUDE_TEMPERATURE if temperature is None else temperature,
            system=system_prompt or "",
            messages=[*(messages or []), {"role": "user", "content": prompt}],
        )
        usage = response.usage
        text = "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
        logger.info(
            f"Claude {response.id}: {usage.input_tokens}+{usage.output_tokens} tokens, stop={response.stop_reason}"
        )
        return {
            "content": text,
            "model": self.model,
            "input_tokens": usage.input_tokens,
            "output_tokens": usage.output_tokens,
            "total_tokens": usage.input_tokens + usage.output_tokens,
            "stop_reason": response.stop_reason,
            "id": response.id,
        }

    async def generate_json(self, prompt: str, system_prompt: Optional[str] = None, **kwargs) -> Dict[str, Any]:
        result = await self.generate(prompt, system_prompt=system_prompt, **kwargs)
        return parse_json_response(result["content"])


def parse_json_response(content: str) -> Dict[str, Any]:
    """JSON object from a reply that may wrap it in a ```json fence or prose"""
    text = content.strip()
    fenced = _JSON_FENCE.search(text)
    if fenced:
        text = fenced.group(1).strip()
    else:
        start, end = text.find("{"), text.rfind("}")
        if start != -1 and end > start:
            text = text[start:end + 1]
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise AIResponseParseError(f"Model returned invalid JSON: {e.msg}") from e
    if not isinstance(parsed, dict):
        raise AIResponseParseError("Model returned JSON that is not an object")
    return parsed


_client: Optional[ClaudeClient] = None


def get_claude_client() -> ClaudeClient:
    global _client
    if not settings.ANTHROPIC_API_KEY:
        raise AINotConfiguredError()
    if _client is None:
        _client = ClaudeClient()
    return _client
