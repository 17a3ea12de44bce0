"""Generative AI API client - herd assistant calls only.

Every outbound request passes through the shared rate limiter before it
is sent, including each retry attempt.
"""

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from rebanho.core.config import settings
from rebanho.core.ratelimit import RateLimiter, ai_rate_limiter

if TYPE_CHECKING:
    from rebanho.data.models import Animal

logger = logging.getLogger(__name__)

API_URL = "https://generativelanguage.googleapis.com/v1beta"

# =============================================================================
# Retry Configuration
# =============================================================================

MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 10


# =============================================================================
# Exceptions
# =============================================================================


class RetryableError(Exception):
    """Transient error that should be retried (timeouts, connection errors, 5xx)."""

    pass


class AssistantAPIError(Exception):
    """Non-retryable error from the generative AI API."""

    pass


class MissingAPIKeyError(AssistantAPIError):
    """Raised when no API key is configured."""

    pass


# =============================================================================
# Client Functions
# =============================================================================


def _extract_text(result: dict) -> str:
    candidates = result.get("candidates") or []
    if not candidates:
        raise AssistantAPIError("Empty response: no candidates returned")
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts)
    if not text:
        raise AssistantAPIError("Empty response: no text in first candidate")
    return text


async def _post_generate(prompt: str, model: str) -> dict:
    """Send one generateContent request without retry or rate limiting."""
    if not settings.gemini_api_key:
        raise MissingAPIKeyError("GEMINI_API_KEY is not configured")

    async with httpx.AsyncClient() as client:
        response = await client.post(
            f"{API_URL}/models/{model}:generateContent",
            headers={
                "x-goog-api-key": settings.gemini_api_key,
                "Content-Type": "application/json",
            },
            json={"contents": [{"role": "user", "parts": [{"text": prompt}]}]},
            timeout=60,
        )
        response.raise_for_status()
        return response.json()


@retry(
    retry=retry_if_exception_type(RetryableError),
    stop=stop_after_attempt(MAX_RETRIES),
    wait=wait_exponential_jitter(initial=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS, jitter=2),
    reraise=True,
)
async def generate_content(
    prompt: str,
    *,
    limiter: RateLimiter | None = None,
    wait: bool = False,
    model: str | None = None,
) -> str:
    """Generate a text answer for a prompt.

    Retries on timeouts, connection errors and HTTP 5xx. Each attempt
    takes a slot from the limiter first.

    Args:
        prompt: Prompt text
        limiter: Rate limiter to use (defaults to the shared AI limiter)
        wait: Sleep until the limiter admits the call instead of failing
        model: Model name (defaults to settings.gemini_model)

    Returns:
        Text of the first candidate

    Raises:
        RateLimitExceeded: If the limiter rejects the call (never retried)
        AssistantAPIError: If all retries fail or a non-retryable error occurs
    """
    limiter = limiter or ai_rate_limiter
    model = model or settings.gemini_model

    if wait:
        await limiter.wait_and_acquire(settings.ai_max_wait_ms)
    else:
        limiter.acquire()

    logger.info("Calling %s (%d chars)", model, len(prompt))
    try:
        result = await _post_generate(prompt, model)
    except httpx.TimeoutException as e:
        raise RetryableError(f"Request timed out: {e}") from e
    except httpx.ConnectError as e:
        raise RetryableError(f"Connection failed: {e}") from e
    except httpx.HTTPStatusError as e:
        body = e.response.text
        if e.response.status_code >= 500:
            # Server error - retry with backoff
            raise RetryableError(f"HTTP {e.response.status_code}: {body}") from e
        # Client error (4xx) - don't retry, include full response
        raise AssistantAPIError(f"HTTP {e.response.status_code}: {body}") from e

    return _extract_text(result)


async def ask_about_herd(
    question: str,
    animals: Iterable["Animal"],
    *,
    limiter: RateLimiter | None = None,
    wait: bool = False,
) -> str:
    """Ask the assistant a question with a herd summary as context."""
    from rebanho.data.herd import summarize_herd

    summary = summarize_herd(animals)
    lines = [
        "Você é um assistente de manejo de gado de corte.",
        "Responda em português, de forma objetiva, usando apenas os dados abaixo.",
        "",
        f"Total de animais: {summary['total']}",
    ]
    for section in ("by_status", "by_sex", "by_breed"):
        counts = ", ".join(f"{k}: {v}" for k, v in summary[section].items())
        lines.append(f"{section}: {counts}")
    lines.extend(["", f"Pergunta: {question}"])

    return await generate_content("\n".join(lines), limiter=limiter, wait=wait)
