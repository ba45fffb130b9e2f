"""Thin Gemini REST client used by the enrichment adapter."""
from typing import Optional

import httpx

from bloodwise import settings

GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


async def generate_text(
    prompt: str,
    system: Optional[str] = None,
    temperature: float = 0.3,
    max_output_tokens: int = 1000,
    timeout_s: Optional[float] = None,
) -> str:
    """Send one prompt to Gemini and return the first candidate's text.

    Raises on transport or HTTP errors and on an empty reply; callers decide
    how to degrade.
    """
    if not settings.GEMINI_API_KEY:
        raise RuntimeError("GEMINI_API_KEY is not configured")

    body = {
        "contents": [{"role": "user", "parts": [{"text": prompt.strip()}]}],
        "generationConfig": {"temperature": temperature, "maxOutputTokens": max_output_tokens},
    }
    if system:
        body["systemInstruction"] = {"parts": [{"text": system}]}

    async with httpx.AsyncClient(timeout=timeout_s or settings.ENRICHMENT_TIMEOUT_S) as client:
        r = await client.post(
            GEMINI_URL.format(model=settings.GEMINI_MODEL),
            params={"key": settings.GEMINI_API_KEY},
            headers={"Content-Type": "application/json"},
            json=body,
        )
        r.raise_for_status()
        data = r.json()

    text = (
        (data.get("candidates") or [{}])[0]
        .get("content", {})
        .get("parts", [{}])[0]
        .get("text", "")
        or ""
    ).strip()
    if not text:
        raise ValueError("Gemini returned an empty response")
    return text
