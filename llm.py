"""LLM interaction (Gemini, OpenAI): prompt, provider calls, and error mapping."""
import os
from typing import Optional

import httpx

from log import get_logger
from models import ParsedOutput
from output_parser import parse_output

logger = get_logger("jplt.llm")

# --- Config ---
GEMINI_URL = os.environ.get("JPLT_GEMINI_URL", "https://generativelanguage.googleapis.com/v1beta")
OPENAI_URL = os.environ.get("JPLT_OPENAI_URL", "https://api.openai.com/v1")
LLM_TEMPERATURE = 0.1
LLM_TIMEOUT = 180
TEST_TIMEOUT = 30

# Swapped for httpx.MockTransport in tests.
_transport: Optional[httpx.AsyncBaseTransport] = None

SYSTEM_PROMPT = """
You are an expert legal translator and interpreter specializing in Japanese to Simplified Chinese translation.
Your task is to provide a comprehensive, high-precision translation of the entire provided text, followed by a professional interpretation of key terms and nuances.

**CORE REQUIREMENTS:**

1.  **Full Text Translation (整体翻译)**:
    *   Translate the entire text fluently into formal, written Simplified Chinese (公文体).
    *   Maintain the original structure (paragraphs, bullet points) as much as possible using Markdown.
    *   Do NOT split the text into arbitrary segments; keep the flow natural and professional.
    *   Handle terms like '別途定める' (另行规定), '甲の責任において' (由甲方负责), '準拠する' (依据/遵循), '鑑み' (鉴于) accurately.

2.  **Professional Interpretation (专业解读)**:
    *   After the translation, provide a separate section titled "## 专业解读与术语辨析".
    *   Select key legal/professional terms, ambiguous phrases, or complex clauses from the source text.
    *   Explain their specific legal meaning, binding effects, or why a specific Chinese term was chosen.
    *   Format this section clearly with bullet points.

**OUTPUT FORMAT:**

The output must be strictly in the following Markdown format:

---TRANSLATION_START---
(Place the full Simplified Chinese translation here...)
---TRANSLATION_END---

---INTERPRETATION_START---
(Place the detailed interpretation and glossary here...)
---INTERPRETATION_END---
"""


class TranslationError(Exception):
    """A provider call failed; the message is safe to show to the user."""


def _client(timeout: int) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=timeout, transport=_transport)


def provider_for_model(model: str) -> str:
    return "google" if "gemini" in model.lower() else "openai"


def user_prompt(text: str) -> str:
    return f"Translate and interpret the following text:\n\n{text}"


def _error_detail(resp: httpx.Response) -> str:
    try:
        message = resp.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        message = None
    if not isinstance(message, str) or not message:
        return resp.text[:300]
    return message


def _gemini_error(resp: httpx.Response, model: str) -> TranslationError:
    detail = _error_detail(resp)
    status = resp.status_code
    if status == 404:
        return TranslationError(
            f'Gemini API Error: Model "{model}" not found (404). '
            "Your key might not have access to this model yet."
        )
    if status == 400 and "api key" in detail.lower():
        return TranslationError(
            "Gemini API Key Error (400): The API Key is invalid. Please check for extra spaces or typo."
        )
    if status in (401, 403):
        return TranslationError(f"Gemini API Permission Error: {detail}. Check your API Key.")
    if status == 429:
        return TranslationError("Rate limit exceeded. Please try again later.")
    return TranslationError(f"Gemini API error ({status}): {detail}")


def _openai_error(resp: httpx.Response, model: str) -> TranslationError:
    detail = _error_detail(resp)
    status = resp.status_code
    if status == 404:
        return TranslationError(f'OpenAI API Error: Model "{model}" not found (404).')
    if status in (401, 403):
        return TranslationError(f"OpenAI API Key Error ({status}): {detail}")
    if status == 429:
        return TranslationError("Rate limit exceeded. Please try again later.")
    return TranslationError(f"OpenAI API error ({status}): {detail}")


async def gemini_generate(prompt: str, api_key: str, model: str,
                          temperature: float = LLM_TEMPERATURE, timeout: int = LLM_TIMEOUT) -> str:
    """Call the Gemini generateContent endpoint and return the response text."""
    async with _client(timeout) as client:
        resp = await client.post(
            f"{GEMINI_URL}/models/{model}:generateContent",
            headers={"x-goog-api-key": api_key.strip()},
            json={
                "contents": [{"role": "user", "parts": [{"text": prompt}]}],
                "generationConfig": {"temperature": temperature},
            },
        )
    if resp.status_code != 200:
        logger.warning("Gemini call failed", extra={"component": "llm", "model": model,
                                                    "status_code": resp.status_code})
        raise _gemini_error(resp, model)

    try:
        candidates = resp.json().get("candidates") or []
        parts = candidates[0].get("content", {}).get("parts", []) if candidates else []
        text = "".join(p.get("text") or "" for p in parts)
    except (ValueError, KeyError, TypeError, AttributeError, IndexError):
        raise TranslationError("Gemini API returned a malformed response")
    if not text:
        raise TranslationError("No response text from Gemini API")
    return text


async def openai_chat(messages: list, api_key: str, model: str,
                      temperature: float = LLM_TEMPERATURE, timeout: int = LLM_TIMEOUT) -> str:
    """Call the OpenAI chat completions endpoint and return the content string."""
    async with _client(timeout) as client:
        resp = await client.post(
            f"{OPENAI_URL}/chat/completions",
            headers={"Authorization": f"Bearer {api_key.strip()}"},
            json={"model": model, "messages": messages, "temperature": temperature},
        )
    if resp.status_code != 200:
        logger.warning("OpenAI call failed", extra={"component": "llm", "model": model,
                                                    "status_code": resp.status_code})
        raise _openai_error(resp, model)

    try:
        choices = resp.json().get("choices") or []
        content = choices[0].get("message", {}).get("content") if choices else None
    except (ValueError, KeyError, TypeError, AttributeError, IndexError):
        raise TranslationError("OpenAI API returned a malformed response")
    if content is not None and not isinstance(content, str):
        raise TranslationError("OpenAI API returned a malformed response")
    if not content:
        raise TranslationError("No content received from OpenAI")
    return content


def mock_translation(text: str, model: str) -> ParsedOutput:
    return ParsedOutput(
        translation=(
            f"[{model} 模拟全文翻译]\n\n"
            "这是对原文本的模拟翻译结果。在真实模式下，这里将显示完整、流畅的简体中文公文体翻译，保留段落结构。"
        ),
        interpretation=f"[{model} 模拟专业解读]\n\n* **模拟术语1**: 解释...\n* **模拟术语2**: 解释...",
    )


async def translate_content(text: str, api_key: Optional[str], model: str) -> ParsedOutput:
    """Translate and interpret `text` with the provider that serves `model`.

    Without an API key a canned result is returned so the UI can be exercised
    offline. Provider failures raise TranslationError.
    """
    if not api_key:
        logger.warning("No API key provided, returning mock data", extra={"component": "llm", "model": model})
        return mock_translation(text, model)

    provider = provider_for_model(model)
    try:
        if provider == "google":
            raw = await gemini_generate(f"{SYSTEM_PROMPT}\n\n{user_prompt(text)}", api_key, model)
        else:
            raw = await openai_chat(
                [{"role": "system", "content": SYSTEM_PROMPT},
                 {"role": "user", "content": user_prompt(text)}],
                api_key, model,
            )
    except httpx.HTTPError as e:
        logger.exception("Translation request failed", extra={"component": "llm", "model": model,
                                                             "provider": provider})
        raise TranslationError(f"Translation failed with model {model}: {str(e) or type(e).__name__}") from e
    return parse_output(raw)


async def check_connection(api_key: str, provider: str, model: Optional[str] = None) -> dict:
    """Make the cheapest possible authenticated call to check a key."""
    try:
        if provider == "google":
            text = await gemini_generate("Hello", api_key, model or "gemini-1.5-flash", timeout=TEST_TIMEOUT)
            return {"success": True, "message": "Gemini API Connected!", "detail": f"Response: {text[:10]}..."}
        if provider == "openai":
            async with _client(TEST_TIMEOUT) as client:
                resp = await client.get(
                    f"{OPENAI_URL}/models",
                    headers={"Authorization": f"Bearer {api_key.strip()}"},
                )
            if resp.status_code != 200:
                raise _openai_error(resp, model or "")
            return {"success": True, "message": "OpenAI API Connected!"}
    except (TranslationError, httpx.HTTPError) as e:
        logger.warning("Key test failed", extra={"component": "llm", "provider": provider, "detail": str(e)})
        return {"success": False, "message": f"Connection Failed: {e}"}
    return {"success": False, "message": "Unknown provider"}
