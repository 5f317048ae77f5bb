"""Pydantic schemas, constants, and static data for the translator."""
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# --- Constants ---
AVAILABLE_MODELS = [
    {"id": "gemini-3-pro-preview", "name": "Gemini 3 Pro Preview (Latest)"},
    {"id": "gemini-2.5-pro", "name": "Gemini 2.5 Pro (Stable)"},
    {"id": "gemini-2.5-flash", "name": "Gemini 2.5 Flash (Fast)"},
    {"id": "gemini-2.0-flash", "name": "Gemini 2.0 Flash"},
    {"id": "gemini-1.5-pro", "name": "Gemini 1.5 Pro (Legacy Stable)"},
    {"id": "gemini-1.5-flash", "name": "Gemini 1.5 Flash (Legacy)"},
    {"id": "gpt-4-1106-preview", "name": "GPT-4 Turbo (OpenAI Key)"},
]

DEFAULT_MODEL = os.environ.get("JPLT_DEFAULT_MODEL", "gpt-4-1106-preview")
MAX_INPUT_CHARS = 35000
SUPPORTED_PROVIDERS = ("google", "openai")


# --- Records ---

class ParsedOutput(BaseModel):
    """The two sections pulled out of one raw LLM completion."""
    model_config = ConfigDict(frozen=True)

    translation: str = ""
    interpretation: str = ""


class TranslationRecord(BaseModel):
    """One persisted history entry. Serialized with camelCase keys."""
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str
    timestamp: int  # epoch milliseconds
    model: str
    original_text: str
    translation: str
    interpretation: str
    preview: str


# --- Request models ---

class ProcessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str
    api_key: Optional[str] = Field(default=None, alias="apiKey")
    model: Optional[str] = None


class KeyCheckRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    api_key: Optional[str] = Field(default=None, alias="apiKey")
    provider: str
    model: Optional[str] = None


class ScrapeRequest(BaseModel):
    url: str
