"""Extraction of the translation and interpretation sections from an LLM completion.

The system prompt asks the model to wrap each section in explicit markers.
Models drift from that format, so extraction degrades in tiers:

1. marker pairs (each searched independently)
2. a "## 专业解读" / "## Interpretation" heading used as a split point
3. the whole completion as the translation
"""
import re as _re
from typing import Optional

from models import ParsedOutput

TRANSLATION_START = "---TRANSLATION_START---"
TRANSLATION_END = "---TRANSLATION_END---"
INTERPRETATION_START = "---INTERPRETATION_START---"
INTERPRETATION_END = "---INTERPRETATION_END---"

_TRANSLATION_RE = _re.compile(
    _re.escape(TRANSLATION_START) + r"(.*?)" + _re.escape(TRANSLATION_END), _re.DOTALL
)
_INTERPRETATION_RE = _re.compile(
    _re.escape(INTERPRETATION_START) + r"(.*?)" + _re.escape(INTERPRETATION_END), _re.DOTALL
)
_HEADING_RE = _re.compile(r"##\s*专业解读|##\s*Interpretation", _re.IGNORECASE)


def _extract(pattern: _re.Pattern, text: str) -> str:
    match = pattern.search(text)
    return match.group(1).strip() if match else ""


def _split_on_heading(text: str) -> Optional[ParsedOutput]:
    parts = _HEADING_RE.split(text)
    if len(parts) < 2:
        return None
    # Anything after a second heading is dropped.
    return ParsedOutput(
        translation=parts[0].replace(TRANSLATION_START, "").strip(),
        interpretation=parts[1].replace(INTERPRETATION_END, "").strip(),
    )


def parse_output(raw: Optional[str]) -> ParsedOutput:
    """Split a raw completion into translation and interpretation. Never raises."""
    text = raw or ""
    translation = _extract(_TRANSLATION_RE, text)
    interpretation = _extract(_INTERPRETATION_RE, text)
    if translation or interpretation:
        return ParsedOutput(translation=translation, interpretation=interpretation)

    split = _split_on_heading(text)
    if split is not None:
        return split
    return ParsedOutput(translation=text, interpretation="")
