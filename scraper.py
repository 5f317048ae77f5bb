"""Fetch a web page and pull out its main body text for translation."""
import re as _re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from log import get_logger

logger = get_logger("jplt.scraper")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SCRAPE_TIMEOUT = 30
MAX_SCRAPED_CHARS = 15000
MIN_MAIN_TEXT = 200

_NOISE_SELECTORS = "script, style, nav, footer, header, .ads, .sidebar"
_MAIN_SELECTORS = ["main", "article", "#content", ".content", "#main", ".main", "body"]
_TEXT_TAGS = ["p", "h1", "h2", "h3", "h4", "h5", "li", "div"]
_SJIS_META_RE = _re.compile(r"""charset=["']?shift_jis["']?""", _re.IGNORECASE)


class ScrapeError(Exception):
    pass


def decode_body(body: bytes, content_type: str = "") -> str:
    """Decode a response body, honouring Shift_JIS from the header or a meta tag."""
    ctype = content_type.lower()
    if "shift_jis" in ctype:
        return body.decode("shift_jis", errors="replace")
    if "utf-8" not in ctype and _SJIS_META_RE.search(body[:1000].decode("ascii", errors="ignore")):
        return body.decode("shift_jis", errors="replace")
    return body.decode("utf-8", errors="replace")


def extract_main_text(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.select(_NOISE_SELECTORS):
        element.decompose()

    text = ""
    for selector in _MAIN_SELECTORS:
        container = soup.select_one(selector)
        if container is None:
            continue
        paragraphs = []
        for el in container.find_all(_TEXT_TAGS):
            t = el.get_text().strip()
            if t:
                paragraphs.append(t)
        # dict keeps first-seen order
        text = "\n".join(dict.fromkeys(paragraphs))
        if len(text) > MIN_MAIN_TEXT:
            break

    if not text and soup.body is not None:
        text = _re.sub(r"\s+", " ", soup.body.get_text()).strip()
    return text[:MAX_SCRAPED_CHARS]


async def scrape_url(url: str, transport: Optional[httpx.AsyncBaseTransport] = None) -> str:
    try:
        async with httpx.AsyncClient(timeout=SCRAPE_TIMEOUT, follow_redirects=True,
                                     transport=transport) as client:
            resp = await client.get(url, headers={"User-Agent": USER_AGENT})
            resp.raise_for_status()
    except httpx.HTTPError as e:
        logger.warning("Scrape failed", extra={"component": "scraper", "url": url, "detail": str(e)})
        raise ScrapeError(f"Failed to scrape {url}") from e
    return extract_main_text(decode_body(resp.content, resp.headers.get("content-type", "")))
