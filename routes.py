"""API route handlers for the translator."""
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response

from log import get_logger
from models import (
    AVAILABLE_MODELS, DEFAULT_MODEL, MAX_INPUT_CHARS, SUPPORTED_PROVIDERS,
    ProcessRequest, KeyCheckRequest, ScrapeRequest,
)
from auth import require_password, enforce_rate_limit
from history import HistoryStore
from storage import SqliteStore
import llm
from scraper import scrape_url, ScrapeError

logger = get_logger("jplt.routes")

router = APIRouter()

_history_store: Optional[HistoryStore] = None


def get_history_store() -> HistoryStore:
    global _history_store
    if _history_store is None:
        _history_store = HistoryStore(SqliteStore())
    return _history_store


@router.get("/api/health", tags=["Meta"], summary="Service health")
async def health():
    store = get_history_store()
    return {"status": "ok", "history": {"count": len(store.list()), "capacity": store.capacity}}


@router.get("/api/models", tags=["Meta"], summary="Selectable LLM models")
async def list_models():
    return {"models": AVAILABLE_MODELS, "default": DEFAULT_MODEL}


@router.post("/api/process", tags=["Translation"], summary="Translate and interpret Japanese legal text")
async def process_text(
    req: ProcessRequest,
    _pw=Depends(require_password),
    _rl=Depends(enforce_rate_limit),
):
    if not req.text or not req.text.strip():
        raise HTTPException(400, "Text content cannot be empty")
    if len(req.text) > MAX_INPUT_CHARS:
        raise HTTPException(400, f"Text too long. Please limit to {MAX_INPUT_CHARS} characters.")

    model = req.model or DEFAULT_MODEL
    try:
        result = await llm.translate_content(req.text, req.api_key, model)
    except llm.TranslationError as e:
        raise HTTPException(502, str(e))

    if result.translation and result.interpretation:
        get_history_store().save(req.text, result.translation, result.interpretation, model)
    else:
        logger.info("Incomplete result not saved to history", extra={"component": "routes", "model": model})

    return {
        "originalText": req.text,
        "translation": result.translation,
        "interpretation": result.interpretation,
    }


@router.post("/api/test-key", tags=["Translation"], summary="Check that an API key works")
async def check_key(
    req: KeyCheckRequest,
    _pw=Depends(require_password),
    _rl=Depends(enforce_rate_limit),
):
    if not req.api_key:
        raise HTTPException(400, "API Key is missing")
    if req.provider not in SUPPORTED_PROVIDERS:
        raise HTTPException(400, "Unknown provider")
    return await llm.check_connection(req.api_key, req.provider, req.model)


@router.post("/api/scrape", tags=["Translation"], summary="Fetch source text from a URL")
async def scrape(
    req: ScrapeRequest,
    _pw=Depends(require_password),
    _rl=Depends(enforce_rate_limit),
):
    if not req.url.startswith(("http://", "https://")):
        raise HTTPException(400, "URL must start with http:// or https://")
    try:
        text = await scrape_url(req.url)
    except ScrapeError as e:
        raise HTTPException(502, str(e))
    return {"text": text}


# --- History ---

@router.get("/api/history", tags=["History"], summary="Saved translations, newest first")
async def get_history(_pw=Depends(require_password)):
    return [r.model_dump(by_alias=True) for r in get_history_store().list()]


@router.delete("/api/history", tags=["History"], summary="Clear all history")
async def clear_history(_pw=Depends(require_password)):
    get_history_store().clear()
    return {"ok": True}


@router.delete("/api/history/{record_id}", tags=["History"], summary="Delete one history entry")
async def delete_history_entry(record_id: str, _pw=Depends(require_password)):
    store = get_history_store()
    store.delete(record_id)
    return {"ok": True, "count": len(store.list())}


@router.get("/api/history/{record_id}/export", tags=["History", "Export"], summary="Export one entry")
async def export_history_entry(
    record_id: str,
    fmt: str = Query("md", alias="format"),
    _pw=Depends(require_password),
):
    store = get_history_store()
    record = store.get(record_id)
    if record is None:
        raise HTTPException(404, "History entry not found")

    if fmt == "md":
        headers = {"Content-Disposition": f'attachment; filename="translation-{record.timestamp}.md"'}
        return Response(content=store.to_document(record), media_type="text/markdown; charset=utf-8",
                        headers=headers)
    if fmt == "docx":
        headers = {"Content-Disposition": f'attachment; filename="translation-{record.timestamp}.docx"'}
        return Response(
            content=store.to_docx(record),
            media_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            headers=headers,
        )
    raise HTTPException(400, "Unsupported export format")
