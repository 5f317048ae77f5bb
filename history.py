"""Capacity-bounded translation history over a key-value store.

The whole history is one JSON array under a single key. Every operation is a
read-modify-write of that array; two writers racing on the same store can lose
one write (last writer wins).

Storage faults never reach the caller: reads degrade to an empty history and
writes become no-ops, each logged as a diagnostic.
"""
import io
import json
import os
import time
import uuid
from datetime import datetime
from typing import Optional, List

from docx import Document
from pydantic import ValidationError

from log import get_logger
from models import TranslationRecord
from storage import KeyValueStore

logger = get_logger("jplt.history")

HISTORY_STORAGE_KEY = "jp_translator_history"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value < 1:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}", extra={"component": "history"})
        return default
    return value


MAX_HISTORY_ITEMS = _env_int("JPLT_HISTORY_CAPACITY", 20)
PREVIEW_LENGTH = _env_int("JPLT_PREVIEW_LENGTH", 100)
PREVIEW_MARKER = "..."


def make_preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    return text[:length] + (PREVIEW_MARKER if len(text) > length else "")


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class HistoryStore:
    def __init__(
        self,
        kv: KeyValueStore,
        key: str = HISTORY_STORAGE_KEY,
        capacity: int = MAX_HISTORY_ITEMS,
        preview_length: int = PREVIEW_LENGTH,
    ):
        self.kv = kv
        self.key = key
        self.capacity = capacity
        self.preview_length = preview_length

    def _read(self) -> List[TranslationRecord]:
        stored = self.kv.get(self.key)
        if not stored:
            return []
        data = json.loads(stored)
        if not isinstance(data, list):
            raise ValueError(f"history is a {type(data).__name__}, expected a list")
        records = []
        for item in data:
            try:
                records.append(TranslationRecord.model_validate(item))
            except ValidationError:
                logger.warning("Skipping malformed history entry", extra={"component": "history"})
        return records

    def _write(self, records: List[TranslationRecord]):
        payload = [r.model_dump(by_alias=True) for r in records]
        self.kv.set(self.key, json.dumps(payload, ensure_ascii=False))

    def list(self) -> List[TranslationRecord]:
        """All records, newest first. Empty on any read or parse failure."""
        try:
            records = self._read()
        except Exception:
            logger.exception("Failed to load translation history", extra={"component": "history"})
            return []
        return sorted(records, key=lambda r: r.timestamp, reverse=True)

    def get(self, record_id: str) -> Optional[TranslationRecord]:
        for record in self.list():
            if record.id == record_id:
                return record
        return None

    def _new_id(self, taken: set) -> str:
        record_id = uuid.uuid4().hex
        while record_id in taken:
            record_id = uuid.uuid4().hex
        return record_id

    def save(self, original_text: str, translation: str, interpretation: str, model: str) -> None:
        try:
            history = self.list()
            record = TranslationRecord(
                id=self._new_id({r.id for r in history}),
                timestamp=_now_ms(),
                model=model,
                original_text=original_text,
                translation=translation,
                interpretation=interpretation,
                preview=make_preview(original_text, self.preview_length),
            )
            updated = [record] + history
            self._write(updated[:self.capacity])
            logger.info(
                "Saved translation to history",
                extra={"component": "history", "record_id": record.id, "count": min(len(updated), self.capacity)},
            )
        except Exception:
            logger.exception("Failed to save translation history", extra={"component": "history"})

    def delete(self, record_id: str) -> None:
        try:
            history = self.list()
            self._write([r for r in history if r.id != record_id])
        except Exception:
            logger.exception(
                "Failed to delete translation from history",
                extra={"component": "history", "record_id": record_id},
            )

    def clear(self) -> None:
        try:
            self.kv.remove(self.key)
        except Exception:
            logger.exception("Failed to clear translation history", extra={"component": "history"})

    def to_document(self, record: TranslationRecord) -> str:
        return to_document(record)

    def to_docx(self, record: TranslationRecord) -> bytes:
        return to_docx(record)


def _format_time(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y/%m/%d %H:%M")


def to_document(record: TranslationRecord) -> str:
    """Render one record as a Markdown report."""
    return f"""# 翻译报告

**生成时间**: {_format_time(record.timestamp)}  
**使用模型**: {record.model}

---

## 原文 (Original Text)

{record.original_text}

---

## 译文 (Translation)

{record.translation}

---

## 专业解读 (Professional Interpretation)

{record.interpretation}

---

*此文档由 JP Legal Translator 自动生成*
"""


def to_docx(record: TranslationRecord) -> bytes:
    """Render one record as a Word document."""
    doc = Document()
    doc.add_heading("Translation Report", level=1)
    doc.add_heading(f"Model: {record.model}", level=2)
    doc.add_paragraph(f"Date: {_format_time(record.timestamp)}")

    doc.add_heading("全文译文 (Full Translation)", level=1)
    doc.add_paragraph(record.translation)
    doc.add_heading("专业解读 (Interpretation)", level=1)
    doc.add_paragraph(record.interpretation)
    doc.add_heading("原文 (Original)", level=1)
    doc.add_paragraph(record.original_text)

    bio = io.BytesIO()
    doc.save(bio)
    return bio.getvalue()
