"""JP Legal Translator: Japanese legal text to Chinese translation with interpretation."""
from pathlib import Path

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from log import get_logger
from routes import router

logger = get_logger("jplt.backend")

STATIC_DIR = Path(__file__).parent / "static"

app = FastAPI(title="JP Legal Translator")
app.include_router(router)

if STATIC_DIR.is_dir():
    app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")
else:
    logger.info("No static directory, serving API only", extra={"component": "backend"})
