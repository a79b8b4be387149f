import logging
import os
from pathlib import Path

from dotenv import load_dotenv

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from handlers.export_handler import router as export_router
from handlers.health_handler import router as health_router
from handlers.media_handler import router as media_router
from handlers.preview_handler import router as preview_router

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(ROOT_DIR / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)


def _attach_file_handler(
    logger_name: str,
    log_file_path: Path,
    level_name: str | None = None,
) -> None:
    logger_level = (level_name or LOG_LEVEL).upper()
    logger_level_value = getattr(logging, logger_level, logging.INFO)

    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setLevel(logger_level_value)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )

    target_logger = logging.getLogger(logger_name)
    if not any(
        isinstance(handler, logging.FileHandler)
        and getattr(handler, "baseFilename", None) == str(log_file_path)
        for handler in target_logger.handlers
    ):
        target_logger.addHandler(file_handler)
    target_logger.setLevel(logger_level_value)


RENDER_LOG_FILE = os.getenv("RENDER_LOG_FILE", "").strip()
RENDER_LOG_LEVEL = os.getenv("RENDER_LOG_LEVEL", "").strip() or None
if RENDER_LOG_FILE:
    render_log_path = Path(RENDER_LOG_FILE)
    if not render_log_path.is_absolute():
        render_log_path = ROOT_DIR / render_log_path
    _attach_file_handler("handlers.export_handler", render_log_path, level_name=RENDER_LOG_LEVEL)
    _attach_file_handler("operators.render_operator", render_log_path, level_name=RENDER_LOG_LEVEL)
    _attach_file_handler("utils.ffmpeg_renderer", render_log_path, level_name=RENDER_LOG_LEVEL)
    _attach_file_handler("utils.ffmpeg_builder", render_log_path, level_name=RENDER_LOG_LEVEL)

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))

app = FastAPI(title="Video Editor Backend")


app.include_router(health_router)
app.include_router(media_router)
app.include_router(preview_router)
app.include_router(export_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:5174",
    ],
    # Desktop shells load the UI from file:// and send Origin: null
    allow_origin_regex=r"^null$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if __name__ == "__main__":
    uvicorn.run(app, host=HOST, port=PORT)
