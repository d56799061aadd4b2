from __future__ import annotations

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.save_api import build_save_router
from api.sessions_api import build_sessions_router
from records import InMemoryRecordStore, PostgresRecordStore, SchemaRegistry, SubmissionPipeline
from stimuli.config import load_study_config

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)


def build_record_store() -> InMemoryRecordStore | PostgresRecordStore:
    dsn = os.getenv("RECORD_STORE_DSN")
    table = os.getenv("RECORD_STORE_TABLE", "study_records")
    if dsn:
        try:
            return PostgresRecordStore(dsn, table=table)
        except Exception as exc:
            logger.warning("Falling back to in-memory record store: %s", exc)
    return InMemoryRecordStore()


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


study_config = load_study_config()
record_store = build_record_store()
registry = SchemaRegistry()
pipeline = SubmissionPipeline(record_store, registry=registry, strict_width=_env_flag("STRICT_ROW_WIDTH"))

app = FastAPI(title="Image Valuation Study API", version="0.1.0")

allowed_origins = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "").split(",") if o.strip()]
if allowed_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
app.include_router(build_save_router(pipeline))
app.include_router(build_sessions_router(study_config))


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "store": type(record_store).__name__}
