from __future__ import annotations

import logging
import os
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse

from records.errors import ConfigurationError
from records.models import CollectionName, SaveRequest
from records.pipeline import SubmissionPipeline

logger = logging.getLogger(__name__)


def build_save_router(pipeline: SubmissionPipeline, api_key: Optional[str] = None) -> APIRouter:
    router = APIRouter(tags=["save"])
    api_key = api_key if api_key is not None else os.getenv("SAVE_API_KEY")

    def _require_api_key(request: Request) -> None:
        if not api_key:
            return
        provided = request.headers.get("x-api-key")
        if provided != api_key:
            raise HTTPException(status_code=401, detail="Invalid API key")

    @router.post("/save", response_class=PlainTextResponse)
    async def save(req: SaveRequest, request: Request) -> str:
        _require_api_key(request)
        if not req.data:
            raise HTTPException(status_code=400, detail="No data received.")
        try:
            result = await pipeline.save(req)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc))
        except ConfigurationError as exc:
            logger.error("Save to %s rejected: %s", req.collection.value, exc)
            raise HTTPException(status_code=500, detail=f"Error saving data: {exc}")
        if not result.success:
            raise HTTPException(status_code=500, detail=f"Error saving data: {'; '.join(result.errors)}")
        if result.processed == 0:
            raise HTTPException(status_code=400, detail="No valid entries to save")
        return result.summary()

    @router.get("/collections/{collection}/count")
    def count(collection: CollectionName, request: Request) -> dict:
        _require_api_key(request)
        return {"collection": collection.value, "count": pipeline.store.count(collection.value)}

    return router
