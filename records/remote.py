from __future__ import annotations

import os
from typing import Any, Dict, List, Mapping, Optional, Sequence

import requests

from records.errors import TransportFailure
from records.schemas import SERVER_TIMESTAMP


class RemoteSaveClient:
    """Record sink that forwards batches to a remote ``/save`` endpoint.

    Implements the same ``insert_many`` contract as the local stores, so a
    SubmissionPipeline can fan out to a server instead of a database. Records
    go over the wire in JSON format; the server re-applies its own schema.
    """

    def __init__(self, url: Optional[str] = None, api_key: Optional[str] = None, timeout: float = 30.0, session: Optional[requests.Session] = None):
        self.url = url or os.getenv("SAVE_URL")
        if not self.url:
            raise RuntimeError("Save endpoint URL is not configured (set SAVE_URL).")
        self.api_key = api_key or os.getenv("SAVE_API_KEY")
        self.timeout = timeout
        self.session = session or requests.Session()

    @staticmethod
    def _payload_records(records: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        return [{k: v for k, v in r.items() if k != SERVER_TIMESTAMP} for r in records]

    def insert_many(self, collection: str, records: Sequence[Mapping[str, Any]]) -> int:
        payload = {"data": self._payload_records(records), "collection": collection, "format": "json"}
        headers = {"x-api-key": self.api_key} if self.api_key else {}
        try:
            resp = self.session.post(self.url, json=payload, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise TransportFailure(f"Save request for {collection} could not complete: {exc}") from exc
        if not resp.ok:
            raise TransportFailure(f"Server error: {resp.status_code} - {resp.text}")
        return len(records)
