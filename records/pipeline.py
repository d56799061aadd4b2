from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from records.codec import RowCodec, default_codec
from records.errors import (
    RowWarning,
    StorageFailure,
    WarningKind,
    row_format_warning,
    row_incomplete_warning,
)
from records.models import CollectionName, SaveFormat, SaveRequest, SubmissionResult, route_by_entry_type
from records.schemas import SESSION_LOG_COLUMNS, SchemaRegistry, default_registry

logger = logging.getLogger(__name__)

RawRow = Union[str, Sequence[Any], Mapping[str, Any]]
RoutingKey = Callable[[Mapping[str, Any]], Optional[Union[str, CollectionName]]]


class SubmissionPipeline:
    """Routes session rows through the schema registry and batches them to a store.

    The store needs ``insert_many(collection, records) -> int``. Inserts for
    different collections run concurrently and are not transactional: a failed
    collection does not roll back the others.
    """

    def __init__(
        self,
        store: Any,
        registry: SchemaRegistry = default_registry,
        codec: RowCodec = default_codec,
        columns: Sequence[str] = SESSION_LOG_COLUMNS,
        strict_width: bool = False,
    ):
        self.store = store
        self.registry = registry
        self.codec = codec
        self.columns = tuple(columns)
        self.strict_width = strict_width

    async def submit(self, entries: Iterable[RawRow], routing_key: RoutingKey = route_by_entry_type) -> SubmissionResult:
        warnings: List[RowWarning] = []
        partitions: Dict[str, List[Tuple[int, Dict[str, Any]]]] = {}
        for index, entry in enumerate(entries, start=1):
            mapped = self._to_mapping(index, entry, warnings)
            if mapped is None:
                continue
            target = routing_key(mapped)
            if target is None:
                warnings.append(
                    RowWarning(
                        kind=WarningKind.unrouted,
                        row=index,
                        message=f"Row {index}: no collection for entry type '{mapped.get('entry_type', '')}'",
                    )
                )
                continue
            name = target.value if isinstance(target, CollectionName) else str(target)
            partitions.setdefault(name, []).append((index, mapped))

        self.registry.require(partitions)
        batches: Dict[str, List[Dict[str, Any]]] = {}
        for name, rows in partitions.items():
            batch = self._coerce_batch(name, rows, warnings)
            if batch:
                batches[name] = batch

        for warning in warnings:
            logger.warning(warning.message)
        return await self._dispatch_all(batches, warnings)

    async def save(self, request: SaveRequest) -> SubmissionResult:
        """Single-collection submission as posted to the save endpoint."""
        collection = request.collection.value
        rows = self._request_rows(request)
        logger.info("Processing %d %s rows for collection %s", len(rows), request.format.value, collection)
        return await self.submit(rows, routing_key=lambda _row: collection)

    def _request_rows(self, request: SaveRequest) -> List[RawRow]:
        if request.format == SaveFormat.json:
            if not isinstance(request.data, list):
                raise ValueError("JSON submissions require 'data' to be an array of objects")
            return list(request.data)
        if not isinstance(request.data, str):
            raise ValueError("CSV submissions require 'data' to be a string")
        return list(self.codec.split_records(request.data))

    def _to_mapping(self, index: int, entry: RawRow, warnings: List[RowWarning]) -> Optional[Dict[str, Any]]:
        if isinstance(entry, Mapping):
            return dict(entry)
        if isinstance(entry, str):
            try:
                values: Sequence[Any] = self.codec.decode(entry)
            except ValueError as exc:
                warnings.append(row_incomplete_warning(index, f"could not be decoded ({exc})"))
                return None
        elif isinstance(entry, (list, tuple)):
            values = entry
        else:
            warnings.append(row_incomplete_warning(index, f"unsupported row type {type(entry).__name__}"))
            return None

        if len(values) != len(self.columns):
            warnings.append(row_format_warning(index, len(values), len(self.columns)))
            if self.strict_width:
                return None
        # positional mapping: extra values are dropped, missing trailing columns stay absent
        return dict(zip(self.columns, values))

    def _coerce_batch(self, collection: str, rows: List[Tuple[int, Dict[str, Any]]], warnings: List[RowWarning]) -> List[Dict[str, Any]]:
        schema = self.registry.get(collection)
        batch: List[Dict[str, Any]] = []
        for index, mapped in rows:
            stored = self.registry.coerce(collection, mapped)
            reason = schema.missing_identity(stored)
            if reason:
                warnings.append(row_incomplete_warning(index, reason, collection=collection))
                continue
            batch.append(stored)
        return batch

    async def _dispatch(self, collection: str, records: List[Dict[str, Any]]) -> int:
        try:
            inserted = await asyncio.to_thread(self.store.insert_many, collection, records)
        except Exception as exc:
            logger.error("Batch insert into %s failed: %s", collection, exc)
            raise StorageFailure(collection, str(exc)) from exc
        logger.info("Inserted %d records into %s", inserted, collection)
        return inserted

    async def _dispatch_all(self, batches: Dict[str, List[Dict[str, Any]]], warnings: List[RowWarning]) -> SubmissionResult:
        names = list(batches)
        outcomes = await asyncio.gather(
            *(self._dispatch(name, batches[name]) for name in names),
            return_exceptions=True,
        )
        counts: Dict[str, int] = {}
        errors: List[str] = []
        failed: List[str] = []
        for name, outcome in zip(names, outcomes):
            if isinstance(outcome, StorageFailure):
                errors.append(str(outcome))
                failed.append(name)
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                counts[name] = int(outcome)
        return SubmissionResult(
            success=not failed,
            per_collection_counts=counts,
            errors=errors,
            warnings=warnings,
            failed_collections=failed,
        )
