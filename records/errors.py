from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ConfigurationError(Exception):
    """Static study or schema configuration cannot be used."""


class StorageFailure(Exception):
    """A batch insert for one collection failed."""

    def __init__(self, collection: str, detail: str):
        super().__init__(f"{collection}: {detail}")
        self.collection = collection
        self.detail = detail


class TransportFailure(Exception):
    """The submission call itself could not complete."""


class WarningKind(str, Enum):
    row_format = "row_format"
    row_incomplete = "row_incomplete"
    unrouted = "unrouted"


class RowWarning(BaseModel):
    kind: WarningKind
    message: str
    row: Optional[int] = None
    collection: Optional[str] = None


def row_format_warning(row: int, got: int, expected: int, collection: Optional[str] = None) -> RowWarning:
    return RowWarning(
        kind=WarningKind.row_format,
        row=row,
        collection=collection,
        message=f"Row {row} has {got} values but expected {expected}",
    )


def row_incomplete_warning(row: int, reason: str, collection: Optional[str] = None) -> RowWarning:
    return RowWarning(
        kind=WarningKind.row_incomplete,
        row=row,
        collection=collection,
        message=f"Row {row}: {reason}",
    )
