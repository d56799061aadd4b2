from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel

from records.errors import ConfigurationError

SERVER_TIMESTAMP = "server_timestamp"

# Wire layout of every session log row, in order.
SESSION_LOG_COLUMNS: Tuple[str, ...] = (
    "participant_id",
    "entry_type",
    "phase",
    "image_id",
    "filename",
    "image_size",
    "phase1_size",
    "image_type",
    "memory_response",
    "payment_response",
    "confidence",
    "response_time",
    "attention_check_id",
    "attention_response",
    "attention_correct",
    "snack_preference",
    "desire_to_eat",
    "hunger",
    "fullness",
    "satisfaction",
    "eating_capacity",
    "session_id",
    "timestamp",
)


class FieldKind(str, Enum):
    numeric = "numeric"
    boolean = "boolean"
    string = "string"
    passthrough = "passthrough"


class FieldSpec(BaseModel):
    name: str
    kind: FieldKind = FieldKind.string

    model_config = {"frozen": True}


class CollectionSchema(BaseModel):
    name: str
    fields: Tuple[FieldSpec, ...]
    required: Tuple[str, ...] = ("participant_id",)
    # at least one of these must be present for the row to carry any signal
    identity_any: Tuple[str, ...] = ()

    model_config = {"frozen": True}

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def missing_identity(self, record: Mapping[str, Any]) -> Optional[str]:
        """Return a reason string when the coerced record is unusable, else None."""
        for name in self.required:
            if _is_blank(record.get(name)):
                return f"Missing {name}"
        if self.identity_any and all(_is_blank(record.get(name)) for name in self.identity_any):
            return f"Missing {' and '.join(self.identity_any)}"
        return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def coerce_numeric(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        if value == "" or value == "null" or "_" in value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_boolean(value: Any) -> Optional[bool]:
    if value is True or value == "true":
        return True
    if value is False or value == "false":
        return False
    return None


def coerce_string(value: Any) -> Any:
    """Render scalars as text; strings and structured JSON values are kept as sent."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


COERCERS: Dict[FieldKind, Callable[[Any], Any]] = {
    FieldKind.numeric: coerce_numeric,
    FieldKind.boolean: coerce_boolean,
    FieldKind.string: coerce_string,
    FieldKind.passthrough: lambda value: value,
}


def _fields(names: Iterable[str], numeric: Iterable[str] = (), boolean: Iterable[str] = (), passthrough: Iterable[str] = ()) -> Tuple[FieldSpec, ...]:
    numeric, boolean, passthrough = set(numeric), set(boolean), set(passthrough)
    out = []
    for name in names:
        if name in numeric:
            kind = FieldKind.numeric
        elif name in boolean:
            kind = FieldKind.boolean
        elif name in passthrough:
            kind = FieldKind.passthrough
        else:
            kind = FieldKind.string
        out.append(FieldSpec(name=name, kind=kind))
    return tuple(out)


NUMERIC_FIELDS = (
    "phase",
    "image_id",
    "payment_response",
    "confidence",
    "response_time",
    "desire_to_eat",
    "hunger",
    "fullness",
    "satisfaction",
    "eating_capacity",
)
BOOLEAN_FIELDS = ("attention_correct",)
PASSTHROUGH_FIELDS = ("timestamp",)


def _schema(name: str, names: Sequence[str], identity_any: Tuple[str, ...] = ()) -> CollectionSchema:
    return CollectionSchema(
        name=name,
        fields=_fields(names, NUMERIC_FIELDS, BOOLEAN_FIELDS, PASSTHROUGH_FIELDS),
        identity_any=identity_any,
    )


DEFAULT_SCHEMAS: Tuple[CollectionSchema, ...] = (
    _schema(
        "phase1",
        ["participant_id", "phase", "image_id", "filename", "image_size", "phase1_size", "response_time", "session_id", "timestamp"],
        identity_any=("image_id", "filename"),
    ),
    _schema(
        "phase2",
        [
            "participant_id",
            "phase",
            "image_id",
            "filename",
            "image_size",
            "phase1_size",
            "image_type",
            "memory_response",
            "payment_response",
            "confidence",
            "response_time",
            "session_id",
            "timestamp",
        ],
        identity_any=("image_id", "filename"),
    ),
    _schema(
        "final_questionnaire",
        [
            "participant_id",
            "snack_preference",
            "desire_to_eat",
            "hunger",
            "fullness",
            "satisfaction",
            "eating_capacity",
            "session_id",
            "timestamp",
        ],
    ),
    _schema(
        "attention_checks",
        [
            "participant_id",
            "phase",
            "attention_check_id",
            "attention_response",
            "attention_correct",
            "response_time",
            "session_id",
            "timestamp",
        ],
    ),
)


class SchemaRegistry:
    """Maps a collection name to its ordered field list and coercion rules."""

    def __init__(self, schemas: Iterable[CollectionSchema] = DEFAULT_SCHEMAS, clock: Optional[Callable[[], datetime]] = None):
        self._schemas: Dict[str, CollectionSchema] = {}
        for schema in schemas:
            if schema.name in self._schemas:
                raise ConfigurationError(f"Duplicate schema for collection '{schema.name}'")
            self._schemas[schema.name] = schema
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def names(self) -> List[str]:
        return list(self._schemas)

    def get(self, collection: str) -> CollectionSchema:
        schema = self._schemas.get(collection)
        if schema is None:
            raise ConfigurationError(f"No field schema for collection '{collection}'")
        return schema

    def require(self, collections: Iterable[str]) -> None:
        missing = [c for c in collections if c not in self._schemas]
        if missing:
            raise ConfigurationError(f"No field schema for collections: {', '.join(missing)}")

    def coerce(self, collection: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        schema = self.get(collection)
        stored: Dict[str, Any] = {}
        for field in schema.fields:
            stored[field.name] = COERCERS[field.kind](record.get(field.name))
        stored[SERVER_TIMESTAMP] = self._clock()
        return stored

    def dropped_fields(self, collection: str, record: Mapping[str, Any]) -> List[str]:
        allowed = set(self.get(collection).field_names)
        return sorted(k for k in record if k not in allowed and k != SERVER_TIMESTAMP)


default_registry = SchemaRegistry()
