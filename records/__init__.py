"""Session row codec, collection schemas and the submission pipeline."""

from records.codec import RowCodec, decode, encode
from records.errors import ConfigurationError, RowWarning, StorageFailure, TransportFailure, WarningKind
from records.models import (
    CollectionName,
    EntryType,
    ProbeRecord,
    QuestionnaireRecord,
    SaveFormat,
    SaveRequest,
    SessionRecord,
    StimulusTrialRecord,
    SubmissionResult,
    record_from_row,
    route_by_entry_type,
)
from records.pipeline import SubmissionPipeline
from records.schemas import SESSION_LOG_COLUMNS, CollectionSchema, FieldKind, FieldSpec, SchemaRegistry
from records.store import InMemoryRecordStore, PostgresRecordStore

__all__ = [
    "RowCodec",
    "encode",
    "decode",
    "ConfigurationError",
    "StorageFailure",
    "TransportFailure",
    "RowWarning",
    "WarningKind",
    "CollectionName",
    "EntryType",
    "StimulusTrialRecord",
    "ProbeRecord",
    "QuestionnaireRecord",
    "SessionRecord",
    "SaveFormat",
    "SaveRequest",
    "SubmissionResult",
    "record_from_row",
    "route_by_entry_type",
    "SubmissionPipeline",
    "SESSION_LOG_COLUMNS",
    "CollectionSchema",
    "FieldKind",
    "FieldSpec",
    "SchemaRegistry",
    "InMemoryRecordStore",
    "PostgresRecordStore",
]
