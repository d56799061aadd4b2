"""
Delimited-text codec for session log rows.

Fields containing the delimiter, the quote character or a line break are
wrapped in quotes with internal quotes doubled (RFC 4180 style). Decoding is a
two-state scanner (normal / in quotes) so that quoted delimiters and line
breaks come back byte for byte. As in RFC 4180, only a quote at the start of a
field opens a quoted section.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, List, Sequence

DELIMITER = ","
QUOTE = '"'
LINE_TERMINATOR = "\n"

_LINE_BREAKS = ("\n", "\r")


class _State(Enum):
    normal = "normal"
    in_quotes = "in_quotes"


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class RowCodec:
    def __init__(self, delimiter: str = DELIMITER, quote: str = QUOTE):
        if len(delimiter) != 1 or len(quote) != 1:
            raise ValueError("delimiter and quote must be single characters")
        if delimiter == quote or delimiter in _LINE_BREAKS or quote in _LINE_BREAKS:
            raise ValueError("delimiter, quote and line breaks must be distinct")
        self.delimiter = delimiter
        self.quote = quote

    def encode_field(self, value: Any) -> str:
        text = _to_text(value)
        if self.delimiter in text or self.quote in text or any(c in text for c in _LINE_BREAKS):
            doubled = text.replace(self.quote, self.quote * 2)
            return f"{self.quote}{doubled}{self.quote}"
        return text

    def encode(self, fields: Iterable[Any]) -> str:
        return self.delimiter.join(self.encode_field(v) for v in fields) + LINE_TERMINATOR

    def decode(self, line: str) -> List[str]:
        """Decode one record. A line break outside quotes terminates the record.

        A quote opens a quoted section only at the start of a field; a quote
        in the middle of an unquoted field is literal text.
        """
        fields: List[str] = []
        current: List[str] = []
        state = _State.normal
        field_start = True
        i = 0
        n = len(line)
        while i < n:
            char = line[i]
            if state is _State.in_quotes:
                if char == self.quote:
                    if i + 1 < n and line[i + 1] == self.quote:
                        current.append(self.quote)
                        i += 2
                        continue
                    state = _State.normal
                else:
                    current.append(char)
            elif char == self.quote and field_start:
                state = _State.in_quotes
            elif char == self.delimiter:
                fields.append("".join(current))
                current = []
                field_start = True
                i += 1
                continue
            elif char in _LINE_BREAKS:
                rest = line[i:].lstrip("\r\n")
                if rest:
                    raise ValueError("line holds more than one record")
                break
            else:
                current.append(char)
            field_start = False
            i += 1
        fields.append("".join(current))
        return fields

    def split_records(self, blob: str) -> List[str]:
        """Split a multi-record blob on line breaks that sit outside quotes.

        Quoting follows the same field-start rule as ``decode``, so a stray
        quote only affects its own record. Blank records are dropped. Each
        returned record keeps no terminator.
        """
        records: List[str] = []
        current: List[str] = []
        in_quotes = False
        field_start = True
        i = 0
        n = len(blob)
        while i < n:
            char = blob[i]
            if in_quotes:
                if char == self.quote:
                    if i + 1 < n and blob[i + 1] == self.quote:
                        current.append(self.quote * 2)
                        i += 2
                        continue
                    in_quotes = False
                current.append(char)
            elif char in _LINE_BREAKS:
                records.append("".join(current))
                current = []
                field_start = True
                i += 1
                continue
            else:
                if char == self.quote and field_start:
                    in_quotes = True
                current.append(char)
                field_start = char == self.delimiter
                i += 1
                continue
            field_start = False
            i += 1
        records.append("".join(current))
        return [r for r in records if r.strip()]

    def decode_blob(self, blob: str) -> List[List[str]]:
        return [self.decode(record) for record in self.split_records(blob)]

    def encode_many(self, rows: Sequence[Iterable[Any]]) -> str:
        return "".join(self.encode(row) for row in rows)


default_codec = RowCodec()


def encode(fields: Iterable[Any]) -> str:
    return default_codec.encode(fields)


def decode(line: str) -> List[str]:
    return default_codec.decode(line)
