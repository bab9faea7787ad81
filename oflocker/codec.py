"""Snapshot wire format.

A snapshot is plain text, one open file per row::

    hostname,lockId,accessedBy,lockType,lockCount,openMode,filename

An optional header block (a row holding a run of five or more dashes followed
by one column-header row) is skipped. Quotes are stripped and rows that do
not split into exactly seven fields are dropped, so a file caught half-written
by its publisher still decodes to its complete rows.
"""

import re
from datetime import datetime
from typing import Iterable, Iterator, List, Optional

from .errors import DecodeError
from .records import OpenFileRecord, OpenMode
from .utils import absolute_filename, relative_filename

TOKEN_SEPARATOR = ','
FIELD_COUNT = 7
HEADER_SEPARATOR = re.compile(r'-{5,}')
ENCODING = 'utf-8'


def parse_rows(text: str) -> Iterator[List[str]]:
    """Yield the seven raw tokens of every valid data row in text"""
    lines = text.splitlines()
    i = 0
    while i < len(lines):
        line = lines[i]
        i += 1
        if HEADER_SEPARATOR.search(line):
            # the column-header row follows the rule
            i += 1
            continue
        line = line.strip().replace('"', '')
        if TOKEN_SEPARATOR not in line:
            continue
        tokens = line.split(TOKEN_SEPARATOR)
        if len(tokens) == FIELD_COUNT:
            yield tokens


def _parse_count(token: str) -> int:
    try:
        count = int(token.strip())
    except ValueError:
        return 0
    return max(count, 0)


def record_from_tokens(tokens: List[str], filename: str,
                       timestamp: Optional[datetime] = None) -> OpenFileRecord:
    """Build a record from parsed tokens, overriding the filename"""
    return OpenFileRecord(
        hostname=tokens[0],
        lock_id=tokens[1],
        accessed_by=tokens[2],
        lock_type=tokens[3],
        lock_count=_parse_count(tokens[4]),
        open_mode=OpenMode.parse(tokens[5]),
        filename=filename,
        timestamp=timestamp,
    )


def decode(data: bytes, local_share: str) -> List[OpenFileRecord]:
    """Parse snapshot bytes, re-rooting every filename under local_share"""
    if isinstance(data, bytes):
        text = data.decode(ENCODING, errors='replace')
    else:
        text = data
    now = datetime.now()
    return [
        record_from_tokens(tokens, absolute_filename(tokens[6], local_share), now)
        for tokens in parse_rows(text)
    ]


def decode_file(path: str, local_share: str) -> List[OpenFileRecord]:
    """Decode a staged snapshot file"""
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise DecodeError(f"cannot read snapshot {path}: {e}") from e
    return decode(data, local_share)


def encode_row(record: OpenFileRecord, filename: str) -> str:
    return TOKEN_SEPARATOR.join([
        record.hostname,
        record.lock_id,
        record.accessed_by,
        record.lock_type,
        str(record.lock_count),
        record.open_mode.value,
        filename,
    ])


def encode(records: Iterable[OpenFileRecord], local_share: str) -> bytes:
    """Serialize records, one row each, filenames relative to local_share"""
    lines = [encode_row(r, relative_filename(r.filename, local_share)) for r in records]
    return ''.join(line + '\r\n' for line in lines).encode(ENCODING)
