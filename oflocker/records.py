"""Open-file records exchanged between nodes"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


class OpenMode(enum.Enum):
    """Access mode a node reports for an open handle"""

    READ = 'Read'
    WRITE = 'Write'
    READ_WRITE = 'Write + Read'

    @classmethod
    def parse(cls, token: str) -> 'OpenMode':
        """Map a raw token to a mode; anything unknown is read/write"""
        if token == cls.READ.value:
            return cls.READ
        if token == cls.WRITE.value:
            return cls.WRITE
        return cls.READ_WRITE


@dataclass
class OpenFileRecord:
    """One snapshot row: a file some node reports as open"""

    hostname: str
    lock_id: str
    accessed_by: str
    lock_type: str
    lock_count: int
    open_mode: OpenMode
    filename: str
    # set on ingestion, never carried on the wire
    timestamp: Optional[datetime] = field(default=None, compare=False)
