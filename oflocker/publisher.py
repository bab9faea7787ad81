"""Publishes this node's open files into the shared folder"""

import logging
import os
from typing import List, Optional

from .codec import encode_row, parse_rows, record_from_tokens
from .errors import EnumerationError
from .records import OpenFileRecord
from .utils import is_under_root, matches_exception, relative_filename

logger = logging.getLogger(__name__)


class SnapshotPublisher:
    """Writes the snapshot peers read to decide what to lock"""

    def __init__(self,
                 enumerator,
                 local_share: str,
                 snapshot_name: str,
                 exceptions: Optional[List[str]] = None):
        self.enumerator = enumerator
        self.local_share = local_share
        self.snapshot_name = snapshot_name
        self.exceptions = list(exceptions or [])

    @property
    def snapshot_path(self) -> str:
        return os.path.join(self.local_share, self.snapshot_name)

    def collect(self) -> List[OpenFileRecord]:
        """Enumerate open files and keep the ones to publish.

        Kept records name existing files below the share; their filename
        is relative to the share.
        """
        raw = self.enumerator.enumerate()
        records = []
        for tokens in parse_rows(raw):
            filename = tokens[6].strip()
            if not is_under_root(filename, self.local_share) or not os.path.isfile(filename):
                continue
            relative = relative_filename(filename, self.local_share)
            if matches_exception(relative, self.exceptions):
                logger.debug(f"skipping excepted file {relative}")
                continue
            records.append(record_from_tokens(tokens, relative))
        return records

    def write_snapshot(self, records: List[OpenFileRecord]):
        # peers may read this file while it is being rewritten
        with open(self.snapshot_path, 'w', encoding='utf-8', newline='') as f:
            for record in records:
                f.write(encode_row(record, record.filename) + '\r\n')
                f.flush()

    def publish(self) -> bool:
        """Run one publish cycle; errors are logged and the cycle skipped"""
        try:
            records = self.collect()
            self.write_snapshot(records)
        except EnumerationError as e:
            logger.error(f"enumeration failed, snapshot not published: {e}")
            return False
        except OSError as e:
            logger.error(f"writing snapshot {self.snapshot_path} failed: {e}")
            return False
        logger.debug(f"published {len(records)} open files to {self.snapshot_path}")
        return True
