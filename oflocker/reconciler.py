"""Reconciles peer snapshots against the local lock table"""

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from .codec import decode_file
from .errors import DecodeError, TransportError
from .lock import LockStatus, LockTable
from .records import OpenFileRecord
from .utils import is_under_root, staging_filename

logger = logging.getLogger(__name__)


@dataclass
class CycleReport:
    """Outcome of one reconciliation cycle"""

    checked: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    locked: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    released: List[str] = field(default_factory=list)


class Reconciler:
    """Fetches every peer's snapshot and locks what peers have open.

    A file is released only once no peer mentions it. A peer whose snapshot
    could not be fetched or decoded this cycle is assumed to still report
    what it reported the last time it was read.
    """

    def __init__(self,
                 transport,
                 remote_locations: List[str],
                 local_share: str,
                 snapshot_name: str,
                 working_folder: str,
                 lock_table: Optional[LockTable] = None):
        self.transport = transport
        self.remote_locations = list(remote_locations)
        self.local_share = local_share
        self.snapshot_name = snapshot_name
        self.working_folder = working_folder
        self.lock_table = lock_table if lock_table is not None else LockTable()
        self._last_seen: Dict[str, Set[str]] = {}

    def staging_path(self, remote_location: str) -> str:
        return os.path.join(self.working_folder, staging_filename(remote_location, self.snapshot_name))

    def pull(self, remote_location: str) -> List[OpenFileRecord]:
        """Fetch and decode one peer's snapshot"""
        staging = self.staging_path(remote_location)
        self.transport.fetch(remote_location, self.snapshot_name, staging)
        try:
            return decode_file(staging, self.local_share)
        except (UnicodeError, ValueError) as e:
            raise DecodeError(f"cannot parse snapshot from {remote_location}: {e}") from e

    def reconcile_once(self) -> CycleReport:
        """Run one reconciliation cycle over all remote locations"""
        report = CycleReport()
        os.makedirs(self.working_folder, exist_ok=True)

        reported: Set[str] = set()
        for remote_location in self.remote_locations:
            try:
                records = self.pull(remote_location)
            except TransportError as e:
                logger.error(f"fetch from {remote_location} failed: {e}")
                self._keep_stale(remote_location, reported, report)
                continue
            except DecodeError as e:
                logger.error(f"decode of {remote_location} snapshot failed: {e}")
                self._keep_stale(remote_location, reported, report)
                continue

            records = self._inside_share(records, remote_location)
            report.checked.append(remote_location)
            filenames = {record.filename for record in records}
            self._last_seen[remote_location] = filenames
            reported |= filenames

            for record in records:
                if record.filename in self.lock_table:
                    continue
                status = self.lock_table.acquire(record.filename)
                if status is LockStatus.LOCKED:
                    report.locked.append(record.filename)
                    logger.info(f"lock {record.filename} added from location {remote_location}")
                else:
                    report.failed.append(record.filename)
                    logger.warning(f"lock {record.filename} from location {remote_location} could not be taken")

        for filename in self.lock_table:
            if filename not in reported:
                self.lock_table.release(filename)
                report.released.append(filename)
                logger.info(f"lock {filename} removed")

        return report

    def _inside_share(self, records: List[OpenFileRecord], remote_location: str) -> List[OpenFileRecord]:
        kept = []
        for record in records:
            if is_under_root(record.filename, self.local_share):
                kept.append(record)
            else:
                logger.debug(f"ignoring {record.filename} from {remote_location}: outside {self.local_share}")
        return kept

    def _keep_stale(self, remote_location: str, reported: Set[str], report: CycleReport):
        report.skipped.append(remote_location)
        reported |= self._last_seen.get(remote_location, set())
