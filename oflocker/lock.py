"""Exclusive OS-level locks on files reported open by peers"""

import enum
import logging
import os
from typing import BinaryIO, Dict, Iterator, Optional

if os.name == 'nt':
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

# msvcrt.locking needs a byte count; lock far past any real file size
WINDOWS_LOCK_RANGE = 0x7FFFFFFF


class LockStatus(enum.Enum):
    LOCKED = 'locked'
    FAILED = 'failed'


def _lock_handle(handle: BinaryIO):
    if os.name == 'nt':
        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_NBLCK, WINDOWS_LOCK_RANGE)
    else:
        fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)


def _unlock_handle(handle: BinaryIO):
    if os.name == 'nt':
        handle.seek(0)
        msvcrt.locking(handle.fileno(), msvcrt.LK_UNLCK, WINDOWS_LOCK_RANGE)
    else:
        fcntl.flock(handle, fcntl.LOCK_UN)


def is_file_locked(filename: str) -> bool:
    """Probe whether another holder has filename locked.

    Opens the file transiently and tries to take the lock without waiting.
    Missing files are reported unlocked. The lock table is not consulted.
    """
    if not os.path.isfile(filename):
        return False
    try:
        handle = open(filename, 'r+b')
    except OSError:
        return True
    try:
        _lock_handle(handle)
    except OSError:
        return True
    else:
        _unlock_handle(handle)
    finally:
        handle.close()
    return False


class LockTable:
    """Filenames mapped to the handle that keeps each one locked.

    An entry whose handle is None records a failed attempt; it stays in the
    table so the lock is not retried until the file drops out of every
    peer snapshot and shows up again.
    """

    def __init__(self):
        self._entries: Dict[str, Optional[BinaryIO]] = {}

    def __contains__(self, filename: str) -> bool:
        return filename in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def status(self, filename: str) -> Optional[LockStatus]:
        if filename not in self._entries:
            return None
        return LockStatus.FAILED if self._entries[filename] is None else LockStatus.LOCKED

    def acquire(self, filename: str) -> LockStatus:
        """Open filename for exclusive read/write and lock it.

        The entry is recorded whether or not the lock was obtained.
        """
        if filename in self._entries:
            return self.status(filename)
        handle = None
        try:
            handle = open(filename, 'r+b')
            _lock_handle(handle)
        except (OSError, ValueError) as e:
            logger.debug(f"lock failed {filename}: {e}")
            if handle is not None:
                handle.close()
            handle = None
        self._entries[filename] = handle
        return LockStatus.LOCKED if handle is not None else LockStatus.FAILED

    def release(self, filename: str):
        """Drop the lock on filename; never raises"""
        handle = self._entries.pop(filename, None)
        if handle is None:
            return
        try:
            _unlock_handle(handle)
        except OSError as e:
            logger.debug(f"unlock failed {filename}: {e}")
        try:
            handle.close()
        except OSError as e:
            logger.debug(f"close failed {filename}: {e}")

    def release_all(self):
        for filename in self:
            self.release(filename)
