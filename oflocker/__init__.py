"""Distributed advisory file locking over shared folders"""

from .core import OpenFilesLocker
from .lock import LockStatus, LockTable, is_file_locked
from .publisher import SnapshotPublisher
from .reconciler import CycleReport, Reconciler
from .records import OpenFileRecord, OpenMode

__version__ = '0.1.0'
