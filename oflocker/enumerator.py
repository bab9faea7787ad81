"""Enumerators that list the files currently open on this node"""

import logging
import os
import shlex
import socket
import subprocess
from typing import List, Optional

import psutil

from .codec import TOKEN_SEPARATOR
from .errors import EnumerationError
from .records import OpenMode

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = 'openfiles.exe /query /FO CSV /NH /V'


class OpenFilesCommandEnumerator:
    """Runs the Windows ``openfiles`` command and returns its CSV output"""

    def __init__(self, command: Optional[str] = None, timeout: Optional[float] = None):
        self.command = command or DEFAULT_COMMAND
        self.timeout = timeout

    def enumerate(self) -> str:
        args = shlex.split(self.command, posix=os.name != 'nt')
        try:
            result = subprocess.run(
                args,
                capture_output=True,
                text=True,
                errors='replace',
                timeout=self.timeout,
            )
        except FileNotFoundError as e:
            raise EnumerationError(f"enumerator not found: {args[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise EnumerationError(f"enumerator timed out after {self.timeout}s") from e
        except OSError as e:
            raise EnumerationError(f"enumerator failed to start: {e}") from e

        if result.returncode != 0:
            raise EnumerationError(
                f"enumerator exited with {result.returncode}: {result.stderr.strip()}"
            )
        return result.stdout


def _mode_from_flags(mode: str) -> OpenMode:
    if mode == 'r':
        return OpenMode.READ
    if mode in ('w', 'a'):
        return OpenMode.WRITE
    return OpenMode.READ_WRITE


class PsutilEnumerator:
    """Lists open files of every visible process using psutil.

    Produces rows in the snapshot shape so the publisher can treat it
    exactly like the ``openfiles`` output.
    """

    def __init__(self, hostname: Optional[str] = None):
        self.hostname = hostname or socket.gethostname()

    def enumerate(self) -> str:
        rows: List[str] = []
        try:
            processes = psutil.process_iter(['pid', 'username'])
            for proc in processes:
                try:
                    open_files = proc.open_files()
                except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                    continue
                user = proc.info.get('username') or ''
                for open_file in open_files:
                    mode = _mode_from_flags(getattr(open_file, 'mode', ''))
                    rows.append(TOKEN_SEPARATOR.join([
                        self.hostname,
                        str(proc.info['pid']),
                        user,
                        'POSIX',
                        '0',
                        mode.value,
                        open_file.path,
                    ]))
        except psutil.Error as e:
            raise EnumerationError(f"process scan failed: {e}") from e
        logger.debug(f"psutil enumerated {len(rows)} open files")
        return '\n'.join(rows)


def create_enumerator(kind: Optional[str] = None, command: Optional[str] = None,
                      timeout: Optional[float] = None):
    """Build the enumerator named in the settings, defaulting by platform"""
    if kind is None:
        kind = 'openfiles' if os.name == 'nt' else 'psutil'
    if kind == 'openfiles':
        return OpenFilesCommandEnumerator(command, timeout)
    if kind == 'psutil':
        return PsutilEnumerator()
    raise ValueError(f"unknown enumerator: {kind}")
