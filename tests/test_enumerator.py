import subprocess
from collections import namedtuple
from unittest.mock import MagicMock

import psutil
import pytest

from oflocker import enumerator as enumerator_module
from oflocker.codec import parse_rows
from oflocker.enumerator import (OpenFilesCommandEnumerator, PsutilEnumerator,
                                 create_enumerator)
from oflocker.errors import EnumerationError

OpenFile = namedtuple('OpenFile', ['path', 'fd', 'position', 'mode', 'flags'])


def test_command_output_is_returned(monkeypatch):
    completed = subprocess.CompletedProcess(['openfiles.exe'], 0, stdout='"H","1"\r\n', stderr='')
    run = MagicMock(return_value=completed)
    monkeypatch.setattr(enumerator_module.subprocess, 'run', run)

    assert OpenFilesCommandEnumerator(timeout=3).enumerate() == '"H","1"\r\n'
    assert run.call_args.kwargs['timeout'] == 3


def test_command_failures_raise(monkeypatch):
    enumerator = OpenFilesCommandEnumerator('missing-tool --query')

    monkeypatch.setattr(enumerator_module.subprocess, 'run', MagicMock(side_effect=FileNotFoundError()))
    with pytest.raises(EnumerationError):
        enumerator.enumerate()

    monkeypatch.setattr(enumerator_module.subprocess, 'run',
                        MagicMock(side_effect=subprocess.TimeoutExpired('missing-tool', 1)))
    with pytest.raises(EnumerationError):
        enumerator.enumerate()

    failed = subprocess.CompletedProcess(['missing-tool'], 1, stdout='', stderr='ERROR: access denied')
    monkeypatch.setattr(enumerator_module.subprocess, 'run', MagicMock(return_value=failed))
    with pytest.raises(EnumerationError, match='access denied'):
        enumerator.enumerate()


def _process(pid, files, error=None):
    proc = MagicMock()
    proc.info = {'pid': pid, 'username': 'dave'}
    if error:
        proc.open_files.side_effect = error
    else:
        proc.open_files.return_value = files
    return proc


def test_psutil_rows_match_snapshot_shape(monkeypatch):
    processes = [
        _process(10, [OpenFile('/srv/share/a.txt', 3, 0, 'r', 0),
                      OpenFile('/srv/share/b.txt', 4, 0, 'w', 0),
                      OpenFile('/srv/share/c.txt', 5, 0, 'r+', 0)]),
        _process(11, [], error=psutil.AccessDenied(11)),
    ]
    monkeypatch.setattr(enumerator_module.psutil, 'process_iter', MagicMock(return_value=iter(processes)))

    rows = list(parse_rows(PsutilEnumerator('node7').enumerate()))

    assert rows == [
        ['node7', '10', 'dave', 'POSIX', '0', 'Read', '/srv/share/a.txt'],
        ['node7', '10', 'dave', 'POSIX', '0', 'Write', '/srv/share/b.txt'],
        ['node7', '10', 'dave', 'POSIX', '0', 'Write + Read', '/srv/share/c.txt'],
    ]


def test_create_enumerator():
    assert isinstance(create_enumerator('psutil'), PsutilEnumerator)
    assert isinstance(create_enumerator('openfiles', timeout=5), OpenFilesCommandEnumerator)
    with pytest.raises(ValueError):
        create_enumerator('lsof')


def test_undecodable_output_is_replaced(monkeypatch):
    completed = subprocess.CompletedProcess(['openfiles.exe'], 0, stdout='', stderr='')
    run = MagicMock(return_value=completed)
    monkeypatch.setattr(enumerator_module.subprocess, 'run', run)

    OpenFilesCommandEnumerator().enumerate()

    assert run.call_args.kwargs['errors'] == 'replace'
