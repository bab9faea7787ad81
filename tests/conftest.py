import os

import pytest

from oflocker.errors import EnumerationError, TransportError


class FakeEnumerator:
    """Returns canned enumerator output, or raises when told to"""

    def __init__(self, text=''):
        self.text = text
        self.error = None

    def enumerate(self):
        if self.error:
            raise EnumerationError(self.error)
        return self.text


class FakeTransport:
    """Serves snapshots from memory, keyed by remote location"""

    def __init__(self):
        self.snapshots = {}
        self.failing = set()
        self.fetched = []

    def fetch(self, remote_location, snapshot_name, destination):
        self.fetched.append((remote_location, destination))
        if remote_location in self.failing or remote_location not in self.snapshots:
            raise TransportError(remote_location, 'unreachable')
        with open(destination, 'wb') as f:
            f.write(self.snapshots[remote_location])


def row(filename, mode='Write', host='PEER', lock_id='1', user='alice', lock_type='Windows', count='0'):
    return ','.join([host, lock_id, user, lock_type, count, mode, filename])


def snapshot(*filenames):
    return ''.join(row(name) + '\r\n' for name in filenames).encode('utf-8')


def make_file(root, *parts, content=b'data'):
    path = os.path.join(str(root), *parts)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'wb') as f:
        f.write(content)
    return path


@pytest.fixture
def share(tmp_path):
    path = tmp_path / 'share'
    path.mkdir()
    return str(path)


@pytest.fixture
def mirror(tmp_path):
    path = tmp_path / 'mirror'
    path.mkdir()
    return str(path)


@pytest.fixture
def working_folder(tmp_path):
    return str(tmp_path / 'work')


@pytest.fixture
def transport():
    return FakeTransport()
