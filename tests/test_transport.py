from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from oflocker import transport as transport_module
from oflocker.errors import TransportError
from oflocker.transport import S3Transport, ShareTransport, SnapshotTransport, split_s3_location


def test_share_transport_copies_snapshot(tmp_path):
    remote = tmp_path / 'remote'
    remote.mkdir()
    (remote / 'openfiles.dat').write_bytes(b'row\r\n')
    dst = tmp_path / 'staged.dat'

    ShareTransport().fetch(str(remote), 'openfiles.dat', str(dst))

    assert dst.read_bytes() == b'row\r\n'


def test_share_transport_missing_snapshot(tmp_path):
    with pytest.raises(TransportError) as exc_info:
        ShareTransport().fetch(str(tmp_path / 'gone'), 'openfiles.dat', str(tmp_path / 'x'))

    assert exc_info.value.location == str(tmp_path / 'gone')


def test_split_s3_location():
    assert split_s3_location('s3://bucket/site/a/') == ('bucket', 'site/a')
    assert split_s3_location('s3://bucket') == ('bucket', '')


@pytest.fixture
def fake_transfer(monkeypatch):
    transfer = MagicMock()
    monkeypatch.setattr(transport_module, 'S3Transfer', MagicMock(return_value=transfer))
    return transfer


def test_s3_transport_downloads_key(fake_transfer):
    s3 = S3Transport(client=MagicMock())

    s3.fetch('s3://locks/site-b', 'openfiles.dat', '/tmp/staged')

    fake_transfer.download_file.assert_called_once_with('locks', 'site-b/openfiles.dat', '/tmp/staged')


def test_s3_transport_wraps_client_errors(fake_transfer):
    fake_transfer.download_file.side_effect = ClientError(
        {'Error': {'Code': '404', 'Message': 'Not Found'}}, 'HeadObject'
    )
    s3 = S3Transport(client=MagicMock())

    with pytest.raises(TransportError):
        s3.fetch('s3://locks', 'openfiles.dat', '/tmp/staged')


def test_dispatch_by_scheme(fake_transfer, monkeypatch):
    monkeypatch.setattr(transport_module.boto3, 'client', MagicMock())
    dispatcher = SnapshotTransport(s3_options={'region': 'eu-west-1'})

    assert isinstance(dispatcher.transport_for('s3://locks/a'), S3Transport)
    assert dispatcher.transport_for('s3://locks/b') is dispatcher.transport_for('s3://locks/a')
    assert dispatcher.transport_for('\\\\host\\share') is dispatcher.share
