"""Transports that bring a peer's snapshot into the working folder"""

import logging
import os
import shutil
from typing import Optional, Tuple

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from s3transfer import S3Transfer, TransferConfig
from s3transfer.exceptions import RetriesExceededError

from .errors import TransportError

logger = logging.getLogger(__name__)

S3_SCHEME = 's3://'


class ShareTransport:
    """Copies the snapshot from a network share or mounted folder"""

    def fetch(self, remote_location: str, snapshot_name: str, destination: str):
        src = os.path.join(remote_location, snapshot_name)
        try:
            shutil.copyfile(src, destination)
        except OSError as e:
            raise TransportError(remote_location, f"copy of {src} failed: {e}") from e


def split_s3_location(remote_location: str) -> Tuple[str, str]:
    """Split ``s3://bucket/prefix`` into bucket and prefix"""
    path = remote_location[len(S3_SCHEME):]
    bucket, _, prefix = path.partition('/')
    return bucket, prefix.strip('/')


class S3Transport:
    """Downloads the snapshot from an S3 (or S3-compatible) bucket"""

    def __init__(self,
                 endpoint_url: Optional[str] = None,
                 access_key: Optional[str] = None,
                 secret_key: Optional[str] = None,
                 region: Optional[str] = None,
                 client=None):
        if client is None:
            config = Config(
                s3={
                    'addressing_style': 'virtual',
                    'payload_signing_enabled': False,
                }
            )
            client = boto3.client(
                's3',
                config=config,
                region_name=region,
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key
            )
        self.s3_client = client
        self.transfer = S3Transfer(self.s3_client, TransferConfig(max_concurrency=1))

    def fetch(self, remote_location: str, snapshot_name: str, destination: str):
        bucket, prefix = split_s3_location(remote_location)
        key = f"{prefix}/{snapshot_name}" if prefix else snapshot_name
        try:
            self.transfer.download_file(bucket, key, destination)
        except (BotoCoreError, ClientError, RetriesExceededError, OSError) as e:
            raise TransportError(remote_location, f"download of {key} failed: {e}") from e


class SnapshotTransport:
    """Dispatches each location to the share or S3 transport"""

    def __init__(self, share: Optional[ShareTransport] = None, s3_options: Optional[dict] = None):
        self.share = share or ShareTransport()
        self.s3_options = s3_options or {}
        self._s3: Optional[S3Transport] = None

    def transport_for(self, remote_location: str):
        if remote_location.startswith(S3_SCHEME):
            if self._s3 is None:
                try:
                    self._s3 = S3Transport(**self.s3_options)
                except (BotoCoreError, ValueError) as e:
                    raise TransportError(remote_location, f"cannot create S3 client: {e}") from e
            return self._s3
        return self.share

    def fetch(self, remote_location: str, snapshot_name: str, destination: str):
        self.transport_for(remote_location).fetch(remote_location, snapshot_name, destination)
