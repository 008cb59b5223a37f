from __future__ import annotations

import logging
from typing import Protocol
from urllib.parse import quote

from google.api_core import exceptions as gexc
from google.cloud import storage

from bucket_publisher.config import DEFAULT_UPLOAD_TIMEOUT, PublisherConfig

logger = logging.getLogger(__name__)

# access policy -> GCS predefined ACL
PREDEFINED_ACLS: dict[str, str] = {
    "public-read": "publicRead",
    "private": "private",
    "authenticated-read": "authenticatedRead",
    "bucket-owner-read": "bucketOwnerRead",
    "bucket-owner-full-control": "bucketOwnerFullControl",
    "project-private": "projectPrivate",
}


class StorageClient(Protocol):
    """What the publisher needs from an object store."""

    def bucket_exists(self, bucket_name: str) -> bool: ...

    def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        *,
        content_type: str,
        cache_control: str,
        access_policy: str,
        content_encoding: str | None = None,
        storage_class: str | None = None,
    ) -> None: ...

    def object_url(self, bucket: str, key: str) -> str: ...


def gs_uri(bucket: str, name: str) -> str:
    return f"gs://{bucket}/{name}"


def object_url(bucket: str, key: str) -> str:
    return f"https://{bucket}.storage.googleapis.com/{quote(key)}"


def build_client(*, project: str | None = None, credentials_file: str | None = None) -> storage.Client:
    if credentials_file:
        return storage.Client.from_service_account_json(credentials_file, project=project)
    return storage.Client(project=project)


class GcsStorage:
    """Google Cloud Storage implementation of ``StorageClient``."""

    def __init__(self, *, client: storage.Client, upload_timeout: float = DEFAULT_UPLOAD_TIMEOUT) -> None:
        self._client = client
        self._timeout = upload_timeout

    @classmethod
    def from_config(cls, cfg: PublisherConfig) -> GcsStorage:
        client = build_client(project=cfg.project, credentials_file=cfg.credentials_file)
        return cls(client=client, upload_timeout=cfg.upload_timeout)

    def bucket_exists(self, bucket_name: str) -> bool:
        try:
            return bool(self._client.bucket(bucket_name).exists(timeout=self._timeout))
        except gexc.Forbidden:
            logger.warning("No access to bucket %s with the configured credentials", bucket_name)
            return False

    def put_object(
        self,
        bucket: str,
        key: str,
        body: bytes,
        *,
        content_type: str,
        cache_control: str,
        access_policy: str,
        content_encoding: str | None = None,
        storage_class: str | None = None,
    ) -> None:
        try:
            predefined_acl = PREDEFINED_ACLS[access_policy]
        except KeyError:
            raise ValueError(f"Unsupported access policy: {access_policy}") from None

        blob = self._client.bucket(bucket).blob(key)
        blob.cache_control = cache_control
        if content_encoding:
            blob.content_encoding = content_encoding
        if storage_class:
            blob.storage_class = storage_class
        blob.upload_from_string(
            body,
            content_type=content_type,
            predefined_acl=predefined_acl,
            timeout=self._timeout,
        )

    def object_url(self, bucket: str, key: str) -> str:
        return object_url(bucket, key)
