"""
S3-compatible object store (AWS S3, Cloudflare R2) backed by boto3.

Example:
    >>> from untappd_mirror.storage import create_object_store
    >>>
    >>> store = create_object_store(settings.storage)
    >>> store.put_object("2025/11/01/1.jpg", data, {"id": "1"}, "image/jpeg")
    >>> store.head_object("2025/11/01/1.jpg")["id"]
    '1'
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from urllib.parse import quote, unquote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from untappd_mirror.storage.protocol import ObjectNotFoundError, StorageError
from untappd_mirror.utils.logging import get_logger

if TYPE_CHECKING:
    from untappd_mirror.config.settings import StorageSettings

logger = get_logger(__name__)

NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound"})
METADATA_SAFE = " ,.-_:/'()!?&"


def _needs_encoding(value: str) -> bool:
    return not (value.isascii() and value.isprintable()) or "%" in value


def encode_metadata(metadata: dict[str, str]) -> dict[str, str]:
    """Make metadata values safe for S3 user metadata headers.

    Values that are not printable ASCII (accented venue names, multi-line
    comments) or that contain ``%`` are percent-encoded. Everything else
    is stored as is, so ``decode_metadata`` reverses both cases.
    """
    return {
        key: quote(value, safe=METADATA_SAFE) if _needs_encoding(value) else value
        for key, value in metadata.items()
    }


def decode_metadata(metadata: dict[str, str]) -> dict[str, str]:
    """Inverse of encode_metadata."""
    return {key: unquote(value) for key, value in metadata.items()}


class S3ObjectStore:
    """ObjectStore implementation over a boto3 S3 client.

    The boto3 client is thread-safe; one instance is shared by all
    pipeline workers.

    Attributes:
        bucket_name: Target bucket
    """

    def __init__(self, client: Any, bucket_name: str):
        """Initialize the store.

        Args:
            client: boto3 S3 client (or a Stubber-wrapped one in tests)
            bucket_name: Target bucket
        """
        if not bucket_name:
            raise ValueError("bucket name is required")
        self._client = client
        self._bucket = bucket_name

    @property
    def bucket_name(self) -> str:
        return self._bucket

    @property
    def client(self) -> Any:
        return self._client

    def head_object(self, key: str) -> dict[str, str]:
        try:
            response = self._client.head_object(Bucket=self._bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "head", key) from e
        return decode_metadata(response.get("Metadata") or {})

    def get_object(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self._bucket, Key=key)
            return response["Body"].read()
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "get", key) from e

    def put_object(
        self,
        key: str,
        body: bytes,
        metadata: dict[str, str],
        content_type: str,
    ) -> None:
        try:
            self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=body,
                Metadata=encode_metadata(metadata),
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as e:
            raise self._translate(e, "put", key) from e

        logger.debug("object_put", key=key, size=len(body))

    @staticmethod
    def _translate(error: Exception, operation: str, key: str) -> StorageError:
        """Map a botocore error onto the storage error taxonomy.

        Only an explicit not-found response becomes ObjectNotFoundError;
        throttling, permission and network errors stay StorageError.
        """
        if isinstance(error, ClientError):
            code = str(error.response.get("Error", {}).get("Code", ""))
            if code in NOT_FOUND_CODES:
                return ObjectNotFoundError(key)
            return StorageError(f"{operation} {key!r} failed ({code}): {error}")
        return StorageError(f"{operation} {key!r} failed: {error}")

    def __repr__(self) -> str:
        return f"S3ObjectStore(bucket={self._bucket!r})"


def r2_endpoint(account_id: str) -> str:
    """Cloudflare R2 S3 endpoint for an account."""
    return f"https://{account_id}.r2.cloudflarestorage.com"


def create_object_store(settings: StorageSettings) -> S3ObjectStore:
    """Build the object store described by the storage settings.

    Cloudflare R2 wins when an account id is configured, then AWS S3 when
    a region is configured.

    Raises:
        ValueError: If no storage provider is configured
    """
    boto_config = BotoConfig(
        signature_version="s3v4",
        retries={"max_attempts": settings.max_attempts},
        connect_timeout=settings.timeout_seconds,
        read_timeout=settings.timeout_seconds,
        max_pool_connections=settings.max_pool_connections,
    )

    if settings.r2_account_id:
        client = boto3.client(
            "s3",
            endpoint_url=settings.endpoint_url or r2_endpoint(settings.r2_account_id),
            aws_access_key_id=settings.r2_access_key_id,
            aws_secret_access_key=settings.r2_access_key_secret.get_secret_value(),
            region_name="auto",
            config=boto_config.merge(BotoConfig(s3={"addressing_style": "path"})),
        )
        logger.debug("object_store_created", provider="r2", bucket=settings.bucket_name)
    elif settings.aws_region:
        client = boto3.client(
            "s3",
            region_name=settings.aws_region,
            endpoint_url=settings.endpoint_url or None,
            config=boto_config,
        )
        logger.debug("object_store_created", provider="s3", bucket=settings.bucket_name)
    else:
        raise ValueError("no storage provider configured")

    return S3ObjectStore(client, settings.bucket_name)
