"""
S3 blob storage for quiz PDFs and generated artifacts.

Blob references may be plain keys (resolved against a default bucket) or
full URLs:
- s3://bucket/key
- https://bucket.s3.region.amazonaws.com/key
- https://s3.region.amazonaws.com/bucket/key
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional, Tuple
from urllib.parse import unquote, quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import StorageError
from ..logger import get_logger

if TYPE_CHECKING:
    from ..config import S3Config

logger = get_logger(__name__)


# Patterns for S3 URL detection
S3_URI_PATTERN = re.compile(r"^s3://([^/]+)/(.+)$")
S3_HTTPS_VIRTUAL_HOSTED = re.compile(
    r"^https?://([^.]+)\.s3\.([^.]+\.)?amazonaws\.com/(.+)$"
)
S3_HTTPS_PATH_STYLE = re.compile(
    r"^https?://s3\.([^.]+\.)?amazonaws\.com/([^/]+)/(.+)$"
)


def is_s3_url(path: str) -> bool:
    """Check if a blob reference is an S3 URL rather than a bare key."""
    if not isinstance(path, str):
        return False
    path_lower = path.lower()
    if path_lower.startswith("s3://"):
        return True
    if path_lower.startswith(("http://", "https://")):
        return "amazonaws.com" in path_lower or ".s3." in path_lower
    return False


def parse_s3_url(url: str) -> Tuple[str, str]:
    """
    Parse an S3 URL into bucket and key.

    Raises:
        ValueError: If URL cannot be parsed
    """
    match = S3_URI_PATTERN.match(url)
    if match:
        bucket, key = match.groups()
        return bucket, unquote(key)

    match = S3_HTTPS_VIRTUAL_HOSTED.match(url)
    if match:
        return match.group(1), unquote(match.group(3))

    match = S3_HTTPS_PATH_STYLE.match(url)
    if match:
        return match.group(2), unquote(match.group(3))

    raise ValueError(f"Cannot parse S3 URL: {url}")


def resolve_blob(ref: str, default_bucket: str) -> Tuple[str, str]:
    """Resolve a stored blob reference to (bucket, key)."""
    ref = (ref or "").strip()
    if not ref:
        raise ValueError("Empty blob reference")
    if is_s3_url(ref):
        return parse_s3_url(ref)
    return default_bucket, ref.lstrip("/")


def get_s3_client(s3_config: "S3Config"):
    """Create a boto3 S3 client with configuration."""
    kwargs = {
        "region_name": s3_config.region,
        "config": BotoConfig(
            connect_timeout=s3_config.connect_timeout,
            read_timeout=s3_config.read_timeout,
            retries={"max_attempts": s3_config.max_retries},
        ),
    }
    if s3_config.endpoint_url:
        kwargs["endpoint_url"] = s3_config.endpoint_url

    if s3_config.has_credentials:
        kwargs["aws_access_key_id"] = s3_config.access_key_id
        kwargs["aws_secret_access_key"] = s3_config.secret_access_key
        if s3_config.session_token:
            kwargs["aws_session_token"] = s3_config.session_token

    return boto3.client("s3", **kwargs)


class BlobStore:
    """
    Thin wrapper over an S3 client.

    The client is created lazily so tests can inject a stub via `client=`.
    """

    def __init__(self, s3_config: "S3Config", client=None):
        self.config = s3_config
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = get_s3_client(self.config)
        return self._client

    def download_bytes(self, bucket: str, key: str) -> bytes:
        """Fetch an object's body."""
        logger.debug(f"Downloading s3://{bucket}/{key}")
        try:
            response = self.client.get_object(Bucket=bucket, Key=key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise StorageError(
                f"Failed to download blob: {e}", bucket=bucket, key=key, operation="download"
            ) from e

    def upload_bytes(
        self,
        bucket: str,
        key: str,
        data: bytes,
        content_type: Optional[str] = None,
    ) -> str:
        """
        Store data under bucket/key, overwriting any existing object.

        Returns:
            Public URL of the uploaded object
        """
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self.client.put_object(Bucket=bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(
                f"Failed to upload blob: {e}", bucket=bucket, key=key, operation="upload"
            ) from e

        url = self.public_url(bucket, key)
        logger.info(f"Uploaded {len(data)} bytes to {url}")
        return url

    def public_url(self, bucket: str, key: str) -> str:
        """Public location of an object."""
        quoted = quote(key)
        if self.config.public_base_url:
            return f"{self.config.public_base_url.rstrip('/')}/{bucket}/{quoted}"
        return f"https://{bucket}.s3.{self.config.region}.amazonaws.com/{quoted}"
